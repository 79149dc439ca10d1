"""Shared fixtures building synthetic recognition output."""

import io

import pytest
from PIL import Image

from scoresheet_pipeline.recognition.schemas import RecognitionResult, TextFragment

SCENARIO_HEADER = ["Seq", "Name", "Score1", "Score2"]
SCENARIO_ROWS = [
    ["1", "Jane Doe", "14.50", "9.00"],
    ["2", "John Roe", "07,00", "15,50"],
    ["3", "Amal K", "20", "3"],
]
# (left, width) of each column in pixels
SCENARIO_COLUMNS = [(40, 60), (120, 220), (360, 90), (470, 90)]


def make_fragment(text, left, top, width=60.0, height=20.0, confidence=0.95):
    return TextFragment.from_box(text, left=left, top=top, width=width, height=height, confidence=confidence)


def build_grid(rows, columns, start_top=50.0, row_gap=40.0, confidence=0.95):
    fragments = []
    for row_index, row in enumerate(rows):
        top = start_top + row_index * row_gap
        for (left, width), text in zip(columns, row):
            if text:
                fragments.append(make_fragment(text, left, top, width=width, confidence=confidence))
    return fragments


@pytest.fixture
def fragment():
    """Factory for a single axis-aligned fragment."""
    return make_fragment


@pytest.fixture
def grid():
    """Factory for fragments laid out on a regular grid."""
    return build_grid


@pytest.fixture
def scenario_fragments():
    """Clean 3-row sheet with Seq / Name / Score1 / Score2 headers."""
    return build_grid([SCENARIO_HEADER] + SCENARIO_ROWS, SCENARIO_COLUMNS)


@pytest.fixture
def scenario_text():
    lines = [" ".join(SCENARIO_HEADER)] + [" ".join(row) for row in SCENARIO_ROWS]
    return "\n".join(lines)


@pytest.fixture
def scenario_recognition(scenario_fragments, scenario_text):
    return RecognitionResult(fragments=scenario_fragments, full_text=scenario_text)


@pytest.fixture
def png_bytes():
    """A small white PNG."""
    buffer = io.BytesIO()
    Image.new("L", (400, 300), color=255).save(buffer, format="PNG")
    return buffer.getvalue()

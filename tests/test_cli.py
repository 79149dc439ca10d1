import json

import pytest
from PIL import Image

from scoresheet_pipeline import cli
from scoresheet_pipeline.validation.schemas import Complexity, DocumentType


@pytest.fixture(autouse=True)
def no_textract(monkeypatch):
    monkeypatch.setattr("scoresheet_pipeline.pipeline_builder.get_textract_client", lambda: None)


@pytest.fixture
def image_path(tmp_path, png_bytes):
    path = tmp_path / "sheet.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
def recognition_path(tmp_path, scenario_fragments, scenario_text):
    path = tmp_path / "ocr.json"
    payload = {
        "fragments": [
            {"text": f.text, "boundingBox": [p.model_dump() for p in f.bounding_box], "confidence": f.confidence}
            for f in scenario_fragments
        ],
        "fullText": scenario_text,
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def snapshot_path(tmp_path):
    path = tmp_path / "class.json"
    values = [["N°", "Nom", "Devoir 1", "Devoir 2"], [1, "Doe Jane", None, None], [2, "John Roe", None, None]]
    path.write_text(json.dumps({"values": values}), encoding="utf-8")
    return path


def test_end_to_end_with_saved_recognition(image_path, recognition_path, snapshot_path, capsys):
    exit_code = cli.main(
        [str(image_path), str(snapshot_path), "--recognition-json", str(recognition_path), "--write"]
    )

    assert exit_code == cli.EXIT_OK
    summary = json.loads(capsys.readouterr().out)
    assert summary["strategy"] == "table_structure"
    assert summary["rowAssignments"] == {"Jane Doe": 1, "John Roe": 2}
    assert summary["notFound"] == ["Amal K"]

    saved = json.loads(snapshot_path.read_text(encoding="utf-8"))["values"]
    assert saved[1][2:] == [14.5, 9.0]
    assert saved[2][2:] == [7.0, 15.5]


def test_no_records_is_recoverable(image_path, tmp_path, capsys):
    empty = tmp_path / "empty.json"
    empty.write_text(json.dumps({"fragments": [], "fullText": ""}), encoding="utf-8")

    exit_code = cli.main([str(image_path), "--recognition-json", str(empty)])

    assert exit_code == cli.EXIT_RECOVERABLE
    assert json.loads(capsys.readouterr().out)["error"]["kind"] == "NoRecordsExtracted"


def test_missing_image_is_fatal(tmp_path, capsys):
    assert cli.main([str(tmp_path / "missing.png")]) == cli.EXIT_FATAL
    assert json.loads(capsys.readouterr().out)["error"]["kind"] == "InvalidDocument"


def test_unreadable_image_without_saved_recognition_is_fatal(tmp_path, capsys):
    path = tmp_path / "sheet.png"
    path.write_bytes(b"not an image")

    assert cli.main([str(path)]) == cli.EXIT_FATAL
    assert json.loads(capsys.readouterr().out)["error"]["kind"] == "InvalidDocument"


def test_build_context_from_arguments(png_bytes):
    args = cli.build_parser().parse_args(
        [
            "sheet.png",
            "--document-type",
            "handwritten",
            "--complexity",
            "high",
            "--critical",
            "--expected-count",
            "30",
            "--no-retry",
        ]
    )

    context = cli.build_context(args, png_bytes)

    assert context.document_type == DocumentType.HANDWRITTEN
    assert context.expected_complexity == Complexity.HIGH
    assert context.critical_accuracy
    assert context.expected_count == 30
    assert not context.allow_retry
    assert context.image_quality.resolution == 300


def test_build_context_tolerates_undecodable_image_with_saved_recognition(recognition_path):
    args = cli.build_parser().parse_args(["sheet.png", "--recognition-json", str(recognition_path)])
    assert cli.build_context(args, b"raw").image_quality is None


def test_single_pixel_high_image_is_processed(tmp_path, recognition_path, capsys):
    path = tmp_path / "strip.png"
    Image.new("L", (400, 1), color=255).save(path)

    exit_code = cli.main([str(path), "--recognition-json", str(recognition_path)])

    assert exit_code in (cli.EXIT_OK, cli.EXIT_RECOVERABLE)
    assert len(json.loads(capsys.readouterr().out)["records"]) == 3


def test_oversized_image_is_fatal(monkeypatch, image_path, capsys):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

    assert cli.main([str(image_path)]) == cli.EXIT_FATAL
    assert json.loads(capsys.readouterr().out)["error"]["kind"] == "InvalidDocument"

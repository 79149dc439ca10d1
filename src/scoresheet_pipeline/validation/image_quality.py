"""Image quality metrics measured from raw image bytes."""

import io
import logging

import numpy as np
from PIL import Image, UnidentifiedImageError

from scoresheet_pipeline.exceptions import InvalidDocument
from scoresheet_pipeline.validation.schemas import ImageQualityMetrics

logger = logging.getLogger(__name__)

# Scale factors mapping raw pixel statistics onto 0..1
CONTRAST_SCALE = 127.5
SHARPNESS_SCALE = 40.0
NOISE_SCALE = 50.0
EDGE_MAGNITUDE_MIN = 30.0


def load_grayscale(image_bytes: bytes) -> np.ndarray:
    """Decodes image bytes into a float grey-level array.

    Raises:
        InvalidDocument: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return np.asarray(image.convert("L"), dtype=np.float64)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidDocument(f"The file is not a readable image: {e}") from e


def image_size(image_bytes: bytes) -> tuple[int, int]:
    """Width and height of an encoded image."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return image.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidDocument(f"The file is not a readable image: {e}") from e


def _laplacian(gray: np.ndarray) -> np.ndarray:
    return (
        4 * gray[1:-1, 1:-1] - gray[:-2, 1:-1] - gray[2:, 1:-1] - gray[1:-1, :-2] - gray[1:-1, 2:]
    )


def _local_mean(gray: np.ndarray) -> np.ndarray:
    padded = np.pad(gray, 1, mode="edge")
    height, width = gray.shape
    total = sum(padded[dy : dy + height, dx : dx + width] for dy in range(3) for dx in range(3))
    return total / 9.0


def estimate_skew(gray: np.ndarray) -> float:
    """Dominant deviation of horizontal edges from level, in degrees."""
    if min(gray.shape) < 2:
        return 0.0
    gy, gx = np.gradient(gray)
    magnitude = np.hypot(gx, gy)
    strong = magnitude > EDGE_MAGNITUDE_MIN
    if not strong.any():
        return 0.0
    # Horizontal strokes have vertical gradients (angle near 90 degrees)
    angles = np.degrees(np.arctan2(gy[strong], gx[strong])) % 180.0
    deviations = angles - 90.0
    near_horizontal = deviations[np.abs(deviations) < 45.0]
    if near_horizontal.size == 0:
        return 0.0
    return float(np.median(near_horizontal))


def measure_image_quality(image_bytes: bytes) -> ImageQualityMetrics:
    """Computes brightness, contrast, sharpness, noise, skew and resolution of an image.

    Args:
        image_bytes: Encoded image (PNG, JPEG, TIFF...).

    Returns:
        ImageQualityMetrics: The measured signals.
    """
    gray = load_grayscale(image_bytes)
    height, width = gray.shape

    brightness = float(gray.mean() / 255.0)
    contrast = float(min(1.0, gray.std() / CONTRAST_SCALE))
    if height > 2 and width > 2:
        sharpness = float(min(1.0, np.sqrt(np.mean(_laplacian(gray) ** 2)) / SHARPNESS_SCALE))
    else:
        sharpness = 0.0
    noise = float(min(1.0, np.mean(np.abs(gray - _local_mean(gray))) / NOISE_SCALE))
    skew = estimate_skew(gray)

    metrics = ImageQualityMetrics(
        brightness=brightness,
        contrast=contrast,
        sharpness=sharpness,
        noise=noise,
        skew=skew,
        resolution=float(min(width, height)),
    )
    logger.debug(f"Image quality: {metrics.model_dump()}")
    return metrics

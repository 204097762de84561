"""Image quantization and file output.

Rendered pixels are stored as linear color sums. Converting them to 8-bit
values divides by the sample count, clamps to [0, 1], applies gamma 2 (a
square root) and scales by 256 with truncation, clamping the result to 255.

Supported formats:
    - PPM (plain-text P3, the default)
    - PNG (8-bit RGB via Pillow)

Example:
    >>> from spheretrace.output.export import image_to_uint8, save_image
    >>> pixels = image_to_uint8(color_sum, samples_per_pixel=500)
    >>> save_image(pixels, "image.ppm")
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

PPM_MAX_VALUE = 255


def image_to_uint8(
    color_sum: npt.NDArray[np.floating],
    samples_per_pixel: int,
) -> npt.NDArray[np.uint8]:
    """Convert accumulated linear color sums to 8-bit pixels.

    Args:
        color_sum: Per-pixel color sums of shape (H, W, 3).
        samples_per_pixel: Number of samples that went into each sum.

    Returns:
        Array of shape (H, W, 3) with dtype uint8.

    Raises:
        ValueError: If samples_per_pixel is not positive.
    """
    if samples_per_pixel <= 0:
        raise ValueError(f"samples_per_pixel must be positive, got {samples_per_pixel}")

    average = np.asarray(color_sum, dtype=np.float64) / float(samples_per_pixel)
    # NaN compares false against both clip bounds; map it to black first
    average = np.nan_to_num(average, nan=0.0, posinf=1.0, neginf=0.0)
    corrected = np.sqrt(np.clip(average, 0.0, 1.0))
    quantized = np.floor(256.0 * corrected)
    return np.minimum(quantized, PPM_MAX_VALUE).astype(np.uint8)


def _check_pixels(pixels: npt.NDArray[np.uint8]) -> None:
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) pixel array, got shape {pixels.shape}")


def format_ppm(pixels: npt.NDArray[np.uint8]) -> str:
    """Format pixels as a plain-text P3 PPM document.

    The header is "P3", then "<width> <height>", then "255", followed by
    one "R G B" line per pixel, top row first, left to right.

    Args:
        pixels: Array of shape (H, W, 3), top row first.

    Returns:
        The PPM text, newline terminated.
    """
    _check_pixels(pixels)
    height, width, _ = pixels.shape
    lines = ["P3", f"{width} {height}", str(PPM_MAX_VALUE)]
    flat = np.asarray(pixels, dtype=np.int64).reshape(-1, 3)
    lines.extend(f"{r} {g} {b}" for r, g, b in flat.tolist())
    return "\n".join(lines) + "\n"


def write_ppm(pixels: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Write pixels to a P3 PPM file.

    Raises:
        OSError: If the file cannot be written.
    """
    Path(filepath).write_text(format_ppm(pixels), encoding="ascii")


def save_png_from_array(pixels: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save 8-bit pixels as a PNG file via Pillow."""
    _check_pixels(pixels)
    pil_image = PILImage.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8))
    pil_image.save(str(filepath))


def save_image(pixels: npt.NDArray[np.uint8], filepath: str | Path) -> Path:
    """Save pixels, choosing the format from the file suffix.

    ".png" is written through Pillow; every other name gets PPM text.

    Returns:
        The path written.
    """
    path = Path(filepath)
    if path.suffix.lower() == ".png":
        save_png_from_array(pixels, path)
    else:
        write_ppm(pixels, path)
    return path

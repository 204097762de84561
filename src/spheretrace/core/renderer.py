"""Scanline render driver.

Wraps the integrator's render target and per-row kernel behind a small
object that walks the image from the top row down, reporting progress as it
goes. Rows may be computed in any order internally, but the result buffer is
always indexed by image coordinates, so the output is identical to a
sequential render.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.renderer import RenderSettings, ScanlineRenderer
    >>>
    >>> renderer = ScanlineRenderer(RenderSettings(image_width=400, samples_per_pixel=20))
    >>> renderer.render(callback=lambda remaining, total: None)
    >>> pixels = renderer.get_image_uint8()
"""

from collections.abc import Callable, Generator
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from spheretrace.core.integrator import (
    MAX_DEPTH,
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    clear_render_target,
    get_color_sum_numpy,
    render_scanline,
    setup_render_target,
)
from spheretrace.output.export import image_to_uint8

# Callback receives (rows_remaining, total_rows) before each row is rendered
ProgressCallback = Callable[[int, int], None]


@dataclass
class RenderSettings:
    """Image and sampling parameters for one render.

    Attributes:
        image_width: Output width in pixels.
        aspect_ratio: Width divided by height; the height is derived.
        samples_per_pixel: Jittered samples averaged per pixel.
        max_depth: Maximum bounces per path.
        seed: Global random seed. Equal seeds give identical images.
    """

    image_width: int = 1200
    aspect_ratio: float = 3.0 / 2.0
    samples_per_pixel: int = 500
    max_depth: int = MAX_DEPTH
    seed: int = 0

    @property
    def image_height(self) -> int:
        return int(self.image_width / self.aspect_ratio)

    def validate(self) -> None:
        """Check the settings before any kernel runs.

        Raises:
            ValueError: If a parameter is out of range.
        """
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"Aspect ratio must be positive, got {self.aspect_ratio}")
        width, height = self.image_width, self.image_height
        if width < 2 or height < 2:
            raise ValueError(f"Image must be at least 2x2 pixels, got {width}x{height}")
        if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({width}x{height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(f"Samples per pixel must be >= 1, got {self.samples_per_pixel}")
        if self.max_depth < 0:
            raise ValueError(f"Max depth must be >= 0, got {self.max_depth}")


class ScanlineRenderer:
    """Renders the current world and camera one scanline at a time.

    The world and camera are module-level Taichi state; set them up (via
    SceneManager and setup_camera) before calling render().

    Attributes:
        settings: The validated render settings.
    """

    def __init__(self, settings: RenderSettings | None = None) -> None:
        """Validate the settings and allocate the render target.

        Raises:
            ValueError: If the settings are invalid.
        """
        self.settings = settings if settings is not None else RenderSettings()
        self.settings.validate()
        self._rows_done = 0
        setup_render_target(self.width, self.height)

    @property
    def width(self) -> int:
        return self.settings.image_width

    @property
    def height(self) -> int:
        return self.settings.image_height

    @property
    def rows_done(self) -> int:
        """Number of scanlines rendered since the last reset."""
        return self._rows_done

    def reset(self) -> None:
        """Clear the accumulation buffer for a fresh render."""
        clear_render_target()
        self._rows_done = 0

    def render_progressive(self) -> Generator[tuple[int, int], None, None]:
        """Render row by row, yielding before each row.

        Rows are visited from the top of the image (row height-1) down to
        row 0. The buffer is cleared first, so rendering again starts over.

        Yields:
            Tuple of (rows_remaining, total_rows). rows_remaining counts the
            row about to be rendered.
        """
        self.reset()
        total = self.height
        for row in reversed(range(total)):
            yield (row + 1, total)
            render_scanline(
                row,
                self.settings.samples_per_pixel,
                self.settings.max_depth,
                self.settings.seed,
            )
            self._rows_done += 1

    def render(self, callback: ProgressCallback | None = None) -> None:
        """Render the whole image.

        Args:
            callback: Optional function called before each row with
                (rows_remaining, total_rows).

        Example:
            >>> def progress(remaining, total):
            ...     print(f"Scanlines remaining: {remaining}")
            >>> renderer.render(callback=progress)
        """
        for remaining, total in self.render_progressive():
            if callback is not None:
                callback(remaining, total)

    def get_color_sum(self) -> npt.NDArray[np.float32]:
        """Raw per-pixel color sums, shape (height, width, 3), top row first."""
        return get_color_sum_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Final 8-bit pixels, shape (height, width, 3), top row first."""
        return image_to_uint8(self.get_color_sum(), self.settings.samples_per_pixel)

    def __repr__(self) -> str:
        return (
            f"ScanlineRenderer(width={self.width}, height={self.height}, "
            f"samples_per_pixel={self.settings.samples_per_pixel}, "
            f"rows_done={self.rows_done})"
        )

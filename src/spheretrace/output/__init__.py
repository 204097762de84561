"""Output module: pixel quantization and PPM/PNG writers."""

from .export import (
    format_ppm,
    image_to_uint8,
    save_image,
    save_png_from_array,
    write_ppm,
)

__all__ = [
    "image_to_uint8",
    "format_ppm",
    "write_ppm",
    "save_png_from_array",
    "save_image",
]

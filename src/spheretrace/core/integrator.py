"""Path tracing integrator for the sphere world.

Each camera sample follows one path through the world. At every bounce the
nearest sphere is found, its material decides whether the path scatters and
by how much the carried color is attenuated, and a path that escapes the
world picks up the sky gradient. Paths that are absorbed or run out of
bounces contribute black.

Rendering is organised by scanline: one kernel launch per image row,
parallel over the row's columns. Every pixel owns a private random stream
seeded from the render seed and the pixel index, so the image is
reproducible for a fixed seed. The accumulation buffer holds the raw linear
color SUM over all samples of a pixel; averaging and gamma happen on output.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.integrator import render_scanline, setup_render_target
    >>> setup_render_target(400, 266)
    >>> for row in reversed(range(266)):
    ...     render_scanline(row, samples_per_pixel=10, max_depth=50, seed=0)
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from spheretrace.camera.thin_lens import sample_camera_ray
from spheretrace.core.ray import normalize
from spheretrace.core.rng import next_float, seed_rng
from spheretrace.materials.dielectric import scatter_dielectric_by_id
from spheretrace.materials.lambertian import scatter_lambertian_by_id
from spheretrace.materials.metal import scatter_metal_by_id
from spheretrace.scene.intersection import intersect_scene
from spheretrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum number of bounces per path
MAX_DEPTH = 50

# Hits closer than T_MIN are ignored so a scattered ray does not re-hit the
# surface it just left.
T_MIN = 0.001
T_MAX = tm.inf

SKY_BOTTOM_COLOR = vec3(1.0, 1.0, 1.0)
SKY_TOP_COLOR = vec3(0.5, 0.7, 1.0)

# =============================================================================
# Render Target (Accumulation Buffer)
# =============================================================================

# Preallocated so changing the image size does not recompile kernels
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Indexed [column, row] with row 0 at the bottom of the image
_color_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the accumulation buffer.

    Args:
        width: Image width in pixels, in [2, MAX_IMAGE_WIDTH].
        height: Image height in pixels, in [2, MAX_IMAGE_HEIGHT].

    Raises:
        ValueError: If a dimension is out of range. The jitter formula
            divides by (size - 1), so both sizes must be at least 2.
    """
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    if width < 2 or height < 2:
        raise ValueError(f"Image dimensions ({width}x{height}) must be at least 2x2")

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Zero the accumulation buffer."""
    _color_sum.fill(0.0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the active image size as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_color_sum_numpy() -> np.ndarray:
    """Get the accumulated color sums as a NumPy array.

    Returns:
        Array of shape (height, width, 3), dtype float32, top row first.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    full = _color_sum.to_numpy()
    image = full[:width, :height, :]
    # (width, height, 3) -> (height, width, 3), then put the top row first
    image = np.transpose(image, (1, 0, 2))
    image = np.flipud(image)
    return np.ascontiguousarray(image, dtype=np.float32)


# =============================================================================
# Radiance Estimation
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky color seen along a ray that escapes the world.

    Linear blend from white at the horizon-down (unit.y = -1) to light blue
    straight up (unit.y = 1).
    """
    unit_direction = normalize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - t) * SKY_BOTTOM_COLOR + t * SKY_TOP_COLOR


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    rng: ti.u32,
):
    """Dispatch a scatter event to the material variant of material_id.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng).
        Unknown material ids absorb the path.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0
    rng_out = rng

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, rng_out = scatter_lambertian_by_id(
            type_index, normal, rng
        )
        did_scatter = 1
    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter, rng_out = scatter_metal_by_id(
            type_index, incident_direction, normal, rng
        )
    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter, rng_out = scatter_dielectric_by_id(
            type_index, incident_direction, normal, front_face, rng
        )

    return scattered_direction, attenuation, did_scatter, rng_out


@ti.func
def ray_color(origin: vec3, direction: vec3, max_depth: ti.i32, rng: ti.u32):
    """Estimate the color carried back along one ray.

    Follows the path for at most max_depth intersections, multiplying the
    throughput by each material's attenuation. The scattered ray of every
    bounce starts at the hit point.

    Args:
        origin: Ray origin.
        direction: Ray direction (any non-zero length).
        max_depth: Remaining bounce budget. 0 yields black.
        rng: The pixel's random stream state.

    Returns:
        A tuple (color, rng).
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction
    s = rng

    # Taichi does not allow break inside a ti.func loop; use an active flag
    active = 1
    for _ in range(max_depth):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)
            if rec.hit == 0:
                color = throughput * background_color(ray_direction)
                active = 0
            else:
                scattered, attenuation, did_scatter, s = _scatter_material(
                    rec.material_id, ray_direction, rec.normal, rec.front_face, s
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    ray_origin = rec.point
                    ray_direction = scattered

    return color, s


@ti.kernel
def _trace_ray(origin: vec3, direction: vec3, max_depth: ti.i32, seed: ti.u32) -> vec3:
    rng = seed_rng(0, seed)
    color, _ = ray_color(origin, direction, max_depth, rng)
    return color


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = MAX_DEPTH,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Evaluate ray_color once from Python.

    Intended for tests and debugging; rendering goes through
    render_scanline.

    Returns:
        Tuple of (R, G, B) in linear space.
    """
    color = _trace_ray(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        max_depth,
        seed & 0xFFFFFFFF,
    )
    return (float(color[0]), float(color[1]), float(color[2]))


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_scanline(
    row: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    seed: ti.u32,
):
    for i in range(width):
        rng = seed_rng(row * width + i, seed)
        pixel_sum = vec3(0.0, 0.0, 0.0)
        for _ in range(samples_per_pixel):
            r1, rng_a = next_float(rng)
            r2, rng_b = next_float(rng_a)
            s = (ti.cast(i, ti.f32) + r1) / ti.cast(width - 1, ti.f32)
            t = (ti.cast(row, ti.f32) + r2) / ti.cast(height - 1, ti.f32)
            origin, direction, rng_c = sample_camera_ray(s, t, rng_b)
            color, rng_d = ray_color(origin, direction, max_depth, rng_c)
            pixel_sum += color
            rng = rng_d
        _color_sum[i, row] = pixel_sum


def render_scanline(row: int, samples_per_pixel: int, max_depth: int, seed: int = 0) -> None:
    """Render every pixel of one image row.

    Overwrites the row's accumulation entries with the sum of
    samples_per_pixel path samples per pixel.

    Args:
        row: Image row, 0 at the bottom and height-1 at the top.
        samples_per_pixel: Number of jittered samples per pixel.
        max_depth: Maximum bounces per path.
        seed: Global render seed; equal seeds give identical rows.

    Raises:
        RuntimeError: If the render target has not been set up.
        ValueError: If row is outside the image.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    if not 0 <= row < height:
        raise ValueError(f"Row {row} is outside the image (height {height})")
    _render_scanline(row, width, height, samples_per_pixel, max_depth, seed & 0xFFFFFFFF)

"""Core rendering module.

Components:
    ray: Ray data structure and vector helpers
    rng: Per-pixel random streams and geometric samplers
    integrator: Path tracing, render target and the per-scanline kernel
    renderer: Scanline render driver and render settings
"""

from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from .rng import (
    next_float,
    next_u32,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    seed_rng,
    wang_hash,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import them directly from spheretrace.core.integrator / spheretrace.core.renderer.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "wang_hash",
    "seed_rng",
    "next_u32",
    "next_float",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]

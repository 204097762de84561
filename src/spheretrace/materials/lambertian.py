"""Lambertian (ideal diffuse) material implementation.

A diffuse surface scatters an incoming ray toward
    normal + random_unit_vector()

i.e. toward a uniformly chosen point on the unit sphere tangent to the
surface at the hit point. The resulting directions follow a cosine-weighted
distribution around the normal, so the attenuation is simply the albedo and
no explicit pdf is needed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, rng = scatter_lambertian(albedo, normal, rng)
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import near_zero
from spheretrace.core.rng import random_unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_lambertian(
    albedo: vec3,
    normal: vec3,
    rng: ti.u32,
):
    """Sample a scattered ray direction for a Lambertian material.

    Diffuse surfaces always scatter. If the random unit vector happens to
    cancel the normal, the normal itself is used so the scattered ray never
    has a zero direction.

    Args:
        albedo: The diffuse reflectance color (RGB).
        normal: The unit surface normal at the hit point, facing the ray.
        rng: The caller's random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, rng) where the
        attenuation always equals albedo.
    """
    offset, rng_out = random_unit_vector(rng)
    scattered_direction = normal + offset

    if near_zero(scattered_direction):
        scattered_direction = normal

    return scattered_direction, albedo, rng_out


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Sized to the sphere capacity so every sphere can own a Lambertian material
MAX_LAMBERTIAN_MATERIALS = 1024

# Storage for Lambertian material properties
lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.
            Each component must be in [0, 1].

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    return lambertian_albedos[material_idx]


@ti.func
def scatter_lambertian_by_id(
    material_idx: ti.i32,
    normal: vec3,
    rng: ti.u32,
):
    """Scatter off a registered Lambertian material.

    Looks up the albedo from the material registry and calls
    scatter_lambertian.

    Returns:
        A tuple of (scattered_direction, attenuation, rng).
    """
    albedo = get_lambertian_albedo(material_idx)
    return scatter_lambertian(albedo, normal, rng)

"""Dielectric (glass/water) material implementation.

Dielectrics split incoming light between reflection and refraction:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for the reflectance at a given angle
    - Total internal reflection when (n1 / n2) * sin(theta1) > 1

Each scatter event picks one outcome at random, reflecting with probability
equal to the Schlick reflectance. Clear glass does not tint, so the
attenuation is always white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, rng = scatter_dielectric(
    >>> #     ior, incident_dir, normal, front_face, rng
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import normalize, reflect, refract, schlick_reflectance
from spheretrace.core.rng import next_float

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def _refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    # Entering the material (front face): air -> glass. Leaving: glass -> air.
    ratio = ior
    if front_face == 1:
        ratio = 1.0 / ior
    return ratio


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    rng: ti.u32,
):
    """Compute the scattered ray direction for a dielectric material.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing the incoming ray.
        front_face: 1 if the ray hits the outside of the surface,
            0 if the ray is inside the material.
        rng: The caller's random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng) where:
        - scattered_direction: The reflected or refracted direction.
        - attenuation: White; glass does not tint.
        - did_scatter: Always 1 for dielectrics.
        - rng: The advanced random stream state.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    refraction_ratio = _refraction_ratio(ior, front_face)

    unit_direction = normalize(incident_direction)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)

    refracted, can_refract = refract(unit_direction, normal, refraction_ratio)
    reflectance = schlick_reflectance(cos_theta, refraction_ratio)

    draw, rng_out = next_float(rng)

    scattered_direction = refracted
    if can_refract == 0 or reflectance > draw:
        scattered_direction = reflect(unit_direction, normal)

    return scattered_direction, attenuation, 1, rng_out


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Sized to the sphere capacity so every sphere can own a dielectric material
MAX_DIELECTRIC_MATERIALS = 1024

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).
            Must be positive. Values below 1 model a less dense medium
            embedded in air (e.g. an air bubble in water).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If IOR is not positive.
    """
    if ior <= 0.0:
        raise ValueError(f"Index of refraction = {ior} must be positive.")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    return dielectric_iors[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    rng: ti.u32,
):
    """Scatter off a registered dielectric material.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, rng).
    """
    ior = get_dielectric_ior(material_idx)
    return scatter_dielectric(ior, incident_direction, normal, front_face, rng)

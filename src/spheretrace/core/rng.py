"""Per-pixel random number streams for Monte Carlo sampling.

Every pixel owns a private xorshift32 stream seeded from the global render
seed and the pixel index, so a render is reproducible for a fixed seed no
matter how Taichi schedules the parallel loop. The state is a plain ``ti.u32``
that every sampling function takes and returns; Taichi functions receive
their arguments by value, so the updated state must be carried forward by
the caller.

Example:
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     rng = seed_rng(0, ti.u32(1234))
    ...     value, rng = next_float(rng)
    ...     return value
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Upper bound on rejection sampling iterations. The acceptance rate is
# above 50% for both the unit ball and the unit disk.
MAX_REJECTION_TRIES = 64

_INV_2_POW_24 = 1.0 / 16777216.0


@ti.func
def wang_hash(x: ti.u32) -> ti.u32:
    """Scramble a 32-bit integer (Thomas Wang's integer hash)."""
    h = x
    h = (h ^ ti.u32(61)) ^ (h >> ti.u32(16))
    h = h * ti.u32(9)
    h = h ^ (h >> ti.u32(4))
    h = h * ti.u32(0x27D4EB2D)
    h = h ^ (h >> ti.u32(15))
    return h


@ti.func
def seed_rng(pixel_index: ti.i32, seed: ti.u32) -> ti.u32:
    """Derive the initial stream state for one pixel.

    Args:
        pixel_index: Linear pixel index (row * width + column).
        seed: Global render seed.

    Returns:
        A non-zero xorshift32 state.
    """
    state = wang_hash(wang_hash(seed) ^ ti.cast(pixel_index, ti.u32))
    if state == ti.u32(0):
        state = ti.u32(1)
    return state


@ti.func
def next_u32(state: ti.u32) -> ti.u32:
    """Advance a xorshift32 state by one step."""
    s = state
    s = s ^ (s << ti.u32(13))
    s = s ^ (s >> ti.u32(17))
    s = s ^ (s << ti.u32(5))
    return s


@ti.func
def next_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Returns:
        A tuple (value, state) with the advanced state.
    """
    s = next_u32(state)
    value = ti.cast(s >> ti.u32(8), ti.f32) * _INV_2_POW_24
    return value, s


# =============================================================================
# Geometric Samplers
# =============================================================================


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Uniform random point strictly inside the unit ball.

    Uses rejection sampling over the enclosing cube.

    Returns:
        A tuple (point, state).
    """
    s = state
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            x, s = next_float(s)
            y, s = next_float(s)
            z, s = next_float(s)
            candidate = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 2.0 * z - 1.0)
            if tm.dot(candidate, candidate) < 1.0:
                p = candidate
                found = True
    return p, s


@ti.func
def random_unit_vector(state: ti.u32):
    """Uniform random direction on the unit sphere surface.

    Samples z uniformly in [-1, 1] and the azimuth uniformly in [0, 2*pi),
    which is area-uniform on the sphere (Archimedes' hat-box theorem).

    Returns:
        A tuple (unit_vector, state).
    """
    a, s = next_float(state)
    b, s = next_float(s)
    z = 1.0 - 2.0 * a
    r = ti.sqrt(tm.max(0.0, 1.0 - z * z))
    phi = 2.0 * tm.pi * b
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z), s


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Uniform random point inside the unit disk in the xy-plane.

    Used for thin-lens depth of field.

    Returns:
        A tuple (point, state) where point.z == 0.
    """
    s = state
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            x, s = next_float(s)
            y, s = next_float(s)
            candidate = vec3(2.0 * x - 1.0, 2.0 * y - 1.0, 0.0)
            if candidate.x * candidate.x + candidate.y * candidate.y < 1.0:
                p = candidate
                found = True
    return p, s

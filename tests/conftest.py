"""Pytest configuration for spheretrace tests.

Provides shared fixtures for all test modules, including Taichi
initialization, which must happen once per session and before any module
that declares Taichi fields is imported.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Repeated ti.init() calls reset the runtime and invalidate fields that
    were already declared, so tests never call it themselves.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear world, materials and render target around every test."""
    # Imported here so Taichi is initialized first
    from spheretrace.core.integrator import clear_render_target
    from spheretrace.materials.dielectric import clear_dielectric_materials
    from spheretrace.materials.lambertian import clear_lambertian_materials
    from spheretrace.materials.metal import clear_metal_materials
    from spheretrace.scene.intersection import clear_scene
    from spheretrace.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        clear_render_target()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def default_camera():
    """Camera from the classic final scene: 20 degree fov, 3:2, pinhole."""
    from spheretrace.camera.thin_lens import ThinLensCamera, setup_camera

    camera = ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=3.0 / 2.0,
        aperture=0.0,
        focus_dist=10.0,
    )
    setup_camera(camera)
    return camera

"""Tests for the thin-lens camera.

Tests cover:
- Basis and viewport derived by setup_camera
- Configuration validation
- Pinhole rays through the image centre and corners
- Depth of field: lens jitter keeps the focus plane sharp
"""

import math

import numpy as np
import pytest
import taichi as ti


def _camera(**overrides):
    from spheretrace.camera.thin_lens import ThinLensCamera

    params = dict(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=2.0,
        aperture=0.0,
        focus_dist=1.0,
    )
    params.update(overrides)
    return ThinLensCamera(**params)


class TestCameraSetup:
    def test_basis_is_orthonormal(self, default_camera):
        from spheretrace.camera.thin_lens import get_camera_info

        info = get_camera_info()
        u, v, w = (np.array(info[k]) for k in ("u", "v", "w"))
        for vec in (u, v, w):
            assert np.linalg.norm(vec) == pytest.approx(1.0, abs=1e-5)
        assert np.dot(u, v) == pytest.approx(0.0, abs=1e-5)
        assert np.dot(u, w) == pytest.approx(0.0, abs=1e-5)
        assert np.dot(v, w) == pytest.approx(0.0, abs=1e-5)
        # w points from lookat back toward the eye
        expected_w = np.array([13.0, 2.0, 3.0]) / math.sqrt(13.0**2 + 2.0**2 + 3.0**2)
        assert np.allclose(w, expected_w, atol=1e-5)

    def test_viewport_size(self):
        from spheretrace.camera.thin_lens import get_camera_info, setup_camera

        setup_camera(_camera(focus_dist=2.0, aperture=0.5))
        info = get_camera_info()
        # tan(45 deg) = 1: viewport height 2 * 1 * focus_dist, width = 2 * height
        assert np.linalg.norm(info["vertical"]) == pytest.approx(4.0, abs=1e-5)
        assert np.linalg.norm(info["horizontal"]) == pytest.approx(8.0, abs=1e-5)
        assert info["lower_left"] == pytest.approx((-4.0, -2.0, -2.0), abs=1e-5)
        assert info["lens_radius"] == pytest.approx(0.25)

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"lookat": (0.0, 0.0, 0.0)}, "distinct"),
            ({"vup": (0.0, 0.0, 1.0)}, "parallel"),
            ({"vfov": 0.0}, "field of view"),
            ({"vfov": 180.0}, "field of view"),
            ({"aspect_ratio": 0.0}, "Aspect"),
            ({"aperture": -0.1}, "Aperture"),
            ({"focus_dist": 0.0}, "Focus"),
        ],
    )
    def test_degenerate_configuration_rejected(self, overrides, message):
        from spheretrace.camera.thin_lens import setup_camera

        with pytest.raises(ValueError, match=message):
            setup_camera(_camera(**overrides))


class TestRayGeneration:
    def test_pinhole_center_ray_points_at_lookat(self, default_camera):
        from spheretrace.camera.thin_lens import get_ray, vec3

        origin = ti.field(dtype=ti.math.vec3, shape=())
        direction = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = get_ray(0.5, 0.5, vec3(0.0, 0.0, 0.0))
            origin[None] = ray.origin
            direction[None] = ray.direction

        test_kernel()
        assert tuple(origin[None]) == pytest.approx((13.0, 2.0, 3.0), abs=1e-5)
        d = np.array(direction[None])
        # Not normalized: reaches the focus plane at focus_dist
        assert np.linalg.norm(d) == pytest.approx(10.0, abs=1e-4)
        expected = -np.array([13.0, 2.0, 3.0]) / math.sqrt(182.0)
        assert np.allclose(d / np.linalg.norm(d), expected, atol=1e-5)

    def test_corner_rays(self):
        from spheretrace.camera.thin_lens import get_ray, setup_camera, vec3

        setup_camera(_camera())
        lower_left = ti.field(dtype=ti.math.vec3, shape=())
        upper_right = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            lower_left[None] = get_ray(0.0, 0.0, vec3(0.0, 0.0, 0.0)).direction
            upper_right[None] = get_ray(1.0, 1.0, vec3(0.0, 0.0, 0.0)).direction

        test_kernel()
        assert tuple(lower_left[None]) == pytest.approx((-2.0, -1.0, -1.0), abs=1e-5)
        assert tuple(upper_right[None]) == pytest.approx((2.0, 1.0, -1.0), abs=1e-5)

    def test_lens_jitter_keeps_focus_plane_sharp(self):
        """All rays for one (s, t) start on the lens and meet on the focus plane."""
        from spheretrace.camera.thin_lens import sample_camera_ray, setup_camera
        from spheretrace.core.rng import seed_rng

        setup_camera(_camera(aperture=1.0, focus_dist=3.0))
        n = 256
        origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
        targets = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                o, d, _ = sample_camera_ray(0.3, 0.7, seed_rng(i, ti.u32(77)))
                origins[i] = o
                targets[i] = o + d

        test_kernel()
        o = origins.to_numpy()
        t = targets.to_numpy()
        # Lens disk of radius 0.5 in the camera's u-v plane (z = 0 here)
        assert np.all(np.linalg.norm(o[:, :2], axis=1) < 0.5 + 1e-5)
        assert np.allclose(o[:, 2], 0.0, atol=1e-6)
        assert np.std(o[:, 0]) > 0.05
        assert np.allclose(t, t[0], atol=1e-4)

    def test_zero_aperture_is_pinhole(self, default_camera):
        from spheretrace.camera.thin_lens import sample_camera_ray
        from spheretrace.core.rng import seed_rng

        n = 32
        origins = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                o, _, _ = sample_camera_ray(0.1, 0.9, seed_rng(i, ti.u32(1)))
                origins[i] = o

        test_kernel()
        assert np.allclose(origins.to_numpy(), np.array([13.0, 2.0, 3.0]), atol=1e-5)

"""Tests for the Lambertian (diffuse) material."""

import numpy as np
import pytest
import taichi as ti


class TestLambertianScatter:
    def test_attenuation_always_equals_albedo(self):
        from spheretrace.core.rng import seed_rng
        from spheretrace.materials.lambertian import scatter_lambertian, vec3

        n = 1000
        attenuations = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = seed_rng(i, ti.u32(1))
                _, attenuation, _ = scatter_lambertian(
                    vec3(0.8, 0.3, 0.1), vec3(0.0, 1.0, 0.0), rng
                )
                attenuations[i] = attenuation

        test_kernel()
        a = attenuations.to_numpy()
        assert np.all(a == np.array([0.8, 0.3, 0.1], dtype=np.float32))

    def test_scattered_directions_leave_the_surface(self):
        """normal + unit vector never points below the tangent plane."""
        from spheretrace.core.rng import seed_rng
        from spheretrace.materials.lambertian import scatter_lambertian, vec3

        n = 2000
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                rng = seed_rng(i, ti.u32(2))
                d, _, _ = scatter_lambertian(vec3(0.5, 0.5, 0.5), vec3(0.0, 1.0, 0.0), rng)
                directions[i] = d

        test_kernel()
        d = directions.to_numpy()
        assert np.all(d[:, 1] >= -1e-6)
        assert np.all(np.linalg.norm(d, axis=1) > 0.0)
        # Cosine-weighted about the normal: mean direction points along it
        mean = d.mean(axis=0)
        assert mean[1] > 0.9
        assert abs(mean[0]) < 0.1
        assert abs(mean[2]) < 0.1

    def test_scatter_advances_rng(self):
        from spheretrace.core.rng import seed_rng
        from spheretrace.materials.lambertian import scatter_lambertian, vec3

        states = ti.field(dtype=ti.u32, shape=2)

        @ti.kernel
        def test_kernel():
            rng = seed_rng(0, ti.u32(9))
            _, _, rng_out = scatter_lambertian(vec3(0.5, 0.5, 0.5), vec3(0.0, 1.0, 0.0), rng)
            states[0] = rng
            states[1] = rng_out

        test_kernel()
        assert states[0] != states[1]


class TestLambertianRegistry:
    def test_add_and_lookup(self):
        from spheretrace.materials.lambertian import (
            add_lambertian_material,
            get_lambertian_material_count,
            lambertian_albedos,
        )

        assert add_lambertian_material((0.1, 0.2, 0.3)) == 0
        assert add_lambertian_material((0.4, 0.5, 0.6)) == 1
        assert get_lambertian_material_count() == 2
        assert tuple(lambertian_albedos[1]) == pytest.approx((0.4, 0.5, 0.6))

    @pytest.mark.parametrize("albedo", [(1.2, 0.5, 0.5), (0.5, -0.1, 0.5)])
    def test_out_of_range_albedo_rejected(self, albedo):
        from spheretrace.materials.lambertian import add_lambertian_material

        with pytest.raises(ValueError, match="outside"):
            add_lambertian_material(albedo)

    def test_scatter_by_id_uses_registered_albedo(self):
        from spheretrace.core.rng import seed_rng
        from spheretrace.materials.lambertian import (
            add_lambertian_material,
            scatter_lambertian_by_id,
            vec3,
        )

        add_lambertian_material((0.9, 0.9, 0.9))
        idx = add_lambertian_material((0.2, 0.4, 0.6))
        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            _, attenuation, _ = scatter_lambertian_by_id(
                idx, vec3(0.0, 0.0, 1.0), seed_rng(0, ti.u32(0))
            )
            result[None] = attenuation

        test_kernel()
        assert tuple(result[None]) == pytest.approx((0.2, 0.4, 0.6))

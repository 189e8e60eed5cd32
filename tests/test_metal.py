"""Unit tests for the Metal material module.

Tests cover:
- Mirror reflection with zero fuzz
- Fuzzy reflection staying within the fuzz sphere
- Absorption when the perturbed ray points into the surface
- Fuzz clamping and albedo validation in the registry
"""

import math

import pytest
import taichi as ti


def _scatter(incident, normal=(0.0, 1.0, 0.0), fuzz=0.0, albedo=(0.9, 0.8, 0.7)):
    from pathtracer.materials.metal import scatter_metal

    result_dir = ti.Vector.field(3, dtype=ti.f32, shape=())
    result_att = ti.Vector.field(3, dtype=ti.f32, shape=())
    result_scatter = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(ix: ti.f32, iy: ti.f32, iz: ti.f32, f: ti.f32):
        direction, attenuation, did_scatter = scatter_metal(
            ti.math.vec3(albedo[0], albedo[1], albedo[2]),
            f,
            ti.math.vec3(ix, iy, iz),
            ti.math.vec3(normal[0], normal[1], normal[2]),
        )
        result_dir[None] = direction
        result_att[None] = attenuation
        result_scatter[None] = did_scatter

    test_kernel(*incident, fuzz)
    return result_dir[None], result_att[None], result_scatter[None]


class TestMirrorReflection:
    """Tests for reflection with zero fuzz."""

    def test_normal_incidence(self):
        d, _, scattered = _scatter((0.0, -1.0, 0.0))
        assert scattered == 1
        assert abs(d[0]) < 1e-5
        assert abs(d[1] - 1.0) < 1e-5
        assert abs(d[2]) < 1e-5

    def test_45_degrees(self):
        d, _, scattered = _scatter((1.0, -1.0, 0.0))
        inv_sqrt2 = 1.0 / math.sqrt(2.0)
        assert scattered == 1
        assert abs(d[0] - inv_sqrt2) < 1e-5
        assert abs(d[1] - inv_sqrt2) < 1e-5

    def test_incident_length_does_not_matter(self):
        """The incident direction is normalized before reflecting."""
        d, _, _ = _scatter((0.0, -7.0, 0.0))
        assert abs(d[1] - 1.0) < 1e-5

    def test_attenuation_is_albedo(self):
        _, att, _ = _scatter((0.0, -1.0, 0.0))
        assert abs(att[0] - 0.9) < 1e-6
        assert abs(att[1] - 0.8) < 1e-6
        assert abs(att[2] - 0.7) < 1e-6

    def test_below_surface_absorbed(self):
        """A ray leaving the surface from behind reflects into it and is absorbed."""
        _, _, scattered = _scatter((0.0, 1.0, 0.0))
        assert scattered == 0


class TestFuzzyReflection:
    def test_fuzz_stays_near_mirror_direction(self):
        from pathtracer.materials.metal import scatter_metal

        n = 500
        dirs = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                d, _, _ = scatter_metal(
                    ti.math.vec3(1.0, 1.0, 1.0),
                    0.3,
                    ti.math.vec3(0.0, -1.0, 0.0),
                    ti.math.vec3(0.0, 1.0, 0.0),
                )
                dirs[i] = d

        test_kernel()
        d = dirs.to_numpy()
        offsets = d - [0.0, 1.0, 0.0]
        assert ((offsets**2).sum(axis=1) < 0.3**2 + 1e-5).all()
        assert offsets.std() > 0.01

    def test_grazing_fuzz_sometimes_absorbed(self):
        from pathtracer.materials.metal import scatter_metal

        n = 1000
        flags = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                _, _, s = scatter_metal(
                    ti.math.vec3(1.0, 1.0, 1.0),
                    1.0,
                    ti.math.vec3(1.0, -0.05, 0.0),
                    ti.math.vec3(0.0, 1.0, 0.0),
                )
                flags[i] = s

        test_kernel()
        rate = flags.to_numpy().mean()
        assert 0.0 < rate < 1.0


class TestMetalRegistry:
    def test_add_returns_sequential_indices(self):
        from pathtracer.materials.metal import add_metal_material, get_metal_material_count

        assert add_metal_material((0.5, 0.5, 0.5)) == 0
        assert add_metal_material((0.5, 0.5, 0.5), 0.2) == 1
        assert get_metal_material_count() == 2

    def test_fuzz_clamped(self):
        from pathtracer.materials.metal import add_metal_material, metal_fuzz

        high = add_metal_material((0.5, 0.5, 0.5), 3.0)
        low = add_metal_material((0.5, 0.5, 0.5), -1.0)
        assert metal_fuzz[high] == 1.0
        assert metal_fuzz[low] == 0.0

    def test_albedo_out_of_range(self):
        from pathtracer.materials.metal import add_metal_material

        with pytest.raises(ValueError):
            add_metal_material((1.2, 0.5, 0.5))

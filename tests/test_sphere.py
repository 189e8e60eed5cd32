"""Unit tests for sphere intersection and sphere light sampling.

Tests cover:
- Ray hitting sphere from outside and from inside
- Ray missing sphere, ray tangent to sphere
- Unnormalized ray directions
- Bounding box and cone sampling density
"""

import math

import pytest
import taichi as ti


def _hit(origin, direction, center=(0.0, 0.0, 0.0), radius=1.0, t_min=0.001, t_max=1000.0):
    """Run hit_sphere in a kernel and return (hit, t, point, normal, u, v)."""
    from pathtracer.geometry.sphere import hit_sphere, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.field(dtype=ti.math.vec3, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    uv = ti.field(dtype=ti.math.vec2, shape=())

    @ti.kernel
    def test_kernel(ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32):
        rec = hit_sphere(
            vec3(center[0], center[1], center[2]),
            radius,
            vec3(ox, oy, oz),
            vec3(dx, dy, dz),
            t_min,
            t_max,
        )
        hit[None] = rec.hit
        t_val[None] = rec.t
        point[None] = rec.point
        normal[None] = rec.normal
        uv[None] = ti.math.vec2(rec.u, rec.v)

    test_kernel(*origin, *direction)
    return hit[None], t_val[None], point[None], normal[None], uv[None]


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_direct_hit(self):
        """Test ray hitting sphere head-on from outside."""
        hit, t, point, normal, _ = _hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert abs(t - 4.0) < 1e-5
        assert abs(point[2] - 1.0) < 1e-5
        assert abs(normal[2] - 1.0) < 1e-5

    def test_miss(self):
        hit, _, _, _, _ = _hit((0.0, 2.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_tangent_ray_misses(self):
        """A zero discriminant is not a hit."""
        hit, _, _, _, _ = _hit((0.0, 1.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_from_inside_uses_far_root(self):
        """Inside the sphere the near root is behind, so the far root is used."""
        hit, t, point, normal, _ = _hit((0.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        assert hit == 1
        assert abs(t - 1.0) < 1e-5
        # Outward normal even when hit from inside
        assert abs(normal[0] - 1.0) < 1e-5

    def test_behind_origin_is_miss(self):
        hit, _, _, _, _ = _hit((0.0, 0.0, 5.0), (0.0, 0.0, 1.0))
        assert hit == 0

    def test_unnormalized_direction(self):
        """t is measured in units of the direction given."""
        hit, t, point, _, _ = _hit((0.0, 0.0, 5.0), (0.0, 0.0, -2.0))
        assert hit == 1
        assert abs(t - 2.0) < 1e-5
        assert abs(point[2] - 1.0) < 1e-5

    def test_normal_is_unit_for_large_radius(self):
        _, _, _, normal, _ = _hit((0.0, 0.0, 500.0), (0.0, 0.3, -1.0), radius=100.0)
        assert abs(math.hypot(normal[0], normal[1], normal[2]) - 1.0) < 1e-4

    def test_interval_is_open(self):
        """A hit exactly at t_max is rejected."""
        hit, _, _, _, _ = _hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), t_max=4.0)
        assert hit == 0

    def test_uv_fixed(self):
        _, _, _, _, uv = _hit((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert uv[0] == pytest.approx(1.0)
        assert uv[1] == pytest.approx(1.0)


class TestSphereBounds:
    def test_bounding_box(self):
        from pathtracer.geometry.sphere import sphere_bounding_box

        box = sphere_bounding_box((1.0, 2.0, 3.0), 0.5)
        assert box.min == (0.5, 1.5, 2.5)
        assert box.max == (1.5, 2.5, 3.5)


class TestSphereSampling:
    """Tests for cone sampling toward a sphere."""

    def test_pdf_value_matches_solid_angle(self):
        from pathtracer.geometry.sphere import sphere_pdf_value, vec3

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            center = vec3(0.0, 0.0, -2.0)
            result[0] = sphere_pdf_value(center, 1.0, vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
            result[1] = sphere_pdf_value(center, 1.0, vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 1.0))

        test_kernel()
        cos_max = math.sqrt(1.0 - 1.0 / 4.0)
        expected = 1.0 / (2.0 * math.pi * (1.0 - cos_max))
        assert abs(result[0] - expected) / expected < 1e-4
        assert result[1] == 0.0

    def test_random_directions_hit_sphere(self):
        from pathtracer.core.ray import INF
        from pathtracer.geometry.sphere import hit_sphere, sphere_random, vec3

        n = 500
        hits = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                origin = vec3(3.0, 1.0, 0.0)
                center = vec3(0.0, 0.0, -2.0)
                d = sphere_random(center, 1.0, origin)
                hits[i] = hit_sphere(center, 1.0, origin, d, 0.001, INF).hit

        test_kernel()
        # Directions on the cone boundary may graze; nearly all must hit
        assert hits.to_numpy().mean() > 0.99

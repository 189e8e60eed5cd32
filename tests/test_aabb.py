"""Unit tests for axis-aligned bounding boxes."""

import math

import pytest
import taichi as ti


class TestAabbHost:
    """Tests for the host-side Aabb value type."""

    def test_surround(self):
        from pathtracer.geometry.aabb import Aabb

        a = Aabb((0, 0, 0), (1, 1, 1))
        b = Aabb((-1, 0.5, 0.2), (0.5, 2, 0.8))
        box = a.surround(b)
        assert box.min == (-1.0, 0.0, 0.0)
        assert box.max == (1.0, 2.0, 1.0)

    def test_surround_contains_both(self):
        from pathtracer.geometry.aabb import Aabb

        a = Aabb((0, 0, 0), (1, 1, 1))
        b = Aabb((3, -2, 5), (4, -1, 6))
        box = a.surround(b)
        assert box.contains(a)
        assert box.contains(b)
        assert not a.contains(box)

    def test_translated(self):
        from pathtracer.geometry.aabb import Aabb

        box = Aabb((0, 0, 0), (1, 2, 3)).translated((10, 20, 30))
        assert box.min == (10.0, 20.0, 30.0)
        assert box.max == (11.0, 22.0, 33.0)

    def test_corners(self):
        from pathtracer.geometry.aabb import Aabb

        corners = Aabb((0, 0, 0), (1, 2, 3)).corners()
        assert len(corners) == 8
        assert len(set(corners)) == 8
        assert (0.0, 0.0, 0.0) in corners
        assert (1.0, 2.0, 3.0) in corners

    def test_wrong_dimension_rejected(self):
        from pathtracer.geometry.aabb import Aabb

        with pytest.raises(ValueError):
            Aabb((0, 0), (1, 1))


class TestHitAabb:
    """Tests for the kernel-side slab test."""

    def _run(self, origin, direction, t_min=0.001, t_max=math.inf):
        from pathtracer.geometry.aabb import hit_aabb

        result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(ox: ti.f32, oy: ti.f32, oz: ti.f32, dx: ti.f32, dy: ti.f32, dz: ti.f32):
            result[None] = hit_aabb(
                ti.math.vec3(0.0, 0.0, 0.0),
                ti.math.vec3(1.0, 1.0, 1.0),
                ti.math.vec3(ox, oy, oz),
                ti.math.vec3(dx, dy, dz),
                t_min,
                t_max,
            )

        test_kernel(*origin, *direction)
        return result[None]

    def test_ray_through_box(self):
        assert self._run((0.5, 0.5, -1.0), (0.0, 0.0, 1.0)) == 1

    def test_ray_missing_box(self):
        assert self._run((2.0, 0.5, -1.0), (0.0, 0.0, 1.0)) == 0

    def test_ray_pointing_away(self):
        assert self._run((0.5, 0.5, -1.0), (0.0, 0.0, -1.0)) == 0

    def test_negative_direction_swaps_slab(self):
        assert self._run((0.5, 0.5, 2.0), (0.0, 0.0, -1.0)) == 1

    def test_axis_parallel_ray_inside_slab(self):
        """Zero direction components divide to infinity and still work."""
        assert self._run((0.5, 0.5, -1.0), (0.0, 0.0, 3.0)) == 1

    def test_axis_parallel_ray_outside_slab(self):
        assert self._run((0.5, 1.5, -1.0), (0.0, 0.0, 1.0)) == 0

    def test_interval_ends_before_box(self):
        assert self._run((0.5, 0.5, -1.0), (0.0, 0.0, 1.0), t_max=0.5) == 0

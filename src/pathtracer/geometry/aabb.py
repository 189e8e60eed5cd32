"""Axis-aligned bounding boxes.

Boxes live in two places. On the host, ``Aabb`` is a small immutable value
used while building the figure arena and the BVH. Inside kernels the cached
box of every node is stored as a pair of vec3 fields and tested with
``hit_aabb``.

Example:
    >>> a = Aabb((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))
    >>> b = Aabb((2.0, -1.0, 0.5), (3.0, 0.5, 0.75))
    >>> a.surround(b)
    Aabb(min=(0.0, -1.0, 0.0), max=(3.0, 1.0, 1.0))
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@dataclass(frozen=True)
class Aabb:
    """Host-side axis-aligned box given by its minimum and maximum corners."""

    min: tuple
    max: tuple

    def __post_init__(self):
        object.__setattr__(self, "min", tuple(float(x) for x in self.min))
        object.__setattr__(self, "max", tuple(float(x) for x in self.max))
        if len(self.min) != 3 or len(self.max) != 3:
            raise ValueError("Aabb corners must have three components")

    def surround(self, other: "Aabb") -> "Aabb":
        """Return the smallest box containing both boxes."""
        return Aabb(
            tuple(min(a, b) for a, b in zip(self.min, other.min)),
            tuple(max(a, b) for a, b in zip(self.max, other.max)),
        )

    def contains(self, other: "Aabb") -> bool:
        """Return True if ``other`` lies entirely inside this box."""
        return all(a <= b for a, b in zip(self.min, other.min)) and all(
            a >= b for a, b in zip(self.max, other.max)
        )

    def translated(self, offset) -> "Aabb":
        """Return the box moved by ``offset``."""
        return Aabb(
            tuple(a + o for a, o in zip(self.min, offset)),
            tuple(a + o for a, o in zip(self.max, offset)),
        )

    def corners(self):
        """Return the eight corner points of the box."""
        return [
            (
                self.max[0] if i & 1 else self.min[0],
                self.max[1] if i & 2 else self.min[1],
                self.max[2] if i & 4 else self.min[2],
            )
            for i in range(8)
        ]


@ti.func
def hit_aabb(
    box_min: vec3,
    box_max: vec3,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Slab test of a ray against an axis-aligned box.

    A zero direction component divides to a signed infinity, which the
    comparisons handle without special cases.

    Args:
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Lower end of the parametric interval.
        t_max: Upper end of the parametric interval.

    Returns:
        1 if the ray overlaps the box within the interval, 0 otherwise.
    """
    lo = t_min
    hi = t_max
    result = 1
    for axis in ti.static(range(3)):
        if result == 1:
            inv_d = 1.0 / ray_direction[axis]
            t0 = (box_min[axis] - ray_origin[axis]) * inv_d
            t1 = (box_max[axis] - ray_origin[axis]) * inv_d
            if inv_d < 0.0:
                temp = t0
                t0 = t1
                t1 = temp
            if t0 > lo:
                lo = t0
            if t1 < hi:
                hi = t1
            if hi <= lo:
                result = 0
    return result


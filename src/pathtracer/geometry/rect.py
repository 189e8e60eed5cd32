"""Axis-aligned rectangle primitives.

A rectangle lies in a plane of constant coordinate ``k`` along one axis (the
normal axis) and spans an interval along each of the two remaining (free)
axes. Three orientations exist:

- XY rectangle: normal along +z, free axes x and y
- YZ rectangle: normal along +x, free axes y and z
- XZ rectangle: normal along +y, free axes x and z

In the figure arena a rectangle is stored as its two corners ``lo`` and
``hi``; both carry ``k`` along the normal axis.

Example:
    >>> from pathtracer.geometry.rect import rect_corners, XZ
    >>> lo, hi = rect_corners(XZ, 213.0, 343.0, 227.0, 332.0, 554.0)
    >>> lo
    (213.0, 554.0, 227.0)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import INF, length_squared
from pathtracer.geometry.aabb import Aabb
from pathtracer.geometry.sphere import LIGHT_SAMPLE_T_MIN, HitRecord

vec3 = tm.vec3

# Normal axis of each orientation
YZ = 0
XZ = 1
XY = 2

# Free (a, b) axes for each normal axis
_FREE_AXES = {XY: (0, 1), YZ: (1, 2), XZ: (0, 2)}

# Thickness added along the normal axis so boxes never have zero volume
BBOX_PADDING = 1e-4


def rect_corners(axis: int, a0: float, a1: float, b0: float, b1: float, k: float):
    """Build the (lo, hi) corners of a rectangle from its plane parameters.

    Args:
        axis: Normal axis (XY, YZ or XZ).
        a0, a1: Extent along the first free axis.
        b0, b1: Extent along the second free axis.
        k: Plane coordinate along the normal axis.

    Returns:
        Tuple of two 3-tuples.

    Raises:
        ValueError: If the axis is unknown or an extent is empty.
    """
    if axis not in _FREE_AXES:
        raise ValueError(f"Unknown rectangle axis: {axis}")
    if not (a0 < a1 and b0 < b1):
        raise ValueError(
            f"Rectangle extents must be increasing, got [{a0}, {a1}] x [{b0}, {b1}]"
        )
    a_axis, b_axis = _FREE_AXES[axis]
    lo = [0.0, 0.0, 0.0]
    hi = [0.0, 0.0, 0.0]
    lo[a_axis], hi[a_axis] = float(a0), float(a1)
    lo[b_axis], hi[b_axis] = float(b0), float(b1)
    lo[axis] = hi[axis] = float(k)
    return tuple(lo), tuple(hi)


def rect_bounding_box(axis: int, lo, hi) -> Aabb:
    """Return the rectangle's box, padded along the normal axis."""
    pad = [0.0, 0.0, 0.0]
    pad[axis] = BBOX_PADDING
    return Aabb(
        tuple(c - p for c, p in zip(lo, pad)),
        tuple(c + p for c, p in zip(hi, pad)),
    )


@ti.func
def hit_rect(
    axis: ti.template(),
    lo: vec3,
    hi: vec3,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersect a ray with an axis-aligned rectangle.

    The plane equation is solved along the normal axis. A ray parallel to
    the plane divides to an infinity or NaN, both of which fail the range
    test.

    Args:
        axis: Normal axis, a compile-time constant (XY, YZ or XZ).
        lo: Minimum corner.
        hi: Maximum corner.
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Lower bound for a valid hit.
        t_max: Upper bound for a valid hit.

    Returns:
        A HitRecord with normal along +axis and (u, v) in [0, 1].
    """
    a_axis = ti.static(_FREE_AXES[axis][0])
    b_axis = ti.static(_FREE_AXES[axis][1])

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    hit_u = 0.0
    hit_v = 0.0

    t = (lo[axis] - ray_origin[axis]) / ray_direction[axis]
    if t >= t_min and t <= t_max:
        a = ray_origin[a_axis] + t * ray_direction[a_axis]
        b = ray_origin[b_axis] + t * ray_direction[b_axis]
        if a >= lo[a_axis] and a <= hi[a_axis] and b >= lo[b_axis] and b <= hi[b_axis]:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            hit_normal[axis] = 1.0
            hit_u = (a - lo[a_axis]) / (hi[a_axis] - lo[a_axis])
            hit_v = (b - lo[b_axis]) / (hi[b_axis] - lo[b_axis])

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        u=hit_u,
        v=hit_v,
    )


@ti.func
def rect_area(axis: ti.template(), lo: vec3, hi: vec3) -> ti.f32:
    a_axis = ti.static(_FREE_AXES[axis][0])
    b_axis = ti.static(_FREE_AXES[axis][1])
    return (hi[a_axis] - lo[a_axis]) * (hi[b_axis] - lo[b_axis])


@ti.func
def rect_pdf_value(
    axis: ti.template(), lo: vec3, hi: vec3, origin: vec3, direction: vec3
) -> ti.f32:
    """Solid-angle density of sampling ``direction`` toward the rectangle.

    Uniform area sampling converts to ``distance^2 / (cos * area)``.
    """
    value = 0.0
    rec = hit_rect(axis, lo, hi, origin, direction, LIGHT_SAMPLE_T_MIN, INF)
    if rec.hit == 1:
        len2 = length_squared(direction)
        dist2 = rec.t * rec.t * len2
        cosine = ti.abs(direction[axis]) / ti.sqrt(len2)
        value = dist2 / (cosine * rect_area(axis, lo, hi))
    return value


@ti.func
def rect_random(axis: ti.template(), lo: vec3, hi: vec3, origin: vec3) -> vec3:
    """Vector from ``origin`` to a uniformly chosen point on the rectangle."""
    a_axis = ti.static(_FREE_AXES[axis][0])
    b_axis = ti.static(_FREE_AXES[axis][1])
    point = lo
    point[a_axis] = lo[a_axis] + ti.random(ti.f32) * (hi[a_axis] - lo[a_axis])
    point[b_axis] = lo[b_axis] + ti.random(ti.f32) * (hi[b_axis] - lo[b_axis])
    return point - origin

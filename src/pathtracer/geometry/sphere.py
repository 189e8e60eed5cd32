"""Sphere primitive with robust ray-sphere intersection.

This module provides the HitRecord shared by every primitive, the
ray-sphere intersection routine and the light-sampling helpers used when a
sphere is the importance-sampled light shape.

The quadratic is solved with the reformulation from Ray Tracing Gems, which
avoids catastrophic cancellation when b^2 is nearly equal to 4ac.

Sphere surface coordinates are not derived from the hit point: ``u`` and
``v`` are always reported as 1.0.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from pathtracer.geometry.sphere import hit_sphere
    >>> # rec = hit_sphere(center, radius, origin, direction, 0.001, INF)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import (
    INF,
    build_onb_from_normal,
    length_squared,
    local_to_world,
    random_to_sphere,
)
from pathtracer.geometry.aabb import Aabb

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Ray parameter lower bound used when probing a light shape
LIGHT_SAMPLE_T_MIN = 0.001


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the surface.
        normal: The surface normal at the intersection point. Primitives
            report their geometric normal without orienting it toward the
            ray; FlipNormals is how inward faces are expressed.
        u: First surface coordinate.
        v: Second surface coordinate.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    u: ti.f32
    v: ti.f32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent ray, fall back to the textbook formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    center: vec3,
    radius: ti.f32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    Solves ``|origin + t * direction - center|^2 = radius^2`` written as
    ``a*t^2 + 2*h*t + c = 0`` with:
        a = dot(direction, direction)
        h = dot(direction, origin - center)
        c = dot(origin - center, origin - center) - radius^2

    A ray grazing the sphere (zero discriminant) is a miss. The near root is
    tried first, then the far root, each against the open interval
    ``(t_min, t_max)``.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere.
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        t_min: Exclusive lower bound for a valid hit.
        t_max: Exclusive upper bound for a valid hit.

    Returns:
        A HitRecord whose normal is ``(point - center) / radius``.
    """
    oc = ray_origin - center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - radius * radius

    discriminant = h * h - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    if discriminant > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)

        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            hit_normal = (hit_point - center) / radius

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        u=1.0,
        v=1.0,
    )


@ti.func
def sphere_pdf_value(
    center: vec3, radius: ti.f32, origin: vec3, direction: vec3
) -> ti.f32:
    """Solid-angle density of sampling ``direction`` toward the sphere.

    Directions are drawn uniformly from the cone the sphere subtends, so the
    density is ``1 / (2*pi*(1 - cos_theta_max))`` for directions that hit it
    and zero otherwise.
    """
    value = 0.0
    rec = hit_sphere(center, radius, origin, direction, LIGHT_SAMPLE_T_MIN, INF)
    if rec.hit == 1:
        dist2 = length_squared(center - origin)
        cos_theta_max = ti.sqrt(ti.max(0.0, 1.0 - radius * radius / dist2))
        solid_angle = 2.0 * tm.pi * (1.0 - cos_theta_max)
        value = 1.0 / solid_angle
    return value


@ti.func
def sphere_random(center: vec3, radius: ti.f32, origin: vec3) -> vec3:
    """Draw a direction from ``origin`` toward a point on the sphere."""
    direction = center - origin
    dist2 = length_squared(direction)
    u, v, w = build_onb_from_normal(direction)
    return local_to_world(random_to_sphere(radius, dist2), u, v, w)


def sphere_bounding_box(center, radius: float) -> Aabb:
    """Return the box enclosing a sphere."""
    r = abs(float(radius))
    return Aabb(
        tuple(c - r for c in center),
        tuple(c + r for c in center),
    )

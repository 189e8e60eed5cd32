"""Ray data structure and vector utilities for the path tracer.

This module provides the Ray dataclass together with the small set of vector
helpers and Monte Carlo sampling routines the rest of the renderer is built
on. Everything here is a Taichi function so it can be inlined into kernels.

Ray directions are not required to be unit length. Code that converts between
the ray parameter ``t`` and world distances scales by ``length(direction)``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import math

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# IEEE infinity, used for unbounded parametric ranges
INF = math.inf


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Need not be unit
            length.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point ``origin + t * direction``."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal: ``v - 2(v.n)n``.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32):
    """Refract an incident vector through a surface using Snell's law.

    Args:
        incident: The incoming direction vector (need not be normalized).
        normal: The surface normal on the incident side (normalized).
        eta: The ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        A tuple of (refracted, ok) where ok is 0 when total internal
        reflection occurs. The refracted direction is unit length.
    """
    unit = tm.normalize(incident)
    cos_i = -tm.dot(unit, normal)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    ok = 0
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * unit + (eta * cos_i - cos_t) * normal
        ok = 1
    return result, ok


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Refractive index used for the normal-incidence reflectance.

    Returns:
        The approximate Fresnel reflectance coefficient.
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def rotate_y_forward(v: vec3, cos_theta: ti.f32, sin_theta: ti.f32) -> vec3:
    """Rotate a vector about the Y axis from object space into world space."""
    return vec3(
        cos_theta * v.x + sin_theta * v.z,
        v.y,
        -sin_theta * v.x + cos_theta * v.z,
    )


@ti.func
def rotate_y_inverse(v: vec3, cos_theta: ti.f32, sin_theta: ti.f32) -> vec3:
    """Rotate a vector about the Y axis from world space into object space."""
    return vec3(
        cos_theta * v.x - sin_theta * v.z,
        v.y,
        sin_theta * v.x + cos_theta * v.z,
    )


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_in_unit_sphere() -> vec3:
    """Generate a random point inside the unit sphere by rejection sampling.

    Returns:
        A random point with length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(100):  # Max iterations to avoid infinite loops
        if not found:
            p = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
            )
            if length_squared(p) < 1.0:
                found = True
    return p


@ti.func
def random_in_unit_disk() -> vec3:
    """Generate a random point (x, y, 0) inside the unit disk.

    Used for the thin-lens camera's aperture sampling.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(100):  # Max iterations to avoid infinite loops
        if not found:
            p = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                0.0,
            )
            if p.x * p.x + p.y * p.y < 1.0:
                found = True
    return p


@ti.func
def random_cosine_direction() -> vec3:
    """Generate a cosine-weighted direction in the local z-up frame.

    The distribution has density cos(theta) / pi.
    """
    r1 = ti.random(ti.f32)
    r2 = ti.random(ti.f32)
    phi = 2.0 * tm.pi * r1
    sqrt_r2 = ti.sqrt(r2)
    x = ti.cos(phi) * sqrt_r2
    y = ti.sin(phi) * sqrt_r2
    z = ti.sqrt(1.0 - r2)
    return vec3(x, y, z)


@ti.func
def random_to_sphere(radius: ti.f32, distance_squared: ti.f32) -> vec3:
    """Sample a direction uniformly inside the cone subtended by a sphere.

    Args:
        radius: The sphere radius.
        distance_squared: Squared distance from the sampling origin to the
            sphere center.

    Returns:
        A unit direction in the local frame whose z axis points at the center.
    """
    r1 = ti.random(ti.f32)
    r2 = ti.random(ti.f32)
    cos_theta_max = ti.sqrt(ti.max(0.0, 1.0 - radius * radius / distance_squared))
    z = 1.0 + r2 * (cos_theta_max - 1.0)
    phi = 2.0 * tm.pi * r1
    sin_theta = ti.sqrt(ti.max(0.0, 1.0 - z * z))
    return vec3(ti.cos(phi) * sin_theta, ti.sin(phi) * sin_theta, z)


@ti.func
def build_onb_from_normal(normal: vec3):
    """Build an orthonormal basis whose w axis is the given direction.

    Args:
        normal: The direction used as the local z axis (need not be unit).

    Returns:
        A tuple (u, v, w) of mutually orthogonal unit vectors.
    """
    w = tm.normalize(normal)
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(w.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    v = tm.normalize(tm.cross(w, a))
    u = tm.cross(w, v)
    return u, v, w


@ti.func
def local_to_world(local_dir: vec3, u: vec3, v: vec3, w: vec3) -> vec3:
    """Transform a direction from an ONB's local frame to world space."""
    return local_dir.x * u + local_dir.y * v + local_dir.z * w

"""Core rendering module.

Components:
    ray: Ray data structure, vector helpers and random direction sampling
    pdf: Cosine, hit and mixture PDFs for importance sampling
    integrator: Path tracing estimator and render target
    progressive: Batched sample accumulation with progress reporting

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    INF,
    Ray,
    build_onb_from_normal,
    length_squared,
    local_to_world,
    make_ray,
    random_cosine_direction,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_to_sphere,
    ray_at,
    reflect,
    refract,
    rotate_y_forward,
    rotate_y_inverse,
    schlick_fresnel,
    vec3,
)

# Note: pdf, integrator and progressive are NOT imported here to avoid circular
# imports (they depend on geometry and materials, which depend on ray).
# Import them directly, e.g. from pathtracer.core.progressive import ProgressiveRenderer

__all__ = [
    "INF",
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length_squared",
    "reflect",
    "refract",
    "schlick_fresnel",
    "rotate_y_forward",
    "rotate_y_inverse",
    "random_in_unit_sphere",
    "random_in_unit_disk",
    "random_cosine_direction",
    "random_to_sphere",
    "build_onb_from_normal",
    "local_to_world",
]

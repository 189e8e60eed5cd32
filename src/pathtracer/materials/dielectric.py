"""Dielectric (glass/water) material implementation.

This module implements the dielectric BSDF, which models transparent materials
like glass and water with refraction and Fresnel reflectance.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when sin(theta_t) > 1

The material randomly chooses between reflection and refraction based on
the Fresnel reflectance probability, which increases at grazing angles.

Surface normals point out of the material, so whether the ray is entering or
leaving is decided from the sign of ``dot(direction, normal)``.

Example:
    >>> from pathtracer.materials.dielectric import add_dielectric_material
    >>> glass = add_dielectric_material(1.5)
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import (
    reflect,
    refract,
    schlick_fresnel,
)

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def _refraction_setup(ior: ti.f32, incident_direction: vec3, normal: vec3):
    """Orient the normal against the ray and pick the index ratio.

    Returns:
        A tuple of (facing_normal, refraction_ratio, cos_theta).
    """
    unit = tm.normalize(incident_direction)
    facing_normal = normal
    refraction_ratio = 1.0 / ior
    if tm.dot(unit, normal) > 0.0:
        # Leaving the material
        facing_normal = -normal
        refraction_ratio = ior
    cos_theta = tm.min(-tm.dot(unit, facing_normal), 1.0)
    return facing_normal, refraction_ratio, cos_theta


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
):
    """Compute scattered ray direction for dielectric material.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (need not be normalized).
        normal: The outward surface normal (unit length).

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter) where:
        - scattered_direction: The reflected or refracted direction.
        - attenuation: White; clear dielectrics absorb nothing.
        - did_scatter: Always 1 for dielectrics.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    facing_normal, refraction_ratio, cos_theta = _refraction_setup(
        ior, incident_direction, normal
    )

    refracted, can_refract = refract(incident_direction, facing_normal, refraction_ratio)
    reflectance = schlick_fresnel(cos_theta, refraction_ratio)

    # Reflect on total internal reflection or with the Fresnel probability
    scattered_direction = refracted
    if can_refract == 0 or ti.random(ti.f32) < reflectance:
        scattered_direction = reflect(tm.normalize(incident_direction), facing_normal)

    did_scatter = 1
    return scattered_direction, attenuation, did_scatter


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).
            Must be >= 1.0. Common values:
            - Air: 1.0
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If IOR is less than 1.0.
    """
    if ior < 1.0:
        raise ValueError(
            f"Index of refraction = {ior} is less than 1.0. "
            "IOR must be >= 1.0 for physically meaningful materials."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Get the IOR for a dielectric material by index."""
    return dielectric_iors[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
):
    """Scatter off a dielectric material looked up by registry index.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter).
    """
    return scatter_dielectric(get_dielectric_ior(material_idx), incident_direction, normal)

"""Lambertian (ideal diffuse) material implementation.

A Lambertian surface scatters light in all directions above the surface with
density proportional to the cosine of the angle from the normal. The
material does not pick the outgoing direction itself: it reports its
attenuation and the normal about which a cosine PDF should be built, and the
integrator samples a mixture of that PDF and the light PDF.

The scattering density is:
    scattering_pdf(wo) = max(0, cos(theta)) / pi

where theta is the angle between the normal and the outgoing direction. It
is the same density a CosinePdf about the normal assigns, so the two cancel
when only the material PDF is sampled.

Example:
    >>> from pathtracer.materials.texture import add_solid_texture
    >>> from pathtracer.materials.lambertian import add_lambertian_material
    >>> white = add_lambertian_material(add_solid_texture((0.73, 0.73, 0.73)))
"""

import taichi as ti
import taichi.math as tm

from pathtracer.materials.texture import get_texture_count, texture_value

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scattering_pdf_lambertian(normal: vec3, scattered_direction: vec3) -> ti.f32:
    """Compute the scattering density of a Lambertian surface.

    Args:
        normal: The surface normal (unit length).
        scattered_direction: The outgoing direction (need not be normalized).

    Returns:
        ``cos(theta) / pi``, or 0 for directions below the surface.
    """
    cos_theta = tm.dot(normal, tm.normalize(scattered_direction))
    pdf = 0.0
    if cos_theta > 0.0:
        pdf = cos_theta / tm.pi
    return pdf


@ti.func
def scatter_lambertian(texture_id: ti.i32, u: ti.f32, v: ti.f32, point: vec3):
    """Scatter off a Lambertian surface.

    Args:
        texture_id: Texture giving the surface color.
        u: First surface coordinate of the hit.
        v: Second surface coordinate of the hit.
        point: The hit point.

    Returns:
        A tuple of (attenuation, did_scatter). Lambertian surfaces always
        scatter.
    """
    attenuation = texture_value(texture_id, u, v, point)
    did_scatter = 1
    return attenuation, did_scatter


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 256

# Texture index of each Lambertian material
lambertian_textures = ti.field(dtype=ti.i32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_lambertian_materials[None] = 0


def add_lambertian_material(texture_id: int) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        texture_id: Index of the texture giving the surface color.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the texture does not exist.
    """
    if not 0 <= texture_id < get_texture_count():
        raise ValueError(f"Unknown texture id: {texture_id}")

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_textures[idx] = texture_id
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_texture(material_idx: ti.i32) -> ti.i32:
    """Get the texture index for a Lambertian material by index."""
    return lambertian_textures[material_idx]


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, u: ti.f32, v: ti.f32, point: vec3):
    """Scatter off a Lambertian material looked up by registry index.

    Returns:
        A tuple of (attenuation, did_scatter).
    """
    return scatter_lambertian(get_lambertian_texture(material_idx), u, v, point)

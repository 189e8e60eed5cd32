"""Isotropic phase function for participating media.

Attached to a ConstantMedium, it scatters into a uniformly random direction
with the texture color as attenuation. The integrator follows the scattered
ray directly, the same way it follows specular bounces.

Example:
    >>> from pathtracer.materials.texture import add_solid_texture
    >>> from pathtracer.materials.isotropic import add_isotropic_material
    >>> smoke = add_isotropic_material(add_solid_texture((0.0, 0.0, 0.0)))
"""

import taichi as ti
import taichi.math as tm

from pathtracer.core.ray import random_in_unit_sphere
from pathtracer.materials.texture import get_texture_count, texture_value

vec3 = tm.vec3

# Maximum number of isotropic materials in the scene
MAX_ISOTROPIC_MATERIALS = 64

isotropic_textures = ti.field(dtype=ti.i32, shape=MAX_ISOTROPIC_MATERIALS)
num_isotropic_materials = ti.field(dtype=ti.i32, shape=())


def clear_isotropic_materials() -> None:
    """Clear all isotropic materials."""
    num_isotropic_materials[None] = 0


def add_isotropic_material(texture_id: int) -> int:
    """Add an isotropic phase function colored by the given texture.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the texture does not exist.
    """
    if not 0 <= texture_id < get_texture_count():
        raise ValueError(f"Unknown texture id: {texture_id}")

    idx = num_isotropic_materials[None]
    if idx >= MAX_ISOTROPIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of isotropic materials ({MAX_ISOTROPIC_MATERIALS}) exceeded"
        )

    isotropic_textures[idx] = texture_id
    num_isotropic_materials[None] = idx + 1
    return idx


def get_isotropic_material_count() -> int:
    return int(num_isotropic_materials[None])


@ti.func
def scatter_isotropic(material_idx: ti.i32, u: ti.f32, v: ti.f32, point: vec3):
    """Scatter uniformly in all directions.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter).
    """
    attenuation = texture_value(isotropic_textures[material_idx], u, v, point)
    return random_in_unit_sphere(), attenuation, 1

"""Diffuse area light material.

A diffuse light never scatters. It emits the value of its texture at the
hit, from both sides of the surface. Orientation of a light is expressed
with FlipNormals on the figure, which matters only for light sampling.

Example:
    >>> from pathtracer.materials.texture import add_solid_texture
    >>> from pathtracer.materials.diffuse_light import add_diffuse_light_material
    >>> lamp = add_diffuse_light_material(add_solid_texture((15.0, 15.0, 15.0)))
"""

import taichi as ti
import taichi.math as tm

from pathtracer.materials.texture import get_texture_count, texture_value

vec3 = tm.vec3

# Maximum number of diffuse light materials in the scene
MAX_DIFFUSE_LIGHT_MATERIALS = 64

diffuse_light_textures = ti.field(dtype=ti.i32, shape=MAX_DIFFUSE_LIGHT_MATERIALS)
num_diffuse_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_diffuse_light_materials() -> None:
    """Clear all diffuse light materials."""
    num_diffuse_light_materials[None] = 0


def add_diffuse_light_material(texture_id: int) -> int:
    """Add a diffuse light material emitting the given texture.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the texture does not exist.
    """
    if not 0 <= texture_id < get_texture_count():
        raise ValueError(f"Unknown texture id: {texture_id}")

    idx = num_diffuse_light_materials[None]
    if idx >= MAX_DIFFUSE_LIGHT_MATERIALS:
        raise RuntimeError(
            f"Maximum number of diffuse light materials "
            f"({MAX_DIFFUSE_LIGHT_MATERIALS}) exceeded"
        )

    diffuse_light_textures[idx] = texture_id
    num_diffuse_light_materials[None] = idx + 1
    return idx


def get_diffuse_light_material_count() -> int:
    return int(num_diffuse_light_materials[None])


@ti.func
def emitted_diffuse_light(material_idx: ti.i32, u: ti.f32, v: ti.f32, point: vec3) -> vec3:
    """Radiance emitted by a diffuse light at (u, v, point)."""
    return texture_value(diffuse_light_textures[material_idx], u, v, point)

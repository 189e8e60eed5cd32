"""Unified material registry and material dispatch.

Every material has a unified material id that maps to a (type, type-local
index) pair. The per-type registries live in the ``lambertian``, ``metal``,
``dielectric``, ``diffuse_light`` and ``isotropic`` modules; this module
routes the material contract to them:

- ``scatter(material_id, ray_direction, rec)`` returns a ScatterRecord
- ``scattering_pdf(material_id, ray_direction, rec, scattered_direction)``
  returns the material's density for a diffuse bounce, 0 by default
- ``emitted(material_id, u, v, point)`` returns emitted radiance, black by
  default

A ScatterRecord is either specular, in which case it carries the ray to
follow, or diffuse, in which case it carries the normal of the cosine PDF
to sample (see ``pathtracer.core.pdf.scatter_pdf``).

Example:
    >>> from pathtracer.materials.material import MaterialType, register_material
    >>> from pathtracer.materials.metal import add_metal_material
    >>> mid = register_material(MaterialType.METAL, add_metal_material((0.8, 0.8, 0.8)))
"""

import logging
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from pathtracer.geometry.figures import SceneHitRecord
from pathtracer.materials.dielectric import (
    clear_dielectric_materials,
    scatter_dielectric_by_id,
)
from pathtracer.materials.diffuse_light import (
    clear_diffuse_light_materials,
    emitted_diffuse_light,
)
from pathtracer.materials.isotropic import (
    clear_isotropic_materials,
    scatter_isotropic,
)
from pathtracer.materials.lambertian import (
    clear_lambertian_materials,
    scatter_lambertian_by_id,
    scattering_pdf_lambertian,
)
from pathtracer.materials.metal import (
    clear_metal_materials,
    scatter_metal_by_id,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the path tracer to determine which
    scattering function to call.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2
    DIFFUSE_LIGHT = 3
    ISOTROPIC = 4


# Maximum number of materials across all types
MAX_MATERIALS = 1024

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


@ti.dataclass
class ScatterRecord:
    """Outcome of asking a material to scatter.

    Attributes:
        is_scattered: 1 if the path continues, 0 if it is absorbed.
        is_specular: 1 if the material chose the next ray itself.
        attenuation: Color the path throughput is multiplied by.
        specular_origin: Origin of the next ray for specular scatters.
        specular_direction: Direction of the next ray for specular scatters.
        pdf_normal: Normal of the cosine PDF for diffuse scatters.
    """

    is_scattered: ti.i32
    is_specular: ti.i32
    attenuation: vec3
    specular_origin: vec3
    specular_direction: vec3
    pdf_normal: vec3


def clear_materials() -> None:
    """Clear the unified registry and every per-type registry."""
    num_materials[None] = 0
    clear_lambertian_materials()
    clear_metal_materials()
    clear_dielectric_materials()
    clear_diffuse_light_materials()
    clear_isotropic_materials()


def register_material(material_type: MaterialType, type_index: int) -> int:
    """Assign a unified material id to a per-type registry entry.

    Args:
        material_type: The type of the material.
        type_index: Index of the material in its type's registry.

    Returns:
        The unified material id.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    material_id = num_materials[None]
    if material_id >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
    material_types[material_id] = int(material_type)
    material_type_indices[material_id] = type_index
    num_materials[None] = material_id + 1
    logger.debug(
        "Registered %s material %d as id %d",
        MaterialType(material_type).name.lower(),
        type_index,
        material_id,
    )
    return material_id


def get_material_count() -> int:
    """Get the number of registered materials."""
    return int(num_materials[None])


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Returns:
        The material type as an integer (see MaterialType enum).
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index for a given material ID.

    Returns:
        The index into the type-specific material array.
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@ti.func
def scatter(material_id: ti.i32, ray_direction: vec3, rec: SceneHitRecord) -> ScatterRecord:
    """Ask a material how a ray arriving at a hit continues.

    Args:
        material_id: Unified material id of the hit figure.
        ray_direction: Direction of the incoming ray.
        rec: The hit record.

    Returns:
        A ScatterRecord. Unknown materials and lights absorb.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)
    srec = ScatterRecord(is_scattered=0, is_specular=0)

    if mat_type == int(MaterialType.LAMBERTIAN):
        attenuation, did_scatter = scatter_lambertian_by_id(
            type_index, rec.u, rec.v, rec.point
        )
        srec.is_scattered = did_scatter
        srec.attenuation = attenuation
        srec.pdf_normal = rec.normal
    elif mat_type == int(MaterialType.METAL):
        direction, attenuation, did_scatter = scatter_metal_by_id(
            type_index, ray_direction, rec.normal
        )
        srec.is_scattered = did_scatter
        srec.is_specular = 1
        srec.attenuation = attenuation
        srec.specular_origin = rec.point
        srec.specular_direction = direction
    elif mat_type == int(MaterialType.DIELECTRIC):
        direction, attenuation, did_scatter = scatter_dielectric_by_id(
            type_index, ray_direction, rec.normal
        )
        srec.is_scattered = did_scatter
        srec.is_specular = 1
        srec.attenuation = attenuation
        srec.specular_origin = rec.point
        srec.specular_direction = direction
    elif mat_type == int(MaterialType.ISOTROPIC):
        direction, attenuation, did_scatter = scatter_isotropic(
            type_index, rec.u, rec.v, rec.point
        )
        srec.is_scattered = did_scatter
        srec.is_specular = 1
        srec.attenuation = attenuation
        srec.specular_origin = rec.point
        srec.specular_direction = direction

    return srec


@ti.func
def scattering_pdf(
    material_id: ti.i32,
    ray_direction: vec3,
    rec: SceneHitRecord,
    scattered_direction: vec3,
) -> ti.f32:
    """Density the material assigns to a diffuse bounce direction."""
    result = 0.0
    if get_material_type(material_id) == int(MaterialType.LAMBERTIAN):
        result = scattering_pdf_lambertian(rec.normal, scattered_direction)
    return result


@ti.func
def emitted(material_id: ti.i32, u: ti.f32, v: ti.f32, point: vec3) -> vec3:
    """Radiance emitted at a hit; black for everything but lights."""
    result = vec3(0.0, 0.0, 0.0)
    if get_material_type(material_id) == int(MaterialType.DIFFUSE_LIGHT):
        result = emitted_diffuse_light(get_material_type_index(material_id), u, v, point)
    return result

"""Materials module: textures and scattering models.

Components:
    texture: Solid, checker and Perlin noise textures
    lambertian: Ideal diffuse reflection, sampled through a cosine PDF
    metal: Mirror reflection perturbed by a fuzz radius
    dielectric: Glass-like refraction with Schlick reflection probability
    diffuse_light: Area light emission
    isotropic: Uniform phase function for participating media
    material: Unified material ids, ScatterRecord and dispatch

Each material answers the same three questions inside kernels: does it
scatter (and how), with what density a diffuse bounce goes in a direction,
and what it emits.
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_material_count,
    scatter_dielectric,
)
from .diffuse_light import (
    add_diffuse_light_material,
    clear_diffuse_light_materials,
    emitted_diffuse_light,
    get_diffuse_light_material_count,
)
from .isotropic import (
    add_isotropic_material,
    clear_isotropic_materials,
    get_isotropic_material_count,
    scatter_isotropic,
)
from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_material_count,
    scatter_lambertian,
    scattering_pdf_lambertian,
)
from .material import (
    MaterialType,
    ScatterRecord,
    clear_materials,
    emitted,
    get_material_count,
    register_material,
    scatter,
    scattering_pdf,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_material_count,
    scatter_metal,
)
from .texture import (
    TextureType,
    add_checker_texture,
    add_noise_texture,
    add_solid_texture,
    clear_textures,
    texture_value,
)

__all__ = [
    # Registry and dispatch
    "MaterialType",
    "ScatterRecord",
    "register_material",
    "clear_materials",
    "get_material_count",
    "scatter",
    "scattering_pdf",
    "emitted",
    # Textures
    "TextureType",
    "add_solid_texture",
    "add_checker_texture",
    "add_noise_texture",
    "clear_textures",
    "texture_value",
    # Lambertian
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "scatter_lambertian",
    "scattering_pdf_lambertian",
    # Metal
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "scatter_metal",
    # Dielectric
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "scatter_dielectric",
    # Diffuse light
    "add_diffuse_light_material",
    "clear_diffuse_light_materials",
    "get_diffuse_light_material_count",
    "emitted_diffuse_light",
    # Isotropic
    "add_isotropic_material",
    "clear_isotropic_materials",
    "get_isotropic_material_count",
    "scatter_isotropic",
]

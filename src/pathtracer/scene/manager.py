"""Unified scene manager for coordinating figures, textures and materials.

This module provides a high-level scene building API on top of the arena
registries. The SceneManager keeps host-side records of what it created
and turns a list of (figure, material) objects into a renderable scene:

- Texture factories returning texture ids
- Material factories returning unified material ids
- Figure factories returning figure node ids (shapes, wrappers, groups)
- ``add_object`` to put a figure with a material into the scene
- ``build`` to organise the objects under a BVH or a group, make that the
  scene root and apply the light shape and background to the integrator

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, fast_math=False)
    >>> from pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager(background="sky")
    >>> red = scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
    >>> scene.add_object(scene.sphere((0.0, 0.0, -1.0), 0.5), red)
    >>> root = scene.build()
"""

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from pathtracer.core.integrator import disable_light, set_background, setup_light
from pathtracer.geometry import figures
from pathtracer.geometry.bvh import build_bvh
from pathtracer.materials import texture
from pathtracer.materials.dielectric import add_dielectric_material
from pathtracer.materials.diffuse_light import add_diffuse_light_material
from pathtracer.materials.isotropic import add_isotropic_material
from pathtracer.materials.lambertian import add_lambertian_material
from pathtracer.materials.material import (
    MaterialType,
    clear_materials,
    get_material_count,
    register_material,
)
from pathtracer.materials.metal import add_metal_material
from pathtracer.scene.intersection import clear_scene, set_scene_root

logger = logging.getLogger(__name__)


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        type_index: The index within the type-specific material registry.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class ObjectInfo:
    """A top-level scene object.

    Attributes:
        node: Figure node id.
        material_id: Unified material ID attached to the node.
    """

    node: int
    material_id: int


class SceneManager:
    """Scene builder coordinating figures and materials.

    Creating a SceneManager clears every arena, so only one scene exists at
    a time.

    Attributes:
        materials: MaterialInfo for every registered material, by id.
        objects: ObjectInfo for every object added with add_object.
        background: ``"sky"``, ``"black"`` or an (R, G, B) color.
        light_shape: Figure sampled toward on diffuse bounces, or None.
        root: Root node after build(), else None.

    Example:
        >>> scene = SceneManager(background="black")
        >>> white = scene.add_lambertian_material(albedo=(0.73, 0.73, 0.73))
        >>> lamp = scene.add_diffuse_light_material(color=(15.0, 15.0, 15.0))
        >>> scene.add_object(scene.xz_rect(213, 343, 227, 332, 554), lamp)
        >>> scene.add_object(scene.cuboid((0, 0, 0), (165, 165, 165)), white)
        >>> scene.set_light_shape(scene.xz_rect(213, 343, 227, 332, 554))
        >>> scene.build()
    """

    def __init__(self, background="sky", seed: int | None = None) -> None:
        """Initialize an empty scene.

        Args:
            background: Radiance for rays that leave the scene.
            seed: Seed for BVH split-axis choices. None draws fresh entropy.
        """
        self.materials: list[MaterialInfo] = []
        self.objects: list[ObjectInfo] = []
        self.background = background
        self.light_shape: int | None = None
        self.root: int | None = None
        self._rng = np.random.default_rng(seed)
        self._clear_all()

    def _clear_all(self) -> None:
        figures.clear_figures()
        texture.clear_textures()
        clear_materials()
        clear_scene()
        disable_light()
        self.materials.clear()
        self.objects.clear()
        self.light_shape = None
        self.root = None

    def clear(self) -> None:
        """Clear the entire scene (figures, textures and materials)."""
        self._clear_all()

    # =========================================================================
    # Textures
    # =========================================================================

    def add_solid_texture(self, color: tuple[float, float, float]) -> int:
        return texture.add_solid_texture(color)

    def add_checker_texture(
        self,
        odd: tuple[float, float, float],
        even: tuple[float, float, float],
    ) -> int:
        return texture.add_checker_texture(odd, even)

    def add_noise_texture(self, scale: float = 1.0) -> int:
        return texture.add_noise_texture(scale)

    def _texture_for(self, color, texture_id: int | None) -> int:
        if texture_id is not None:
            return texture_id
        if color is None:
            raise ValueError("Either a color or a texture_id is required")
        return texture.add_solid_texture(color)

    # =========================================================================
    # Materials
    # =========================================================================

    def _register(self, material_type: MaterialType, type_index: int, params: dict) -> int:
        material_id = register_material(material_type, type_index)
        self.materials.append(MaterialInfo(material_id, material_type, type_index, params))
        return material_id

    def add_lambertian_material(
        self,
        albedo: tuple[float, float, float] | None = None,
        texture_id: int | None = None,
    ) -> int:
        """Add a Lambertian (diffuse) material.

        Args:
            albedo: Solid reflectance color; a solid texture is created for it.
            texture_id: Existing texture to use instead of ``albedo``.

        Returns:
            The unified material ID.

        Raises:
            ValueError: If neither argument is given or the texture is unknown.
        """
        tex = self._texture_for(albedo, texture_id)
        return self._register(
            MaterialType.LAMBERTIAN,
            add_lambertian_material(tex),
            {"albedo": albedo, "texture_id": tex},
        )

    def add_metal_material(self, albedo: tuple[float, float, float], fuzz: float = 0.0) -> int:
        """Add a metal material; fuzz is clamped to [0, 1]."""
        return self._register(
            MaterialType.METAL,
            add_metal_material(albedo, fuzz),
            {"albedo": albedo, "fuzz": fuzz},
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Add a dielectric (glass/water) material.

        Args:
            ior: Index of refraction. Common values: Water=1.33, Glass=1.5,
                Diamond=2.4.
        """
        return self._register(
            MaterialType.DIELECTRIC, add_dielectric_material(ior), {"ior": ior}
        )

    def add_diffuse_light_material(
        self,
        color: tuple[float, float, float] | None = None,
        texture_id: int | None = None,
    ) -> int:
        """Add an emitter. Components of ``color`` may exceed 1."""
        tex = self._texture_for(color, texture_id)
        return self._register(
            MaterialType.DIFFUSE_LIGHT,
            add_diffuse_light_material(tex),
            {"color": color, "texture_id": tex},
        )

    def add_isotropic_material(
        self,
        albedo: tuple[float, float, float] | None = None,
        texture_id: int | None = None,
    ) -> int:
        """Add a phase function for participating media."""
        tex = self._texture_for(albedo, texture_id)
        return self._register(
            MaterialType.ISOTROPIC,
            add_isotropic_material(tex),
            {"albedo": albedo, "texture_id": tex},
        )

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return get_material_count()

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Figures
    # =========================================================================

    def sphere(self, center: tuple[float, float, float], radius: float) -> int:
        return figures.add_sphere(center, radius)

    def xy_rect(self, x0: float, x1: float, y0: float, y1: float, k: float) -> int:
        return figures.add_xy_rect(x0, x1, y0, y1, k)

    def yz_rect(self, y0: float, y1: float, z0: float, z1: float, k: float) -> int:
        return figures.add_yz_rect(y0, y1, z0, z1, k)

    def xz_rect(self, x0: float, x1: float, z0: float, z1: float, k: float) -> int:
        return figures.add_xz_rect(x0, x1, z0, z1, k)

    def flip_normals(self, node: int) -> int:
        return figures.add_flip_normals(node)

    def cuboid(self, p0: tuple[float, float, float], p1: tuple[float, float, float]) -> int:
        return figures.add_cuboid(p0, p1)

    def translate(self, node: int, offset: tuple[float, float, float]) -> int:
        return figures.add_translate(node, offset)

    def rotate_y(self, node: int, angle_degrees: float) -> int:
        return figures.add_rotate_y(node, angle_degrees)

    def constant_medium(self, boundary: int, density: float) -> int:
        return figures.add_constant_medium(boundary, density)

    def group(self, nodes) -> int:
        return figures.add_group(nodes)

    def bvh(self, nodes) -> int:
        return build_bvh(nodes, rng=self._rng)

    # =========================================================================
    # Objects and Build
    # =========================================================================

    def add_object(self, node: int, material_id: int) -> int:
        """Add a figure to the scene rendered with ``material_id``.

        The material applies to every part of the figure that does not set
        its own.

        Returns:
            The figure node id.

        Raises:
            ValueError: If the node or the material does not exist.
        """
        if not 0 <= material_id < get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")
        figures.set_figure_material(node, material_id)
        self.objects.append(ObjectInfo(node, material_id))
        return node

    def add_sphere(
        self, center: tuple[float, float, float], radius: float, material_id: int
    ) -> int:
        """Add a sphere object in one call."""
        return self.add_object(self.sphere(center, radius), material_id)

    def set_light_shape(self, node: int | None) -> None:
        """Choose the figure diffuse bounces sample toward, None to disable.

        The shape is only sampled; add the emitter itself with add_object.
        """
        if node is not None:
            figures.get_figure_info(node)
        self.light_shape = node

    def build(self, use_bvh: bool = True) -> int:
        """Organise the objects and make them the scene that is rendered.

        Args:
            use_bvh: Put the objects under a BVH. Otherwise they are searched
                linearly through a group.

        Returns:
            The root node id.

        Raises:
            ValueError: If the scene has no objects, the tree is nested too deeply
                to traverse, or use_bvh is set and an object has no bounding box.
        """
        if not self.objects:
            raise ValueError("Cannot build an empty scene")

        nodes = [obj.node for obj in self.objects]
        if use_bvh:
            root = build_bvh(nodes, rng=self._rng)
        else:
            root = figures.add_group(nodes)

        set_scene_root(root)
        set_background(self.background)
        if self.light_shape is None:
            disable_light()
        else:
            setup_light(self.light_shape)
        self.root = root

        logger.info(
            "Built scene: %d objects, %d figures, %d materials, %s",
            len(self.objects),
            figures.get_figure_count(),
            len(self.materials),
            "bvh" if use_bvh else "group",
        )
        return root

    def __repr__(self) -> str:
        return (
            f"SceneManager(objects={len(self.objects)}, materials={len(self.materials)}, "
            f"root={self.root})"
        )

"""Geometry module for shape primitives and spatial acceleration.

Components:
    aabb: Axis-aligned bounding boxes (host value type and kernel slab test)
    sphere: Sphere intersection, the shared HitRecord, sphere light sampling
    rect: Axis-aligned rectangles in the XY, YZ and XZ planes
    figures: The figure arena (leaves, wrappers, groups, media) and traversal
    bvh: Bounding volume hierarchy construction over figure nodes

All intersection routines are Taichi functions (@ti.func). Scene structure
is built on the host and is read-only while kernels run.
"""

from .aabb import Aabb, hit_aabb
from .bvh import build_bvh
from .figures import (
    FigureInfo,
    FigureKind,
    SceneHitRecord,
    add_constant_medium,
    add_cuboid,
    add_flip_normals,
    add_group,
    add_rotate_y,
    add_sphere,
    add_translate,
    add_xy_rect,
    add_xz_rect,
    add_yz_rect,
    bounding_box,
    clear_figures,
    figure_pdf_value,
    figure_random,
    hit_figure,
    set_figure_material,
)
from .sphere import HitRecord, hit_sphere

__all__ = [
    "Aabb",
    "hit_aabb",
    "build_bvh",
    "FigureInfo",
    "FigureKind",
    "HitRecord",
    "SceneHitRecord",
    "hit_sphere",
    "hit_figure",
    "figure_pdf_value",
    "figure_random",
    "bounding_box",
    "clear_figures",
    "set_figure_material",
    "add_sphere",
    "add_xy_rect",
    "add_yz_rect",
    "add_xz_rect",
    "add_flip_normals",
    "add_translate",
    "add_rotate_y",
    "add_constant_medium",
    "add_group",
    "add_cuboid",
]

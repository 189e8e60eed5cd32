"""Scene-level ray intersection.

The scene is a single figure node, the root, which is usually a BVH over
the scene's objects or a plain group of them. ``intersect_scene`` returns
the nearest hit below the root together with the material of the object
that was hit.

Example:
    >>> from pathtracer.geometry import figures
    >>> from pathtracer.scene.intersection import set_scene_root
    >>> ball = figures.add_sphere((0.0, 0.0, -1.0), 0.5)
    >>> set_scene_root(ball)
    >>> # Use intersect_scene within a Taichi kernel
"""

import logging

import taichi as ti
import taichi.math as tm

from pathtracer.geometry.figures import SceneHitRecord, check_stack_depth, hit_figure

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Root figure node of the scene, valid only while _scene_ready is 1
_scene_root = ti.field(dtype=ti.i32, shape=())
_scene_ready = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove the scene root; every ray then misses."""
    _scene_ready[None] = 0


def set_scene_root(node: int) -> None:
    """Make a figure node the scene that rays are traced against.

    Raises:
        ValueError: If the node does not exist or is nested too deeply to traverse.
    """
    check_stack_depth(node)
    _scene_root[None] = node
    _scene_ready[None] = 1
    logger.debug("Scene root set to figure %d", node)


def get_scene_root() -> int:
    """Get the scene root node, -1 if none is set."""
    if _scene_ready[None] == 0:
        return -1
    return int(_scene_root[None])


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Find the closest intersection of a ray with the scene.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Exclusive lower bound for a valid hit.
        t_max: Upper bound for a valid hit.

    Returns:
        A SceneHitRecord; ``hit`` is 0 when nothing was hit.
    """
    result = SceneHitRecord(hit=0, material_id=-1)
    if _scene_ready[None] == 1:
        result = hit_figure(_scene_root[None], ray_origin, ray_direction, t_min, t_max)
    return result

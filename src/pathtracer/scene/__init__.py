"""Scene module for scene management and ray-scene queries.

Components:
    intersection: The scene root and the closest-hit query against it
    manager: SceneManager coordinating figures, textures and materials
    cornell_box: Preset scenes (Cornell box, Cornell smoke, sky spheres)

Scene data lives in Taichi field arenas written on the host before
rendering and read-only while kernels run.
"""

from .intersection import (
    clear_scene,
    get_scene_root,
    intersect_scene,
    set_scene_root,
)

# Note: manager and cornell_box are NOT imported here to avoid circular imports
# (the manager configures the integrator, which imports this package).
# Import them directly, e.g. from pathtracer.scene.manager import SceneManager

__all__ = [
    "clear_scene",
    "get_scene_root",
    "intersect_scene",
    "set_scene_root",
]

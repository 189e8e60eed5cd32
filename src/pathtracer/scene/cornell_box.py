"""Preset scenes.

This module provides factory functions for standard test scenes:

- ``create_cornell_box_scene``: the Cornell box with two rotated white
  boxes, lit by a ceiling area light, black background
- ``create_cornell_smoke_scene``: the same room with the boxes replaced by
  a white and a black constant-density medium, under a larger, dimmer light
- ``create_sky_spheres_scene``: a diffuse sphere resting on a huge ground
  sphere under the sky gradient

The Cornell box spans 0 to 555 in each dimension. The camera sits outside
the open front (z < 0) looking toward +Z.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, fast_math=False)
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>> # Now render using the integrator
"""

from dataclasses import dataclass

from pathtracer.camera.thin_lens import ThinLensCamera
from pathtracer.scene.manager import SceneManager

# =============================================================================
# Cornell Box Parameters
# =============================================================================


@dataclass
class CornellBoxParams:
    """Parameters for configuring a Cornell box scene.

    All parameters have defaults matching the classic configuration.

    Attributes:
        light_intensity: Emitted radiance of the ceiling light.
        light_color: RGB color of the light, scaled by light_intensity.
        left_wall_color: RGB albedo of the wall at x = 555 (left as seen
            from the camera).
        right_wall_color: RGB albedo of the wall at x = 0.
        white_color: RGB albedo of the floor, ceiling, back wall and boxes.
        use_bvh: Organise the objects under a BVH instead of a group.
        seed: Seed for the BVH split axes.

    Example:
        >>> params = CornellBoxParams(light_intensity=20.0)
        >>> params.left_wall_color
        (0.12, 0.45, 0.15)
    """

    light_intensity: float = 15.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    left_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    right_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    white_color: tuple[float, float, float] = (0.73, 0.73, 0.73)
    use_bvh: bool = True
    seed: int | None = 0


# =============================================================================
# Cornell Box Constants
# =============================================================================

BOX_SIZE = 555.0

# Ceiling light rectangle (x0, x1, z0, z1) and its height
LIGHT_RECT = (213.0, 343.0, 227.0, 332.0)
LIGHT_Y = 554.0

# Larger light of the smoke variant
SMOKE_LIGHT_RECT = (113.0, 443.0, 127.0, 432.0)
SMOKE_LIGHT_INTENSITY = 7.0

# Density of the two smoke boxes
SMOKE_DENSITY = 0.01


def cornell_box_camera(aspect_ratio: float = 1.0) -> ThinLensCamera:
    """The standard camera in front of the open side of the box."""
    return ThinLensCamera(
        lookfrom=(278.0, 278.0, -800.0),
        lookat=(278.0, 278.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=40.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_dist=10.0,
    )


def _add_room(
    scene: SceneManager, params: CornellBoxParams, light_rect, light_intensity: float
) -> int:
    """Add the walls and ceiling light; return the white material id."""
    green = scene.add_lambertian_material(albedo=params.left_wall_color)
    red = scene.add_lambertian_material(albedo=params.right_wall_color)
    white = scene.add_lambertian_material(albedo=params.white_color)
    light = scene.add_diffuse_light_material(
        color=tuple(light_intensity * c for c in params.light_color)
    )

    s = BOX_SIZE
    scene.add_object(scene.flip_normals(scene.yz_rect(0.0, s, 0.0, s, s)), green)
    scene.add_object(scene.yz_rect(0.0, s, 0.0, s, 0.0), red)
    scene.add_object(scene.flip_normals(scene.xz_rect(*light_rect, LIGHT_Y)), light)
    scene.add_object(scene.flip_normals(scene.xz_rect(0.0, s, 0.0, s, s)), white)
    scene.add_object(scene.xz_rect(0.0, s, 0.0, s, 0.0), white)
    scene.add_object(scene.flip_normals(scene.xy_rect(0.0, s, 0.0, s, s)), white)

    # Sampled toward from below, so the unflipped rect
    scene.set_light_shape(scene.xz_rect(*light_rect, LIGHT_Y))
    return white


def _box_pair(scene: SceneManager) -> tuple[int, int]:
    """The short box and the tall box, rotated and moved into place."""
    short_box = scene.translate(
        scene.rotate_y(scene.cuboid((0.0, 0.0, 0.0), (165.0, 165.0, 165.0)), -18.0),
        (130.0, 0.0, 65.0),
    )
    tall_box = scene.translate(
        scene.rotate_y(scene.cuboid((0.0, 0.0, 0.0), (165.0, 330.0, 165.0)), 15.0),
        (265.0, 0.0, 295.0),
    )
    return short_box, tall_box


# =============================================================================
# Scene Factories
# =============================================================================


def create_cornell_box_scene(
    params: CornellBoxParams | None = None,
    aspect_ratio: float = 1.0,
    background="black",
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the Cornell box scene and build it.

    Args:
        params: Optional CornellBoxParams. Defaults to CornellBoxParams().
        aspect_ratio: Aspect ratio of the returned camera.
        background: Radiance for rays that leave the box, as for SceneManager.

    Returns:
        A tuple of (SceneManager, ThinLensCamera). The scene is built: its
        root, light shape and background are active in the integrator.

    Example:
        >>> scene, camera = create_cornell_box_scene()
        >>> len(scene.objects)
        8
    """
    if params is None:
        params = CornellBoxParams()

    scene = SceneManager(background=background, seed=params.seed)
    white = _add_room(scene, params, LIGHT_RECT, params.light_intensity)

    short_box, tall_box = _box_pair(scene)
    scene.add_object(short_box, white)
    scene.add_object(tall_box, white)

    scene.build(use_bvh=params.use_bvh)
    return scene, cornell_box_camera(aspect_ratio)


def create_cornell_smoke_scene(
    params: CornellBoxParams | None = None,
    aspect_ratio: float = 1.0,
    background="black",
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the Cornell box with two boxes of smoke and build it.

    The boxes are constant media of density 0.01, one white and one black.
    ``params.light_intensity`` is ignored in favour of the dimmer light
    this scene uses.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).
    """
    if params is None:
        params = CornellBoxParams()

    scene = SceneManager(background=background, seed=params.seed)
    _add_room(scene, params, SMOKE_LIGHT_RECT, SMOKE_LIGHT_INTENSITY)

    white_smoke = scene.add_isotropic_material(albedo=(1.0, 1.0, 1.0))
    black_smoke = scene.add_isotropic_material(albedo=(0.0, 0.0, 0.0))

    short_box, tall_box = _box_pair(scene)
    scene.add_object(scene.constant_medium(short_box, SMOKE_DENSITY), white_smoke)
    scene.add_object(scene.constant_medium(tall_box, SMOKE_DENSITY), black_smoke)

    scene.build(use_bvh=params.use_bvh)
    return scene, cornell_box_camera(aspect_ratio)


def create_sky_spheres_scene(
    aspect_ratio: float = 2.0,
    use_bvh: bool = True,
    background="sky",
) -> tuple[SceneManager, ThinLensCamera]:
    """Create a diffuse sphere on a large ground sphere under the sky.

    No light shape is set; diffuse bounces sample the cosine PDF alone.

    Returns:
        A tuple of (SceneManager, ThinLensCamera).
    """
    scene = SceneManager(background=background, seed=0)
    grey = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    scene.add_sphere((0.0, 0.0, -1.0), 0.5, grey)
    scene.add_sphere((0.0, -100.5, -1.0), 100.0, grey)
    scene.build(use_bvh=use_bvh)

    camera = ThinLensCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_dist=1.0,
    )
    return scene, camera


def get_cornell_box_bounds() -> dict[str, tuple[float, float, float]]:
    """Get the bounding box of the Cornell box room.

    Returns:
        A dictionary with keys 'min', 'max', 'center' and 'size'.
    """
    return {
        "min": (0.0, 0.0, 0.0),
        "max": (BOX_SIZE, BOX_SIZE, BOX_SIZE),
        "center": (BOX_SIZE / 2.0, BOX_SIZE / 2.0, BOX_SIZE / 2.0),
        "size": (BOX_SIZE, BOX_SIZE, BOX_SIZE),
    }

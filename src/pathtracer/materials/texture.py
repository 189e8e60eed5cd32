"""Textures: color as a function of surface coordinates and position.

Three kinds of texture are supported:

- Solid: one constant color
- Checker: a 3D checker pattern alternating between two colors according to
  the sign of ``sin(10x) * sin(10y) * sin(10z)``
- Noise: grey Perlin value noise of the position scaled by a frequency

Textures are stored in a registry of Taichi fields and referenced by index
from the Lambertian, DiffuseLight and Isotropic materials.

Example:
    >>> from pathtracer.materials.texture import add_solid_texture, add_checker_texture
    >>> red = add_solid_texture((0.65, 0.05, 0.05))
    >>> floor = add_checker_texture((0.2, 0.3, 0.1), (0.9, 0.9, 0.9))
"""

import logging
from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

logger = logging.getLogger(__name__)

vec3 = tm.vec3


class TextureType(IntEnum):
    """Enumeration of supported texture types."""

    SOLID = 0
    CHECKER = 1
    NOISE = 2


# Maximum number of textures in the registry
MAX_TEXTURES = 1024

# Size of the Perlin lattice tables
PERLIN_POINT_COUNT = 256

texture_types = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
# Solid color, or the checker color where the sine product is negative
texture_color_odd = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
# Checker color where the sine product is non-negative
texture_color_even = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
# Noise frequency
texture_scales = ti.field(dtype=ti.f32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())

perlin_ranfloat = ti.field(dtype=ti.f32, shape=PERLIN_POINT_COUNT)
perlin_perm_x = ti.field(dtype=ti.i32, shape=PERLIN_POINT_COUNT)
perlin_perm_y = ti.field(dtype=ti.i32, shape=PERLIN_POINT_COUNT)
perlin_perm_z = ti.field(dtype=ti.i32, shape=PERLIN_POINT_COUNT)

_perlin_seeded = False


def clear_textures() -> None:
    """Clear all textures from the registry."""
    num_textures[None] = 0


def get_texture_count() -> int:
    """Get the number of textures in the registry."""
    return int(num_textures[None])


def init_perlin(seed: int = 0) -> None:
    """Fill the Perlin lattice tables from a seeded generator.

    Args:
        seed: Seed for the lattice values and the three permutations.
    """
    global _perlin_seeded
    rng = np.random.default_rng(seed)
    perlin_ranfloat.from_numpy(rng.random(PERLIN_POINT_COUNT, dtype=np.float32))
    perlin_perm_x.from_numpy(rng.permutation(PERLIN_POINT_COUNT).astype(np.int32))
    perlin_perm_y.from_numpy(rng.permutation(PERLIN_POINT_COUNT).astype(np.int32))
    perlin_perm_z.from_numpy(rng.permutation(PERLIN_POINT_COUNT).astype(np.int32))
    _perlin_seeded = True


def _validate_color(name: str, color) -> tuple[float, float, float]:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"{name} component {i} = {component} is negative")
    return (float(color[0]), float(color[1]), float(color[2]))


def _add_texture(kind: TextureType, odd, even, scale: float) -> int:
    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")
    texture_types[idx] = int(kind)
    texture_color_odd[idx] = odd
    texture_color_even[idx] = even
    texture_scales[idx] = scale
    num_textures[None] = idx + 1
    logger.debug("Added %s texture %d", kind.name.lower(), idx)
    return idx


def add_solid_texture(color: tuple[float, float, float]) -> int:
    """Add a constant-color texture.

    Colors may exceed 1 so that the same texture can drive an emitter.

    Raises:
        ValueError: If a component is negative.
        RuntimeError: If the registry is full.
    """
    color = _validate_color("color", color)
    return _add_texture(TextureType.SOLID, color, color, 1.0)


def add_checker_texture(
    odd: tuple[float, float, float], even: tuple[float, float, float]
) -> int:
    """Add a 3D checker texture alternating between two colors."""
    return _add_texture(
        TextureType.CHECKER,
        _validate_color("odd", odd),
        _validate_color("even", even),
        1.0,
    )


def add_noise_texture(scale: float = 1.0) -> int:
    """Add a grey Perlin noise texture with the given spatial frequency.

    The lattice tables are initialised with the default seed on first use.
    """
    if scale <= 0.0:
        raise ValueError(f"Noise scale must be positive, got {scale}")
    if not _perlin_seeded:
        init_perlin()
    white = (1.0, 1.0, 1.0)
    return _add_texture(TextureType.NOISE, white, white, float(scale))


@ti.func
def perlin_noise(point: vec3) -> ti.f32:
    """Trilinearly interpolated lattice noise in [0, 1).

    Lattice coordinates wrap modulo the table size.
    """
    fx = ti.floor(point.x)
    fy = ti.floor(point.y)
    fz = ti.floor(point.z)
    u = point.x - fx
    v = point.y - fy
    w = point.z - fz
    # Hermite smoothing removes the grid artifacts of plain trilinear blending
    u = u * u * (3.0 - 2.0 * u)
    v = v * v * (3.0 - 2.0 * v)
    w = w * w * (3.0 - 2.0 * w)

    i = ti.cast(fx, ti.i32)
    j = ti.cast(fy, ti.i32)
    k = ti.cast(fz, ti.i32)

    accum = 0.0
    for di, dj, dk in ti.static(ti.ndrange(2, 2, 2)):
        lattice = perlin_ranfloat[
            perlin_perm_x[(i + di) & 255]
            ^ perlin_perm_y[(j + dj) & 255]
            ^ perlin_perm_z[(k + dk) & 255]
        ]
        accum += (
            (di * u + (1 - di) * (1.0 - u))
            * (dj * v + (1 - dj) * (1.0 - v))
            * (dk * w + (1 - dk) * (1.0 - w))
            * lattice
        )
    return accum


@ti.func
def texture_value(texture_id: ti.i32, u: ti.f32, v: ti.f32, point: vec3) -> vec3:
    """Evaluate a texture at surface coordinates (u, v) and position ``point``.

    Args:
        texture_id: Index into the texture registry.
        u: First surface coordinate.
        v: Second surface coordinate.
        point: World-space position.

    Returns:
        The RGB color. Unknown ids evaluate to black.
    """
    result = vec3(0.0, 0.0, 0.0)
    if 0 <= texture_id < num_textures[None]:
        kind = texture_types[texture_id]
        if kind == int(TextureType.SOLID):
            result = texture_color_odd[texture_id]
        elif kind == int(TextureType.CHECKER):
            sines = ti.sin(10.0 * point.x) * ti.sin(10.0 * point.y) * ti.sin(10.0 * point.z)
            if sines < 0.0:
                result = texture_color_odd[texture_id]
            else:
                result = texture_color_even[texture_id]
        elif kind == int(TextureType.NOISE):
            n = perlin_noise(texture_scales[texture_id] * point)
            result = vec3(n, n, n)
    return result

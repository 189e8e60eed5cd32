"""Path tracing integrator for Monte Carlo light transport.

This module implements the main rendering kernel: an unbiased path tracer
that combines material sampling with light sampling (a 50/50 mixture of a
cosine PDF and a PDF aimed at a chosen light figure), terminates paths at a
fixed depth, and accumulates samples progressively.

For a camera ray the estimator is, bounce by bounce:

1. Intersect the scene over (T_MIN, T_MAX). A miss returns the background.
2. On a hit, evaluate the material's emission and ask it to scatter.
3. At MAX_DEPTH, or if the material absorbs, return the emission.
4. A specular scatter continues with ``attenuation * L(specular ray)``.
5. A diffuse scatter draws a direction from the mixture PDF and continues
   with ``emitted + attenuation * scattering_pdf * L(next ray) / pdf``.

The recursion is unrolled into a loop over a path throughput. Samples that
come out NaN or infinite are zeroed per channel before accumulation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, fast_math=False)
    >>> from pathtracer.core.integrator import render_image, setup_render_target
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(256, 256)
    >>> render_image(num_samples=16)
"""

import logging

import numpy as np
import taichi as ti
import taichi.math as tm

from pathtracer.camera.thin_lens import get_ray_jittered
from pathtracer.core.pdf import (
    make_hit_pdf,
    mix_pdf_generate,
    mix_pdf_value,
    pdf_generate,
    pdf_value,
    scatter_pdf,
)
from pathtracer.core.ray import INF
from pathtracer.geometry.figures import check_stack_depth
from pathtracer.materials.material import emitted, scatter, scattering_pdf
from pathtracer.preview.export import apply_gamma, save_png_from_array
from pathtracer.scene.intersection import intersect_scene

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Bounce at which a path stops and returns only the emission it hit
MAX_DEPTH = 50

# t_min and t_max for ray intersection; t_min avoids shadow acne
T_MIN = 0.001
T_MAX = INF

# Background modes
BACKGROUND_SKY = 0
BACKGROUND_COLOR = 1

# =============================================================================
# Light Source and Background Configuration
# =============================================================================

_light_enabled = ti.field(dtype=ti.i32, shape=())
_light_figure = ti.field(dtype=ti.i32, shape=())

_background_mode = ti.field(dtype=ti.i32, shape=())
_background_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_light(figure: int) -> None:
    """Choose the figure that diffuse bounces sample directly.

    The figure should be a sphere, a rectangle, or a FlipNormals, Translate
    or group wrapping those; other figures have zero sampling density.

    Args:
        figure: Figure node id of the light shape.

    Raises:
        ValueError: If the figure does not exist or is nested too deeply.
    """
    check_stack_depth(figure)
    _light_enabled[None] = 1
    _light_figure[None] = figure
    logger.debug("Light sampling enabled for figure %d", figure)


def disable_light() -> None:
    """Sample diffuse bounces from the material PDF alone."""
    _light_enabled[None] = 0


def is_light_enabled() -> bool:
    """Check if a light figure is configured."""
    return bool(_light_enabled[None])


def set_background(background) -> None:
    """Set the radiance of rays that leave the scene.

    Args:
        background: ``"sky"`` for a white-to-blue gradient over the ray's
            height, ``"black"`` for no light, or an (R, G, B) color.

    Raises:
        ValueError: If the name is unknown or the color is malformed.
    """
    if isinstance(background, str):
        if background == "sky":
            _background_mode[None] = BACKGROUND_SKY
        elif background == "black":
            _background_mode[None] = BACKGROUND_COLOR
            _background_color[None] = [0.0, 0.0, 0.0]
        else:
            raise ValueError(f"Unknown background: {background!r}")
        return

    color = tuple(float(c) for c in background)
    if len(color) != 3 or min(color) < 0.0:
        raise ValueError(f"Background color must be 3 non-negative values, got {background!r}")
    _background_mode[None] = BACKGROUND_COLOR
    _background_color[None] = list(color)


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Running average of linear radiance (preallocated to max size)
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Sample count per pixel (preallocated to max size)
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def background_radiance(direction: vec3) -> vec3:
    """Radiance arriving along a ray that left the scene."""
    result = _background_color[None]
    if _background_mode[None] == BACKGROUND_SKY:
        unit = tm.normalize(direction)
        t = 0.5 * (unit.y + 1.0)
        result = (1.0 - t) * vec3(1.0, 1.0, 1.0) + t * vec3(0.5, 0.7, 1.0)
    return result


@ti.func
def trace_ray(origin: vec3, direction: vec3) -> vec3:
    """Estimate the radiance arriving at ``origin`` from ``direction``.

    Args:
        origin: Ray origin.
        direction: Ray direction (need not be normalized).

    Returns:
        The radiance estimate (RGB). May contain NaN or infinity when a
        sampled density is zero; callers sanitize it.
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    active = 1

    for depth in range(MAX_DEPTH + 1):
        if active == 1:
            rec = intersect_scene(origin, direction, T_MIN, T_MAX)

            if rec.hit == 0:
                radiance += throughput * background_radiance(direction)
                active = 0
            else:
                material_id = rec.material_id
                emission = emitted(material_id, rec.u, rec.v, rec.point)
                srec = scatter(material_id, direction, rec)

                if depth >= MAX_DEPTH or srec.is_scattered == 0:
                    radiance += throughput * emission
                    active = 0
                elif srec.is_specular == 1:
                    throughput *= srec.attenuation
                    origin = srec.specular_origin
                    direction = srec.specular_direction
                else:
                    radiance += throughput * emission
                    surface_pdf = scatter_pdf(srec)

                    next_direction = vec3(0.0, 0.0, 0.0)
                    density = 0.0
                    if _light_enabled[None] == 1:
                        light_pdf = make_hit_pdf(_light_figure[None], rec.point)
                        next_direction = mix_pdf_generate(light_pdf, surface_pdf)
                        density = mix_pdf_value(light_pdf, surface_pdf, next_direction)
                    else:
                        next_direction = pdf_generate(surface_pdf)
                        density = pdf_value(surface_pdf, next_direction)

                    weight = scattering_pdf(material_id, direction, rec, next_direction)
                    throughput *= srec.attenuation * weight / density
                    origin = rec.point
                    direction = next_direction

    return radiance


@ti.func
def sanitize_radiance(color: vec3) -> vec3:
    """Zero NaN and infinite channels and clamp negatives to zero."""
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]) or result[c] < 0.0:
            result[c] = 0.0
    return result


@ti.func
def render_sample_impl(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> vec3:
    """Trace one jittered camera sample through a pixel."""
    ray = get_ray_jittered(pixel_i, pixel_j, width, height)
    return sanitize_radiance(trace_ray(ray.origin, ray.direction))


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_one_spp(width: ti.i32, height: ti.i32):
    """Render one sample per pixel and fold it into the running average."""
    for i, j in ti.ndrange(width, height):
        color = render_sample_impl(i, j, width, height)

        _sample_count[i, j] += 1
        n = _sample_count[i, j]

        # Running average: avg_n = avg_{n-1} + (x_n - avg_{n-1}) / n
        _color_buffer[i, j] += (color - _color_buffer[i, j]) / ti.cast(n, ti.f32)


@ti.kernel
def _render_single_pixel(pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32) -> vec3:
    return render_sample_impl(pixel_i, pixel_j, width, height)


# =============================================================================
# Public Rendering API
# =============================================================================


def render_sample(pixel_i: int, pixel_j: int) -> tuple[float, float, float]:
    """Render a single sample for a specific pixel.

    This is a Python-callable function for testing. For production rendering,
    use render_image() which processes all pixels in parallel.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).

    Returns:
        Tuple of (R, G, B) linear radiance, already sanitized.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height)

    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(num_samples: int = 1) -> None:
    """Render the image with the specified number of samples per pixel.

    Progressively accumulates samples into the color buffer. Can be called
    multiple times to add more samples for convergence.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    for _ in range(num_samples):
        _render_one_spp(width, height)


def get_total_samples() -> int:
    """Get the number of samples per pixel accumulated so far.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_sample_count[0, 0])


def get_linear_image_numpy() -> np.ndarray:
    """Get the averaged linear radiance as a NumPy array.

    Returns:
        float32 array of shape (height, width, 3), top row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    full_image = _color_buffer.to_numpy()

    # (width, height, 3) with j = 0 at the bottom -> (height, width, 3) top first
    image = np.transpose(full_image[:width, :height, :], (1, 0, 2))
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)


def get_display_image_numpy() -> np.ndarray:
    """Get the image after square-root gamma and clamping to [0, 1].

    Raises:
        RuntimeError: If render target has not been set up.
    """
    return apply_gamma(get_linear_image_numpy())


def save_image(filepath: str) -> None:
    """Save the rendered image as an 8-bit PNG.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    save_png_from_array(get_linear_image_numpy(), filepath)
    logger.info("Saved %dx%d image to %s", *get_image_dimensions(), filepath)

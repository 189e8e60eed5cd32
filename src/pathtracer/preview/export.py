"""Image export utilities for rendered images.

Rendered pixels are averaged linear radiance. For output each channel goes
through square-root gamma, is clamped to [0, 1] and is quantized to 8 bits
as ``int(255.99 * c)``.

Supported formats:
    - PNG (8-bit RGB via Pillow)

Example:
    >>> from pathtracer.preview.export import save_png
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(512, 512)
    >>> renderer.render(100)
    >>> save_png(renderer, "output.png")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from pathtracer.core.progressive import ProgressiveRenderer

logger = logging.getLogger(__name__)


def apply_gamma(image: npt.NDArray[np.floating]) -> npt.NDArray[np.float32]:
    """Apply gamma 2 (square root) and clamp to [0, 1].

    Non-finite and negative values map to 0.
    """
    linear = np.nan_to_num(np.asarray(image, dtype=np.float64), nan=0.0, posinf=1.0, neginf=0.0)
    linear = np.maximum(linear, 0.0)
    return np.clip(np.sqrt(linear), 0.0, 1.0).astype(np.float32)


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a linear image of shape (H, W, 3) to gamma-corrected uint8."""
    display = apply_gamma(image)
    # 255.99 keeps a fully lit channel at 255 after truncation
    return np.minimum((255.99 * display).astype(np.int32), 255).astype(np.uint8)


def save_png_from_array(image: npt.NDArray[np.floating], filepath: str) -> None:
    """Save a linear image array of shape (H, W, 3) as a PNG file."""
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")

    pil_image = PILImage.fromarray(image_to_uint8(image), mode="RGB")
    pil_image.save(filepath)
    logger.debug("Wrote %s", filepath)


def save_png(renderer: ProgressiveRenderer, filepath: str) -> None:
    """Save the renderer's current image as a PNG file.

    Example:
        >>> renderer = ProgressiveRenderer(512, 512)
        >>> renderer.render(100)
        >>> save_png(renderer, "output.png")
    """
    save_png_from_array(renderer.get_image_numpy(), filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))

"""Preview module for image output.

Components:
    export: Gamma correction, 8-bit quantization and PNG export

Example:
    >>> from pathtracer.preview import save_png
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(512, 512)
    >>> renderer.render(100)
    >>> save_png(renderer, "output.png")
"""

from pathtracer.preview.export import (
    apply_gamma,
    compute_rmse,
    image_to_uint8,
    save_png,
    save_png_from_array,
)

__all__ = [
    "apply_gamma",
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
]

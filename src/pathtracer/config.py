"""Render configuration and Taichi initialization.

Taichi must be initialized before any module that declares fields is
imported, so scripts call ``init_taichi`` first and import the rest of the
package afterwards.

Example:
    >>> from pathtracer.config import RenderConfig, init_taichi
    >>> config = RenderConfig(width=256, height=256, samples_per_pixel=64)
    >>> init_taichi(config)
    'CPU'
"""

import logging
from dataclasses import dataclass

import taichi as ti

logger = logging.getLogger(__name__)

ARCHES = ("cpu", "gpu")
BACKGROUNDS = ("sky", "black")


@dataclass
class RenderConfig:
    """Settings for one render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Number of camera samples averaged per pixel.
        batch_size: Samples rendered between progress reports.
        arch: Preferred Taichi backend, ``"cpu"`` or ``"gpu"``.
        random_seed: Seed of Taichi's per-thread random generators.
        background: ``"sky"`` or ``"black"``, or None to keep the background
            the chosen scene is built with.
        output_path: Where the PNG is written.
    """

    width: int = 256
    height: int = 256
    samples_per_pixel: int = 100
    batch_size: int = 10
    arch: str = "cpu"
    random_seed: int = 0
    background: str | None = None
    output_path: str = "out.png"

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def validate(self) -> None:
        """Check the configuration.

        Raises:
            ValueError: If a size or count is not positive, or a name is
                unknown.
        """
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}")
        if self.samples_per_pixel <= 0:
            raise ValueError(f"samples_per_pixel must be positive, got {self.samples_per_pixel}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.arch not in ARCHES:
            raise ValueError(f"Unknown arch {self.arch!r}, expected one of {ARCHES}")
        if self.background is not None and self.background not in BACKGROUNDS:
            raise ValueError(
                f"Unknown background {self.background!r}, expected one of {BACKGROUNDS}"
            )


def init_taichi(config: RenderConfig | None = None) -> str:
    """Initialize Taichi with IEEE float semantics.

    NaN and infinity must survive the kernels (slab tests rely on infinite
    slopes, and radiance samples are sanitized by testing for NaN), so fast
    math is always off.

    Args:
        config: Render settings; defaults to RenderConfig().

    Returns:
        Name of the backend in use, ``"GPU"`` or ``"CPU"``.

    Raises:
        ValueError: If the configuration is invalid.
    """
    if config is None:
        config = RenderConfig()
    config.validate()

    if config.arch == "gpu":
        # Use GPU if available, fall back to CPU
        try:
            ti.init(arch=ti.gpu, random_seed=config.random_seed, fast_math=False)
            logger.info("Using GPU backend")
            return "GPU"
        except Exception:
            logger.warning("GPU backend unavailable, falling back to CPU", exc_info=True)

    ti.init(arch=ti.cpu, random_seed=config.random_seed, fast_math=False)
    logger.info("Using CPU backend")
    return "CPU"

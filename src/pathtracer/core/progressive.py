"""Batched sample accumulation on top of the integrator.

``ProgressiveRenderer`` owns the render target size and feeds the
integrator in batches. Between batches it reports progress and asks
whether to stop, so a caller can show partial results or abandon a long
render without losing the samples already taken.

Example:
    >>> from pathtracer.config import init_taichi
    >>> init_taichi()
    'CPU'
    >>> from pathtracer.camera.thin_lens import setup_camera
    >>> from pathtracer.core.progressive import ProgressiveRenderer
    >>> from pathtracer.scene.cornell_box import create_cornell_box_scene
    >>> _, camera = create_cornell_box_scene()
    >>> setup_camera(camera)
    >>> renderer = ProgressiveRenderer(128, 128)
    >>> renderer.render(64, batch_size=16)
    64
"""

import logging
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from pathtracer.core.integrator import (
    clear_render_target,
    get_display_image_numpy,
    get_linear_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)
from pathtracer.preview.export import image_to_uint8, save_png_from_array

logger = logging.getLogger(__name__)

# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]

# Polled between batches; returning True ends the render early
StopCheck = Callable[[], bool]


class ProgressiveRenderer:
    """Front end to the single global render target.

    Only one target exists, so creating a second renderer resets the
    image of the first.

    Raises:
        ValueError: From the constructor, if the size is not positive or
            exceeds MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT.
    """

    def __init__(self, width: int, height: int) -> None:
        self._width = width
        self._height = height
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Clear the accumulated samples, keeping the image dimensions."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulator.

        Raises:
            ValueError: If dimensions are invalid or exceed the maximum.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
        should_stop: StopCheck | None = None,
    ) -> int:
        """Add ``num_samples`` samples per pixel to the current image.

        Args:
            num_samples: Samples to add; zero or less renders nothing.
            batch_size: Samples taken per integrator call.
            callback: Receives (samples so far, target) after every batch.
            should_stop: Polled before every batch. Returning True ends the
                call early, keeping the finished batches.

        Returns:
            How many samples this call added.

        Raises:
            ValueError: If batch_size is not positive.
        """
        before = self.sample_count
        for progress in self.render_progressive(num_samples, batch_size, should_stop):
            if callback is not None:
                callback(*progress)
        return self.sample_count - before

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        should_stop: StopCheck | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Generator form of ``render``: yields (samples so far, target) per batch."""
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        target = self.sample_count + max(num_samples, 0)
        while self.sample_count < target:
            if should_stop is not None and should_stop():
                logger.info("Render stopped at %d of %d samples", self.sample_count, target)
                return
            render_image(min(batch_size, target - self.sample_count))
            logger.debug("Accumulated %d/%d samples", self.sample_count, target)
            yield self.sample_count, target

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the averaged linear radiance, shape (height, width, 3)."""
        return get_linear_image_numpy()

    def get_display_image(self) -> npt.NDArray[np.float32]:
        """Get the gamma-corrected image clamped to [0, 1]."""
        return get_display_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-corrected image as 8-bit RGB."""
        return image_to_uint8(self.get_image_numpy())

    def save_image(self, filepath: str) -> None:
        """Save the rendered image as a PNG file."""
        save_png_from_array(self.get_image_numpy(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )

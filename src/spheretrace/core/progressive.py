"""Progressive renderer for iterative sample accumulation.

This module provides a wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks and a generator interface for UI updates
- A one-call render() entry point driven by RenderSettings

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.progressive import render
    >>> from spheretrace.core.settings import RenderSettings
    >>> from spheretrace.scene.presets import create_three_spheres_scene
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> image = render(camera, RenderSettings(width=200, samples_per_pixel=20))
    >>> image.shape
    (112, 200, 3)
"""

import dataclasses
import logging
import time
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from spheretrace.camera.thin_lens import ThinLensCamera, setup_camera
from spheretrace.core.integrator import (
    clear_render_target,
    finalize_image,
    get_total_samples,
    render_image,
    setup_render_target,
)
from spheretrace.core.sampler import seed_sampler
from spheretrace.core.settings import DEFAULT_GAMMA, DEFAULT_MAX_DEPTH, RenderSettings
from spheretrace.output.export import image_to_uint8, save_image

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer keeps the image size and path parameters and delegates
    to the global integrator buffers (which are Taichi fields). The camera
    must be set up for the same image size before rendering.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Maximum number of scattering events per path.
        jitter: Whether samples are jittered inside each pixel.
    """

    def __init__(
        self,
        width: int,
        height: int,
        max_depth: int = DEFAULT_MAX_DEPTH,
        jitter: bool = True,
    ) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            max_depth: Maximum number of scattering events per path.
            jitter: Whether to jitter samples inside each pixel.

        Raises:
            ValueError: If dimensions exceed maximum supported size or
                max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {max_depth}")
        self._width = width
        self._height = height
        self.max_depth = max_depth
        self.jitter = jitter
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
        """Clear the accumulated samples without changing the image size."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset the accumulator.

        Raises:
            ValueError: If dimensions exceed maximum supported size.
        """
        self._width = width
        self._height = height
        setup_render_target(width, height)

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Raises:
            GeometryError: If a path produced a degenerate direction.

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        This is a generator-based alternative to render() with callbacks,
        useful for iterative processing or cancellation.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).
        """
        if num_samples <= 0:
            return
        batch_size = max(1, batch_size)

        start_samples = self.sample_count
        target_samples = start_samples + num_samples

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch, max_depth=self.max_depth, jitter=self.jitter)
            remaining -= batch
            yield (self.sample_count, target_samples)

    def get_image_numpy(self, gamma: float = DEFAULT_GAMMA) -> npt.NDArray[np.float32]:
        """Get the finished image as a NumPy array.

        Args:
            gamma: Gamma correction value. 1.0 returns the linear average.

        Returns:
            NumPy array of shape (height, width, 3) with dtype float32.

        Raises:
            RadiometricRangeError: If an averaged channel is outside [0, 1].
        """
        return finalize_image(gamma)

    def get_image_uint8(self, gamma: float = DEFAULT_GAMMA) -> npt.NDArray[np.uint8]:
        """Get the finished image as an 8-bit NumPy array."""
        return image_to_uint8(self.get_image_numpy(gamma=gamma))

    def save_image(self, filepath: str | Path, gamma: float = DEFAULT_GAMMA) -> None:
        """Save the finished image to a PNG or PPM file.

        Args:
            filepath: Path to save the image; the suffix selects the format.
            gamma: Gamma correction value.
        """
        save_image(self.get_image_numpy(gamma=gamma), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )


def render(
    camera: ThinLensCamera,
    settings: RenderSettings,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.float32]:
    """Render the current scene through a camera.

    Seeds the sampler, sets up the camera and render target, averages
    settings.samples_per_pixel samples per pixel, checks the averaged
    colors and applies gamma. An explicit settings.height overrides the
    camera aspect ratio with width / height so pixels stay square.

    Args:
        camera: The camera to render through.
        settings: Resolution, sampling and output parameters.
        callback: Optional progress callback, see ProgressiveRenderer.render().

    Returns:
        NumPy array of shape (height, width, 3) with values in [0, 1].

    Raises:
        ValueError: If the camera or settings are invalid.
        GeometryError: If a path produced a degenerate direction.
        RadiometricRangeError: If an averaged channel is outside [0, 1].
    """
    settings.validate()
    width = settings.width
    height = settings.resolve_height(camera.aspect_ratio)
    if settings.height is not None:
        camera = dataclasses.replace(camera, aspect_ratio=width / height)

    seed_sampler(settings.seed)
    setup_camera(camera, width, height)
    renderer = ProgressiveRenderer(
        width, height, max_depth=settings.max_depth, jitter=settings.jitter
    )

    logger.info(
        "Rendering %dx%d at %d spp (max depth %d, seed %d)",
        width,
        height,
        settings.samples_per_pixel,
        settings.max_depth,
        settings.seed,
    )
    start_time = time.perf_counter()
    renderer.render(settings.samples_per_pixel, batch_size=settings.batch_size, callback=callback)
    image = renderer.get_image_numpy(gamma=settings.gamma)
    logger.info("Render finished in %.2fs", time.perf_counter() - start_time)

    return image

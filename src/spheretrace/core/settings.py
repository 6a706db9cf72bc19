"""Render configuration.

RenderSettings bundles the parameters of a single render that are not part
of the scene or the camera: output resolution, sampling, path depth, gamma
and the random seed.

Example:
    >>> settings = RenderSettings(width=400, samples_per_pixel=50)
    >>> settings.resolve_height(aspect_ratio=16.0 / 9.0)
    225
"""

import math
from dataclasses import asdict, dataclass
from typing import Any

# Image capacity of the preallocated render target
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

DEFAULT_MAX_DEPTH = 10
DEFAULT_GAMMA = 2.0


def image_height_for(width: int, aspect_ratio: float) -> int:
    """Derive the image height from its width and aspect ratio.

    The height is truncated and never below one pixel.
    """
    return max(1, int(width / aspect_ratio))


@dataclass
class RenderSettings:
    """Parameters controlling a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels. None derives it from the camera's
            aspect ratio with image_height_for().
        samples_per_pixel: Number of primary rays averaged per pixel.
        max_depth: Maximum number of scattering events per path. Paths still
            bouncing after max_depth events contribute black.
        gamma: Gamma applied to the averaged linear color, c ** (1 / gamma).
        seed: Seed for the per-pixel random streams.
        jitter: Whether to jitter samples across the pixel footprint. When
            disabled every sample goes through the pixel center.
        batch_size: Samples rendered between progress callbacks.
    """

    width: int = 400
    height: int | None = None
    samples_per_pixel: int = 100
    max_depth: int = DEFAULT_MAX_DEPTH
    gamma: float = DEFAULT_GAMMA
    seed: int = 0
    jitter: bool = True
    batch_size: int = 10

    def validate(self) -> None:
        """Check every field for a usable value.

        Raises:
            ValueError: If any setting is out of range.
        """
        if self.width < 1 or self.width > MAX_IMAGE_WIDTH:
            raise ValueError(f"Width {self.width} is outside [1, {MAX_IMAGE_WIDTH}]")
        if self.height is not None and (self.height < 1 or self.height > MAX_IMAGE_HEIGHT):
            raise ValueError(f"Height {self.height} is outside [1, {MAX_IMAGE_HEIGHT}]")
        if self.samples_per_pixel < 1:
            raise ValueError(
                f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if not math.isfinite(self.gamma) or self.gamma <= 0.0:
            raise ValueError(f"gamma must be a positive finite number, got {self.gamma}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")

    def resolve_height(self, aspect_ratio: float) -> int:
        """Get the image height, deriving it from the aspect ratio if unset.

        Raises:
            ValueError: If the derived height exceeds the render target capacity.
        """
        if self.height is not None:
            return self.height
        height = image_height_for(self.width, aspect_ratio)
        if height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Derived height {height} exceeds maximum supported ({MAX_IMAGE_HEIGHT})"
            )
        return height

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderSettings":
        """Create settings from a dictionary, ignoring unknown keys."""
        known = {key: value for key, value in data.items() if key in cls.__dataclass_fields__}
        settings = cls(**known)
        settings.validate()
        return settings

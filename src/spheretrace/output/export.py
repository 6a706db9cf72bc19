"""Image export utilities for rendered images.

Rendered images are float arrays of shape (height, width, 3) with values in
[0, 1], already gamma corrected. This module converts them to 8-bit and
writes them with Pillow.

Supported formats (chosen by file suffix):
    - PNG (.png)
    - Binary PPM (.ppm)

Example:
    >>> from spheretrace.output.export import save_image
    >>> save_image(image, "output.png")
    >>> save_image(image, "output.ppm")
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Pillow format name for each supported suffix
SUPPORTED_FORMATS = {
    ".png": "PNG",
    ".ppm": "PPM",
}


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a [0, 1] float image to 8-bit.

    Each channel maps to int(255.999 * c), so 1.0 becomes 255 and every
    8-bit level covers an equal share of the interval.

    Args:
        image: Image array of shape (H, W, 3) with values in [0, 1].

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    clipped = np.clip(image.astype(np.float64), 0.0, 1.0)
    return (255.999 * clipped).astype(np.uint8)


def save_image(image: npt.NDArray[np.floating], filepath: str | Path) -> Path:
    """Save a [0, 1] float image as PNG or PPM.

    Args:
        image: Image array of shape (H, W, 3) with values in [0, 1].
        filepath: Output path. The suffix (.png or .ppm) selects the format.

    Returns:
        The path that was written.

    Raises:
        ValueError: If the suffix is not supported or the image does not
            have shape (H, W, 3).
    """
    path = Path(filepath)
    image_format = SUPPORTED_FORMATS.get(path.suffix.lower())
    if image_format is None:
        raise ValueError(
            f"Unsupported image format {path.suffix!r}; "
            f"expected one of {sorted(SUPPORTED_FORMATS)}"
        )
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Image must have shape (H, W, 3), got {image.shape}")

    pil_image = PILImage.fromarray(image_to_uint8(image))
    pil_image.save(path, format=image_format)
    return path


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
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))

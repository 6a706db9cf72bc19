"""Output module for writing rendered images."""

from .export import SUPPORTED_FORMATS, compute_rmse, image_to_uint8, save_image

__all__ = [
    "SUPPORTED_FORMATS",
    "save_image",
    "image_to_uint8",
    "compute_rmse",
]

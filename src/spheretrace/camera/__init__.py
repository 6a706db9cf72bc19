"""Camera module for primary ray generation.

Components:
    thin_lens: Thin-lens camera with jittered sampling and defocus blur
"""

from .thin_lens import (
    ThinLensCamera,
    get_camera_info,
    get_ray,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "setup_camera",
    "get_ray",
    "get_camera_info",
]

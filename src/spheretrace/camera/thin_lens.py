"""Thin-lens camera model for primary ray generation.

The camera supports:
- Position plus viewing direction with an up vector
- Vertical field of view and aspect ratio
- Sub-pixel jitter for anti-aliasing
- Defocus blur through a circular lens aperture

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: opposite to the viewing direction
- u: points right in the image plane
- v: points up in the image plane

The viewport is placed focus_distance in front of the camera. Pixel (0, 0)
is the top-left pixel and j grows downward, so rendered images need no
vertical flip.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.camera.thin_lens import ThinLensCamera, setup_camera
    >>>
    >>> camera = ThinLensCamera(
    ...     origin=(0.0, 0.0, 0.0),
    ...     look_direction=(0.0, 0.0, -1.0),
    ...     vfov=90.0,
    ...     aspect_ratio=16.0 / 9.0,
    ... )
    >>> setup_camera(camera, width=400, height=225)
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import Ray, make_ray
from spheretrace.core.sampler import next_float, random_in_unit_disk

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (perspective) camera.

    With lens_radius == 0 the camera is a pinhole and every primary ray
    starts at origin.

    Attributes:
        origin: Camera position in world space (x, y, z).
        look_direction: Viewing direction (need not be unit length).
        up: Up direction used to orient the camera (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        aspect_ratio: Viewport width divided by viewport height.
        lens_radius: Radius of the lens aperture. 0 disables defocus blur.
        focus_distance: Distance from the camera to the plane in perfect
            focus, where the viewport is placed.
    """

    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    look_direction: tuple[float, float, float] = (0.0, 0.0, -1.0)
    up: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    aspect_ratio: float = 16.0 / 9.0
    lens_radius: float = 0.0
    focus_distance: float = 1.0

    @classmethod
    def looking_at(
        cls,
        lookfrom: tuple[float, float, float],
        lookat: tuple[float, float, float],
        up: tuple[float, float, float] = (0.0, 1.0, 0.0),
        vfov: float = 90.0,
        aspect_ratio: float = 16.0 / 9.0,
        lens_radius: float = 0.0,
        focus_distance: float | None = None,
    ) -> "ThinLensCamera":
        """Create a camera at lookfrom aimed at lookat.

        Args:
            focus_distance: Distance of the focus plane. Defaults to the
                distance between lookfrom and lookat.
        """
        direction = tuple(b - a for a, b in zip(lookfrom, lookat))
        if focus_distance is None:
            focus_distance = math.sqrt(sum(c * c for c in direction))
        return cls(
            origin=lookfrom,
            look_direction=direction,
            up=up,
            vfov=vfov,
            aspect_ratio=aspect_ratio,
            lens_radius=lens_radius,
            focus_distance=focus_distance,
        )

    def validate(self) -> None:
        """Check the camera parameters.

        Raises:
            ValueError: If a parameter is out of range or the view vectors
                are degenerate.
        """
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov = {self.vfov} must be in (0, 180) degrees")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio = {self.aspect_ratio} must be positive")
        if self.lens_radius < 0.0:
            raise ValueError(f"lens_radius = {self.lens_radius} must be non-negative")
        if self.focus_distance <= 0.0:
            raise ValueError(f"focus_distance = {self.focus_distance} must be positive")

        direction = np.asarray(self.look_direction, dtype=np.float64)
        up = np.asarray(self.up, dtype=np.float64)
        if not np.all(np.isfinite(direction)) or np.linalg.norm(direction) == 0.0:
            raise ValueError(f"look_direction {self.look_direction} must be finite and non-zero")
        if not np.all(np.isfinite(up)) or np.linalg.norm(np.cross(up, direction)) == 0.0:
            raise ValueError(
                f"up {self.up} must be finite and not parallel to look_direction"
            )


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Viewport geometry
_viewport_upper_left = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel00_loc = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # One pixel to the right
_pixel_delta_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # One pixel down

_lens_radius = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (Python-side)
# =============================================================================


def setup_camera(camera: ThinLensCamera, width: int, height: int) -> None:
    """Initialize camera state for an image of the given size.

    Computes the camera basis and the viewport placement:

        viewport_height = 2 * tan(vfov / 2) * focus_distance
        viewport_width = aspect_ratio * viewport_height
        pixel_delta_u = viewport_width * u / width
        pixel_delta_v = -viewport_height * v / height
        upper_left = origin - focus_distance * w - viewport_u / 2 - viewport_v / 2
        pixel00_loc = upper_left + (pixel_delta_u + pixel_delta_v) / 2

    Args:
        camera: Camera configuration.
        width: Image width in pixels.
        height: Image height in pixels.

    Raises:
        ValueError: If the camera or image size is invalid.
    """
    camera.validate()
    if width < 1 or height < 1:
        raise ValueError(f"Image size ({width}x{height}) must be at least 1x1")

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h * camera.focus_distance
    viewport_width = camera.aspect_ratio * viewport_height

    origin = np.array(camera.origin, dtype=np.float64)
    up = np.array(camera.up, dtype=np.float64)

    # w points opposite the viewing direction
    w = -np.array(camera.look_direction, dtype=np.float64)
    w = w / np.linalg.norm(w)

    u = np.cross(up, w)
    u = u / np.linalg.norm(u)

    v = np.cross(w, u)

    # viewport_v runs down the image, so row 0 is the top row
    viewport_u = viewport_width * u
    viewport_v = -viewport_height * v

    pixel_delta_u = viewport_u / width
    pixel_delta_v = viewport_v / height

    upper_left = origin - camera.focus_distance * w - viewport_u / 2.0 - viewport_v / 2.0
    pixel00 = upper_left + 0.5 * (pixel_delta_u + pixel_delta_v)

    _camera_origin[None] = origin.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_upper_left[None] = upper_left.tolist()
    _pixel00_loc[None] = pixel00.tolist()
    _pixel_delta_u[None] = pixel_delta_u.tolist()
    _pixel_delta_v[None] = pixel_delta_v.tolist()
    _lens_radius[None] = camera.lens_radius


# =============================================================================
# Ray Generation (Taichi-side)
# =============================================================================


@ti.func
def get_ray(pixel_i: ti.i32, pixel_j: ti.i32, stream: tm.ivec2, jitter: ti.i32) -> Ray:
    """Generate a primary ray for one sample of a pixel.

    The sample position is pixel00_loc + (i + x) * du + (j + y) * dv, with
    (x, y) uniform in [0, 1)^2 when jitter is enabled and (0, 0), the pixel
    center, otherwise. With a non-zero lens radius the ray origin is moved
    to a random point on the lens disk and the direction is re-aimed at the
    sample position, so all rays of a sample still cross at the focus plane.

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = top).
        stream: The pixel stream supplying random draws.
        jitter: 1 to jitter inside the pixel, 0 for the pixel center.

    Returns:
        A Ray whose direction is target - origin (not normalized).
    """
    offset_x = 0.0
    offset_y = 0.0
    if jitter == 1:
        offset_x = next_float(stream)
        offset_y = next_float(stream)

    pixel_sample = (
        _pixel00_loc[None]
        + (ti.cast(pixel_i, ti.f32) + offset_x) * _pixel_delta_u[None]
        + (ti.cast(pixel_j, ti.f32) + offset_y) * _pixel_delta_v[None]
    )

    origin = _camera_origin[None]
    if _lens_radius[None] > 0.0:
        p = random_in_unit_disk(stream)
        origin = origin + _lens_radius[None] * (p.x * _camera_u[None] + p.y * _camera_v[None])

    return make_ray(origin, pixel_sample - origin)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, upper_left, pixel00_loc,
        pixel_delta_u, pixel_delta_v and lens_radius.
    """

    def _read(field: "ti.MatrixField") -> tuple[float, float, float]:
        value = field[None]
        return (float(value[0]), float(value[1]), float(value[2]))

    return {
        "origin": _read(_camera_origin),
        "u": _read(_camera_u),
        "v": _read(_camera_v),
        "w": _read(_camera_w),
        "upper_left": _read(_viewport_upper_left),
        "pixel00_loc": _read(_pixel00_loc),
        "pixel_delta_u": _read(_pixel_delta_u),
        "pixel_delta_v": _read(_pixel_delta_v),
        "lens_radius": float(_lens_radius[None]),
    }

"""Path tracing integrator for sphere scenes.

This module implements the rendering kernels: a depth-bounded path tracer
that bounces rays through the scene, multiplies the tints of the spheres
it hits, and picks up a sky gradient when the path escapes.

For a path that escapes after hitting spheres with tints c1, ..., cn the
sample color is (c1 * ... * cn) * background(direction), componentwise.
A path still bouncing after max_depth scattering events contributes black.

Samples are accumulated into a preallocated render target with a running
average. Finalizing the image validates that every averaged channel lies
in [0, 1] and applies gamma correction.

Key features:
    - Material dispatch (Lambertian, Metallic, Dielectric)
    - Per-pixel random streams for reproducible parallel rendering
    - Progressive sample accumulation for convergence
    - Fatal errors for degenerate ray directions and out-of-range colors

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.integrator import (
    ...     finalize_image, render_image, setup_render_target
    ... )
    >>> from spheretrace.scene.presets import create_three_spheres_scene
    >>> from spheretrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> setup_camera(camera, 400, 225)
    >>> setup_render_target(400, 225)
    >>> render_image(num_samples=100)
    >>> image = finalize_image(gamma=2.0)
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from spheretrace.camera.thin_lens import get_ray
from spheretrace.core.errors import GeometryError, RadiometricRangeError
from spheretrace.core.ray import is_valid_direction, normalize
from spheretrace.core.settings import DEFAULT_MAX_DEPTH, MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH
from spheretrace.materials.material import scatter
from spheretrace.scene.intersection import intersect_scene

# Type alias for 3D vectors
vec3 = tm.vec3

logger = logging.getLogger(__name__)

# =============================================================================
# Rendering Constants
# =============================================================================

# t_min and t_max for ray intersection
T_MIN = 0.001
T_MAX = 1000.0

# Sky gradient endpoints, blended by the ray's vertical direction
SKY_HORIZON_COLOR = vec3(1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = vec3(0.5, 0.7, 1.0)

# Float rounding allowed outside [0, 1] before a pixel is rejected
RANGE_TOLERANCE = 1e-5

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Color accumulation buffer indexed [i, j] with j = 0 the top row
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Sample count per pixel (preallocated to max size)
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Degenerate ray directions seen by the last kernel launch
_geometry_error_count = ti.field(dtype=ti.i32, shape=())
_geometry_error_pixel = ti.Vector.field(2, dtype=ti.i32, shape=())

# Output slot for single-sample kernels
_traced_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers. The buffers
    are preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT to avoid
    Taichi kernel recompilation.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum
            supported size.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions ({width}x{height}) must be at least 1x1")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers to zero."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)
    _geometry_error_count[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky color seen along an escaping ray.

    Blends white at the horizon into light blue overhead, using
    t = 0.5 * (unit_direction.y + 1).
    """
    unit_direction = normalize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - t) * SKY_HORIZON_COLOR + t * SKY_ZENITH_COLOR


@ti.func
def _record_geometry_error(stream: tm.ivec2):
    ti.atomic_add(_geometry_error_count[None], 1)
    _geometry_error_pixel[None] = stream


@ti.func
def ray_color(origin: vec3, direction: vec3, max_depth: ti.i32, stream: tm.ivec2) -> vec3:
    """Trace a path and return the color it carries back to its origin.

    Args:
        origin: The ray origin.
        direction: The ray direction (any non-zero length).
        max_depth: Maximum number of scattering events. 0 yields black.
        stream: The pixel stream supplying random draws.

    Returns:
        The product of the hit tints times the background color where the
        path escaped, or black if the depth bound was reached first. A
        non-finite or zero direction terminates the path with black and
        is recorded as a geometry error.
    """
    color = vec3(0.0, 0.0, 0.0)
    ray_origin = origin
    ray_direction = direction

    # Product of the tints of every sphere hit so far
    throughput = vec3(1.0, 1.0, 1.0)

    # Active flag for path continuation (no break inside ti.func loops)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            if is_valid_direction(ray_direction) == 0:
                _record_geometry_error(stream)
                active = 0
            else:
                hit_record = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

                if hit_record.hit == 0:
                    color = throughput * background_color(ray_direction)
                    active = 0
                else:
                    scattered_direction = scatter(
                        hit_record.material_id,
                        ray_direction,
                        hit_record.normal,
                        hit_record.front_face,
                        stream,
                    )
                    throughput *= hit_record.tint
                    ray_origin = hit_record.point
                    ray_direction = scattered_direction

    return color


@ti.func
def render_sample_impl(
    pixel_i: ti.i32, pixel_j: ti.i32, max_depth: ti.i32, jitter: ti.i32
) -> vec3:
    """Render one camera sample for a pixel using the pixel's own stream."""
    stream = tm.ivec2(pixel_i, pixel_j)
    ray = get_ray(pixel_i, pixel_j, stream, jitter)
    return ray_color(ray.origin, ray.direction, max_depth, stream)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_one_spp(width: ti.i32, height: ti.i32, max_depth: ti.i32, jitter: ti.i32):
    """Render one sample per pixel and fold it into the running average."""
    for i, j in ti.ndrange(width, height):
        color = render_sample_impl(i, j, max_depth, jitter)

        _sample_count[i, j] += 1
        n = _sample_count[i, j]

        # Running average: avg_n = avg_{n-1} + (x_n - avg_{n-1}) / n
        _color_buffer[i, j] += (color - _color_buffer[i, j]) / ti.cast(n, ti.f32)


@ti.kernel
def _render_single_pixel(pixel_i: ti.i32, pixel_j: ti.i32, max_depth: ti.i32, jitter: ti.i32):
    # Single-iteration loop keeps the path loop serial
    for _ in range(1):
        _traced_color[None] = render_sample_impl(pixel_i, pixel_j, max_depth, jitter)


@ti.kernel
def _trace_ray_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    max_depth: ti.i32,
):
    for _ in range(1):
        _traced_color[None] = ray_color(
            vec3(ox, oy, oz), vec3(dx, dy, dz), max_depth, tm.ivec2(0, 0)
        )


def _raise_on_geometry_error(report_pixel: bool = True) -> None:
    """Raise GeometryError if the last kernel met a degenerate direction."""
    count = int(_geometry_error_count[None])
    if count == 0:
        return
    _geometry_error_count[None] = 0
    pixel = None
    if report_pixel:
        value = _geometry_error_pixel[None]
        pixel = (int(value[0]), int(value[1]))
    location = f" at pixel {pixel}" if pixel is not None else ""
    raise GeometryError(
        f"Ray direction is non-finite or zero{location} ({count} occurrence(s))",
        pixel=pixel,
    )


def _read_traced_color() -> tuple[float, float, float]:
    color = _traced_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


# =============================================================================
# Public Rendering API
# =============================================================================


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> tuple[float, float, float]:
    """Trace a single ray through the current scene.

    Random draws come from the stream of pixel (0, 0).

    Args:
        origin: The ray origin.
        direction: The ray direction.
        max_depth: Maximum number of scattering events.

    Returns:
        Tuple of (R, G, B) linear color values.

    Raises:
        ValueError: If max_depth is negative.
        GeometryError: If the ray or one of its bounces has a non-finite
            or zero direction.
    """
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")

    _geometry_error_count[None] = 0
    _trace_ray_kernel(
        origin[0], origin[1], origin[2], direction[0], direction[1], direction[2], max_depth
    )
    _raise_on_geometry_error(report_pixel=False)
    return _read_traced_color()


def render_sample(
    pixel_i: int,
    pixel_j: int,
    max_depth: int = DEFAULT_MAX_DEPTH,
    jitter: bool = True,
) -> tuple[float, float, float]:
    """Render a single camera sample for a specific pixel.

    This is a Python-callable function for testing. For production rendering,
    use render_image() which processes all pixels in parallel.

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = top).
        max_depth: Maximum number of scattering events.
        jitter: Whether to jitter the sample inside the pixel.

    Returns:
        Tuple of (R, G, B) linear color values.

    Raises:
        RuntimeError: If render target has not been set up.
        GeometryError: If the path produced a degenerate direction.
    """
    _check_render_target_initialized()

    _geometry_error_count[None] = 0
    _render_single_pixel(pixel_i, pixel_j, max_depth, int(jitter))
    _raise_on_geometry_error()
    return _read_traced_color()


def render_image(
    num_samples: int = 1,
    max_depth: int = DEFAULT_MAX_DEPTH,
    jitter: bool = True,
) -> None:
    """Accumulate samples for every pixel of the render target.

    Can be called multiple times to add more samples for convergence.

    Args:
        num_samples: Number of samples to render per pixel.
        max_depth: Maximum number of scattering events per path.
        jitter: Whether to jitter samples inside each pixel.

    Raises:
        RuntimeError: If render target has not been set up.
        GeometryError: If any path produced a degenerate direction.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    for _ in range(num_samples):
        _render_one_spp(width, height, max_depth, int(jitter))
        _raise_on_geometry_error()


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_sample_count[0, 0])


def get_linear_image_numpy() -> npt.NDArray[np.float32]:
    """Get the averaged linear image as a NumPy array.

    No clamping is applied. The array shape is (height, width, 3) with the
    top image row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    full_image = _color_buffer.to_numpy()
    image = full_image[:width, :height, :]

    # Transpose from (width, height, 3) to (height, width, 3) for standard image format
    image = np.transpose(image, (1, 0, 2))

    return np.ascontiguousarray(image, dtype=np.float32)


def check_radiometric_range(image: npt.NDArray[np.float32]) -> None:
    """Verify that every channel of a linear image lies in [0, 1].

    Values within RANGE_TOLERANCE of the interval are accepted as float
    rounding.

    Args:
        image: Linear image of shape (height, width, 3).

    Raises:
        RadiometricRangeError: For the first pixel channel that is NaN,
            infinite, or outside the interval.
    """
    with np.errstate(invalid="ignore"):
        bad = (
            ~np.isfinite(image)
            | (image < -RANGE_TOLERANCE)
            | (image > 1.0 + RANGE_TOLERANCE)
        )
    if np.any(bad):
        row, col, channel = (int(k) for k in np.argwhere(bad)[0])
        raise RadiometricRangeError((col, row), channel, float(image[row, col, channel]))


def apply_gamma(image: npt.NDArray[np.float32], gamma: float) -> npt.NDArray[np.float32]:
    """Apply gamma correction, c -> c ** (1 / gamma).

    Values are clipped to [0, 1] first to remove rounding dust accepted by
    check_radiometric_range().

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    image = np.clip(image, 0.0, 1.0)
    if gamma != 1.0:
        image = np.power(image, 1.0 / gamma)
    return image.astype(np.float32)


def finalize_image(gamma: float = 2.0) -> npt.NDArray[np.float32]:
    """Validate the averaged image and apply gamma correction.

    Args:
        gamma: Gamma correction value.

    Returns:
        NumPy array of shape (height, width, 3) with values in [0, 1].

    Raises:
        RuntimeError: If render target has not been set up.
        RadiometricRangeError: If an averaged channel is outside [0, 1].
    """
    image = get_linear_image_numpy()
    check_radiometric_range(image)
    logger.debug("Finalized %dx%d image with gamma %s", image.shape[1], image.shape[0], gamma)
    return apply_gamma(image, gamma)

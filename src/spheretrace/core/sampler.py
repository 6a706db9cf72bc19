"""Per-pixel random streams for Monte Carlo sampling.

Every pixel of the render target owns an independent 32-bit random state
stored in a Taichi field. Kernels that parallelize over pixels draw only
from their own stream, so a render is reproducible for a given seed no
matter how the backend schedules the pixel loop.

A stream advances with a linear congruential step and its output is passed
through an integer hash before being turned into a float in [0, 1). For
tests the sampler can also replay a fixed list of uniform draws, which
makes scatter directions fully predictable.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.sampler import seed_sampler, next_float
    >>> seed_sampler(7)
    >>> @ti.kernel
    ... def draw() -> ti.f32:
    ...     return next_float(ti.math.ivec2(0, 0))
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import length_squared, normalize, vec3
from spheretrace.core.settings import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH

# Streams are preallocated for the largest supported image
MAX_STREAM_WIDTH = MAX_IMAGE_WIDTH
MAX_STREAM_HEIGHT = MAX_IMAGE_HEIGHT

# Upper bound on the number of values accepted by replay_sequence()
MAX_REPLAY_VALUES = 256

# Attempts made by the rejection samplers before giving up
MAX_REJECTION_ATTEMPTS = 100

_rng_state = ti.field(dtype=ti.u32, shape=(MAX_STREAM_WIDTH, MAX_STREAM_HEIGHT))
_seed = ti.field(dtype=ti.u32, shape=())

_replay_values = ti.field(dtype=ti.f32, shape=MAX_REPLAY_VALUES)
_replay_length = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Stream State
# =============================================================================


@ti.func
def _mix(value: ti.u32) -> ti.u32:
    """Integer avalanche hash used to decorrelate consecutive states."""
    x = value
    x ^= x >> ti.u32(16)
    x *= ti.u32(0x45D9F3B)
    x ^= x >> ti.u32(16)
    x *= ti.u32(0x45D9F3B)
    x ^= x >> ti.u32(16)
    return x


@ti.kernel
def _seed_streams(seed: ti.u32):
    for i, j in _rng_state:
        key = ti.cast(j, ti.u32) * ti.u32(MAX_STREAM_WIDTH) + ti.cast(i, ti.u32)
        _rng_state[i, j] = _mix(_mix(key) ^ _mix(seed))


def seed_sampler(seed: int) -> None:
    """Seed every pixel stream from a single integer seed.

    Seeding also leaves replay mode, so subsequent draws come from the
    pseudo-random generator.

    Args:
        seed: Any integer; only the low 32 bits are used.
    """
    seed_u32 = int(seed) & 0xFFFFFFFF
    _seed[None] = seed_u32
    _replay_length[None] = 0
    _seed_streams(seed_u32)


def get_seed() -> int:
    """Get the seed the streams were last initialized with."""
    return int(_seed[None])


def replay_sequence(values: Sequence[float]) -> None:
    """Make every stream return the given uniform draws cyclically.

    Each stream restarts at the first value, so a kernel that draws n
    values sees values[0], ..., values[n - 1] (wrapping around when n
    exceeds the sequence length).

    Args:
        values: Uniform draws, each in [0, 1).

    Raises:
        ValueError: If the sequence is empty, too long, or holds a value
            outside [0, 1).
    """
    if len(values) == 0:
        raise ValueError("Replay sequence must contain at least one value")
    if len(values) > MAX_REPLAY_VALUES:
        raise ValueError(
            f"Replay sequence length {len(values)} exceeds maximum "
            f"({MAX_REPLAY_VALUES})"
        )
    for index, value in enumerate(values):
        if not 0.0 <= value < 1.0:
            raise ValueError(f"Replay value {index} = {value} is outside [0, 1)")
        _replay_values[index] = value

    _replay_length[None] = len(values)
    # In replay mode the stream state is a cursor into the sequence
    _rng_state.fill(0)


def clear_replay() -> None:
    """Leave replay mode and reseed the streams with the current seed."""
    seed_sampler(get_seed())


def is_replaying() -> bool:
    """Check whether the streams are replaying a fixed sequence."""
    return _replay_length[None] > 0


# =============================================================================
# Sampling Functions (Taichi-side)
# =============================================================================


@ti.func
def next_float(stream: tm.ivec2) -> ti.f32:
    """Draw the next uniform float in [0, 1) from a pixel stream.

    Args:
        stream: The (i, j) pixel coordinate identifying the stream.

    Returns:
        A uniformly distributed value in [0, 1).
    """
    i = stream.x
    j = stream.y
    result = 0.0
    if _replay_length[None] > 0:
        cursor = _rng_state[i, j]
        index = ti.cast(cursor % ti.cast(_replay_length[None], ti.u32), ti.i32)
        result = _replay_values[index]
        _rng_state[i, j] = cursor + ti.u32(1)
    else:
        state = _rng_state[i, j] * ti.u32(1664525) + ti.u32(1013904223)
        _rng_state[i, j] = state
        # Keep 24 bits so the float conversion is exact
        result = ti.cast(_mix(state) >> ti.u32(8), ti.f32) * (1.0 / 16777216.0)
    return result


@ti.func
def random_in_unit_sphere(stream: tm.ivec2) -> vec3:
    """Generate a random point strictly inside the unit sphere.

    Draws points in the cube [-1, 1]^3 until one has squared length
    below 1.

    Args:
        stream: The pixel stream to draw from.

    Returns:
        A random point with length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            p = vec3(
                next_float(stream) * 2.0 - 1.0,
                next_float(stream) * 2.0 - 1.0,
                next_float(stream) * 2.0 - 1.0,
            )
            if length_squared(p) < 1.0:
                found = True
    return p


@ti.func
def random_unit_vector(stream: tm.ivec2) -> vec3:
    """Generate a random unit vector by normalizing a unit-sphere sample."""
    return normalize(random_in_unit_sphere(stream))


@ti.func
def random_in_unit_disk(stream: tm.ivec2) -> vec3:
    """Generate a random point inside the unit disk in the xy-plane.

    Used to sample the lens aperture for defocus blur.

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if not found:
            p = vec3(
                next_float(stream) * 2.0 - 1.0,
                next_float(stream) * 2.0 - 1.0,
                0.0,
            )
            if p.x * p.x + p.y * p.y < 1.0:
                found = True
    return p

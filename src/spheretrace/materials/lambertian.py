"""Lambertian (ideal diffuse) scattering.

A diffuse surface sends the outgoing ray from the hit point toward a random
point on the unit sphere centered one unit along the surface normal:

    target = point + normal + random_unit_vector()
    direction = target - point

The resulting directions always lie in the hemisphere of the normal.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.lambertian import scatter_lambertian
    >>> # Use within a Taichi kernel:
    >>> # direction = scatter_lambertian(normal, stream)
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import near_zero
from spheretrace.core.sampler import random_unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_lambertian(normal: vec3, stream: tm.ivec2) -> vec3:
    """Sample a diffuse scatter direction.

    Args:
        normal: The unit surface normal facing the incoming ray.
        stream: The pixel stream supplying the random draws.

    Returns:
        The unnormalized outgoing direction. Falls back to the normal when
        the sampled unit vector nearly cancels it.
    """
    scattered_direction = normal + random_unit_vector(stream)

    if near_zero(scattered_direction):
        scattered_direction = normal

    return scattered_direction

"""Metallic (specular reflective) scattering.

A metal reflects the unit incident direction about the surface normal,

    R = D - 2 (D . N) N

and, for fuzzy metals, perturbs the mirror direction by a random unit
vector scaled by the fuzz factor. Rays are never absorbed here; energy loss
comes from the sphere's tint.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # direction = scatter_metal(fuzz, incident_dir, normal, stream)
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import normalize, reflect
from spheretrace.core.sampler import random_unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_metal(
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    stream: tm.ivec2,
) -> vec3:
    """Compute the scattered direction for a metallic surface.

    Args:
        fuzz: Non-negative perturbation radius. 0 is a perfect mirror.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal facing the incoming ray.
        stream: The pixel stream supplying the random draws.

    Returns:
        The reflected direction. Unit length for fuzz == 0; otherwise the
        mirror direction plus fuzz times a random unit vector, not
        renormalized.
    """
    reflected = reflect(normalize(incident_direction), normal)

    # Perfect mirrors consume no random draws
    if fuzz > 0.0:
        reflected += fuzz * random_unit_vector(stream)

    return reflected

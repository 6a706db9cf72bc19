"""Dielectric (glass/water) scattering.

This module implements refraction through transparent materials:
- Snell's law refraction in vector form
- Total internal reflection when refraction is impossible
- Schlick's approximation for angle-dependent Fresnel reflectance

The refraction ratio depends on which side of the surface the ray comes
from:
- Entering (front face): 1 / refractive_index
- Exiting (back face): refractive_index

Schlick reflectance can be switched off globally, which makes refraction
deterministic whenever total internal reflection does not occur.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction = scatter_dielectric(1.5, incident_dir, normal, front_face, stream)
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import normalize, reflect, refract, schlick_reflectance
from spheretrace.core.sampler import next_float

# Type alias for 3D vectors
vec3 = tm.vec3

# Refractive index of the glass spheres in the preset scenes
IOR_GLASS = 1.5

# Zero-initialized, so Schlick reflectance is on unless switched off
_schlick_disabled = ti.field(dtype=ti.i32, shape=())


def set_schlick_reflectance(enabled: bool) -> None:
    """Enable or disable probabilistic Schlick reflection on dielectrics.

    Args:
        enabled: When False, dielectrics only reflect under total internal
            reflection and refract otherwise.
    """
    _schlick_disabled[None] = 0 if enabled else 1


def is_schlick_reflectance_enabled() -> bool:
    return _schlick_disabled[None] == 0


@ti.func
def will_total_internal_reflect(cos_theta: ti.f32, refraction_ratio: ti.f32) -> ti.i32:
    """Check whether refraction is impossible at this angle.

    Args:
        cos_theta: Cosine of the angle between the reversed incident
            direction and the normal.
        refraction_ratio: Ratio of refractive indices n_incident / n_transmitted.

    Returns:
        1 if refraction_ratio * sin_theta > 1, 0 otherwise.
    """
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    return refraction_ratio * sin_theta > 1.0


@ti.func
def scatter_dielectric(
    refractive_index: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    stream: tm.ivec2,
) -> vec3:
    """Compute the scattered direction for a dielectric surface.

    Args:
        refractive_index: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal facing the incoming ray.
        front_face: 1 if the ray enters the material, 0 if it exits.
        stream: The pixel stream supplying the Schlick draw.

    Returns:
        The reflected direction under total internal reflection (or a
        Schlick reflection), the refracted direction otherwise.
    """
    refraction_ratio = refractive_index
    if front_face == 1:
        refraction_ratio = 1.0 / refractive_index

    unit_direction = normalize(incident_direction)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if will_total_internal_reflect(cos_theta, refraction_ratio):
        scattered_direction = reflect(unit_direction, normal)
    else:
        reflect_instead = 0
        if _schlick_disabled[None] == 0:
            if schlick_reflectance(cos_theta, refraction_ratio) > next_float(stream):
                reflect_instead = 1

        if reflect_instead == 1:
            scattered_direction = reflect(unit_direction, normal)
        else:
            scattered_direction = refract(unit_direction, normal, refraction_ratio)

    return scattered_direction

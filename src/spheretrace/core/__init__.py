"""Core rendering module.

Components:
    ray: Ray data structure and vector utilities
    sampler: Per-pixel random streams and sampling helpers
    integrator: Depth-bounded path tracing and the render target
    progressive: Progressive accumulation and the render() entry point
    settings: Render configuration
    errors: Fatal rendering errors

Note: sampler, integrator and progressive declare Taichi fields and are NOT
imported here. Import them directly after ti.init(), e.g.
    from spheretrace.core.progressive import ProgressiveRenderer
"""

from .errors import GeometryError, RadiometricRangeError
from .ray import (
    Ray,
    is_valid_direction,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)
from .settings import RenderSettings, image_height_for

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length_squared",
    "normalize",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "is_valid_direction",
    "RenderSettings",
    "image_height_for",
    "GeometryError",
    "RadiometricRangeError",
]

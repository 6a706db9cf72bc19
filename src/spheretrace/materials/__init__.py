"""Materials module.

Components:
    material: Material variants, the GPU material table and scatter dispatch
    lambertian: Ideal diffuse scattering
    metal: Mirror reflection with optional fuzz
    dielectric: Refraction, total internal reflection and Schlick reflectance

Materials only choose the outgoing direction. Color attenuation comes from
the tint of the sphere that was hit.
"""

from .dielectric import (
    is_schlick_reflectance_enabled,
    scatter_dielectric,
    set_schlick_reflectance,
    will_total_internal_reflect,
)
from .lambertian import scatter_lambertian
from .material import (
    MAX_MATERIALS,
    Dielectric,
    Lambertian,
    Material,
    MaterialType,
    Metallic,
    add_material,
    clear_materials,
    get_material_count,
    material_from_dict,
    material_to_dict,
    scatter,
)
from .metal import scatter_metal

__all__ = [
    "MaterialType",
    "Material",
    "Lambertian",
    "Metallic",
    "Dielectric",
    "MAX_MATERIALS",
    "add_material",
    "clear_materials",
    "get_material_count",
    "material_from_dict",
    "material_to_dict",
    "scatter",
    "scatter_lambertian",
    "scatter_metal",
    "scatter_dielectric",
    "set_schlick_reflectance",
    "is_schlick_reflectance_enabled",
    "will_total_internal_reflect",
]

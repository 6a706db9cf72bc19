"""Material variants, the GPU material table and scatter dispatch.

A material is one of three immutable variants:

- Lambertian(): ideal diffuse reflection.
- Metallic(fuzz): mirror reflection perturbed by fuzz.
- Dielectric(refractive_index): refraction with total internal reflection.

Materials carry no color. Color absorption is a property of the sphere
(its tint), so one material value can be shared by many spheres.

On the GPU each registered material occupies one slot of a pair of fields:
its MaterialType tag and its single scalar parameter (fuzz or refractive
index). The scatter() function dispatches on the tag.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.material import Metallic, add_material
    >>> material_id = add_material(Metallic(fuzz=0.1))
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, ClassVar

import taichi as ti
import taichi.math as tm

from spheretrace.materials.dielectric import scatter_dielectric
from spheretrace.materials.lambertian import scatter_lambertian
from spheretrace.materials.metal import scatter_metal

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """Tag identifying a material variant.

    Used on the GPU to pick the scatter rule for a hit.
    """

    LAMBERTIAN = 0
    METALLIC = 1
    DIELECTRIC = 2


@dataclass(frozen=True)
class Lambertian:
    """Ideal diffuse material."""

    kind: ClassVar[MaterialType] = MaterialType.LAMBERTIAN

    @property
    def parameter(self) -> float:
        return 0.0


@dataclass(frozen=True)
class Metallic:
    """Reflective material.

    Attributes:
        fuzz: Radius of the random perturbation added to the mirror
            direction. 0 gives a perfect mirror.
    """

    fuzz: float = 0.0

    kind: ClassVar[MaterialType] = MaterialType.METALLIC

    def __post_init__(self) -> None:
        if not math.isfinite(self.fuzz) or self.fuzz < 0.0:
            raise ValueError(f"Fuzz = {self.fuzz} must be a non-negative finite number")

    @property
    def parameter(self) -> float:
        return self.fuzz


@dataclass(frozen=True)
class Dielectric:
    """Transparent refractive material.

    Attributes:
        refractive_index: Index of refraction relative to the surrounding
            medium. Values below 1 model a hollow bubble inside glass.
    """

    refractive_index: float = 1.5

    kind: ClassVar[MaterialType] = MaterialType.DIELECTRIC

    def __post_init__(self) -> None:
        if not math.isfinite(self.refractive_index) or self.refractive_index <= 0.0:
            raise ValueError(
                f"Refractive index = {self.refractive_index} must be a positive finite number"
            )

    @property
    def parameter(self) -> float:
        return self.refractive_index


Material = Lambertian | Metallic | Dielectric


# =============================================================================
# Serialization
# =============================================================================

_TYPE_NAMES = {
    MaterialType.LAMBERTIAN: "lambertian",
    MaterialType.METALLIC: "metallic",
    MaterialType.DIELECTRIC: "dielectric",
}


def material_to_dict(material: Material) -> dict[str, Any]:
    """Convert a material to a JSON-compatible dictionary."""
    data: dict[str, Any] = {"type": _TYPE_NAMES[material.kind]}
    if isinstance(material, Metallic):
        data["fuzz"] = material.fuzz
    elif isinstance(material, Dielectric):
        data["refractive_index"] = material.refractive_index
    return data


def material_from_dict(data: dict[str, Any]) -> Material:
    """Create a material from its dictionary form.

    Args:
        data: Dictionary with a "type" key and the variant's parameters.

    Returns:
        The decoded material.

    Raises:
        ValueError: If the type is unknown, a parameter is missing or a
            parameter is out of range.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Material entry must be an object, got {data!r}")
    material_type = data.get("type")
    try:
        if material_type == "lambertian":
            return Lambertian()
        if material_type == "metallic":
            return Metallic(fuzz=float(data.get("fuzz", 0.0)))
        if material_type == "dielectric":
            return Dielectric(refractive_index=float(data["refractive_index"]))
    except (KeyError, TypeError) as e:
        raise ValueError(f"Invalid {material_type} material: {data}") from e
    raise ValueError(f"Unknown material type: {material_type!r}")


# =============================================================================
# Material Table (GPU-side)
# =============================================================================

MAX_MATERIALS = 1024

# material_kinds[i] stores the MaterialType of material i
material_kinds = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_params[i] stores the fuzz or refractive index of material i
material_params = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear the material table.

    Resets the material count to zero. Existing slots are overwritten when
    new materials are added.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Append a material to the GPU material table.

    Args:
        material: The material to register.

    Returns:
        The material ID (table index).

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
    material_kinds[idx] = int(material.kind)
    material_params[idx] = material.parameter
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the table."""
    return int(num_materials[None])


@ti.func
def get_material_kind(material_id: ti.i32) -> ti.i32:
    """Get the MaterialType tag of a material.

    Returns:
        The tag as an integer, or -1 for an invalid material ID.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_kinds[material_id]
    return result


@ti.func
def scatter(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    stream: tm.ivec2,
) -> vec3:
    """Dispatch to the scatter rule of a material.

    Args:
        material_id: Index into the material table.
        incident_direction: The incoming ray direction.
        normal: The unit surface normal facing the incoming ray.
        front_face: 1 if the ray hit the outside of the surface.
        stream: The pixel stream supplying random draws.

    Returns:
        The outgoing ray direction (not necessarily unit length).
    """
    kind = get_material_kind(material_id)
    parameter = 0.0
    if kind >= 0:
        parameter = material_params[material_id]

    # Unknown materials scatter along the normal
    scattered_direction = normal

    if kind == int(MaterialType.LAMBERTIAN):
        scattered_direction = scatter_lambertian(normal, stream)
    elif kind == int(MaterialType.METALLIC):
        scattered_direction = scatter_metal(parameter, incident_direction, normal, stream)
    elif kind == int(MaterialType.DIELECTRIC):
        scattered_direction = scatter_dielectric(
            parameter, incident_direction, normal, front_face, stream
        )

    return scattered_direction

"""Scene manager coordinating spheres, materials and scene files.

The SceneManager is the Python-side owner of a scene. It keeps an ordered
list of spheres (insertion order is significant: ties in the nearest-hit
search go to the earlier sphere) and a table of distinct materials, and
mirrors both into the Taichi fields read by the renderer.

Scenes can be saved to and loaded from JSON:

    {
        "materials": [
            {"type": "lambertian"},
            {"type": "metallic", "fuzz": 0.1},
            {"type": "dielectric", "refractive_index": 1.5}
        ],
        "spheres": [
            {"center": [0, 0, -1], "radius": 0.5, "material_id": 0,
             "tint": [0.8, 0.3, 0.3]}
        ]
    }

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.materials.material import Lambertian
    >>> from spheretrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> scene.add_sphere((0, 0, -1), 0.5, Lambertian(), tint=(0.8, 0.3, 0.3))
    0
    >>> scene.save("scene.json")
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import taichi.math as tm

from spheretrace.materials.material import (
    Dielectric,
    Lambertian,
    Material,
    Metallic,
    add_material,
    clear_materials,
    get_material_count,
    material_from_dict,
    material_to_dict,
)
from spheretrace.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

# Type alias for 3D vectors
vec3 = tm.vec3

logger = logging.getLogger(__name__)


def _as_vector(value: Any, name: str) -> tuple[float, float, float]:
    """Convert a 3-element sequence to a tuple of finite floats."""
    try:
        x, y, z = (float(component) for component in value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a sequence of three numbers, got {value!r}") from e
    if not all(math.isfinite(component) for component in (x, y, z)):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return (x, y, z)


@dataclass(frozen=True)
class SphereInfo:
    """A sphere in the scene.

    Two spheres are equal when all their fields are equal. Sequences passed
    for center and tint are stored as tuples of floats.

    Attributes:
        center: The center of the sphere.
        radius: The radius of the sphere (positive).
        material: The material shared by this sphere.
        tint: Per-channel attenuation in [0, 1].
    """

    center: tuple[float, float, float]
    radius: float
    material: Material
    tint: tuple[float, float, float] = (1.0, 1.0, 1.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _as_vector(self.center, "Sphere center"))
        object.__setattr__(self, "tint", _as_vector(self.tint, "Sphere tint"))
        object.__setattr__(self, "radius", float(self.radius))

        if not math.isfinite(self.radius) or self.radius <= 0.0:
            raise ValueError(f"Sphere radius = {self.radius} must be positive and finite")
        for i, component in enumerate(self.tint):
            if component < 0.0 or component > 1.0:
                raise ValueError(
                    f"Tint component {i} = {component} is outside [0, 1]. "
                    "This would violate energy conservation."
                )
        if not isinstance(self.material, (Lambertian, Metallic, Dielectric)):
            raise ValueError(f"Unsupported material: {self.material!r}")


class SceneManager:
    """Owner of the spheres and materials of a scene.

    Creating a SceneManager clears the GPU scene and material tables; only
    one scene is live at a time.

    Attributes:
        materials: Distinct materials in registration order. A material's
            position in this list is its material ID.
        spheres: Spheres in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> scene.add_lambertian_sphere((0, -100.5, -1), 100, tint=(0.8, 0.8, 0.0))
        >>> scene.add_metallic_sphere((1, 0, -1), 0.5, tint=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> scene.add_dielectric_sphere((-1, 0, -1), 0.5, refractive_index=1.5)
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[Material] = []
        self.spheres: list[SphereInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_materials()
        self.materials.clear()
        self.spheres.clear()

    def clear(self) -> None:
        """Clear the entire scene (spheres and materials)."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Register a material, reusing the ID of an equal material.

        Args:
            material: The material to register.

        Returns:
            The material ID.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
        """
        material_id = self.get_material_id(material)
        if material_id is not None:
            return material_id

        material_id = add_material(material)
        self.materials.append(material)
        return material_id

    def get_material_id(self, material: Material) -> int | None:
        """Get the ID of a registered material, or None if not registered."""
        for material_id, registered in enumerate(self.materials):
            if registered == material:
                return material_id
        return None

    def get_material(self, material_id: int) -> Material | None:
        """Get a registered material by ID, or None for an invalid ID."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_count(self) -> int:
        """Get the number of distinct materials in the scene."""
        return get_material_count()

    # =========================================================================
    # Sphere Management
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material: Material,
        tint: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material: The material of the sphere.
            tint: Per-channel attenuation in [0, 1].

        Returns:
            The index of the added sphere.

        Raises:
            ValueError: If the radius, center or tint is invalid.
            RuntimeError: If the maximum number of spheres or materials is
                exceeded.
        """
        return self.add_sphere_info(SphereInfo(center, radius, material, tint))

    def add_sphere_info(self, info: SphereInfo) -> int:
        """Add an already validated sphere to the scene.

        Returns:
            The index of the added sphere.
        """
        if len(self.spheres) >= MAX_SPHERES:
            raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

        material_id = self.add_material(info.material)
        center_vec = vec3(info.center[0], info.center[1], info.center[2])
        sphere_index = add_sphere(center_vec, info.radius, material_id, info.tint)
        self.spheres.append(info)
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        tint: tuple[float, float, float],
    ) -> int:
        """Add a diffuse sphere."""
        return self.add_sphere(center, radius, Lambertian(), tint)

    def add_metallic_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        tint: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metallic sphere with the given fuzz."""
        return self.add_sphere(center, radius, Metallic(fuzz=fuzz), tint)

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        refractive_index: float = 1.5,
        tint: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> int:
        """Add a glass-like sphere. Untinted by default."""
        return self.add_sphere(center, radius, Dielectric(refractive_index), tint)

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene as a JSON-compatible dictionary."""
        return {
            "materials": [material_to_dict(material) for material in self.materials],
            "spheres": [
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": self.get_material_id(sphere.material),
                    "tint": list(sphere.tint),
                }
                for sphere in self.spheres
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SceneManager":
        """Build a scene from its dictionary form.

        Spheres are added in the order they appear, so the decoded scene
        resolves nearest-hit ties the same way as the encoded scene.

        Args:
            data: Dictionary with "materials" and "spheres" lists.

        Returns:
            A new SceneManager holding the decoded scene.

        Raises:
            ValueError: If the data is malformed or violates a sphere or
                material invariant.
        """
        if not isinstance(data, dict) or "spheres" not in data:
            raise ValueError("Scene data must be an object with a 'spheres' list")

        materials = [material_from_dict(entry) for entry in data.get("materials", [])]

        infos = []
        for index, entry in enumerate(data["spheres"]):
            try:
                material_id = int(entry["material_id"])
                center = entry["center"]
                radius = entry["radius"]
                tint = entry.get("tint", (1.0, 1.0, 1.0))
            except (KeyError, TypeError, AttributeError) as e:
                raise ValueError(f"Invalid sphere entry {index}: {entry!r}") from e
            if not 0 <= material_id < len(materials):
                raise ValueError(
                    f"Sphere {index} references unknown material_id {material_id}"
                )
            infos.append(SphereInfo(center, radius, materials[material_id], tint))

        scene = cls()
        for material in materials:
            scene.add_material(material)
        for info in infos:
            scene.add_sphere_info(info)

        logger.debug(
            "Decoded scene with %d spheres and %d materials",
            len(scene.spheres),
            len(scene.materials),
        )
        return scene

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize the scene to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "SceneManager":
        """Build a scene from a JSON string.

        Raises:
            ValueError: If the text is not valid JSON or not a valid scene.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Scene is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def save(self, filepath: str | Path) -> None:
        """Write the scene to a JSON file."""
        Path(filepath).write_text(self.to_json(), encoding="utf-8")
        logger.info("Saved scene with %d spheres to %s", len(self.spheres), filepath)

    @classmethod
    def load(cls, filepath: str | Path) -> "SceneManager":
        """Read a scene from a JSON file.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file does not contain a valid scene.
        """
        scene = cls.from_json(Path(filepath).read_text(encoding="utf-8"))
        logger.info("Loaded scene with %d spheres from %s", len(scene.spheres), filepath)
        return scene

    def __repr__(self) -> str:
        return (
            f"SceneManager(spheres={len(self.spheres)}, "
            f"materials={len(self.materials)})"
        )

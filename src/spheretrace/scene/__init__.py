"""Scene module.

Components:
    intersection: Sphere storage in Taichi fields and nearest-hit search
    manager: SceneManager, SphereInfo and JSON scene files
    presets: Canned scenes with matching cameras
"""

from .intersection import (
    MAX_SPHERES,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    get_sphere_count,
    intersect_scene,
)
from .manager import SceneManager, SphereInfo
from .presets import PRESETS, create_scene

__all__ = [
    "SceneHitRecord",
    "add_sphere",
    "clear_scene",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    "SceneManager",
    "SphereInfo",
    "PRESETS",
    "create_scene",
]

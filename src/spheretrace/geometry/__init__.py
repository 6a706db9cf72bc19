"""Geometry module for the sphere primitive.

Components:
    sphere: Sphere dataclass and ray-sphere intersection

The intersection routine is a Taichi function (@ti.func) so it can be
called from rendering kernels.
"""

from .sphere import HitRecord, Sphere, hit_sphere

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
]

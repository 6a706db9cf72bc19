"""Taichi-based path tracer for scenes of spheres.

This package computes images by simulating light transport through a scene
of diffuse, metallic and glass spheres lit by a sky gradient.

Subpackages:
    core: Ray utilities, random streams, integrator and rendering loop
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian, metallic and dielectric scattering
    scene: Scene storage, nearest-hit search, scene files and presets
    camera: Thin-lens camera with anti-aliasing and defocus blur
    output: Image export (PNG, PPM)

Taichi must be initialized before importing modules that declare fields
(everything except core.ray, core.errors and core.settings).
"""

__version__ = "0.1.0"

"""Pytest configuration for spheretrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate every field declared by the package modules.
    """
    ti.init(arch=ti.cpu)
    yield


@pytest.fixture(autouse=True)
def reset_renderer_state():
    """Reset scene, materials, render target and random streams around each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi is initialized before any field is declared
    from spheretrace.core.integrator import clear_render_target
    from spheretrace.core.sampler import seed_sampler
    from spheretrace.materials.dielectric import set_schlick_reflectance
    from spheretrace.materials.material import clear_materials
    from spheretrace.scene.intersection import clear_scene

    def _reset_all():
        clear_scene()
        clear_materials()
        clear_render_target()
        seed_sampler(0)
        set_schlick_reflectance(True)

    _reset_all()

    yield

    _reset_all()


@pytest.fixture
def fresh_scene():
    """Create a fresh SceneManager for a test."""
    from spheretrace.scene.manager import SceneManager

    scene = SceneManager()
    yield scene
    scene.clear()

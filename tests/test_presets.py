"""Tests for the preset scenes."""

import math

import pytest


class TestPresets:
    """Tests for building preset scenes by name."""

    def test_three_spheres(self):
        """Test the contents of the three sphere scene."""
        from spheretrace.materials.material import Dielectric
        from spheretrace.scene.presets import create_three_spheres_scene

        scene, camera = create_three_spheres_scene()

        assert scene.get_sphere_count() == 5
        # Ground and center sphere share the diffuse material
        assert scene.get_material_count() == 4
        assert Dielectric(1.0 / 1.5) in scene.materials
        assert camera.origin == (0.0, 0.0, 0.0)
        assert camera.lens_radius == 0.0

    def test_defocus_camera_focuses_on_target(self):
        """Test that the defocus preset focuses on the look-at point."""
        from spheretrace.scene.presets import create_defocus_scene

        scene, camera = create_defocus_scene()

        assert scene.get_sphere_count() == 5
        assert camera.lens_radius > 0.0
        assert camera.focus_distance == pytest.approx(math.sqrt(12.0))

    def test_metal_row(self):
        """Test that each fuzz level gets its own material."""
        from spheretrace.materials.material import Metallic
        from spheretrace.scene.presets import create_metal_row_scene

        scene, _ = create_metal_row_scene()

        assert scene.get_sphere_count() == 5
        assert scene.get_material_count() == 5
        assert Metallic(0.6) in scene.materials

    @pytest.mark.parametrize("name", ["three_spheres", "defocus", "metal_row"])
    def test_create_scene_by_name(self, name):
        """Test that every preset builds a valid camera."""
        from spheretrace.scene.presets import create_scene

        scene, camera = create_scene(name, aspect_ratio=2.0)

        camera.validate()
        assert camera.aspect_ratio == 2.0
        assert scene.get_sphere_count() > 0

    def test_unknown_preset(self):
        """Test that unknown preset names are rejected."""
        from spheretrace.scene.presets import create_scene

        with pytest.raises(ValueError, match="Unknown scene preset"):
            create_scene("cornell_box")

    def test_preset_renders_in_range(self):
        """Test a tiny render of the three sphere scene."""
        from spheretrace.core.progressive import render
        from spheretrace.core.settings import RenderSettings
        from spheretrace.scene.presets import create_three_spheres_scene

        _, camera = create_three_spheres_scene()
        image = render(camera, RenderSettings(width=16, samples_per_pixel=2, max_depth=4))

        assert image.shape == (9, 16, 3)

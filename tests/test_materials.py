"""Unit tests for materials.

Tests cover:
- Material value validation and dictionary round trips
- The GPU material table
- Lambertian, metallic and dielectric scattering rules
- Scatter dispatch by material ID

Note: Scatter functions sample with rejection loops and Taichi inlines
functions, so the test kernels wrap calls in an outer loop to keep them
out of the kernel's top-level scope.
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestMaterialValues:
    """Tests for the Python-side material variants."""

    def test_defaults(self):
        """Test default parameters of each variant."""
        from spheretrace.materials.material import (
            Dielectric,
            Lambertian,
            MaterialType,
            Metallic,
        )

        assert Lambertian().kind == MaterialType.LAMBERTIAN
        assert Metallic().fuzz == 0.0
        assert Metallic().kind == MaterialType.METALLIC
        assert Dielectric().refractive_index == 1.5
        assert Dielectric().kind == MaterialType.DIELECTRIC

    def test_equal_values_compare_equal(self):
        """Test that materials are compared by value."""
        from spheretrace.materials.material import Dielectric, Lambertian, Metallic

        assert Metallic(0.3) == Metallic(0.3)
        assert Metallic(0.3) != Metallic(0.4)
        assert Lambertian() == Lambertian()
        assert Dielectric(1.5) != Metallic(1.5)

    def test_invalid_fuzz(self):
        """Test that negative or non-finite fuzz is rejected."""
        from spheretrace.materials.material import Metallic

        with pytest.raises(ValueError, match="Fuzz"):
            Metallic(fuzz=-0.1)
        with pytest.raises(ValueError, match="Fuzz"):
            Metallic(fuzz=math.nan)

    def test_invalid_refractive_index(self):
        """Test that non-positive refractive indices are rejected."""
        from spheretrace.materials.material import Dielectric

        with pytest.raises(ValueError, match="Refractive index"):
            Dielectric(refractive_index=0.0)
        with pytest.raises(ValueError, match="Refractive index"):
            Dielectric(refractive_index=math.inf)

    def test_bubble_index_is_allowed(self):
        """Test that an index below 1 is a valid hollow bubble."""
        from spheretrace.materials.material import Dielectric

        assert Dielectric(refractive_index=1.0 / 1.5).refractive_index < 1.0


class TestMaterialSerialization:
    """Tests for material dictionary conversion."""

    def test_round_trip(self):
        """Test that each variant survives a dictionary round trip."""
        from spheretrace.materials.material import (
            Dielectric,
            Lambertian,
            Metallic,
            material_from_dict,
            material_to_dict,
        )

        for material in (Lambertian(), Metallic(0.25), Dielectric(1.33)):
            assert material_from_dict(material_to_dict(material)) == material

    def test_dictionary_form(self):
        """Test the dictionary layout of a metallic material."""
        from spheretrace.materials.material import Metallic, material_to_dict

        assert material_to_dict(Metallic(0.5)) == {"type": "metallic", "fuzz": 0.5}

    def test_unknown_type(self):
        """Test that unknown material types are rejected."""
        from spheretrace.materials.material import material_from_dict

        with pytest.raises(ValueError, match="Unknown material type"):
            material_from_dict({"type": "emissive"})

    def test_missing_parameter(self):
        """Test that a dielectric without refractive index is rejected."""
        from spheretrace.materials.material import material_from_dict

        with pytest.raises(ValueError, match="Invalid"):
            material_from_dict({"type": "dielectric"})

    def test_not_a_dictionary(self):
        """Test that non-object entries are rejected."""
        from spheretrace.materials.material import material_from_dict

        with pytest.raises(ValueError, match="must be an object"):
            material_from_dict(["metallic", 0.1])


class TestMaterialTable:
    """Tests for the GPU material table."""

    def test_add_material_returns_sequential_ids(self):
        """Test that IDs follow insertion order."""
        from spheretrace.materials.material import (
            Dielectric,
            Lambertian,
            Metallic,
            add_material,
            get_material_count,
        )

        assert add_material(Lambertian()) == 0
        assert add_material(Metallic(0.2)) == 1
        assert add_material(Dielectric(1.5)) == 2
        assert get_material_count() == 3

    def test_clear_materials(self):
        """Test that clearing resets the count."""
        from spheretrace.materials.material import (
            Lambertian,
            add_material,
            clear_materials,
            get_material_count,
        )

        add_material(Lambertian())
        clear_materials()
        assert get_material_count() == 0

    def test_material_kind_lookup(self):
        """Test tag lookup including invalid IDs."""
        from spheretrace.materials.material import (
            Dielectric,
            Lambertian,
            MaterialType,
            add_material,
            get_material_kind,
        )

        add_material(Lambertian())
        add_material(Dielectric())
        kinds = ti.field(dtype=ti.i32, shape=4)

        @ti.kernel
        def test_kernel():
            kinds[0] = get_material_kind(0)
            kinds[1] = get_material_kind(1)
            kinds[2] = get_material_kind(2)
            kinds[3] = get_material_kind(-1)

        test_kernel()
        assert kinds[0] == MaterialType.LAMBERTIAN
        assert kinds[1] == MaterialType.DIELECTRIC
        assert kinds[2] == -1
        assert kinds[3] == -1


class TestLambertianScatter:
    """Tests for diffuse scattering."""

    def test_directions_in_normal_hemisphere(self):
        """Test that diffuse directions never point below the surface."""
        from spheretrace.materials.lambertian import scatter_lambertian

        n = 256
        results = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                normal = ti.math.vec3(0.0, 0.0, 1.0)
                results[k] = scatter_lambertian(normal, ti.math.ivec2(k, 0))

        test_kernel()
        directions = results.to_numpy()
        assert np.all(directions[:, 2] >= -1e-6)
        assert np.all(np.linalg.norm(directions, axis=1) > 0.0)

    def test_degenerate_sample_falls_back_to_normal(self):
        """Test that a sample cancelling the normal yields the normal."""
        from spheretrace.core.sampler import replay_sequence
        from spheretrace.materials.lambertian import scatter_lambertian

        # Unit sphere sample (0, -0.5, 0) normalizes to exactly -normal
        replay_sequence([0.5, 0.25, 0.5])
        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                normal = ti.math.vec3(0.0, 1.0, 0.0)
                result[None] = scatter_lambertian(normal, ti.math.ivec2(0, 0))

        test_kernel()
        d = result[None]
        assert abs(d[0]) < 1e-6
        assert abs(d[1] - 1.0) < 1e-6
        assert abs(d[2]) < 1e-6


class TestMetalScatter:
    """Tests for metallic scattering."""

    def test_perfect_mirror(self):
        """Test mirror reflection with zero fuzz."""
        from spheretrace.materials.metal import scatter_metal

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                result[None] = scatter_metal(
                    0.0,
                    ti.math.vec3(1.0, -1.0, 0.0),
                    ti.math.vec3(0.0, 1.0, 0.0),
                    ti.math.ivec2(0, 0),
                )

        test_kernel()
        r = result[None]
        s = math.sqrt(0.5)
        assert abs(r[0] - s) < 1e-5
        assert abs(r[1] - s) < 1e-5
        assert abs(r[2]) < 1e-6

    def test_incident_direction_is_normalized(self):
        """Test that the incident length does not change the mirror direction."""
        from spheretrace.materials.metal import scatter_metal

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                result[None] = scatter_metal(
                    0.0,
                    ti.math.vec3(0.0, -5.0, 0.0),
                    ti.math.vec3(0.0, 1.0, 0.0),
                    ti.math.ivec2(0, 0),
                )

        test_kernel()
        r = result[None]
        assert abs(r[1] - 1.0) < 1e-6

    def test_fuzz_stays_within_radius(self):
        """Test that fuzzy reflections lie within fuzz of the mirror direction."""
        from spheretrace.materials.metal import scatter_metal

        n = 128
        fuzz = 0.3
        results = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                results[k] = scatter_metal(
                    fuzz,
                    ti.math.vec3(0.0, -1.0, 0.0),
                    ti.math.vec3(0.0, 1.0, 0.0),
                    ti.math.ivec2(k, 0),
                )

        test_kernel()
        directions = results.to_numpy()
        offsets = directions - np.array([0.0, 1.0, 0.0])
        distances = np.linalg.norm(offsets, axis=1)
        assert np.all(distances <= fuzz + 1e-5)
        assert np.any(distances > 1e-3)


def _scatter_dielectric(refractive_index, incident, normal, front_face):
    from spheretrace.materials.dielectric import scatter_dielectric

    result = ti.Vector.field(3, dtype=ti.f32, shape=())
    ix, iy, iz = incident
    nx, ny, nz = normal

    @ti.kernel
    def test_kernel():
        for _ in range(1):
            result[None] = scatter_dielectric(
                refractive_index,
                ti.math.vec3(ix, iy, iz),
                ti.math.vec3(nx, ny, nz),
                front_face,
                ti.math.ivec2(0, 0),
            )

    test_kernel()
    return result[None]


class TestDielectricScatter:
    """Tests for dielectric scattering."""

    def test_total_internal_reflection(self):
        """Test that a steep exit from glass reflects."""
        # Inside glass, sin_theta = 0.8 and 1.5 * 0.8 > 1
        d = _scatter_dielectric(1.5, (0.8, -0.6, 0.0), (0.0, 1.0, 0.0), 0)

        assert abs(d[0] - 0.8) < 1e-5
        assert abs(d[1] - 0.6) < 1e-5
        assert abs(d[2]) < 1e-6

    def test_snell_refraction_without_schlick(self):
        """Test refraction into glass at 45 degrees."""
        from spheretrace.materials.dielectric import set_schlick_reflectance

        set_schlick_reflectance(False)
        d = _scatter_dielectric(1.5, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0), 1)

        sin_t = math.sqrt(0.5) / 1.5
        assert abs(d[0] - sin_t) < 1e-5
        assert abs(d[1] + math.sqrt(1.0 - sin_t**2)) < 1e-5
        assert abs(d[2]) < 1e-6

    def test_normal_incidence_passes_through(self):
        """Test that a ray along the normal continues undeflected."""
        from spheretrace.materials.dielectric import set_schlick_reflectance

        set_schlick_reflectance(False)
        d = _scatter_dielectric(1.5, (0.0, 0.0, -1.0), (0.0, 0.0, 1.0), 1)

        assert abs(d[0]) < 1e-6
        assert abs(d[1]) < 1e-6
        assert abs(d[2] + 1.0) < 1e-6

    def test_schlick_draw_below_reflectance_reflects(self):
        """Test that a draw below the Schlick reflectance reflects."""
        from spheretrace.core.sampler import replay_sequence

        replay_sequence([0.0])
        d = _scatter_dielectric(1.5, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0), 1)

        s = math.sqrt(0.5)
        assert abs(d[0] - s) < 1e-5
        assert abs(d[1] - s) < 1e-5

    def test_schlick_draw_above_reflectance_refracts(self):
        """Test that a draw above the Schlick reflectance refracts."""
        from spheretrace.core.sampler import replay_sequence

        replay_sequence([0.999])
        d = _scatter_dielectric(1.5, (1.0, -1.0, 0.0), (0.0, 1.0, 0.0), 1)

        assert d[1] < 0.0

    def test_schlick_toggle(self):
        """Test enabling and disabling Schlick reflectance."""
        from spheretrace.materials.dielectric import (
            is_schlick_reflectance_enabled,
            set_schlick_reflectance,
        )

        assert is_schlick_reflectance_enabled()
        set_schlick_reflectance(False)
        assert not is_schlick_reflectance_enabled()


class TestScatterDispatch:
    """Tests for material dispatch by ID."""

    def test_dispatch_to_metal(self):
        """Test that a metallic material ID mirrors the ray."""
        from spheretrace.materials.material import (
            Lambertian,
            Metallic,
            add_material,
            scatter,
        )

        add_material(Lambertian())
        metal_id = add_material(Metallic(0.0))
        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                result[None] = scatter(
                    metal_id,
                    ti.math.vec3(0.0, -1.0, 0.0),
                    ti.math.vec3(0.0, 1.0, 0.0),
                    1,
                    ti.math.ivec2(0, 0),
                )

        test_kernel()
        r = result[None]
        assert abs(r[1] - 1.0) < 1e-6

    def test_invalid_id_scatters_along_normal(self):
        """Test that an unregistered material scatters along the normal."""
        from spheretrace.materials.material import scatter

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            for _ in range(1):
                result[None] = scatter(
                    5,
                    ti.math.vec3(1.0, -1.0, 0.0),
                    ti.math.vec3(0.0, 0.0, 1.0),
                    1,
                    ti.math.ivec2(0, 0),
                )

        test_kernel()
        r = result[None]
        assert abs(r[2] - 1.0) < 1e-6

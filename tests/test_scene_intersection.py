"""Unit tests for nearest-hit search over the scene's spheres."""

import taichi as ti


def _intersect(origin, direction, t_min=0.001, t_max=1000.0):
    """Run intersect_scene for a single ray and return the record as a dict."""
    from spheretrace.scene.intersection import intersect_scene

    hit = ti.field(dtype=ti.i32, shape=())
    t = ti.field(dtype=ti.f32, shape=())
    material_id = ti.field(dtype=ti.i32, shape=())
    tint = ti.Vector.field(3, dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())

    ox, oy, oz = origin
    dx, dy, dz = direction

    @ti.kernel
    def test_kernel():
        # Outer loop keeps the sphere loop out of the kernel's top level
        for _ in range(1):
            rec = intersect_scene(
                ti.math.vec3(ox, oy, oz), ti.math.vec3(dx, dy, dz), t_min, t_max
            )
            hit[None] = rec.hit
            t[None] = rec.t
            material_id[None] = rec.material_id
            tint[None] = rec.tint
            normal[None] = rec.normal

    test_kernel()
    return {
        "hit": hit[None],
        "t": t[None],
        "material_id": material_id[None],
        "tint": tint[None],
        "normal": normal[None],
    }


class TestSceneStorage:
    """Tests for adding and clearing spheres."""

    def test_add_sphere_returns_index(self):
        """Test that sphere indices follow insertion order."""
        from spheretrace.scene.intersection import add_sphere, get_sphere_count

        assert add_sphere(ti.math.vec3(0, 0, -1), 0.5) == 0
        assert add_sphere(ti.math.vec3(0, 0, -3), 0.5) == 1
        assert get_sphere_count() == 2

    def test_clear_scene(self):
        """Test that clearing removes all spheres."""
        from spheretrace.scene.intersection import (
            add_sphere,
            clear_scene,
            get_sphere_count,
        )

        add_sphere(ti.math.vec3(0, 0, -1), 0.5)
        clear_scene()
        assert get_sphere_count() == 0


class TestNearestHit:
    """Tests for nearest-hit selection."""

    def test_empty_scene_misses(self):
        """Test that a ray through an empty scene misses."""
        rec = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        assert rec["hit"] == 0
        assert rec["material_id"] == -1

    def test_nearest_sphere_wins(self):
        """Test that the nearer sphere is reported regardless of order."""
        from spheretrace.scene.intersection import add_sphere

        add_sphere(ti.math.vec3(0, 0, -5), 1.0, material_id=1, tint=(0.1, 0.2, 0.3))
        add_sphere(ti.math.vec3(0, 0, -2), 0.5, material_id=2, tint=(0.4, 0.5, 0.6))

        rec = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        assert rec["hit"] == 1
        assert abs(rec["t"] - 1.5) < 1e-5
        assert rec["material_id"] == 2
        assert abs(rec["tint"][0] - 0.4) < 1e-6
        assert abs(rec["tint"][1] - 0.5) < 1e-6
        assert abs(rec["tint"][2] - 0.6) < 1e-6

    def test_equal_distance_keeps_first_sphere(self):
        """Test that identical spheres resolve to the one added first."""
        from spheretrace.scene.intersection import add_sphere

        add_sphere(ti.math.vec3(0, 0, -2), 0.5, material_id=7)
        add_sphere(ti.math.vec3(0, 0, -2), 0.5, material_id=3)

        rec = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))

        assert rec["hit"] == 1
        assert rec["material_id"] == 7

    def test_respects_t_max(self):
        """Test that spheres beyond t_max are ignored."""
        from spheretrace.scene.intersection import add_sphere

        add_sphere(ti.math.vec3(0, 0, -10), 1.0)

        rec = _intersect((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), t_max=5.0)
        assert rec["hit"] == 0

    def test_ray_starting_inside_hits_far_side(self):
        """Test that a ray from inside a sphere hits its far wall."""
        from spheretrace.scene.intersection import add_sphere

        add_sphere(ti.math.vec3(0, 0, 0), 2.0, material_id=4)

        rec = _intersect((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))

        assert rec["hit"] == 1
        assert abs(rec["t"] - 2.0) < 1e-5
        assert abs(rec["normal"][1] + 1.0) < 1e-5

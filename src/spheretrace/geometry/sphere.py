"""Sphere primitive and ray-sphere intersection.

The intersection solves |o + t d - c|^2 = r^2 with the half-b form of the
quadratic formula and reports the nearer root that lies inside the closed
interval [t_min, t_max].

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere. Spheres with a non-positive
            radius are never hit.
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: The ray parameter of the intersection. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: The unit surface normal at the intersection, oriented
            against the incoming ray. Only valid if hit == 1.
        front_face: 1 if the ray arrived from outside the sphere, 0 if it
            travels outward from inside. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    With oc = origin - center the intersection satisfies
        a*t^2 + 2*half_b*t + c = 0
    where a = |d|^2, half_b = oc . d and c = |oc|^2 - r^2. The smaller root
    is tried first; if it lies below t_min the larger root is used. The
    chosen root is accepted when t_min <= t <= t_max.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Minimum accepted t value (avoids self-intersection).
        t_max: Maximum accepted t value.

    Returns:
        A HitRecord containing intersection information. Check hit field
        to determine if intersection occurred.
    """
    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if sphere.radius > 0.0:
        oc = ray_origin - sphere.center
        a = tm.dot(ray_direction, ray_direction)
        half_b = tm.dot(oc, ray_direction)
        c = tm.dot(oc, oc) - sphere.radius * sphere.radius
        discriminant = half_b * half_b - a * c

        if discriminant >= 0.0:
            sqrt_d = ti.sqrt(discriminant)

            root = (-half_b - sqrt_d) / a
            if root < t_min:
                root = (-half_b + sqrt_d) / a

            if root >= t_min and root <= t_max:
                did_hit = 1
                hit_t = root
                hit_point = ray_origin + root * ray_direction

                outward_normal = (hit_point - sphere.center) / sphere.radius

                # Ray travelling along the outward normal is leaving the sphere
                if tm.dot(ray_direction, outward_normal) > 0.0:
                    is_front_face = 0
                    hit_normal = -outward_normal
                else:
                    is_front_face = 1
                    hit_normal = outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )

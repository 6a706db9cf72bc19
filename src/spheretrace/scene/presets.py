"""Canned sphere scenes.

Each factory clears the current scene, builds a new one and returns it with
a camera framing it.

Scenes:
    three_spheres: A diffuse, a glass and a metal sphere on a large ground
        sphere. The glass sphere is hollow: an inner sphere with the
        reciprocal refractive index models the air bubble.
    defocus: The same arrangement seen from an elevated viewpoint through
        a lens with a visible depth of field.
    metal_row: Metal spheres of increasing fuzz, from mirror to brushed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.scene.presets import create_scene
    >>> scene, camera = create_scene("three_spheres")
"""

from collections.abc import Callable

from spheretrace.camera.thin_lens import ThinLensCamera
from spheretrace.materials.dielectric import IOR_GLASS
from spheretrace.scene.manager import SceneManager

GROUND_TINT = (0.8, 0.8, 0.0)
DIFFUSE_TINT = (0.1, 0.2, 0.5)
GOLD_TINT = (0.8, 0.6, 0.2)

SceneFactory = Callable[[float], tuple[SceneManager, ThinLensCamera]]


def _add_three_spheres(scene: SceneManager) -> None:
    scene.add_lambertian_sphere((0.0, -100.5, -1.0), 100.0, tint=GROUND_TINT)
    scene.add_lambertian_sphere((0.0, 0.0, -1.2), 0.5, tint=DIFFUSE_TINT)
    scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.5, refractive_index=IOR_GLASS)
    scene.add_dielectric_sphere((-1.0, 0.0, -1.0), 0.4, refractive_index=1.0 / IOR_GLASS)
    scene.add_metallic_sphere((1.0, 0.0, -1.0), 0.5, tint=GOLD_TINT, fuzz=0.0)


def create_three_spheres_scene(
    aspect_ratio: float = 16.0 / 9.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the diffuse/glass/metal sphere scene.

    Returns:
        Tuple of (scene, camera) with a pinhole camera at the origin looking
        down the negative z-axis.
    """
    scene = SceneManager()
    _add_three_spheres(scene)

    camera = ThinLensCamera(
        origin=(0.0, 0.0, 0.0),
        look_direction=(0.0, 0.0, -1.0),
        up=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
    )
    return scene, camera


def create_defocus_scene(
    aspect_ratio: float = 16.0 / 9.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the three sphere scene with a depth-of-field camera.

    The focus plane passes through the center sphere.
    """
    scene = SceneManager()
    _add_three_spheres(scene)

    camera = ThinLensCamera.looking_at(
        lookfrom=(-2.0, 2.0, 1.0),
        lookat=(0.0, 0.0, -1.0),
        up=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        lens_radius=0.5,
    )
    return scene, camera


def create_metal_row_scene(
    aspect_ratio: float = 16.0 / 9.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create a row of metal spheres with fuzz 0, 0.15, 0.3 and 0.6."""
    scene = SceneManager()
    scene.add_lambertian_sphere((0.0, -100.5, -1.5), 100.0, tint=(0.5, 0.5, 0.5))
    for index, fuzz in enumerate((0.0, 0.15, 0.3, 0.6)):
        x = -1.65 + 1.1 * index
        scene.add_metallic_sphere((x, 0.0, -1.5), 0.5, tint=(0.9, 0.9, 0.9), fuzz=fuzz)

    camera = ThinLensCamera.looking_at(
        lookfrom=(0.0, 0.5, 1.5),
        lookat=(0.0, 0.0, -1.5),
        vfov=60.0,
        aspect_ratio=aspect_ratio,
    )
    return scene, camera


PRESETS: dict[str, SceneFactory] = {
    "three_spheres": create_three_spheres_scene,
    "defocus": create_defocus_scene,
    "metal_row": create_metal_row_scene,
}


def create_scene(
    name: str, aspect_ratio: float = 16.0 / 9.0
) -> tuple[SceneManager, ThinLensCamera]:
    """Create a preset scene by name.

    Raises:
        ValueError: If the preset name is unknown.
    """
    try:
        factory = PRESETS[name]
    except KeyError:
        raise ValueError(
            f"Unknown scene preset {name!r}; expected one of {sorted(PRESETS)}"
        ) from None
    return factory(aspect_ratio)

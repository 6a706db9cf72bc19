"""Command-line renderer.

Renders a preset scene or a JSON scene file and writes a PNG or PPM image.

Usage:
    spheretrace-render [options]
    python -m spheretrace.cli [options]

Example:
    spheretrace-render --scene three_spheres --width 400 --samples 100 \\
        --output spheres.png
    spheretrace-render --scene-file my_scene.json --lookfrom 0 1 2 \\
        --lookat 0 0 -1 --output my_scene.ppm
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import time
from collections.abc import Sequence
from pathlib import Path

import taichi as ti
from tqdm import tqdm

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    # Preset names are listed here to keep Taichi field modules unimported
    presets = ("three_spheres", "defocus", "metal_row")

    parser = argparse.ArgumentParser(
        description="Render a scene of spheres with a path tracer.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--scene",
        choices=presets,
        default="three_spheres",
        help="Preset scene to render",
    )
    source.add_argument(
        "--scene-file",
        type=Path,
        default=None,
        help="JSON scene file to render instead of a preset",
    )
    parser.add_argument("--width", type=int, default=400, help="Image width in pixels")
    parser.add_argument(
        "--height",
        type=int,
        default=None,
        help="Image height in pixels (default: derived from the aspect ratio)",
    )
    parser.add_argument(
        "--samples", type=int, default=100, help="Number of samples per pixel"
    )
    parser.add_argument(
        "--max-depth", type=int, default=10, help="Maximum scattering events per path"
    )
    parser.add_argument("--gamma", type=float, default=2.0, help="Gamma correction value")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument(
        "--no-jitter",
        action="store_true",
        help="Sample pixel centers only (no anti-aliasing)",
    )
    parser.add_argument(
        "--lookfrom", type=float, nargs=3, default=None, help="Camera position"
    )
    parser.add_argument(
        "--lookat", type=float, nargs=3, default=None, help="Point the camera aims at"
    )
    parser.add_argument(
        "--vfov", type=float, default=None, help="Vertical field of view in degrees"
    )
    parser.add_argument(
        "--lens-radius", type=float, default=None, help="Lens aperture radius"
    )
    parser.add_argument(
        "--focus-distance", type=float, default=None, help="Distance of the focus plane"
    )
    parser.add_argument(
        "--batch-size", type=int, default=10, help="Samples per progress update"
    )
    parser.add_argument(
        "--output", type=Path, default=Path("render.png"), help="Output image (.png or .ppm)"
    )
    parser.add_argument(
        "--save-scene", type=Path, default=None, help="Also write the scene as JSON"
    )
    parser.add_argument(
        "--arch", choices=("cpu", "gpu"), default="gpu", help="Taichi backend"
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_camera(args: argparse.Namespace, camera):
    """Apply camera overrides from the command line.

    An explicit --height also fixes the aspect ratio so pixels stay square.
    """
    # Lazy imports to allow Taichi initialization first
    from spheretrace.camera.thin_lens import ThinLensCamera

    if args.lookfrom is not None or args.lookat is not None:
        lookfrom = tuple(args.lookfrom) if args.lookfrom is not None else camera.origin
        if args.lookat is not None:
            camera = ThinLensCamera.looking_at(
                lookfrom,
                tuple(args.lookat),
                up=camera.up,
                vfov=camera.vfov,
                aspect_ratio=camera.aspect_ratio,
                lens_radius=camera.lens_radius,
            )
        else:
            camera = dataclasses.replace(camera, origin=lookfrom)

    overrides = {}
    if args.vfov is not None:
        overrides["vfov"] = args.vfov
    if args.lens_radius is not None:
        overrides["lens_radius"] = args.lens_radius
    if args.focus_distance is not None:
        overrides["focus_distance"] = args.focus_distance
    if args.height is not None:
        overrides["aspect_ratio"] = args.width / args.height
    return dataclasses.replace(camera, **overrides)


def render_scene(args: argparse.Namespace) -> Path:
    """Render the scene selected by the arguments and save it.

    Taichi must be initialized before calling this function.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from spheretrace.camera.thin_lens import ThinLensCamera
    from spheretrace.core.progressive import render
    from spheretrace.core.settings import RenderSettings
    from spheretrace.output.export import save_image
    from spheretrace.scene.manager import SceneManager
    from spheretrace.scene.presets import create_scene

    if args.scene_file is not None:
        scene = SceneManager.load(args.scene_file)
        camera = ThinLensCamera()
        scene_name = str(args.scene_file)
    else:
        scene, camera = create_scene(args.scene)
        scene_name = args.scene
    camera = build_camera(args, camera)

    if args.save_scene is not None:
        scene.save(args.save_scene)

    settings = RenderSettings(
        width=args.width,
        height=args.height,
        samples_per_pixel=args.samples,
        max_depth=args.max_depth,
        gamma=args.gamma,
        seed=args.seed,
        jitter=not args.no_jitter,
        batch_size=args.batch_size,
    )
    settings.validate()
    height = settings.resolve_height(camera.aspect_ratio)

    if not args.quiet:
        print(
            f"Rendering {scene_name} ({settings.width}x{height}, "
            f"{settings.samples_per_pixel} spp)..."
        )

    start_time = time.time()
    with tqdm(
        total=settings.samples_per_pixel,
        unit="spp",
        desc="  Progress",
        disable=args.quiet,
    ) as progress_bar:

        def progress_callback(current: int, target: int) -> None:
            progress_bar.update(current - progress_bar.n)

        image = render(camera, settings, callback=progress_callback)

    output_file = save_image(image, args.output)

    total_time = time.time() - start_time
    if not args.quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.arch == "gpu":
        # Use GPU if available, fall back to CPU
        try:
            ti.init(arch=ti.gpu)
        except Exception:
            logger.warning("GPU backend unavailable, falling back to CPU")
            ti.init(arch=ti.cpu)
    else:
        ti.init(arch=ti.cpu)

    try:
        render_scene(args)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

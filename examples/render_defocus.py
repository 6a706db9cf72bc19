#!/usr/bin/env python3
"""Render the defocus preset with progressive refinement.

This script drives the library API directly: it builds the preset scene,
renders it in batches while saving an intermediate image after each batch,
and writes the final image as PPM.

Usage:
    python examples/render_defocus.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 320)
    --samples SAMPLES   Number of samples per pixel (default: 64)
    --batch-size SIZE   Samples per intermediate image (default: 16)
    --output OUTPUT     Output file path (default: defocus.ppm)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Render the defocus preset.")
    parser.add_argument("--width", type=int, default=320)
    parser.add_argument("--samples", type=int, default=64)
    parser.add_argument("--batch-size", type=int, default=16)
    parser.add_argument("--output", type=Path, default=Path("defocus.ppm"))
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    ti.init(arch=ti.cpu)

    # Import after Taichi initialization
    from spheretrace.camera.thin_lens import setup_camera
    from spheretrace.core.progressive import ProgressiveRenderer
    from spheretrace.core.sampler import seed_sampler
    from spheretrace.core.settings import image_height_for
    from spheretrace.scene.presets import create_defocus_scene

    _, camera = create_defocus_scene()
    height = image_height_for(args.width, camera.aspect_ratio)

    seed_sampler(0)
    setup_camera(camera, args.width, height)
    renderer = ProgressiveRenderer(args.width, height)

    preview_path = args.output.with_suffix(".preview.png")
    for current, target in renderer.render_progressive(args.samples, args.batch_size):
        renderer.save_image(preview_path)
        print(f"{current}/{target} spp -> {preview_path}")

    renderer.save_image(args.output)
    print(f"Saved to: {args.output.absolute()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""Render one of the preset scenes.

This script creates a preset scene, sets up the camera and light sampling,
and renders with progressive refinement.

Usage:
    python -m examples.render_cornell_box [options]

Options:
    --scene NAME        cornell, smoke or spheres (default: cornell)
    --width WIDTH       Image width in pixels (default: 256)
    --height HEIGHT     Image height in pixels (default: 256)
    --samples SAMPLES   Number of samples per pixel (default: 100)
    --output OUTPUT     Output file path (default: cornell_box.png)
    --batch-size SIZE   Samples per progress update (default: 10)
    --gpu               Try the GPU backend first
    --seed SEED         Random seed (default: 0)
    --no-bvh            Search the objects linearly instead of through a BVH
    --background NAME   sky or black (default: the scene's own)
    --quiet             Suppress progress output

Example:
    python -m examples.render_cornell_box --scene smoke --samples 200
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from pathtracer.config import BACKGROUNDS, RenderConfig, init_taichi

SCENES = ("cornell", "smoke", "spheres")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a preset scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=SCENES,
        default="cornell",
        help="Preset scene to render (default: cornell)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=256,
        help="Image width in pixels (default: 256)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=256,
        help="Image height in pixels (default: 256)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="cornell_box.png",
        help="Output file path (default: cornell_box.png)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--gpu",
        action="store_true",
        help="Try the GPU backend first",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed (default: 0)",
    )
    parser.add_argument(
        "--no-bvh",
        action="store_true",
        help="Search the objects linearly instead of through a BVH",
    )
    parser.add_argument(
        "--background",
        choices=BACKGROUNDS,
        default=None,
        help="Background for rays that leave the scene (default: the scene's own)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_scene(
    config: RenderConfig,
    scene_name: str = "cornell",
    use_bvh: bool = True,
    quiet: bool = False,
) -> Path:
    """Render a preset scene and save it to ``config.output_path``.

    Taichi must already be initialized.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from pathtracer.camera.thin_lens import setup_camera
    from pathtracer.core.progressive import ProgressiveRenderer
    from pathtracer.preview.export import save_png
    from pathtracer.scene.cornell_box import (
        CornellBoxParams,
        create_cornell_box_scene,
        create_cornell_smoke_scene,
        create_sky_spheres_scene,
    )

    if not quiet:
        print(f"Creating {scene_name} scene ({config.width}x{config.height})...")

    params = CornellBoxParams(use_bvh=use_bvh, seed=config.random_seed)
    # Each preset has its own background unless the config overrides it
    extra = {} if config.background is None else {"background": config.background}
    if scene_name == "cornell":
        scene, camera = create_cornell_box_scene(
            params, aspect_ratio=config.aspect_ratio, **extra
        )
    elif scene_name == "smoke":
        scene, camera = create_cornell_smoke_scene(
            params, aspect_ratio=config.aspect_ratio, **extra
        )
    else:
        scene, camera = create_sky_spheres_scene(
            aspect_ratio=config.aspect_ratio, use_bvh=use_bvh, **extra
        )

    setup_camera(camera)
    renderer = ProgressiveRenderer(config.width, config.height)

    if not quiet:
        print(f"Rendering {config.samples_per_pixel} samples per pixel...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    renderer.render(
        num_samples=config.samples_per_pixel,
        batch_size=config.batch_size,
        callback=progress_callback,
    )

    if not quiet:
        print()  # Newline after progress

    output_file = Path(config.output_path)
    save_png(renderer, str(output_file))

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    config = RenderConfig(
        width=args.width,
        height=args.height,
        samples_per_pixel=args.samples,
        batch_size=args.batch_size,
        arch="gpu" if args.gpu else "cpu",
        random_seed=args.seed,
        background=args.background,
        output_path=args.output,
    )

    try:
        backend = init_taichi(config)
        if not args.quiet:
            print(f"Using {backend} backend")
        render_scene(config, args.scene, use_bvh=not args.no_bvh, quiet=args.quiet)
        return 0
    except (ValueError, RuntimeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

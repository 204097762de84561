"""Command-line entry point: render a scene file to an image.

Usage:
    spheretrace [scene] [options]

Options:
    --output PATH       Output image path (default: the scene's film filename)
    --width WIDTH       Image width in pixels (default: 1200)
    --samples SAMPLES   Samples per pixel (default: 500)
    --max-depth DEPTH   Maximum bounces per path (default: 50)
    --seed SEED         Random seed (default: 0)
    --cpu               Force the CPU backend
    --quiet             Suppress progress output

Without a scene argument the file name is read from standard input.
Progress goes to standard error as "Scanlines remaining: N", then "Done.".

Example:
    spheretrace examples/scenes/three_spheres.xml --width 400 --samples 50
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti

SCENE_PROMPT = "Please enter the name of the XML scene file: "


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="spheretrace",
        description="Render a sphere scene with Monte Carlo path tracing.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "scene",
        nargs="?",
        default=None,
        help="Scene file (.xml or .json); prompted for when omitted",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output image path, .ppm or .png (default: the scene's film filename)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=1200,
        help="Image width in pixels (default: 1200)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=500,
        help="Number of samples per pixel (default: 500)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Maximum bounces per path (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed; equal seeds give identical images (default: 0)",
    )
    parser.add_argument(
        "--cpu",
        action="store_true",
        help="Use the CPU backend instead of trying the GPU first",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def prompt_scene_path() -> str:
    """Ask for the scene file name on standard input."""
    print(SCENE_PROMPT, end="", flush=True)
    line = sys.stdin.readline()
    return line.strip()


def init_taichi(force_cpu: bool = False, quiet: bool = False) -> None:
    """Initialise Taichi, preferring the GPU and falling back to the CPU."""
    if force_cpu:
        ti.init(arch=ti.cpu)
        return
    try:
        ti.init(arch=ti.gpu)
    except Exception:
        ti.init(arch=ti.cpu)
        if not quiet:
            print("GPU backend unavailable, using CPU", file=sys.stderr)


def render_scene_file(
    scene_path: str | Path,
    output_path: str | Path | None = None,
    width: int = 1200,
    samples_per_pixel: int = 500,
    max_depth: int = 50,
    seed: int = 0,
    quiet: bool = False,
) -> Path:
    """Load a scene file, render it and save the image.

    Taichi must already be initialised.

    Args:
        scene_path: Path to a .xml or .json scene.
        output_path: Image path; defaults to the scene's film filename.
        width: Image width in pixels; the height follows the 3:2 aspect.
        samples_per_pixel: Samples averaged per pixel.
        max_depth: Maximum bounces per path.
        seed: Random seed.
        quiet: If True, print nothing.

    Returns:
        Path to the saved image.

    Raises:
        OSError: If the scene cannot be read or the image cannot be written.
        ValueError: If the scene or settings are invalid.
    """
    # Lazy imports: these modules declare Taichi fields
    from spheretrace.camera.thin_lens import setup_camera
    from spheretrace.core.renderer import RenderSettings, ScanlineRenderer
    from spheretrace.output.export import save_image
    from spheretrace.scene.xml_loader import load_scene_file

    settings = RenderSettings(
        image_width=width,
        samples_per_pixel=samples_per_pixel,
        max_depth=max_depth,
        seed=seed,
    )
    settings.validate()

    scene = load_scene_file(scene_path, aspect_ratio=settings.aspect_ratio)
    if not quiet:
        for warning in scene.warnings:
            print(warning, file=sys.stderr)
    setup_camera(scene.camera)

    renderer = ScanlineRenderer(settings)

    def progress_callback(remaining: int, total: int) -> None:
        if not quiet:
            print(f"Scanlines remaining: {remaining}", file=sys.stderr, flush=True)

    start_time = time.time()
    renderer.render(callback=progress_callback)
    pixels = renderer.get_image_uint8()

    output_file = save_image(pixels, output_path if output_path else scene.output_name)

    if not quiet:
        print("Done.", file=sys.stderr)
        total_time = time.time() - start_time
        print(
            f"Saved {renderer.width}x{renderer.height} image to {output_file} "
            f"in {total_time:.2f}s",
            file=sys.stderr,
        )

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_args(argv)

    scene_path = args.scene if args.scene else prompt_scene_path()
    if not scene_path:
        print("Error: no scene file given", file=sys.stderr)
        return 1

    init_taichi(force_cpu=args.cpu, quiet=args.quiet)

    try:
        render_scene_file(
            scene_path,
            output_path=args.output,
            width=args.width,
            samples_per_pixel=args.samples,
            max_depth=args.max_depth,
            seed=args.seed,
            quiet=args.quiet,
        )
    except (OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""Render the Cornell box scene.

This script builds the Cornell box, accelerates it, renders it on a thread
pool and writes a tone mapped PNG.

Usage:
    python -m examples.render_cornell_box [options]

Options:
    --width WIDTH         Image width in pixels (default: 256)
    --height HEIGHT       Image height in pixels (default: 256)
    --samples SAMPLES     Strata per pixel side (default: 2)
    --depth DEPTH         Maximum path depth (default: 3)
    --threads THREADS     Worker threads (default: all cores)
    --seed SEED           Random seed (default: 0)
    --russian-roulette    Terminate paths with Russian roulette
    --blurry              Use blurry mirror reflections
    --point-light         Add a point light below the ceiling
    --tone-map METHOD     none, reinhard or exposure (default: reinhard)
    --gamma GAMMA         Output gamma (default: 2.2)
    --output OUTPUT       Output file path (default: cornell_box.png)
    --quiet               Only log warnings and errors
    --verbose             Log per-row progress

Example:
    python -m examples.render_cornell_box --width 128 --height 128 --samples 4
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from pathlib import Path

from src.pathtrace.core.render import render
from src.pathtrace.preview.export import save_png_from_array
from src.pathtrace.scene.cornell_box import CornellBoxParams, create_cornell_box_scene
from src.pathtrace.scene.intersection import accelerate
from src.pathtrace.scene.model import ConfigurationError, RenderSettings

logger = logging.getLogger("render_cornell_box")


class ProgressLogger:
    """Render progress callback that logs every `step` percent.

    render calls it from its worker threads, so rows can report out of
    order. Reports are serialized and never go backwards.
    """

    def __init__(self, step: int = 10):
        self.step = step
        self.last_percent = 0
        self.lock = threading.Lock()

    def __call__(self, done: int, total: int) -> None:
        percent = 100 * done // total
        with self.lock:
            if done != total and percent < self.last_percent + self.step:
                return
            self.last_percent = percent
            logger.info("Progress: %d/%d rows (%d%%)", done, total, percent)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the Cornell box scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=256, help="Image width in pixels (default: 256)")
    parser.add_argument("--height", type=int, default=256, help="Image height in pixels (default: 256)")
    parser.add_argument("--samples", type=int, default=2, help="Strata per pixel side (default: 2)")
    parser.add_argument("--depth", type=int, default=3, help="Maximum path depth (default: 3)")
    parser.add_argument("--threads", type=int, default=None, help="Worker threads (default: all cores)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument("--russian-roulette", action="store_true", help="Terminate paths with Russian roulette")
    parser.add_argument("--blurry", action="store_true", help="Use blurry mirror reflections")
    parser.add_argument("--point-light", action="store_true", help="Add a point light below the ceiling")
    parser.add_argument(
        "--tone-map",
        choices=("none", "reinhard", "exposure"),
        default="reinhard",
        help="Tone mapping method (default: reinhard)",
    )
    parser.add_argument("--gamma", type=float, default=2.2, help="Output gamma (default: 2.2)")
    parser.add_argument("--output", type=str, default="cornell_box.png", help="Output file path")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    verbosity.add_argument("--verbose", action="store_true", help="Log per-row progress")
    return parser.parse_args(argv)


def render_cornell_box(args: argparse.Namespace) -> Path:
    """Render the Cornell box with the given options and save it.

    Returns:
        Path to the saved image file.
    """
    settings = RenderSettings(
        image_width=args.width,
        image_height=args.height,
        image_samples=args.samples,
        path_max_depth=args.depth,
        russian_roulette=args.russian_roulette,
        blurry_reflection=args.blurry,
        threads=args.threads,
        seed=args.seed,
    )
    scene = create_cornell_box_scene(CornellBoxParams(point_light=args.point_light), settings)
    accelerate(scene)

    start_time = time.perf_counter()
    image = render(scene, progress=ProgressLogger())

    output_file = Path(args.output)
    save_png_from_array(image, output_file, tone_map=args.tone_map, gamma=args.gamma)
    logger.info("Saved to %s in %.2fs", output_file.absolute(), time.perf_counter() - start_time)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    level = logging.WARNING if args.quiet else logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        render_cornell_box(args)
    except (ConfigurationError, ValueError, OSError) as e:
        logger.error("Render failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

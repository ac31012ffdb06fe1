"""Parallel render driver.

The image is split into row-interleaved bands: with N workers, worker k
renders rows k, k + N, k + 2N, ... Each pixel draws its random numbers from
its own generator, seeded from the render seed and the pixel coordinates,
so a render is reproducible regardless of the worker count. Workers only
write their own rows of the shared image buffer.

The scene must have been prepared with scene.intersection.accelerate.

Example:
    >>> from src.pathtrace.core.render import render
    >>> from src.pathtrace.scene.cornell_box import create_cornell_box_scene
    >>> from src.pathtrace.scene.intersection import accelerate
    >>> from src.pathtrace.scene.model import RenderSettings
    >>>
    >>> scene = create_cornell_box_scene(settings=RenderSettings(image_width=32, image_height=32))
    >>> accelerate(scene)
    >>> image = render(scene)
    >>> image.shape
    (32, 32, 3)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import numpy.typing as npt

from src.pathtrace.camera.pinhole import get_ray, stratified_samples
from src.pathtrace.core.integrator import radiance
from src.pathtrace.scene.model import ConfigurationError, Scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]


class PixelRngs:
    """Per-pixel random generators for one image.

    The generator of pixel (i, j) is seeded from (seed, j, i), so every
    pixel has its own stream, independent of which worker renders it.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        seed: Base seed shared by the whole image.
    """

    def __init__(self, width: int, height: int, seed: int = 0) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.seed = seed

    def at(self, i: int, j: int) -> np.random.Generator:
        """Fresh generator for pixel (i, j); equal inputs give equal streams."""
        if not (0 <= i < self.width and 0 <= j < self.height):
            raise IndexError(f"Pixel ({i}, {j}) outside {self.width}x{self.height} image")
        return np.random.default_rng([self.seed, j, i])

    def __repr__(self) -> str:
        return f"PixelRngs(width={self.width}, height={self.height}, seed={self.seed})"


def make_pixel_rngs(width: int, height: int, seed: int = 0) -> PixelRngs:
    """Create the per-pixel generators of a width x height image."""
    return PixelRngs(width, height, seed)


def render_rows(
    scene: Scene,
    image: npt.NDArray[np.float64],
    rngs: PixelRngs,
    offset_row: int,
    skip_row: int,
    progress: Callable[[int], None] | None = None,
) -> None:
    """Render rows offset_row, offset_row + skip_row, ... into image.

    Rows are indexed bottom to top, matching the camera's v coordinate.
    Each pixel averages image_samples^2 stratified radiance samples;
    samples that are not finite count as black.

    Args:
        scene: An accelerated scene.
        image: Output buffer of shape (height, width, 3).
        rngs: Per-pixel generators.
        offset_row: First row to render.
        skip_row: Row stride, normally the worker count.
        progress: Called with the row index after each finished row.
    """
    settings = scene.settings
    width = settings.image_width
    height = settings.image_height
    samples = settings.image_samples
    weight = 1.0 / settings.pixel_samples
    for j in range(offset_row, height, skip_row):
        for i in range(width):
            rng = rngs.at(i, j)
            color = np.zeros(3)
            for u, v in stratified_samples(i, j, width, height, samples, rng):
                sample = radiance(scene, get_ray(scene.camera, u, v), rng)
                if np.all(np.isfinite(sample)):
                    color += sample
            image[j, i] = color * weight
        if progress is not None:
            progress(j)


def render(scene: Scene, progress: ProgressCallback | None = None) -> npt.NDArray[np.float64]:
    """Render a scene to a linear RGB image.

    Args:
        scene: An accelerated scene.
        progress: Optional callback receiving (rows_done, total_rows) after
            every finished row. It is called from worker threads.

    Returns:
        Float array of shape (image_height, image_width, 3); row 0 is the
        top of the image.

    Raises:
        ConfigurationError: If scene is None or is not ready for
            intersection. Errors raised by a worker abort the render.
    """
    if scene is None:
        raise ConfigurationError("Cannot render a None scene")
    settings = scene.settings
    width = settings.image_width
    height = settings.image_height
    workers = min(settings.thread_count(), height)
    image = np.zeros((height, width, 3), dtype=np.float64)
    rngs = make_pixel_rngs(width, height, settings.seed)

    logger.info(
        "Rendering %dx%d, %d samples/pixel, max depth %d, %d threads",
        width,
        height,
        settings.pixel_samples,
        settings.path_max_depth,
        workers,
    )

    lock = threading.Lock()
    rows_done = 0

    def row_finished(row: int) -> None:
        nonlocal rows_done
        with lock:
            rows_done += 1
            done = rows_done
        logger.debug("row %d done (%d/%d)", row, done, height)
        if progress is not None:
            progress(done, height)

    start = time.perf_counter()
    if workers == 1:
        render_rows(scene, image, rngs, 0, 1, row_finished)
    else:
        with ThreadPoolExecutor(max_workers=workers) as ex:
            futures = [ex.submit(render_rows, scene, image, rngs, tid, workers, row_finished) for tid in range(workers)]
            for future in futures:
                future.result()
    logger.info("Rendered %dx%d in %.2fs", width, height, time.perf_counter() - start)

    return np.ascontiguousarray(image[::-1])

"""Look-at pinhole camera and primary ray generation.

Camera rays all start at the eye point and pass through an image plane
placed one unit in front of it. The plane spans 2 tan(vfov / 2) vertically
and aspect_ratio times that horizontally, so there is no depth of field.
Pixels are supersampled with one jittered sample per stratum.

The camera frame comes from Frame.lookat and has basis (u, v, w):
- u: image right
- v: image up
- w: backward, from lookat to lookfrom

Normalized image coordinates run from (0, 0) at the bottom left corner to
(1, 1) at the top right corner.

Example:
    >>> from src.pathtrace.camera.pinhole import PinholeCamera, get_ray
    >>> camera = PinholeCamera((0.0, 0.0, 3.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 60.0, 1.5)
    >>> ray = get_ray(camera, 0.5, 0.5)
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass
from functools import cached_property

import numpy as np

from src.pathtrace.core.ray import Ray, make_ray, normalize, vec3
from src.pathtrace.geometry.frame import Frame

# =============================================================================
# Camera
# =============================================================================


@dataclass(frozen=True)
class PinholeCamera:
    """An immutable look-at pinhole camera.

    Attributes:
        lookfrom: Eye position.
        lookat: Point at the center of the view.
        vup: Approximate up direction; must not be parallel to the view.
        vfov: Full vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float

    def __post_init__(self) -> None:
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"Camera vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"Camera aspect_ratio must be positive, got {self.aspect_ratio}")
        # Validates lookfrom/lookat/vup eagerly
        _ = self.frame

    @cached_property
    def frame(self) -> Frame:
        """Camera frame: origin at lookfrom, looking down local -z."""
        return Frame.lookat(self.lookfrom, self.lookat, self.vup)

    @property
    def height(self) -> float:
        """Image plane height at unit distance."""
        return 2.0 * math.tan(math.radians(self.vfov) / 2.0)

    @property
    def width(self) -> float:
        """Image plane width at unit distance."""
        return self.aspect_ratio * self.height

    @property
    def origin(self) -> np.ndarray:
        return self.frame.o

    def basis(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """The camera's orthonormal basis (u right, v up, w backward)."""
        return self.frame.x, self.frame.y, self.frame.z


# =============================================================================
# Ray Generation
# =============================================================================


def get_ray(camera: PinholeCamera, u: float, v: float) -> Ray:
    """Camera ray through image point (u, v), with (0, 0) the bottom left corner.

    Returns:
        A world-space ray from the eye with a unit direction.
    """
    local_dir = normalize(vec3((u - 0.5) * camera.width, (v - 0.5) * camera.height, -1.0))
    return camera.frame.transform_ray(make_ray(vec3(0.0, 0.0, 0.0), local_dir))


def stratified_samples(
    i: int, j: int, width: int, height: int, samples: int, rng: np.random.Generator
) -> Iterator[tuple[float, float]]:
    """Jittered image coordinates for pixel (i, j).

    The pixel is split into a samples x samples grid and one uniformly
    jittered point is drawn in each cell.

    Args:
        i: Pixel column (0 = left).
        j: Pixel row (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Number of strata per side.
        rng: The pixel's random generator.

    Yields:
        (u, v) image coordinates in [0, 1].
    """
    for jj in range(samples):
        for ii in range(samples):
            u = (i + (ii + rng.random()) / samples) / width
            v = (j + (jj + rng.random()) / samples) / height
            yield u, v


"""Image textures and environment maps.

A Texture wraps an (H, W, 3) float array. Texture coordinates follow the
OpenGL convention: u runs left to right along columns, v runs bottom to top
along rows, so row 0 of the array is the bottom of the image. Use
preview.export.load_texture to read an image file into this layout.

Lookups are bilinear. Outside [0, 1] coordinates are either clamped to the
border or wrapped (tiled).

Example:
    >>> import numpy as np
    >>> from src.pathtrace.materials.texture import Texture, lookup_scaled_texture
    >>> txt = Texture(np.ones((2, 2, 3)))
    >>> lookup_scaled_texture(np.array([0.5, 0.5, 0.5]), txt, (0.3, 0.7))
    array([0.5, 0.5, 0.5])
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from src.pathtrace.core.ray import Vec3, as_vec3


@dataclass(frozen=True)
class Texture:
    """An RGB image addressed by texture coordinates.

    Attributes:
        image: Float array of shape (height, width, 3); row 0 is v = 0.
    """

    image: npt.NDArray[np.float64]

    def __post_init__(self) -> None:
        image = np.asarray(self.image, dtype=np.float64)
        if image.ndim != 3 or image.shape[2] != 3 or image.shape[0] == 0 or image.shape[1] == 0:
            raise ValueError(f"Texture image must have shape (H, W, 3), got {image.shape}")
        object.__setattr__(self, "image", image)

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    def at(self, i: int, j: int) -> Vec3:
        """Texel at column i, row j."""
        return self.image[j, i]


def lookup_texture(texture: Texture, uv: tuple[float, float], tile: bool = False) -> Vec3:
    """Bilinearly interpolated texture value at uv.

    Args:
        texture: The texture to sample.
        uv: Texture coordinate.
        tile: Wrap out-of-range coordinates instead of clamping them.

    Returns:
        The filtered RGB value.
    """
    w = texture.width
    h = texture.height
    x = uv[0] * w
    y = uv[1] * h
    i = math.floor(x)
    j = math.floor(y)
    s = x - i
    t = y - j
    i1 = i + 1
    j1 = j + 1
    if tile:
        i, i1 = i % w, i1 % w
        j, j1 = j % h, j1 % h
    else:
        i, i1 = min(max(i, 0), w - 1), min(max(i1, 0), w - 1)
        j, j1 = min(max(j, 0), h - 1), min(max(j1, 0), h - 1)
    return (
        texture.at(i, j) * (1 - s) * (1 - t)
        + texture.at(i, j1) * (1 - s) * t
        + texture.at(i1, j) * s * (1 - t)
        + texture.at(i1, j1) * s * t
    )


def lookup_scaled_texture(
    value: Vec3, texture: Texture | None, uv: tuple[float, float], tile: bool = False
) -> Vec3:
    """Scale a material value by its texture, or return it unchanged if untextured."""
    if texture is None:
        return as_vec3(value)
    return as_vec3(value) * lookup_texture(texture, uv, tile)


def env_uv(direction: Vec3) -> tuple[float, float]:
    """Latitude-longitude coordinates of a unit direction, around the y axis."""
    u = math.atan2(direction[0], direction[2]) / (2.0 * math.pi)
    v = 1.0 - math.acos(max(-1.0, min(1.0, float(direction[1])))) / math.pi
    return u, v


def eval_env(ke: Vec3, ke_txt: Texture | None, direction: Vec3) -> Vec3:
    """Environment radiance seen along a direction.

    Args:
        ke: Background color.
        ke_txt: Optional latitude-longitude environment map scaling ke.
        direction: Unit direction of the escaping ray.

    Returns:
        The background color, or the tiled environment lookup scaled by it.
    """
    if ke_txt is None:
        return as_vec3(ke)
    return lookup_scaled_texture(ke, ke_txt, env_uv(direction), tile=True)

"""Camera module for ray generation.

Components:
    pinhole: Perspective pinhole camera built from look-at parameters

The camera maps normalized image coordinates (u, v) in [0, 1]^2 to world
space rays. Pixel sampling is stratified: each pixel is divided into an
image_samples x image_samples grid with one jittered sample per cell.
"""

from .pinhole import PinholeCamera, get_ray, stratified_samples

__all__ = [
    "PinholeCamera",
    "get_ray",
    "stratified_samples",
]

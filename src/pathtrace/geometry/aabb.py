"""Axis-aligned bounding boxes and the ray slab test.

Bounding boxes are used by the BVH builder to partition primitives and by
the BVH traversal to reject whole subtrees. A box is a min/max corner pair;
an "empty" box has min = +inf and max = -inf so that it is the identity of
the union operation.

Example:
    >>> from src.pathtrace.core.ray import Ray, vec3
    >>> from src.pathtrace.geometry.aabb import BoundingBox, intersect_bbox
    >>> box = BoundingBox(vec3(-1, -1, -1), vec3(1, 1, 1))
    >>> intersect_bbox(Ray(vec3(0, 0, 5), vec3(0, 0, -1)), box)
    True
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from src.pathtrace.core.ray import RAY_EPSILON, Ray, Vec3, as_vec3


def _inf3() -> Vec3:
    return np.full(3, np.inf)


def _neg_inf3() -> Vec3:
    return np.full(3, -np.inf)


@dataclass
class BoundingBox:
    """An axis-aligned box given by its min and max corners.

    Attributes:
        min: Componentwise minimum corner.
        max: Componentwise maximum corner.
    """

    min: Vec3 = field(default_factory=_inf3)
    max: Vec3 = field(default_factory=_neg_inf3)

    def __post_init__(self) -> None:
        self.min = as_vec3(self.min)
        self.max = as_vec3(self.max)

    @classmethod
    def from_points(cls, points: npt.ArrayLike) -> BoundingBox:
        """Smallest box containing every point in an (N, 3) array."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(pts) == 0:
            return cls()
        return cls(pts.min(axis=0), pts.max(axis=0))

    @classmethod
    def union_all(cls, boxes: Iterable[BoundingBox]) -> BoundingBox:
        result = cls()
        for box in boxes:
            result = result.union(box)
        return result

    def is_empty(self) -> bool:
        return bool(np.any(self.min > self.max))

    def union(self, other: BoundingBox) -> BoundingBox:
        return BoundingBox(np.minimum(self.min, other.min), np.maximum(self.max, other.max))

    def expand(self, point: npt.ArrayLike) -> BoundingBox:
        p = as_vec3(point)
        return BoundingBox(np.minimum(self.min, p), np.maximum(self.max, p))

    def center(self) -> Vec3:
        return 0.5 * (self.min + self.max)

    def size(self) -> Vec3:
        if self.is_empty():
            return np.zeros(3)
        return self.max - self.min

    def extent_sum(self) -> float:
        """Sum of the three side lengths (used by the min-extent split policy)."""
        return float(np.sum(self.size()))

    def largest_axis(self) -> int:
        return int(np.argmax(self.size()))

    def inflate(self, eps: float = RAY_EPSILON) -> BoundingBox:
        """Grow the box by a relative factor (1 + eps) about its center plus eps.

        Flat boxes (a quad or an axis-aligned triangle) get a non-zero
        thickness this way, so coplanar primitives are not lost to
        floating-point error in the slab test.
        """
        if self.is_empty():
            return BoundingBox(self.min, self.max)
        c = self.center()
        half = 0.5 * (self.max - self.min) * (1.0 + eps) + eps
        return BoundingBox(c - half, c + half)

    def contains(self, other: BoundingBox, tol: float = 0.0) -> bool:
        """Whether other lies entirely inside this box (empty boxes always do)."""
        if other.is_empty():
            return True
        return bool(np.all(self.min <= other.min + tol) and np.all(other.max <= self.max + tol))

    def corners(self) -> npt.NDArray[np.float64]:
        """The eight corners as an (8, 3) array."""
        lo, hi = self.min, self.max
        return np.array(
            [[x, y, z] for x in (lo[0], hi[0]) for y in (lo[1], hi[1]) for z in (lo[2], hi[2])],
            dtype=np.float64,
        )


def intersect_bbox_interval(ray: Ray, box: BoundingBox) -> tuple[bool, float, float]:
    """Slab test returning the overlap of the ray interval with the box.

    For each axis the entry and exit parameters of the two box planes are
    intersected with the ray's own [tmin, tmax]. A zero direction component
    is handled explicitly: the ray is inside that slab for every t if its
    origin lies between the planes and outside it for every t otherwise.

    Args:
        ray: The query ray.
        box: The box to test.

    Returns:
        Tuple of (hit, t0, t1) where [t0, t1] is the overlap interval. t0 and
        t1 are only meaningful when hit is True.
    """
    t0 = ray.tmin
    t1 = ray.tmax
    if box.is_empty():
        return False, t0, t1
    for axis in range(3):
        o = ray.origin[axis]
        d = ray.direction[axis]
        lo = box.min[axis]
        hi = box.max[axis]
        if d == 0.0:
            if o < lo or o > hi:
                return False, t0, t1
            continue
        inv_d = 1.0 / d
        t_near = (lo - o) * inv_d
        t_far = (hi - o) * inv_d
        if t_near > t_far:
            t_near, t_far = t_far, t_near
        t0 = max(t0, t_near)
        t1 = min(t1, t_far)
        if t0 > t1:
            return False, t0, t1
    return True, float(t0), float(t1)


def intersect_bbox(ray: Ray, box: BoundingBox) -> bool:
    """Whether the ray interval [tmin, tmax] overlaps the box."""
    return intersect_bbox_interval(ray, box)[0]

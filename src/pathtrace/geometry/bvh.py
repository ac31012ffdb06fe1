"""Bounding Volume Hierarchy over an indexed primitive set.

The builder takes one bounding box per primitive (typically per mesh
triangle) and produces a flat node array plus a permutation of primitive
indices. Leaves reference contiguous [start, end) ranges of the
permutation; internal nodes reference their two children by node index.
Node 0 is the root. The tree never stores geometry, so it is agnostic to
what it indexes: traversal receives a callback that tests "primitive i
against this ray".

Splitting always happens at the index median of the range after sorting by
box center along the chosen axis, which keeps the depth at O(log N). Three
axis policies are available:

    depth: cycle x, y, z by tree depth (kd-tree style)
    max_extent: the axis along which the range's box is largest
    min_extent_sum: the axis whose median split minimizes the summed side
        lengths of the two child boxes (found by trial sorting)

Example:
    >>> from src.pathtrace.geometry.aabb import BoundingBox
    >>> from src.pathtrace.geometry.bvh import make_accelerator
    >>> boxes = [BoundingBox((i, 0, 0), (i + 1, 1, 1)) for i in range(10)]
    >>> bvh = make_accelerator(boxes)
    >>> bvh.nodes[0].leaf, len(bvh.prims)
    (False, 10)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, TypeVar

import numpy as np

from src.pathtrace.core.ray import RAY_EPSILON, Ray

from .aabb import BoundingBox, intersect_bbox, intersect_bbox_interval

# Maximum number of primitives stored in a leaf
BVH_LEAF_SIZE = 4


class SplitPolicy(str, Enum):
    """How the builder chooses the split axis of an internal node."""

    DEPTH = "depth"
    MAX_EXTENT = "max_extent"
    MIN_EXTENT_SUM = "min_extent_sum"


@dataclass
class BVHNode:
    """A BVH node.

    Attributes:
        leaf: Whether this node is a leaf.
        bbox: Union of the (inflated) boxes of every primitive beneath it.
        start: First permutation index of a leaf's range.
        end: One past the last permutation index of a leaf's range.
        n0: Index of the first child of an internal node.
        n1: Index of the second child of an internal node.
    """

    leaf: bool = True
    bbox: BoundingBox = field(default_factory=BoundingBox)
    start: int = 0
    end: int = 0
    n0: int = -1
    n1: int = -1

    @property
    def count(self) -> int:
        return self.end - self.start if self.leaf else 0


@dataclass
class BVHAccelerator:
    """Flat node array plus primitive permutation.

    Attributes:
        nodes: Node arena; node 0 is the root.
        prims: Permutation of range(N); leaves index into it.
        leaf_size: Leaf threshold used at build time.
    """

    nodes: list[BVHNode]
    prims: list[int]
    leaf_size: int = BVH_LEAF_SIZE

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def bbox(self) -> BoundingBox:
        return self.nodes[0].bbox

    def leaves(self) -> Iterator[BVHNode]:
        return (node for node in self.nodes if node.leaf)

    def depth(self, nodeid: int = 0) -> int:
        """Number of levels below and including nodeid."""
        node = self.nodes[nodeid]
        if node.leaf:
            return 1
        return 1 + max(self.depth(node.n0), self.depth(node.n1))


# =============================================================================
# Construction
# =============================================================================


class _Builder:
    """Recursive top-down builder state for one accelerator."""

    def __init__(self, bboxes: Sequence[BoundingBox], leaf_size: int, split: SplitPolicy):
        self.boxes = [box.inflate(RAY_EPSILON) for box in bboxes]
        self.centers = np.array([box.center() for box in self.boxes], dtype=np.float64).reshape(-1, 3)
        self.order = list(range(len(self.boxes)))
        self.leaf_size = leaf_size
        self.split = split
        self.nodes: list[BVHNode] = [BVHNode()]

    def _range_bbox(self, start: int, end: int) -> BoundingBox:
        return BoundingBox.union_all(self.boxes[i] for i in self.order[start:end])

    def _sort_range(self, start: int, end: int, axis: int) -> None:
        centers = self.centers
        self.order[start:end] = sorted(self.order[start:end], key=lambda i: centers[i, axis])

    def _choose_axis(self, start: int, end: int, bbox: BoundingBox, depth: int) -> int:
        if self.split == SplitPolicy.DEPTH:
            return depth % 3
        if self.split == SplitPolicy.MAX_EXTENT:
            return bbox.largest_axis()
        # Trial-sort along each axis and keep the tightest pair of children
        mid = (start + end) // 2
        sums = []
        for axis in range(3):
            self._sort_range(start, end, axis)
            sums.append(self._range_bbox(start, mid).extent_sum() + self._range_bbox(mid, end).extent_sum())
        return int(np.argmin(sums))

    def build(self, nodeid: int, start: int, end: int, depth: int) -> None:
        bbox = self._range_bbox(start, end)
        if end - start <= self.leaf_size:
            self.nodes[nodeid] = BVHNode(leaf=True, bbox=bbox, start=start, end=end)
            return
        axis = self._choose_axis(start, end, bbox, depth)
        self._sort_range(start, end, axis)
        mid = (start + end) // 2
        n0 = len(self.nodes)
        n1 = n0 + 1
        # Reserve both children before recursing so their indices stay stable
        self.nodes.extend((BVHNode(), BVHNode()))
        self.nodes[nodeid] = BVHNode(leaf=False, bbox=bbox, n0=n0, n1=n1)
        self.build(n0, start, mid, depth + 1)
        self.build(n1, mid, end, depth + 1)


def make_accelerator(
    bboxes: Sequence[BoundingBox],
    leaf_size: int = BVH_LEAF_SIZE,
    split: SplitPolicy | str = SplitPolicy.DEPTH,
) -> BVHAccelerator:
    """Build a BVH over a list of primitive bounding boxes.

    Each input box is inflated by RAY_EPSILON before use. The input list is
    not modified. An empty list yields a single empty leaf that every query
    misses.

    Args:
        bboxes: One bounding box per primitive; primitive i is bboxes[i].
        leaf_size: Maximum number of primitives per leaf.
        split: Axis selection policy (a SplitPolicy or its string value).

    Returns:
        The built accelerator.

    Raises:
        ValueError: If leaf_size < 1 or split is not a known policy.
    """
    if leaf_size < 1:
        raise ValueError(f"BVH leaf size must be at least 1, got {leaf_size}")
    builder = _Builder(bboxes, leaf_size, SplitPolicy(split))
    builder.build(0, 0, len(builder.boxes), 0)
    return BVHAccelerator(nodes=builder.nodes, prims=builder.order, leaf_size=leaf_size)


# =============================================================================
# Traversal
# =============================================================================


class HitLike(Protocol):
    hit: bool
    t: float


R = TypeVar("R", bound=HitLike)


def intersect_bvh(bvh: BVHAccelerator, ray: Ray, intersect_elem: Callable[[int, Ray], R]) -> R | None:
    """Nearest-hit query.

    Args:
        bvh: The accelerator.
        ray: The query ray, in the same frame as the indexed primitives.
        intersect_elem: Called as intersect_elem(i, ray) for primitive index
            i; returns a record with hit and t attributes. The ray it
            receives has tmax shortened to the closest hit found so far.

    Returns:
        The closest record with hit set, or None if nothing was hit.
    """
    if not intersect_bbox(ray, bvh.nodes[0].bbox):
        return None
    return _nearest(bvh, 0, ray, intersect_elem)


def _nearest(bvh: BVHAccelerator, nodeid: int, ray: Ray, intersect_elem: Callable[[int, Ray], R]) -> R | None:
    node = bvh.nodes[nodeid]
    best: R | None = None
    if node.leaf:
        for idx in range(node.start, node.end):
            rec = intersect_elem(bvh.prims[idx], ray)
            if not rec.hit or (best is not None and rec.t >= best.t):
                continue
            best = rec
            ray = ray.shortened(rec.t)
        return best

    # Visit the nearer child first so the farther one can be pruned
    hit0, enter0, _ = intersect_bbox_interval(ray, bvh.nodes[node.n0].bbox)
    hit1, enter1, _ = intersect_bbox_interval(ray, bvh.nodes[node.n1].bbox)
    children = [(enter0, node.n0)] if hit0 else []
    if hit1:
        children.append((enter1, node.n1))
    children.sort()
    for enter, child in children:
        if best is not None and enter > best.t:
            continue
        rec = _nearest(bvh, child, ray, intersect_elem)
        if rec is None or (best is not None and rec.t >= best.t):
            continue
        best = rec
        ray = ray.shortened(rec.t)
    return best


def intersect_bvh_shadow(bvh: BVHAccelerator, ray: Ray, intersect_elem_shadow: Callable[[int, Ray], bool]) -> bool:
    """Any-hit query: True as soon as any primitive is struck."""
    return _any(bvh, 0, ray, intersect_elem_shadow)


def _any(bvh: BVHAccelerator, nodeid: int, ray: Ray, intersect_elem_shadow: Callable[[int, Ray], bool]) -> bool:
    node = bvh.nodes[nodeid]
    if not intersect_bbox(ray, node.bbox):
        return False
    if node.leaf:
        return any(intersect_elem_shadow(bvh.prims[idx], ray) for idx in range(node.start, node.end))
    return _any(bvh, node.n0, ray, intersect_elem_shadow) or _any(bvh, node.n1, ray, intersect_elem_shadow)

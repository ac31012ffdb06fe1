"""Geometry module for shape primitives and spatial acceleration.

This module provides geometric primitives and intersection algorithms:

Components:
    frame: Orthonormal local-to-world frames
    aabb: Axis-Aligned Bounding Box utilities and the slab test
    sphere: Origin-centered sphere solver (and the shared HitRecord)
    quad: Square in the local z = 0 plane
    cylinder: Capped cylinder along local z
    triangle: Ray-triangle intersection for meshes
    bvh: Bounding Volume Hierarchy builder and traversal

Every solver takes a ray already in the primitive's local frame and has a
full variant returning a HitRecord plus a boolean "_any" variant used for
shadow rays:
    rec = hit_shape(local_ray, *shape_params)
    blocked = hit_shape_any(local_ray, *shape_params)
"""

from .aabb import BoundingBox, intersect_bbox, intersect_bbox_interval
from .bvh import (
    BVH_LEAF_SIZE,
    BVHAccelerator,
    BVHNode,
    SplitPolicy,
    intersect_bvh,
    intersect_bvh_shadow,
    make_accelerator,
)
from .cylinder import cylinder_area, hit_cylinder, hit_cylinder_any
from .frame import Frame
from .quad import hit_quad, hit_quad_any, quad_area
from .sphere import NO_HIT, HitRecord, hit_sphere, hit_sphere_any, sphere_area
from .triangle import hit_triangle, hit_triangle_any, triangle_normal

__all__ = [
    "Frame",
    "BoundingBox",
    "intersect_bbox",
    "intersect_bbox_interval",
    "HitRecord",
    "NO_HIT",
    "hit_sphere",
    "hit_sphere_any",
    "sphere_area",
    "hit_quad",
    "hit_quad_any",
    "quad_area",
    "hit_cylinder",
    "hit_cylinder_any",
    "cylinder_area",
    "hit_triangle",
    "hit_triangle_any",
    "triangle_normal",
    "BVH_LEAF_SIZE",
    "BVHAccelerator",
    "BVHNode",
    "SplitPolicy",
    "make_accelerator",
    "intersect_bvh",
    "intersect_bvh_shadow",
]

"""Scene-level ray intersection.

This module dispatches rays against every analytic surface and mesh in a
scene and keeps the globally closest hit:

- Surfaces: the ray is moved into the surface's local frame and handed to
  the solver selected by the surface kind.
- Meshes: the ray is moved into the mesh's local frame, then either the
  mesh BVH or a linear scan tests its triangles.

intersect_shadow runs the same enumeration but stops at the first hit.
accelerate prepares a scene for both: it triangulates mesh quads and builds
the per-mesh BVHs.

Example:
    >>> from src.pathtrace.core.ray import Ray, vec3
    >>> from src.pathtrace.scene.cornell_box import create_cornell_box_scene
    >>> from src.pathtrace.scene.intersection import accelerate, intersect
    >>> scene = create_cornell_box_scene()
    >>> accelerate(scene)
    >>> intersect(scene, Ray(vec3(0, 0, 0), vec3(0, -1, 0))).hit
    True
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from src.pathtrace.core.ray import Ray, Vec3
from src.pathtrace.geometry.bvh import intersect_bvh, intersect_bvh_shadow, make_accelerator
from src.pathtrace.geometry.cylinder import hit_cylinder, hit_cylinder_any
from src.pathtrace.geometry.quad import hit_quad, hit_quad_any
from src.pathtrace.geometry.sphere import NO_HIT, HitRecord, hit_sphere, hit_sphere_any
from src.pathtrace.geometry.triangle import hit_triangle, hit_triangle_any
from src.pathtrace.materials.material import Material

from .model import ConfigurationError, Mesh, Scene, Surface, SurfaceKind

logger = logging.getLogger(__name__)


@dataclass
class Intersection:
    """Record of a ray-scene intersection with material information.

    A default-constructed record means "no hit".

    Attributes:
        hit: Whether the ray intersected anything.
        t: Ray parameter of the hit. Only valid if hit is True.
        pos: World-space hit position.
        norm: World-space unit normal.
        texcoord: Texture coordinate at the hit.
        material: Material of the primitive that was hit.
    """

    hit: bool = False
    t: float = math.inf
    pos: Vec3 = field(default_factory=lambda: np.zeros(3))
    norm: Vec3 = field(default_factory=lambda: np.zeros(3))
    texcoord: tuple[float, float] = (0.0, 0.0)
    material: Material | None = None

    def closer_than(self, other: Intersection) -> bool:
        """Whether this hit is strictly closer than other (a miss is never closer)."""
        if not self.hit:
            return False
        return not other.hit or self.t < other.t


# =============================================================================
# Per-object tests
# =============================================================================


def _hit_surface_local(surface: Surface, ray: Ray) -> HitRecord:
    if surface.kind == SurfaceKind.QUAD:
        return hit_quad(ray, surface.radius)
    if surface.kind == SurfaceKind.SPHERE:
        return hit_sphere(ray, surface.radius)
    return hit_cylinder(ray, surface.radius, surface.height)


def _hit_surface_any(surface: Surface, ray: Ray) -> bool:
    if surface.kind == SurfaceKind.QUAD:
        return hit_quad_any(ray, surface.radius)
    if surface.kind == SurfaceKind.SPHERE:
        return hit_sphere_any(ray, surface.radius)
    return hit_cylinder_any(ray, surface.radius, surface.height)


def intersect_surface(surface: Surface, ray: Ray) -> Intersection:
    """Intersect a single analytic surface with a world-space ray."""
    rec = _hit_surface_local(surface, surface.frame.transform_ray_inverse(ray))
    if not rec.hit:
        return Intersection()
    return Intersection(
        hit=True,
        t=rec.t,
        pos=surface.frame.transform_point(rec.point),
        norm=surface.frame.transform_normal(rec.normal),
        texcoord=rec.uv,
        material=surface.material,
    )


def _triangle_tester(mesh: Mesh):
    pos = mesh.pos
    tris = mesh.triangle
    texcoord = mesh.texcoord

    def test(tid: int, ray: Ray) -> HitRecord:
        a, b, c = tris[tid]
        if texcoord is None:
            return hit_triangle(ray, pos[a], pos[b], pos[c])
        return hit_triangle(ray, pos[a], pos[b], pos[c], texcoord[a], texcoord[b], texcoord[c])

    return test


def _triangle_tester_any(mesh: Mesh):
    pos = mesh.pos
    tris = mesh.triangle

    def test(tid: int, ray: Ray) -> bool:
        a, b, c = tris[tid]
        return hit_triangle_any(ray, pos[a], pos[b], pos[c])

    return test


def _check_triangulated(mesh: Mesh) -> None:
    if len(mesh.quad):
        raise ConfigurationError("Quad intersection is not supported; call accelerate(scene) to triangulate meshes")


def intersect_mesh(mesh: Mesh, ray: Ray) -> Intersection:
    """Intersect a single mesh with a world-space ray.

    Raises:
        ConfigurationError: If the mesh still holds quads.
    """
    _check_triangulated(mesh)
    local_ray = mesh.frame.transform_ray_inverse(ray)
    test = _triangle_tester(mesh)
    best: HitRecord = NO_HIT
    if mesh.bvh is not None:
        found = intersect_bvh(mesh.bvh, local_ray, test)
        if found is not None:
            best = found
    else:
        for tid in range(len(mesh.triangle)):
            rec = test(tid, local_ray)
            if rec.hit and rec.t < best.t:
                best = rec
                local_ray = local_ray.shortened(rec.t)
    if not best.hit:
        return Intersection()
    return Intersection(
        hit=True,
        t=best.t,
        pos=mesh.frame.transform_point(best.point),
        norm=mesh.frame.transform_normal(best.normal),
        texcoord=best.uv,
        material=mesh.material,
    )


def _mesh_any(mesh: Mesh, ray: Ray) -> bool:
    _check_triangulated(mesh)
    local_ray = mesh.frame.transform_ray_inverse(ray)
    test = _triangle_tester_any(mesh)
    if mesh.bvh is not None:
        return intersect_bvh_shadow(mesh.bvh, local_ray, test)
    return any(test(tid, local_ray) for tid in range(len(mesh.triangle)))


# =============================================================================
# Scene queries
# =============================================================================


def intersect(scene: Scene, ray: Ray) -> Intersection:
    """Find the closest hit along a ray.

    Args:
        scene: The scene to test.
        ray: World-space ray; only hits within [tmin, tmax] count.

    Returns:
        The closest Intersection, or a no-hit record.

    Raises:
        ConfigurationError: If scene is None or a mesh still holds quads.
    """
    if scene is None:
        raise ConfigurationError("Cannot intersect a None scene")
    best = Intersection()
    for surface in scene.surfaces:
        candidate = intersect_surface(surface, ray)
        if candidate.closer_than(best):
            best = candidate
            ray = ray.shortened(best.t)
    for mesh in scene.meshes:
        candidate = intersect_mesh(mesh, ray)
        if candidate.closer_than(best):
            best = candidate
            ray = ray.shortened(best.t)
    return best


def intersect_shadow(scene: Scene, ray: Ray) -> bool:
    """Whether anything blocks the ray within [tmin, tmax].

    Raises:
        ConfigurationError: If scene is None or a mesh still holds quads.
    """
    if scene is None:
        raise ConfigurationError("Cannot intersect a None scene")
    for surface in scene.surfaces:
        if _hit_surface_any(surface, surface.frame.transform_ray_inverse(ray)):
            return True
    return any(_mesh_any(mesh, ray) for mesh in scene.meshes)


# =============================================================================
# Acceleration
# =============================================================================


def accelerate(scene: Scene) -> None:
    """Prepare a scene for intersection.

    Every mesh has its quads triangulated and its indices validated. When
    scene.settings.accelerate_bvh is set, meshes with more triangles than
    the BVH leaf size get a BVH; all other meshes are scanned linearly.
    Calling accelerate again rebuilds the BVHs.

    Raises:
        ConfigurationError: If scene is None or a mesh has out-of-range
            indices.
    """
    if scene is None:
        raise ConfigurationError("Cannot accelerate a None scene")
    settings = scene.settings
    built = 0
    total = 0
    for index, mesh in enumerate(scene.meshes):
        mesh.bvh = None
        mesh.triangulate()
        mesh.validate()
        count = len(mesh.triangle)
        total += count
        if settings.accelerate_bvh and count > settings.bvh_leaf_size:
            mesh.bvh = make_accelerator(mesh.triangle_bboxes(), settings.bvh_leaf_size, settings.bvh_split)
            built += 1
            logger.debug(
                "mesh %d: %d triangles, %d BVH nodes, depth %d",
                index,
                count,
                len(mesh.bvh),
                mesh.bvh.depth(),
            )
        else:
            logger.debug("mesh %d: %d triangles, linear scan", index, count)
    logger.info(
        "Accelerated scene: %d surfaces, %d meshes (%d triangles), %d BVHs",
        len(scene.surfaces),
        len(scene.meshes),
        total,
        built,
    )

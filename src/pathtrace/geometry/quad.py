"""Quad primitive with ray-quad intersection.

A quad is a square lying in its local z = 0 plane, centered on the origin,
spanning [-radius, radius] on both local x and y. Its normal is local +z.
Walls, floors and rectangular area lights are quads placed by a frame.

Ray-quad intersection uses the parametric plane test:
1. Find where ray intersects the plane z = 0
2. Check if the intersection point lies within the quad bounds

Example:
    >>> from src.pathtrace.core.ray import Ray, vec3
    >>> from src.pathtrace.geometry.quad import hit_quad
    >>> rec = hit_quad(Ray(vec3(0, 0, 5), vec3(0, 0, -1)), 1.0)
    >>> rec.t, rec.normal
    (5.0, array([0., 0., 1.]))
"""

from __future__ import annotations

from src.pathtrace.core.ray import Ray, vec3

from .sphere import NO_HIT, HitRecord


def solve_quad(ray: Ray, radius: float) -> float | None:
    """Find the hit parameter of a local quad, or None on a miss.

    Rays parallel to the plane (d.z == 0) never hit.
    """
    dz = ray.direction[2]
    if dz == 0.0:
        return None
    t = -ray.origin[2] / dz
    if t < ray.tmin or t > ray.tmax:
        return None
    px = ray.origin[0] + t * ray.direction[0]
    py = ray.origin[1] + t * ray.direction[1]
    if px < -radius or px > radius or py < -radius or py > radius:
        return None
    return float(t)


def hit_quad(ray: Ray, radius: float) -> HitRecord:
    """Test a local-space ray against a quad of the given radius.

    Args:
        ray: The ray in the quad's local frame.
        radius: Half of the quad's side length.

    Returns:
        A HitRecord with normal (0, 0, 1) and uv mapping [-radius, radius]^2
        to [0, 1]^2.
    """
    t = solve_quad(ray, radius)
    if t is None:
        return NO_HIT
    point = ray.at(t)
    point[2] = 0.0
    uv = (0.5 * point[0] / radius + 0.5, 0.5 * point[1] / radius + 0.5)
    return HitRecord(hit=True, t=t, point=point, normal=vec3(0.0, 0.0, 1.0), uv=(float(uv[0]), float(uv[1])))


def hit_quad_any(ray: Ray, radius: float) -> bool:
    """Shadow variant of hit_quad: only reports whether a hit exists."""
    return solve_quad(ray, radius) is not None


def quad_area(radius: float) -> float:
    """Area of a quad of the given radius (side length 2 * radius)."""
    return 4.0 * radius * radius

"""Ray-triangle intersection.

Triangles are given by three arbitrary vertices (already in the mesh's local
frame). The solver uses Cramer's rule on

    e + t d = v0 + u (v1 - v0) + v (v2 - v0)

in the Moller-Trumbore arrangement, solving for t and the barycentric
coordinates (u, v) at once.
"""

from __future__ import annotations

from src.pathtrace.core.ray import Ray, Vec3, cross, dot, normalize

from .sphere import NO_HIT, HitRecord

# Determinants smaller than this are treated as a ray parallel to the plane
TRIANGLE_EPSILON = 1e-12


def solve_triangle(ray: Ray, v0: Vec3, v1: Vec3, v2: Vec3) -> tuple[float, float, float] | None:
    """Find (t, u, v) for a triangle hit, or None on a miss.

    Rejects rays parallel to the triangle plane, barycentric coordinates
    outside the triangle and parameters outside [tmin, tmax].
    """
    a = v1 - v0
    b = v2 - v0
    p = cross(ray.direction, b)
    det = dot(a, p)
    if abs(det) < TRIANGLE_EPSILON:
        return None
    inv_det = 1.0 / det
    s = ray.origin - v0
    u = dot(s, p) * inv_det
    if u < 0.0 or u > 1.0:
        return None
    q = cross(s, a)
    v = dot(ray.direction, q) * inv_det
    if v < 0.0 or u + v > 1.0:
        return None
    t = dot(b, q) * inv_det
    if t < ray.tmin or t > ray.tmax:
        return None
    return t, u, v


def triangle_normal(v0: Vec3, v1: Vec3, v2: Vec3) -> Vec3:
    """Geometric normal from the winding v0 -> v1 -> v2."""
    return normalize(cross(v1 - v0, v2 - v0))


def hit_triangle(
    ray: Ray,
    v0: Vec3,
    v1: Vec3,
    v2: Vec3,
    uv0: tuple[float, float] | None = None,
    uv1: tuple[float, float] | None = None,
    uv2: tuple[float, float] | None = None,
) -> HitRecord:
    """Test a ray against a triangle.

    Args:
        ray: The ray in the same frame as the vertices.
        v0: First vertex.
        v1: Second vertex.
        v2: Third vertex.
        uv0: Optional texture coordinate of v0. When any vertex has no
            texture coordinate the hit uv is (0, 0).
        uv1: Optional texture coordinate of v1.
        uv2: Optional texture coordinate of v2.

    Returns:
        A HitRecord with the geometric normal and the barycentric blend of
        the vertex texture coordinates.
    """
    found = solve_triangle(ray, v0, v1, v2)
    if found is None:
        return NO_HIT
    t, u, v = found
    if uv0 is None or uv1 is None or uv2 is None:
        uv = (0.0, 0.0)
    else:
        w = 1.0 - u - v
        uv = (
            float(w * uv0[0] + u * uv1[0] + v * uv2[0]),
            float(w * uv0[1] + u * uv1[1] + v * uv2[1]),
        )
    return HitRecord(hit=True, t=t, point=ray.at(t), normal=triangle_normal(v0, v1, v2), uv=uv)


def hit_triangle_any(ray: Ray, v0: Vec3, v1: Vec3, v2: Vec3) -> bool:
    """Shadow variant of hit_triangle: only reports whether a hit exists."""
    return solve_triangle(ray, v0, v1, v2) is not None

"""Capped cylinder primitive.

The cylinder is centered on its local origin with its axis along local z.
Its lateral surface has the given radius and spans z in [-height, height]
(height is the half-height); two disk caps close it at z = +height and
z = -height.

The lateral surface is a quadratic in t once the axis component is
ignored; each cap is a plane test followed by a disk containment check.
The nearest valid candidate among the three wins.
"""

from __future__ import annotations

import math

from src.pathtrace.core.ray import Ray, normalize, vec3

from .sphere import NO_HIT, HitRecord, solve_quadratic_robust

# Candidate surfaces of a cylinder hit
_SIDE = 0
_TOP = 1
_BOTTOM = 2


def _lateral_candidates(ray: Ray, radius: float, height: float) -> list[float]:
    ex, ey, ez = ray.origin
    dx, dy, dz = ray.direction
    a = dx * dx + dy * dy
    if a == 0.0:
        # Parallel to the axis: only the caps can be hit
        return []
    h = dx * ex + dy * ey
    c = ex * ex + ey * ey - radius * radius
    discriminant = h * h - a * c
    if discriminant < 0.0:
        return []
    t0, t1 = solve_quadratic_robust(h, a, c, math.sqrt(discriminant))
    result = []
    for t in (t0, t1):
        if ray.tmin <= t <= ray.tmax and -height <= ez + t * dz <= height:
            result.append(t)
    return result


def _cap_candidate(ray: Ray, radius: float, z: float) -> float | None:
    dz = ray.direction[2]
    if dz == 0.0:
        return None
    t = (z - ray.origin[2]) / dz
    if t < ray.tmin or t > ray.tmax:
        return None
    px = ray.origin[0] + t * ray.direction[0]
    py = ray.origin[1] + t * ray.direction[1]
    if px * px + py * py > radius * radius:
        return None
    return float(t)


def solve_cylinder(ray: Ray, radius: float, height: float) -> tuple[float, int] | None:
    """Find the nearest hit on the side or caps.

    Returns:
        Tuple of (t, surface) where surface is one of the _SIDE, _TOP,
        _BOTTOM tags, or None on a miss.
    """
    best: tuple[float, int] | None = None
    lateral = _lateral_candidates(ray, radius, height)
    if lateral:
        best = (min(lateral), _SIDE)
    for surface, z in ((_TOP, height), (_BOTTOM, -height)):
        t = _cap_candidate(ray, radius, z)
        if t is not None and (best is None or t < best[0]):
            best = (t, surface)
    return best


def hit_cylinder(ray: Ray, radius: float, height: float) -> HitRecord:
    """Test a local-space ray against a capped cylinder.

    Args:
        ray: The ray in the cylinder's local frame.
        radius: Radius of the lateral surface and of the caps.
        height: Half-height along local z.

    Returns:
        A HitRecord. Cap normals are +z or -z; the lateral normal is the hit
        point projected onto the z = 0 plane, normalized. Side uvs are the
        azimuth and the normalized height; cap uvs are planar.
    """
    found = solve_cylinder(ray, radius, height)
    if found is None:
        return NO_HIT
    t, surface = found
    point = ray.at(t)
    if surface == _SIDE:
        normal = normalize(vec3(point[0], point[1], 0.0))
        u = (math.pi + math.atan2(point[1], point[0])) / (2.0 * math.pi)
        v = (point[2] + height) / (2.0 * height) if height > 0.0 else 0.0
        return HitRecord(hit=True, t=t, point=point, normal=normal, uv=(u, float(v)))
    z_sign = 1.0 if surface == _TOP else -1.0
    point[2] = z_sign * height
    uv = (float(0.5 * point[0] / radius + 0.5), float(0.5 * point[1] / radius + 0.5))
    return HitRecord(hit=True, t=t, point=point, normal=vec3(0.0, 0.0, z_sign), uv=uv)


def hit_cylinder_any(ray: Ray, radius: float, height: float) -> bool:
    """Shadow variant of hit_cylinder: only reports whether a hit exists."""
    if _lateral_candidates(ray, radius, height):
        return True
    return _cap_candidate(ray, radius, height) is not None or _cap_candidate(ray, radius, -height) is not None


def cylinder_area(radius: float, height: float) -> float:
    """Total surface area of the side plus both caps."""
    return 2.0 * math.pi * radius * (2.0 * height) + 2.0 * math.pi * radius * radius

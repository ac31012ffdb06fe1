"""Sphere primitive with robust ray-sphere intersection.

The solver works in the sphere's local frame: the sphere is centered on the
origin with the given radius. Callers transform the ray into local space
with Frame.transform_ray_inverse before calling hit_sphere and transform the
resulting point and normal back afterwards.

The quadratic is solved with the robust formula from Ray Tracing Gems to
avoid catastrophic cancellation when b^2 is nearly equal to 4ac.

Example:
    >>> from src.pathtrace.core.ray import Ray, vec3
    >>> from src.pathtrace.geometry.sphere import hit_sphere
    >>> rec = hit_sphere(Ray(vec3(0, 0, 5), vec3(0, 0, -1)), 1.0)
    >>> rec.hit, rec.t
    (True, 4.0)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from src.pathtrace.core.ray import Ray, Vec3, dot, normalize


@dataclass(frozen=True)
class HitRecord:
    """Record of a ray-primitive intersection in the primitive's local frame.

    Shared by every analytic solver.

    Attributes:
        hit: Whether the ray intersected the primitive.
        t: The parameter value along the ray where intersection occurred.
            Only valid if hit is True.
        point: The local-space hit point. Only valid if hit is True.
        normal: The local-space unit geometric normal. Only valid if hit is
            True.
        uv: Texture coordinate at the hit point. Only valid if hit is True.
    """

    hit: bool = False
    t: float = math.inf
    point: Vec3 = field(default_factory=lambda: np.zeros(3))
    normal: Vec3 = field(default_factory=lambda: np.zeros(3))
    uv: tuple[float, float] = (0.0, 0.0)


NO_HIT = HitRecord()


def solve_quadratic_robust(h: float, a: float, c: float, sqrt_d: float) -> tuple[float, float]:
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = -1.0 if h < 0.0 else 1.0
    q = -(h + sign_h * sqrt_d)

    if abs(q) < 1e-12:
        # Tangent ray through the origin: fall back to the textbook formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        t0, t1 = t1, t0
    return t0, t1


def solve_sphere(ray: Ray, radius: float) -> float | None:
    """Find the hit parameter of an origin-centered sphere.

    Of the two roots, the smaller one inside [tmin, tmax] is preferred; the
    larger one is used when only it is in range (ray starting inside).

    Returns:
        The hit parameter, or None on a miss.
    """
    e = ray.origin
    d = ray.direction
    a = dot(d, d)
    if a == 0.0:
        return None
    h = dot(d, e)
    c = dot(e, e) - radius * radius
    discriminant = h * h - a * c
    if discriminant < 0.0:
        return None
    t0, t1 = solve_quadratic_robust(h, a, c, math.sqrt(discriminant))
    if ray.tmin <= t0 <= ray.tmax:
        return t0
    if ray.tmin <= t1 <= ray.tmax:
        return t1
    return None


def sphere_uv(normal: Vec3) -> tuple[float, float]:
    """Spherical texture coordinates of a unit local normal."""
    u = (math.pi + math.atan2(normal[1], normal[0])) / (2.0 * math.pi)
    v = math.acos(max(-1.0, min(1.0, float(normal[2])))) / math.pi
    return u, v


def hit_sphere(ray: Ray, radius: float) -> HitRecord:
    """Test a local-space ray against a sphere of the given radius.

    The ray-sphere intersection is found by solving:
        |e + t * d|^2 = radius^2

    Args:
        ray: The ray in the sphere's local frame. The direction need not be
            normalized.
        radius: The sphere radius.

    Returns:
        A HitRecord. The normal is the normalized hit point and always points
        outward.
    """
    t = solve_sphere(ray, radius)
    if t is None:
        return NO_HIT
    point = ray.at(t)
    normal = normalize(point)
    return HitRecord(hit=True, t=t, point=point, normal=normal, uv=sphere_uv(normal))


def hit_sphere_any(ray: Ray, radius: float) -> bool:
    """Shadow variant of hit_sphere: only reports whether a hit exists."""
    return solve_sphere(ray, radius) is not None


def sphere_area(radius: float) -> float:
    return 4.0 * math.pi * radius * radius

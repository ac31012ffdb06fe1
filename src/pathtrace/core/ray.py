"""Ray data structure and vector utilities for CPU ray tracing.

This module provides the fundamental Ray dataclass and the vector and
sampling helpers used throughout the tracer. Vectors are NumPy float64
arrays of shape (3,). Random sampling helpers never own random state:
they take the uniform numbers (or the generator) from the caller so that
every render thread can drive its own per-pixel stream.

Example:
    >>> from src.pathtrace.core.ray import Ray, vec3
    >>> ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, -1.0))
    >>> ray.at(5.0)
    array([ 0.,  0., -5.])
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

# Type alias for 3D vectors
Vec3 = npt.NDArray[np.float64]

# Minimum ray parameter, avoids self-intersection at the ray origin
RAY_EPSILON = 5e-4

# Sentinel for "unbounded" rays
RAY_INFINITY = 1e6


def vec3(x: float, y: float, z: float) -> Vec3:
    """Create a 3D vector."""
    return np.array((x, y, z), dtype=np.float64)


ZERO3 = vec3(0.0, 0.0, 0.0)
ONE3 = vec3(1.0, 1.0, 1.0)
Z3 = vec3(0.0, 0.0, 1.0)


def as_vec3(v: npt.ArrayLike) -> Vec3:
    """Convert a 3-sequence to a float64 vector, copying only if needed."""
    return np.asarray(v, dtype=np.float64)


@dataclass
class Ray:
    """A ray with an origin, a direction and a valid parameter interval.

    Attributes:
        origin: The starting point of the ray (e).
        direction: The direction vector of the ray (d). It does not need to be
            unit length for the analytic solvers.
        tmin: Smallest parameter accepted as a hit.
        tmax: Largest parameter accepted as a hit. Traversal code narrows it
            to the closest hit found so far.
    """

    origin: Vec3
    direction: Vec3
    tmin: float = RAY_EPSILON
    tmax: float = RAY_INFINITY

    def __post_init__(self) -> None:
        self.origin = as_vec3(self.origin)
        self.direction = as_vec3(self.direction)

    def at(self, t: float) -> Vec3:
        """Compute the point along the ray at parameter t."""
        return self.origin + t * self.direction

    def shortened(self, tmax: float) -> Ray:
        """Return a copy of this ray whose interval ends at tmax."""
        return Ray(self.origin, self.direction, self.tmin, tmax)

    @staticmethod
    def make_segment(a: Vec3, b: Vec3) -> Ray:
        """Create a ray from point a to point b.

        The interval stops short of b by twice the epsilon so that a shadow
        segment ending on a light surface is not occluded by the light.
        """
        a = as_vec3(a)
        b = as_vec3(b)
        return Ray(a, normalize(b - a), RAY_EPSILON, distance(a, b) - 2 * RAY_EPSILON)


def make_ray(origin: Vec3, direction: Vec3) -> Ray:
    """Create a ray with the default [RAY_EPSILON, RAY_INFINITY] interval."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


def length(v: Vec3) -> float:
    """Compute the length (magnitude) of a vector."""
    return math.sqrt(float(np.dot(v, v)))


def length_squared(v: Vec3) -> float:
    """Compute the squared length of a vector."""
    return float(np.dot(v, v))


def distance(a: Vec3, b: Vec3) -> float:
    """Compute the distance between two points."""
    return length(b - a)


def distance_squared(a: Vec3, b: Vec3) -> float:
    """Compute the squared distance between two points."""
    return length_squared(b - a)


def normalize(v: Vec3) -> Vec3:
    """Normalize a vector to unit length.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v.
        If v is zero-length, returns a zero vector.
    """
    n = length(v)
    if n == 0.0:
        return np.zeros(3)
    return v / n


def dot(a: Vec3, b: Vec3) -> float:
    """Compute the dot product of two vectors."""
    return float(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])


def cross(a: Vec3, b: Vec3) -> Vec3:
    """Compute the cross product of two vectors."""
    return np.array(
        (
            a[1] * b[2] - a[2] * b[1],
            a[2] * b[0] - a[0] * b[2],
            a[0] * b[1] - a[1] * b[0],
        ),
        dtype=np.float64,
    )


def reflect(incident: Vec3, normal: Vec3) -> Vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * dot(incident, normal) * normal


def is_zero(v: Vec3) -> bool:
    """Check whether every component of a vector is exactly zero."""
    return not np.any(v)


def mean(v: Vec3) -> float:
    """Average of the three components (used as a scalar weight for colors)."""
    return float(v[0] + v[1] + v[2]) / 3.0


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


def random_in_unit_sphere(rng: np.random.Generator) -> Vec3:
    """Generate a random point inside the unit sphere by rejection sampling.

    Args:
        rng: The random generator owned by the calling render thread.

    Returns:
        A random point with length < 1.
    """
    for _ in range(100):
        p = rng.random(3) * 2.0 - 1.0
        if length_squared(p) < 1.0:
            return p
    return np.zeros(3)


def sample_direction_spherical_uniform(ruv: tuple[float, float]) -> Vec3:
    """Map two uniform numbers to a direction uniformly distributed on the sphere."""
    z = 1.0 - 2.0 * ruv[1]
    r = math.sqrt(max(0.0, 1.0 - z * z))
    phi = 2.0 * math.pi * ruv[0]
    return vec3(r * math.cos(phi), r * math.sin(phi), z)


def sample_direction_hemispherical_cosine(ruv: tuple[float, float]) -> Vec3:
    """Map two uniform numbers to a cosine-weighted direction around +z.

    The distribution has PDF = cos(theta) / pi.

    Returns:
        A random direction in the local coordinate frame (z-up).
    """
    phi = 2.0 * math.pi * ruv[0]
    sqrt_r = math.sqrt(ruv[1])
    return vec3(math.cos(phi) * sqrt_r, math.sin(phi) * sqrt_r, math.sqrt(1.0 - ruv[1]))


def build_onb_from_normal(normal: Vec3) -> tuple[Vec3, Vec3, Vec3]:
    """Build an orthonormal basis from a normal vector.

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A tuple (tangent, bitangent, normal) forming an orthonormal basis.
    """
    # Choose a vector not parallel to normal
    a = vec3(1.0, 0.0, 0.0)
    if abs(normal[0]) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = normalize(cross(a, normal))
    bitangent = cross(normal, tangent)
    return tangent, bitangent, normal


def local_to_world(local_dir: Vec3, tangent: Vec3, bitangent: Vec3, normal: Vec3) -> Vec3:
    """Transform a direction from a z-up local frame to world coordinates."""
    return local_dir[0] * tangent + local_dir[1] * bitangent + local_dir[2] * normal


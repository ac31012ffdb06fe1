"""Rigid local-to-world frames.

A frame is an origin plus an orthonormal basis. Surfaces, meshes, lights and
the camera are all placed with a frame; intersection tests move the incoming
ray into the local frame (by the frame inverse) so that every solver can work
on a canonical, origin-centered shape.

Because the basis is orthonormal, the inverse is the transpose and normals
transform like vectors. Ray parameters are preserved by both directions of
the transform, so a hit parameter found in local space is valid in world
space.

Example:
    >>> from src.pathtrace.geometry.frame import Frame
    >>> f = Frame.translation((0.0, 0.0, -3.0))
    >>> f.transform_point_inverse(f.transform_point((1.0, 2.0, 3.0)))
    array([1., 2., 3.])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property

import numpy as np
import numpy.typing as npt

from src.pathtrace.core.ray import Ray, Vec3, as_vec3, cross, normalize, vec3

# Allowed deviation of the basis Gram matrix from the identity
ORTHONORMAL_TOLERANCE = 1e-6


@dataclass(frozen=True, eq=False)
class Frame:
    """An origin and an orthonormal basis (x, y, z).

    Attributes:
        o: Frame origin in world space.
        x: Local x axis in world space.
        y: Local y axis in world space.
        z: Local z axis in world space.
    """

    o: Vec3 = field(default_factory=lambda: vec3(0.0, 0.0, 0.0))
    x: Vec3 = field(default_factory=lambda: vec3(1.0, 0.0, 0.0))
    y: Vec3 = field(default_factory=lambda: vec3(0.0, 1.0, 0.0))
    z: Vec3 = field(default_factory=lambda: vec3(0.0, 0.0, 1.0))

    def __post_init__(self) -> None:
        for name in ("o", "x", "y", "z"):
            object.__setattr__(self, name, as_vec3(getattr(self, name)))
        if not np.allclose(self.matrix.T @ self.matrix, np.eye(3), atol=ORTHONORMAL_TOLERANCE):
            raise ValueError(f"Frame axes must be orthonormal, got x={self.x}, y={self.y}, z={self.z}")

    @cached_property
    def matrix(self) -> npt.NDArray[np.float64]:
        """3x3 rotation whose columns are the local axes."""
        return np.column_stack((self.x, self.y, self.z))

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def identity(cls) -> Frame:
        return cls()

    @classmethod
    def translation(cls, origin: npt.ArrayLike) -> Frame:
        """Frame with the world axes, moved to origin."""
        return cls(o=as_vec3(origin))

    @classmethod
    def from_z(cls, origin: npt.ArrayLike, z: npt.ArrayLike) -> Frame:
        """Frame at origin whose local z axis points along z.

        The x and y axes are chosen arbitrarily but consistently. Useful to
        orient quads (which face local +z) and cylinders (whose axis is
        local z).
        """
        zz = normalize(as_vec3(z))
        if not np.any(zz):
            raise ValueError("Frame z axis cannot be zero")
        hint = vec3(0.0, 1.0, 0.0) if abs(zz[1]) < 0.9 else vec3(1.0, 0.0, 0.0)
        xx = normalize(cross(hint, zz))
        yy = cross(zz, xx)
        return cls(o=as_vec3(origin), x=xx, y=yy, z=zz)

    @classmethod
    def lookat(cls, eye: npt.ArrayLike, center: npt.ArrayLike, up: npt.ArrayLike) -> Frame:
        """Camera-style frame at eye looking toward center along local -z.

        Args:
            eye: Frame origin.
            center: Point the frame looks at.
            up: Approximate up direction.

        Raises:
            ValueError: If eye and center coincide or up is parallel to the
                view direction.
        """
        eye = as_vec3(eye)
        w = normalize(eye - as_vec3(center))
        u = normalize(cross(as_vec3(up), w))
        if not np.any(w) or not np.any(u):
            raise ValueError("Degenerate lookat frame (eye == center or up parallel to view)")
        v = cross(w, u)
        return cls(o=eye, x=u, y=v, z=w)

    # =========================================================================
    # Local -> world
    # =========================================================================

    def transform_point(self, p: Vec3) -> Vec3:
        return self.o + self.matrix @ as_vec3(p)

    def transform_vector(self, v: Vec3) -> Vec3:
        return self.matrix @ as_vec3(v)

    def transform_normal(self, n: Vec3) -> Vec3:
        return normalize(self.matrix @ as_vec3(n))

    def transform_ray(self, ray: Ray) -> Ray:
        return Ray(self.transform_point(ray.origin), self.transform_vector(ray.direction), ray.tmin, ray.tmax)

    # =========================================================================
    # World -> local
    # =========================================================================

    def transform_point_inverse(self, p: Vec3) -> Vec3:
        return self.matrix.T @ (as_vec3(p) - self.o)

    def transform_vector_inverse(self, v: Vec3) -> Vec3:
        return self.matrix.T @ as_vec3(v)

    def transform_normal_inverse(self, n: Vec3) -> Vec3:
        return normalize(self.matrix.T @ as_vec3(n))

    def transform_ray_inverse(self, ray: Ray) -> Ray:
        return Ray(
            self.transform_point_inverse(ray.origin),
            self.transform_vector_inverse(ray.direction),
            ray.tmin,
            ray.tmax,
        )

"""In-memory scene graph consumed by the renderer.

The scene is a plain container: a camera, analytic surfaces (sphere, quad,
cylinder), triangle meshes, point lights, ambient and background terms, and
the render settings. It is populated by a loader or by SceneBuilder, made
ready with scene.intersection.accelerate, and then treated as read-only by
every render thread.

Example:
    >>> from src.pathtrace.scene.model import RenderSettings
    >>> RenderSettings(image_width=64, image_height=48, image_samples=2).pixel_samples
    4
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
import numpy.typing as npt

from src.pathtrace.camera.pinhole import PinholeCamera
from src.pathtrace.core.ray import Vec3, as_vec3, vec3
from src.pathtrace.geometry.aabb import BoundingBox
from src.pathtrace.geometry.bvh import BVH_LEAF_SIZE, BVHAccelerator, SplitPolicy
from src.pathtrace.geometry.frame import Frame
from src.pathtrace.materials.material import Material
from src.pathtrace.materials.texture import Texture

# Hard ceiling on recursion depth, enforced even under Russian roulette
ABSOLUTE_MAX_DEPTH = 64


class ConfigurationError(RuntimeError):
    """The scene cannot be rendered as configured (missing scene, quads left
    in a mesh, out-of-range vertex indices)."""


class SurfaceKind(str, Enum):
    """Analytic surface shapes."""

    SPHERE = "sphere"
    QUAD = "quad"
    CYLINDER = "cylinder"


@dataclass(eq=False)
class Surface:
    """An analytic surface placed by a frame.

    Attributes:
        kind: Shape tag used for solver dispatch.
        frame: Local-to-world placement.
        radius: Sphere radius, quad half-side or cylinder radius.
        material: Surface material.
        height: Cylinder half-height along local z (ignored otherwise).
    """

    kind: SurfaceKind
    frame: Frame
    radius: float
    material: Material
    height: float = 0.0

    def __post_init__(self) -> None:
        self.kind = SurfaceKind(self.kind)
        if self.radius <= 0.0:
            raise ValueError(f"Surface radius must be positive, got {self.radius}")
        if self.kind == SurfaceKind.CYLINDER and self.height <= 0.0:
            raise ValueError(f"Cylinder height must be positive, got {self.height}")


@dataclass(eq=False)
class Mesh:
    """An indexed triangle/quad mesh placed by a frame.

    Attributes:
        pos: Vertex positions, shape (N, 3), in mesh-local space.
        triangle: Triangle vertex indices, shape (T, 3).
        quad: Quad vertex indices, shape (Q, 4). Emptied by accelerate.
        material: Mesh material.
        frame: Local-to-world placement.
        norm: Optional vertex normals, shape (N, 3).
        texcoord: Optional vertex texture coordinates, shape (N, 2).
        bvh: Triangle BVH, built by accelerate when enabled.
    """

    pos: npt.NDArray[np.float64]
    triangle: npt.NDArray[np.int64]
    material: Material
    quad: npt.NDArray[np.int64] = field(default_factory=lambda: np.zeros((0, 4), dtype=np.int64))
    frame: Frame = field(default_factory=Frame)
    norm: npt.NDArray[np.float64] | None = None
    texcoord: npt.NDArray[np.float64] | None = None
    bvh: BVHAccelerator | None = None

    def __post_init__(self) -> None:
        self.pos = np.asarray(self.pos, dtype=np.float64).reshape(-1, 3)
        self.triangle = np.asarray(self.triangle, dtype=np.int64).reshape(-1, 3)
        self.quad = np.asarray(self.quad, dtype=np.int64).reshape(-1, 4)
        if self.norm is not None:
            self.norm = np.asarray(self.norm, dtype=np.float64).reshape(-1, 3)
        if self.texcoord is not None:
            self.texcoord = np.asarray(self.texcoord, dtype=np.float64).reshape(-1, 2)
            if len(self.texcoord) == 0:
                self.texcoord = None

    def triangulate(self) -> None:
        """Replace every quad (x, y, z, w) by triangles (x, y, z) and (x, z, w)."""
        if len(self.quad) == 0:
            return
        q = self.quad
        tris = np.empty((2 * len(q), 3), dtype=np.int64)
        tris[0::2] = q[:, [0, 1, 2]]
        tris[1::2] = q[:, [0, 2, 3]]
        self.triangle = np.concatenate((self.triangle, tris))
        self.quad = np.zeros((0, 4), dtype=np.int64)

    def validate(self) -> None:
        """Check the mesh is ready for intersection.

        Raises:
            ConfigurationError: If quads remain, an index is out of range or a
                per-vertex array does not match the vertex count.
        """
        if len(self.quad):
            raise ConfigurationError(f"Mesh has {len(self.quad)} un-triangulated quads; call accelerate(scene) first")
        n = len(self.pos)
        if len(self.triangle) and (self.triangle.min() < 0 or self.triangle.max() >= n):
            raise ConfigurationError(f"Mesh triangle index out of range for {n} vertices")
        if self.norm is not None and len(self.norm) != n:
            raise ConfigurationError(f"Mesh has {len(self.norm)} normals for {n} vertices")
        if self.texcoord is not None and len(self.texcoord) != n:
            raise ConfigurationError(f"Mesh has {len(self.texcoord)} texcoords for {n} vertices")

    def triangle_bboxes(self) -> list[BoundingBox]:
        """Local-space bounding box of every triangle."""
        corners = self.pos[self.triangle]
        return [BoundingBox(c.min(axis=0), c.max(axis=0)) for c in corners]


@dataclass(eq=False)
class PointLight:
    """An isotropic point light.

    Attributes:
        position: World-space position.
        intensity: Radiant intensity (RGB); attenuated by 1 / distance^2.
    """

    position: Vec3
    intensity: Vec3

    def __post_init__(self) -> None:
        self.position = as_vec3(self.position)
        self.intensity = as_vec3(self.intensity)
        if np.any(self.intensity < 0.0):
            raise ValueError(f"Light intensity must be non-negative, got {self.intensity}")


@dataclass
class RenderSettings:
    """Image and integrator configuration.

    Attributes:
        image_width: Output width in pixels.
        image_height: Output height in pixels.
        image_samples: Strata per pixel side (image_samples^2 samples per pixel).
        path_max_depth: Maximum number of indirect bounces.
        path_shadows: Cast shadow rays for direct and environment lighting.
        russian_roulette: Terminate paths probabilistically after a few bounces.
        blurry_reflection: Average several jittered mirror rays.
        blurry_reflection_samples: Mirror rays per blurry reflection.
        blurry_reflection_spread: Jitter radius of blurry mirror rays.
        accelerate_bvh: Build a BVH per mesh in accelerate.
        bvh_split: Split axis policy (see geometry.bvh.SplitPolicy).
        bvh_leaf_size: Maximum triangles per BVH leaf.
        parallel: Render rows on a thread pool.
        threads: Worker count; None uses os.cpu_count().
        seed: Base seed of the per-pixel random generators.
    """

    image_width: int = 512
    image_height: int = 512
    image_samples: int = 1
    path_max_depth: int = 2
    path_shadows: bool = True
    russian_roulette: bool = False
    blurry_reflection: bool = False
    blurry_reflection_samples: int = 10
    blurry_reflection_spread: float = 0.2
    accelerate_bvh: bool = True
    bvh_split: SplitPolicy = SplitPolicy.DEPTH
    bvh_leaf_size: int = BVH_LEAF_SIZE
    parallel: bool = True
    threads: int | None = None
    seed: int = 0

    def __post_init__(self) -> None:
        if self.image_width <= 0 or self.image_height <= 0:
            raise ValueError(f"Image size must be positive, got {self.image_width}x{self.image_height}")
        if self.image_samples < 1:
            raise ValueError(f"image_samples must be at least 1, got {self.image_samples}")
        if not 0 <= self.path_max_depth <= ABSOLUTE_MAX_DEPTH:
            raise ValueError(f"path_max_depth must be in [0, {ABSOLUTE_MAX_DEPTH}], got {self.path_max_depth}")
        if self.blurry_reflection_samples < 1:
            raise ValueError(f"blurry_reflection_samples must be at least 1, got {self.blurry_reflection_samples}")
        if self.blurry_reflection_spread < 0.0:
            raise ValueError(f"blurry_reflection_spread must be non-negative, got {self.blurry_reflection_spread}")
        if self.bvh_leaf_size < 1:
            raise ValueError(f"bvh_leaf_size must be at least 1, got {self.bvh_leaf_size}")
        if self.threads is not None and self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")
        if self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")
        self.bvh_split = SplitPolicy(self.bvh_split)

    @property
    def pixel_samples(self) -> int:
        return self.image_samples * self.image_samples

    def thread_count(self) -> int:
        """Number of render workers to use."""
        if not self.parallel:
            return 1
        return self.threads or os.cpu_count() or 1


@dataclass(eq=False)
class Scene:
    """A complete renderable scene.

    Attributes:
        camera: The viewing camera.
        surfaces: Analytic surfaces.
        meshes: Triangle meshes.
        lights: Point lights.
        ambient: Ambient light color, multiplied by kd at every hit.
        background: Background color seen by escaping rays.
        background_txt: Optional latitude-longitude environment map.
        settings: Render configuration.
    """

    camera: PinholeCamera
    surfaces: list[Surface] = field(default_factory=list)
    meshes: list[Mesh] = field(default_factory=list)
    lights: list[PointLight] = field(default_factory=list)
    ambient: Vec3 = field(default_factory=lambda: vec3(0.0, 0.0, 0.0))
    background: Vec3 = field(default_factory=lambda: vec3(0.0, 0.0, 0.0))
    background_txt: Texture | None = None
    settings: RenderSettings = field(default_factory=RenderSettings)

    def __post_init__(self) -> None:
        self.ambient = as_vec3(self.ambient)
        self.background = as_vec3(self.background)

    @property
    def has_environment(self) -> bool:
        return bool(np.any(self.background))

    def emissive_surfaces(self) -> list[Surface]:
        """Emissive spheres and quads, which are sampled as area lights."""
        return [s for s in self.surfaces if s.material.is_emissive and s.kind != SurfaceKind.CYLINDER]

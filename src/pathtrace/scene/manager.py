"""Validating builder for scene graphs.

This module provides a high-level scene construction API that coordinates
materials, analytic surfaces, meshes and lights. Materials are registered
once and referenced by integer ID when adding objects, so several objects
can share one material.

The SceneBuilder maintains:
- A material ID space (index into the registered materials)
- High-level methods that place surfaces from centers and normals
- Construction helpers for common meshes (axis-aligned boxes)
- Camera, ambient, background and render settings

Example:
    >>> from src.pathtrace.scene.manager import SceneBuilder
    >>> builder = SceneBuilder()
    >>> red = builder.add_diffuse_material((0.8, 0.3, 0.3))
    >>> builder.add_sphere(center=(0, 0, -1), radius=0.5, material_id=red)
    0
    >>> builder.set_camera(lookfrom=(0, 0, 3), lookat=(0, 0, 0))
    >>> scene = builder.build()
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

from src.pathtrace.camera.pinhole import PinholeCamera
from src.pathtrace.core.ray import as_vec3
from src.pathtrace.geometry.frame import Frame
from src.pathtrace.materials.material import Material
from src.pathtrace.materials.texture import Texture

from .model import ConfigurationError, Mesh, PointLight, RenderSettings, Scene, Surface, SurfaceKind

Color = tuple[float, float, float]
Point = tuple[float, float, float]

# Vertex (i, j, k) of a unit box is index i + 2j + 4k; faces wind outward
_BOX_QUADS = np.array(
    [
        [0, 4, 6, 2],  # -x
        [1, 3, 7, 5],  # +x
        [0, 1, 5, 4],  # -y
        [2, 6, 7, 3],  # +y
        [0, 2, 3, 1],  # -z
        [4, 5, 7, 6],  # +z
    ],
    dtype=np.int64,
)


def _check_color(name: str, value: Color) -> None:
    if len(value) != 3:
        raise ValueError(f"{name} must have 3 components, got {value}")
    if any(c < 0.0 for c in value):
        raise ValueError(f"{name} components must be non-negative, got {value}")


class SceneBuilder:
    """Incremental, validating scene constructor.

    Attributes:
        settings: Render settings attached to the built scene.
        materials: Registered materials; the material ID is the list index.
        surfaces: Analytic surfaces added so far.
        meshes: Meshes added so far.
        lights: Point lights added so far.

    Example:
        >>> builder = SceneBuilder()
        >>> white = builder.add_diffuse_material((0.73, 0.73, 0.73))
        >>> lamp = builder.add_emissive_material((15.0, 15.0, 15.0))
        >>> builder.add_quad((0, -1, 0), (0, 1, 0), 1.0, white)
        0
        >>> builder.add_quad((0, 0.99, 0), (0, -1, 0), 0.25, lamp)
        1
    """

    def __init__(self, settings: RenderSettings | None = None) -> None:
        """Initialize an empty scene."""
        self.settings = settings if settings is not None else RenderSettings()
        self.materials: list[Material] = []
        self.surfaces: list[Surface] = []
        self.meshes: list[Mesh] = []
        self.lights: list[PointLight] = []
        self._camera: PinholeCamera | None = None
        self._ambient: Color = (0.0, 0.0, 0.0)
        self._background: Color = (0.0, 0.0, 0.0)
        self._background_txt: Texture | None = None

    def clear(self) -> None:
        """Remove every material, object, light and the camera."""
        self.materials.clear()
        self.surfaces.clear()
        self.meshes.clear()
        self.lights.clear()
        self._camera = None

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(
        self,
        kd: Color = (0.75, 0.75, 0.75),
        ks: Color = (0.25, 0.25, 0.25),
        n: float = 10.0,
        kr: Color = (0.0, 0.0, 0.0),
        ke: Color = (0.0, 0.0, 0.0),
        kd_txt: Texture | None = None,
        ks_txt: Texture | None = None,
        ke_txt: Texture | None = None,
        microfacet: bool = False,
        name: str = "",
    ) -> int:
        """Register a material.

        Args:
            kd: Diffuse reflectance as (R, G, B).
            ks: Specular reflectance as (R, G, B).
            n: Specular exponent.
            kr: Mirror reflection coefficient as (R, G, B).
            ke: Emission as (R, G, B). Emissive spheres and quads act as
                area lights.
            kd_txt: Optional diffuse texture.
            ks_txt: Optional specular texture.
            ke_txt: Optional emission texture.
            microfacet: Use the microfacet BRDF.
            name: Optional label.

        Returns:
            The material ID.

        Raises:
            ValueError: If a color has a negative component or n < 0.
        """
        material = Material(
            kd=as_vec3(kd),
            ks=as_vec3(ks),
            n=n,
            kr=as_vec3(kr),
            ke=as_vec3(ke),
            kd_txt=kd_txt,
            ks_txt=ks_txt,
            ke_txt=ke_txt,
            microfacet=microfacet,
            name=name,
        )
        self.materials.append(material)
        return len(self.materials) - 1

    def add_diffuse_material(self, albedo: Color) -> int:
        """Register a purely diffuse material (no specular lobe)."""
        _check_color("albedo", albedo)
        return self.add_material(kd=albedo, ks=(0.0, 0.0, 0.0))

    def add_mirror_material(self, reflectance: Color, kd: Color = (0.0, 0.0, 0.0)) -> int:
        """Register a reflective material."""
        _check_color("reflectance", reflectance)
        return self.add_material(kd=kd, ks=(0.0, 0.0, 0.0), kr=reflectance)

    def add_emissive_material(self, emission: Color) -> int:
        """Register a black emitter (area light material)."""
        _check_color("emission", emission)
        return self.add_material(kd=(0.0, 0.0, 0.0), ks=(0.0, 0.0, 0.0), ke=emission)

    def get_material(self, material_id: int) -> Material:
        """Look up a registered material.

        Raises:
            ValueError: If material_id is invalid.
        """
        if not 0 <= material_id < len(self.materials):
            raise ValueError(f"Invalid material_id: {material_id}")
        return self.materials[material_id]

    def get_material_count(self) -> int:
        return len(self.materials)

    # =========================================================================
    # Surface Management
    # =========================================================================

    def add_surface(
        self, kind: SurfaceKind | str, frame: Frame, radius: float, material_id: int, height: float = 0.0
    ) -> int:
        """Add an analytic surface with an explicit frame.

        Returns:
            The index of the added surface.

        Raises:
            ValueError: If material_id is invalid or the shape parameters
                are not positive.
        """
        surface = Surface(
            kind=SurfaceKind(kind),
            frame=frame,
            radius=radius,
            material=self.get_material(material_id),
            height=height,
        )
        self.surfaces.append(surface)
        return len(self.surfaces) - 1

    def add_sphere(self, center: Point, radius: float, material_id: int) -> int:
        """Add a sphere.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material_id: The material ID to assign to the sphere.

        Returns:
            The index of the added surface.
        """
        return self.add_surface(SurfaceKind.SPHERE, Frame.translation(center), radius, material_id)

    def add_quad(self, center: Point, normal: Point, radius: float, material_id: int) -> int:
        """Add a square quad facing along normal.

        Args:
            center: Center of the quad.
            normal: Direction the quad faces (need not be unit length).
            radius: Half of the side length.
            material_id: The material ID to assign to the quad.

        Returns:
            The index of the added surface.
        """
        return self.add_surface(SurfaceKind.QUAD, Frame.from_z(center, normal), radius, material_id)

    def add_cylinder(self, center: Point, axis: Point, radius: float, height: float, material_id: int) -> int:
        """Add a capped cylinder.

        Args:
            center: Center of the cylinder.
            axis: Axis direction.
            radius: Radius of the side and caps.
            height: Half-height along the axis.
            material_id: The material ID to assign to the cylinder.

        Returns:
            The index of the added surface.
        """
        return self.add_surface(SurfaceKind.CYLINDER, Frame.from_z(center, axis), radius, material_id, height)

    # =========================================================================
    # Mesh Management
    # =========================================================================

    def add_mesh(
        self,
        pos: npt.ArrayLike,
        material_id: int,
        triangles: npt.ArrayLike | None = None,
        quads: npt.ArrayLike | None = None,
        frame: Frame | None = None,
        norm: npt.ArrayLike | None = None,
        texcoord: npt.ArrayLike | None = None,
    ) -> int:
        """Add an indexed mesh.

        Quads are kept as given; accelerate(scene) triangulates them.

        Returns:
            The index of the added mesh.

        Raises:
            ValueError: If material_id is invalid, the mesh has no faces, or
                a face references a missing vertex.
        """
        mesh = Mesh(
            pos=np.asarray(pos, dtype=np.float64),
            triangle=np.zeros((0, 3), dtype=np.int64) if triangles is None else triangles,
            quad=np.zeros((0, 4), dtype=np.int64) if quads is None else quads,
            material=self.get_material(material_id),
            frame=frame if frame is not None else Frame(),
            norm=None if norm is None else np.asarray(norm, dtype=np.float64),
            texcoord=None if texcoord is None else np.asarray(texcoord, dtype=np.float64),
        )
        if len(mesh.triangle) + len(mesh.quad) == 0:
            raise ValueError("Mesh must have at least one triangle or quad")
        n = len(mesh.pos)
        for faces in (mesh.triangle, mesh.quad):
            if len(faces) and (faces.min() < 0 or faces.max() >= n):
                raise ValueError(f"Mesh face index out of range for {n} vertices")
        self.meshes.append(mesh)
        return len(self.meshes) - 1

    def add_box_mesh(self, center: Point, size: Point, material_id: int) -> int:
        """Add an axis-aligned box as a 6-quad mesh with outward faces.

        Args:
            center: Box center.
            size: Full side lengths along x, y and z.
            material_id: The material ID to assign to the box.

        Returns:
            The index of the added mesh.
        """
        half = 0.5 * as_vec3(size)
        if np.any(half <= 0.0):
            raise ValueError(f"Box size must be positive, got {size}")
        corners = np.array(
            [[2 * i - 1, 2 * j - 1, 2 * k - 1] for k in (0, 1) for j in (0, 1) for i in (0, 1)],
            dtype=np.float64,
        )
        return self.add_mesh(corners * half, material_id, quads=_BOX_QUADS, frame=Frame.translation(center))

    # =========================================================================
    # Lights, Camera and Environment
    # =========================================================================

    def add_point_light(self, position: Point, intensity: Color) -> int:
        """Add a point light.

        Returns:
            The index of the added light.

        Raises:
            ValueError: If any intensity component is negative.
        """
        _check_color("intensity", intensity)
        self.lights.append(PointLight(position=as_vec3(position), intensity=as_vec3(intensity)))
        return len(self.lights) - 1

    def set_camera(
        self,
        lookfrom: Point,
        lookat: Point,
        vup: Point = (0.0, 1.0, 0.0),
        vfov: float = 40.0,
        aspect_ratio: float | None = None,
    ) -> None:
        """Set the camera; the aspect ratio defaults to the image aspect."""
        if aspect_ratio is None:
            aspect_ratio = self.settings.image_width / self.settings.image_height
        self._camera = PinholeCamera(
            lookfrom=tuple(lookfrom),
            lookat=tuple(lookat),
            vup=tuple(vup),
            vfov=vfov,
            aspect_ratio=aspect_ratio,
        )

    def set_ambient(self, color: Color) -> None:
        _check_color("ambient", color)
        self._ambient = color

    def set_background(self, color: Color, texture: Texture | None = None) -> None:
        """Set the background color and optional environment map."""
        _check_color("background", color)
        self._background = color
        self._background_txt = texture

    # =========================================================================
    # Build
    # =========================================================================

    def get_surface_count(self) -> int:
        return len(self.surfaces)

    def get_mesh_count(self) -> int:
        return len(self.meshes)

    def get_light_count(self) -> int:
        return len(self.lights)

    def build(self) -> Scene:
        """Assemble the scene.

        The returned scene shares its objects with the builder; it still has
        to go through accelerate before rendering.

        Raises:
            ConfigurationError: If no camera was set.
        """
        if self._camera is None:
            raise ConfigurationError("Scene has no camera; call set_camera first")
        return Scene(
            camera=self._camera,
            surfaces=list(self.surfaces),
            meshes=list(self.meshes),
            lights=list(self.lights),
            ambient=as_vec3(self._ambient),
            background=as_vec3(self._background),
            background_txt=self._background_txt,
            settings=self.settings,
        )

"""Scene module for scene description and ray-scene queries.

This module holds the in-memory scene and the queries the integrator runs
against it:

Components:
    model: Scene, Surface, Mesh, PointLight and RenderSettings containers
    manager: SceneBuilder for assembling scenes from materials and shapes
    intersection: Nearest-hit and shadow queries plus scene acceleration
    cornell_box: Factory for the Cornell box test scene

A scene is built, then passed once through accelerate(), which
triangulates mesh quads and builds the per-mesh BVHs. After that it is
read-only and shared by every render thread.
"""

from .cornell_box import (
    BOX_SIZE,
    CornellBoxParams,
    create_cornell_box_scene,
    get_cornell_box_bounds,
)
from .intersection import (
    Intersection,
    accelerate,
    intersect,
    intersect_mesh,
    intersect_shadow,
    intersect_surface,
)
from .manager import SceneBuilder
from .model import (
    ABSOLUTE_MAX_DEPTH,
    ConfigurationError,
    Mesh,
    PointLight,
    RenderSettings,
    Scene,
    Surface,
    SurfaceKind,
)

__all__ = [
    # Model module
    "Scene",
    "Surface",
    "SurfaceKind",
    "Mesh",
    "PointLight",
    "RenderSettings",
    "ConfigurationError",
    "ABSOLUTE_MAX_DEPTH",
    # Intersection module
    "Intersection",
    "intersect",
    "intersect_shadow",
    "intersect_surface",
    "intersect_mesh",
    "accelerate",
    # Manager module
    "SceneBuilder",
    # Cornell box module
    "CornellBoxParams",
    "create_cornell_box_scene",
    "get_cornell_box_bounds",
    "BOX_SIZE",
]

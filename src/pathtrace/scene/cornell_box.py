"""Cornell box scene configuration.

This module provides a factory function to create a Cornell box, a standard
test scene used in computer graphics for evaluating global illumination
algorithms.

The Cornell box consists of:
- 5 walls forming an open box (left, right, back, floor, ceiling)
- Left wall: red diffuse
- Right wall: green diffuse
- Back, floor, ceiling: white diffuse
- A mirror sphere, a glossy cylinder and a diffuse box mesh
- Area light just below the ceiling (emissive quad)

The box spans [-1, 1] on every axis with the open side facing +z, where the
camera sits looking toward -z.

Example:
    >>> from src.pathtrace.scene.cornell_box import create_cornell_box_scene
    >>> from src.pathtrace.scene.intersection import accelerate
    >>> scene = create_cornell_box_scene()
    >>> accelerate(scene)
    >>> len(scene.surfaces), len(scene.meshes)
    (8, 1)
"""

from __future__ import annotations

from dataclasses import dataclass

from src.pathtrace.geometry.aabb import BoundingBox

from .manager import SceneBuilder
from .model import RenderSettings, Scene

# =============================================================================
# Cornell Box Parameters
# =============================================================================


@dataclass
class CornellBoxParams:
    """Parameters for configuring a Cornell box scene.

    Attributes:
        light_intensity: Emission strength of the ceiling light.
        light_color: RGB color of the light.
        light_radius: Half side length of the square ceiling light.
        left_wall_color: RGB albedo of the left wall.
        right_wall_color: RGB albedo of the right wall.
        back_wall_color: RGB albedo of the back wall, floor and ceiling.
        point_light: Also add a point light near the ceiling.

    Example:
        >>> params = CornellBoxParams()
        >>> params.light_intensity
        15.0
        >>> custom = CornellBoxParams(light_intensity=20.0, left_wall_color=(0.2, 0.2, 0.8))
    """

    light_intensity: float = 15.0
    light_color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    light_radius: float = 0.25
    left_wall_color: tuple[float, float, float] = (0.65, 0.05, 0.05)
    right_wall_color: tuple[float, float, float] = (0.12, 0.45, 0.15)
    back_wall_color: tuple[float, float, float] = (0.73, 0.73, 0.73)
    point_light: bool = False


# =============================================================================
# Cornell Box Constants
# =============================================================================

# Half size of the box
BOX_SIZE = 1.0

MIRROR_SPHERE_REFLECTANCE = (0.8, 0.8, 0.8)
CYLINDER_KD = (0.2, 0.3, 0.6)
CYLINDER_KS = (0.3, 0.3, 0.3)
CYLINDER_N = 50.0
BLOCK_ALBEDO = (0.73, 0.73, 0.73)

CAMERA_LOOKFROM = (0.0, 0.0, 3.4)
CAMERA_VFOV = 40.0


# =============================================================================
# Cornell Box Factory
# =============================================================================


def create_cornell_box_scene(
    params: CornellBoxParams | None = None,
    settings: RenderSettings | None = None,
) -> Scene:
    """Create a Cornell box scene.

    The coordinate system places the box center at the origin with:
    - X-axis: left to right
    - Y-axis: floor to ceiling
    - Z-axis: back to front, the camera looks toward -Z

    Args:
        params: Optional CornellBoxParams for customizing the light and wall
            colors. If None, uses default CornellBoxParams().
        settings: Optional render settings; the camera aspect ratio follows
            their image size.

    Returns:
        The scene, not yet accelerated.
    """
    if params is None:
        params = CornellBoxParams()

    builder = SceneBuilder(settings)
    s = BOX_SIZE

    # =========================================================================
    # Materials
    # =========================================================================

    red_mat = builder.add_diffuse_material(params.left_wall_color)
    green_mat = builder.add_diffuse_material(params.right_wall_color)
    white_mat = builder.add_diffuse_material(params.back_wall_color)
    light_mat = builder.add_emissive_material(tuple(params.light_intensity * c for c in params.light_color))
    mirror_mat = builder.add_mirror_material(MIRROR_SPHERE_REFLECTANCE)
    glossy_mat = builder.add_material(kd=CYLINDER_KD, ks=CYLINDER_KS, n=CYLINDER_N)
    block_mat = builder.add_diffuse_material(BLOCK_ALBEDO)

    # =========================================================================
    # Walls (5 inward-facing quads)
    # =========================================================================

    builder.add_quad((-s, 0.0, 0.0), (1.0, 0.0, 0.0), s, red_mat)
    builder.add_quad((s, 0.0, 0.0), (-1.0, 0.0, 0.0), s, green_mat)
    builder.add_quad((0.0, 0.0, -s), (0.0, 0.0, 1.0), s, white_mat)
    builder.add_quad((0.0, -s, 0.0), (0.0, 1.0, 0.0), s, white_mat)
    builder.add_quad((0.0, s, 0.0), (0.0, -1.0, 0.0), s, white_mat)

    # Light slightly below the ceiling so it is not coplanar with it
    builder.add_quad((0.0, 0.99 * s, 0.0), (0.0, -1.0, 0.0), params.light_radius * s, light_mat)

    # =========================================================================
    # Objects
    # =========================================================================

    builder.add_sphere((-0.45 * s, -0.65 * s, -0.3 * s), 0.35 * s, mirror_mat)
    builder.add_cylinder((0.5 * s, -0.6 * s, 0.3 * s), (0.0, 1.0, 0.0), 0.25 * s, 0.39 * s, glossy_mat)
    builder.add_box_mesh((0.35 * s, -0.8 * s, -0.45 * s), (0.4 * s, 0.4 * s, 0.4 * s), block_mat)

    if params.point_light:
        builder.add_point_light((0.0, 0.8 * s, 0.3 * s), (0.5, 0.5, 0.5))

    builder.set_camera(lookfrom=CAMERA_LOOKFROM, lookat=(0.0, 0.0, 0.0), vfov=CAMERA_VFOV)
    return builder.build()


def get_cornell_box_bounds() -> BoundingBox:
    """Get the bounding box of the Cornell box interior."""
    return BoundingBox((-BOX_SIZE, -BOX_SIZE, -BOX_SIZE), (BOX_SIZE, BOX_SIZE, BOX_SIZE))

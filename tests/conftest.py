"""Pytest configuration for path tracer tests.

This module provides shared fixtures: seeded random generators, small
materials, a random triangle soup and factories for tiny scenes that render
in well under a second.
"""

import numpy as np
import pytest

from src.pathtrace.camera.pinhole import PinholeCamera
from src.pathtrace.core.ray import vec3
from src.pathtrace.geometry.bvh import BVH_LEAF_SIZE
from src.pathtrace.geometry.frame import Frame
from src.pathtrace.materials.material import Material
from src.pathtrace.scene.manager import SceneBuilder
from src.pathtrace.scene.model import RenderSettings, Scene, Surface, SurfaceKind


@pytest.fixture
def rng():
    """A seeded generator so randomized tests are reproducible."""
    return np.random.default_rng(42)


@pytest.fixture
def diffuse_material():
    return Material(kd=vec3(0.5, 0.5, 0.5), ks=vec3(0.0, 0.0, 0.0))


@pytest.fixture
def black_material():
    return Material(kd=vec3(0.0, 0.0, 0.0), ks=vec3(0.0, 0.0, 0.0))


@pytest.fixture
def triangle_soup(rng):
    """Random small triangles scattered in [-5, 5]^3, as (pos, triangle) arrays."""
    count = 3 * BVH_LEAF_SIZE * 12
    centers = rng.uniform(-5.0, 5.0, size=(count, 1, 3))
    offsets = rng.uniform(-0.6, 0.6, size=(count, 3, 3))
    pos = (centers + offsets).reshape(-1, 3)
    triangle = np.arange(3 * count, dtype=np.int64).reshape(-1, 3)
    return pos, triangle


@pytest.fixture
def make_settings():
    """Factory for tiny render settings; keyword arguments override fields."""

    def factory(**overrides):
        values = {
            "image_width": 4,
            "image_height": 4,
            "image_samples": 1,
            "path_max_depth": 1,
            "parallel": False,
        }
        values.update(overrides)
        return RenderSettings(**values)

    return factory


@pytest.fixture
def make_quad():
    """Factory for a quad surface placed by center and facing direction."""

    def factory(center, normal, radius, material):
        return Surface(SurfaceKind.QUAD, Frame.from_z(center, normal), radius, material)

    return factory


@pytest.fixture
def make_scene(make_settings):
    """Factory for a scene seen from z = 5 looking at the origin with a 90 degree fov."""

    def factory(surfaces=(), meshes=(), lights=(), settings=None, **kwargs):
        settings = settings if settings is not None else make_settings()
        camera = PinholeCamera(
            lookfrom=(0.0, 0.0, 5.0),
            lookat=(0.0, 0.0, 0.0),
            vup=(0.0, 1.0, 0.0),
            vfov=90.0,
            aspect_ratio=settings.image_width / settings.image_height,
        )
        return Scene(
            camera=camera,
            surfaces=list(surfaces),
            meshes=list(meshes),
            lights=list(lights),
            settings=settings,
            **kwargs,
        )

    return factory


@pytest.fixture
def lit_scene(make_settings):
    """A floor, a small area light above it and a glossy sphere."""
    settings = make_settings(image_width=5, image_height=4, path_max_depth=2)
    builder = SceneBuilder(settings)
    white = builder.add_diffuse_material((0.7, 0.7, 0.7))
    lamp = builder.add_emissive_material((8.0, 8.0, 8.0))
    glossy = builder.add_material(kd=(0.3, 0.2, 0.1), ks=(0.2, 0.2, 0.2), n=20.0)
    builder.add_quad((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), 3.0, white)
    builder.add_quad((0.0, 0.0, 2.5), (0.0, 0.0, -1.0), 0.5, lamp)
    builder.add_sphere((0.8, 0.0, 0.5), 0.5, glossy)
    builder.set_camera(lookfrom=(0.0, -4.0, 3.0), lookat=(0.0, 0.0, 0.0), vup=(0.0, 0.0, 1.0), vfov=60.0)
    return builder.build()

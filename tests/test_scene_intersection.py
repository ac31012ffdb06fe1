"""Unit tests for scene-level intersection.

Tests cover:
- Closest-hit selection across surfaces and meshes
- Shadow queries agreeing with closest-hit queries
- BVH and linear mesh traversal agreeing
- accelerate triangulation, validation and error handling
"""

import numpy as np
import pytest

from src.pathtrace.core.ray import Ray, length, normalize, vec3
from src.pathtrace.geometry.frame import Frame
from src.pathtrace.materials.material import Material
from src.pathtrace.scene.intersection import (
    Intersection,
    accelerate,
    intersect,
    intersect_mesh,
    intersect_shadow,
    intersect_surface,
)
from src.pathtrace.scene.manager import SceneBuilder
from src.pathtrace.scene.model import ConfigurationError, Mesh, Surface, SurfaceKind


@pytest.fixture
def floor_and_ball(make_scene, make_quad):
    """A large floor quad at z = 0 with a sphere resting above the origin."""
    floor_mat = Material(kd=vec3(0.5, 0.5, 0.5), name="floor")
    ball_mat = Material(kd=vec3(0.9, 0.1, 0.1), name="ball")
    floor = make_quad((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), 3.0, floor_mat)
    ball = Surface(SurfaceKind.SPHERE, Frame.translation((0.0, 0.0, 1.0)), 0.5, ball_mat)
    return make_scene(surfaces=[floor, ball])


@pytest.fixture
def box_scene(make_scene, make_settings):
    """A scene holding a single unit box mesh at the origin, not yet accelerated."""
    builder = SceneBuilder(make_settings())
    mat = builder.add_diffuse_material((0.5, 0.5, 0.5))
    builder.add_box_mesh((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), mat)
    return make_scene(meshes=builder.meshes)


def random_rays(rng, count):
    """Rays from a shell of radius 8 aimed at random points near the origin."""
    rays = []
    for _ in range(count):
        origin = 8.0 * normalize(rng.normal(size=3))
        target = rng.uniform(-3.0, 3.0, size=3)
        rays.append(Ray(origin, normalize(target - origin)))
    return rays


class TestIntersectionRecord:
    """Tests for the Intersection record."""

    def test_default_is_miss(self):
        isect = Intersection()
        assert not isect.hit
        assert isect.material is None

    def test_closer_than(self):
        near = Intersection(hit=True, t=1.0)
        far = Intersection(hit=True, t=2.0)
        miss = Intersection()
        assert near.closer_than(far)
        assert not far.closer_than(near)
        assert near.closer_than(miss)
        assert not miss.closer_than(near)
        assert not miss.closer_than(miss)


class TestClosestHit:
    """Tests for intersect on analytic surfaces."""

    def test_sphere_in_front_of_floor(self, floor_and_ball):
        """Test that the sphere top is found before the floor behind it."""
        isect = intersect(floor_and_ball, Ray(vec3(0, 0, 5), vec3(0, 0, -1)))
        assert isect.hit
        assert isect.t == pytest.approx(3.5)
        assert isect.material.name == "ball"
        np.testing.assert_allclose(isect.pos, [0, 0, 1.5], atol=1e-9)
        np.testing.assert_allclose(isect.norm, [0, 0, 1], atol=1e-9)

    def test_floor_beside_sphere(self, floor_and_ball):
        isect = intersect(floor_and_ball, Ray(vec3(2, 0, 5), vec3(0, 0, -1)))
        assert isect.hit
        assert isect.t == pytest.approx(5.0)
        assert isect.material.name == "floor"

    def test_miss(self, floor_and_ball):
        assert not intersect(floor_and_ball, Ray(vec3(0, 0, 5), vec3(0, 0, 1))).hit

    def test_tmax_limits_hits(self, floor_and_ball):
        """Test that hits beyond tmax are ignored."""
        ray = Ray(vec3(0, 0, 5), vec3(0, 0, -1), tmax=3.0)
        assert not intersect(floor_and_ball, ray).hit
        assert not intersect_shadow(floor_and_ball, ray)

    def test_world_normals_are_unit(self, floor_and_ball, rng):
        for ray in random_rays(rng, 50):
            isect = intersect(floor_and_ball, ray)
            if isect.hit:
                assert length(isect.norm) == pytest.approx(1.0)

    def test_intersect_surface_uses_frame(self):
        """Test that a translated sphere is hit at its world position."""
        surface = Surface(SurfaceKind.SPHERE, Frame.translation((3.0, 0.0, 0.0)), 1.0, Material())
        isect = intersect_surface(surface, Ray(vec3(3, 0, 5), vec3(0, 0, -1)))
        assert isect.hit
        np.testing.assert_allclose(isect.pos, [3, 0, 1], atol=1e-9)

    def test_none_scene_raises(self):
        ray = Ray(vec3(0, 0, 0), vec3(0, 0, 1))
        with pytest.raises(ConfigurationError):
            intersect(None, ray)
        with pytest.raises(ConfigurationError):
            intersect_shadow(None, ray)


class TestShadow:
    """Tests for intersect_shadow."""

    def test_agrees_with_intersect(self, floor_and_ball, rng):
        """Test that a shadow ray is blocked exactly when intersect hits."""
        for ray in random_rays(rng, 200):
            assert intersect_shadow(floor_and_ball, ray) == intersect(floor_and_ball, ray).hit

    def test_segment_between_points(self, floor_and_ball):
        """Test that a segment through the sphere is blocked and one beside it is not."""
        assert intersect_shadow(floor_and_ball, Ray.make_segment(vec3(0, -2, 1), vec3(0, 2, 1)))
        assert not intersect_shadow(floor_and_ball, Ray.make_segment(vec3(2, -2, 1), vec3(2, 2, 1)))


class TestMeshes:
    """Tests for mesh intersection and accelerate."""

    def test_quads_require_accelerate(self, box_scene):
        ray = Ray(vec3(0, 0, 5), vec3(0, 0, -1))
        with pytest.raises(ConfigurationError, match="accelerate"):
            intersect(box_scene, ray)
        with pytest.raises(ConfigurationError, match="accelerate"):
            intersect_shadow(box_scene, ray)

    def test_box_hit_after_accelerate(self, box_scene):
        accelerate(box_scene)
        isect = intersect(box_scene, Ray(vec3(0.1, 0.2, 5), vec3(0, 0, -1)))
        assert isect.hit
        assert isect.t == pytest.approx(4.5)
        np.testing.assert_allclose(isect.norm, [0, 0, 1], atol=1e-9)

    def test_accelerate_builds_bvh(self, box_scene):
        accelerate(box_scene)
        mesh = box_scene.meshes[0]
        assert len(mesh.quad) == 0
        assert mesh.triangle.shape == (12, 3)
        assert mesh.bvh is not None

    def test_accelerate_is_idempotent(self, box_scene):
        accelerate(box_scene)
        accelerate(box_scene)
        assert box_scene.meshes[0].triangle.shape == (12, 3)

    def test_accelerate_without_bvh(self, box_scene):
        box_scene.settings.accelerate_bvh = False
        accelerate(box_scene)
        assert box_scene.meshes[0].bvh is None
        assert intersect(box_scene, Ray(vec3(0, 0, 5), vec3(0, 0, -1))).hit

    def test_accelerate_rejects_bad_index(self, make_scene, diffuse_material):
        mesh = Mesh(pos=np.zeros((3, 3)), triangle=[[0, 1, 5]], material=diffuse_material)
        with pytest.raises(ConfigurationError, match="out of range"):
            accelerate(make_scene(meshes=[mesh]))

    def test_accelerate_none_scene(self):
        with pytest.raises(ConfigurationError):
            accelerate(None)

    def test_bvh_matches_linear_scan(self, make_scene, make_settings, triangle_soup, diffuse_material, rng):
        """Test that BVH traversal finds the same t, position and normal as a linear scan."""
        pos, triangle = triangle_soup
        fast = make_scene(meshes=[Mesh(pos=pos, triangle=triangle, material=diffuse_material)])
        slow = make_scene(
            meshes=[Mesh(pos=pos, triangle=triangle, material=diffuse_material)],
            settings=make_settings(accelerate_bvh=False),
        )
        accelerate(fast)
        accelerate(slow)
        assert fast.meshes[0].bvh is not None
        assert slow.meshes[0].bvh is None
        for ray in random_rays(rng, 100):
            a = intersect(fast, ray)
            b = intersect(slow, ray)
            assert a.hit == b.hit
            if a.hit:
                assert a.t == pytest.approx(b.t)
                np.testing.assert_allclose(a.pos, b.pos, atol=1e-9)
                np.testing.assert_allclose(a.norm, b.norm, atol=1e-12)
            assert intersect_shadow(fast, ray) == a.hit

    def test_mesh_frame_applied(self, diffuse_material):
        """Test that a mesh placed by a frame is hit in world space."""
        mesh = Mesh(
            pos=[[-1, -1, 0], [1, -1, 0], [0, 1, 0]],
            triangle=[[0, 1, 2]],
            material=diffuse_material,
            frame=Frame.translation((0.0, 0.0, -2.0)),
        )
        isect = intersect_mesh(mesh, Ray(vec3(0, 0, 1), vec3(0, 0, -1)))
        assert isect.hit
        assert isect.t == pytest.approx(3.0)
        np.testing.assert_allclose(isect.pos, [0, 0, -2], atol=1e-9)
        assert isect.material is diffuse_material

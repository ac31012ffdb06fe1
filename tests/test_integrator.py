"""Unit tests for the path tracing integrator.

Tests cover:
- Background, ambient and emission terms
- Point light shading and shadows
- Area light sampling
- Environment lighting under a constant background
- Mirror and blurry mirror reflection
- Path depth limits with and without Russian roulette
- Reproducibility for a fixed generator seed
"""

import math

import numpy as np
import pytest

from src.pathtrace.core import integrator
from src.pathtrace.core.integrator import radiance, sample_area_light
from src.pathtrace.core.ray import Ray, length, normalize, vec3
from src.pathtrace.geometry.frame import Frame
from src.pathtrace.materials.material import Material
from src.pathtrace.scene.model import ABSOLUTE_MAX_DEPTH, PointLight, Surface, SurfaceKind

DOWN = Ray(vec3(0, 0, 5), vec3(0, 0, -1))


@pytest.fixture
def record_depths(monkeypatch):
    """Wrap radiance so every recursive call logs its depth."""
    depths = []
    original = integrator.radiance

    def wrapper(scene, ray, rng, depth=0, environment=True):
        depths.append(depth)
        return original(scene, ray, rng, depth, environment)

    monkeypatch.setattr(integrator, "radiance", wrapper)
    return depths


class TestLocalTerms:
    """Tests for the terms that need no sampling."""

    def test_miss_returns_background(self, make_scene, rng):
        scene = make_scene(background=(0.1, 0.2, 0.3))
        np.testing.assert_allclose(radiance(scene, DOWN, rng), [0.1, 0.2, 0.3])

    def test_ambient_only(self, make_scene, make_quad, make_settings, diffuse_material, rng):
        """Test that an unlit diffuse floor returns ambient * kd."""
        floor = make_quad((0, 0, 0), (0, 0, 1), 2.0, diffuse_material)
        scene = make_scene(surfaces=[floor], ambient=(0.2, 0.2, 0.2), settings=make_settings(path_max_depth=0))
        np.testing.assert_allclose(radiance(scene, DOWN, rng), [0.1, 0.1, 0.1])

    def test_emission_front_face_only(self, make_scene, make_quad, rng):
        lamp = Material(kd=vec3(0, 0, 0), ks=vec3(0, 0, 0), ke=vec3(3, 2, 1))
        scene = make_scene(surfaces=[make_quad((0, 0, 0), (0, 0, 1), 1.0, lamp)])
        np.testing.assert_allclose(radiance(scene, DOWN, rng), [3, 2, 1])
        up = Ray(vec3(0, 0, -5), vec3(0, 0, 1))
        np.testing.assert_array_equal(radiance(scene, up, rng), [0, 0, 0])

    def test_emission_ignored_after_bounce(self, make_scene, make_quad, rng):
        lamp = Material(kd=vec3(0, 0, 0), ks=vec3(0, 0, 0), ke=vec3(3, 3, 3))
        scene = make_scene(surfaces=[make_quad((0, 0, 0), (0, 0, 1), 1.0, lamp)])
        np.testing.assert_array_equal(radiance(scene, DOWN, rng, depth=1), [0, 0, 0])


class TestPointLights:
    """Tests for point light shading."""

    @pytest.fixture
    def point_lit(self, make_scene, make_quad, make_settings, diffuse_material):
        floor = make_quad((0, 0, 0), (0, 0, 1), 5.0, diffuse_material)
        light = PointLight(position=(0.0, 0.0, 2.0), intensity=(4.0, 4.0, 4.0))
        return make_scene(surfaces=[floor], lights=[light], settings=make_settings(path_max_depth=0))

    @staticmethod
    def oblique_ray():
        origin = vec3(3, 0, 3)
        return Ray(origin, normalize(-origin))

    def test_diffuse_point_light(self, point_lit, rng):
        """Test I / d^2 * kd / pi * cos for a light straight above the hit."""
        np.testing.assert_allclose(radiance(point_lit, self.oblique_ray(), rng), [0.5 / math.pi] * 3)

    def test_blocked_light(self, point_lit, rng):
        blocker = Surface(SurfaceKind.SPHERE, Frame.translation((0.0, 0.0, 1.0)), 0.2, Material())
        point_lit.surfaces.append(blocker)
        np.testing.assert_array_equal(radiance(point_lit, self.oblique_ray(), rng), [0, 0, 0])

    def test_shadows_disabled(self, point_lit, rng):
        blocker = Surface(SurfaceKind.SPHERE, Frame.translation((0.0, 0.0, 1.0)), 0.2, Material())
        point_lit.surfaces.append(blocker)
        point_lit.settings.path_shadows = False
        np.testing.assert_allclose(radiance(point_lit, self.oblique_ray(), rng), [0.5 / math.pi] * 3)

    def test_light_behind_surface(self, point_lit, rng):
        point_lit.lights[0].position = vec3(0.0, 0.0, -2.0)
        np.testing.assert_array_equal(radiance(point_lit, self.oblique_ray(), rng), [0, 0, 0])


class TestAreaLights:
    """Tests for area light sampling and shading."""

    def test_sample_quad_center(self):
        quad = Surface(SurfaceKind.QUAD, Frame.from_z((0, 1, 0), (0, -1, 0)), 0.5, Material())
        pos, norm, area = sample_area_light(quad, (0.5, 0.5))
        np.testing.assert_allclose(pos, [0, 1, 0], atol=1e-12)
        np.testing.assert_allclose(norm, [0, -1, 0], atol=1e-12)
        assert area == pytest.approx(1.0)

    def test_sample_quad_bounds(self, rng):
        quad = Surface(SurfaceKind.QUAD, Frame.from_z((0, 1, 0), (0, -1, 0)), 0.5, Material())
        for _ in range(50):
            pos, _, _ = sample_area_light(quad, (rng.random(), rng.random()))
            assert pos[1] == pytest.approx(1.0)
            assert abs(pos[0]) <= 0.5 + 1e-12
            assert abs(pos[2]) <= 0.5 + 1e-12

    def test_sample_sphere(self, rng):
        center = vec3(1, 2, 3)
        sphere = Surface(SurfaceKind.SPHERE, Frame.translation(center), 2.0, Material())
        for _ in range(20):
            pos, norm, area = sample_area_light(sphere, (rng.random(), rng.random()))
            assert length(pos - center) == pytest.approx(2.0)
            np.testing.assert_allclose(norm, (pos - center) / 2.0, atol=1e-9)
            assert area == pytest.approx(16.0 * math.pi)

    def test_area_light_brightens_floor(self, lit_scene, rng):
        """Test that the floor below the lamp receives positive direct light."""
        ray = Ray(vec3(-0.5, 0.0, 1.0), vec3(0, 0, -1))
        lit_scene.settings.path_max_depth = 0
        color = radiance(lit_scene, ray, rng)
        assert np.all(color > 0.0)
        assert np.all(np.isfinite(color))


class TestEnvironment:
    """Tests for environment lighting."""

    @pytest.fixture
    def sky_scene(self, make_scene, make_quad, make_settings, diffuse_material):
        floor = make_quad((0, 0, 0), (0, 0, 1), 1e4, diffuse_material)
        return make_scene(surfaces=[floor], background=(1.0, 1.0, 1.0), settings=make_settings(path_max_depth=1))

    @staticmethod
    def low_ray():
        origin = vec3(0.5, 0.0, 0.5)
        return Ray(origin, normalize(-origin))

    @pytest.fixture
    def covered_scene(self, sky_scene, make_quad, black_material):
        sky_scene.surfaces.append(make_quad((0, 0, 1), (0, 0, -1), 1e4, black_material))
        return sky_scene

    def test_miss_without_environment(self, make_scene, rng):
        scene = make_scene(background=(0.1, 0.2, 0.3))
        np.testing.assert_array_equal(radiance(scene, DOWN, rng, environment=False), [0, 0, 0])

    @pytest.mark.parametrize("depth", [0, 1, 3])
    def test_diffuse_floor_under_sky(self, sky_scene, rng, depth):
        """Test that a kd = 0.5 floor under a white sky returns kd once, at any path depth."""
        sky_scene.settings.path_max_depth = depth
        for _ in range(20):
            np.testing.assert_allclose(radiance(sky_scene, DOWN, rng), [0.5, 0.5, 0.5])

    def test_occluder_blocks_environment(self, covered_scene, rng):
        np.testing.assert_array_equal(radiance(covered_scene, self.low_ray(), rng), [0, 0, 0])

    def test_occluder_ignored_without_shadows(self, covered_scene, rng):
        covered_scene.settings.path_shadows = False
        np.testing.assert_allclose(radiance(covered_scene, self.low_ray(), rng), [0.5, 0.5, 0.5])


class TestReflection:
    """Tests for mirror reflection."""

    @pytest.fixture
    def mirror_scene(self, make_scene, make_quad, make_settings):
        mirror = Material(kd=vec3(0, 0, 0), ks=vec3(0, 0, 0), kr=vec3(0.5, 0.5, 0.5))
        floor = make_quad((0, 0, 0), (0, 0, 1), 2.0, mirror)
        return make_scene(surfaces=[floor], background=(1.0, 1.0, 1.0), settings=make_settings(path_max_depth=1))

    def test_sharp_mirror(self, mirror_scene, rng):
        np.testing.assert_allclose(radiance(mirror_scene, DOWN, rng), [0.5, 0.5, 0.5])

    def test_blurry_mirror(self, mirror_scene, rng):
        """Test that jittered mirror rays toward a uniform sky average to kr."""
        mirror_scene.settings.blurry_reflection = True
        mirror_scene.settings.blurry_reflection_samples = 8
        np.testing.assert_allclose(radiance(mirror_scene, DOWN, rng), [0.5, 0.5, 0.5])

    def test_no_reflection_at_max_depth(self, mirror_scene, rng):
        mirror_scene.settings.path_max_depth = 0
        np.testing.assert_array_equal(radiance(mirror_scene, DOWN, rng), [0, 0, 0])


class TestPathDepth:
    """Tests for recursion limits."""

    def test_facing_mirrors_stop_at_max_depth(self, make_scene, make_quad, make_settings, rng, record_depths):
        mirror = Material(kd=vec3(0, 0, 0), ks=vec3(0, 0, 0), kr=vec3(1, 1, 1))
        surfaces = [
            make_quad((0, 0, 0), (0, 0, 1), 10.0, mirror),
            make_quad((0, 0, 2), (0, 0, -1), 10.0, mirror),
        ]
        scene = make_scene(surfaces=surfaces, settings=make_settings(path_max_depth=3))
        integrator.radiance(scene, Ray(vec3(0, 0, 1), vec3(0, 0, -1)), rng)
        assert max(record_depths) == 3

    def test_indirect_stops_at_max_depth(self, lit_scene, rng, record_depths):
        for _ in range(20):
            integrator.radiance(lit_scene, Ray(vec3(0, -4, 3), normalize(vec3(0, 4, -3))), rng)
        assert max(record_depths) <= lit_scene.settings.path_max_depth

    def test_russian_roulette_terminates(self, make_scene, make_quad, make_settings, rng, record_depths):
        """Test that paths in a closed white box end well before the hard cap."""
        white = Material(kd=vec3(0.9, 0.9, 0.9), ks=vec3(0, 0, 0))
        walls = [make_quad(-n, n, 1.0, white) for n in np.eye(3)]
        walls += [make_quad(n, -n, 1.0, white) for n in np.eye(3)]
        settings = make_settings(russian_roulette=True, path_max_depth=1)
        scene = make_scene(surfaces=walls, ambient=(1.0, 1.0, 1.0), settings=settings)
        for _ in range(20):
            color = integrator.radiance(scene, Ray(vec3(0, 0, 0), normalize(rng.normal(size=3))), rng)
            assert np.all(np.isfinite(color))
            assert np.all(color >= 0.0)
        assert max(record_depths) < ABSOLUTE_MAX_DEPTH


class TestDeterminism:
    """Tests for reproducibility."""

    def test_same_seed_same_result(self, lit_scene):
        ray = Ray(vec3(0, -4, 3), normalize(vec3(0, 4, -3)))
        a = radiance(lit_scene, ray, np.random.default_rng(5))
        b = radiance(lit_scene, ray, np.random.default_rng(5))
        np.testing.assert_array_equal(a, b)

    def test_results_finite_and_non_negative(self, lit_scene, rng):
        for _ in range(20):
            target = vec3(rng.uniform(-2, 2), rng.uniform(-2, 2), 0.0)
            origin = vec3(0, -4, 3)
            color = radiance(lit_scene, Ray(origin, normalize(target - origin)), rng)
            assert np.all(np.isfinite(color))
            assert np.all(color >= 0.0)

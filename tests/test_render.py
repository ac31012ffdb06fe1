"""Unit tests for the parallel render driver.

Tests cover:
- Output shape, orientation and value range
- Reproducibility across seeds and worker counts
- Progress reporting
- Error propagation from worker threads
- Per-pixel random generators
"""

import numpy as np
import pytest

from src.pathtrace.core.render import PixelRngs, make_pixel_rngs, render
from src.pathtrace.core.ray import vec3
from src.pathtrace.materials.material import Material
from src.pathtrace.scene.manager import SceneBuilder
from src.pathtrace.scene.model import ConfigurationError


class TestRender:
    """Tests for render on small scenes."""

    def test_shape_and_values(self, lit_scene):
        image = render(lit_scene)
        assert image.shape == (4, 5, 3)
        assert image.dtype == np.float64
        assert np.all(np.isfinite(image))
        assert np.all(image >= 0.0)
        assert image.sum() > 0.0

    def test_deterministic(self, lit_scene):
        np.testing.assert_array_equal(render(lit_scene), render(lit_scene))

    def test_parallel_matches_serial(self, lit_scene, make_settings):
        """Test that the image does not depend on the worker count."""
        serial = render(lit_scene)
        lit_scene.settings = make_settings(image_width=5, image_height=4, path_max_depth=2, parallel=True, threads=3)
        np.testing.assert_array_equal(render(lit_scene), serial)

    def test_seed_changes_image(self, lit_scene, make_settings):
        first = render(lit_scene)
        lit_scene.settings = make_settings(image_width=5, image_height=4, path_max_depth=2, seed=1)
        assert not np.array_equal(render(lit_scene), first)

    def test_multiple_samples_average(self, lit_scene, make_settings):
        lit_scene.settings = make_settings(image_width=5, image_height=4, path_max_depth=2, image_samples=2)
        image = render(lit_scene)
        assert np.all(np.isfinite(image))
        assert np.all(image >= 0.0)

    def test_more_samples_less_variance(self, lit_scene, make_settings):
        """Test that the pixel estimate spreads less across seeds with more samples."""

        def spread(samples):
            values = []
            for seed in range(12):
                lit_scene.settings = make_settings(
                    image_width=1, image_height=1, path_max_depth=2, image_samples=samples, seed=seed
                )
                values.append(render(lit_scene)[0, 0].mean())
            return np.var(values)

        assert spread(4) < spread(1)

    def test_top_row_first(self, make_scene, make_quad, make_settings):
        """Test that output row 0 is the top of the image.

        An emissive quad covers the upper half of the view, so the top rows
        are lit and the bottom rows see only the black background.
        """
        lamp = Material(kd=vec3(0, 0, 0), ks=vec3(0, 0, 0), ke=vec3(1, 1, 1))
        quad = make_quad((0.0, 2.5, 0.0), (0.0, 0.0, 1.0), 2.5, lamp)
        scene = make_scene(surfaces=[quad], settings=make_settings(image_width=1, image_height=10))
        image = render(scene)
        assert np.all(image[:5].sum(axis=(1, 2)) > 0.0)
        np.testing.assert_array_equal(image[5:], 0.0)

    def test_progress_serial(self, lit_scene):
        calls = []
        render(lit_scene, progress=lambda done, total: calls.append((done, total)))
        assert calls == [(1, 4), (2, 4), (3, 4), (4, 4)]

    def test_progress_parallel(self, lit_scene, make_settings):
        lit_scene.settings = make_settings(image_width=5, image_height=4, path_max_depth=2, parallel=True, threads=2)
        calls = []
        render(lit_scene, progress=lambda done, total: calls.append((done, total)))
        assert sorted(calls) == [(1, 4), (2, 4), (3, 4), (4, 4)]

    def test_none_scene(self):
        with pytest.raises(ConfigurationError):
            render(None)

    def test_worker_error_propagates(self, make_settings):
        """Test that an un-accelerated mesh aborts a parallel render."""
        builder = SceneBuilder(make_settings(parallel=True, threads=2))
        mat = builder.add_diffuse_material((0.5, 0.5, 0.5))
        builder.add_box_mesh((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), mat)
        builder.set_camera((0.0, 0.0, 3.0), (0.0, 0.0, 0.0))
        with pytest.raises(ConfigurationError, match="accelerate"):
            render(builder.build())


class TestPixelRngs:
    """Tests for the per-pixel generators."""

    def test_same_pixel_same_stream(self):
        rngs = make_pixel_rngs(4, 3, seed=9)
        assert rngs.at(2, 1).random() == rngs.at(2, 1).random()

    def test_pixels_differ(self):
        rngs = make_pixel_rngs(4, 3)
        assert rngs.at(1, 2).random() != rngs.at(2, 1).random()

    def test_seed_changes_stream(self):
        assert make_pixel_rngs(2, 2, seed=0).at(0, 0).random() != make_pixel_rngs(2, 2, seed=1).at(0, 0).random()

    @pytest.mark.parametrize("i,j", [(-1, 0), (4, 0), (0, 3)])
    def test_out_of_range(self, i, j):
        with pytest.raises(IndexError):
            PixelRngs(4, 3).at(i, j)

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            PixelRngs(0, 3)

    def test_repr(self):
        assert repr(PixelRngs(4, 3, seed=2)) == "PixelRngs(width=4, height=3, seed=2)"

"""Core rendering module.

This module contains the fundamental building blocks for path tracing:

Components:
    ray: Ray data structure, vector helpers and direction samplers
    integrator: Recursive Monte Carlo radiance estimator
    render: Row-interleaved multithreaded render driver

The core module handles the rendering equation integration, combining
emission, direct lighting from point and area lights, environment sampling,
BRDF-importance-sampled indirect bounces and mirror reflection, with a
depth ceiling and optional Russian roulette termination.
"""

from .ray import (
    RAY_EPSILON,
    RAY_INFINITY,
    Ray,
    build_onb_from_normal,
    cross,
    distance,
    dot,
    length,
    length_squared,
    local_to_world,
    make_ray,
    normalize,
    random_in_unit_sphere,
    reflect,
    vec3,
)

# Note: integrator and render are NOT imported here to avoid circular imports.
# Import directly from src.pathtrace.core.integrator or src.pathtrace.core.render.

__all__ = [
    "RAY_EPSILON",
    "RAY_INFINITY",
    "Ray",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "distance",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "random_in_unit_sphere",
    "build_onb_from_normal",
    "local_to_world",
]

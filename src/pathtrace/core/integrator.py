"""Path tracing integrator for Monte Carlo light transport.

This module implements the recursive radiance estimator. For a ray it
returns the sum of:

    - ambient light times the diffuse reflectance
    - emission, on camera rays only and only from the front side
    - direct lighting from every point light
    - direct lighting from one sampled point on every emissive sphere/quad
    - environment lighting along one BRDF-sampled direction
    - one BRDF-importance-sampled indirect bounce, which ignores the
      environment when it escapes
    - mirror (or blurry mirror) reflection

Direct and environment terms are shadow tested when the scene enables
shadows. Recursion is bounded by the scene's maximum path depth; under
Russian roulette, paths continue with a survival probability derived from
the sampling PDF after MIN_BOUNCES_BEFORE_RR bounces, and
ABSOLUTE_MAX_DEPTH is always enforced.

Random numbers come from the numpy Generator owned by the pixel being
rendered, so results are reproducible per pixel.

Example:
    >>> import numpy as np
    >>> from src.pathtrace.camera.pinhole import get_ray
    >>> from src.pathtrace.core.integrator import radiance
    >>> from src.pathtrace.scene.cornell_box import create_cornell_box_scene
    >>> from src.pathtrace.scene.intersection import accelerate
    >>>
    >>> scene = create_cornell_box_scene()
    >>> accelerate(scene)
    >>> color = radiance(scene, get_ray(scene.camera, 0.5, 0.5), np.random.default_rng(0))
"""

from __future__ import annotations

import numpy as np

from src.pathtrace.core.ray import (
    Ray,
    Vec3,
    distance_squared,
    dot,
    is_zero,
    normalize,
    random_in_unit_sphere,
    reflect,
    sample_direction_spherical_uniform,
    vec3,
)
from src.pathtrace.geometry.quad import quad_area
from src.pathtrace.geometry.sphere import sphere_area
from src.pathtrace.materials.brdf import eval_brdf, sample_brdf
from src.pathtrace.materials.texture import eval_env, lookup_scaled_texture
from src.pathtrace.scene.intersection import intersect, intersect_shadow
from src.pathtrace.scene.model import ABSOLUTE_MAX_DEPTH, Scene, Surface, SurfaceKind

# =============================================================================
# Rendering Constants
# =============================================================================

# Minimum bounces before Russian roulette can terminate paths
MIN_BOUNCES_BEFORE_RR = 3

# Paths whose sampling PDF falls below this are terminated under Russian roulette
RR_PDF_FLOOR = 0.1

# Russian roulette survival probability cap
MAX_RR_PROBABILITY = 0.95


# =============================================================================
# Shading Helpers
# =============================================================================


class _Shading:
    """Material terms resolved at one hit point."""

    __slots__ = ("pos", "norm", "v", "kd", "ks", "n", "microfacet")

    def __init__(self, pos: Vec3, norm: Vec3, v: Vec3, kd: Vec3, ks: Vec3, n: float, microfacet: bool):
        self.pos = pos
        self.norm = norm
        self.v = v
        self.kd = kd
        self.ks = ks
        self.n = n
        self.microfacet = microfacet

    def brdfcos(self, l: Vec3) -> Vec3:
        """BRDF times the clamped cosine toward direction l."""
        cos = max(dot(self.norm, l), 0.0)
        if cos == 0.0:
            return np.zeros(3)
        return cos * eval_brdf(self.kd, self.ks, self.n, self.v, l, self.norm, self.microfacet)


def _unoccluded(scene: Scene, ray: Ray) -> bool:
    return not scene.settings.path_shadows or not intersect_shadow(scene, ray)


def sample_area_light(surface: Surface, ruv: tuple[float, float]) -> tuple[Vec3, Vec3, float]:
    """Pick a point on an emissive sphere or quad.

    Quads are sampled uniformly over their area; spheres uniformly over
    their surface.

    Args:
        surface: An emissive sphere or quad.
        ruv: Two uniform random numbers.

    Returns:
        Tuple of (world position, world normal, surface area).
    """
    frame = surface.frame
    if surface.kind == SurfaceKind.QUAD:
        local = vec3((ruv[0] - 0.5) * 2.0 * surface.radius, (ruv[1] - 0.5) * 2.0 * surface.radius, 0.0)
        return (
            frame.transform_point(local),
            frame.transform_normal(vec3(0.0, 0.0, 1.0)),
            quad_area(surface.radius),
        )
    direction = sample_direction_spherical_uniform(ruv)
    return (
        frame.transform_point(surface.radius * direction),
        frame.transform_normal(direction),
        sphere_area(surface.radius),
    )


def eval_point_lights(scene: Scene, sp: _Shading) -> Vec3:
    """Direct lighting from all point lights, attenuated by 1 / distance^2."""
    c = np.zeros(3)
    for light in scene.lights:
        cl = light.intensity / distance_squared(sp.pos, light.position)
        l = normalize(light.position - sp.pos)
        shade = cl * sp.brdfcos(l)
        if is_zero(shade):
            continue
        if _unoccluded(scene, Ray.make_segment(sp.pos, light.position)):
            c += shade
    return c


def eval_area_lights(scene: Scene, sp: _Shading, rng: np.random.Generator) -> Vec3:
    """Direct lighting from one sampled point on each emissive sphere or quad.

    The light response is ke * area * max(0, -l.N_light) / distance^2.
    """
    c = np.zeros(3)
    for surface in scene.emissive_surfaces():
        ruv = (rng.random(), rng.random())
        light_pos, light_norm, area = sample_area_light(surface, ruv)
        d2 = distance_squared(sp.pos, light_pos)
        if d2 == 0.0:
            continue
        emission = lookup_scaled_texture(surface.material.ke, surface.material.ke_txt, ruv)
        l = normalize(light_pos - sp.pos)
        response = emission * area * max(-dot(l, light_norm), 0.0) / d2
        shade = response * sp.brdfcos(l)
        if is_zero(shade):
            continue
        if _unoccluded(scene, Ray.make_segment(sp.pos, light_pos)):
            c += shade
    return c


def eval_environment(scene: Scene, sp: _Shading, rng: np.random.Generator) -> Vec3:
    """Environment lighting along one BRDF-sampled direction."""
    l, pdf = sample_brdf(sp.kd, sp.ks, sp.n, sp.v, sp.norm, (rng.random(), rng.random()), rng.random())
    if pdf <= 0.0:
        return np.zeros(3)
    response = sp.brdfcos(l) * eval_env(scene.background, scene.background_txt, l) / pdf
    if is_zero(response):
        return response
    if _unoccluded(scene, Ray(sp.pos, l)):
        return response
    return np.zeros(3)


def _survival(scene: Scene, depth: int, pdf: float, rng: np.random.Generator) -> float:
    """Probability with which the indirect bounce at depth was kept, or 0 if dropped."""
    if depth + 1 >= ABSOLUTE_MAX_DEPTH:
        return 0.0
    settings = scene.settings
    if not settings.russian_roulette:
        return 1.0 if depth < settings.path_max_depth else 0.0
    if depth < MIN_BOUNCES_BEFORE_RR:
        return 1.0
    if pdf < RR_PDF_FLOOR:
        return 0.0
    p = min(pdf, MAX_RR_PROBABILITY)
    return p if rng.random() < p else 0.0


def _reflection(scene: Scene, ray: Ray, pos: Vec3, norm: Vec3, kr: Vec3, rng: np.random.Generator, depth: int) -> Vec3:
    if depth >= scene.settings.path_max_depth or depth + 1 >= ABSOLUTE_MAX_DEPTH:
        return np.zeros(3)
    mirror = reflect(normalize(ray.direction), norm)
    settings = scene.settings
    if not settings.blurry_reflection:
        return kr * radiance(scene, Ray(pos, mirror), rng, depth + 1)
    total = np.zeros(3)
    for _ in range(settings.blurry_reflection_samples):
        jittered = normalize(mirror + settings.blurry_reflection_spread * random_in_unit_sphere(rng))
        if dot(jittered, norm) <= 0.0:
            continue
        total += radiance(scene, Ray(pos, jittered), rng, depth + 1)
    return kr * total / settings.blurry_reflection_samples


# =============================================================================
# Path Tracing Core
# =============================================================================


def radiance(
    scene: Scene, ray: Ray, rng: np.random.Generator, depth: int = 0, environment: bool = True
) -> Vec3:
    """Estimate the radiance arriving along a ray.

    Args:
        scene: An accelerated scene.
        ray: World-space ray with a unit direction.
        rng: The random generator of the pixel being rendered.
        depth: Number of bounces taken so far (0 for camera rays).
        environment: Return the environment when the ray escapes. Indirect
            bounces pass False when the hit point already sampled the
            environment explicitly.

    Returns:
        Estimated RGB radiance.

    Raises:
        ConfigurationError: If the scene is not ready for intersection.
    """
    isect = intersect(scene, ray)
    if not isect.hit:
        if not environment:
            return np.zeros(3)
        return eval_env(scene.background, scene.background_txt, normalize(ray.direction)).copy()

    mat = isect.material
    pos = isect.pos
    norm = isect.norm
    v = -normalize(ray.direction)
    uv = isect.texcoord

    kd = lookup_scaled_texture(mat.kd, mat.kd_txt, uv)
    ks = lookup_scaled_texture(mat.ks, mat.ks_txt, uv)
    ke = lookup_scaled_texture(mat.ke, mat.ke_txt, uv)
    sp = _Shading(pos, norm, v, kd, ks, mat.n, mat.microfacet)

    c = scene.ambient * kd

    if depth == 0 and dot(v, norm) > 0.0:
        c = c + ke

    c = c + eval_point_lights(scene, sp)
    c = c + eval_area_lights(scene, sp, rng)

    if scene.has_environment:
        c = c + eval_environment(scene, sp, rng)

    if not (is_zero(kd) and is_zero(ks)):
        l, pdf = sample_brdf(kd, ks, mat.n, v, norm, (rng.random(), rng.random()), rng.random())
        if pdf > 0.0:
            survival = _survival(scene, depth, pdf, rng)
            if survival > 0.0:
                weight = sp.brdfcos(l) / (pdf * survival)
                if not is_zero(weight):
                    bounce = radiance(scene, Ray(pos, l), rng, depth + 1, environment=not scene.has_environment)
                    c = c + weight * bounce

    if mat.is_reflective:
        c = c + _reflection(scene, ray, pos, norm, mat.kr, rng, depth)

    return c

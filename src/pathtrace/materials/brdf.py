"""BRDF evaluation and importance sampling.

Two reflectance models are supported:

Normalized Blinn-Phong (default):
    f = kd / pi + ks * (n + 8) / (8 pi) * max(0, N.H)^n

Microfacet (Cook-Torrance style):
    D = (n + 2) / (2 pi) * max(0, N.H)^n          Blinn-Phong distribution
    F = ks + (1 - ks) * (1 - H.L)^5               Schlick Fresnel
    G = min(1, 2 (H.N)(V.N) / V.H, 2 (H.N)(L.N) / L.H)
    f = D * G * F / (4 (L.N)(V.N))

where V is the direction toward the viewer, L the direction toward the
light and H the normalized half vector. All directions point away from the
surface.

Sampling draws from a mixture of a cosine-weighted diffuse lobe and a Phong
lobe around the mirror direction, picked with probability proportional to
the average of kd and ks. The returned PDF is the full mixture density of
the sampled direction.
"""

from __future__ import annotations

import math

from src.pathtrace.core.ray import (
    Vec3,
    build_onb_from_normal,
    dot,
    local_to_world,
    mean,
    normalize,
    reflect,
    sample_direction_hemispherical_cosine,
    vec3,
)

ZERO = vec3(0.0, 0.0, 0.0)


def eval_brdf(kd: Vec3, ks: Vec3, n: float, v: Vec3, l: Vec3, norm: Vec3, microfacet: bool = False) -> Vec3:
    """Evaluate the BRDF for a view and a light direction.

    Args:
        kd: Diffuse reflectance.
        ks: Specular reflectance.
        n: Specular exponent.
        v: Unit direction toward the viewer.
        l: Unit direction toward the light.
        norm: Unit surface normal.
        microfacet: Use the microfacet model.

    Returns:
        RGB BRDF value (not multiplied by the cosine term).
    """
    h = normalize(v + l)
    n_dot_h = max(0.0, dot(norm, h))
    if not microfacet:
        return kd / math.pi + ks * (n + 8.0) / (8.0 * math.pi) * n_dot_h**n

    n_dot_l = dot(norm, l)
    n_dot_v = dot(norm, v)
    v_dot_h = dot(v, h)
    l_dot_h = dot(l, h)
    if n_dot_l <= 0.0 or n_dot_v <= 0.0 or v_dot_h <= 0.0 or l_dot_h <= 0.0:
        return ZERO.copy()
    d = (n + 2.0) / (2.0 * math.pi) * n_dot_h**n
    f = ks + (1.0 - ks) * (1.0 - l_dot_h) ** 5
    g = min(1.0, 2.0 * n_dot_h * n_dot_v / v_dot_h, 2.0 * n_dot_h * n_dot_l / l_dot_h)
    return d * g * f / (4.0 * n_dot_l * n_dot_v)


def _lobe_weights(kd: Vec3, ks: Vec3) -> tuple[float, float]:
    wd = mean(kd)
    ws = mean(ks)
    total = wd + ws
    if total <= 0.0:
        return 0.0, 0.0
    return wd / total, ws / total


def _phong_pdf(n: float, mirror: Vec3, l: Vec3) -> float:
    cos_a = dot(mirror, l)
    if cos_a <= 0.0:
        return 0.0
    return (n + 1.0) / (2.0 * math.pi) * cos_a**n


def pdf_brdf(kd: Vec3, ks: Vec3, n: float, v: Vec3, norm: Vec3, l: Vec3) -> float:
    """Density with which sample_brdf produces the direction l."""
    pd, ps = _lobe_weights(kd, ks)
    pdf = 0.0
    n_dot_l = dot(norm, l)
    if pd > 0.0 and n_dot_l > 0.0:
        pdf += pd * n_dot_l / math.pi
    if ps > 0.0:
        pdf += ps * _phong_pdf(n, reflect(-v, norm), l)
    return pdf


def sample_brdf(
    kd: Vec3, ks: Vec3, n: float, v: Vec3, norm: Vec3, ruv: tuple[float, float], rl: float
) -> tuple[Vec3, float]:
    """Importance sample an outgoing direction.

    Args:
        kd: Diffuse reflectance.
        ks: Specular reflectance.
        n: Specular exponent.
        v: Unit direction toward the viewer.
        norm: Unit surface normal.
        ruv: Two uniform numbers used to place the direction in its lobe.
        rl: One uniform number used to pick the lobe.

    Returns:
        Tuple of (direction, pdf). A pdf of 0 means the sample must be
        ignored (black material or a degenerate direction).
    """
    pd, ps = _lobe_weights(kd, ks)
    if pd == 0.0 and ps == 0.0:
        return norm, 0.0
    if rl < pd:
        local = sample_direction_hemispherical_cosine(ruv)
        tangent, bitangent, nn = build_onb_from_normal(norm)
        l = local_to_world(local, tangent, bitangent, nn)
    else:
        mirror = reflect(-v, norm)
        cos_a = ruv[1] ** (1.0 / (n + 1.0))
        sin_a = math.sqrt(max(0.0, 1.0 - cos_a * cos_a))
        phi = 2.0 * math.pi * ruv[0]
        local = vec3(math.cos(phi) * sin_a, math.sin(phi) * sin_a, cos_a)
        tangent, bitangent, mm = build_onb_from_normal(mirror)
        l = local_to_world(local, tangent, bitangent, mm)
    l = normalize(l)
    return l, pdf_brdf(kd, ks, n, v, norm, l)

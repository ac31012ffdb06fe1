"""Materials module for BRDF models and textures.

This module implements the reflectance models used by the path tracer:

Components:
    material: Material description (kd, ks, n, kr, ke, textures)
    texture: Bilinear texture lookup and latitude-longitude environment maps
    brdf: Blinn-Phong and microfacet evaluation plus importance sampling

The BRDF functions provide:
    - eval_brdf(): Evaluate the BRDF for given directions
    - sample_brdf(): Importance sample a direction, returning its pdf
    - pdf_brdf(): Probability density for a given direction
"""

from .brdf import eval_brdf, pdf_brdf, sample_brdf
from .material import Material
from .texture import Texture, env_uv, eval_env, lookup_scaled_texture, lookup_texture

__all__ = [
    "Material",
    "Texture",
    "lookup_texture",
    "lookup_scaled_texture",
    "env_uv",
    "eval_env",
    "eval_brdf",
    "sample_brdf",
    "pdf_brdf",
]

"""Surface material description.

A Material bundles the reflectance terms consumed by the integrator:

    kd: diffuse albedo
    ks: specular albedo
    n: Blinn-Phong shininess exponent
    kr: mirror reflection coefficient
    ke: emitted radiance

kd, ks and ke may each be modulated by a texture. Surfaces and meshes hold a
reference to a Material; several objects may share the same instance.

Example:
    >>> from src.pathtrace.materials.material import Material
    >>> light = Material(kd=(0, 0, 0), ks=(0, 0, 0), ke=(15, 15, 15))
    >>> light.is_emissive
    True
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from src.pathtrace.core.ray import Vec3, as_vec3, vec3

from .texture import Texture


@dataclass(eq=False)
class Material:
    """Blinn-Phong material with optional textures.

    Attributes:
        kd: Diffuse reflectance (RGB).
        ks: Specular reflectance (RGB).
        n: Specular exponent (non-negative).
        kr: Mirror reflection coefficient (RGB).
        ke: Emission (RGB). Non-zero marks the surface as an area light.
        kd_txt: Optional texture scaling kd.
        ks_txt: Optional texture scaling ks.
        ke_txt: Optional texture scaling ke.
        microfacet: Use the Cook-Torrance style BRDF instead of
            normalized Blinn-Phong.
        name: Optional label for logging and debugging.
    """

    kd: Vec3 = field(default_factory=lambda: vec3(0.75, 0.75, 0.75))
    ks: Vec3 = field(default_factory=lambda: vec3(0.25, 0.25, 0.25))
    n: float = 10.0
    kr: Vec3 = field(default_factory=lambda: vec3(0.0, 0.0, 0.0))
    ke: Vec3 = field(default_factory=lambda: vec3(0.0, 0.0, 0.0))
    kd_txt: Texture | None = None
    ks_txt: Texture | None = None
    ke_txt: Texture | None = None
    microfacet: bool = False
    name: str = ""

    def __post_init__(self) -> None:
        for attr in ("kd", "ks", "kr", "ke"):
            value = as_vec3(getattr(self, attr))
            if value.shape != (3,):
                raise ValueError(f"Material {attr} must be an RGB triple, got shape {value.shape}")
            if np.any(value < 0.0):
                raise ValueError(f"Material {attr} must be non-negative, got {value}")
            setattr(self, attr, value)
        if self.n < 0.0:
            raise ValueError(f"Material exponent n must be non-negative, got {self.n}")
        self.n = float(self.n)

    @property
    def is_emissive(self) -> bool:
        return bool(np.any(self.ke))

    @property
    def is_reflective(self) -> bool:
        return bool(np.any(self.kr))

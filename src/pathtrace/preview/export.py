"""Image export and import utilities.

This module converts rendered linear images for output and reads image
files into textures:

    - Tone mapping (Reinhard, exposure-based) and gamma correction
    - 8-bit PNG export via Pillow
    - Texture and environment map loading via Pillow

Rendered images come from core.render.render with row 0 at the top, which
is also Pillow's row order. Textures use row 0 at the bottom, so
load_texture flips the file's rows.

Example:
    >>> from src.pathtrace.core.render import render
    >>> from src.pathtrace.preview.export import save_png_from_array
    >>>
    >>> image = render(scene)
    >>> save_png_from_array(image, "output.png", tone_map="reinhard")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.pathtrace.materials.texture import Texture

logger = logging.getLogger(__name__)

# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


# =============================================================================
# Tone Mapping
# =============================================================================


def tone_map_reinhard(image: npt.NDArray[np.floating]) -> npt.NDArray[np.float64]:
    """Apply Reinhard tone mapping: L / (1 + L).

    Args:
        image: Linear HDR image array of shape (H, W, 3).

    Returns:
        Tone mapped image in [0, 1) range.
    """
    image = np.maximum(image, 0.0)
    return image / (1.0 + image)


def tone_map_exposure(image: npt.NDArray[np.floating], exposure: float = 1.0) -> npt.NDArray[np.float64]:
    """Apply exposure-based tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        exposure: Exposure value. Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1) range.
    """
    image = np.maximum(image, 0.0)
    return 1.0 - np.exp(-image * exposure)


def apply_gamma(image: npt.NDArray[np.floating], gamma: float = 2.2) -> npt.NDArray[np.float64]:
    """Encode a linear image in [0, 1] with out = in^(1/gamma).

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    image = np.clip(image, 0.0, 1.0)
    if gamma == 1.0:
        return image
    return np.power(image, 1.0 / gamma)


def process_image_for_display(
    image: npt.NDArray[np.floating],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float64]:
    """Tone map, gamma encode and clamp a linear image to [0, 1].

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        Processed image in [0, 1] range.

    Raises:
        ValueError: If tone_map is not a known method.
    """
    result = np.nan_to_num(np.asarray(image, dtype=np.float64), nan=0.0, posinf=1.0, neginf=0.0)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    return apply_gamma(result, gamma)


# =============================================================================
# Export
# =============================================================================


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit, rounding to the nearest level."""
    processed = process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return np.round(processed * 255.0).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.floating],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save a linear image as an 8-bit PNG file.

    Args:
        image: Linear HDR image array of shape (H, W, 3), row 0 at the top.
        filepath: Output file path (should end in .png).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (default 2.2 for sRGB).
        exposure: Exposure value for exposure tone mapping.
    """
    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8).save(filepath)
    logger.info("Saved %dx%d image to %s", image_uint8.shape[1], image_uint8.shape[0], filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))


# =============================================================================
# Import
# =============================================================================


def texture_from_array(image: npt.NDArray[np.uint8], gamma: float = 2.2) -> Texture:
    """Build a linear texture from an 8-bit (H, W, 3) array with row 0 at the top.

    Args:
        image: 8-bit RGB pixels in file row order.
        gamma: Decoding gamma; 1.0 keeps the values as stored.

    Returns:
        Texture with values in [0, 1] and row 0 at the bottom.
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    values = np.asarray(image, dtype=np.float64) / 255.0
    if gamma != 1.0:
        values = np.power(values, gamma)
    return Texture(np.ascontiguousarray(values[::-1]))


def load_texture(filepath: str | Path, gamma: float = 2.2) -> Texture:
    """Load an image file as a texture or environment map.

    Args:
        filepath: Any image format Pillow can read.
        gamma: Decoding gamma applied to the 8-bit values.

    Returns:
        The loaded Texture.
    """
    with PILImage.open(filepath) as img:
        pixels = np.asarray(img.convert("RGB"))
    logger.debug("Loaded %dx%d texture from %s", pixels.shape[1], pixels.shape[0], filepath)
    return texture_from_array(pixels, gamma)

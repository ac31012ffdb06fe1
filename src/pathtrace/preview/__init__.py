"""Preview module for image output and input.

Components:
    export: Tone mapping, gamma correction, PNG export and texture loading

Rendered images are linear HDR float arrays. Tone mapping compresses them
into [0, 1] and gamma encoding prepares them for 8-bit sRGB files.

Example:
    >>> from src.pathtrace.preview import save_png_from_array
    >>> save_png_from_array(image, "output.png", gamma=2.2)
"""

from src.pathtrace.preview.export import (
    ToneMapMethod,
    apply_gamma,
    compute_rmse,
    image_to_uint8,
    load_texture,
    process_image_for_display,
    save_png_from_array,
    texture_from_array,
    tone_map_exposure,
    tone_map_reinhard,
)

__all__ = [
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    # Export functions
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
    # Import functions
    "load_texture",
    "texture_from_array",
]

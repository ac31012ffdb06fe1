"""Python implementation of a CPU Monte Carlo path tracer.

This package renders analytic surfaces and triangle meshes with:
- Bounding volume hierarchy acceleration for meshes
- Recursive path tracing with direct, area and environment lighting
- Blinn-Phong and microfacet BRDFs with texture lookups
- Row-interleaved multithreaded rendering with per-pixel RNG streams

Subpackages:
    core: Rays, vector utilities, the path tracing integrator and render driver
    geometry: Frames, bounding boxes, shape solvers and the BVH
    materials: Material model, texture lookup and BRDFs
    scene: Scene graph, builder, acceleration and intersection queries
    camera: Pinhole camera model with ray generation
    preview: Tone mapping and PNG export utilities
"""

__version__ = "0.1.0"

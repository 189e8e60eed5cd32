"""Taichi-based Monte Carlo path tracer.

This package provides ray tracing on Taichi kernels, with support for:
- Path tracing that mixes light sampling with material sampling
- Materials: Lambertian, metal, dielectric, diffuse light, isotropic media
- Figures: spheres, axis-aligned rectangles and boxes, Y rotation,
  translation, normal flipping, constant-density media, groups and BVHs
- Progressive rendering with accumulation

Subpackages:
    core: Rays, PDFs, the integrator and the progressive renderer
    geometry: Figure arena, intersection routines and BVH construction
    materials: Textures, material registries and scattering
    scene: Scene root, SceneManager and preset scenes
    camera: Thin-lens camera with ray generation
    preview: Gamma correction and PNG export

Modules:
    config: RenderConfig and Taichi initialization
"""

__version__ = "0.1.0"

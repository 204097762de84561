"""Taichi-based Monte Carlo path tracer for sphere worlds.

Renders scenes made of spheres with diffuse, metal and dielectric materials
through a thin-lens camera, writing PPM or PNG images.

Subpackages:
    core: Vector math, random streams, the integrator and the render driver
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian, metal and dielectric scattering
    camera: Thin-lens camera with depth of field
    scene: World storage, scene manager and scene file loading
    output: Pixel quantization and image writers

Taichi must be initialised (ti.init) before importing any subpackage other
than output, since importing them declares Taichi fields.
"""

__version__ = "0.1.0"

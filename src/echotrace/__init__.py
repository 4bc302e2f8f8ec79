"""Acoustic ray tracing on Taichi.

This package simulates sound propagation by geometric ray tracing: point
emitters radiate rays that bounce off reflective triangle meshes, lose energy
at every bounce, and are recorded when they cross a spherical receiver. The
recorded ``(arrival time, intensity)`` samples reconstruct an impulse
response.

Subpackages:
    core: Vector algebra, rays, direction sampling, the bounce engine and
        the simulation driver
    geometry: Triangle and sphere primitives with intersection routines
    scene: Scene description, GPU scene storage, candidate selection and
        scene factories
    output: Impulse-response reconstruction and text export
"""

__version__ = "0.1.0"

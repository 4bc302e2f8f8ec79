"""Core simulation module.

This module contains the building blocks of the simulation:

Components:
    vec3: Vector algebra (dot, cross, magnitude, unit, reflect)
    ray: Ray segment with a global time offset
    sampling: Uniform emission directions over the sphere
    engine: Double-buffered ray population and the per-round bounce kernel
    simulation: Emission batching, round loop and configuration

Rays carry the speed of sound in the magnitude of their direction, so ray
parameters are times. Every ray is advanced by exactly one event per round
until it is captured by a receiver or decays below the audibility threshold.
"""

from .ray import Ray, make_ray, ray_at
from .sampling import (
    DirectionSampler,
    fixed_direction_sampler,
    make_uniform_sampler,
    uniform_sphere_directions,
)
from .vec3 import F32_EPSILON, cross, dot, mag, mag_squared, reflect, unit, vec3

# Note: engine and simulation are NOT imported here to avoid circular imports.
# Import directly from src.echotrace.core.engine or src.echotrace.core.simulation.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "F32_EPSILON",
    "dot",
    "cross",
    "mag",
    "mag_squared",
    "unit",
    "reflect",
    "DirectionSampler",
    "uniform_sphere_directions",
    "make_uniform_sampler",
    "fixed_direction_sampler",
]

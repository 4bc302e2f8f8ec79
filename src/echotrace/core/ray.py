"""Ray data structure for sound propagation.

A ray is one straight segment of a sound's path. Its direction is not
normalized: the magnitude is the propagation speed, so the ray parameter is
measured in seconds rather than metres. ``time_offset`` is the global time at
which the segment starts, which lets intersection results be reported on a
single timeline shared by every bounce.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.echotrace.core.ray import Ray, ray_at, vec3
    >>> @ti.kernel
    ... def k() -> vec3:
    ...     ray = Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(343.0, 0.0, 0.0), time_offset=1.0)
    ...     return ray_at(ray, 1.5)  # 171.5 m along x
"""

import taichi as ti

from src.echotrace.core.vec3 import vec3


@ti.dataclass
class Ray:
    """A ray segment with an origin, a scaled direction, and a start time.

    Attributes:
        origin: The starting point of the segment (vec3).
        direction: Direction scaled by the propagation speed (vec3).
        time_offset: Global simulation time at which the segment begins.
    """

    origin: vec3
    direction: vec3
    time_offset: ti.f32


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the position of the ray at global time t.

    Args:
        ray: The ray to evaluate.
        t: Global time. ``t == ray.time_offset`` yields the origin.

    Returns:
        The point ``origin + (t - time_offset) * direction``.
    """
    return ray.origin + (t - ray.time_offset) * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3, time_offset: ti.f32) -> Ray:
    """Create a ray from origin, scaled direction and start time."""
    return Ray(origin=origin, direction=direction, time_offset=time_offset)

"""Sphere primitive with ray-sphere intersection.

Spheres model receivers: thin capture boundaries that a ray may cross on
entry or on exit. The intersection therefore reports every crossing, up to
two, and leaves the choice of the physically relevant one to the caller.

The geometric (closest-approach) formulation is used. Because ray directions
carry the propagation speed, the closest-approach parameter and half-chord
are divided by ``|direction|^2`` and ``|direction|`` respectively; for a unit
direction this reduces to the textbook form:

    tca = oc . d,  d2 = oc . oc - tca^2,  thc = sqrt(r^2 - d2)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.echotrace.geometry.sphere import Sphere, intersect_sphere
    >>> # near, far = intersect_sphere(ray, Sphere(origin=..., radius=0.1))
"""

import taichi as ti

from src.echotrace.core.ray import Ray
from src.echotrace.core.vec3 import F32_EPSILON, dot, mag_squared, unit, vec3


@ti.dataclass
class Sphere:
    """A sphere defined by its centre and radius.

    Attributes:
        origin: The centre of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    origin: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a single ray-primitive intersection.

    Attributes:
        hit: 1 if this record holds an intersection, 0 otherwise.
        time: Global arrival time, already including the ray's time_offset.
            Only valid if hit == 1.
        point: World-space intersection point. Only valid if hit == 1.
        unit_normal: Outward unit normal at the intersection.
            Only valid if hit == 1.
    """

    hit: ti.i32
    time: ti.f32
    point: vec3
    unit_normal: vec3


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        time=0.0,
        point=vec3(0.0, 0.0, 0.0),
        unit_normal=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def _sphere_hit(ray: Ray, sphere: Sphere, t: ti.f32, sign: ti.f32) -> HitRecord:
    point = ray.origin + t * ray.direction
    return HitRecord(
        hit=1,
        time=t + ray.time_offset,
        point=point,
        unit_normal=sign * unit(point - sphere.origin),
    )


@ti.func
def intersect_sphere(ray: Ray, sphere: Sphere):
    """Intersect a ray with a sphere.

    Hits behind the ray origin are reported as well; filtering against the
    ray's time_offset is done by the engine.

    Args:
        ray: The ray to test.
        sphere: The sphere to test against.

    Returns:
        A tuple ``(near, far)`` of HitRecords:
        - miss: both records have hit == 0.
        - tangent: only ``near`` is a hit, at the closest-approach time.
        - secant: ``near`` is the entry crossing with normal pointing from
          the centre to the point; ``far`` is the exit crossing with that
          normal negated.
    """
    oc = sphere.origin - ray.origin
    a = mag_squared(ray.direction)

    # Closest-approach parameter and squared distance from the centre
    tca = dot(oc, ray.direction) / a
    d2 = mag_squared(oc) - tca * tca * a
    radius2 = sphere.radius * sphere.radius

    near = make_miss_record()
    far = make_miss_record()

    if d2 <= radius2:
        thc = ti.sqrt((radius2 - d2) / a)

        if thc <= F32_EPSILON:
            near = _sphere_hit(ray, sphere, tca, 1.0)
        else:
            near = _sphere_hit(ray, sphere, tca - thc, 1.0)
            far = _sphere_hit(ray, sphere, tca + thc, -1.0)

    return near, far


@ti.func
def make_sphere(origin: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from centre and radius."""
    return Sphere(origin=origin, radius=radius)

"""Scene-level candidate selection across reflectors and receivers.

This module stores the static scene geometry in Taichi fields and provides
the per-ray query used by the bounce engine: intersect a ray with every
triangle and every receiver sphere, keep the candidates that lie strictly
after the ray's time_offset, and return the earliest as an Interaction.

An Interaction is a tagged record. ``kind`` selects which payload is
meaningful:
    - OBJECT_HIT: the ray struck a reflective triangle; ``reflectance``.
    - RECEIVER_HIT: the ray crossed a receiver sphere; ``intensity`` and
      ``receiver``.
    - NONE: no candidate, the ray escapes.

Candidates are ordered by hit time only, regardless of kind. Exact ties keep
the first candidate in scan order: triangles in insertion order, then
receivers in insertion order. Candidates with a NaN time fail the strict
time comparison and are never selected.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.echotrace.scene.intersection import (
    ...     add_triangle, add_receiver, nearest_interaction, clear_scene
    ... )
    >>> clear_scene()
    >>> add_triangle((2, 1, 0), (2, -1, 1), (2, -1, -1), reflectance=0.8)
    >>> add_receiver((0, 0, 0), 0.1)
    >>> # Use nearest_interaction within a Taichi kernel
"""

from enum import IntEnum

import taichi as ti

from src.echotrace.core.ray import Ray
from src.echotrace.core.vec3 import vec3
from src.echotrace.geometry.sphere import HitRecord, Sphere, intersect_sphere
from src.echotrace.geometry.triangle import Triangle, intersect_triangle


class InteractionKind(IntEnum):
    """Tag of an Interaction record."""

    NONE = 0
    OBJECT_HIT = 1
    RECEIVER_HIT = 2


@ti.dataclass
class Interaction:
    """The earliest event on a ray's current segment.

    Attributes:
        kind: An InteractionKind value.
        time: Global time of the event. Only valid if kind != NONE.
        point: World-space location of the event.
        unit_normal: Surface normal at the event.
        reflectance: Reflectance of the struck surface (OBJECT_HIT).
        intensity: Intensity carried by the ray into the receiver
            (RECEIVER_HIT).
        receiver: Index of the receiver (RECEIVER_HIT), -1 otherwise.
    """

    kind: ti.i32
    time: ti.f32
    point: vec3
    unit_normal: vec3
    reflectance: ti.f32
    intensity: ti.f32
    receiver: ti.i32


# Maximum number of primitives supported in the scene
MAX_TRIANGLES = 4096
MAX_RECEIVERS = 64

# Triangle storage: Structure of Arrays layout
triangle_a = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_b = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_c = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_reflectance = ti.field(dtype=ti.f32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# Receiver storage
receiver_origins = ti.Vector.field(3, dtype=ti.f32, shape=MAX_RECEIVERS)
receiver_radii = ti.field(dtype=ti.f32, shape=MAX_RECEIVERS)
num_receivers = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all triangles and receivers from the scene.

    Resets the primitive counts to zero. The field data is overwritten when
    new primitives are added.
    """
    num_triangles[None] = 0
    num_receivers[None] = 0


def add_triangle(a, b, c, reflectance: float) -> int:
    """Add a reflective triangle to the scene.

    Args:
        a: First vertex.
        b: Second vertex.
        c: Third vertex.
        reflectance: Fraction of intensity retained on reflection.

    Returns:
        The index of the added triangle.

    Raises:
        RuntimeError: If the maximum number of triangles is exceeded.
    """
    idx = num_triangles[None]
    if idx >= MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    triangle_a[idx] = [a[0], a[1], a[2]]
    triangle_b[idx] = [b[0], b[1], b[2]]
    triangle_c[idx] = [c[0], c[1], c[2]]
    triangle_reflectance[idx] = reflectance
    num_triangles[None] = idx + 1
    return idx


def add_receiver(origin, radius: float) -> int:
    """Add a receiver sphere to the scene.

    Args:
        origin: The centre of the sphere.
        radius: The radius of the sphere.

    Returns:
        The receiver index, used to tag its captures.

    Raises:
        RuntimeError: If the maximum number of receivers is exceeded.
    """
    idx = num_receivers[None]
    if idx >= MAX_RECEIVERS:
        raise RuntimeError(f"Maximum number of receivers ({MAX_RECEIVERS}) exceeded")
    receiver_origins[idx] = [origin[0], origin[1], origin[2]]
    receiver_radii[idx] = radius
    num_receivers[None] = idx + 1
    return idx


def get_triangle_count() -> int:
    """Get the number of triangles in the scene."""
    return int(num_triangles[None])


def get_receiver_count() -> int:
    """Get the number of receivers in the scene."""
    return int(num_receivers[None])


@ti.func
def make_no_interaction() -> Interaction:
    """Create an Interaction indicating that the ray escapes."""
    return Interaction(
        kind=int(InteractionKind.NONE),
        time=0.0,
        point=vec3(0.0, 0.0, 0.0),
        unit_normal=vec3(0.0, 0.0, 0.0),
        reflectance=0.0,
        intensity=0.0,
        receiver=-1,
    )


@ti.func
def is_candidate(rec: HitRecord, ray: Ray, found: ti.i32, best_time: ti.f32) -> ti.i32:
    """Check whether a hit is after the ray start and earlier than the best.

    Both comparisons are strict. A NaN time fails them and is rejected.
    """
    result = 0
    if rec.hit == 1 and rec.time > ray.time_offset:
        if found == 0 or rec.time < best_time:
            result = 1
    return result


@ti.func
def _object_hit(rec: HitRecord, reflectance: ti.f32) -> Interaction:
    return Interaction(
        kind=int(InteractionKind.OBJECT_HIT),
        time=rec.time,
        point=rec.point,
        unit_normal=rec.unit_normal,
        reflectance=reflectance,
        intensity=0.0,
        receiver=-1,
    )


@ti.func
def _receiver_hit(rec: HitRecord, intensity: ti.f32, receiver: ti.i32) -> Interaction:
    return Interaction(
        kind=int(InteractionKind.RECEIVER_HIT),
        time=rec.time,
        point=rec.point,
        unit_normal=rec.unit_normal,
        reflectance=0.0,
        intensity=intensity,
        receiver=receiver,
    )


@ti.func
def nearest_interaction(ray: Ray, intensity: ti.f32) -> Interaction:
    """Find the earliest valid event on a ray's current segment.

    Tests the ray against every triangle and every receiver in the scene and
    keeps the earliest hit whose time strictly exceeds ``ray.time_offset``.

    Args:
        ray: The ray segment to test.
        intensity: The ray's current intensity, carried into a capture.

    Returns:
        The selected Interaction, or one of kind NONE if nothing is hit.
    """
    result = make_no_interaction()
    found = 0
    best_time = 0.0

    n_triangles = num_triangles[None]
    for i in range(n_triangles):
        tri = Triangle(a=triangle_a[i], b=triangle_b[i], c=triangle_c[i])
        rec = intersect_triangle(ray, tri)
        if is_candidate(rec, ray, found, best_time) == 1:
            found = 1
            best_time = rec.time
            result = _object_hit(rec, triangle_reflectance[i])

    n_receivers = num_receivers[None]
    for i in range(n_receivers):
        sphere = Sphere(origin=receiver_origins[i], radius=receiver_radii[i])
        near, far = intersect_sphere(ray, sphere)
        if is_candidate(near, ray, found, best_time) == 1:
            found = 1
            best_time = near.time
            result = _receiver_hit(near, intensity, i)
        if is_candidate(far, ray, found, best_time) == 1:
            found = 1
            best_time = far.time
            result = _receiver_hit(far, intensity, i)

    return result

"""Python-side scene description types.

These are plain frozen dataclasses, independent of Taichi, used to describe
a scene before it is uploaded into GPU-friendly fields for simulation. They
are also the types returned to callers once a simulation finishes.

Example:
    >>> from src.echotrace.scene.objects import Emitter, Receiver, Reflector, SphereInfo
    >>> from src.echotrace.scene.objects import build_geometry_from_triangle_fan
    >>> wall = Reflector(
    ...     build_geometry_from_triangle_fan([(0, 0, 0), (0, 1, 0), (1, 1, 0), (1, 0, 0)]),
    ...     reflectance=0.8,
    ... )
    >>> mic = Receiver(SphereInfo(origin=(0.5, 0.5, 1.0), radius=0.1))
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Union

Point = tuple[float, float, float]


def as_point(value: Sequence[float]) -> Point:
    """Convert a 3-sequence to a tuple of floats.

    Raises:
        ValueError: If the sequence does not have exactly 3 components.
    """
    if len(value) != 3:
        raise ValueError(f"Expected 3 components, got {len(value)}: {value!r}")
    return (float(value[0]), float(value[1]), float(value[2]))


@dataclass(frozen=True)
class TriangleInfo:
    """A triangle of a reflective mesh.

    The face normal is ``unit((c - a) x (b - a))``; wind vertices so that it
    points out of the surface.

    Attributes:
        a: First vertex.
        b: Second vertex.
        c: Third vertex.
    """

    a: Point
    b: Point
    c: Point

    def __post_init__(self) -> None:
        object.__setattr__(self, "a", as_point(self.a))
        object.__setattr__(self, "b", as_point(self.b))
        object.__setattr__(self, "c", as_point(self.c))

    def to_list(self) -> list[list[float]]:
        return [list(self.a), list(self.b), list(self.c)]


@dataclass(frozen=True)
class SphereInfo:
    """A sphere given by its centre and radius.

    Attributes:
        origin: The centre of the sphere.
        radius: The radius of the sphere (positive).
    """

    origin: Point
    radius: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "origin", as_point(self.origin))
        if not self.radius > 0.0:
            raise ValueError(f"Sphere radius must be positive, got {self.radius}")
        object.__setattr__(self, "radius", float(self.radius))


@dataclass(frozen=True)
class Reflector:
    """A reflective triangle mesh.

    Attributes:
        geometry: The triangles making up the surface.
        reflectance: Fraction of intensity retained after one bounce, in [0, 1].
    """

    geometry: tuple[TriangleInfo, ...]
    reflectance: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "geometry", tuple(self.geometry))
        if not self.geometry:
            raise ValueError("Reflector geometry must contain at least one triangle")
        if not 0.0 <= self.reflectance <= 1.0:
            raise ValueError(f"Reflectance must be in [0, 1], got {self.reflectance}")
        object.__setattr__(self, "reflectance", float(self.reflectance))


@dataclass(frozen=True)
class Receiver:
    """A spherical receiver that captures every ray crossing its boundary.

    Attributes:
        geometry: The capture sphere.
    """

    geometry: SphereInfo


# Closed set of scene object kinds
SceneObject = Union[Reflector, Receiver]


@dataclass(frozen=True)
class Emitter:
    """A point source emitting a burst of rays in uniformly random directions.

    Attributes:
        origin: The emission point.
        sounds_per_tick: Number of rays emitted in one burst.
        label: Optional name used in log messages.
    """

    origin: Point
    sounds_per_tick: int
    label: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "origin", as_point(self.origin))
        if self.sounds_per_tick < 0:
            raise ValueError(f"sounds_per_tick must be non-negative, got {self.sounds_per_tick}")


@dataclass(frozen=True, order=True)
class Hit:
    """A receiver capture, ordered by arrival time only.

    Comparisons involving a NaN time are neither less nor greater, so
    sorting a list of hits never raises.

    Attributes:
        time: Global arrival time in seconds.
        point: World-space point where the ray crossed the receiver sphere.
        unit_normal: Outward unit normal of the sphere at ``point``.
        receiver: Index of the capturing receiver, in insertion order.
    """

    time: float
    point: Point = field(compare=False)
    unit_normal: Point = field(compare=False)
    receiver: int = field(default=0, compare=False)

    def is_finite(self) -> bool:
        return math.isfinite(self.time)


class Capture(NamedTuple):
    """A ``(hit, intensity)`` pair recorded when a receiver captures a ray."""

    hit: Hit
    intensity: float


def build_geometry_from_triangle_fan(points: Sequence[Sequence[float]]) -> list[TriangleInfo]:
    """Build triangles from an ordered fan of points.

    Triangle ``i`` is ``(points[0], points[i], points[i + 1])`` for
    ``i`` in ``[1, len(points) - 1)``, so n points produce n - 2 triangles.

    Args:
        points: At least three points; the first is the fan centre.

    Returns:
        The fan triangles, in order.

    Raises:
        ValueError: If fewer than three points are given.
    """
    if len(points) < 3:
        raise ValueError(f"A triangle fan needs at least 3 points, got {len(points)}")

    origin = as_point(points[0])
    return [
        TriangleInfo(origin, as_point(points[i]), as_point(points[i + 1]))
        for i in range(1, len(points) - 1)
    ]


def object_to_dict(obj: SceneObject) -> dict[str, Any]:
    """Serialize a scene object to a plain dictionary."""
    if isinstance(obj, Reflector):
        return {
            "type": "reflector",
            "reflectance": obj.reflectance,
            "geometry": [tri.to_list() for tri in obj.geometry],
        }
    if isinstance(obj, Receiver):
        return {
            "type": "receiver",
            "origin": list(obj.geometry.origin),
            "radius": obj.geometry.radius,
        }
    raise TypeError(f"Unknown scene object: {obj!r}")


def object_from_dict(data: dict[str, Any]) -> SceneObject:
    """Rebuild a scene object from :func:`object_to_dict` output.

    Raises:
        ValueError: If the object type is missing or unknown.
    """
    kind = str(data.get("type", "")).lower()
    if kind == "reflector":
        triangles = [TriangleInfo(*vertices) for vertices in data.get("geometry", [])]
        return Reflector(triangles, data.get("reflectance", 1.0))
    if kind == "receiver":
        return Receiver(SphereInfo(data.get("origin", [0.0, 0.0, 0.0]), data.get("radius", 1.0)))
    raise ValueError(f"Unknown scene object type: {kind!r}")

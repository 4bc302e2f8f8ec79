"""Closed rectangular room scene.

A shoebox room is the standard test scene for geometric room acoustics:
every ray stays inside, so each one ends either captured by the receiver or
decayed below the audibility threshold after enough bounces.

The room spans ``[0, L] x [0, W] x [0, H]``. Each of the six walls is a
four-point triangle fan (two triangles) wound so that its face normal points
into the room.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.echotrace.scene.box_room import BoxRoomParams, create_box_room_scene
    >>> scene = create_box_room_scene(BoxRoomParams(reflectance=0.8, sounds=2000))
    >>> scene.get_triangle_count()
    12
"""

from dataclasses import dataclass

from src.echotrace.scene.objects import (
    Emitter,
    Point,
    Reflector,
    SphereInfo,
    build_geometry_from_triangle_fan,
)
from src.echotrace.scene.scene import Scene

# =============================================================================
# Box Room Constants
# =============================================================================

# Default room dimensions in metres (length, width, height)
ROOM_SIZE = (5.0, 4.0, 3.0)

# Painted plaster, roughly
WALL_REFLECTANCE = 0.8

DEFAULT_SOUNDS = 10_000
RECEIVER_RADIUS = 0.25


@dataclass
class BoxRoomParams:
    """Parameters for configuring a box room scene.

    Attributes:
        size: Room dimensions (length, width, height) in metres.
        reflectance: Reflectance shared by all six walls.
        emitter_position: Source location; defaults to a quarter of the way
            along each axis.
        receiver_position: Receiver centre; defaults to three quarters of
            the way along each axis.
        receiver_radius: Radius of the receiver sphere.
        sounds: Number of rays emitted.
    """

    size: Point = ROOM_SIZE
    reflectance: float = WALL_REFLECTANCE
    emitter_position: Point | None = None
    receiver_position: Point | None = None
    receiver_radius: float = RECEIVER_RADIUS
    sounds: int = DEFAULT_SOUNDS


def _offset(p: Point, *edges: Point) -> Point:
    x, y, z = p
    for e in edges:
        x, y, z = x + e[0], y + e[1], z + e[2]
    return (x, y, z)


def wall_fan(corner: Point, edge_u: Point, edge_v: Point) -> list[Point]:
    """Fan points of the parallelogram corner, corner+u, corner+u+v, corner+v.

    The resulting triangles have face normal along ``edge_v x edge_u``.
    """
    return [
        corner,
        _offset(corner, edge_u),
        _offset(corner, edge_u, edge_v),
        _offset(corner, edge_v),
    ]


def box_walls(size: Point, reflectance: float) -> list[Reflector]:
    """Create the six inward-facing walls of a box room.

    Args:
        size: Room dimensions (length, width, height).
        reflectance: Reflectance of every wall.

    Returns:
        Six Reflectors: floor, ceiling, x=0, x=L, y=0, y=W.
    """
    length, width, height = size
    ex = (length, 0.0, 0.0)
    ey = (0.0, width, 0.0)
    ez = (0.0, 0.0, height)
    origin = (0.0, 0.0, 0.0)

    # (corner, u, v) with v x u pointing into the room
    walls = [
        (origin, ey, ex),  # floor, +z
        ((0.0, 0.0, height), ex, ey),  # ceiling, -z
        (origin, ez, ey),  # x = 0, +x
        ((length, 0.0, 0.0), ey, ez),  # x = L, -x
        (origin, ex, ez),  # y = 0, +y
        ((0.0, width, 0.0), ez, ex),  # y = W, -y
    ]
    return [
        Reflector(build_geometry_from_triangle_fan(wall_fan(corner, u, v)), reflectance)
        for corner, u, v in walls
    ]


def _inside(point: Point, size: Point) -> bool:
    return all(0.0 < p < s for p, s in zip(point, size))


def create_box_room_scene(params: BoxRoomParams | None = None) -> Scene:
    """Create a closed box room with one emitter and one receiver.

    Args:
        params: Optional BoxRoomParams. If None, uses BoxRoomParams().

    Returns:
        The Scene, ready to simulate.

    Raises:
        ValueError: If the room has a non-positive dimension or the emitter
            or receiver lies outside it.
    """
    if params is None:
        params = BoxRoomParams()

    size = params.size
    if any(s <= 0.0 for s in size):
        raise ValueError(f"Room dimensions must be positive, got {size}")

    emitter_position = params.emitter_position or tuple(0.25 * s for s in size)
    receiver_position = params.receiver_position or tuple(0.75 * s for s in size)

    if not _inside(emitter_position, size):
        raise ValueError(f"Emitter {emitter_position} is outside the room {size}")
    if not _inside(receiver_position, size):
        raise ValueError(f"Receiver {receiver_position} is outside the room {size}")

    scene = Scene.new()
    for wall in box_walls(size, params.reflectance):
        scene.object(wall)
    scene.receiver(SphereInfo(receiver_position, params.receiver_radius))
    scene.emitter(Emitter(emitter_position, params.sounds, label="source"))
    return scene

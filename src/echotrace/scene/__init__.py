"""Scene module for scene description and ray-scene queries.

Components:
    objects: Python-side scene types (triangles, spheres, reflectors,
        receivers, emitters, hits, captures) and the triangle-fan builder
    intersection: Scene storage in Taichi fields and earliest-event selection
    scene: Scene builder and simulation entry point
    box_room: Closed shoebox room factory

Scene data is organized for efficient GPU access:
    - Structure-of-Arrays layout for triangle and receiver data
    - Per-triangle reflectance stored alongside the vertices
"""

from .intersection import (
    MAX_RECEIVERS,
    MAX_TRIANGLES,
    Interaction,
    InteractionKind,
    add_receiver,
    add_triangle,
    clear_scene,
    get_receiver_count,
    get_triangle_count,
    nearest_interaction,
)
from .objects import (
    Capture,
    Emitter,
    Hit,
    Receiver,
    Reflector,
    SceneObject,
    SphereInfo,
    TriangleInfo,
    build_geometry_from_triangle_fan,
)

# Note: scene and box_room are NOT imported here to avoid circular imports
# (the engine imports intersection from this package).
# Import directly from src.echotrace.scene.scene or src.echotrace.scene.box_room.

__all__ = [
    # Objects module
    "Capture",
    "Emitter",
    "Hit",
    "Receiver",
    "Reflector",
    "SceneObject",
    "SphereInfo",
    "TriangleInfo",
    "build_geometry_from_triangle_fan",
    # Intersection module
    "Interaction",
    "InteractionKind",
    "add_triangle",
    "add_receiver",
    "clear_scene",
    "get_triangle_count",
    "get_receiver_count",
    "nearest_interaction",
    "MAX_TRIANGLES",
    "MAX_RECEIVERS",
]

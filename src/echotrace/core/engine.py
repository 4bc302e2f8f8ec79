"""Bounce engine: advances a population of sound rays one event per round.

Each live sound is a ray segment plus a residual intensity. One round is a
single parallel kernel launch over the whole population. For every sound the
kernel selects the earliest event on its segment and applies it:

    - no event: the ray escapes and is dropped.
    - reflective surface: the ray is mirrored about the face normal, its
      origin and time_offset move to the hit, and its intensity is scaled by
      the surface reflectance. It is dropped if the new intensity falls
      below the audibility threshold.
    - receiver: ``(hit, intensity)`` is appended to the capture buffer and
      the ray is dropped. A ray is captured at most once.

Survivors are compacted into the other half of a double buffer, so the
Python-side flip between launches is the barrier that separates rounds.

Self-intersection is avoided two ways: candidates must be strictly later
than the segment's time_offset, and reflected origins are nudged by
RAY_EPSILON off the surface toward the outgoing side.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> import numpy as np
    >>> from src.echotrace.core.engine import load_sounds, advance_round, get_alive_count
    >>> load_sounds(np.zeros((1, 3)), np.array([[343.0, 0.0, 0.0]]))
    >>> while get_alive_count() > 0:
    ...     advance_round()
"""

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.echotrace.core.ray import Ray
from src.echotrace.core.vec3 import dot, reflect, vec3
from src.echotrace.scene.intersection import (
    Interaction,
    InteractionKind,
    nearest_interaction,
)

# =============================================================================
# Simulation Constants
# =============================================================================

# Speed of sound in air at 20 C, in scene units (metres) per second
SPEED_OF_SOUND = 343.0

# Rays whose residual intensity falls below this are inaudible
AUDIBILITY_THRESHOLD = 1e-9

# Distance reflected origins are pushed off the surface
RAY_EPSILON = 1e-4

# Capacity of one population buffer (and of the capture buffer)
MAX_SOUNDS = 1 << 16

# =============================================================================
# Population and Capture Buffers
# =============================================================================

# Sound population, double buffered: [buffer, index]
_sound_origin = ti.Vector.field(3, dtype=ti.f32, shape=(2, MAX_SOUNDS))
_sound_direction = ti.Vector.field(3, dtype=ti.f32, shape=(2, MAX_SOUNDS))
_sound_time_offset = ti.field(dtype=ti.f32, shape=(2, MAX_SOUNDS))
_sound_intensity = ti.field(dtype=ti.f32, shape=(2, MAX_SOUNDS))

# Which buffer holds the live population, and how many sounds it holds
_active_buffer = ti.field(dtype=ti.i32, shape=())
_num_alive = ti.field(dtype=ti.i32, shape=())
_num_next = ti.field(dtype=ti.i32, shape=())

# Receiver captures. Every sound is captured at most once, so MAX_SOUNDS
# entries cover one full population.
_capture_time = ti.field(dtype=ti.f32, shape=MAX_SOUNDS)
_capture_point = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SOUNDS)
_capture_normal = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SOUNDS)
_capture_intensity = ti.field(dtype=ti.f32, shape=MAX_SOUNDS)
_capture_receiver = ti.field(dtype=ti.i32, shape=MAX_SOUNDS)
_num_captures = ti.field(dtype=ti.i32, shape=())


def clear_sounds() -> None:
    """Drop every live sound."""
    _active_buffer[None] = 0
    _num_alive[None] = 0
    _num_next[None] = 0


def clear_captures() -> None:
    """Discard recorded captures."""
    _num_captures[None] = 0


def get_alive_count() -> int:
    """Get the number of sounds still propagating."""
    return int(_num_alive[None])


def get_capture_count() -> int:
    """Get the number of captures recorded since the last clear."""
    return int(_num_captures[None])


# =============================================================================
# Emission
# =============================================================================


@ti.kernel
def _load_sounds_kernel(
    origins: ti.types.ndarray(),
    directions: ti.types.ndarray(),
    count: ti.i32,
):
    for i in range(count):
        _sound_origin[0, i] = vec3(origins[i, 0], origins[i, 1], origins[i, 2])
        _sound_direction[0, i] = vec3(directions[i, 0], directions[i, 1], directions[i, 2])
        _sound_time_offset[0, i] = 0.0
        _sound_intensity[0, i] = 1.0


def load_sounds(origins: npt.ArrayLike, directions: npt.ArrayLike) -> None:
    """Replace the population with freshly emitted sounds.

    Every sound starts at time 0 with intensity 1.0.

    Args:
        origins: Array of shape (N, 3) of emission points.
        directions: Array of shape (N, 3) of directions, already scaled to
            the propagation speed.

    Raises:
        ValueError: If the arrays are not matching (N, 3) arrays.
        RuntimeError: If N exceeds MAX_SOUNDS.
    """
    origins_arr = np.ascontiguousarray(origins, dtype=np.float32)
    directions_arr = np.ascontiguousarray(directions, dtype=np.float32)

    if origins_arr.ndim != 2 or origins_arr.shape[1] != 3:
        raise ValueError(f"origins must have shape (N, 3), got {origins_arr.shape}")
    if directions_arr.shape != origins_arr.shape:
        raise ValueError(
            f"directions shape {directions_arr.shape} does not match origins {origins_arr.shape}"
        )

    count = origins_arr.shape[0]
    if count > MAX_SOUNDS:
        raise RuntimeError(f"Maximum number of sounds ({MAX_SOUNDS}) exceeded: {count}")

    clear_sounds()
    if count > 0:
        _load_sounds_kernel(origins_arr, directions_arr, count)
    _num_alive[None] = count


# =============================================================================
# Bounce Rules
# =============================================================================


@ti.func
def _offset_ray_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Push a point off the surface toward the side the ray leaves on."""
    offset_dir = normal
    if dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + RAY_EPSILON * offset_dir


@ti.func
def reflect_ray(ray: Ray, interaction: Interaction) -> Ray:
    """Build the outgoing segment after a specular bounce.

    Args:
        ray: The incoming segment.
        interaction: An OBJECT_HIT interaction on that segment.

    Returns:
        A new Ray starting at the hit (nudged off the surface), mirrored
        about the surface normal, with time_offset equal to the hit time.
    """
    direction = reflect(ray.direction, interaction.unit_normal)
    origin = _offset_ray_origin(interaction.point, interaction.unit_normal, direction)
    return Ray(origin=origin, direction=direction, time_offset=interaction.time)


@ti.kernel
def _advance_round_kernel(src: ti.i32, count: ti.i32, threshold: ti.f32):
    """Apply one event to each of the ``count`` sounds in buffer ``src``."""
    for i in range(count):
        dst = 1 - src
        ray = Ray(
            origin=_sound_origin[src, i],
            direction=_sound_direction[src, i],
            time_offset=_sound_time_offset[src, i],
        )
        intensity = _sound_intensity[src, i]

        interaction = nearest_interaction(ray, intensity)

        if interaction.kind == int(InteractionKind.RECEIVER_HIT):
            c = ti.atomic_add(_num_captures[None], 1)
            _capture_time[c] = interaction.time
            _capture_point[c] = interaction.point
            _capture_normal[c] = interaction.unit_normal
            _capture_intensity[c] = interaction.intensity
            _capture_receiver[c] = interaction.receiver

        elif interaction.kind == int(InteractionKind.OBJECT_HIT):
            new_intensity = intensity * interaction.reflectance
            if new_intensity >= threshold:
                new_ray = reflect_ray(ray, interaction)
                j = ti.atomic_add(_num_next[None], 1)
                _sound_origin[dst, j] = new_ray.origin
                _sound_direction[dst, j] = new_ray.direction
                _sound_time_offset[dst, j] = new_ray.time_offset
                _sound_intensity[dst, j] = new_intensity


def advance_round(threshold: float = AUDIBILITY_THRESHOLD) -> int:
    """Advance every live sound by exactly one event.

    Args:
        threshold: Audibility threshold below which reflected sounds are
            dropped.

    Returns:
        The number of sounds still alive after the round.

    Raises:
        RuntimeError: If the capture buffer would overflow, which can only
            happen when captures were not drained between populations.
    """
    count = int(_num_alive[None])
    if count == 0:
        return 0
    if int(_num_captures[None]) + count > MAX_SOUNDS:
        raise RuntimeError(
            f"Capture buffer ({MAX_SOUNDS}) cannot hold {count} more captures; drain it first"
        )

    src = int(_active_buffer[None])
    _num_next[None] = 0
    _advance_round_kernel(src, count, threshold)

    _active_buffer[None] = 1 - src
    _num_alive[None] = _num_next[None]
    return int(_num_alive[None])


# =============================================================================
# Readback
# =============================================================================


def get_sounds_numpy() -> dict[str, npt.NDArray]:
    """Get the live population as NumPy arrays.

    Returns:
        Dict with keys ``origin`` (N, 3), ``direction`` (N, 3),
        ``time_offset`` (N,) and ``intensity`` (N,), in buffer order.
    """
    src = int(_active_buffer[None])
    n = int(_num_alive[None])
    return {
        "origin": _sound_origin.to_numpy()[src, :n],
        "direction": _sound_direction.to_numpy()[src, :n],
        "time_offset": _sound_time_offset.to_numpy()[src, :n],
        "intensity": _sound_intensity.to_numpy()[src, :n],
    }


def get_captures_numpy() -> dict[str, npt.NDArray]:
    """Get recorded captures as NumPy arrays.

    Returns:
        Dict with keys ``time`` (N,), ``point`` (N, 3), ``normal`` (N, 3),
        ``intensity`` (N,) and ``receiver`` (N,), in recording order.
    """
    n = int(_num_captures[None])
    return {
        "time": _capture_time.to_numpy()[:n],
        "point": _capture_point.to_numpy()[:n],
        "normal": _capture_normal.to_numpy()[:n],
        "intensity": _capture_intensity.to_numpy()[:n],
        "receiver": _capture_receiver.to_numpy()[:n],
    }

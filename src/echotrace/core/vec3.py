"""Vector algebra for acoustic ray tracing.

Vectors are Taichi ``vec3`` values: immutable inside kernels, with ``+``,
``-``, unary ``-`` and scalar ``*`` / ``/`` (in both operand orders) provided
natively. This module adds the named products and norms used by the
intersection kernel and the bounce engine.

``unit`` and scalar division by zero are precondition violations. They are
not trapped: the result is NaN/Inf, never a finite vector that looks valid.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.echotrace.core.vec3 import vec3, cross, unit
    >>> @ti.kernel
    ... def k() -> vec3:
    ...     return unit(cross(vec3(1.0, 0.0, 0.0), vec3(0.0, 2.0, 0.0)))
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Machine epsilon of ti.f32, used by the parallel and tangent tests
F32_EPSILON = 1.1920929e-07


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product a . b."""
    return a.x * b.x + a.y * b.y + a.z * b.z


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        The vector perpendicular to both inputs, right-hand oriented.
    """
    return vec3(
        a.y * b.z - a.z * b.y,
        a.z * b.x - a.x * b.z,
        a.x * b.y - a.y * b.x,
    )


@ti.func
def mag_squared(v: vec3) -> ti.f32:
    """Squared Euclidean norm, avoiding the square root."""
    return dot(v, v)


@ti.func
def mag(v: vec3) -> ti.f32:
    """Euclidean norm of a vector."""
    return ti.sqrt(dot(v, v))


@ti.func
def unit(v: vec3) -> vec3:
    """Scale a vector to unit length.

    Args:
        v: The input vector. Must have nonzero magnitude.

    Returns:
        ``v / mag(v)``. A zero vector produces NaN components.
    """
    return v / mag(v)


@ti.func
def reflect(direction: vec3, normal: vec3) -> vec3:
    """Mirror a direction about a unit normal.

    The magnitude of ``direction`` is preserved, so a direction scaled by the
    speed of sound stays scaled after the bounce. The sign of ``normal`` does
    not matter.

    Args:
        direction: The incoming direction vector.
        normal: The surface normal (unit length).

    Returns:
        ``direction - 2 (direction . normal) normal``.
    """
    return direction - 2.0 * dot(direction, normal) * normal

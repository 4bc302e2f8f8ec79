"""Triangle primitive with Moller-Trumbore ray-triangle intersection.

Reflective surfaces are meshes of triangles. The face normal is fixed by the
vertex winding, ``unit(ac x ab)`` for vertices (a, b, c), and is never flipped
to face the incoming ray. Meshes must therefore be wound so that this normal
points out of the surface. Reflection is insensitive to the normal's sign, so
the winding only matters to code that inspects the reported normal.

The algorithm solves

    origin + t * direction = a + u * (b - a) + v * (c - a)

for (t, u, v) with Cramer's rule and accepts the hit when u, v and u + v lie
in [0, 1]. Edges and vertices are inclusive.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.echotrace.geometry.triangle import Triangle, intersect_triangle
    >>> # rec = intersect_triangle(ray, Triangle(a=..., b=..., c=...))
"""

import taichi as ti

from src.echotrace.core.ray import Ray
from src.echotrace.core.vec3 import F32_EPSILON, cross, dot, unit, vec3

from .sphere import HitRecord, make_miss_record


@ti.dataclass
class Triangle:
    """A triangle defined by three vertices.

    Attributes:
        a: First vertex, shared by every triangle of a fan (vec3).
        b: Second vertex (vec3).
        c: Third vertex (vec3).
    """

    a: vec3
    b: vec3
    c: vec3


@ti.func
def triangle_normal(tri: Triangle) -> vec3:
    """Compute the fixed outward unit normal ``unit(ac x ab)``."""
    return unit(cross(tri.c - tri.a, tri.b - tri.a))


@ti.func
def intersect_triangle(ray: Ray, tri: Triangle) -> HitRecord:
    """Intersect a ray with a triangle.

    A ray parallel to the triangle's plane (determinant within machine
    epsilon of zero) never hits. Intersections behind the ray origin are
    not rejected here.

    Args:
        ray: The ray to test.
        tri: The triangle to test against.

    Returns:
        A HitRecord. On a hit, ``time`` is the global time
        ``t + ray.time_offset`` and ``point`` is the position at that time.
    """
    ab = tri.b - tri.a
    ac = tri.c - tri.a

    norm = cross(ray.direction, ac)
    angle = dot(ab, norm)

    result = make_miss_record()

    if ti.abs(angle) >= F32_EPSILON:
        f = 1.0 / angle
        offset = ray.origin - tri.a

        # First barycentric coordinate
        u = f * dot(offset, norm)

        if u >= 0.0 and u <= 1.0:
            qvec = cross(offset, ab)

            # Second barycentric coordinate
            v = f * dot(ray.direction, qvec)

            if v >= 0.0 and u + v <= 1.0:
                t = f * dot(ac, qvec)
                result = HitRecord(
                    hit=1,
                    time=t + ray.time_offset,
                    point=ray.origin + t * ray.direction,
                    unit_normal=unit(cross(ac, ab)),
                )

    return result


@ti.func
def make_triangle(a: vec3, b: vec3, c: vec3) -> Triangle:
    """Create a triangle from three vertices."""
    return Triangle(a=a, b=b, c=c)

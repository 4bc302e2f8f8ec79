"""Geometry module for shape primitives and intersection.

This module provides the primitives a sound ray can meet:

Components:
    triangle: Triangle primitive with Moller-Trumbore intersection
        (reflective surfaces)
    sphere: Sphere primitive with up-to-two-crossing intersection
        (receivers), and the shared HitRecord structure

All intersection routines are implemented as Taichi functions (@ti.func)
and report hit times on the ray's global timeline.

Ray-object intersection follows the pattern:
    rec = intersect_triangle(ray, triangle)
    near, far = intersect_sphere(ray, sphere)
"""

from .sphere import HitRecord, Sphere, intersect_sphere, make_miss_record, make_sphere
from .triangle import Triangle, intersect_triangle, make_triangle, triangle_normal

__all__ = [
    "HitRecord",
    "make_miss_record",
    "Sphere",
    "intersect_sphere",
    "make_sphere",
    "Triangle",
    "intersect_triangle",
    "make_triangle",
    "triangle_normal",
]

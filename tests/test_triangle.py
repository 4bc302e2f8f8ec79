"""Unit tests for the triangle primitive.

Tests cover:
- Moller-Trumbore hit time and point
- Parallel rays, misses and inclusive edges
- Fixed winding-based normal
- Global time including the ray's time offset
"""

import taichi as ti


def _run_intersect(origin, direction, a, b, c, time_offset=0.0):
    """Intersect one ray with one triangle and return the record as Python values."""
    from src.echotrace.core.ray import Ray
    from src.echotrace.geometry.triangle import Triangle, intersect_triangle

    inputs = ti.Vector.field(3, dtype=ti.f32, shape=5)
    for i, value in enumerate((origin, direction, a, b, c)):
        inputs[i] = value

    hit = ti.field(dtype=ti.i32, shape=())
    time = ti.field(dtype=ti.f32, shape=())
    point = ti.field(dtype=ti.math.vec3, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())

    @ti.kernel
    def test_kernel(offset: ti.f32):
        ray = Ray(origin=inputs[0], direction=inputs[1], time_offset=offset)
        tri = Triangle(a=inputs[2], b=inputs[3], c=inputs[4])
        rec = intersect_triangle(ray, tri)
        hit[None] = rec.hit
        time[None] = rec.time
        point[None] = rec.point
        normal[None] = rec.unit_normal

    test_kernel(time_offset)
    return (
        hit[None],
        time[None],
        tuple(point[None].to_numpy()),
        tuple(normal[None].to_numpy()),
    )


# Vertical triangle in the plane x = 2, facing -x
TRI_A = (2.0, 1.0, 0.0)
TRI_B = (2.0, -1.0, 1.0)
TRI_C = (2.0, -1.0, -1.0)


class TestTriangleHit:
    """Tests for rays that strike the triangle."""

    def test_head_on_hit(self):
        """Test a ray along +x hits the x = 2 triangle at time 2."""
        hit, time, point, _ = _run_intersect((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C)

        assert hit == 1
        assert abs(time - 2.0) < 1e-6
        assert abs(point[0] - 2.0) < 1e-6
        assert abs(point[1]) < 1e-6
        assert abs(point[2]) < 1e-6

    def test_normal_from_winding(self):
        """Test the normal is unit(ac x ab), here -x."""
        _, _, _, normal = _run_intersect((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C)

        assert abs(normal[0] + 1.0) < 1e-6
        assert abs(normal[1]) < 1e-6
        assert abs(normal[2]) < 1e-6

    def test_normal_not_flipped_toward_ray(self):
        """Test the normal stays -x when the ray comes from the +x side."""
        hit, time, _, normal = _run_intersect(
            (4.0, 0.0, 0.0), (-1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C
        )

        assert hit == 1
        assert abs(time - 2.0) < 1e-6
        assert abs(normal[0] + 1.0) < 1e-6

    def test_speed_scaled_direction_gives_time(self):
        """Test a direction of magnitude 343 reports time = distance / 343."""
        hit, time, point, _ = _run_intersect(
            (0.0, 0.0, 0.0), (343.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C
        )

        assert hit == 1
        assert abs(time - 2.0 / 343.0) < 1e-7
        assert abs(point[0] - 2.0) < 1e-5

    def test_time_offset_added(self):
        """Test the reported time is global: local t plus time offset."""
        hit, time, point, _ = _run_intersect(
            (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C, time_offset=10.0
        )

        assert hit == 1
        assert abs(time - 12.0) < 1e-5
        # The point depends on local t only
        assert abs(point[0] - 2.0) < 1e-6

    def test_hit_behind_origin_reported(self):
        """Test intersections at negative t are not filtered by the primitive."""
        hit, time, _, _ = _run_intersect((4.0, 0.0, 0.0), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C)

        assert hit == 1
        assert abs(time + 2.0) < 1e-6

    def test_vertex_is_inclusive(self):
        """Test a ray through a vertex counts as a hit."""
        hit, _, point, _ = _run_intersect((0.0, 1.0, 0.0), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C)

        assert hit == 1
        assert abs(point[1] - 1.0) < 1e-6

    def test_edge_is_inclusive(self):
        """Test a ray through the midpoint of edge bc counts as a hit."""
        hit, _, _, _ = _run_intersect((0.0, -1.0, 0.0), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C)

        assert hit == 1


class TestTriangleMiss:
    """Tests for rays that do not strike the triangle."""

    def test_parallel_ray_misses(self):
        """Test a ray parallel to the triangle plane never hits."""
        hit, _, _, _ = _run_intersect((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), TRI_A, TRI_B, TRI_C)
        assert hit == 0

    def test_parallel_ray_in_plane_misses(self):
        """Test a ray lying in the triangle plane is treated as parallel."""
        hit, _, _, _ = _run_intersect((2.0, -5.0, 0.0), (0.0, 1.0, 0.0), TRI_A, TRI_B, TRI_C)
        assert hit == 0

    def test_outside_u_misses(self):
        """Test a ray beside the triangle (u > 1) misses."""
        hit, _, _, _ = _run_intersect((0.0, 0.0, 2.0), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C)
        assert hit == 0

    def test_outside_v_misses(self):
        """Test a ray beside the triangle (v < 0) misses."""
        hit, _, _, _ = _run_intersect((0.0, 0.9, 0.9), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C)
        assert hit == 0

    def test_below_triangle_misses(self):
        """Test a ray below edge bc (u + v > 1) misses."""
        hit, _, _, _ = _run_intersect((0.0, -1.5, 0.0), (1.0, 0.0, 0.0), TRI_A, TRI_B, TRI_C)
        assert hit == 0

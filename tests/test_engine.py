"""Unit tests for the bounce engine.

Tests cover:
- Loading sound populations and input validation
- Escape, reflection, capture and decay in a single round
- Intensity decaying as r^n between parallel mirrors
- Double-buffer compaction and capture buffer limits
"""

import numpy as np
import pytest


def _add_wall_at_x(x, reflectance):
    """Add a large two-triangle wall in the plane x = const."""
    from src.echotrace.scene.intersection import add_triangle

    add_triangle((x, -10.0, -9.0), (x, 10.0, -9.0), (x, 10.0, 11.0), reflectance)
    add_triangle((x, -10.0, -9.0), (x, 10.0, 11.0), (x, -10.0, 11.0), reflectance)


class TestLoadSounds:
    """Tests for load_sounds."""

    def test_load_sets_initial_state(self):
        """Test emitted sounds start at time 0 with intensity 1."""
        from src.echotrace.core.engine import get_alive_count, get_sounds_numpy, load_sounds

        origins = np.array([[1.0, 2.0, 3.0], [0.0, 0.0, 0.0]])
        directions = np.array([[343.0, 0.0, 0.0], [0.0, -343.0, 0.0]])
        load_sounds(origins, directions)

        assert get_alive_count() == 2
        sounds = get_sounds_numpy()
        np.testing.assert_allclose(sounds["origin"], origins)
        np.testing.assert_allclose(sounds["direction"], directions)
        np.testing.assert_array_equal(sounds["time_offset"], [0.0, 0.0])
        np.testing.assert_array_equal(sounds["intensity"], [1.0, 1.0])

    def test_load_empty(self):
        """Test loading zero sounds leaves an empty population."""
        from src.echotrace.core.engine import advance_round, get_alive_count, load_sounds

        load_sounds(np.zeros((0, 3)), np.zeros((0, 3)))
        assert get_alive_count() == 0
        assert advance_round() == 0

    def test_load_replaces_population(self):
        """Test a second load discards the previous population."""
        from src.echotrace.core.engine import get_alive_count, load_sounds

        load_sounds(np.zeros((5, 3)), np.ones((5, 3)))
        load_sounds(np.zeros((2, 3)), np.ones((2, 3)))
        assert get_alive_count() == 2

    def test_bad_shape_raises(self):
        """Test origins that are not (N, 3) are rejected."""
        from src.echotrace.core.engine import load_sounds

        with pytest.raises(ValueError, match="origins"):
            load_sounds(np.zeros((4, 2)), np.zeros((4, 2)))

    def test_mismatched_shapes_raise(self):
        """Test directions must match origins."""
        from src.echotrace.core.engine import load_sounds

        with pytest.raises(ValueError, match="directions"):
            load_sounds(np.zeros((4, 3)), np.zeros((3, 3)))

    def test_too_many_sounds_raises(self):
        """Test loading more than MAX_SOUNDS raises RuntimeError."""
        from src.echotrace.core.engine import MAX_SOUNDS, load_sounds

        n = MAX_SOUNDS + 1
        with pytest.raises(RuntimeError, match="Maximum number of sounds"):
            load_sounds(np.zeros((n, 3)), np.ones((n, 3)))


class TestSingleRound:
    """Tests for the outcome of one advance_round."""

    def test_escape_drops_sound(self):
        """Test a sound with no candidate is dropped without a capture."""
        from src.echotrace.core.engine import advance_round, get_capture_count, load_sounds

        load_sounds([[0.0, 0.0, 0.0]], [[343.0, 0.0, 0.0]])
        assert advance_round() == 0
        assert get_capture_count() == 0

    def test_normal_incidence_reverses_direction(self):
        """Test a head-on reflection reverses the direction exactly."""
        from src.echotrace.core.engine import (
            RAY_EPSILON,
            advance_round,
            get_sounds_numpy,
            load_sounds,
        )

        _add_wall_at_x(2.0, reflectance=0.5)
        load_sounds([[0.0, 0.0, 0.0]], [[343.0, 0.0, 0.0]])

        assert advance_round() == 1
        sounds = get_sounds_numpy()
        np.testing.assert_array_equal(sounds["direction"][0], [-343.0, 0.0, 0.0])
        assert abs(sounds["intensity"][0] - 0.5) < 1e-7
        assert abs(sounds["time_offset"][0] - 2.0 / 343.0) < 1e-7
        # Origin sits at the hit point, nudged back toward the emitter side
        assert abs(sounds["origin"][0][0] - (2.0 - RAY_EPSILON)) < 1e-5
        assert abs(sounds["origin"][0][1]) < 1e-6

    def test_oblique_reflection(self):
        """Test an oblique reflection flips only the normal component."""
        from src.echotrace.core.engine import advance_round, get_sounds_numpy, load_sounds

        _add_wall_at_x(2.0, reflectance=1.0)
        load_sounds([[0.0, 0.0, 0.0]], [[1.0, 1.0, 0.0]])

        assert advance_round() == 1
        sounds = get_sounds_numpy()
        np.testing.assert_allclose(sounds["direction"][0], [-1.0, 1.0, 0.0], atol=1e-6)
        assert abs(sounds["time_offset"][0] - 2.0) < 1e-6
        assert abs(sounds["origin"][0][1] - 2.0) < 1e-5

    def test_receiver_capture(self):
        """Test a receiver hit records (hit, intensity) and drops the sound."""
        from src.echotrace.core.engine import (
            advance_round,
            get_capture_count,
            get_captures_numpy,
            load_sounds,
        )
        from src.echotrace.scene.intersection import add_receiver

        add_receiver((5.0, 0.0, 0.0), 1.0)
        load_sounds([[0.0, 0.0, 0.0]], [[343.0, 0.0, 0.0]])

        assert advance_round() == 0
        assert get_capture_count() == 1
        captures = get_captures_numpy()
        assert abs(captures["time"][0] - 4.0 / 343.0) < 1e-7
        np.testing.assert_allclose(captures["point"][0], [4.0, 0.0, 0.0], atol=1e-4)
        np.testing.assert_allclose(captures["normal"][0], [-1.0, 0.0, 0.0], atol=1e-5)
        assert captures["intensity"][0] == 1.0
        assert captures["receiver"][0] == 0

    def test_zero_reflectance_decays(self):
        """Test a bounce that leaves no intensity drops the sound."""
        from src.echotrace.core.engine import advance_round, get_capture_count, load_sounds

        _add_wall_at_x(2.0, reflectance=0.0)
        load_sounds([[0.0, 0.0, 0.0]], [[343.0, 0.0, 0.0]])

        assert advance_round() == 0
        assert get_capture_count() == 0

    def test_threshold_is_inclusive(self):
        """Test an intensity equal to the threshold survives and a lower one does not."""
        from src.echotrace.core.engine import advance_round, load_sounds

        _add_wall_at_x(2.0, reflectance=0.5)

        load_sounds([[0.0, 0.0, 0.0]], [[343.0, 0.0, 0.0]])
        assert advance_round(threshold=0.5) == 1

        load_sounds([[0.0, 0.0, 0.0]], [[343.0, 0.0, 0.0]])
        assert advance_round(threshold=0.6) == 0

    def test_compaction_keeps_survivors(self):
        """Test survivors are packed into the next buffer."""
        from src.echotrace.core.engine import advance_round, get_sounds_numpy, load_sounds

        _add_wall_at_x(2.0, reflectance=0.5)
        origins = np.zeros((3, 3))
        directions = np.array([[1.0, 0.0, 0.0], [-1.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        load_sounds(origins, directions)

        assert advance_round() == 2
        sounds = get_sounds_numpy()
        np.testing.assert_allclose(sounds["intensity"], [0.5, 0.5])
        np.testing.assert_allclose(sounds["direction"], [[-1.0, 0.0, 0.0]] * 2)

    def test_capture_overflow_raises(self):
        """Test advancing with a nearly full capture buffer raises RuntimeError."""
        from src.echotrace.core.engine import MAX_SOUNDS, _num_captures, advance_round, load_sounds

        load_sounds([[0.0, 0.0, 0.0]], [[343.0, 0.0, 0.0]])
        _num_captures[None] = MAX_SOUNDS

        with pytest.raises(RuntimeError, match="Capture buffer"):
            advance_round()


class TestMultiRound:
    """Tests spanning many rounds."""

    def test_parallel_mirrors_decay_geometrically(self):
        """Test intensity after n bounces is r^n until it drops below threshold."""
        from src.echotrace.core.engine import (
            AUDIBILITY_THRESHOLD,
            advance_round,
            get_alive_count,
            get_sounds_numpy,
            load_sounds,
        )

        reflectance = 0.5
        _add_wall_at_x(1.0, reflectance)
        _add_wall_at_x(-1.0, reflectance)
        load_sounds([[0.0, 0.0, 0.0]], [[1.0, 0.0, 0.0]])

        rounds = 0
        previous = 1.0
        while get_alive_count() > 0:
            alive = advance_round()
            rounds += 1
            if alive:
                sounds = get_sounds_numpy()
                intensity = float(sounds["intensity"][0])
                assert intensity < previous
                assert abs(intensity - reflectance**rounds) <= 1e-6 * reflectance**rounds
                # First wall at t = 1, then one crossing of the 2 m gap per bounce
                assert abs(sounds["time_offset"][0] - (2.0 * rounds - 1.0)) < 1e-2
                previous = intensity
            assert rounds < 100

        # 0.5^29 is audible, 0.5^30 is not
        assert reflectance**29 >= AUDIBILITY_THRESHOLD > reflectance**30
        assert rounds == 30

    def test_clear_sounds(self):
        """Test clear_sounds empties the population."""
        from src.echotrace.core.engine import clear_sounds, get_alive_count, load_sounds

        load_sounds(np.zeros((4, 3)), np.ones((4, 3)))
        clear_sounds()
        assert get_alive_count() == 0

    def test_clear_captures(self):
        """Test clear_captures resets the capture count."""
        from src.echotrace.core.engine import (
            advance_round,
            clear_captures,
            get_capture_count,
            load_sounds,
        )
        from src.echotrace.scene.intersection import add_receiver

        add_receiver((5.0, 0.0, 0.0), 1.0)
        load_sounds(np.zeros((3, 3)), np.tile([343.0, 0.0, 0.0], (3, 1)))
        advance_round()
        assert get_capture_count() == 3

        clear_captures()
        assert get_capture_count() == 0

"""Pytest configuration for echotrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_simulation_data():
    """Clear scene geometry, live sounds and captures around each test.

    This ensures tests are isolated from each other.
    """
    # Import here to avoid circular imports and ensure Taichi is initialized
    from src.echotrace.core.engine import clear_captures, clear_sounds
    from src.echotrace.scene.intersection import clear_scene

    def _clear_all():
        clear_scene()
        clear_sounds()
        clear_captures()

    _clear_all()
    yield
    _clear_all()

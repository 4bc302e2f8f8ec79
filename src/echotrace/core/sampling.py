"""Random emission directions.

Emitters radiate uniformly over the sphere. Directions are drawn on the host
with NumPy from spherical coordinates:

    theta = 2 pi u1               (azimuth, uniform in [0, 2 pi))
    phi   = acos(2 u2 - 1)        (polar angle)

with u1, u2 uniform in [0, 1). Taking the arccosine of a uniform variable
makes the density proportional to sin(phi), i.e. uniform in solid angle.

Any callable ``sampler(count) -> (count, 3) array of unit vectors`` can
replace the default, which is how tests aim rays deterministically.

Example:
    >>> from src.echotrace.core.sampling import make_uniform_sampler
    >>> sampler = make_uniform_sampler(seed=7)
    >>> sampler(4).shape
    (4, 3)
"""

from collections.abc import Callable

import numpy as np
import numpy.typing as npt

# Callable returning ``count`` unit direction vectors as a (count, 3) array
DirectionSampler = Callable[[int], npt.NDArray[np.float64]]


def uniform_sphere_directions(count: int, rng: np.random.Generator) -> npt.NDArray[np.float64]:
    """Draw unit vectors uniformly distributed over the sphere.

    Args:
        count: Number of directions to draw.
        rng: The NumPy random generator to draw from.

    Returns:
        Array of shape (count, 3) with unit-length rows.
    """
    theta = 2.0 * np.pi * rng.random(count)
    phi = np.arccos(2.0 * rng.random(count) - 1.0)

    sin_phi = np.sin(phi)
    return np.stack(
        [sin_phi * np.cos(theta), sin_phi * np.sin(theta), np.cos(phi)],
        axis=-1,
    )


def make_uniform_sampler(seed: int | None = None) -> DirectionSampler:
    """Create a uniform sphere sampler backed by its own generator.

    Args:
        seed: Seed for ``np.random.default_rng``. None draws fresh entropy.

    Returns:
        A DirectionSampler.
    """
    rng = np.random.default_rng(seed)

    def sampler(count: int) -> npt.NDArray[np.float64]:
        return uniform_sphere_directions(count, rng)

    return sampler


def fixed_direction_sampler(direction: tuple[float, float, float]) -> DirectionSampler:
    """Create a sampler that always returns the same direction.

    The direction is normalized; it must not be the zero vector.

    Raises:
        ValueError: If ``direction`` has zero length.
    """
    d = np.asarray(direction, dtype=np.float64)
    norm = np.linalg.norm(d)
    if norm == 0.0:
        raise ValueError("Direction must have nonzero length")
    d = d / norm

    def sampler(count: int) -> npt.NDArray[np.float64]:
        return np.tile(d, (count, 1))

    return sampler

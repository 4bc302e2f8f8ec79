"""Simulation driver: emission batches and the round loop.

This module wraps the bounce engine with the host-side control flow:

- Emission: every emitter contributes ``sounds_per_tick`` rays from its
  origin, with directions from a DirectionSampler scaled to the speed of
  sound and intensity 1.0.
- Batching: rays are independent, so emissions larger than the engine's
  buffer are split into batches that are simulated one after another.
- Round loop: rounds run until the population is empty. There is no
  built-in iteration cap. A closed box of perfect mirrors
  (reflectance 1.0) never loses energy and never terminates, so callers
  who need a guarantee set ``SimulationConfig.max_rounds``.
- Readback: captures are drained into :class:`Capture` tuples after each
  batch and returned sorted by arrival time.

The scene geometry must already be uploaded (see
``src.echotrace.scene.scene.Scene.simulate``, which does both).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.echotrace.core.simulation import BounceSimulator, SimulationConfig
    >>> simulator = BounceSimulator(SimulationConfig(seed=1))
    >>> captures = simulator.run(emitters)
"""

import logging
from collections.abc import Callable, Generator, Iterable
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from src.echotrace.core.engine import (
    AUDIBILITY_THRESHOLD,
    MAX_SOUNDS,
    SPEED_OF_SOUND,
    advance_round,
    clear_captures,
    clear_sounds,
    get_alive_count,
    get_capture_count,
    get_captures_numpy,
    load_sounds,
)
from src.echotrace.core.sampling import DirectionSampler, make_uniform_sampler
from src.echotrace.scene.objects import Capture, Emitter, Hit

logger = logging.getLogger(__name__)

# Callback receives (round_index, alive_after_round, captures_so_far)
RoundCallback = Callable[[int, int, int], None]


@dataclass
class SimulationConfig:
    """Tunable parameters of a simulation run.

    Attributes:
        speed_of_sound: Propagation speed in scene units per second.
        audibility_threshold: Rays below this residual intensity are dropped.
        batch_size: Maximum number of rays simulated together
            (at most MAX_SOUNDS).
        max_rounds: Optional cap on rounds per batch. None means unbounded.
            When the cap is hit, the remaining rays are dropped.
        seed: Seed for the default direction sampler. None is
            nondeterministic.
    """

    speed_of_sound: float = SPEED_OF_SOUND
    audibility_threshold: float = AUDIBILITY_THRESHOLD
    batch_size: int = MAX_SOUNDS
    max_rounds: int | None = None
    seed: int | None = None

    def __post_init__(self) -> None:
        if not self.speed_of_sound > 0.0:
            raise ValueError(f"speed_of_sound must be positive, got {self.speed_of_sound}")
        if not self.audibility_threshold > 0.0:
            raise ValueError(
                f"audibility_threshold must be positive, got {self.audibility_threshold}"
            )
        if not 1 <= self.batch_size <= MAX_SOUNDS:
            raise ValueError(f"batch_size must be in [1, {MAX_SOUNDS}], got {self.batch_size}")
        if self.max_rounds is not None and self.max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {self.max_rounds}")

    def to_dict(self) -> dict[str, Any]:
        """Export the configuration to a dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SimulationConfig":
        """Build a configuration from a dictionary, ignoring unknown keys."""
        known = {key: data[key] for key in cls.__dataclass_fields__ if key in data}
        return cls(**known)


def captures_from_arrays(data: dict[str, npt.NDArray]) -> list[Capture]:
    """Convert engine capture arrays into Capture tuples."""
    captures = []
    for time, point, normal, intensity, receiver in zip(
        data["time"], data["point"], data["normal"], data["intensity"], data["receiver"]
    ):
        hit = Hit(
            time=float(time),
            point=(float(point[0]), float(point[1]), float(point[2])),
            unit_normal=(float(normal[0]), float(normal[1]), float(normal[2])),
            receiver=int(receiver),
        )
        captures.append(Capture(hit, float(intensity)))
    return captures


class BounceSimulator:
    """Runs emitted rays through the uploaded scene until none remain.

    Attributes:
        config: The SimulationConfig in use.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        sampler: DirectionSampler | None = None,
    ) -> None:
        """Initialize the simulator.

        Args:
            config: Simulation parameters. Defaults to SimulationConfig().
            sampler: Source of unit emission directions. Defaults to a
                uniform sphere sampler seeded with ``config.seed``.
        """
        self.config = config or SimulationConfig()
        self._sampler = sampler or make_uniform_sampler(self.config.seed)
        self._rounds = 0

    @property
    def rounds(self) -> int:
        """Total number of rounds run by the last call to run()."""
        return self._rounds

    def _sample_directions(self, count: int) -> npt.NDArray[np.float64]:
        directions = np.asarray(self._sampler(count), dtype=np.float64)
        if directions.shape != (count, 3):
            raise ValueError(
                f"Direction sampler returned shape {directions.shape}, expected ({count}, 3)"
            )
        return directions * self.config.speed_of_sound

    def emission_batches(
        self, emitters: Iterable[Emitter]
    ) -> Generator[tuple[npt.NDArray, npt.NDArray], None, None]:
        """Split all emitters' bursts into batches of at most batch_size rays.

        Yields:
            Tuples ``(origins, directions)`` of (N, 3) arrays, directions
            already scaled to the speed of sound.
        """
        batch_size = self.config.batch_size
        origins: list[npt.NDArray] = []
        directions: list[npt.NDArray] = []
        pending = 0

        for emitter in emitters:
            remaining = emitter.sounds_per_tick
            logger.debug("Emitter %s emitting %d sounds", emitter.label or emitter.origin, remaining)
            while remaining > 0:
                take = min(remaining, batch_size - pending)
                origins.append(np.tile(np.asarray(emitter.origin, dtype=np.float64), (take, 1)))
                directions.append(self._sample_directions(take))
                pending += take
                remaining -= take

                if pending == batch_size:
                    yield np.concatenate(origins), np.concatenate(directions)
                    origins, directions, pending = [], [], 0

        if pending > 0:
            yield np.concatenate(origins), np.concatenate(directions)

    def propagate(
        self, origins: npt.ArrayLike, directions: npt.ArrayLike
    ) -> Generator[tuple[int, int, int], None, None]:
        """Simulate one batch, yielding progress after each round.

        Captures accumulate in the engine buffer; drain them with
        ``get_captures_numpy`` before the next batch.

        Args:
            origins: (N, 3) emission points.
            directions: (N, 3) directions scaled to the propagation speed.

        Yields:
            Tuple of (round_index, alive_after_round, captures_so_far).
        """
        load_sounds(origins, directions)
        max_rounds = self.config.max_rounds

        round_index = 0
        while get_alive_count() > 0:
            if max_rounds is not None and round_index >= max_rounds:
                logger.warning(
                    "Stopping after %d rounds with %d sounds still alive",
                    round_index,
                    get_alive_count(),
                )
                clear_sounds()
                break

            alive = advance_round(self.config.audibility_threshold)
            round_index += 1
            self._rounds += 1
            logger.debug("Round %d: %d alive, %d captured", round_index, alive, get_capture_count())
            yield (round_index, alive, get_capture_count())

    def run(
        self,
        emitters: Iterable[Emitter],
        callback: RoundCallback | None = None,
    ) -> list[Capture]:
        """Emit from every emitter and simulate until all rays terminate.

        Args:
            emitters: The sound sources.
            callback: Optional function called after every round with
                (round_index, alive_after_round, captures_so_far).

        Returns:
            Every receiver capture, sorted by arrival time.
        """
        self._rounds = 0
        captures: list[Capture] = []

        for batch_index, (origins, directions) in enumerate(self.emission_batches(emitters)):
            logger.debug("Batch %d: %d sounds", batch_index, origins.shape[0])
            clear_captures()
            for round_index, alive, captured in self.propagate(origins, directions):
                if callback is not None:
                    callback(round_index, alive, len(captures) + captured)
            captures.extend(captures_from_arrays(get_captures_numpy()))
            clear_captures()

        captures.sort(key=lambda capture: capture.hit)
        return captures

    def __repr__(self) -> str:
        """Return a string representation of the simulator."""
        return f"BounceSimulator(config={self.config!r}, rounds={self.rounds})"

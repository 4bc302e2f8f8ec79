"""Scene builder and simulation entry point.

A Scene is an unordered collection of reflective objects, receivers and
emitters. It is built with chained calls and is only read once simulation
starts: ``simulate()`` uploads the geometry into the Taichi scene fields and
runs the bounce simulator over every emitter's burst.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.echotrace.scene.scene import Scene
    >>> from src.echotrace.scene.objects import Emitter, Receiver, SphereInfo
    >>> scene = (
    ...     Scene.new()
    ...     .emitter(Emitter(origin=(1.0, 0.0, 0.0), sounds_per_tick=1000))
    ...     .object(Receiver(SphereInfo(origin=(0.0, 0.0, 0.0), radius=0.1)))
    ... )
    >>> captures = scene.simulate()
"""

import logging
from typing import Any

from src.echotrace.core.sampling import DirectionSampler
from src.echotrace.core.simulation import BounceSimulator, RoundCallback, SimulationConfig
from src.echotrace.scene.intersection import (
    MAX_RECEIVERS,
    MAX_TRIANGLES,
    add_receiver,
    add_triangle,
    clear_scene,
)
from src.echotrace.scene.objects import (
    Capture,
    Emitter,
    Receiver,
    Reflector,
    SceneObject,
    SphereInfo,
    object_from_dict,
    object_to_dict,
)

logger = logging.getLogger(__name__)


class Scene:
    """Static geometry and emitters of an acoustic simulation.

    Attributes:
        objects: Reflectors and receivers, in insertion order.
        emitters: Sound sources, in insertion order.
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self._objects: list[SceneObject] = []
        self._emitters: list[Emitter] = []

    @classmethod
    def new(cls) -> "Scene":
        """Create an empty scene."""
        return cls()

    # =========================================================================
    # Builder
    # =========================================================================

    def emitter(self, emitter: Emitter) -> "Scene":
        """Add an emitter and return the scene for chaining."""
        self._emitters.append(emitter)
        return self

    def object(self, obj: SceneObject) -> "Scene":
        """Add a reflector or receiver and return the scene for chaining.

        Raises:
            TypeError: If ``obj`` is neither a Reflector nor a Receiver.
        """
        if not isinstance(obj, (Reflector, Receiver)):
            raise TypeError(f"Scene objects must be Reflector or Receiver, got {type(obj).__name__}")
        self._objects.append(obj)
        return self

    def receiver(self, sphere: SphereInfo) -> "Scene":
        """Add a spherical receiver and return the scene for chaining."""
        return self.object(Receiver(sphere))

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def objects(self) -> list[SceneObject]:
        return list(self._objects)

    @property
    def emitters(self) -> list[Emitter]:
        return list(self._emitters)

    @property
    def reflectors(self) -> list[Reflector]:
        return [obj for obj in self._objects if isinstance(obj, Reflector)]

    @property
    def receivers(self) -> list[Receiver]:
        return [obj for obj in self._objects if isinstance(obj, Receiver)]

    def get_triangle_count(self) -> int:
        """Get the total number of triangles over all reflectors."""
        return sum(len(obj.geometry) for obj in self.reflectors)

    def get_receiver_count(self) -> int:
        """Get the number of receivers."""
        return len(self.receivers)

    def get_sound_count(self) -> int:
        """Get the number of rays one simulation emits."""
        return sum(emitter.sounds_per_tick for emitter in self._emitters)

    # =========================================================================
    # Simulation
    # =========================================================================

    def upload(self) -> None:
        """Copy the scene geometry into the Taichi scene fields.

        Receivers are numbered in insertion order; that number is reported
        as ``Hit.receiver``.

        Raises:
            RuntimeError: If the scene exceeds the field capacities.
        """
        if self.get_triangle_count() > MAX_TRIANGLES:
            raise RuntimeError(
                f"Scene has {self.get_triangle_count()} triangles, maximum is {MAX_TRIANGLES}"
            )
        if self.get_receiver_count() > MAX_RECEIVERS:
            raise RuntimeError(
                f"Scene has {self.get_receiver_count()} receivers, maximum is {MAX_RECEIVERS}"
            )

        clear_scene()
        for obj in self._objects:
            if isinstance(obj, Reflector):
                for tri in obj.geometry:
                    add_triangle(tri.a, tri.b, tri.c, obj.reflectance)
            elif isinstance(obj, Receiver):
                add_receiver(obj.geometry.origin, obj.geometry.radius)
            else:
                raise TypeError(f"Unknown scene object: {obj!r}")

    def simulate(
        self,
        config: SimulationConfig | None = None,
        sampler: DirectionSampler | None = None,
        callback: RoundCallback | None = None,
    ) -> list[Capture]:
        """Run the simulation and return every receiver capture.

        Args:
            config: Simulation parameters. Defaults to SimulationConfig().
            sampler: Source of unit emission directions.
            callback: Optional per-round progress callback receiving
                (round_index, alive_after_round, captures_so_far).

        Returns:
            ``(hit, intensity)`` captures sorted by arrival time.
        """
        self.upload()
        simulator = BounceSimulator(config, sampler)

        logger.info(
            "Simulating %d sounds from %d emitters against %d triangles and %d receivers",
            self.get_sound_count(),
            len(self._emitters),
            self.get_triangle_count(),
            self.get_receiver_count(),
        )
        captures = simulator.run(self._emitters, callback=callback)
        logger.info("Simulation finished: %d captures in %d rounds", len(captures), simulator.rounds)
        return captures

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        return {
            "emitters": [
                {
                    "origin": list(emitter.origin),
                    "sounds_per_tick": emitter.sounds_per_tick,
                    "label": emitter.label,
                }
                for emitter in self._emitters
            ],
            "objects": [object_to_dict(obj) for obj in self._objects],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scene":
        """Build a scene from :meth:`to_dict` output.

        Raises:
            ValueError: If the data contains invalid objects or emitters.
        """
        scene = cls()
        for emitter_config in data.get("emitters", []):
            scene.emitter(
                Emitter(
                    origin=emitter_config.get("origin", [0.0, 0.0, 0.0]),
                    sounds_per_tick=int(emitter_config.get("sounds_per_tick", 0)),
                    label=emitter_config.get("label", ""),
                )
            )
        for object_config in data.get("objects", []):
            scene.object(object_from_dict(object_config))
        return scene

    def __repr__(self) -> str:
        """Return a string representation of the scene."""
        return (
            f"Scene(emitters={len(self._emitters)}, reflectors={len(self.reflectors)}, "
            f"receivers={self.get_receiver_count()})"
        )

#!/usr/bin/env python3
"""Simulate a shoebox room and export the receiver arrivals.

This script builds a closed rectangular room with one emitter and one
receiver, traces rays until every one is captured or inaudible, and writes
the ``(time, amplitude)`` arrivals to a text file.

Usage:
    python -m examples.simulate_box_room [options]

Options:
    --size L W H        Room dimensions in metres (default: 5 4 3)
    --reflectance R     Wall reflectance in [0, 1] (default: 0.8)
    --rays N            Number of rays emitted (default: 10000)
    --receiver-radius R Receiver sphere radius in metres (default: 0.25)
    --seed SEED         Seed for the emission directions
    --max-rounds N      Stop after N rounds (default: unbounded)
    --output OUTPUT     Output file path (default: arrivals.csv)
    --quiet             Suppress progress output
    --verbose           Log every round

Example:
    python -m examples.simulate_box_room --size 8 6 3 --rays 50000 --seed 1
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti

logger = logging.getLogger("simulate_box_room")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Simulate a shoebox room and export the receiver arrivals.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--size",
        type=float,
        nargs=3,
        default=[5.0, 4.0, 3.0],
        metavar=("L", "W", "H"),
        help="Room dimensions in metres (default: 5 4 3)",
    )
    parser.add_argument(
        "--reflectance",
        type=float,
        default=0.8,
        help="Wall reflectance in [0, 1] (default: 0.8)",
    )
    parser.add_argument(
        "--rays",
        type=int,
        default=10_000,
        help="Number of rays emitted (default: 10000)",
    )
    parser.add_argument(
        "--receiver-radius",
        type=float,
        default=0.25,
        help="Receiver sphere radius in metres (default: 0.25)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the emission directions",
    )
    parser.add_argument(
        "--max-rounds",
        type=int,
        default=None,
        help="Stop after this many rounds (default: unbounded)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="arrivals.csv",
        help="Output file path (default: arrivals.csv)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every round",
    )
    return parser.parse_args()


def simulate_box_room(
    size: tuple[float, float, float] = (5.0, 4.0, 3.0),
    reflectance: float = 0.8,
    rays: int = 10_000,
    receiver_radius: float = 0.25,
    seed: int | None = None,
    max_rounds: int | None = None,
    output_path: str = "arrivals.csv",
) -> Path:
    """Simulate the box room and save the arrivals to file.

    Args:
        size: Room dimensions (length, width, height).
        reflectance: Wall reflectance.
        rays: Number of rays emitted.
        receiver_radius: Receiver sphere radius.
        seed: Seed for the emission directions.
        max_rounds: Optional round cap.
        output_path: Output file path.

    Returns:
        Path to the saved file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.echotrace.core.simulation import SimulationConfig
    from src.echotrace.output.export import save_csv
    from src.echotrace.scene.box_room import BoxRoomParams, create_box_room_scene

    params = BoxRoomParams(
        size=size,
        reflectance=reflectance,
        receiver_radius=receiver_radius,
        sounds=rays,
    )
    scene = create_box_room_scene(params)
    config = SimulationConfig(seed=seed, max_rounds=max_rounds)

    start_time = time.time()

    def progress_callback(round_index: int, alive: int, captured: int) -> None:
        logger.info("Round %d: %d alive, %d captured", round_index, alive, captured)

    captures = scene.simulate(config, callback=progress_callback)

    output_file = Path(output_path)
    save_csv(captures, output_file)

    logger.info("Saved %d arrivals to %s", len(captures), output_file.absolute())
    logger.info("Total time: %.2fs", time.time() - start_time)
    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    level = logging.WARNING if args.quiet else logging.INFO
    if args.verbose:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Use GPU if available, fall back to CPU
    try:
        ti.init(arch=ti.gpu)
    except Exception:
        ti.init(arch=ti.cpu)

    try:
        simulate_box_room(
            size=tuple(args.size),
            reflectance=args.reflectance,
            rays=args.rays,
            receiver_radius=args.receiver_radius,
            seed=args.seed,
            max_rounds=args.max_rounds,
            output_path=args.output,
        )
        return 0
    except Exception as e:
        logger.error("Error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

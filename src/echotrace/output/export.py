"""Capture export and impulse-response reconstruction.

Captures are ``(hit, intensity)`` pairs. This module turns them into NumPy
arrays, per-receiver groups, a sampled impulse response, and a delimited text
file with header ``time, amplitude``.

Example:
    >>> from src.echotrace.output.export import impulse_response, save_csv
    >>> captures = scene.simulate()
    >>> ir = impulse_response(captures, sample_rate=48000)
    >>> save_csv(captures, "arrivals.csv")
"""

from __future__ import annotations

import os
from collections.abc import Iterable

import numpy as np
import numpy.typing as npt

from src.echotrace.scene.objects import Capture

CSV_HEADER = "time, amplitude"


def captures_to_numpy(captures: Iterable[Capture]) -> npt.NDArray[np.float64]:
    """Convert captures to an array of ``(time, intensity)`` rows.

    Returns:
        Array of shape (N, 2); shape (0, 2) when there are no captures.
    """
    rows = [(capture.hit.time, capture.intensity) for capture in captures]
    if not rows:
        return np.zeros((0, 2), dtype=np.float64)
    return np.asarray(rows, dtype=np.float64)


def group_by_receiver(captures: Iterable[Capture]) -> dict[int, list[Capture]]:
    """Group captures by the index of the receiver that recorded them.

    Order within each group follows the input order.
    """
    groups: dict[int, list[Capture]] = {}
    for capture in captures:
        groups.setdefault(capture.hit.receiver, []).append(capture)
    return groups


def impulse_response(
    captures: Iterable[Capture],
    sample_rate: int,
    *,
    length: int | None = None,
    receiver: int | None = None,
) -> npt.NDArray[np.float64]:
    """Accumulate capture intensities into a sampled impulse response.

    Each capture adds its intensity to sample ``round(time * sample_rate)``.
    Captures past the end of the response are dropped.

    Args:
        captures: The captures to accumulate.
        sample_rate: Samples per second.
        length: Number of samples. Defaults to one past the latest arrival.
        receiver: Only use captures from this receiver. None uses all.

    Returns:
        Array of shape (length,).

    Raises:
        ValueError: If sample_rate is not positive.
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")

    if receiver is not None:
        captures = [c for c in captures if c.hit.receiver == receiver]

    data = captures_to_numpy(captures)
    indices = np.rint(data[:, 0] * sample_rate).astype(np.int64)

    if length is None:
        length = int(indices.max()) + 1 if indices.size else 0

    response = np.zeros(length, dtype=np.float64)
    keep = (indices >= 0) & (indices < length)
    np.add.at(response, indices[keep], data[keep, 1])
    return response


def save_csv(captures: Iterable[Capture], filepath: str | os.PathLike[str]) -> None:
    """Write captures as ``time, amplitude`` rows.

    Args:
        captures: The captures to write, in the order given.
        filepath: Output file path.
    """
    np.savetxt(
        filepath,
        captures_to_numpy(captures),
        delimiter=", ",
        header=CSV_HEADER,
        comments="",
        fmt="%.9g",
    )


def load_csv(filepath: str | os.PathLike[str]) -> npt.NDArray[np.float64]:
    """Read a file written by :func:`save_csv`.

    Returns:
        Array of shape (N, 2) of ``(time, amplitude)`` rows.
    """
    data = np.loadtxt(filepath, delimiter=",", skiprows=1, ndmin=2)
    return data.reshape(-1, 2)

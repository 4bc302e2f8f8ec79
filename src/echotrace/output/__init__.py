"""Output module for simulation results.

Components:
    export: Capture arrays, per-receiver grouping, impulse-response
        reconstruction and ``time, amplitude`` text export

Example:
    >>> from src.echotrace.output import impulse_response, save_csv
    >>> ir = impulse_response(captures, sample_rate=48000)
    >>> save_csv(captures, "arrivals.csv")
"""

from .export import (
    CSV_HEADER,
    captures_to_numpy,
    group_by_receiver,
    impulse_response,
    load_csv,
    save_csv,
)

__all__ = [
    "CSV_HEADER",
    "captures_to_numpy",
    "group_by_receiver",
    "impulse_response",
    "load_csv",
    "save_csv",
]

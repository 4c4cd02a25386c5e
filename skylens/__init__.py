"""Skylens — Pareto skyline and dominance statistics for multi-dimensional records.

Public API
----------
Data model:
    - ``Record``            — id, display name, attribute values.
    - ``AttributeConfig``   — declared bounds, color and angle of one attribute.
    - ``AttributeSpace``    — ordered active attribute subset for one call.
    - ``SkylineResult``     — skyline ids + per-record dominance counters.

Backends:
    - ``DominanceEngine``          — serial reference scan.
    - ``ParallelDominanceKernel``  — async data-parallel backend (torch device).
    - ``DeviceSession``            — explicitly owned device handle.
    - ``BufferPool``               — growable input/output/uniform/staging buffers.

Orchestration:
    - ``SkylineOrchestrator`` — backend choice, serial fallback, last-writer-wins.
    - ``RecordFilter`` / ``filter_records`` — threshold filtering before compute.

Color:
    - ``color_of``  — ColorMapND perceptual color for a record.

Errors:
    - ``BackendUnavailableError`` — no parallel device; use the serial backend.
    - ``BufferMapError``          — readback mapping failed twice.
"""

from skylens.attributes import (
    DEFAULT_PLAYER_ATTRIBUTES,
    AttributeConfig,
    AttributeSpace,
    Record,
)
from skylens.buffers import BufferMapError, BufferPool
from skylens.color import Color, color_of, hcl_to_rgb
from skylens.device import BackendUnavailableError, DeviceSession
from skylens.dominance import DominanceEngine, dominates
from skylens.orchestrator import RecordFilter, SkylineOrchestrator, filter_records
from skylens.parallel import ParallelDominanceKernel
from skylens.results import PARALLEL, SERIAL, SkylineResult, aggregate, empty_result

__all__ = [
    "DEFAULT_PLAYER_ATTRIBUTES",
    "PARALLEL",
    "SERIAL",
    "AttributeConfig",
    "AttributeSpace",
    "BackendUnavailableError",
    "BufferMapError",
    "BufferPool",
    "Color",
    "DeviceSession",
    "DominanceEngine",
    "ParallelDominanceKernel",
    "Record",
    "RecordFilter",
    "SkylineOrchestrator",
    "SkylineResult",
    "aggregate",
    "color_of",
    "dominates",
    "empty_result",
    "filter_records",
    "hcl_to_rgb",
]

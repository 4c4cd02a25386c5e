"""Canonical skyline result shape shared by both backends.

Both the serial engine and the parallel kernel produce raw per-record
counters; the helpers here package them into one ``SkylineResult`` and
stamp the backend tag.  No fallback logic lives here: whichever counters
are handed in are shaped as-is.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

SERIAL = "serial"
PARALLEL = "parallel"
BACKENDS: tuple[str, ...] = (SERIAL, PARALLEL)


@dataclass(frozen=True)
class SkylineResult:
    """Skyline membership and per-record dominance statistics.

    Attributes:
        skyline_ids: Ids of records not dominated by any other record.
        dominance_scores: Id -> number of records it strictly dominates.
        dominated_by: Id -> number of records that strictly dominate it.
        computation_time_ms: Elapsed computation time in milliseconds.
        backend: ``"serial"`` or ``"parallel"``.
    """

    skyline_ids: frozenset[str] = frozenset()
    dominance_scores: dict[str, int] = field(default_factory=dict)
    dominated_by: dict[str, int] = field(default_factory=dict)
    computation_time_ms: float = 0.0
    backend: str = SERIAL

    def __hash__(self) -> int:
        return hash(
            (
                self.skyline_ids,
                tuple(sorted(self.dominance_scores.items())),
                tuple(sorted(self.dominated_by.items())),
                self.computation_time_ms,
                self.backend,
            )
        )

    @property
    def num_records(self) -> int:
        """Number of records the result covers."""
        return len(self.dominated_by)

    def same_counts(self, other: SkylineResult) -> bool:
        """True if membership and both counter maps match *other* exactly."""
        return (
            self.skyline_ids == other.skyline_ids
            and self.dominance_scores == other.dominance_scores
            and self.dominated_by == other.dominated_by
        )

    def to_dict(self) -> dict:
        """JSON-serializable view (skyline ids sorted)."""
        return {
            "skyline_ids": sorted(self.skyline_ids),
            "dominance_scores": dict(self.dominance_scores),
            "dominated_by": dict(self.dominated_by),
            "computation_time_ms": self.computation_time_ms,
            "backend": self.backend,
        }


def empty_result(backend: str = SERIAL) -> SkylineResult:
    """Result for an empty computation (no records or no attributes)."""
    _check_backend(backend)
    return SkylineResult(backend=backend)


def aggregate(
    record_ids: Sequence[str],
    dominated_by: Sequence[int],
    dominance_scores: Sequence[int],
    computation_time_ms: float,
    backend: str,
) -> SkylineResult:
    """Package per-record counters into a ``SkylineResult``.

    A record is a skyline member iff its dominated-by counter is zero.

    Args:
        record_ids: Record ids, in the order the counters were produced.
        dominated_by: Dominated-by counter per record.
        dominance_scores: Dominance score per record.
        computation_time_ms: Elapsed time to report.
        backend: Backend tag, one of ``BACKENDS``.

    Returns:
        A fresh ``SkylineResult``.

    Raises:
        ValueError: On unknown backend, mismatched lengths or duplicate ids.
    """
    _check_backend(backend)
    n = len(record_ids)
    if len(dominated_by) != n or len(dominance_scores) != n:
        raise ValueError(
            f"Counter lengths ({len(dominated_by)}, {len(dominance_scores)}) "
            f"do not match record count {n}"
        )

    by_map = {rid: int(c) for rid, c in zip(record_ids, dominated_by, strict=True)}
    if len(by_map) != n:
        raise ValueError("Record ids must be unique within one computation")
    score_map = {rid: int(c) for rid, c in zip(record_ids, dominance_scores, strict=True)}
    skyline = frozenset(rid for rid, count in by_map.items() if count == 0)

    logger.debug(
        "Aggregated %s result: %d records, %d skyline, %.3f ms",
        backend,
        n,
        len(skyline),
        computation_time_ms,
    )
    return SkylineResult(
        skyline_ids=skyline,
        dominance_scores=score_map,
        dominated_by=by_map,
        computation_time_ms=computation_time_ms,
        backend=backend,
    )


def _check_backend(backend: str) -> None:
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend '{backend}'. Supported: {list(BACKENDS)}")

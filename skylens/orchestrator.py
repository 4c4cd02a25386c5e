"""Compute loop tying both backends to one owned device session.

``SkylineOrchestrator`` is what a view layer talks to: it filters the
record set, picks a backend, falls back to the serial engine when the
parallel backend is unavailable, and keeps the last accepted result.
Calls are numbered; a result that finishes after a newer call has started
is discarded (last writer wins).  Nothing is cancelled mid-flight.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from skylens.attributes import AttributeConfig, Record
from skylens.device import BackendUnavailableError, DeviceSession
from skylens.dominance import DominanceEngine
from skylens.parallel import ParallelDominanceKernel
from skylens.results import BACKENDS, PARALLEL, SERIAL, SkylineResult, empty_result

logger = logging.getLogger(__name__)

_OPERATORS = ("<", ">")


@dataclass(frozen=True)
class RecordFilter:
    """Threshold filter on one attribute.

    Attributes:
        attribute: Attribute key.
        operator: ``"<"`` removes records below *value*; ``">"`` removes
            records above it.
        value: Threshold.
    """

    attribute: str
    operator: str
    value: float

    def __post_init__(self) -> None:
        if self.operator not in _OPERATORS:
            raise ValueError(
                f"Unknown filter operator '{self.operator}'. Supported: {list(_OPERATORS)}"
            )

    def keeps(self, record: Record) -> bool:
        value = record.value(self.attribute)
        if self.operator == "<":
            return value >= self.value
        return value <= self.value


def filter_records(
    records: Sequence[Record],
    filters: Iterable[RecordFilter] = (),
    limit: int | None = None,
) -> list[Record]:
    """Truncate to the first *limit* records, then apply *filters* in order."""
    selected = list(records if limit is None else records[:limit])
    for record_filter in filters:
        selected = [r for r in selected if record_filter.keeps(r)]
    return selected


class SkylineOrchestrator:
    """Backend selection, fallback and last-writer-wins result tracking.

    Args:
        session: Device session to use.  If ``None`` the orchestrator
            creates one (auto device selection) and closes it in
            ``close()``; a passed-in session is left open.
        mode: Default backend, ``"serial"`` or ``"parallel"``.
        record_limit: Default truncation applied by ``compute_filtered``.

    Example:
        >>> orchestrator = SkylineOrchestrator(mode="parallel")
        >>> result = asyncio.run(orchestrator.compute(records, active))
        >>> orchestrator.latest.backend
        'serial'   # no GPU on this host
    """

    def __init__(
        self,
        session: DeviceSession | None = None,
        mode: str = SERIAL,
        record_limit: int | None = None,
    ) -> None:
        if mode not in BACKENDS:
            raise ValueError(f"Unknown backend '{mode}'. Supported: {list(BACKENDS)}")
        self._owns_session = session is None
        self.session = session if session is not None else DeviceSession()
        self.mode = mode
        self.record_limit = record_limit
        self.engine = DominanceEngine()
        self.kernel = ParallelDominanceKernel(self.session)
        self.parallel_available = True
        self._latest = empty_result(SERIAL)
        self._generation = 0

    @property
    def latest(self) -> SkylineResult:
        """Last accepted result."""
        return self._latest

    async def compute(
        self,
        records: Sequence[Record],
        attributes: Sequence[AttributeConfig],
        mode: str | None = None,
    ) -> SkylineResult | None:
        """Run one computation and install its result if still current.

        Returns:
            The accepted result, or ``None`` when there was nothing to
            compute, the call failed, or a newer call superseded it.  In
            every ``None`` case ``latest`` is left unchanged.
        """
        if len(records) == 0 or len(attributes) == 0:
            return None

        mode = self.mode if mode is None else mode
        if mode not in BACKENDS:
            raise ValueError(f"Unknown backend '{mode}'. Supported: {list(BACKENDS)}")

        self._generation += 1
        generation = self._generation

        try:
            result = await self._run(records, attributes, mode)
        except RuntimeError:
            logger.exception("Skyline computation %d failed; keeping previous result", generation)
            return None

        if generation != self._generation:
            logger.debug(
                "Discarding stale result %d (current %d)", generation, self._generation
            )
            return None

        self._latest = result
        logger.info(
            "Skyline %d: %d/%d records on %s in %.2f ms",
            generation,
            len(result.skyline_ids),
            result.num_records,
            result.backend,
            result.computation_time_ms,
        )
        return result

    async def compute_filtered(
        self,
        records: Sequence[Record],
        attributes: Sequence[AttributeConfig],
        filters: Iterable[RecordFilter] = (),
        mode: str | None = None,
    ) -> SkylineResult | None:
        """``compute`` on ``filter_records(records, filters, record_limit)``."""
        selected = filter_records(records, filters, self.record_limit)
        return await self.compute(selected, attributes, mode)

    def close(self) -> None:
        """Release kernel buffers, and the session if this object created it."""
        self.kernel.close()
        if self._owns_session:
            self.session.close()

    async def _run(
        self,
        records: Sequence[Record],
        attributes: Sequence[AttributeConfig],
        mode: str,
    ) -> SkylineResult:
        if mode == PARALLEL:
            try:
                result = await self.kernel.compute_skyline_parallel(records, attributes)
            except BackendUnavailableError as e:
                logger.warning("Parallel backend unavailable (%s); using serial backend", e)
                self.parallel_available = False
            else:
                self.parallel_available = True
                return result
        return self.engine.compute_skyline(records, attributes)

    def __repr__(self) -> str:
        return (
            f"SkylineOrchestrator(mode={self.mode!r}, "
            f"parallel_available={self.parallel_available}, session={self.session!r})"
        )

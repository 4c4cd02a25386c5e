"""Serial reference implementation of the dominance computation.

Evaluates every ordered pair of records with the exact higher-is-better
dominance predicate (no tolerance).  This is the backend the parallel
kernel is checked against, and the fallback when no device is available.
Complexity is O(N^2 * D) on the caller's thread.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from skylens.attributes import AttributeConfig, Record
from skylens.results import SERIAL, SkylineResult, aggregate, empty_result

logger = logging.getLogger(__name__)


def dominates(a: Record, b: Record, attributes: Sequence[AttributeConfig]) -> bool:
    """Return True if *a* dominates *b* over *attributes*.

    *a* dominates *b* when it is no worse on every attribute and strictly
    better on at least one.  Records equal on all attributes do not
    dominate each other.
    """
    better_in_one = False
    for attr in attributes:
        value_a = a.value(attr.key)
        value_b = b.value(attr.key)
        if value_a < value_b:
            return False
        if value_a > value_b:
            better_in_one = True
    return better_in_one


class DominanceEngine:
    """Full pairwise skyline scan.

    Stateless; one instance can serve any number of calls.

    Example:
        >>> engine = DominanceEngine()
        >>> result = engine.compute_skyline(records, space.select(["pace", "shooting"]))
        >>> sorted(result.skyline_ids)
        ['A', 'B']
    """

    def compute_skyline(
        self,
        records: Sequence[Record],
        attributes: Sequence[AttributeConfig],
    ) -> SkylineResult:
        """Compute skyline membership and dominance counters.

        Args:
            records: Records with unique ids.
            attributes: Active attributes, in evaluation order.

        Returns:
            ``SkylineResult`` tagged ``"serial"``.
        """
        n = len(records)
        if n == 0:
            return empty_result(SERIAL)

        attributes = tuple(attributes)
        start = time.perf_counter()

        dominated_by = [0] * n
        dominance_scores = [0] * n
        for i in range(n):
            a = records[i]
            for j in range(n):
                if i == j:
                    continue
                b = records[j]
                if dominates(b, a, attributes):
                    dominated_by[i] += 1
                if dominates(a, b, attributes):
                    dominance_scores[i] += 1

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug("Serial scan: N=%d, D=%d, %.3f ms", n, len(attributes), elapsed_ms)

        return aggregate(
            [r.id for r in records],
            dominated_by,
            dominance_scores,
            elapsed_ms,
            SERIAL,
        )

    def dominators_of(
        self,
        target_id: str,
        records: Sequence[Record],
        attributes: Sequence[AttributeConfig],
    ) -> list[str]:
        """Ids of the records that dominate *target_id*, in input order.

        Raises:
            KeyError: If no record has id *target_id*.
        """
        target = next((r for r in records if r.id == target_id), None)
        if target is None:
            raise KeyError(target_id)
        attributes = tuple(attributes)
        return [r.id for r in records if r.id != target_id and dominates(r, target, attributes)]

    def __repr__(self) -> str:
        return "DominanceEngine(backend='serial')"

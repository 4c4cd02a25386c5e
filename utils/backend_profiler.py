"""BackendProfiler with CSV logging for skyline backend benchmarking.

Times skyline computations per configuration, stores the reported
computation time next to the wall-clock duration, and writes per-record
counters to CSV so serial and parallel runs can be diffed offline.

Example:
    >>> profiler = BackendProfiler(output_dir="results/profile")
    >>> with profiler.profile("parallel_n4096_d6") as ctx:
    ...     result = asyncio.run(kernel.compute_skyline_parallel(records, attrs))
    ...     ctx.set_result(result, num_dimensions=6)
    >>> profiler.save_summary()
"""

from __future__ import annotations

import csv
import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from skylens.results import SkylineResult

logger = logging.getLogger(__name__)


@dataclass
class ProfileResult:
    """Result from a single profiling session.

    Attributes:
        config_name: Configuration identifier string.
        backend: Backend tag reported by the result.
        num_records: Number of records in the computation.
        num_dimensions: Number of active attributes.
        duration_sec: Wall-clock duration of the profiled block.
        computation_time_ms: Computation time reported by the backend.
        skyline_size: Number of skyline members.
    """

    config_name: str = ""
    backend: str = ""
    num_records: int = 0
    num_dimensions: int = 0
    duration_sec: float = 0.0
    computation_time_ms: float = 0.0
    skyline_size: int = 0
    dominated_by: dict[str, int] = field(default_factory=dict)
    dominance_scores: dict[str, int] = field(default_factory=dict)


class _ProfileContext:
    """Context object yielded by ``BackendProfiler.profile()``."""

    def __init__(self) -> None:
        self._result: SkylineResult | None = None
        self._num_dimensions: int = 0

    def set_result(self, result: SkylineResult, num_dimensions: int = 0) -> None:
        """Record the result produced inside the profiled block."""
        self._result = result
        self._num_dimensions = num_dimensions


class BackendProfiler:
    """Wall-clock profiler for skyline backends with CSV/JSON output.

    Args:
        output_dir: Directory for CSV and JSON output files.
    """

    def __init__(self, output_dir: str | Path = "results/profile") -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._results: list[ProfileResult] = []

    @contextmanager
    def profile(self, config_name: str):
        """Context manager for profiling a single configuration.

        Args:
            config_name: Descriptive name (e.g. ``"serial_n1000_d6"``).

        Yields:
            ``_ProfileContext`` — call ``ctx.set_result(result)`` with the
            computed ``SkylineResult``.
        """
        ctx = _ProfileContext()
        start_time = time.perf_counter()
        try:
            yield ctx
        finally:
            end_time = time.perf_counter()

        duration = end_time - start_time
        result = ctx._result or SkylineResult()

        profile = ProfileResult(
            config_name=config_name,
            backend=result.backend,
            num_records=result.num_records,
            num_dimensions=ctx._num_dimensions,
            duration_sec=duration,
            computation_time_ms=result.computation_time_ms,
            skyline_size=len(result.skyline_ids),
            dominated_by=dict(result.dominated_by),
            dominance_scores=dict(result.dominance_scores),
        )
        self._results.append(profile)

        logger.info(
            "Profile '%s': %s, N=%d, D=%d, %.3f s wall, %.3f ms reported, %d skyline",
            config_name,
            profile.backend,
            profile.num_records,
            profile.num_dimensions,
            duration,
            profile.computation_time_ms,
            profile.skyline_size,
        )

        self._write_config_csv(profile)

    def save_summary(self, filename: str = "profile_summary.json") -> Path:
        """Save summary of all profiled configurations to JSON.

        Args:
            filename: Output filename within ``output_dir``.

        Returns:
            Path to the saved JSON file.
        """
        output_path = self.output_dir / filename
        summary = []
        for r in self._results:
            summary.append(
                {
                    "config_name": r.config_name,
                    "backend": r.backend,
                    "num_records": r.num_records,
                    "num_dimensions": r.num_dimensions,
                    "duration_sec": r.duration_sec,
                    "computation_time_ms": r.computation_time_ms,
                    "skyline_size": r.skyline_size,
                }
            )

        with open(output_path, "w") as f:
            json.dump(summary, f, indent=2)

        logger.info("Saved profile summary to %s (%d configs)", output_path, len(summary))
        return output_path

    @property
    def results(self) -> list[ProfileResult]:
        """All profiling results collected so far."""
        return list(self._results)

    def _write_config_csv(self, result: ProfileResult) -> None:
        """Write per-record counters for a single config to CSV."""
        csv_path = self.output_dir / f"{result.config_name}_counters.csv"
        with open(csv_path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["record_id", "dominated_by", "dominance_score"])
            for record_id, count in result.dominated_by.items():
                writer.writerow([record_id, count, result.dominance_scores.get(record_id, 0)])

        logger.debug("Wrote counters to %s", csv_path)

"""Tests for BackendProfiler CSV and JSON output."""

import csv
import json

from skylens.attributes import AttributeConfig, Record
from skylens.dominance import DominanceEngine
from utils.backend_profiler import BackendProfiler


def _worked_example() -> list[Record]:
    return [
        Record("A", "A", {"pace": 90, "shoot": 80}),
        Record("B", "B", {"pace": 80, "shoot": 90}),
        Record("C", "C", {"pace": 70, "shoot": 70}),
    ]


class TestBackendProfiler:
    """Test suite for per-configuration profiling output."""

    def test_profile_writes_counters_csv(self, tmp_path) -> None:
        """Each profiled config writes one row per record."""
        profiler = BackendProfiler(output_dir=tmp_path)
        attrs = [AttributeConfig("pace"), AttributeConfig("shoot")]

        with profiler.profile("serial_n3_d2") as ctx:
            ctx.set_result(DominanceEngine().compute_skyline(_worked_example(), attrs), 2)

        with open(tmp_path / "serial_n3_d2_counters.csv", newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == ["record_id", "dominated_by", "dominance_score"]
        assert rows[1:] == [["A", "0", "1"], ["B", "0", "1"], ["C", "2", "0"]]

        (profile,) = profiler.results
        assert profile.backend == "serial"
        assert profile.num_records == 3
        assert profile.num_dimensions == 2
        assert profile.skyline_size == 2
        assert profile.duration_sec >= 0.0

    def test_missing_result_records_empty_profile(self, tmp_path) -> None:
        """A block that sets no result is still recorded."""
        profiler = BackendProfiler(output_dir=tmp_path)
        with profiler.profile("nothing"):
            pass
        assert profiler.results[0].num_records == 0

    def test_save_summary(self, tmp_path) -> None:
        """The summary lists every config without per-record counters."""
        profiler = BackendProfiler(output_dir=tmp_path / "nested")
        attrs = [AttributeConfig("pace")]
        for name in ("first", "second"):
            with profiler.profile(name) as ctx:
                ctx.set_result(DominanceEngine().compute_skyline(_worked_example(), attrs), 1)

        path = profiler.save_summary()
        summary = json.loads(path.read_text())
        assert [entry["config_name"] for entry in summary] == ["first", "second"]
        assert summary[0]["skyline_size"] == 1
        assert "dominated_by" not in summary[0]

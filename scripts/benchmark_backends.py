"""Benchmark the serial and parallel skyline backends across record counts.

Generates random integer-valued records (exactly representable in
float32), runs both backends on each configuration, verifies that they
agree on skyline membership and both counter maps, and saves timings.

Expected runtime: minutes on CPU for the default sizes (serial scan is
O(N^2 * D) in pure Python).
Output files:
    - results/benchmark/<config>_counters.csv
    - results/benchmark/profile_summary.json
    - results/benchmark_backends.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import torch

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from skylens.attributes import AttributeSpace, Record
from skylens.device import BackendUnavailableError, DeviceSession
from skylens.dominance import DominanceEngine
from skylens.parallel import ParallelDominanceKernel
from utils.backend_profiler import BackendProfiler

logger = logging.getLogger(__name__)


def generate_records(num_records: int, num_dimensions: int, seed: int = 42) -> list[Record]:
    """Random records with integer attribute values in ``[0, 100)``.

    Args:
        num_records: Number of records.
        num_dimensions: Number of attributes ``attr_0 .. attr_{D-1}``.
        seed: Random seed for reproducibility.

    Returns:
        List of records with ids ``r0 .. r{N-1}``.
    """
    generator = torch.Generator().manual_seed(seed)
    values = torch.randint(0, 100, (num_records, num_dimensions), generator=generator)
    keys = [f"attr_{d}" for d in range(num_dimensions)]
    return [
        Record(id=f"r{i}", name=f"Record {i}", values=dict(zip(keys, row, strict=True)))
        for i, row in enumerate(values.tolist())
    ]


def run_benchmark(
    sizes: list[int],
    num_dimensions: int,
    device: str | None,
    output_dir: str,
    seed: int = 42,
) -> dict:
    """Run both backends for every size and collect timings.

    Args:
        sizes: Record counts to benchmark.
        num_dimensions: Active attribute count.
        device: Device for the parallel backend (``None`` = auto).
        output_dir: Directory for profiler CSV/JSON output.
        seed: Random seed.

    Returns:
        Dictionary mapping config names to measurement results.
    """
    profiler = BackendProfiler(output_dir)
    engine = DominanceEngine()
    session = DeviceSession(device)
    kernel = ParallelDominanceKernel(session)
    results: dict = {}

    try:
        for num_records in sizes:
            records = generate_records(num_records, num_dimensions, seed)
            keys = [f"attr_{d}" for d in range(num_dimensions)]
            space = AttributeSpace.from_records(records, keys)
            config = f"n{num_records}_d{num_dimensions}"

            with profiler.profile(f"serial_{config}") as ctx:
                serial = engine.compute_skyline(records, space)
                ctx.set_result(serial, num_dimensions)

            entry = {
                "num_records": num_records,
                "num_dimensions": num_dimensions,
                "skyline_size": len(serial.skyline_ids),
                "serial_ms": serial.computation_time_ms,
            }

            try:
                with profiler.profile(f"parallel_{config}") as ctx:
                    parallel = asyncio.run(kernel.compute_skyline_parallel(records, space))
                    ctx.set_result(parallel, num_dimensions)
            except BackendUnavailableError as e:
                logger.warning("Parallel backend unavailable, serial only: %s", e)
                entry["status"] = "serial_only"
                results[config] = entry
                continue

            agree = serial.same_counts(parallel)
            if not agree:
                logger.error("Backends disagree for %s", config)
            entry.update(
                {
                    "parallel_ms": parallel.computation_time_ms,
                    "speedup": serial.computation_time_ms / max(parallel.computation_time_ms, 1e-9),
                    "agree": agree,
                    "status": "success" if agree else "mismatch",
                }
            )
            results[config] = entry
    finally:
        kernel.close()
        session.close()

    profiler.save_summary()
    return results


def main() -> None:
    """CLI entry point for the backend benchmark."""
    parser = argparse.ArgumentParser(
        description="Benchmark serial vs. parallel skyline backends",
    )
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=[100, 500, 1000, 2000],
        help="Record counts to benchmark (default: 100 500 1000 2000)",
    )
    parser.add_argument(
        "--dims",
        type=int,
        default=6,
        help="Number of active attributes (default: 6)",
    )
    parser.add_argument(
        "--device",
        type=str,
        default=os.environ.get("SKYLENS_DEVICE"),
        help="Parallel backend device: cuda, mps, cpu (default: $SKYLENS_DEVICE or auto)",
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        default="results/benchmark",
        help="Directory for profiler output (default: results/benchmark)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed (default: 42)",
    )

    args = parser.parse_args()

    Path("logs").mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("logs/benchmark_backends.log", mode="a"),
        ],
    )
    torch.manual_seed(args.seed)

    results = run_benchmark(
        sizes=args.sizes,
        num_dimensions=args.dims,
        device=args.device,
        output_dir=args.output_dir,
        seed=args.seed,
    )

    os.makedirs("results", exist_ok=True)
    output_path = "results/benchmark_backends.json"
    with open(output_path, "w") as f:
        json.dump(results, f, indent=2)

    print(f"\nResults saved to: {output_path}")
    print(f"\n{'=' * 60}")
    print("SUMMARY")
    print(f"{'=' * 60}")
    for config, data in results.items():
        if data["status"] == "serial_only":
            print(f"  {config:15s} | serial {data['serial_ms']:>10.2f} ms | parallel n/a")
        else:
            print(
                f"  {config:15s} | serial {data['serial_ms']:>10.2f} ms | "
                f"parallel {data['parallel_ms']:>8.2f} ms | {data['status']}"
            )


if __name__ == "__main__":
    main()

"""Vectorized PyTorch dominance kernel (data-parallel backend body).

Wire contract, shared by every kernel implementation:

    - ``data``:    N x D float32, row-major, column order = active
      attribute order.
    - ``results``: N x 2 uint32, ``(dominated_by, dominance_score)`` per
      record.  Stored as int32 on device; counts never exceed N - 1.
    - ``params``:  2 x uint32, ``(dimension_count, record_count)``.
    - Work-group size 64; one logical work-item per record.

Each work-item ``i`` compares its row against every other row ``j`` with
the exact ``>= on all / > on at least one`` predicate in both directions.
Work-items only read ``data`` and write their own ``results`` row.  A
work-group of 64 work-items is evaluated as one broadcast comparison of
shape ``[64, N, D]``.  No tolerance is applied: comparisons are exact so
the counters agree with the serial engine.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import torch

from skylens.attributes import AttributeConfig, Record

logger = logging.getLogger(__name__)

WORKGROUP_SIZE = 64
FLOAT_BYTES = 4
RESULT_BYTES = 8  # two uint32 counters per record
PARAMS_BYTES = 8  # dimension_count, record_count


def num_workgroups(count: int, workgroup_size: int = WORKGROUP_SIZE) -> int:
    """Ceiling division of *count* work-items into groups."""
    return -(-count // workgroup_size)


# ---------------------------------------------------------------------------
# Host-side marshalling
# ---------------------------------------------------------------------------


def marshal_records(
    records: Sequence[Record],
    attributes: Sequence[AttributeConfig],
) -> torch.Tensor:
    """Flatten records into the row-major float32 wire layout.

    Args:
        records: N records.
        attributes: D active attributes; their order is the column order.

    Returns:
        Host tensor ``[N * D]`` float32, with non-finite values set to 0.
    """
    keys = [attr.key for attr in attributes]
    rows = [[record.value(key) for key in keys] for record in records]
    flat = torch.tensor(rows, dtype=torch.float32).reshape(-1)
    # inf, and finite doubles that overflow float32, both arrive here as inf
    return torch.where(torch.isfinite(flat), flat, torch.zeros_like(flat))


def pack_params(dimension_count: int, record_count: int) -> torch.Tensor:
    """Uniform block ``(dimension_count, record_count)`` as int32 bits."""
    return torch.tensor([dimension_count, record_count], dtype=torch.int32)


# ---------------------------------------------------------------------------
# Kernel
# ---------------------------------------------------------------------------


def dominance_kernel(
    data: torch.Tensor,
    results: torch.Tensor,
    dims: int,
    count: int,
    workgroup_size: int = WORKGROUP_SIZE,
) -> int:
    """Dispatch the dominance kernel over all records.

    Args:
        data: ``[>= N * D]`` float32 device tensor (wire layout).
        results: ``[>= N * 2]`` int32 device tensor, overwritten for the
            first N records.
        dims: Dimension count D (host value of the uniform block).
        count: Record count N.
        workgroup_size: Work-items per group (64 on the wire).

    Returns:
        Number of work-groups dispatched.
    """
    assert data.dtype == torch.float32, f"Expected float32 data, got {data.dtype}"
    assert results.dtype == torch.int32, f"Expected int32 results, got {results.dtype}"
    assert workgroup_size > 0, f"workgroup_size must be positive, got {workgroup_size}"
    assert data.numel() >= count * dims, f"data holds {data.numel()} < {count}x{dims} values"
    assert results.numel() >= count * 2, f"results holds {results.numel()} < {count}x2 values"

    points = data[: count * dims].view(count, dims)  # [N, D]
    counters = results[: count * 2].view(count, 2)  # [N, 2]
    others = points.unsqueeze(0)  # [1, N, D]

    groups = num_workgroups(count, workgroup_size)
    for group in range(groups):
        start = group * workgroup_size
        end = min(start + workgroup_size, count)
        block = points[start:end].unsqueeze(1)  # [G, 1, D]

        i_ge_j = (block >= others).all(dim=2)  # [G, N]
        i_gt_j = (block > others).any(dim=2)
        j_ge_i = (block <= others).all(dim=2)
        j_gt_i = (block < others).any(dim=2)

        i_dominates = i_ge_j & i_gt_j
        j_dominates = j_ge_i & j_gt_i

        # Work-item i never compares against itself.
        rows = torch.arange(end - start, device=points.device)
        cols = torch.arange(start, end, device=points.device)
        i_dominates[rows, cols] = False
        j_dominates[rows, cols] = False

        counters[start:end, 0] = j_dominates.sum(dim=1, dtype=torch.int32)
        counters[start:end, 1] = i_dominates.sum(dim=1, dtype=torch.int32)

    logger.debug(
        "Dominance kernel: N=%d, D=%d, %d groups of %d", count, dims, groups, workgroup_size
    )
    return groups

"""Skylens dominance kernel implementations.

Default path: ``pytorch_dominance`` (vectorized PyTorch ops, any torch
device).  Every implementation follows the same float32 / uint32 wire
contract documented in that module.
"""

from skylens.kernels.pytorch_dominance import (
    WORKGROUP_SIZE,
    dominance_kernel,
    marshal_records,
    num_workgroups,
    pack_params,
)

__all__ = [
    "WORKGROUP_SIZE",
    "dominance_kernel",
    "marshal_records",
    "num_workgroups",
    "pack_params",
]

"""Shared utilities for backend profiling and benchmarking."""

from utils.backend_profiler import BackendProfiler, ProfileResult

__all__ = [
    "BackendProfiler",
    "ProfileResult",
]

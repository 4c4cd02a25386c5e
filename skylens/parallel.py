"""Asynchronous data-parallel dominance backend.

``ParallelDominanceKernel`` marshals records into the float32 wire layout,
runs ``dominance_kernel`` on the session's device and reads the counters
back through a host staging buffer.  Each call runs, in order:

    1. write the input and uniform buffers,
    2. dispatch ceil(N / 64) work-groups,
    3. copy the output buffer into the staging buffer,
    4. wait for the device,
    5. map the staging buffer, decode two uint32 counters per record,
       unmap.

Device acquisition and steps 1-4 run in a worker thread; the event loop
stays free while the kernel runs, on every device including the CPU.

A failed map is unmapped and retried once; a second failure propagates
``BufferMapError`` for that call.  Buffers are reused across calls, so a
kernel instance must not run two computations at once.  No timeout and no
cancellation: an awaited call finishes or fails.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

import numpy as np
import torch

from skylens.attributes import AttributeConfig, Record
from skylens.buffers import (
    INPUT,
    OUTPUT,
    STAGING,
    UNIFORM,
    BufferMapError,
    BufferPool,
    StagingBuffer,
)
from skylens.device import DeviceSession
from skylens.kernels.pytorch_dominance import (
    FLOAT_BYTES,
    PARAMS_BYTES,
    RESULT_BYTES,
    WORKGROUP_SIZE,
    dominance_kernel,
    marshal_records,
    pack_params,
)
from skylens.results import PARALLEL, SkylineResult, aggregate, empty_result

logger = logging.getLogger(__name__)


class ParallelDominanceKernel:
    """Data-parallel skyline backend bound to one ``DeviceSession``.

    Args:
        session: Shared device handle.  Acquired lazily on the first
            non-empty call; ``BackendUnavailableError`` propagates.
        workgroup_size: Work-items per group.  The wire contract uses 64.

    Example:
        >>> session = DeviceSession()
        >>> kernel = ParallelDominanceKernel(session)
        >>> result = await kernel.compute_skyline_parallel(records, attributes)
        >>> kernel.close()
    """

    def __init__(self, session: DeviceSession, workgroup_size: int = WORKGROUP_SIZE) -> None:
        if workgroup_size <= 0:
            raise ValueError(f"workgroup_size must be positive, got {workgroup_size}")
        self.session = session
        self.workgroup_size = workgroup_size
        self._pool: BufferPool | None = None

    @property
    def pool(self) -> BufferPool | None:
        """Buffer pool, created on the first dispatch."""
        return self._pool

    async def compute_skyline_parallel(
        self,
        records: Sequence[Record],
        attributes: Sequence[AttributeConfig],
    ) -> SkylineResult:
        """Compute skyline membership and dominance counters on the device.

        Args:
            records: Records with unique ids.
            attributes: Active attributes; their order is the column order.

        Returns:
            ``SkylineResult`` tagged ``"parallel"``.

        Raises:
            BackendUnavailableError: If the device cannot be acquired.
            BufferMapError: If readback mapping fails twice.
        """
        attributes = tuple(attributes)
        count = len(records)
        dims = len(attributes)
        if count == 0 or dims == 0:
            return empty_result(PARALLEL)

        start = time.perf_counter()
        device = await asyncio.to_thread(self.session.acquire)
        pool = self._ensure_pool(device)

        result_nbytes = count * RESULT_BYTES
        staging_buf = await asyncio.to_thread(self._dispatch, pool, records, attributes)

        # --- Readback ---
        try:
            mapped = staging_buf.map(result_nbytes)
        except BufferMapError as e:
            logger.warning("Staging map failed (%s); unmapping and retrying once", e)
            staging_buf.unmap()
            mapped = staging_buf.map(result_nbytes)

        try:
            counters = mapped.view(np.uint32).reshape(count, 2)
            dominated_by = counters[:, 0].tolist()
            dominance_scores = counters[:, 1].tolist()
        finally:
            staging_buf.unmap()

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(
            "Parallel skyline on %s: N=%d, D=%d, %.3f ms", device, count, dims, elapsed_ms
        )
        return aggregate(
            [r.id for r in records],
            dominated_by,
            dominance_scores,
            elapsed_ms,
            PARALLEL,
        )

    def close(self) -> None:
        """Release the buffer pool.  The session is owned by the caller."""
        if self._pool is not None:
            logger.info(
                "Releasing buffer pool (%d bytes)", self._pool.memory_allocated_bytes()
            )
            self._pool.release()
            self._pool = None

    def _dispatch(
        self,
        pool: BufferPool,
        records: Sequence[Record],
        attributes: tuple[AttributeConfig, ...],
    ) -> StagingBuffer:
        """Upload, run the kernel and copy the counters to staging; blocks until done."""
        count = len(records)
        dims = len(attributes)
        data_nbytes = count * dims * FLOAT_BYTES
        result_nbytes = count * RESULT_BYTES

        # --- Buffers ---
        data_buf = pool.ensure(INPUT, data_nbytes)
        result_buf = pool.ensure(OUTPUT, result_nbytes)
        uniform_buf = pool.ensure(UNIFORM, PARAMS_BYTES)
        staging_buf = pool.ensure(STAGING, result_nbytes)

        # --- Upload ---
        data_buf.write(marshal_records(records, attributes))
        uniform_buf.write(pack_params(dims, count))

        # --- Dispatch + copy to staging ---
        dominance_kernel(
            data_buf.view(torch.float32, data_nbytes),
            result_buf.view(torch.int32, result_nbytes),
            dims,
            count,
            self.workgroup_size,
        )
        staging_buf.copy_from(result_buf, result_nbytes)
        self.session.synchronize()
        return staging_buf

    def _ensure_pool(self, device: torch.device) -> BufferPool:
        if self._pool is not None and self._pool.device != device:
            # Session was closed and re-acquired on another device.
            self._pool.release()
            self._pool = None
        if self._pool is None:
            self._pool = BufferPool(device)
        return self._pool

    def __repr__(self) -> str:
        return (
            f"ParallelDominanceKernel(session={self.session!r}, "
            f"workgroup_size={self.workgroup_size})"
        )

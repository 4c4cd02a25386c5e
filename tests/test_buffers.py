"""Tests for DeviceBuffer / StagingBuffer / BufferPool — growable buffer lifecycle.

Validates:
    - Reuse when capacity covers the request, replacement on growth.
    - Old buffer destroyed before the new one is installed; no shrinking.
    - Byte views and writes.
    - Staging map/unmap state machine.
    - Memory accounting and release.
"""

import numpy as np
import pytest
import torch

from skylens.buffers import (
    INPUT,
    OUTPUT,
    STAGING,
    UNIFORM,
    BufferMapError,
    BufferPool,
    DeviceBuffer,
    StagingBuffer,
)

# =====================================================================
# DeviceBuffer / StagingBuffer
# =====================================================================


class TestDeviceBuffer:
    """Test suite for a single byte buffer."""

    def test_write_and_view(self) -> None:
        """Written float32 data reads back through a typed view."""
        buf = DeviceBuffer(64)
        buf.write(torch.tensor([1.5, -2.0, 3.25], dtype=torch.float32))
        assert buf.view(torch.float32, 12).tolist() == [1.5, -2.0, 3.25]

    def test_write_beyond_capacity_raises(self) -> None:
        """Writes larger than the capacity are rejected."""
        buf = DeviceBuffer(8)
        with pytest.raises(ValueError, match="exceeds capacity"):
            buf.write(torch.zeros(3, dtype=torch.float32))

    def test_destroy(self) -> None:
        """A destroyed buffer refuses access."""
        buf = DeviceBuffer(16)
        buf.destroy()
        assert buf.destroyed
        with pytest.raises(RuntimeError, match="destroyed"):
            _ = buf.storage

    def test_negative_capacity_raises(self) -> None:
        """Capacity must be non-negative."""
        with pytest.raises(ValueError):
            DeviceBuffer(-1)


class TestStagingBuffer:
    """Test suite for the host readback buffer."""

    def test_copy_map_unmap(self) -> None:
        """Copied counters are visible through the mapped range."""
        source = DeviceBuffer(16)
        source.write(torch.tensor([0, 3, 2, 0], dtype=torch.int32))
        staging = StagingBuffer(16)
        staging.copy_from(source, 16)

        mapped = staging.map(16)
        assert staging.is_mapped
        assert mapped.view(np.uint32).tolist() == [0, 3, 2, 0]
        staging.unmap()
        assert not staging.is_mapped

    def test_double_map_raises(self) -> None:
        """Mapping an already mapped buffer fails."""
        staging = StagingBuffer(8)
        staging.map(8)
        with pytest.raises(BufferMapError, match="already mapped"):
            staging.map(8)

    def test_unmap_then_map_recovers(self) -> None:
        """Unmapping makes the buffer mappable again."""
        staging = StagingBuffer(8)
        staging.map(8)
        staging.unmap()
        assert staging.map(8).shape == (8,)

    def test_map_destroyed_raises(self) -> None:
        """A destroyed staging buffer cannot be mapped."""
        staging = StagingBuffer(8)
        staging.destroy()
        with pytest.raises(BufferMapError, match="destroyed"):
            staging.map(8)

    def test_map_out_of_range_raises(self) -> None:
        """Map ranges beyond the capacity are rejected."""
        with pytest.raises(BufferMapError, match="exceeds capacity"):
            StagingBuffer(8).map(16)


# =====================================================================
# BufferPool
# =====================================================================


class TestBufferPool:
    """Test suite for the four-slot growable pool."""

    def test_empty_pool(self) -> None:
        """A new pool holds no buffers."""
        pool = BufferPool()
        assert pool.memory_allocated_bytes() == 0
        assert pool[INPUT] is None
        assert pool.capacity(OUTPUT) == 0

    def test_reuse_when_large_enough(self) -> None:
        """A request within capacity returns the same buffer."""
        pool = BufferPool()
        first = pool.ensure(INPUT, 128)
        second = pool.ensure(INPUT, 64)
        assert second is first
        assert pool.capacity(INPUT) == 128
        assert pool.num_allocations == 1

    def test_grow_replaces_and_destroys_old(self) -> None:
        """Growth installs a new buffer sized to the request and destroys the old one."""
        pool = BufferPool()
        old = pool.ensure(OUTPUT, 32)
        new = pool.ensure(OUTPUT, 96)
        assert new is not old
        assert old.destroyed
        assert pool[OUTPUT] is new
        assert pool.capacity(OUTPUT) == 96

    def test_never_shrinks(self) -> None:
        """Smaller requests after growth keep the larger buffer."""
        pool = BufferPool()
        pool.ensure(UNIFORM, 8)
        pool.ensure(INPUT, 400)
        pool.ensure(INPUT, 4)
        assert pool.capacity(INPUT) == 400

    def test_staging_slot_is_host_staging_buffer(self) -> None:
        """The staging slot always yields a CPU StagingBuffer."""
        pool = BufferPool()
        staging = pool.ensure(STAGING, 24)
        assert isinstance(staging, StagingBuffer)
        assert staging.device.type == "cpu"

    def test_memory_accounting_and_release(self) -> None:
        """Accounting sums live capacities; release destroys everything."""
        pool = BufferPool()
        buffers = [pool.ensure(INPUT, 40), pool.ensure(OUTPUT, 16), pool.ensure(STAGING, 16)]
        assert pool.memory_allocated_bytes() == 72

        pool.release()
        assert pool.memory_allocated_bytes() == 0
        assert all(b.destroyed for b in buffers)

    def test_unknown_slot_raises(self) -> None:
        """Only the four known slots exist."""
        with pytest.raises(ValueError, match="Unknown buffer slot"):
            BufferPool().ensure("scratch", 8)

    def test_negative_size_raises(self) -> None:
        """Negative byte sizes are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            BufferPool().ensure(INPUT, -4)

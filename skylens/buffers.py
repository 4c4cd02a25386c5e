"""Growable device buffers for the parallel dominance kernel.

The kernel works against four logical buffers, pre-allocated as raw byte
storage and reinterpreted per call:

    - ``input``   — N x D float32 records, row-major (device, read-only
      for the kernel).
    - ``output``  — N x 2 uint32 counters ``(dominated_by, dominance_score)``
      (device, read-write).
    - ``uniform`` — two uint32 parameters ``(dimension_count, record_count)``.
    - ``staging`` — host-readable copy of ``output`` (pinned memory on CUDA),
      mapped for reads during readback.

``BufferPool.ensure`` reuses a buffer whose capacity already covers the
request and otherwise destroys it before installing a larger one.  Buffers
never shrink and contents are not cleared on reuse; every call overwrites
the byte range it reads.
"""

from __future__ import annotations

import logging

import numpy as np
import torch

logger = logging.getLogger(__name__)

INPUT = "input"
OUTPUT = "output"
UNIFORM = "uniform"
STAGING = "staging"
SLOTS: tuple[str, ...] = (INPUT, OUTPUT, UNIFORM, STAGING)

# Buffer usage flags per slot.
_USAGE: dict[str, str] = {
    INPUT: "STORAGE|COPY_DST",
    OUTPUT: "STORAGE|COPY_SRC",
    UNIFORM: "UNIFORM|COPY_DST",
    STAGING: "COPY_DST|MAP_READ",
}


class BufferMapError(RuntimeError):
    """The staging buffer could not be mapped for host reads."""


# ---------------------------------------------------------------------------
# DeviceBuffer
# ---------------------------------------------------------------------------


class DeviceBuffer:
    """Fixed-capacity byte buffer on a torch device.

    Args:
        capacity: Size in bytes.
        device: Device holding the storage.
        usage: Usage description (diagnostic only).
        pin_memory: Allocate page-locked host memory (CPU buffers only).
    """

    def __init__(
        self,
        capacity: int,
        device: torch.device | str = "cpu",
        usage: str = "",
        pin_memory: bool = False,
    ) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        self.capacity = capacity
        self.device = torch.device(device)
        self.usage = usage
        self._storage: torch.Tensor | None = torch.empty(
            capacity, dtype=torch.uint8, device=self.device, pin_memory=pin_memory
        )

    @property
    def destroyed(self) -> bool:
        return self._storage is None

    @property
    def storage(self) -> torch.Tensor:
        """Raw ``uint8`` storage tensor."""
        if self._storage is None:
            raise RuntimeError(f"{self!r} has been destroyed")
        return self._storage

    def view(self, dtype: torch.dtype, nbytes: int) -> torch.Tensor:
        """Reinterpret the first *nbytes* bytes as a 1-D tensor of *dtype*."""
        self._check_range(nbytes)
        return self.storage[:nbytes].view(dtype)

    def write(self, data: torch.Tensor) -> None:
        """Copy *data* (any dtype, contiguous) into the start of the buffer."""
        raw = data.contiguous().view(-1).view(torch.uint8)
        self._check_range(raw.numel())
        self.storage[: raw.numel()].copy_(raw, non_blocking=True)

    def destroy(self) -> None:
        """Release the storage; the buffer is unusable afterwards."""
        self._storage = None

    def _check_range(self, nbytes: int) -> None:
        if nbytes > self.capacity:
            raise ValueError(f"Range of {nbytes} bytes exceeds capacity {self.capacity}")

    def __repr__(self) -> str:
        state = "destroyed" if self.destroyed else "live"
        return (
            f"{type(self).__name__}(capacity={self.capacity}, device={self.device}, "
            f"usage={self.usage!r}, {state})"
        )


class StagingBuffer(DeviceBuffer):
    """Host-side buffer the device output is copied into for readback.

    The buffer must be mapped before reading and unmapped afterwards.
    Mapping an already mapped or destroyed buffer fails with
    ``BufferMapError``.
    """

    def __init__(self, capacity: int, pin_memory: bool = False, usage: str = "") -> None:
        super().__init__(capacity, device="cpu", usage=usage, pin_memory=pin_memory)
        self._mapped = False

    @property
    def is_mapped(self) -> bool:
        return self._mapped

    def copy_from(self, source: DeviceBuffer, nbytes: int) -> None:
        """Enqueue a copy of the first *nbytes* of *source* into this buffer."""
        self._check_range(nbytes)
        self.storage[:nbytes].copy_(source.view(torch.uint8, nbytes), non_blocking=True)

    def map(self, nbytes: int) -> np.ndarray:
        """Map the first *nbytes* for host reads.

        Returns:
            A ``uint8`` NumPy array sharing memory with the buffer.  It is
            only valid until ``unmap()``.

        Raises:
            BufferMapError: If the buffer is destroyed, already mapped, or
                the range exceeds its capacity.
        """
        if self.destroyed:
            raise BufferMapError("Cannot map a destroyed staging buffer")
        if self._mapped:
            raise BufferMapError("Staging buffer is already mapped")
        if nbytes > self.capacity:
            raise BufferMapError(f"Map range of {nbytes} bytes exceeds capacity {self.capacity}")
        self._mapped = True
        return self.storage[:nbytes].numpy()

    def unmap(self) -> None:
        """Release the host mapping (no-op when not mapped)."""
        self._mapped = False

    def destroy(self) -> None:
        self._mapped = False
        super().destroy()


# ---------------------------------------------------------------------------
# BufferPool
# ---------------------------------------------------------------------------


class BufferPool:
    """Owner of up to four growable buffers for one kernel instance.

    Not thread-safe: one computation may use the pool at a time.  Give
    each concurrent caller its own pool.

    Args:
        device: Device for the input, output and uniform buffers.  The
            staging buffer always lives in host memory (pinned on CUDA).

    Example:
        >>> pool = BufferPool("cuda")
        >>> data_buf = pool.ensure(INPUT, n * d * 4)
        >>> pool.memory_allocated_bytes()
    """

    def __init__(self, device: torch.device | str = "cpu") -> None:
        self.device = torch.device(device)
        self._buffers: dict[str, DeviceBuffer | None] = dict.fromkeys(SLOTS)
        self._num_allocations = 0

    def __getitem__(self, slot: str) -> DeviceBuffer | None:
        self._check_slot(slot)
        return self._buffers[slot]

    @property
    def num_allocations(self) -> int:
        """Total number of buffers allocated over the pool's life."""
        return self._num_allocations

    def capacity(self, slot: str) -> int:
        """Current capacity of *slot* in bytes (0 if unallocated)."""
        buf = self[slot]
        return 0 if buf is None else buf.capacity

    def ensure(self, slot: str, nbytes: int) -> DeviceBuffer:
        """Return a buffer for *slot* holding at least *nbytes* bytes.

        Reuses the current buffer when large enough; otherwise destroys it
        and installs a new one sized exactly to *nbytes*.
        """
        self._check_slot(slot)
        if nbytes < 0:
            raise ValueError(f"nbytes must be non-negative, got {nbytes}")

        current = self._buffers[slot]
        if current is not None and current.capacity >= nbytes:
            logger.debug("Reusing %s buffer (%d >= %d bytes)", slot, current.capacity, nbytes)
            return current

        if current is not None:
            # Old storage goes before the replacement is installed.
            current.destroy()
            self._buffers[slot] = None

        new = self._allocate(slot, nbytes)
        self._buffers[slot] = new
        self._num_allocations += 1
        logger.info(
            "Allocated %s buffer: %d bytes (previous %d)",
            slot,
            nbytes,
            0 if current is None else current.capacity,
        )
        return new

    def memory_allocated_bytes(self) -> int:
        """Total bytes held across all live buffers."""
        return sum(buf.capacity for buf in self._buffers.values() if buf is not None)

    def release(self) -> None:
        """Destroy every buffer; the pool can be reused afterwards."""
        for slot, buf in self._buffers.items():
            if buf is not None:
                buf.destroy()
            self._buffers[slot] = None

    def _allocate(self, slot: str, nbytes: int) -> DeviceBuffer:
        usage = _USAGE[slot]
        if slot == STAGING:
            return StagingBuffer(nbytes, pin_memory=self.device.type == "cuda", usage=usage)
        return DeviceBuffer(nbytes, device=self.device, usage=usage)

    @staticmethod
    def _check_slot(slot: str) -> None:
        if slot not in SLOTS:
            raise ValueError(f"Unknown buffer slot '{slot}'. Supported: {list(SLOTS)}")

    def __repr__(self) -> str:
        sizes = ", ".join(f"{s}={self.capacity(s)}" for s in SLOTS)
        return f"BufferPool(device={self.device}, {sizes})"

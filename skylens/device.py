"""Explicitly owned compute-device handle for the parallel backend.

``DeviceSession`` resolves and validates a torch device lazily, on first
``acquire()``, and caches it until ``close()``.  A failed acquisition is
never cached, so a later call may retry (e.g. after a driver comes back).
The orchestrator owns one session and hands it to every kernel that
should share the device.
"""

from __future__ import annotations

import logging

import torch

logger = logging.getLogger(__name__)


class BackendUnavailableError(RuntimeError):
    """No parallel compute device could be acquired.

    Recoverable: callers are expected to catch it and use the serial
    backend instead.
    """


def _mps_available() -> bool:
    backend = getattr(torch.backends, "mps", None)
    return backend is not None and backend.is_available()


class DeviceSession:
    """Lazily acquired, explicitly released device handle.

    Args:
        device: ``None`` or ``"auto"`` selects CUDA, then MPS.  Explicit
            strings (``"cuda"``, ``"cuda:1"``, ``"mps"``, ``"cpu"``) or a
            ``torch.device`` are used as given; ``"cpu"`` runs the kernel
            on host tensors.

    Example:
        >>> with DeviceSession("cuda") as session:
        ...     kernel = ParallelDominanceKernel(session)
        ...     result = asyncio.run(kernel.compute_skyline_parallel(records, attrs))
    """

    def __init__(self, device: str | torch.device | None = None) -> None:
        self.requested = device
        self._device: torch.device | None = None

    @property
    def is_acquired(self) -> bool:
        """True while a validated device is cached."""
        return self._device is not None

    @property
    def device(self) -> torch.device:
        """The acquired device (acquires on first access)."""
        return self.acquire()

    def acquire(self) -> torch.device:
        """Resolve and validate the device, caching it on success.

        Raises:
            BackendUnavailableError: If no usable device is found.  The
                failure is not cached.
        """
        if self._device is not None:
            return self._device

        device = self._resolve()
        try:
            # Smoke allocation; availability flags alone can be stale.
            probe = torch.zeros(1, dtype=torch.float32, device=device)
            del probe
        except (RuntimeError, AssertionError) as e:
            raise BackendUnavailableError(f"Failed to initialize device {device}: {e}") from e

        self._device = device
        logger.info("DeviceSession acquired %s", device)
        return device

    def synchronize(self) -> None:
        """Block until all work queued on the device has completed."""
        if self._device is None:
            return
        if self._device.type == "cuda":
            torch.cuda.synchronize(self._device)
        elif self._device.type == "mps":
            torch.mps.synchronize()

    def close(self) -> None:
        """Release the cached device; the next ``acquire()`` starts fresh."""
        if self._device is None:
            return
        if self._device.type == "cuda":
            torch.cuda.empty_cache()
        logger.info("DeviceSession released %s", self._device)
        self._device = None

    def _resolve(self) -> torch.device:
        requested = self.requested
        if requested is None or requested == "auto":
            if torch.cuda.is_available():
                return torch.device("cuda")
            if _mps_available():
                return torch.device("mps")
            raise BackendUnavailableError("No parallel compute device (CUDA or MPS) available")

        try:
            device = torch.device(requested)
        except RuntimeError as e:
            raise ValueError(f"Unsupported device '{requested}'") from e

        if device.type == "cuda" and not torch.cuda.is_available():
            raise BackendUnavailableError(f"Requested {device} but CUDA is not available")
        if device.type == "mps" and not _mps_available():
            raise BackendUnavailableError(f"Requested {device} but MPS is not available")
        return device

    def __enter__(self) -> DeviceSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"DeviceSession(requested={self.requested!r}, acquired={self._device})"

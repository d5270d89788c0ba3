from __future__ import annotations

from typing import Any


class AllocationError(Exception):
    """Base class for recoverable errors raised by a memory space."""


class InvalidSizeError(AllocationError, ValueError):
    def __init__(self, size: Any) -> None:
        super().__init__(f"Allocation size must be a positive integer, got {size!r}")
        self.size = size


class OutOfMemoryError(AllocationError, MemoryError):
    """No free run is large enough to hold the request."""

    def __init__(self, requested: int, largest_free: int) -> None:
        super().__init__(
            f"Unable to allocate {requested} cells (largest free run is {largest_free})"
        )
        self.requested = requested
        self.largest_free = largest_free


class InvalidHandleError(AllocationError, LookupError):
    """The pointer is not live in this memory space."""

    def __init__(self, pointer: object) -> None:
        super().__init__(f"Pointer {pointer!r} is not live in this memory space")
        self.pointer = pointer

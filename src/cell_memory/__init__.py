"""
Cell memory simulator with pluggable allocation strategies.

Expose high-level classes for building experiments quickly.
"""

from .memory_space import MemorySegment, MemorySpace, Pointer
from .allocators import ALLOCATORS, Allocator, BestFitAllocator, FirstFitAllocator, make_allocator
from .errors import AllocationError, InvalidHandleError, InvalidSizeError, OutOfMemoryError
from .instrumentation import MemoryProfiler
from .layout import CellStatus, LayoutRun, render_layout

__all__ = [
    "MemorySpace",
    "MemorySegment",
    "Pointer",
    "Allocator",
    "FirstFitAllocator",
    "BestFitAllocator",
    "ALLOCATORS",
    "make_allocator",
    "AllocationError",
    "InvalidSizeError",
    "OutOfMemoryError",
    "InvalidHandleError",
    "MemoryProfiler",
    "CellStatus",
    "LayoutRun",
    "render_layout",
]

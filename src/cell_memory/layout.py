"""
Read-only views over a cell array.

A cell holds ``FREE`` or the serial of the allocation that owns it. The helpers
here never mutate the array; every loop is bounded by ``len(cells)``.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Iterator, List, NamedTuple, Sequence

FREE = 0


class CellStatus(str, Enum):
    FREE = "Free"
    ALLOCATED = "Allocated"


class LayoutRun(NamedTuple):
    """Stretch of cells reported as one line of the layout. ``end`` is inclusive."""

    start: int
    end: int
    status: CellStatus

    @property
    def size(self) -> int:
        return self.end - self.start + 1


class FreeRun(NamedTuple):
    start: int
    size: int


def iter_runs(cells: Sequence[int], merge_allocated: bool = False) -> Iterator[LayoutRun]:
    """
    Yield runs covering the whole array, left to right.

    Free runs are always maximal. Allocated runs end where one allocation ends,
    unless ``merge_allocated`` is set, in which case neighbouring allocations
    are reported as a single run.
    """
    capacity = len(cells)
    index = 0
    while index < capacity:
        owner = cells[index]
        end = index
        while end + 1 < capacity and _same_run(owner, cells[end + 1], merge_allocated):
            end += 1
        yield LayoutRun(index, end, CellStatus.FREE if owner == FREE else CellStatus.ALLOCATED)
        index = end + 1


def _same_run(owner: int, cell: int, merge_allocated: bool) -> bool:
    if owner == FREE or not merge_allocated:
        return cell == owner
    return cell != FREE


def iter_free_runs(cells: Sequence[int], start: int = 0) -> Iterator[FreeRun]:
    """
    Yield free runs at or after ``start`` in ascending address order.

    A run that straddles ``start`` is reported from ``start`` onwards, so callers
    that need maximal runs should pass an index preceded only by occupied cells.
    """
    capacity = len(cells)
    index = max(start, 0)
    while index < capacity:
        if cells[index] != FREE:
            index += 1
            continue
        run_start = index
        while index < capacity and cells[index] == FREE:
            index += 1
        yield FreeRun(run_start, index - run_start)


def largest_free_run(cells: Sequence[int]) -> int:
    return max((run.size for run in iter_free_runs(cells)), default=0)


def describe(cells: Sequence[int], merge_allocated: bool = False) -> List[LayoutRun]:
    return list(iter_runs(cells, merge_allocated))


def render_layout(runs: Iterable[LayoutRun]) -> Iterator[str]:
    """Format runs as ``| <start> - <end> | Free`` / ``| <start> - <end> | Allocated`` lines."""
    for run in runs:
        yield f"| {run.start} - {run.end} | {run.status.value}"

import random
import unittest
from typing import List, Tuple

from cell_memory import (
    BestFitAllocator,
    FirstFitAllocator,
    MemorySpace,
    OutOfMemoryError,
    make_allocator,
)


def fragmented_space(allocator) -> MemorySpace:
    """30 cells with a 10-cell gap at 2 and a 5-cell gap at 15."""
    space = MemorySpace(30, allocator=allocator)
    space.allocate(2)
    gap_ten = space.allocate(10)
    space.allocate(3)
    gap_five = space.allocate(5)
    space.allocate(10)
    space.release(gap_ten)
    space.release(gap_five)
    return space


class ScanFromZero(FirstFitAllocator):
    """First-fit that never moves its resume position."""

    def on_allocate(self, start: int, size: int) -> None:
        pass

    def on_release(self, start: int, size: int) -> None:
        pass


def replay(allocator, seed: int) -> List[Tuple[str, int]]:
    rng = random.Random(seed)
    space = MemorySpace(200, allocator=allocator)
    live = []
    trace = []
    for _ in range(300):
        if live and rng.random() < 0.4:
            pointer = live.pop(rng.randrange(len(live)))
            space.release(pointer)
            trace.append(("release", pointer.start))
        else:
            try:
                pointer = space.allocate(rng.randint(1, 30))
            except OutOfMemoryError:
                trace.append(("fail", -1))
                continue
            live.append(pointer)
            trace.append(("allocate", pointer.start))
    return trace


class FirstFitTests(unittest.TestCase):
    def test_prefers_lower_address_over_tighter_gap(self) -> None:
        space = fragmented_space(FirstFitAllocator())
        self.assertEqual(space.allocate(5).start, 2)

    def test_skips_gaps_that_are_too_small(self) -> None:
        space = fragmented_space(FirstFitAllocator())
        self.assertEqual(space.allocate(10).start, 2)
        with self.assertRaises(OutOfMemoryError):
            space.allocate(6)
        self.assertEqual(space.allocate(5).start, 15)

    def test_resume_position_tracks_packed_prefix(self) -> None:
        allocator = FirstFitAllocator()
        space = MemorySpace(50, allocator=allocator)
        first = space.allocate(10)
        space.allocate(10)
        self.assertEqual(allocator.resume_at, 20)
        space.release(first)
        self.assertEqual(allocator.resume_at, 0)
        self.assertEqual(space.allocate(4).start, 0)
        self.assertEqual(allocator.resume_at, 4)

    def test_resume_matches_scan_from_zero(self) -> None:
        for seed in range(5):
            self.assertEqual(replay(FirstFitAllocator(), seed), replay(ScanFromZero(), seed))

    def test_exact_fit_consumes_gap(self) -> None:
        space = fragmented_space(FirstFitAllocator())
        pointer = space.allocate(10)
        self.assertEqual(space.segment(pointer).end, 12)
        self.assertEqual(space.snapshot()["free"], [(15, 5)])


class BestFitTests(unittest.TestCase):
    def test_prefers_tightest_gap(self) -> None:
        space = fragmented_space(BestFitAllocator())
        self.assertEqual(space.allocate(5).start, 15)

    def test_falls_back_to_larger_gap(self) -> None:
        space = fragmented_space(BestFitAllocator())
        self.assertEqual(space.allocate(6).start, 2)

    def test_tie_breaks_to_lowest_address(self) -> None:
        space = MemorySpace(20, allocator=BestFitAllocator())
        space.allocate(1)
        left = space.allocate(4)
        space.allocate(1)
        right = space.allocate(4)
        space.allocate(10)
        space.release(right)
        space.release(left)
        self.assertEqual(space.allocate(3).start, 1)
        self.assertEqual(space.allocate(3).start, 6)

    def test_leaves_large_gap_for_large_request(self) -> None:
        space = fragmented_space(BestFitAllocator())
        space.allocate(5)
        self.assertEqual(space.allocate(10).start, 2)

    def test_no_qualifying_gap(self) -> None:
        space = fragmented_space(BestFitAllocator())
        with self.assertRaises(OutOfMemoryError) as ctx:
            space.allocate(11)
        self.assertEqual(ctx.exception.largest_free, 10)


class RegistryTests(unittest.TestCase):
    def test_make_allocator(self) -> None:
        self.assertIsInstance(make_allocator("first_fit"), FirstFitAllocator)
        self.assertIsInstance(make_allocator("best_fit"), BestFitAllocator)
        with self.assertRaises(ValueError):
            make_allocator("worst_fit")

    def test_default_is_first_fit(self) -> None:
        self.assertIsInstance(MemorySpace(8).allocator, FirstFitAllocator)


if __name__ == "__main__":
    unittest.main()

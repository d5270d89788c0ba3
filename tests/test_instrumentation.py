import csv
import json
import tempfile
from pathlib import Path

import pytest

from cell_memory import InvalidHandleError, MemoryProfiler, MemorySpace, OutOfMemoryError


def read_json_lines(path: Path):
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            if line.strip():
                yield json.loads(line)


def test_space_records_events():
    profiler = MemoryProfiler(run_id="events")
    space = MemorySpace(16, allocator="best_fit", profiler=profiler)

    pointer = space.allocate(10)
    with pytest.raises(OutOfMemoryError):
        space.allocate(7)
    space.release(pointer)
    with pytest.raises(InvalidHandleError):
        space.release(pointer)
    space.compact()

    assert [event["event"] for event in profiler.events] == [
        "allocate",
        "allocate_failed",
        "release",
        "release_invalid",
        "compact",
    ]
    allocate = profiler.events_of("allocate")[0]
    assert allocate["strategy"] == "best_fit"
    assert allocate["start"] == 0
    assert allocate["heap_used"] == 10
    assert allocate["heap_free"] == 6
    failed = profiler.events_of("allocate_failed")[0]
    assert failed["largest_free"] == 6
    assert profiler.counts()["release"] == 1


def test_flush_writes_jsonl_and_csv():
    with tempfile.TemporaryDirectory() as tmpdir:
        profiler = MemoryProfiler(run_id="flush", output_dir=tmpdir)
        space = MemorySpace(32, profiler=profiler)
        space.release(space.allocate(8))
        profiler.flush()

        entries = list(read_json_lines(Path(tmpdir) / "flush.jsonl"))
        assert [entry["event"] for entry in entries] == ["allocate", "release"]
        with (Path(tmpdir) / "flush.csv").open(newline="", encoding="utf-8") as handle:
            rows = list(csv.DictReader(handle))
        assert len(rows) == 2
        assert rows[1]["heap_used"] == "0"


def test_write_immediately_appends():
    with tempfile.TemporaryDirectory() as tmpdir:
        profiler = MemoryProfiler(run_id="live", output_dir=tmpdir, write_immediately=True)
        space = MemorySpace(8, profiler=profiler)
        space.allocate(2)
        space.allocate(2)
        entries = list(read_json_lines(Path(tmpdir) / "live.jsonl"))
        assert [entry["start"] for entry in entries] == [0, 2]

from __future__ import annotations

import csv
import json
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class MemoryProfiler:
    """
    Lightweight event logger for MemorySpace.

    Every allocate/release/compact call appends a structured record. Records can
    be flushed to disk as CSV and JSONL, or appended to JSONL as they arrive.
    """

    run_id: str
    output_dir: Optional[str] = None
    write_immediately: bool = False
    events: List[Dict[str, object]] = field(default_factory=list)

    def record_event(self, event_type: str, payload: Dict[str, object]) -> None:
        record = {
            "timestamp": time.time(),
            "run_id": self.run_id,
            "event": event_type,
            **payload,
        }
        self.events.append(record)
        if self.write_immediately and self.output_dir:
            self._append_jsonl(record)

    def events_of(self, event_type: str) -> List[Dict[str, object]]:
        return [record for record in self.events if record["event"] == event_type]

    def counts(self) -> Dict[str, int]:
        return dict(Counter(str(record["event"]) for record in self.events))

    def flush(self) -> None:
        if not self.output_dir or not self.events:
            return
        output_path = self._output_path()
        with (output_path / f"{self.run_id}.jsonl").open("w", encoding="utf-8") as handle:
            for record in self.events:
                handle.write(json.dumps(record) + "\n")
        # Events carry different payload keys; the CSV header is their union.
        fieldnames = sorted({key for event in self.events for key in event.keys()})
        with (output_path / f"{self.run_id}.csv").open("w", newline="", encoding="utf-8") as handle:
            writer = csv.DictWriter(handle, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(self.events)

    def _output_path(self) -> Path:
        output_path = Path(self.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)
        return output_path

    def _append_jsonl(self, record: Dict[str, object]) -> None:
        with (self._output_path() / f"{self.run_id}.jsonl").open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(record) + "\n")

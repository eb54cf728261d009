from __future__ import annotations

import csv
import json
import threading
from dataclasses import asdict, dataclass
from io import StringIO
from pathlib import Path
from typing import Any

from .models import RunSummary
from .utils import atomic_write

_SUMMARY_LOCK = threading.Lock()

SUMMARY_HEADER = [
    "run_id",
    "timestamp",
    "root",
    "state",
    "total",
    "succeeded",
    "failed",
    "error_code",
]


@dataclass(slots=True)
class RunLogEntry:
    run_id: str
    source: str
    status: str
    error_code: str | None
    message: str | None
    output_path: str | None
    duration_ms: float
    size_bytes_in: int
    size_bytes_out: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RunLogger:
    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._log_file

    def append(self, entry: RunLogEntry) -> None:
        self._log_file.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            with self._log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


def write_summary_csv(path: Path, header: list[str], rows: list[list[str]]) -> None:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)
    atomic_write(path, buffer.getvalue())


def append_run_summary(path: Path, run_id: str, summary: RunSummary) -> None:
    with _SUMMARY_LOCK:
        header = list(SUMMARY_HEADER)
        rows: list[list[str]] = []
        if path.exists():
            with path.open("r", encoding="utf-8", newline="") as handle:
                reader = list(csv.reader(handle))
            if reader:
                header = reader[0]
                rows = reader[1:]
        rows.append(summary.as_row(run_id))
        write_summary_csv(path, header, rows)

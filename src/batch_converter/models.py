"""Domain models for batch conversion runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Union

from .utils import normalize_extension, normalize_pattern


@dataclass(frozen=True, slots=True)
class ConversionOutcome:
    """Result of converting one file: a success with its output, or a failure with a reason."""

    source: Path
    output: Path | None = None
    reason: str | None = None
    code: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, source: Path, output: Path) -> "ConversionOutcome":
        return cls(source=source, output=output)

    @classmethod
    def failure(cls, source: Path, reason: str, code: str = "CONVERSION_FAILED") -> "ConversionOutcome":
        return cls(source=source, reason=reason, code=code)


ConvertFunc = Callable[[Path, Path], Union[ConversionOutcome, None]]


@dataclass(frozen=True, slots=True)
class ConversionJob:
    """Immutable description of one run."""

    root: Path
    pattern: str
    target_extension: str
    convert: ConvertFunc
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root))
        object.__setattr__(self, "pattern", normalize_pattern(self.pattern))
        object.__setattr__(self, "target_extension", normalize_extension(self.target_extension))

    @property
    def label(self) -> str:
        return self.name or f"{self.pattern} -> {self.target_extension}"


@dataclass(frozen=True, slots=True)
class FileTask:
    index: int
    source: Path
    output: Path
    collides_with: Path | None = None

    @property
    def name(self) -> str:
        return self.source.name


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    ENUMERATING = "enumerating"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ABORTED = "aborted"


@dataclass(slots=True)
class RunSummary:
    root: Path
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    state: RunState = RunState.NOT_STARTED
    error_code: str | None = None
    error_message: str | None = None
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    def record(self, outcome: ConversionOutcome) -> None:
        if outcome.ok:
            self.succeeded += 1
        else:
            self.failed += 1

    def finish(self, state: RunState, *, code: str | None = None, message: str | None = None) -> None:
        self.state = state
        self.error_code = code
        self.error_message = message
        self.finished_at = time.time()

    def as_row(self, run_id: str) -> list[str]:
        return [
            run_id,
            time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.started_at)),
            str(self.root),
            self.state.value,
            str(self.total),
            str(self.succeeded),
            str(self.failed),
            self.error_code or "",
        ]


__all__ = [
    "ConversionJob",
    "ConversionOutcome",
    "ConvertFunc",
    "FileTask",
    "RunState",
    "RunSummary",
]

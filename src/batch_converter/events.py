"""Structured notifications emitted by a pipeline run.

A sink is any callable accepting one event. Events for a run arrive in
processing order and the terminal event (``RunCompleted`` or the
cancellation/abort ``RunError``) is always the last one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Union

from .models import RunSummary


@dataclass(frozen=True, slots=True)
class RunStarted:
    directory: Path


@dataclass(frozen=True, slots=True)
class RunProgress:
    message: str


@dataclass(frozen=True, slots=True)
class RunError:
    code: str
    message: str
    source: Path | None = None

    @property
    def file_level(self) -> bool:
        return self.source is not None


@dataclass(frozen=True, slots=True)
class FileConverted:
    source: Path
    output: Path


@dataclass(frozen=True, slots=True)
class RunCompleted:
    summary: RunSummary


PipelineEvent = Union[RunStarted, RunProgress, RunError, FileConverted, RunCompleted]
EventSink = Callable[[PipelineEvent], None]


def null_sink(event: PipelineEvent) -> None:
    return None


@dataclass(slots=True)
class CallbackListener:
    """Dispatch events to optional per-kind callbacks."""

    on_started: Callable[[Path], None] | None = None
    on_progress: Callable[[str], None] | None = None
    on_error: Callable[[RunError], None] | None = None
    on_file_converted: Callable[[Path], None] | None = None
    on_completed: Callable[[RunSummary], None] | None = None

    def __call__(self, event: PipelineEvent) -> None:
        if isinstance(event, RunStarted):
            if self.on_started:
                self.on_started(event.directory)
        elif isinstance(event, RunProgress):
            if self.on_progress:
                self.on_progress(event.message)
        elif isinstance(event, RunError):
            if self.on_error:
                self.on_error(event)
        elif isinstance(event, FileConverted):
            if self.on_file_converted:
                self.on_file_converted(event.output)
        elif isinstance(event, RunCompleted):
            if self.on_completed:
                self.on_completed(event.summary)


@dataclass(slots=True)
class EventRecorder:
    """Keep every event of a run in arrival order."""

    events: list[PipelineEvent] = field(default_factory=list)

    def __call__(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def of_type(self, kind: type) -> list[PipelineEvent]:
        return [event for event in self.events if isinstance(event, kind)]

    @property
    def messages(self) -> list[str]:
        return [event.message for event in self.events if isinstance(event, (RunProgress, RunError))]


__all__ = [
    "CallbackListener",
    "EventRecorder",
    "EventSink",
    "FileConverted",
    "PipelineEvent",
    "RunCompleted",
    "RunError",
    "RunProgress",
    "RunStarted",
    "null_sink",
]

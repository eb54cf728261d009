from __future__ import annotations

import json
import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from .config import AppConfig
from .converters import get_converter
from .events import FileConverted, PipelineEvent, RunError
from .logging import RunLogger, append_run_summary
from .models import ConversionJob, RunState, RunSummary
from .pipeline import BatchPipeline
from .utils import atomic_write, generate_run_id

logger = logging.getLogger(__name__)

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
RECENT_ERRORS = 50


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).strftime(ISO_FORMAT)


class RunStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"


_STATE_TO_STATUS = {
    RunState.COMPLETED: RunStatus.COMPLETED,
    RunState.CANCELLED: RunStatus.CANCELED,
    RunState.ABORTED: RunStatus.FAILED,
}


@dataclass(slots=True)
class RunRecord:
    run_id: str
    converter: str
    directory: str
    status: RunStatus
    submitted_at: str | None = None
    started_at: str | None = None
    finished_at: str | None = None
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    converted: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None

    def to_payload(self) -> dict[str, object]:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload

    @classmethod
    def from_payload(cls, data: dict[str, object]) -> "RunRecord":
        converted = data.get("converted")
        errors = data.get("errors")
        return cls(
            run_id=str(data.get("run_id")),
            converter=str(data.get("converter", "")),
            directory=str(data.get("directory", "")),
            status=RunStatus(str(data.get("status", RunStatus.QUEUED.value))),
            submitted_at=str(data["submitted_at"]) if data.get("submitted_at") else None,
            started_at=str(data["started_at"]) if data.get("started_at") else None,
            finished_at=str(data["finished_at"]) if data.get("finished_at") else None,
            total=int(data.get("total", 0) or 0),
            succeeded=int(data.get("succeeded", 0) or 0),
            failed=int(data.get("failed", 0) or 0),
            converted=[str(item) for item in converted] if isinstance(converted, list) else [],
            errors=[str(item) for item in errors] if isinstance(errors, list) else [],
            error_code=str(data["error_code"]) if data.get("error_code") else None,
            error_message=str(data["error_message"]) if data.get("error_message") else None,
        )


class RunStore:
    def __init__(self, config: AppConfig) -> None:
        self._root = config.runtime.state_dir / "_runs"
        self._history_limit = config.runtime.jobs.history_limit
        self._root.mkdir(parents=True, exist_ok=True)

    def status_path(self, run_id: str) -> Path:
        return self._root / f"{run_id}.json"

    def write_status(self, record: RunRecord) -> None:
        atomic_write(self.status_path(record.run_id), json.dumps(record.to_payload(), indent=2))

    def read_status(self, run_id: str) -> RunRecord | None:
        path = self.status_path(run_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("ignoring unreadable run status %s", path)
            return None
        return RunRecord.from_payload(data)

    def list_latest(self, limit: int = 50) -> list[RunRecord]:
        paths = sorted(self._root.glob("*.json"), key=lambda item: item.stat().st_mtime)
        if limit > 0:
            paths = paths[-limit:]
        records = [self.read_status(path.stem) for path in paths]
        return [record for record in records if record is not None]

    def prune(self) -> None:
        if self._history_limit <= 0:
            return
        paths = sorted(self._root.glob("*.json"), key=lambda item: item.stat().st_mtime)
        for path in paths[: -self._history_limit]:
            path.unlink(missing_ok=True)


@dataclass(slots=True)
class RunHandle:
    run_id: str
    job: ConversionJob
    record: RunRecord
    cancel_event: threading.Event
    pipeline: BatchPipeline | None = None


class RunManager:
    """Launch pipeline runs in the background and track their status."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._store = RunStore(config)
        log_path = config.log_path
        self._run_logger = RunLogger(log_path) if log_path else None
        pool_size = config.runtime.jobs.worker_pool_size
        if pool_size <= 0:
            pool_size = min(4, max(1, os.cpu_count() or 1))
        self._executor = ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="run-worker")
        self._runs: dict[str, RunHandle] = {}
        self._futures: dict[str, Future[RunSummary | None]] = {}
        self._lock = threading.Lock()

    def submit(self, directory: Path, converter: str) -> RunRecord:
        spec = get_converter(converter)
        return self.submit_job(spec.job(directory, self._config.tools))

    def submit_job(self, job: ConversionJob) -> RunRecord:
        run_id = generate_run_id("run")
        record = RunRecord(
            run_id=run_id,
            converter=job.label,
            directory=str(job.root),
            status=RunStatus.QUEUED,
            submitted_at=_iso(_utc_now()),
        )
        self._store.write_status(record)
        handle = RunHandle(run_id=run_id, job=job, record=record, cancel_event=threading.Event())
        with self._lock:
            self._runs[run_id] = handle
            self._futures[run_id] = self._executor.submit(self._run, handle)
            return self._snapshot(record)

    def _run(self, handle: RunHandle) -> RunSummary | None:
        try:
            return self._execute(handle)
        finally:
            with self._lock:
                self._runs.pop(handle.run_id, None)
                self._futures.pop(handle.run_id, None)

    def _execute(self, handle: RunHandle) -> RunSummary | None:
        record = handle.record
        if handle.cancel_event.is_set():
            self._update(handle, status=RunStatus.CANCELED, finished_at=_iso(_utc_now()))
            return None

        self._update(handle, status=RunStatus.RUNNING, started_at=_iso(_utc_now()))
        handle.pipeline = BatchPipeline(lambda event: self._on_event(handle, event), run_logger=self._run_logger)
        summary = handle.pipeline.run(handle.job, handle.cancel_event, run_id=handle.run_id)

        self._update(
            handle,
            status=_STATE_TO_STATUS.get(summary.state, RunStatus.FAILED),
            finished_at=_iso(_utc_now()),
            summary=summary,
        )
        summary_path = self._config.summary_path
        if summary_path is not None:
            append_run_summary(summary_path, handle.run_id, summary)
        self._store.prune()
        logger.info("run %s finished with status %s", handle.run_id, record.status.value)
        return summary

    def _on_event(self, handle: RunHandle, event: PipelineEvent) -> None:
        with self._lock:
            record = handle.record
            if isinstance(event, FileConverted):
                record.succeeded += 1
                record.converted.append(str(event.output))
            elif isinstance(event, RunError) and event.file_level:
                record.failed += 1
                record.errors = (record.errors + [event.message])[-RECENT_ERRORS:]
            if handle.pipeline is not None:
                record.total = handle.pipeline.total_files_to_convert
        if isinstance(event, (FileConverted, RunError)):
            self._store.write_status(self._snapshot(record))

    def _update(
        self,
        handle: RunHandle,
        *,
        status: RunStatus,
        started_at: str | None = None,
        finished_at: str | None = None,
        summary: RunSummary | None = None,
    ) -> None:
        with self._lock:
            record = handle.record
            record.status = status
            if started_at:
                record.started_at = started_at
            if finished_at:
                record.finished_at = finished_at
            if summary is not None:
                record.total = summary.total
                record.succeeded = summary.succeeded
                record.failed = summary.failed
                record.error_code = summary.error_code
                record.error_message = summary.error_message
            snapshot = self._snapshot(record)
        self._store.write_status(snapshot)

    def _snapshot(self, record: RunRecord) -> RunRecord:
        return RunRecord.from_payload(record.to_payload())

    def cancel(self, run_id: str) -> bool:
        with self._lock:
            handle = self._runs.get(run_id)
        if handle is None:
            return False
        handle.cancel_event.set()
        return True

    def get_status(self, run_id: str) -> RunRecord | None:
        with self._lock:
            handle = self._runs.get(run_id)
            if handle is not None:
                return self._snapshot(handle.record)
        return self._store.read_status(run_id)

    def wait(self, run_id: str, timeout: float | None = None) -> RunRecord | None:
        with self._lock:
            future = self._futures.get(run_id)
        # finished runs drop their future; their status is already persisted
        if future is not None:
            try:
                future.result(timeout=timeout)
            except FutureTimeout:
                logger.debug("run %s still active after %ss", run_id, timeout)
        return self.get_status(run_id)

    def list_runs(self, limit: int = 50) -> list[RunRecord]:
        return self._store.list_latest(limit)

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            handles = list(self._runs.values())
        for handle in handles:
            handle.cancel_event.set()
        self._executor.shutdown(wait=wait)


__all__ = [
    "RunManager",
    "RunRecord",
    "RunStatus",
    "RunStore",
]

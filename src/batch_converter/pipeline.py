from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from threading import Event

from .errors import (
    Cancelled,
    ConversionError,
    DirectoryNotFound,
    FileWriteError,
    OutputVerificationFailed,
    UnexpectedFault,
    UnsupportedOrCorruptInput,
)
from .events import (
    EventSink,
    FileConverted,
    PipelineEvent,
    RunCompleted,
    RunError,
    RunProgress,
    RunStarted,
    null_sink,
)
from .logging import RunLogEntry, RunLogger
from .models import (
    ConversionJob,
    ConversionOutcome,
    ConvertFunc,
    FileTask,
    RunState,
    RunSummary,
)
from .utils import file_size, generate_run_id, iter_matching_files, output_path_for

logger = logging.getLogger(__name__)


class BatchPipeline:
    """Convert every file matching a job's pattern, one file at a time.

    File-level failures are isolated and counted. Run-level failures (missing
    root, cancellation, faults outside the per-file boundary) end the run and
    are reported once. ``run`` always returns the summary, never raises for
    those conditions.
    """

    def __init__(
        self,
        sink: EventSink | None = None,
        *,
        run_logger: RunLogger | None = None,
    ) -> None:
        self._sink = sink or null_sink
        self._run_logger = run_logger
        self._total_files_to_convert = 0

    @property
    def total_files_to_convert(self) -> int:
        return self._total_files_to_convert

    def run(
        self,
        job: ConversionJob,
        cancellation: Event | None = None,
        *,
        run_id: str | None = None,
    ) -> RunSummary:
        run_id = run_id or generate_run_id()
        summary = RunSummary(root=job.root)
        self._total_files_to_convert = 0

        if not job.root.is_dir():
            exc = DirectoryNotFound(f"Source directory {job.root} does not exist")
            logger.warning("run %s aborted: %s", run_id, exc)
            self._end_run(summary, RunState.ABORTED, exc, run_id)
            return summary

        try:
            self._emit(RunStarted(directory=job.root))
            tasks = self._enumerate(job, summary)
            for task in tasks:
                self._ensure_not_cancelled(cancellation)
                outcome = self._process(task, job, run_id)
                summary.record(outcome)
                self._report(outcome)

            summary.finish(RunState.COMPLETED)
            logger.info(
                "run %s completed: %d/%d converted, %d failed",
                run_id,
                summary.succeeded,
                summary.total,
                summary.failed,
            )
            self._emit(RunProgress(f"Converted {summary.succeeded}/{summary.total} files"))
            self._emit(RunCompleted(summary=summary))
        except Cancelled as exc:
            logger.info("run over %s cancelled after %d files", summary.root, summary.attempted)
            self._end_run(
                summary,
                RunState.CANCELLED,
                exc,
                run_id,
                progress=(
                    f"Cancelled after {summary.attempted}/{summary.total} files "
                    f"({summary.succeeded} converted)"
                ),
            )
        except Exception as exc:
            self._abort(summary, exc, run_id)
        return summary

    async def run_async(
        self,
        job: ConversionJob,
        cancellation: Event | None = None,
        *,
        run_id: str | None = None,
    ) -> RunSummary:
        """Execute the run in a worker thread so the event loop stays responsive."""

        return await asyncio.to_thread(self.run, job, cancellation, run_id=run_id)

    def _enumerate(self, job: ConversionJob, summary: RunSummary) -> list[FileTask]:
        summary.state = RunState.ENUMERATING
        try:
            sources = list(iter_matching_files(job.root, job.pattern))
        except OSError as exc:
            raise UnexpectedFault(f"Failed to enumerate {job.root}: {exc}") from exc
        tasks: list[FileTask] = []
        claimed: dict[Path, Path] = {}
        for index, source in enumerate(sources, start=1):
            output = output_path_for(source, job.target_extension)
            # first source in processing order keeps the output name
            owner = claimed.setdefault(output, source)
            tasks.append(
                FileTask(
                    index=index,
                    source=source,
                    output=output,
                    collides_with=owner if owner != source else None,
                )
            )
        summary.total = len(tasks)
        summary.state = RunState.RUNNING
        self._total_files_to_convert = summary.total
        return tasks

    def _ensure_not_cancelled(self, cancellation: Event | None) -> None:
        if cancellation is not None and cancellation.is_set():
            raise Cancelled()

    def _process(self, task: FileTask, job: ConversionJob, run_id: str) -> ConversionOutcome:
        self._emit(RunProgress(f"Processing: {task.name}"))
        start = time.perf_counter()
        try:
            self._prepare_output(task)
            outcome = self._invoke(task, job)
        except Cancelled:
            self._discard_partial(task)
            raise
        except ConversionError as exc:
            outcome = ConversionOutcome.failure(task.source, str(exc), exc.code)
        except Exception as exc:
            logger.debug("converter raised for %s", task.source, exc_info=True)
            outcome = ConversionOutcome.failure(
                task.source,
                f"Unexpected error: {type(exc).__name__}: {exc}",
                UnexpectedFault.code,
            )

        if not outcome.ok:
            self._discard_partial(task)
        self._log_outcome(run_id, task, outcome, (time.perf_counter() - start) * 1000)
        return outcome

    def _prepare_output(self, task: FileTask) -> None:
        if task.output == task.source:
            raise UnsupportedOrCorruptInput(f"{task.name}: output path equals input path")
        if task.collides_with is not None:
            raise UnsupportedOrCorruptInput(
                f"{task.name}: output {task.output.name} collides with {task.collides_with.name}"
            )
        if task.output.exists():
            try:
                task.output.unlink()
            except OSError as exc:
                raise FileWriteError(f"Cannot replace existing {task.output.name}: {exc}") from exc

    def _discard_partial(self, task: FileTask) -> None:
        if task.output == task.source or task.collides_with is not None:
            return
        try:
            task.output.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("could not remove partial output %s: %s", task.output, exc)

    def _invoke(self, task: FileTask, job: ConversionJob) -> ConversionOutcome:
        result = job.convert(task.source, task.output)
        if result is not None and not result.ok:
            return ConversionOutcome.failure(
                task.source,
                result.reason or "conversion failed",
                result.code or "CONVERSION_FAILED",
            )
        if not task.output.is_file():
            exc = OutputVerificationFailed(f"{task.name}: converter reported success but output missing")
            return ConversionOutcome.failure(task.source, str(exc), exc.code)
        return ConversionOutcome.success(task.source, task.output)

    def _report(self, outcome: ConversionOutcome) -> None:
        if outcome.ok and outcome.output is not None:
            self._emit(RunProgress(f"Converted: {outcome.output.name}"))
            self._emit(FileConverted(source=outcome.source, output=outcome.output))
            return
        self._emit(
            RunError(
                code=outcome.code or "CONVERSION_FAILED",
                message=f"{outcome.source.name} conversion failed: {outcome.reason}",
                source=outcome.source,
            )
        )

    def _end_run(
        self,
        summary: RunSummary,
        state: RunState,
        exc: ConversionError,
        run_id: str,
        *,
        progress: str | None = None,
    ) -> None:
        summary.finish(state, code=exc.code, message=str(exc))
        try:
            if progress is not None:
                self._emit(RunProgress(progress))
            self._emit(RunError(code=exc.code, message=str(exc)))
        except Exception as fault:
            self._abort(summary, fault, run_id)

    def _abort(self, summary: RunSummary, exc: Exception, run_id: str) -> None:
        fault = UnexpectedFault(f"Fatal error: {exc}")
        summary.finish(RunState.ABORTED, code=fault.code, message=str(fault))
        logger.error("run %s aborted by an unexpected fault", run_id, exc_info=exc)
        try:
            self._emit(RunError(code=fault.code, message=str(fault)))
        except Exception:
            # the run is already over; the summary carries the fault
            logger.exception("event sink failed while reporting abort of run %s", run_id)

    def _log_outcome(
        self, run_id: str, task: FileTask, outcome: ConversionOutcome, duration_ms: float
    ) -> None:
        if self._run_logger is None:
            return
        self._run_logger.append(
            RunLogEntry(
                run_id=run_id,
                source=str(task.source),
                status="success" if outcome.ok else "failure",
                error_code=outcome.code,
                message=outcome.reason,
                output_path=str(task.output) if outcome.ok else None,
                duration_ms=duration_ms,
                size_bytes_in=file_size(task.source),
                size_bytes_out=file_size(task.output) if outcome.ok else 0,
            )
        )

    def _emit(self, event: PipelineEvent) -> None:
        self._sink(event)


def run_pipeline(
    root: Path,
    pattern: str,
    target_extension: str,
    convert: ConvertFunc,
    cancellation: Event | None = None,
    *,
    sink: EventSink | None = None,
) -> RunSummary:
    """Functional shortcut for a one-off run."""

    job = ConversionJob(root=root, pattern=pattern, target_extension=target_extension, convert=convert)
    return BatchPipeline(sink).run(job, cancellation)


__all__ = ["BatchPipeline", "run_pipeline"]

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..errors import (
    ConversionTimeout,
    FileReadError,
    ToolMissing,
    UnsupportedOrCorruptInput,
)
from ..models import ConversionOutcome

STDERR_TAIL = 400


@runtime_checkable
class Converter(Protocol):
    def __call__(self, source: Path, output: Path) -> ConversionOutcome | None:  # pragma: no cover - interface
        ...


def ensure_readable(source: Path) -> None:
    if not source.is_file():
        raise FileReadError(f"Cannot read {source.name}: file does not exist")


@dataclass(frozen=True, slots=True)
class ExternalToolConverter:
    """Run a command-line codec for one file.

    Arguments equal to ``{input}`` or ``{output}`` are replaced by the file paths.
    """

    executable: str
    arguments: tuple[str, ...] = ("{input}", "{output}")
    timeout_s: float | None = None

    def command(self, source: Path, output: Path) -> list[str]:
        resolved = shutil.which(self.executable)
        if resolved is None:
            raise ToolMissing(f"Converter tool not found: {self.executable}")
        values = {"{input}": str(source), "{output}": str(output)}
        return [resolved, *(values.get(argument, argument) for argument in self.arguments)]

    def __call__(self, source: Path, output: Path) -> ConversionOutcome:
        ensure_readable(source)
        command = self.command(source, output)
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ConversionTimeout(
                f"{Path(self.executable).name} exceeded {self.timeout_s}s on {source.name}"
            ) from exc
        except FileNotFoundError as exc:
            raise ToolMissing(f"Converter tool not found: {self.executable}") from exc

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()[-STDERR_TAIL:]
            raise UnsupportedOrCorruptInput(
                f"{Path(self.executable).name} exited with {completed.returncode}"
                + (f": {detail}" if detail else "")
            )
        return ConversionOutcome.success(source, output)


__all__ = ["Converter", "ExternalToolConverter", "ensure_readable"]

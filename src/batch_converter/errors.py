"""Error taxonomy shared by the pipeline and the converters.

Run-level errors stop a whole run; file-level errors are caught at the
per-file boundary and counted as a failure for that file only.
"""

from __future__ import annotations


class ConversionError(RuntimeError):
    code = "CONVERSION_FAILED"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class DirectoryNotFound(ConversionError):
    code = "DIRECTORY_NOT_FOUND"


class Cancelled(ConversionError):
    code = "CANCELED"

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)


class FileReadError(ConversionError):
    code = "FILE_READ"


class FileWriteError(ConversionError):
    code = "FILE_WRITE"


class UnsupportedOrCorruptInput(ConversionError):
    code = "UNSUPPORTED_INPUT"


class OutputVerificationFailed(ConversionError):
    code = "OUTPUT_MISSING"


class ToolMissing(ConversionError):
    code = "TOOL_MISSING"


class ConversionTimeout(ConversionError):
    code = "TIMEOUT"


class UnexpectedFault(ConversionError):
    code = "UNEXPECTED"


__all__ = [
    "ConversionError",
    "DirectoryNotFound",
    "Cancelled",
    "FileReadError",
    "FileWriteError",
    "UnsupportedOrCorruptInput",
    "OutputVerificationFailed",
    "ToolMissing",
    "ConversionTimeout",
    "UnexpectedFault",
]

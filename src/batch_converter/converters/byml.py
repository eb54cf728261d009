from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..config import ToolsConfig
from ..errors import FileReadError, ToolMissing, UnsupportedOrCorruptInput
from ..models import ConversionOutcome
from ..utils import atomic_write
from .base import ensure_readable

MIN_BYML_SIZE = 4


@dataclass(frozen=True, slots=True)
class BymlToYamlConverter:
    """Decode a binary BYML document and write its YAML text form."""

    def __call__(self, source: Path, output: Path) -> ConversionOutcome:
        ensure_readable(source)
        try:
            payload = source.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Cannot read {source.name}: {exc}") from exc
        if len(payload) < MIN_BYML_SIZE:
            raise UnsupportedOrCorruptInput(f"{source.name} is too small to be a BYML document")

        try:
            from oead import byml
        except ImportError as exc:
            raise ToolMissing("oead is required for BYML conversion; install the byml extra") from exc

        try:
            document = byml.from_binary(payload)
            text = byml.to_text(document)
        except Exception as exc:
            raise UnsupportedOrCorruptInput(f"{source.name} is not a valid BYML document: {exc}") from exc
        atomic_write(output, text)
        return ConversionOutcome.success(source, output)


def byml_to_yaml(tools: ToolsConfig) -> BymlToYamlConverter:
    return BymlToYamlConverter()

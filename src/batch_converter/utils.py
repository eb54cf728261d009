from __future__ import annotations

import fnmatch
import hashlib
import os
import tempfile
import time
from pathlib import Path
from typing import Iterator


def generate_run_id(prefix: str = "run") -> str:
    epoch_ms = int(time.time() * 1000)
    random_bits = hashlib.sha256(os.urandom(16)).hexdigest()[:8]
    return f"{prefix}-{epoch_ms}-{random_bits}"


def normalize_extension(extension: str) -> str:
    """Return ``extension`` lower-cased with a single leading dot."""

    cleaned = extension.strip().lstrip("*").lstrip(".").lower()
    if not cleaned:
        raise ValueError(f"Invalid extension: {extension!r}")
    return f".{cleaned}"


def normalize_pattern(pattern: str) -> str:
    """Turn ``adx``, ``.adx`` or ``*.adx`` into a lower-case glob."""

    stripped = pattern.strip()
    if not stripped:
        raise ValueError("Source pattern must not be empty")
    if any(char in stripped for char in "*?["):
        return stripped.lower()
    return f"*{normalize_extension(stripped)}"


def iter_matching_files(root: Path, pattern: str) -> Iterator[Path]:
    """Yield files under ``root`` whose name matches ``pattern``, sorted by full path."""

    glob = normalize_pattern(pattern)
    matches = [
        path
        for path in root.rglob("*")
        if path.is_file() and fnmatch.fnmatchcase(path.name.lower(), glob)
    ]
    yield from sorted(matches, key=lambda item: str(item))


def output_path_for(source: Path, target_extension: str) -> Path:
    extension = normalize_extension(target_extension)
    stem = source.stem
    # "song.qoa.wav" -> "song.qoa", never "song.qoa.qoa"
    if stem.lower().endswith(extension) and len(stem) > len(extension):
        stem = stem[: -len(extension)]
    return source.with_name(f"{stem}{extension}")


def atomic_write(path: Path, data: str, encoding: str = "utf-8") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", delete=False, dir=path.parent, encoding=encoding) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
    os.replace(tmp.name, path)


def file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0

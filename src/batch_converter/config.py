from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


CONFIG_FILE = Path("config.toml")


@dataclass(slots=True)
class JobsConfig:
    worker_pool_size: int = 2
    history_limit: int = 200


@dataclass(slots=True)
class RuntimeConfig:
    state_dir: Path = Path("runs")
    log_file: str | None = "log.jsonl"
    summary_csv: str | None = "summary.csv"
    enable_local_api: bool = False
    jobs: JobsConfig = field(default_factory=JobsConfig)


@dataclass(slots=True)
class ToolsConfig:
    vgaudio: str = "VGAudioCli"
    qoaconv: str = "qoaconv"
    timeout_s: int = 120


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    api: APIConfig = field(default_factory=APIConfig)

    @property
    def log_path(self) -> Path | None:
        if not self.runtime.log_file:
            return None
        return self.runtime.state_dir / self.runtime.log_file

    @property
    def summary_path(self) -> Path | None:
        if not self.runtime.summary_csv:
            return None
        return self.runtime.state_dir / self.runtime.summary_csv


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _optional_str(data: Mapping[str, object], key: str, default: str | None) -> str | None:
    if key not in data:
        return default
    value = data[key]
    if value in (None, "", False):
        return None
    return str(value)


def _build_jobs(data: Mapping[str, object] | None) -> JobsConfig:
    if not data:
        return JobsConfig()
    return JobsConfig(
        worker_pool_size=int(data.get("worker_pool_size", 2)),
        history_limit=int(data.get("history_limit", 200)),
    )


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    jobs = _build_jobs(data.get("jobs") if isinstance(data.get("jobs"), Mapping) else None)
    return RuntimeConfig(
        state_dir=Path(str(data.get("state_dir", "runs"))),
        log_file=_optional_str(data, "log_file", "log.jsonl"),
        summary_csv=_optional_str(data, "summary_csv", "summary.csv"),
        enable_local_api=bool(data.get("enable_local_api", False)),
        jobs=jobs,
    )


def _build_tools(data: Mapping[str, object] | None) -> ToolsConfig:
    if not data:
        return ToolsConfig()
    return ToolsConfig(
        vgaudio=str(data.get("vgaudio", "VGAudioCli")),
        qoaconv=str(data.get("qoaconv", "qoaconv")),
        timeout_s=int(data.get("timeout_s", 120)),
    )


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    runtime_data = raw.get("runtime") if isinstance(raw, Mapping) else None
    tools_data = raw.get("tools") if isinstance(raw, Mapping) else None
    api_data = raw.get("api") if isinstance(raw, Mapping) else None
    runtime = _build_runtime(runtime_data if isinstance(runtime_data, Mapping) else None)
    tools = _build_tools(tools_data if isinstance(tools_data, Mapping) else None)
    api = _build_api(api_data if isinstance(api_data, Mapping) else None)
    return AppConfig(runtime=runtime, tools=tools, api=api)


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "state_dir": str(config.runtime.state_dir),
            "log_file": config.runtime.log_file,
            "summary_csv": config.runtime.summary_csv,
            "enable_local_api": config.runtime.enable_local_api,
            "jobs": {
                "worker_pool_size": config.runtime.jobs.worker_pool_size,
                "history_limit": config.runtime.jobs.history_limit,
            },
        },
        "tools": {
            "vgaudio": config.tools.vgaudio,
            "qoaconv": config.tools.qoaconv,
            "timeout_s": config.tools.timeout_s,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI

from .. import __version__
from ..config import AppConfig, load_config
from ..jobs import RunManager
from ..settings import Settings, get_settings
from .routers import health, runs


def create_app(
    config_path: Path | None = None,
    *,
    require_enabled: bool = True,
    settings: Settings | None = None,
) -> FastAPI:
    config = _prepare_config(config_path, settings or get_settings())
    if require_enabled and not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via config.runtime.enable_local_api")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            app.state.run_manager.shutdown()

    app = FastAPI(title="Batch Format Converter", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.run_manager = RunManager(config)

    app.include_router(health.router)
    app.include_router(runs.router)
    return app


def _prepare_config(config_path: Path | None, settings: Settings) -> AppConfig:
    config = load_config(config_path or settings.config_path)
    if settings.enable_local_api is not None:
        config.runtime.enable_local_api = settings.enable_local_api
    return config


__all__ = ["create_app"]

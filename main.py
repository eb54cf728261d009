"""ASGI entry point: ``uvicorn main:app`` or ``python main.py``."""

from fastapi import FastAPI, HTTPException

from batch_converter import __version__
from batch_converter.api import create_app
from batch_converter.config import load_config
from batch_converter.settings import get_settings

try:
    app = create_app(require_enabled=True)
except RuntimeError:
    app = FastAPI(title="Batch Format Converter (disabled)", version=__version__)

    @app.get("/")
    async def api_disabled() -> dict[str, str]:
        raise HTTPException(
            status_code=503,
            detail="Local API disabled. Set runtime.enable_local_api = true or BATCHCONV_ENABLE_LOCAL_API=1",
        )


if __name__ == "__main__":
    import uvicorn

    api = load_config(get_settings().config_path).api
    uvicorn.run(app, host=api.host, port=api.port)

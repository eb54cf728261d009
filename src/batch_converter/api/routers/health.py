from __future__ import annotations

from fastapi import APIRouter

from ... import __version__
from ...converters import available_converters
from ..schemas import ConverterInfo, HealthStatus

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health() -> HealthStatus:
    return HealthStatus(status="ok", version=__version__)


@router.get("/converters", summary="List registered converters", response_model=list[ConverterInfo])
def converters() -> list[ConverterInfo]:
    return [
        ConverterInfo(
            name=spec.name,
            source_extension=spec.source_extension,
            target_extension=spec.target_extension,
        )
        for spec in available_converters()
    ]


__all__ = ["router"]

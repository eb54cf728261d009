from __future__ import annotations

from pydantic import BaseModel, Field


class HealthStatus(BaseModel):
    status: str
    version: str


class ConverterInfo(BaseModel):
    name: str
    source_extension: str
    target_extension: str


class RunRequest(BaseModel):
    directory: str = Field(..., min_length=1, description="Directory scanned recursively")
    converter: str = Field(..., min_length=1, description="Registered converter name, e.g. adx2wav")


class RunResponse(BaseModel):
    run_id: str
    converter: str
    directory: str
    status: str
    submitted_at: str | None = None
    started_at: str | None = None
    finished_at: str | None = None
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    converted: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None

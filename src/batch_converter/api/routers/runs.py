from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query

from ...jobs import RunManager, RunRecord
from ..dependencies import get_run_manager
from ..schemas import RunRequest, RunResponse

router = APIRouter(prefix="/api/v1", tags=["runs"])


@router.post("/runs", summary="Start a batch conversion run", status_code=202, response_model=RunResponse)
def submit_run(request: RunRequest, manager: RunManager = Depends(get_run_manager)) -> RunResponse:
    try:
        record = manager.submit(Path(request.directory), request.converter)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="CONVERTER_NOT_FOUND") from exc
    return _serialize_record(record)


@router.get("/runs", summary="List recent runs", response_model=list[RunResponse])
def list_runs(
    limit: int = Query(50, ge=1, le=500),
    manager: RunManager = Depends(get_run_manager),
) -> list[RunResponse]:
    return [_serialize_record(record) for record in manager.list_runs(limit)]


@router.get("/runs/{run_id}", summary="Retrieve run status", response_model=RunResponse)
def get_run(run_id: str, manager: RunManager = Depends(get_run_manager)) -> RunResponse:
    record = manager.get_status(run_id)
    if record is None:
        raise HTTPException(status_code=404, detail="RUN_NOT_FOUND")
    return _serialize_record(record)


@router.post("/runs/{run_id}/cancel", summary="Cancel a queued or running run", response_model=RunResponse)
def cancel_run(run_id: str, manager: RunManager = Depends(get_run_manager)) -> RunResponse:
    record = manager.get_status(run_id)
    if record is None:
        raise HTTPException(status_code=404, detail="RUN_NOT_FOUND")
    if not manager.cancel(run_id):
        raise HTTPException(status_code=409, detail="NOT_CANCELABLE")
    return _serialize_record(manager.get_status(run_id) or record)


def _serialize_record(record: RunRecord) -> RunResponse:
    return RunResponse.model_validate(record.to_payload())


__all__ = ["router"]

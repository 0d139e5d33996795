"""CRUD endpoints shared by every activity log type."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Type, Union

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import logs
from ..auth import AuthContext, require_auth
from ..schemas import ApiResponse, CamelModel, FeedType

router = APIRouter(tags=["logs"])
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogResource:
    path: str
    table: logs.LogTable
    create_model: Type[CamelModel]
    update_model: Type[CamelModel]
    out_model: Type[logs.LogOut]
    filter_param: Optional[str] = None


RESOURCES = [
    LogResource("/api/sleep-log", logs.SLEEP, logs.SleepLogCreate, logs.SleepLogUpdate, logs.SleepLog, "type"),
    LogResource("/api/feed-log", logs.FEED, logs.FeedLogCreate, logs.FeedLogUpdate, logs.FeedLog, "type"),
    LogResource("/api/diaper-log", logs.DIAPER, logs.DiaperLogCreate, logs.DiaperLogUpdate, logs.DiaperLog, "type"),
    LogResource("/api/mood-log", logs.MOOD, logs.MoodLogCreate, logs.MoodLogUpdate, logs.MoodLog, "mood"),
    LogResource("/api/note", logs.NOTE, logs.NoteCreate, logs.NoteUpdate, logs.Note, "category"),
    LogResource("/api/bath-log", logs.BATH, logs.BathLogCreate, logs.BathLogUpdate, logs.BathLog),
    LogResource("/api/pump-log", logs.PUMP, logs.PumpLogCreate, logs.PumpLogUpdate, logs.PumpLog),
    LogResource("/api/play-log", logs.PLAY, logs.PlayLogCreate, logs.PlayLogUpdate, logs.PlayLog, "type"),
    LogResource(
        "/api/milestone-log",
        logs.MILESTONE,
        logs.MilestoneCreate,
        logs.MilestoneUpdate,
        logs.Milestone,
        "category",
    ),
    LogResource(
        "/api/measurement-log",
        logs.MEASUREMENT,
        logs.MeasurementCreate,
        logs.MeasurementUpdate,
        logs.Measurement,
        "type",
    ),
]


def _require_id(value: Optional[str], label: str) -> str:
    if not value:
        raise HTTPException(status_code=400, detail=f"{label} ID is required")
    return value


def _check_filter(table: logs.LogTable, param: str, value: Optional[str]) -> Optional[str]:
    if value is None or table.filter_enum is None:
        return value
    try:
        return table.filter_enum(value).value
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {param}: {value}") from exc


def _register(resource: LogResource) -> None:
    table = resource.table
    create_model = resource.create_model
    update_model = resource.update_model
    out_model = resource.out_model
    filter_param = resource.filter_param or "type"
    single = ApiResponse[out_model]
    many = ApiResponse[Union[out_model, List[out_model]]]

    @router.post(resource.path, response_model=single, name=f"create_{table.name}")
    async def create_log(payload: create_model, auth: AuthContext = Depends(require_auth)):
        values = payload.model_dump()
        baby_id = values.pop("baby_id")
        row = logs.insert_log(table, baby_id, auth.log_caretaker_id, values)
        return single(data=out_model.model_validate(row))

    @router.put(resource.path, response_model=single, name=f"update_{table.name}")
    async def update_log(
        payload: update_model,
        id: Optional[str] = Query(None),
        auth: AuthContext = Depends(require_auth),
    ):
        log_id = _require_id(id, table.label)
        row = logs.update_log(table, log_id, payload.model_dump(exclude_unset=True))
        logger.info("log updated", extra={"table": table.name, "log_id": log_id})
        return single(data=out_model.model_validate(row))

    @router.delete(resource.path, response_model=ApiResponse[dict], name=f"delete_{table.name}")
    async def delete_log(id: Optional[str] = Query(None), auth: AuthContext = Depends(require_auth)):
        logs.soft_delete_log(table, _require_id(id, table.label))
        return ApiResponse[dict]()

    @router.get(resource.path, response_model=many, name=f"get_{table.name}")
    async def get_logs(
        id: Optional[str] = Query(None),
        baby_id: Optional[str] = Query(None, alias="babyId"),
        start_date: Optional[datetime] = Query(None, alias="startDate"),
        end_date: Optional[datetime] = Query(None, alias="endDate"),
        filter_value: Optional[str] = Query(None, alias=filter_param),
        auth: AuthContext = Depends(require_auth),
    ):
        if id:
            return many(data=out_model.model_validate(logs.get_log(table, id)))
        rows = logs.list_logs(
            table,
            baby_id=baby_id,
            start=start_date,
            end=end_date,
            filter_value=_check_filter(table, filter_param, filter_value),
        )
        return many(data=[out_model.model_validate(row) for row in rows])


for _resource in RESOURCES:
    _register(_resource)


@router.get("/api/feed-log/last", response_model=ApiResponse[Optional[logs.FeedLog]])
async def last_feed(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    type: Optional[FeedType] = Query(None),
    auth: AuthContext = Depends(require_auth),
):
    """Most recent feed, optionally of one type; ``data`` is null when there is none."""
    if not baby_id:
        raise HTTPException(status_code=400, detail="Baby ID is required")
    where = {"type": type.value} if type else None
    row = logs.latest_log(logs.FEED, baby_id, where=where)
    return ApiResponse[Optional[logs.FeedLog]](data=logs.FeedLog.model_validate(row) if row else None)

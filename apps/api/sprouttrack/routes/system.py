from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException

from .. import db
from ..config import CONFIG
from ..schemas import ApiResponse, CamelModel, Unit
from ..timeutils import format_for_response, get_system_timezone, local_to_utc, now_utc, utc_to_local

router = APIRouter(tags=["system"])
logger = logging.getLogger(__name__)


class ConvertPayload(CamelModel):
    date: str
    timezone: Optional[str] = None


@router.get("/api/units", response_model=ApiResponse[List[Unit]])
async def list_units() -> ApiResponse[List[Unit]]:
    return ApiResponse[List[Unit]](data=[Unit.model_validate(row) for row in db.list_units()])


@router.get("/api/timezone", response_model=ApiResponse[Dict[str, Any]])
async def server_local_time() -> ApiResponse[Dict[str, Any]]:
    zone = get_system_timezone()
    local_time = utc_to_local(now_utc(), zone)
    return ApiResponse[Dict[str, Any]](
        data={"timezone": zone, "localTime": local_time.isoformat(timespec="seconds")}
    )


@router.post("/api/timezone", response_model=ApiResponse[Dict[str, Any]])
async def convert_to_utc(payload: ConvertPayload) -> ApiResponse[Dict[str, Any]]:
    """Interpret a datetime-local value in the given (or server) zone."""
    try:
        utc_value = local_to_utc(payload.date, payload.timezone or get_system_timezone())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse[Dict[str, Any]](data={"utcDate": format_for_response(utc_value)})


@router.get("/api/system-timezone", response_model=ApiResponse[Dict[str, Any]])
async def system_timezone() -> ApiResponse[Dict[str, Any]]:
    return ApiResponse[Dict[str, Any]](
        data={"systemTimezone": get_system_timezone(), "currentTime": format_for_response(now_utc())}
    )


@router.get("/api/changelog", response_model=ApiResponse[Dict[str, str]])
async def changelog() -> ApiResponse[Dict[str, str]]:
    path = CONFIG.resolved_changelog_path
    if not path.exists():
        raise HTTPException(status_code=404, detail="Changelog file not found")
    return ApiResponse[Dict[str, str]](data={"content": path.read_text(encoding="utf-8")})

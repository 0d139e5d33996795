from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import stats
from ..auth import AuthContext, require_auth
from ..db import get_baby
from ..schemas import ApiResponse, BabyStatus, DailyStats
from ..timeutils import day_bounds, get_zone
from .logs import RESOURCES

router = APIRouter(tags=["timeline"])
logger = logging.getLogger(__name__)

_OUT_MODELS = {resource.table.name: resource.out_model for resource in RESOURCES}


def _serialize(table_name: str, row: Optional[dict]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    model = _OUT_MODELS[table_name].model_validate(row)
    return model.model_dump(mode="json", by_alias=True)


def _require_baby(baby_id: Optional[str]) -> str:
    if not baby_id:
        raise HTTPException(status_code=400, detail="Baby ID is required")
    return baby_id


def _check_zone(tz_name: Optional[str]) -> str:
    tz_name = tz_name or "UTC"
    try:
        get_zone(tz_name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return tz_name


@router.get("/api/timeline", response_model=ApiResponse[List[Dict[str, Any]]])
async def timeline(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    limit: int = Query(stats.DEFAULT_TIMELINE_LIMIT, ge=1, le=1000),
    day: Optional[date] = Query(None, alias="date", description="Local calendar day"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    tz_name: Optional[str] = Query(None, alias="timezone"),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[List[Dict[str, Any]]]:
    """Every activity for a baby, newest first.

    ``date`` selects one local day in ``timezone``; otherwise ``startDate`` and
    ``endDate`` bound the window. Without a window the newest ``limit`` items
    are returned.
    """

    baby_id = _require_baby(baby_id)
    get_baby(baby_id)
    if day is not None:
        start_date, end_date = day_bounds(day, _check_zone(tz_name))
    entries = stats.build_timeline(baby_id, start=start_date, end=end_date, limit=limit)
    items = []
    for kind, table, row in entries:
        item = _serialize(table.name, row)
        item["kind"] = kind
        items.append(item)
    return ApiResponse[List[Dict[str, Any]]](data=items)


@router.get("/api/baby-last-activities", response_model=ApiResponse[Dict[str, Optional[Dict[str, Any]]]])
async def baby_last_activities(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[Dict[str, Optional[Dict[str, Any]]]]:
    found = stats.last_activities(_require_baby(baby_id))
    data = {
        "lastDiaper": _serialize("diaper_logs", found["last_diaper"]),
        "lastPoopDiaper": _serialize("diaper_logs", found["last_poop_diaper"]),
        "lastBath": _serialize("bath_logs", found["last_bath"]),
        "lastNote": _serialize("notes", found["last_note"]),
        "lastHeight": _serialize("measurements", found["last_height"]),
        "lastWeight": _serialize("measurements", found["last_weight"]),
        "lastHeadCircumference": _serialize("measurements", found["last_head_circumference"]),
    }
    return ApiResponse[Dict[str, Optional[Dict[str, Any]]]](data=data)


@router.get("/api/daily-stats", response_model=ApiResponse[DailyStats])
async def daily_stats(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    day: Optional[date] = Query(None, alias="date"),
    tz_name: Optional[str] = Query(None, alias="timezone"),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[DailyStats]:
    baby_id = _require_baby(baby_id)
    tz_name = _check_zone(tz_name)
    day = day or stats.local_today(tz_name)
    result = stats.daily_stats(baby_id, day, tz_name)
    logger.info("daily stats", extra={"baby_id": baby_id, "date": result["date"], "timezone": tz_name})
    return ApiResponse[DailyStats](data=DailyStats(**result))


@router.get("/api/baby-status", response_model=ApiResponse[BabyStatus])
async def baby_status(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[BabyStatus]:
    return ApiResponse[BabyStatus](data=BabyStatus(**stats.baby_status(_require_baby(baby_id))))

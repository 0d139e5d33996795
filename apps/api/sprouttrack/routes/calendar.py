from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import events
from ..auth import AuthContext, require_auth
from ..db import get_baby
from ..events import CalendarEvent, CalendarEventPayload
from ..schemas import ApiResponse, CalendarEventType
from ..timeutils import now_utc

router = APIRouter(tags=["calendar"])
logger = logging.getLogger(__name__)


def _require_id(id: Optional[str]) -> str:
    if not id:
        raise HTTPException(status_code=400, detail="Calendar event ID is required")
    return id


def _check_type(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return CalendarEventType(value).value
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid type: {value}") from exc


@router.get("/api/calendar-event", response_model=ApiResponse[Union[CalendarEvent, List[CalendarEvent]]])
async def get_calendar_events(
    id: Optional[str] = Query(None),
    baby_id: Optional[str] = Query(None, alias="babyId"),
    caretaker_id: Optional[str] = Query(None, alias="caretakerId"),
    contact_id: Optional[str] = Query(None, alias="contactId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    type: Optional[str] = Query(None),
    recurring: Optional[bool] = Query(None),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[Union[CalendarEvent, List[CalendarEvent]]]:
    """Events in start order; ``startDate`` and ``endDate`` filter only together."""
    if id:
        event = CalendarEvent.model_validate(events.get_event(id))
        return ApiResponse[Union[CalendarEvent, List[CalendarEvent]]](data=event)
    if start_date is None or end_date is None:
        start_date = end_date = None
    rows = events.list_events(
        baby_id=baby_id,
        caretaker_id=caretaker_id,
        contact_id=contact_id,
        start=start_date,
        end=end_date,
        event_type=_check_type(type),
        recurring=recurring,
    )
    return ApiResponse[Union[CalendarEvent, List[CalendarEvent]]](
        data=[CalendarEvent.model_validate(row) for row in rows]
    )


@router.post("/api/calendar-event", response_model=ApiResponse[CalendarEvent])
async def create_calendar_event(
    payload: CalendarEventPayload, auth: AuthContext = Depends(require_auth)
) -> ApiResponse[CalendarEvent]:
    row = events.create_event(payload.model_dump())
    return ApiResponse[CalendarEvent](data=CalendarEvent.model_validate(row))


@router.put("/api/calendar-event", response_model=ApiResponse[CalendarEvent])
async def update_calendar_event(
    payload: CalendarEventPayload,
    id: Optional[str] = Query(None),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[CalendarEvent]:
    event_id = _require_id(id)
    row = events.replace_event(event_id, payload.model_dump())
    logger.info("calendar event updated", extra={"event_id": event_id, "caretaker_id": auth.caretaker_id})
    return ApiResponse[CalendarEvent](data=CalendarEvent.model_validate(row))


@router.delete("/api/calendar-event", response_model=ApiResponse[dict])
async def delete_calendar_event(
    id: Optional[str] = Query(None), auth: AuthContext = Depends(require_auth)
) -> ApiResponse[dict]:
    events.soft_delete_event(_require_id(id))
    return ApiResponse[dict]()


@router.get("/api/baby-upcoming-events", response_model=ApiResponse[List[CalendarEvent]])
async def baby_upcoming_events(
    baby_id: Optional[str] = Query(None, alias="babyId"),
    limit: int = Query(events.DEFAULT_UPCOMING_LIMIT, ge=1, le=100),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[List[CalendarEvent]]:
    if not baby_id:
        raise HTTPException(status_code=400, detail="Baby ID is required")
    get_baby(baby_id)
    rows = events.upcoming_events(baby_id, now_utc(), limit=limit)
    return ApiResponse[List[CalendarEvent]](data=[CalendarEvent.model_validate(row) for row in rows])

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import db
from ..auth import AuthContext, require_admin, require_auth
from ..config import CONFIG
from ..schemas import (
    DEFAULT_ACTIVITY_ORDER,
    ActivitySettings,
    ApiResponse,
    ChangePinPayload,
    Settings,
    SettingsUpdate,
    validate_pin,
)

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)

GLOBAL_KEY = "global"


@router.get("/api/settings", response_model=ApiResponse[Settings])
async def get_settings(auth: AuthContext = Depends(require_auth)) -> ApiResponse[Settings]:
    return ApiResponse[Settings](data=Settings.model_validate(db.get_settings()))


@router.put("/api/settings", response_model=ApiResponse[Settings])
async def update_settings(
    payload: SettingsUpdate,
    auth: AuthContext = Depends(require_admin),
) -> ApiResponse[Settings]:
    changes = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
    for flag in ("enable_debug_timer", "enable_debug_timezone"):
        if flag in changes:
            changes[flag] = int(changes[flag])
    row = db.update_settings(changes)
    logger.info("settings updated", extra={"fields": sorted(changes), "caretaker_id": auth.caretaker_id})
    return ApiResponse[Settings](data=Settings.model_validate(row))


@router.post("/api/settings/change-pin", response_model=ApiResponse[dict])
async def change_pin(payload: ChangePinPayload, auth: AuthContext = Depends(require_admin)) -> ApiResponse[dict]:
    if not db.verify_system_pin(payload.current_pin):
        logger.warning("system pin change rejected", extra={"caretaker_id": auth.caretaker_id})
        raise HTTPException(status_code=400, detail="Current PIN is incorrect")
    try:
        validate_pin(payload.new_pin)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if payload.new_pin != payload.confirm_pin:
        raise HTTPException(status_code=400, detail="PINs do not match")
    db.update_settings({"security_pin": payload.new_pin})
    logger.info("system pin changed", extra={"caretaker_id": auth.caretaker_id})
    return ApiResponse[dict]()


@router.get("/api/settings/auth-life", response_model=ApiResponse[int])
async def get_auth_life() -> ApiResponse[int]:
    return ApiResponse[int](data=CONFIG.auth_life)


@router.get("/api/settings/idle-time", response_model=ApiResponse[int])
async def get_idle_time() -> ApiResponse[int]:
    return ApiResponse[int](data=CONFIG.idle_time)


@router.get("/api/activity-settings", response_model=ApiResponse[ActivitySettings])
async def get_activity_settings(
    caretaker_id: Optional[str] = Query(None, alias="caretakerId"),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[ActivitySettings]:
    stored = db.load_activity_settings()
    if caretaker_id:
        entry = stored.get(caretaker_id) or stored.get(GLOBAL_KEY)
    else:
        entry = stored.get(GLOBAL_KEY)
    entry = entry or {"order": list(DEFAULT_ACTIVITY_ORDER), "visible": list(DEFAULT_ACTIVITY_ORDER)}
    return ApiResponse[ActivitySettings](
        data=ActivitySettings(order=entry.get("order", []), visible=entry.get("visible", []), caretaker_id=caretaker_id)
    )


@router.post("/api/activity-settings", response_model=ApiResponse[ActivitySettings])
async def save_activity_settings(
    payload: ActivitySettings,
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[ActivitySettings]:
    stored = db.load_activity_settings()
    stored[payload.caretaker_id or GLOBAL_KEY] = {"order": payload.order, "visible": payload.visible}
    db.save_activity_settings(stored)
    return ApiResponse[ActivitySettings](data=payload)

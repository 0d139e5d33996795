from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from .. import db
from ..auth import (
    AUTH_COOKIE,
    LOCKOUTS,
    SYSTEM_CARETAKER_ID,
    AuthContext,
    client_ip,
    create_token,
    require_auth,
    revoke_token,
)
from ..config import CONFIG
from ..schemas import ApiResponse, LockoutStatus, LoginPayload, LoginResult, SessionInfo

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _lockout_message(remaining_ms: int) -> str:
    minutes = max(1, -(-remaining_ms // 60_000))
    return f"Too many failed attempts. Please try again in {minutes} minute{'s' if minutes != 1 else ''}."


def _authenticate(payload: LoginPayload) -> dict | None:
    if db.count_caretakers() == 0:
        if db.verify_system_pin(payload.security_pin):
            return {
                "id": SYSTEM_CARETAKER_ID,
                "name": "System Administrator",
                "type": "admin",
                "role": "ADMIN",
            }
        return None
    if not payload.login_id:
        return None
    return db.authenticate_caretaker(payload.login_id, payload.security_pin)


@router.post("", response_model=ApiResponse[LoginResult])
async def login(payload: LoginPayload, request: Request, response: Response) -> ApiResponse[LoginResult]:
    ip = client_ip(request)
    remaining = LOCKOUTS.remaining_ms(ip)
    if remaining:
        logger.warning("login attempt while locked", extra={"ip": ip})
        raise HTTPException(status_code=429, detail=_lockout_message(remaining))

    if not payload.security_pin:
        raise HTTPException(status_code=400, detail="Security PIN is required")

    caretaker = _authenticate(payload)
    if caretaker is None:
        LOCKOUTS.record_failure(ip)
        logger.warning("login failed", extra={"ip": ip, "login_id": payload.login_id})
        raise HTTPException(status_code=401, detail="Invalid credentials")

    LOCKOUTS.reset(ip)
    issued = create_token(caretaker["id"], caretaker["name"], caretaker.get("role") or "USER")
    response.set_cookie(
        AUTH_COOKIE,
        issued["token"],
        httponly=True,
        secure=CONFIG.cookie_secure,
        samesite="strict",
        max_age=CONFIG.auth_life,
        path="/",
    )
    logger.info("login succeeded", extra={"caretaker_id": caretaker["id"]})
    return ApiResponse[LoginResult](
        data=LoginResult(
            id=caretaker["id"],
            name=caretaker["name"],
            type=caretaker.get("type"),
            role=caretaker.get("role") or "USER",
            token=issued["token"],
            expires_at=datetime.fromtimestamp(issued["claims"]["exp"], tz=timezone.utc),
        )
    )


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(response: Response, auth: AuthContext = Depends(require_auth)) -> ApiResponse[dict]:
    revoke_token(auth.claims)
    response.delete_cookie(AUTH_COOKIE, path="/")
    logger.info("logout", extra={"caretaker_id": auth.caretaker_id})
    return ApiResponse[dict]()


@router.get("/caretaker-exists", response_model=ApiResponse[dict])
async def caretaker_exists() -> ApiResponse[dict]:
    return ApiResponse[dict](data={"exists": db.count_caretakers() > 0})


@router.get("/ip-lockout", response_model=ApiResponse[LockoutStatus])
async def check_lockout(request: Request) -> ApiResponse[LockoutStatus]:
    remaining = LOCKOUTS.remaining_ms(client_ip(request))
    return ApiResponse[LockoutStatus](data=LockoutStatus(locked=remaining > 0, remaining_time=remaining))


@router.post("/ip-lockout", response_model=ApiResponse[LockoutStatus])
async def record_failed_attempt(request: Request) -> ApiResponse[LockoutStatus]:
    ip = client_ip(request)
    LOCKOUTS.record_failure(ip)
    remaining = LOCKOUTS.remaining_ms(ip)
    return ApiResponse[LockoutStatus](data=LockoutStatus(locked=remaining > 0, remaining_time=remaining))


@router.delete("/ip-lockout", response_model=ApiResponse[LockoutStatus])
async def reset_lockout(request: Request) -> ApiResponse[LockoutStatus]:
    LOCKOUTS.reset(client_ip(request))
    return ApiResponse[LockoutStatus](data=LockoutStatus(locked=False))


@router.get("/session", response_model=ApiResponse[SessionInfo])
async def session_info(auth: AuthContext = Depends(require_auth)) -> ApiResponse[SessionInfo]:
    """Decoded token for the debug session timer."""
    claims = auth.claims
    expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
    remaining = int((expires_at - datetime.now(tz=timezone.utc)).total_seconds())
    return ApiResponse[SessionInfo](
        data=SessionInfo(
            caretaker_id=auth.caretaker_id,
            name=auth.name,
            role=auth.role,
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=expires_at,
            seconds_remaining=max(remaining, 0),
            claims=claims,
        )
    )

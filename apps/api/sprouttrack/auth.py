"""Token issuing, login lockout tracking and the auth dependencies."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Set
from uuid import uuid4

import jwt
from fastapi import Cookie, Depends, Header, HTTPException, Request

from . import db
from .config import CONFIG

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
AUTH_COOKIE = "authToken"
SYSTEM_CARETAKER_ID = "system"
MAX_FAILED_ATTEMPTS = 3
LOCKOUT_SECONDS = 5 * 60


@dataclass
class AuthContext:
    caretaker_id: str
    name: Optional[str]
    role: str
    token: str
    claims: Dict[str, Any]

    @property
    def is_system(self) -> bool:
        return self.caretaker_id == SYSTEM_CARETAKER_ID

    @property
    def is_admin(self) -> bool:
        return self.is_system or self.role == "ADMIN"

    @property
    def log_caretaker_id(self) -> Optional[str]:
        """Caretaker to stamp on new logs; the system account has no row."""
        return None if self.is_system else self.caretaker_id


def create_token(caretaker_id: str, name: Optional[str], role: str, *, now: Optional[float] = None) -> Dict[str, Any]:
    issued_at = int(now if now is not None else time.time())
    claims = {
        "sub": caretaker_id,
        "name": name,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + CONFIG.auth_life,
        "jti": str(uuid4()),
    }
    token = jwt.encode(claims, CONFIG.jwt_secret, algorithm=ALGORITHM)
    return {"token": token, "claims": claims}


_revoked: Set[str] = set()
_revoked_lock = threading.Lock()


def revoke_token(claims: Dict[str, Any]) -> None:
    jti = claims.get("jti")
    if jti:
        with _revoked_lock:
            _revoked.add(jti)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        claims = jwt.decode(token, CONFIG.jwt_secret, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=401, detail="Session expired. Please log in again.") from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid or expired token.") from exc
    with _revoked_lock:
        if claims.get("jti") in _revoked:
            raise HTTPException(status_code=401, detail="Invalid or expired token.")
    return claims


@dataclass
class _Attempts:
    count: int = 0
    locked_until: float = 0.0


@dataclass
class LockoutTracker:
    """Failed login attempts per client IP, kept in process memory."""

    max_attempts: int = MAX_FAILED_ATTEMPTS
    lockout_seconds: int = LOCKOUT_SECONDS
    clock: Callable[[], float] = time.time
    _entries: Dict[str, _Attempts] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def remaining_ms(self, ip: str) -> int:
        with self._lock:
            entry = self._entries.get(ip)
            if entry is None or not entry.locked_until:
                return 0
            remaining = entry.locked_until - self.clock()
            if remaining <= 0:
                self._entries.pop(ip, None)
                return 0
            return int(remaining * 1000)

    def is_locked(self, ip: str) -> bool:
        return self.remaining_ms(ip) > 0

    def record_failure(self, ip: str) -> None:
        with self._lock:
            entry = self._entries.setdefault(ip, _Attempts())
            if entry.locked_until > self.clock():
                return
            entry.locked_until = 0.0
            entry.count += 1
            if entry.count >= self.max_attempts:
                logger.warning("login locked for ip", extra={"ip": ip, "attempts": entry.count})
                entry.locked_until = self.clock() + self.lockout_seconds
                entry.count = 0

    def reset(self, ip: Optional[str] = None) -> None:
        with self._lock:
            if ip is None:
                self._entries.clear()
            else:
                self._entries.pop(ip, None)


LOCKOUTS = LockoutTracker()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization token.")
    return parts[1]


async def require_auth(
    authorization: Optional[str] = Header(None),
    auth_cookie: Optional[str] = Cookie(None, alias=AUTH_COOKIE),
) -> AuthContext:
    token = _bearer_token(authorization) or auth_cookie
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required.")
    claims = decode_token(token)
    caretaker_id = str(claims.get("sub"))
    if caretaker_id != SYSTEM_CARETAKER_ID and not db.caretaker_is_active(caretaker_id):
        logger.warning("token for removed caretaker", extra={"caretaker_id": caretaker_id})
        raise HTTPException(status_code=401, detail="Session is no longer valid. Please log in again.")
    return AuthContext(
        caretaker_id=caretaker_id,
        name=claims.get("name"),
        role=str(claims.get("role") or "USER"),
        token=token,
        claims=claims,
    )


async def require_admin(auth: AuthContext = Depends(require_auth)) -> AuthContext:
    if not auth.is_admin:
        logger.warning("admin access denied", extra={"caretaker_id": auth.caretaker_id})
        raise HTTPException(status_code=403, detail="Admin access required.")
    return auth

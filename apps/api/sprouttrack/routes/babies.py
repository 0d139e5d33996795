from __future__ import annotations

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import db
from ..auth import AuthContext, require_auth
from ..schemas import ApiResponse, Baby, BabyCreate, BabyUpdate

router = APIRouter(prefix="/api/baby", tags=["babies"])
logger = logging.getLogger(__name__)


@router.post("", response_model=ApiResponse[Baby])
async def create_baby(payload: BabyCreate, auth: AuthContext = Depends(require_auth)) -> ApiResponse[Baby]:
    row = db.create_baby(payload.model_dump())
    logger.info("baby created", extra={"baby_id": row["id"], "caretaker_id": auth.caretaker_id})
    return ApiResponse[Baby](data=Baby.model_validate(row))


@router.put("", response_model=ApiResponse[Baby])
async def update_baby(payload: BabyUpdate, auth: AuthContext = Depends(require_auth)) -> ApiResponse[Baby]:
    changes = payload.model_dump(exclude_unset=True, exclude={"id"})
    row = db.update_baby(payload.id, changes)
    return ApiResponse[Baby](data=Baby.model_validate(row))


@router.delete("", response_model=ApiResponse[dict])
async def delete_baby(
    id: Optional[str] = Query(None, description="Baby identifier"),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[dict]:
    if not id:
        raise HTTPException(status_code=400, detail="Baby ID is required")
    db.soft_delete_baby(id)
    logger.info("baby deleted", extra={"baby_id": id, "caretaker_id": auth.caretaker_id})
    return ApiResponse[dict]()


@router.get("", response_model=ApiResponse[Union[Baby, List[Baby]]])
async def get_babies(
    id: Optional[str] = Query(None, description="Baby identifier"),
    active_only: bool = Query(False, alias="activeOnly"),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[Union[Baby, List[Baby]]]:
    if id:
        return ApiResponse[Union[Baby, List[Baby]]](data=Baby.model_validate(db.get_baby(id)))
    rows = db.list_babies(include_inactive=not active_only)
    return ApiResponse[Union[Baby, List[Baby]]](data=[Baby.model_validate(row) for row in rows])


@router.get("/{baby_id}", response_model=ApiResponse[Baby])
async def get_baby(baby_id: str, auth: AuthContext = Depends(require_auth)) -> ApiResponse[Baby]:
    return ApiResponse[Baby](data=Baby.model_validate(db.get_baby(baby_id)))

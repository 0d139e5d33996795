from __future__ import annotations

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import db
from ..auth import AuthContext, require_admin, require_auth
from ..schemas import ApiResponse, Caretaker, CaretakerCreate, CaretakerUpdate

router = APIRouter(prefix="/api/caretaker", tags=["caretakers"])
logger = logging.getLogger(__name__)


@router.post("", response_model=ApiResponse[Caretaker])
async def create_caretaker(
    payload: CaretakerCreate,
    auth: AuthContext = Depends(require_admin),
) -> ApiResponse[Caretaker]:
    row = db.create_caretaker(payload.model_dump())
    logger.info("caretaker created", extra={"caretaker_id": row["id"], "by": auth.caretaker_id})
    return ApiResponse[Caretaker](data=Caretaker.model_validate(row))


@router.put("", response_model=ApiResponse[Caretaker])
async def update_caretaker(
    payload: CaretakerUpdate,
    auth: AuthContext = Depends(require_admin),
) -> ApiResponse[Caretaker]:
    changes = payload.model_dump(exclude_unset=True, exclude={"id"})
    row = db.update_caretaker(payload.id, changes)
    return ApiResponse[Caretaker](data=Caretaker.model_validate(row))


@router.delete("", response_model=ApiResponse[dict])
async def delete_caretaker(
    id: Optional[str] = Query(None, description="Caretaker identifier"),
    auth: AuthContext = Depends(require_admin),
) -> ApiResponse[dict]:
    if not id:
        raise HTTPException(status_code=400, detail="Caretaker ID is required")
    if id == auth.caretaker_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    db.soft_delete_caretaker(id)
    logger.info("caretaker deleted", extra={"caretaker_id": id, "by": auth.caretaker_id})
    return ApiResponse[dict]()


@router.get("", response_model=ApiResponse[Union[Caretaker, List[Caretaker]]])
async def get_caretakers(
    id: Optional[str] = Query(None, description="Caretaker identifier"),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[Union[Caretaker, List[Caretaker]]]:
    if id:
        return ApiResponse[Union[Caretaker, List[Caretaker]]](data=Caretaker.model_validate(db.get_caretaker(id)))
    rows = db.list_caretakers()
    return ApiResponse[Union[Caretaker, List[Caretaker]]](data=[Caretaker.model_validate(row) for row in rows])

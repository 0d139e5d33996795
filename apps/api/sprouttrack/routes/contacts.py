from __future__ import annotations

import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import contacts
from ..auth import AuthContext, require_auth
from ..contacts import Contact, ContactPayload
from ..schemas import ApiResponse

router = APIRouter(prefix="/api/contact", tags=["contacts"])
logger = logging.getLogger(__name__)


def _require_id(id: Optional[str]) -> str:
    if not id:
        raise HTTPException(status_code=400, detail="Contact ID is required")
    return id


@router.get("", response_model=ApiResponse[Union[Contact, List[Contact]]])
async def get_contacts(
    id: Optional[str] = Query(None, description="Contact identifier"),
    role: Optional[str] = Query(None),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[Union[Contact, List[Contact]]]:
    if id:
        return ApiResponse[Union[Contact, List[Contact]]](data=Contact.model_validate(contacts.get_contact(id)))
    rows = contacts.list_contacts(role=role)
    return ApiResponse[Union[Contact, List[Contact]]](data=[Contact.model_validate(row) for row in rows])


@router.post("", response_model=ApiResponse[Contact])
async def create_contact(payload: ContactPayload, auth: AuthContext = Depends(require_auth)) -> ApiResponse[Contact]:
    row = contacts.create_contact(payload.model_dump())
    return ApiResponse[Contact](data=Contact.model_validate(row))


@router.put("", response_model=ApiResponse[Contact])
async def update_contact(
    payload: ContactPayload,
    id: Optional[str] = Query(None),
    auth: AuthContext = Depends(require_auth),
) -> ApiResponse[Contact]:
    contact_id = _require_id(id)
    row = contacts.replace_contact(contact_id, payload.model_dump())
    logger.info("contact updated", extra={"contact_id": contact_id, "caretaker_id": auth.caretaker_id})
    return ApiResponse[Contact](data=Contact.model_validate(row))


@router.delete("", response_model=ApiResponse[dict])
async def delete_contact(id: Optional[str] = Query(None), auth: AuthContext = Depends(require_auth)) -> ApiResponse[dict]:
    contacts.soft_delete_contact(_require_id(id))
    return ApiResponse[dict]()

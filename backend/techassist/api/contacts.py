"""Contact form endpoints."""

import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from techassist.crud.contact import contact_crud
from techassist.database import get_database
from techassist.models import ContactStatus
from techassist.schemas.contact import (
    ContactCreateRequest,
    ContactEnvelope,
    ContactListResponse,
    ContactResponse,
    ContactStatusUpdateRequest,
    MessageResponse,
    Pagination,
)
from techassist.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")


@router.post("", response_model=ContactEnvelope, status_code=status.HTTP_201_CREATED)
async def create_contact(
    request: ContactCreateRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Store a contact form submission."""
    document = await contact_crud.create(db, request.model_dump())
    logger.info("Contact created", contact_id=str(document["_id"]))
    return ContactEnvelope(
        message="Contact sent successfully",
        data=ContactResponse.from_document(document),
    )


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: Optional[ContactStatus] = Query(None, alias="status"),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """List contacts, newest first."""
    items, total = await contact_crud.list_paginated(
        db, page=page, page_size=page_size, status=status_filter
    )
    return ContactListResponse(
        data=[ContactResponse.from_document(d) for d in items],
        pagination=Pagination(
            page=page,
            page_size=page_size,
            total=total,
            pages=math.ceil(total / page_size) if total else 0,
        ),
    )


@router.get("/{contact_id}", response_model=ContactEnvelope)
async def get_contact(contact_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    """Get a single contact."""
    document = await contact_crud.get_by_id(db, contact_id)
    if not document:
        raise _not_found()
    return ContactEnvelope(data=ContactResponse.from_document(document))


@router.put("/{contact_id}/status", response_model=ContactEnvelope)
async def update_contact_status(
    contact_id: str,
    request: ContactStatusUpdateRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Move a contact to another follow-up status."""
    document = await contact_crud.update_status(db, contact_id, request.status)
    if not document:
        raise _not_found()
    logger.info("Contact status updated", contact_id=contact_id, status=request.status.value)
    return ContactEnvelope(
        message="Status updated successfully",
        data=ContactResponse.from_document(document),
    )


@router.delete("/{contact_id}", response_model=MessageResponse)
async def delete_contact(contact_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    """Delete a contact."""
    deleted = await contact_crud.delete(db, contact_id)
    if not deleted:
        raise _not_found()
    logger.info("Contact deleted", contact_id=contact_id)
    return MessageResponse(message="Contact deleted successfully")

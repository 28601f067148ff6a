"""Contact-related schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from techassist.models import ContactStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class ContactCreateRequest(BaseModel):
    """Request body submitted by the contact form."""

    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=254, pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(default=None, max_length=30)
    company: Optional[str] = Field(default=None, max_length=120)
    subject: str = Field(..., min_length=3, max_length=200)
    message: str = Field(..., min_length=10, max_length=5000)

    @field_validator("name", "subject", "message", "phone", "company", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class ContactStatusUpdateRequest(BaseModel):
    """Request body for changing a contact's status."""

    status: ContactStatus


class ContactResponse(BaseModel):
    """A stored contact."""

    id: str
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    subject: str
    message: str
    status: ContactStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ContactResponse":
        data = {k: v for k, v in document.items() if k != "_id"}
        return cls(id=str(document["_id"]), **data)


class ContactEnvelope(BaseModel):
    """Single-contact response."""

    success: bool = True
    message: Optional[str] = None
    data: ContactResponse


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    pages: int


class ContactListResponse(BaseModel):
    """Paginated list of contacts."""

    success: bool = True
    data: List[ContactResponse]
    pagination: Pagination


class MessageResponse(BaseModel):
    success: bool = True
    message: str

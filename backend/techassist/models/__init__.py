"""
Document helpers and enums for the contacts collection.
"""
from techassist.models.base import parse_object_id, utc_now, with_timestamps
from techassist.models.enums import ContactStatus

CONTACTS_COLLECTION = "contacts"

__all__ = [
    "CONTACTS_COLLECTION",
    "ContactStatus",
    "parse_object_id",
    "utc_now",
    "with_timestamps",
]

"""
Enum types stored on contact documents.
"""
from enum import Enum


class ContactStatus(str, Enum):
    """Follow-up state of a contact request."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"

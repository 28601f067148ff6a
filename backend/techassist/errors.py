"""
Database error taxonomy.

Every failure the Connector can produce is one of a closed set of kinds,
so HTTP handlers can map them to responses without inspecting driver
exceptions.
"""
from enum import Enum
from typing import Any, Dict, Optional


class DatabaseErrorKind(str, Enum):
    """Kinds of database failure surfaced to callers."""
    CONFIGURATION = "configuration"
    CONNECTION = "connection"
    PING = "ping"
    STATS = "stats"


class DatabaseError(Exception):
    """Base class for typed database failures."""

    kind: DatabaseErrorKind = DatabaseErrorKind.CONNECTION

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.detail:
            payload["detail"] = self.detail
        return payload


class ConfigurationError(DatabaseError):
    """Connection settings are missing or malformed. Never retried automatically."""
    kind = DatabaseErrorKind.CONFIGURATION


class DatabaseConnectionError(DatabaseError):
    """Network, authentication or timeout failure while connecting."""
    kind = DatabaseErrorKind.CONNECTION


class PingError(DatabaseError):
    """The live session did not answer an administrative ping."""
    kind = DatabaseErrorKind.PING


class StatsError(DatabaseError):
    """Database statistics could not be fetched."""
    kind = DatabaseErrorKind.STATS

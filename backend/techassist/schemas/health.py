"""Health and diagnostics response schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class DatabaseStatus(BaseModel):
    """Database section of a health report."""

    status: Literal["connected", "error"]
    name: Optional[str] = None
    host: Optional[str] = None
    message: Optional[str] = None


class HealthReport(BaseModel):
    """Liveness report, optionally with database reachability."""

    success: bool = True
    message: str
    timestamp: datetime
    environment: str
    database: Optional[DatabaseStatus] = None


class DatabaseStats(BaseModel):
    """Aggregate store statistics from ``dbStats``."""

    status: Literal["connected"] = "connected"
    name: str
    host: Optional[str] = None
    collections: int = 0
    objects: int = 0
    data_size: int = 0
    storage_size: int = 0
    indexes: int = 0


class DiagnosticsReport(BaseModel):
    """Successful database diagnostics."""

    success: bool = True
    message: str
    timestamp: datetime
    database: DatabaseStats


class DiagnosticsFailure(BaseModel):
    """Failed database diagnostics."""

    success: bool = False
    message: str
    error: str
    kind: str
    timestamp: datetime

"""
Request gate: make sure a database connection is ready before a request
reaches routes that need it.

Lightweight endpoints (liveness, metadata, docs, CORS preflight) are exempt
and never touch the Connector, so they keep answering while MongoDB is down.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Sequence

from fastapi import status

from techassist.database import Connector
from techassist.errors import DatabaseError
from techassist.utils.logging import get_logger

logger = get_logger(__name__)

READ_METHODS: FrozenSet[str] = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class ExemptionRule:
    """Requests to ``path`` with one of ``methods`` skip the connection check."""
    path: str
    methods: FrozenSet[str] = READ_METHODS

    def matches(self, path: str, method: str) -> bool:
        return path == self.path and method in self.methods


DEFAULT_EXEMPTIONS: Sequence[ExemptionRule] = (
    ExemptionRule("/"),
    ExemptionRule("/api/health"),
    # These two handle database failures themselves and report them
    ExemptionRule("/api/db-test", frozenset({"GET"})),
    ExemptionRule("/api/debug", frozenset({"GET"})),
    ExemptionRule("/docs"),
    ExemptionRule("/redoc"),
    ExemptionRule("/openapi.json"),
)


@dataclass
class GateDecision:
    """Outcome of admitting a request."""
    admitted: bool
    status_code: int = status.HTTP_200_OK
    body: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def proceed(cls) -> "GateDecision":
        return cls(admitted=True)

    @classmethod
    def reject(cls, body: Dict[str, Any]) -> "GateDecision":
        return cls(
            admitted=False,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            body=body,
        )


def _normalize(path: str) -> str:
    if len(path) > 1:
        return path.rstrip("/") or "/"
    return path


class RequestGate:
    """Admits requests once the Connector can produce a ready handle."""

    def __init__(
        self,
        connector: Connector,
        exemptions: Sequence[ExemptionRule] = DEFAULT_EXEMPTIONS,
        expose_errors: bool = False,
    ):
        self.connector = connector
        self.exemptions = tuple(exemptions)
        self.expose_errors = expose_errors

    def is_exempt(self, path: str, method: str) -> bool:
        method = method.upper()
        if method == "OPTIONS":
            return True
        path = _normalize(path)
        return any(rule.matches(path, method) for rule in self.exemptions)

    async def admit(self, path: str, method: str) -> GateDecision:
        if self.is_exempt(path, method):
            return GateDecision.proceed()

        try:
            await self.connector.ensure_connected()
        except DatabaseError as exc:
            logger.warning(
                "Request rejected, database unavailable",
                path=path,
                method=method,
                kind=exc.kind.value,
                error=exc.message,
            )
            return GateDecision.reject(self._unavailable_body(exc))

        return GateDecision.proceed()

    def _unavailable_body(self, exc: DatabaseError) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": False,
            "message": "Database connection error",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self.expose_errors:
            body["error"] = exc.message
        return body


"""
Health reporting.

The shallow report never touches the database, so it works as a liveness
probe even when MongoDB is unreachable. Deep reports and diagnostics go
through the Connector and turn every failure into a structured body with
a non-2xx status.
"""
from typing import Tuple, Union

from fastapi import status

from techassist.database import Connector
from techassist.errors import DatabaseError
from techassist.models import utc_now
from techassist.schemas.health import (
    DatabaseStats,
    DatabaseStatus,
    DiagnosticsFailure,
    DiagnosticsReport,
    HealthReport,
)
from techassist.utils.logging import get_logger

logger = get_logger(__name__)


class HealthReporter:
    """Builds liveness, readiness and diagnostics reports."""

    def __init__(self, connector: Connector, environment: str):
        self.connector = connector
        self.environment = environment

    async def report(self, deep: bool = False) -> Tuple[HealthReport, int]:
        """
        Return the health report and the HTTP status to send with it.

        With ``deep`` the database is connected and pinged; a failure makes
        the report unsuccessful and the status 503.
        """
        report = HealthReport(
            success=True,
            message="API is running",
            timestamp=utc_now(),
            environment=self.environment,
        )
        if not deep:
            return report, status.HTTP_200_OK

        try:
            handle = await self.connector.ensure_connected()
            await self.connector.ping(handle)
        except DatabaseError as exc:
            logger.warning(
                "Deep health check failed", kind=exc.kind.value, error=exc.message
            )
            report.success = False
            report.message = "Database unavailable"
            report.database = DatabaseStatus(status="error", message=exc.message)
            return report, status.HTTP_503_SERVICE_UNAVAILABLE

        report.database = DatabaseStatus(
            status="connected", name=handle.name, host=handle.host
        )
        return report, status.HTTP_200_OK

    async def diagnostics(
        self,
    ) -> Tuple[Union[DiagnosticsReport, DiagnosticsFailure], int]:
        """Connect, ping and fetch ``dbStats``. Any failure yields a 500 report."""
        try:
            handle = await self.connector.ensure_connected()
            await self.connector.ping(handle)
            stats = await self.connector.stats(handle)
        except DatabaseError as exc:
            logger.error(
                "Database diagnostics failed", kind=exc.kind.value, error=exc.message
            )
            failure = DiagnosticsFailure(
                message="Database test failed",
                error=exc.message,
                kind=exc.kind.value,
                timestamp=utc_now(),
            )
            return failure, status.HTTP_500_INTERNAL_SERVER_ERROR

        return (
            DiagnosticsReport(
                message="Database connection OK",
                timestamp=utc_now(),
                database=DatabaseStats(
                    name=handle.name,
                    host=handle.host,
                    collections=int(stats.get("collections", 0)),
                    objects=int(stats.get("objects", 0)),
                    data_size=int(stats.get("dataSize", 0)),
                    storage_size=int(stats.get("storageSize", 0)),
                    indexes=int(stats.get("indexes", 0)),
                ),
            ),
            status.HTTP_200_OK,
        )

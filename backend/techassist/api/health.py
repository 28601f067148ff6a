"""Health check and database diagnostics endpoints."""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from techassist.services.health_service import HealthReporter

router = APIRouter()


def get_health_reporter(request: Request) -> HealthReporter:
    return request.app.state.health_reporter


@router.get("/health")
async def health_check(
    db: bool = Query(False, description="Also connect to and ping MongoDB"),
    reporter: HealthReporter = Depends(get_health_reporter),
):
    """
    Health check endpoint.

    Always answers 200 for the shallow check. With ``?db=true`` the database
    is pinged and a failure answers 503.
    """
    report, status_code = await reporter.report(deep=db)
    return JSONResponse(
        status_code=status_code,
        content=report.model_dump(mode="json", exclude_none=True),
    )


@router.get("/db-test")
async def database_test(reporter: HealthReporter = Depends(get_health_reporter)):
    """Connect, ping and return store statistics. Answers 500 on any failure."""
    result, status_code = await reporter.diagnostics()
    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json", exclude_none=True),
    )

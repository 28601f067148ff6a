"""Deployment debug endpoint, available outside production only."""
from fastapi import APIRouter, Depends, HTTPException, Request, status

from techassist.config import Settings
from techassist.database import Connector, get_connector, host_from_uri
from techassist.models import utc_now

router = APIRouter()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.get("/debug")
async def debug_info(
    settings: Settings = Depends(get_app_settings),
    connector: Connector = Depends(get_connector),
):
    """
    Report environment and connection configuration.

    The connection string itself is never returned, only whether it is set,
    its length and its host.
    """
    if settings.is_production:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    uri = settings.mongodb_uri
    last_error = connector.state.last_error
    return {
        "success": True,
        "message": "Debug info",
        "environment": {
            "NODE_ENV": settings.environment,
            "VERCEL": settings.vercel,
            "VERCEL_ENV": settings.vercel_env,
            "VERCEL_REGION": settings.vercel_region,
        },
        "mongodb": {
            "has_uri": bool(uri),
            "uri_length": len(uri) if uri else 0,
            "host": host_from_uri(uri),
            "database": settings.mongodb_db_name,
            "status": connector.status.value,
            "attempts": connector.state.attempts,
            "last_error": last_error.to_dict() if last_error else None,
        },
        "timestamp": utc_now().isoformat(),
    }

"""Main API router aggregating all sub-routers."""
from fastapi import APIRouter

from techassist.api.contacts import router as contacts_router
from techassist.api.debug import router as debug_router
from techassist.api.health import router as health_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(debug_router, tags=["Debug"], include_in_schema=False)
api_router.include_router(contacts_router, prefix="/contacts", tags=["Contacts"])

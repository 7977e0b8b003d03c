"""Main API router aggregating all v1 endpoints."""

from fastapi import APIRouter

from crmhub.api.v1 import imports

api_router = APIRouter()

# Include sub-routers
api_router.include_router(imports.router, prefix="/imports", tags=["Imports"])

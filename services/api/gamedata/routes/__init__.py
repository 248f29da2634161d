"""API routes."""

from fastapi import APIRouter

from gamedata.routes import catalog, datasets
from gamedata.schemas import ERROR_RESPONSES

api_router = APIRouter()

# Dataset cache and analytics
api_router.include_router(datasets.router, prefix="/v1/datasets", tags=["datasets"], responses=ERROR_RESPONSES)

# Catalog lookups (tags, platforms)
api_router.include_router(catalog.router, prefix="/v1/catalog", tags=["catalog"], responses=ERROR_RESPONSES)

"""
PURPOSE: API router initialization and exports for EA Builder.

This module aggregates the API routers into a single api_router that is
included in the main FastAPI application.
"""

from fastapi import APIRouter

from ea_builder.api.routes_converter import router as converter_router

# Create the main API router
api_router = APIRouter(prefix="/api", tags=["api"])

# Include all sub-routers
api_router.include_router(converter_router, tags=["converter"])

__all__ = ["api_router"]

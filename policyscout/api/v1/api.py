"""
Main API router for v1
"""

from fastapi import APIRouter

from policyscout.api.v1.endpoints import discovery

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(discovery.router, prefix="/discovery", tags=["discovery"])

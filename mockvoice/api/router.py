"""
Main API router for MockVoice

Aggregates all API routes and provides the main application router.
"""

from fastapi import APIRouter

from mockvoice.api.endpoints import session

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(
    session.router,
    prefix="/session",
    tags=["Session"]
)

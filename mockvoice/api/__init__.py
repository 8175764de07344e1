"""
API layer for MockVoice

Contains FastAPI routers for:
- Session control (start, done, end, status)
- WebSocket event streaming
"""

from mockvoice.api.router import api_router

__all__ = ["api_router"]

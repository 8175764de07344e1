"""
API endpoint modules for MockVoice
"""

from mockvoice.api.endpoints import session

__all__ = ["session"]

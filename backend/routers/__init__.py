"""
API routers for the Briefcast backend.
"""

from .episodes import router as episodes_router

__all__ = [
    'episodes_router'
]

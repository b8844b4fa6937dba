"""Server Routes Package

Aggregates route handlers for inclusion in the FastAPI application.
"""

from .agent import router as agent_router
from .oauth import router as oauth_router

__all__ = ["agent_router", "oauth_router"]

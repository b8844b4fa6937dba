"""Burnout Guard HTTP server (FastAPI)"""

from burnout_guard.server.app import create_app, lifespan

__all__ = ["create_app", "lifespan"]

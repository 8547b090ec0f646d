"""API module."""

from .app import create_fastapi_app, get_session

__all__ = ["create_fastapi_app", "get_session"]

"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app import ChatSession
from .routes import control, events, rooms


# Session used when none is passed to create_fastapi_app
_session: ChatSession | None = None


def get_session() -> ChatSession:
    """Get the default session instance."""
    global _session
    if not _session:
        _session = ChatSession()
    return _session


def create_fastapi_app(session: ChatSession | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    session = session or get_session()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start the session on startup, stop it on shutdown."""
        await session.start()
        yield
        await session.stop()

    fastapi_app = FastAPI(
        title="Chat Sync API",
        description="Local room and message state for the presentation layer",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:8081", "http://localhost:19006"],  # Expo dev
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fastapi_app.include_router(rooms.create_rooms_router(session))
    fastapi_app.include_router(events.create_events_router(session))
    fastapi_app.include_router(control.create_control_router(session))

    return fastapi_app

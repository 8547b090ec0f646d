"""Real-time event intake routes."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import ChatSession
from ...event_bus import make_event
from ...models import EventKind


class EventRequest(BaseModel):
    """Request model for a real-time event forwarded by the socket bridge."""

    kind: str
    payload: dict[str, Any]


class EventResponse(BaseModel):
    """Response model for an accepted event."""

    id: str
    kind: str


def create_events_router(session: ChatSession) -> APIRouter:
    """Create events router."""
    router = APIRouter(prefix="/api", tags=["events"])

    @router.post("/events", response_model=EventResponse)
    async def publish_event(request: EventRequest) -> dict:
        """Publish a real-time event to the session's event bus."""
        try:
            kind = EventKind(request.kind)
        except ValueError:
            raise HTTPException(
                status_code=400, detail=f"Unknown event kind: {request.kind}"
            )

        event = make_event(kind, request.payload)
        await session.event_bus.publish(event)
        return {"id": event.id, "kind": event.kind.value}

    return router

"""Room and message API routes."""

from typing import Any

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException

from ...app import ChatSession
from ...models.codec import message_to_dict, room_to_dict


class MarkReadRequest(BaseModel):
    """Request model for marking messages read."""

    message_ids: list[str] = Field(min_length=1)


class MutationResponse(BaseModel):
    """Response model for store mutations."""

    result: str


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


def create_rooms_router(session: ChatSession) -> APIRouter:
    """Create rooms router."""
    router = APIRouter(prefix="/api/rooms", tags=["rooms"])

    @router.get("", response_model=list[dict[str, Any]])
    async def list_rooms() -> list[dict]:
        """Current room list in store order."""
        return [room_to_dict(room) for room in session.store.rooms]

    @router.get("/{room_id}", response_model=dict[str, Any])
    async def get_room(room_id: str) -> dict:
        """A single room."""
        room = session.store.get_room(room_id)
        if room is None:
            raise HTTPException(status_code=404, detail="Room not found")
        return room_to_dict(room)

    @router.get("/{room_id}/messages", response_model=list[dict[str, Any]])
    async def list_messages(room_id: str) -> list[dict]:
        """Messages of a room, oldest first."""
        return [message_to_dict(m) for m in session.store.get_messages(room_id)]

    @router.post("/{room_id}/open", response_model=StatusResponse)
    async def open_room(room_id: str) -> dict:
        """Load a room's messages from the backend."""
        if not await session.coordinator.open_room(room_id):
            raise HTTPException(status_code=502, detail="Message fetch failed")
        return {"status": "ok"}

    @router.post("/{room_id}/read", response_model=MutationResponse)
    async def mark_read(room_id: str, request: MarkReadRequest) -> dict:
        """Mark messages read for the current user."""
        try:
            result = await session.coordinator.mark_read(room_id, request.message_ids)
        except RuntimeError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"result": result.value}

    @router.delete("/{room_id}", response_model=StatusResponse)
    async def delete_room(room_id: str) -> dict:
        """Delete a room on the server and locally."""
        if not session.store.has_room(room_id):
            raise HTTPException(status_code=404, detail="Room not found")
        if not await session.coordinator.delete_room(room_id):
            raise HTTPException(status_code=502, detail="Room delete failed")
        return {"status": "ok"}

    return router

"""Control API routes."""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ...app import ChatSession


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


def create_control_router(session: ChatSession) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/refresh", response_model=StatusResponse)
    async def refresh(force: bool = Query(False, description="Replace instead of merge")) -> dict:
        """Fetch the room list from the backend."""
        coordinator = session.coordinator
        ok = await (coordinator.force_refresh() if force else coordinator.refresh())
        if not ok:
            raise HTTPException(status_code=502, detail="Room refresh failed")
        return {"status": "ok"}

    @router.post("/logout", response_model=StatusResponse)
    async def logout() -> dict:
        """Drop all session state and cached data."""
        await session.logout()
        return {"status": "ok"}

    return router

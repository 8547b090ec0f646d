"""HTTP transport for the chat backend REST API."""

import os
from typing import Any, Protocol

import httpx

from ..logging_config import get_logger
from ..models import ChatRoom, Message
from ..models.codec import message_from_dict, room_from_dict

logger = get_logger(__name__)


class TransportError(Exception):
    """Raised when a backend request fails or returns an unusable body."""


class ITransport(Protocol):
    """Fetches rooms and messages from the backend."""

    async def fetch_rooms(self) -> list[ChatRoom]:
        """All rooms of the authenticated user."""
        ...

    async def fetch_room(self, room_id: str) -> ChatRoom:
        """A single room."""
        ...

    async def fetch_messages(
        self, room_id: str, page: int = 1, limit: int = 50
    ) -> list[Message]:
        """One page of a room's messages, ascending by created_at."""
        ...

    async def mark_room_read(self, room_id: str) -> None:
        """Confirm that the current user has read the room."""
        ...

    async def delete_room(self, room_id: str) -> None:
        """Delete, hide or leave a room on the server."""
        ...


def _unwrap(body: Any) -> Any:
    """Backend answers either {"data": ...} or the bare payload."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class HttpTransport:
    """REST client for the chat backend (httpx)."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url or os.getenv("API_BASE_URL", "")
        self._token = token or os.getenv("API_TOKEN")
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url, timeout=timeout
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        if not self._token:
            raise TransportError("No access token available")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._token}",
        }
        try:
            response = await self._client.request(method, endpoint, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, endpoint, e)
            raise TransportError(f"{method} {endpoint} failed: {e}") from e

        if not response.content:
            return None
        try:
            return _unwrap(response.json())
        except ValueError as e:
            raise TransportError(f"{method} {endpoint} returned invalid JSON") from e

    async def fetch_rooms(self) -> list[ChatRoom]:
        """All rooms of the authenticated user."""
        data = await self._request("GET", "/v1/chat-rooms")
        if not data:
            return []
        if not isinstance(data, list):
            raise TransportError("Room list response is not a list")
        try:
            return [room_from_dict(item) for item in data]
        except (ValueError, TypeError) as e:
            raise TransportError(f"Malformed room in list: {e}") from e

    async def fetch_room(self, room_id: str) -> ChatRoom:
        """A single room."""
        data = await self._request("GET", f"/v1/chat-rooms/{room_id}")
        try:
            return room_from_dict(data)
        except (ValueError, TypeError) as e:
            raise TransportError(f"Malformed room {room_id}: {e}") from e

    async def fetch_messages(
        self, room_id: str, page: int = 1, limit: int = 50
    ) -> list[Message]:
        """One page of a room's messages, ascending by created_at."""
        data = await self._request(
            "GET",
            f"/v1/messages/chat-room/{room_id}",
            params={"page": page, "limit": limit},
        )
        raw = data.get("messages", []) if isinstance(data, dict) else data or []
        try:
            messages = [message_from_dict(item, chat_room_id=room_id) for item in raw]
        except (ValueError, TypeError) as e:
            raise TransportError(f"Malformed message in room {room_id}: {e}") from e
        return sorted(messages, key=lambda m: m.created_at)

    async def mark_room_read(self, room_id: str) -> None:
        """Confirm that the current user has read the room."""
        await self._request("PATCH", f"/v1/chat-rooms/{room_id}/read")

    async def delete_room(self, room_id: str) -> None:
        """Delete, hide or leave a room on the server."""
        await self._request("DELETE", f"/v1/chat-rooms/{room_id}")

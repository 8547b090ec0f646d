"""Tests for the HTTP facade."""

import httpx
import pytest_asyncio

from chat_core.api.app import create_fastapi_app
from chat_core.app import ChatSession
from chat_core.models.codec import message_to_dict


@pytest_asyncio.fixture
async def session(transport, make_room, make_message):
    """Started session over a fake backend with one room."""
    transport.rooms = [make_room("room1", name="Team", unread_count=2)]
    transport.messages["room1"] = [make_message("m1", minute=1), make_message("m2", minute=2)]
    s = ChatSession(cache_path=":memory:", transport=transport, current_user_id="user1")
    await s.start()
    await s.coordinator.wait_idle()
    yield s
    await s.stop()


@pytest_asyncio.fixture
async def client(session):
    """HTTP client bound to the app; lifespan is driven by the session fixture."""
    app = create_fastapi_app(session)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c


class TestRoomsApi:
    """Tests for /api/rooms."""

    async def test_list_rooms(self, client):
        """Test the room list is served in wire format."""
        response = await client.get("/api/rooms")
        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == ["room1"]
        assert response.json()[0]["unreadCount"] == 2

    async def test_get_room_not_found(self, client):
        """Test unknown rooms return 404."""
        response = await client.get("/api/rooms/nope")
        assert response.status_code == 404

    async def test_open_room_and_list_messages(self, client):
        """Test opening a room loads its messages."""
        response = await client.post("/api/rooms/room1/open")
        assert response.status_code == 200

        messages = (await client.get("/api/rooms/room1/messages")).json()
        assert [m["id"] for m in messages] == ["m1", "m2"]

        room = (await client.get("/api/rooms/room1")).json()
        assert room["lastMessage"]["id"] == "m2"

    async def test_open_room_backend_down(self, client, transport):
        """Test a failed fetch maps to 502."""
        transport.fail = True
        response = await client.post("/api/rooms/room1/open")
        assert response.status_code == 502

    async def test_mark_read(self, client, session):
        """Test marking read returns the mutation result."""
        await client.post("/api/rooms/room1/open")
        response = await client.post("/api/rooms/room1/read", json={"message_ids": ["m1", "m2"]})

        assert response.status_code == 200
        assert response.json() == {"result": "applied"}
        assert session.store.get_room("room1").unread_count == 0

    async def test_mark_read_requires_ids(self, client):
        """Test an empty id list is rejected."""
        response = await client.post("/api/rooms/room1/read", json={"message_ids": []})
        assert response.status_code == 422

    async def test_delete_room(self, client, session):
        """Test deleting a room."""
        response = await client.delete("/api/rooms/room1")
        assert response.status_code == 200
        assert not session.store.has_room("room1")

    async def test_delete_unknown_room(self, client):
        """Test deleting an unknown room returns 404."""
        response = await client.delete("/api/rooms/nope")
        assert response.status_code == 404


class TestEventsApi:
    """Tests for /api/events."""

    async def test_publish_event(self, client, session, make_message):
        """Test a forwarded event is applied."""
        msg = make_message("m9", minute=9)
        response = await client.post(
            "/api/events",
            json={
                "kind": "message.created",
                "payload": {"chatRoomId": "room1", "message": message_to_dict(msg)},
            },
        )

        assert response.status_code == 200
        assert response.json()["kind"] == "message.created"
        assert session.store.get_room("room1").last_message.id == "m9"

    async def test_unknown_kind(self, client):
        """Test unknown event kinds return 400."""
        response = await client.post("/api/events", json={"kind": "typing", "payload": {}})
        assert response.status_code == 400


class TestControlApi:
    """Tests for /api/control."""

    async def test_refresh(self, client, transport, make_room):
        """Test refresh merges new rooms."""
        transport.rooms = [make_room("room2")]
        response = await client.post("/api/control/refresh")
        assert response.status_code == 200
        ids = {r["id"] for r in (await client.get("/api/rooms")).json()}
        assert ids == {"room1", "room2"}

    async def test_force_refresh(self, client, transport, make_room):
        """Test force refresh replaces the room list."""
        transport.rooms = [make_room("room2")]
        response = await client.post("/api/control/refresh", params={"force": "true"})
        assert response.status_code == 200
        assert [r["id"] for r in (await client.get("/api/rooms")).json()] == ["room2"]

    async def test_refresh_backend_down(self, client, transport):
        """Test a failed refresh maps to 502."""
        transport.fail = True
        response = await client.post("/api/control/refresh")
        assert response.status_code == 502

    async def test_logout(self, client, session):
        """Test logout clears the room list."""
        response = await client.post("/api/control/logout")
        assert response.status_code == 200
        assert (await client.get("/api/rooms")).json() == []

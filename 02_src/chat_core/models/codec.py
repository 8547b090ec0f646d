"""Conversion between models and the backend's camelCase JSON shape.

The same shape is used on the wire (transport, real-time events, local API)
and inside the persistent cache. Decoders raise ValueError on malformed input.
"""

from datetime import datetime, timezone
from typing import Any, Callable

from .messages import Message, ReplyData, User
from .rooms import ChatRoom, Participant, RoomType


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _expect_dict(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"Expected {what} object, got {type(data).__name__}")
    return data


def _require(data: dict, key: str, what: str) -> Any:
    value = data.get(key)
    if value is None:
        raise ValueError(f"{what} is missing {key!r}")
    return value


def _compact(data: dict) -> dict:
    """Drop None values so absent fields stay absent on the wire."""
    return {k: v for k, v in data.items() if v is not None}


def _unique(values: list) -> list:
    return list(dict.fromkeys(values))


# Users / participants


def user_from_dict(data: Any) -> User:
    data = _expect_dict(data, "user")
    user_id = data.get("id") or data.get("userId")
    if not user_id:
        raise ValueError("user is missing 'id'")
    return User(
        id=user_id,
        first_name=data.get("firstName") or "",
        last_name=data.get("lastName") or "",
        # Some endpoints only send profilePhoto
        avatar=data.get("avatar") or data.get("profilePhoto") or None,
        role=data.get("role"),
    )


def user_to_dict(user: User) -> dict:
    return _compact(
        {
            "id": user.id,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "avatar": user.avatar,
            "role": user.role,
        }
    )


def participant_from_dict(data: Any) -> Participant:
    data = _expect_dict(data, "participant")
    raw_user = data.get("user")
    if raw_user is None:
        raw_user = {"id": _require(data, "userId", "participant")}
    return Participant(
        user=user_from_dict(raw_user),
        role=data.get("role"),
        id=data.get("id"),
    )


def participant_to_dict(participant: Participant) -> dict:
    return _compact(
        {
            "id": participant.id,
            "userId": participant.user.id,
            "user": user_to_dict(participant.user),
            "role": participant.role,
        }
    )


# Messages


def reply_from_dict(data: Any) -> ReplyData:
    data = _expect_dict(data, "replyData")
    return ReplyData(
        content=data.get("content") or "",
        sender_name=data.get("senderName") or "",
        time=data.get("time") or "",
        avatar=data.get("avatar"),
    )


def reply_to_dict(reply: ReplyData) -> dict:
    return _compact(
        {
            "content": reply.content,
            "senderName": reply.sender_name,
            "time": reply.time,
            "avatar": reply.avatar,
        }
    )


def message_from_dict(data: Any, chat_room_id: str | None = None) -> Message:
    """Decode a message; chat_room_id fills in a missing chatRoomId."""
    data = _expect_dict(data, "message")
    sender = user_from_dict(data["sender"]) if data.get("sender") else None
    sender_id = data.get("senderId") or (sender.id if sender else None)
    if not sender_id:
        raise ValueError("message is missing 'senderId'")
    room_id = data.get("chatRoomId") or chat_room_id
    if not room_id:
        raise ValueError("message is missing 'chatRoomId'")

    return Message(
        id=_require(data, "id", "message"),
        chat_room_id=room_id,
        sender_id=sender_id,
        content=data.get("content") or "",
        created_at=parse_timestamp(_require(data, "createdAt", "message")),
        is_read=bool(data.get("isRead", False)),
        read_by=_unique(data.get("readBy") or []),
        reply_data=reply_from_dict(data["replyData"]) if data.get("replyData") else None,
        sender=sender,
        receiver_id=data.get("receiverId"),
        file_url=data.get("fileUrl"),
        file_name=data.get("fileName"),
        file_size=data.get("fileSize"),
    )


def message_to_dict(message: Message) -> dict:
    return _compact(
        {
            "id": message.id,
            "chatRoomId": message.chat_room_id,
            "senderId": message.sender_id,
            "content": message.content,
            "createdAt": format_timestamp(message.created_at),
            "isRead": message.is_read,
            "readBy": list(message.read_by),
            "replyData": reply_to_dict(message.reply_data) if message.reply_data else None,
            "sender": user_to_dict(message.sender) if message.sender else None,
            "receiverId": message.receiver_id,
            "fileUrl": message.file_url,
            "fileName": message.file_name,
            "fileSize": message.file_size,
        }
    )


# Rooms


def _room_type(value: Any) -> RoomType:
    try:
        return RoomType(value)
    except ValueError as e:
        raise ValueError(f"Unknown room type: {value!r}") from e


def _participants(value: Any) -> list[Participant]:
    if not isinstance(value, list):
        raise ValueError("participants must be a list")
    return [participant_from_dict(p) for p in value]


def room_from_dict(data: Any) -> ChatRoom:
    data = _expect_dict(data, "chat room")
    room_id = _require(data, "id", "chat room")
    updated_raw = data.get("updatedAt") or data.get("createdAt")
    if updated_raw is None:
        raise ValueError("chat room is missing 'updatedAt'")

    last_message = None
    if data.get("lastMessage"):
        last_message = message_from_dict(data["lastMessage"], chat_room_id=room_id)

    return ChatRoom(
        id=room_id,
        type=_room_type(_require(data, "type", "chat room")),
        updated_at=parse_timestamp(updated_raw),
        participants=_participants(data.get("participants") or []),
        name=data.get("name"),
        avatar=data.get("avatar"),
        last_message=last_message,
        unread_count=data.get("unreadCount"),
        is_muted=data.get("isMuted"),
        is_pinned=data.get("isPinned"),
        created_at=parse_timestamp(data["createdAt"]) if data.get("createdAt") else None,
    )


def room_to_dict(room: ChatRoom) -> dict:
    return _compact(
        {
            "id": room.id,
            "type": room.type.value,
            "updatedAt": format_timestamp(room.updated_at),
            "participants": [participant_to_dict(p) for p in room.participants],
            "name": room.name,
            "avatar": room.avatar,
            "lastMessage": message_to_dict(room.last_message) if room.last_message else None,
            "unreadCount": room.unread_count,
            "isMuted": room.is_muted,
            "isPinned": room.is_pinned,
            "createdAt": format_timestamp(room.created_at) if room.created_at else None,
        }
    )


# Partial updates

Decoder = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


def _decode_updates(
    data: Any,
    fields: dict[str, tuple[str, Decoder]],
    what: str,
    required: frozenset[str] = frozenset(),
) -> dict:
    data = _expect_dict(data, what)
    updates = {}
    for wire_key, (attr, decode) in fields.items():
        if wire_key not in data:
            continue
        value = data[wire_key]
        if value is None:
            if wire_key in required:
                raise ValueError(f"{what} cannot clear required field '{wire_key}'")
            updates[attr] = None
        else:
            updates[attr] = decode(value)
    return updates


def room_updates_from_dict(data: Any, chat_room_id: str) -> dict[str, Any]:
    """Decode a partial room payload into snake_case field updates.

    Unknown keys are dropped. An explicit null clears an optional field;
    null for type, participants or updatedAt raises ValueError.
    """
    fields: dict[str, tuple[str, Decoder]] = {
        "name": ("name", _identity),
        "avatar": ("avatar", _identity),
        "type": ("type", _room_type),
        "participants": ("participants", _participants),
        "lastMessage": (
            "last_message",
            lambda v: message_from_dict(v, chat_room_id=chat_room_id),
        ),
        "unreadCount": ("unread_count", _identity),
        "isMuted": ("is_muted", _identity),
        "isPinned": ("is_pinned", _identity),
        "updatedAt": ("updated_at", parse_timestamp),
        "createdAt": ("created_at", parse_timestamp),
    }
    return _decode_updates(
        data, fields, "room updates", frozenset({"type", "participants", "updatedAt"})
    )


def message_updates_from_dict(data: Any) -> dict[str, Any]:
    """Decode a partial message payload into snake_case field updates."""
    fields: dict[str, tuple[str, Decoder]] = {
        "content": ("content", _identity),
        "isRead": ("is_read", bool),
        "readBy": ("read_by", _unique),
        "replyData": ("reply_data", reply_from_dict),
        "fileUrl": ("file_url", _identity),
        "fileName": ("file_name", _identity),
        "fileSize": ("file_size", _identity),
    }
    return _decode_updates(
        data, fields, "message updates", frozenset({"content", "isRead", "readBy"})
    )

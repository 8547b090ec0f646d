"""Field-level merge of two versions of the same entity.

Rooms arriving from the cache, a bulk fetch or a real-time event are all
reconciled through these functions. The policy decides whether an incoming
room may overwrite a local one at all; the overwrite itself is a shallow
field patch where every field the incoming version specifies wins.
"""

from dataclasses import fields, replace
from enum import Enum
from typing import Any, Mapping, TypeVar

from ..models import ChatRoom, Message

T = TypeVar("T")


class MergePolicy(str, Enum):
    """How an incoming room is reconciled with the local copy."""

    LAST_WRITER_WINS = "last_writer_wins"  # no timestamp comparison
    NEWER_WINS = "newer_wins"  # incoming ignored if its updated_at is older


def parse_policy(name: str) -> MergePolicy:
    try:
        return MergePolicy(name.strip().lower())
    except ValueError as e:
        raise ValueError(f"Unknown merge policy: {name!r}") from e


def _immutable_fields(entity: Any) -> set[str]:
    if isinstance(entity, Message):
        return {"id", "chat_room_id", "created_at"}
    return {"id"}


def patch(entity: T, updates: Mapping[str, Any]) -> T:
    """Shallow-patch entity with updates.

    Identity fields and unknown keys are ignored. Returns the same object
    when nothing would change.
    """
    known = {f.name for f in fields(entity)} - _immutable_fields(entity)
    changes = {
        key: value
        for key, value in updates.items()
        if key in known and getattr(entity, key) != value
    }
    if not changes:
        return entity
    return replace(entity, **changes)


def specified_fields(entity: Any) -> dict[str, Any]:
    """Fields the entity actually carries (not None), identity excluded."""
    immutable = _immutable_fields(entity)
    return {
        f.name: getattr(entity, f.name)
        for f in fields(entity)
        if f.name not in immutable and getattr(entity, f.name) is not None
    }


def is_stale(current: ChatRoom, incoming: ChatRoom, policy: MergePolicy) -> bool:
    """True if the policy forbids incoming from overwriting current."""
    if policy is MergePolicy.NEWER_WINS:
        return incoming.updated_at < current.updated_at
    return False


def merge_room(
    current: ChatRoom,
    incoming: ChatRoom,
    policy: MergePolicy = MergePolicy.LAST_WRITER_WINS,
) -> ChatRoom:
    """Merge incoming over current; current is returned as-is when stale."""
    if current.id != incoming.id:
        raise ValueError(f"Cannot merge room {incoming.id} into {current.id}")
    if is_stale(current, incoming, policy):
        return current
    return patch(current, specified_fields(incoming))

"""Outcome types returned by store mutations."""

from dataclasses import dataclass, field
from enum import Enum


class MutationResult(str, Enum):
    """Outcome of a single store mutation."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"  # target found, nothing to do
    NOT_FOUND = "not_found"

    @property
    def applied(self) -> bool:
        return self is MutationResult.APPLIED


@dataclass
class MergeReport:
    """Room ids touched by a merge_rooms call, by outcome."""

    inserted: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # older than local

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated)

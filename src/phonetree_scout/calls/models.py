"""
Domain models for live call sessions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from phonetree_scout.calls.observers import ObserverTransport

STATUS_INITIATED = "initiated"
STATUS_UNKNOWN = "unknown"
STATUS_COMPLETED = "completed"


class TranscriptLine(BaseModel):
    """One recognised utterance or input event, stamped on arrival."""

    model_config = ConfigDict(frozen=True)

    text: str
    timestamp: str


@dataclass
class CallSession:
    """Mutable per-call state. Owned by CallRegistry, never handed out."""

    status: str
    meta: Mapping[str, Any]
    started_at: datetime | None
    last_activity: datetime
    transcript: list[TranscriptLine] = field(default_factory=list)
    observers: set[ObserverTransport] = field(default_factory=set)
    archived: bool = False
    last_stamp: datetime | None = None

    def snapshot(self) -> CallSnapshot:
        return CallSnapshot(
            status=self.status,
            transcript=tuple(self.transcript),
            meta=self.meta,
            started_at=self.started_at,
            observer_count=len(self.observers),
        )


@dataclass(frozen=True)
class CallSnapshot:
    """Read-only view of a call session at one point in time."""

    status: str
    transcript: tuple[TranscriptLine, ...]
    meta: Mapping[str, Any]
    started_at: datetime | None
    observer_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "transcript": [line.model_dump() for line in self.transcript],
            "meta": dict(self.meta),
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "observers": self.observer_count,
        }


def freeze_meta(meta: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(meta or {}))

"""
Event payloads pushed to dashboard observers.

The JSON shape is consumed by the browser dashboard as-is:

    {"type": "init", "data": {"transcript": [...], "status": "..."}}
    {"type": "transcript", "data": {"text": "...", "timestamp": "..."}}
    {"type": "status", "data": {"status": "..."}}
"""

from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field

from phonetree_scout.calls.models import TranscriptLine


class DashboardEventType(str, Enum):
    """Kinds of events a dashboard receives."""

    INIT = "init"
    TRANSCRIPT = "transcript"
    STATUS = "status"


class DashboardEvent(BaseModel):
    """Envelope for a single dashboard event."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    type: DashboardEventType = Field(..., description="Event kind")
    data: dict[str, Any] = Field(default_factory=dict, description="Event payload")

    @classmethod
    def init(cls, transcript: Sequence[TranscriptLine], status: str) -> "DashboardEvent":
        return cls(
            type=DashboardEventType.INIT,
            data={
                "transcript": [line.model_dump() for line in transcript],
                "status": status,
            },
        )

    @classmethod
    def transcript(cls, line: TranscriptLine) -> "DashboardEvent":
        return cls(type=DashboardEventType.TRANSCRIPT, data=line.model_dump())

    @classmethod
    def status(cls, status: str) -> "DashboardEvent":
        return cls(type=DashboardEventType.STATUS, data={"status": status})

    def to_message(self) -> str:
        """Serialise to the JSON text frame sent over the wire."""
        return self.model_dump_json()

"""
Live call session tracking and dashboard fan-out.
"""

from phonetree_scout.calls.events import DashboardEvent, DashboardEventType
from phonetree_scout.calls.models import CallSnapshot, TranscriptLine
from phonetree_scout.calls.observers import ObserverTransport
from phonetree_scout.calls.registry import CallRegistry, get_call_registry

__all__ = [
    "CallRegistry",
    "CallSnapshot",
    "DashboardEvent",
    "DashboardEventType",
    "ObserverTransport",
    "TranscriptLine",
    "get_call_registry",
]

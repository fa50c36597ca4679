"""
In-memory registry of live calls.

Maps call SID -> CallSession and fans incremental updates out to the dashboards
observing each call. Every mutation of one call runs under that call's lock and
only hands messages to non-blocking observer outboxes, so a slow dashboard
never holds up other dashboards or other calls.

Operations on a call that is not tracked are no-ops: provider callbacks and
dashboard disconnects race with the call lifecycle and must not fail.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Mapping

from phonetree_scout.calls.events import DashboardEvent
from phonetree_scout.calls.models import (
    STATUS_INITIATED,
    STATUS_UNKNOWN,
    CallSession,
    CallSnapshot,
    TranscriptLine,
    freeze_meta,
)
from phonetree_scout.calls.observers import ObserverTransport
from phonetree_scout.shared.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CallRegistry:
    """Owns all live call state and the dashboards attached to each call."""

    def __init__(self, clock: Clock = _utcnow) -> None:
        self._clock = clock
        self._calls: dict[str, CallSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _get_lock(self, call_id: str) -> asyncio.Lock:
        lock = self._locks.get(call_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[call_id] = lock
        return lock

    def _placeholder(self) -> CallSession:
        return CallSession(
            status=STATUS_UNKNOWN,
            meta=freeze_meta(None),
            started_at=None,
            last_activity=self._clock(),
        )

    async def create(self, call_id: str, meta: Mapping[str, Any] | None = None) -> None:
        """Start tracking a call. Replaces any session under the same id."""
        async with self._get_lock(call_id):
            now = self._clock()
            self._calls[call_id] = CallSession(
                status=STATUS_INITIATED,
                meta=freeze_meta(meta),
                started_at=now,
                last_activity=now,
            )
        logger.info("Call initiated", extra={"call_sid": call_id})

    async def get(self, call_id: str) -> CallSnapshot | None:
        call = self._calls.get(call_id)
        return call.snapshot() if call is not None else None

    async def append_transcript(self, call_id: str, text: str) -> TranscriptLine | None:
        """Append a line stamped now and push it to every attached dashboard.

        Returns the stored line, or None when the call is not tracked.
        """
        if call_id not in self._calls:
            return None
        async with self._get_lock(call_id):
            call = self._calls.get(call_id)
            if call is None:
                return None

            now = self._clock()
            stamp = now if call.last_stamp is None or now > call.last_stamp else call.last_stamp
            line = TranscriptLine(text=text, timestamp=_iso(stamp))
            call.transcript.append(line)
            call.last_stamp = stamp
            call.last_activity = now
            self._fan_out(call_id, call, DashboardEvent.transcript(line))
        return line

    async def set_status(self, call_id: str, status: str) -> None:
        """Overwrite the status with whatever token the provider reported."""
        if call_id not in self._calls:
            return
        async with self._get_lock(call_id):
            call = self._calls.get(call_id)
            if call is None:
                return
            call.status = status
            call.last_activity = self._clock()
            self._fan_out(call_id, call, DashboardEvent.status(status))
        logger.info("Call status changed", extra={"call_sid": call_id, "status": status})

    async def attach_observer(self, call_id: str, observer: ObserverTransport) -> None:
        """Attach a dashboard and send it a snapshot of the call.

        The snapshot is queued under the call lock, so the observer sees every
        later update exactly once and nothing earlier twice.
        """
        async with self._get_lock(call_id):
            call = self._calls.get(call_id)
            if call is None:
                # Dashboard opened before the call exists (or after release)
                call = self._placeholder()
                self._calls[call_id] = call
            call.observers.add(observer)
            call.last_activity = self._clock()
            init = DashboardEvent.init(call.transcript, call.status)
            if not observer.try_send(init.to_message()):
                logger.warning("Dashboard init dropped", extra={"call_sid": call_id})
        logger.info("Dashboard attached", extra={"call_sid": call_id})

    async def detach_observer(self, call_id: str, observer: ObserverTransport) -> None:
        if call_id not in self._calls:
            return
        async with self._get_lock(call_id):
            call = self._calls.get(call_id)
            if call is None:
                return
            call.observers.discard(observer)
            call.last_activity = self._clock()
        logger.info("Dashboard detached", extra={"call_sid": call_id})

    def _fan_out(self, call_id: str, call: CallSession, event: DashboardEvent) -> int:
        """Deliver an event to every open observer. Caller holds the call lock."""
        if not call.observers:
            return 0
        message = event.to_message()
        delivered = 0
        for observer in list(call.observers):
            if not observer.is_open():
                continue
            if observer.try_send(message):
                delivered += 1
            else:
                logger.warning(
                    "Dashboard delivery skipped",
                    extra={"call_sid": call_id, "event_type": event.type},
                )
        return delivered

    async def get_transcript(self, call_id: str) -> list[TranscriptLine]:
        call = self._calls.get(call_id)
        return list(call.transcript) if call is not None else []

    async def claim_archival(self, call_id: str) -> bool:
        """Return True the first time a tracked call is claimed for archival."""
        if call_id not in self._calls:
            return False
        async with self._get_lock(call_id):
            call = self._calls.get(call_id)
            if call is None or call.archived:
                return False
            call.archived = True
            return True

    async def delete(self, call_id: str) -> None:
        """Forget a call and its observers without notifying them."""
        lock = self._get_lock(call_id)
        async with lock:
            removed = self._calls.pop(call_id, None)
        if not lock.locked():
            self._locks.pop(call_id, None)
        if removed is not None:
            logger.info("Call released", extra={"call_sid": call_id})

    async def sweep_expired(self, ttl: timedelta) -> list[str]:
        """Delete calls idle for longer than `ttl` with no open dashboard."""
        cutoff = self._clock() - ttl
        expired: list[str] = []
        for call_id in list(self._calls):
            async with self._get_lock(call_id):
                call = self._calls.get(call_id)
                if call is None or call.last_activity > cutoff:
                    continue
                if any(observer.is_open() for observer in call.observers):
                    continue
                del self._calls[call_id]
            expired.append(call_id)
        # Locks for ids that are no longer tracked, including ones deleted above
        for call_id in [cid for cid in self._locks if cid not in self._calls]:
            if not self._locks[call_id].locked():
                del self._locks[call_id]
        if expired:
            logger.info("Expired idle calls", extra={"call_sids": expired})
        return expired

    def active_call_ids(self) -> list[str]:
        return list(self._calls)

    def __len__(self) -> int:
        return len(self._calls)


@lru_cache(maxsize=1)
def get_call_registry() -> CallRegistry:
    """Process-wide registry used by the HTTP and WebSocket routes."""
    return CallRegistry()

"""
Files a completed call into HubSpot.
"""

from __future__ import annotations

from typing import Iterable

from phonetree_scout.calls.models import TranscriptLine
from phonetree_scout.calls.registry import CallRegistry
from phonetree_scout.crm.client import CallNote, HubSpotClient
from phonetree_scout.crm.exceptions import CrmError
from phonetree_scout.shared.logging import get_logger

logger = get_logger(__name__)


def format_transcript(lines: Iterable[TranscriptLine]) -> str:
    return "\n".join(f"[{line.timestamp}] {line.text}" for line in lines)


class CallArchiver:
    """Reads a finished call out of the registry and writes it to the CRM.

    CRM failures are logged, never raised and never retried: the status
    callback that triggers archival must still be acknowledged.
    """

    def __init__(
        self,
        registry: CallRegistry,
        crm: HubSpotClient,
        release_on_completion: bool = False,
    ) -> None:
        self._registry = registry
        self._crm = crm
        self._release = release_on_completion

    async def archive(self, call_sid: str, duration_seconds: int | None = None) -> bool:
        """Archive a call once. Returns True when a note was written."""
        call = await self._registry.get(call_sid)
        if call is None:
            logger.info("Completed call not tracked; nothing to archive", extra={"call_sid": call_sid})
            return False

        if not await self._registry.claim_archival(call_sid):
            logger.info("Call already archived", extra={"call_sid": call_sid})
            return False

        company_id = call.meta.get("companyId")
        if not company_id:
            logger.warning("Call has no companyId; skipping CRM note", extra={"call_sid": call_sid})
            return False

        transcript = await self._registry.get_transcript(call_sid)
        note = CallNote(
            company_id=str(company_id),
            company_name=str(call.meta.get("companyName") or ""),
            to_number=str(call.meta.get("toNumber") or ""),
            call_sid=call_sid,
            transcript_text=format_transcript(transcript),
            duration_seconds=duration_seconds,
        )

        written = False
        try:
            await self._crm.log_call_note(note)
            written = True
            logger.info("Call note logged", extra={"call_sid": call_sid, "company_id": company_id})
        except CrmError as e:
            logger.error(
                "Failed to log call note",
                extra={
                    "call_sid": call_sid,
                    "company_id": company_id,
                    "status_code": e.status_code,
                    "error": str(e),
                },
            )

        if self._release:
            await self._registry.delete(call_sid)
        return written

"""
Parsing and signing of Twilio-shaped webhook payloads.

Shared by the real adapter and the mock provider, which accepts the same form
fields so local tooling can replay Twilio callbacks.
"""

from __future__ import annotations

import hashlib
import hmac
from base64 import b64encode
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from phonetree_scout.shared.logging import get_logger
from phonetree_scout.telephony.interface import (
    CallStatus,
    InputEvent,
    WebhookEvent,
    WebhookParseError,
)

logger = get_logger(__name__)

TWILIO_STATUS_MAP: dict[str, CallStatus] = {
    "queued": CallStatus.QUEUED,
    "initiated": CallStatus.INITIATED,
    "ringing": CallStatus.RINGING,
    "in-progress": CallStatus.IN_PROGRESS,
    "answered": CallStatus.IN_PROGRESS,
    "completed": CallStatus.COMPLETED,
    "busy": CallStatus.BUSY,
    "no-answer": CallStatus.NO_ANSWER,
    "failed": CallStatus.FAILED,
    "canceled": CallStatus.CANCELED,
}


def _parse_timestamp(value: Any) -> datetime:
    # Twilio sends RFC 2822 dates ("Mon, 15 Jan 2024 10:30:00 +0000")
    if value:
        try:
            return parsedate_to_datetime(str(value))
        except (TypeError, ValueError):
            try:
                return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
            except ValueError:
                pass
    return datetime.now(timezone.utc)


def parse_status_payload(payload: dict[str, Any]) -> WebhookEvent:
    call_sid = payload.get("CallSid")
    call_status = str(payload.get("CallStatus") or "").strip().lower()

    if not call_sid:
        raise WebhookParseError(
            message="Missing CallSid in webhook payload",
            error_code="MISSING_CALL_SID",
            provider_response=payload,
        )

    if not call_status:
        raise WebhookParseError(
            message="Missing CallStatus in webhook payload",
            error_code="MISSING_CALL_STATUS",
            provider_response=payload,
        )

    status = TWILIO_STATUS_MAP.get(call_status)
    if status is None:
        logger.warning(
            "Unrecognised Twilio call status",
            extra={"call_sid": call_sid, "call_status": call_status},
        )
        status = CallStatus.INITIATED

    duration_seconds = None
    raw_duration = payload.get("CallDuration") or payload.get("Duration")
    if raw_duration:
        try:
            duration_seconds = int(raw_duration)
        except (ValueError, TypeError):
            pass

    error_code = None
    error_message = None
    if status == CallStatus.FAILED:
        error_code = payload.get("ErrorCode")
        error_message = payload.get("ErrorMessage")

    return WebhookEvent(
        provider_call_id=str(call_sid),
        raw_status=call_status,
        status=status,
        timestamp=_parse_timestamp(payload.get("Timestamp")),
        duration_seconds=duration_seconds,
        error_code=error_code,
        error_message=error_message,
        raw_payload=payload,
    )


def parse_input_payload(payload: dict[str, Any]) -> InputEvent:
    call_sid = payload.get("CallSid")
    if not call_sid:
        raise WebhookParseError(
            message="Missing CallSid in gather payload",
            error_code="MISSING_CALL_SID",
            provider_response=payload,
        )

    speech = str(payload.get("SpeechResult") or "").strip() or None
    digits = str(payload.get("Digits") or "").strip() or None

    confidence = None
    if payload.get("Confidence"):
        try:
            confidence = float(payload["Confidence"])
        except (ValueError, TypeError):
            pass

    return InputEvent(
        provider_call_id=str(call_sid),
        speech=speech,
        digits=digits,
        confidence=confidence,
    )


def compute_signature(auth_token: str, url: str, params: dict[str, Any]) -> str:
    """Twilio request signature: HMAC-SHA1 over URL + sorted key/value pairs."""
    data_str = url
    for key in sorted(params.keys()):
        data_str += key + str(params[key])

    digest = hmac.new(
        auth_token.encode("utf-8"),
        data_str.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return b64encode(digest).decode("utf-8")


def signature_matches(auth_token: str, url: str, params: dict[str, Any], signature: str) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(compute_signature(auth_token, url, params), signature)

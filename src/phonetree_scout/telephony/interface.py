"""
Telephony provider interface definition.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import anyio


class CallStatus(str, Enum):
    """Normalised call status values."""

    QUEUED = "queued"
    INITIATED = "initiated"
    RINGING = "ringing"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BUSY = "busy"
    NO_ANSWER = "no_answer"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class CallInitiationRequest:
    """Request to initiate an outbound call."""

    to: str
    from_number: str
    twiml_url: str
    status_callback_url: str
    recording_callback_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CallInitiationResponse:
    """Response from call initiation."""

    provider_call_id: str
    status: CallStatus
    created_at: datetime
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WebhookEvent:
    """Parsed status callback from the telephony provider.

    `raw_status` is the provider's own token (e.g. "in-progress"); dashboards
    display it unchanged.
    """

    provider_call_id: str
    raw_status: str
    status: CallStatus
    timestamp: datetime
    duration_seconds: int | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status == CallStatus.COMPLETED


@dataclass(frozen=True)
class InputEvent:
    """Speech or keypad input gathered during a call."""

    provider_call_id: str
    speech: str | None = None
    digits: str | None = None
    confidence: float | None = None

    def transcript_lines(self) -> list[str]:
        lines: list[str] = []
        if self.speech:
            lines.append(self.speech)
        if self.digits:
            lines.append(f"[DTMF] Pressed: {self.digits}")
        return lines


class TelephonyProviderError(Exception):
    """Base exception for telephony provider errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.provider_response = provider_response or {}


class CallInitiationError(TelephonyProviderError):
    """Error during call initiation."""


class CallHangupError(TelephonyProviderError):
    """Error while ending a live call."""


class WebhookParseError(TelephonyProviderError):
    """Error parsing webhook event."""


class TelephonyProvider(ABC):
    """Abstract interface for telephony providers.

    Provider I/O is implemented synchronously; the async entrypoints run it in
    a worker thread so webhook handlers never block the event loop.
    """

    async def initiate_call(
        self,
        request: CallInitiationRequest,
    ) -> CallInitiationResponse:
        return await anyio.to_thread.run_sync(self.initiate_call_sync, request)

    async def hangup(self, provider_call_id: str) -> None:
        await anyio.to_thread.run_sync(self.hangup_sync, provider_call_id)

    @abstractmethod
    def initiate_call_sync(
        self,
        request: CallInitiationRequest,
    ) -> CallInitiationResponse:
        ...

    @abstractmethod
    def hangup_sync(self, provider_call_id: str) -> None:
        ...

    @abstractmethod
    def parse_webhook_event(self, payload: dict[str, Any]) -> WebhookEvent:
        """Parse a status callback from the provider."""
        ...

    @abstractmethod
    def parse_input_event(self, payload: dict[str, Any]) -> InputEvent:
        """Parse a speech/DTMF gather callback from the provider."""
        ...

    @abstractmethod
    def validate_webhook_signature(
        self,
        params: dict[str, Any],
        signature: str,
        url: str,
    ) -> bool:
        """Validate webhook signature for authenticity."""
        ...

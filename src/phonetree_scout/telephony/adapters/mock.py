"""
Mock telephony provider for local development and tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from phonetree_scout.telephony.config import TelephonyConfig
from phonetree_scout.telephony.interface import (
    CallHangupError,
    CallInitiationRequest,
    CallInitiationResponse,
    CallStatus,
    InputEvent,
    TelephonyProvider,
    WebhookEvent,
)
from phonetree_scout.telephony.payloads import (
    parse_input_payload,
    parse_status_payload,
    signature_matches,
)


class MockTelephonyProvider(TelephonyProvider):
    """Never touches Twilio; hands out fake call SIDs and records requests."""

    def __init__(self, config: TelephonyConfig | None = None) -> None:
        self._config = config
        self.initiated: list[CallInitiationRequest] = []
        self.hung_up: list[str] = []
        self.fail_next: bool = False

    def initiate_call_sync(self, request: CallInitiationRequest) -> CallInitiationResponse:
        self.initiated.append(request)
        sid = f"CA{uuid4().hex}"
        return CallInitiationResponse(
            provider_call_id=sid,
            status=CallStatus.QUEUED,
            created_at=datetime.now(timezone.utc),
            raw_response={"mock": True, "sid": sid, "to": request.to},
        )

    def hangup_sync(self, provider_call_id: str) -> None:
        if self.fail_next:
            self.fail_next = False
            raise CallHangupError("Mock hangup failure", error_code="MOCK")
        self.hung_up.append(provider_call_id)

    def parse_webhook_event(self, payload: dict[str, Any]) -> WebhookEvent:
        return parse_status_payload(payload)

    def parse_input_event(self, payload: dict[str, Any]) -> InputEvent:
        return parse_input_payload(payload)

    def validate_webhook_signature(self, params: dict[str, Any], signature: str, url: str) -> bool:
        if self._config is None or not self._config.twilio_auth_token:
            return True
        return signature_matches(self._config.twilio_auth_token, url, params, signature)

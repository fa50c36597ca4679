"""
Twilio telephony provider adapter.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from phonetree_scout.telephony.config import TelephonyConfig, get_telephony_config
from phonetree_scout.telephony.interface import (
    CallHangupError,
    CallInitiationError,
    CallInitiationRequest,
    CallInitiationResponse,
    CallStatus,
    InputEvent,
    TelephonyProvider,
    WebhookEvent,
)
from phonetree_scout.telephony.payloads import (
    TWILIO_STATUS_MAP,
    parse_input_payload,
    parse_status_payload,
    signature_matches,
)

logger = logging.getLogger(__name__)

STATUS_CALLBACK_EVENTS = ["initiated", "ringing", "answered", "completed"]


class TwilioAdapter(TelephonyProvider):
    """Twilio telephony provider adapter.

    Uses httpx for HTTP requests against the Twilio REST API.
    """

    def __init__(
        self,
        config: TelephonyConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._config = config or get_telephony_config()
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(self._config.http_timeout_seconds)
            )
        return self._http_client

    def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def _get_auth(self) -> tuple[str, str]:
        return (self._config.twilio_account_sid, self._config.twilio_auth_token)

    def _get_api_url(self, endpoint: str) -> str:
        base = self._config.twilio_api_base.rstrip("/")
        return f"{base}/Accounts/{self._config.twilio_account_sid}{endpoint}"

    @staticmethod
    def _error_data(response: httpx.Response) -> dict[str, Any]:
        try:
            return response.json() if response.content else {}
        except ValueError:
            return {"message": response.text}

    def initiate_call_sync(
        self,
        request: CallInitiationRequest,
    ) -> CallInitiationResponse:
        """Initiate an outbound call via Twilio."""
        client = self._get_client()

        payload: dict[str, Any] = {
            "To": request.to,
            "From": request.from_number,
            "Url": request.twiml_url,
            "Method": "POST",
            "StatusCallback": request.status_callback_url,
            "StatusCallbackEvent": STATUS_CALLBACK_EVENTS,
            "StatusCallbackMethod": "POST",
        }
        if self._config.record_calls:
            payload["Record"] = "true"
            if request.recording_callback_url:
                payload["RecordingStatusCallback"] = request.recording_callback_url

        logger.info(
            "Initiating Twilio call",
            extra={"to": request.to, "metadata": request.metadata},
        )

        try:
            response = client.post(
                self._get_api_url("/Calls.json"),
                data=payload,
                auth=self._get_auth(),
            )
        except httpx.HTTPError as e:
            logger.exception("HTTP error during Twilio call initiation", extra={"to": request.to})
            raise CallInitiationError(
                message=f"HTTP error: {e!s}",
                error_code="HTTP_ERROR",
            ) from e

        if response.status_code >= 400:
            error_data = self._error_data(response)
            logger.error(
                "Twilio call initiation failed",
                extra={
                    "status_code": response.status_code,
                    "error": error_data,
                    "to": request.to,
                },
            )
            raise CallInitiationError(
                message=error_data.get("message", "Call initiation failed"),
                error_code=str(error_data.get("code", response.status_code)),
                provider_response=error_data,
            )

        data = response.json()
        return CallInitiationResponse(
            provider_call_id=data["sid"],
            status=TWILIO_STATUS_MAP.get(data.get("status", ""), CallStatus.QUEUED),
            created_at=datetime.now(timezone.utc),
            raw_response=data,
        )

    def hangup_sync(self, provider_call_id: str) -> None:
        """End a live call by moving it to `completed`."""
        client = self._get_client()
        try:
            response = client.post(
                self._get_api_url(f"/Calls/{provider_call_id}.json"),
                data={"Status": "completed"},
                auth=self._get_auth(),
            )
        except httpx.HTTPError as e:
            logger.exception("HTTP error during Twilio hangup", extra={"call_sid": provider_call_id})
            raise CallHangupError(
                message=f"HTTP error: {e!s}",
                error_code="HTTP_ERROR",
            ) from e

        if response.status_code >= 400:
            error_data = self._error_data(response)
            logger.error(
                "Twilio hangup failed",
                extra={
                    "status_code": response.status_code,
                    "error": error_data,
                    "call_sid": provider_call_id,
                },
            )
            raise CallHangupError(
                message=error_data.get("message", "Hangup failed"),
                error_code=str(error_data.get("code", response.status_code)),
                provider_response=error_data,
            )

    def parse_webhook_event(self, payload: dict[str, Any]) -> WebhookEvent:
        return parse_status_payload(payload)

    def parse_input_event(self, payload: dict[str, Any]) -> InputEvent:
        return parse_input_payload(payload)

    def validate_webhook_signature(self, params: dict[str, Any], signature: str, url: str) -> bool:
        if not self._config.twilio_auth_token:
            logger.warning("No auth token configured, skipping signature validation")
            return True
        return signature_matches(self._config.twilio_auth_token, url, params, signature)

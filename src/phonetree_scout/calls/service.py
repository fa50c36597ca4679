"""
Outbound call workflow: dial through the provider, then start tracking.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

from phonetree_scout.calls.models import STATUS_COMPLETED
from phonetree_scout.calls.registry import CallRegistry
from phonetree_scout.config import Settings
from phonetree_scout.shared.exceptions import ValidationError
from phonetree_scout.shared.logging import get_logger
from phonetree_scout.telephony.config import TelephonyConfig
from phonetree_scout.telephony.interface import CallInitiationRequest, TelephonyProvider

logger = get_logger(__name__)


@dataclass(frozen=True)
class StartedCall:
    call_sid: str
    dashboard_url: str


class CallService:
    """Glue between the telephony provider and the call registry."""

    def __init__(
        self,
        provider: TelephonyProvider,
        registry: CallRegistry,
        settings: Settings,
        telephony: TelephonyConfig,
    ) -> None:
        self._provider = provider
        self._registry = registry
        self._settings = settings
        self._telephony = telephony

    async def start_call(
        self,
        to_number: str | None,
        company_id: str | None,
        company_name: str | None = None,
    ) -> StartedCall:
        """Dial `to_number` and register the call under its provider SID.

        Raises:
            ValidationError: when the number or company id is missing.
            CallInitiationError: when the provider rejects the call.
        """
        if not to_number or not company_id:
            raise ValidationError("toNumber and companyId are required")

        qs = urlencode({"companyId": company_id, "companyName": company_name or ""})
        request = CallInitiationRequest(
            to=to_number,
            from_number=self._telephony.twilio_from_number,
            twiml_url=self._telephony.get_webhook_url(f"/twilio/twiml?{qs}"),
            status_callback_url=self._telephony.get_webhook_url("/twilio/status"),
            recording_callback_url=self._telephony.get_webhook_url("/twilio/recording"),
            metadata={"companyId": company_id},
        )
        response = await self._provider.initiate_call(request)
        call_sid = response.provider_call_id

        await self._registry.create(
            call_sid,
            {"companyId": company_id, "companyName": company_name, "toNumber": to_number},
        )
        logger.info(
            "Outbound call started",
            extra={"call_sid": call_sid, "company_id": company_id},
        )
        return StartedCall(
            call_sid=call_sid,
            dashboard_url=self._settings.dashboard_url(call_sid, company_id),
        )

    async def hang_up(self, call_sid: str | None) -> None:
        if not call_sid:
            raise ValidationError("callSid required")
        await self._provider.hangup(call_sid)
        await self._registry.set_status(call_sid, STATUS_COMPLETED)

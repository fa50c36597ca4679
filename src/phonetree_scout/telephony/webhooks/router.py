"""
FastAPI router for the Twilio voice and status webhooks.

Twilio callbacks must always be acknowledged quickly: state updates go through
the in-memory call registry, and failures in downstream work (CRM archival) are
logged instead of being returned to Twilio.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from phonetree_scout.calls.registry import CallRegistry, get_call_registry
from phonetree_scout.calls.service import CallService
from phonetree_scout.config import get_settings
from phonetree_scout.crm.archiver import CallArchiver
from phonetree_scout.crm.client import HubSpotClient, get_hubspot_client
from phonetree_scout.shared.logging import get_logger
from phonetree_scout.telephony import twiml
from phonetree_scout.telephony.config import TelephonyConfig
from phonetree_scout.telephony.factory import get_telephony_config
from phonetree_scout.telephony.factory import get_telephony_provider as build_provider
from phonetree_scout.telephony.interface import (
    TelephonyProvider,
    TelephonyProviderError,
    WebhookParseError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])

TWIML_MEDIA_TYPE = "text/xml"


def get_telephony_provider() -> TelephonyProvider:
    return build_provider()


def get_call_service(
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
    registry: Annotated[CallRegistry, Depends(get_call_registry)],
    telephony: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> CallService:
    return CallService(
        provider=provider,
        registry=registry,
        settings=get_settings(),
        telephony=telephony,
    )


def get_call_archiver(
    registry: Annotated[CallRegistry, Depends(get_call_registry)],
    crm: Annotated[HubSpotClient, Depends(get_hubspot_client)],
) -> CallArchiver:
    return CallArchiver(
        registry=registry,
        crm=crm,
        release_on_completion=get_settings().release_on_completion,
    )


async def _form_payload(request: Request) -> dict[str, Any]:
    try:
        form = dict(await request.form())
    except Exception:
        logger.warning("Unreadable webhook form body", extra={"path": request.url.path})
        form = {}
    return {k: v for k, v in form.items() if isinstance(v, str)}


async def verified_payload(
    request: Request,
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
    telephony: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> dict[str, Any]:
    """Form fields of a Twilio callback, signature-checked when enabled."""
    payload = await _form_payload(request)
    if telephony.validate_signatures:
        signature = request.headers.get("X-Twilio-Signature", "")
        url = telephony.get_webhook_url(request.url.path)
        if request.url.query:
            url = f"{url}?{request.url.query}"
        if not provider.validate_webhook_signature(payload, signature, url):
            logger.warning("Rejected webhook with bad signature", extra={"path": request.url.path})
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")
    return payload


def _twiml_response(body: str) -> Response:
    return Response(content=body, media_type=TWIML_MEDIA_TYPE)


@router.post("/call")
async def create_call(
    service: Annotated[CallService, Depends(get_call_service)],
    body: Annotated[dict[str, Any], Body()],
) -> Any:
    """Start an outbound call. Body: {toNumber, companyId, companyName}."""
    try:
        started = await service.start_call(
            to_number=body.get("toNumber"),
            company_id=body.get("companyId"),
            company_name=body.get("companyName"),
        )
    except TelephonyProviderError as e:
        logger.error("Error creating call", extra={"error": str(e), "error_code": e.error_code})
        return JSONResponse(status_code=500, content={"error": str(e)})

    return {"callSid": started.call_sid, "dashboardUrl": started.dashboard_url}


@router.api_route("/twiml", methods=["GET", "POST"])
async def call_twiml(
    request: Request,
    telephony: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> Response:
    """Instructions for the answered call: listen for speech and keypresses."""
    redirect_url = telephony.get_webhook_url(request.url.path)
    if request.url.query:
        redirect_url = f"{redirect_url}?{request.url.query}"

    return _twiml_response(
        twiml.listen_response(
            action_url=telephony.get_webhook_url("/twilio/gather"),
            redirect_url=redirect_url,
            prompt=telephony.prompt_text,
            voice=telephony.prompt_voice,
            timeout_seconds=telephony.gather_timeout_seconds,
        )
    )


@router.post("/gather")
async def gather_input(
    payload: Annotated[dict[str, Any], Depends(verified_payload)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
    registry: Annotated[CallRegistry, Depends(get_call_registry)],
    telephony: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> Response:
    """Record recognised speech and/or DTMF digits, then keep listening."""
    try:
        event = provider.parse_input_event(payload)
    except WebhookParseError:
        logger.warning("Gather callback without CallSid", extra={"payload_keys": sorted(payload)})
    else:
        for text in event.transcript_lines():
            logger.info(
                "Gathered input",
                extra={"call_sid": event.provider_call_id, "text": text, "confidence": event.confidence},
            )
            await registry.append_transcript(event.provider_call_id, text)

    return _twiml_response(
        twiml.continue_listening_response(
            action_url=telephony.get_webhook_url("/twilio/gather"),
            timeout_seconds=telephony.gather_timeout_seconds,
        )
    )


@router.post("/status", status_code=status.HTTP_204_NO_CONTENT)
async def call_status(
    payload: Annotated[dict[str, Any], Depends(verified_payload)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
    registry: Annotated[CallRegistry, Depends(get_call_registry)],
    archiver: Annotated[CallArchiver, Depends(get_call_archiver)],
) -> Response:
    """Relay provider status to dashboards; archive the call once it completes."""
    try:
        event = provider.parse_webhook_event(payload)
    except WebhookParseError as e:
        logger.warning("Unparseable status callback (ACKing)", extra={"error": str(e)})
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    logger.info(
        "Status callback",
        extra={"call_sid": event.provider_call_id, "status": event.raw_status},
    )
    await registry.set_status(event.provider_call_id, event.raw_status)

    if event.is_terminal:
        await archiver.archive(event.provider_call_id, event.duration_seconds)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/recording", status_code=status.HTTP_204_NO_CONTENT)
async def recording_status(
    payload: Annotated[dict[str, Any], Depends(verified_payload)],
    registry: Annotated[CallRegistry, Depends(get_call_registry)],
) -> Response:
    call_sid = payload.get("CallSid")
    recording_url = payload.get("RecordingUrl")
    logger.info(
        "Recording callback",
        extra={
            "call_sid": call_sid,
            "recording_status": payload.get("RecordingStatus"),
            "recording_url": recording_url,
        },
    )
    if call_sid and recording_url:
        await registry.append_transcript(call_sid, f"[Recording available: {recording_url}]")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/hangup")
async def hangup_call(
    service: Annotated[CallService, Depends(get_call_service)],
    body: Annotated[dict[str, Any], Body()],
) -> Any:
    try:
        await service.hang_up(body.get("callSid"))
    except TelephonyProviderError as e:
        logger.error("Hangup failed", extra={"error": str(e), "error_code": e.error_code})
        return JSONResponse(status_code=500, content={"error": str(e)})
    return {"success": True}

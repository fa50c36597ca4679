"""
HubSpot CRM card endpoints.

HubSpot calls `/hubspot/crm-card` to render the card on a company record; the
card's action opens `/hubspot/launch` in an iframe, which dials the company and
redirects to the live dashboard.
"""

from __future__ import annotations

from html import escape
from typing import Annotated, Any
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from phonetree_scout.calls.service import CallService
from phonetree_scout.config import get_settings
from phonetree_scout.crm.client import HubSpotClient, get_hubspot_client
from phonetree_scout.crm.config import HubSpotConfig, get_hubspot_config
from phonetree_scout.crm.exceptions import CrmError
from phonetree_scout.shared.logging import get_logger
from phonetree_scout.telephony.interface import TelephonyProviderError
from phonetree_scout.telephony.webhooks.router import get_call_service

logger = get_logger(__name__)

router = APIRouter(prefix="/hubspot", tags=["hubspot"])

IFRAME_WIDTH = 890
IFRAME_HEIGHT = 600


def _message_page(title: str, message: str, status_code: int) -> HTMLResponse:
    html = (
        '<html><body style="font-family:sans-serif;padding:2rem">'
        f"<h2>{escape(title)}</h2>"
        f"<p>{escape(message)}</p>"
        "</body></html>"
    )
    return HTMLResponse(content=html, status_code=status_code)


@router.get("/crm-card")
async def crm_card(
    crm: Annotated[HubSpotClient, Depends(get_hubspot_client)],
    hubspot: Annotated[HubSpotConfig, Depends(get_hubspot_config)],
    associated_object_id: Annotated[str | None, Query(alias="associatedObjectId")] = None,
    portal_id: Annotated[str | None, Query(alias="portalId")] = None,
) -> Any:
    """CRM card data fetch. HubSpot passes associatedObjectId and portalId."""
    try:
        company: dict[str, Any] = {}
        if associated_object_id:
            company = await crm.get_company(associated_object_id)
    except CrmError as e:
        logger.error(
            "CRM card company lookup failed",
            extra={"company_id": associated_object_id, "portal_id": portal_id, "error": str(e)},
        )
        return JSONResponse(status_code=500, content={"error": str(e)})

    properties = company.get("properties") or {}
    phone = properties.get("phone") or ""
    company_name = properties.get("name") or "Unknown Company"
    base = get_settings().base_url.rstrip("/")
    launch_qs = urlencode(
        {"companyId": associated_object_id or "", "phone": phone, "companyName": company_name},
        quote_via=quote,
    )

    return {
        "results": [
            {
                "objectId": associated_object_id,
                "title": company_name,
                "properties": [
                    {
                        "label": "Phone",
                        "dataType": "STRING",
                        "value": phone or "Not set",
                    },
                    {
                        "label": "Last Phone Tree Mapping",
                        "dataType": "STRING",
                        "value": properties.get(hubspot.mapping_property) or "Never",
                    },
                ],
                "actions": [
                    {
                        "type": "IFRAME",
                        "width": IFRAME_WIDTH,
                        "height": IFRAME_HEIGHT,
                        "uri": f"{base}/hubspot/launch?{launch_qs}",
                        "label": "📞 Map Phone Tree",
                    }
                ],
            }
        ]
    }


@router.get("/launch")
async def launch(
    service: Annotated[CallService, Depends(get_call_service)],
    company_id: Annotated[str | None, Query(alias="companyId")] = None,
    phone: str | None = None,
    company_name: Annotated[str | None, Query(alias="companyName")] = None,
) -> Response:
    """Dial the company from the CRM card iframe, then show the live dashboard."""
    if not company_id or not phone:
        return _message_page(
            "⚠️ Missing Data",
            "Company ID or phone number not found. "
            "Please ensure the company record has a phone number.",
            400,
        )

    try:
        started = await service.start_call(phone, company_id, company_name)
    except TelephonyProviderError as e:
        logger.error("Launch failed", extra={"company_id": company_id, "error": str(e)})
        return _message_page("❌ Call Failed", str(e), 500)

    return RedirectResponse(url=started.dashboard_url, status_code=302)

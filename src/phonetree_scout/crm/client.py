"""
Async HubSpot CRM client.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from datetime import datetime, timezone
from typing import Any

import httpx

from phonetree_scout.crm.config import HubSpotConfig, get_hubspot_config
from phonetree_scout.crm.exceptions import CrmError
from phonetree_scout.shared.logging import get_logger

logger = get_logger(__name__)

NO_TRANSCRIPT = "(no transcript captured)"


@dataclass(frozen=True)
class CallNote:
    """Everything needed to file one mapping call on a company record."""

    company_id: str
    company_name: str
    to_number: str
    call_sid: str
    transcript_text: str
    duration_seconds: int | None = None

    def body(self) -> str:
        lines = [
            "📞 Phone Tree Mapping Call",
            f"Company: {self.company_name}",
            f"Number Dialed: {self.to_number}",
            f"Call SID: {self.call_sid}",
        ]
        if self.duration_seconds:
            lines.append(f"Duration: {self.duration_seconds}s")
        lines += [
            "",
            "── TRANSCRIPT ──",
            self.transcript_text or NO_TRANSCRIPT,
        ]
        return "\n".join(lines)


class HubSpotClient:
    """Thin wrapper over the HubSpot CRM v3 objects API."""

    def __init__(
        self,
        config: HubSpotConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or get_hubspot_config()
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._config.api_base_url,
                timeout=httpx.Timeout(self._config.timeout_seconds),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.access_token}",
            "Content-Type": "application/json",
        }

    def _url(self, path: str) -> str:
        return f"{self._config.api_base_url.rstrip('/')}{path}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        client = self._get_client()
        try:
            response = await client.request(method, self._url(path), headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            raise CrmError(f"HubSpot request failed: {e!s}") from e

        if response.status_code >= 400:
            try:
                body = response.json() if response.content else {}
            except ValueError:
                body = {"message": response.text}
            raise CrmError(
                body.get("message", f"HubSpot returned {response.status_code}"),
                status_code=response.status_code,
                response_body=body,
            )
        return response.json() if response.content else {}

    async def get_company(self, company_id: str) -> dict[str, Any]:
        """Fetch a company record with the properties the CRM card shows."""
        properties = ",".join(["name", "phone", self._config.mapping_property])
        return await self._request(
            "GET",
            f"/crm/v3/objects/companies/{company_id}",
            params={"properties": properties},
        )

    async def log_call_note(self, note: CallNote) -> dict[str, Any]:
        """Create a note on the company, then stamp the mapping property.

        A failed property update is logged and does not fail the note: the
        custom property may simply not exist in the portal yet.
        """
        payload = {
            "properties": {
                "hs_note_body": note.body(),
                "hs_timestamp": str(int(datetime.now(timezone.utc).timestamp() * 1000)),
            },
            "associations": [
                {
                    "to": {"id": note.company_id},
                    "types": [
                        {
                            "associationCategory": "HUBSPOT_DEFINED",
                            "associationTypeId": self._config.note_to_company_association_type_id,
                        }
                    ],
                }
            ],
        }
        created = await self._request("POST", "/crm/v3/objects/notes", json=payload)
        logger.info(
            "HubSpot note created",
            extra={"note_id": created.get("id"), "company_id": note.company_id},
        )

        try:
            await self._request(
                "PATCH",
                f"/crm/v3/objects/companies/{note.company_id}",
                json={
                    "properties": {
                        self._config.mapping_property: datetime.now(timezone.utc).isoformat(),
                    }
                },
            )
        except CrmError as e:
            logger.warning(
                "Could not update company mapping property",
                extra={
                    "company_id": note.company_id,
                    "property": self._config.mapping_property,
                    "error": str(e),
                },
            )
        return created


@lru_cache(maxsize=1)
def get_hubspot_client() -> HubSpotClient:
    return HubSpotClient()

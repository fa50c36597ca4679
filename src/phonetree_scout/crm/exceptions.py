"""
CRM errors.
"""

from typing import Any


class CrmError(Exception):
    """HubSpot request failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body or {}

"""
Telephony provider configuration.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderType(str, Enum):
    """Supported telephony provider types."""

    TWILIO = "twilio"
    MOCK = "mock"


class TelephonyConfig(BaseSettings):
    """Telephony provider configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TELEPHONY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider selection
    provider_type: ProviderType = Field(default=ProviderType.TWILIO)

    # Provider credentials
    twilio_account_sid: str = Field(default="")
    twilio_auth_token: str = Field(default="")
    twilio_from_number: str = Field(default="")
    twilio_api_base: str = Field(default="https://api.twilio.com/2010-04-01")

    # Webhook base URL (HTTP) used for Twilio Call.Url and callbacks
    webhook_base_url: str = Field(default="http://localhost:3000")

    # Call behaviour
    record_calls: bool = Field(default=True)
    gather_timeout_seconds: int = Field(default=60, ge=1, le=600)
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    prompt_text: str = Field(
        default="Connected. Listening for the phone tree. Press any key or speak to capture options.",
    )
    prompt_voice: str = Field(default="alice")

    # Reject webhooks whose X-Twilio-Signature does not match
    validate_signatures: bool = Field(default=False)

    def get_webhook_url(self, path: str = "/twilio/status") -> str:
        base = self.webhook_base_url.rstrip("/")
        return f"{base}{path}"


def get_telephony_config() -> TelephonyConfig:
    return TelephonyConfig()

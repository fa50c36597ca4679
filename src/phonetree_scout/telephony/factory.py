"""
Telephony provider factory.

Single source of truth for configuration: TelephonyConfig (pydantic-settings)
loaded from OS env + .env.
"""

from __future__ import annotations

from functools import lru_cache

from phonetree_scout.shared.logging import get_logger
from phonetree_scout.telephony.adapters.mock import MockTelephonyProvider
from phonetree_scout.telephony.config import ProviderType, TelephonyConfig
from phonetree_scout.telephony.config import get_telephony_config as _load_telephony_config
from phonetree_scout.telephony.interface import TelephonyProvider
from phonetree_scout.telephony.twilio_adapter import TwilioAdapter

logger = get_logger(__name__)


def _mask(s: str, keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return f"{s[:keep]}***"


@lru_cache(maxsize=1)
def get_telephony_config() -> TelephonyConfig:
    """Return the cached TelephonyConfig."""
    return _load_telephony_config()


def build_telephony_provider(cfg: TelephonyConfig) -> TelephonyProvider:
    if cfg.provider_type == ProviderType.TWILIO:
        return TwilioAdapter(cfg)

    if cfg.provider_type == ProviderType.MOCK:
        return MockTelephonyProvider(cfg)

    raise ValueError(f"Unsupported telephony provider_type: {cfg.provider_type}")


@lru_cache(maxsize=1)
def get_telephony_provider() -> TelephonyProvider:
    """Create and cache the telephony provider using TelephonyConfig."""
    cfg = get_telephony_config()

    logger.info(
        "Telephony config resolved",
        extra={
            "provider_type": cfg.provider_type.value,
            "twilio_account_sid": _mask(cfg.twilio_account_sid),
            "twilio_from_number": cfg.twilio_from_number,
            "webhook_base_url": cfg.webhook_base_url,
        },
    )

    return build_telephony_provider(cfg)


def close_telephony_provider() -> None:
    """Release the cached provider's HTTP client, if a provider was ever built."""
    if get_telephony_provider.cache_info().currsize == 0:
        return
    provider = get_telephony_provider()
    if isinstance(provider, TwilioAdapter):
        provider.close()
    get_telephony_provider.cache_clear()

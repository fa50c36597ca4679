"""
HubSpot CRM configuration.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HubSpotConfig(BaseSettings):
    """HubSpot private app configuration from environment."""

    model_config = SettingsConfigDict(
        env_prefix="HUBSPOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    access_token: str = Field(default="")
    api_base_url: str = Field(default="https://api.hubapi.com")
    timeout_seconds: float = Field(default=15.0, gt=0)

    # HubSpot-defined association type: Note -> Company
    note_to_company_association_type_id: int = Field(default=190)
    mapping_property: str = Field(
        default="last_phone_tree_mapping",
        description="Company property stamped with the time of the last mapping call.",
    )


def get_hubspot_config() -> HubSpotConfig:
    return HubSpotConfig()

"""Logfire settings for the Lending Library server."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ObservabilityConfig(BaseSettings):
    """
    Where and whether spans are exported.

    Read from ``LOGFIRE_TOKEN``, ``LOGFIRE_ENABLED``, ``LOGFIRE_CONSOLE``,
    ``LOGFIRE_SEND`` and ``ENVIRONMENT``. Spans stay local unless
    ``LOGFIRE_SEND`` is set, so a stdio server needs no token.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOGFIRE_",
        extra="ignore",
        populate_by_name=True,
    )

    token: str = ""
    enabled: bool = True
    console: bool = False
    send_to_logfire: bool = Field(
        default=False,
        validation_alias=AliasChoices("send_to_logfire", "LOGFIRE_SEND"),
    )
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("environment", "ENVIRONMENT"),
    )

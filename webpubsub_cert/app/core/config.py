"""
Centralized configuration for the Web PubSub custom certificate provider.

Pydantic v2 settings management: strict validation, no secret leakage in
logs, and fast failure on invalid configuration at startup.
"""

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import AnyHttpUrl, Field, SecretStr, StringConstraints
from pydantic_settings import BaseSettings, SettingsConfigDict


# -------------------------------------------------------------------------
# Reusable Type Aliases
# -------------------------------------------------------------------------

EnvRequired = Annotated[
    str,
    StringConstraints(min_length=1, strip_whitespace=True),
]

SensitiveEnv = Annotated[
    SecretStr,
    Field(description="Sensitive credential, redacted from logs"),
]

SubscriptionID = Annotated[
    str,
    Field(
        pattern=r"^[0-9a-fA-F-]{36}$",
        description="Azure subscription GUID used for Key Vault lookups",
    ),
]


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Provider settings parsed from the environment.

    Fails fast at startup if Entra ID credentials or the subscription
    used to resolve Key Vault identities are missing or malformed.
    """

    # ---------------------------------------------------------------------
    # Microsoft Entra ID (Azure AD) Credentials
    # ---------------------------------------------------------------------

    azure_tenant_id: EnvRequired
    azure_client_id: EnvRequired
    azure_client_secret: SensitiveEnv

    # ---------------------------------------------------------------------
    # Azure Resource Manager
    # ---------------------------------------------------------------------

    subscription_id: SubscriptionID

    arm_endpoint: Annotated[
        AnyHttpUrl,
        Field(
            default="https://management.azure.com",
            description="Azure Resource Manager control-plane endpoint",
        ),
    ]

    # ---------------------------------------------------------------------
    # Network Egress
    # ---------------------------------------------------------------------

    https_proxy: Annotated[
        Optional[AnyHttpUrl],
        Field(
            default=None,
            description="Optional outbound HTTPS proxy for ARM requests",
        ),
    ]

    http_timeout_seconds: Annotated[
        float,
        Field(
            default=60.0,
            gt=0,
            le=300,
            description="Per-request timeout for ARM calls",
        ),
    ]

    model_config = SettingsConfigDict(
        env_prefix="WPSCERT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @property
    def arm_base_url(self) -> str:
        return str(self.arm_endpoint).rstrip("/")


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings singleton."""
    return Settings()

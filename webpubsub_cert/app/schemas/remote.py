"""
ARM wire models for Microsoft.SignalRService/webPubSub/customCertificates.

Field names follow Python conventions; aliases carry the camelCase names
used on the wire.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class CustomCertificateProperties(BaseModel):
    key_vault_base_uri: str = Field(..., alias="keyVaultBaseUri")
    key_vault_secret_name: str = Field(..., alias="keyVaultSecretName")

    # Absent means the service tracks the latest secret version.
    key_vault_secret_version: Optional[str] = Field(
        default=None,
        alias="keyVaultSecretVersion",
    )

    # Read-only
    provisioning_state: Optional[str] = Field(
        default=None,
        alias="provisioningState",
    )

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


class CustomCertificate(BaseModel):
    properties: CustomCertificateProperties

    # Read-only
    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )

    def to_request_body(self) -> Dict[str, Any]:
        """PUT payload: writable properties only."""
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            include={
                "properties": {
                    "key_vault_base_uri",
                    "key_vault_secret_name",
                    "key_vault_secret_version",
                }
            },
        )


class CustomCertificateResponse(BaseModel):
    """Outcome of a successful GET; ``model`` is None when the body was empty."""

    status_code: int
    model: Optional[CustomCertificate] = None

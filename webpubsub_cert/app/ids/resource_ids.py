"""
Azure Resource Manager identifiers used by the custom certificate binding.

Each identifier is a frozen value object with a ``parse`` constructor and
an ``id()`` formatter. Static segments are matched case-sensitively and
parse/format round-trip exactly.

Formats:
  /subscriptions/{sub}/resourceGroups/{rg}/providers/Microsoft.SignalRService/webPubSub/{name}
  .../webPubSub/{name}/customCertificates/{certName}
  /subscriptions/{sub}/resourceGroups/{rg}/providers/Microsoft.KeyVault/vaults/{vault}
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List


_SEGMENT = r"[^/]+"

_WEB_PUBSUB_PATTERN = (
    rf"/subscriptions/(?P<subscription_id>{_SEGMENT})"
    rf"/resourceGroups/(?P<resource_group_name>{_SEGMENT})"
    r"/providers/Microsoft\.SignalRService"
    rf"/webPubSub/(?P<web_pubsub_name>{_SEGMENT})"
)

_WEB_PUBSUB_RE = re.compile(rf"^{_WEB_PUBSUB_PATTERN}$")

_CUSTOM_CERTIFICATE_RE = re.compile(
    rf"^{_WEB_PUBSUB_PATTERN}"
    rf"/customCertificates/(?P<custom_certificate_name>{_SEGMENT})$"
)

_KEY_VAULT_RE = re.compile(
    rf"^/subscriptions/(?P<subscription_id>{_SEGMENT})"
    rf"/resourceGroups/(?P<resource_group_name>{_SEGMENT})"
    r"/providers/Microsoft\.KeyVault"
    rf"/vaults/(?P<vault_name>{_SEGMENT})$"
)


def _match(pattern: re.Pattern, value: Any, kind: str) -> dict[str, str]:
    if not isinstance(value, str):
        raise ValueError(f"expected a string {kind} ID, got {type(value).__name__}")

    match = pattern.match(value)
    if match is None:
        raise ValueError(f"parsing {value!r}: not a valid {kind} ID")

    return match.groupdict()


@dataclass(frozen=True)
class WebPubSubId:
    subscription_id: str
    resource_group_name: str
    web_pubsub_name: str

    @classmethod
    def parse(cls, value: Any) -> WebPubSubId:
        return cls(**_match(_WEB_PUBSUB_RE, value, "Web PubSub"))

    def id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group_name}"
            f"/providers/Microsoft.SignalRService"
            f"/webPubSub/{self.web_pubsub_name}"
        )

    def __str__(self) -> str:
        return f"Web PubSub {self.web_pubsub_name!r} (Resource Group {self.resource_group_name!r})"


@dataclass(frozen=True)
class CustomCertificateId:
    """Identity of one custom certificate binding; the persisted state key."""

    subscription_id: str
    resource_group_name: str
    web_pubsub_name: str
    custom_certificate_name: str

    @classmethod
    def parse(cls, value: Any) -> CustomCertificateId:
        return cls(**_match(_CUSTOM_CERTIFICATE_RE, value, "Custom Certificate"))

    @classmethod
    def for_service(cls, service: WebPubSubId, name: str) -> CustomCertificateId:
        return cls(
            subscription_id=service.subscription_id,
            resource_group_name=service.resource_group_name,
            web_pubsub_name=service.web_pubsub_name,
            custom_certificate_name=name,
        )

    @property
    def service_id(self) -> WebPubSubId:
        return WebPubSubId(
            subscription_id=self.subscription_id,
            resource_group_name=self.resource_group_name,
            web_pubsub_name=self.web_pubsub_name,
        )

    def id(self) -> str:
        return f"{self.service_id.id()}/customCertificates/{self.custom_certificate_name}"

    def __str__(self) -> str:
        return (
            f"Custom Certificate {self.custom_certificate_name!r} "
            f"(Web PubSub {self.web_pubsub_name!r} / "
            f"Resource Group {self.resource_group_name!r})"
        )


@dataclass(frozen=True)
class KeyVaultId:
    subscription_id: str
    resource_group_name: str
    vault_name: str

    @classmethod
    def parse(cls, value: Any) -> KeyVaultId:
        return cls(**_match(_KEY_VAULT_RE, value, "Key Vault"))

    def id(self) -> str:
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group_name}"
            f"/providers/Microsoft.KeyVault"
            f"/vaults/{self.vault_name}"
        )


# ----------------------------------------------------------------------
# Schema validators
#
# Validators take the raw value and the attribute key and return a list
# of error messages; an empty list means the value is valid.
# ----------------------------------------------------------------------

def validate_web_pubsub_id(value: Any, key: str) -> List[str]:
    try:
        WebPubSubId.parse(value)
    except ValueError as exc:
        return [f"{key}: {exc}"]
    return []


def validate_custom_certificate_id(value: Any, key: str) -> List[str]:
    try:
        CustomCertificateId.parse(value)
    except ValueError as exc:
        return [f"{key}: {exc}"]
    return []

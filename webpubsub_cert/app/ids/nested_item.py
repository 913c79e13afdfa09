"""
Key Vault nested item identifiers (secrets, certificates, keys).

Versioned:    https://vault1.vault.azure.net/certificates/mycert/abc123
Versionless:  https://vault1.vault.azure.net/certificates/mycert
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List
from urllib.parse import urlsplit


@dataclass(frozen=True)
class NestedItemId:
    key_vault_base_url: str
    nested_item_type: str
    name: str
    version: str = ""

    @classmethod
    def from_parts(
        cls,
        key_vault_base_url: str,
        nested_item_type: str,
        name: str,
        version: str = "",
    ) -> NestedItemId:
        """
        Build an identifier from a vault base URL returned by a service.

        Some services append the port to the vault host; it is stripped
        so the result matches the identifier Key Vault itself reports.
        """
        if not key_vault_base_url:
            raise ValueError("parsing '': Key Vault base URL is empty")

        try:
            parts = urlsplit(key_vault_base_url)
        except ValueError as exc:
            raise ValueError(f"parsing {key_vault_base_url!r}: {exc}") from exc

        if not parts.scheme or not parts.netloc:
            raise ValueError(
                f"parsing {key_vault_base_url!r}: expected an absolute URL"
            )

        host = parts.netloc.split(":")[0]
        base_url = parts._replace(netloc=host).geturl()

        return cls(
            key_vault_base_url=base_url,
            nested_item_type=nested_item_type,
            name=name,
            version=version,
        )

    @classmethod
    def parse(cls, value: Any) -> NestedItemId:
        """Parse an identifier that must carry a version."""
        item = cls.parse_optionally_versioned(value)
        if not item.version:
            raise ValueError(
                "expected a key vault versioned ID but no version "
                f"information was found in: {value!r}"
            )
        return item

    @classmethod
    def parse_optionally_versioned(cls, value: Any) -> NestedItemId:
        """Parse an identifier with or without a trailing version."""
        if not isinstance(value, str):
            raise ValueError(
                f"expected a string Key Vault item ID, got {type(value).__name__}"
            )

        try:
            parts = urlsplit(value)
        except ValueError as exc:
            raise ValueError(f"cannot parse Azure KeyVault Child Id: {exc}") from exc

        if not parts.scheme or not parts.netloc:
            raise ValueError(
                f"cannot parse Azure KeyVault Child Id: {value!r} is not an absolute URL"
            )

        components = parts.path.strip("/").split("/")
        if len(components) not in (2, 3) or not all(components):
            count = len([c for c in components if c])
            raise ValueError(
                "KeyVault Nested Item should contain 2 or 3 segments, "
                f"found {count} segment(s) in {value!r}"
            )

        return cls(
            key_vault_base_url=f"{parts.scheme}://{parts.netloc}/",
            nested_item_type=components[0],
            name=components[1],
            version=components[2] if len(components) == 3 else "",
        )

    def id(self) -> str:
        segments = [
            self.key_vault_base_url.rstrip("/"),
            self.nested_item_type,
            self.name,
        ]
        if self.version:
            segments.append(self.version)
        return "/".join(segments).rstrip("/")

    def same_item(self, other: NestedItemId) -> bool:
        """True when both identifiers name the same vault and item, ignoring kind and version."""
        return (
            self.key_vault_base_url.rstrip("/").lower()
            == other.key_vault_base_url.rstrip("/").lower()
            and self.name == other.name
        )


# ----------------------------------------------------------------------
# Schema validators
# ----------------------------------------------------------------------

def _validator(parse: Callable[[Any], NestedItemId]) -> Callable[[Any, str], List[str]]:
    def validate(value: Any, key: str) -> List[str]:
        if not isinstance(value, str) or not value:
            return [f"expected {key!r} to be a non-empty string"]
        try:
            parse(value)
        except ValueError as exc:
            return [f"parsing {value!r}: {exc}"]
        return []

    return validate


validate_nested_item_id = _validator(NestedItemId.parse)
validate_nested_item_id_with_optional_version = _validator(
    NestedItemId.parse_optionally_versioned
)


def any_of(*validators: Callable[[Any, str], List[str]]) -> Callable[[Any, str], List[str]]:
    """Accept the value when any validator accepts it; otherwise report every error."""

    def validate(value: Any, key: str) -> List[str]:
        errors: List[str] = []
        for validator in validators:
            found = validator(value, key)
            if not found:
                return []
            errors.extend(found)
        return errors

    return validate

"""
Resolve a Key Vault base URI to the vault's ARM resource identifier.

Services that reference Key Vault content store only the vault's network
address. The ARM identity is recovered by listing vaults with a matching
name in the configured subscription and confirming the vault exists.
"""

import logging
from typing import Any, Optional
from urllib.parse import urlsplit

from webpubsub_cert.app.ids import KeyVaultId
from webpubsub_cert.app.services.arm import ArmClient, ArmRequestError

logger = logging.getLogger("webpubsub_cert.vault_resolver")


class KeyVaultIdResolver(ArmClient):

    RESOURCES_API_VERSION = "2022-09-01"
    VAULTS_API_VERSION = "2023-07-01"
    PAGE_SIZE = 5

    async def key_vault_id_from_base_url(
        self,
        base_url: str,
        *,
        correlation_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Return the vault ID for ``base_url``, or None when no vault matches.

        Raises ``ValueError`` for a malformed base URL and
        ``ArmRequestError`` when ARM lookups fail.
        """
        vault_name = self.vault_name_from_base_url(base_url)

        action = f"listing Key Vaults named {vault_name!r}"

        # First page: the whole query travels in params.
        next_url: Optional[str] = (
            f"{self.base_url}/subscriptions/{self.settings.subscription_id}/resources"
        )
        params: Optional[dict[str, Any]] = {
            "api-version": self.RESOURCES_API_VERSION,
            "$filter": (
                "resourceType eq 'Microsoft.KeyVault/vaults' "
                f"and name eq '{vault_name}'"
            ),
            "$top": self.PAGE_SIZE,
        }

        while next_url:
            response = await self._send(
                "GET",
                next_url,
                params=params,
                correlation_id=correlation_id,
            )
            self.raise_for_arm_status(response, action=action)

            page = self._json_object(response, action=action)

            for entry in page.get("value") or []:
                raw_id = entry.get("id") if isinstance(entry, dict) else None
                if not raw_id:
                    continue

                try:
                    vault_id = KeyVaultId.parse(raw_id)
                except ValueError as exc:
                    raise ArmRequestError(
                        f"parsing Key Vault ID {raw_id!r}: {exc}"
                    ) from exc

                if vault_id.vault_name.lower() != vault_name.lower():
                    continue

                await self._ensure_vault_uri(vault_id, correlation_id=correlation_id)

                logger.info(
                    "key_vault_resolved",
                    extra={
                        "base_url": base_url,
                        "vault_id": vault_id.id(),
                        "trace_id": correlation_id,
                    },
                )
                return vault_id.id()

            # nextLink already carries the query string
            next_url = page.get("nextLink")
            params = None

        logger.info(
            "key_vault_not_found",
            extra={"base_url": base_url, "trace_id": correlation_id},
        )
        return None

    @staticmethod
    def vault_name_from_base_url(base_url: str) -> str:
        try:
            host = urlsplit(base_url).hostname
        except ValueError as exc:
            raise ValueError(f"parsing Key Vault base URL {base_url!r}: {exc}") from exc

        if not host:
            raise ValueError(f"parsing Key Vault base URL {base_url!r}: missing host")

        return host.split(".")[0]

    async def _ensure_vault_uri(
        self,
        vault_id: KeyVaultId,
        *,
        correlation_id: Optional[str],
    ) -> str:
        action = f"retrieving Key Vault {vault_id.id()}"

        response = await self._send(
            "GET",
            self._url(vault_id.id(), self.VAULTS_API_VERSION),
            correlation_id=correlation_id,
        )
        self.raise_for_arm_status(response, action=action)

        body = self._json_object(response, action=action)
        properties = body.get("properties")
        vault_uri = properties.get("vaultUri") if isinstance(properties, dict) else None
        if not vault_uri:
            raise ArmRequestError(f"{action}: `properties.vaultUri` was nil")
        return vault_uri

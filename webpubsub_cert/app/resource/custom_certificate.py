"""
Web PubSub custom certificate binding.

Maps the declarative ``Binding`` record onto the ARM custom certificate
object and back. Create refuses to adopt an object that already exists
(it must be imported instead). Read reconstructs the secret reference
from the remote object and resolves the owning Key Vault. Delete issues a
single delete request. There is no update: every argument is write-once.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pydantic import ValidationError

from webpubsub_cert.app.ids import (
    CustomCertificateId,
    KeyVaultId,
    NestedItemId,
    WebPubSubId,
    validate_custom_certificate_id,
)
from webpubsub_cert.app.resource.errors import (
    BindingDecodeError,
    IdentifierParseError,
    IntegrityError,
    RemoteLookupError,
    ResourceCreationError,
    ResourceDeletionError,
    ResourceRequiresImportError,
    VaultResolutionError,
)
from webpubsub_cert.app.schemas.arguments import (
    ARGUMENTS,
    ATTRIBUTES,
    SchemaField,
    validate_config,
)
from webpubsub_cert.app.schemas.binding import Binding, BindingConfig
from webpubsub_cert.app.schemas.remote import (
    CustomCertificate,
    CustomCertificateProperties,
    CustomCertificateResponse,
)
from webpubsub_cert.app.services.arm import ARM_CALL_ERRORS, ArmNotFoundError

logger = logging.getLogger("webpubsub_cert.resource")


# ----------------------------------------------------------------------
# Collaborators
# ----------------------------------------------------------------------

class CustomCertificatesApi(Protocol):
    async def get(
        self,
        id: CustomCertificateId,
        *,
        correlation_id: Optional[str] = None,
    ) -> CustomCertificateResponse:
        ...

    async def create_or_update_then_poll(
        self,
        id: CustomCertificateId,
        model: CustomCertificate,
        *,
        correlation_id: Optional[str] = None,
    ) -> None:
        ...

    async def delete(
        self,
        id: CustomCertificateId,
        *,
        correlation_id: Optional[str] = None,
    ) -> None:
        ...


class VaultIdentifierResolver(Protocol):
    async def key_vault_id_from_base_url(
        self,
        base_url: str,
        *,
        correlation_id: Optional[str] = None,
    ) -> Optional[str]:
        ...


# ----------------------------------------------------------------------
# Resource
# ----------------------------------------------------------------------

class CustomCertificateResource:
    """Lifecycle of ``azurerm_web_pubsub_custom_certificate``."""

    RESOURCE_TYPE = "azurerm_web_pubsub_custom_certificate"

    # Item kind used when reconstructing the secret reference.
    ITEM_KIND = "certificates"

    CREATE_TIMEOUT = timedelta(minutes=30)
    READ_TIMEOUT = timedelta(minutes=5)
    DELETE_TIMEOUT = timedelta(minutes=30)

    def __init__(
        self,
        *,
        api: CustomCertificatesApi,
        vault_resolver: VaultIdentifierResolver,
    ) -> None:
        self._api = api
        self._vault_resolver = vault_resolver

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    @property
    def arguments(self) -> Dict[str, SchemaField]:
        return ARGUMENTS

    @property
    def attributes(self) -> Dict[str, SchemaField]:
        return ATTRIBUTES

    def validate_config(self, raw: Mapping[str, Any]) -> List[str]:
        return validate_config(raw)

    def validate_resource_id(self, value: Any, key: str = "id") -> List[str]:
        """Validate an identifier supplied for import before Read runs."""
        return validate_custom_certificate_id(value, key)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(
        self,
        raw: Mapping[str, Any],
        *,
        correlation_id: Optional[str] = None,
    ) -> str:
        """Create the binding and return the resource ID the host persists."""
        try:
            config = BindingConfig.model_validate(dict(raw))
        except ValidationError as exc:
            raise BindingDecodeError(f"decoding: {exc}", operation="create") from exc

        try:
            service_id = WebPubSubId.parse(config.parent_service_id)
        except ValueError as exc:
            raise IdentifierParseError(
                f"parsing web pubsub service id error: {exc}",
                operation="create",
            ) from exc

        try:
            secret_ref = NestedItemId.parse_optionally_versioned(config.secret_reference_id)
        except ValueError as exc:
            raise IdentifierParseError(
                f"parsing custom certificate id error: {exc}",
                operation="create",
            ) from exc

        id = CustomCertificateId.for_service(service_id, config.name)
        resource_id = id.id()

        try:
            await self._api.get(id, correlation_id=correlation_id)
        except ArmNotFoundError:
            pass
        except ARM_CALL_ERRORS as exc:
            raise RemoteLookupError(
                f"checking for existing {id}: {exc}",
                operation="create",
                resource_id=resource_id,
            ) from exc
        else:
            logger.warning(
                "custom_certificate_requires_import",
                extra={"resource_id": resource_id, "trace_id": correlation_id},
            )
            raise ResourceRequiresImportError(self.RESOURCE_TYPE, resource_id)

        model = CustomCertificate(
            properties=CustomCertificateProperties(
                key_vault_base_uri=secret_ref.key_vault_base_url,
                key_vault_secret_name=secret_ref.name,
                key_vault_secret_version=secret_ref.version or None,
            )
        )

        try:
            await self._api.create_or_update_then_poll(
                id,
                model,
                correlation_id=correlation_id,
            )
        except ARM_CALL_ERRORS as exc:
            raise ResourceCreationError(
                f"creating web pubsub custom certificate: {id}: {exc}",
                operation="create",
                resource_id=resource_id,
            ) from exc

        logger.info(
            "custom_certificate_created",
            extra={
                "resource_id": resource_id,
                "pinned_version": bool(secret_ref.version),
                "trace_id": correlation_id,
            },
        )
        return resource_id

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def read(
        self,
        resource_id: str,
        *,
        prior_state: Optional[Binding] = None,
        correlation_id: Optional[str] = None,
    ) -> Optional[Binding]:
        """
        Refresh the binding from the remote object.

        Returns None when the remote object no longer exists; the host
        removes the binding from state.
        """
        id = self._parse_id(resource_id, operation="read")

        try:
            response = await self._api.get(id, correlation_id=correlation_id)
        except ArmNotFoundError:
            logger.info(
                "custom_certificate_gone",
                extra={"resource_id": resource_id, "trace_id": correlation_id},
            )
            return None
        except ARM_CALL_ERRORS as exc:
            raise RemoteLookupError(
                f"retrieving {id}: {exc}",
                operation="read",
                resource_id=resource_id,
            ) from exc

        if response.model is None:
            raise IntegrityError(
                f"retrieving {id}: got nil model",
                operation="read",
                resource_id=resource_id,
            )

        properties = response.model.properties
        vault_base_uri = properties.key_vault_base_uri
        cert_name = properties.key_vault_secret_name

        await self._resolve_vault(
            vault_base_uri,
            id=id,
            correlation_id=correlation_id,
        )

        cert_version = properties.key_vault_secret_version or ""

        try:
            nested_item = NestedItemId.from_parts(
                vault_base_uri,
                self.ITEM_KIND,
                cert_name,
                cert_version,
            )
        except ValueError as exc:
            raise IntegrityError(
                f"retrieving {id}: {exc}",
                operation="read",
                resource_id=resource_id,
            ) from exc

        nested_item = self._keep_configured_kind(nested_item, prior_state)

        return Binding(
            name=id.custom_certificate_name,
            parent_service_id=id.service_id.id(),
            secret_reference_id=nested_item.id(),
            secret_version=cert_version,
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(
        self,
        resource_id: str,
        *,
        correlation_id: Optional[str] = None,
    ) -> None:
        id = self._parse_id(resource_id, operation="delete")

        try:
            await self._api.delete(id, correlation_id=correlation_id)
        except ARM_CALL_ERRORS as exc:
            raise ResourceDeletionError(
                f"deleting {id}: {exc}",
                operation="delete",
                resource_id=resource_id,
            ) from exc

        logger.info(
            "custom_certificate_deleted",
            extra={"resource_id": resource_id, "trace_id": correlation_id},
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_id(resource_id: str, *, operation: str) -> CustomCertificateId:
        try:
            return CustomCertificateId.parse(resource_id)
        except ValueError as exc:
            raise IdentifierParseError(
                str(exc),
                operation=operation,
                resource_id=resource_id,
            ) from exc

    async def _resolve_vault(
        self,
        vault_base_uri: str,
        *,
        id: CustomCertificateId,
        correlation_id: Optional[str],
    ) -> KeyVaultId:
        try:
            raw_vault_id = await self._vault_resolver.key_vault_id_from_base_url(
                vault_base_uri,
                correlation_id=correlation_id,
            )
        except ARM_CALL_ERRORS + (ValueError,) as exc:
            raise VaultResolutionError(
                f"getting key vault base uri from {id}: {exc}",
                operation="read",
                resource_id=id.id(),
            ) from exc

        if raw_vault_id is None:
            raise VaultResolutionError(
                f"getting key vault base uri from {id}: "
                f"no Key Vault found for {vault_base_uri!r}",
                operation="read",
                resource_id=id.id(),
            )

        try:
            return KeyVaultId.parse(raw_vault_id)
        except ValueError as exc:
            raise VaultResolutionError(
                f"parsing key vault {raw_vault_id!r}: {exc}",
                operation="read",
                resource_id=id.id(),
            ) from exc

    @staticmethod
    def _keep_configured_kind(
        item: NestedItemId,
        prior_state: Optional[Binding],
    ) -> NestedItemId:
        if prior_state is None:
            return item

        try:
            configured = NestedItemId.parse_optionally_versioned(
                prior_state.secret_reference_id
            )
        except ValueError:
            return item

        if not configured.same_item(item) or configured.nested_item_type == item.nested_item_type:
            return item

        return NestedItemId(
            key_vault_base_url=item.key_vault_base_url,
            nested_item_type=configured.nested_item_type,
            name=item.name,
            version=item.version,
        )

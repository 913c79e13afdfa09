"""
Errors raised by the custom certificate binding lifecycle.

Every error carries the lifecycle operation and, once it is known, the
resource identifier involved, so the host can report it against the
right resource and phase.
"""

from __future__ import annotations

from typing import Optional


class CustomCertificateError(RuntimeError):
    """Base class for lifecycle failures."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        resource_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.resource_id = resource_id


class BindingDecodeError(CustomCertificateError):
    """The configuration record does not have the expected shape."""


class IdentifierParseError(CustomCertificateError):
    """An identifier string is malformed."""


class RemoteLookupError(CustomCertificateError):
    """Retrieving the remote object failed for a reason other than not-found."""


class ResourceRequiresImportError(CustomCertificateError):
    """An object already exists at the identifier a new binding would claim."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"A resource with the ID {resource_id!r} already exists - to be "
            "managed this resource needs to be imported into the state. "
            f"Please see the resource documentation for {resource_type!r} "
            "for more information.",
            operation="create",
            resource_id=resource_id,
        )
        self.resource_type = resource_type


class ResourceCreationError(CustomCertificateError):
    """Submitting or polling the create-or-update operation failed."""


class ResourceDeletionError(CustomCertificateError):
    """The delete request did not succeed."""


class IntegrityError(CustomCertificateError):
    """A success response arrived without a payload."""


class VaultResolutionError(CustomCertificateError):
    """The Key Vault base URI could not be resolved to a vault identifier."""


class ResourceTimeoutError(CustomCertificateError):
    """A lifecycle operation exceeded its timeout."""

    def __init__(
        self,
        *,
        operation: str,
        resource_id: Optional[str],
        timeout_seconds: float,
    ) -> None:
        target = resource_id or "custom certificate"
        super().__init__(
            f"timeout while waiting for {operation} of {target} "
            f"after {timeout_seconds:.0f}s",
            operation=operation,
            resource_id=resource_id,
        )
        self.timeout_seconds = timeout_seconds

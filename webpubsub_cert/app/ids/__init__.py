from .resource_ids import (
    CustomCertificateId,
    KeyVaultId,
    WebPubSubId,
    validate_custom_certificate_id,
    validate_web_pubsub_id,
)
from .nested_item import (
    NestedItemId,
    any_of,
    validate_nested_item_id,
    validate_nested_item_id_with_optional_version,
)

__all__ = [
    "CustomCertificateId",
    "KeyVaultId",
    "WebPubSubId",
    "NestedItemId",
    "any_of",
    "validate_custom_certificate_id",
    "validate_web_pubsub_id",
    "validate_nested_item_id",
    "validate_nested_item_id_with_optional_version",
]

"""
Schema descriptors handed to the declarative host.

The host uses ``force_new`` to turn any argument change into a
destroy-and-recreate, and runs each validator at plan time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from webpubsub_cert.app.ids import (
    any_of,
    validate_nested_item_id,
    validate_nested_item_id_with_optional_version,
    validate_web_pubsub_id,
)

Validator = Callable[[Any, str], List[str]]


def validate_string_is_not_empty(value: Any, key: str) -> List[str]:
    if not isinstance(value, str):
        return [f"expected type of {key} to be string"]
    if value == "":
        return [f"expected {key!r} to not be an empty string"]
    return []


@dataclass(frozen=True)
class SchemaField:
    type: str = "string"
    required: bool = False
    force_new: bool = False
    computed: bool = False
    validate: Optional[Validator] = None

    def describe(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "required": self.required,
            "force_new": self.force_new,
            "computed": self.computed,
        }


ARGUMENTS: Dict[str, SchemaField] = {
    "name": SchemaField(
        required=True,
        force_new=True,
        validate=validate_string_is_not_empty,
    ),
    "parent_service_id": SchemaField(
        required=True,
        force_new=True,
        validate=validate_web_pubsub_id,
    ),
    "secret_reference_id": SchemaField(
        required=True,
        force_new=True,
        validate=any_of(
            validate_nested_item_id,
            validate_nested_item_id_with_optional_version,
        ),
    ),
}

ATTRIBUTES: Dict[str, SchemaField] = {
    "secret_version": SchemaField(computed=True),
}


def validate_config(raw: Mapping[str, Any]) -> List[str]:
    """Run every argument validator; an empty result means the config is valid."""
    errors: List[str] = []

    unknown = sorted(set(raw) - set(ARGUMENTS))
    for key in unknown:
        errors.append(f"{key}: unsupported argument")

    for key, field in ARGUMENTS.items():
        if key not in raw or raw[key] is None:
            if field.required:
                errors.append(f"{key}: required argument is missing")
            continue

        if field.validate is not None:
            errors.extend(field.validate(raw[key], key))

    return errors

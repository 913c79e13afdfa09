"""
Binding records.

``BindingConfig`` is the typed configuration decoded once from the raw
user configuration. ``Binding`` is the full record persisted by the host,
including the computed ``secret_version`` attribute. State is converted
explicitly with ``serialize_binding`` / ``deserialize_binding``.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field


class BindingConfig(BaseModel):
    """User-declared arguments. All three are write-once."""

    name: str = Field(..., min_length=1)
    parent_service_id: str = Field(..., min_length=1)
    secret_reference_id: str = Field(..., min_length=1)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        strict=True,
    )


class Binding(BindingConfig):
    """Arguments plus attributes, as reported by Read."""

    secret_version: str = ""


def serialize_binding(binding: Binding) -> Dict[str, Any]:
    return binding.model_dump(mode="json")


def deserialize_binding(state: Mapping[str, Any]) -> Binding:
    return Binding.model_validate(dict(state))

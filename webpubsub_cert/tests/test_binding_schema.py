import pytest
from pydantic import ValidationError

from webpubsub_cert.app.schemas.arguments import ARGUMENTS, ATTRIBUTES, validate_config
from webpubsub_cert.app.schemas.binding import (
    Binding,
    BindingConfig,
    deserialize_binding,
    serialize_binding,
)
from webpubsub_cert.tests.fakes import SERVICE_ID, make_config


def test_every_argument_forces_replacement():
    assert set(ARGUMENTS) == {"name", "parent_service_id", "secret_reference_id"}
    assert all(field.required and field.force_new for field in ARGUMENTS.values())

    assert ATTRIBUTES["secret_version"].describe() == {
        "type": "string",
        "required": False,
        "force_new": False,
        "computed": True,
    }


def test_valid_config_has_no_errors():
    assert validate_config(make_config()) == []
    assert validate_config(
        make_config(secret_reference_id="https://vault1.vault.azure.net/secrets/mycert")
    ) == []


def test_config_errors_are_collected_per_argument():
    errors = validate_config(
        {
            "name": "",
            "parent_service_id": SERVICE_ID + "/customCertificates/cert1",
            "colour": "blue",
        }
    )

    assert errors[0] == "colour: unsupported argument"
    assert "expected 'name' to not be an empty string" in errors
    assert any(e.startswith("parent_service_id: ") for e in errors)
    assert "secret_reference_id: required argument is missing" in errors


def test_binding_config_rejects_wrong_shapes():
    with pytest.raises(ValidationError):
        BindingConfig.model_validate(make_config(name=""))

    with pytest.raises(ValidationError):
        BindingConfig.model_validate(make_config(name=3))

    with pytest.raises(ValidationError):
        BindingConfig.model_validate({**make_config(), "secret_version": "abc"})


def test_binding_state_survives_serialization():
    binding = Binding(**make_config(), secret_version="abc123")

    state = serialize_binding(binding)

    assert state == {**make_config(), "secret_version": "abc123"}
    assert deserialize_binding(state) == binding


def test_state_without_secret_version_defaults_to_empty():
    assert deserialize_binding(make_config()).secret_version == ""


def test_whitespace_name_is_accepted_by_validator_and_decoder():
    config = make_config(name="  ")

    assert validate_config(config) == []
    assert BindingConfig.model_validate(config).name == "  "

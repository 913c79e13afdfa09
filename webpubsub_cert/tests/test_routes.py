"""
HTTP surface tests.

The app is built without running its lifespan; the resource is wired to
in-memory doubles on ``app.state``.
"""

import pytest
from fastapi.testclient import TestClient

from webpubsub_cert.app.main import create_app
from webpubsub_cert.app.resource.custom_certificate import CustomCertificateResource
from webpubsub_cert.tests.fakes import (
    CERT_ID,
    SERVICE_ID,
    FakeCustomCertificatesApi,
    FakeVaultResolver,
    make_config,
)

SECRET_REF = "https://vault1.vault.azure.net/secrets/mycert/abc123"
CERT_REF = "https://vault1.vault.azure.net/certificates/mycert/abc123"


@pytest.fixture
def api():
    return FakeCustomCertificatesApi()


@pytest.fixture
def client(api):
    app = create_app()
    app.state.resource = CustomCertificateResource(
        api=api,
        vault_resolver=FakeVaultResolver(),
    )
    return TestClient(app)


def test_create_returns_identifier_and_refreshed_state(client):
    response = client.post(
        "/custom-certificates",
        json=make_config(),
        headers={"X-Correlation-ID": "trace-create"},
    )

    assert response.status_code == 201
    assert response.headers["X-Correlation-ID"] == "trace-create"
    assert response.json() == {
        "id": CERT_ID,
        "state": {
            "name": "cert1",
            "parent_service_id": SERVICE_ID,
            "secret_reference_id": SECRET_REF,
            "secret_version": "abc123",
        },
    }


def test_duplicate_create_is_a_conflict(client, api):
    assert client.post("/custom-certificates", json=make_config()).status_code == 201

    response = client.post("/custom-certificates", json=make_config())

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["operation"] == "create"
    assert detail["resource_id"] == CERT_ID
    assert api.mutations == [("put", CERT_ID)]


def test_invalid_config_is_unprocessable(client, api):
    response = client.post(
        "/custom-certificates",
        json=make_config(parent_service_id="not-an-id"),
    )

    assert response.status_code == 422
    assert api.calls == []


def test_import_read_and_refresh(client):
    client.post("/custom-certificates", json=make_config())

    imported = client.get("/custom-certificates", params={"id": CERT_ID})
    assert imported.status_code == 200
    assert imported.json()["state"]["secret_reference_id"] == CERT_REF

    refreshed = client.post(
        "/custom-certificates/refresh",
        json={"id": CERT_ID, "state": {**make_config(), "secret_version": "abc123"}},
    )
    assert refreshed.status_code == 200
    assert refreshed.json()["state"]["secret_reference_id"] == SECRET_REF


def test_refresh_rejects_malformed_prior_state(client):
    response = client.post(
        "/custom-certificates/refresh",
        json={"id": CERT_ID, "state": {"name": "cert1"}},
    )

    assert response.status_code == 422


def test_read_of_absent_binding_is_not_found(client):
    response = client.get("/custom-certificates", params={"id": CERT_ID})

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "gone"


def test_delete_then_read(client):
    client.post("/custom-certificates", json=make_config())

    response = client.delete("/custom-certificates", params={"id": CERT_ID})
    assert response.status_code == 204

    assert client.get("/custom-certificates", params={"id": CERT_ID}).status_code == 404


def test_delete_with_malformed_id(client):
    response = client.delete("/custom-certificates", params={"id": SERVICE_ID})

    assert response.status_code == 422
    assert response.json()["detail"]["operation"] == "delete"


def test_validation_endpoints(client):
    valid = client.post("/custom-certificates/validate", json=make_config())
    assert valid.json() == {"errors": []}

    invalid = client.post(
        "/custom-certificates/validate",
        json=make_config(secret_reference_id="https://vault1.vault.azure.net/mycert"),
    )
    assert invalid.json()["errors"]

    assert client.post(
        "/custom-certificates/validate-id", json={"id": CERT_ID}
    ).json() == {"errors": []}
    assert client.post(
        "/custom-certificates/validate-id", json={"id": SERVICE_ID}
    ).json()["errors"]


def test_overlong_correlation_id_is_replaced(client):
    response = client.post(
        "/custom-certificates/validate",
        json=make_config(),
        headers={"X-Correlation-ID": "x" * 200},
    )

    assert response.headers["X-Correlation-ID"] != "x" * 200


def test_healthz_does_not_touch_azure(client, api):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["resource_type"] == CustomCertificateResource.RESOURCE_TYPE
    assert api.calls == []


def test_refresh_failure_after_create_still_returns_identifier(api):
    app = create_app()
    app.state.resource = CustomCertificateResource(
        api=api,
        vault_resolver=FakeVaultResolver({}),
    )
    client = TestClient(app)

    response = client.post("/custom-certificates", json=make_config())

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == CERT_ID
    assert body["state"] is None
    assert body["error"]["operation"] == "read"
    assert CERT_ID in api.objects

    # the persisted id lets the host refresh once the vault resolves
    app.state.resource = CustomCertificateResource(
        api=api,
        vault_resolver=FakeVaultResolver(),
    )
    refreshed = client.post(
        "/custom-certificates/refresh",
        json={"id": body["id"], "state": {**make_config(), "secret_version": ""}},
    )
    assert refreshed.status_code == 200
    assert refreshed.json()["state"]["secret_version"] == "abc123"

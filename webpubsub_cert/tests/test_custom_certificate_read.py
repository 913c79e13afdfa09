import httpx
import pytest

from webpubsub_cert.app.resource.custom_certificate import CustomCertificateResource
from webpubsub_cert.app.resource.errors import (
    IdentifierParseError,
    IntegrityError,
    RemoteLookupError,
    VaultResolutionError,
)
from webpubsub_cert.app.schemas.binding import Binding
from webpubsub_cert.app.schemas.remote import (
    CustomCertificate,
    CustomCertificateProperties,
)
from webpubsub_cert.app.services.arm import ArmRequestError
from webpubsub_cert.tests.fakes import (
    CERT_ID,
    SERVICE_ID,
    VAULT_BASE_URI,
    FakeCustomCertificatesApi,
    FakeVaultResolver,
    make_config,
)

pytestmark = pytest.mark.anyio


def _seed(api: FakeCustomCertificatesApi, base_uri: str = VAULT_BASE_URI, version=None) -> None:
    api.objects[CERT_ID] = CustomCertificate(
        id=CERT_ID,
        name="cert1",
        properties=CustomCertificateProperties(
            key_vault_base_uri=base_uri,
            key_vault_secret_name="mycert",
            key_vault_secret_version=version,
            provisioning_state="Succeeded",
        ),
    )


async def test_read_of_absent_object_reports_gone():
    api = FakeCustomCertificatesApi()
    resolver = FakeVaultResolver()
    resource = CustomCertificateResource(api=api, vault_resolver=resolver)

    assert await resource.read(CERT_ID) is None
    assert resolver.lookups == []


async def test_import_reconstructs_certificate_reference():
    api = FakeCustomCertificatesApi()
    _seed(api, version="abc123")
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver())

    binding = await resource.read(CERT_ID)

    assert binding == Binding(
        name="cert1",
        parent_service_id=SERVICE_ID,
        secret_reference_id="https://vault1.vault.azure.net/certificates/mycert/abc123",
        secret_version="abc123",
    )


async def test_configured_kind_is_kept_for_same_secret():
    api = FakeCustomCertificatesApi()
    _seed(api, version="abc123")
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver())

    binding = await resource.read(
        CERT_ID,
        prior_state=Binding.model_validate(make_config()),
    )

    assert binding.secret_reference_id == "https://vault1.vault.azure.net/secrets/mycert/abc123"


async def test_prior_state_for_other_secret_does_not_mask_drift():
    api = FakeCustomCertificatesApi()
    _seed(api, version="abc123")
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver())

    prior = Binding.model_validate(
        make_config(secret_reference_id="https://vault1.vault.azure.net/secrets/other/abc123")
    )
    binding = await resource.read(CERT_ID, prior_state=prior)

    assert binding.secret_reference_id == "https://vault1.vault.azure.net/certificates/mycert/abc123"


async def test_missing_version_reads_back_as_empty():
    api = FakeCustomCertificatesApi()
    _seed(api)
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver())

    binding = await resource.read(CERT_ID)

    assert binding.secret_version == ""
    assert binding.secret_reference_id == "https://vault1.vault.azure.net/certificates/mycert"


async def test_vault_host_port_is_dropped():
    api = FakeCustomCertificatesApi()
    _seed(api, base_uri="https://vault1.vault.azure.net:443/", version="abc123")
    resolver = FakeVaultResolver(
        {"https://vault1.vault.azure.net:443/": FakeVaultResolver().vaults[VAULT_BASE_URI]}
    )
    resource = CustomCertificateResource(api=api, vault_resolver=resolver)

    binding = await resource.read(CERT_ID)

    assert binding.secret_reference_id == "https://vault1.vault.azure.net/certificates/mycert/abc123"


async def test_success_without_payload_is_an_integrity_error():
    api = FakeCustomCertificatesApi(empty_payload=True)
    _seed(api)
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver())

    with pytest.raises(IntegrityError, match="got nil model"):
        await resource.read(CERT_ID)


async def test_unknown_vault_is_a_resolution_error():
    api = FakeCustomCertificatesApi()
    _seed(api)
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver({}))

    with pytest.raises(VaultResolutionError) as exc_info:
        await resource.read(CERT_ID)

    assert exc_info.value.operation == "read"
    assert exc_info.value.resource_id == CERT_ID


async def test_unparseable_vault_id_is_a_resolution_error():
    api = FakeCustomCertificatesApi()
    _seed(api)
    resource = CustomCertificateResource(
        api=api,
        vault_resolver=FakeVaultResolver({VAULT_BASE_URI: "/not/a/vault"}),
    )

    with pytest.raises(VaultResolutionError, match="parsing key vault"):
        await resource.read(CERT_ID)


async def test_remote_failure_other_than_not_found_propagates():
    api = FakeCustomCertificatesApi(get_error=ArmRequestError("boom", status_code=500))
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver())

    with pytest.raises(RemoteLookupError, match="retrieving"):
        await resource.read(CERT_ID)


async def test_malformed_identifier_is_rejected_before_remote_call():
    api = FakeCustomCertificatesApi()
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver())

    with pytest.raises(IdentifierParseError):
        await resource.read(SERVICE_ID)

    assert api.calls == []
    assert resource.validate_resource_id(SERVICE_ID)
    assert resource.validate_resource_id(CERT_ID) == []


async def test_transport_failure_while_resolving_vault():
    api = FakeCustomCertificatesApi()
    _seed(api)
    resource = CustomCertificateResource(
        api=api,
        vault_resolver=FakeVaultResolver(error=httpx.ReadTimeout("read timed out")),
    )

    with pytest.raises(VaultResolutionError, match="read timed out"):
        await resource.read(CERT_ID)


async def test_transport_failure_while_retrieving_is_a_lookup_error():
    api = FakeCustomCertificatesApi(get_error=httpx.ConnectError("connection refused"))
    resource = CustomCertificateResource(api=api, vault_resolver=FakeVaultResolver())

    with pytest.raises(RemoteLookupError) as exc_info:
        await resource.read(CERT_ID)

    assert exc_info.value.resource_id == CERT_ID

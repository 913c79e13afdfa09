import logging
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version

import httpx
from azure.identity.aio import ClientSecretCredential
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from webpubsub_cert.app.api.routes import router as custom_certificate_router
from webpubsub_cert.app.core.config import Settings
from webpubsub_cert.app.resource.custom_certificate import CustomCertificateResource
from webpubsub_cert.app.services.arm import ArmClient
from webpubsub_cert.app.services.vault_resolver import KeyVaultIdResolver
from webpubsub_cert.app.services.webpubsub_api import WebPubSubCustomCertificatesClient

logging.basicConfig(
    level=logging.INFO,
    stream=sys.stderr,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("webpubsub_cert.main")


def get_app_version() -> str:
    try:
        return version("webpubsub-cert")
    except PackageNotFoundError:
        return "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Guarantees:
    - Fail-fast startup if configuration or Azure auth is invalid
    - One shared HTTP transport and credential for every ARM client
    - The resource receives its clients explicitly
    """
    logger.info(
        "provider_startup_begin",
        extra={
            "service": "webpubsub-cert",
            "version": get_app_version(),
        },
    )

    # ------------------------------------------------------------------
    # Load and validate configuration (FAIL FAST)
    # ------------------------------------------------------------------
    try:
        settings = Settings()
    except Exception:
        logger.exception("invalid_provider_configuration")
        raise

    app.state.settings = settings

    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(
            timeout=settings.http_timeout_seconds,
            connect=10.0,
        ),
        limits=httpx.Limits(
            max_keepalive_connections=20,
            max_connections=50,
        ),
        headers={
            "User-Agent": f"webpubsub-cert/{get_app_version()}",
        },
        proxy=str(settings.https_proxy) if settings.https_proxy else None,
    )

    app.state.azure_credential = ClientSecretCredential(
        tenant_id=settings.azure_tenant_id,
        client_id=settings.azure_client_id,
        client_secret=settings.azure_client_secret.get_secret_value(),
    )

    # ------------------------------------------------------------------
    # Fail-fast authentication self-test
    # ------------------------------------------------------------------
    try:
        await app.state.azure_credential.get_token(ArmClient.TOKEN_SCOPE)
    except Exception:
        logger.exception(
            "azure_authentication_failed",
            extra={
                "tenant_id": settings.azure_tenant_id,
                "client_id": settings.azure_client_id,
            },
        )
        await app.state.http_client.aclose()
        await app.state.azure_credential.close()
        raise

    app.state.resource = CustomCertificateResource(
        api=WebPubSubCustomCertificatesClient(
            credential=app.state.azure_credential,
            http_client=app.state.http_client,
            settings=settings,
        ),
        vault_resolver=KeyVaultIdResolver(
            credential=app.state.azure_credential,
            http_client=app.state.http_client,
            settings=settings,
        ),
    )

    logger.info(
        "azure_authentication_verified",
        extra={
            "tenant_id": settings.azure_tenant_id,
            "client_id": settings.azure_client_id,
        },
    )

    try:
        yield
    finally:
        logger.info("provider_shutdown_begin")

        try:
            await app.state.http_client.aclose()
        except Exception:
            logger.warning("http_client_shutdown_failed")

        try:
            await app.state.azure_credential.close()
        except Exception:
            logger.warning("azure_credential_shutdown_failed")


def create_app() -> FastAPI:
    """Application factory for the custom certificate provider."""
    app = FastAPI(
        title="Web PubSub Custom Certificate Provider",
        description=(
            "Declarative lifecycle for Web PubSub custom certificates "
            "sourced from Azure Key Vault."
        ),
        version=get_app_version(),
        docs_url="/docs",
        redoc_url=None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.include_router(custom_certificate_router)

    @app.get(
        "/healthz",
        tags=["Monitoring"],
        summary="Liveness and readiness check",
    )
    async def health_check():
        """Does NOT call Azure."""
        return ORJSONResponse(
            content={
                "status": "ok",
                "service": "webpubsub-cert",
                "version": app.version,
                "resource_type": CustomCertificateResource.RESOURCE_TYPE,
            }
        )

    return app


app = create_app()

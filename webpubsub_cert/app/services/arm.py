"""
Shared plumbing for Azure Resource Manager REST clients.

Token acquisition, correlation headers and ARM error decoding live here;
resource-specific clients build on ``ArmClient``.
"""

import logging
import uuid
from typing import Annotated, Any, Optional

import httpx
from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import AzureError

from webpubsub_cert.app.core.config import Settings

logger = logging.getLogger("webpubsub_cert.arm")


class ArmRequestError(RuntimeError):
    """Raised for any non-success ARM response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class ArmNotFoundError(ArmRequestError):
    """The addressed resource does not exist (HTTP 404)."""


class ArmOperationFailedError(ArmRequestError):
    """A long-running operation reached a failed or canceled terminal state."""


class ArmTransportError(ArmRequestError):
    """The request produced no response (connection, TLS or timeout failure)."""


# Everything an ARM collaborator may raise for a failed call.
ARM_CALL_ERRORS = (ArmRequestError, httpx.HTTPError, AzureError)


class OperationPending(RuntimeError):
    """
    Internal sentinel for ARM async-in-progress states.

    Raised while an operation reports a non-terminal status; retryable.
    """


class ArmClient:
    """
    Minimal async ARM client.

    Stateless apart from the injected credential and HTTP client, both of
    which are owned by the application lifespan.
    """

    TOKEN_SCOPE = "https://management.azure.com/.default"

    def __init__(
        self,
        credential: AsyncTokenCredential,
        http_client: Annotated[
            httpx.AsyncClient,
            "Persistent HTTP client",
        ],
        settings: Annotated[
            Settings,
            "Application configuration",
        ],
    ):
        self.credential = credential
        self.client = http_client
        self.settings = settings
        self.base_url = settings.arm_base_url

    # ------------------------------------------------------------------
    # Auth helpers
    # ------------------------------------------------------------------

    async def _auth_headers(self, correlation_id: str) -> dict[str, str]:
        try:
            token = await self.credential.get_token(self.TOKEN_SCOPE)
        except AzureError as exc:
            logger.error(
                "arm_token_acquisition_failed",
                extra={"error_type": type(exc).__name__, "trace_id": correlation_id},
            )
            raise ArmRequestError(f"acquiring ARM access token: {exc}") from exc

        return {
            "Authorization": f"Bearer {token.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-ms-client-request-id": correlation_id,
            "x-ms-return-client-request-id": "true",
        }

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def _url(self, path: str, api_version: str) -> str:
        return f"{self.base_url}{path}?api-version={api_version}"

    async def _send(
        self,
        method: str,
        url: str,
        *,
        correlation_id: Optional[str] = None,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Issue one authenticated request.

        ``params`` replaces any query string already in ``url``; callers
        passing params must include ``api-version`` in them.
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        headers = await self._auth_headers(correlation_id)

        try:
            return await self.client.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
                timeout=self.settings.http_timeout_seconds,
            )
        except httpx.TransportError as exc:
            logger.warning(
                "arm_transport_failed",
                extra={
                    "method": method,
                    "error_type": type(exc).__name__,
                    "trace_id": correlation_id,
                },
            )
            raise ArmTransportError(f"{method} {url}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ArmRequestError(f"{method} {url}: {exc}") from exc

    @staticmethod
    def _json_object(response: httpx.Response, *, action: str) -> dict[str, Any]:
        """Decode a response body that must be a JSON object."""
        try:
            body = response.json()
        except ValueError as exc:
            raise ArmRequestError(
                f"{action}: response body is not JSON",
                status_code=response.status_code,
            ) from exc

        if not isinstance(body, dict):
            raise ArmRequestError(
                f"{action}: expected a JSON object, got {type(body).__name__}",
                status_code=response.status_code,
            )
        return body

    @staticmethod
    def raise_for_arm_status(response: httpx.Response, *, action: str) -> None:
        """Translate a non-2xx response into ``ArmRequestError``."""
        if response.is_success:
            return

        error_code = None
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error_code = body["error"].get("code")
            message = body["error"].get("message") or message

        logger.warning(
            "arm_request_failed",
            extra={
                "action": action,
                "status_code": response.status_code,
                "error_code": error_code,
                "request_id": response.headers.get("x-ms-request-id"),
            },
        )

        error_cls = ArmNotFoundError if response.status_code == 404 else ArmRequestError
        raise error_cls(
            f"{action}: unexpected status {response.status_code}"
            + (f" with error: {error_code}: {message}" if error_code else f": {message}"),
            status_code=response.status_code,
            error_code=error_code,
        )

"""
Async client for Web PubSub custom certificates on the ARM control plane.

Covers the three calls the binding needs: GET, PUT followed by polling
the long-running operation to a terminal state, and DELETE.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_delay,
    wait_exponential,
)

from webpubsub_cert.app.ids import CustomCertificateId
from webpubsub_cert.app.schemas.remote import (
    CustomCertificate,
    CustomCertificateResponse,
)
from webpubsub_cert.app.services.arm import (
    ArmClient,
    ArmOperationFailedError,
    ArmRequestError,
    ArmTransportError,
    OperationPending,
)

logger = logging.getLogger("webpubsub_cert.webpubsub_api")


_TERMINAL_FAILURES = {"failed", "canceled"}
_TERMINAL_STATES = {"succeeded"} | _TERMINAL_FAILURES

# Upper bound for a single long-running operation; the lifecycle timeout
# of the calling operation normally fires first.
_LRO_MAX_SECONDS = 30 * 60

_poll_policy = retry(
    stop=stop_after_delay(_LRO_MAX_SECONDS),
    wait=wait_exponential(min=1, max=30),
    retry=retry_if_exception_type((ArmTransportError, OperationPending)),
    reraise=True,
)


class WebPubSubCustomCertificatesClient(ArmClient):
    """Microsoft.SignalRService/webPubSub/customCertificates operations."""

    API_VERSION = "2023-02-01"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(
        self,
        id: CustomCertificateId,
        *,
        correlation_id: Optional[str] = None,
    ) -> CustomCertificateResponse:
        """
        Retrieve a custom certificate.

        Raises ``ArmNotFoundError`` when it does not exist. A success
        status with an empty body yields ``model=None``.
        """
        response = await self._send(
            "GET",
            self._url(id.id(), self.API_VERSION),
            correlation_id=correlation_id,
        )
        self.raise_for_arm_status(response, action=f"retrieving {id}")

        return CustomCertificateResponse(
            status_code=response.status_code,
            model=self._decode(response, action=f"retrieving {id}"),
        )

    async def create_or_update_then_poll(
        self,
        id: CustomCertificateId,
        model: CustomCertificate,
        *,
        correlation_id: Optional[str] = None,
    ) -> None:
        action = f"creating/updating {id}"

        response = await self._send(
            "PUT",
            self._url(id.id(), self.API_VERSION),
            json=model.to_request_body(),
            correlation_id=correlation_id,
        )
        self.raise_for_arm_status(response, action=action)

        if response.status_code not in (200, 201, 202):
            raise ArmRequestError(
                f"{action}: unexpected status {response.status_code}",
                status_code=response.status_code,
            )

        logger.info(
            "custom_certificate_put_accepted",
            extra={
                "resource_id": id.id(),
                "status_code": response.status_code,
                "trace_id": correlation_id,
            },
        )

        try:
            await self._wait_for_completion(
                response,
                id=id,
                action=action,
                correlation_id=correlation_id,
            )
        except OperationPending as exc:
            raise ArmOperationFailedError(
                f"{action}: operation still pending after {_LRO_MAX_SECONDS}s ({exc})"
            ) from exc

    async def _wait_for_completion(
        self,
        response: httpx.Response,
        *,
        id: CustomCertificateId,
        action: str,
        correlation_id: Optional[str],
    ) -> None:
        async_op = response.headers.get("Azure-AsyncOperation")
        if async_op:
            await self._poll_async_operation(
                url=async_op,
                action=action,
                correlation_id=correlation_id,
            )
            return

        location = response.headers.get("Location")
        if response.status_code == 202 and location:
            await self._poll_location(
                url=location,
                action=action,
                correlation_id=correlation_id,
            )
            return

        current = self._decode(response, action=action)
        state = self._provisioning_state(current)

        if state in _TERMINAL_FAILURES:
            raise ArmOperationFailedError(
                f"{action}: provisioning state is {state!r}",
                status_code=response.status_code,
            )

        if state and state not in _TERMINAL_STATES:
            await self._poll_provisioning_state(
                id=id,
                action=action,
                correlation_id=correlation_id,
            )

    async def delete(
        self,
        id: CustomCertificateId,
        *,
        correlation_id: Optional[str] = None,
    ) -> None:
        action = f"deleting {id}"

        response = await self._send(
            "DELETE",
            self._url(id.id(), self.API_VERSION),
            correlation_id=correlation_id,
        )

        if response.status_code in (200, 204):
            return

        self.raise_for_arm_status(response, action=action)
        raise ArmRequestError(
            f"{action}: unexpected status {response.status_code}",
            status_code=response.status_code,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(
        response: httpx.Response,
        *,
        action: str,
    ) -> Optional[CustomCertificate]:
        if not response.content:
            return None

        try:
            body = response.json()
        except ValueError as exc:
            raise ArmRequestError(
                f"{action}: response body is not JSON",
                status_code=response.status_code,
            ) from exc

        if not body:
            return None

        try:
            return CustomCertificate.model_validate(body)
        except ValidationError as exc:
            raise ArmRequestError(
                f"{action}: unexpected response shape: {exc}",
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _provisioning_state(model: Optional[CustomCertificate]) -> Optional[str]:
        if model is None or model.properties.provisioning_state is None:
            return None
        return model.properties.provisioning_state.lower()

    @_poll_policy
    async def _poll_async_operation(
        self,
        *,
        url: str,
        action: str,
        correlation_id: Optional[str],
    ) -> None:
        response = await self._send("GET", url, correlation_id=correlation_id)
        self.raise_for_arm_status(response, action=action)

        result = self._json_object(response, action=action)
        status = str(result.get("status", "")).lower()

        if status == "succeeded":
            return

        if status in _TERMINAL_FAILURES:
            error = result.get("error")
            if not isinstance(error, dict):
                error = {}
            raise ArmOperationFailedError(
                f"{action}: operation {status}: "
                f"{error.get('code')}: {error.get('message')}",
                error_code=error.get("code"),
            )

        # Expected async state -> retry
        raise OperationPending(f"operation_pending:{status}")

    @_poll_policy
    async def _poll_location(
        self,
        *,
        url: str,
        action: str,
        correlation_id: Optional[str],
    ) -> None:
        response = await self._send("GET", url, correlation_id=correlation_id)
        self.raise_for_arm_status(response, action=action)

        if response.status_code == 202:
            raise OperationPending("operation_pending:location")

    @_poll_policy
    async def _poll_provisioning_state(
        self,
        *,
        id: CustomCertificateId,
        action: str,
        correlation_id: Optional[str],
    ) -> None:
        response = await self._send(
            "GET",
            self._url(id.id(), self.API_VERSION),
            correlation_id=correlation_id,
        )
        self.raise_for_arm_status(response, action=action)

        state = self._provisioning_state(self._decode(response, action=action))

        if state in _TERMINAL_FAILURES:
            raise ArmOperationFailedError(f"{action}: provisioning state is {state!r}")

        if state is not None and state not in _TERMINAL_STATES:
            raise OperationPending(f"operation_pending:{state}")

import logging
import uuid
from typing import Annotated, Any, Dict, Optional

from fastapi import (
    APIRouter,
    Body,
    Depends,
    Header,
    HTTPException,
    Query,
    Request,
    status,
)
from fastapi.responses import ORJSONResponse, Response
from pydantic import ValidationError

from webpubsub_cert.app.resource.custom_certificate import CustomCertificateResource
from webpubsub_cert.app.resource.errors import (
    BindingDecodeError,
    CustomCertificateError,
    IdentifierParseError,
    ResourceRequiresImportError,
    ResourceTimeoutError,
)
from webpubsub_cert.app.resource.lifecycle import run_lifecycle
from webpubsub_cert.app.schemas.binding import (
    Binding,
    deserialize_binding,
    serialize_binding,
)

logger = logging.getLogger("webpubsub_cert.api")

router = APIRouter(prefix="/custom-certificates", tags=["Custom Certificates"])

# =============================================================================
# Dependency providers
# =============================================================================

def get_correlation_id(
    x_correlation_id: Annotated[
        Optional[str],
        Header(description="Audit trace ID"),
    ] = None,
) -> str:
    """Extract or generate a correlation ID for end-to-end traceability."""
    if x_correlation_id and len(x_correlation_id) > 128:
        return str(uuid.uuid4())
    return x_correlation_id or str(uuid.uuid4())


def get_resource(request: Request) -> CustomCertificateResource:
    resource = getattr(request.app.state, "resource", None)
    if resource is None:
        raise RuntimeError("resource not initialized")
    return resource


Resource = Annotated[CustomCertificateResource, Depends(get_resource)]
CorrelationId = Annotated[str, Depends(get_correlation_id)]


def _error_status(exc: CustomCertificateError) -> int:
    if isinstance(exc, (BindingDecodeError, IdentifierParseError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, ResourceRequiresImportError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, ResourceTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY


def _fail(exc: CustomCertificateError, correlation_id: str) -> HTTPException:
    logger.warning(
        "lifecycle_operation_failed",
        extra={
            "operation": exc.operation,
            "resource_id": exc.resource_id,
            "error_type": type(exc).__name__,
            "trace_id": correlation_id,
        },
    )
    return HTTPException(
        status_code=_error_status(exc),
        detail={
            "operation": exc.operation,
            "resource_id": exc.resource_id,
            "error": str(exc),
        },
        headers={"X-Correlation-ID": correlation_id},
    )


def _state_response(
    resource_id: str,
    state: Dict[str, Any],
    correlation_id: str,
    status_code: int = status.HTTP_200_OK,
) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=status_code,
        content={"id": resource_id, "state": state},
        headers={"X-Correlation-ID": correlation_id},
    )


# =============================================================================
# Validation
# =============================================================================

@router.post("/validate", summary="Validate a binding configuration")
async def validate_configuration(
    resource: Resource,
    correlation_id: CorrelationId,
    config: Annotated[Dict[str, Any], Body()],
) -> ORJSONResponse:
    return ORJSONResponse(
        content={"errors": resource.validate_config(config)},
        headers={"X-Correlation-ID": correlation_id},
    )


@router.post("/validate-id", summary="Validate an identifier supplied for import")
async def validate_identifier(
    resource: Resource,
    correlation_id: CorrelationId,
    id: Annotated[str, Body(embed=True)],
) -> ORJSONResponse:
    return ORJSONResponse(
        content={"errors": resource.validate_resource_id(id)},
        headers={"X-Correlation-ID": correlation_id},
    )


# =============================================================================
# Lifecycle
# =============================================================================

@router.post("", summary="Create a custom certificate binding")
async def create_binding(
    resource: Resource,
    correlation_id: CorrelationId,
    config: Annotated[Dict[str, Any], Body()],
) -> ORJSONResponse:
    """
    Create the binding, then refresh it so the response carries the
    computed attributes.

    Once the remote object exists the response is always 201 with its
    ``id``. A failed refresh yields ``"state": null`` plus an ``error``;
    the host persists the id and refreshes later.
    """
    try:
        resource_id = await run_lifecycle(
            "create",
            lambda: resource.create(config, correlation_id=correlation_id),
            timeout=resource.CREATE_TIMEOUT,
        )
    except CustomCertificateError as exc:
        raise _fail(exc, correlation_id) from exc

    # create() decoded the same mapping, so it is a valid prior state
    prior = Binding.model_validate(dict(config))

    try:
        binding = await run_lifecycle(
            "read",
            lambda: resource.read(
                resource_id,
                prior_state=prior,
                correlation_id=correlation_id,
            ),
            timeout=resource.READ_TIMEOUT,
            resource_id=resource_id,
        )
    except CustomCertificateError as exc:
        logger.warning(
            "post_create_refresh_failed",
            extra={
                "resource_id": resource_id,
                "error_type": type(exc).__name__,
                "trace_id": correlation_id,
            },
        )
        return ORJSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={
                "id": resource_id,
                "state": None,
                "error": {"operation": exc.operation, "error": str(exc)},
            },
            headers={"X-Correlation-ID": correlation_id},
        )

    if binding is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "operation": "create",
                "resource_id": resource_id,
                "error": "binding disappeared immediately after creation",
            },
            headers={"X-Correlation-ID": correlation_id},
        )

    return _state_response(
        resource_id,
        serialize_binding(binding),
        correlation_id,
        status_code=status.HTTP_201_CREATED,
    )


async def _refresh(
    resource: CustomCertificateResource,
    resource_id: str,
    prior: Optional[Binding],
    correlation_id: str,
) -> ORJSONResponse:
    try:
        binding = await run_lifecycle(
            "read",
            lambda: resource.read(
                resource_id,
                prior_state=prior,
                correlation_id=correlation_id,
            ),
            timeout=resource.READ_TIMEOUT,
            resource_id=resource_id,
        )
    except CustomCertificateError as exc:
        raise _fail(exc, correlation_id) from exc

    if binding is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"operation": "read", "resource_id": resource_id, "error": "gone"},
            headers={"X-Correlation-ID": correlation_id},
        )

    return _state_response(resource_id, serialize_binding(binding), correlation_id)


@router.get("", summary="Read a custom certificate binding (import)")
async def read_binding(
    resource: Resource,
    correlation_id: CorrelationId,
    id: Annotated[str, Query(description="Resource ID persisted by the host")],
) -> ORJSONResponse:
    return await _refresh(resource, id, None, correlation_id)


@router.post("/refresh", summary="Refresh a custom certificate binding against its prior state")
async def refresh_binding(
    resource: Resource,
    correlation_id: CorrelationId,
    id: Annotated[str, Body()],
    state: Annotated[Optional[Dict[str, Any]], Body()] = None,
) -> ORJSONResponse:
    prior = None
    if state is not None:
        try:
            prior = deserialize_binding(state)
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"state is not a valid binding: {exc}",
                headers={"X-Correlation-ID": correlation_id},
            ) from exc

    return await _refresh(resource, id, prior, correlation_id)


@router.delete("", summary="Delete a custom certificate binding")
async def delete_binding(
    resource: Resource,
    correlation_id: CorrelationId,
    id: Annotated[str, Query(description="Resource ID persisted by the host")],
) -> Response:
    try:
        await run_lifecycle(
            "delete",
            lambda: resource.delete(id, correlation_id=correlation_id),
            timeout=resource.DELETE_TIMEOUT,
            resource_id=id,
        )
    except CustomCertificateError as exc:
        raise _fail(exc, correlation_id) from exc

    return Response(
        status_code=status.HTTP_204_NO_CONTENT,
        headers={"X-Correlation-ID": correlation_id},
    )

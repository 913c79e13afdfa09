"""
Timeout enforcement for lifecycle operations.

Cancellation stops waiting client-side only; a remote operation that was
already accepted may still complete on the service.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional, TypeVar

import anyio

from webpubsub_cert.app.resource.errors import ResourceTimeoutError

logger = logging.getLogger("webpubsub_cert.lifecycle")

T = TypeVar("T")


async def run_lifecycle(
    operation: str,
    func: Callable[[], Awaitable[T]],
    *,
    timeout: timedelta,
    resource_id: Optional[str] = None,
) -> T:
    seconds = timeout.total_seconds()

    try:
        with anyio.fail_after(seconds):
            return await func()
    except TimeoutError as exc:
        logger.error(
            "lifecycle_timeout",
            extra={
                "operation": operation,
                "resource_id": resource_id,
                "timeout_seconds": seconds,
            },
        )
        raise ResourceTimeoutError(
            operation=operation,
            resource_id=resource_id,
            timeout_seconds=seconds,
        ) from exc

"""Shared outbound HTTP policy: timeouts, transient retry, status mapping."""

import logging
from collections.abc import Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .base import AccessDeniedError, ServiceError

logger = logging.getLogger(__name__)


def build_http_client(timeout: float) -> httpx.AsyncClient:
    """Create an AsyncClient with an explicit per-request timeout."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout))


def check_status(response: httpx.Response, provider: str) -> None:
    """
    Raise the taxonomy error for a non-2xx response.

    Raises:
        AccessDeniedError: On HTTP 403
        ServiceError: On any other non-2xx status
    """
    if response.is_success:
        return

    body = response.text[:500]
    if response.status_code == 403:
        logger.error(f"{provider} access denied (403): {body}")
        raise AccessDeniedError(
            f"{provider} API access denied (403)",
            provider=provider,
            details={"body": body},
        )

    logger.error(f"{provider} request failed: {response.status_code} - {body}")
    raise ServiceError(
        f"{provider} API error: {response.status_code}",
        status_code=response.status_code,
        provider=provider,
        details={"body": body},
    )


async def send_with_retry(
    send: Callable[[], Awaitable[httpx.Response]],
    *,
    provider: str,
    retries: int = 1,
    wait_seconds: float = 0.5,
) -> httpx.Response:
    """
    Issue a request, retrying only on transport errors (timeouts, resets).

    HTTP status errors are never retried; they are mapped by check_status.

    Args:
        send: Zero-argument coroutine factory performing the request
        provider: Provider name used in errors and logs
        retries: Extra attempts after the first one
        wait_seconds: Delay between attempts

    Returns:
        A 2xx response
    """
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_fixed(wait_seconds),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                response = await send()
    except httpx.TransportError as e:
        logger.error(f"{provider} request failed: {e}")
        raise ServiceError(
            f"Failed to connect to {provider}: {e}",
            error_code="CONNECTION_ERROR",
            provider=provider,
        ) from e
    except httpx.HTTPError as e:
        # Redirect loops, content decoding and other non-transient failures
        logger.error(f"{provider} request error: {e}")
        raise ServiceError(
            f"{provider} request error: {e}",
            provider=provider,
        ) from e

    check_status(response, provider)
    return response

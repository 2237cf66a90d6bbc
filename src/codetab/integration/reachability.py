"""Wait for HTTP resources to become reachable (or unreachable)."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from codetab.constants import DEFAULT_WAIT_INTERVAL, DEFAULT_WAIT_TIMEOUT
from codetab.integration.errors import ReachabilityTimeout
from codetab.integration.logging import LogComponent, get_logger

logger = get_logger(LogComponent.REACHABILITY)

# Per-request timeout. `wait_on` cancels any request still in flight at its deadline.
_REQUEST_TIMEOUT = 2.0


async def is_reachable(client: httpx.AsyncClient, url: str) -> bool:
    """Return True if a GET on url answers with a 2xx (after redirects)."""
    try:
        response = await client.get(url)
    except httpx.HTTPError:
        return False
    return response.is_success


async def _all_settled(
    client: httpx.AsyncClient, resources: Sequence[str], reverse: bool
) -> bool:
    results = await asyncio.gather(*(is_reachable(client, url) for url in resources))
    if reverse:
        return not any(results)
    return all(results)


def _log_attempt(retry_state: RetryCallState) -> None:
    if retry_state.attempt_number % 10 == 0:
        logger.debug(
            f"Still waiting after {retry_state.attempt_number} attempts "
            f"({retry_state.seconds_since_start:.1f}s)"
        )


async def wait_on(
    resources: Sequence[str],
    *,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    reverse: bool = False,
    interval: float = DEFAULT_WAIT_INTERVAL,
    client: httpx.AsyncClient | None = None,
) -> None:
    """Poll resources until all are reachable (or, with reverse, none is).

    Args:
        resources: URLs to poll
        timeout: Upper bound in seconds for the whole wait
        reverse: Wait for the resources to stop answering instead
        interval: Delay between polling rounds
        client: Optional client to poll with (closed by the caller)

    Raises:
        ReachabilityTimeout: If the resources did not settle in time
    """
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=_REQUEST_TIMEOUT, follow_redirects=True)

    retrying = AsyncRetrying(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda settled: not settled),
        before_sleep=_log_attempt,
    )
    try:
        async with asyncio.timeout(timeout):
            await retrying(_all_settled, client, list(resources), reverse)
    except (RetryError, TimeoutError) as e:
        raise ReachabilityTimeout(resources, timeout, reverse=reverse) from e
    finally:
        if owns_client:
            await client.aclose()

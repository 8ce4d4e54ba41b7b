"""
Shared HTTP Client

One httpx.AsyncClient is built at startup and injected into the resolver,
extractor and asset streamer. It only pools connections; nothing
request-specific is stored on it.
"""

import asyncio
import ssl
from typing import Awaitable, Optional, TypeVar

import httpx

from .config import GalleryConfig
from .errors import RequestCancelled, UpstreamError

T = TypeVar("T")

REDDIT_DOMAIN = "reddit.com"
CANONICAL_HOST = "www.reddit.com"


def build_headers(config: GalleryConfig) -> dict:
    """Headers sent with every outbound request."""
    return {
        "User-Agent": config.user_agent,
        # Age gate: without it NSFW posts come back as an interstitial
        "Cookie": "over18=1",
    }


def create_http_client(
    config: Optional[GalleryConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build the shared client.

    Reddit's CDN rate-limits HTTP/2 connections from non-browser clients more
    aggressively, so the client stays on HTTP/1.1.

    Args:
        config: Runtime settings (defaults when omitted)
        transport: Optional transport override, used by tests

    Returns:
        Configured httpx.AsyncClient; the caller owns and closes it
    """
    config = config or GalleryConfig()

    ssl_context = ssl.create_default_context()
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2

    return httpx.AsyncClient(
        timeout=config.timeout,
        follow_redirects=True,
        headers=build_headers(config),
        http2=False,
        verify=ssl_context,
        transport=transport,
    )


async def run_cancellable(
    request: Awaitable[T],
    cancel: Optional[asyncio.Event] = None,
    timeout: Optional[float] = None,
) -> T:
    """
    Await a request, aborting it when the cancel event is set or `timeout`
    seconds pass.

    httpx timeouts bound each connect/read separately; `timeout` here bounds
    the whole call.

    Raises:
        RequestCancelled: the event fired before the request completed
        UpstreamError: the deadline passed first
    """
    if cancel is not None and cancel.is_set():
        if asyncio.iscoroutine(request):
            request.close()
        raise RequestCancelled("request cancelled before start")

    task = asyncio.ensure_future(request)
    pending = {task}
    waiter = None
    if cancel is not None:
        waiter = asyncio.ensure_future(cancel.wait())
        pending.add(waiter)

    try:
        await asyncio.wait(pending, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        if waiter is not None:
            waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    if cancel is not None and cancel.is_set():
        raise RequestCancelled("request cancelled in flight")
    raise UpstreamError(f"request exceeded {timeout:g}s deadline")

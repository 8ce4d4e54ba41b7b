"""
Reddit URL Resolver

Validates user input and normalises it to https://www.reddit.com/<path>.

Share links (/r/<sub>/s/<id>) are resolved by reading the Location header of
a non-redirecting GET. The redirect target is never requested: for restricted
subreddits it answers 429 to clients without a session.
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlsplit, SplitResult

import httpx

from .client import CANONICAL_HOST, REDDIT_DOMAIN, run_cancellable
from .config import DEFAULT_TIMEOUT
from .errors import InvalidURL, UpstreamError

logger = logging.getLogger(__name__)


def _parse_reddit_url(value: str) -> Optional[SplitResult]:
    """Parse `value`, returning None unless it is a reddit.com URL with a host."""
    try:
        parts = urlsplit(value)
        host = parts.hostname or ""
    except ValueError:
        return None
    if not host or REDDIT_DOMAIN not in host:
        return None
    return parts


def is_share_link(path: str) -> bool:
    """Whether `path` has the share-link shape /r/<sub>/s/<id>."""
    # e.g. /r/pics/s/x1K7r5KnaM -> [r, pics, s, x1K7r5KnaM]
    segments = path.strip("/").split("/")
    return (
        len(segments) == 4
        and segments[0] == "r"
        and segments[1] != ""
        and segments[2] == "s"
        and segments[3] != ""
    )


class URLResolver:
    """
    Turns raw user input into a canonical post URL.

    Usage:
        resolver = URLResolver(http_client)
        canonical = await resolver.resolve("reddit.com/r/pics/comments/abc/x/")
    """

    def __init__(self, http_client: httpx.AsyncClient, timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.http_client = http_client
        self.timeout = timeout

    async def resolve(self, input_url: str, cancel: Optional[asyncio.Event] = None) -> str:
        """
        Validate and canonicalise a post URL.

        Args:
            input_url: Raw user input, scheme optional
            cancel: Optional event that aborts the share-link request

        Returns:
            https://www.reddit.com<path> with query and fragment dropped

        Raises:
            InvalidURL: malformed input, non-reddit host or bad share redirect
            UpstreamError: share-link request failed in transport
        """
        value = (input_url or "").strip()
        if not value.lower().startswith(("http://", "https://")):
            value = "https://" + value

        parts = _parse_reddit_url(value)
        if parts is None:
            raise InvalidURL(f"not a reddit url: {input_url!r}")

        if is_share_link(parts.path):
            parts = await self._resolve_share_link(value, cancel)

        return f"https://{CANONICAL_HOST}{parts.path}"

    async def _resolve_share_link(
        self, share_url: str, cancel: Optional[asyncio.Event]
    ) -> SplitResult:
        """Read the share link's redirect target without following it."""
        logger.info(f"[Resolver] Resolving share link: {share_url[:80]}")
        try:
            response = await run_cancellable(
                self.http_client.get(share_url, follow_redirects=False),
                cancel,
                self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"[Resolver] Share link request failed: {e}")
            raise UpstreamError(f"share link request failed: {e}") from e

        location = response.headers.get("location", "")
        if not location:
            logger.warning(
                f"[Resolver] Share link returned {response.status_code} without Location"
            )
            raise InvalidURL("share link did not redirect")

        parts = _parse_reddit_url(location)
        if parts is None:
            logger.warning(f"[Resolver] Share link redirected off reddit: {location[:80]}")
            raise InvalidURL(f"share link redirected to {location!r}")
        return parts

"""
Reddit Gallery Extractor

Fetches <post>.json and derives the ordered image URLs of a post.

Extraction tiers, first non-empty wins:
1. Gallery posts: gallery_data items looked up in media_metadata
   (animated source preferred over static)
2. Preview gif variants
3. The post's direct URL
"""

import asyncio
import html
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from .client import run_cancellable
from .config import DEFAULT_TIMEOUT
from .errors import NoImages, PostNotFound, UpstreamError
from .models import Gallery, Listing, PostRecord
from .resolver import URLResolver

logger = logging.getLogger(__name__)


def _gallery_sources(post: PostRecord) -> List[str]:
    if not post.is_gallery or post.gallery_data is None or not post.gallery_data.items:
        return []

    metadata = post.media_metadata or {}
    sources = []
    for item in post.gallery_data.items:
        media = metadata.get(item.media_id) if item.media_id else None
        if media is None or media.s is None:
            continue
        raw = media.s.gif or media.s.u
        if raw:
            sources.append(raw)
    return sources


def _preview_sources(post: PostRecord) -> List[str]:
    if post.preview is None or not post.preview.images:
        return []

    sources = []
    for image in post.preview.images:
        gif = image.variants.gif if image.variants else None
        if gif is not None and gif.source is not None and gif.source.url:
            sources.append(gif.source.url)
    return sources


def extract_images(post: PostRecord) -> List[str]:
    """
    Return the post's image URLs in display order, entity-unescaped.

    reddit's JSON HTML-escapes query separators (&amp;), so every URL is
    unescaped before it is returned. An empty list means no images.
    """
    images = _gallery_sources(post)
    if not images:
        images = _preview_sources(post)
    if not images and post.url_overridden_by_dest:
        images = [post.url_overridden_by_dest]
    return [html.unescape(url) for url in images]


class GalleryExtractor:
    """
    Resolves a post URL and extracts its gallery.

    Usage:
        extractor = GalleryExtractor(http_client)
        gallery = await extractor.resolve_and_fetch(
            "https://www.reddit.com/r/pics/comments/abc123/title/"
        )
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        resolver: Optional[URLResolver] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.http_client = http_client
        self.resolver = resolver or URLResolver(http_client, timeout)
        self.timeout = timeout

    async def resolve_and_fetch(
        self, raw_url: str, cancel: Optional[asyncio.Event] = None
    ) -> Gallery:
        """Resolve user input and fetch its gallery in one call."""
        canonical = await self.resolver.resolve(raw_url, cancel)
        gallery = await self.fetch(canonical, cancel)
        return Gallery(title=gallery.title, images=gallery.images, source_url=raw_url)

    async def fetch(self, post_url: str, cancel: Optional[asyncio.Event] = None) -> Gallery:
        """
        Fetch a canonical post URL and extract its images.

        Raises:
            UpstreamError: non-200 status, transport failure or undecodable body
            PostNotFound: empty listing
            NoImages: no extraction tier produced a URL
        """
        api_url = post_url.rstrip("/") + ".json"
        logger.info(f"[Extractor] Fetching: {api_url[:100]}")

        try:
            response = await run_cancellable(
                self.http_client.get(api_url), cancel, self.timeout
            )
        except httpx.TimeoutException as e:
            logger.error(f"[Extractor] Timeout: {api_url[:80]}")
            raise UpstreamError("reddit api timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"[Extractor] Request failed: {api_url[:80]} - {e}")
            raise UpstreamError(f"reddit api request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"[Extractor] reddit api status {response.status_code}: {api_url[:80]}")
            raise UpstreamError(
                f"reddit api status: {response.status_code}",
                status_code=response.status_code,
            )

        post = self._decode_post(response)
        images = extract_images(post)
        if not images:
            raise NoImages("no images found in post")

        logger.info(f"[Extractor] Found {len(images)} images: {api_url[:80]}")
        return Gallery(title=post.title or "", images=tuple(images), source_url=post_url)

    def _decode_post(self, response: httpx.Response) -> PostRecord:
        """Pull `[0].data.children[0].data` out of the listing response."""
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError(f"json decode: {e}") from e

        if not isinstance(payload, list):
            raise UpstreamError("json decode: expected a listing array")
        if not payload:
            raise PostNotFound("post not found or deleted")

        try:
            listing = Listing.model_validate(payload[0])
        except ValidationError as e:
            raise UpstreamError(f"json decode: {e}") from e

        if listing.data is None or not listing.data.children:
            raise PostNotFound("post not found or deleted")

        post = listing.data.children[0].data
        return post if post is not None else PostRecord()

"""
Asset Streamer

Fetches a single image as a byte stream and works out its extension.

- ORIGINAL: bytes are copied chunk by chunk, never decoded (constant memory)
- jpeg/png/gif: the whole body is read, decoded and re-encoded with Pillow
"""

import asyncio
import logging
import posixpath
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union
from urllib.parse import urlsplit

import httpx

from reddit_gallery.client import run_cancellable
from reddit_gallery.config import DEFAULT_TIMEOUT
from reddit_gallery.errors import RequestCancelled, UpstreamError

from .converter import (
    DEFAULT_JPEG_QUALITY,
    ImageFormat,
    convert_image,
    get_encoder,
    parse_format,
)

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_EXTENSION = ".jpg"

# Extensions trusted when they appear in the asset URL path
KNOWN_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

EXTENSION_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def _normalize_content_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def detect_extension(url: str, content_type: Optional[str] = None) -> str:
    """
    Work out an image's extension.

    The URL path wins when it carries a known image extension, then the
    content-type header, then a generic default. Always lowercase with a
    leading dot.
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        path = ""
    ext = posixpath.splitext(path)[1].lower()
    if ext in KNOWN_EXTENSIONS:
        return ext

    mapped = CONTENT_TYPE_EXTENSIONS.get(_normalize_content_type(content_type))
    if mapped:
        return mapped
    return DEFAULT_EXTENSION


def suggest_filename(url: str, extension: str) -> str:
    """
    Download name for a single asset.

    The last path segment keeps its stem and takes `extension`; when that
    segment has no dot the name is image<extension>.
    """
    try:
        base = posixpath.basename(urlsplit(url).path)
    except ValueError:
        base = ""
    if "." not in base:
        return "image" + extension
    stem, _ = posixpath.splitext(base)
    return stem + extension


@dataclass
class AssetStream:
    """
    An open streaming response for one image.

    Owned by whoever called AssetStreamer.open(); must be closed, preferably
    with `async with`.
    """
    url: str
    response: httpx.Response
    extension: str
    content_type: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    deadline: Optional[float] = None    # Event-loop time by which the body must be read

    def _remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - asyncio.get_running_loop().time())

    async def iter_bytes(self, cancel: Optional[asyncio.Event] = None) -> AsyncIterator[bytes]:
        """
        Yield the body verbatim, checking `cancel` between chunks.

        Raises:
            UpstreamError: read failure, or the fetch deadline passed
            RequestCancelled: `cancel` fired
        """
        chunks = self.response.aiter_bytes(self.chunk_size)
        try:
            while True:
                if cancel is not None and cancel.is_set():
                    raise RequestCancelled("asset stream cancelled")
                try:
                    chunk = await asyncio.wait_for(chunks.__anext__(), self._remaining())
                except StopAsyncIteration:
                    break
                yield chunk
        except asyncio.TimeoutError as e:
            logger.error(f"[AssetStreamer] Body read exceeded deadline: {self.url[:60]}")
            raise UpstreamError("download timeout") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"read failed: {e}") from e

    async def read_all(self, cancel: Optional[asyncio.Event] = None) -> bytes:
        """Read the complete body into memory."""
        chunks = []
        async for chunk in self.iter_bytes(cancel):
            chunks.append(chunk)
        return b"".join(chunks)

    async def aclose(self) -> None:
        await self.response.aclose()

    async def __aenter__(self) -> "AssetStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


@dataclass
class SingleAsset:
    """A ready-to-serve single download."""
    chunks: AsyncIterator[bytes]
    filename: str
    content_type: str


async def _one_chunk(data: bytes) -> AsyncIterator[bytes]:
    yield data


class AssetStreamer:
    """
    Streams and optionally converts single images.

    Usage:
        streamer = AssetStreamer(http_client)
        single = await streamer.stream_single_asset(url, "png")
        async for chunk in single.chunks:
            ...
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        jpeg_quality: int = DEFAULT_JPEG_QUALITY,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.http_client = http_client
        self.chunk_size = chunk_size
        self.jpeg_quality = jpeg_quality
        self.timeout = timeout

    async def open(self, url: str, cancel: Optional[asyncio.Event] = None) -> AssetStream:
        """
        Start fetching `url` and return the open stream.

        Raises:
            UpstreamError: transport failure, timeout or non-200 status
            RequestCancelled: `cancel` fired while connecting
        """
        logger.info(f"[AssetStreamer] Fetching: {url[:80]}")
        # One deadline covers connecting, headers and the body read
        deadline = None
        if self.timeout is not None:
            deadline = asyncio.get_running_loop().time() + self.timeout
        try:
            request = self.http_client.build_request("GET", url)
            response = await run_cancellable(
                self.http_client.send(request, stream=True), cancel, self.timeout
            )
        except httpx.TimeoutException as e:
            logger.error(f"[AssetStreamer] Timeout: {url[:60]}")
            raise UpstreamError("download timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"[AssetStreamer] Request failed: {url[:60]} - {e}")
            raise UpstreamError(f"download failed: {e}") from e

        if response.status_code != 200:
            await response.aclose()
            logger.warning(f"[AssetStreamer] HTTP {response.status_code}: {url[:60]}")
            raise UpstreamError(
                f"status {response.status_code}", status_code=response.status_code
            )

        header_type = _normalize_content_type(response.headers.get("content-type"))
        extension = detect_extension(url, header_type)
        if not header_type.startswith("image/"):
            header_type = EXTENSION_CONTENT_TYPES.get(extension, "image/jpeg")

        return AssetStream(
            url=url,
            response=response,
            extension=extension,
            content_type=header_type,
            chunk_size=self.chunk_size,
            deadline=deadline,
        )

    async def convert(
        self,
        asset: AssetStream,
        target: ImageFormat,
        cancel: Optional[asyncio.Event] = None,
    ) -> bytes:
        """
        Read the whole asset and re-encode it as `target`.

        Decoding needs the complete body, so this is the one path that holds
        an entire image in memory. Pillow work runs in a worker thread.
        """
        get_encoder(target)
        data = await asset.read_all(cancel)
        return await asyncio.to_thread(convert_image, data, target, self.jpeg_quality)

    @staticmethod
    def output_extension(asset: AssetStream, target: ImageFormat) -> str:
        """Extension of the bytes the caller will receive."""
        if target == ImageFormat.ORIGINAL:
            return asset.extension
        return get_encoder(target).extension

    async def stream_single_asset(
        self,
        url: str,
        format: Union[str, ImageFormat, None] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> SingleAsset:
        """
        Prepare a single download.

        Conversion finishes before this returns, so decode and format errors
        reach the caller. In passthrough mode the response stays open until
        the returned iterator is exhausted or closed.

        Raises:
            UnsupportedFormat: unknown `format`
            UpstreamError: fetch failed
            DecodeError: conversion failed
        """
        target = parse_format(format)
        asset = await self.open(url, cancel)

        if target == ImageFormat.ORIGINAL:
            return SingleAsset(
                chunks=self._passthrough(asset, cancel),
                filename=suggest_filename(url, asset.extension),
                content_type=asset.content_type,
            )

        async with asset:
            data = await self.convert(asset, target, cancel)
        encoder = get_encoder(target)
        return SingleAsset(
            chunks=_one_chunk(data),
            filename=suggest_filename(url, encoder.extension),
            content_type=encoder.content_type,
        )

    async def _passthrough(
        self, asset: AssetStream, cancel: Optional[asyncio.Event]
    ) -> AsyncIterator[bytes]:
        async with asset:
            async for chunk in asset.iter_bytes(cancel):
                yield chunk

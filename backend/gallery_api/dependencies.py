"""
Pipeline wiring for the API layer.

The shared httpx client is created once and injected into every component;
routes pull the assembled services off app.state.
"""

from dataclasses import dataclass

import httpx
from fastapi import Request

from image_stream.streamer import AssetStreamer
from reddit_gallery.config import GalleryConfig
from reddit_gallery.extractor import GalleryExtractor
from reddit_gallery.resolver import URLResolver
from zip_stream.assembler import ArchiveAssembler


@dataclass
class GalleryServices:
    """Components sharing one HTTP client."""
    http_client: httpx.AsyncClient
    extractor: GalleryExtractor
    streamer: AssetStreamer
    assembler: ArchiveAssembler

    @classmethod
    def build(cls, http_client: httpx.AsyncClient, config: GalleryConfig) -> "GalleryServices":
        streamer = AssetStreamer(
            http_client,
            chunk_size=config.chunk_size,
            jpeg_quality=config.jpeg_quality,
            timeout=config.timeout,
        )
        resolver = URLResolver(http_client, timeout=config.timeout)
        return cls(
            http_client=http_client,
            extractor=GalleryExtractor(http_client, resolver, timeout=config.timeout),
            streamer=streamer,
            assembler=ArchiveAssembler(streamer),
        )


def get_services(request: Request) -> GalleryServices:
    return request.app.state.services

"""
Reddit Gallery Module

Turns a reddit post link into the post's title and image URLs.

Features:
- URL validation and canonicalisation
- Share link (/r/<sub>/s/<id>) resolution without following the redirect
- Tiered image extraction: gallery metadata, preview gifs, direct URL
"""

from .client import create_http_client
from .config import GalleryConfig
from .errors import (
    DecodeError,
    GalleryError,
    InvalidURL,
    NoImages,
    PostNotFound,
    RequestCancelled,
    UnsupportedFormat,
    UpstreamError,
)
from .extractor import GalleryExtractor, extract_images
from .models import Gallery, PostRecord
from .resolver import URLResolver

__all__ = [
    "create_http_client",
    "GalleryConfig",
    "GalleryError",
    "InvalidURL",
    "PostNotFound",
    "NoImages",
    "UpstreamError",
    "DecodeError",
    "UnsupportedFormat",
    "RequestCancelled",
    "GalleryExtractor",
    "extract_images",
    "Gallery",
    "PostRecord",
    "URLResolver",
]

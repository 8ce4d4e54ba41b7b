"""
Gallery Errors

Typed failures raised by the resolve -> extract -> stream -> archive pipeline.
The API layer maps each kind to its own status code and user message.
"""

from typing import Optional


class GalleryError(RuntimeError):
    """Base class for every pipeline failure."""


class InvalidURL(GalleryError):
    """Raised when the input is malformed or not a reddit.com link."""


class PostNotFound(GalleryError):
    """Raised when reddit returns an empty listing for the post."""


class NoImages(GalleryError):
    """Raised when the post exists but no image could be extracted."""


class UpstreamError(GalleryError):
    """Raised on a non-200 response, transport failure or timeout."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(GalleryError):
    """Raised when image bytes cannot be decoded."""


class UnsupportedFormat(GalleryError):
    """Raised when a conversion target is not an encodable format."""


class RequestCancelled(Exception):
    """Raised when the caller's cancel signal aborts an in-flight request."""

"""
Reddit Gallery DL test configuration.

Fixtures fake reddit and its image CDN with httpx.MockTransport, so no test
touches the network.

Key ideas:
- `make_client(handler)` builds the real shared client around a fake transport
- `RecordingHandler` maps URLs to canned responses and records every request
- Images are generated on the fly with Pillow
"""

import sys
from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, List, Union

import httpx
import pytest
from PIL import Image

# Add the backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from reddit_gallery.client import create_http_client
from reddit_gallery.config import GalleryConfig


# ============================================
# Image helpers
# ============================================

def make_image(fmt: str = "PNG", size=(8, 6), color=(200, 30, 30), mode: str = "RGB") -> bytes:
    """Encode a solid-colour image in the given Pillow format."""
    if mode == "RGBA" and len(color) == 3:
        color = color + (128,)
    img = Image.new(mode, size, color)
    output = BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


def open_image(data: bytes) -> Image.Image:
    img = Image.open(BytesIO(data))
    img.load()
    return img


# ============================================
# Fake upstream
# ============================================

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class RecordingHandler:
    """
    MockTransport handler serving canned responses by exact URL.

    Unknown URLs answer 404. Every request is kept in `requests`.
    """

    def __init__(self, routes: Dict[str, Reply] = None):
        self.routes: Dict[str, Reply] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.routes.get(str(request.url))
        if reply is None:
            return httpx.Response(404, content=b"not found")
        if callable(reply):
            return reply(request)
        return reply

    @property
    def urls(self) -> List[str]:
        return [str(r.url) for r in self.requests]


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return create_http_client(GalleryConfig(), transport=httpx.MockTransport(handler))


def post_listing(post: dict) -> list:
    """Wrap post fields the way reddit's <post>.json does."""
    return [
        {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": post}]}},
        {"kind": "Listing", "data": {"children": []}},
    ]


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def client(handler):
    return make_client(handler)


@pytest.fixture
def png_bytes():
    return make_image("PNG")


@pytest.fixture
def jpeg_bytes():
    return make_image("JPEG")

"""
Image Stream Module

Fetches single images and optionally re-encodes them.

Features:
- Chunked passthrough download (no decoding)
- Extension detection from URL path or content-type
- Conversion to jpeg, png or gif with Pillow
"""

from .converter import ImageFormat, convert_image, parse_format
from .streamer import AssetStream, AssetStreamer, SingleAsset, detect_extension

__all__ = [
    "ImageFormat",
    "convert_image",
    "parse_format",
    "AssetStream",
    "AssetStreamer",
    "SingleAsset",
    "detect_extension",
]

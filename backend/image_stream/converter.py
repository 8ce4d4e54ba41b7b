"""
Image Format Conversion

Re-encodes downloaded images with Pillow. Supported targets form a closed
table; adding a format means adding one ENCODERS entry.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from typing import Dict, Optional, Union

from PIL import Image, UnidentifiedImageError

from reddit_gallery.errors import DecodeError, UnsupportedFormat

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QUALITY = 90


class ImageFormat(str, Enum):
    """Requested output format. ORIGINAL passes bytes through untouched."""
    ORIGINAL = "original"
    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"


_ALIASES = {
    "": ImageFormat.ORIGINAL,
    "jpg": ImageFormat.JPEG,
}


@dataclass(frozen=True)
class Encoder:
    """How to write one target format."""
    pillow_format: str
    extension: str
    content_type: str
    lossy: bool = False


ENCODERS: Dict[ImageFormat, Encoder] = {
    ImageFormat.JPEG: Encoder("JPEG", ".jpg", "image/jpeg", lossy=True),
    ImageFormat.PNG: Encoder("PNG", ".png", "image/png"),
    ImageFormat.GIF: Encoder("GIF", ".gif", "image/gif"),
}


def parse_format(value: Union[str, ImageFormat, None]) -> ImageFormat:
    """
    Map a user-supplied format string to an ImageFormat.

    None, "" and "original" mean passthrough; "jpg" is accepted for JPEG.

    Raises:
        UnsupportedFormat: for any other value
    """
    if isinstance(value, ImageFormat):
        return value
    key = (value or "").strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return ImageFormat(key)
    except ValueError:
        raise UnsupportedFormat(f"unsupported format: {value}") from None


def get_encoder(target: ImageFormat) -> Encoder:
    """Return the encoder for a conversion target."""
    encoder = ENCODERS.get(target)
    if encoder is None:
        raise UnsupportedFormat(f"unsupported format: {target.value}")
    return encoder


def _flatten_alpha(img: Image.Image) -> Image.Image:
    """Composite transparent images onto white for formats without alpha."""
    if img.mode == 'P':
        img = img.convert('RGBA')
    if img.mode in ('RGBA', 'LA'):
        background = Image.new('RGB', img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != 'RGB':
        return img.convert('RGB')
    return img


def convert_image(
    data: bytes,
    target: ImageFormat,
    quality: Optional[int] = None,
) -> bytes:
    """
    Decode `data` and encode it as `target`.

    Animated input is reduced to its first frame.

    Args:
        data: Complete source image bytes
        target: Any ImageFormat except ORIGINAL
        quality: Quality for lossy targets (defaults to 90)

    Returns:
        Encoded image bytes

    Raises:
        UnsupportedFormat: target has no encoder
        DecodeError: source bytes are not a readable image
    """
    encoder = get_encoder(target)

    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"decode: {e}") from e

    save_kwargs = {"format": encoder.pillow_format}
    if encoder.lossy:
        save_kwargs["quality"] = quality or DEFAULT_JPEG_QUALITY

    output = BytesIO()
    try:
        if encoder.pillow_format == "JPEG":
            img = _flatten_alpha(img)
        elif img.mode not in ('RGB', 'RGBA', 'P', 'L', 'LA'):
            img = img.convert('RGBA')
        img.save(output, **save_kwargs)
    except (OSError, ValueError) as e:
        raise DecodeError(f"encode: {e}") from e

    logger.debug(
        f"[Converter] {img.format or 'image'} {img.size[0]}x{img.size[1]} -> "
        f"{encoder.pillow_format} ({len(data)//1024}KB -> {output.tell()//1024}KB)"
    )
    return output.getvalue()

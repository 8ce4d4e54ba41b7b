"""
Reddit Gallery Data Models

Contains:
- Gallery: resolved title + ordered image URLs for one post
- PostRecord: the subset of reddit's post JSON the extractor reads
- Listing models: the envelope reddit wraps around a post

Every nested upstream field is optional. Missing or null values are normal
and are checked with presence tests, never handled as exceptions.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ==================== Result Model ====================

@dataclass(frozen=True)
class Gallery:
    """Resolved images for one post. `images` is never empty."""
    title: str
    images: Tuple[str, ...]
    source_url: str


# ==================== Upstream Post Models ====================

class _Upstream(BaseModel):
    """Base for upstream shapes: unknown fields are ignored."""
    model_config = ConfigDict(extra="ignore")


class GalleryItem(_Upstream):
    media_id: Optional[str] = None


class GalleryData(_Upstream):
    items: Optional[List[GalleryItem]] = None


class MediaSource(_Upstream):
    """`s` block of a media_metadata entry: static (`u`) and animated (`gif`)."""
    u: Optional[str] = None
    gif: Optional[str] = None


class MediaMetadata(_Upstream):
    s: Optional[MediaSource] = None


class PreviewSource(_Upstream):
    url: Optional[str] = None


class PreviewGif(_Upstream):
    source: Optional[PreviewSource] = None


class PreviewVariants(_Upstream):
    gif: Optional[PreviewGif] = None


class PreviewImage(_Upstream):
    variants: Optional[PreviewVariants] = None


class Preview(_Upstream):
    images: Optional[List[PreviewImage]] = None


class PostRecord(_Upstream):
    """
    Post fields as returned under `data.children[0].data`.

    `url_overridden_by_dest` is the direct link for single-image posts.
    """
    title: Optional[str] = None
    is_gallery: Optional[bool] = None
    url_overridden_by_dest: Optional[str] = None
    gallery_data: Optional[GalleryData] = None
    media_metadata: Optional[Dict[str, Optional[MediaMetadata]]] = None
    preview: Optional[Preview] = None


# ==================== Listing Envelope ====================

class ListingChild(_Upstream):
    data: Optional[PostRecord] = None


class ListingData(_Upstream):
    children: List[ListingChild] = Field(default_factory=list)


class Listing(_Upstream):
    data: Optional[ListingData] = None

"""
Gallery API Routes

Provides endpoints for:
- Resolving a reddit post into its image list
- Downloading a single image (optionally converted)
- Downloading many images as a streamed ZIP
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from image_stream.converter import ImageFormat, parse_format
from image_stream.streamer import SingleAsset
from reddit_gallery.errors import (
    DecodeError,
    GalleryError,
    InvalidURL,
    NoImages,
    PostNotFound,
    UnsupportedFormat,
    UpstreamError,
)
from zip_stream.assembler import build_archive_name

from .dependencies import GalleryServices, get_services

logger = logging.getLogger(__name__)

# How often a running ZIP stream checks whether the client went away
DISCONNECT_POLL_SECONDS = 1.0

# User-facing messages per resolution failure
RESOLVE_ERRORS = {
    InvalidURL: (400, "That doesn't look like a valid Reddit link."),
    PostNotFound: (404, "Post not found. It might be deleted or private."),
    NoImages: (422, "This post exists but has no images."),
}

# ============================================
# Request/Response Models
# ============================================


class ResolveRequest(BaseModel):
    """Request model for resolving a post."""
    url: str = Field(..., description="Reddit post or share link")


class GalleryResponse(BaseModel):
    """Resolved gallery."""
    success: bool
    title: str
    images: List[str]
    url: str
    message: str


class ZipDownloadRequest(BaseModel):
    """Request model for bulk download."""
    image_urls: List[str] = Field(default_factory=list, description="Selected image URLs")
    format: str = Field("original", description="Output format: original, jpeg, png, gif")
    page_title: str = Field("", description="Post title, used for the archive name")


# ============================================
# Router
# ============================================

router = APIRouter(prefix="/api/gallery", tags=["Gallery"])


# ============================================
# Helpers
# ============================================

def _parse_format_or_400(value: Optional[str]) -> ImageFormat:
    try:
        return parse_format(value)
    except UnsupportedFormat as e:
        raise HTTPException(status_code=400, detail=str(e))


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


async def _open_single(
    services: GalleryServices, url: str, fmt: ImageFormat
) -> StreamingResponse:
    try:
        single: SingleAsset = await services.streamer.stream_single_asset(url, fmt)
    except (UpstreamError, DecodeError) as e:
        logger.error(f"[GalleryAPI] Single download failed: {url[:60]} - {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return StreamingResponse(
        single.chunks,
        media_type=single.content_type,
        headers=_attachment(single.filename),
    )


async def _watch_disconnect(request: Request, cancel: asyncio.Event) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)
    cancel.set()


# ============================================
# Endpoints
# ============================================

@router.post("/resolve", response_model=GalleryResponse)
async def resolve_gallery(
    body: ResolveRequest,
    services: GalleryServices = Depends(get_services),
):
    """
    Resolve a post URL into its title and image URLs.

    Example:
        POST /api/gallery/resolve
        {"url": "https://www.reddit.com/r/pics/comments/abc123/title/"}
    """
    try:
        gallery = await services.extractor.resolve_and_fetch(body.url)
    except UpstreamError as e:
        logger.error(f"[GalleryAPI] Upstream error for {body.url[:60]}: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except GalleryError as e:
        status_code, message = RESOLVE_ERRORS.get(type(e), (500, str(e)))
        logger.info(f"[GalleryAPI] Resolve failed for {body.url[:60]}: {e}")
        raise HTTPException(status_code=status_code, detail=message)

    return GalleryResponse(
        success=True,
        title=gallery.title,
        images=list(gallery.images),
        url=gallery.source_url,
        message=f"Loaded {len(gallery.images)} images!",
    )


@router.get("/download-single")
async def download_single(
    url: Optional[str] = Query(None, description="Image URL"),
    format: Optional[str] = Query(None, description="Output format"),
    services: GalleryServices = Depends(get_services),
):
    """
    Download one image, converted when `format` is jpeg, png or gif.

    Example:
        GET /api/gallery/download-single?url=https://i.redd.it/abc.png&format=jpeg
    """
    if not url:
        raise HTTPException(status_code=400, detail="Missing URL")

    fmt = _parse_format_or_400(format)
    return await _open_single(services, url, fmt)


@router.post("/download-zip")
async def download_zip(
    body: ZipDownloadRequest,
    request: Request,
    services: GalleryServices = Depends(get_services),
):
    """
    Download the selected images.

    A single URL is served as a plain image; more are bundled into a ZIP that
    streams while it is assembled. The stream stops early if the client
    disconnects.
    """
    if not body.image_urls:
        raise HTTPException(status_code=400, detail="No images selected")

    fmt = _parse_format_or_400(body.format)

    if len(body.image_urls) == 1:
        return await _open_single(services, body.image_urls[0], fmt)

    archive_name = build_archive_name(body.page_title)
    urls = list(body.image_urls)

    async def archive_stream():
        cancel = asyncio.Event()
        watcher = asyncio.create_task(_watch_disconnect(request, cancel))
        try:
            async for chunk in services.assembler.iter_archive(urls, fmt, cancel):
                yield chunk
        finally:
            watcher.cancel()

    logger.info(f"[GalleryAPI] Streaming {len(urls)} images as {archive_name}.zip")
    return StreamingResponse(
        archive_stream(),
        media_type="application/zip",
        headers=_attachment(f"{archive_name}.zip"),
    )


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return JSONResponse(content={
        "status": "healthy",
        "service": "reddit-gallery-dl",
    })

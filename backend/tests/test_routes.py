"""
Gallery API route tests.

The app is built around a client whose transport is faked, then driven with
FastAPI's TestClient.
"""

import zipfile
from io import BytesIO

import httpx
import pytest
from fastapi.testclient import TestClient

from gallery_api.app import create_app
from reddit_gallery.config import GalleryConfig
from conftest import RecordingHandler, make_client, make_image, open_image, post_listing

POST_URL = "https://www.reddit.com/r/pics/comments/abc123/a_title/"
API_URL = "https://www.reddit.com/r/pics/comments/abc123/a_title.json"
IMAGE_URLS = ["https://i.redd.it/one.png", "https://i.redd.it/two.png"]


@pytest.fixture
def upstream():
    return RecordingHandler({
        url: httpx.Response(200, content=make_image("PNG"), headers={"Content-Type": "image/png"})
        for url in IMAGE_URLS
    })


@pytest.fixture
def api(upstream):
    app = create_app(GalleryConfig(), http_client=make_client(upstream))
    with TestClient(app) as test_client:
        yield test_client


# ============================================
# 1. /resolve
# ============================================

class TestResolve:

    def test_success(self, api, upstream):
        upstream.routes[API_URL] = httpx.Response(200, json=post_listing({
            "title": "Two pics",
            "is_gallery": True,
            "gallery_data": {"items": [{"media_id": "a"}, {"media_id": "b"}]},
            "media_metadata": {
                "a": {"s": {"u": IMAGE_URLS[0]}},
                "b": {"s": {"u": IMAGE_URLS[1]}},
            },
        }))

        response = api.post("/api/gallery/resolve", json={"url": "reddit.com/r/pics/comments/abc123/a_title/"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["title"] == "Two pics"
        assert body["images"] == IMAGE_URLS
        assert body["message"] == "Loaded 2 images!"

    def test_invalid_url(self, api):
        response = api.post("/api/gallery/resolve", json={"url": "https://example.com/foo"})

        assert response.status_code == 400
        assert response.json()["detail"] == "That doesn't look like a valid Reddit link."

    def test_post_not_found(self, api, upstream):
        upstream.routes[API_URL] = httpx.Response(200, json=[])

        response = api.post("/api/gallery/resolve", json={"url": POST_URL})

        assert response.status_code == 404
        assert "deleted or private" in response.json()["detail"]

    def test_no_images(self, api, upstream):
        upstream.routes[API_URL] = httpx.Response(200, json=post_listing({"title": "text"}))

        response = api.post("/api/gallery/resolve", json={"url": POST_URL})

        assert response.status_code == 422
        assert response.json()["detail"] == "This post exists but has no images."

    def test_upstream_error(self, api, upstream):
        upstream.routes[API_URL] = httpx.Response(503)

        response = api.post("/api/gallery/resolve", json={"url": POST_URL})

        assert response.status_code == 502
        assert "503" in response.json()["detail"]


# ============================================
# 2. /download-single
# ============================================

class TestDownloadSingle:

    def test_missing_url(self, api):
        response = api.get("/api/gallery/download-single")

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing URL"

    def test_unsupported_format(self, api):
        response = api.get("/api/gallery/download-single", params={"url": IMAGE_URLS[0], "format": "bmp"})

        assert response.status_code == 400

    def test_original(self, api):
        response = api.get("/api/gallery/download-single", params={"url": IMAGE_URLS[0]})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-disposition"] == 'attachment; filename="one.png"'
        assert open_image(response.content).format == "PNG"

    def test_converted(self, api):
        response = api.get("/api/gallery/download-single", params={"url": IMAGE_URLS[0], "format": "gif"})

        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="one.gif"'
        assert open_image(response.content).format == "GIF"

    def test_upstream_failure(self, api):
        response = api.get("/api/gallery/download-single", params={"url": "https://i.redd.it/gone.png"})

        assert response.status_code == 502


# ============================================
# 3. /download-zip
# ============================================

class TestDownloadZip:

    def test_no_urls(self, api):
        response = api.post("/api/gallery/download-zip", json={"image_urls": []})

        assert response.status_code == 400
        assert response.json()["detail"] == "No images selected"

    def test_single_url_skips_archive(self, api):
        response = api.post("/api/gallery/download-zip", json={"image_urls": IMAGE_URLS[:1], "format": "jpeg"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["content-disposition"] == 'attachment; filename="one.jpg"'

    def test_archive(self, api, upstream):
        response = api.post("/api/gallery/download-zip", json={
            "image_urls": IMAGE_URLS + ["https://i.redd.it/missing.png"],
            "format": "original",
            "page_title": "My Gallery! 2024",
        })

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["content-disposition"] == 'attachment; filename="My_Gallery_2024.zip"'
        archive = zipfile.ZipFile(BytesIO(response.content))
        assert archive.namelist() == ["image_001.png", "image_002.png"]

    def test_archive_bad_format(self, api):
        response = api.post("/api/gallery/download-zip", json={"image_urls": IMAGE_URLS, "format": "tiff"})

        assert response.status_code == 400


def test_health(api):
    response = api.get("/api/gallery/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"

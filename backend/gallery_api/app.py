"""
Reddit Gallery DL server entry point.

Builds the FastAPI app around one shared HTTP client and runs it with uvicorn.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from reddit_gallery.client import create_http_client
from reddit_gallery.config import GalleryConfig

from .dependencies import GalleryServices
from .routes_fastapi import router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[GalleryConfig] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Runtime settings (read from the environment when omitted)
        http_client: Shared client; when omitted one is created here and
            closed on shutdown
    """
    config = config or GalleryConfig.from_env()
    owns_client = http_client is None
    if http_client is None:
        http_client = create_http_client(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await http_client.aclose()

    app = FastAPI(title="Reddit Gallery DL", lifespan=lifespan)
    app.state.services = GalleryServices.build(http_client, config)
    app.include_router(router)
    return app


def main() -> None:
    config = GalleryConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting Reddit Gallery DL on port {config.port}...")
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()

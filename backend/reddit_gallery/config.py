"""
Gallery Configuration

Read once at startup from environment variables and injected into the
components that need it.
"""

import os
from dataclasses import dataclass

# Reddit asks API clients to identify as <platform>:<app>:<version>.
DEFAULT_USER_AGENT = "python:reddit-gallery-dl:v1.0.0 (by /u/reddit-gallery-dl)"

# Upper bound on one whole fetch: connect, headers and body
DEFAULT_TIMEOUT = 120.0


@dataclass(frozen=True)
class GalleryConfig:
    """Runtime settings for the HTTP client, converter and server."""
    # Upstream settings
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = DEFAULT_TIMEOUT  # Whole-fetch deadline in seconds

    # Image settings
    jpeg_quality: int = 90          # Quality for lossy re-encoding
    chunk_size: int = 64 * 1024     # Streaming read size in bytes

    # Server settings
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "GalleryConfig":
        """Build a config from environment variables, falling back to defaults."""
        return cls(
            user_agent=os.getenv("REDDIT_USER_AGENT", DEFAULT_USER_AGENT),
            timeout=float(os.getenv("REDDIT_TIMEOUT_SECONDS", "120")),
            jpeg_quality=int(os.getenv("IMAGE_JPEG_QUALITY", "90")),
            chunk_size=int(os.getenv("IMAGE_CHUNK_SIZE", str(64 * 1024))),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

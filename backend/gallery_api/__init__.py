"""
Gallery API Module

HTTP surface of Reddit Gallery DL.

Features:
- Post resolution with per-error user messages
- Single image download with optional conversion
- Streamed ZIP download that stops when the client disconnects
"""

from .routes_fastapi import router
from .app import create_app

__all__ = ["router", "create_app"]

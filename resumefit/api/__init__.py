"""HTTP API for the browser extension."""

from .main import create_app

__all__ = ["create_app"]

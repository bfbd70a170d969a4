"""HTTP surface of the gateway (Starlette)."""

from .app import create_app

__all__ = ["create_app"]

"""HTTP surface of the relay."""

from .app import build_app

__all__ = ["build_app"]

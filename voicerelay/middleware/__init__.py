"""Middleware modules for the relay."""

from .access_log import AccessLogMiddleware

__all__ = ["AccessLogMiddleware"]

# src/pongstats/middleware/__init__.py

"""Middleware components for the pongstats API."""

from .logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]

# src/courtrank/middleware/__init__.py

"""Middleware components for the CourtRank API."""

from .logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]

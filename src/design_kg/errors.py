"""
errors.py

Exception types raised by the design catalog core.

Not-found is not an exception: lookups return ``None`` and the tool layer
renders ``{"error": "Not found"}``.

Author: Eric G. Suchanek, PhD
"""

from __future__ import annotations


class DesignKGError(Exception):
    """
    Base exception for all catalog errors.

    :param message: Human-readable error message.
    :param details: Optional extra context.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DesignKGError):
    """Input rejected before any side effect was attempted."""


class EmbeddingError(DesignKGError):
    """The embedding provider failed (auth, rate limit, connection)."""

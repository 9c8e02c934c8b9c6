"""Custom exceptions for clearer error handling across swapdesk."""

from __future__ import annotations

import hashlib


class SwapdeskError(Exception):
    """Base exception for all swapdesk-specific errors."""


class ConfigError(SwapdeskError):
    """Raised when environment configuration is invalid or missing."""


class GatewayError(SwapdeskError):
    """Raised when the exchange cannot be reached or answers with garbage."""


class ServerError(SwapdeskError):
    """Raised when the exchange reports a domain error; never retried."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.code = error_code(text)
        super().__init__(f"{text} — {self.code}")


def error_code(text: str) -> str:
    """Short support-correlation code derived from the error text."""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return f"E{digest[:8].upper()}"

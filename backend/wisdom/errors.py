"""
Exceptions raised by the service layer and mapped to HTTP responses in main.
"""
from __future__ import annotations

from typing import Optional


class WisdomError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, details: str = "", *, error: Optional[str] = None):
        super().__init__(details or self.error)
        self.details = details
        if error is not None:
            self.error = error

    def to_dict(self) -> dict:
        return {"error": self.error, "details": self.details}


class ConfigurationError(WisdomError):
    status_code = 500
    error = "API key not configured."


class NewsProviderError(WisdomError):
    """The news search provider failed or returned a non-2xx response."""

    status_code = 500
    error = "Failed to fetch or process news data."

    def __init__(self, details: str = "", *, upstream_status: Optional[int] = None):
        super().__init__(details)
        self.upstream_status = upstream_status


class ProviderUnavailableError(WisdomError):
    """No generative AI provider is configured."""

    status_code = 503
    error = "AI Service not available."


class InvalidRequestError(WisdomError):
    status_code = 400
    error = "Invalid request."

"""Exception types raised by the platform clients."""

from __future__ import annotations

from typing import Any, List, Optional


class PlatformError(Exception):
    """Base class for every error raised by this package."""


class InvalidUrlError(PlatformError, ValueError):
    """The request URL failed to parse or is blocked by the URL policy."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Invalid or blocked URL: {url} ({reason})")
        self.url = url
        self.reason = reason


class TransientRequestError(PlatformError):
    """A single attempt failed: network error, timeout or non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        attempt: int = 0,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.attempt = attempt
        self.body = body


class RequestFailedError(PlatformError):
    """Retries were exhausted without any attempt recording an error."""


class MissingCredentialsError(PlatformError):
    """Required credentials or environment variables are not set."""

    def __init__(self, platform: str, missing: List[str]) -> None:
        super().__init__(f"{platform} is not configured. Missing: {', '.join(missing)}")
        self.platform = platform
        self.missing = list(missing)


class UnknownPlatformError(PlatformError, KeyError):
    """No registry entry matches the requested platform name."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown platform: {self.name}"


class PlatformApiError(PlatformError):
    """The platform answered 2xx but reported a failure in its envelope."""

    def __init__(self, platform: str, message: str) -> None:
        super().__init__(f"{platform} API Error: {message}")
        self.platform = platform


__all__ = [
    "PlatformError",
    "InvalidUrlError",
    "TransientRequestError",
    "RequestFailedError",
    "MissingCredentialsError",
    "UnknownPlatformError",
    "PlatformApiError",
]

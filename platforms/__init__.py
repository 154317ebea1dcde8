"""Public interface for the BlackRoad platforms package.

This package provides:
- A safe async HTTP client (URL policy, rate limiting, retries)
- Platform configuration from environment variables and YAML
- Typed clients for third-party SaaS APIs
- A registry of supported platforms and a client factory
"""
from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

from .config import PlatformConfig, PlatformCredentials, create_platform_config, is_production
from .errors import (
    InvalidUrlError,
    MissingCredentialsError,
    PlatformApiError,
    PlatformError,
    RequestFailedError,
    TransientRequestError,
    UnknownPlatformError,
)
from .http_client import HttpRequestOptions, HttpResponse, RateLimiter, SafeHttpClient

# Lazy-loaded module exports
_MODULE_EXPORTS = {
    "api": "api",
    "integrations": "integrations",
    "registry": "registry",
    "transform": "transform",
}

if TYPE_CHECKING:
    from . import api, integrations, registry, transform


def __getattr__(name: str) -> Any:
    """Lazily import submodules when accessed."""
    if name in _MODULE_EXPORTS:
        module = import_module(f"{__name__}.{_MODULE_EXPORTS[name]}")
        globals()[name] = module
        return module
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    # Version
    "__version__",
    # Configuration
    "PlatformConfig",
    "PlatformCredentials",
    "create_platform_config",
    "is_production",
    # HTTP
    "HttpRequestOptions",
    "HttpResponse",
    "RateLimiter",
    "SafeHttpClient",
    # Errors
    "InvalidUrlError",
    "MissingCredentialsError",
    "PlatformApiError",
    "PlatformError",
    "RequestFailedError",
    "TransientRequestError",
    "UnknownPlatformError",
    # Lazy-loaded modules
    "api",
    "integrations",
    "registry",
    "transform",
]

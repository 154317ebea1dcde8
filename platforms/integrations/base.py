"""Shared base class for the platform clients."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple

import httpx

from ..config import (
    PlatformConfig,
    create_platform_config,
    platform_overrides,
    require_credentials,
    validate_credentials,
)
from ..http_client import SafeHttpClient

BEARER = {"api_key_header": "Authorization", "api_key_prefix": "Bearer "}


@dataclass
class BaseClient:
    """Base class for all platform clients.

    The :class:`PlatformConfig` is read from ``<ENV_PREFIX>_*`` variables once,
    at construction, unless one is passed in. Subclasses describe themselves
    through the class-level ``DISPLAY_NAME``, ``BASE_URL``, ``ENV_PREFIX`` and
    ``CONFIG_OPTIONS`` attributes.
    """

    DISPLAY_NAME: ClassVar[str] = ""
    BASE_URL: ClassVar[str] = ""
    ENV_PREFIX: ClassVar[str] = ""
    CONFIG_OPTIONS: ClassVar[Dict[str, Any]] = {}
    DEFAULT_HEADERS: ClassVar[Dict[str, str]] = {}
    REQUIRED_CREDENTIALS: ClassVar[Tuple[str, ...]] = ("api_key",)

    name: str = ""
    config: Optional[PlatformConfig] = None
    http: Optional[SafeHttpClient] = None
    transport: Optional[httpx.AsyncBaseTransport] = None
    production: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.config is None:
            self.config = self.build_config()
        if self.http is None:
            self.http = SafeHttpClient(
                self.config,
                production=self.production,
                headers=self.DEFAULT_HEADERS,
                transport=self.transport,
            )

    @classmethod
    def base_url(cls, environ: Optional[Mapping[str, str]] = None) -> str:
        return cls.BASE_URL

    @classmethod
    def build_config(cls, **kwargs: Any) -> PlatformConfig:
        options = {**cls.CONFIG_OPTIONS, **kwargs}
        return create_platform_config(
            cls.DISPLAY_NAME,
            cls.base_url(options.get("environ")),
            cls.ENV_PREFIX,
            overrides=platform_overrides(cls.DISPLAY_NAME),
            **options,
        )

    @property
    def configured(self) -> bool:
        credentials = self.config.credentials
        return bool(credentials.access_token or credentials.api_key)

    def require_credentials(self) -> None:
        """Raise :class:`MissingCredentialsError` unless credentials are set."""
        if self.config.credentials.access_token:
            return
        require_credentials(self.config, self.REQUIRED_CREDENTIALS)

    def health_check(self) -> Dict[str, Any]:
        """Report configuration status without touching the network."""
        check = validate_credentials(self.config, self.REQUIRED_CREDENTIALS)
        return {
            "name": self.name,
            "enabled": self.config.enabled,
            "configured": self.configured,
            "missing": [] if self.configured else check.missing,
            "status": "ok" if self.configured else "not_configured",
        }

    async def aclose(self) -> None:
        """Close HTTP client."""
        await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


__all__ = ["BEARER", "BaseClient"]

"""Configuration helpers for the BlackRoad platform clients.

Credentials always come from environment variables. Non-secret tuning
(timeouts, retry counts, rate limits, base URL overrides) may additionally be
placed in a YAML file pointed at by ``BLACKROAD_PLATFORMS_CONFIG``.
"""

from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence

import yaml

from .errors import MissingCredentialsError

CONFIG_PATH = Path(
    os.environ.get(
        "BLACKROAD_PLATFORMS_CONFIG",
        str(Path.home() / ".config" / "blackroad" / "platforms.yaml"),
    )
)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RATE_LIMIT_PER_MINUTE = 60
DEFAULT_VERSION = "v1"

DEFAULTS: Dict[str, Any] = {
    "environment": "development",
    "auth": {"token": ""},
    "platforms": {},
}

REDACTED = "[REDACTED]"

_OVERRIDABLE = ("base_url", "version", "timeout", "retry_attempts", "rate_limit_per_minute")


@dataclass(frozen=True)
class PlatformCredentials:
    """Secrets for one platform; every field is optional."""

    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    webhook_secret: Optional[str] = None


@dataclass(frozen=True)
class PlatformConfig:
    """Static description of one remote API."""

    name: str
    base_url: str
    enabled: bool = False
    version: str = DEFAULT_VERSION
    credentials: PlatformCredentials = field(default_factory=PlatformCredentials)
    timeout: float = DEFAULT_TIMEOUT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    rate_limit_per_minute: int = DEFAULT_RATE_LIMIT_PER_MINUTE
    api_key_header: str = "X-API-Key"
    api_key_prefix: str = ""


class CredentialCheck(NamedTuple):
    valid: bool
    missing: List[str]


def _deep_update(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_update(dict(base[key]), value)
        else:
            base[key] = value
    return base


def load(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the YAML override file merged with defaults."""
    path = path or CONFIG_PATH
    data: Dict[str, Any] = {}
    if path.exists():
        try:
            raw = yaml.safe_load(path.read_text())
            if isinstance(raw, dict):
                data = raw
        except (yaml.YAMLError, OSError):
            data = {}
    merged = deepcopy(DEFAULTS)
    return _deep_update(merged, data)


def platform_overrides(name: str, path: Optional[Path] = None) -> Dict[str, Any]:
    """Return the override section for *name* (matched case-insensitively)."""
    section = load(path).get("platforms") or {}
    if not isinstance(section, dict):
        return {}
    for key, value in section.items():
        if str(key).lower() == name.lower() and isinstance(value, dict):
            return {k: v for k, v in value.items() if k in _OVERRIDABLE}
    return {}


def runtime_environment(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the runtime mode, e.g. ``development`` or ``production``."""
    env = os.environ if environ is None else environ
    value = env.get("BLACKROAD_ENV")
    if value:
        return value.strip().lower()
    return str(load().get("environment") or "development").strip().lower()


def is_production(environ: Optional[Mapping[str, str]] = None) -> bool:
    return runtime_environment(environ) == "production"


def auth_token() -> str:
    """Return the token guarding the status API (empty when disabled)."""
    token = os.environ.get("BLACKROAD_PLATFORMS_TOKEN")
    if token is not None:
        return token
    return str(load().get("auth", {}).get("token", ""))


def get_env_var(
    key: str,
    required: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Read an environment variable without supplying a default."""
    env = os.environ if environ is None else environ
    value = env.get(key)
    if required and not value:
        raise MissingCredentialsError(key, [key])
    return value


def create_platform_config(
    name: str,
    base_url: str,
    env_prefix: str,
    *,
    version: Optional[str] = None,
    timeout: Optional[float] = None,
    retry_attempts: Optional[int] = None,
    rate_limit_per_minute: Optional[int] = None,
    api_key_header: str = "X-API-Key",
    api_key_prefix: str = "",
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> PlatformConfig:
    """Build a :class:`PlatformConfig` from ``<env_prefix>_*`` variables.

    Falsy options fall back to the package defaults. *overrides* (usually the
    platform's section of the YAML file) take precedence over the arguments.
    """
    overrides = dict(overrides or {})

    def env(suffix: str) -> Optional[str]:
        return get_env_var(f"{env_prefix}_{suffix}", environ=environ)

    return PlatformConfig(
        name=name,
        enabled=env("ENABLED") == "true",
        base_url=overrides.get("base_url") or base_url,
        version=overrides.get("version") or version or DEFAULT_VERSION,
        credentials=PlatformCredentials(
            api_key=env("API_KEY"),
            api_secret=env("API_SECRET"),
            access_token=env("ACCESS_TOKEN"),
            refresh_token=env("REFRESH_TOKEN"),
            webhook_secret=env("WEBHOOK_SECRET"),
        ),
        timeout=float(overrides.get("timeout") or timeout or DEFAULT_TIMEOUT),
        retry_attempts=int(overrides.get("retry_attempts") or retry_attempts or DEFAULT_RETRY_ATTEMPTS),
        rate_limit_per_minute=int(
            overrides.get("rate_limit_per_minute")
            or rate_limit_per_minute
            or DEFAULT_RATE_LIMIT_PER_MINUTE
        ),
        api_key_header=api_key_header,
        api_key_prefix=api_key_prefix,
    )


def validate_credentials(config: PlatformConfig, required: Sequence[str]) -> CredentialCheck:
    """Report which of the *required* credential fields are empty."""
    missing = [key for key in required if not getattr(config.credentials, key, None)]
    return CredentialCheck(valid=not missing, missing=missing)


def require_credentials(config: PlatformConfig, required: Sequence[str]) -> None:
    check = validate_credentials(config, required)
    if not check.valid:
        raise MissingCredentialsError(config.name, check.missing)


def sanitize_config_for_logging(config: PlatformConfig) -> Dict[str, Any]:
    """Return a dict view of *config* with every secret redacted."""
    return {
        "name": config.name,
        "enabled": config.enabled,
        "base_url": config.base_url,
        "version": config.version,
        "timeout": config.timeout,
        "retry_attempts": config.retry_attempts,
        "rate_limit_per_minute": config.rate_limit_per_minute,
        "credentials": {
            f.name: REDACTED if getattr(config.credentials, f.name) else None
            for f in fields(PlatformCredentials)
        },
    }


__all__ = [
    "CONFIG_PATH",
    "CredentialCheck",
    "PlatformConfig",
    "PlatformCredentials",
    "auth_token",
    "create_platform_config",
    "get_env_var",
    "is_production",
    "load",
    "platform_overrides",
    "require_credentials",
    "runtime_environment",
    "sanitize_config_for_logging",
    "validate_credentials",
]

"""FastAPI application exposing platform status.

This module provides:
- Health checks for load balancers
- Registry listing with per-platform configuration state
- Per-platform client health checks (token protected)
- A ``.env`` template download
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from . import __version__
from .config import auth_token as get_auth_token, runtime_environment
from .errors import MissingCredentialsError, UnknownPlatformError
from .registry import (
    PLATFORM_REGISTRY,
    PlatformEntry,
    create_platform_client,
    generate_env_template,
    get_platform_by_name,
    missing_env_vars,
)

# FastAPI application
app = FastAPI(
    title="BlackRoad Platforms API",
    version=__version__,
    description="Status of the BlackRoad platform integrations",
    docs_url="/_docs",
    redoc_url="/_redoc",
)


# ==============================================================================
# Response Models
# ==============================================================================


class PlatformStatus(BaseModel):
    """A registry entry with its configuration state."""
    name: str
    category: str
    description: str
    env_prefix: str
    required_env_vars: List[str]
    optional_env_vars: List[str]
    docs: Optional[str] = None
    configured: bool
    missing: List[str]


def _status(entry: PlatformEntry) -> PlatformStatus:
    missing = missing_env_vars(entry.name)
    return PlatformStatus(
        name=entry.name,
        category=entry.category,
        description=entry.description,
        env_prefix=entry.env_prefix,
        required_env_vars=entry.required_env_vars,
        optional_env_vars=entry.optional_env_vars,
        docs=entry.docs,
        configured=not missing,
        missing=missing,
    )


# ==============================================================================
# Authentication Helpers
# ==============================================================================


def require_bearer_token(authorization: str = Header(default="")) -> None:
    """Validate bearer token authentication."""
    expected = get_auth_token()
    if not expected:
        return  # No token configured, allow all

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or token != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ==============================================================================
# Health Endpoints
# ==============================================================================


@app.get("/health")
@app.get("/healthz")
def healthcheck() -> Dict[str, Any]:
    """Return a minimal health payload for load balancers."""
    return {
        "ok": True,
        "service": "blackroad-platforms",
        "version": __version__,
        "environment": runtime_environment(),
        "auth_enabled": bool(get_auth_token()),
    }


# ==============================================================================
# Registry Endpoints
# ==============================================================================


@app.get("/platforms", response_model=List[PlatformStatus])
def list_platforms(category: Optional[str] = None) -> List[PlatformStatus]:
    """List registered platforms, optionally filtered by category."""
    entries = [p for p in PLATFORM_REGISTRY if category is None or p.category == category]
    return [_status(p) for p in entries]


@app.get("/platforms/{name}", response_model=PlatformStatus)
def get_platform(name: str) -> PlatformStatus:
    entry = get_platform_by_name(name)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Unknown platform: {name}")
    return _status(entry)


@app.get("/platforms/{name}/health")
async def platform_health(name: str, _: None = Depends(require_bearer_token)) -> Dict[str, Any]:
    """Build the platform client and report its health check."""
    try:
        client = create_platform_client(name)
    except UnknownPlatformError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except MissingCredentialsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": str(exc), "missing": exc.missing},
        ) from exc

    async with client:
        return client.health_check()


@app.get("/env-template", response_class=PlainTextResponse)
def env_template() -> str:
    """Return a ``.env`` template covering every platform."""
    return generate_env_template()


def main() -> None:
    """Run the API server."""
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    uvicorn.run(
        app,
        host=os.getenv("BLACKROAD_PLATFORMS_HOST", "127.0.0.1"),
        port=int(os.getenv("BLACKROAD_PLATFORMS_PORT", "8000")),
    )


if __name__ == "__main__":
    main()


__all__ = ["app", "main"]

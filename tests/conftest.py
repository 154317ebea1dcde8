"""
Platforms Test Configuration
----------------------------
Shared fixtures for all tests.

Every test runs with the platform environment variables cleared and the YAML
override file pointed at an empty temporary directory.
"""

import os
from typing import Any, Callable, List

import httpx
import pytest

from platforms import config
from platforms.config import PlatformConfig
from platforms.http_client import SafeHttpClient

ENV_PREFIXES = (
    "RAILWAY_",
    "CLOUDFLARE_",
    "VERCEL_",
    "DIGITALOCEAN_",
    "GITHUB_",
    "DOCKER_",
    "ASANA_",
    "NOTION_",
    "CLERK_",
    "STRIPE_",
    "HUGGINGFACE_",
    "BLACKROAD_",
)


# =============================================================================
# Test Isolation
# =============================================================================

@pytest.fixture(autouse=True)
def config_path(monkeypatch, tmp_path):
    """Clear platform variables and redirect the YAML override file."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)

    path = tmp_path / "platforms.yaml"
    monkeypatch.setattr(config, "CONFIG_PATH", path)
    return path


# =============================================================================
# Fake time
# =============================================================================

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeSleep:
    """Records requested delays and advances the clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper(clock) -> FakeSleep:
    return FakeSleep(clock)


# =============================================================================
# HTTP helpers
# =============================================================================

@pytest.fixture
def make_http(sleeper, clock) -> Callable[..., SafeHttpClient]:
    """Build a SafeHttpClient whose network is *handler*."""

    def factory(handler: Callable[[httpx.Request], httpx.Response], production: bool = False, **overrides: Any):
        options = {"name": "Example", "base_url": "https://api.example.com/v1", **overrides}
        return SafeHttpClient(
            PlatformConfig(**options),
            production=production,
            transport=httpx.MockTransport(handler),
            sleep=sleeper,
            clock=clock,
        )

    return factory


@pytest.fixture
def recorder():
    """Handler that stores each request and answers from a queue."""

    class Recorder:
        def __init__(self) -> None:
            self.requests: List[httpx.Request] = []
            self.responses: List[httpx.Response] = []

        def reply(self, *responses: httpx.Response) -> "Recorder":
            self.responses.extend(responses)
            return self

        def __call__(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if len(self.responses) > 1:
                return self.responses.pop(0)
            if self.responses:
                return self.responses[0]
            return httpx.Response(200, json={})

        @property
        def last(self) -> httpx.Request:
            return self.requests[-1]

    return Recorder()

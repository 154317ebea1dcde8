"""Safe HTTP client shared by every platform integration.

Each request goes through the same pipeline:

- URL building and validation (SSRF guard for loopback hosts)
- Per-minute rate limiting
- Auth header selection from the platform credentials
- Retries with exponential backoff (1s, 2s, 4s, ...)
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Mapping, Optional, TypeVar
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from .config import PlatformConfig, is_production, sanitize_config_for_logging
from .errors import InvalidUrlError, RequestFailedError, TransientRequestError

logger = logging.getLogger(__name__)

T = TypeVar("T")

BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1"})
ALLOWED_SCHEMES = ("http", "https")
RATE_LIMIT_WINDOW = 60.0
USER_AGENT = "BlackRoad-Platforms"

Sleep = Callable[[float], Awaitable[Any]]
Clock = Callable[[], float]


@dataclass
class HttpRequestOptions:
    method: str
    path: str
    headers: Optional[Dict[str, str]] = None
    body: Any = None
    query: Optional[Mapping[str, Any]] = None
    timeout: Optional[float] = None
    form: Optional[Mapping[str, str]] = None


@dataclass
class HttpResponse(Generic[T]):
    status: int
    status_text: str
    headers: Dict[str, str]
    data: T
    request_id: Optional[str] = None


# ==============================================================================
# Rate Limiter
# ==============================================================================


class RateLimiter:
    """Fixed-window limiter: ``limit`` requests per ``window`` seconds.

    ``acquire`` holds a lock across check, wait and decrement, so concurrent
    callers can never drive ``remaining`` below zero.
    """

    def __init__(
        self,
        limit: int,
        window: float = RATE_LIMIT_WINDOW,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.limit = limit
        self.window = window
        self.remaining = limit
        self._clock = clock
        self._sleep = sleep
        self.reset_at = clock() + window
        # Created on first acquire so it belongs to the running loop.
        self._lock: Optional[asyncio.Lock] = None

    def _reset(self) -> None:
        self.remaining = self.limit
        self.reset_at = self._clock() + self.window

    async def acquire(self) -> None:
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._clock() > self.reset_at:
                self._reset()

            if self.remaining <= 0:
                wait = max(0.0, self.reset_at - self._clock())
                logger.debug("Rate limit reached, waiting %.2fs for window reset", wait)
                await self._sleep(wait)
                self._reset()

            self.remaining -= 1


# ==============================================================================
# Safe HTTP Client
# ==============================================================================


class SafeHttpClient:
    """Async HTTP client bound to one :class:`PlatformConfig`."""

    def __init__(
        self,
        config: PlatformConfig,
        *,
        production: Optional[bool] = None,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config
        self.production = is_production() if production is None else production
        self.rate_limiter = RateLimiter(
            config.rate_limit_per_minute,
            clock=clock,
            sleep=sleep,
        )
        self.default_headers = dict(headers or {})
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the underlying httpx client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.config.timeout,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SafeHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def validate_url(self, url: str) -> None:
        """Raise :class:`InvalidUrlError` if *url* may not be requested."""
        try:
            parsed = urlsplit(url)
            hostname = parsed.hostname
            parsed.port  # raises on a malformed port
        except ValueError as exc:
            raise InvalidUrlError(url, f"unparseable: {exc}") from exc

        scheme = parsed.scheme.lower()
        if scheme not in ALLOWED_SCHEMES or not hostname:
            raise InvalidUrlError(url, "unparseable")

        if self.production:
            if scheme != "https":
                raise InvalidUrlError(url, "HTTPS is required in production")
            if hostname.rstrip(".") in BLOCKED_HOSTS:
                raise InvalidUrlError(url, f"host {hostname} is blocked")

    def build_url(self, path: str, query: Optional[Mapping[str, Any]] = None) -> str:
        """Append *path* and *query* to the configured base URL."""
        base = self.config.base_url.rstrip("/")
        url = f"{base}/{path.lstrip('/')}" if path else base
        if not query:
            return url

        pairs = [(key, _query_value(value)) for key, value in query.items() if value is not None]
        if not pairs:
            return url
        parts = urlsplit(url)
        params = parse_qsl(parts.query, keep_blank_values=True) + pairs
        return urlunsplit(parts._replace(query=urlencode(params)))

    def auth_headers(self) -> Dict[str, str]:
        credentials = self.config.credentials
        if credentials.access_token:
            return {"Authorization": f"Bearer {credentials.access_token}"}
        if credentials.api_key:
            return {self.config.api_key_header: f"{self.config.api_key_prefix}{credentials.api_key}"}
        return {}

    def _headers(self, extra: Optional[Mapping[str, str]], form: bool) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded" if form else "application/json",
            "User-Agent": f"{USER_AGENT}/{self.config.version}",
            **self.default_headers,
        }
        if extra:
            headers.update(extra)
        auth = self.auth_headers()
        # Auth always wins over caller-supplied headers.
        auth_names = {name.lower() for name in auth}
        headers = {name: value for name, value in headers.items() if name.lower() not in auth_names}
        headers.update(auth)
        return headers

    async def request(self, options: HttpRequestOptions) -> HttpResponse[Any]:
        """Perform one logical API call, retrying transient failures."""
        url = self.build_url(options.path, options.query)
        self.validate_url(url)

        await self.rate_limiter.acquire()

        headers = self._headers(options.headers, form=options.form is not None)
        content: Optional[bytes] = None
        if options.form is not None:
            content = urlencode(list(options.form.items())).encode()
        elif options.body is not None:
            content = json.dumps(options.body).encode()
        timeout = options.timeout or self.config.timeout
        method = options.method.upper()

        last_error: Optional[TransientRequestError] = None
        attempts = self.config.retry_attempts

        for attempt in range(attempts):
            try:
                return await self._send(method, url, headers, content, timeout, attempt)
            except TransientRequestError as exc:
                last_error = exc
                logger.warning(
                    "%s %s %s failed (attempt %d/%d): %s",
                    self.config.name,
                    method,
                    options.path,
                    attempt + 1,
                    attempts,
                    exc,
                )
                if attempt < attempts - 1:
                    await self._sleep(2 ** attempt)

        if last_error is not None:
            raise last_error
        raise RequestFailedError(f"{self.config.name}: request failed after retries")

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        content: Optional[bytes],
        timeout: float,
        attempt: int,
    ) -> HttpResponse[Any]:
        logger.debug("%s %s (config=%s)", method, url, sanitize_config_for_logging(self.config))
        try:
            response = await self.client.request(
                method,
                url,
                headers=headers,
                content=content,
                timeout=timeout,
            )
        except httpx.HTTPError as exc:
            raise TransientRequestError(
                f"{type(exc).__name__}: {exc}",
                attempt=attempt,
            ) from exc

        data = _decode_body(response)
        if not response.is_success:
            raise TransientRequestError(
                f"HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                attempt=attempt,
                body=data,
            )

        return HttpResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            data=data,
            request_id=response.headers.get("x-request-id") or response.headers.get("request-id"),
        )

    async def get(self, path: str, query: Optional[Mapping[str, Any]] = None) -> HttpResponse[Any]:
        return await self.request(HttpRequestOptions(method="GET", path=path, query=query))

    async def post(self, path: str, body: Any = None, **kwargs: Any) -> HttpResponse[Any]:
        return await self.request(HttpRequestOptions(method="POST", path=path, body=body, **kwargs))

    async def put(self, path: str, body: Any = None, **kwargs: Any) -> HttpResponse[Any]:
        return await self.request(HttpRequestOptions(method="PUT", path=path, body=body, **kwargs))

    async def patch(self, path: str, body: Any = None, **kwargs: Any) -> HttpResponse[Any]:
        return await self.request(HttpRequestOptions(method="PATCH", path=path, body=body, **kwargs))

    async def delete(self, path: str, **kwargs: Any) -> HttpResponse[Any]:
        return await self.request(HttpRequestOptions(method="DELETE", path=path, **kwargs))


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


__all__ = [
    "BLOCKED_HOSTS",
    "HttpRequestOptions",
    "HttpResponse",
    "RateLimiter",
    "SafeHttpClient",
]

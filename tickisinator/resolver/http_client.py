"""
HTTP layer for external resolvers.

Provides:
- APIKeyRotator: Round-robin over comma-separated API keys
- RetryConfig: Exponential backoff for transient failures
- HTTPClient: httpx GET with retry and per-request key injection

Only 5xx responses and transport errors are retried. A 429 raises
RateLimitError on the first attempt.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({500, 502, 503, 504})

# httpx.TransportError is the base of every failure that yields no response
TRANSPORT_ERRORS = (httpx.TransportError,)


@dataclass
class APIKeyRotator:
    """
    Hands out API keys in round-robin order.

    Example:
        rotator = APIKeyRotator.from_env_var("key1,key2")
        await rotator.get_key()  # key1, then key2, then key1 ...
    """

    keys: list[str]
    _next: int = field(default=0, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @classmethod
    def from_env_var(cls, value: str | None) -> "APIKeyRotator | None":
        """Build from a comma-separated value; None when it holds no keys."""
        keys = [k.strip() for k in (value or "").split(",") if k.strip()]
        return cls(keys=keys) if keys else None

    async def get_key(self) -> str:
        async with self._lock:
            key = self.keys[self._next]
            self._next = (self._next + 1) % len(self.keys)
            return key

    @property
    def key_count(self) -> int:
        return len(self.keys)


@dataclass
class RetryConfig:
    """
    Backoff policy.

    delay(attempt) = min(max_backoff_seconds, base_delay * 2**attempt),
    stretched by up to jitter_factor.
    """

    max_retries: int = 2
    max_backoff_seconds: float = 10.0
    base_delay: float = 0.5
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay * (1 + self.jitter_factor * random.random())

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in RETRYABLE_STATUSES


class HTTPClientError(Exception):
    """A request ended without a usable response."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """The server answered 429 Too Many Requests."""


class TransportError(HTTPClientError):
    """No response arrived (DNS, connect, protocol, proxy or timeout failure)."""


class HTTPClient:
    """
    Async GET client with retry and API key injection.

    Example:
        async with HTTPClient(RetryConfig(max_retries=2)) as client:
            response = await client.get(
                "https://financialmodelingprep.com/stable/profile",
                params={"symbol": "AAPL"},
                api_key_rotator=rotator,
                api_key_param="apikey",
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _wait(self, attempt: int, url: str, reason: str) -> None:
        backoff = self.retry_config.calculate_backoff(attempt)
        logger.warning(
            f"{reason} from {url}, attempt {attempt + 1}/"
            f"{self.retry_config.max_retries + 1}, retrying in {backoff:.2f}s"
        )
        await asyncio.sleep(backoff)

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        api_key_rotator: APIKeyRotator | None = None,
        api_key_param: str | None = None,
    ) -> httpx.Response:
        """
        GET with retry on transient failures.

        Args:
            url: Request URL
            params: Query parameters
            api_key_rotator: Supplies a fresh key for every attempt
            api_key_param: Query parameter that carries the key

        Returns:
            The response, for any status below 400

        Raises:
            RateLimitError: On 429
            TransportError: When no response arrived after all retries
            HTTPClientError: On any other status >= 400
        """
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        attempts = self.retry_config.max_retries + 1
        for attempt in range(attempts):
            request_params = dict(params or {})
            if api_key_rotator and api_key_param:
                request_params[api_key_param] = await api_key_rotator.get_key()

            try:
                response = await self._client.get(url, params=request_params or None)
            except TRANSPORT_ERRORS as e:
                if attempt + 1 < attempts:
                    await self._wait(attempt, url, type(e).__name__)
                    continue
                raise TransportError(
                    f"Request failed after {attempts} attempts: {type(e).__name__}"
                ) from e

            status = response.status_code
            if status == 429:
                raise RateLimitError(
                    f"Rate limit exceeded for {url}",
                    status_code=status,
                    response_body=response.text,
                )

            if self.retry_config.is_retryable_status(status) and attempt + 1 < attempts:
                await self._wait(attempt, url, f"HTTP {status}")
                continue

            if status >= 400:
                raise HTTPClientError(
                    f"Request failed with status {status}",
                    status_code=status,
                    response_body=response.text,
                )

            return response

        raise AssertionError("unreachable")

"""
Shared async HTTP plumbing for the bibliographic registries.

Every GET goes through the disk cache, a token bucket and a bounded retry
loop. A registry that stays unreachable yields a degraded ``RegistryResult``
instead of an exception; a non-retryable 4xx raises UpstreamError.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import aiohttp
from pydantic import BaseModel

from degradscan.constants import (
    CACHE_TTL,
    DEFAULT_CACHE_DIR,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT,
)
from degradscan.errors import UpstreamError
from degradscan.utils.cache import cache_get, cache_set

logger = logging.getLogger("degradscan.data_sources")


class RetryConfig(BaseModel):
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    retryable_status_codes: set[int] = {429, 500, 502, 503, 504}


class ClientConfig(BaseModel):
    """Transport settings for one registry client."""

    timeout_seconds: float = DEFAULT_TIMEOUT
    requests_per_second: float = 5.0
    burst: int = 5
    retry: RetryConfig = RetryConfig()
    cache_enabled: bool = True
    cache_dir: Path = DEFAULT_CACHE_DIR
    cache_ttl: int = CACHE_TTL


class RegistryResult(BaseModel):
    """Decoded JSON body of a registry call.

    ``degraded`` means the registry could not be reached after all retries,
    as opposed to answering without a matching record.
    """

    data: Any = None
    degraded: bool = False
    error: str | None = None


class TokenBucket:
    """Allows ``burst`` calls at once, then ``rate`` calls per second."""

    def __init__(self, rate: float, burst: int):
        self.rate = rate
        self.capacity = float(max(1, burst))
        self._tokens = self.capacity
        self._stamp = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self.capacity, self._tokens + (now - self._stamp) * self.rate)
        self._stamp = now

    async def take(self) -> None:
        async with self._lock:
            self._refill()
            if self._tokens < 1.0:
                delay = (1.0 - self._tokens) / self.rate
                logger.debug("Throttling for %.2fs", delay)
                await asyncio.sleep(delay)
                self._refill()
            self._tokens = max(0.0, self._tokens - 1.0)


class _TransientFailure(Exception):
    def __init__(self, reason: str, wait: float | None = None):
        super().__init__(reason)
        self.wait = wait


def _retry_after(value: str | None) -> float | None:
    # Only the delta-seconds form is honoured.
    try:
        return float(value) if value else None
    except ValueError:
        return None


class BaseClient(ABC):
    """Abstract base for the Crossref and PubMed clients.

    Subclasses name themselves via ``_source_name`` and call ``_get_json``.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.config = config or ClientConfig()
        self.headers = headers or {}
        self._bucket = TokenBucket(self.config.requests_per_second, self.config.burst)
        self._session: aiohttp.ClientSession | None = None

    @property
    @abstractmethod
    def _source_name(self) -> str: ...

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
                headers=self.headers,
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    def _backoff(self, attempt: int) -> float:
        retry = self.config.retry
        return min(retry.base_delay * retry.backoff_factor ** (attempt - 1), retry.max_delay)

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        *,
        namespace: str | None = None,
        method: str = "get",
    ) -> RegistryResult:
        """GET ``url`` and decode JSON, served from the disk cache when possible.

        Responses are cached only when ``namespace`` is given.

        Raises:
            UpstreamError: on a non-retryable HTTP status (4xx other than 429).
        """
        label = f"{self._source_name}.{method}"
        key = {"url": url, **(params or {})}
        use_cache = namespace is not None and self.config.cache_enabled

        if use_cache:
            hit = cache_get(namespace, key, self.config.cache_dir)
            if hit is not None:
                logger.debug("Cache hit [%s] %s", label, url)
                return RegistryResult(data=hit)

        failure = ""
        wait = 0.0
        started = time.monotonic()
        for attempt in range(1, self.config.retry.max_retries + 2):
            if wait:
                await asyncio.sleep(wait)
            await self._bucket.take()
            logger.info("GET [%s] attempt=%d url=%s", label, attempt, url)
            try:
                data = await self._fetch(url, params)
            except _TransientFailure as e:
                failure = str(e)
                wait = e.wait if e.wait is not None else self._backoff(attempt)
                logger.warning("Transient failure [%s] attempt=%d: %s", label, attempt, failure)
                continue

            if use_cache:
                try:
                    cache_set(namespace, key, data, self.config.cache_dir, ttl=self.config.cache_ttl)
                except OSError as e:
                    logger.warning("Could not cache [%s]: %s", label, e)
            logger.info("OK [%s] in %.2fs", label, time.monotonic() - started)
            return RegistryResult(data=data)

        logger.error(
            "Giving up [%s] after %.1fs: %s", label, time.monotonic() - started, failure
        )
        return RegistryResult(degraded=True, error=f"[{self._source_name}] {failure}")

    async def _fetch(self, url: str, params: dict[str, Any] | None) -> Any:
        session = await self._get_session()
        try:
            resp = await session.get(url, params=params)
        except asyncio.TimeoutError as e:
            raise _TransientFailure("timed out") from e
        except aiohttp.ClientError as e:
            raise _TransientFailure(f"connection error: {e}") from e

        if resp.status in self.config.retry.retryable_status_codes:
            body = await resp.text()
            wait = _retry_after(resp.headers.get("Retry-After")) if resp.status == 429 else None
            raise _TransientFailure(f"HTTP {resp.status}: {body[:200]}", wait)
        if resp.status >= 400:
            body = await resp.text()
            raise UpstreamError(
                self._source_name, f"HTTP {resp.status}: {body[:500]}", status_code=resp.status
            )
        return await resp.json(content_type=None)

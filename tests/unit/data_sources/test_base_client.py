"""Unit tests for base_client module."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from degradscan.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    RetryConfig,
    TokenBucket,
)
from degradscan.errors import UpstreamError


class ConcreteTestClient(BaseClient):
    """Concrete implementation of BaseClient for testing."""

    @property
    def _source_name(self) -> str:
        return "test_client"


def _config(tmp_path=None, max_retries: int = 0) -> ClientConfig:
    return ClientConfig(
        retry=RetryConfig(max_retries=max_retries, base_delay=0.0),
        cache_enabled=tmp_path is not None,
        cache_dir=tmp_path or ClientConfig().cache_dir,
    )


def _response(status: int, json_body=None, text: str = "", headers=None) -> MagicMock:
    resp = MagicMock()
    resp.status = status
    resp.headers = headers or {}
    resp.json = AsyncMock(return_value=json_body)
    resp.text = AsyncMock(return_value=text)
    return resp


def _session(*responses) -> MagicMock:
    session = MagicMock()
    session.get = AsyncMock(side_effect=list(responses))
    return session


@pytest.mark.asyncio
class TestBaseClient:
    """Session lifecycle (no network calls)."""

    async def test_client_context_manager(self):
        async with ConcreteTestClient(_config()) as client:
            assert client._session is None  # Session created lazily
            session = await client._get_session()

            assert session is not None
            assert not session.closed

        assert client._session.closed

    async def test_session_reuse(self):
        client = ConcreteTestClient(_config())

        session1 = await client._get_session()
        session2 = await client._get_session()

        assert session1 is session2
        await client.close()


@pytest.mark.asyncio
class TestGetJson:
    async def test_success_is_served_from_cache_afterwards(self, tmp_path):
        session = _session(_response(200, {"ok": True}))
        client = ConcreteTestClient(_config(tmp_path))

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            first = await client._get_json("https://example.com/a", {"q": "1"}, namespace="t")
            second = await client._get_json("https://example.com/a", {"q": "1"}, namespace="t")

        assert first.data == second.data == {"ok": True}
        assert first.degraded is False
        assert session.get.await_count == 1

    async def test_without_namespace_nothing_is_cached(self, tmp_path):
        session = _session(_response(200, {"n": 1}), _response(200, {"n": 2}))
        client = ConcreteTestClient(_config(tmp_path))

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            await client._get_json("https://example.com/a")
            second = await client._get_json("https://example.com/a")

        assert second.data == {"n": 2}
        assert list(tmp_path.iterdir()) == []

    async def test_raises_upstream_error_on_4xx(self):
        session = _session(_response(404, text="Not Found"))
        client = ConcreteTestClient(_config())

        with patch.object(client, "_get_session", new=AsyncMock(return_value=session)):
            with pytest.raises(UpstreamError, match="HTTP 404") as exc_info:
                await client._get_json("https://example.com/missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.source == "test_client"

    async def test_retryable_status_degrades_after_retries(self):
        session = _session(*[_response(503, text="busy") for _ in range(3)])
        client = ConcreteTestClient(_config(max_retries=2))

        with (
            patch.object(client, "_get_session", new=AsyncMock(return_value=session)),
            patch("degradscan.data_sources.base_client.asyncio.sleep", new=AsyncMock()),
        ):
            result = await client._get_json("https://example.com/busy")

        assert result.data is None
        assert result.degraded is True
        assert result.error == "[test_client] HTTP 503: busy"
        assert session.get.await_count == 3

    async def test_recovers_after_429_and_honours_retry_after(self):
        session = _session(
            _response(429, text="slow down", headers={"Retry-After": "7"}),
            _response(200, {"ok": True}),
        )
        client = ConcreteTestClient(_config(max_retries=1))
        sleep = AsyncMock()

        with (
            patch.object(client, "_get_session", new=AsyncMock(return_value=session)),
            patch("degradscan.data_sources.base_client.asyncio.sleep", new=sleep),
        ):
            result = await client._get_json("https://example.com/limited")

        assert result.data == {"ok": True}
        assert result.degraded is False
        sleep.assert_awaited_once_with(7.0)


@pytest.mark.asyncio
class TestTokenBucket:
    async def test_burst_passes_without_sleeping(self):
        bucket = TokenBucket(rate=1.0, burst=3)
        with patch("degradscan.data_sources.base_client.asyncio.sleep", new=AsyncMock()) as sleep:
            for _ in range(3):
                await bucket.take()
        sleep.assert_not_awaited()

    async def test_empty_bucket_sleeps(self):
        bucket = TokenBucket(rate=2.0, burst=1)
        with patch("degradscan.data_sources.base_client.asyncio.sleep", new=AsyncMock()) as sleep:
            await bucket.take()
            await bucket.take()
        sleep.assert_awaited_once()

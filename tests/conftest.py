"""Pytest configuration and fixtures."""

from typing import Any

import pytest

from degradscan.config import Settings
from degradscan.models import (
    DegradationProduct,
    DegradationReport,
    Provenance,
    SearchLogRecord,
)


class FakeCache:
    """In-memory ReportCache that records calls."""

    def __init__(self) -> None:
        self.entries: dict[str, dict[str, Any]] = {}
        self.get_calls: list[str] = []
        self.set_calls: list[tuple[str, str, Provenance]] = []
        self.fail = False

    async def get(self, key: str) -> Any | None:
        self.get_calls.append(key)
        if self.fail:
            raise RuntimeError("cache down")
        entry = self.entries.get(key)
        return entry["data"] if entry else None

    async def set(self, key, substance_name, report, provenance) -> bool:
        self.set_calls.append((key, substance_name, provenance))
        if self.fail:
            raise RuntimeError("cache down")
        self.entries[key] = {"data": report.to_payload(), "source": provenance}
        return True


class FakeStore:
    """In-memory ReportStore keyed by lowercased name."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.get_calls: list[str] = []
        self.save_calls: list[tuple[str, Provenance]] = []
        self.fail = False

    async def get_by_substance(self, name: str) -> Any | None:
        self.get_calls.append(name)
        if self.fail:
            raise RuntimeError("store down")
        return self.rows.get(name.strip().lower())

    async def save(self, name, products, references, provenance) -> None:
        self.save_calls.append((name, provenance))
        if self.fail:
            raise RuntimeError("store down")
        self.rows[name.strip().lower()] = {
            "products": [p.model_dump(by_alias=True) for p in products],
            "references": list(references),
        }


class FakeSearchLog:
    def __init__(self) -> None:
        self.records: list[SearchLogRecord] = []
        self.fail = False

    async def append(self, record: SearchLogRecord) -> None:
        if self.fail:
            raise RuntimeError("log down")
        self.records.append(record)


def make_product(name: str, route: str = "hydrolysis") -> DegradationProduct:
    return DegradationProduct(
        substance=name,
        degradation_route=route,
        environmental_conditions="acidic pH",
        toxicity_data="low",
    )


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def fake_log() -> FakeSearchLog:
    return FakeSearchLog()


@pytest.fixture
def no_key_settings(tmp_path) -> Settings:
    """Settings without a synthesis credential."""
    return Settings(
        _env_file=None, open_router_api_key="", force_ai=False, cache_dir=tmp_path
    )


@pytest.fixture
def key_settings(tmp_path) -> Settings:
    """Settings with a synthesis credential."""
    return Settings(
        _env_file=None, open_router_api_key="sk-test", force_ai=False, cache_dir=tmp_path
    )


@pytest.fixture
def force_settings(tmp_path) -> Settings:
    """Settings with a credential and force_ai enabled."""
    return Settings(
        _env_file=None, open_router_api_key="sk-test", force_ai=True, cache_dir=tmp_path
    )


@pytest.fixture
def sample_report() -> DegradationReport:
    """Two-product report used across tests."""
    return DegradationReport(
        products=[make_product("Product A"), make_product("Product B", "oxidation")],
        references=["Smith J. (2020). Stability of X. doi:10.1000/abc123"],
    )


@pytest.fixture
def product_factory():
    """Build a DegradationProduct from a name (and optional route)."""
    return make_product

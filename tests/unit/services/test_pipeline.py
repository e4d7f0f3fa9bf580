"""Unit tests for ResolutionPipeline against in-memory collaborators."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from degradscan.errors import ParseError, UpstreamError
from degradscan.helpers.substance_helpers import substance_cache_key
from degradscan.models import DegradationReport, Provenance, RequestContext
from degradscan.services.mock_reports import MOCK_REPORTS
from degradscan.services.pipeline import ResolutionPipeline, best_effort


def _pipeline(cache, store, log, settings, synthesize=None) -> ResolutionPipeline:
    kwargs = {}
    if synthesize is not None:
        kwargs["synthesize"] = synthesize
    return ResolutionPipeline(cache, store, log, settings=settings, **kwargs)


@pytest.fixture
def other_report(product_factory) -> DegradationReport:
    return DegradationReport(
        products=[product_factory("From store")], references=["store ref"]
    )


# ── Cache priority ────────────────────────────────────────────────────────────


async def test_cache_entry_wins_over_store(
    fake_cache, fake_store, fake_log, no_key_settings, sample_report, other_report
):
    key = substance_cache_key("aspirin")
    fake_cache.entries[key] = {"data": sample_report.to_payload()}
    fake_store.rows["aspirin"] = other_report.to_payload()
    pipeline = _pipeline(fake_cache, fake_store, fake_log, no_key_settings)

    outcome = await pipeline.resolve_detailed("Aspirin")

    assert outcome.report == sample_report
    assert outcome.provenance is Provenance.CACHE
    assert outcome.cache_hit is True
    assert fake_store.get_calls == []
    assert fake_log.records[0].response_source is Provenance.CACHE
    assert fake_log.records[0].was_cached is True


async def test_structurally_invalid_cache_entry_is_a_miss(
    fake_cache, fake_store, fake_log, no_key_settings, other_report
):
    key = substance_cache_key("aspirin")
    fake_cache.entries[key] = {"data": {"products": []}}  # no references
    fake_store.rows["aspirin"] = other_report.to_payload()
    pipeline = _pipeline(fake_cache, fake_store, fake_log, no_key_settings)

    outcome = await pipeline.resolve_detailed("aspirin")

    assert outcome.provenance is Provenance.DATABASE
    assert outcome.report == other_report


# ── Store hit writes through to cache ────────────────────────────────────────


async def test_store_hit_populates_cache_for_next_lookup(
    fake_cache, fake_store, fake_log, no_key_settings, other_report
):
    fake_store.rows["paracetamol"] = other_report.to_payload()
    pipeline = _pipeline(fake_cache, fake_store, fake_log, no_key_settings)

    first = await pipeline.resolve_detailed("Paracetamol")
    second = await pipeline.resolve_detailed("  PARACETAMOL ")

    assert first.provenance is Provenance.DATABASE
    assert first.cache_hit is False
    assert fake_cache.set_calls == [
        ("substance_paracetamol", "Paracetamol", Provenance.DATABASE)
    ]
    assert second.provenance is Provenance.CACHE
    assert second.report == other_report
    assert len(fake_store.get_calls) == 1
    assert fake_store.save_calls == []


# ── Force synthesis ──────────────────────────────────────────────────────────


async def test_force_ai_bypasses_lookups_and_overwrites(
    fake_cache, fake_store, fake_log, force_settings, sample_report, other_report
):
    key = substance_cache_key("ibuprofen")
    fake_cache.entries[key] = {"data": other_report.to_payload()}
    fake_store.rows["ibuprofen"] = other_report.to_payload()
    synthesize = AsyncMock(return_value=sample_report)
    pipeline = _pipeline(fake_cache, fake_store, fake_log, force_settings, synthesize)

    outcome = await pipeline.resolve_detailed("Ibuprofen")

    synthesize.assert_awaited_once_with("Ibuprofen", force_settings)
    assert outcome.report == sample_report
    assert outcome.provenance is Provenance.OPENROUTER
    assert fake_cache.get_calls == []
    assert fake_store.get_calls == []
    assert fake_cache.entries[key]["data"] == sample_report.to_payload()
    assert fake_store.rows["ibuprofen"] == sample_report.to_payload()
    assert [r.response_source for r in fake_log.records] == [Provenance.OPENROUTER]


async def test_force_ai_without_credential_uses_normal_order(
    fake_cache, fake_store, fake_log, tmp_path, sample_report
):
    from degradscan.config import Settings

    settings = Settings(_env_file=None, open_router_api_key="", force_ai=True, cache_dir=tmp_path)
    fake_cache.entries[substance_cache_key("x")] = {"data": sample_report.to_payload()}
    synthesize = AsyncMock()
    pipeline = _pipeline(fake_cache, fake_store, fake_log, settings, synthesize)

    outcome = await pipeline.resolve_detailed("x")

    assert outcome.provenance is Provenance.CACHE
    synthesize.assert_not_awaited()


# ── Synthesis and write-back ─────────────────────────────────────────────────


async def test_store_miss_synthesizes_and_writes_store_then_cache(
    fake_cache, fake_store, fake_log, key_settings, sample_report
):
    synthesize = AsyncMock(return_value=sample_report)
    pipeline = _pipeline(fake_cache, fake_store, fake_log, key_settings, synthesize)

    outcome = await pipeline.resolve_detailed("Caffeine")

    assert outcome.provenance is Provenance.OPENROUTER
    assert fake_store.save_calls == [("Caffeine", Provenance.OPENROUTER)]
    assert fake_cache.set_calls == [
        ("substance_caffeine", "Caffeine", Provenance.OPENROUTER)
    ]
    assert len(fake_log.records) == 1
    assert fake_log.records[0].was_cached is False


async def test_scenario_paracetamol_without_credential_returns_mock(
    fake_cache, fake_store, fake_log, no_key_settings
):
    pipeline = _pipeline(fake_cache, fake_store, fake_log, no_key_settings)
    context = RequestContext(ip="10.0.0.1", user_agent="pytest")

    report = await pipeline.resolve("paracetamol", context)

    assert report == MOCK_REPORTS["paracetamol"]
    assert len(report.products) == 3
    record = fake_log.records[0]
    assert record.response_source is Provenance.MOCK
    assert record.substance_name == "paracetamol"
    assert record.user_ip == "10.0.0.1"
    assert record.user_agent == "pytest"
    assert fake_store.save_calls == [("paracetamol", Provenance.MOCK)]


async def test_scenario_unknown_compound_returns_generic_report(
    fake_cache, fake_store, fake_log, no_key_settings
):
    pipeline = _pipeline(fake_cache, fake_store, fake_log, no_key_settings)

    report = await pipeline.resolve("Unknown Compound Z")

    assert len(report.products) == 1
    assert "Unknown Compound Z" in report.products[0].substance
    assert report.references


# ── Failure containment ──────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "error",
    [
        UpstreamError("openrouter", "HTTP 500: boom", status_code=500),
        ParseError("no report"),
        RuntimeError("unexpected"),
    ],
)
async def test_synthesis_failure_degrades_to_mock(
    fake_cache, fake_store, fake_log, key_settings, error
):
    synthesize = AsyncMock(side_effect=error)
    pipeline = _pipeline(fake_cache, fake_store, fake_log, key_settings, synthesize)

    outcome = await pipeline.resolve_detailed("Ibuprofen")

    assert outcome.report == MOCK_REPORTS["ibuprofen"]
    assert outcome.provenance is Provenance.MOCK
    assert [r.response_source for r in fake_log.records] == [Provenance.ERROR]
    assert fake_cache.set_calls == []
    assert fake_store.save_calls == []


@pytest.mark.parametrize(
    "llm_output",
    ["", "   ", "I am not able to answer that.", '{"products": "nope"}'],
)
async def test_malformed_llm_output_never_reaches_caller(
    fake_cache, fake_store, fake_log, key_settings, llm_output
):
    pipeline = _pipeline(fake_cache, fake_store, fake_log, key_settings)

    with patch(
        "degradscan.services.synthesizer.query_llm",
        new=AsyncMock(return_value=llm_output),
    ):
        report = await pipeline.resolve("Some Substance")

    assert report.products
    assert report.references


async def test_http_500_from_llm_never_reaches_caller(
    fake_cache, fake_store, fake_log, key_settings
):
    pipeline = _pipeline(fake_cache, fake_store, fake_log, key_settings)

    with patch(
        "degradscan.services.synthesizer.query_llm",
        new=AsyncMock(side_effect=UpstreamError("openrouter", "HTTP 500", 500)),
    ):
        report = await pipeline.resolve("Some Substance")

    assert report.products
    assert report.references


async def test_collaborator_failures_do_not_change_result(
    fake_cache, fake_store, fake_log, no_key_settings
):
    fake_cache.fail = True
    fake_store.fail = True
    fake_log.fail = True
    pipeline = _pipeline(fake_cache, fake_store, fake_log, no_key_settings)

    outcome = await pipeline.resolve_detailed("paracetamol")

    assert outcome.report == MOCK_REPORTS["paracetamol"]
    assert outcome.provenance is Provenance.MOCK
    assert len(fake_store.save_calls) == 1
    assert len(fake_cache.set_calls) == 1


async def test_every_path_writes_exactly_one_audit_record(
    fake_cache, fake_store, fake_log, no_key_settings
):
    pipeline = _pipeline(fake_cache, fake_store, fake_log, no_key_settings)

    await pipeline.resolve("ibuprofen")  # mock
    await pipeline.resolve("IBUPROFEN")  # cache

    assert [r.response_source for r in fake_log.records] == [
        Provenance.MOCK,
        Provenance.CACHE,
    ]


async def test_best_effort_returns_default_on_failure():
    async def boom():
        raise ValueError("x")

    assert await best_effort("boom", boom(), default=False) is False


async def test_synthesized_report_without_references_is_kept(
    fake_cache, fake_store, fake_log, key_settings, product_factory
):
    products = [product_factory(f"Caffeine product {i}") for i in range(8)]
    llm_output = json.dumps(
        {"products": [p.model_dump(by_alias=True) for p in products]}
    )
    pipeline = _pipeline(fake_cache, fake_store, fake_log, key_settings)

    with patch(
        "degradscan.services.synthesizer.query_llm",
        new=AsyncMock(return_value=llm_output),
    ) as mock_llm:
        outcome = await pipeline.resolve_detailed("Caffeine")

    assert outcome.provenance == Provenance.OPENROUTER
    assert outcome.report.products == products
    assert outcome.report.references == []
    mock_llm.assert_awaited_once()
    assert [r.response_source for r in fake_log.records] == [Provenance.OPENROUTER]
    assert fake_cache.set_calls[0][2] == Provenance.OPENROUTER

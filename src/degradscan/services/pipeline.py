"""
Resolution pipeline: cache -> store -> synthesis, with write-back and audit.

Strategy:
    0. force_ai + credential: synthesize, overwrite store and cache
    1. cache hit: return
    2. store hit: write cache, return
    3. synthesize (or mock without a credential), write store then cache
    4. audit every attempt exactly once
Any failure in 0-4 is contained: one best-effort "error" audit entry, then the
mock report for the same substance.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from degradscan.config import Settings, get_settings
from degradscan.db.session import get_session_factory
from degradscan.helpers.substance_helpers import (
    normalize_substance_name,
    substance_cache_key,
)
from degradscan.models import (
    DegradationReport,
    Provenance,
    RequestContext,
    ResolutionOutcome,
    SearchLogRecord,
)
from degradscan.services.mock_reports import get_mock_report
from degradscan.services.synthesizer import fetch_report_deep
from degradscan.storage.base import ReportCache, ReportStore, SearchLog
from degradscan.storage.file_cache import FileReportCache
from degradscan.storage.sql_store import SqlReportStore, SqlSearchLog

logger = logging.getLogger(__name__)

Synthesizer = Callable[[str, Settings], Awaitable[DegradationReport]]
MockProvider = Callable[[str], DegradationReport]


async def best_effort(label: str, action: Awaitable[Any], default: Any = None) -> Any:
    """Await a side effect; any failure is logged and replaced by ``default``."""
    try:
        return await action
    except Exception:
        logger.error("%s failed", label, exc_info=True)
        return default


class ResolutionPipeline:
    """Sole entry point for degradation report lookups.

    Collaborators are injected so the pipeline runs against fakes in tests.
    """

    def __init__(
        self,
        cache: ReportCache,
        store: ReportStore,
        search_log: SearchLog,
        settings: Settings | None = None,
        synthesize: Synthesizer = fetch_report_deep,
        mock: MockProvider = get_mock_report,
    ) -> None:
        self.cache = cache
        self.store = store
        self.search_log = search_log
        self.settings = settings or get_settings()
        self._synthesize = synthesize
        self._mock = mock

    async def resolve(
        self, substance_name: str, context: RequestContext | None = None
    ) -> DegradationReport:
        """Return a report for the substance. Never raises."""
        outcome = await self.resolve_detailed(substance_name, context)
        return outcome.report

    async def resolve_detailed(
        self, substance_name: str, context: RequestContext | None = None
    ) -> ResolutionOutcome:
        """Like ``resolve`` but also reports provenance, cache hit and latency."""
        context = context or RequestContext()
        start = time.monotonic()
        logger.info("Resolving degradation report for %r", substance_name)
        try:
            report, provenance, cache_hit = await self._resolve(substance_name)
        except Exception:
            latency = _elapsed_ms(start)
            logger.exception(
                "Resolution failed for %r after %.0fms, using mock report",
                substance_name,
                latency,
            )
            await self._audit(substance_name, context, Provenance.ERROR, False, latency)
            return ResolutionOutcome(
                report=self._fallback(substance_name),
                provenance=Provenance.MOCK,
                cache_hit=False,
                latency_ms=latency,
            )

        latency = _elapsed_ms(start)
        await self._audit(substance_name, context, provenance, cache_hit, latency)
        logger.info(
            "Resolved %r from %s in %.0fms", substance_name, provenance.value, latency
        )
        return ResolutionOutcome(
            report=report, provenance=provenance, cache_hit=cache_hit, latency_ms=latency
        )

    async def _resolve(
        self, substance_name: str
    ) -> tuple[DegradationReport, Provenance, bool]:
        key = substance_cache_key(substance_name)
        has_credential = self.settings.has_llm_credential

        if self.settings.force_ai and has_credential:
            logger.info("force_ai set, skipping cache and store for %r", substance_name)
            report = await self._synthesize(substance_name, self.settings)
            await self._write_back(key, substance_name, report, Provenance.OPENROUTER)
            return report, Provenance.OPENROUTER, False

        cached = await best_effort(f"Cache lookup {key}", self.cache.get(key))
        report = DegradationReport.from_payload(cached, require_all=True)
        if report is not None:
            logger.info("Cache HIT for %s", key)
            return report, Provenance.CACHE, True
        logger.info("Cache MISS for %s", key)

        stored = await best_effort(
            f"Store lookup {substance_name!r}", self.store.get_by_substance(substance_name)
        )
        report = DegradationReport.from_payload(stored, require_all=False)
        if report is not None:
            logger.info("Store HIT for %r", substance_name)
            await best_effort(
                f"Cache write {key}",
                self.cache.set(key, substance_name, report, Provenance.DATABASE),
            )
            return report, Provenance.DATABASE, False
        logger.info("Store MISS for %r", substance_name)

        if has_credential:
            report = await self._synthesize(substance_name, self.settings)
            provenance = Provenance.OPENROUTER
        else:
            logger.info("No synthesis credential, using mock report for %r", substance_name)
            report = self._mock(substance_name)
            provenance = Provenance.MOCK

        await self._write_back(key, substance_name, report, provenance)
        return report, provenance, False

    async def _write_back(
        self,
        key: str,
        substance_name: str,
        report: DegradationReport,
        provenance: Provenance,
    ) -> None:
        # Store first, then cache; each independently fault-tolerant.
        await best_effort(
            f"Store save {substance_name!r}",
            self.store.save(substance_name, report.products, report.references, provenance),
        )
        written = await best_effort(
            f"Cache write {key}",
            self.cache.set(key, substance_name, report, provenance),
            default=False,
        )
        logger.debug("Cache write %s -> %s", key, written)

    async def _audit(
        self,
        substance_name: str,
        context: RequestContext,
        provenance: Provenance,
        cache_hit: bool,
        latency_ms: float,
    ) -> None:
        record = SearchLogRecord(
            substance_name=normalize_substance_name(substance_name),
            search_term=substance_name,
            user_ip=context.ip,
            user_agent=context.user_agent,
            response_source=provenance,
            was_cached=cache_hit,
            latency_ms=latency_ms,
        )
        await best_effort(f"Audit log {substance_name!r}", self.search_log.append(record))

    def _fallback(self, substance_name: str) -> DegradationReport:
        try:
            return self._mock(substance_name)
        except Exception:
            logger.exception("Mock provider failed for %r", substance_name)
            return get_mock_report(substance_name)


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000.0


def build_default_pipeline(settings: Settings | None = None) -> ResolutionPipeline:
    """Pipeline wired to the file cache and the SQL store/log."""
    settings = settings or get_settings()
    session_factory = get_session_factory(settings.database_url)
    return ResolutionPipeline(
        cache=FileReportCache(settings.cache_dir),
        store=SqlReportStore(session_factory),
        search_log=SqlSearchLog(session_factory),
        settings=settings,
    )

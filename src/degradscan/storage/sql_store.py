"""SQLAlchemy-backed report store and audit log.

Sessions are synchronous; each call runs in a worker thread so the
pipeline's event loop is not blocked.
"""

import asyncio
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from degradscan.db.session import get_session_factory
from degradscan.errors import LogError, StoreError
from degradscan.helpers.substance_helpers import normalize_substance_name
from degradscan.models import DegradationProduct, Provenance, SearchLogRecord
from degradscan.sqlalchemy.degradation_reports import DegradationReports
from degradscan.sqlalchemy.search_logs import SearchLogs

logger = logging.getLogger(__name__)


class SqlReportStore:
    """Persistent store; one row per lowercased substance name."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    async def get_by_substance(self, name: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._get, normalize_substance_name(name))

    async def save(
        self,
        name: str,
        products: list[DegradationProduct],
        references: list[str],
        provenance: Provenance,
    ) -> None:
        await asyncio.to_thread(
            self._save,
            normalize_substance_name(name),
            [p.model_dump(by_alias=True) for p in products],
            list(references),
            Provenance(provenance).value,
        )

    def _get(self, key: str) -> dict[str, Any] | None:
        try:
            with self._session_factory() as db:
                row = db.get(DegradationReports, key)
                if row is None:
                    return None
                return {
                    "products": row.products,
                    "references": row.references,
                    "response_source": row.response_source,
                }
        except SQLAlchemyError as e:
            raise StoreError(f"Lookup failed for {key!r}: {e}") from e

    def _save(
        self, key: str, products: list[dict], references: list[str], source: str
    ) -> None:
        try:
            with self._session_factory() as db, db.begin():
                db.merge(
                    DegradationReports(
                        substance_name=key,
                        products=products,
                        references=references,
                        response_source=source,
                    )
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Save failed for {key!r}: {e}") from e
        logger.debug("Stored report for %s (%d products)", key, len(products))


class SqlSearchLog:
    """Append-only audit sink; ``created_at`` is assigned on insert."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    async def append(self, record: SearchLogRecord) -> None:
        await asyncio.to_thread(self._append, record)

    def _append(self, record: SearchLogRecord) -> None:
        try:
            with self._session_factory() as db, db.begin():
                db.add(
                    SearchLogs(
                        substance_name=record.substance_name,
                        search_term=record.search_term,
                        user_ip=record.user_ip,
                        user_agent=record.user_agent,
                        response_source=record.response_source.value,
                        was_cached=record.was_cached,
                        latency_ms=record.latency_ms,
                    )
                )
        except SQLAlchemyError as e:
            raise LogError(f"Audit log write failed: {e}") from e

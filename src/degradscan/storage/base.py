"""Collaborator interfaces consumed by the resolution pipeline."""

from typing import Any, Protocol

from degradscan.models import DegradationProduct, DegradationReport, Provenance, SearchLogRecord


class ReportCache(Protocol):
    """Key/value memo of reports. Unknown keys return None, not an error."""

    async def get(self, key: str) -> Any | None: ...

    async def set(
        self,
        key: str,
        substance_name: str,
        report: DegradationReport,
        provenance: Provenance,
    ) -> bool: ...


class ReportStore(Protocol):
    """Persistent store keyed by the lowercased substance name."""

    async def get_by_substance(self, name: str) -> Any | None: ...

    async def save(
        self,
        name: str,
        products: list[DegradationProduct],
        references: list[str],
        provenance: Provenance,
    ) -> None: ...


class SearchLog(Protocol):
    """Append-only audit sink."""

    async def append(self, record: SearchLogRecord) -> None: ...

"""Report cache backed by JSON files (``utils.cache``)."""

import asyncio
import logging
from pathlib import Path
from typing import Any

from degradscan.config import get_settings
from degradscan.constants import REPORT_CACHE_NAMESPACE
from degradscan.errors import CacheError
from degradscan.models import DegradationReport, Provenance
from degradscan.utils.cache import cache_get, cache_set

logger = logging.getLogger(__name__)


class FileReportCache:
    """One file per cache key; entries never expire."""

    def __init__(self, directory: Path | None = None) -> None:
        self.directory = directory or get_settings().cache_dir

    async def get(self, key: str) -> Any | None:
        try:
            return await asyncio.to_thread(
                cache_get, REPORT_CACHE_NAMESPACE, {"key": key}, self.directory
            )
        except OSError as e:
            raise CacheError(f"Could not read cache entry {key}: {e}") from e

    async def set(
        self,
        key: str,
        substance_name: str,
        report: DegradationReport,
        provenance: Provenance,
    ) -> bool:
        try:
            await asyncio.to_thread(
                cache_set,
                REPORT_CACHE_NAMESPACE,
                {"key": key},
                report.to_payload(),
                self.directory,
                None,
                {
                    "cache_key": key,
                    "substance_name": substance_name,
                    "source": Provenance(provenance).value,
                },
            )
        except OSError as e:
            raise CacheError(f"Could not write cache entry {key}: {e}") from e
        return True

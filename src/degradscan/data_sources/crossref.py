"""
Crossref works API client (the DOI registry).

One method:
  1. get_work — Canonical metadata for a DOI
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from degradscan import __version__
from degradscan.config import get_settings
from degradscan.constants import CROSSREF_WORKS_URL, DOI_RESOLVER_URL
from degradscan.data_sources.base_client import BaseClient, ClientConfig
from degradscan.models.model_reference import ReferenceMetadata

logger = logging.getLogger("degradscan.data_sources.crossref")


class CrossrefClient(BaseClient):
    """Client for the Crossref REST API."""

    def __init__(
        self, config: ClientConfig | None = None, mailto: str | None = None
    ) -> None:
        contact = mailto if mailto is not None else get_settings().crossref_mailto
        super().__init__(
            config,
            headers={
                "Accept": "application/json",
                "User-Agent": f"DegradScan/{__version__} (mailto:{contact})",
            },
        )

    @property
    def _source_name(self) -> str:
        return "crossref"

    async def get_work(self, doi: str) -> ReferenceMetadata | None:
        """Return metadata for a DOI, or None when Crossref has no usable record."""
        result = await self._get_json(
            f"{CROSSREF_WORKS_URL}/{quote(doi, safe='')}",
            namespace="crossref_work",
            method="get_work",
        )
        if result.degraded:
            logger.warning("Crossref unavailable for %s: %s", doi, result.error)
            return None
        message = (result.data or {}).get("message")
        if not isinstance(message, dict):
            logger.info("No Crossref record for %s", doi)
            return None
        return self._parse_work(doi, message)

    @staticmethod
    def _parse_work(doi: str, message: dict[str, Any]) -> ReferenceMetadata:
        """Parse a Crossref ``message`` object into ReferenceMetadata."""
        title = _first(message.get("title")) or doi

        authors = []
        for author in message.get("author") or []:
            name = " ".join(
                part for part in (author.get("given"), author.get("family")) if part
            )
            if name:
                authors.append(name)

        try:
            year = int((message.get("issued") or {})["date-parts"][0][0])
        except (KeyError, IndexError, TypeError, ValueError):
            year = None

        return ReferenceMetadata(
            id=f"DOI:{doi}",
            title=title,
            authors=authors,
            url=message.get("URL") or f"{DOI_RESOLVER_URL}/{doi}",
            journal=_first(message.get("container-title")) or "",
            year=year,
        )


def _first(value: Any) -> str | None:
    """Crossref wraps most strings in single-element lists."""
    if isinstance(value, list):
        return value[0] if value else None
    return value

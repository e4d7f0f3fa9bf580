"""
PubMed E-utilities client (the PMID registry).

Four methods:
  1. search          — PMIDs matching a query term
  2. search_by_doi   — Article link for a DOI
  3. search_by_title — Article link for a title, optionally within a year
  4. get_summary     — Metadata for a single PMID
"""

from __future__ import annotations

import logging
import re
from typing import Any

from degradscan.config import get_settings
from degradscan.constants import (
    NCBI_REQUESTS_PER_SECOND,
    NCBI_REQUESTS_PER_SECOND_WITH_KEY,
    PUBMED_ARTICLE_URL,
    PUBMED_SEARCH_URL,
    PUBMED_SUMMARY_URL,
)
from degradscan.data_sources.base_client import BaseClient, ClientConfig
from degradscan.models.model_reference import ReferenceMetadata

logger = logging.getLogger("degradscan.data_sources.pubmed")

_YEAR = re.compile(r"\b(\d{4})\b")


def pubmed_article_url(pmid: str) -> str:
    return f"{PUBMED_ARTICLE_URL}/{pmid}/"


class PubMedClient(BaseClient):
    """Client for querying PubMed/NCBI APIs."""

    def __init__(
        self, config: ClientConfig | None = None, api_key: str | None = None
    ) -> None:
        self._api_key = api_key if api_key is not None else get_settings().ncbi_api_key
        if config is None:
            # NCBI allows 3 req/s anonymously, 10 with a key.
            rate = (
                NCBI_REQUESTS_PER_SECOND_WITH_KEY
                if self._api_key
                else NCBI_REQUESTS_PER_SECOND
            )
            config = ClientConfig(requests_per_second=rate, burst=int(rate))
        super().__init__(config, headers={"Accept": "application/json"})

    @property
    def _source_name(self) -> str:
        return "pubmed"

    def _params(self, **params: Any) -> dict[str, Any]:
        params = {"db": "pubmed", "retmode": "json", **params}
        if self._api_key:
            params["api_key"] = self._api_key
        return params

    async def search(self, term: str, max_results: int = 1) -> list[str]:
        """Search PubMed and return list of PMIDs."""
        result = await self._get_json(
            PUBMED_SEARCH_URL,
            self._params(term=term, retmax=max_results),
            namespace="pubmed_search",
            method="search",
        )
        if result.degraded:
            logger.warning("PubMed search unavailable for %r: %s", term, result.error)
            return []
        return list((result.data or {}).get("esearchresult", {}).get("idlist", []))

    async def search_by_doi(self, doi: str) -> str | None:
        """Return the PubMed link for the first article indexed under a DOI."""
        pmids = await self.search(doi)
        return pubmed_article_url(pmids[0]) if pmids else None

    async def search_by_title(self, title: str, year: int | None = None) -> str | None:
        """Return the PubMed link for the first article matching a title."""
        if not title:
            return None
        term = f"{title} [Title]"
        if year:
            term += f" AND {year} [dp]"
        pmids = await self.search(term)
        return pubmed_article_url(pmids[0]) if pmids else None

    async def get_summary(self, pmid: str) -> ReferenceMetadata | None:
        """Fetch the esummary record for one PMID."""
        result = await self._get_json(
            PUBMED_SUMMARY_URL,
            self._params(id=pmid),
            namespace="pubmed_summary",
            method="get_summary",
        )
        if result.degraded:
            logger.warning("PubMed summary unavailable for %s: %s", pmid, result.error)
            return None
        record = (result.data or {}).get("result", {}).get(pmid)
        if not isinstance(record, dict) or record.get("error"):
            logger.info("No PubMed summary for %s", pmid)
            return None
        return self._parse_summary(pmid, record)

    @staticmethod
    def _parse_summary(pmid: str, record: dict[str, Any]) -> ReferenceMetadata:
        """Parse one esummary record into ReferenceMetadata."""
        authors = [
            a["name"] for a in record.get("authors") or [] if a.get("name")
        ]
        year_match = _YEAR.search(record.get("pubdate") or "")
        url = pubmed_article_url(pmid)
        return ReferenceMetadata(
            id=f"PMID:{pmid}",
            title=record.get("title") or record.get("sorttitle") or pmid,
            authors=authors,
            url=url,
            journal=record.get("source") or "",
            year=int(year_match.group(1)) if year_match else None,
            pubmed_url=url,
        )

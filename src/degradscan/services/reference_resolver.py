"""
Citation string -> bibliographic metadata.

DOI first (Crossref, then a PubMed cross-link by DOI or by title/year),
PMID second (PubMed esummary), identity record otherwise. One result per
input, same order; nothing here raises to the caller.
"""

import asyncio
import logging
import re

from degradscan.config import get_settings
from degradscan.data_sources.crossref import CrossrefClient
from degradscan.data_sources.pubmed import PubMedClient
from degradscan.models import ReferenceMetadata

logger = logging.getLogger(__name__)

DOI_PATTERN = re.compile(r"10\.[0-9]{4,9}/[-._;()/:A-Z0-9]+", re.IGNORECASE)
PMID_PREFIXED = re.compile(r"pmid\s*:?\s*(\d+)", re.IGNORECASE)
PMID_BARE = re.compile(r"\b(\d{7,8})\b")


def extract_doi(citation: str) -> str | None:
    """Return the first DOI in a citation, without trailing punctuation."""
    match = DOI_PATTERN.search(citation or "")
    if not match:
        return None
    return match.group(0).rstrip(".,;:") or None


def extract_pmid(citation: str) -> str | None:
    """Return a ``PMID: n`` value, else the first bare 7-8 digit token."""
    match = PMID_PREFIXED.search(citation or "") or PMID_BARE.search(citation or "")
    return match.group(1) if match else None


async def _resolve_doi(
    doi: str, crossref: CrossrefClient, pubmed: PubMedClient
) -> ReferenceMetadata | None:
    try:
        meta = await crossref.get_work(doi)
    except Exception as e:
        logger.warning("Crossref lookup failed for %s: %s", doi, e)
        return None
    if meta is None:
        return None

    pubmed_url = None
    try:
        pubmed_url = await pubmed.search_by_doi(doi)
    except Exception as e:
        logger.warning("PubMed DOI search failed for %s: %s", doi, e)
    if not pubmed_url:
        try:
            pubmed_url = await pubmed.search_by_title(meta.title, meta.year)
        except Exception as e:
            logger.warning("PubMed title search failed for %s: %s", doi, e)

    return meta.model_copy(update={"pubmed_url": pubmed_url})


async def resolve_reference(
    citation: str, crossref: CrossrefClient, pubmed: PubMedClient
) -> ReferenceMetadata:
    """Resolve one citation; unresolvable input yields the identity record."""
    doi = extract_doi(citation)
    if doi:
        meta = await _resolve_doi(doi, crossref, pubmed)
        if meta is not None:
            return meta

    pmid = extract_pmid(citation)
    if pmid:
        try:
            meta = await pubmed.get_summary(pmid)
        except Exception as e:
            logger.warning("PubMed summary failed for %s: %s", pmid, e)
            meta = None
        if meta is not None:
            return meta

    return ReferenceMetadata.identity(citation)


async def resolve_references(
    citations: list[str],
    crossref: CrossrefClient | None = None,
    pubmed: PubMedClient | None = None,
    max_concurrency: int | None = None,
) -> list[ReferenceMetadata]:
    """Resolve citations concurrently, at most ``max_concurrency`` at a time.

    Clients not passed in are created here and closed on return.
    """
    limit = max_concurrency or get_settings().reference_concurrency
    semaphore = asyncio.Semaphore(max(1, limit))
    owned: list[CrossrefClient | PubMedClient] = []
    if crossref is None:
        crossref = CrossrefClient()
        owned.append(crossref)
    if pubmed is None:
        pubmed = PubMedClient()
        owned.append(pubmed)

    async def _one(citation: str) -> ReferenceMetadata:
        async with semaphore:
            try:
                return await resolve_reference(citation, crossref, pubmed)
            except Exception:
                logger.exception("Reference resolution failed for %r", citation)
                return ReferenceMetadata.identity(citation)

    try:
        return list(await asyncio.gather(*(_one(c) for c in citations)))
    finally:
        for client in owned:
            await client.close()

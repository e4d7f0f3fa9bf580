"""Bibliographic metadata resolved for a single citation string."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ReferenceMetadata(BaseModel):
    """Normalized record from Crossref or PubMed. Computed per request, never stored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str  # "DOI:10.x/y", "PMID:1234567", or the raw citation
    title: str
    authors: list[str] = []
    url: str
    journal: str = ""
    year: int | None = None
    pubmed_url: str | None = None

    @classmethod
    def identity(cls, raw: str) -> ReferenceMetadata:
        """Record for a citation that could not be resolved."""
        return cls(id=raw, title=raw, authors=[], url=raw, journal="", year=None)

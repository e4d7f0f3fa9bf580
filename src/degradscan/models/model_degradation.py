"""
Pydantic models for degradation reports.

These are the data contracts between the pipeline, its storage collaborators
and callers. The JSON form (``to_payload``) uses camelCase keys, which is the
layout persisted in the cache and the store.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel


class Provenance(str, Enum):
    """Which stage produced a report."""

    CACHE = "cache"
    DATABASE = "database"
    OPENROUTER = "openrouter"
    MOCK = "mock"
    ERROR = "error"


class DegradationProduct(BaseModel):
    """One degradation product of a parent substance.

    All four fields must be present; empty strings are allowed.
    Equality is field-for-field, which is what report merging relies on.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    substance: str
    degradation_route: str
    environmental_conditions: str
    toxicity_data: str

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return "; ".join(str(v) for v in value if v is not None)
        return value if isinstance(value, str) else str(value)


class DegradationReport(BaseModel):
    """Products plus free-text references. Replaced wholesale, never patched."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    products: list[DegradationProduct]
    references: list[str]

    @field_validator("references", mode="before")
    @classmethod
    def coerce_references(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(v).strip() for v in value if v is not None and str(v).strip()]
        return value

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def product_names(self) -> list[str]:
        return [p.substance for p in self.products if p.substance]

    @classmethod
    def from_payload(
        cls, payload: Any, *, require_all: bool = True
    ) -> DegradationReport | None:
        """Rehydrate a report from a stored payload.

        With ``require_all`` both ``products`` and ``references`` must be
        present (the cache's structural check); otherwise missing lists
        default to empty, which is how store rows are read.
        Returns None when the payload is not a usable report.
        """
        if isinstance(payload, DegradationReport):
            return payload
        if not isinstance(payload, Mapping):
            return None
        if require_all and (
            payload.get("products") is None or payload.get("references") is None
        ):
            return None
        try:
            return cls.model_validate(
                {
                    "products": payload.get("products") or [],
                    "references": payload.get("references") or [],
                }
            )
        except ValidationError:
            return None


class RequestContext(BaseModel):
    """Who asked. Passed explicitly into the pipeline for audit logging."""

    ip: str = "unknown"
    user_agent: str = ""

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> RequestContext:
        """Build a context from HTTP request headers.

        The first ``x-forwarded-for`` hop wins, then ``x-real-ip``.
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        forwarded = lowered.get("x-forwarded-for")
        if forwarded:
            ip = forwarded.split(",")[0].strip() or "unknown"
        else:
            ip = lowered.get("x-real-ip") or "unknown"
        return cls(ip=ip, user_agent=lowered.get("user-agent", ""))


class SearchLogRecord(BaseModel):
    """One audit entry. The timestamp is assigned by the log sink."""

    substance_name: str  # normalized
    search_term: str  # as typed by the caller
    user_ip: str
    user_agent: str
    response_source: Provenance
    was_cached: bool
    latency_ms: float | None = None


class ResolutionOutcome(BaseModel):
    """A resolved report together with how it was obtained."""

    report: DegradationReport
    provenance: Provenance
    cache_hit: bool = False
    latency_ms: float = 0.0

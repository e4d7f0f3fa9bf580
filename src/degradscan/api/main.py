"""FastAPI application."""

import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from pydantic import BaseModel, Field

from degradscan import __version__
from degradscan.config import get_settings
from degradscan.models import (
    DegradationReport,
    Provenance,
    ReferenceMetadata,
    RequestContext,
)
from degradscan.services.llm import check_llm_health
from degradscan.services.pipeline import ResolutionPipeline, build_default_pipeline
from degradscan.services.reference_resolver import resolve_references

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="DegradScan API",
    description="Degradation products of chemical substances",
    version=__version__,
)


class ReportRequest(BaseModel):
    substance_name: str = Field(min_length=1)


class ReportResponse(BaseModel):
    substance_name: str
    source: Provenance
    cache_hit: bool
    latency_ms: float
    report: DegradationReport


class RefMetaRequest(BaseModel):
    references: list[str] = []


@lru_cache
def get_pipeline() -> ResolutionPipeline:
    return build_default_pipeline()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/health/llm")
async def llm_health_check() -> dict:
    """Reachability of the synthesis service and whether a key is configured."""
    return await check_llm_health()


@app.post("/reports")
async def create_report(
    body: ReportRequest,
    request: Request,
    pipeline: ResolutionPipeline = Depends(get_pipeline),
) -> dict:
    """Resolve a degradation report. Upstream failures degrade to the mock report."""
    context = RequestContext.from_headers(request.headers)
    outcome = await pipeline.resolve_detailed(body.substance_name, context)
    return ReportResponse(
        substance_name=body.substance_name,
        source=outcome.provenance,
        cache_hit=outcome.cache_hit,
        latency_ms=outcome.latency_ms,
        report=outcome.report,
    ).model_dump(by_alias=True, mode="json")


@app.post("/refmeta")
async def reference_metadata(body: RefMetaRequest) -> dict[str, list[dict]]:
    """Resolve citation strings to bibliographic metadata, one item per input."""
    items: list[ReferenceMetadata] = await resolve_references(body.references)
    return {"items": [item.model_dump(by_alias=True) for item in items]}

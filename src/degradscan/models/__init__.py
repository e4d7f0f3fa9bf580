"""Data models for DegradScan."""

from degradscan.models.model_degradation import (
    DegradationProduct,
    DegradationReport,
    Provenance,
    RequestContext,
    ResolutionOutcome,
    SearchLogRecord,
)
from degradscan.models.model_reference import ReferenceMetadata

__all__ = [
    "DegradationProduct",
    "DegradationReport",
    "Provenance",
    "ReferenceMetadata",
    "RequestContext",
    "ResolutionOutcome",
    "SearchLogRecord",
]

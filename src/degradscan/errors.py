"""Exception taxonomy shared by the pipeline, synthesizer and adapters."""


class DegradScanError(Exception):
    """Base exception for DegradScan failures."""


class CredentialMissing(DegradScanError):
    """No synthesis API key is configured.

    A routing signal for the mock path rather than a fault.
    """


class UpstreamError(DegradScanError):
    """An external service answered with a non-success status or was unreachable."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"[{source}] {message}")


class ParseError(DegradScanError):
    """A response body could not be interpreted as a degradation report."""


class StoreError(DegradScanError):
    """The persistent store reported a failure."""


class CacheError(DegradScanError):
    """The report cache reported a failure."""


class LogError(DegradScanError):
    """The audit log sink reported a failure."""

"""
Pipeline Errors
===============
Failure taxonomy shared by the fetchers, the enricher and the orchestrator.

Recoverable:
- RateLimited: HTTP 429, retried with exponential backoff by RpcClient
- TransientFetchFailure: one detail attempt failed, retried with a fixed delay

Terminal for a unit of work:
- RetriesExhausted: the backoff ceiling was hit
- PartialDataUnavailable: a signature or owner is skipped, the run continues

Fatal:
- UpstreamError: non-429 HTTP failure or network fault, never retried by RpcClient
- ConfigurationError: missing endpoint, raised before any work starts
- StoreError: the portfolio file is corrupt or does not match the entry schema
"""


class PipelineError(Exception):
    """Base class for every error raised by buyerspread."""


class ConfigurationError(PipelineError):
    pass


class FetchError(PipelineError):
    """An RPC or HTTP request did not produce a usable response."""


class RateLimited(FetchError):
    def __init__(self, method: str):
        super().__init__(f"{method}: rate limited (HTTP 429)")
        self.method = method


class UpstreamError(FetchError):
    def __init__(self, method: str, detail: str, status_code: int = None):
        super().__init__(f"{method}: {detail}")
        self.method = method
        self.status_code = status_code


class RetriesExhausted(FetchError):
    def __init__(self, method: str, attempts: int):
        super().__init__(f"{method}: gave up after {attempts} rate-limited attempts")
        self.method = method
        self.attempts = attempts


class TransientFetchFailure(FetchError):
    pass


class PartialDataUnavailable(PipelineError):
    """A single signature or owner could not be resolved and was skipped."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason


class StoreError(PipelineError):
    """The persisted portfolio file exists but cannot be read back."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason

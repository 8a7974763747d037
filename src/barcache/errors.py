"""Bar cache error types."""

from __future__ import annotations

from enum import Enum


class BarCacheErrorCode(Enum):
    """Error classification codes."""

    VALIDATION_FAILED = "validation_failed"
    COVERAGE_INVARIANT = "coverage_invariant"
    RESAMPLING_FAILED = "resampling_failed"
    RATE_LIMITED = "rate_limited"
    UNSUPPORTED = "unsupported"
    PROVIDER_ERROR = "provider_error"
    STORE_ERROR = "store_error"


class BarCacheError(Exception):
    """Bar cache exception with error code and retryable flag.

    Attributes:
        message: Human-readable error description.
        code: Structured error code for programmatic handling.
        retryable: Whether a caller-level retry could succeed. Nothing in
            this package retries on its own.
    """

    def __init__(
        self,
        message: str,
        code: BarCacheErrorCode = BarCacheErrorCode.PROVIDER_ERROR,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable


class ValidationError(BarCacheError):
    """Malformed request input (dates, granularity, fields, tickers)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=BarCacheErrorCode.VALIDATION_FAILED)


class CoverageComputationError(BarCacheError):
    """Coverage scan produced ranges that break the run invariants."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=BarCacheErrorCode.COVERAGE_INVARIANT)


class ResamplingError(BarCacheError):
    """Requested granularity is finer than the native bars allow."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=BarCacheErrorCode.RESAMPLING_FAILED)


class StoreError(BarCacheError):
    """Cache backend read or write failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=BarCacheErrorCode.STORE_ERROR)


class ProviderError(BarCacheError):
    """Base class for failures raised by a data provider."""


class RateLimited(ProviderError):
    def __init__(self, message: str = "Provider rate limit reached") -> None:
        super().__init__(message, code=BarCacheErrorCode.RATE_LIMITED, retryable=True)


class Unsupported(ProviderError):
    """Provider cannot serve the requested interval."""

    def __init__(self, interval: str, provider: str | None = None) -> None:
        where = f" by {provider}" if provider else ""
        super().__init__(
            f"Interval {interval!r} is not supported{where}",
            code=BarCacheErrorCode.UNSUPPORTED,
        )
        self.interval = interval


class RemoteError(ProviderError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code=BarCacheErrorCode.PROVIDER_ERROR)

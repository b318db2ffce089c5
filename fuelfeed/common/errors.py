"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class IngestionError(PipelineError):
    """Raised when a provider fetch cycle cannot complete."""

    error_code = "INGESTION_ERROR"


class TransientNetworkError(IngestionError):
    """Connection failures and retryable upstream statuses."""

    error_code = "TRANSIENT_NETWORK"

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class RequestTimeoutError(TransientNetworkError):
    error_code = "REQUEST_TIMEOUT"


class RateLimitExceeded(IngestionError):
    """Quota exhaustion signalled by the provider or the local limiter."""

    error_code = "RATE_LIMITED"

    def __init__(self, message: str, *, retry_after_s: float | None = None) -> None:
        super().__init__(message)
        self.retry_after_s = retry_after_s


class UpstreamHttpError(IngestionError):
    """Non-retryable HTTP status."""

    error_code = "HTTP_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamSchemaError(IngestionError):
    """Response body does not match the expected envelope."""

    error_code = "UPSTREAM_SCHEMA"


class PaginationLimitError(UpstreamSchemaError):
    error_code = "PAGINATION_LIMIT"


class RequestCancelledError(IngestionError):
    error_code = "CANCELLED"


class NormalizationWarning(PipelineError):
    """A single row could not be normalised; the row is dropped."""

    error_code = "NORMALIZATION_WARNING"


class DataUnavailableError(PipelineError):
    """No fresh or stale station data can be served."""

    error_code = "DATA_UNAVAILABLE"

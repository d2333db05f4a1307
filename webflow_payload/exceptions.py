"""Exception types raised by the migration toolkit."""

from typing import List, Optional


class MigrationError(RuntimeError):
    """Base class for all migration failures."""


class ConfigurationError(MigrationError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class SourceFetchError(MigrationError):
    """Raised when a Webflow request fails with anything other than a rate limit."""

    def __init__(
        self,
        message: str,
        collection_id: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.collection_id = collection_id
        self.status_code = status_code


class RateLimitExceeded(SourceFetchError):
    """Raised when Webflow keeps answering 429 after the backoff budget is spent."""

    def __init__(self, collection_id: Optional[str], offset: int, attempts: int):
        super().__init__(
            f"Rate limit still active after {attempts} attempts "
            f"(collection={collection_id}, offset={offset})",
            collection_id=collection_id,
            status_code=429,
        )
        self.offset = offset
        self.attempts = attempts


class TargetWriteError(MigrationError):
    """Raised when a Payload request fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []

    def __str__(self) -> str:
        base = super().__str__()
        if self.errors:
            return f"{base}: {'; '.join(self.errors)}"
        return base


class RecordSkipped(MigrationError):
    """Raised inside the per-record pipeline when a record is deliberately not written."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason

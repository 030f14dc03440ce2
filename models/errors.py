"""
Error taxonomy for collection, analysis and persistence.
"""

from typing import Optional


class CollectionError(Exception):
    """A (competitor, source) pair could not produce an observation."""


class ConfigurationMissing(CollectionError):
    """A source credential is absent. Skip the source, never retry."""

    def __init__(self, source: str, setting: str):
        self.source = source
        self.setting = setting
        super().__init__(f"{source}: {setting} not configured")


SourceUnavailable = ConfigurationMissing


class SourceError(CollectionError):
    """Non-2xx response or transport failure from a source provider."""

    def __init__(self, status: Optional[int], message: str):
        self.status = status
        self.message = message
        prefix = f"HTTP {status}" if status is not None else "transport error"
        super().__init__(f"{prefix}: {message}")


class TransientSourceError(SourceError):
    """Timeout, connection failure or 5xx."""


class RateLimitError(TransientSourceError):
    def __init__(self, message: str = "rate limit exceeded", retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(429, message)


class PermanentSourceError(SourceError):
    """4xx other than 429, or an unreadable body."""


class AnalysisParseError(ValueError):
    """The analysis provider returned output that does not fit the insight schema."""


class PersistenceError(RuntimeError):
    """Writing or reading the insight store failed."""

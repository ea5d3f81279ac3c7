class SchoolDelayError(Exception):
    """Base error for the school delay package."""


class UpstreamError(SchoolDelayError):
    """An upstream weather or status source returned unusable data."""


class ImmutableRecordError(SchoolDelayError):
    """Raised when code attempts to rewrite an append-only record."""

"""
Error taxonomy for the lookup pipeline.

Only failures of external collaborators (catalog source, Gemini) and bad user
input are exceptions. Parsing of catalog text is total and never raises; an
empty result is a tier, not an error.
"""


class TransFinderError(Exception):
    """Base class for all service errors."""


class ConfigurationError(TransFinderError):
    """Required configuration (e.g. the Gemini API key) is missing."""


class InvalidQuery(TransFinderError):
    """The request carried no usable query text."""


class CatalogUnavailable(TransFinderError):
    """The catalog could not be fetched and no cached copy exists."""


class UpstreamServiceError(TransFinderError):
    """The text-completion service failed (non-200, timeout, transport error)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamRateLimited(UpstreamServiceError):
    """The text-completion service answered 429."""


class MalformedUpstreamReply(UpstreamServiceError):
    """The text-completion service answered 200 with no usable text."""

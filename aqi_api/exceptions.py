"""Error taxonomy for the aggregation pipeline."""

from enum import Enum


class InvalidCoordinate(ValueError):
    """Latitude/longitude out of range or not numeric."""


class NoBreakpointMatch(RuntimeError):
    """A concentration fell outside every breakpoint segment.

    The "above every segment -> 500" rule makes this unreachable for valid
    input, so seeing it means a table or an adapter is broken.
    """


class UnavailableCause(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    AUTH = "auth"
    QUOTA = "quota"
    UNSUPPORTED = "unsupported"


class ProviderUnavailable(Exception):
    """Single failure outcome raised by every provider adapter."""

    def __init__(self, provider: str, cause: UnavailableCause, detail: str = ""):
        self.provider = provider
        self.cause = cause
        self.detail = detail
        super().__init__(f"{provider} unavailable ({cause.value}): {detail}")

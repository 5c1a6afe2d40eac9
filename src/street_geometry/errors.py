"""
Exception hierarchy for street geometry resolution.

Only InvalidInputError and ConfigError reach callers of resolve().
UpstreamUnavailableError is raised by the Overpass client and absorbed by
the candidate retriever, which treats it as an empty tier.
"""


class StreetGeometryError(Exception):
    """Base class for all street geometry errors."""


class InvalidInputError(StreetGeometryError, ValueError):
    """Caller supplied a missing street name or unusable coordinates."""


class ConfigError(StreetGeometryError, ValueError):
    """Configuration file is missing required values or has invalid ones."""


class UpstreamUnavailableError(StreetGeometryError):
    """Every Overpass mirror failed for a query."""

    def __init__(self, message: str, failures=None):
        super().__init__(message)
        # (endpoint, reason) pairs in attempt order
        self.failures = list(failures or [])


class ResolutionCancelledError(StreetGeometryError):
    """Caller cancelled an in-flight resolution."""

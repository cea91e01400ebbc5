from __future__ import annotations


class AdvisorError(Exception):
    """Base class for every error the advisor raises on purpose."""


class InvalidInput(AdvisorError):
    """A required argument is missing or malformed."""


class UpstreamUnavailable(AdvisorError):
    """A provider request failed (transport error, bad status, or unsuccessful envelope)."""


class MalformedPayload(AdvisorError):
    """A provider answered, but the body does not describe the requested record."""


class EnrichmentFailure(AdvisorError):
    """Liquidity details could not be fetched for one pool.

    Recorded per pool by the enricher and logged; never raised to callers.
    """

    def __init__(self, pool_address: str, cause: BaseException):
        super().__init__(f"Liquidity details unavailable for pool {pool_address}: {cause}")
        self.pool_address = pool_address
        self.cause = cause

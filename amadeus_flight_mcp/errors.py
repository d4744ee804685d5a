"""Exceptions raised by the flight search pipeline."""

from typing import Optional


class FlightSearchError(Exception):
    """Base class for failures surfaced to tool callers."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(FlightSearchError):
    """An airport or airline code could not be resolved."""

    def __init__(self, kind: str, code: str):
        self.kind = kind
        self.code = code
        super().__init__(f"{kind} not found: {code}")


class UpstreamError(FlightSearchError):
    """The Amadeus API call itself failed (network, auth, rate limit)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.status_code = status_code
        self.code = code
        super().__init__(message)

"""
Thin async client for the Amadeus Self-Service API.

Only the three calls the flight pipeline needs are exposed. Authentication
uses the OAuth2 client-credentials grant; the token is kept until shortly
before it expires.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import httpx

from amadeus_flight_mcp import config
from amadeus_flight_mcp.errors import UpstreamError

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "v1/security/oauth2/token"
LOCATIONS_ENDPOINT = "v1/reference-data/locations"
AIRLINES_ENDPOINT = "v1/reference-data/airlines"
FLIGHT_OFFERS_ENDPOINT = "v2/shopping/flight-offers"

# Refresh this long before the vendor-declared expiry
TOKEN_EXPIRY_MARGIN = timedelta(seconds=60)


def _describe_http_error(e: httpx.HTTPStatusError) -> UpstreamError:
    """Build an UpstreamError from an Amadeus error response."""
    status = e.response.status_code
    try:
        errors = e.response.json().get("errors") or []
    except ValueError:
        errors = []

    if errors:
        error = errors[0]
        detail = error.get("detail") or error.get("title") or "Unknown error"
        code = str(error.get("code", "unknown"))
        return UpstreamError(f"Amadeus API error ({status}): {detail} [Code: {code}]", status, code)

    if status == 401:
        message = "Amadeus authentication failed. Check AMADEUS_API_KEY and AMADEUS_API_SECRET."
    elif status == 429:
        message = "Amadeus rate limit exceeded."
    else:
        message = f"Amadeus API request failed with status {status}"
    return UpstreamError(message, status)


class AmadeusClient:
    """Async Amadeus client holding credentials and the current access token."""

    def __init__(
        self,
        client_id: str = config.AMADEUS_API_KEY,
        client_secret: str = config.AMADEUS_API_SECRET,
        base_url: str = config.API_BASE_URL,
        timeout: float = config.DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._token: Optional[str] = None
        self._token_expires: Optional[datetime] = None

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _ensure_token(self) -> str:
        """Return a valid access token, requesting a new one when needed."""
        if self._token and self._token_expires and datetime.now(timezone.utc) < self._token_expires:
            return self._token

        if not self.client_id or not self.client_secret:
            logger.error("Amadeus credentials not configured")
            raise UpstreamError("AMADEUS_API_KEY and AMADEUS_API_SECRET environment variables must be set")

        try:
            async with self._http() as client:
                response = await client.post(
                    f"/{TOKEN_ENDPOINT}",
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise _describe_http_error(e) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Amadeus token request failed: {type(e).__name__}: {e}") from e

        self._token = data["access_token"]
        expires_in = int(data.get("expires_in", 1799))
        self._token_expires = datetime.now(timezone.utc) + timedelta(seconds=expires_in) - TOKEN_EXPIRY_MARGIN
        logger.info("Amadeus access token obtained, expires in %ds", expires_in)
        return self._token

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Authenticated GET returning the response's ``data`` list."""
        token = await self._ensure_token()
        logger.debug("API request: GET /%s %s", endpoint, params)

        try:
            async with self._http() as client:
                response = await client.get(
                    f"/{endpoint}",
                    params=params,
                    headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                )
                logger.debug("API response: %s %s", response.status_code, endpoint)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise _describe_http_error(e) from e
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Amadeus request timed out: /{endpoint}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Amadeus request failed: {type(e).__name__}: {e}") from e

        return payload.get("data") or []

    async def find_locations(self, keyword: str, sub_type: str = "AIRPORT") -> List[Dict[str, Any]]:
        """Look up airports/cities by keyword; an empty list when nothing matches."""
        return await self._get(LOCATIONS_ENDPOINT, {"keyword": keyword, "subType": sub_type})

    async def find_airlines(self, codes: Iterable[str]) -> List[Dict[str, Any]]:
        """Look up airlines by IATA code; an empty list when nothing matches."""
        return await self._get(AIRLINES_ENDPOINT, {"airlineCodes": ",".join(codes)})

    async def search_offers(
        self,
        origin: str,
        destination: str,
        departure_date: str,
        adults: int = 1,
        max_results: int = config.MAX_SEARCH_RESULTS,
    ) -> List[Dict[str, Any]]:
        """One-way flight offers for a single departure date."""
        return await self._get(
            FLIGHT_OFFERS_ENDPOINT,
            {
                "originLocationCode": origin,
                "destinationLocationCode": destination,
                "departureDate": departure_date,
                "adults": adults,
                "max": max_results,
            },
        )

"""
Conversion of raw Amadeus payloads into the normalized domain records.

Every function here is pure. Missing or unparsable vendor fields never raise;
they fall back to documented defaults so a single odd record cannot abort a
search.
"""

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Any, Dict, Mapping, Optional, Tuple

from amadeus_flight_mcp.models import Airline, Airport, Flight, FlightEndpoint

DURATION_PATTERN = re.compile(r'PT(?:(\d+)H)?(?:(\d+)M)?')

# Static EUR -> INR rate. Not a live exchange rate.
EUR_TO_INR_RATE = 102.57


class RateTable:
    """
    Currency normalization rules: source currency -> (target currency, rate).

    Currencies without an entry pass through unchanged. The default table is
    static; a live source only needs to provide the same ``convert`` method.
    """

    def __init__(self, rates: Optional[Mapping[str, Tuple[str, float]]] = None):
        self._rates = dict(rates or {})

    def convert(self, amount: float, currency: str) -> Tuple[float, str]:
        """Return the normalized (amount, currency) pair."""
        rule = self._rates.get(currency)
        if rule is None:
            return amount, currency
        target, rate = rule
        # Half-up on the scaled value, matching the published INR prices
        return math.floor(amount * rate * 100 + 0.5) / 100, target


DEFAULT_RATES = RateTable({"EUR": ("INR", EUR_TO_INR_RATE)})


def parse_duration(duration: Any) -> int:
    """Parse an ISO 8601 duration like 'PT5H30M' into whole minutes (0 if malformed)."""
    if not isinstance(duration, str):
        return 0
    match = DURATION_PATTERN.match(duration)
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    return hours * 60 + minutes


def _parse_coordinate(value: Any) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def placeholder_airport(code: str) -> Airport:
    """Stand-in for an airport the reference cache could not resolve."""
    return Airport(
        code=code,
        name=f"{code} Airport",
        city=code,
        country="Unknown",
        timezone="UTC",
        coordinates={"latitude": 0.0, "longitude": 0.0},
    )


def placeholder_airline(code: str) -> Airline:
    return Airline(code=code, name=code, country="Unknown")


def convert_airport(location: Dict[str, Any]) -> Airport:
    """Convert an Amadeus location record into an Airport."""
    address = location.get("address") or {}
    geo = location.get("geoCode") or {}
    city = address.get("cityName") or location.get("city") or ""

    return Airport(
        code=location.get("iataCode") or location.get("code") or "",
        name=location.get("name") or f"{city} Airport",
        city=city,
        country=address.get("countryName") or location.get("country") or "",
        timezone=location.get("timeZoneOffset") or "UTC",
        coordinates={
            "latitude": _parse_coordinate(geo.get("latitude")),
            "longitude": _parse_coordinate(geo.get("longitude")),
        },
    )


def convert_airline(record: Dict[str, Any]) -> Airline:
    """Convert an Amadeus airline record into an Airline."""
    address = record.get("address") or {}
    return Airline(
        code=record.get("iataCode") or record.get("code") or "",
        name=record.get("businessName") or record.get("commonName") or record.get("name") or "",
        country=address.get("countryName") or "",
    )


def normalize_price(price: Dict[str, Any], rates: RateTable = DEFAULT_RATES) -> Dict[str, Any]:
    """Turn a vendor price block into {amount, currency}, applying the rate table."""
    try:
        amount = float(price.get("total") or 0)
    except (TypeError, ValueError):
        amount = 0.0
    if not math.isfinite(amount):
        amount = 0.0
    amount, currency = rates.convert(amount, price.get("currency", ""))
    return {"amount": amount, "currency": currency}


def _endpoint(point: Dict[str, Any], airports: Mapping[str, Airport]) -> FlightEndpoint:
    code = point.get("iataCode", "")
    endpoint = FlightEndpoint(
        airport=airports.get(code) or placeholder_airport(code),
        time=point.get("at", ""),
    )
    if point.get("terminal"):
        endpoint["terminal"] = point["terminal"]
    if point.get("gate"):
        endpoint["gate"] = point["gate"]
    return endpoint


def convert_flight(
    offer: Dict[str, Any],
    airports: Mapping[str, Airport],
    airlines: Mapping[str, Airline],
    rates: RateTable = DEFAULT_RATES,
) -> Flight:
    """
    Build a Flight from the first segment of the offer's first itinerary.

    Codes missing from ``airports``/``airlines`` get placeholder records
    instead of failing the search.
    """
    itinerary = offer["itineraries"][0]
    segment = itinerary["segments"][0]
    carrier = segment.get("carrierCode", "")

    return Flight(
        id=offer.get("id", ""),
        airline=airlines.get(carrier) or placeholder_airline(carrier),
        flightNumber=f"{carrier}{segment.get('number', '')}",
        departure=_endpoint(segment.get("departure") or {}, airports),
        arrival=_endpoint(segment.get("arrival") or {}, airports),
        duration=parse_duration(itinerary.get("duration")),
        aircraft=(segment.get("aircraft") or {}).get("code") or "Unknown",
        price=normalize_price(offer.get("price") or {}, rates),
    )


def split_price(total: Any, parts: int) -> str:
    """Share of ``total`` per segment, truncated to 2 decimals."""
    try:
        value = Decimal(str(total or 0))
    except InvalidOperation:
        value = Decimal(0)
    if not value.is_finite():
        value = Decimal(0)
    share = value / parts
    return str(share.quantize(Decimal("0.01"), rounding=ROUND_DOWN))


def segment_offer(offer: Dict[str, Any], index: int) -> Dict[str, Any]:
    """
    Synthetic single-segment offer for leg ``index`` of a connecting offer.

    The offer's total price is spread evenly over its segments.
    """
    segments = offer["itineraries"][0]["segments"]
    segment = segments[index]
    price = offer.get("price") or {}
    return {
        "id": f"{offer.get('id', '')}-{index}",
        "itineraries": [{
            "segments": [segment],
            "duration": segment.get("duration") or "PT2H",
        }],
        "price": {
            "total": split_price(price.get("total"), len(segments)),
            "currency": price.get("currency", ""),
        },
    }

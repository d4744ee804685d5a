"""
Flight search orchestration on top of the Amadeus client.

``FlightSearchService.search`` resolves both airports, runs one offer search,
resolves the carriers it references and splits offers into direct flights and
connections. ``search_range`` repeats that once per calendar day.
"""

import asyncio
import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from amadeus_flight_mcp import config
from amadeus_flight_mcp.converters import (
    DEFAULT_RATES,
    RateTable,
    convert_airline,
    convert_airport,
    convert_flight,
    normalize_price,
    parse_duration,
    placeholder_airport,
    segment_offer,
)
from amadeus_flight_mcp.errors import NotFoundError
from amadeus_flight_mcp.models import (
    Airline,
    Airport,
    FlightConnection,
    FlightSearchResult,
    Layover,
)
from amadeus_flight_mcp.reference_cache import ReferenceCache

logger = logging.getLogger(__name__)


def layover_minutes(arrival_time: str, departure_time: str) -> int:
    """
    Whole minutes between a segment's arrival and the next departure.

    Negative values are returned as-is; they come from vendor schedule
    anomalies and are left for the caller to judge.
    """
    try:
        gap = datetime.fromisoformat(departure_time) - datetime.fromisoformat(arrival_time)
    except (TypeError, ValueError):
        return 0
    return math.floor(gap.total_seconds() / 60)


def collect_carrier_codes(offers: List[Dict[str, Any]]) -> List[str]:
    """Distinct carrier codes across every segment of every itinerary, in first-seen order."""
    codes: Dict[str, None] = {}
    for offer in offers:
        for itinerary in offer.get("itineraries") or []:
            for segment in itinerary.get("segments") or []:
                if segment.get("carrierCode"):
                    codes[segment["carrierCode"]] = None
    return list(codes)


def build_connection(
    offer: Dict[str, Any],
    airports: Mapping[str, Airport],
    airlines: Mapping[str, Airline],
    rates: RateTable = DEFAULT_RATES,
) -> FlightConnection:
    """Turn a multi-segment offer into one Flight per leg plus the layovers between them."""
    itinerary = offer["itineraries"][0]
    segments = itinerary["segments"]

    flights = [
        convert_flight(segment_offer(offer, index), airports, airlines, rates)
        for index in range(len(segments))
    ]

    layovers: List[Layover] = []
    for current, following in zip(segments, segments[1:]):
        arrival = current.get("arrival") or {}
        code = arrival.get("iataCode", "")
        duration = layover_minutes(arrival.get("at", ""), (following.get("departure") or {}).get("at", ""))
        if duration < 0:
            logger.warning("Negative layover of %d minutes at %s in offer %s", duration, code, offer.get("id"))
        layovers.append(Layover(airport=airports.get(code) or placeholder_airport(code), duration=duration))

    return FlightConnection(
        flights=flights,
        totalDuration=parse_duration(itinerary.get("duration")),
        totalPrice=normalize_price(offer.get("price") or {}, rates),
        layovers=layovers,
    )


def filter_departure_window(
    result: FlightSearchResult,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
) -> FlightSearchResult:
    """
    Keep direct flights whose local departure HH:MM lies in [start_time, end_time].

    Connections are left untouched.
    """
    def in_window(departure: str) -> bool:
        hhmm = departure.split("T")[1][:5] if "T" in departure else ""
        if start_time and hhmm < start_time:
            return False
        if end_time and hhmm > end_time:
            return False
        return True

    return FlightSearchResult(
        direct=[f for f in result["direct"] if in_window(f["departure"]["time"])],
        connecting=result["connecting"],
        searchParams=result["searchParams"],
    )


class FlightSearchService:
    """Search pipeline with process-lifetime airport and airline caches."""

    def __init__(self, client, rates: RateTable = DEFAULT_RATES):
        self.client = client
        self.rates = rates
        self.airports: ReferenceCache[Airport] = ReferenceCache(
            "airport",
            lambda code: client.find_locations(code, "AIRPORT"),
            convert_airport,
        )
        self.airlines: ReferenceCache[Airline] = ReferenceCache(
            "airline",
            lambda code: client.find_airlines([code]),
            convert_airline,
        )

    async def get_airport(self, code: str) -> Airport:
        airport = await self.airports.resolve(code)
        if airport is None:
            raise NotFoundError("Airport", code)
        return airport

    async def get_airline(self, code: str) -> Airline:
        airline = await self.airlines.resolve(code)
        if airline is None:
            raise NotFoundError("Airline", code)
        return airline

    async def search_airports(self, keyword: str) -> List[Airport]:
        """Airports and cities matching a free-text keyword (uncached)."""
        locations = await self.client.find_locations(keyword, "AIRPORT,CITY")
        return [convert_airport(location) for location in locations]

    async def search(
        self,
        origin: str,
        destination: str,
        departure_date: str,
        adults: int = 1,
    ) -> FlightSearchResult:
        """
        Search one departure date.

        Raises:
            NotFoundError: origin or destination airport is unknown; raised
                before the offer search is attempted.
            UpstreamError: the offer search itself failed.
        """
        origin_airport, destination_airport = await asyncio.gather(
            self.airports.resolve(origin),
            self.airports.resolve(destination),
        )
        if origin_airport is None:
            raise NotFoundError("Origin airport", origin)
        if destination_airport is None:
            raise NotFoundError("Destination airport", destination)

        offers = await self.client.search_offers(
            origin, destination, departure_date, adults, config.MAX_SEARCH_RESULTS
        )
        logger.info("Offer search %s -> %s on %s: %d offers", origin, destination, departure_date, len(offers))

        airports: Dict[str, Airport] = {origin: origin_airport, destination: destination_airport}

        # Carrier counts are small, so these resolve one at a time
        airlines: Dict[str, Airline] = {}
        for code in collect_carrier_codes(offers):
            airline = await self.airlines.resolve(code)
            if airline is not None:
                airlines[code] = airline

        result = FlightSearchResult(
            direct=[],
            connecting=[],
            searchParams={"from": origin, "to": destination, "date": departure_date, "passengers": adults},
        )
        for offer in offers:
            itineraries = offer.get("itineraries") or []
            segments = itineraries[0].get("segments") if itineraries else None
            if not segments:
                logger.warning("Skipping offer %s without segments", offer.get("id"))
                continue
            if len(segments) == 1:
                result["direct"].append(convert_flight(offer, airports, airlines, self.rates))
            else:
                result["connecting"].append(build_connection(offer, airports, airlines, self.rates))

        return result

    async def search_range(
        self,
        origin: str,
        destination: str,
        start_date: str,
        end_date: str,
        adults: int = 1,
    ) -> List[FlightSearchResult]:
        """
        Search every day in [start_date, end_date], oldest first.

        Days that fail are logged and skipped, as are days with no flights.
        """
        day = date.fromisoformat(start_date)
        end = date.fromisoformat(end_date)
        results: List[FlightSearchResult] = []

        while day <= end:
            day_str = day.isoformat()
            try:
                result = await self.search(origin, destination, day_str, adults)
            except Exception as e:
                logger.warning("Error searching flights for %s: %s", day_str, e)
            else:
                if result["direct"] or result["connecting"]:
                    results.append(result)
            day += timedelta(days=1)

        return results

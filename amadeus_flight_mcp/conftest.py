"""Shared fakes for the test suite: an in-memory Amadeus and offer builders."""

from typing import Any, Dict, List, Optional

LOCATIONS = {
    "JFK": {
        "iataCode": "JFK",
        "name": "JOHN F KENNEDY INTL",
        "timeZoneOffset": "-04:00",
        "geoCode": {"latitude": "40.63980", "longitude": "-73.77890"},
        "address": {"cityName": "NEW YORK", "countryName": "UNITED STATES OF AMERICA"},
    },
    "LAX": {
        "iataCode": "LAX",
        "name": "LOS ANGELES INTL",
        "timeZoneOffset": "-07:00",
        "geoCode": {"latitude": "33.94250", "longitude": "-118.40800"},
        "address": {"cityName": "LOS ANGELES", "countryName": "UNITED STATES OF AMERICA"},
    },
}

AIRLINES = {
    "AA": {"iataCode": "AA", "businessName": "AMERICAN AIRLINES"},
    "UA": {"iataCode": "UA", "businessName": "UNITED AIRLINES"},
}


def make_segment(
    carrier: str,
    number: str,
    origin: str,
    departs_at: str,
    destination: str,
    arrives_at: str,
    duration: Optional[str] = None,
    terminal: Optional[str] = None,
) -> Dict[str, Any]:
    segment = {
        "carrierCode": carrier,
        "number": number,
        "departure": {"iataCode": origin, "at": departs_at},
        "arrival": {"iataCode": destination, "at": arrives_at},
        "aircraft": {"code": "738"},
    }
    if duration:
        segment["duration"] = duration
    if terminal:
        segment["departure"]["terminal"] = terminal
    return segment


def make_offer(
    offer_id: str,
    segments: List[Dict[str, Any]],
    total: str,
    currency: str = "EUR",
    duration: str = "PT5H30M",
) -> Dict[str, Any]:
    return {
        "type": "flight-offer",
        "id": offer_id,
        "itineraries": [{"duration": duration, "segments": segments}],
        "price": {"currency": currency, "total": total},
    }


class FakeAmadeus:
    """Stands in for AmadeusClient and records every call made to it."""

    def __init__(self, locations=None, airlines=None, offers=None):
        self.locations = LOCATIONS if locations is None else locations
        self.airlines = AIRLINES if airlines is None else airlines
        # departure date -> offers list, or an exception to raise
        self.offers = offers or {}
        self.calls: List[tuple] = []

    async def find_locations(self, keyword, sub_type="AIRPORT"):
        self.calls.append(("locations", keyword))
        return [self.locations[keyword]] if keyword in self.locations else []

    async def find_airlines(self, codes):
        codes = list(codes)
        self.calls.append(("airlines", ",".join(codes)))
        return [self.airlines[c] for c in codes if c in self.airlines]

    async def search_offers(self, origin, destination, departure_date, adults=1, max_results=10):
        self.calls.append(("offers", departure_date, adults, max_results))
        offers = self.offers.get(departure_date, [])
        if isinstance(offers, Exception):
            raise offers
        return offers

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)

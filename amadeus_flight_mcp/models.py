"""
Normalized domain records returned to MCP clients.

Records are plain dicts typed with TypedDict so they serialize straight to
JSON. Key names are camelCase because they form the wire format consumed by
agents; they are built once per search and never mutated afterwards.
"""

from typing import List, TypedDict


class Coordinates(TypedDict):
    latitude: float
    longitude: float


class Airport(TypedDict):
    """An airport resolved from Amadeus reference data or defaulted."""
    code: str
    name: str
    city: str
    country: str
    timezone: str
    coordinates: Coordinates


class Airline(TypedDict):
    """An airline resolved from Amadeus reference data or defaulted."""
    code: str
    name: str
    country: str


class _EndpointBase(TypedDict):
    airport: Airport
    time: str


class FlightEndpoint(_EndpointBase, total=False):
    """Departure or arrival side of a flight; terminal and gate are optional."""
    terminal: str
    gate: str


class Price(TypedDict):
    amount: float
    currency: str


class Flight(TypedDict):
    """A single itinerary segment."""
    id: str
    airline: Airline
    flightNumber: str
    departure: FlightEndpoint
    arrival: FlightEndpoint
    duration: int
    aircraft: str
    price: Price


class Layover(TypedDict):
    airport: Airport
    duration: int


class FlightConnection(TypedDict):
    """A multi-segment itinerary: N flights and N-1 layovers."""
    flights: List[Flight]
    totalDuration: int
    totalPrice: Price
    layovers: List[Layover]


# "from" is a keyword, hence the functional form
SearchParams = TypedDict(
    "SearchParams",
    {"from": str, "to": str, "date": str, "passengers": int},
)


class FlightSearchResult(TypedDict):
    direct: List[Flight]
    connecting: List[FlightConnection]
    searchParams: SearchParams

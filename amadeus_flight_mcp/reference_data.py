"""
Static airport and airline lists backing the MCP resources.

Airports come from ``data/airport_code.csv`` (``code,city`` rows), which only
carries codes and city names; the remaining fields use the usual defaults.
"""

import csv
import logging
from pathlib import Path
from typing import List, Optional

from amadeus_flight_mcp.models import Airline, Airport

logger = logging.getLogger(__name__)

AIRPORTS_CSV = Path(__file__).parent / "data" / "airport_code.csv"

FALLBACK_AIRPORTS: List[Airport] = [
    Airport(
        code="JFK",
        name="John F. Kennedy International Airport",
        city="New York",
        country="United States",
        timezone="America/New_York",
        coordinates={"latitude": 40.6413, "longitude": -73.7781},
    ),
    Airport(
        code="LAX",
        name="Los Angeles International Airport",
        city="Los Angeles",
        country="United States",
        timezone="America/Los_Angeles",
        coordinates={"latitude": 34.0522, "longitude": -118.2437},
    ),
]

AIRLINES: List[Airline] = [
    Airline(code="AA", name="American Airlines", country="United States"),
    Airline(code="BA", name="British Airways", country="United Kingdom"),
    Airline(code="AF", name="Air France", country="France"),
    Airline(code="LH", name="Lufthansa", country="Germany"),
    Airline(code="JL", name="Japan Airlines", country="Japan"),
    Airline(code="SQ", name="Singapore Airlines", country="Singapore"),
    Airline(code="EK", name="Emirates", country="United Arab Emirates"),
    Airline(code="QF", name="Qantas", country="Australia"),
    Airline(code="AC", name="Air Canada", country="Canada"),
    Airline(code="DL", name="Delta Air Lines", country="United States"),
]


def load_airports(path: Path = AIRPORTS_CSV) -> List[Airport]:
    """Read the airport CSV, falling back to a small sample if it cannot be read."""
    try:
        with path.open(newline="", encoding="utf-8") as f:
            reader = csv.reader(f)
            next(reader, None)  # header
            airports = []
            for row in reader:
                if len(row) < 2:
                    continue
                code, city = row[0].strip(), row[1].strip()
                if not code or not city:
                    continue
                airports.append(Airport(
                    code=code,
                    name=f"{city} Airport",
                    city=city,
                    country="Unknown",
                    timezone="UTC",
                    coordinates={"latitude": 0.0, "longitude": 0.0},
                ))
            return airports
    except OSError as e:
        logger.error("Error loading airports from %s: %s", path, e)
        return list(FALLBACK_AIRPORTS)


AIRPORTS: List[Airport] = load_airports()


def find_airport(code: str) -> Optional[Airport]:
    """Case-insensitive lookup in the static airport list."""
    code = code.lower()
    return next((a for a in AIRPORTS if a["code"].lower() == code), None)

#!/usr/bin/env python3
"""
Amadeus Flight MCP Server

This server exposes Amadeus flight search to LLM agents through MCP tools,
resources and prompts. Vendor offers are normalized into direct flights and
connecting itineraries with layovers.

Features:
- Single-day and date-range flight search
- Connecting-flight reconstruction with per-leg pricing and layover times
- EUR prices normalized to INR at a fixed rate
- Cached airport and airline lookups
- MCP Resources for the static airport and airline lists
- MCP Prompts for search and comparison workflows
- Multiple transport support (stdio, HTTP with SSE)
"""

import sys
import json
import logging
from typing import Optional, List, Dict, Any
from enum import Enum
from datetime import datetime, timezone
import httpx
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from fastmcp import FastMCP, Context

from amadeus_flight_mcp import config
from amadeus_flight_mcp.amadeus_client import AmadeusClient
from amadeus_flight_mcp.errors import NotFoundError, UpstreamError
from amadeus_flight_mcp.models import FlightSearchResult
from amadeus_flight_mcp.reference_data import AIRLINES, AIRPORTS, find_airport
from amadeus_flight_mcp.search import FlightSearchService, filter_departure_window

# Configure logging to stderr (stdout is reserved for MCP protocol)
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr
)
logger = logging.getLogger("amadeus_flight_mcp")

# Constants
CHARACTER_LIMIT = 25000

# Initialize the MCP server
mcp = FastMCP("amadeus_flight_mcp")

_service: Optional[FlightSearchService] = None


def _get_service() -> FlightSearchService:
    """Shared search service; its caches live as long as the process."""
    global _service
    if _service is None:
        _service = FlightSearchService(AmadeusClient())
    return _service


# ============================================================================
# Enums
# ============================================================================

class ResponseFormat(str, Enum):
    """Output format for tool responses."""
    JSON = "json"
    MARKDOWN = "markdown"

# ============================================================================
# Pydantic Models for Input Validation
# ============================================================================

class SearchFlightsInput(BaseModel):
    """Input model for a single-day flight search."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    origin: str = Field(
        ...,
        description="Origin airport IATA code (e.g., 'JFK', 'DEL')",
        min_length=3,
        max_length=3
    )
    destination: str = Field(
        ...,
        description="Destination airport IATA code (e.g., 'LHR', 'BOM')",
        min_length=3,
        max_length=3
    )
    date: Optional[str] = Field(
        default=None,
        description="Departure date in YYYY-MM-DD format (defaults to today)",
        pattern=r'^\d{4}-\d{2}-\d{2}$'
    )
    adults: int = Field(
        default=1,
        description="Number of adult passengers",
        ge=1,
        le=9
    )
    include_connecting: bool = Field(
        default=True,
        description="Include connecting flights in the results"
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.JSON,
        description="Output format: 'json' or 'markdown'"
    )

    @field_validator('origin', 'destination')
    @classmethod
    def uppercase_codes(cls, v: str) -> str:
        """IATA codes are sent to Amadeus in upper case."""
        return v.upper()


class SearchFlightsRangeInput(BaseModel):
    """Input model for searching every day in a date range."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    origin: str = Field(
        ...,
        description="Origin airport IATA code (e.g., 'JFK', 'DEL')",
        min_length=3,
        max_length=3
    )
    destination: str = Field(
        ...,
        description="Destination airport IATA code (e.g., 'LHR', 'BOM')",
        min_length=3,
        max_length=3
    )
    start_date: str = Field(
        ...,
        description="First departure date in YYYY-MM-DD format",
        pattern=r'^\d{4}-\d{2}-\d{2}$'
    )
    end_date: str = Field(
        ...,
        description="Last departure date in YYYY-MM-DD format (inclusive)",
        pattern=r'^\d{4}-\d{2}-\d{2}$'
    )
    start_time: Optional[str] = Field(
        default=None,
        description="Earliest local departure time in HH:MM format",
        pattern=r'^\d{2}:\d{2}$'
    )
    end_time: Optional[str] = Field(
        default=None,
        description="Latest local departure time in HH:MM format",
        pattern=r'^\d{2}:\d{2}$'
    )
    adults: int = Field(
        default=1,
        description="Number of adult passengers",
        ge=1,
        le=9
    )
    include_connecting: bool = Field(
        default=True,
        description="Include connecting flights in the results"
    )
    response_format: ResponseFormat = Field(
        default=ResponseFormat.JSON,
        description="Output format: 'json' or 'markdown'"
    )

    @field_validator('origin', 'destination')
    @classmethod
    def uppercase_codes(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def check_range(self) -> 'SearchFlightsRangeInput':
        """Reject ranges that end before they start."""
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AirportInfoInput(BaseModel):
    """Input model for an airport lookup."""
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(
        ...,
        description="Airport IATA code (e.g., 'JFK', 'LAX')",
        min_length=3,
        max_length=3
    )

    @field_validator('code')
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.upper()


class AirlineInfoInput(BaseModel):
    """Input model for an airline lookup."""
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(
        ...,
        description="Airline IATA code (e.g., 'AA', 'BA')",
        min_length=2,
        max_length=3
    )

    @field_validator('code')
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.upper()


class SearchAirportsInput(BaseModel):
    """Input model for a keyword airport search."""
    model_config = ConfigDict(str_strip_whitespace=True)

    keyword: str = Field(
        ...,
        description="City or airport name fragment (e.g., 'Lond', 'Mumbai')",
        min_length=1,
        max_length=50
    )

# ============================================================================
# Shared Utility Functions
# ============================================================================

def _handle_api_error(e: Exception) -> str:
    """Format errors consistently and log them."""
    if isinstance(e, NotFoundError):
        error_message = f"Error: {e.message}"
        logger.warning("Not found: %s", e.message)
    elif isinstance(e, UpstreamError):
        error_message = f"Error: {e.message}"
        logger.error("Upstream error (%s): %s", e.status_code, e.message)
    elif isinstance(e, httpx.TimeoutException):
        error_message = "Error: Request timed out. Please try again."
        logger.error("Request timeout: %s", str(e))
    elif isinstance(e, httpx.HTTPError):
        error_message = f"Error: Amadeus request failed: {str(e)}"
        logger.error("HTTP error: %s", str(e))
    elif isinstance(e, ValueError):
        error_message = f"Error: {str(e)}"
        logger.error("Validation error: %s", str(e))
    else:
        error_message = f"Error: Unexpected error occurred: {type(e).__name__}: {str(e)}"
        logger.exception("Unexpected error: %s", str(e))

    return error_message

def _format_price(price: Dict[str, Any]) -> str:
    """Format price consistently."""
    return f"{price['currency']} {price['amount']:.2f}"

def _format_datetime(dt_str: str) -> str:
    """Format ISO datetime to human-readable format."""
    try:
        dt = datetime.fromisoformat(dt_str)
        return dt.strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return dt_str

def _truncate_if_needed(content: str, data_description: str = "results") -> str:
    """Truncate content if it exceeds CHARACTER_LIMIT."""
    if len(content) > CHARACTER_LIMIT:
        truncated = content[:CHARACTER_LIMIT]
        truncated += f"\n\n**[Truncated]** Response exceeded {CHARACTER_LIMIT} characters. Narrow the date range or use filters to see more {data_description}."
        return truncated
    return content

def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()

def _apply_filters(
    results: List[FlightSearchResult],
    start_time: Optional[str],
    end_time: Optional[str],
    include_connecting: bool
) -> List[FlightSearchResult]:
    """Apply the departure window and connecting-flight toggle, dropping emptied days."""
    filtered = []
    for result in results:
        if start_time or end_time:
            result = filter_departure_window(result, start_time, end_time)
        if not include_connecting:
            result = {**result, "connecting": []}
        if result["direct"] or result["connecting"]:
            filtered.append(result)
    return filtered

def _format_result_markdown(result: FlightSearchResult) -> List[str]:
    """Render one day's search result as markdown lines."""
    params = result["searchParams"]
    lines = [f"## {params['from']} -> {params['to']} on {params['date']}"]
    lines.append(f"- **Passengers**: {params['passengers']}")

    direct = result["direct"]
    lines.append(f"\n### Direct Flights ({len(direct)})")
    for flight in direct:
        lines.append(
            f"- **{flight['flightNumber']}** {flight['airline']['name']}: "
            f"{flight['departure']['airport']['code']} {_format_datetime(flight['departure']['time'])} -> "
            f"{flight['arrival']['airport']['code']} {_format_datetime(flight['arrival']['time'])} "
            f"({flight['duration']} min) | {_format_price(flight['price'])}"
        )

    connecting = result["connecting"]
    if connecting:
        lines.append(f"\n### Connecting Flights ({len(connecting)})")
        for connection in connecting:
            legs = " + ".join(f["flightNumber"] for f in connection["flights"])
            stops = ", ".join(
                f"{l['airport']['code']} ({l['duration']} min)" for l in connection["layovers"]
            )
            lines.append(
                f"- **{legs}** via {stops} | {connection['totalDuration']} min total | "
                f"{_format_price(connection['totalPrice'])}"
            )

    lines.append("")
    return lines

# ============================================================================
# MCP Resources
# ============================================================================

@mcp.resource("airport://list")
def list_airports_resource() -> str:
    """
    List of all known airports with their details.

    Loaded from the bundled airport code list; use the IATA codes here when
    calling the search tools.
    """
    logger.debug("Resource request: airport://list")
    return json.dumps(AIRPORTS, indent=2)

@mcp.resource("airport://{code}")
def get_airport_resource(code: str) -> str:
    """
    Details for a specific airport by IATA code (e.g., airport://JFK).
    """
    logger.debug("Resource request: airport://%s", code)
    airport = find_airport(code)
    if airport is None:
        logger.warning("Airport not found: %s", code)
        return json.dumps({"error": f"Airport not found: {code}"})
    return json.dumps(airport, indent=2)

@mcp.resource("airline://list")
def list_airlines_resource() -> str:
    """
    List of common airlines with their IATA codes and countries.
    """
    logger.debug("Resource request: airline://list")
    return json.dumps(AIRLINES, indent=2)

# ============================================================================
# MCP Prompts
# ============================================================================

@mcp.prompt("flight_search_query")
def flight_search_query_prompt(
    from_city: str,
    to_city: str,
    travel_date: Optional[str] = None,
    return_date: Optional[str] = None,
    passengers: str = "1",
    travel_class: Optional[str] = None
) -> str:
    """
    Generate a natural language flight search query.
    """
    prompt = f"Find flights from {from_city} to {to_city}"

    if travel_date:
        prompt += f" on {travel_date}"
    if return_date:
        prompt += f" returning on {return_date}"
    if passengers != "1":
        prompt += f" for {passengers} passengers"
    if travel_class:
        prompt += f" in {travel_class} class"

    prompt += (
        ". Please include both direct flights and connecting flights with reasonable "
        "layover times. Show me the best options sorted by price and total travel time."
    )
    return prompt

@mcp.prompt("flight_comparison")
def flight_comparison_prompt(
    flights_data: str,
    criteria: str = "price, duration, and convenience"
) -> str:
    """
    Generate a prompt for comparing multiple flights.
    """
    return f"""Please analyze and compare the following flight options based on {criteria}:

{flights_data}

Provide a detailed comparison highlighting:
1. Price differences and value for money
2. Total travel time including layovers
3. Convenience factors (departure times, number of stops, airports)
4. Airline reputation and service quality
5. Your recommendation with reasoning

Format the response in a clear, easy-to-read manner that helps with decision making."""

# ============================================================================
# Tool Implementations
# ============================================================================

@mcp.tool(
    name="search_flights",
    annotations={
        "title": "Search Flights",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def search_flights(params: SearchFlightsInput, ctx: Context) -> str:
    """
    Search for available flights between two airports on a specific date.

    Offers with a single segment are returned as direct flights; offers with
    several segments are returned as connecting flights with one entry per
    leg and the layover time at each intermediate airport. Prices quoted in
    EUR are converted to INR at a fixed rate (not a live exchange rate).

    Args:
        params (SearchFlightsInput): Validated input parameters containing:
            - origin (str): Origin IATA code
            - destination (str): Destination IATA code
            - date (Optional[str]): Departure date, defaults to today
            - adults (int): Passenger count (1-9)
            - include_connecting (bool): Include connecting flights (default: true)
            - response_format (ResponseFormat): 'json' or 'markdown'
        ctx (Context): MCP context for progress reporting

    Returns:
        str: JSON search result ({direct, connecting, searchParams}) or markdown summary

    Examples:
        - "Find flights from JFK to LAX tomorrow"
        - "Direct flights only from DEL to BOM on 2025-03-10"
    """
    try:
        departure_date = params.date or _today()
        logger.info(
            "Flight search: %s -> %s on %s, %d passengers",
            params.origin, params.destination, departure_date, params.adults
        )
        await ctx.report_progress(0.2, 1.0)

        result = await _get_service().search(
            params.origin,
            params.destination,
            departure_date,
            params.adults
        )
        if not params.include_connecting:
            result["connecting"] = []

        await ctx.report_progress(1.0, 1.0)
        logger.info(
            "Search completed: %d direct, %d connecting",
            len(result["direct"]), len(result["connecting"])
        )

        if params.response_format == ResponseFormat.MARKDOWN:
            lines = ["# Flight Search Results\n"] + _format_result_markdown(result)
            return _truncate_if_needed("\n".join(lines), "flights")

        return json.dumps(result, indent=2)

    except Exception as e:
        return _handle_api_error(e)

@mcp.tool(
    name="search_flights_range",
    annotations={
        "title": "Search Flights Across Dates",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def search_flights_range(params: SearchFlightsRangeInput, ctx: Context) -> str:
    """
    Search for flights on every day of a date range, optionally within a departure time window.

    Each day is searched separately, oldest first. Days that fail or return
    no flights are left out of the result. The time window applies to direct
    flights' local departure time.

    Args:
        params (SearchFlightsRangeInput): Validated input parameters
        ctx (Context): MCP context for progress reporting

    Returns:
        str: JSON list of per-day search results or markdown summary

    Examples:
        - "Cheapest day to fly SIN to SYD between March 1 and March 7"
        - "Morning flights (06:00-12:00) from LHR to CDG next week"
    """
    try:
        logger.info(
            "Range search: %s -> %s from %s to %s",
            params.origin, params.destination, params.start_date, params.end_date
        )
        await ctx.report_progress(0.1, 1.0)

        results = await _get_service().search_range(
            params.origin,
            params.destination,
            params.start_date,
            params.end_date,
            params.adults
        )
        results = _apply_filters(results, params.start_time, params.end_time, params.include_connecting)

        await ctx.report_progress(1.0, 1.0)
        logger.info("Range search completed: %d days with flights", len(results))

        if params.response_format == ResponseFormat.MARKDOWN:
            lines = ["# Flight Search Results\n"]
            if not results:
                lines.append("No flights found in this date range. Try widening the dates or time window.")
            for result in results:
                lines.extend(_format_result_markdown(result))
            return _truncate_if_needed("\n".join(lines), "flights")

        return json.dumps(results, indent=2)

    except Exception as e:
        return _handle_api_error(e)

@mcp.tool(
    name="get_airport_info",
    annotations={
        "title": "Get Airport Info",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def get_airport_info(params: AirportInfoInput) -> str:
    """
    Get detailed information about a specific airport.

    Args:
        params (AirportInfoInput): Airport IATA code

    Returns:
        str: JSON airport record (code, name, city, country, timezone, coordinates)
    """
    try:
        airport = await _get_service().get_airport(params.code)
        return json.dumps(airport, indent=2)
    except Exception as e:
        return _handle_api_error(e)

@mcp.tool(
    name="get_airline_info",
    annotations={
        "title": "Get Airline Info",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def get_airline_info(params: AirlineInfoInput) -> str:
    """
    Get detailed information about a specific airline.

    Args:
        params (AirlineInfoInput): Airline IATA code

    Returns:
        str: JSON airline record (code, name, country)
    """
    try:
        airline = await _get_service().get_airline(params.code)
        return json.dumps(airline, indent=2)
    except Exception as e:
        return _handle_api_error(e)

@mcp.tool(
    name="search_airports",
    annotations={
        "title": "Search Airports",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def search_airports(params: SearchAirportsInput) -> str:
    """
    Find airports and cities by name or code fragment.

    Use this to find IATA codes when the user gives a city name.

    Args:
        params (SearchAirportsInput): Keyword to search for

    Returns:
        str: JSON list of matching airport records
    """
    try:
        airports = await _get_service().search_airports(params.keyword)
        logger.info("Airport search '%s': %d results", params.keyword, len(airports))
        return json.dumps(airports, indent=2)
    except Exception as e:
        return _handle_api_error(e)

# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Run the Amadeus flight MCP server with configurable transport."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Amadeus Flight MCP Server - Flight search via MCP"
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport type: 'stdio' (default) for CLI, 'sse' for HTTP Server-Sent Events"
    )
    parser.add_argument(
        "--host",
        default=config.SSE_HOST,
        help=f"Host for SSE transport (default: {config.SSE_HOST})"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.SSE_PORT,
        help=f"Port for SSE transport (default: {config.SSE_PORT})"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    # Configure logging level
    if args.debug:
        logging.getLogger("amadeus_flight_mcp").setLevel(logging.DEBUG)
        logger.debug("Debug logging enabled")

    logger.info("Starting Amadeus flight MCP server with transport: %s", args.transport)

    if args.transport == "stdio":
        # Standard stdio transport for CLI tools
        mcp.run()
    elif args.transport == "sse":
        # HTTP with Server-Sent Events for web deployments
        logger.info("SSE server starting on http://%s:%d", args.host, args.port)
        mcp.run(
            transport="sse",
            host=args.host,
            port=args.port
        )


if __name__ == "__main__":
    main()

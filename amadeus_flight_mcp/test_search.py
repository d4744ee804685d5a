"""Tests for single-day and date-range flight search orchestration."""

import pytest

from amadeus_flight_mcp.conftest import FakeAmadeus, make_offer, make_segment
from amadeus_flight_mcp.errors import NotFoundError, UpstreamError
from amadeus_flight_mcp.search import (
    FlightSearchService,
    collect_carrier_codes,
    filter_departure_window,
    layover_minutes,
)

DATE = "2025-05-01"


def direct_offer(offer_id="1", total="200.00", currency="EUR", departs="08:00", date=DATE):
    return make_offer(
        offer_id,
        [make_segment("AA", "100", "JFK", f"{date}T{departs}:00", "LAX", f"{date}T11:30:00")],
        total=total,
        currency=currency,
    )


def connecting_offer(offer_id="2", total="300.00"):
    return make_offer(
        offer_id,
        [
            make_segment("AA", "10", "JFK", f"{DATE}T11:00:00", "ORD", f"{DATE}T14:00:00", duration="PT3H"),
            make_segment("UA", "20", "ORD", f"{DATE}T15:30:00", "LAX", f"{DATE}T18:00:00", duration="PT4H30M"),
        ],
        total=total,
        duration="PT10H",
    )


async def test_direct_flight_priced_in_inr():
    amadeus = FakeAmadeus(offers={DATE: [direct_offer()]})
    service = FlightSearchService(amadeus)

    result = await service.search("JFK", "LAX", DATE)

    assert result["connecting"] == []
    assert len(result["direct"]) == 1
    flight = result["direct"][0]
    assert flight["price"] == {"amount": 20514.0, "currency": "INR"}
    assert flight["flightNumber"] == "AA100"
    assert flight["airline"]["name"] == "AMERICAN AIRLINES"
    assert flight["departure"]["airport"]["city"] == "NEW YORK"
    assert flight["arrival"]["airport"]["name"] == "LOS ANGELES INTL"
    assert result["searchParams"] == {"from": "JFK", "to": "LAX", "date": DATE, "passengers": 1}


async def test_offer_search_bounded_to_ten_results():
    amadeus = FakeAmadeus(offers={DATE: [direct_offer()]})

    await FlightSearchService(amadeus).search("JFK", "LAX", DATE, adults=2)

    assert ("offers", DATE, 2, 10) in amadeus.calls


async def test_connecting_flight_layover():
    amadeus = FakeAmadeus(offers={DATE: [connecting_offer()]})

    result = await FlightSearchService(amadeus).search("JFK", "LAX", DATE)

    assert result["direct"] == []
    connection = result["connecting"][0]
    assert [f["flightNumber"] for f in connection["flights"]] == ["AA10", "UA20"]
    assert [f["id"] for f in connection["flights"]] == ["2-0", "2-1"]
    assert connection["flights"][0]["duration"] == 180
    assert connection["totalDuration"] == 600
    assert connection["totalPrice"]["currency"] == "INR"
    assert len(connection["layovers"]) == 1
    layover = connection["layovers"][0]
    assert layover["duration"] == 90
    # ORD was never resolved, so it is a placeholder
    assert layover["airport"]["code"] == "ORD"
    assert layover["airport"]["country"] == "Unknown"


async def test_connecting_leg_prices_split_evenly():
    amadeus = FakeAmadeus(offers={DATE: [connecting_offer(total="300.00")]})
    amadeus.offers[DATE][0]["price"]["currency"] = "USD"

    result = await FlightSearchService(amadeus).search("JFK", "LAX", DATE)

    legs = result["connecting"][0]["flights"]
    assert [leg["price"] for leg in legs] == [{"amount": 150.0, "currency": "USD"}] * 2
    assert result["connecting"][0]["totalPrice"] == {"amount": 300.0, "currency": "USD"}


async def test_connecting_leg_prices_with_unparsable_total():
    amadeus = FakeAmadeus(offers={DATE: [connecting_offer(total="N/A")]})

    result = await FlightSearchService(amadeus).search("JFK", "LAX", DATE)

    legs = result["connecting"][0]["flights"]
    assert [leg["price"] for leg in legs] == [{"amount": 0.0, "currency": "INR"}] * 2
    assert result["connecting"][0]["totalPrice"] == {"amount": 0.0, "currency": "INR"}


async def test_offers_with_null_itineraries_are_skipped():
    malformed = {"id": "x", "itineraries": None, "price": {"currency": "EUR", "total": "1.00"}}
    amadeus = FakeAmadeus(offers={DATE: [malformed, direct_offer()]})

    result = await FlightSearchService(amadeus).search("JFK", "LAX", DATE)

    assert [flight["id"] for flight in result["direct"]] == ["1"]
    assert result["connecting"] == []


@pytest.mark.parametrize("segment_count", [2, 3, 4])
async def test_connection_cardinalities(segment_count):
    stops = ["JFK", "ORD", "DEN", "PHX", "LAX"][:segment_count + 1]
    segments = [
        make_segment(
            "AA", str(i), stops[i], f"{DATE}T{8 + 3 * i:02d}:00:00",
            stops[i + 1], f"{DATE}T{9 + 3 * i:02d}:00:00",
        )
        for i in range(segment_count)
    ]
    amadeus = FakeAmadeus(offers={DATE: [make_offer("9", segments, total="100.00")]})

    result = await FlightSearchService(amadeus).search("JFK", "LAX", DATE)

    connection = result["connecting"][0]
    assert len(connection["flights"]) == segment_count
    assert len(connection["layovers"]) == segment_count - 1
    assert all(layover["duration"] == 120 for layover in connection["layovers"])


async def test_unknown_origin_fails_before_offer_search():
    amadeus = FakeAmadeus(offers={DATE: [direct_offer()]})

    with pytest.raises(NotFoundError) as exc_info:
        await FlightSearchService(amadeus).search("ZZZ", "LAX", DATE)

    assert exc_info.value.code == "ZZZ"
    assert "ZZZ" in str(exc_info.value)
    assert amadeus.count("offers") == 0


async def test_unknown_destination_fails_before_offer_search():
    amadeus = FakeAmadeus()

    with pytest.raises(NotFoundError, match="Destination airport not found: ZZZ"):
        await FlightSearchService(amadeus).search("JFK", "ZZZ", DATE)

    assert amadeus.count("offers") == 0


async def test_upstream_failure_propagates():
    amadeus = FakeAmadeus(offers={DATE: UpstreamError("Amadeus rate limit exceeded.", 429)})

    with pytest.raises(UpstreamError):
        await FlightSearchService(amadeus).search("JFK", "LAX", DATE)


async def test_reference_data_cached_across_searches():
    amadeus = FakeAmadeus(offers={DATE: [direct_offer(), connecting_offer()]})
    service = FlightSearchService(amadeus)

    await service.search("JFK", "LAX", DATE)
    await service.search("JFK", "LAX", DATE)

    assert amadeus.count("locations") == 2
    assert amadeus.count("airlines") == 2
    assert [c[1] for c in amadeus.calls if c[0] == "airlines"] == ["AA", "UA"]


async def test_unresolved_airline_gets_placeholder():
    offer = make_offer(
        "3",
        [make_segment("ZZ", "1", "JFK", f"{DATE}T08:00:00", "LAX", f"{DATE}T11:00:00")],
        total="50.00",
        currency="USD",
    )
    amadeus = FakeAmadeus(offers={DATE: [offer]})

    result = await FlightSearchService(amadeus).search("JFK", "LAX", DATE)

    assert result["direct"][0]["airline"] == {"code": "ZZ", "name": "ZZ", "country": "Unknown"}


async def test_get_airport_and_airline():
    service = FlightSearchService(FakeAmadeus())

    assert (await service.get_airport("JFK"))["code"] == "JFK"
    assert (await service.get_airline("UA"))["name"] == "UNITED AIRLINES"
    with pytest.raises(NotFoundError, match="Airline not found: XX"):
        await service.get_airline("XX")


async def test_range_skips_failed_day():
    days = ["2025-05-01", "2025-05-02", "2025-05-03", "2025-05-04"]
    offers = {day: [direct_offer(date=day)] for day in days}
    offers["2025-05-02"] = UpstreamError("Amadeus API request failed with status 500", 500)
    amadeus = FakeAmadeus(offers=offers)

    results = await FlightSearchService(amadeus).search_range("JFK", "LAX", days[0], days[-1])

    assert [r["searchParams"]["date"] for r in results] == ["2025-05-01", "2025-05-03", "2025-05-04"]
    assert amadeus.count("offers") == 4


async def test_range_skips_days_without_flights():
    amadeus = FakeAmadeus(offers={"2025-05-02": [direct_offer(date="2025-05-02")]})

    results = await FlightSearchService(amadeus).search_range("JFK", "LAX", "2025-05-01", "2025-05-03")

    assert [r["searchParams"]["date"] for r in results] == ["2025-05-02"]


async def test_range_crosses_month_end():
    amadeus = FakeAmadeus()

    await FlightSearchService(amadeus).search_range("JFK", "LAX", "2025-01-30", "2025-02-02")

    assert [c[1] for c in amadeus.calls if c[0] == "offers"] == [
        "2025-01-30", "2025-01-31", "2025-02-01", "2025-02-02",
    ]


async def test_empty_range():
    amadeus = FakeAmadeus()

    assert await FlightSearchService(amadeus).search_range("JFK", "LAX", "2025-05-03", "2025-05-01") == []
    assert amadeus.calls == []


def test_layover_minutes():
    assert layover_minutes("2025-05-01T14:00:00", "2025-05-01T15:30:00") == 90
    assert layover_minutes("2025-05-01T23:10:00", "2025-05-02T01:05:00") == 115
    assert layover_minutes("2025-05-01T14:00:30", "2025-05-01T14:05:00") == 4


def test_negative_layover_passes_through():
    assert layover_minutes("2025-05-01T15:30:00", "2025-05-01T14:00:00") == -90


def test_unparsable_layover_times_are_zero():
    assert layover_minutes("", "2025-05-01T14:00:00") == 0


def test_collect_carrier_codes():
    offers = [connecting_offer(), direct_offer(), connecting_offer()]
    assert collect_carrier_codes(offers) == ["AA", "UA"]


def test_collect_carrier_codes_tolerates_null_itineraries():
    offers = [
        {"id": "x", "itineraries": None},
        {"id": "y", "itineraries": [{"segments": None}]},
        direct_offer(),
    ]
    assert collect_carrier_codes(offers) == ["AA"]


async def test_filter_departure_window():
    amadeus = FakeAmadeus(offers={DATE: [
        direct_offer("1", departs="06:30"),
        direct_offer("2", departs="09:15"),
        direct_offer("3", departs="13:00"),
        connecting_offer("4"),
    ]})
    result = await FlightSearchService(amadeus).search("JFK", "LAX", DATE)

    filtered = filter_departure_window(result, "07:00", "12:00")

    assert [f["id"] for f in filtered["direct"]] == ["2"]
    assert len(filtered["connecting"]) == 1
    assert len(result["direct"]) == 3

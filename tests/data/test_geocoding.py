"""Tests for the Nominatim geocoding client."""

from __future__ import annotations

import requests

from farmview.data.geocoding import GeocodingClient, LocationResult

HIT = {
    "display_name": "Piracicaba, São Paulo, Brasil",
    "lat": "-22.7253",
    "lon": "-47.6492",
    "boundingbox": ["-22.9", "-22.5", "-47.9", "-47.4"],
}


def test_search_parses_results(fake_session_factory, fake_response_factory) -> None:
    """search should send a Brazil-scoped query and parse hits."""
    session = fake_session_factory([fake_response_factory(200, [HIT, {"display_name": "bad"}])])
    client = GeocodingClient(session=session)

    results = client.search(" Piracicaba ")

    assert results == [
        LocationResult(
            "Piracicaba, São Paulo, Brasil",
            -22.7253,
            -47.6492,
            (-22.9, -22.5, -47.9, -47.4),
        )
    ]
    params = session.calls[0]["params"]
    assert params["q"] == "Piracicaba"
    assert params["countrycodes"] == "BR"
    assert params["format"] == "json"
    assert session.calls[0]["headers"]["User-Agent"].startswith("FarmView/")


def test_short_query_skips_request(fake_session_factory) -> None:
    """Queries under three characters should return nothing."""
    session = fake_session_factory()

    assert GeocodingClient(session=session).search("ab") == []
    assert session.calls == []


def test_failures_return_empty(fake_session_factory, fake_response_factory) -> None:
    """HTTP errors, transport errors and bad JSON should give no results."""
    session = fake_session_factory(
        [
            fake_response_factory(503, {"error": "busy"}),
            requests.ConnectionError("offline"),
            fake_response_factory(200, text="not json"),
        ]
    )
    client = GeocodingClient(session=session)

    assert client.search("Piracicaba") == []
    assert client.search("Piracicaba") == []
    assert client.search("Piracicaba") == []


def test_lookup_postal_code_returns_first_hit(fake_session_factory, fake_response_factory) -> None:
    """lookup_postal_code should return the first result or None."""
    session = fake_session_factory(
        [fake_response_factory(200, [HIT]), fake_response_factory(200, [])]
    )
    client = GeocodingClient(session=session)

    hit = client.lookup_postal_code("13400-000")
    assert hit.lat == -22.7253
    assert session.calls[0]["params"]["limit"] == 1
    assert client.lookup_postal_code("13400-001") is None

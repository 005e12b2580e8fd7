"""Tests for XYZ tile math and the tile fetcher."""

from __future__ import annotations

import pytest
import requests

from farmview.utils.tiles import (
    EARTH_HALF_CIRCUMFERENCE,
    INITIAL_RESOLUTION,
    OSM,
    TileFetcher,
    lonlat_to_tile,
    resolution_for_zoom,
    tile_bounds_3857,
    tiles_for_view,
    zoom_for_resolution,
)


def test_lonlat_to_tile() -> None:
    """Tile indices should follow the slippy-map scheme."""
    assert lonlat_to_tile(0.0, 0.0, 0) == (0, 0)
    assert lonlat_to_tile(0.0, 0.0, 1) == (1, 1)
    assert lonlat_to_tile(-180.0, 89.0, 2) == (0, 0)
    assert lonlat_to_tile(179.999, -89.0, 2) == (3, 3)


def test_tile_bounds_cover_world_at_zoom_zero() -> None:
    """Zoom 0 should be a single tile spanning the projection."""
    assert tile_bounds_3857(0, 0, 0) == pytest.approx(
        (-EARTH_HALF_CIRCUMFERENCE, -EARTH_HALF_CIRCUMFERENCE,
         EARTH_HALF_CIRCUMFERENCE, EARTH_HALF_CIRCUMFERENCE)
    )


def test_tiles_for_view() -> None:
    """Every tile overlapping the view should be listed once."""
    half = EARTH_HALF_CIRCUMFERENCE
    world = list(tiles_for_view((-half, -half, half, half), 1))
    assert sorted(world) == [(0, 0, 1), (0, 1, 1), (1, 0, 1), (1, 1, 1)]

    quarter = list(tiles_for_view((1.0, 1.0, 10.0, 10.0), 1))
    assert quarter == [(1, 0, 1)]


def test_zoom_and_resolution_are_inverse() -> None:
    """zoom_for_resolution should invert resolution_for_zoom and clamp."""
    assert resolution_for_zoom(0) == INITIAL_RESOLUTION
    assert zoom_for_resolution(resolution_for_zoom(12)) == 12
    assert zoom_for_resolution(0.0001, max_zoom=19) == 19
    assert zoom_for_resolution(1e9) == 0


def test_fetcher_caches_tiles(fake_session_factory, fake_response_factory) -> None:
    """A fetched tile should be served from cache afterwards."""
    session = fake_session_factory([fake_response_factory(200, text="PNG")])
    fetcher = TileFetcher(session=session)

    assert fetcher.fetch(OSM, 1, 2, 3) == b"PNG"
    assert fetcher.fetch(OSM, 1, 2, 3) == b"PNG"
    assert len(session.calls) == 1
    assert session.calls[0]["url"] == "https://tile.openstreetmap.org/3/1/2.png"
    assert fetcher.cached(OSM, 1, 2, 3) == b"PNG"


def test_fetcher_failures_return_none(fake_session_factory, fake_response_factory) -> None:
    """Errors and zoom levels beyond the source should give no tile."""
    session = fake_session_factory(
        [fake_response_factory(404, {"error": "missing"}), requests.ConnectionError("offline")]
    )
    fetcher = TileFetcher(session=session)

    assert fetcher.fetch(OSM, 0, 0, 25) is None
    assert fetcher.fetch(OSM, 0, 0, 1) is None
    assert fetcher.fetch(OSM, 0, 0, 1) is None
    assert len(session.calls) == 2


def test_fetcher_evicts_oldest(fake_session_factory, fake_response_factory) -> None:
    """The cache should keep at most cache_size tiles."""
    session = fake_session_factory(
        [fake_response_factory(200, text="a"), fake_response_factory(200, text="b")]
    )
    fetcher = TileFetcher(session=session, cache_size=1)

    fetcher.fetch(OSM, 0, 0, 1)
    fetcher.fetch(OSM, 1, 0, 1)

    assert fetcher.cached(OSM, 0, 0, 1) is None
    assert fetcher.cached(OSM, 1, 0, 1) == b"b"

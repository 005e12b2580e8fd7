"""Tests for geodesic block metrics and map projection helpers."""

from __future__ import annotations

import pytest

from farmview.core.geometry import (
    blocks_bounds,
    blocks_center,
    close_ring,
    compute_block_metrics,
    lonlat_to_map,
    map_to_lonlat,
    measure_area,
    measure_path_length,
    open_ring,
    point_to_map,
)
from farmview.core.models import Block

SQUARE = [[0.0, 0.0], [0.001, 0.0], [0.001, 0.001], [0.0, 0.001]]


def test_compute_block_metrics_matches_small_equatorial_square() -> None:
    """compute_block_metrics should give about 12,300 m² for a 0.001° square."""
    metrics = compute_block_metrics(SQUARE)

    assert round(metrics.area_m2 / 1000) == 12
    assert metrics.area_acres == pytest.approx(metrics.area_m2 / 4046.8564224, abs=1e-3)
    assert metrics.perimeter == pytest.approx(4 * 111.0, rel=0.01)


def test_compute_block_metrics_ignores_orientation_and_closing_vertex() -> None:
    """Metrics should not depend on ring direction or an explicit closing vertex."""
    forward = compute_block_metrics(SQUARE)
    backward = compute_block_metrics(close_ring(list(reversed(SQUARE))))

    assert backward.area_m2 == pytest.approx(forward.area_m2)
    assert backward.perimeter == pytest.approx(forward.perimeter)


def test_compute_block_metrics_degenerate_ring_is_zero() -> None:
    """Fewer than three distinct vertices should yield zero metrics."""
    metrics = compute_block_metrics([[0, 0], [1, 1], [0, 0]])

    assert metrics.area_m2 == 0.0
    assert metrics.area_acres == 0.0
    assert metrics.perimeter == 0.0


def test_measure_path_length_and_area() -> None:
    """measure_path_length should sum segments; measure_area should need a polygon."""
    assert measure_path_length([[0.0, 0.0]]) == 0.0
    length = measure_path_length([[0.0, 0.0], [0.001, 0.0]])
    assert length == pytest.approx(111.3, rel=0.01)
    assert measure_area(SQUARE) == pytest.approx(compute_block_metrics(SQUARE).area_m2, rel=1e-6)


def test_ring_helpers() -> None:
    """open_ring and close_ring should add or strip the repeated vertex."""
    closed = close_ring(SQUARE)

    assert closed[0] == closed[-1]
    assert len(closed) == 5
    assert open_ring(closed) == SQUARE
    assert close_ring(closed) == closed


def test_blocks_center_and_bounds() -> None:
    """Center and bounds should cover all block vertices."""
    blocks = [
        Block(name="a", coordinates=[[0, 0], [1, 0], [1, 1]]),
        Block(name="b", coordinates=[[2, 2], [3, 2], [3, 4]]),
    ]

    assert blocks_bounds(blocks) == (0.0, 0.0, 3.0, 4.0)
    assert blocks_center(blocks) == pytest.approx((10 / 6, 1.5))
    assert blocks_bounds([]) is None
    assert blocks_center([Block(name="empty")]) is None


def test_projection_round_trip() -> None:
    """point_to_map and map_to_lonlat should invert each other."""
    x, y = point_to_map(-47.65, -22.72)
    lon, lat = map_to_lonlat(x, y)

    assert lon == pytest.approx(-47.65)
    assert lat == pytest.approx(-22.72)
    array = lonlat_to_map([[-47.65, -22.72], [0.0, 0.0]])
    assert array.shape == (2, 2)
    assert array[1].tolist() == pytest.approx([0.0, 0.0], abs=1e-6)

"""Geodesic block metrics and lon/lat helpers.

All stored coordinates are WGS84 ``[lon, lat]`` pairs. The map canvas works in
Web Mercator metres, so conversions live here as well.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, Sequence

import numpy as np
from loguru import logger
from pyproj import Geod, Transformer
from shapely.errors import ShapelyError
from shapely.geometry import Polygon

ACRES_PER_M2 = 0.000247105

_GEOD = Geod(ellps="WGS84")
_TO_MAP = Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)
_TO_LONLAT = Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True)


@dataclass(frozen=True)
class BlockMetrics:
    """Area and perimeter of one block polygon.

    Attributes
    ----------
    area_m2 : float
        Geodesic area in square metres, rounded to 2 decimals.
    area_acres : float
        Area in acres, rounded to 4 decimals.
    perimeter : float
        Ring length in metres, rounded to 2 decimals.
    """

    area_m2: float = 0.0
    area_acres: float = 0.0
    perimeter: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


def open_ring(coords: Sequence[Sequence[float]]) -> list[list[float]]:
    """Return vertices without a repeated closing vertex."""
    ring = [[float(c[0]), float(c[1])] for c in coords]
    if len(ring) > 1 and ring[0] == ring[-1]:
        ring.pop()
    return ring


def close_ring(coords: Sequence[Sequence[float]]) -> list[list[float]]:
    """Return vertices with the first vertex repeated at the end."""
    ring = open_ring(coords)
    if ring:
        ring.append(list(ring[0]))
    return ring


def _distinct_count(ring: list[list[float]]) -> int:
    return len({(lon, lat) for lon, lat in ring})


def compute_block_metrics(coords: Sequence[Sequence[float]]) -> BlockMetrics:
    """Compute geodesic area, acreage and perimeter of a lon/lat ring.

    Parameters
    ----------
    coords : Sequence[Sequence[float]]
        Polygon vertices as ``[lon, lat]``, open or closed.

    Returns
    -------
    BlockMetrics
        Rounded metrics. Degenerate input yields all zeros.

    Examples
    --------
    >>> m = compute_block_metrics([[0, 0], [0.001, 0], [0.001, 0.001], [0, 0.001]])
    >>> round(m.area_m2 / 1000)
    12
    """
    try:
        ring = open_ring(coords)
    except (TypeError, ValueError, IndexError) as exc:
        logger.error(f"Metric calculation failed: {exc}")
        return BlockMetrics()
    if _distinct_count(ring) < 3:
        return BlockMetrics()

    try:
        polygon = Polygon(ring)
        area, perimeter = _GEOD.geometry_area_perimeter(polygon)
    except (ShapelyError, ValueError) as exc:
        logger.error(f"Metric calculation failed: {exc}")
        return BlockMetrics()

    area = abs(area)
    return BlockMetrics(
        area_m2=round(area, 2),
        area_acres=round(area * ACRES_PER_M2, 4),
        perimeter=round(perimeter, 2),
    )


def measure_path_length(coords: Sequence[Sequence[float]]) -> float:
    """Return geodesic length in metres of an open polyline."""
    if len(coords) < 2:
        return 0.0
    lons = [float(c[0]) for c in coords]
    lats = [float(c[1]) for c in coords]
    return float(_GEOD.line_length(lons, lats))


def measure_area(coords: Sequence[Sequence[float]]) -> float:
    """Return geodesic area in square metres enclosed by the path."""
    ring = open_ring(coords)
    if _distinct_count(ring) < 3:
        return 0.0
    lons = [c[0] for c in ring]
    lats = [c[1] for c in ring]
    area, _ = _GEOD.polygon_area_perimeter(lons, lats)
    return abs(float(area))


def _iter_vertices(blocks: Iterable) -> Iterable[list[float]]:
    for block in blocks:
        yield from block.coordinates or []


def blocks_center(blocks: Iterable) -> tuple[float, float] | None:
    """Mean lon/lat over every vertex of the given blocks.

    Returns
    -------
    tuple[float, float] or None
        ``(lon, lat)``; ``None`` when there is no vertex.
    """
    vertices = list(_iter_vertices(blocks))
    if not vertices:
        return None
    arr = np.asarray(vertices, dtype=np.float64)
    lon, lat = arr.mean(axis=0)
    return float(lon), float(lat)


def blocks_bounds(blocks: Iterable) -> tuple[float, float, float, float] | None:
    """Return ``(min_lon, min_lat, max_lon, max_lat)`` or ``None``."""
    vertices = list(_iter_vertices(blocks))
    if not vertices:
        return None
    arr = np.asarray(vertices, dtype=np.float64)
    min_lon, min_lat = arr.min(axis=0)
    max_lon, max_lat = arr.max(axis=0)
    return float(min_lon), float(min_lat), float(max_lon), float(max_lat)


def block_polygon(block) -> Polygon | None:
    """Build a shapely polygon from a block, ``None`` when degenerate."""
    ring = open_ring(block.coordinates or [])
    if _distinct_count(ring) < 3:
        return None
    return Polygon(ring)


def lonlat_to_map(coords: Sequence[Sequence[float]]) -> np.ndarray:
    """Project lon/lat pairs to Web Mercator.

    Returns
    -------
    numpy.ndarray
        Array with shape ``(N, 2)`` and dtype ``float64``.
    """
    if len(coords) == 0:
        return np.empty((0, 2), dtype=np.float64)
    arr = np.asarray(coords, dtype=np.float64)
    x, y = _TO_MAP.transform(arr[:, 0], arr[:, 1])
    return np.column_stack((x, y))


def map_to_lonlat(x: float, y: float) -> tuple[float, float]:
    """Inverse of :func:`lonlat_to_map` for one point."""
    lon, lat = _TO_LONLAT.transform(x, y)
    return float(lon), float(lat)


def point_to_map(lon: float, lat: float) -> tuple[float, float]:
    x, y = _TO_MAP.transform(lon, lat)
    return float(x), float(y)

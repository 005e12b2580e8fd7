"""XYZ web-map tile math and a cached tile fetcher.

Tiles follow the usual slippy-map scheme: Web Mercator (EPSG:3857),
256 px tiles, ``y`` counted from the top.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterator, Optional

import requests
from loguru import logger

from farmview import __version__

TILE_SIZE = 256
EARTH_HALF_CIRCUMFERENCE = 20037508.342789244
MAX_LATITUDE = 85.05112878
INITIAL_RESOLUTION = 2 * EARTH_HALF_CIRCUMFERENCE / TILE_SIZE


@dataclass(frozen=True)
class TileSource:
    """XYZ tile layer definition.

    Attributes
    ----------
    name : str
        Layer key used in settings and the layer toggle.
    url_template : str
        URL with ``{x}``, ``{y}`` and ``{z}`` placeholders.
    max_zoom : int
        Deepest zoom the server provides.
    opacity : float
        Rendering opacity, 1.0 for base layers.
    attribution : str
        Credit text shown on the map.
    """

    name: str
    url_template: str
    max_zoom: int = 19
    opacity: float = 1.0
    attribution: str = ""

    def url(self, x: int, y: int, z: int) -> str:
        return self.url_template.format(x=x, y=y, z=z)


OSM = TileSource(
    "osm",
    "https://tile.openstreetmap.org/{z}/{x}/{y}.png",
    max_zoom=19,
    attribution="© OpenStreetMap contributors",
)
SATELLITE = TileSource(
    "satellite",
    "https://mt1.google.com/vt/lyrs=s&x={x}&y={y}&z={z}",
    max_zoom=20,
    attribution="© Google",
)
NDVI = TileSource(
    "ndvi",
    "https://example.com/ndvi/{z}/{x}/{y}.png",
    max_zoom=20,
    opacity=0.7,
)
BASE_SOURCES = {src.name: src for src in (OSM, SATELLITE)}


def lonlat_to_tile(lon: float, lat: float, zoom: int) -> tuple[int, int]:
    """Return the ``(x, y)`` index of the tile containing a WGS84 point."""
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    n = 2 ** zoom
    x = int((lon + 180.0) / 360.0 * n)
    lat_rad = math.radians(lat)
    y = int((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n)
    return min(max(x, 0), n - 1), min(max(y, 0), n - 1)


def tile_bounds_3857(x: int, y: int, z: int) -> tuple[float, float, float, float]:
    """Return ``(minx, miny, maxx, maxy)`` of a tile in Web Mercator metres."""
    size = 2 * EARTH_HALF_CIRCUMFERENCE / (2 ** z)
    minx = -EARTH_HALF_CIRCUMFERENCE + x * size
    maxy = EARTH_HALF_CIRCUMFERENCE - y * size
    return minx, maxy - size, minx + size, maxy


def _tile_index(value: float, z: int, invert: bool) -> int:
    size = 2 * EARTH_HALF_CIRCUMFERENCE / (2 ** z)
    if invert:
        idx = int(math.floor((EARTH_HALF_CIRCUMFERENCE - value) / size))
    else:
        idx = int(math.floor((value + EARTH_HALF_CIRCUMFERENCE) / size))
    return min(max(idx, 0), 2 ** z - 1)


def tiles_for_view(
    bounds_3857: tuple[float, float, float, float], zoom: int
) -> Iterator[tuple[int, int, int]]:
    """Yield ``(x, y, z)`` for every tile overlapping a view rectangle.

    Parameters
    ----------
    bounds_3857 : tuple[float, float, float, float]
        ``(minx, miny, maxx, maxy)`` in Web Mercator metres.
    zoom : int
        Tile zoom level.
    """
    minx, miny, maxx, maxy = bounds_3857
    x0, x1 = _tile_index(minx, zoom, False), _tile_index(maxx, zoom, False)
    y0, y1 = _tile_index(maxy, zoom, True), _tile_index(miny, zoom, True)
    for ty in range(y0, y1 + 1):
        for tx in range(x0, x1 + 1):
            yield tx, ty, zoom


def zoom_for_resolution(m_per_px: float, max_zoom: int = 19) -> int:
    """Return the tile zoom whose native resolution best matches ``m_per_px``."""
    if m_per_px <= 0:
        return max_zoom
    zoom = int(round(math.log2(INITIAL_RESOLUTION / m_per_px)))
    return min(max(zoom, 0), max_zoom)


def resolution_for_zoom(zoom: float) -> float:
    """Web Mercator metres per pixel at ``zoom`` on the equator."""
    return INITIAL_RESOLUTION / (2 ** zoom)


class TileFetcher:
    """Download tiles with a small in-memory LRU cache.

    Parameters
    ----------
    session : requests.Session, optional
        Injected session, mainly for tests.
    cache_size : int, optional
        Number of tiles kept in memory.
    timeout : float, optional
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        cache_size: int = 256,
        timeout: float = 10,
    ) -> None:
        self._session = session or requests.Session()
        self._cache: OrderedDict[tuple[str, int, int, int], bytes] = OrderedDict()
        self.cache_size = cache_size
        self.timeout = timeout

    def cached(self, source: TileSource, x: int, y: int, z: int) -> Optional[bytes]:
        key = (source.name, x, y, z)
        data = self._cache.get(key)
        if data is not None:
            self._cache.move_to_end(key)
        return data

    def fetch(self, source: TileSource, x: int, y: int, z: int) -> Optional[bytes]:
        """Return PNG/JPEG bytes for a tile, or ``None`` when unavailable."""
        if z > source.max_zoom:
            return None
        data = self.cached(source, x, y, z)
        if data is not None:
            return data

        url = source.url(x, y, z)
        try:
            resp = self._session.get(
                url,
                headers={"User-Agent": f"FarmView/{__version__}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning(f"Tile request failed {url}: {exc}")
            return None
        if resp.status_code >= 300 or not resp.content:
            logger.debug(f"Tile {source.name} {z}/{x}/{y} -> HTTP {resp.status_code}")
            return None

        self._cache[(source.name, x, y, z)] = resp.content
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return resp.content

    def clear(self) -> None:
        self._cache.clear()

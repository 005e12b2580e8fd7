"""Place and postal-code lookup against the Nominatim search API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import requests
from loguru import logger

from farmview import __version__

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
MIN_QUERY_LENGTH = 3
USER_AGENT = f"FarmView/{__version__}"


@dataclass(frozen=True)
class LocationResult:
    """One geocoding hit.

    Attributes
    ----------
    display_name : str
        Full address text.
    lat, lon : float
        Result position.
    bounding_box : tuple[float, float, float, float] | None
        ``(south, north, west, east)`` in degrees.
    """

    display_name: str
    lat: float
    lon: float
    bounding_box: Optional[tuple[float, float, float, float]] = None

    @classmethod
    def from_json(cls, item: dict[str, Any]) -> "LocationResult":
        bbox = item.get("boundingbox")
        bounding_box = None
        if bbox and len(bbox) == 4:
            bounding_box = tuple(float(v) for v in bbox)
        return cls(
            display_name=str(item.get("display_name", "")),
            lat=float(item["lat"]),
            lon=float(item["lon"]),
            bounding_box=bounding_box,
        )


class GeocodingClient:
    """Nominatim search client.

    Parameters
    ----------
    session : requests.Session, optional
        Injected session, mainly for tests.
    base_url : str, optional
        Search endpoint.
    timeout : float, optional
        Per-request timeout in seconds.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = NOMINATIM_URL,
        timeout: float = 10,
    ) -> None:
        self._session = session or requests.Session()
        self.base_url = base_url
        self.timeout = timeout

    def _query(self, params: dict[str, Any]) -> list[LocationResult]:
        params = {"format": "json", "addressdetails": 1, **params}
        try:
            resp = self._session.get(
                self.base_url,
                params=params,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
            if resp.status_code >= 300:
                logger.warning(f"Geocoding failed with HTTP {resp.status_code}")
                return []
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error(f"Geocoding request failed: {exc}")
            return []

        results = []
        for item in data or []:
            try:
                results.append(LocationResult.from_json(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug(f"Skipping malformed geocoding hit: {exc}")
        return results

    def search(
        self, query: str, limit: int = 5, country_codes: Optional[str] = "BR"
    ) -> list[LocationResult]:
        """Search places; queries under 3 characters return nothing."""
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []
        params: dict[str, Any] = {"q": query, "limit": limit}
        if country_codes:
            params["countrycodes"] = country_codes
        results = self._query(params)
        logger.debug(f"Geocoding '{query}': {len(results)} result(s)")
        return results

    def lookup_postal_code(self, code: str) -> Optional[LocationResult]:
        """Resolve a postal code to its first match, or ``None``."""
        code = (code or "").strip()
        if len(code) < MIN_QUERY_LENGTH:
            return None
        results = self._query({"q": code, "limit": 1})
        return results[0] if results else None

"""Shared services handed to every page."""

from typing import Optional

from loguru import logger
from PySide6.QtCore import QObject, Signal

from farmview.core.models import Farm
from farmview.core.team import TeamRoster
from farmview.data.client import RestClient
from farmview.data.geocoding import GeocodingClient
from farmview.data.repositories import ApplicationRepository, BlockRepository, FarmRepository
from farmview.data.store import ApplicationStore, BlockStore, FarmStore
from farmview.gui.config import backend_settings, data_dir


class AppContext(QObject):
    """
    Backend client, list stores, team roster and the current farm.

    Signals
    -------
    sigFarmChanged : Signal(object)
        Current farm switched; carries the ``Farm`` or ``None``.
    """

    sigFarmChanged = Signal(object)

    def __init__(
        self,
        client: RestClient,
        roster: TeamRoster,
        geocoder: Optional[GeocodingClient] = None,
        user_id: Optional[str] = None,
    ) -> None:
        super().__init__()
        self.client = client
        self.roster = roster
        self.geocoder = geocoder or GeocodingClient()
        self.farms = FarmStore(FarmRepository(client))
        self.blocks = BlockStore(BlockRepository(client, user_id))
        self.applications = ApplicationStore(ApplicationRepository(client))
        self.current_farm: Optional[Farm] = None

    @classmethod
    def from_config(cls) -> "AppContext":
        url, key = backend_settings()
        if not url or not key:
            logger.warning("Backend URL or API key not configured")
        return cls(RestClient(url, key), TeamRoster(data_dir() / "team.json"))

    def set_farm(self, farm: Optional[Farm]) -> None:
        """Make ``farm`` current and load its blocks."""
        farm_id = farm.id if farm is not None else None
        current_id = self.current_farm.id if self.current_farm is not None else None
        if farm_id == current_id and farm is self.current_farm:
            return
        self.current_farm = farm
        self.blocks.set_farm(farm_id)
        logger.info(f"Current farm: {farm.display_name if farm else None}")
        self.sigFarmChanged.emit(farm)

    def reload(self) -> None:
        """Refresh farms and applications, keeping the current farm when it still exists."""
        self.farms.refresh()
        self.applications.refresh()
        current_id = self.current_farm.id if self.current_farm is not None else None
        farm = next((f for f in self.farms.items if f.id == current_id), None)
        if farm is None and self.farms.items:
            farm = self.farms.items[0]
        self.set_farm(farm)

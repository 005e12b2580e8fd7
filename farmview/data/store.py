"""Local list caches kept in sync with the backend.

After each successful network call the cached list is patched in place:
created rows are prepended, updated rows are replaced and deleted rows are
dropped. Nothing is re-fetched.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Optional, TypeVar

from loguru import logger

from farmview.core.models import ApplicationRecord, Block, Farm
from farmview.data.repositories import (
    ApplicationRepository,
    BlockRepository,
    FarmRepository,
)
from farmview.errors import BackendError

T = TypeVar("T")


class ListStore(Generic[T]):
    """Cached entity list with loading and error state.

    Parameters
    ----------
    error_messages : dict[str, str]
        User-facing messages keyed by ``load``, ``create``, ``update`` and
        ``delete``.
    """

    def __init__(self, error_messages: dict[str, str]) -> None:
        self.items: list[T] = []
        self.loading = False
        self.error: Optional[str] = None
        self._messages = error_messages
        self._listeners: list[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> None:
        """Call ``callback`` whenever ``items`` changes."""
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback()

    def _fetch(self) -> list[T]:
        raise NotImplementedError

    def refresh(self) -> bool:
        """Reload from the backend.

        Returns
        -------
        bool
            False when the load failed; ``error`` then holds the message.
        """
        self.loading = True
        try:
            self.items = list(self._fetch())
            self.error = None
            return True
        except BackendError as exc:
            self.error = f"{self._messages['load']}: {exc}"
            logger.error(self.error)
            return False
        finally:
            self.loading = False
            self._notify()

    def _fail(self, action: str, exc: BackendError) -> None:
        self.error = f"{self._messages[action]}: {exc}"
        logger.error(self.error)

    def _item_id(self, item: T) -> Any:
        return getattr(item, "id", None)

    def _find(self, item_id: Any) -> Optional[T]:
        for item in self.items:
            if self._item_id(item) == item_id:
                return item
        return None

    def _prepend(self, item: T) -> None:
        self.error = None
        self.items = [item] + self.items
        self._notify()

    def _replace(self, item_id: Any, item: T) -> None:
        self.error = None
        self.items = [item if self._item_id(i) == item_id else i for i in self.items]
        self._notify()

    def _remove(self, item_id: Any) -> None:
        self.error = None
        self.items = [i for i in self.items if self._item_id(i) != item_id]
        self._notify()


class FarmStore(ListStore[Farm]):
    """Farm list cache."""

    def __init__(self, repository: FarmRepository) -> None:
        super().__init__(
            {
                "load": "Failed to load farms",
                "create": "Failed to create farm",
                "update": "Failed to update farm",
                "delete": "Failed to delete farm",
            }
        )
        self.repository = repository

    def _fetch(self) -> list[Farm]:
        return self.repository.list()

    def create(self, farm: Farm) -> Farm:
        try:
            created = self.repository.create(farm)
        except BackendError as exc:
            self._fail("create", exc)
            raise
        self._prepend(created)
        return created

    def update(self, farm_id: str, values: dict[str, Any]) -> Farm:
        try:
            updated = self.repository.update(farm_id, values)
        except BackendError as exc:
            self._fail("update", exc)
            raise
        self._replace(farm_id, updated)
        return updated

    def delete(self, farm_id: str) -> None:
        try:
            self.repository.delete(farm_id)
        except BackendError as exc:
            self._fail("delete", exc)
            raise
        self._remove(farm_id)


class BlockStore(ListStore[Block]):
    """Block list cache scoped to one farm."""

    def __init__(self, repository: BlockRepository, farm_id: Optional[str] = None) -> None:
        super().__init__(
            {
                "load": "Failed to load blocks",
                "create": "Failed to create block",
                "update": "Failed to update block",
                "delete": "Failed to delete block",
            }
        )
        self.repository = repository
        self.farm_id = farm_id

    def set_farm(self, farm_id: Optional[str]) -> bool:
        """Switch farm and reload its blocks."""
        self.farm_id = farm_id
        return self.refresh()

    def _fetch(self) -> list[Block]:
        return self.repository.list_for_farm(self.farm_id)

    def get(self, block_id: str) -> Optional[Block]:
        return self._find(block_id)

    def create(self, block: Block) -> Block:
        if block.farm_id is None:
            block.farm_id = self.farm_id
        try:
            created = self.repository.create(block)
        except BackendError as exc:
            self._fail("create", exc)
            raise
        self._prepend(created)
        return created

    def update(self, block_id: str, values: dict[str, Any]) -> Block:
        try:
            updated = self.repository.update(block_id, values, previous=self._find(block_id))
        except BackendError as exc:
            self._fail("update", exc)
            raise
        self._replace(block_id, updated)
        return updated

    def delete(self, block_id: str) -> None:
        try:
            self.repository.delete(block_id, previous=self._find(block_id))
        except BackendError as exc:
            self._fail("delete", exc)
            raise
        self._remove(block_id)


class ApplicationStore(ListStore[ApplicationRecord]):
    """Application log cache."""

    def __init__(self, repository: ApplicationRepository) -> None:
        super().__init__(
            {
                "load": "Failed to load applications",
                "create": "Failed to log application",
                "update": "Failed to update application",
                "delete": "Failed to delete application",
            }
        )
        self.repository = repository

    def _fetch(self) -> list[ApplicationRecord]:
        return self.repository.list()

    def create(self, record: ApplicationRecord) -> ApplicationRecord:
        try:
            created = self.repository.create(record)
        except BackendError as exc:
            self._fail("create", exc)
            raise
        self._prepend(created)
        return created

    def delete(self, record_id: str) -> None:
        try:
            self.repository.delete(record_id)
        except BackendError as exc:
            self._fail("delete", exc)
            raise
        self._remove(record_id)

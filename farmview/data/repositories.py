"""
Table repositories mapping hosted rows to domain entities.

Tables
------
- ``fazendas``: farms
- ``blocos_fazenda``: blocks
- ``historico_blocos``: block change history
- ``historico_aplicacoes``: chemical application log
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from farmview.core.models import ApplicationRecord, Block, BlockHistory, Farm
from farmview.data.client import RestClient
from farmview.errors import BackendError

FARMS_TABLE = "fazendas"
BLOCKS_TABLE = "blocos_fazenda"
BLOCK_HISTORY_TABLE = "historico_blocos"
APPLICATIONS_TABLE = "historico_aplicacoes"
CREATED_COLUMN = "criado_em"


def _single(rows: list[dict[str, Any]], table: str) -> dict[str, Any]:
    if not rows:
        raise BackendError(f"No row returned from '{table}'")
    return rows[0]


class FarmRepository:
    """CRUD on the farms table."""

    def __init__(self, client: RestClient) -> None:
        self.client = client

    def list(self) -> list[Farm]:
        """All farms, newest first."""
        rows = self.client.select(FARMS_TABLE, order=CREATED_COLUMN, ascending=False)
        return [Farm.from_row(row) for row in rows]

    def create(self, farm: Farm) -> Farm:
        rows = self.client.insert(FARMS_TABLE, farm.to_row())
        created = Farm.from_row(_single(rows, FARMS_TABLE))
        logger.info(f"Farm created: {created.name}")
        return created

    def update(self, farm_id: str, values: dict[str, Any]) -> Farm:
        rows = self.client.update(FARMS_TABLE, Farm.columns_for(values), {"id": farm_id})
        updated = Farm.from_row(_single(rows, FARMS_TABLE))
        logger.info(f"Farm updated: {updated.name}")
        return updated

    def delete(self, farm_id: str) -> None:
        self.client.delete(FARMS_TABLE, {"id": farm_id})
        logger.info(f"Farm deleted: {farm_id}")


class BlockRepository:
    """CRUD on the blocks table with a history row per mutation.

    Parameters
    ----------
    client : RestClient
        Shared backend client.
    user_id : str, optional
        Stored as ``usuario_id`` on history rows.
    """

    def __init__(self, client: RestClient, user_id: Optional[str] = None) -> None:
        self.client = client
        self.user_id = user_id

    def list_for_farm(self, farm_id: Optional[str]) -> list[Block]:
        """Blocks of one farm, newest first. No farm means no request."""
        if not farm_id:
            return []
        rows = self.client.select(
            BLOCKS_TABLE,
            filters={"fazenda_id": farm_id},
            order=CREATED_COLUMN,
            ascending=False,
        )
        return [Block.from_row(row) for row in rows]

    def create(self, block: Block) -> Block:
        rows = self.client.insert(BLOCKS_TABLE, block.to_row())
        row = _single(rows, BLOCKS_TABLE)
        created = Block.from_row(row)
        logger.info(f"Block created: {created.name}")
        self._log_history("create", created.id, None, row)
        return created

    def update(
        self,
        block_id: str,
        values: dict[str, Any],
        previous: Optional[Block] = None,
    ) -> Block:
        """Update attributes of one block.

        Parameters
        ----------
        block_id : str
            Block id.
        values : dict
            Attribute-keyed changes, e.g. ``{"coordinates": ..., "area_m2": ...}``.
        previous : Block, optional
            Cached state, stored as ``dados_anteriores`` in the history row.
        """
        payload = Block.columns_for(values)
        rows = self.client.update(BLOCKS_TABLE, payload, {"id": block_id})
        row = _single(rows, BLOCKS_TABLE)
        updated = Block.from_row(row)
        logger.info(f"Block updated: {updated.name}")
        before = previous.to_row(include_server_fields=True) if previous else None
        self._log_history("update", block_id, before, payload)
        return updated

    def delete(self, block_id: str, previous: Optional[Block] = None) -> None:
        self.client.delete(BLOCKS_TABLE, {"id": block_id})
        logger.info(f"Block deleted: {block_id}")
        before = previous.to_row(include_server_fields=True) if previous else None
        self._log_history("delete", block_id, before, None)

    def history(self, block_id: str) -> list[BlockHistory]:
        rows = self.client.select(
            BLOCK_HISTORY_TABLE,
            filters={"bloco_id": block_id},
            order=CREATED_COLUMN,
            ascending=False,
        )
        return [BlockHistory.from_row(row) for row in rows]

    def _log_history(
        self,
        change: str,
        block_id: Optional[str],
        previous: Optional[dict],
        new: Optional[dict],
    ) -> None:
        entry = BlockHistory(
            change=change,
            block_id=block_id,
            previous=previous,
            new=new,
            user_id=self.user_id,
        )
        try:
            self.client.insert(BLOCK_HISTORY_TABLE, entry.to_row())
        except BackendError as exc:
            # Block mutation is already committed; history failures are only logged.
            logger.warning(f"Failed to record block history ({change}): {exc}")


class ApplicationRepository:
    """CRUD on the application log table."""

    def __init__(self, client: RestClient) -> None:
        self.client = client

    def list(self) -> list[ApplicationRecord]:
        rows = self.client.select(
            APPLICATIONS_TABLE, order="data_aplicacao", ascending=False
        )
        return [ApplicationRecord.from_row(row) for row in rows]

    def create(self, record: ApplicationRecord) -> ApplicationRecord:
        rows = self.client.insert(APPLICATIONS_TABLE, record.to_row())
        created = ApplicationRecord.from_row(_single(rows, APPLICATIONS_TABLE))
        logger.info(f"Application logged: {created.product} on {created.target_block}")
        return created

    def delete(self, record_id: str) -> None:
        self.client.delete(APPLICATIONS_TABLE, {"id": record_id})
        logger.info(f"Application deleted: {record_id}")

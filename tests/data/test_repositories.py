"""Tests for table repositories over an in-memory backend."""

from __future__ import annotations

from farmview.core.models import ApplicationRecord, Block, Farm
from farmview.data.repositories import (
    APPLICATIONS_TABLE,
    BLOCK_HISTORY_TABLE,
    BLOCKS_TABLE,
    FARMS_TABLE,
    ApplicationRepository,
    BlockRepository,
    FarmRepository,
)

RING = [[-47.1, -22.1], [-47.0, -22.1], [-47.0, -22.0]]


def test_farm_crud(memory_client) -> None:
    """Farms should be created, listed newest first, updated and deleted."""
    repo = FarmRepository(memory_client)
    first = repo.create(Farm(name="Santa Rita", location="Piracicaba"))
    second = repo.create(Farm(name="Boa Vista"))

    assert [f.name for f in repo.list()] == ["Boa Vista", "Santa Rita"]
    assert memory_client.tables[FARMS_TABLE][0]["localizacao"] == "Piracicaba"

    updated = repo.update(first.id, {"total_area": 250.0, "unknown": 1})
    assert updated.total_area == 250.0
    assert "unknown" not in memory_client.tables[FARMS_TABLE][0]

    repo.delete(second.id)
    assert [f.id for f in repo.list()] == [first.id]


def test_block_list_without_farm_makes_no_request(memory_client) -> None:
    """Listing blocks of no farm should return an empty list."""
    memory_client.failing.add(("select", BLOCKS_TABLE))

    assert BlockRepository(memory_client).list_for_farm(None) == []


def test_block_mutations_write_history(memory_client) -> None:
    """Each block mutation should append a history row."""
    repo = BlockRepository(memory_client, user_id="u1")
    created = repo.create(Block(name="A", farm_id="f1", coordinates=RING))
    repo.create(Block(name="Other farm", farm_id="f2", coordinates=RING))

    assert [b.name for b in repo.list_for_farm("f1")] == ["A"]
    assert created.coordinates == RING

    updated = repo.update(created.id, {"name": "A2", "color": "#EF4444"}, previous=created)
    assert updated.name == "A2"
    assert updated.color == "#EF4444"

    repo.delete(created.id, previous=updated)
    assert repo.list_for_farm("f1") == []

    history = repo.history(created.id)
    assert sorted(h.change for h in history) == ["create", "delete", "update"]
    rows = memory_client.tables[BLOCK_HISTORY_TABLE]
    update_row = next(r for r in rows if r["alteracao"] == "update")
    assert update_row["usuario_id"] == "u1"
    assert update_row["dados_anteriores"]["nome"] == "A"
    assert update_row["dados_novos"] == {"nome": "A2", "cor": "#EF4444"}


def test_history_failure_does_not_fail_mutation(memory_client) -> None:
    """A rejected history insert should only be logged."""
    memory_client.failing.add(("insert", BLOCK_HISTORY_TABLE))
    repo = BlockRepository(memory_client)

    created = repo.create(Block(name="A", farm_id="f1", coordinates=RING))

    assert created.id is not None
    assert memory_client.tables[BLOCK_HISTORY_TABLE] == []


def test_application_repository(memory_client) -> None:
    """Applications should be listed by application date, newest first."""
    repo = ApplicationRepository(memory_client)
    repo.create(ApplicationRecord(product="A", target_block="B1", application_date="2024-01-05"))
    latest = repo.create(
        ApplicationRecord(product="B", target_block="B1", application_date="2024-03-01")
    )

    assert [r.product for r in repo.list()] == ["B", "A"]
    assert memory_client.tables[APPLICATIONS_TABLE][0]["bloco_alvo"] == "B1"

    repo.delete(latest.id)
    assert [r.product for r in repo.list()] == ["A"]

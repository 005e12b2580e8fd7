"""Tests for dashboard aggregates."""

from __future__ import annotations

from datetime import date

import pytest

from farmview.core.dashboard import (
    BLOCK_TABLE_COLUMNS,
    blocks_table,
    cane_distribution,
    compute_dashboard_stats,
    products_applied,
)
from farmview.core.models import ApplicationRecord, Block, LastApplication

TODAY = date(2024, 6, 15)
RING = [[0, 0], [1, 0], [1, 1]]


def _blocks() -> list[Block]:
    return [
        Block(
            name="A",
            area_acres=10.5,
            coordinates=RING,
            cane_variety="RB92579",
            next_harvest="2024-05-01",
            next_application="2024-07-01",
            last_application=LastApplication("Ureia", 30.0, 100.0, "2024-04-01"),
        ),
        Block(
            name="B",
            area_acres=4.5,
            coordinates=RING,
            cane_variety="CTC4",
            next_harvest="2024-06-10",
            next_application="2024-06-20",
        ),
        Block(name="C", area_acres=5.0, next_harvest="2024-12-01"),
    ]


def test_compute_dashboard_stats_cards() -> None:
    """Stats should sum acreage and pick the nearest past and future dates."""
    stats = compute_dashboard_stats(_blocks(), [], today=TODAY)

    assert stats.total_acres == 20.0
    assert stats.active_blocks == 2
    assert stats.last_harvest == date(2024, 6, 10)
    assert stats.last_harvest_block == "B"
    assert stats.next_application == date(2024, 6, 20)
    assert stats.next_application_product == "B"


def test_logged_applications_compete_for_next_application() -> None:
    """A logged follow-up date earlier than any block date should win."""
    records = [
        ApplicationRecord(product="Vinhaça", quantity=5, next_application="2024-06-16"),
        ApplicationRecord(product="Old", quantity=5, next_application="2024-01-01"),
    ]

    stats = compute_dashboard_stats(_blocks(), records, today=TODAY)

    assert stats.next_application == date(2024, 6, 16)
    assert stats.next_application_product == "Vinhaça"


def test_compute_dashboard_stats_empty() -> None:
    """No blocks should give zeroed cards."""
    stats = compute_dashboard_stats([], [], today=TODAY)

    assert stats.total_acres == 0.0
    assert stats.active_blocks == 0
    assert stats.last_harvest is None
    assert stats.next_application is None


def test_products_applied_sums_records_and_block_last_application() -> None:
    """Litres per product should include block payloads, largest first."""
    records = [
        ApplicationRecord(product="Glifosato", quantity=10.0),
        ApplicationRecord(product="Ureia", quantity=5.0),
        ApplicationRecord(product="Glifosato", quantity=15.0),
    ]

    totals = products_applied(records, _blocks())

    assert list(totals.index) == ["Ureia", "Glifosato"]
    assert totals["Ureia"] == 35.0
    assert totals["Glifosato"] == 25.0
    assert products_applied([]).empty


def test_cane_distribution_shares_area() -> None:
    """Cane shares should be acreage percentages including unspecified."""
    share = cane_distribution(_blocks())

    assert share["RB92579"] == pytest.approx(52.5)
    assert share["Unspecified"] == pytest.approx(25.0)
    assert share["CTC4"] == pytest.approx(22.5)
    assert share.sum() == pytest.approx(100.0)


def test_blocks_table_columns() -> None:
    """The overview table should expose a fixed column order."""
    df = blocks_table(_blocks())

    assert list(df.columns) == BLOCK_TABLE_COLUMNS
    assert df.loc[0, "product"] == "Ureia"
    assert df.loc[0, "last_application"] == "2024-04-01"
    assert df.loc[1, "product"] == ""
    assert list(blocks_table([]).columns) == BLOCK_TABLE_COLUMNS

"""Tests for the dashboard page."""

from __future__ import annotations

from datetime import date

import pytest

from farmview.core.models import ApplicationRecord, Block, Farm, LastApplication
from farmview.gui.tabs.dashboard import DashboardTab

RING = [[-47.06, -22.06], [-47.05, -22.06], [-47.05, -22.05]]


def _tab(qtbot, context) -> DashboardTab:
    tab = DashboardTab(context)
    qtbot.addWidget(tab)
    tab.set_today(date(2024, 6, 1))
    return tab


def test_empty_dashboard(qtbot, app_context) -> None:
    """Without a farm the cards should show zeros and dashes."""
    tab = _tab(qtbot, app_context)

    assert tab.card_acres.value_label.text() == "0.00"
    assert tab.card_blocks.value_label.text() == "0"
    assert tab.card_harvest.value_label.text() == "-"
    assert tab.table.rowCount() == 0
    assert tab.chart_products.series().empty


def test_dashboard_follows_blocks_and_applications(qtbot, app_context) -> None:
    """Cards, charts and table should reflect the farm's data."""
    tab = _tab(qtbot, app_context)
    farm = app_context.farms.create(Farm(name="Santa Rita"))
    app_context.set_farm(farm)
    app_context.blocks.create(
        Block(
            name="Talhao 1",
            coordinates=RING,
            area_acres=10.0,
            cane_variety="CTC4",
            next_harvest="2024-05-20",
            color="#10B981",
            last_application=LastApplication("Glifosato", liters=50.0, date="2024-04-01"),
        )
    )
    app_context.blocks.create(
        Block(name="Talhao 2", area_acres=30.0, cane_variety="RB92579", color="#EF4444")
    )
    app_context.applications.create(
        ApplicationRecord(
            product="Glifosato",
            quantity=20.0,
            target_block="Talhao 1",
            application_date="2024-05-01",
            next_application="2024-06-15",
        )
    )

    assert tab.lbl_farm.text() == "Santa Rita"
    assert tab.card_acres.value_label.text() == "40.00"
    assert tab.card_blocks.value_label.text() == "1"
    assert tab.card_harvest.value_label.text() == "20/05/2024"
    assert tab.card_harvest.detail_label.text() == "Talhao 1"
    assert tab.card_application.value_label.text() == "15/06/2024"
    assert tab.card_application.detail_label.text() == "Glifosato"

    assert tab.chart_products.series()["Glifosato"] == pytest.approx(70.0)
    cane = tab.chart_cane.series()
    assert cane["RB92579"] == pytest.approx(75.0)
    assert cane["CTC4"] == pytest.approx(25.0)

    assert tab.table.rowCount() == 2
    assert tab.table.item(0, 0).text() == "Talhao 2"
    assert tab.table.item(1, 2).text() == "Glifosato"
    assert tab.table.item(0, 6).text() == "Red - Problems"

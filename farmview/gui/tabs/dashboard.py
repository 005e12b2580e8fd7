"""
Dashboard page: headline cards, product and cane charts, block overview.
"""

from datetime import date
from typing import Optional

from PySide6.QtGui import QColor
from PySide6.QtWidgets import QGridLayout, QHBoxLayout, QTableWidgetItem, QWidget
from qfluentwidgets import BodyLabel, PushButton, TableWidget
from qfluentwidgets import FluentIcon as FIF

from farmview.core.dashboard import (
    BLOCK_TABLE_COLUMNS,
    blocks_table,
    cane_distribution,
    compute_dashboard_stats,
    products_applied,
)
from farmview.core.palette import color_label
from farmview.gui.components.base_interface import BaseInterface, PageGroup
from farmview.gui.components.charts import BarChart
from farmview.gui.components.stat_card import StatCard
from farmview.gui.config import tr
from farmview.gui.context import AppContext


def _format_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


class DashboardTab(BaseInterface):
    """
    Summary of the current farm, refreshed whenever blocks or
    applications change.
    """

    def __init__(self, context: AppContext, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.context = context
        self._today: Optional[date] = None
        self._init_ui()

        context.blocks.subscribe(self.refresh)
        context.applications.subscribe(self.refresh)
        context.sigFarmChanged.connect(lambda _farm: self.refresh())
        self.refresh()

    def _init_ui(self) -> None:
        group = PageGroup(tr("page.dashboard.group.data"))
        self.lbl_farm = BodyLabel("-")
        group.add_widget(self.lbl_farm)
        self.btn_reload = PushButton(FIF.SYNC, tr("page.dashboard.btn.reload"))
        self.btn_reload.clicked.connect(self.context.reload)
        group.add_widget(self.btn_reload)
        self.add_group(group)
        self.add_stretch()

        cards = QGridLayout()
        cards.setSpacing(12)
        self.card_acres = StatCard(tr("page.dashboard.card.total_acres"))
        self.card_blocks = StatCard(tr("page.dashboard.card.active_blocks"))
        self.card_harvest = StatCard(tr("page.dashboard.card.last_harvest"))
        self.card_application = StatCard(tr("page.dashboard.card.next_application"))
        for column, card in enumerate(
            (self.card_acres, self.card_blocks, self.card_harvest, self.card_application)
        ):
            cards.addWidget(card, 0, column)
        self._content_layout.addLayout(cards)

        charts = QHBoxLayout()
        charts.setSpacing(12)
        self.chart_products = BarChart(tr("page.dashboard.chart.products"), horizontal=True)
        self.chart_cane = BarChart(tr("page.dashboard.chart.cane"))
        charts.addWidget(self.chart_products)
        charts.addWidget(self.chart_cane)
        self._content_layout.addLayout(charts, 1)

        self.table = TableWidget()
        self.table.setColumnCount(len(BLOCK_TABLE_COLUMNS))
        self.table.setHorizontalHeaderLabels(
            [tr(f"page.dashboard.column.{name}") for name in BLOCK_TABLE_COLUMNS]
        )
        self.table.verticalHeader().hide()
        self.table.setEditTriggers(TableWidget.EditTrigger.NoEditTriggers)
        self.table.horizontalHeader().setStretchLastSection(True)
        self._content_layout.addWidget(self.table, 1)

    def set_today(self, today: Optional[date]) -> None:
        """Pin the reference day; ``None`` uses the current date."""
        self._today = today
        self.refresh()

    def refresh(self) -> None:
        blocks = self.context.blocks.items
        applications = self.context.applications.items
        farm = self.context.current_farm
        self.lbl_farm.setText(farm.display_name if farm else tr("page.dashboard.no_farm"))

        stats = compute_dashboard_stats(blocks, applications, self._today)
        self.card_acres.set_value(f"{stats.total_acres:,.2f}", tr("page.dashboard.unit.acres"))
        self.card_blocks.set_value(str(stats.active_blocks), tr("page.dashboard.unit.blocks"))
        self.card_harvest.set_value(
            _format_date(stats.last_harvest), stats.last_harvest_block or ""
        )
        self.card_application.set_value(
            _format_date(stats.next_application), stats.next_application_product or ""
        )

        self.chart_products.set_series(products_applied(applications, blocks))
        self.chart_cane.set_series(cane_distribution(blocks))
        self._fill_table(blocks)

    def _fill_table(self, blocks) -> None:
        df = blocks_table(blocks)
        self.table.setRowCount(len(df))
        for row, record in enumerate(df.itertuples(index=False)):
            for column, name in enumerate(BLOCK_TABLE_COLUMNS):
                value = getattr(record, name)
                if name == "area_acres":
                    text = f"{value:.2f}"
                elif name == "color":
                    text = color_label(value) if value else ""
                else:
                    text = str(value)
                item = QTableWidgetItem(text)
                if name == "color" and value:
                    item.setBackground(QColor(value))
                self.table.setItem(row, column, item)
        self.table.resizeColumnsToContents()

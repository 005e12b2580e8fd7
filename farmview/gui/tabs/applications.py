"""
Applications page: log chemical applications against blocks.
"""

from datetime import date
from typing import Any, Dict, Optional

from PySide6.QtWidgets import QGridLayout, QHBoxLayout, QTableWidgetItem, QWidget
from qfluentwidgets import (
    BodyLabel,
    CardWidget,
    ComboBox,
    InfoBar,
    LineEdit,
    MessageBox,
    PrimaryPushButton,
    PushButton,
    StrongBodyLabel,
    TableWidget,
)
from qfluentwidgets import FluentIcon as FIF

from farmview.core.applications import summarize_applications, validate_application
from farmview.core.models import ApplicationRecord
from farmview.errors import BackendError, ValidationError
from farmview.gui.components.base_interface import BaseInterface, PageGroup
from farmview.gui.config import tr
from farmview.gui.context import AppContext

APPLICATION_COLUMNS = (
    "application_date",
    "product",
    "target_block",
    "quantity",
    "value",
    "acres_applied",
    "next_application",
)


class ApplicationsTab(BaseInterface):
    """
    New-application form above the application history.
    """

    def __init__(self, context: AppContext, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.context = context
        self._init_ui()

        context.applications.subscribe(self.refresh)
        context.blocks.subscribe(self._refresh_blocks)
        self._refresh_blocks()
        self.refresh()

    def _init_ui(self) -> None:
        group = PageGroup(tr("page.applications.group.actions"))
        self.btn_delete = PushButton(FIF.DELETE, tr("page.applications.btn.delete"))
        self.btn_delete.clicked.connect(self._on_delete)
        group.add_widget(self.btn_delete)
        self.btn_reload = PushButton(FIF.SYNC, tr("page.applications.btn.reload"))
        self.btn_reload.clicked.connect(self.context.applications.refresh)
        group.add_widget(self.btn_reload)
        self.add_group(group)
        self.add_stretch()

        # --- Form ---
        form_card = CardWidget()
        grid = QGridLayout(form_card)
        grid.setContentsMargins(16, 12, 16, 12)
        grid.setHorizontalSpacing(12)
        grid.addWidget(StrongBodyLabel(tr("page.applications.form.title")), 0, 0, 1, 4)

        self.edit_product = self._add_field(grid, 1, 0, "product")
        self.edit_quantity = self._add_field(grid, 1, 2, "quantity")
        self.edit_value = self._add_field(grid, 2, 0, "value")

        grid.addWidget(BodyLabel(tr("page.applications.column.target_block")), 2, 2)
        self.combo_block = ComboBox()
        self.combo_block.currentIndexChanged.connect(self._on_block_changed)
        grid.addWidget(self.combo_block, 2, 3)

        self.edit_date = self._add_field(grid, 3, 0, "application_date")
        self.edit_date.setText(date.today().isoformat())
        self.edit_next = self._add_field(grid, 3, 2, "next_application")
        self.edit_next.setPlaceholderText("YYYY-MM-DD")
        self.edit_acres = self._add_field(grid, 4, 0, "acres_applied")

        self.btn_register = PrimaryPushButton(FIF.ADD, tr("page.applications.btn.register"))
        self.btn_register.clicked.connect(self.register_application)
        grid.addWidget(self.btn_register, 4, 3)
        self._content_layout.addWidget(form_card)

        # --- Totals ---
        totals = QHBoxLayout()
        self.lbl_count = BodyLabel()
        self.lbl_value = BodyLabel()
        self.lbl_quantity = BodyLabel()
        self.lbl_acres = BodyLabel()
        for label in (self.lbl_count, self.lbl_value, self.lbl_quantity, self.lbl_acres):
            totals.addWidget(label)
        totals.addStretch()
        self._content_layout.addLayout(totals)

        # --- History ---
        self.table = TableWidget()
        self.table.setColumnCount(len(APPLICATION_COLUMNS))
        self.table.setHorizontalHeaderLabels(
            [tr(f"page.applications.column.{c}") for c in APPLICATION_COLUMNS]
        )
        self.table.verticalHeader().hide()
        self.table.setEditTriggers(TableWidget.EditTrigger.NoEditTriggers)
        self.table.setSelectionBehavior(TableWidget.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(TableWidget.SelectionMode.SingleSelection)
        self.table.horizontalHeader().setStretchLastSection(True)
        self._content_layout.addWidget(self.table, 1)

    def _add_field(self, grid: QGridLayout, row: int, column: int, name: str) -> LineEdit:
        grid.addWidget(BodyLabel(tr(f"page.applications.column.{name}")), row, column)
        edit = LineEdit()
        grid.addWidget(edit, row, column + 1)
        return edit

    def _refresh_blocks(self) -> None:
        current = self.combo_block.currentData()
        self.combo_block.blockSignals(True)
        self.combo_block.clear()
        self.combo_block.addItem("-", userData=None)
        for block in self.context.blocks.items:
            self.combo_block.addItem(block.name, userData=block.id)
        index = self.combo_block.findData(current) if current else 0
        self.combo_block.setCurrentIndex(max(index, 0))
        self.combo_block.blockSignals(False)

    def _on_block_changed(self, index: int) -> None:
        block = self.context.blocks.get(self.combo_block.itemData(index))
        if block is not None and block.area_acres:
            self.edit_acres.setText(f"{block.area_acres:.2f}")

    def form_values(self) -> Dict[str, Any]:
        block_id = self.combo_block.currentData()
        return {
            "product": self.edit_product.text(),
            "quantity": self.edit_quantity.text(),
            "value": self.edit_value.text(),
            "target_block": self.combo_block.currentText() if block_id else "",
            "block_id": block_id,
            "application_date": self.edit_date.text(),
            "next_application": self.edit_next.text(),
            "acres_applied": self.edit_acres.text(),
        }

    def register_application(self) -> Optional[ApplicationRecord]:
        try:
            record = validate_application(self.form_values())
            created = self.context.applications.create(record)
        except (ValidationError, BackendError) as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return None
        for edit in (self.edit_product, self.edit_quantity, self.edit_value, self.edit_next):
            edit.clear()
        InfoBar.success(
            title=tr("success"),
            content=tr("page.applications.msg.registered").format(product=created.product),
            parent=self,
            duration=2500,
        )
        return created

    def refresh(self) -> None:
        records = self.context.applications.items
        summary = summarize_applications(records)
        self.lbl_count.setText(tr("page.applications.total.count").format(count=summary.count))
        self.lbl_value.setText(
            tr("page.applications.total.value").format(value=summary.total_value)
        )
        self.lbl_quantity.setText(
            tr("page.applications.total.quantity").format(quantity=summary.total_quantity)
        )
        self.lbl_acres.setText(
            tr("page.applications.total.acres").format(acres=summary.total_acres)
        )

        self.table.setRowCount(len(records))
        for row, record in enumerate(records):
            for column, name in enumerate(APPLICATION_COLUMNS):
                value = getattr(record, name)
                if isinstance(value, float):
                    text = f"{value:,.2f}"
                else:
                    text = "" if value is None else str(value)
                self.table.setItem(row, column, QTableWidgetItem(text))
        self.table.resizeColumnsToContents()

    def selected_record(self) -> Optional[ApplicationRecord]:
        row = self.table.currentRow()
        records = self.context.applications.items
        if 0 <= row < len(records):
            return records[row]
        return None

    def _on_delete(self) -> None:
        record = self.selected_record()
        if record is None:
            InfoBar.warning(
                title=tr("warning"), content=tr("page.applications.msg.select_first"), parent=self
            )
            return
        box = MessageBox(
            tr("page.applications.dialog.delete_title"),
            tr("page.applications.dialog.delete_content").format(product=record.product),
            self.window(),
        )
        box.yesButton.setText(tr("delete"))
        box.cancelButton.setText(tr("cancel"))
        if not box.exec():
            return
        try:
            self.context.applications.delete(record.id)
        except BackendError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)

"""
Farms page: list, create, edit, delete and select the current farm.
"""

from typing import Any, Dict, Optional

from loguru import logger
from PySide6.QtWidgets import QGridLayout, QHBoxLayout, QTableWidgetItem, QWidget
from qfluentwidgets import (
    BodyLabel,
    CaptionLabel,
    ComboBox,
    InfoBar,
    LineEdit,
    MessageBox,
    MessageBoxBase,
    PrimaryPushButton,
    PushButton,
    SubtitleLabel,
    TableWidget,
)
from qfluentwidgets import FluentIcon as FIF

from farmview.core.farms import validate_farm
from farmview.core.models import Farm
from farmview.core.palette import CANE_VARIETIES
from farmview.data.geocoding import GeocodingClient
from farmview.errors import BackendError, ValidationError
from farmview.gui.components.base_interface import BaseInterface, PageGroup
from farmview.gui.config import tr
from farmview.gui.context import AppContext

FARM_COLUMNS = (
    "name",
    "location",
    "total_area",
    "cane_variety",
    "postal_code",
    "farm_number",
    "latitude",
    "longitude",
)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class FarmEditDialog(MessageBoxBase):
    """
    Create/edit farm dialog with postal code lookup.

    ``cleaned`` holds the validated values once the dialog is accepted.
    """

    def __init__(
        self,
        geocoder: GeocodingClient,
        farm: Optional[Farm] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.geocoder = geocoder
        self.cleaned: Optional[Dict[str, Any]] = None

        title_key = "page.farms.dialog.edit_title" if farm else "page.farms.dialog.new_title"
        self.titleLabel = SubtitleLabel(tr(title_key), self)
        self.viewLayout.addWidget(self.titleLabel)

        grid = QGridLayout()
        grid.setSpacing(8)
        self.edit_name = self._add_row(grid, 0, "page.farms.column.name")
        self.edit_location = self._add_row(grid, 1, "page.farms.column.location")
        self.edit_area = self._add_row(grid, 2, "page.farms.column.total_area")

        grid.addWidget(BodyLabel(tr("page.farms.column.cane_variety")), 3, 0)
        self.combo_variety = ComboBox()
        self.combo_variety.addItem("-", userData=None)
        for variety in CANE_VARIETIES:
            self.combo_variety.addItem(variety, userData=variety)
        grid.addWidget(self.combo_variety, 3, 1)

        grid.addWidget(BodyLabel(tr("page.farms.column.postal_code")), 4, 0)
        postal_row = QHBoxLayout()
        self.edit_postal = LineEdit()
        self.btn_lookup = PushButton(FIF.SEARCH, tr("page.farms.btn.lookup"))
        self.btn_lookup.clicked.connect(self.lookup_postal_code)
        postal_row.addWidget(self.edit_postal, 1)
        postal_row.addWidget(self.btn_lookup)
        grid.addLayout(postal_row, 4, 1)

        self.edit_number = self._add_row(grid, 5, "page.farms.column.farm_number")
        self.edit_lat = self._add_row(grid, 6, "page.farms.column.latitude")
        self.edit_lon = self._add_row(grid, 7, "page.farms.column.longitude")
        self.viewLayout.addLayout(grid)

        self.error_label = CaptionLabel("")
        self.error_label.setTextColor("#C42B1C", "#FF99A4")
        self.viewLayout.addWidget(self.error_label)

        self.yesButton.setText(tr("save"))
        self.cancelButton.setText(tr("cancel"))
        self.widget.setMinimumWidth(460)

        if farm is not None:
            self._load(farm)

    def _add_row(self, grid: QGridLayout, row: int, key: str) -> LineEdit:
        grid.addWidget(BodyLabel(tr(key)), row, 0)
        edit = LineEdit()
        grid.addWidget(edit, row, 1)
        return edit

    def _load(self, farm: Farm) -> None:
        self.edit_name.setText(farm.name)
        self.edit_location.setText(_text(farm.location))
        self.edit_area.setText(_text(farm.total_area))
        index = self.combo_variety.findText(farm.cane_variety or "-")
        self.combo_variety.setCurrentIndex(max(index, 0))
        self.edit_postal.setText(_text(farm.postal_code))
        self.edit_number.setText(_text(farm.farm_number))
        self.edit_lat.setText(_text(farm.latitude))
        self.edit_lon.setText(_text(farm.longitude))

    def values(self) -> Dict[str, Any]:
        return {
            "name": self.edit_name.text(),
            "location": self.edit_location.text(),
            "total_area": self.edit_area.text(),
            "cane_variety": self.combo_variety.currentData(),
            "postal_code": self.edit_postal.text(),
            "farm_number": self.edit_number.text(),
            "latitude": self.edit_lat.text(),
            "longitude": self.edit_lon.text(),
        }

    def lookup_postal_code(self) -> bool:
        """Fill coordinates and location from the postal code."""
        result = self.geocoder.lookup_postal_code(self.edit_postal.text())
        if result is None:
            self.error_label.setText(tr("page.farms.msg.postal_not_found"))
            return False
        self.edit_lat.setText(f"{result.lat:.6f}")
        self.edit_lon.setText(f"{result.lon:.6f}")
        self.edit_location.setText(result.display_name)
        self.error_label.setText("")
        return True

    def validate(self) -> bool:
        try:
            self.cleaned = validate_farm(self.values())
        except ValidationError as exc:
            self.error_label.setText(str(exc))
            return False
        return True


class FarmsTab(BaseInterface):
    """
    Farm list with CRUD actions.
    """

    def __init__(self, context: AppContext, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.context = context
        self._init_ui()

        context.farms.subscribe(self.refresh)
        context.sigFarmChanged.connect(lambda _farm: self.refresh())
        self.refresh()

    def _init_ui(self) -> None:
        group = PageGroup(tr("page.farms.group.actions"))
        self.btn_add = PrimaryPushButton(FIF.ADD, tr("page.farms.btn.add"))
        self.btn_add.clicked.connect(self._on_add)
        group.add_widget(self.btn_add)
        self.btn_edit = PushButton(FIF.EDIT, tr("page.farms.btn.edit"))
        self.btn_edit.clicked.connect(self._on_edit)
        group.add_widget(self.btn_edit)
        self.btn_delete = PushButton(FIF.DELETE, tr("page.farms.btn.delete"))
        self.btn_delete.clicked.connect(self._on_delete)
        group.add_widget(self.btn_delete)
        self.btn_select = PushButton(FIF.ACCEPT, tr("page.farms.btn.select"))
        self.btn_select.clicked.connect(self._on_select)
        group.add_widget(self.btn_select)
        self.btn_reload = PushButton(FIF.SYNC, tr("page.farms.btn.reload"))
        self.btn_reload.clicked.connect(self.context.farms.refresh)
        group.add_widget(self.btn_reload)
        self.add_group(group)
        self.add_stretch()

        self.lbl_current = BodyLabel("")
        self._content_layout.addWidget(self.lbl_current)

        self.table = TableWidget()
        self.table.setColumnCount(len(FARM_COLUMNS))
        self.table.setHorizontalHeaderLabels([tr(f"page.farms.column.{c}") for c in FARM_COLUMNS])
        self.table.verticalHeader().hide()
        self.table.setEditTriggers(TableWidget.EditTrigger.NoEditTriggers)
        self.table.setSelectionBehavior(TableWidget.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(TableWidget.SelectionMode.SingleSelection)
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.doubleClicked.connect(lambda _index: self._on_select())
        self._content_layout.addWidget(self.table, 1)

        self.lbl_empty = CaptionLabel(tr("page.farms.empty"))
        self._content_layout.addWidget(self.lbl_empty)

    def refresh(self) -> None:
        farms = self.context.farms.items
        current = self.context.current_farm
        self.lbl_current.setText(
            tr("page.farms.current").format(name=current.display_name if current else "-")
        )
        self.table.setRowCount(len(farms))
        for row, farm in enumerate(farms):
            for column, name in enumerate(FARM_COLUMNS):
                self.table.setItem(row, column, QTableWidgetItem(_text(getattr(farm, name))))
        self.lbl_empty.setVisible(not farms)
        if self.context.farms.error:
            InfoBar.error(title=tr("error"), content=self.context.farms.error, parent=self)

    def selected_farm(self) -> Optional[Farm]:
        row = self.table.currentRow()
        farms = self.context.farms.items
        if 0 <= row < len(farms):
            return farms[row]
        return None

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def create_farm(self, values: Dict[str, Any]) -> Optional[Farm]:
        try:
            farm = self.context.farms.create(Farm(**values))
        except BackendError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return None
        InfoBar.success(
            title=tr("success"),
            content=tr("page.farms.msg.created").format(name=farm.name),
            parent=self,
            duration=2500,
        )
        if self.context.current_farm is None:
            self.context.set_farm(farm)
        return farm

    def update_farm(self, farm_id: str, values: Dict[str, Any]) -> Optional[Farm]:
        try:
            farm = self.context.farms.update(farm_id, values)
        except BackendError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return None
        InfoBar.success(
            title=tr("success"), content=tr("page.farms.msg.updated"), parent=self, duration=2500
        )
        current = self.context.current_farm
        if current is not None and current.id == farm_id:
            self.context.set_farm(farm)
        return farm

    def delete_farm(self, farm_id: str) -> bool:
        try:
            self.context.farms.delete(farm_id)
        except BackendError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return False
        current = self.context.current_farm
        if current is not None and current.id == farm_id:
            farms = self.context.farms.items
            self.context.set_farm(farms[0] if farms else None)
        InfoBar.success(
            title=tr("success"), content=tr("page.farms.msg.deleted"), parent=self, duration=2500
        )
        return True

    def _warn_no_selection(self) -> None:
        InfoBar.warning(
            title=tr("warning"), content=tr("page.farms.msg.select_first"), parent=self
        )

    def _on_add(self) -> None:
        dialog = FarmEditDialog(self.context.geocoder, parent=self.window())
        if dialog.exec() and dialog.cleaned is not None:
            self.create_farm(dialog.cleaned)

    def _on_edit(self) -> None:
        farm = self.selected_farm()
        if farm is None:
            self._warn_no_selection()
            return
        dialog = FarmEditDialog(self.context.geocoder, farm, parent=self.window())
        if dialog.exec() and dialog.cleaned is not None:
            self.update_farm(farm.id, dialog.cleaned)

    def _on_delete(self) -> None:
        farm = self.selected_farm()
        if farm is None:
            self._warn_no_selection()
            return
        box = MessageBox(
            tr("page.farms.dialog.delete_title"),
            tr("page.farms.dialog.delete_content").format(name=farm.name),
            self.window(),
        )
        box.yesButton.setText(tr("delete"))
        box.cancelButton.setText(tr("cancel"))
        if box.exec():
            logger.info(f"Deleting farm {farm.id}")
            self.delete_farm(farm.id)

    def _on_select(self) -> None:
        farm = self.selected_farm()
        if farm is None:
            self._warn_no_selection()
            return
        self.context.set_farm(farm)

"""
Block metadata panel shown beside the map when a block is selected.

Sections:
- calculated metrics (read only)
- identification (name, colour, transparency)
- agronomic data (planting, cane variety/age, next harvest/application)
- last application
- drain and notes
"""

from typing import Any, Dict, Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QVBoxLayout, QWidget
from qfluentwidgets import (
    BodyLabel,
    CaptionLabel,
    CheckBox,
    ComboBox,
    LineEdit,
    PlainTextEdit,
    PrimaryPushButton,
    PushButton,
    ScrollArea,
    StrongBodyLabel,
)

from farmview.core.models import DEFAULT_TRANSPARENCY, Block
from farmview.core.palette import BLOCK_COLORS, CANE_AGES, CANE_VARIETIES, TRANSPARENCY_PRESETS
from farmview.gui.config import tr

DATE_PLACEHOLDER = "YYYY-MM-DD"


class BlockFormPanel(ScrollArea):
    """
    Editable form for one block.

    Signals
    -------
    sigSaveRequested : Signal(str, dict)
        Save clicked. Args: (block_id, raw form values)
    sigCloseRequested : Signal()
        Close clicked.
    """

    sigSaveRequested = Signal(str, dict)
    sigCloseRequested = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._block_id: Optional[str] = None

        self.view = QWidget()
        self.view.setObjectName("blockFormView")
        self.setWidget(self.view)
        self.setWidgetResizable(True)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self.setMinimumWidth(280)

        self._init_ui()
        self.clear()

    def _init_ui(self) -> None:
        self.layout = QVBoxLayout(self.view)
        self.layout.setSpacing(8)
        self.layout.setContentsMargins(14, 16, 14, 14)
        self.layout.setAlignment(Qt.AlignmentFlag.AlignTop)

        # --- Calculated ---
        self.layout.addWidget(StrongBodyLabel(tr("block_form.group.metrics")))
        self.lbl_area = BodyLabel()
        self.lbl_perimeter = BodyLabel()
        self.layout.addWidget(self.lbl_area)
        self.layout.addWidget(self.lbl_perimeter)

        # --- Identification ---
        self.layout.addWidget(StrongBodyLabel(tr("block_form.group.identification")))
        self.edit_name = self._add_line_edit("block_form.label.name")

        self.layout.addWidget(BodyLabel(tr("block_form.label.color")))
        self.combo_color = ComboBox()
        for entry in BLOCK_COLORS:
            self.combo_color.addItem(f"{entry.label} - {entry.status}", userData=entry.value)
        self.layout.addWidget(self.combo_color)

        self.layout.addWidget(BodyLabel(tr("block_form.label.transparency")))
        self.combo_transparency = ComboBox()
        for value in TRANSPARENCY_PRESETS:
            self.combo_transparency.addItem(f"{int(value * 100)}%", userData=value)
        self.layout.addWidget(self.combo_transparency)

        # --- Agronomic ---
        self.layout.addWidget(StrongBodyLabel(tr("block_form.group.agronomic")))
        self.edit_planting = self._add_line_edit("block_form.label.planting_date", DATE_PLACEHOLDER)

        self.layout.addWidget(BodyLabel(tr("block_form.label.cane_variety")))
        self.combo_variety = ComboBox()
        self.combo_variety.addItem("-", userData=None)
        for variety in CANE_VARIETIES:
            self.combo_variety.addItem(variety, userData=variety)
        self.layout.addWidget(self.combo_variety)

        self.layout.addWidget(BodyLabel(tr("block_form.label.cane_age")))
        self.combo_age = ComboBox()
        self.combo_age.addItem("-", userData=None)
        for value, label in CANE_AGES:
            self.combo_age.addItem(label, userData=value)
        self.layout.addWidget(self.combo_age)

        self.edit_next_harvest = self._add_line_edit("block_form.label.next_harvest", DATE_PLACEHOLDER)
        self.edit_next_application = self._add_line_edit(
            "block_form.label.next_application", DATE_PLACEHOLDER
        )

        # --- Last application ---
        self.layout.addWidget(StrongBodyLabel(tr("block_form.group.last_application")))
        self.edit_product = self._add_line_edit("block_form.label.product")
        self.edit_liters = self._add_line_edit("block_form.label.liters", "0")
        self.edit_value = self._add_line_edit("block_form.label.value", "0.00")
        self.edit_app_date = self._add_line_edit("block_form.label.application_date", DATE_PLACEHOLDER)

        # --- Drain & notes ---
        self.check_drain = CheckBox(tr("block_form.label.has_drain"))
        self.layout.addWidget(self.check_drain)
        self.layout.addWidget(BodyLabel(tr("block_form.label.notes")))
        self.edit_notes = PlainTextEdit()
        self.edit_notes.setFixedHeight(80)
        self.layout.addWidget(self.edit_notes)
        self.layout.addWidget(CaptionLabel(tr("block_form.hint.local_only")))

        self.btn_save = PrimaryPushButton(tr("block_form.btn.save"))
        self.btn_save.clicked.connect(self._on_save)
        self.layout.addWidget(self.btn_save)
        self.btn_close = PushButton(tr("block_form.btn.close"))
        self.btn_close.clicked.connect(self.sigCloseRequested.emit)
        self.layout.addWidget(self.btn_close)

        # Items past these counts hold stored values outside the presets.
        self._preset_counts = {
            combo: combo.count()
            for combo in (self.combo_color, self.combo_transparency, self.combo_variety)
        }

    def _add_line_edit(self, label_key: str, placeholder: str = "") -> LineEdit:
        self.layout.addWidget(BodyLabel(tr(label_key)))
        edit = LineEdit()
        edit.setPlaceholderText(placeholder)
        edit.setClearButtonEnabled(True)
        self.layout.addWidget(edit)
        return edit

    @property
    def block_id(self) -> Optional[str]:
        return self._block_id

    def _select_data(self, combo: ComboBox, value: Any, label: Optional[str] = None) -> None:
        """Select the item holding ``value``, adding it when it is not a preset."""
        preset_count = self._preset_counts.get(combo, combo.count())
        while combo.count() > preset_count:
            combo.removeItem(combo.count() - 1)
        for index in range(combo.count()):
            if combo.itemData(index) == value:
                combo.setCurrentIndex(index)
                return
        if value is None or value == "":
            combo.setCurrentIndex(0)
            return
        combo.addItem(label or str(value), userData=value)
        combo.setCurrentIndex(combo.count() - 1)

    def load_block(self, block: Block) -> None:
        """Fill the form from ``block``."""
        self._block_id = block.id
        self.lbl_area.setText(
            tr("block_form.metrics.area").format(
                acres=block.area_acres or 0.0, m2=block.area_m2 or 0.0
            )
        )
        self.lbl_perimeter.setText(
            tr("block_form.metrics.perimeter").format(perimeter=block.perimeter or 0.0)
        )
        self.edit_name.setText(block.name or "")
        self._select_data(self.combo_color, (block.color or "").upper())
        transparency = DEFAULT_TRANSPARENCY if block.transparency is None else float(block.transparency)
        self._select_data(
            self.combo_transparency, transparency, f"{round(transparency * 100)}%"
        )
        self.edit_planting.setText(block.planting_date or "")
        self._select_data(self.combo_variety, block.cane_variety)
        self.combo_age.setCurrentIndex(0)
        self.edit_next_harvest.setText(block.next_harvest or "")
        self.edit_next_application.setText(block.next_application or "")

        last = block.last_application
        self.edit_product.setText(last.product if last else "")
        self.edit_liters.setText(f"{last.liters:g}" if last else "")
        self.edit_value.setText(f"{last.value:.2f}" if last else "")
        self.edit_app_date.setText((last.date or "") if last else "")

        self.check_drain.setChecked(bool(block.has_drain))
        self.edit_notes.setPlainText("")
        self.setEnabled(True)

    def clear(self) -> None:
        self._block_id = None
        self.lbl_area.setText(tr("block_form.empty"))
        self.lbl_perimeter.setText("")
        for edit in (
            self.edit_name,
            self.edit_planting,
            self.edit_next_harvest,
            self.edit_next_application,
            self.edit_product,
            self.edit_liters,
            self.edit_value,
            self.edit_app_date,
        ):
            edit.clear()
        self.edit_notes.setPlainText("")
        self.check_drain.setChecked(False)
        self.setEnabled(False)

    def form_values(self) -> Dict[str, Any]:
        """Raw values keyed for ``validate_block_form``."""
        return {
            "name": self.edit_name.text(),
            "color": self.combo_color.currentData(),
            "transparency": self.combo_transparency.currentData(),
            "planting_date": self.edit_planting.text(),
            "cane_variety": self.combo_variety.currentData(),
            "cane_age": self.combo_age.currentData(),
            "next_harvest": self.edit_next_harvest.text(),
            "next_application": self.edit_next_application.text(),
            "product": self.edit_product.text(),
            "liters": self.edit_liters.text(),
            "value": self.edit_value.text(),
            "date": self.edit_app_date.text(),
            "has_drain": self.check_drain.isChecked(),
            "notes": self.edit_notes.toPlainText(),
        }

    def _on_save(self) -> None:
        if self._block_id is not None:
            self.sigSaveRequested.emit(self._block_id, self.form_values())

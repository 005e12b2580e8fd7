"""
Layer panel for the map editor.

Two check lists:
- map layers (background tiles, NDVI overlay, block labels)
- block colours, which drive the colour filter deciding which blocks are drawn
"""

from typing import Dict, Optional

from loguru import logger
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QColor, QIcon, QPixmap
from PySide6.QtWidgets import QHBoxLayout, QTreeWidget, QTreeWidgetItem, QVBoxLayout, QWidget
from qfluentwidgets import BodyLabel, StrongBodyLabel, TransparentPushButton

from farmview.core.color_filter import ColorFilter
from farmview.core.palette import color_label
from farmview.gui.config import tr

MAP_LAYERS = ("basemap", "ndvi", "labels")


def _swatch(color: str, size: int = 12) -> QIcon:
    pixmap = QPixmap(size, size)
    pixmap.fill(QColor(color))
    return QIcon(pixmap)


class ColorLayerPanel(QWidget):
    """
    Check lists for map layers and block colours.

    Signals
    -------
    sigLayerVisibilityChanged : Signal(str, bool)
        Map layer toggled. Args: (layer_name, visible)
    sigColorFilterChanged : Signal()
        The colour selection of ``color_filter`` changed.

    Examples
    --------
    >>> panel = ColorLayerPanel(ColorFilter())
    >>> panel.color_filter.set_blocks(blocks)
    >>> panel.refresh_colors()
    """

    sigLayerVisibilityChanged = Signal(str, bool)
    sigColorFilterChanged = Signal()

    def __init__(
        self, color_filter: Optional[ColorFilter] = None, parent: Optional[QWidget] = None
    ) -> None:
        super().__init__(parent)
        self.color_filter = color_filter or ColorFilter()
        self._layer_items: Dict[str, QTreeWidgetItem] = {}
        self._color_items: Dict[str, QTreeWidgetItem] = {}
        self._init_ui()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        layout.addWidget(StrongBodyLabel(tr("layer_panel.title")))
        self._layer_tree = self._make_tree()
        for name in MAP_LAYERS:
            item = QTreeWidgetItem([tr(f"layer_panel.layer.{name}")])
            item.setFlags(Qt.ItemFlag.ItemIsUserCheckable | Qt.ItemFlag.ItemIsEnabled)
            item.setCheckState(
                0, Qt.CheckState.Unchecked if name == "ndvi" else Qt.CheckState.Checked
            )
            item.setData(0, Qt.ItemDataRole.UserRole, name)
            self._layer_tree.addTopLevelItem(item)
            self._layer_items[name] = item
        self._layer_tree.itemChanged.connect(self._on_layer_item_changed)
        self._layer_tree.setMaximumHeight(90)
        layout.addWidget(self._layer_tree)

        header = QHBoxLayout()
        header.addWidget(StrongBodyLabel(tr("layer_panel.colors")))
        header.addStretch()
        self.btn_all = TransparentPushButton(tr("layer_panel.show_all"))
        self.btn_all.clicked.connect(self._on_select_all)
        header.addWidget(self.btn_all)
        layout.addLayout(header)

        self._color_tree = self._make_tree()
        self._color_tree.itemChanged.connect(self._on_color_item_changed)
        layout.addWidget(self._color_tree, 1)

        self.count_label = BodyLabel("")
        layout.addWidget(self.count_label)

        self.setMinimumWidth(170)
        self.setMaximumWidth(280)

    def _make_tree(self) -> QTreeWidget:
        tree = QTreeWidget()
        tree.setHeaderHidden(True)
        tree.setRootIsDecorated(False)
        tree.setIndentation(0)
        return tree

    def refresh_colors(self) -> None:
        """Rebuild the colour list from ``color_filter``."""
        self._color_tree.blockSignals(True)
        self._color_tree.clear()
        self._color_items.clear()
        for color in self.color_filter.available_colors:
            text = f"{color_label(color)} ({self.color_filter.count_for(color)})"
            item = QTreeWidgetItem([text])
            item.setIcon(0, _swatch(color))
            item.setFlags(Qt.ItemFlag.ItemIsUserCheckable | Qt.ItemFlag.ItemIsEnabled)
            item.setCheckState(
                0,
                Qt.CheckState.Checked
                if self.color_filter.is_selected(color)
                else Qt.CheckState.Unchecked,
            )
            item.setData(0, Qt.ItemDataRole.UserRole, color)
            self._color_tree.addTopLevelItem(item)
            self._color_items[color] = item
        self._color_tree.blockSignals(False)
        self._update_count()

    def color_item(self, color: str) -> Optional[QTreeWidgetItem]:
        return self._color_items.get(color.upper())

    def layer_item(self, name: str) -> Optional[QTreeWidgetItem]:
        return self._layer_items.get(name)

    def set_layer_checked(self, name: str, visible: bool) -> None:
        item = self._layer_items.get(name)
        if item is None:
            return
        self._layer_tree.blockSignals(True)
        item.setCheckState(0, Qt.CheckState.Checked if visible else Qt.CheckState.Unchecked)
        self._layer_tree.blockSignals(False)

    def _update_count(self) -> None:
        self.count_label.setText(
            tr("layer_panel.count").format(
                visible=self.color_filter.visible_blocks,
                total=self.color_filter.total_blocks,
            )
        )

    def _on_layer_item_changed(self, item: QTreeWidgetItem, column: int) -> None:
        name = item.data(0, Qt.ItemDataRole.UserRole)
        visible = item.checkState(0) == Qt.CheckState.Checked
        logger.debug(f"Layer toggled: {name} -> {visible}")
        self.sigLayerVisibilityChanged.emit(name, visible)

    def _on_color_item_changed(self, item: QTreeWidgetItem, column: int) -> None:
        color = item.data(0, Qt.ItemDataRole.UserRole)
        self.color_filter.toggle(color, item.checkState(0) == Qt.CheckState.Checked)
        self._update_count()
        self.sigColorFilterChanged.emit()

    def _on_select_all(self) -> None:
        self.color_filter.select_all()
        self.refresh_colors()
        self.sigColorFilterChanged.emit()

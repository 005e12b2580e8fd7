"""
Base classes for pages: a tool bar of grouped controls above a content area.
"""

from pathlib import Path
from typing import Optional

import darkdetect
from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QGroupBox, QHBoxLayout, QSplitter, QVBoxLayout, QWidget
from qfluentwidgets import Theme

from farmview.gui.components.map_component import MapComponent
from farmview.gui.config import cfg


def theme_name() -> str:
    """Return ``"light"`` or ``"dark"`` for the configured theme."""
    theme = cfg.themeMode.value
    if theme == Theme.AUTO:
        return "dark" if darkdetect.isDark() else "light"
    return theme.value.lower()


def load_qss(name: str) -> str:
    qss_path = Path(__file__).parent.parent / "resource" / "qss" / theme_name() / f"{name}.qss"
    if not qss_path.exists():
        return ""
    with open(qss_path, encoding='utf-8') as f:
        return f.read()


class PageGroup(QGroupBox):
    """
    A group of controls within a tool page.
    """

    def __init__(self, title: str, parent: Optional[QWidget] = None) -> None:
        super().__init__(title, parent)
        self.setObjectName("PageGroup")

        self._layout = QHBoxLayout(self)
        self._layout.setContentsMargins(8, 16, 8, 8)
        self._layout.setSpacing(8)

    def add_widget(self, widget: QWidget) -> None:
        """Add a widget to the group."""
        self._layout.addWidget(widget)

    def add_stretch(self) -> None:
        """Add stretch to the group layout."""
        self._layout.addStretch()


class BaseInterface(QWidget):
    """
    Base class for all pages.

    Structure:
    - Top: Tool Bar (contains PageGroups)
    - Center: Content Area (page specific content)
    """

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self._main_layout = QVBoxLayout(self)
        self._main_layout.setContentsMargins(0, 0, 0, 0)
        self._main_layout.setSpacing(0)

        # 1. Tool Bar Area (Top)
        self.tool_bar = QWidget()
        self.tool_bar.setObjectName("ToolBar")
        self.tool_bar.setMinimumHeight(80)
        self.tool_bar.setMaximumHeight(120)

        self._tool_layout = QHBoxLayout(self.tool_bar)
        self._tool_layout.setContentsMargins(4, 4, 4, 4)
        self._tool_layout.setSpacing(8)

        self._main_layout.addWidget(self.tool_bar)

        self.setQss()
        cfg.themeChanged.connect(self.setQss)

        # 2. Content Area (Center)
        self.content_area = QWidget()
        self.content_area.setObjectName("ContentArea")
        self._content_layout = QVBoxLayout(self.content_area)
        self._content_layout.setContentsMargins(12, 12, 12, 12)
        self._content_layout.setSpacing(12)

        self._main_layout.addWidget(self.content_area, 1)

    def add_group(self, group: PageGroup) -> None:
        """Add a group to the tool bar."""
        self._tool_layout.addWidget(group)

    def add_stretch(self) -> None:
        """Add stretch at the end of tool bar."""
        self._tool_layout.addStretch()

    def setQss(self):
        """Apply QSS."""
        self.setStyleSheet(load_qss("base_interface"))


class TabInterface(BaseInterface):
    """
    Base page with a map.

    Layout:
    [ Toolbar ]
    [ MapComponent | side panel ]
    """

    sigCoordinateChanged = Signal(float, float)
    sigZoomChanged = Signal(float)

    def __init__(self, parent: Optional[QWidget] = None, load_tiles: bool = True) -> None:
        super().__init__(parent)
        self._load_tiles = load_tiles
        self._init_layout()

    def _init_layout(self):
        self._content_layout.setContentsMargins(0, 0, 0, 0)
        self.splitter = QSplitter(Qt.Orientation.Horizontal)

        self.map_component = MapComponent(load_tiles=self._load_tiles)
        self.splitter.addWidget(self.map_component)

        self._content_layout.addWidget(self.splitter)

        self.map_component.sigCoordinateChanged.connect(self.sigCoordinateChanged.emit)
        self.map_component.sigZoomChanged.connect(self.sigZoomChanged.emit)

    def set_side_panel(self, panel: QWidget) -> None:
        """Dock ``panel`` on the right of the map."""
        self.splitter.addWidget(panel)
        self.splitter.setSizes([800, 320])

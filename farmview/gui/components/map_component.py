from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QSplitter, QVBoxLayout, QWidget

from farmview.core.color_filter import ColorFilter
from farmview.gui.components.layer_panel import ColorLayerPanel
from farmview.gui.components.map_canvas import MapCanvas
from farmview.gui.components.status_bar import StatusBar


class MapComponent(QWidget):
    """
    Composite component containing:
    - Colour / layer panel (Left)
    - Map Canvas (Center)
    - Status Bar (Bottom)
    """

    # Re-expose map signals
    sigCoordinateChanged = Signal(float, float)
    sigZoomChanged = Signal(float)

    def __init__(
        self,
        parent: Optional[QWidget] = None,
        color_filter: Optional[ColorFilter] = None,
        load_tiles: bool = True,
    ) -> None:
        super().__init__(parent)
        self._color_filter = color_filter
        self._load_tiles = load_tiles
        self._init_ui()
        self._connect_signals()

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        # Splitter for Layer | Map
        self.h_splitter = QSplitter(Qt.Orientation.Horizontal)
        self.h_splitter.setHandleWidth(1)

        self.layer_panel = ColorLayerPanel(self._color_filter)
        self.h_splitter.addWidget(self.layer_panel)

        # Vertical splitter for Map | Status Bar
        self.v_splitter = QSplitter(Qt.Orientation.Vertical)
        self.v_splitter.setHandleWidth(1)
        self.h_splitter.addWidget(self.v_splitter)

        self.map_canvas = MapCanvas(load_tiles=self._load_tiles)
        self.v_splitter.addWidget(self.map_canvas)

        self.status_bar = StatusBar()
        self.v_splitter.addWidget(self.status_bar)

        self.h_splitter.setSizes([200, 800])
        layout.addWidget(self.h_splitter, 1)

    def _connect_signals(self) -> None:
        # Layer Panel -> Map Canvas
        self.layer_panel.sigLayerVisibilityChanged.connect(
            self.map_canvas.set_layer_visibility
        )

        # Map Canvas -> Status Bar
        self.map_canvas.sigCoordinateChanged.connect(self.status_bar.update_coordinates)
        self.map_canvas.sigZoomChanged.connect(self.status_bar.update_zoom)

        # Status Bar -> Map Canvas
        self.status_bar.sigZoomChanged.connect(self._on_zoom_requested)

        # Map Canvas -> Self (re-emit)
        self.map_canvas.sigCoordinateChanged.connect(self.sigCoordinateChanged.emit)
        self.map_canvas.sigZoomChanged.connect(self.sigZoomChanged.emit)

    def _on_zoom_requested(self, zoom: float) -> None:
        lon, lat = self.map_canvas.view_center()
        self.map_canvas.center_on(lon, lat, zoom)

    @property
    def color_filter(self) -> ColorFilter:
        return self.layer_panel.color_filter

    def cleanup(self):
        """Cleanup resources."""
        self.map_canvas.cleanup()

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QFrame, QHBoxLayout, QWidget
from qfluentwidgets import BodyLabel, DoubleSpinBox

from farmview.core.drawing import MeasureResult, SelectionSummary
from farmview.gui.config import tr


class StatusBar(QFrame):
    """
    Map status bar: cursor lon/lat, interactive zoom and a readout section
    for measure and multi-selection results.
    """

    sigZoomChanged = Signal(float)

    def __init__(self, parent: QWidget = None):
        super().__init__(parent)
        self._init_ui()
        self._connect_signals()

    def _init_ui(self):
        self.setObjectName('statusBar')
        self.setFixedHeight(40)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        # --- Section 1: Coordinates ---
        self.coord_container = QWidget()
        coord_layout = QHBoxLayout(self.coord_container)
        coord_layout.setContentsMargins(16, 0, 16, 0)
        self.coord_label = BodyLabel(tr("status.coord").format(lon=0.0, lat=0.0))
        coord_layout.addWidget(self.coord_label, alignment=Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.coord_container, 1)

        layout.addWidget(self._create_separator())

        # --- Section 2: Zoom ---
        self.zoom_container = QWidget()
        zoom_layout = QHBoxLayout(self.zoom_container)
        zoom_layout.setContentsMargins(16, 0, 16, 0)
        zoom_layout.setSpacing(10)

        self.zoom_label = BodyLabel(tr("status.zoom_prefix").strip())
        self.zoom_sb = DoubleSpinBox()
        self.zoom_sb.setRange(1, 20)
        self.zoom_sb.setPrefix("")
        self.zoom_sb.setValue(15)
        self.zoom_sb.setSingleStep(1)
        self.zoom_sb.setDecimals(1)

        zoom_layout.addWidget(self.zoom_label)
        zoom_layout.addWidget(self.zoom_sb, 1)
        layout.addWidget(self.zoom_container, 1)

        layout.addWidget(self._create_separator())

        # --- Section 3: Measure / selection readout ---
        self.readout_container = QWidget()
        readout_layout = QHBoxLayout(self.readout_container)
        readout_layout.setContentsMargins(16, 0, 16, 0)
        self.readout_label = BodyLabel("")
        readout_layout.addWidget(self.readout_label, alignment=Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.readout_container, 2)

    def _create_separator(self) -> QFrame:
        line = QFrame()
        line.setFrameShape(QFrame.Shape.VLine)
        line.setFrameShadow(QFrame.Shadow.Sunken)
        line.setLineWidth(1)
        line.setMidLineWidth(0)
        line.setStyleSheet("QFrame { border: none; background-color: #E5E5E5; max-width: 1px; }")
        line.setFixedHeight(24)
        return line

    def _connect_signals(self):
        self.zoom_sb.valueChanged.connect(self.sigZoomChanged.emit)

    def update_coordinates(self, lon: float, lat: float) -> None:
        self.coord_label.setText(tr("status.coord").format(lon=lon, lat=lat))

    def update_zoom(self, zoom_level: float) -> None:
        # Block signals to prevent loop: Map -> StatusBar -> Map -> ...
        zoom_level = round(zoom_level, 1)
        if self.zoom_sb.value() != zoom_level:
            self.zoom_sb.blockSignals(True)
            self.zoom_sb.setValue(zoom_level)
            self.zoom_sb.blockSignals(False)

    def show_measure(self, result: MeasureResult) -> None:
        if result.points == 0:
            self.readout_label.setText("")
            return
        text = tr("status.measure").format(
            points=result.points, length=result.length_m, area=result.area_m2
        )
        self.readout_label.setText(text)

    def show_selection(self, summary: SelectionSummary) -> None:
        if summary.count == 0:
            self.readout_label.setText("")
            return
        self.readout_label.setText(
            tr("status.selection").format(
                count=summary.count,
                acres=summary.area_acres,
                area=summary.area_m2,
                perimeter=summary.perimeter,
            )
        )

    def clear_readout(self) -> None:
        self.readout_label.setText("")

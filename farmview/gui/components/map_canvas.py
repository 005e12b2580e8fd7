"""
Map Canvas component for FarmView.

A Web-Mercator map view built on PyQtGraph with:
- XYZ tile background (OpenStreetMap / satellite / none) loaded in a worker thread
- Block polygons with fill, outline and name labels
- Overlay items for sketches, vertex handles and measure paths
- Click, double-click, drag and hover handler registry in lon/lat

Scene coordinates are EPSG:3857 metres; everything crossing the public API is
WGS84 lon/lat.
"""

from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pyqtgraph as pg
from loguru import logger
from PySide6.QtCore import QObject, QPointF, QRectF, Qt, QThread, QTimer, Signal, Slot
from PySide6.QtGui import QBrush, QColor, QImage, QPen, QPolygonF
from PySide6.QtWidgets import QGraphicsPolygonItem, QVBoxLayout, QWidget

from farmview.core.drawing import FeatureStyle
from farmview.core.geometry import lonlat_to_map, map_to_lonlat, point_to_map
from farmview.utils.tiles import (
    BASE_SOURCES,
    TileFetcher,
    TileSource,
    resolution_for_zoom,
    tile_bounds_3857,
    tiles_for_view,
    zoom_for_resolution,
)

MAX_TILES_PER_VIEW = 64
MAX_CACHED_TILES = 2 * MAX_TILES_PER_VIEW
DEFAULT_CENTER = (-47.8825, -15.7942)
DEFAULT_ZOOM = 15

ClickHandler = Callable[[float, float, Any], bool]
HoverHandler = Callable[[float, float], None]
DragHandler = Callable[[str, float, float], bool]


class CustomViewBox(pg.ViewBox):
    """
    ViewBox that forwards pointer events instead of acting on them.

    Left drags pan the map unless ``drag_callback`` claims the drag on its
    first event, in which case every later event of that drag goes to it.

    Signals
    -------
    sigClicked : Signal(object)
        Left single click.
    sigDoubleClicked : Signal(object)
        Left double click.
    sigCoordinateHover : Signal(float, float)
        Cursor position in scene coordinates.
    """

    sigClicked = Signal(object)
    sigDoubleClicked = Signal(object)
    sigCoordinateHover = Signal(float, float)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.setMouseMode(pg.ViewBox.PanMode)
        self.drag_callback: Optional[Callable[[str, float, float], bool]] = None
        self._drag_claimed = False

    def mouseDragEvent(self, ev, axis=None) -> None:
        if ev.button() != Qt.MouseButton.LeftButton:
            super().mouseDragEvent(ev, axis)
            return

        pos = self.mapToView(ev.pos())
        if ev.isStart():
            self._drag_claimed = bool(
                self.drag_callback is not None
                and self.drag_callback("press", pos.x(), pos.y())
            )
        if self._drag_claimed:
            ev.accept()
            phase = "release" if ev.isFinish() else "drag"
            self.drag_callback(phase, pos.x(), pos.y())
            if ev.isFinish():
                self._drag_claimed = False
            return

        ev.accept()
        p_now = self.mapToView(ev.pos())
        p_last = self.mapToView(ev.lastPos())
        delta = p_now - p_last
        if delta.x() == 0 and delta.y() == 0:
            return
        current_rect = self.viewRect()
        current_rect.moveCenter(current_rect.center() - delta)
        self.setRange(current_rect, padding=0)

    def mouseClickEvent(self, ev) -> None:
        if ev.button() == Qt.MouseButton.LeftButton:
            if ev.double():
                self.sigDoubleClicked.emit(ev)
            else:
                self.sigClicked.emit(ev)
            ev.accept()
        else:
            super().mouseClickEvent(ev)

    def on_scene_mouse_moved(self, scene_pos) -> None:
        """Slot for ``GraphicsScene.sigMouseMoved``."""
        if not self.sceneBoundingRect().contains(scene_pos):
            return
        pos = self.mapSceneToView(scene_pos)
        self.sigCoordinateHover.emit(pos.x(), pos.y())


def tile_image_array(data: bytes) -> Optional[np.ndarray]:
    """Decode PNG/JPEG tile bytes to a north-up RGBA array ``(h, w, 4)``."""
    image = QImage.fromData(data)
    if image.isNull():
        return None
    image = image.convertToFormat(QImage.Format.Format_RGBA8888)
    height, width = image.height(), image.width()
    buffer = np.frombuffer(image.constBits(), dtype=np.uint8)
    array = buffer.reshape(height, image.bytesPerLine())[:, : width * 4]
    array = array.reshape(height, width, 4)
    # Row 0 of a tile is its northern edge; scene y grows northwards.
    return np.ascontiguousarray(array[::-1])


class TileLoader(QObject):
    """Worker living in a QThread that downloads requested tiles."""

    sigTileReady = Signal(str, int, int, int, object, int)

    def __init__(self, fetcher: TileFetcher) -> None:
        super().__init__()
        self.fetcher = fetcher
        self.latest_generation = 0

    @Slot(object, list, int)
    def load(self, source: TileSource, tiles: list, generation: int) -> None:
        for x, y, z in tiles:
            if generation != self.latest_generation:
                return
            data = self.fetcher.fetch(source, x, y, z)
            if data:
                self.sigTileReady.emit(source.name, x, y, z, data, generation)


class MapCanvas(QWidget):
    """
    Interactive map widget with tile background and block polygons.

    Signals
    -------
    sigCoordinateChanged : Signal(float, float)
        Cursor lon/lat.
    sigZoomChanged : Signal(float)
        Web-map zoom level of the current view.
    sigLayerAdded : Signal(str, str)
        Layer name and kind registered on the canvas.

    Examples
    --------
    >>> canvas = MapCanvas(load_tiles=False)
    >>> canvas.register_click_handler(lambda lon, lat, button: False)
    >>> canvas.center_on(-47.88, -15.79, 15)
    """

    sigCoordinateChanged = Signal(float, float)
    sigZoomChanged = Signal(float)
    sigLayerAdded = Signal(str, str)

    _sigRequestTiles = Signal(object, list, int)

    def __init__(
        self,
        parent: Optional[QWidget] = None,
        fetcher: Optional[TileFetcher] = None,
        load_tiles: bool = True,
    ) -> None:
        super().__init__(parent)

        # Layer registry: {name: {'item': GraphicsItem, 'data': Any, 'visible': bool, 'bounds': tuple}}
        self._layers: Dict[str, Dict[str, Any]] = {}
        self._layer_order: List[str] = []

        self._click_handlers: List[ClickHandler] = []
        self._double_click_handlers: List[ClickHandler] = []
        self._hover_handlers: List[HoverHandler] = []
        self._drag_handlers: List[DragHandler] = []
        self._overlay_items: List[Any] = []
        self._feature_items: Dict[str, Dict[str, Any]] = {}

        self._base_source: Optional[TileSource] = BASE_SOURCES["osm"]
        self._overlay_source: Optional[TileSource] = None
        self._tile_items: Dict[tuple, pg.ImageItem] = {}
        self._tile_generation = 0
        self._print_mode = False
        self._load_tiles = load_tiles
        self._zoom = float(DEFAULT_ZOOM)

        self._update_timer = QTimer(self)
        self._update_timer.setSingleShot(True)
        self._update_timer.setInterval(150)
        self._update_timer.timeout.connect(self._update_visible_tiles)

        self._init_ui()
        self._init_tile_thread(fetcher)
        self.center_on(*DEFAULT_CENTER, DEFAULT_ZOOM)

        logger.debug("MapCanvas initialized")

    def _init_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self._view_box = CustomViewBox()
        self._view_box.sigClicked.connect(self._on_canvas_clicked)
        self._view_box.sigDoubleClicked.connect(self._on_canvas_double_clicked)
        self._view_box.sigCoordinateHover.connect(self._on_coordinate_hover)
        self._view_box.drag_callback = self._on_canvas_drag

        self._plot_widget = pg.PlotWidget(viewBox=self._view_box)
        self._plot_widget.setBackground("#E5E7EB")
        self._plot_widget.setAspectLocked(True)

        plot_item = self._plot_widget.getPlotItem()
        plot_item.hideAxis("left")
        plot_item.hideAxis("bottom")
        plot_item.hideButtons()

        self._plot_widget.sigRangeChanged.connect(self._on_view_changed)
        self._plot_widget.scene().sigMouseMoved.connect(self._view_box.on_scene_mouse_moved)
        layout.addWidget(self._plot_widget)

        # Stacking: tiles < ndvi < blocks < labels < overlays
        for name, kind, z_value in (
            ("basemap", "tiles", -200),
            ("ndvi", "tiles", -150),
            ("blocks", "vector", 0),
            ("labels", "vector", 50),
        ):
            group = pg.ItemGroup()
            group.setZValue(z_value)
            self._view_box.addItem(group)
            self._layers[name] = {
                "item": group,
                "data": None,
                "visible": name != "ndvi",
                "bounds": None,
            }
            self._layer_order.append(name)
            group.setVisible(self._layers[name]["visible"])
            self.sigLayerAdded.emit(name, kind)

    def _init_tile_thread(self, fetcher: Optional[TileFetcher]) -> None:
        self._tile_thread: Optional[QThread] = None
        self._tile_loader: Optional[TileLoader] = None
        if not self._load_tiles:
            return
        self._tile_thread = QThread(self)
        self._tile_loader = TileLoader(fetcher or TileFetcher())
        self._tile_loader.moveToThread(self._tile_thread)
        self._sigRequestTiles.connect(self._tile_loader.load)
        self._tile_loader.sigTileReady.connect(self._on_tile_ready)
        self._tile_thread.start()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def register_click_handler(self, handler: ClickHandler) -> None:
        """Register ``handler(lon, lat, button) -> bool``; True consumes the click."""
        if handler not in self._click_handlers:
            self._click_handlers.append(handler)

    def unregister_click_handler(self, handler: ClickHandler) -> None:
        if handler in self._click_handlers:
            self._click_handlers.remove(handler)

    def register_double_click_handler(self, handler: ClickHandler) -> None:
        if handler not in self._double_click_handlers:
            self._double_click_handlers.append(handler)

    def unregister_double_click_handler(self, handler: ClickHandler) -> None:
        if handler in self._double_click_handlers:
            self._double_click_handlers.remove(handler)

    def register_hover_handler(self, handler: HoverHandler) -> None:
        if handler not in self._hover_handlers:
            self._hover_handlers.append(handler)

    def unregister_hover_handler(self, handler: HoverHandler) -> None:
        if handler in self._hover_handlers:
            self._hover_handlers.remove(handler)

    def register_drag_handler(self, handler: DragHandler) -> None:
        """Register ``handler(phase, lon, lat) -> bool``.

        ``phase`` is ``"press"``, ``"drag"`` or ``"release"``. Returning True
        on ``"press"`` claims the drag so the map does not pan.
        """
        if handler not in self._drag_handlers:
            self._drag_handlers.append(handler)

    def unregister_drag_handler(self, handler: DragHandler) -> None:
        if handler in self._drag_handlers:
            self._drag_handlers.remove(handler)

    def _dispatch_click(self, handlers: Sequence[ClickHandler], ev) -> bool:
        pos = self._view_box.mapToView(ev.pos())
        lon, lat = map_to_lonlat(pos.x(), pos.y())
        for handler in list(handlers):
            if handler(lon, lat, ev.button()):
                return True
        return False

    def _on_canvas_clicked(self, ev) -> None:
        if self._dispatch_click(self._click_handlers, ev):
            return
        pos = self._view_box.mapToView(ev.pos())
        logger.debug(f"Canvas clicked at: ({pos.x():.2f}, {pos.y():.2f})")

    def _on_canvas_double_clicked(self, ev) -> None:
        self._dispatch_click(self._double_click_handlers, ev)

    def _on_canvas_drag(self, phase: str, x: float, y: float) -> bool:
        lon, lat = map_to_lonlat(x, y)
        consumed = False
        for handler in list(self._drag_handlers):
            if handler(phase, lon, lat):
                consumed = True
                break
        return consumed

    def _on_coordinate_hover(self, x: float, y: float) -> None:
        lon, lat = map_to_lonlat(x, y)
        self.sigCoordinateChanged.emit(lon, lat)
        for handler in list(self._hover_handlers):
            handler(lon, lat)

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------
    def add_overlay_item(self, item: Any) -> None:
        """Add a transient graphics item above all layers."""
        if item in self._overlay_items:
            return
        item.setZValue(max(item.zValue(), 100))
        self._view_box.addItem(item)
        self._overlay_items.append(item)

    def remove_overlay_item(self, item: Any) -> None:
        if item not in self._overlay_items:
            return
        self._overlay_items.remove(item)
        self._view_box.removeItem(item)

    def clear_overlays(self) -> None:
        for item in list(self._overlay_items):
            self.remove_overlay_item(item)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------
    def set_features(
        self, features: Sequence[tuple[str, Sequence[Sequence[float]], FeatureStyle]]
    ) -> None:
        """Replace all block polygons.

        Parameters
        ----------
        features : Sequence[tuple[str, coords, FeatureStyle]]
            ``(feature_id, lon/lat ring, style)`` in paint order.
        """
        self.clear_features()
        blocks_group = self._layers["blocks"]["item"]
        labels_group = self._layers["labels"]["item"]
        all_xy = []
        for z_index, (feature_id, coords, style) in enumerate(features):
            xy = lonlat_to_map(coords)
            if len(xy) < 3:
                continue
            all_xy.append(xy)
            polygon = QGraphicsPolygonItem(
                QPolygonF([QPointF(float(x), float(y)) for x, y in xy])
            )
            pen = QPen(QColor(style.stroke))
            pen.setCosmetic(True)
            pen.setWidthF(style.width)
            polygon.setPen(pen)
            polygon.setBrush(QBrush(QColor(*style.fill_rgba)))
            polygon.setZValue(z_index)
            polygon.setParentItem(blocks_group)

            label = None
            if style.label:
                label = pg.TextItem(style.label, color="#111827", anchor=(0.5, 0.5))
                label.setPos(float(xy[:, 0].mean()), float(xy[:, 1].mean()))
                label.setParentItem(labels_group)
            self._feature_items[feature_id] = {"polygon": polygon, "label": label}

        if all_xy:
            stacked = np.vstack(all_xy)
            self._layers["blocks"]["bounds"] = (
                float(stacked[:, 0].min()),
                float(stacked[:, 1].min()),
                float(stacked[:, 0].max()),
                float(stacked[:, 1].max()),
            )
        else:
            self._layers["blocks"]["bounds"] = None

    def clear_features(self) -> None:
        for entry in self._feature_items.values():
            for item in (entry["polygon"], entry["label"]):
                if item is None:
                    continue
                item.setParentItem(None)
                if item.scene() is not None:
                    item.scene().removeItem(item)
        self._feature_items.clear()

    def feature_ids(self) -> List[str]:
        return list(self._feature_items)

    def feature_item(self, feature_id: str) -> Optional[QGraphicsPolygonItem]:
        entry = self._feature_items.get(feature_id)
        return entry["polygon"] if entry else None

    def make_path_item(
        self,
        coords: Sequence[Sequence[float]],
        color: str,
        width: float = 2.0,
        closed: bool = False,
        dashed: bool = False,
        fill_rgba: Optional[tuple[int, int, int, int]] = None,
    ):
        """Build an overlay item for a lon/lat path; add it with ``add_overlay_item``."""
        xy = lonlat_to_map(coords)
        if closed and len(xy) >= 3:
            polygon = QGraphicsPolygonItem(
                QPolygonF([QPointF(float(x), float(y)) for x, y in xy])
            )
            pen = QPen(QColor(color))
            pen.setCosmetic(True)
            pen.setWidthF(width)
            if dashed:
                pen.setStyle(Qt.PenStyle.DashLine)
            polygon.setPen(pen)
            polygon.setBrush(QBrush(QColor(*fill_rgba)) if fill_rgba else QBrush(Qt.BrushStyle.NoBrush))
            return polygon
        style = Qt.PenStyle.DashLine if dashed else Qt.PenStyle.SolidLine
        return pg.PlotCurveItem(
            x=xy[:, 0] if len(xy) else np.array([]),
            y=xy[:, 1] if len(xy) else np.array([]),
            pen=pg.mkPen(color=color, width=width, style=style),
        )

    def make_vertex_item(self, coords: Sequence[Sequence[float]], color: str, size: int = 9):
        xy = lonlat_to_map(coords)
        return pg.ScatterPlotItem(
            x=xy[:, 0] if len(xy) else np.array([]),
            y=xy[:, 1] if len(xy) else np.array([]),
            size=size,
            brush=pg.mkBrush("#FFFFFF"),
            pen=pg.mkPen(color=color, width=2),
        )

    # ------------------------------------------------------------------
    # Layers and view
    # ------------------------------------------------------------------
    def set_layer_visibility(self, layer_name: str, visible: bool) -> None:
        if layer_name in self._layers:
            self._layers[layer_name]["visible"] = visible
            self._layers[layer_name]["item"].setVisible(visible)
            logger.debug(f"Layer '{layer_name}' visibility: {visible}")
            if visible and layer_name in ("basemap", "ndvi"):
                self._update_timer.start()

    def is_layer_visible(self, layer_name: str) -> bool:
        return bool(self._layers.get(layer_name, {}).get("visible"))

    def get_layer_names(self) -> List[str]:
        return list(self._layer_order)

    def set_base_map(self, name: str) -> None:
        """Switch the background to ``"osm"``, ``"satellite"`` or ``"none"``."""
        self._base_source = BASE_SOURCES.get(name)
        self._clear_tiles("basemap")
        if self._base_source is not None:
            self._update_timer.start()
        logger.debug(f"Base map: {name}")

    def base_map(self) -> str:
        return self._base_source.name if self._base_source is not None else "none"

    def set_overlay_source(self, source: Optional[TileSource]) -> None:
        """Set the optional overlay tile layer (NDVI)."""
        self._overlay_source = source
        self._clear_tiles("ndvi")
        self.set_layer_visibility("ndvi", source is not None)

    def set_print_mode(self, enabled: bool) -> None:
        """White background without tiles, for printing."""
        self._print_mode = enabled
        self._plot_widget.setBackground("w" if enabled else "#E5E7EB")
        self._layers["basemap"]["item"].setVisible(
            not enabled and self._layers["basemap"]["visible"]
        )
        self._layers["ndvi"]["item"].setVisible(
            not enabled and self._layers["ndvi"]["visible"]
        )
        if not enabled:
            self._update_timer.start()

    def is_print_mode(self) -> bool:
        return self._print_mode

    def center_on(self, lon: float, lat: float, zoom: Optional[float] = None) -> None:
        """Center the view on a lon/lat, optionally at a web-map zoom level."""
        x, y = point_to_map(lon, lat)
        if zoom is None:
            rect = self._view_box.viewRect()
            width, height = rect.width(), rect.height()
        else:
            px_w = max(self._view_box.width(), 800)
            px_h = max(self._view_box.height(), 600)
            res = resolution_for_zoom(zoom)
            width, height = px_w * res, px_h * res
        self._view_box.setRange(
            QRectF(x - width / 2, y - height / 2, width, height), padding=0
        )

    def zoom_to_bounds(self, bounds: tuple[float, float, float, float], padding: float = 0.1) -> None:
        """Fit ``(min_lon, min_lat, max_lon, max_lat)`` into the view."""
        min_lon, min_lat, max_lon, max_lat = bounds
        x0, y0 = point_to_map(min_lon, min_lat)
        x1, y1 = point_to_map(max_lon, max_lat)
        width = max(x1 - x0, 50.0)
        height = max(y1 - y0, 50.0)
        cx, cy = (x0 + x1) / 2, (y0 + y1) / 2
        self._view_box.setRange(
            QRectF(cx - width / 2, cy - height / 2, width, height), padding=padding
        )

    def view_center(self) -> tuple[float, float]:
        center = self._view_box.viewRect().center()
        return map_to_lonlat(center.x(), center.y())

    def zoom_level(self) -> float:
        return self._zoom

    def map_units_per_pixel(self) -> float:
        px_width = self._view_box.width()
        if px_width <= 0:
            return resolution_for_zoom(self._zoom)
        return self._view_box.viewRect().width() / px_width

    def _on_view_changed(self) -> None:
        self._update_timer.start()
        res = self.map_units_per_pixel()
        if res > 0:
            self._zoom = float(np.log2(resolution_for_zoom(0) / res))
            self.sigZoomChanged.emit(self._zoom)

    # ------------------------------------------------------------------
    # Tiles
    # ------------------------------------------------------------------
    def _update_visible_tiles(self) -> None:
        if self._tile_loader is None or self._print_mode:
            return
        rect = self._view_box.viewRect()
        bounds = (rect.left(), rect.top(), rect.right(), rect.bottom())
        bounds = (
            min(bounds[0], bounds[2]),
            min(bounds[1], bounds[3]),
            max(bounds[0], bounds[2]),
            max(bounds[1], bounds[3]),
        )
        self._tile_generation += 1
        self._tile_loader.latest_generation = self._tile_generation

        for layer_name, source in (("basemap", self._base_source), ("ndvi", self._overlay_source)):
            if source is None or not self._layers[layer_name]["visible"]:
                continue
            zoom = zoom_for_resolution(self.map_units_per_pixel(), source.max_zoom)
            wanted = list(tiles_for_view(bounds, zoom))[:MAX_TILES_PER_VIEW]
            # Drop tiles outside the current view, including other zoom levels.
            wanted_keys = {(source.name, *t) for t in wanted}
            for key in [k for k in self._tile_items if k[0] == source.name and k not in wanted_keys]:
                self._remove_tile(key)
            missing = [t for t in wanted if (source.name, *t) not in self._tile_items]
            if missing:
                self._sigRequestTiles.emit(source, missing, self._tile_generation)

    def _on_tile_ready(self, source_name: str, x: int, y: int, z: int, data: bytes, generation: int) -> None:
        key = (source_name, x, y, z)
        if generation != self._tile_generation or key in self._tile_items:
            return
        layer_name = "basemap" if source_name in BASE_SOURCES else "ndvi"
        if layer_name == "ndvi" and self._overlay_source is None:
            return
        array = tile_image_array(data)
        if array is None:
            return
        item = pg.ImageItem(array, axisOrder="row-major")
        minx, miny, maxx, maxy = tile_bounds_3857(x, y, z)
        item.setRect(QRectF(minx, miny, maxx - minx, maxy - miny))
        if layer_name == "ndvi":
            item.setOpacity(self._overlay_source.opacity)
        item.setParentItem(self._layers[layer_name]["item"])
        self._tile_items[key] = item
        while len(self._tile_items) > MAX_CACHED_TILES:
            self._remove_tile(next(iter(self._tile_items)))

    def _remove_tile(self, key: tuple) -> None:
        item = self._tile_items.pop(key, None)
        if item is None:
            return
        item.setParentItem(None)
        if item.scene() is not None:
            item.scene().removeItem(item)

    def _clear_tiles(self, layer_name: str) -> None:
        base_names = set(BASE_SOURCES)
        for key in list(self._tile_items):
            if (key[0] in base_names) == (layer_name == "basemap"):
                self._remove_tile(key)

    def tile_count(self) -> int:
        return len(self._tile_items)

    def cleanup(self) -> None:
        """Stop the tile thread and drop scene items."""
        self._update_timer.stop()
        if self._tile_thread is not None:
            if self._tile_loader is not None:
                self._tile_loader.latest_generation = -1
            self._tile_thread.quit()
            self._tile_thread.wait(2000)
            self._tile_thread = None
        self.clear_overlays()
        self.clear_features()
        logger.debug("MapCanvas cleanup complete")

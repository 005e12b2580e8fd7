"""Tests for the Web-Mercator map canvas."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPointF, Qt
from PySide6.QtGui import QColor, QImage

from farmview.core.drawing import FeatureStyle
from farmview.core.geometry import point_to_map
from farmview.gui.components.map_canvas import MAX_CACHED_TILES, MapCanvas, tile_image_array
from farmview.utils.tiles import NDVI

SQUARE = [[-47.1, -22.1], [-47.0, -22.1], [-47.0, -22.0], [-47.1, -22.0]]
STYLE = FeatureStyle(stroke="#10B981", fill_rgba=(16, 185, 129, 102), width=2.0, label="A")


class _ClickEvent:
    """Mouse click stand-in carrying a scene position and button."""

    def __init__(self, x: float, y: float, button=Qt.MouseButton.LeftButton) -> None:
        self._pos = QPointF(x, y)
        self._button = button

    def pos(self) -> QPointF:
        return self._pos

    def button(self):
        return self._button


def _png_bytes(color: str = "#FF0000", size: int = 4) -> bytes:
    image = QImage(size, size, QImage.Format.Format_RGBA8888)
    image.fill(QColor(color))
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    return bytes(data.data())


@pytest.fixture
def canvas(qtbot) -> MapCanvas:
    canvas = MapCanvas(load_tiles=False)
    qtbot.addWidget(canvas)
    yield canvas
    canvas.cleanup()


def test_layers_are_stacked_and_ndvi_starts_hidden(canvas) -> None:
    """The canvas should create its fixed layers with NDVI hidden."""
    assert canvas.get_layer_names() == ["basemap", "ndvi", "blocks", "labels"]
    assert canvas.is_layer_visible("basemap") is True
    assert canvas.is_layer_visible("ndvi") is False


def test_set_features_builds_polygons_and_bounds(canvas) -> None:
    """Features should become polygon items with map-unit bounds."""
    canvas.set_features([("b1", SQUARE, STYLE), ("bad", SQUARE[:2], STYLE)])

    assert canvas.feature_ids() == ["b1"]
    assert canvas.feature_item("b1") is not None
    min_x, min_y = point_to_map(-47.1, -22.1)
    max_x, max_y = point_to_map(-47.0, -22.0)
    assert canvas._layers["blocks"]["bounds"] == pytest.approx((min_x, min_y, max_x, max_y))

    canvas.set_features([])
    assert canvas.feature_ids() == []
    assert canvas._layers["blocks"]["bounds"] is None


def test_click_handlers_receive_lonlat_until_consumed(canvas, monkeypatch) -> None:
    """Click handlers should get lon/lat and stop at the first True."""
    monkeypatch.setattr(canvas._view_box, "mapToView", lambda pos: pos)
    calls = []
    canvas.register_click_handler(lambda lon, lat, button: calls.append(("a", lon, lat)) or True)
    canvas.register_click_handler(lambda lon, lat, button: calls.append(("b", lon, lat)) or True)
    x, y = point_to_map(-47.05, -22.05)

    canvas._on_canvas_clicked(_ClickEvent(x, y))

    assert len(calls) == 1
    assert calls[0][0] == "a"
    assert calls[0][1] == pytest.approx(-47.05)
    assert calls[0][2] == pytest.approx(-22.05)


def test_drag_and_hover_handlers_use_lonlat(canvas, qtbot) -> None:
    """Drag and hover events should be converted from map units."""
    drags, hovers = [], []
    canvas.register_drag_handler(lambda phase, lon, lat: drags.append(phase) or phase == "press")
    canvas.register_hover_handler(lambda lon, lat: hovers.append((lon, lat)))
    x, y = point_to_map(-47.05, -22.05)

    assert canvas._on_canvas_drag("press", x, y) is True
    assert canvas._on_canvas_drag("drag", x, y) is False
    with qtbot.waitSignal(canvas.sigCoordinateChanged) as blocker:
        canvas._on_coordinate_hover(x, y)

    assert drags == ["press", "drag"]
    assert hovers[0] == pytest.approx((-47.05, -22.05))
    assert blocker.args == pytest.approx([-47.05, -22.05])


def test_unregistered_handler_is_not_called(canvas) -> None:
    """Removing a handler should stop its notifications."""
    hovers = []

    def handler(lon, lat):
        hovers.append(lon)

    canvas.register_hover_handler(handler)
    canvas.unregister_hover_handler(handler)
    canvas._on_coordinate_hover(0.0, 0.0)

    assert hovers == []


def test_base_map_overlay_and_print_mode(canvas) -> None:
    """Base map, NDVI overlay and print mode should toggle layer state."""
    canvas.set_base_map("satellite")
    assert canvas.base_map() == "satellite"
    canvas.set_base_map("none")
    assert canvas.base_map() == "none"

    canvas.set_overlay_source(NDVI)
    assert canvas.is_layer_visible("ndvi") is True
    canvas.set_overlay_source(None)
    assert canvas.is_layer_visible("ndvi") is False

    canvas.set_print_mode(True)
    assert canvas.is_print_mode() is True
    assert canvas._layers["basemap"]["item"].isVisible() is False
    canvas.set_print_mode(False)
    assert canvas._layers["basemap"]["item"].isVisible() is True


def test_center_on_moves_view_center(canvas) -> None:
    """Centering should put the requested lon/lat in the middle of the view."""
    canvas.center_on(-47.05, -22.05, 14)

    lon, lat = canvas.view_center()
    assert lon == pytest.approx(-47.05, abs=1e-6)
    assert lat == pytest.approx(-22.05, abs=1e-6)


def test_zoom_to_bounds_covers_the_box(canvas) -> None:
    """Fitting bounds should show the whole box."""
    canvas.zoom_to_bounds((-47.1, -22.1, -47.0, -22.0))

    rect = canvas._view_box.viewRect()
    min_x, min_y = point_to_map(-47.1, -22.1)
    max_x, max_y = point_to_map(-47.0, -22.0)
    assert rect.left() <= min_x and rect.right() >= max_x
    assert min(rect.top(), rect.bottom()) <= min_y
    assert max(rect.top(), rect.bottom()) >= max_y


def test_overlay_items_are_tracked(canvas) -> None:
    """Overlay items should be added once and removed by clear."""
    path = canvas.make_path_item(SQUARE, "#F59E0B", closed=True, dashed=True)
    vertices = canvas.make_vertex_item(SQUARE, "#111827")
    canvas.add_overlay_item(path)
    canvas.add_overlay_item(path)
    canvas.add_overlay_item(vertices)

    assert canvas._overlay_items == [path, vertices]
    assert path.zValue() >= 100

    canvas.clear_overlays()
    assert canvas._overlay_items == []


def test_tile_ready_adds_image_for_current_generation(canvas) -> None:
    """Tiles of the current generation should be placed, stale ones dropped."""
    data = _png_bytes()

    canvas._on_tile_ready("osm", 0, 0, 1, data, canvas._tile_generation + 1)
    assert canvas.tile_count() == 0

    canvas._on_tile_ready("osm", 0, 0, 1, data, canvas._tile_generation)
    assert canvas.tile_count() == 1

    canvas._on_tile_ready("ndvi", 0, 0, 1, data, canvas._tile_generation)
    assert canvas.tile_count() == 1

    canvas.set_base_map("satellite")
    assert canvas.tile_count() == 0


def test_tile_cache_is_capped(canvas) -> None:
    """Placed tiles should never exceed the cache cap."""
    data = _png_bytes()
    for x in range(MAX_CACHED_TILES + 20):
        canvas._on_tile_ready("osm", x, 0, 10, data, canvas._tile_generation)

    assert canvas.tile_count() == MAX_CACHED_TILES
    assert ("osm", 0, 0, 10) not in canvas._tile_items
    assert ("osm", MAX_CACHED_TILES + 19, 0, 10) in canvas._tile_items


def test_panning_drops_tiles_outside_the_view(canvas) -> None:
    """Tiles left behind by a pan at the same zoom should be removed."""
    canvas._tile_loader = SimpleNamespace(latest_generation=0)
    requested = []
    canvas._sigRequestTiles.connect(lambda source, tiles, gen: requested.append((source.name, tiles, gen)))
    data = _png_bytes()

    canvas.center_on(-47.05, -22.05, zoom=16)
    canvas._update_visible_tiles()
    name, first_tiles, generation = requested[-1]
    for x, y, z in first_tiles:
        canvas._on_tile_ready(name, x, y, z, data, generation)
    assert canvas.tile_count() == len(first_tiles)

    canvas.center_on(-46.0, -23.0, zoom=16)
    canvas._update_visible_tiles()

    assert canvas.tile_count() == 0
    assert all((name, *t) not in canvas._tile_items for t in first_tiles)


def test_tile_image_array_decodes_rgba(qtbot) -> None:
    """Decoded tiles should be RGBA arrays; broken bytes give None."""
    array = tile_image_array(_png_bytes("#00FF00", size=2))

    assert array.shape == (2, 2, 4)
    assert tuple(array[0, 0]) == (0, 255, 0, 255)
    assert tile_image_array(b"not an image") is None

"""
Map editor page: draw, edit, delete, measure and multi-select farm blocks.

Pointer events from the map canvas go to a :class:`BlockDrawingController`;
its callbacks persist changes through the block store and the page repaints
from the controller state.
"""

from pathlib import Path
from typing import Optional

from loguru import logger
from PySide6.QtCore import Qt, Slot
from PySide6.QtWidgets import QFileDialog, QWidget
from qfluentwidgets import (
    CheckBox,
    ComboBox,
    InfoBar,
    MessageBox,
    PushButton,
    SearchLineEdit,
    TogglePushButton,
)
from qfluentwidgets import FluentIcon as FIF

from farmview.core.blocks import validate_block_form
from farmview.core.drawing import (
    BlockDrawingController,
    DrawingMode,
    DrawnPolygon,
    MeasureResult,
    SelectionSummary,
)
from farmview.core.geometry import blocks_bounds, blocks_center
from farmview.core.models import Block
from farmview.core.palette import BLOCK_COLORS, TRANSPARENCY_PRESETS
from farmview.errors import BackendError, ImportFormatError, ValidationError
from farmview.gui.components.base_interface import PageGroup, TabInterface
from farmview.gui.components.block_form import BlockFormPanel
from farmview.gui.components.map_canvas import DEFAULT_CENTER, DEFAULT_ZOOM
from farmview.gui.config import BaseMap, cfg, tr
from farmview.gui.context import AppContext
from farmview.utils.block_io import (
    export_geojson,
    export_shapefile_zip,
    import_geojson,
    import_shapefile_zip,
)
from farmview.utils.tiles import NDVI

SKETCH_VERTEX_COLOR = "#111827"
MEASURE_COLOR = "#F59E0B"
EDIT_HANDLE_COLOR = "#2563EB"

MODE_BUTTONS = (
    (DrawingMode.POLYGON, FIF.EDIT, "page.map.btn.draw"),
    (DrawingMode.EDIT, FIF.MOVE, "page.map.btn.edit"),
    (DrawingMode.DELETE, FIF.DELETE, "page.map.btn.delete"),
    (DrawingMode.MEASURE, FIF.CALORIES, "page.map.btn.measure"),
    (DrawingMode.MULTISELECT, FIF.CHECKBOX, "page.map.btn.multiselect"),
)


class MapEditorTab(TabInterface):
    """
    Interface content for the block map editor.
    """

    def __init__(
        self,
        context: AppContext,
        parent: Optional[QWidget] = None,
        load_tiles: bool = True,
    ) -> None:
        self.context = context
        self.controller = BlockDrawingController()
        self._overlay_items = []
        self._places = []
        super().__init__(parent, load_tiles=load_tiles)
        self._init_ui()
        self._connect_controller()
        self._connect_canvas()

        context.blocks.subscribe(self._on_blocks_changed)
        context.farms.subscribe(self._refresh_farm_combo)
        context.sigFarmChanged.connect(self._on_farm_changed)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    @property
    def canvas(self):
        return self.map_component.map_canvas

    def _init_ui(self) -> None:
        # --- Farm Group ---
        farm_group = PageGroup(tr("page.map.group.farm"))
        self.combo_farm = ComboBox()
        self.combo_farm.setMinimumWidth(180)
        self.combo_farm.currentIndexChanged.connect(self._on_farm_selected)
        farm_group.add_widget(self.combo_farm)

        self.search_location = SearchLineEdit()
        self.search_location.setPlaceholderText(tr("page.map.placeholder.search"))
        self.search_location.searchSignal.connect(self._on_search_location)
        farm_group.add_widget(self.search_location)

        self.combo_places = ComboBox()
        self.combo_places.setMinimumWidth(160)
        self.combo_places.setVisible(False)
        self.combo_places.currentIndexChanged.connect(self._on_place_selected)
        farm_group.add_widget(self.combo_places)
        self.add_group(farm_group)

        # --- Draw Group ---
        draw_group = PageGroup(tr("page.map.group.draw"))
        self.mode_buttons = {}
        for mode, icon, key in MODE_BUTTONS:
            button = TogglePushButton(icon, tr(key))
            button.clicked.connect(lambda checked=False, m=mode: self._on_mode_button(m))
            draw_group.add_widget(button)
            self.mode_buttons[mode] = button

        self.combo_draw_color = ComboBox()
        for entry in BLOCK_COLORS:
            self.combo_draw_color.addItem(entry.label, userData=entry.value)
        self.combo_draw_color.currentIndexChanged.connect(self._on_draw_style_changed)
        draw_group.add_widget(self.combo_draw_color)

        self.combo_draw_alpha = ComboBox()
        for value in TRANSPARENCY_PRESETS:
            self.combo_draw_alpha.addItem(f"{int(value * 100)}%", userData=value)
        default_alpha = cfg.get(cfg.defaultTransparency)
        self.combo_draw_alpha.setCurrentIndex(
            min(range(len(TRANSPARENCY_PRESETS)), key=lambda i: abs(TRANSPARENCY_PRESETS[i] - default_alpha))
        )
        self.combo_draw_alpha.currentIndexChanged.connect(self._on_draw_style_changed)
        draw_group.add_widget(self.combo_draw_alpha)
        self.add_group(draw_group)

        # --- View Group ---
        view_group = PageGroup(tr("page.map.group.view"))
        self.combo_base_map = ComboBox()
        for name in ("osm", "satellite", "none"):
            self.combo_base_map.addItem(tr(f"page.map.basemap.{name}"), userData=name)
        self.combo_base_map.setCurrentIndex(
            ["osm", "satellite", "none"].index(cfg.get(cfg.baseMap).value)
        )
        self.combo_base_map.currentIndexChanged.connect(self._on_base_map_changed)
        view_group.add_widget(self.combo_base_map)

        self.check_ndvi = CheckBox(tr("page.map.check.ndvi"))
        self.check_ndvi.stateChanged.connect(self._on_ndvi_toggled)
        view_group.add_widget(self.check_ndvi)

        self.check_print = CheckBox(tr("page.map.check.print"))
        self.check_print.stateChanged.connect(self._on_print_toggled)
        view_group.add_widget(self.check_print)

        self.btn_center = PushButton(FIF.ZOOM, tr("page.map.btn.center"))
        self.btn_center.clicked.connect(self.center_map)
        view_group.add_widget(self.btn_center)
        self.add_group(view_group)

        # --- File Group ---
        file_group = PageGroup(tr("page.map.group.file"))
        self.btn_import = PushButton(FIF.DOWNLOAD, tr("page.map.btn.import"))
        self.btn_import.clicked.connect(self._on_import)
        file_group.add_widget(self.btn_import)
        self.btn_export_geojson = PushButton(FIF.SHARE, tr("page.map.btn.export_geojson"))
        self.btn_export_geojson.clicked.connect(lambda: self._on_export("geojson"))
        file_group.add_widget(self.btn_export_geojson)
        self.btn_export_shp = PushButton(FIF.SHARE, tr("page.map.btn.export_shp"))
        self.btn_export_shp.clicked.connect(lambda: self._on_export("shp"))
        file_group.add_widget(self.btn_export_shp)
        self.add_group(file_group)
        self.add_stretch()

        # --- Side panel ---
        self.block_form = BlockFormPanel()
        self.block_form.sigSaveRequested.connect(self._on_save_block)
        self.block_form.sigCloseRequested.connect(self._on_close_form)
        self.set_side_panel(self.block_form)

        self.canvas.set_base_map(cfg.get(cfg.baseMap).value)
        cfg.baseMap.valueChanged.connect(self._on_base_map_config_changed)
        self.map_component.layer_panel.sigColorFilterChanged.connect(self._apply_filter)
        self._on_draw_style_changed()

    def _connect_controller(self) -> None:
        ctrl = self.controller
        ctrl.on_polygon_drawn = self._on_polygon_drawn
        ctrl.on_block_update = self._on_block_update
        ctrl.on_block_delete = self._on_block_delete
        ctrl.on_block_select = self._on_block_select
        ctrl.on_selection_changed = self._on_selection_changed
        ctrl.on_measure_changed = self._on_measure_changed
        ctrl.on_mode_changed = self._on_mode_changed
        ctrl.on_changed = self.render
        ctrl.on_sketch_changed = self.render_overlays
        ctrl.confirm_delete = self._confirm_delete

    def _connect_canvas(self) -> None:
        canvas = self.canvas
        canvas.register_click_handler(self._on_map_click)
        canvas.register_double_click_handler(self._on_map_double_click)
        canvas.register_hover_handler(self.controller.hover)
        canvas.register_drag_handler(self._on_map_drag)
        canvas.sigZoomChanged.connect(self._update_snap_tolerance)
        self._update_snap_tolerance()

    # ------------------------------------------------------------------
    # Canvas events
    # ------------------------------------------------------------------
    def _on_map_click(self, lon: float, lat: float, button) -> bool:
        if button != Qt.MouseButton.LeftButton:
            return False
        return self.controller.click(lon, lat)

    def _on_map_double_click(self, lon: float, lat: float, button) -> bool:
        return self.controller.double_click(lon, lat) is not None

    def _on_map_drag(self, phase: str, lon: float, lat: float) -> bool:
        if phase == "press":
            return self.controller.press(lon, lat)
        if phase == "drag":
            return self.controller.drag(lon, lat)
        return self.controller.release(lon, lat)

    def _update_snap_tolerance(self, *_args) -> None:
        self.controller.snap_tolerance = (
            self.canvas.map_units_per_pixel() * cfg.get(cfg.snapPixels)
        )

    def keyPressEvent(self, event) -> None:
        key = event.key()
        if key == Qt.Key.Key_Escape:
            self.controller.cancel()
        elif key == Qt.Key.Key_Backspace:
            self.controller.undo_last_vertex()
        elif key in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            self.controller.finish_polygon()
        else:
            super().keyPressEvent(event)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(self) -> None:
        """Repaint features and transient overlays from the controller."""
        ctrl = self.controller
        self.canvas.set_features(
            [
                (f.feature_id, f.coordinates, ctrl.feature_style(f.feature_id))
                for f in ctrl.features
            ]
        )
        self.render_overlays()

    def render_overlays(self) -> None:
        """Repaint only the transient overlays, leaving block polygons in place."""
        ctrl = self.controller
        for item in self._overlay_items:
            self.canvas.remove_overlay_item(item)
        self._overlay_items = []

        if ctrl.mode == DrawingMode.POLYGON and ctrl.sketch:
            style = ctrl.sketch_style()
            preview = ctrl.sketch_preview()
            self._add_overlay(
                self.canvas.make_path_item(
                    preview,
                    style.stroke,
                    closed=len(preview) >= 3,
                    dashed=True,
                    fill_rgba=style.fill_rgba,
                )
            )
            self._add_overlay(self.canvas.make_vertex_item(ctrl.sketch, SKETCH_VERTEX_COLOR))
        elif ctrl.mode == DrawingMode.EDIT and ctrl.selected_feature is not None:
            self._add_overlay(
                self.canvas.make_vertex_item(ctrl.selected_feature.coordinates, EDIT_HANDLE_COLOR)
            )
        elif ctrl.mode == DrawingMode.MEASURE and ctrl.measure_path:
            self._add_overlay(self.canvas.make_path_item(ctrl.measure_path, MEASURE_COLOR, width=3))
            self._add_overlay(self.canvas.make_vertex_item(ctrl.measure_path, MEASURE_COLOR, size=7))

    def _add_overlay(self, item) -> None:
        self.canvas.add_overlay_item(item)
        self._overlay_items.append(item)

    # ------------------------------------------------------------------
    # Controller callbacks
    # ------------------------------------------------------------------
    def _on_polygon_drawn(self, drawn: DrawnPolygon) -> None:
        farm = self.context.current_farm
        if farm is None:
            InfoBar.warning(
                title=tr("warning"),
                content=tr("page.map.msg.no_farm"),
                parent=self,
            )
            self._apply_filter()
            return
        try:
            created = self.context.blocks.create(drawn.to_block(farm.id))
        except BackendError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            self._apply_filter()
            return
        InfoBar.success(
            title=tr("success"),
            content=tr("page.map.msg.block_created").format(
                name=created.name, acres=drawn.metrics.area_acres
            ),
            parent=self,
            duration=3000,
        )

    def _on_block_update(self, block_id: str, values: dict) -> None:
        try:
            self.context.blocks.update(block_id, values)
        except BackendError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            # Put the stored geometry back on the map.
            self._apply_filter()

    def _on_block_delete(self, block_id: str) -> None:
        try:
            self.context.blocks.delete(block_id)
        except BackendError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            self._apply_filter()
            return
        if self.block_form.block_id == block_id:
            self.block_form.clear()
        InfoBar.success(
            title=tr("success"), content=tr("page.map.msg.block_deleted"), parent=self, duration=2000
        )

    def _on_block_select(self, block: Optional[Block]) -> None:
        if block is None:
            self.block_form.clear()
        else:
            self.block_form.load_block(block)

    def _on_selection_changed(self, summary: SelectionSummary) -> None:
        self.map_component.status_bar.show_selection(summary)

    def _on_measure_changed(self, result: MeasureResult) -> None:
        self.map_component.status_bar.show_measure(result)

    def _on_mode_changed(self, mode: DrawingMode) -> None:
        for button_mode, button in self.mode_buttons.items():
            button.blockSignals(True)
            button.setChecked(button_mode == mode)
            button.blockSignals(False)
        self.map_component.status_bar.clear_readout()
        cursor = Qt.CursorShape.ArrowCursor if mode == DrawingMode.NONE else Qt.CursorShape.CrossCursor
        self.canvas.setCursor(cursor)

    def _confirm_delete(self, name: str) -> bool:
        box = MessageBox(
            tr("page.map.dialog.delete_title"),
            tr("page.map.dialog.delete_content").format(name=name),
            self.window(),
        )
        box.yesButton.setText(tr("delete"))
        box.cancelButton.setText(tr("cancel"))
        return bool(box.exec())

    # ------------------------------------------------------------------
    # Toolbar
    # ------------------------------------------------------------------
    def _on_mode_button(self, mode: DrawingMode) -> None:
        self.controller.toggle_mode(mode)
        if self.mode_buttons[mode].isChecked() != (self.controller.mode == mode):
            self._on_mode_changed(self.controller.mode)
        self.setFocus()

    def _on_draw_style_changed(self, *_args) -> None:
        color = self.combo_draw_color.currentData()
        alpha = self.combo_draw_alpha.currentData()
        if color is None or alpha is None:
            return
        self.controller.set_draw_style(color, alpha)

    def _on_base_map_changed(self, index: int) -> None:
        name = self.combo_base_map.itemData(index)
        self.canvas.set_base_map(name)
        if cfg.get(cfg.baseMap).value != name:
            cfg.set(cfg.baseMap, BaseMap(name))

    def _on_base_map_config_changed(self, base_map: BaseMap) -> None:
        index = self.combo_base_map.findData(base_map.value)
        if index >= 0 and index != self.combo_base_map.currentIndex():
            self.combo_base_map.setCurrentIndex(index)

    def _on_ndvi_toggled(self, *_args) -> None:
        enabled = self.check_ndvi.isChecked()
        self.canvas.set_overlay_source(NDVI if enabled else None)
        self.map_component.layer_panel.set_layer_checked("ndvi", enabled)

    def _on_print_toggled(self, *_args) -> None:
        self.canvas.set_print_mode(self.check_print.isChecked())

    @Slot()
    def center_map(self) -> None:
        """Center on the visible blocks, else on the farm location."""
        center = blocks_center(self.map_component.color_filter.filtered_blocks)
        if center is None:
            farm = self.context.current_farm
            if farm is not None and farm.latitude is not None and farm.longitude is not None:
                center = (farm.longitude, farm.latitude)
        if center is None:
            center = DEFAULT_CENTER
        self.canvas.center_on(center[0], center[1])

    # ------------------------------------------------------------------
    # Farm and location
    # ------------------------------------------------------------------
    def _refresh_farm_combo(self) -> None:
        farms = self.context.farms.items
        current = self.context.current_farm
        self.combo_farm.blockSignals(True)
        self.combo_farm.clear()
        for farm in farms:
            self.combo_farm.addItem(farm.display_name, userData=farm.id)
        if current is not None:
            for index, farm in enumerate(farms):
                if farm.id == current.id:
                    self.combo_farm.setCurrentIndex(index)
                    break
        self.combo_farm.blockSignals(False)

    def _on_farm_selected(self, index: int) -> None:
        farm_id = self.combo_farm.itemData(index)
        farm = next((f for f in self.context.farms.items if f.id == farm_id), None)
        self.context.set_farm(farm)

    def _on_farm_changed(self, farm) -> None:
        self._refresh_farm_combo()
        self.block_form.clear()
        if self.context.blocks.error:
            InfoBar.error(title=tr("error"), content=self.context.blocks.error, parent=self)
        bounds = blocks_bounds(self.context.blocks.items)
        if bounds is not None:
            self.canvas.zoom_to_bounds(bounds)
        elif farm is not None and farm.latitude is not None and farm.longitude is not None:
            self.canvas.center_on(farm.longitude, farm.latitude, DEFAULT_ZOOM)

    def _on_search_location(self, text: str) -> None:
        results = self.context.geocoder.search(text)
        self._places = results
        self.combo_places.blockSignals(True)
        self.combo_places.clear()
        for place in results:
            self.combo_places.addItem(place.display_name[:60])
        self.combo_places.blockSignals(False)
        self.combo_places.setVisible(len(results) > 1)
        if not results:
            InfoBar.warning(
                title=tr("warning"), content=tr("page.map.msg.location_not_found"), parent=self
            )
            return
        self._go_to_place(0)

    def _on_place_selected(self, index: int) -> None:
        if 0 <= index < len(self._places):
            self._go_to_place(index)

    def _go_to_place(self, index: int) -> None:
        place = self._places[index]
        if place.bounding_box is not None:
            south, north, west, east = place.bounding_box
            self.canvas.zoom_to_bounds((west, south, east, north), padding=0.0)
        else:
            self.canvas.center_on(place.lon, place.lat, DEFAULT_ZOOM)
        logger.info(f"Centered on location: {place.display_name}")

    # ------------------------------------------------------------------
    # Block store
    # ------------------------------------------------------------------
    def _on_blocks_changed(self) -> None:
        color_filter = self.map_component.color_filter
        color_filter.set_blocks(self.context.blocks.items)
        self.map_component.layer_panel.refresh_colors()
        self._apply_filter()
        if self.block_form.block_id is not None:
            block = self.context.blocks.get(self.block_form.block_id)
            if block is None:
                self.block_form.clear()
            else:
                self.block_form.load_block(block)

    def _apply_filter(self) -> None:
        self.controller.set_blocks(self.map_component.color_filter.filtered_blocks)

    def _on_save_block(self, block_id: str, form: dict) -> None:
        try:
            values = validate_block_form(form)
            self.context.blocks.update(block_id, values)
        except ValidationError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return
        except BackendError as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return
        InfoBar.success(
            title=tr("success"), content=tr("page.map.msg.block_saved"), parent=self, duration=2000
        )

    def _on_close_form(self) -> None:
        self.block_form.clear()
        if self.controller.mode == DrawingMode.EDIT:
            self.controller.set_mode(DrawingMode.NONE)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------
    def import_file(self, path: str) -> int:
        """Create blocks from a GeoJSON or zipped Shapefile; returns the count."""
        farm = self.context.current_farm
        if farm is None:
            raise ValidationError("farm", tr("page.map.msg.no_farm"))
        if Path(path).suffix.lower() == ".zip":
            drafts = import_shapefile_zip(path)
        else:
            drafts = import_geojson(path)
        transparency = cfg.get(cfg.defaultTransparency)
        created = 0
        for draft in drafts:
            self.context.blocks.create(draft.to_block(farm.id, transparency))
            created += 1
        return created

    def _on_import(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            tr("page.map.dialog.import"),
            "",
            "GeoJSON (*.geojson *.json);;Zipped Shapefile (*.zip);;All Files (*)",
        )
        if not file_path:
            return
        try:
            count = self.import_file(file_path)
        except (ImportFormatError, ValidationError, BackendError) as exc:
            logger.error(f"Import failed: {exc}")
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return
        InfoBar.success(
            title=tr("success"),
            content=tr("page.map.msg.imported").format(count=count),
            parent=self,
            duration=3000,
        )
        self.center_map()

    def _on_export(self, kind: str) -> None:
        blocks = self.context.blocks.items
        if not blocks:
            InfoBar.warning(title=tr("warning"), content=tr("page.map.msg.no_blocks"), parent=self)
            return
        farm = self.context.current_farm
        stem = (farm.name if farm else "blocks").replace(" ", "_")
        if kind == "geojson":
            file_path, _ = QFileDialog.getSaveFileName(
                self, tr("page.map.dialog.export"), f"{stem}.geojson", "GeoJSON (*.geojson)"
            )
        else:
            file_path, _ = QFileDialog.getSaveFileName(
                self, tr("page.map.dialog.export"), f"{stem}.zip", "Zipped Shapefile (*.zip)"
            )
        if not file_path:
            return
        try:
            if kind == "geojson":
                out_path = export_geojson(blocks, file_path)
            else:
                out_path = export_shapefile_zip(blocks, file_path)
        except (ValueError, OSError) as exc:
            InfoBar.error(title=tr("error"), content=str(exc), parent=self)
            return
        InfoBar.success(
            title=tr("success"),
            content=tr("page.map.msg.exported").format(name=Path(out_path).name),
            parent=self,
            duration=3000,
        )

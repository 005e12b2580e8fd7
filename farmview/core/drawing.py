"""Block drawing interaction state machine.

The controller is Qt-free: the map canvas forwards pointer events in lon/lat
and the controller decides what they mean for the active mode. Results leave
through plain callbacks so the editor page can persist them.

Modes
-----
- ``POLYGON``: click to add vertices, double-click (or click the first
  vertex) to finish.
- ``EDIT``: click selects a block, drag a vertex to reshape it, click an edge
  to insert a vertex, double-click a vertex to remove it.
- ``DELETE``: click a block, confirm, and it is removed.
- ``MEASURE``: click to lay a path, double-click to freeze it.
- ``MULTISELECT``: click blocks to toggle them in the selection and read
  the aggregated area.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

from loguru import logger
from shapely.geometry import LineString, Point

from farmview.core.geometry import (
    BlockMetrics,
    block_polygon,
    compute_block_metrics,
    measure_area,
    measure_path_length,
    open_ring,
    point_to_map,
)
from farmview.core.models import DEFAULT_BLOCK_COLOR, DEFAULT_TRANSPARENCY, Block
from farmview.core.palette import DELETE_HIGHLIGHT, fill_rgba

SELECTED_STROKE = "#2563EB"
DEFAULT_SNAP_TOLERANCE = 15.0


class DrawingMode(str, Enum):
    """Map editor interaction modes."""

    NONE = "none"
    POLYGON = "polygon"
    EDIT = "edit"
    DELETE = "delete"
    MEASURE = "measure"
    MULTISELECT = "multiselect"


@dataclass
class MapFeature:
    """One polygon shown on the map, backed by a block when persisted."""

    feature_id: str
    name: str
    color: str
    transparency: float
    coordinates: list[list[float]]
    block: Block | None = None
    metrics: BlockMetrics = field(default_factory=BlockMetrics)

    @property
    def persisted(self) -> bool:
        return self.block is not None and bool(self.block.id)


@dataclass(frozen=True)
class FeatureStyle:
    """Resolved paint style for one feature."""

    fill_rgba: tuple[int, int, int, int]
    stroke: str
    width: float
    label: str | None


@dataclass(frozen=True)
class DrawnPolygon:
    """Polygon finished in draw mode, ready to be stored as a block."""

    name: str
    color: str
    transparency: float
    coordinates: list[list[float]]
    metrics: BlockMetrics

    def to_block(self, farm_id: str | None) -> Block:
        """Build the block payload created for this polygon."""
        return Block(
            name=self.name,
            farm_id=farm_id,
            color=self.color,
            transparency=self.transparency,
            coordinates=[list(c) for c in self.coordinates],
            area_m2=self.metrics.area_m2,
            area_acres=self.metrics.area_acres,
            perimeter=self.metrics.perimeter,
            has_drain=False,
            ndvi_history=[],
        )


@dataclass(frozen=True)
class SelectionSummary:
    """Aggregated metrics of the multi-selected blocks."""

    count: int = 0
    area_m2: float = 0.0
    area_acres: float = 0.0
    perimeter: float = 0.0
    block_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class MeasureResult:
    """Current measure path readout."""

    points: int = 0
    length_m: float = 0.0
    area_m2: float = 0.0
    finished: bool = False


def _map_distance(a: list[float], b: list[float]) -> float:
    ax, ay = point_to_map(a[0], a[1])
    bx, by = point_to_map(b[0], b[1])
    return ((ax - bx) ** 2 + (ay - by) ** 2) ** 0.5


class BlockDrawingController:
    """Interpret map pointer events for the active drawing mode.

    Parameters
    ----------
    snap_tolerance : float, optional
        Pick/snap radius in Web Mercator map units. The canvas updates it
        with the zoom level so it stays a fixed number of screen pixels.
    now_ms : Callable[[], int], optional
        Clock used for new block names.

    Examples
    --------
    >>> ctrl = BlockDrawingController()
    >>> ctrl.set_mode(DrawingMode.POLYGON)
    >>> for lon, lat in [(0, 0), (0.01, 0), (0.01, 0.01)]:
    ...     _ = ctrl.click(lon, lat)
    >>> ctrl.double_click(0.01, 0.01).metrics.area_m2 > 0
    True
    """

    def __init__(
        self,
        snap_tolerance: float = DEFAULT_SNAP_TOLERANCE,
        now_ms: Callable[[], int] | None = None,
    ) -> None:
        self.snap_tolerance = snap_tolerance
        self._now_ms = now_ms or (lambda: int(time.time() * 1000))

        self.mode = DrawingMode.NONE
        self.draw_color = DEFAULT_BLOCK_COLOR
        self.draw_transparency = DEFAULT_TRANSPARENCY

        self._features: dict[str, MapFeature] = {}
        self._draft_seq = 0
        self._sketch: list[list[float]] = []
        self._hover: list[float] | None = None
        self._selected_id: str | None = None
        self._delete_id: str | None = None
        self._multi_ids: list[str] = []
        self._measure: list[list[float]] = []
        self._measure_finished = False
        self._drag: tuple[str, int] | None = None
        self._drag_origin: list[list[float]] | None = None

        # Outbound callbacks; the editor page assigns what it needs.
        self.on_polygon_drawn: Callable[[DrawnPolygon], None] | None = None
        self.on_block_update: Callable[[str, dict], None] | None = None
        self.on_block_delete: Callable[[str], None] | None = None
        self.on_block_select: Callable[[Block | None], None] | None = None
        self.on_selection_changed: Callable[[SelectionSummary], None] | None = None
        self.on_measure_changed: Callable[[MeasureResult], None] | None = None
        self.on_mode_changed: Callable[[DrawingMode], None] | None = None
        self.on_changed: Callable[[], None] | None = None
        # Fired when only the sketch preview moved; falls back to on_changed.
        self.on_sketch_changed: Callable[[], None] | None = None
        self.confirm_delete: Callable[[str], bool] = lambda _name: True

    # ------------------------------------------------------------------
    # Features
    # ------------------------------------------------------------------
    def set_blocks(self, blocks: Iterable[Block]) -> None:
        """Load blocks as map features, replacing drafts and stale ones."""
        features: dict[str, MapFeature] = {}
        for block in blocks:
            ring = open_ring(block.coordinates or [])
            if len(ring) < 3 or not block.id:
                logger.warning(f"Skipping block without id or polygon: {block.name!r}")
                continue
            if block.area_m2 is not None and block.perimeter is not None:
                metrics = BlockMetrics(
                    area_m2=float(block.area_m2),
                    area_acres=float(block.area_acres or 0.0),
                    perimeter=float(block.perimeter),
                )
            else:
                metrics = compute_block_metrics(ring)
            features[block.id] = MapFeature(
                feature_id=block.id,
                name=block.name,
                color=block.color or DEFAULT_BLOCK_COLOR,
                transparency=(
                    DEFAULT_TRANSPARENCY
                    if block.transparency is None
                    else block.transparency
                ),
                coordinates=ring,
                block=block,
                metrics=metrics,
            )
        self._features = features

        if self._selected_id not in features:
            self._selected_id = None
        self._multi_ids = [fid for fid in self._multi_ids if fid in features]
        self._drag = None
        self._drag_origin = None
        self._notify_changed()

    @property
    def features(self) -> list[MapFeature]:
        """Features in paint order, bottom first."""
        return list(self._features.values())

    def feature(self, feature_id: str) -> MapFeature | None:
        return self._features.get(feature_id)

    def hit_test(self, lon: float, lat: float) -> MapFeature | None:
        """Return the topmost feature covering the point."""
        point = Point(lon, lat)
        for feature in reversed(list(self._features.values())):
            polygon = block_polygon(feature)
            if polygon is not None and polygon.covers(point):
                return feature
        return None

    # ------------------------------------------------------------------
    # Mode and style
    # ------------------------------------------------------------------
    def set_mode(self, mode: DrawingMode) -> None:
        """Switch mode, dropping the transient state of the previous one."""
        mode = DrawingMode(mode)
        if mode == self.mode:
            return
        self._clear_transient()
        self.mode = mode
        logger.debug(f"Drawing mode: {mode.value}")
        if self.on_mode_changed is not None:
            self.on_mode_changed(mode)
        self._notify_changed()

    def toggle_mode(self, mode: DrawingMode) -> DrawingMode:
        """Activate ``mode``, or return to ``NONE`` when already active."""
        mode = DrawingMode(mode)
        self.set_mode(DrawingMode.NONE if mode == self.mode else mode)
        return self.mode

    def set_draw_style(self, color: str, transparency: float) -> None:
        self.draw_color = color
        self.draw_transparency = float(transparency)
        self._notify_changed()

    def feature_style(self, feature_id: str) -> FeatureStyle:
        """Resolve the paint style of a feature for the current state."""
        feature = self._features[feature_id]
        if self.mode == DrawingMode.DELETE and feature_id == self._delete_id:
            color, alpha = DELETE_HIGHLIGHT
            return FeatureStyle(fill_rgba(color, alpha), color, 2.0, feature.name)

        fill = fill_rgba(feature.color, feature.transparency)
        selected = feature_id == self._selected_id or feature_id in self._multi_ids
        if selected:
            return FeatureStyle(fill, SELECTED_STROKE, 4.0, feature.name)
        return FeatureStyle(fill, feature.color, 2.0, feature.name)

    def sketch_style(self) -> FeatureStyle:
        return FeatureStyle(
            fill_rgba(self.draw_color, self.draw_transparency),
            self.draw_color,
            2.0,
            None,
        )

    # ------------------------------------------------------------------
    # Read-only state for rendering
    # ------------------------------------------------------------------
    @property
    def selected_feature(self) -> MapFeature | None:
        if self._selected_id is None:
            return None
        return self._features.get(self._selected_id)

    @property
    def multi_selection(self) -> list[str]:
        return list(self._multi_ids)

    @property
    def sketch(self) -> list[list[float]]:
        return [list(p) for p in self._sketch]

    def sketch_preview(self) -> list[list[float]]:
        """Sketch vertices plus the hover point as rubber band."""
        preview = self.sketch
        if preview and self._hover is not None:
            preview.append(list(self._hover))
        return preview

    @property
    def measure_path(self) -> list[list[float]]:
        return [list(p) for p in self._measure]

    def measure_result(self) -> MeasureResult:
        return MeasureResult(
            points=len(self._measure),
            length_m=round(measure_path_length(self._measure), 2),
            area_m2=round(measure_area(self._measure), 2)
            if len(self._measure) >= 3
            else 0.0,
            finished=self._measure_finished,
        )

    def selection_summary(self) -> SelectionSummary:
        """Aggregate stored metrics of the multi-selected features."""
        area_m2 = area_acres = perimeter = 0.0
        ids = []
        for fid in self._multi_ids:
            feature = self._features.get(fid)
            if feature is None:
                continue
            metrics = feature.metrics
            if metrics.area_m2 == 0.0:
                metrics = compute_block_metrics(feature.coordinates)
            area_m2 += metrics.area_m2
            area_acres += metrics.area_acres
            perimeter += metrics.perimeter
            ids.append(fid)
        return SelectionSummary(
            count=len(ids),
            area_m2=round(area_m2, 2),
            area_acres=round(area_acres, 4),
            perimeter=round(perimeter, 2),
            block_ids=tuple(ids),
        )

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------
    def click(self, lon: float, lat: float) -> bool:
        """Handle a single left click.

        Returns
        -------
        bool
            True when the click was consumed by the active mode.
        """
        point = [float(lon), float(lat)]
        if self.mode == DrawingMode.POLYGON:
            self._click_polygon(point)
            return True
        if self.mode == DrawingMode.EDIT:
            self._click_edit(point)
            return True
        if self.mode == DrawingMode.DELETE:
            self._click_delete(point)
            return True
        if self.mode == DrawingMode.MEASURE:
            self._click_measure(point)
            return True
        if self.mode == DrawingMode.MULTISELECT:
            self._click_multiselect(point)
            return True
        return False

    def double_click(self, lon: float, lat: float):
        """Handle a double click.

        Returns
        -------
        DrawnPolygon | MeasureResult | bool | None
            Finished polygon in draw mode, frozen readout in measure mode,
            vertex-removal flag in edit mode, otherwise ``None``.
        """
        if self.mode == DrawingMode.POLYGON:
            return self.finish_polygon()
        if self.mode == DrawingMode.MEASURE:
            self._measure_finished = True
            return self._emit_measure()
        if self.mode == DrawingMode.EDIT:
            return self._remove_vertex_near([float(lon), float(lat)])
        return None

    def hover(self, lon: float, lat: float) -> None:
        self._hover = [float(lon), float(lat)]
        if self.mode == DrawingMode.POLYGON and self._sketch:
            if self.on_sketch_changed is not None:
                self.on_sketch_changed()
            else:
                self._notify_changed()

    def press(self, lon: float, lat: float) -> bool:
        """Start a vertex drag in edit mode.

        Returns
        -------
        bool
            True when a vertex of the selected feature was grabbed.
        """
        if self.mode != DrawingMode.EDIT:
            return False
        feature = self.selected_feature
        if feature is None:
            return False
        index = self._nearest_vertex(feature.coordinates, [float(lon), float(lat)])
        if index is None:
            return False
        self._drag = (feature.feature_id, index)
        self._drag_origin = [list(c) for c in feature.coordinates]
        return True

    def drag(self, lon: float, lat: float) -> bool:
        if self._drag is None:
            return False
        feature_id, index = self._drag
        feature = self._features.get(feature_id)
        if feature is None:
            self._drag = None
            return False
        feature.coordinates[index] = [float(lon), float(lat)]
        self._notify_changed()
        return True

    def release(self, lon: float, lat: float) -> bool:
        """Finish a vertex drag and commit the new geometry."""
        if self._drag is None:
            return False
        self.drag(lon, lat)
        feature_id, _ = self._drag
        self._drag = None
        self._drag_origin = None
        feature = self._features.get(feature_id)
        if feature is not None:
            self._commit_geometry(feature)
        return True

    def cancel(self) -> None:
        """Abort the current gesture (Escape)."""
        if self._drag is not None and self._drag_origin is not None:
            feature = self._features.get(self._drag[0])
            if feature is not None:
                feature.coordinates = self._drag_origin
        self._clear_transient()
        self._notify_changed()

    def undo_last_vertex(self) -> bool:
        """Drop the last sketch or measure vertex (Backspace)."""
        if self.mode == DrawingMode.POLYGON and self._sketch:
            self._sketch.pop()
            self._notify_changed()
            return True
        if self.mode == DrawingMode.MEASURE and self._measure and not self._measure_finished:
            self._measure.pop()
            self._emit_measure()
            return True
        return False

    def finish_polygon(self) -> DrawnPolygon | None:
        """Close the current sketch into a new polygon.

        Sketches with fewer than three distinct vertices are discarded.
        """
        ring = open_ring(self._sketch)
        self._sketch = []
        if len({tuple(p) for p in ring}) < 3:
            logger.debug("Sketch discarded: fewer than 3 vertices")
            self._notify_changed()
            return None

        metrics = compute_block_metrics(ring)
        drawn = DrawnPolygon(
            name=f"Bloco {self._now_ms()}",
            color=self.draw_color,
            transparency=self.draw_transparency,
            coordinates=ring,
            metrics=metrics,
        )
        self._draft_seq += 1
        draft_id = f"draft-{self._draft_seq}"
        self._features[draft_id] = MapFeature(
            feature_id=draft_id,
            name=drawn.name,
            color=drawn.color,
            transparency=drawn.transparency,
            coordinates=[list(c) for c in ring],
            metrics=metrics,
        )
        logger.info(f"Polygon drawn: {drawn.name} ({metrics.area_acres} acres)")
        if self.on_polygon_drawn is not None:
            self.on_polygon_drawn(drawn)
        self._notify_changed()
        return drawn

    # ------------------------------------------------------------------
    # Mode handlers
    # ------------------------------------------------------------------
    def _click_polygon(self, point: list[float]) -> None:
        if len(self._sketch) >= 3:
            if _map_distance(point, self._sketch[0]) <= self.snap_tolerance:
                self.finish_polygon()
                return
        point = self._snap(point)
        if self._sketch and self._sketch[-1] == point:
            return
        self._sketch.append(point)
        self._notify_changed()

    def _click_edit(self, point: list[float]) -> None:
        feature = self.selected_feature
        if feature is not None:
            if self._nearest_vertex(feature.coordinates, point) is not None:
                return
            index = self._nearest_edge(feature.coordinates, point)
            if index is not None:
                feature.coordinates.insert(index + 1, point)
                self._commit_geometry(feature)
                return

        hit = self.hit_test(*point)
        self._selected_id = hit.feature_id if hit is not None else None
        if self.on_block_select is not None:
            self.on_block_select(hit.block if hit is not None else None)
        self._notify_changed()

    def _click_delete(self, point: list[float]) -> None:
        hit = self.hit_test(*point)
        if hit is None or not hit.persisted:
            return
        self._delete_id = hit.feature_id
        self._notify_changed()
        try:
            confirmed = self.confirm_delete(hit.name)
        finally:
            self._delete_id = None
        if confirmed:
            self._features.pop(hit.feature_id, None)
            self._multi_ids = [f for f in self._multi_ids if f != hit.feature_id]
            if self._selected_id == hit.feature_id:
                self._selected_id = None
            logger.info(f"Block deleted on map: {hit.name}")
            if self.on_block_delete is not None:
                self.on_block_delete(hit.feature_id)
        self._notify_changed()

    def _click_measure(self, point: list[float]) -> None:
        if self._measure_finished:
            self._measure = []
            self._measure_finished = False
        self._measure.append(point)
        self._emit_measure()

    def _click_multiselect(self, point: list[float]) -> None:
        hit = self.hit_test(*point)
        if hit is None:
            return
        if hit.feature_id in self._multi_ids:
            self._multi_ids.remove(hit.feature_id)
        else:
            self._multi_ids.append(hit.feature_id)
        if self.on_selection_changed is not None:
            self.on_selection_changed(self.selection_summary())
        self._notify_changed()

    def _remove_vertex_near(self, point: list[float]) -> bool:
        feature = self.selected_feature
        if feature is None or len(feature.coordinates) <= 3:
            return False
        index = self._nearest_vertex(feature.coordinates, point)
        if index is None:
            return False
        del feature.coordinates[index]
        self._commit_geometry(feature)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _commit_geometry(self, feature: MapFeature) -> None:
        feature.coordinates = open_ring(feature.coordinates)
        feature.metrics = compute_block_metrics(feature.coordinates)
        self._notify_changed()
        if not feature.persisted:
            return
        updates = {"coordinates": [list(c) for c in feature.coordinates]}
        updates.update(feature.metrics.as_dict())
        logger.debug(f"Geometry changed: {feature.name}")
        if self.on_block_update is not None:
            self.on_block_update(feature.feature_id, updates)

    def _snap(self, point: list[float]) -> list[float]:
        best, best_dist = None, self.snap_tolerance
        for feature in self._features.values():
            for vertex in feature.coordinates:
                dist = _map_distance(point, vertex)
                if dist <= best_dist:
                    best, best_dist = vertex, dist
        return list(best) if best is not None else point

    def _nearest_vertex(self, coords: list[list[float]], point: list[float]) -> int | None:
        best, best_dist = None, self.snap_tolerance
        for index, vertex in enumerate(coords):
            dist = _map_distance(point, vertex)
            if dist <= best_dist:
                best, best_dist = index, dist
        return best

    def _nearest_edge(self, coords: list[list[float]], point: list[float]) -> int | None:
        if len(coords) < 2:
            return None
        target = Point(point_to_map(*point))
        best, best_dist = None, self.snap_tolerance
        for index in range(len(coords)):
            a = point_to_map(*coords[index])
            b = point_to_map(*coords[(index + 1) % len(coords)])
            dist = LineString([a, b]).distance(target)
            if dist <= best_dist:
                best, best_dist = index, dist
        return best

    def _emit_measure(self) -> MeasureResult:
        result = self.measure_result()
        if self.on_measure_changed is not None:
            self.on_measure_changed(result)
        self._notify_changed()
        return result

    def _clear_transient(self) -> None:
        self._sketch = []
        self._hover = None
        self._delete_id = None
        self._measure = []
        self._measure_finished = False
        self._drag = None
        self._drag_origin = None
        had_selection = self._selected_id is not None
        self._selected_id = None
        if self._multi_ids:
            self._multi_ids = []
            if self.on_selection_changed is not None:
                self.on_selection_changed(SelectionSummary())
        if had_selection and self.on_block_select is not None:
            self.on_block_select(None)

    def _notify_changed(self) -> None:
        if self.on_changed is not None:
            self.on_changed()

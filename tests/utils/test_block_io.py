"""Tests for GeoJSON and zipped Shapefile block import/export."""

from __future__ import annotations

import json
import zipfile

import geopandas as gpd
import pytest
from shapely.geometry import Polygon

from farmview.core.geometry import compute_block_metrics
from farmview.core.models import Block
from farmview.errors import ImportFormatError
from farmview.utils.block_io import (
    ATTRIBUTE_COLUMNS,
    blocks_to_geodataframe,
    export_geojson,
    export_shapefile_zip,
    features_to_block_drafts,
    import_geojson,
    import_shapefile_zip,
)

RING_A = [[-47.10, -22.10], [-47.09, -22.10], [-47.09, -22.09], [-47.10, -22.09]]
RING_B = [[-47.08, -22.10], [-47.07, -22.10], [-47.075, -22.09]]


def _blocks() -> list[Block]:
    blocks = []
    for block_id, name, color, ring in (
        ("b1", "Talhao A", "#10B981", RING_A),
        ("b2", "Talhao B", "#EF4444", RING_B),
    ):
        metrics = compute_block_metrics(ring)
        blocks.append(
            Block(
                id=block_id,
                name=name,
                color=color,
                coordinates=ring,
                area_m2=metrics.area_m2,
                area_acres=metrics.area_acres,
                perimeter=metrics.perimeter,
                cane_variety="CTC4",
            )
        )
    blocks.append(Block(id="b3", name="No polygon"))
    return blocks


def _vertex_set(coords) -> set[tuple[float, float]]:
    return {(round(lon, 6), round(lat, 6)) for lon, lat in coords}


def test_blocks_to_geodataframe_skips_empty_blocks() -> None:
    """Only blocks with a polygon should be exported."""
    gdf = blocks_to_geodataframe(_blocks())

    assert list(gdf.columns) == ATTRIBUTE_COLUMNS + ["geometry"]
    assert list(gdf["NOME"]) == ["Talhao A", "Talhao B"]
    assert gdf.crs.to_epsg() == 4326
    with pytest.raises(ValueError):
        blocks_to_geodataframe([Block(name="empty")])


def test_geojson_export_then_import(tmp_path) -> None:
    """Exported GeoJSON should import with names, colours and metrics."""
    path = export_geojson(_blocks(), tmp_path / "blocks")

    assert path.suffix == ".geojson"
    drafts = import_geojson(path)

    assert [d.name for d in drafts] == ["Talhao A", "Talhao B"]
    assert [d.color for d in drafts] == ["#10B981", "#EF4444"]
    assert _vertex_set(drafts[0].coordinates) == _vertex_set(RING_A)
    assert drafts[0].metrics.area_m2 == pytest.approx(_blocks()[0].area_m2, rel=1e-6)


def test_shapefile_zip_export_then_import(tmp_path) -> None:
    """The zip should hold the shapefile parts and read back the same polygons."""
    path = export_shapefile_zip(_blocks(), tmp_path / "blocks.zip")

    with zipfile.ZipFile(path) as archive:
        names = sorted(archive.namelist())
    assert names == ["blocks.cpg", "blocks.dbf", "blocks.prj", "blocks.shp", "blocks.shx"]

    drafts = import_shapefile_zip(path)

    assert [d.name for d in drafts] == ["Talhao A", "Talhao B"]
    assert _vertex_set(drafts[1].coordinates) == _vertex_set(RING_B)
    assert drafts[1].metrics.area_acres == pytest.approx(_blocks()[1].area_acres, rel=1e-4)


def test_import_geojson_explodes_multipolygons(tmp_path) -> None:
    """Multipolygon parts become drafts; points are ignored; bad colours fall back."""
    collection = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"name": "Lote", "color": "purple"},
                "geometry": {
                    "type": "MultiPolygon",
                    "coordinates": [[RING_A + [RING_A[0]]], [RING_B + [RING_B[0]]]],
                },
            },
            {
                "type": "Feature",
                "properties": {"name": "Sede", "color": "#3b82f6"},
                "geometry": {"type": "Point", "coordinates": [-47.1, -22.1]},
            },
            {
                "type": "Feature",
                "properties": {"name": None, "color": "#3b82f6"},
                "geometry": {"type": "Polygon", "coordinates": [RING_B + [RING_B[0]]]},
            },
        ],
    }
    path = tmp_path / "lots.geojson"
    path.write_text(json.dumps(collection), encoding="utf-8")

    drafts = import_geojson(path, default_color="#8B5CF6")

    assert [d.name for d in drafts] == ["Lote", "Lote", "Bloco Importado 3"]
    assert [d.color for d in drafts] == ["#8B5CF6", "#8B5CF6", "#3B82F6"]


def test_features_reprojected_to_wgs84() -> None:
    """Projected input should be converted to lon/lat."""
    gdf = gpd.GeoDataFrame({"NOME": ["P"]}, geometry=[Polygon(RING_A)], crs="EPSG:4326")

    drafts = features_to_block_drafts(gdf.to_crs("EPSG:3857"))

    assert _vertex_set(drafts[0].coordinates) == _vertex_set(RING_A)


def test_import_errors(tmp_path) -> None:
    """Unreadable or polygon-free files should raise ImportFormatError."""
    not_zip = tmp_path / "bad.zip"
    not_zip.write_bytes(b"not a zip")
    with pytest.raises(ImportFormatError):
        import_shapefile_zip(not_zip)

    empty_zip = tmp_path / "empty.zip"
    with zipfile.ZipFile(empty_zip, "w") as archive:
        archive.writestr("readme.txt", "nothing here")
    with pytest.raises(ImportFormatError, match=".shp"):
        import_shapefile_zip(empty_zip)

    points = tmp_path / "points.geojson"
    points.write_text(
        json.dumps(
            {
                "type": "FeatureCollection",
                "features": [
                    {
                        "type": "Feature",
                        "properties": {},
                        "geometry": {"type": "Point", "coordinates": [0, 0]},
                    }
                ],
            }
        ),
        encoding="utf-8",
    )
    with pytest.raises(ImportFormatError):
        import_geojson(points)

    garbage = tmp_path / "garbage.geojson"
    garbage.write_text("{", encoding="utf-8")
    with pytest.raises(ImportFormatError):
        import_geojson(garbage)

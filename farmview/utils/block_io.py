"""GeoJSON and zipped-Shapefile import/export for farm blocks."""

from __future__ import annotations

import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import geopandas as gpd
import pandas as pd
import shapefile
from loguru import logger
from pyproj import CRS
from pyproj.enums import WktVersion
from shapely.geometry import Polygon
from shapely.geometry.polygon import orient

from farmview.core.geometry import BlockMetrics, close_ring, compute_block_metrics, open_ring
from farmview.core.models import DEFAULT_BLOCK_COLOR, DEFAULT_TRANSPARENCY, Block
from farmview.core.palette import normalize_hex
from farmview.errors import ImportFormatError

WGS84 = "EPSG:4326"
ATTRIBUTE_COLUMNS = [
    "ID",
    "NOME",
    "COR",
    "AREA_M2",
    "AREA_ACRES",
    "PERIMETRO",
    "TIPO_CANA",
]
_NAME_FIELDS = ("NOME", "nome", "name", "NAME")
_COLOR_FIELDS = ("COR", "cor", "color", "COLOR")


@dataclass(frozen=True)
class BlockDraft:
    """Polygon read from a file, not yet stored.

    Parameters
    ----------
    name : str
        Block name from the file or a generated one.
    color : str
        Hex fill colour.
    coordinates : list[list[float]]
        Open lon/lat ring.
    metrics : BlockMetrics
        Geodesic metrics of the ring.
    """

    name: str
    color: str
    coordinates: list[list[float]]
    metrics: BlockMetrics

    def to_block(self, farm_id: str | None, transparency: float = DEFAULT_TRANSPARENCY) -> Block:
        return Block(
            name=self.name,
            farm_id=farm_id,
            color=self.color,
            transparency=transparency,
            coordinates=[list(c) for c in self.coordinates],
            area_m2=self.metrics.area_m2,
            area_acres=self.metrics.area_acres,
            perimeter=self.metrics.perimeter,
        )


def _normalize_shp_base_path(path: str | Path) -> Path:
    """Return the shapefile base path without ``.shp`` suffix."""
    path_obj = Path(path)
    if path_obj.suffix.lower() != ".shp":
        return path_obj
    return path_obj.with_suffix("")


def _write_prj(base_path: Path, crs_wkt: str | None) -> None:
    """Write PRJ file when CRS WKT text is provided."""
    if not crs_wkt:
        return
    prj_path = base_path.with_suffix(".prj")
    prj_path.write_text(crs_wkt, encoding="utf-8")


def _usable_blocks(blocks: Iterable[Block]) -> list[Block]:
    usable = [b for b in blocks if len(open_ring(b.coordinates or [])) >= 3]
    if not usable:
        raise ValueError("No blocks with polygons to export")
    return usable


def blocks_to_geodataframe(blocks: Iterable[Block]) -> gpd.GeoDataFrame:
    """Convert blocks to a WGS84 GeoDataFrame.

    Parameters
    ----------
    blocks : Iterable[Block]
        Blocks to convert; blocks without a polygon are skipped.

    Returns
    -------
    geopandas.GeoDataFrame
        Columns ``ATTRIBUTE_COLUMNS`` plus ``geometry``.

    Raises
    ------
    ValueError
        Raised when no block has a polygon.
    """
    usable = _usable_blocks(blocks)
    records = []
    geometries = []
    for block in usable:
        records.append(
            {
                "ID": block.id or "",
                "NOME": block.name,
                "COR": block.color or DEFAULT_BLOCK_COLOR,
                "AREA_M2": float(block.area_m2 or 0.0),
                "AREA_ACRES": float(block.area_acres or 0.0),
                "PERIMETRO": float(block.perimeter or 0.0),
                "TIPO_CANA": block.cane_variety or "",
            }
        )
        geometries.append(Polygon(close_ring(block.coordinates)))
    return gpd.GeoDataFrame(records, geometry=geometries, crs=WGS84)


def export_geojson(blocks: Iterable[Block], path: str | Path) -> Path:
    """Write blocks as a GeoJSON FeatureCollection."""
    out_path = Path(path)
    if out_path.suffix.lower() not in (".geojson", ".json"):
        out_path = out_path.with_suffix(".geojson")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    gdf = blocks_to_geodataframe(blocks)
    gdf.to_file(out_path, driver="GeoJSON")
    logger.info(f"Exported {len(gdf)} blocks to {out_path}")
    return out_path


def export_shapefile_zip(blocks: Iterable[Block], path: str | Path) -> Path:
    """Write blocks as a zipped Shapefile (``.shp/.shx/.dbf/.prj/.cpg``).

    Parameters
    ----------
    blocks : Iterable[Block]
        Blocks to export.
    path : str | Path
        Output ``.zip`` path.

    Returns
    -------
    pathlib.Path
        Written archive path.
    """
    usable = _usable_blocks(blocks)
    out_path = Path(path)
    if out_path.suffix.lower() != ".zip":
        out_path = out_path.with_suffix(".zip")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    stem = out_path.stem

    with tempfile.TemporaryDirectory() as tmp_dir:
        base_path = _normalize_shp_base_path(Path(tmp_dir) / f"{stem}.shp")
        with shapefile.Writer(str(base_path), shapeType=shapefile.POLYGON) as shp_writer:
            shp_writer.field("ID", "C", size=64)
            shp_writer.field("NOME", "C", size=128)
            shp_writer.field("COR", "C", size=7)
            shp_writer.field("AREA_M2", "F", size=18, decimal=2)
            shp_writer.field("AREA_ACRES", "F", size=18, decimal=4)
            shp_writer.field("PERIMETRO", "F", size=18, decimal=2)
            shp_writer.field("TIPO_CANA", "C", size=32)
            for block in usable:
                # Shapefile exterior rings run clockwise.
                polygon = orient(Polygon(close_ring(block.coordinates)), sign=-1.0)
                shp_writer.poly([[list(xy) for xy in polygon.exterior.coords]])
                shp_writer.record(
                    block.id or "",
                    block.name,
                    block.color or DEFAULT_BLOCK_COLOR,
                    float(block.area_m2 or 0.0),
                    float(block.area_acres or 0.0),
                    float(block.perimeter or 0.0),
                    block.cane_variety or "",
                )
        _write_prj(base_path, CRS.from_epsg(4326).to_wkt(WktVersion.WKT1_ESRI))
        base_path.with_suffix(".cpg").write_text("UTF-8", encoding="ascii")

        with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for suffix in (".shp", ".shx", ".dbf", ".prj", ".cpg"):
                part = base_path.with_suffix(suffix)
                if part.exists():
                    archive.write(part, arcname=part.name)

    logger.info(f"Exported {len(usable)} blocks to {out_path}")
    return out_path


def _pick(row, names: Sequence[str]):
    for name in names:
        if name not in row:
            continue
        value = row[name]
        if value is None or pd.isna(value) or not str(value).strip():
            continue
        return value
    return None


def features_to_block_drafts(
    gdf: gpd.GeoDataFrame, default_color: str = DEFAULT_BLOCK_COLOR
) -> list[BlockDraft]:
    """Convert polygon features to block drafts.

    Multipolygons are exploded into one draft per part; non-polygon
    geometries are ignored. Names come from ``NOME``/``name`` attributes,
    otherwise ``"Bloco Importado <n>"``. Colours come from ``COR``/``color``
    when they are valid hex values.

    Raises
    ------
    ImportFormatError
        Raised when no polygon remains.
    """
    if gdf.crs is not None and not CRS(gdf.crs).equals(CRS(WGS84)):
        gdf = gdf.to_crs(WGS84)
    exploded = gdf[gdf.geometry.notna()].explode(index_parts=False)

    drafts = []
    for _, row in exploded.iterrows():
        geom = row.geometry
        if geom is None or geom.geom_type != "Polygon" or geom.is_empty:
            continue
        coords = open_ring([[x, y] for x, y, *_ in geom.exterior.coords])
        if len(coords) < 3:
            continue
        name = _pick(row, _NAME_FIELDS)
        raw_color = _pick(row, _COLOR_FIELDS)
        try:
            color = normalize_hex(raw_color) if raw_color is not None else default_color
        except ValueError:
            color = default_color
        drafts.append(
            BlockDraft(
                name=str(name) if name is not None else f"Bloco Importado {len(drafts) + 1}",
                color=color,
                coordinates=coords,
                metrics=compute_block_metrics(coords),
            )
        )

    if not drafts:
        raise ImportFormatError("No polygon features found")
    return drafts


def import_geojson(path: str | Path, default_color: str = DEFAULT_BLOCK_COLOR) -> list[BlockDraft]:
    """Read block drafts from a GeoJSON file."""
    try:
        gdf = gpd.read_file(Path(path))
    except Exception as exc:
        raise ImportFormatError(f"Unreadable GeoJSON: {exc}") from exc
    drafts = features_to_block_drafts(gdf, default_color)
    logger.info(f"Read {len(drafts)} blocks from {Path(path).name}")
    return drafts


def import_shapefile_zip(
    path: str | Path, default_color: str = DEFAULT_BLOCK_COLOR
) -> list[BlockDraft]:
    """Read block drafts from a zipped Shapefile.

    The archive must hold a ``.shp`` with its ``.dbf``; a ``.prj`` is used
    to reproject to WGS84 when present, otherwise WGS84 is assumed.

    Raises
    ------
    ImportFormatError
        Raised for bad archives, a missing ``.shp`` or no polygons.
    """
    path = Path(path)
    with tempfile.TemporaryDirectory() as tmp_dir:
        try:
            with zipfile.ZipFile(path) as archive:
                archive.extractall(tmp_dir)
        except zipfile.BadZipFile as exc:
            raise ImportFormatError(f"Not a zip archive: {path.name}") from exc

        shp_files = sorted(
            p for p in Path(tmp_dir).rglob("*")
            if p.suffix.lower() == ".shp" and "__MACOSX" not in p.parts
        )
        if not shp_files:
            raise ImportFormatError("no .shp file in archive")
        shp_path = shp_files[0]
        if not shp_path.with_suffix(".prj").exists():
            logger.warning(f"{shp_path.name} has no .prj, assuming WGS84")

        try:
            gdf = gpd.read_file(shp_path)
        except Exception as exc:
            raise ImportFormatError(f"Unreadable shapefile: {exc}") from exc
        if gdf.crs is None:
            gdf = gdf.set_crs(WGS84)
        drafts = features_to_block_drafts(gdf, default_color)

    logger.info(f"Read {len(drafts)} blocks from {path.name}")
    return drafts

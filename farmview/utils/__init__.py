"""Utility package exports for FarmView."""

from farmview.utils.block_io import (
    BlockDraft,
    blocks_to_geodataframe,
    export_geojson,
    export_shapefile_zip,
    features_to_block_drafts,
    import_geojson,
    import_shapefile_zip,
)
from farmview.utils.tiles import (
    NDVI,
    OSM,
    SATELLITE,
    TileFetcher,
    TileSource,
    lonlat_to_tile,
    tile_bounds_3857,
    tiles_for_view,
    zoom_for_resolution,
)

__all__ = [
    "BlockDraft",
    "NDVI",
    "OSM",
    "SATELLITE",
    "TileFetcher",
    "TileSource",
    "blocks_to_geodataframe",
    "export_geojson",
    "export_shapefile_zip",
    "features_to_block_drafts",
    "import_geojson",
    "import_shapefile_zip",
    "lonlat_to_tile",
    "tile_bounds_3857",
    "tiles_for_view",
    "zoom_for_resolution",
]

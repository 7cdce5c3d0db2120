"""
Source data loading for susceptibility analysis.

Loads elevation, land cover, surface-water occurrence and road layers onto
the AOI grid. Rasters are reprojected with rasterio (bilinear for continuous
data, nearest neighbor for class codes) and clipped to the buffered AOI.
Roads are read with geopandas and burned into a binary grid.

A source that does not cover the AOI yields an all-NaN layer and a warning;
the gap then flows through scoring as nodata.
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import geopandas as gpd
import numpy as np
import rasterio
from rasterio.warp import Resampling, reproject
from tqdm import tqdm

from src import config
from src.landslide.grid import AreaOfInterest, RasterGrid, RasterLayer
from src.landslide.raster_ops import RasterOps, ScipyRasterOps

logger = logging.getLogger(__name__)

RoadsSource = Union[str, Path, Dict[str, Any], gpd.GeoDataFrame]


@dataclass
class SourcePaths:
    """Locations of the four input datasets."""

    elevation: Union[str, Path] = config.DEFAULT_ELEVATION_PATH
    """Elevation raster in meters (e.g. SRTM GL1)."""

    landcover: Union[str, Path] = config.DEFAULT_LANDCOVER_PATH
    """Land cover class raster (ESA WorldCover v200 codes)."""

    water_occurrence: Union[str, Path] = config.DEFAULT_WATER_OCCURRENCE_PATH
    """Surface-water occurrence raster, percent 0-100 (JRC GSW)."""

    roads: RoadsSource = config.DEFAULT_ROADS_PATH
    """Road lines: vector file path, GeoJSON FeatureCollection (EPSG:4326) or GeoDataFrame."""

    def validate(self) -> None:
        """Raise FileNotFoundError for any missing file before loading starts."""
        missing = []
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (str, Path)) and not Path(value).exists():
                missing.append(f"{f.name}={value}")
        if missing:
            raise FileNotFoundError(f"Source files not found: {', '.join(missing)}")


def load_raster_to_grid(
    path: Union[str, Path],
    grid: RasterGrid,
    name: str,
    categorical: bool = False,
    band: int = 1,
) -> RasterLayer:
    """
    Read one band of a raster and resample it onto grid.

    Args:
        path: Raster path readable by rasterio
        grid: Target grid
        name: Layer name
        categorical: Use nearest neighbor (class codes) instead of bilinear
        band: Band index (1-based)

    Returns:
        RasterLayer with NaN wherever the source has no data

    Raises:
        FileNotFoundError: If path does not exist
        rasterio.errors.RasterioIOError: If the file cannot be read
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raster not found: {path}")

    resampling = Resampling.nearest if categorical else Resampling.bilinear
    destination = np.full(grid.shape, np.nan, dtype=np.float64)

    try:
        with rasterio.open(path) as src:
            logger.debug(f"Reading {name} from {path} (crs={src.crs}, nodata={src.nodata})")
            reproject(
                source=rasterio.band(src, band),
                destination=destination,
                src_transform=src.transform,
                src_crs=src.crs,
                src_nodata=src.nodata,
                dst_transform=grid.transform,
                dst_crs=grid.crs,
                dst_nodata=np.nan,
                resampling=resampling,
            )
    except rasterio.errors.RasterioIOError as e:
        logger.error(f"Failed to read {name} from {path}: {str(e)}")
        raise

    layer = RasterLayer(
        name=name,
        data=destination,
        grid=grid,
        kind="categorical" if categorical else "continuous",
    )

    if layer.coverage == 0:
        logger.warning(f"Source '{name}' has no coverage over the AOI; layer is all nodata")
    else:
        logger.info(
            f"Loaded {name}: coverage {layer.coverage * 100:.1f}%, "
            f"range {np.nanmin(destination):.2f} to {np.nanmax(destination):.2f}"
        )
    return layer


def _read_roads(source: RoadsSource, aoi: AreaOfInterest) -> gpd.GeoDataFrame:
    """Road features as a GeoDataFrame in the AOI CRS."""
    if isinstance(source, gpd.GeoDataFrame):
        roads = source
    elif isinstance(source, dict):
        roads = gpd.GeoDataFrame.from_features(source.get("features", []), crs="EPSG:4326")
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Roads file not found: {path}")
        bbox = gpd.GeoSeries([aoi.buffered], crs=aoi.crs)
        roads = gpd.read_file(path, bbox=bbox)

    if roads.empty:
        return gpd.GeoDataFrame(geometry=[], crs=aoi.crs)
    if roads.crs is None:
        raise ValueError("Road data has no CRS")
    return roads.to_crs(aoi.crs)


def load_roads_to_grid(
    source: RoadsSource,
    aoi: AreaOfInterest,
    grid: RasterGrid,
    ops: Optional[RasterOps] = None,
) -> RasterLayer:
    """
    Burn road lines intersecting the buffered AOI into a binary grid.

    Every cell a road touches is set to 1, all others to 0.

    Args:
        source: Vector file path, GeoJSON FeatureCollection or GeoDataFrame
        aoi: Area of interest
        grid: Target grid
        ops: Raster backend (default: ScipyRasterOps)

    Returns:
        RasterLayer named "roads" (float 0/1)
    """
    ops = ops or ScipyRasterOps()

    roads = _read_roads(source, aoi)
    if not roads.empty:
        roads = roads[roads.intersects(aoi.buffered)]

    if roads.empty:
        logger.warning("No road features intersect the AOI; road layer is empty")

    burned = ops.rasterize(roads.geometry, grid)
    logger.info(f"Rasterized {len(roads)} road features ({np.count_nonzero(burned)} road cells)")

    return RasterLayer(name="roads", data=burned.astype(np.float64), grid=grid, kind="categorical")


def load_sources(
    aoi: AreaOfInterest,
    grid: RasterGrid,
    sources: SourcePaths,
    ops: Optional[RasterOps] = None,
) -> Dict[str, RasterLayer]:
    """
    Load all four inputs onto grid and clip rasters to the buffered AOI.

    Args:
        aoi: Area of interest
        grid: Target grid (usually aoi.to_grid(resolution))
        sources: Dataset locations
        ops: Raster backend (default: ScipyRasterOps)

    Returns:
        Dict with "elevation", "landcover", "water_occurrence", "roads" layers
    """
    ops = ops or ScipyRasterOps()
    sources.validate()

    logger.info(f"Loading sources onto {grid.shape[1]}x{grid.shape[0]} grid")

    raster_specs = [
        ("elevation", sources.elevation, False),
        ("landcover", sources.landcover, True),
        ("water_occurrence", sources.water_occurrence, False),
    ]

    inside = ops.polygon_mask(aoi.buffered, grid)
    layers = {}
    for name, path, categorical in tqdm(raster_specs, desc="Loading rasters"):
        layer = load_raster_to_grid(path, grid, name, categorical=categorical)
        layer.data[~inside] = np.nan
        layers[name] = layer

    layers["roads"] = load_roads_to_grid(sources.roads, aoi, grid, ops)
    return layers


def create_mock_layers(grid: RasterGrid, seed: int = 0) -> Dict[str, RasterLayer]:
    """
    Synthetic inputs for a grid: hilly DEM, land cover patches, a river and a road.

    Deterministic for a given seed. Useful for trying the pipeline without
    downloaded datasets.

    Args:
        grid: Target grid
        seed: Random seed

    Returns:
        Dict with "elevation", "landcover", "water_occurrence", "roads" layers
    """
    rng = np.random.default_rng(seed)
    height, width = grid.shape
    cell = grid.cell_size

    y, x = np.mgrid[0:height, 0:width].astype(np.float64) * cell

    # Two ridges plus noise; relief of a few hundred meters
    dem = (
        500.0
        + 150.0 * np.sin(x / 900.0) * np.cos(y / 1300.0)
        + 80.0 * np.exp(-((x - x.mean()) ** 2 + (y - y.mean()) ** 2) / (2 * (600.0**2)))
        + rng.normal(0.0, 1.5, size=grid.shape)
    )

    classes = np.array([10, 20, 30, 40, 50, 60, 90])
    patch = max(1, min(height, width) // 8)
    patch_grid = rng.choice(classes, size=(height // patch + 1, width // patch + 1))
    landcover = np.kron(patch_grid, np.ones((patch, patch)))[:height, :width].astype(np.float64)

    # Meandering river along the valley with high occurrence
    river_col = (width / 2 + (width / 6) * np.sin(np.arange(height) / max(1, height / 6))).astype(int)
    water = np.zeros(grid.shape, dtype=np.float64)
    water[np.arange(height), np.clip(river_col, 0, width - 1)] = 85.0
    landcover[water > 0] = 80

    # Straight road across the grid
    roads = np.zeros(grid.shape, dtype=np.float64)
    roads[height // 3, :] = 1.0

    return {
        "elevation": RasterLayer("elevation", dem, grid),
        "landcover": RasterLayer("landcover", landcover, grid, kind="categorical"),
        "water_occurrence": RasterLayer("water_occurrence", water, grid),
        "roads": RasterLayer("roads", roads, grid, kind="categorical"),
    }

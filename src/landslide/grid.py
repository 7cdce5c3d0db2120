"""
Raster grid, layer and area-of-interest model.

Every layer that reaches the weighted overlay must sit on one RasterGrid:
same shape, same affine transform, same CRS. Grids are square-celled and
metric so that cell size doubles as the distance unit for slope and
distance transforms.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Literal, Optional, Tuple, Union

import geopandas as gpd
import numpy as np
import rasterio.transform
from affine import Affine
from rasterio.crs import CRS
from shapely.geometry import MultiPolygon, Polygon, box, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import make_valid

from src.config import DEFAULT_AOI_BUFFER

logger = logging.getLogger(__name__)

LayerKind = Literal["continuous", "categorical"]


class GridMismatchError(ValueError):
    """Raised when layers that must be co-registered are not."""

    pass


@dataclass
class RasterGrid:
    """
    A north-up, square-celled grid in a projected (metric) CRS.

    Attributes:
        transform: Affine transform mapping (col, row) to CRS coordinates
        shape: (height, width) in cells
        crs: Coordinate reference system
    """

    transform: Affine
    shape: Tuple[int, int]
    crs: CRS

    def __post_init__(self):
        self.crs = CRS.from_user_input(self.crs)
        self.shape = (int(self.shape[0]), int(self.shape[1]))

        if self.shape[0] <= 0 or self.shape[1] <= 0:
            raise ValueError(f"Grid shape must be positive, got {self.shape}")
        if self.transform.b != 0 or self.transform.d != 0:
            raise ValueError(f"Grid must be north-up without rotation, got {self.transform}")
        if not math.isclose(abs(self.transform.a), abs(self.transform.e)):
            raise ValueError(
                f"Grid cells must be square, got {abs(self.transform.a)} x {abs(self.transform.e)}"
            )
        if not self.crs.is_projected:
            raise ValueError(
                f"Grid CRS must be projected (meters) for distance and slope, got {self.crs}"
            )

    @classmethod
    def from_bounds(
        cls,
        bounds: Tuple[float, float, float, float],
        resolution: float,
        crs: Union[str, CRS],
    ) -> "RasterGrid":
        """
        Build a grid covering bounds, snapped outward to multiples of resolution.

        Snapping keeps grids built from the same AOI and resolution identical
        across runs.

        Args:
            bounds: (minx, miny, maxx, maxy) in CRS units
            resolution: Cell size in CRS units (meters)
            crs: Target CRS

        Returns:
            RasterGrid
        """
        real = isinstance(resolution, numbers.Real) and not isinstance(resolution, bool)
        if not (real and math.isfinite(resolution) and resolution > 0):
            raise ValueError(f"Resolution must be a positive number, got {resolution!r}")
        resolution = float(resolution)

        minx, miny, maxx, maxy = bounds
        west = math.floor(minx / resolution) * resolution
        south = math.floor(miny / resolution) * resolution
        east = math.ceil(maxx / resolution) * resolution
        north = math.ceil(maxy / resolution) * resolution

        width = max(1, int(round((east - west) / resolution)))
        height = max(1, int(round((north - south) / resolution)))

        transform = Affine(
            resolution, 0, west,      # pixel_width, skew_x, origin_x
            0, -resolution, north     # skew_y, pixel_height (negative = north-up), origin_y
        )
        return cls(transform=transform, shape=(height, width), crs=crs)

    @property
    def cell_size(self) -> float:
        """Cell size in meters."""
        return abs(self.transform.a)

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """(west, south, east, north) in CRS units."""
        return rasterio.transform.array_bounds(self.shape[0], self.shape[1], self.transform)

    @property
    def n_pixels(self) -> int:
        return self.shape[0] * self.shape[1]

    def is_aligned(self, other: "RasterGrid") -> bool:
        """True if both grids have identical shape, CRS and transform."""
        return (
            self.shape == other.shape
            and self.crs == other.crs
            and self.transform.almost_equals(other.transform)
        )

    def describe(self) -> Dict[str, Any]:
        """JSON-friendly summary of the grid."""
        return {
            "shape": list(self.shape),
            "cell_size": self.cell_size,
            "bounds": list(self.bounds),
            "crs": self.crs.to_string(),
            "transform": list(self.transform)[:6],
        }


@dataclass
class RasterLayer:
    """
    A named 2D array on a RasterGrid.

    Float layers use NaN as nodata. Categorical layers store class codes as
    floats so that NaN remains available as nodata.

    Attributes:
        name: Layer identifier
        data: 2D array matching grid.shape
        grid: The grid the data is defined on
        kind: "continuous" or "categorical"
    """

    name: str
    data: np.ndarray
    grid: RasterGrid
    kind: LayerKind = "continuous"

    def __post_init__(self):
        if not isinstance(self.data, np.ndarray):
            raise TypeError(f"Layer '{self.name}' data must be a numpy array")
        if self.data.ndim != 2:
            raise ValueError(f"Layer '{self.name}' must be 2D, got shape {self.data.shape}")
        if self.data.shape != self.grid.shape:
            raise GridMismatchError(
                f"Layer '{self.name}' shape {self.data.shape} does not match grid {self.grid.shape}"
            )
        if self.kind not in ("continuous", "categorical"):
            raise ValueError(f"Layer kind must be 'continuous' or 'categorical', got '{self.kind}'")

    @property
    def valid_mask(self) -> np.ndarray:
        """Boolean mask of cells holding data."""
        if np.issubdtype(self.data.dtype, np.floating):
            return ~np.isnan(self.data)
        return np.ones(self.data.shape, dtype=bool)

    @property
    def coverage(self) -> float:
        """Fraction of grid cells holding data."""
        return float(np.count_nonzero(self.valid_mask)) / self.grid.n_pixels


def check_aligned(layers: Iterable[RasterLayer], grid: Optional[RasterGrid] = None) -> RasterGrid:
    """
    Verify that all layers share one grid.

    Args:
        layers: Layers to check
        grid: Reference grid; defaults to the first layer's grid

    Returns:
        The common grid

    Raises:
        GridMismatchError: If any layer sits on a different grid
    """
    layers = list(layers)
    if not layers:
        raise ValueError("No layers to check")

    reference = grid if grid is not None else layers[0].grid
    mismatched = [layer.name for layer in layers if not layer.grid.is_aligned(reference)]
    if mismatched:
        raise GridMismatchError(
            f"Layers {mismatched} are not aligned to the reference grid "
            f"(shape={reference.shape}, crs={reference.crs}, transform={tuple(reference.transform)[:6]})"
        )
    return reference


@dataclass
class AreaOfInterest:
    """
    Polygon area of interest in a projected CRS.

    Geographic inputs are projected to their estimated UTM zone so that the
    buffer and grid cell size are in meters.

    Attributes:
        geometry: Polygon or MultiPolygon in `crs`
        crs: CRS of geometry (projected after construction)
        buffer: Margin in meters added before neighborhood and distance ops
    """

    geometry: BaseGeometry
    crs: CRS
    buffer: float = DEFAULT_AOI_BUFFER
    source_crs: CRS = field(init=False)

    def __post_init__(self):
        self.crs = CRS.from_user_input(self.crs)
        self.source_crs = self.crs

        if self.geometry is None or self.geometry.is_empty:
            raise ValueError("AOI geometry is empty")
        if not self.geometry.is_valid:
            logger.warning("AOI geometry is invalid, repairing with make_valid")
            self.geometry = make_valid(self.geometry)
        if not isinstance(self.geometry, (Polygon, MultiPolygon)):
            # make_valid can return a GeometryCollection; keep its areal parts
            polygons = [g for g in getattr(self.geometry, "geoms", []) if isinstance(g, (Polygon, MultiPolygon))]
            if not polygons:
                raise ValueError(f"AOI must be a polygon, got {self.geometry.geom_type}")
            self.geometry = unary_union(polygons)

        real = isinstance(self.buffer, numbers.Real) and not isinstance(self.buffer, bool)
        if not (real and math.isfinite(self.buffer) and self.buffer >= 0):
            raise ValueError(f"AOI buffer must be a non-negative number, got {self.buffer!r}")

        if not self.crs.is_projected:
            series = gpd.GeoSeries([self.geometry], crs=self.crs)
            utm_crs = series.estimate_utm_crs()
            logger.info(f"Projecting AOI from {self.crs.to_string()} to {utm_crs.to_string()}")
            self.geometry = series.to_crs(utm_crs).iloc[0]
            self.crs = CRS.from_user_input(utm_crs)

    @classmethod
    def from_file(cls, path: Union[str, Path], buffer: float = DEFAULT_AOI_BUFFER) -> "AreaOfInterest":
        """
        Load an AOI from any vector file readable by geopandas.

        All features are dissolved into one geometry.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"AOI file not found: {path}")

        gdf = gpd.read_file(path)
        if gdf.empty:
            raise ValueError(f"AOI file has no features: {path}")
        if gdf.crs is None:
            raise ValueError(f"AOI file has no CRS: {path}")

        logger.info(f"Loaded AOI from {path} ({len(gdf)} features)")
        return cls(geometry=gdf.geometry.union_all(), crs=gdf.crs, buffer=buffer)

    @classmethod
    def from_geojson(
        cls,
        geojson: Dict[str, Any],
        crs: Union[str, CRS] = "EPSG:4326",
        buffer: float = DEFAULT_AOI_BUFFER,
    ) -> "AreaOfInterest":
        """
        Build an AOI from a GeoJSON geometry, Feature or FeatureCollection.

        This is the path for user-drawn geometries.
        """
        geojson_type = geojson.get("type")
        if geojson_type == "FeatureCollection":
            geometries = [shape(f["geometry"]) for f in geojson.get("features", []) if f.get("geometry")]
            if not geometries:
                raise ValueError("GeoJSON FeatureCollection has no geometries")
            geometry = unary_union(geometries)
        elif geojson_type == "Feature":
            geometry = shape(geojson["geometry"])
        else:
            geometry = shape(geojson)
        return cls(geometry=geometry, crs=crs, buffer=buffer)

    @classmethod
    def from_bounds(
        cls,
        bounds: Tuple[float, float, float, float],
        crs: Union[str, CRS],
        buffer: float = DEFAULT_AOI_BUFFER,
    ) -> "AreaOfInterest":
        """Rectangular AOI from (minx, miny, maxx, maxy)."""
        return cls(geometry=box(*bounds), crs=crs, buffer=buffer)

    @property
    def buffered(self) -> BaseGeometry:
        """AOI grown by the buffer margin."""
        if self.buffer == 0:
            return self.geometry
        return self.geometry.buffer(self.buffer)

    def to_grid(self, resolution: float) -> RasterGrid:
        """Grid covering the buffered AOI at the given cell size."""
        grid = RasterGrid.from_bounds(self.buffered.bounds, resolution, self.crs)
        logger.info(
            f"AOI grid: {grid.shape[1]}x{grid.shape[0]} cells at {resolution}m "
            f"(buffer={self.buffer}m, crs={self.crs.to_string()})"
        )
        return grid

"""
Landslide susceptibility mapping by weighted raster overlay.

Pipeline:
- grid: RasterGrid, RasterLayer, AreaOfInterest and alignment checks
- raster_ops: RasterOps interface and the scipy/rasterio implementation
- data_loading: Elevation, land cover, surface water and roads onto the AOI grid
- terrain: Slope, aspect and roughness
- proximity: Distance to water and roads
- statistics: Percentile summary with a pixel cap
- pipeline: SusceptibilityPipeline and SusceptibilityResult
- outputs: GeoTIFF / JSON writers
"""

from src.landslide.grid import (
    AreaOfInterest,
    GridMismatchError,
    RasterGrid,
    RasterLayer,
    check_aligned,
)
from src.landslide.raster_ops import RasterOps, ScipyRasterOps
from src.landslide.data_loading import SourcePaths, load_sources, create_mock_layers
from src.landslide.terrain import TerrainDerivatives, compute_terrain_derivatives
from src.landslide.proximity import ProximityFields, compute_proximity
from src.landslide.statistics import MaxPixelsExceeded, percentile_statistics
from src.landslide.pipeline import SusceptibilityPipeline, SusceptibilityResult
from src.landslide.outputs import save_result, write_geotiff

__all__ = [
    "AreaOfInterest",
    "GridMismatchError",
    "RasterGrid",
    "RasterLayer",
    "check_aligned",
    "RasterOps",
    "ScipyRasterOps",
    "SourcePaths",
    "load_sources",
    "create_mock_layers",
    "TerrainDerivatives",
    "compute_terrain_derivatives",
    "ProximityFields",
    "compute_proximity",
    "MaxPixelsExceeded",
    "percentile_statistics",
    "SusceptibilityPipeline",
    "SusceptibilityResult",
    "save_result",
    "write_geotiff",
]

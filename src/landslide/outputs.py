"""
Write pipeline results to disk for downstream mapping and validation tools.

Files written to the output directory:
- susceptibility.tif: float32, nodata NaN
- susceptibility_class.tif: uint8 tiers 1..5, nodata 0
- statistics.json: percentiles, weights, class areas and grid summary
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
import rasterio

from src.landslide.grid import RasterGrid
from src.landslide.pipeline import SusceptibilityResult

logger = logging.getLogger(__name__)


def write_geotiff(
    path: Union[str, Path],
    data: np.ndarray,
    grid: RasterGrid,
    nodata: Optional[float] = None,
    dtype: str = "float32",
) -> Path:
    """
    Write a single-band GeoTIFF on grid.

    Args:
        path: Output file
        data: 2D array matching grid.shape
        grid: Grid providing transform and CRS
        nodata: Nodata value to record in the file
        dtype: Output data type

    Returns:
        Path written
    """
    path = Path(path)
    if data.shape != grid.shape:
        raise ValueError(f"Data shape {data.shape} does not match grid {grid.shape}")

    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=grid.shape[0],
        width=grid.shape[1],
        count=1,
        dtype=dtype,
        crs=grid.crs,
        transform=grid.transform,
        nodata=nodata,
        compress="deflate",
    ) as dst:
        dst.write(data.astype(dtype), 1)

    logger.info(f"Wrote {path}")
    return path


def save_result(result: SusceptibilityResult, output_dir: Union[str, Path]) -> Dict[str, Path]:
    """
    Save susceptibility rasters and statistics.

    Args:
        result: Pipeline output
        output_dir: Directory to write into (created if needed)

    Returns:
        Dict mapping artifact name to path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = {
        "susceptibility": write_geotiff(
            output_dir / "susceptibility.tif",
            result.susceptibility,
            result.grid,
            nodata=np.nan,
            dtype="float32",
        ),
        "susceptibility_class": write_geotiff(
            output_dir / "susceptibility_class.tif",
            result.susceptibility_class,
            result.grid,
            nodata=0,
            dtype="uint8",
        ),
    }

    stats_path = output_dir / "statistics.json"
    with open(stats_path, "w") as f:
        json.dump(result.summary(), f, indent=2)
    logger.info(f"Wrote {stats_path}")
    paths["statistics"] = stats_path

    return paths

"""
Terrain derivatives from elevation.

Computes slope, aspect and roughness on the AOI grid. Slope and aspect use
Horn's 3x3 gradient; roughness is the population standard deviation of
elevation in a 3x3 window (radius 1 pixel), unnormalized.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from src.config import DEFAULT_ROUGHNESS_BOUNDARY
from src.landslide.grid import RasterLayer
from src.landslide.raster_ops import RasterOps, ScipyRasterOps

logger = logging.getLogger(__name__)

ROUGHNESS_RADIUS = 1


@dataclass
class TerrainDerivatives:
    """Per-cell terrain derivatives on the elevation grid."""

    slope: np.ndarray
    """Slope in degrees, [0, 90)."""

    aspect: np.ndarray
    """Downslope direction in degrees, [0, 360), 0 = north."""

    roughness: np.ndarray
    """3x3 elevation standard deviation in meters."""


def compute_terrain_derivatives(
    elevation: RasterLayer,
    ops: Optional[RasterOps] = None,
    roughness_boundary: str = DEFAULT_ROUGHNESS_BOUNDARY,
) -> TerrainDerivatives:
    """
    Compute slope, aspect and roughness from an elevation layer.

    NaN elevation propagates: slope and aspect are NaN where any cell of the
    3x3 Horn window is NaN, roughness is NaN where the center cell is NaN.

    Args:
        elevation: Elevation layer in meters on a metric grid
        ops: Raster backend (default: ScipyRasterOps)
        roughness_boundary: Edge policy for roughness, "ignore" or "reflect"

    Returns:
        TerrainDerivatives
    """
    ops = ops or ScipyRasterOps()
    cell_size = elevation.grid.cell_size
    dem = elevation.data

    logger.info(f"Computing terrain derivatives ({dem.shape[1]}x{dem.shape[0]}, {cell_size}m cells)")

    slope = ops.slope(dem, cell_size)
    aspect = ops.aspect(dem, cell_size)
    roughness = ops.focal_std(dem, radius=ROUGHNESS_RADIUS, boundary=roughness_boundary)

    if np.any(~np.isnan(slope)):
        logger.info(f"  Slope range: {np.nanmin(slope):.2f} to {np.nanmax(slope):.2f} deg")
    if np.any(~np.isnan(roughness)):
        logger.info(
            f"  Roughness range: {np.nanmin(roughness):.2f} to {np.nanmax(roughness):.2f} m "
            f"(boundary={roughness_boundary})"
        )

    return TerrainDerivatives(slope=slope, aspect=aspect, roughness=roughness)

"""
Distance-to-feature fields for water and roads.

Binary feature masks are turned into Euclidean distance in meters via a
distance transform. Distance is zero on feature cells and unbounded above.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from src.config import WATER_OCCURRENCE_THRESHOLD
from src.landslide.grid import RasterLayer, check_aligned
from src.landslide.raster_ops import RasterOps, ScipyRasterOps

logger = logging.getLogger(__name__)


@dataclass
class ProximityFields:
    """Feature masks and distance fields on the AOI grid."""

    water_mask: np.ndarray
    road_mask: np.ndarray
    dist_water: np.ndarray
    """Distance to nearest water cell in meters."""
    dist_road: np.ndarray
    """Distance to nearest road cell in meters."""


def water_mask_from_occurrence(
    occurrence: np.ndarray,
    threshold: float = WATER_OCCURRENCE_THRESHOLD,
) -> np.ndarray:
    """
    Water presence from surface-water occurrence percentage (0-100).

    Cells with occurrence > threshold are water. NaN (no observation) is
    treated as absent.
    """
    if not 0 <= threshold <= 100:
        raise ValueError(f"Occurrence threshold must be in [0, 100], got {threshold}")
    occurrence = np.asarray(occurrence, dtype=np.float64)
    return np.nan_to_num(occurrence, nan=0.0) > threshold


def road_mask_from_raster(roads: np.ndarray) -> np.ndarray:
    """Road presence from a burned road raster (nonzero = road, NaN = absent)."""
    roads = np.asarray(roads, dtype=np.float64)
    return np.nan_to_num(roads, nan=0.0) > 0


def distance_to_features(
    mask: np.ndarray,
    cell_size: float,
    ops: Optional[RasterOps] = None,
) -> np.ndarray:
    """
    Euclidean distance in meters from every cell to the nearest feature cell.

    Args:
        mask: Boolean array, True where the feature is present
        cell_size: Cell size in meters
        ops: Raster backend (default: ScipyRasterOps)

    Returns:
        Float array of distances; inf everywhere if no feature is present
    """
    ops = ops or ScipyRasterOps()
    return ops.distance_transform(mask, cell_size)


def compute_proximity(
    water_occurrence: RasterLayer,
    roads: RasterLayer,
    ops: Optional[RasterOps] = None,
    water_threshold: float = WATER_OCCURRENCE_THRESHOLD,
) -> ProximityFields:
    """
    Compute distance to water and distance to roads.

    Args:
        water_occurrence: Surface-water occurrence layer (percent)
        roads: Burned road layer (1 = road)
        ops: Raster backend (default: ScipyRasterOps)
        water_threshold: Occurrence percentage above which a cell is water

    Returns:
        ProximityFields
    """
    ops = ops or ScipyRasterOps()
    grid = check_aligned([water_occurrence, roads])
    cell_size = grid.cell_size

    water_mask = water_mask_from_occurrence(water_occurrence.data, water_threshold)
    road_mask = road_mask_from_raster(roads.data)

    logger.info(
        f"Computing proximity: {np.count_nonzero(water_mask)} water cells "
        f"(occurrence > {water_threshold}%), {np.count_nonzero(road_mask)} road cells"
    )

    dist_water = distance_to_features(water_mask, cell_size, ops)
    dist_road = distance_to_features(road_mask, cell_size, ops)

    return ProximityFields(
        water_mask=water_mask,
        road_mask=road_mask,
        dist_water=dist_water,
        dist_road=dist_road,
    )

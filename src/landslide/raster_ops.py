"""
Raster primitives used by the susceptibility pipeline.

RasterOps is the seam between the pipeline and whatever raster engine does
the work. ScipyRasterOps implements it with scipy.ndimage and
rasterio.features on in-memory numpy arrays.

Boundary policies for neighborhood statistics:
- "ignore": only neighbors inside the grid (and not NaN) contribute. Edge
  cells use a partial window.
- "reflect": the grid is mirrored at its edges, so edge cells use a full
  window with duplicated values.
In both policies NaN neighbors are skipped; the policy only changes what
happens at the grid edge.
"""

import logging
import warnings
from abc import ABC, abstractmethod
from typing import Iterable

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
import rasterio.features
from scipy import ndimage
from shapely.geometry.base import BaseGeometry

from src.landslide.grid import RasterGrid

logger = logging.getLogger(__name__)

BOUNDARY_POLICIES = ("ignore", "reflect")

# Horn (1981) 3x3 gradient kernels, applied with correlate (no kernel flip).
# Rows increase southward on a north-up grid.
HORN_DZ_DX = np.array([[-1, 0, 1],
                       [-2, 0, 2],
                       [-1, 0, 1]], dtype=np.float64)
HORN_DZ_DSOUTH = np.array([[-1, -2, -1],
                           [0, 0, 0],
                           [1, 2, 1]], dtype=np.float64)


class RasterOps(ABC):
    """Raster primitives needed for terrain, proximity and clipping."""

    @abstractmethod
    def slope(self, dem: np.ndarray, cell_size: float) -> np.ndarray:
        """Slope in degrees [0, 90)."""

    @abstractmethod
    def aspect(self, dem: np.ndarray, cell_size: float) -> np.ndarray:
        """Downslope direction in degrees [0, 360), clockwise from north."""

    @abstractmethod
    def focal_std(self, data: np.ndarray, radius: int = 1, boundary: str = "ignore") -> np.ndarray:
        """Population standard deviation in a square (2r+1) window."""

    @abstractmethod
    def distance_transform(self, mask: np.ndarray, cell_size: float) -> np.ndarray:
        """Euclidean distance in meters to the nearest True cell."""

    @abstractmethod
    def rasterize(self, geometries: Iterable[BaseGeometry], grid: RasterGrid) -> np.ndarray:
        """Burn geometries into a uint8 grid, 1 on every touched cell."""

    @abstractmethod
    def polygon_mask(self, geometry: BaseGeometry, grid: RasterGrid) -> np.ndarray:
        """Boolean mask, True for cells whose center lies inside geometry."""


class ScipyRasterOps(RasterOps):
    """RasterOps on numpy arrays using scipy.ndimage and rasterio.features."""

    def _horn_gradients(self, dem: np.ndarray, cell_size: float):
        """
        Return (dz/dx east, dz/dy north) using Horn's method.

        Edge cells reflect the grid. A NaN center or any NaN in the 3x3
        window yields NaN.
        """
        if dem.ndim != 2:
            raise ValueError(f"DEM must be 2D, got shape {dem.shape}")
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")

        dem = np.asarray(dem, dtype=np.float64)
        dz_dx = ndimage.correlate(dem, HORN_DZ_DX, mode="reflect") / (8.0 * cell_size)
        dz_dsouth = ndimage.correlate(dem, HORN_DZ_DSOUTH, mode="reflect") / (8.0 * cell_size)

        # Horn kernels have zero weight at the center; restore nodata there
        nan_mask = np.isnan(dem)
        dz_dx[nan_mask] = np.nan
        dz_dsouth[nan_mask] = np.nan
        return dz_dx, -dz_dsouth

    def slope(self, dem: np.ndarray, cell_size: float) -> np.ndarray:
        dz_dx, dz_dy = self._horn_gradients(dem, cell_size)
        return np.degrees(np.arctan(np.hypot(dz_dx, dz_dy)))

    def aspect(self, dem: np.ndarray, cell_size: float) -> np.ndarray:
        dz_dx, dz_dy = self._horn_gradients(dem, cell_size)

        # Downslope vector is -gradient; azimuth = atan2(east, north)
        aspect = np.degrees(np.arctan2(-dz_dx, -dz_dy)) % 360.0

        flat = (dz_dx == 0) & (dz_dy == 0)
        aspect[flat] = 0.0
        # Tiny negative angles wrap to exactly 360.0 in float
        aspect[aspect >= 360.0] = 0.0
        return aspect

    def focal_std(self, data: np.ndarray, radius: int = 1, boundary: str = "ignore") -> np.ndarray:
        if boundary not in BOUNDARY_POLICIES:
            raise ValueError(
                f"Unknown boundary policy '{boundary}'. Available: {list(BOUNDARY_POLICIES)}"
            )
        if radius < 1:
            raise ValueError(f"radius must be >= 1, got {radius}")

        data = np.asarray(data, dtype=np.float64)
        valid = ~np.isnan(data)
        if not np.any(valid):
            return np.full(data.shape, np.nan)

        # scipy "reflect" (edge value repeated) is numpy "symmetric"
        if boundary == "ignore":
            padded = np.pad(data, radius, mode="constant", constant_values=np.nan)
        else:
            padded = np.pad(data, radius, mode="symmetric")

        size = 2 * radius + 1
        windows = sliding_window_view(padded, (size, size))

        # Two-pass std per window, so exact spreads (e.g. 1.0 m) stay exact
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", category=RuntimeWarning)
            std = np.nanstd(windows, axis=(-2, -1))

        std[~valid] = np.nan
        return std

    def distance_transform(self, mask: np.ndarray, cell_size: float) -> np.ndarray:
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")

        present = np.asarray(mask, dtype=bool)
        if not np.any(present):
            logger.warning("No feature cells in mask; distance is unbounded (inf) everywhere")
            return np.full(present.shape, np.inf)

        # EDT measures distance from nonzero cells to the nearest zero cell,
        # so feature cells are passed as zeros.
        return ndimage.distance_transform_edt(~present, sampling=cell_size)

    def rasterize(self, geometries: Iterable[BaseGeometry], grid: RasterGrid) -> np.ndarray:
        shapes = [(geom, 1) for geom in geometries if geom is not None and not geom.is_empty]
        if not shapes:
            return np.zeros(grid.shape, dtype=np.uint8)

        return rasterio.features.rasterize(
            shapes,
            out_shape=grid.shape,
            transform=grid.transform,
            fill=0,
            all_touched=True,
            dtype="uint8",
        )

    def polygon_mask(self, geometry: BaseGeometry, grid: RasterGrid) -> np.ndarray:
        return rasterio.features.geometry_mask(
            [geometry],
            out_shape=grid.shape,
            transform=grid.transform,
            invert=True,
        )

"""
Percentile statistics of the susceptibility surface over the AOI.

The pixel cap bounds the cost of a statistics request. Exceeding it is a
hard failure (MaxPixelsExceeded), never a silent subsample.
"""

import logging
from typing import Dict, Optional, Sequence

import numpy as np

from src.config import DEFAULT_MAX_PIXELS, DEFAULT_PERCENTILES

logger = logging.getLogger(__name__)


class MaxPixelsExceeded(RuntimeError):
    """Raised when a statistics region holds more pixels than allowed."""

    pass


def percentile_statistics(
    values: np.ndarray,
    region_mask: Optional[np.ndarray] = None,
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
    max_pixels: int = DEFAULT_MAX_PIXELS,
) -> Dict[int, float]:
    """
    Percentiles of a raster over a region.

    Args:
        values: Raster values; NaN cells are excluded
        region_mask: Boolean mask of the region (default: whole raster)
        percentiles: Percentile ranks in [0, 100]
        max_pixels: Maximum number of region pixels

    Returns:
        Dict mapping each percentile rank to its value. NaN for every rank
        if the region holds no valid cells.

    Raises:
        MaxPixelsExceeded: If the region has more than max_pixels cells
        ValueError: On invalid percentiles, pixel cap or mask shape

    Example:
        >>> percentile_statistics(np.full((4, 4), 0.5))
        {10: 0.5, 25: 0.5, 50: 0.5, 75: 0.5, 90: 0.5}
    """
    values = np.asarray(values, dtype=np.float64)

    if isinstance(max_pixels, bool) or int(max_pixels) != max_pixels or max_pixels <= 0:
        raise ValueError(f"max_pixels must be a positive integer, got {max_pixels!r}")

    ranks = list(percentiles)
    if not ranks:
        raise ValueError("At least one percentile is required")
    if any(not 0 <= p <= 100 for p in ranks):
        raise ValueError(f"Percentiles must be in [0, 100], got {ranks}")

    if region_mask is None:
        region_mask = np.ones(values.shape, dtype=bool)
    elif region_mask.shape != values.shape:
        raise ValueError(
            f"Region mask shape {region_mask.shape} does not match raster {values.shape}"
        )

    n_region = int(np.count_nonzero(region_mask))
    if n_region > max_pixels:
        raise MaxPixelsExceeded(
            f"Region holds {n_region} pixels, exceeding max_pixels={max_pixels}"
        )

    samples = values[region_mask & ~np.isnan(values)]
    logger.info(f"Computing percentiles {ranks} over {samples.size}/{n_region} valid region pixels")

    if samples.size == 0:
        logger.warning("No valid pixels in region; percentiles are NaN")
        return {_rank_key(p): float("nan") for p in ranks}

    result = np.percentile(samples, ranks)
    return {_rank_key(p): float(v) for p, v in zip(ranks, result)}


def _rank_key(p: float):
    """Use int keys for whole-number ranks (10 rather than 10.0)."""
    return int(p) if float(p).is_integer() else float(p)

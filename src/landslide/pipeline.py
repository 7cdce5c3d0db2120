"""
Landslide susceptibility pipeline.

Wires the components into one deterministic run:

    load sources -> terrain derivatives + proximity -> ordinal scores
        -> weighted overlay -> 5-tier classes -> percentile statistics

Example:
    from src.landslide import AreaOfInterest, SusceptibilityPipeline

    aoi = AreaOfInterest.from_file("data/aoi/adirondack_polygon.geojson")
    pipeline = SusceptibilityPipeline(aoi, weights={
        "slope": 0.45, "roughness": 0.15, "landcover": 0.20,
        "dist_water": 0.10, "dist_road": 0.10,
    })
    result = pipeline.run()
    print(result.statistics)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from src import config
from src.landslide.data_loading import SourcePaths, load_sources
from src.landslide.grid import AreaOfInterest, RasterGrid, RasterLayer, check_aligned
from src.landslide.proximity import compute_proximity
from src.landslide.raster_ops import BOUNDARY_POLICIES, RasterOps, ScipyRasterOps
from src.landslide.statistics import percentile_statistics
from src.landslide.terrain import compute_terrain_derivatives
from src.scoring.configs.landslide import create_landslide_scorer
from src.scoring.transforms import NODATA_SCORE

REQUIRED_LAYERS = ("elevation", "landcover", "water_occurrence", "roads")


@dataclass
class SusceptibilityResult:
    """Outputs of one pipeline run."""

    grid: RasterGrid
    susceptibility: np.ndarray
    """Float susceptibility in [0, 1], NaN where any predictor is nodata."""
    susceptibility_class: np.ndarray
    """uint8 tiers 1..5, 0 where nodata."""
    scores: Dict[str, np.ndarray]
    """Ordinal score raster per predictor (uint8, 0 = nodata)."""
    predictors: Dict[str, np.ndarray]
    """Raw predictor rasters (slope, aspect, roughness, landcover, dist_water, dist_road)."""
    statistics: Dict[int, float]
    """Percentile rank -> susceptibility value over the AOI."""
    weights: Dict[str, float]
    aoi_mask: np.ndarray = field(repr=False)

    def class_counts(self) -> Dict[int, int]:
        """Number of AOI cells per susceptibility tier (0 = nodata)."""
        classes = self.susceptibility_class[self.aoi_mask]
        return {int(c): int(np.count_nonzero(classes == c)) for c in range(0, 6)}

    def summary(self) -> Dict:
        """JSON-friendly summary: statistics, weights, class areas and grid."""
        cell_area_km2 = self.grid.cell_size**2 / 1e6
        counts = self.class_counts()
        return {
            "percentiles": {str(k): (None if math.isnan(v) else v) for k, v in self.statistics.items()},
            "weights": dict(self.weights),
            "class_counts": {str(k): v for k, v in counts.items()},
            "class_area_km2": {str(k): v * cell_area_km2 for k, v in counts.items()},
            "grid": self.grid.describe(),
        }


class SusceptibilityPipeline:
    """
    One-shot landslide susceptibility run over an AOI.

    All run settings are constructor parameters; the defaults in src.config
    are used only when a parameter is omitted.

    Attributes:
        aoi (AreaOfInterest): Area of interest (buffered before processing)
        grid (RasterGrid): Analysis grid covering the buffered AOI
        scorer (ScoreCombiner): Weighted overlay with validated weights
        sources (SourcePaths): Input dataset locations
        ops (RasterOps): Raster backend
    """

    def __init__(
        self,
        aoi: Optional[AreaOfInterest] = None,
        *,
        weights: Optional[Mapping[str, float]] = None,
        sources: Optional[SourcePaths] = None,
        resolution: float = config.DEFAULT_RESOLUTION,
        roughness_boundary: str = config.DEFAULT_ROUGHNESS_BOUNDARY,
        water_threshold: float = config.WATER_OCCURRENCE_THRESHOLD,
        percentiles: Sequence[float] = config.DEFAULT_PERCENTILES,
        max_pixels: int = config.DEFAULT_MAX_PIXELS,
        ops: Optional[RasterOps] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Configure a run. All configuration errors surface here, before any
        data is read.

        Args:
            aoi: Area of interest; defaults to the AOI file at config.DEFAULT_AOI_PATH
            weights: Predictor weights (slope, roughness, landcover, dist_water,
                dist_road); non-negative with a positive sum
            sources: Dataset locations (default: SourcePaths())
            resolution: Cell size in meters (default: 30)
            roughness_boundary: Edge policy for roughness, "ignore" or "reflect"
            water_threshold: Occurrence percent above which a cell is water
            percentiles: Percentile ranks to report
            max_pixels: Pixel cap for statistics
            ops: Raster backend (default: ScipyRasterOps)
            logger: Logger instance for diagnostic output

        Raises:
            ValueError: On invalid weights, resolution or boundary policy
        """
        self.logger = logger or logging.getLogger(__name__)

        # Validate weights first: a bad weight vector must fail before any I/O
        self.scorer = create_landslide_scorer(weights)

        if roughness_boundary not in BOUNDARY_POLICIES:
            raise ValueError(
                f"Unknown roughness boundary policy '{roughness_boundary}'. "
                f"Available: {list(BOUNDARY_POLICIES)}"
            )
        if not 0 <= water_threshold <= 100:
            raise ValueError(f"water_threshold must be in [0, 100], got {water_threshold}")

        if aoi is None:
            self.logger.info(f"No AOI given, using default AOI {config.DEFAULT_AOI_PATH}")
            aoi = AreaOfInterest.from_file(config.DEFAULT_AOI_PATH)

        self.aoi = aoi
        self.grid = aoi.to_grid(resolution)
        self.sources = sources or SourcePaths()
        self.roughness_boundary = roughness_boundary
        self.water_threshold = water_threshold
        self.percentiles = tuple(percentiles)
        self.max_pixels = max_pixels
        self.ops = ops or ScipyRasterOps()

        self.logger.info(f"Weights: {self.scorer.weights}")

    @property
    def weights(self) -> Dict[str, float]:
        return self.scorer.weights

    def run(self) -> SusceptibilityResult:
        """Load sources for the AOI and compute susceptibility."""
        self.logger.info("\n" + "=" * 70)
        self.logger.info("Step 1: Loading source data")
        self.logger.info("=" * 70)
        layers = load_sources(self.aoi, self.grid, self.sources, self.ops)
        return self.compute(layers)

    def compute(self, layers: Mapping[str, RasterLayer]) -> SusceptibilityResult:
        """
        Compute susceptibility from already-loaded layers.

        Args:
            layers: "elevation", "landcover", "water_occurrence" and "roads"
                layers, all on self.grid

        Returns:
            SusceptibilityResult

        Raises:
            KeyError: If a required layer is missing
            GridMismatchError: If any layer is not on self.grid
        """
        missing = [name for name in REQUIRED_LAYERS if name not in layers]
        if missing:
            raise KeyError(f"Missing layers {missing}. Available layers: {list(layers.keys())}")
        check_aligned([layers[name] for name in REQUIRED_LAYERS], self.grid)

        self.logger.info("Step 2: Terrain derivatives and proximity")
        terrain = compute_terrain_derivatives(
            layers["elevation"], self.ops, roughness_boundary=self.roughness_boundary
        )
        proximity = compute_proximity(
            layers["water_occurrence"], layers["roads"], self.ops, water_threshold=self.water_threshold
        )

        # Distances exist everywhere; limit them to cells with elevation data
        # so cells outside source coverage stay nodata in every predictor.
        covered = layers["elevation"].valid_mask
        predictors = {
            "slope": terrain.slope,
            "roughness": terrain.roughness,
            "landcover": layers["landcover"].data,
            "dist_water": np.where(covered, proximity.dist_water, np.nan),
            "dist_road": np.where(covered, proximity.dist_road, np.nan),
        }

        self.logger.info("Step 3: Ordinal scoring")
        scores = self.scorer.get_component_scores(predictors)
        for name, score in scores.items():
            nodata = int(np.count_nonzero(score == NODATA_SCORE))
            self.logger.debug(f"  {name}: {nodata} nodata cells")

        self.logger.info("Step 4: Weighted overlay")
        susceptibility = self.scorer.combine_scores(scores)
        susceptibility_class = self.scorer.classify(susceptibility)

        self.logger.info("Step 5: Percentile statistics")
        aoi_mask = self.ops.polygon_mask(self.aoi.buffered, self.grid)
        statistics = percentile_statistics(
            susceptibility,
            region_mask=aoi_mask,
            percentiles=self.percentiles,
            max_pixels=self.max_pixels,
        )
        self.logger.info(f"Susceptibility percentiles: {statistics}")

        predictors["aspect"] = terrain.aspect

        return SusceptibilityResult(
            grid=self.grid,
            susceptibility=susceptibility,
            susceptibility_class=susceptibility_class,
            scores=scores,
            predictors=predictors,
            statistics=statistics,
            weights=self.scorer.weights,
            aoi_mask=aoi_mask,
        )

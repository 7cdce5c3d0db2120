"""
Default landslide susceptibility scoring configuration.

This config defines how terrain, land cover and proximity predictors are
reclassified into ordinal hazard scores (1 = least, 5 = most hazardous) and
combined by weighted overlay.

Score formula:
    susceptibility = sum(score_i * weight_i) / (5 * sum(weight_i))

Components (default weights sum to 1.0):
  - slope: Terrain slope in degrees (steeper = higher score)
  - roughness: 3x3 elevation standard deviation in meters
  - landcover: ESA WorldCover class (bare/built-up = higher score)
  - dist_water: Distance to surface water in meters (closer = higher score)
  - dist_road: Distance to roads in meters (closer = higher score)
"""

from typing import Mapping, Optional

from src.scoring.combiner import ScoreComponent, ScoreCombiner

PREDICTORS = ("slope", "roughness", "landcover", "dist_water", "dist_road")

DEFAULT_LANDSLIDE_WEIGHTS = {
    "slope": 0.45,
    "roughness": 0.15,
    "landcover": 0.20,
    "dist_water": 0.10,
    "dist_road": 0.10,
}

# Upper bounds of each interval; a value on a breakpoint takes the lower interval
SLOPE_BREAKPOINTS = (5, 15, 25, 35)  # degrees
ROUGHNESS_BREAKPOINTS = (1, 3, 6, 12)  # meters of elevation std dev
DISTANCE_BREAKPOINTS = (50, 100, 250, 500)  # meters
DISTANCE_SCORES = (5, 4, 3, 2, 1)  # closer = more hazardous

# ESA WorldCover v200 class codes
LANDCOVER_SCORES = {
    10: 1,  # Tree cover
    20: 3,  # Shrubland
    30: 3,  # Grassland
    40: 3,  # Cropland
    50: 4,  # Built-up
    60: 5,  # Bare / sparse vegetation
    70: 1,  # Snow and ice
    80: 1,  # Permanent water bodies
    90: 2,  # Herbaceous wetland
    95: 2,  # Mangroves
    100: 2,  # Moss and lichen
}


def resolve_weights(weights: Optional[Mapping[str, float]] = None) -> dict[str, float]:
    """
    Resolve a weight vector against the five landslide predictors.

    Args:
        weights: Mapping of predictor name to weight, or None for defaults

    Returns:
        Weight dict in PREDICTORS order

    Raises:
        ValueError: If predictors are missing or unknown
    """
    if weights is None:
        return dict(DEFAULT_LANDSLIDE_WEIGHTS)

    unknown = sorted(set(weights) - set(PREDICTORS))
    missing = [p for p in PREDICTORS if p not in weights]
    if unknown or missing:
        raise ValueError(
            f"Weight vector must name exactly {list(PREDICTORS)}; "
            f"missing {missing}, unknown {unknown}"
        )
    return {p: weights[p] for p in PREDICTORS}


def create_landslide_scorer(weights: Optional[Mapping[str, float]] = None) -> ScoreCombiner:
    """
    Create the landslide susceptibility scorer.

    Args:
        weights: Optional weight vector; defaults to DEFAULT_LANDSLIDE_WEIGHTS

    Returns:
        ScoreCombiner configured for landslide susceptibility analysis.

    Example:
        >>> scorer = create_landslide_scorer()
        >>> scorer.compute({
        ...     "slope": 10.0,        # degrees -> 2
        ...     "roughness": 2.0,     # meters -> 2
        ...     "landcover": 20,      # shrubland -> 3
        ...     "dist_water": 300.0,  # meters -> 2
        ...     "dist_road": 60.0,    # meters -> 4
        ... })
        0.48
    """
    w = resolve_weights(weights)

    return ScoreCombiner(
        name="landslide_susceptibility",
        components=[
            # Slope angle: the dominant driver of shallow landslides
            ScoreComponent(
                name="slope",
                transform="ordinal_breakpoints",
                transform_params={
                    "breakpoints": SLOPE_BREAKPOINTS,
                    "scores": (1, 2, 3, 4, 5),
                },
                weight=w["slope"],
            ),

            # Roughness: local relief in a 3x3 window
            ScoreComponent(
                name="roughness",
                transform="ordinal_breakpoints",
                transform_params={
                    "breakpoints": ROUGHNESS_BREAKPOINTS,
                    "scores": (1, 2, 3, 4, 5),
                },
                weight=w["roughness"],
            ),

            # Land cover: root reinforcement vs exposed soil
            ScoreComponent(
                name="landcover",
                transform="categorical_lookup",
                transform_params={"table": dict(LANDCOVER_SCORES)},
                weight=w["landcover"],
            ),

            # Distance to water: undercutting and saturation near channels
            # Inverted: closer = higher score
            ScoreComponent(
                name="dist_water",
                transform="ordinal_breakpoints",
                transform_params={
                    "breakpoints": DISTANCE_BREAKPOINTS,
                    "scores": DISTANCE_SCORES,
                },
                weight=w["dist_water"],
            ),

            # Distance to roads: cut slopes and drainage changes
            ScoreComponent(
                name="dist_road",
                transform="ordinal_breakpoints",
                transform_params={
                    "breakpoints": DISTANCE_BREAKPOINTS,
                    "scores": DISTANCE_SCORES,
                },
                weight=w["dist_road"],
            ),
        ],
    )


# Default scorer instance
DEFAULT_LANDSLIDE_SCORER = create_landslide_scorer()


# Export as dict for JSON serialization
DEFAULT_LANDSLIDE_CONFIG = DEFAULT_LANDSLIDE_SCORER.to_dict()


def get_required_inputs() -> dict[str, str]:
    """
    Get documentation of required inputs for the landslide scorer.

    Returns:
        Dictionary mapping input names to descriptions.
    """
    return {
        "slope": "Slope angle in degrees (from compute_terrain_derivatives)",
        "roughness": "3x3 elevation standard deviation in meters",
        "landcover": "ESA WorldCover class code",
        "dist_water": "Distance to water (occurrence > 10%) in meters",
        "dist_road": "Distance to nearest road cell in meters",
    }

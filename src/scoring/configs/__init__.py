"""
Scoring configurations for different use cases.

Available configs:
- landslide: Landslide susceptibility weighted overlay
"""

from src.scoring.configs.landslide import (
    DEFAULT_LANDSLIDE_SCORER,
    DEFAULT_LANDSLIDE_CONFIG,
    DEFAULT_LANDSLIDE_WEIGHTS,
    PREDICTORS,
    create_landslide_scorer,
    resolve_weights,
    get_required_inputs as landslide_get_required_inputs,
)

__all__ = [
    "DEFAULT_LANDSLIDE_SCORER",
    "DEFAULT_LANDSLIDE_CONFIG",
    "DEFAULT_LANDSLIDE_WEIGHTS",
    "PREDICTORS",
    "create_landslide_scorer",
    "resolve_weights",
    "landslide_get_required_inputs",
]

"""
Scoring module for landslide susceptibility analysis.

Provides ordinal reclassification functions and the weighted overlay that
combines them into a susceptibility surface.

Transformation types:
- ordinal_breakpoints: Right-closed interval lookup (e.g., slope, distance)
- categorical_lookup: Per-class table (e.g., land cover)

Combination:
- ScoreComponent: Defines a single predictor and its weight
- ScoreCombiner: Weighted sum normalized by 5 x sum(weights), plus 5-tier
  classification
"""

from src.scoring.transforms import (
    ordinal_breakpoints,
    categorical_lookup,
    validate_breakpoints,
)
from src.scoring.combiner import ScoreComponent, ScoreCombiner

__all__ = [
    # Transforms
    "ordinal_breakpoints",
    "categorical_lookup",
    "validate_breakpoints",
    # Combiner
    "ScoreComponent",
    "ScoreCombiner",
]

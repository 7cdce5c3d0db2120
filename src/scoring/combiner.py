"""
Weighted overlay system for multi-criteria susceptibility scoring.

Provides:
- ScoreComponent: Defines a single predictor with its ordinal transform and weight
- ScoreCombiner: Combines component scores into a normalized susceptibility
  surface and a 5-tier class raster

Formula:
    raw = sum(score_i * weight_i)
    susceptibility = raw / (MAX_SCORE * sum(weight_i))

Scores are in {1..5}, so susceptibility is bounded to [0.2, 1.0] for any
non-negative weights. A cell with a nodata score (0) in any component is
NaN in the susceptibility surface and class 0 in the class raster.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Sequence, Union

import numpy as np

from src.scoring.transforms import (
    MAX_SCORE,
    NODATA_SCORE,
    categorical_lookup,
    ordinal_breakpoints,
    validate_breakpoints,
)

logger = logging.getLogger(__name__)

# Type alias
NumericType = Union[float, np.ndarray]

# Map transform names to functions
TRANSFORM_FUNCTIONS = {
    "ordinal_breakpoints": ordinal_breakpoints,
    "categorical_lookup": categorical_lookup,
}

# Susceptibility tiers: <=0.2 -> 1, (0.2, 0.4] -> 2, ..., >0.8 -> 5
DEFAULT_CLASS_BREAKPOINTS = (0.2, 0.4, 0.6, 0.8)
CLASS_VALUES = (1, 2, 3, 4, 5)

# Float accumulation noise in the weighted sum is dropped before classifying,
# so exact tier boundaries (e.g. all scores = 1 -> 0.2) land on the closed side.
SUSCEPTIBILITY_DECIMALS = 12


def validate_weight(name: str, weight: Any) -> float:
    """
    Check a single predictor weight.

    Args:
        name: Predictor name (for error messages)
        weight: Candidate weight

    Returns:
        The weight as float

    Raises:
        ValueError: If the weight is not a finite, non-negative real number
    """
    if isinstance(weight, bool) or not isinstance(weight, numbers.Real):
        raise ValueError(
            f"Weight for '{name}' must be a real number, got {type(weight).__name__} {weight!r}"
        )
    weight = float(weight)
    if not math.isfinite(weight):
        raise ValueError(f"Weight for '{name}' must be finite, got {weight}")
    if weight < 0:
        raise ValueError(f"Weight for '{name}' must be non-negative, got {weight}")
    return weight


@dataclass
class ScoreComponent:
    """
    A single predictor with ordinal transform and overlay weight.

    Attributes:
        name: Identifier for this component (used as key in input dict)
        transform: Name of transform function ("ordinal_breakpoints", "categorical_lookup")
        transform_params: Parameters to pass to the transform function
        weight: Non-negative weight in the overlay sum
    """

    name: str
    transform: str
    transform_params: dict[str, Any]
    weight: float

    def __post_init__(self):
        """Validate the component configuration."""
        if self.transform not in TRANSFORM_FUNCTIONS:
            raise ValueError(
                f"Unknown transform '{self.transform}'. "
                f"Available: {list(TRANSFORM_FUNCTIONS.keys())}"
            )

        self.weight = validate_weight(self.name, self.weight)

        if self.transform == "ordinal_breakpoints":
            validate_breakpoints(
                self.transform_params.get("breakpoints"), self.transform_params.get("scores")
            )
        elif not self.transform_params.get("table"):
            raise ValueError(f"Component '{self.name}' needs a non-empty category table")

    def apply(self, value: NumericType) -> Union[int, np.ndarray]:
        """
        Apply this component's transform to a value.

        Args:
            value: Raw predictor value(s)

        Returns:
            Ordinal score(s) in {1..5}, 0 for nodata
        """
        transform_fn = TRANSFORM_FUNCTIONS[self.transform]
        return transform_fn(value, **self.transform_params)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        params = dict(self.transform_params)
        if "table" in params:
            params["table"] = {str(k): v for k, v in params["table"].items()}
        for key in ("breakpoints", "scores"):
            if key in params:
                params[key] = list(params[key])
        return {
            "name": self.name,
            "transform": self.transform,
            "transform_params": params,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreComponent":
        """Deserialize from dictionary."""
        params = dict(data["transform_params"])
        # JSON object keys are strings; category codes are ints
        if "table" in params:
            params["table"] = {int(k): int(v) for k, v in params["table"].items()}
        for key in ("breakpoints", "scores"):
            if key in params:
                params[key] = tuple(params[key])
        return cls(
            name=data["name"],
            transform=data["transform"],
            transform_params=params,
            weight=data["weight"],
        )


@dataclass
class ScoreCombiner:
    """
    Combines ScoreComponents into a susceptibility surface.

    Formula: susceptibility = sum(score_i * weight_i) / (5 * sum(weight_i))

    Weights are not required to sum to 1.0; the divisor already bounds the
    output to [0, 1].

    Attributes:
        name: Identifier for this combiner
        components: List of ScoreComponent instances
        class_breakpoints: Upper bounds of tiers 1-4 (tier 5 is open above)
    """

    name: str
    components: list[ScoreComponent] = field(default_factory=list)
    class_breakpoints: Sequence[float] = DEFAULT_CLASS_BREAKPOINTS

    def __post_init__(self):
        """Validate the combiner configuration."""
        if not self.components:
            raise ValueError(f"Combiner '{self.name}' has no components")

        names = [c.name for c in self.components]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate component names: {duplicates}")

        total = self.total_weight
        if total <= 0:
            raise ValueError(
                f"Component weights must have a positive sum, got {total}. "
                f"Weights: {self.weights}"
            )
        if not np.isclose(total, 1.0, rtol=1e-5):
            logger.warning(
                f"Weights sum to {total:.4f}, not 1.0; output is still normalized "
                f"by {MAX_SCORE} x sum(weights)"
            )

        self.class_breakpoints = tuple(float(b) for b in self.class_breakpoints)
        validate_breakpoints(self.class_breakpoints, CLASS_VALUES)

    @property
    def weights(self) -> dict[str, float]:
        """Weight vector keyed by component name."""
        return {c.name: c.weight for c in self.components}

    @property
    def total_weight(self) -> float:
        return float(sum(c.weight for c in self.components))

    @property
    def max_possible(self) -> float:
        """Largest attainable raw weighted sum (every score = 5)."""
        return MAX_SCORE * self.total_weight

    def get_component_scores(self, inputs: dict[str, NumericType]) -> dict[str, NumericType]:
        """
        Get ordinal scores for each component.

        Args:
            inputs: Dictionary mapping component names to their raw values

        Returns:
            Dictionary mapping component names to their ordinal scores
        """
        scores = {}
        for component in self.components:
            if component.name not in inputs:
                raise KeyError(
                    f"Missing input for component '{component.name}'. "
                    f"Available inputs: {list(inputs.keys())}"
                )
            scores[component.name] = component.apply(inputs[component.name])
        return scores

    def combine_scores(self, scores: dict[str, NumericType]) -> NumericType:
        """
        Weighted overlay of precomputed ordinal scores.

        Args:
            scores: Dictionary mapping component names to score arrays in {0..5}

        Returns:
            Susceptibility in [0, 1] (float64), NaN where any score is nodata

        Raises:
            KeyError: If a component score is missing
            ValueError: If score arrays do not share one shape
        """
        missing = [c.name for c in self.components if c.name not in scores]
        if missing:
            raise KeyError(
                f"Missing scores for components {missing}. "
                f"Available scores: {list(scores.keys())}"
            )

        arrays = {c.name: np.asarray(scores[c.name]) for c in self.components}
        shapes = {name: arr.shape for name, arr in arrays.items()}
        if len(set(shapes.values())) > 1:
            raise ValueError(f"Score rasters are not co-registered, shapes differ: {shapes}")

        first = next(iter(arrays.values()))
        raw = np.zeros(first.shape, dtype=np.float64)
        nodata = np.zeros(first.shape, dtype=bool)

        for component in self.components:
            score = arrays[component.name]
            nodata |= score == NODATA_SCORE
            raw = raw + component.weight * score.astype(np.float64)

        susceptibility = np.round(raw / self.max_possible, SUSCEPTIBILITY_DECIMALS)
        susceptibility = np.clip(susceptibility, 0.0, 1.0)
        susceptibility = np.where(nodata, np.nan, susceptibility)

        if susceptibility.ndim == 0:
            return float(susceptibility)
        return susceptibility

    def compute(self, inputs: dict[str, NumericType]) -> NumericType:
        """
        Compute susceptibility from raw predictor values.

        Args:
            inputs: Dictionary mapping component names to their raw values

        Returns:
            Susceptibility in [0, 1], NaN where any predictor is nodata
        """
        return self.combine_scores(self.get_component_scores(inputs))

    def classify(self, susceptibility: NumericType) -> Union[int, np.ndarray]:
        """
        Classify susceptibility into tiers 1..5 (0 where NaN).

        Example:
            >>> combiner.classify(0.2)
            1
            >>> combiner.classify(0.2000001)
            2
        """
        return ordinal_breakpoints(susceptibility, self.class_breakpoints, CLASS_VALUES)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "components": [c.to_dict() for c in self.components],
            "class_breakpoints": list(self.class_breakpoints),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreCombiner":
        """Deserialize from dictionary."""
        components = [ScoreComponent.from_dict(c) for c in data["components"]]
        return cls(
            name=data["name"],
            components=components,
            class_breakpoints=tuple(data.get("class_breakpoints", DEFAULT_CLASS_BREAKPOINTS)),
        )

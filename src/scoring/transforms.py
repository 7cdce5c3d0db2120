"""
Scoring transformation functions.

All transformations convert raw predictor values into ordinal hazard scores
in {1, 2, 3, 4, 5} (higher = more hazardous). Score 0 is reserved for nodata.

Transformation types:
1. ordinal_breakpoints - right-closed interval lookup for continuous values
   (e.g., slope, roughness, distance to water)
2. categorical_lookup - fixed per-category table (e.g., land cover class)

Interval lookup uses a sorted breakpoint table and binary search, so each
value lands in exactly one interval regardless of rule order:

    breakpoints:      b0        b1        b2        b3
    ---------------]---------]---------]---------]--------------->
    scores:     s0        s1        s2        s3        s4

A value exactly on a breakpoint belongs to the interval on its left.
"""

from typing import Mapping, Sequence, Union

import numpy as np

# Type alias for values that can be scalar or array
NumericType = Union[float, np.ndarray]

MIN_SCORE = 1
MAX_SCORE = 5
NODATA_SCORE = 0


def _validate_scores(scores: np.ndarray) -> None:
    """Check that every score is an integer hazard score in [MIN_SCORE, MAX_SCORE]."""
    if scores.size == 0:
        raise ValueError("Score table must not be empty")
    if not np.all(np.equal(np.mod(scores, 1), 0)):
        raise ValueError(f"Scores must be integers, got {scores.tolist()}")
    if np.any(scores < MIN_SCORE) or np.any(scores > MAX_SCORE):
        raise ValueError(
            f"Scores must be in [{MIN_SCORE}, {MAX_SCORE}], got {scores.tolist()}"
        )


def validate_breakpoints(breakpoints: Sequence[float], scores: Sequence[int]) -> None:
    """
    Validate a breakpoint table.

    Args:
        breakpoints: Interval upper bounds, strictly increasing and finite
        scores: Score per interval, one more than the number of breakpoints

    Raises:
        ValueError: If the table would leave gaps, overlap, or emit
            scores outside [1, 5]
    """
    breaks = np.asarray(breakpoints, dtype=float)
    score_table = np.asarray(scores, dtype=float)

    if breaks.ndim != 1 or breaks.size == 0:
        raise ValueError(f"Breakpoints must be a non-empty 1D sequence, got {breakpoints!r}")
    if not np.all(np.isfinite(breaks)):
        raise ValueError(f"Breakpoints must be finite, got {breaks.tolist()}")
    if np.any(np.diff(breaks) <= 0):
        raise ValueError(f"Breakpoints must be strictly increasing, got {breaks.tolist()}")
    if score_table.shape != (breaks.size + 1,):
        raise ValueError(
            f"Need exactly {breaks.size + 1} scores for {breaks.size} breakpoints, "
            f"got {score_table.size}"
        )
    _validate_scores(score_table)


def ordinal_breakpoints(
    value: NumericType,
    breakpoints: Sequence[float],
    scores: Sequence[int],
) -> Union[int, np.ndarray]:
    """
    Right-closed interval lookup.

    Assigns scores[i] to values in (breakpoints[i-1], breakpoints[i]], with the
    first interval open to -inf and the last to +inf. NaN maps to NODATA_SCORE.

    Args:
        value: Input value(s) to score
        breakpoints: Strictly increasing interval upper bounds
        scores: Score for each of the len(breakpoints) + 1 intervals

    Returns:
        Score(s) as uint8 in {1..5}, or 0 where value is NaN

    Example:
        >>> ordinal_breakpoints(5.0, breakpoints=(5, 15, 25, 35), scores=(1, 2, 3, 4, 5))
        1
        >>> ordinal_breakpoints(5.0001, breakpoints=(5, 15, 25, 35), scores=(1, 2, 3, 4, 5))
        2
        >>> ordinal_breakpoints(300.0, breakpoints=(50, 100, 250, 500), scores=(5, 4, 3, 2, 1))
        2
    """
    validate_breakpoints(breakpoints, scores)
    breaks = np.asarray(breakpoints, dtype=float)
    score_table = np.asarray(scores, dtype=np.uint8)

    value = np.asarray(value, dtype=float)

    # side="left": index i satisfies breaks[i-1] < value <= breaks[i]
    interval = np.searchsorted(breaks, value, side="left")
    result = np.array(score_table[interval], dtype=np.uint8)
    result[np.isnan(value)] = NODATA_SCORE

    # Return scalar if input was scalar
    if result.ndim == 0:
        return int(result)
    return result


def categorical_lookup(
    value: NumericType,
    table: Mapping[int, int],
) -> Union[int, np.ndarray]:
    """
    Per-category score lookup.

    Categories are matched by equality, so the table order has no effect.
    Codes missing from the table, and NaN, map to NODATA_SCORE.

    Args:
        value: Category code(s), e.g. ESA WorldCover class values
        table: Mapping of category code to score in [1, 5]

    Returns:
        Score(s) as uint8

    Example:
        >>> categorical_lookup(20, table={10: 1, 20: 3})
        3
        >>> categorical_lookup(99, table={10: 1, 20: 3})
        0
    """
    if not table:
        raise ValueError("Category table must not be empty")
    _validate_scores(np.asarray(list(table.values()), dtype=float))

    value = np.asarray(value, dtype=float)
    result = np.full(value.shape, NODATA_SCORE, dtype=np.uint8)

    for category, score in table.items():
        result[value == float(category)] = score

    if result.ndim == 0:
        return int(result)
    return result

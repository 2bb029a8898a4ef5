"""Innovation consistency tests for scalar fusion.

The filter core only asks a yes/no question of its gate collaborator:
given the innovation y and its variance S, should this scalar update be
applied? This module supplies the chi-square answer to that question and
the helpers to pick thresholds and monitor consistency.

For a scalar observation the normalized innovation squared

    d² = y² / S

is chi-square distributed with one degree of freedom when the filter is
consistent. Accept if d² < χ²(1, confidence).
"""

from typing import Tuple

import numpy as np
from scipy import stats


def normalized_innovation_squared(y: float, S: float) -> float:
    """Normalized innovation squared y² / S of a scalar update.

    Args:
        y: Innovation (measured minus predicted).
        S: Innovation variance, must be positive.

    Returns:
        y² / S.

    Raises:
        ValueError: If S is not positive.

    Example:
        >>> normalized_innovation_squared(2.0, 4.0)
        1.0
    """
    if not S > 0:
        raise ValueError(f"Innovation variance must be positive, got {S}")
    return float(y * y / S)


def chi_square_threshold(dof: int = 1, confidence: float = 0.95) -> float:
    """Chi-square critical value χ²(dof, confidence).

    Args:
        dof: Degrees of freedom (1 for scalar fusion).
        confidence: Confidence level in (0, 1).

    Returns:
        Critical value; e.g. ≈ 3.841 for dof=1 at 95%.

    Raises:
        ValueError: If dof < 1 or confidence is outside (0, 1).

    Example:
        >>> np.allclose(chi_square_threshold(1, 0.95), 3.841, atol=0.01)
        True
    """
    if dof < 1:
        raise ValueError(f"Degrees of freedom must be positive, got {dof}")
    if not (0 < confidence < 1):
        raise ValueError(f"Confidence level must be in (0, 1), got {confidence}")
    return float(stats.chi2.ppf(confidence, dof))


def chi_square_bounds(dof: int = 1, confidence: float = 0.95) -> Tuple[float, float]:
    """Central chi-square interval for NIS consistency plots.

    Returns:
        (lower, upper) = (ppf((1 - c) / 2), ppf((1 + c) / 2)).
    """
    if dof < 1:
        raise ValueError(f"Degrees of freedom must be positive, got {dof}")
    if not (0 < confidence < 1):
        raise ValueError(f"Confidence level must be in (0, 1), got {confidence}")
    lower = float(stats.chi2.ppf((1.0 - confidence) / 2.0, dof))
    upper = float(stats.chi2.ppf((1.0 + confidence) / 2.0, dof))
    return lower, upper


def chi_square_gate(y: float, S: float, confidence: float = 0.95) -> bool:
    """Accept a scalar innovation if y² / S < χ²(1, confidence).

    A non-positive or non-finite S is never accepted.

    Example:
        >>> chi_square_gate(0.5, 1.0)
        True
        >>> chi_square_gate(5.0, 1.0)
        False
    """
    if not (np.isfinite(S) and S > 0 and np.isfinite(y)):
        return False
    return normalized_innovation_squared(y, S) < chi_square_threshold(1, confidence)


class ChiSquareGate:
    """Callable chi-square gate for NavEKF24(gate=...).

    The threshold is computed once at construction.

    Args:
        confidence: Confidence level in (0, 1). Default 0.99.

    Example:
        >>> gate = ChiSquareGate(confidence=0.99)
        >>> gate(0.1, 1.0)
        True
    """

    def __init__(self, confidence: float = 0.99):
        self.confidence = confidence
        self.threshold = chi_square_threshold(1, confidence)

    def __call__(self, y: float, S: float) -> bool:
        if not (np.isfinite(S) and S > 0 and np.isfinite(y)):
            return False
        return y * y / S < self.threshold

    def __repr__(self) -> str:
        return f"ChiSquareGate(confidence={self.confidence})"

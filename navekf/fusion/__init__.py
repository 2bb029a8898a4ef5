"""Aiding measurement packets and innovation gating.

This package provides:
- AidingMeasurement: typed, validated input packet for NavEKF24.fuse()
- Chi-square tests on scalar innovations, usable as the filter's gate

Gating policy (which sensors to gate, at what confidence) belongs to the
caller; the filter only consults the gate it is given.
"""

from navekf.fusion.gating import (
    ChiSquareGate,
    chi_square_bounds,
    chi_square_gate,
    chi_square_threshold,
    normalized_innovation_squared,
)
from navekf.fusion.types import AidingMeasurement, MeasurementKind

__all__ = [
    # Types
    "AidingMeasurement",
    "MeasurementKind",
    # Gating
    "ChiSquareGate",
    "chi_square_bounds",
    "chi_square_gate",
    "chi_square_threshold",
    "normalized_innovation_squared",
]

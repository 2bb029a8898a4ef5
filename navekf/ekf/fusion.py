"""
Sequential scalar fusion and the attitude error-state reset.

Each aiding observation is applied as one scalar Kalman update, walking
through four stages:

    Predicted -> Innovated -> Corrected -> Reset -> Predicted

    Innovate:  y = z - h(x)
    Gain:      S = H P H^T + R,  K = P H^T / S
    Correct:   x += K y,  P -= K (P H^T)^T   (or Joseph form)
    Reset:     q <- normalize(q ⊗ exp(rotErr)),  rotErr <- 0

H is sparse (only the columns in ScalarObservation.h_index are non-zero),
so P H^T is a weighted sum of a few columns of P. An update either applies
completely or leaves state and covariance untouched: every quantity is
computed on temporaries and committed only after the checks pass. A
rejected update is reported through FusionResult.status, never raised.

The reset runs after every scalar update because the next observation's
Jacobian is linearized about zero rotation error.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from navekf.coords.rotations import quat_multiply, quat_normalize, rotvec_to_quat
from navekf.ekf.measurements import ScalarObservation
from navekf.ekf.states import NavState, StateIndex

# gate(innovation, innovation_variance) -> accept
InnovationGate = Callable[[float, float], bool]


class FusionStatus(Enum):
    """Outcome of one scalar fusion."""

    APPLIED = "applied"
    REJECTED_VARIANCE = "rejected_variance"
    REJECTED_NONFINITE = "rejected_nonfinite"
    REJECTED_GATE = "rejected_gate"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class FusionResult:
    """
    Report of one scalar fusion.

    Attributes:
        label: Observation label ('vel_n', 'mag_x', ...).
        status: FusionStatus of the update.
        innovation: Measured minus predicted (nan if never computed).
        innovation_variance: S = H P H^T + R (nan if never computed).
        test_ratio: y² / S, the normalized innovation squared.
    """

    label: str
    status: FusionStatus
    innovation: float = float("nan")
    innovation_variance: float = float("nan")
    test_ratio: float = float("nan")

    @property
    def applied(self) -> bool:
        return self.status is FusionStatus.APPLIED


def reset_error_state(state: NavState) -> None:
    """
    Fold the rotation-error states into the quaternion and zero them.

    The covariance rows and columns of the rotation error are left as they
    are; they describe the remaining attitude uncertainty about the new
    quaternion.
    """
    rot_err = state.x[StateIndex.ROT_ERR]
    if np.any(rot_err != 0.0):
        state.q = quat_normalize(quat_multiply(state.q, rotvec_to_quat(rot_err)))
    else:
        state.q = quat_normalize(state.q)
    state.x[StateIndex.ROT_ERR] = 0.0


def fuse_scalar(
    state: NavState,
    obs: ScalarObservation,
    gate: Optional[InnovationGate] = None,
    joseph: bool = False,
) -> FusionResult:
    """
    Apply one scalar measurement update followed by the error-state reset.

    Args:
        state: State store, modified in place when the update is applied.
        obs: Linearized observation from a measurement model.
        gate: Optional consistency test on (innovation, S); returning False
            rejects the update.
        joseph: Use the Joseph form (I - KH) P (I - KH)^T + K R K^T.

    Returns:
        FusionResult describing the outcome.
    """
    idx = obs.h_index
    h = obs.h_value
    P = state.P

    # P H^T from the non-zero columns of H
    PHt = P[:, idx] @ h
    S = float(h @ PHt[idx] + obs.variance)
    y = obs.innovation()

    if not (np.isfinite(S) and np.isfinite(y) and np.all(np.isfinite(PHt))):
        return _reject(state, obs, FusionStatus.REJECTED_NONFINITE, y, S)
    if S <= 0.0:
        return _reject(state, obs, FusionStatus.REJECTED_VARIANCE, y, S)

    test_ratio = y * y / S
    if gate is not None and not gate(y, S):
        return _reject(state, obs, FusionStatus.REJECTED_GATE, y, S, test_ratio)

    K = PHt / S
    x_new = state.x + K * y

    if joseph:
        # (I - KH) P
        M = P - np.outer(K, PHt)
        # ((I - KH) P) (I - KH)^T
        P_new = M - np.outer(M[:, idx] @ h, K) + obs.variance * np.outer(K, K)
    else:
        P_new = P - np.outer(K, PHt)

    if not (np.all(np.isfinite(x_new)) and np.all(np.isfinite(P_new))):
        return _reject(state, obs, FusionStatus.REJECTED_NONFINITE, y, S, test_ratio)

    state.x = x_new
    state.P = P_new
    state.condition()
    reset_error_state(state)
    state.diagnostics["fusions_applied"] += 1

    return FusionResult(obs.label, FusionStatus.APPLIED, y, S, test_ratio)


def unavailable(state: NavState, label: str) -> FusionResult:
    """Result for an observation the measurement model could not form."""
    state.diagnostics["fusions_rejected"] += 1
    return FusionResult(label, FusionStatus.UNAVAILABLE)


def _reject(
    state: NavState,
    obs: ScalarObservation,
    status: FusionStatus,
    y: float,
    S: float,
    test_ratio: float = float("nan"),
) -> FusionResult:
    state.diagnostics["fusions_rejected"] += 1
    return FusionResult(obs.label, status, float(y), float(S), float(test_ratio))

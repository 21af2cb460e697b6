"""Physics/math helpers for V0 mass reconstruction and resolution studies."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from .models import LorentzVector

Momentum3 = tuple[float, float, float]


def momentum_to_lorentz(momentum: Momentum3, mass: float) -> LorentzVector:
    """Convert a 3-momentum plus mass hypothesis into a Lorentz 4-vector."""
    px, py, pz = momentum
    energy = math.sqrt(px * px + py * py + pz * pz + mass * mass)
    return LorentzVector(px=px, py=py, pz=pz, e=energy)


def sum_lorentz(vectors: Iterable[LorentzVector]) -> LorentzVector:
    """Sum an iterable of Lorentz vectors."""
    total = LorentzVector(0.0, 0.0, 0.0, 0.0)
    for vec in vectors:
        total = total + vec
    return total


def invariant_mass(momenta: Sequence[Momentum3], masses: Sequence[float]) -> float:
    """Invariant mass of a system of particles with given momenta and masses.

    `m = sqrt((sum E_i)^2 - |sum p_i|^2)` with `E_i = sqrt(|p_i|^2 + m_i^2)`.
    """
    if len(momenta) != len(masses):
        raise ValueError("Mass list length must match momentum multiplicity.")
    p4 = sum_lorentz(
        momentum_to_lorentz(momentum, mass)
        for momentum, mass in zip(momenta, masses, strict=True)
    )
    return p4.mass


def transverse_momentum(px: float, py: float) -> float:
    return math.hypot(px, py)


def relative_residual(reco: float, true: float) -> float:
    """Return `(reco - true) / true`, or NaN when the true value is zero."""
    if true == 0.0:
        return math.nan
    return (reco - true) / true


def inverse_pt_residual(pt_reco: float, pt_true: float) -> float:
    """Return `1/pt_reco - 1/pt_true`, or NaN when either pt is zero."""
    if pt_reco == 0.0 or pt_true == 0.0:
        return math.nan
    return 1.0 / pt_reco - 1.0 / pt_true

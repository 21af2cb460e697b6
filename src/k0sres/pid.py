"""Particle species helpers for the K0-short selection.

This module exposes the named species used by the K0-short selection (mass,
PDG code) and the reference decay length of the lifetime cut.
"""

from __future__ import annotations

from .models import ParticleHypothesis

PDG_PION_PLUS = 211
PDG_PION_MINUS = -211
PDG_K0_SHORT = 310

# Mean decay length of the K0-short, in the units of the lifetime cut.
K0_SHORT_CTAU = 2.684

_PION = ParticleHypothesis(name="pi", mass=0.13957039, pdg_id=PDG_PION_PLUS)
_K0_SHORT = ParticleHypothesis(name="K0S", mass=0.497614, pdg_id=PDG_K0_SHORT)


def make_pion() -> ParticleHypothesis:
    """Return the standard charged-pion mass hypothesis."""
    return _PION


def make_k0short() -> ParticleHypothesis:
    """Return the K0-short hypothesis."""
    return _K0_SHORT



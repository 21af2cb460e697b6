"""Derived quantities for accepted K0-short candidates.

Mass reconstruction offers two methods: the mass stored on the candidate, or
a recomputation from the daughter track momenta under the pi+ pi- hypothesis.
In truth-comparison mode the daughters are matched to their generated
particles and momentum residuals are computed per daughter.

Relative residuals against a true component of exactly zero are NaN; the
histogram backend routes NaN fills to the overflow bin, so the candidate
still contributes its full set of fills.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from .models import DaughterTrack, McParticle, V0Candidate
from .physics import (
    Momentum3,
    invariant_mass,
    inverse_pt_residual,
    relative_residual,
    transverse_momentum,
)
from .pid import PDG_K0_SHORT, PDG_PION_MINUS, PDG_PION_PLUS, make_pion


@dataclass(frozen=True)
class DaughterResolution:
    """Reco-vs-true comparison for one daughter."""

    true_px: float
    true_py: float
    true_pz: float
    true_pt: float
    px_rel: float
    py_rel: float
    pz_rel: float
    pt_rel: float
    pt_delta: float
    inv_pt_delta: float


@dataclass(frozen=True)
class CandidateResolution:
    """Resolution quantities of one truth-matched candidate."""

    pos: DaughterResolution
    neg: DaughterResolution
    is_true_k0short: bool


def compute_mass(
    v0: V0Candidate,
    pos: DaughterTrack,
    neg: DaughterTrack,
    from_daughters: bool = False,
) -> float:
    """Return the candidate mass, stored or recomputed from daughter tracks."""
    if not from_daughters:
        return v0.mass_k0short
    pion_mass = make_pion().mass
    return invariant_mass(
        [(pos.px, pos.py, pos.pz), (neg.px, neg.py, neg.pz)],
        [pion_mass, pion_mass],
    )


def daughter_resolution(reco: Momentum3, true: McParticle) -> DaughterResolution:
    """Compare a reconstructed daughter momentum with its generated particle."""
    px, py, pz = reco
    pt = transverse_momentum(px, py)
    true_pt = true.pt
    return DaughterResolution(
        true_px=true.px,
        true_py=true.py,
        true_pz=true.pz,
        true_pt=true_pt,
        px_rel=relative_residual(px, true.px),
        py_rel=relative_residual(py, true.py),
        pz_rel=relative_residual(pz, true.pz),
        pt_rel=relative_residual(pt, true_pt),
        pt_delta=pt - true_pt,
        inv_pt_delta=inverse_pt_residual(pt, true_pt),
    )


def match_daughters(
    pos: DaughterTrack,
    neg: DaughterTrack,
    mc_particles: Mapping[int, McParticle],
) -> tuple[McParticle, McParticle] | None:
    """Resolve both daughter truth links and require a (pi+, pi-) pair."""
    if pos.mc_particle_index is None or neg.mc_particle_index is None:
        return None
    mc_pos = mc_particles.get(pos.mc_particle_index)
    mc_neg = mc_particles.get(neg.mc_particle_index)
    if mc_pos is None or mc_neg is None:
        return None
    if mc_pos.pdg_code != PDG_PION_PLUS or mc_neg.pdg_code != PDG_PION_MINUS:
        return None
    return mc_pos, mc_neg


def is_true_k0short(v0: V0Candidate, mc_particles: Mapping[int, McParticle]) -> bool:
    """True when the candidate's own truth link points to a K0-short."""
    if v0.mc_particle_index is None:
        return False
    mother = mc_particles.get(v0.mc_particle_index)
    return mother is not None and mother.pdg_code == PDG_K0_SHORT


def compute_resolution(
    v0: V0Candidate,
    pos: DaughterTrack,
    neg: DaughterTrack,
    mc_particles: Mapping[int, McParticle],
) -> CandidateResolution | None:
    """Return resolution quantities, or None when truth matching fails."""
    matched = match_daughters(pos, neg, mc_particles)
    if matched is None:
        return None
    mc_pos, mc_neg = matched
    return CandidateResolution(
        pos=daughter_resolution((v0.px_pos, v0.py_pos, v0.pz_pos), mc_pos),
        neg=daughter_resolution((v0.px_neg, v0.py_neg, v0.pz_neg), mc_neg),
        is_true_k0short=is_true_k0short(v0, mc_particles),
    )

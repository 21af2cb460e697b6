"""Candidate acceptance logic for K0-short V0s.

The acceptance filter is an ordered chain of named cuts, each a pure function
of `(v0, pos_track, neg_track, event)`. Every cut is written in its passing
form so that NaN inputs fail the comparison and reject the candidate.

The preselection helpers reproduce the topological and event-level cuts that
are applied to whole collections before the per-candidate loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from .models import (
    DaughterTrack,
    DetectorRequirement,
    Event,
    EventSelection,
    PidHypothesisRequirement,
    V0Candidate,
    V0Preselection,
    V0Selection,
)
from .pid import K0_SHORT_CTAU, make_k0short

Predicate = Callable[[V0Candidate, DaughterTrack, DaughterTrack, Event], bool]


@dataclass(frozen=True)
class Cut:
    """One named acceptance predicate."""

    name: str
    predicate: Predicate

    def __call__(
        self, v0: V0Candidate, pos: DaughterTrack, neg: DaughterTrack, event: Event
    ) -> bool:
        return self.predicate(v0, pos, neg, event)


class AcceptanceFilter:
    """Evaluate the ordered per-candidate cuts configured by a `V0Selection`."""

    def __init__(self, selection: V0Selection | None = None) -> None:
        self.selection = selection or V0Selection()
        self.cuts: tuple[Cut, ...] = tuple(build_cuts(self.selection))

    def accept(
        self, v0: V0Candidate, pos: DaughterTrack, neg: DaughterTrack, event: Event
    ) -> bool:
        """Return True when every cut passes; stops at the first failure."""
        return all(cut(v0, pos, neg, event) for cut in self.cuts)

    def first_failure(
        self, v0: V0Candidate, pos: DaughterTrack, neg: DaughterTrack, event: Event
    ) -> str | None:
        """Return the name of the first failing cut, or None if accepted."""
        for cut in self.cuts:
            if not cut(v0, pos, neg, event):
                return cut.name
        return None


def build_cuts(selection: V0Selection) -> list[Cut]:
    """Build the ordered cut chain for one selection configuration."""
    k0_mass = make_k0short().mass
    max_decay_length = K0_SHORT_CTAU * selection.lifetime

    return [
        Cut(
            "rapidity",
            lambda v0, pos, neg, ev: abs(v0.rapidity(k0_mass)) <= selection.max_rapidity,
        ),
        Cut("radius", lambda v0, pos, neg, ev: v0.v0_radius >= selection.min_radius),
        Cut(
            "lifetime",
            lambda v0, pos, neg, ev: v0.distance_over_momentum(ev) * k0_mass <= max_decay_length,
        ),
        _its_cut("its_ib_pos", selection.its_ib_selection_pos, positive=True),
        _its_cut("its_ib_neg", selection.its_ib_selection_neg, positive=False),
        Cut("tpc_hits", lambda v0, pos, neg, ev: pos.has_tpc and neg.has_tpc),
        Cut(
            "tpc_nsigma",
            lambda v0, pos, neg, ev: abs(pos.tpc_nsigma_pi) <= selection.max_tpc_nsigma
            and abs(neg.tpc_nsigma_pi) <= selection.max_tpc_nsigma,
        ),
        Cut(
            "tpc_crossed_rows",
            lambda v0, pos, neg, ev: pos.tpc_ncls_crossed_rows >= selection.min_tpc_crossed_rows
            and neg.tpc_ncls_crossed_rows >= selection.min_tpc_crossed_rows,
        ),
        _presence_cut("tof_pos", selection.tof_selection_pos, "has_tof", positive=True),
        _presence_cut("tof_neg", selection.tof_selection_neg, "has_tof", positive=False),
        _presence_cut("trd_pos", selection.trd_selection_pos, "has_trd", positive=True),
        _presence_cut("trd_neg", selection.trd_selection_neg, "has_trd", positive=False),
        _pid_hypothesis_cut("pid_hypo_pos", selection.pid_hypo_pos, positive=True),
        _pid_hypothesis_cut("pid_hypo_neg", selection.pid_hypo_neg, positive=False),
    ]


def _its_cut(name: str, requirement: DetectorRequirement, positive: bool) -> Cut:
    def predicate(v0, pos, neg, ev) -> bool:
        track = pos if positive else neg
        return requirement.allows(track.its_ncls_inner_barrel > 0)

    return Cut(name, predicate)


def _presence_cut(
    name: str, requirement: DetectorRequirement, flag: str, positive: bool
) -> Cut:
    def predicate(v0, pos, neg, ev) -> bool:
        track = pos if positive else neg
        return requirement.allows(bool(getattr(track, flag)))

    return Cut(name, predicate)


def _pid_hypothesis_cut(
    name: str, requirement: PidHypothesisRequirement, positive: bool
) -> Cut:
    def predicate(v0, pos, neg, ev) -> bool:
        track = pos if positive else neg
        return requirement.allows(track.pid_for_tracking)

    return Cut(name, predicate)


def passes_preselection(v0: V0Candidate, preselection: V0Preselection) -> bool:
    """Topological cuts on daughter DCAs and pointing angle (all strict)."""
    return (
        abs(v0.dca_pos_to_pv) > preselection.min_dca_pos_to_pv
        and abs(v0.dca_neg_to_pv) > preselection.min_dca_neg_to_pv
        and v0.dca_v0_daughters < preselection.max_dca_v0_daughters
        and v0.cos_pa > preselection.min_cos_pa
    )


def preselect_v0s(
    v0s: Iterable[V0Candidate], preselection: V0Preselection | None = None
) -> list[V0Candidate]:
    """Apply candidate-level preselection, keeping the input order."""
    if preselection is None:
        return list(v0s)
    return [v0 for v0 in v0s if passes_preselection(v0, preselection)]


def accepts_event(event: Event, selection: EventSelection) -> bool:
    """Event-level cuts on the selection flag and primary-vertex z."""
    if selection.require_sel8 and not event.sel8:
        return False
    return abs(event.pos_z) < selection.max_abs_z_vertex
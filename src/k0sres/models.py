"""Core data models used by the K0-short resolution analysis.

This module defines:
- immutable reconstructed records (`Event`, `DaughterTrack`, `V0Candidate`)
- generator-level records (`McParticle`)
- per-event bundles handed over by the record supplier (`EventRecord`)
- the 4-vector used for mass reconstruction (`LorentzVector`)
- per-daughter selection switches (`DetectorRequirement`, `PidHypothesisRequirement`)
- configurable controls (`V0Preselection`, `EventSelection`, `V0Selection`,
  `HistogramBinning`, `AnalysisOptions`, `AnalysisConfig`).
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Mapping


class InvalidSelectionError(ValueError):
    """Raised when a selection switch is configured outside its enumeration."""


@dataclass(frozen=True)
class Event:
    """One collision with its primary-vertex position and selection flag."""

    event_id: str
    pos_x: float
    pos_y: float
    pos_z: float
    sel8: bool = True


@dataclass(frozen=True)
class McParticle:
    """Generated particle referenced by truth links."""

    index: int
    pdg_code: int
    px: float
    py: float
    pz: float

    @property
    def pt(self) -> float:
        """Generated transverse momentum."""
        return math.hypot(self.px, self.py)


@dataclass(frozen=True)
class DaughterTrack:
    """Single reconstructed daughter track with its detector-response extras."""

    index: int
    px: float
    py: float
    pz: float
    has_tpc: bool = True
    has_tof: bool = False
    has_trd: bool = False
    its_ncls_inner_barrel: int = 0
    tpc_ncls_crossed_rows: float = 0.0
    tpc_nsigma_pi: float = 0.0
    tof_nsigma_pi: float = 0.0
    pid_for_tracking: int = 2
    tpc_inner_param: float = 0.0
    tpc_signal: float = 0.0
    mc_particle_index: int | None = None

    @property
    def pt(self) -> float:
        """Transverse momentum."""
        return math.hypot(self.px, self.py)

    @property
    def eta(self) -> float:
        """Pseudorapidity computed from the momentum components."""
        p = math.sqrt(self.px * self.px + self.py * self.py + self.pz * self.pz)
        if p == abs(self.pz):
            return 1e9 if self.pz >= 0 else -1e9
        return 0.5 * math.log((p + self.pz) / (p - self.pz))


@dataclass(frozen=True)
class V0Candidate:
    """Reconstructed two-prong decay vertex with its daughter links.

    Daughter momenta (`px_pos`, ..., `pz_neg`) are evaluated at the decay
    vertex `(x, y, z)`. `mass_k0short` is the invariant mass precomputed under
    the pi+ pi- hypothesis.
    """

    index: int
    pos_track_index: int
    neg_track_index: int
    x: float
    y: float
    z: float
    px_pos: float
    py_pos: float
    pz_pos: float
    px_neg: float
    py_neg: float
    pz_neg: float
    mass_k0short: float
    dca_v0_daughters: float = 0.0
    dca_pos_to_pv: float = 0.0
    dca_neg_to_pv: float = 0.0
    cos_pa: float = 1.0
    mc_particle_index: int | None = None

    @property
    def px(self) -> float:
        return self.px_pos + self.px_neg

    @property
    def py(self) -> float:
        return self.py_pos + self.py_neg

    @property
    def pz(self) -> float:
        return self.pz_pos + self.pz_neg

    @property
    def p(self) -> float:
        """Total momentum magnitude."""
        return math.sqrt(self.px * self.px + self.py * self.py + self.pz * self.pz)

    @property
    def pt(self) -> float:
        return math.hypot(self.px, self.py)

    @property
    def eta(self) -> float:
        """Pseudorapidity of the candidate momentum."""
        p = self.p
        pz = self.pz
        if p == abs(pz):
            return 1e9 if pz >= 0 else -1e9
        return 0.5 * math.log((p + pz) / (p - pz))

    @property
    def phi(self) -> float:
        """Azimuthal angle in `[0, 2*pi)`."""
        return math.pi + math.atan2(-self.py, -self.px)

    @property
    def v0_radius(self) -> float:
        """Transverse distance of the decay vertex from the beam axis."""
        return math.hypot(self.x, self.y)

    @property
    def positive_pt(self) -> float:
        return math.hypot(self.px_pos, self.py_pos)

    @property
    def negative_pt(self) -> float:
        return math.hypot(self.px_neg, self.py_neg)

    def rapidity(self, mass: float) -> float:
        """Rapidity of the candidate under a mass hypothesis."""
        energy = math.sqrt(self.p * self.p + mass * mass)
        return 0.5 * math.log((energy + self.pz) / (energy - self.pz))

    def distance_over_momentum(self, event: Event) -> float:
        """Decay distance from the primary vertex divided by the total momentum."""
        dx = self.x - event.pos_x
        dy = self.y - event.pos_y
        dz = self.z - event.pos_z
        return math.sqrt(dx * dx + dy * dy + dz * dz) / (self.p + 1e-13)


@dataclass(frozen=True)
class EventRecord:
    """One event payload with its candidates and addressable track collections."""

    event: Event
    v0s: tuple[V0Candidate, ...]
    tracks: Mapping[int, DaughterTrack]
    mc_particles: Mapping[int, McParticle] = field(default_factory=dict)


@dataclass(frozen=True)
class ParticleHypothesis:
    """Named particle hypothesis used to derive mass-dependent observables."""

    name: str
    mass: float
    pdg_id: int | None = None


@dataclass(frozen=True)
class LorentzVector:
    """Simple 4-vector with convenience properties and addition."""

    px: float
    py: float
    pz: float
    e: float

    def __add__(self, other: "LorentzVector") -> "LorentzVector":
        """Component-wise 4-vector addition."""
        return LorentzVector(
            self.px + other.px,
            self.py + other.py,
            self.pz + other.pz,
            self.e + other.e,
        )

    @property
    def p2(self) -> float:
        """Squared 3-momentum magnitude."""
        return self.px * self.px + self.py * self.py + self.pz * self.pz

    @property
    def mass2(self) -> float:
        """Invariant mass squared."""
        return self.e * self.e - self.p2

    @property
    def mass(self) -> float:
        """Invariant mass with signed handling for small negative mass2 values."""
        m2 = self.mass2
        return m2**0.5 if m2 >= 0.0 else -((-m2) ** 0.5)


def _is_switch_integer(value: object) -> bool:
    # bool is an int subclass; JSON true/false must not select a branch.
    return isinstance(value, int) and not isinstance(value, bool)


class DetectorRequirement(enum.IntEnum):
    """Three-way presence switch for one detector on one daughter."""

    ABSENT = -1
    ANY = 0
    PRESENT = 1

    @classmethod
    def parse(cls, value: int | "DetectorRequirement", label: str) -> "DetectorRequirement":
        """Convert a configured integer, raising on values outside -1, 0, 1."""
        if _is_switch_integer(value) and value in {member.value for member in cls}:
            return cls(value)
        raise InvalidSelectionError(
            f"Invalid {label} selection {value!r}: use -1 (absent), 0 (no selection) or 1 (present)."
        )

    def allows(self, present: bool) -> bool:
        if self is DetectorRequirement.ABSENT:
            return not present
        if self is DetectorRequirement.PRESENT:
            return present
        return True


class PidHypothesisRequirement(enum.IntEnum):
    """Required tracking-PID hypothesis of a daughter (-1 disables the check)."""

    ANY = -1
    ELECTRON = 0
    MUON = 1
    PION = 2
    KAON = 3
    PROTON = 4

    @classmethod
    def parse(
        cls, value: int | "PidHypothesisRequirement", label: str
    ) -> "PidHypothesisRequirement":
        """Convert a configured integer, raising on values outside -1..4."""
        if _is_switch_integer(value) and value in {member.value for member in cls}:
            return cls(value)
        raise InvalidSelectionError(
            f"Invalid {label} PID selection {value!r}: use -1 (no selection) or 0..4."
        )

    def allows(self, pid_for_tracking: int) -> bool:
        if self is PidHypothesisRequirement.ANY:
            return True
        return pid_for_tracking == int(self)


@dataclass(frozen=True)
class AxisBinning:
    """Regular binning: number of bins plus lower and upper edge."""

    bins: int
    low: float
    high: float

    def __post_init__(self) -> None:
        if int(self.bins) <= 0:
            raise ValueError(f"Axis binning needs a positive bin count, got {self.bins}.")
        if not self.high > self.low:
            raise ValueError(
                f"Axis binning upper edge {self.high} must exceed lower edge {self.low}."
            )


@dataclass(frozen=True)
class HistogramBinning:
    """Configurable binning of every histogram axis."""

    mass: AxisBinning = AxisBinning(200, 0.4, 0.6)
    pt: AxisBinning = AxisBinning(200, 0.0, 10.0)
    pt_res: AxisBinning = AxisBinning(200, -1.2, 1.2)
    pt_res_rel: AxisBinning = AxisBinning(200, -0.2, 0.2)
    inv_pt_res: AxisBinning = AxisBinning(200, -1.2, 1.2)
    eta: AxisBinning = AxisBinning(2, -1.0, 1.0)
    eta_daughters: AxisBinning = AxisBinning(100, -1.0, 1.0)
    phi: AxisBinning = AxisBinning(100, 0.0, 6.28)


@dataclass(frozen=True)
class V0Preselection:
    """Topological candidate cuts applied before the per-candidate loop."""

    min_cos_pa: float = 0.995
    max_dca_v0_daughters: float = 1.0
    min_dca_pos_to_pv: float = 0.1
    min_dca_neg_to_pv: float = 0.1


@dataclass(frozen=True)
class EventSelection:
    """Event-level cuts applied before the per-candidate loop."""

    max_abs_z_vertex: float = 10.0
    require_sel8: bool = True


@dataclass(frozen=True)
class V0Selection:
    """Per-candidate cuts evaluated by the acceptance filter.

    Detector switches accept -1 (detector must be absent), 0 (no selection) or
    1 (detector must be present). PID-hypothesis switches accept -1 (no
    selection) or 0..4 (electron, muon, pion, kaon, proton). Integers are
    converted on construction; any other value raises `InvalidSelectionError`.
    """

    max_rapidity: float = 0.5
    min_radius: float = 0.9
    lifetime: float = 3.0
    max_tpc_nsigma: float = 10.0
    min_tpc_crossed_rows: float = -1.0
    its_ib_selection_pos: DetectorRequirement = DetectorRequirement.ANY
    its_ib_selection_neg: DetectorRequirement = DetectorRequirement.ANY
    tof_selection_pos: DetectorRequirement = DetectorRequirement.ANY
    tof_selection_neg: DetectorRequirement = DetectorRequirement.ANY
    trd_selection_pos: DetectorRequirement = DetectorRequirement.ANY
    trd_selection_neg: DetectorRequirement = DetectorRequirement.ANY
    pid_hypo_pos: PidHypothesisRequirement = PidHypothesisRequirement.ANY
    pid_hypo_neg: PidHypothesisRequirement = PidHypothesisRequirement.ANY

    def __post_init__(self) -> None:
        for name, label in (
            ("its_ib_selection_pos", "ITS IB (positive daughter)"),
            ("its_ib_selection_neg", "ITS IB (negative daughter)"),
            ("tof_selection_pos", "TOF (positive daughter)"),
            ("tof_selection_neg", "TOF (negative daughter)"),
            ("trd_selection_pos", "TRD (positive daughter)"),
            ("trd_selection_neg", "TRD (negative daughter)"),
        ):
            object.__setattr__(self, name, DetectorRequirement.parse(getattr(self, name), label))
        for name, label in (
            ("pid_hypo_pos", "positive daughter"),
            ("pid_hypo_neg", "negative daughter"),
        ):
            object.__setattr__(
                self, name, PidHypothesisRequirement.parse(getattr(self, name), label)
            )


@dataclass(frozen=True)
class AnalysisOptions:
    """Feature toggles and processing-mode switches."""

    use_multidim_histo: bool = False
    enable_tpc_plot: bool = False
    compute_inv_mass_from_daughters: bool = False
    process_data: bool = True
    process_mc: bool = False


@dataclass(frozen=True)
class AnalysisConfig:
    """Complete, immutable configuration of one analysis run."""

    binning: HistogramBinning = HistogramBinning()
    preselection: V0Preselection = V0Preselection()
    event_selection: EventSelection = EventSelection()
    selection: V0Selection = V0Selection()
    options: AnalysisOptions = AnalysisOptions()

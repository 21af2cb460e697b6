"""K0-short invariant-mass and resolution analysis over V0 candidates."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from .histograms import HistogramKind, HistogramRegistry, HistogramSink
from .models import (
    AnalysisConfig,
    DaughterTrack,
    Event,
    EventRecord,
    McParticle,
    V0Candidate,
)
from .resolution import compute_mass, compute_resolution
from .selection import AcceptanceFilter, accepts_event, preselect_v0s

logger = logging.getLogger(__name__)

EVENT_TICK = 0.5
CANDIDATE_TICK = 1.5


class K0sResolutionTask:
    """Select K0-short candidates and fill mass and resolution histograms.

    Histograms are registered once at construction. `process_data` and
    `process_mc` take one event whose candidates already passed the event and
    topological preselection; `process_event` applies that preselection to a
    raw `EventRecord` and runs every enabled mode.
    """

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        histograms: HistogramSink | None = None,
    ) -> None:
        self.config = config or AnalysisConfig()
        self.histograms = histograms if histograms is not None else HistogramRegistry("K0sResolution")
        self.acceptance = AcceptanceFilter(self.config.selection)
        self._init_histograms()

    def _init_histograms(self) -> None:
        options = self.config.options
        binning = self.config.binning
        h = self.histograms

        if options.process_data:
            logger.info("processData enabled")
        if options.process_mc:
            logger.info("processMC enabled")

        h.define_axis("events", 10, 0.0, 10.0, "Events")
        for name, axis, label in (
            ("mass", binning.mass, "m (GeV/c^2)"),
            ("pt", binning.pt, "pT (GeV/c)"),
            ("pt_res", binning.pt_res, "Delta pT (GeV/c)"),
            ("pt_res_rel", binning.pt_res_rel, "(pT^rec - pT^MC)/pT^MC"),
            ("inv_pt_res_pos", binning.inv_pt_res, "1/pT - 1/pT^MC pos. (GeV/c)^-1"),
            ("inv_pt_res_neg", binning.inv_pt_res, "1/pT - 1/pT^MC neg. (GeV/c)^-1"),
            ("eta", binning.eta, "eta"),
            ("eta_pos", binning.eta_daughters, "eta pos."),
            ("eta_neg", binning.eta_daughters, "eta neg."),
            ("phi", binning.phi, "phi"),
        ):
            h.define_axis(name, axis.bins, axis.low, axis.high, label)
        h.define_axis("true_k0", 2, -0.5, 1.5, "True K0")

        h.register_histogram("events", HistogramKind.H1, ["events"])
        h.register_histogram("mass_pt", HistogramKind.H2, ["mass", "pt"])
        h.register_histogram("mass_eta", HistogramKind.H2, ["mass", "eta"])
        h.register_histogram("mass_phi", HistogramKind.H2, ["mass", "phi"])

        if options.process_mc:
            h.register_histogram("mass_pos_pt_res", HistogramKind.H2, ["mass", "pt_res"])
            h.register_histogram("mass_neg_pt_res", HistogramKind.H2, ["mass", "pt_res"])
            for charge in ("pos", "neg"):
                for component in ("pt", "px", "py", "pz"):
                    h.register_histogram(
                        f"{charge}_{component}_rel_res", HistogramKind.H2, ["pt_res_rel", "pt"]
                    )

        if options.use_multidim_histo:
            kinematic_axes = ["mass", "pt", "eta", "phi", "eta_pos", "eta_neg"]
            if options.process_data:
                h.register_histogram("mass_sparse", HistogramKind.SPARSE, kinematic_axes)
            if options.process_mc:
                h.register_histogram(
                    "mass_sparse_mc",
                    HistogramKind.SPARSE,
                    kinematic_axes + ["inv_pt_res_pos", "inv_pt_res_neg", "true_k0"],
                )

        if options.enable_tpc_plot:
            h.define_axis("tpc_inner_param", 200, -10.0, 10.0, "p/Z (GeV/c)")
            h.define_axis("tpc_signal", 1000, 0.0, 1000.0, "dE/dx (a.u.)")
            h.define_axis("pid_hypothesis", 10, -0.5, 9.5, "PID hypothesis")
            h.register_histogram(
                "tpc_vs_pid_hypothesis",
                HistogramKind.H3,
                ["tpc_inner_param", "tpc_signal", "pid_hypothesis"],
            )

    def process_data(
        self,
        event: Event,
        v0s: Sequence[V0Candidate],
        tracks: Mapping[int, DaughterTrack],
    ) -> int:
        """Fill mass histograms for one preselected event; return accepted count."""
        options = self.config.options
        h = self.histograms
        h.fill("events", EVENT_TICK)
        accepted = 0
        for v0 in v0s:
            h.fill("events", CANDIDATE_TICK)
            daughters = self._daughters(v0, tracks)
            if daughters is None:
                continue
            pos, neg = daughters
            if not self.acceptance.accept(v0, pos, neg, event):
                continue

            mass = compute_mass(v0, pos, neg, options.compute_inv_mass_from_daughters)
            self._fill_kinematics(mass, v0)
            if options.use_multidim_histo:
                h.fill("mass_sparse", mass, v0.pt, v0.eta, v0.phi, pos.eta, neg.eta)
            if options.enable_tpc_plot:
                h.fill("tpc_vs_pid_hypothesis", pos.tpc_inner_param, pos.tpc_signal, pos.pid_for_tracking)
                h.fill("tpc_vs_pid_hypothesis", -neg.tpc_inner_param, neg.tpc_signal, neg.pid_for_tracking)
            accepted += 1
        return accepted

    def process_mc(
        self,
        event: Event,
        v0s: Sequence[V0Candidate],
        tracks: Mapping[int, DaughterTrack],
        mc_particles: Mapping[int, McParticle],
    ) -> int:
        """Fill mass and resolution histograms for truth-matched candidates."""
        options = self.config.options
        h = self.histograms
        h.fill("events", EVENT_TICK)
        accepted = 0
        for v0 in v0s:
            h.fill("events", CANDIDATE_TICK)
            daughters = self._daughters(v0, tracks)
            if daughters is None:
                continue
            pos, neg = daughters
            if not self.acceptance.accept(v0, pos, neg, event):
                continue
            resolution = compute_resolution(v0, pos, neg, mc_particles)
            if resolution is None:
                continue

            mass = compute_mass(v0, pos, neg, options.compute_inv_mass_from_daughters)
            for charge, res in (("pos", resolution.pos), ("neg", resolution.neg)):
                h.fill(f"{charge}_pt_rel_res", res.pt_rel, res.true_pt)
                h.fill(f"{charge}_px_rel_res", res.px_rel, res.true_px)
                h.fill(f"{charge}_py_rel_res", res.py_rel, res.true_py)
                h.fill(f"{charge}_pz_rel_res", res.pz_rel, res.true_pz)
            h.fill("mass_pos_pt_res", mass, resolution.pos.pt_delta)
            h.fill("mass_neg_pt_res", mass, resolution.neg.pt_delta)
            self._fill_kinematics(mass, v0)
            if options.use_multidim_histo:
                h.fill(
                    "mass_sparse_mc",
                    mass,
                    v0.pt,
                    v0.eta,
                    v0.phi,
                    pos.eta,
                    neg.eta,
                    resolution.pos.inv_pt_delta,
                    resolution.neg.inv_pt_delta,
                    float(resolution.is_true_k0short),
                )
            accepted += 1
        return accepted

    def process_event(self, record: EventRecord) -> int:
        """Apply event and topological preselection, then run the enabled modes."""
        if not accepts_event(record.event, self.config.event_selection):
            return 0
        v0s = preselect_v0s(record.v0s, self.config.preselection)
        accepted = 0
        if self.config.options.process_data:
            accepted += self.process_data(record.event, v0s, record.tracks)
        if self.config.options.process_mc:
            accepted += self.process_mc(record.event, v0s, record.tracks, record.mc_particles)
        return accepted

    def process_events(self, records: Iterable[EventRecord]) -> int:
        """Run `process_event` over a sequence of events."""
        n_events = 0
        accepted = 0
        for record in records:
            accepted += self.process_event(record)
            n_events += 1
        logger.info("Processed %d events, %d accepted candidate fills", n_events, accepted)
        return accepted

    def _fill_kinematics(self, mass: float, v0: V0Candidate) -> None:
        self.histograms.fill("mass_pt", mass, v0.pt)
        self.histograms.fill("mass_eta", mass, v0.eta)
        self.histograms.fill("mass_phi", mass, v0.phi)

    @staticmethod
    def _daughters(
        v0: V0Candidate, tracks: Mapping[int, DaughterTrack]
    ) -> tuple[DaughterTrack, DaughterTrack] | None:
        pos = tracks.get(v0.pos_track_index)
        neg = tracks.get(v0.neg_track_index)
        if pos is None or neg is None:
            logger.debug("V0 %d: unresolved daughter link, skipping", v0.index)
            return None
        return pos, neg

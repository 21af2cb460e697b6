"""Public package exports for the K0-short resolution analysis."""

from .analysis import K0sResolutionTask
from .histograms import HistogramKind, HistogramRegistry, HistogramSink, SparseHistogram
from .models import (
    AnalysisConfig,
    AnalysisOptions,
    AxisBinning,
    DaughterTrack,
    DetectorRequirement,
    Event,
    EventRecord,
    EventSelection,
    HistogramBinning,
    InvalidSelectionError,
    LorentzVector,
    McParticle,
    ParticleHypothesis,
    PidHypothesisRequirement,
    V0Candidate,
    V0Preselection,
    V0Selection,
)
from .pid import make_k0short, make_pion
from .resolution import compute_mass, compute_resolution
from .selection import AcceptanceFilter, accepts_event, preselect_v0s

__all__ = [
    "K0sResolutionTask",
    "AcceptanceFilter",
    "accepts_event",
    "preselect_v0s",
    "compute_mass",
    "compute_resolution",
    "HistogramKind",
    "HistogramRegistry",
    "HistogramSink",
    "SparseHistogram",
    "AnalysisConfig",
    "AnalysisOptions",
    "AxisBinning",
    "HistogramBinning",
    "V0Preselection",
    "EventSelection",
    "V0Selection",
    "DetectorRequirement",
    "PidHypothesisRequirement",
    "InvalidSelectionError",
    "Event",
    "EventRecord",
    "DaughterTrack",
    "McParticle",
    "V0Candidate",
    "LorentzVector",
    "ParticleHypothesis",
    "make_pion",
    "make_k0short",
]

"""End-to-end tests for the K0-short resolution task."""

from __future__ import annotations

import math
import unittest
from dataclasses import replace

from k0sres import (
    AnalysisConfig,
    AnalysisOptions,
    DaughterTrack,
    Event,
    EventRecord,
    HistogramRegistry,
    K0sResolutionTask,
    McParticle,
    V0Candidate,
    V0Selection,
    make_k0short,
)


class RecordingSink:
    """Histogram sink that records every call for inspection."""

    def __init__(self) -> None:
        self.axes: dict[str, tuple[int, float, float, str]] = {}
        self.registered: dict[str, tuple[str, tuple[str, ...]]] = {}
        self.fills: list[tuple[str, tuple[float, ...]]] = []

    def define_axis(self, name, bins, low, high, label=""):
        self.axes[name] = (bins, low, high, label)

    def register_histogram(self, name, kind, axes):
        self.registered[name] = (kind.value, tuple(axes))

    def fill(self, name, *values):
        self.fills.append((name, values))

    def fills_of(self, name: str) -> list[tuple[float, ...]]:
        return [values for fill_name, values in self.fills if fill_name == name]

    def filled_names(self) -> set[str]:
        return {name for name, _ in self.fills}


class TestK0sResolutionTask(unittest.TestCase):
    """Scenario tests for data and truth-comparison processing."""

    @staticmethod
    def _event() -> Event:
        return Event("evt0", pos_x=0.0, pos_y=0.0, pos_z=0.0, sel8=True)

    @staticmethod
    def _candidate(**track_kwargs) -> tuple[V0Candidate, dict[int, DaughterTrack]]:
        """One candidate with rapidity 0.1, pT 1 and decay radius 1."""
        pz = math.sqrt(make_k0short().mass ** 2 + 1.0) * math.sinh(0.1)
        pos_values = dict(
            has_tpc=True,
            tpc_nsigma_pi=0.0,
            tpc_ncls_crossed_rows=100.0,
            tpc_inner_param=0.55,
            tpc_signal=60.0,
            mc_particle_index=10,
        )
        neg_values = dict(pos_values, tpc_inner_param=0.6, tpc_signal=55.0, mc_particle_index=11)
        pos_values.update({k[4:]: v for k, v in track_kwargs.items() if k.startswith("pos_")})
        neg_values.update({k[4:]: v for k, v in track_kwargs.items() if k.startswith("neg_")})
        tracks = {
            3: DaughterTrack(3, 0.5, 0.2, pz / 2.0, **pos_values),
            7: DaughterTrack(7, 0.5, -0.2, pz / 2.0, **neg_values),
        }
        v0 = V0Candidate(
            index=0,
            pos_track_index=3,
            neg_track_index=7,
            x=1.0,
            y=0.0,
            z=0.0,
            px_pos=0.5,
            py_pos=0.2,
            pz_pos=pz / 2.0,
            px_neg=0.5,
            py_neg=-0.2,
            pz_neg=pz / 2.0,
            mass_k0short=0.4976,
            dca_v0_daughters=0.2,
            dca_pos_to_pv=0.5,
            dca_neg_to_pv=0.5,
            cos_pa=0.999,
            mc_particle_index=12,
        )
        return v0, tracks

    @staticmethod
    def _mc(pos_pdg: int = 211, neg_pdg: int = -211) -> dict[int, McParticle]:
        return {
            10: McParticle(10, pos_pdg, 0.52, 0.2, 0.05),
            11: McParticle(11, neg_pdg, 0.5, -0.25, 0.05),
            12: McParticle(12, 310, 1.0, 0.0, 0.1),
        }

    def _task(self, **options) -> tuple[K0sResolutionTask, RecordingSink]:
        sink = RecordingSink()
        config = AnalysisConfig(options=AnalysisOptions(**options))
        return K0sResolutionTask(config, histograms=sink), sink

    def test_accepted_candidate_fills_each_histogram_once(self) -> None:
        task, sink = self._task()
        v0, tracks = self._candidate()
        self.assertAlmostEqual(v0.rapidity(make_k0short().mass), 0.1, places=12)
        accepted = task.process_data(self._event(), [v0], tracks)
        self.assertEqual(accepted, 1)
        self.assertEqual(sink.fills_of("events"), [(0.5,), (1.5,)])
        self.assertEqual(sink.fills_of("mass_pt"), [(0.4976, v0.pt)])
        self.assertEqual(sink.fills_of("mass_eta"), [(0.4976, v0.eta)])
        self.assertEqual(sink.fills_of("mass_phi"), [(0.4976, v0.phi)])
        self.assertAlmostEqual(v0.pt, 1.0, places=12)

    def test_required_tof_missing_only_ticks_counters(self) -> None:
        sink = RecordingSink()
        config = AnalysisConfig(selection=V0Selection(tof_selection_pos=1))
        task = K0sResolutionTask(config, histograms=sink)
        v0, tracks = self._candidate(pos_has_tof=False)
        self.assertEqual(task.process_data(self._event(), [v0], tracks), 0)
        self.assertEqual(sink.fills, [("events", (0.5,)), ("events", (1.5,))])

    def test_unresolved_daughter_is_skipped(self) -> None:
        task, sink = self._task()
        v0, tracks = self._candidate()
        del tracks[7]
        self.assertEqual(task.process_data(self._event(), [v0], tracks), 0)
        self.assertEqual(sink.filled_names(), {"events"})

    def test_mass_from_daughters(self) -> None:
        task, sink = self._task(compute_inv_mass_from_daughters=True)
        v0, tracks = self._candidate()
        task.process_data(self._event(), [v0], tracks)
        [(mass, pt)] = sink.fills_of("mass_pt")
        self.assertNotEqual(mass, 0.4976)
        self.assertGreater(mass, 2 * 0.13957039)

    def test_data_mode_optional_histograms(self) -> None:
        task, sink = self._task(use_multidim_histo=True, enable_tpc_plot=True)
        v0, tracks = self._candidate(pos_pid_for_tracking=2, neg_pid_for_tracking=3)
        task.process_data(self._event(), [v0], tracks)
        [sparse] = sink.fills_of("mass_sparse")
        self.assertEqual(len(sparse), 6)
        self.assertEqual(sparse[4], tracks[3].eta)
        self.assertEqual(sparse[5], tracks[7].eta)
        self.assertEqual(
            sink.fills_of("tpc_vs_pid_hypothesis"),
            [(0.55, 60.0, 2), (-0.6, 55.0, 3)],
        )

    def test_registered_histograms_follow_options(self) -> None:
        _, sink = self._task()
        self.assertEqual(set(sink.registered), {"events", "mass_pt", "mass_eta", "mass_phi"})
        _, sink = self._task(process_data=False, process_mc=True, use_multidim_histo=True)
        self.assertIn("mass_sparse_mc", sink.registered)
        self.assertNotIn("mass_sparse", sink.registered)
        self.assertEqual(len(sink.registered["mass_sparse_mc"][1]), 9)
        self.assertEqual(sink.registered["pos_px_rel_res"], ("2d", ("pt_res_rel", "pt")))
        self.assertEqual(sink.registered["mass_neg_pt_res"], ("2d", ("mass", "pt_res")))

    def test_mc_mode_fills_resolution(self) -> None:
        task, sink = self._task(process_data=False, process_mc=True, use_multidim_histo=True)
        v0, tracks = self._candidate()
        accepted = task.process_mc(self._event(), [v0], tracks, self._mc())
        self.assertEqual(accepted, 1)
        [(rel, true_px)] = sink.fills_of("pos_px_rel_res")
        self.assertAlmostEqual(rel, (0.5 - 0.52) / 0.52, places=12)
        self.assertEqual(true_px, 0.52)
        [(mass, delta)] = sink.fills_of("mass_neg_pt_res")
        self.assertEqual(mass, 0.4976)
        self.assertAlmostEqual(delta, math.hypot(0.5, 0.2) - math.hypot(0.5, 0.25), places=12)
        [sparse] = sink.fills_of("mass_sparse_mc")
        self.assertEqual(len(sparse), 9)
        self.assertEqual(sparse[8], 1.0)
        self.assertEqual(len(sink.fills_of("mass_pt")), 1)

    def test_mc_mode_zero_true_component_keeps_all_fills(self) -> None:
        options = AnalysisOptions(process_data=False, process_mc=True, use_multidim_histo=True)
        task = K0sResolutionTask(AnalysisConfig(options=options))
        v0, tracks = self._candidate()
        mc = self._mc()
        mc[10] = McParticle(10, 211, 0.0, 0.2, 0.05)
        self.assertEqual(task.process_mc(self._event(), [v0], tracks, mc), 1)
        registry = task.histograms
        # px residual against a true px of 0 is NaN and lands in the flow bin.
        self.assertEqual(registry.entries("pos_px_rel_res"), 1.0)
        self.assertEqual(list(registry.occupied_bins("pos_px_rel_res")), [])
        for name in (
            "pos_pt_rel_res",
            "pos_py_rel_res",
            "pos_pz_rel_res",
            "neg_px_rel_res",
            "mass_pos_pt_res",
            "mass_neg_pt_res",
            "mass_pt",
            "mass_eta",
            "mass_phi",
            "mass_sparse_mc",
        ):
            with self.subTest(name=name):
                self.assertEqual(registry.entries(name), 1.0)

    def test_mc_mode_skips_wrong_species(self) -> None:
        for pdgs in ((-211, 211), (211, 211), (321, -211), (211, -321)):
            with self.subTest(pdgs=pdgs):
                task, sink = self._task(process_data=False, process_mc=True)
                v0, tracks = self._candidate()
                self.assertEqual(task.process_mc(self._event(), [v0], tracks, self._mc(*pdgs)), 0)
                self.assertEqual(sink.filled_names(), {"events"})

    def test_mc_mode_skips_missing_truth_link(self) -> None:
        task, sink = self._task(process_data=False, process_mc=True)
        v0, tracks = self._candidate(neg_mc_particle_index=None)
        self.assertEqual(task.process_mc(self._event(), [v0], tracks, self._mc()), 0)
        self.assertEqual(sink.filled_names(), {"events"})

    def test_process_event_applies_preselection(self) -> None:
        task, sink = self._task()
        v0, tracks = self._candidate()
        rejected_v0 = replace(v0, index=1, cos_pa=0.99)
        record = EventRecord(self._event(), (v0, rejected_v0), tracks)
        self.assertEqual(task.process_event(record), 1)
        self.assertEqual(sink.fills_of("events"), [(0.5,), (1.5,)])

        bad_event = EventRecord(replace(self._event(), pos_z=12.0), (v0,), tracks)
        self.assertEqual(task.process_event(bad_event), 0)
        self.assertEqual(len(sink.fills_of("events")), 2)

    def test_both_modes_run_per_event(self) -> None:
        task, sink = self._task(process_data=True, process_mc=True)
        v0, tracks = self._candidate()
        record = EventRecord(self._event(), (v0,), tracks, self._mc())
        self.assertEqual(task.process_events([record]), 2)
        self.assertEqual(sink.fills_of("events"), [(0.5,), (1.5,), (0.5,), (1.5,)])

    def test_default_backend_is_registry(self) -> None:
        task = K0sResolutionTask()
        v0, tracks = self._candidate()
        task.process_data(self._event(), [v0], tracks)
        self.assertIsInstance(task.histograms, HistogramRegistry)
        self.assertEqual(task.histograms.entries("events"), 2.0)
        self.assertEqual(task.histograms.entries("mass_pt"), 1.0)


if __name__ == "__main__":
    unittest.main()

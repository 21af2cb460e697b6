"""Synthetic walkthrough for K0-short mass and momentum-resolution studies.

This script does three steps:
1. Generate toy events with K0S -> pi+ pi- decays, smeared daughter momenta
   and truth links, plus a fraction of fake (non-K0S) candidates.
2. Run the resolution task in data and truth-comparison mode.
3. Write the histogram contents as a table for downstream plotting.

Run from repository root:
    PYTHONPATH=src python3 examples/k0s_toy_study.py
"""

from __future__ import annotations

import argparse
import logging
import math
from pathlib import Path
from random import Random

from k0sres import (
    AnalysisConfig,
    AnalysisOptions,
    DaughterTrack,
    Event,
    EventRecord,
    K0sResolutionTask,
    McParticle,
    V0Candidate,
    make_k0short,
    make_pion,
)
from k0sres.io import write_histograms_table
from k0sres.physics import invariant_mass


def parse_args() -> argparse.Namespace:
    """Parse CLI options for toy generation."""
    parser = argparse.ArgumentParser(description="Generate toy K0S candidates and fill resolution histograms.")
    parser.add_argument("--n-events", type=int, default=500, help="Number of events to generate.")
    parser.add_argument("--v0s-per-event", type=int, default=3, help="Candidates per event.")
    parser.add_argument("--fake-fraction", type=float, default=0.3, help="Fraction of non-K0S candidates.")
    parser.add_argument("--smearing", type=float, default=0.02, help="Relative momentum smearing.")
    parser.add_argument("--seed", type=int, default=2024, help="RNG seed for reproducibility.")
    parser.add_argument("--out", default="examples/k0s_toy_histograms.parquet", help="Output table.")
    return parser.parse_args()


def _decay(rng: Random, mother_mass: float, daughter_mass: float, p_mother: tuple[float, float, float]):
    """Isotropic two-body decay boosted to the mother momentum."""
    p_star = math.sqrt(mother_mass * mother_mass / 4.0 - daughter_mass * daughter_mass)
    e_star = mother_mass / 2.0
    cos_t = rng.uniform(-1.0, 1.0)
    sin_t = math.sqrt(1.0 - cos_t * cos_t)
    phi = rng.uniform(0.0, 2.0 * math.pi)
    d = (p_star * sin_t * math.cos(phi), p_star * sin_t * math.sin(phi), p_star * cos_t)
    e_mother = math.sqrt(sum(c * c for c in p_mother) + mother_mass * mother_mass)
    beta = tuple(c / e_mother for c in p_mother)
    b2 = sum(c * c for c in beta)
    gamma = 1.0 / math.sqrt(1.0 - b2)
    out = []
    for sign in (1.0, -1.0):
        p = tuple(sign * c for c in d)
        bp = sum(b * c for b, c in zip(beta, p))
        factor = ((gamma - 1.0) * bp / b2 if b2 > 0.0 else 0.0) + gamma * e_star
        out.append(tuple(c + factor * b for c, b in zip(p, beta)))
    return out[0], out[1]


def _smear(rng: Random, p: tuple[float, float, float], sigma: float) -> tuple[float, float, float]:
    return tuple(c * (1.0 + rng.gauss(0.0, sigma)) for c in p)


def generate_event(rng: Random, idx: int, n_v0s: int, fake_fraction: float, smearing: float) -> EventRecord:
    """Generate one toy event with `n_v0s` candidates."""
    k0_mass = make_k0short().mass
    pion_mass = make_pion().mass
    tracks: dict[int, DaughterTrack] = {}
    mc: dict[int, McParticle] = {}
    v0s: list[V0Candidate] = []
    for i in range(n_v0s):
        pt = rng.uniform(0.3, 5.0)
        phi = rng.uniform(0.0, 2.0 * math.pi)
        p_mother = (pt * math.cos(phi), pt * math.sin(phi), rng.uniform(-0.5, 0.5) * pt)
        fake = rng.random() < fake_fraction
        mother_mass = rng.uniform(0.42, 0.58) if fake else k0_mass
        true_pos, true_neg = _decay(rng, mother_mass, pion_mass, p_mother)
        reco_pos = _smear(rng, true_pos, smearing)
        reco_neg = _smear(rng, true_neg, smearing)

        mother_idx, pos_idx, neg_idx = 3 * i, 3 * i + 1, 3 * i + 2
        mc[mother_idx] = McParticle(mother_idx, 3122 if fake else 310, *p_mother)
        mc[pos_idx] = McParticle(pos_idx, 211, *true_pos)
        mc[neg_idx] = McParticle(neg_idx, -211, *true_neg)
        for index, p, mc_index in ((2 * i, reco_pos, pos_idx), (2 * i + 1, reco_neg, neg_idx)):
            tracks[index] = DaughterTrack(
                index,
                *p,
                its_ncls_inner_barrel=rng.choice((0, 1, 2, 3)),
                tpc_ncls_crossed_rows=rng.uniform(60.0, 160.0),
                tpc_nsigma_pi=rng.gauss(0.0, 1.0),
                has_tof=rng.random() < 0.6,
                has_trd=rng.random() < 0.3,
                mc_particle_index=mc_index,
            )

        flight = rng.expovariate(1.0 / 2.684) * pt / k0_mass
        direction = (math.cos(phi), math.sin(phi), p_mother[2] / pt)
        v0s.append(
            V0Candidate(
                index=i,
                pos_track_index=2 * i,
                neg_track_index=2 * i + 1,
                x=flight * direction[0],
                y=flight * direction[1],
                z=flight * direction[2],
                px_pos=reco_pos[0],
                py_pos=reco_pos[1],
                pz_pos=reco_pos[2],
                px_neg=reco_neg[0],
                py_neg=reco_neg[1],
                pz_neg=reco_neg[2],
                mass_k0short=invariant_mass([reco_pos, reco_neg], [pion_mass, pion_mass]),
                dca_v0_daughters=abs(rng.gauss(0.0, 0.3)),
                dca_pos_to_pv=rng.uniform(0.05, 2.0),
                dca_neg_to_pv=rng.uniform(0.05, 2.0),
                cos_pa=rng.uniform(0.99, 1.0),
                mc_particle_index=mother_idx,
            )
        )
    event = Event(f"evt{idx}", 0.0, 0.0, rng.gauss(0.0, 5.0), sel8=rng.random() < 0.95)
    return EventRecord(event=event, v0s=tuple(v0s), tracks=tracks, mc_particles=mc)


def main() -> int:
    """Generate toy events, run the analysis and write the histogram table."""
    args = parse_args()
    logging.basicConfig(level=logging.INFO)
    rng = Random(args.seed)
    records = [
        generate_event(rng, idx, args.v0s_per_event, args.fake_fraction, args.smearing)
        for idx in range(args.n_events)
    ]
    config = AnalysisConfig(
        options=AnalysisOptions(process_data=True, process_mc=True, use_multidim_histo=True)
    )
    task = K0sResolutionTask(config)
    task.process_events(records)
    out = Path(args.out)
    write_histograms_table(out, task.histograms)
    print(f"Wrote {len(task.histograms.names())} histograms to {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Input/output helpers for JSON inputs and tabular histogram export."""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any

from .histograms import HistogramRegistry
from .models import (
    AnalysisConfig,
    AnalysisOptions,
    AxisBinning,
    DaughterTrack,
    Event,
    EventRecord,
    EventSelection,
    HistogramBinning,
    McParticle,
    V0Candidate,
    V0Preselection,
    V0Selection,
)


def load_events_json(path: str | Path) -> list[EventRecord]:
    """Load multi-event input JSON into `EventRecord` objects.

    Expected shape:
    {
      "events": [
        {"event_id": "...", "pos_x": 0.0, "pos_y": 0.0, "pos_z": 0.0, "sel8": true,
         "tracks": [...], "v0s": [...], "mc_particles": [...]},
        ...
      ]
    }
    Tracks and MC particles are addressed by their `index` field; the
    `mc_particles` list is optional and only used in truth-comparison mode.
    """
    data = _load_json(path)
    events_data = data.get("events")
    if not isinstance(events_data, list):
        raise ValueError("Events JSON must contain a list under key 'events'.")
    out: list[EventRecord] = []
    for idx, item in enumerate(events_data):
        if not isinstance(item, dict):
            raise ValueError(f"Event entry at index {idx} must be an object.")
        event_id = str(item.get("event_id", f"evt{idx}"))
        context = f"event '{event_id}'"
        event = Event(
            event_id=event_id,
            pos_x=float(item.get("pos_x", 0.0)),
            pos_y=float(item.get("pos_y", 0.0)),
            pos_z=float(item["pos_z"]),
            sel8=bool(item.get("sel8", True)),
        )
        tracks = _index_by_key(
            (_parse_track_item(t, tidx, context) for tidx, t in enumerate(_list_field(item, "tracks", context))),
            "track",
            context,
        )
        mc_particles = _index_by_key(
            (
                _parse_mc_particle_item(p, pidx, context)
                for pidx, p in enumerate(_list_field(item, "mc_particles", context, required=False))
            ),
            "MC particle",
            context,
        )
        v0s = tuple(
            _parse_v0_item(v, vidx, context)
            for vidx, v in enumerate(_list_field(item, "v0s", context))
        )
        out.append(EventRecord(event=event, v0s=v0s, tracks=tracks, mc_particles=mc_particles))
    return out


def load_config_json(path: str | Path) -> AnalysisConfig:
    """Load an analysis configuration from JSON.

    All sections are optional: `binning`, `preselection`, `event_selection`,
    `selection` and `options`. Binning entries are `[bins, low, high]` lists
    or `{"bins", "low", "high"}` objects. Unknown keys raise `ValueError`;
    out-of-range selection switches raise `InvalidSelectionError`.
    """
    return config_from_dict(_load_json(path))


def config_from_dict(data: dict[str, Any]) -> AnalysisConfig:
    """Build an `AnalysisConfig` from a parsed JSON object."""
    _reject_unknown(data, {"binning", "preselection", "event_selection", "selection", "options"}, "config")
    binning_data = _section(data, "binning")
    _reject_unknown(binning_data, _field_names(HistogramBinning), "binning")
    binning = HistogramBinning(
        **{key: _parse_axis_binning(value, key) for key, value in binning_data.items()}
    )
    return AnalysisConfig(
        binning=binning,
        preselection=_build_section(V0Preselection, _section(data, "preselection"), "preselection"),
        event_selection=_build_section(EventSelection, _section(data, "event_selection"), "event_selection"),
        selection=_build_section(V0Selection, _section(data, "selection"), "selection"),
        options=_build_section(AnalysisOptions, _section(data, "options"), "options"),
    )


def write_histograms_table(path: str | Path, histograms: HistogramRegistry) -> None:
    """Write every non-empty histogram bin into a Parquet/CSV/Pickle table."""
    pd = _require_pandas()
    df = pd.DataFrame(_histogram_rows(histograms))
    out = Path(path)
    suffix = out.suffix.lower()
    if suffix == ".parquet":
        df.to_parquet(out, index=False)
    elif suffix in (".pkl", ".pickle"):
        df.to_pickle(out)
    elif suffix == ".csv":
        df.to_csv(out, index=False)
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .parquet, .csv, or .pkl"
        )


def _histogram_rows(histograms: HistogramRegistry) -> list[dict[str, Any]]:
    """Flatten histograms into DataFrame-ready rows, one per occupied bin."""
    rows: list[dict[str, Any]] = []
    for name in histograms.names():
        axis_names = histograms.axis_names(name)
        for centers, count in histograms.occupied_bins(name):
            row: dict[str, Any] = {"histogram": name, "kind": histograms.kind(name).value}
            for idx, (axis_name, center) in enumerate(zip(axis_names, centers, strict=True)):
                row[f"axis{idx}"] = axis_name
                row[f"x{idx}"] = center
            row["count"] = count
            rows.append(row)
    return rows


def _require_pandas():
    """Import pandas lazily and provide a clear installation hint on failure."""
    try:
        import pandas as pd  # type: ignore
    except ModuleNotFoundError as exc:
        raise ModuleNotFoundError(
            "pandas is required to write output tables. Install pandas and pyarrow."
        ) from exc
    return pd


def _parse_track_item(item: Any, idx: int, context: str) -> DaughterTrack:
    """Parse one track dictionary into a `DaughterTrack`."""
    if not isinstance(item, dict):
        raise ValueError(f"Track entry at index {idx} in {context} must be an object.")
    mc_index = item.get("mc_particle_index")
    return DaughterTrack(
        index=int(item.get("index", idx)),
        px=float(item["px"]),
        py=float(item["py"]),
        pz=float(item["pz"]),
        has_tpc=bool(item.get("has_tpc", True)),
        has_tof=bool(item.get("has_tof", False)),
        has_trd=bool(item.get("has_trd", False)),
        its_ncls_inner_barrel=int(item.get("its_ncls_inner_barrel", 0)),
        tpc_ncls_crossed_rows=float(item.get("tpc_ncls_crossed_rows", 0.0)),
        tpc_nsigma_pi=float(item.get("tpc_nsigma_pi", 0.0)),
        tof_nsigma_pi=float(item.get("tof_nsigma_pi", 0.0)),
        pid_for_tracking=int(item.get("pid_for_tracking", 2)),
        tpc_inner_param=float(item.get("tpc_inner_param", 0.0)),
        tpc_signal=float(item.get("tpc_signal", 0.0)),
        mc_particle_index=None if mc_index is None else int(mc_index),
    )


def _parse_mc_particle_item(item: Any, idx: int, context: str) -> McParticle:
    """Parse one generated-particle dictionary into a `McParticle`."""
    if not isinstance(item, dict):
        raise ValueError(f"MC particle at index {idx} in {context} must be an object.")
    return McParticle(
        index=int(item.get("index", idx)),
        pdg_code=int(item["pdg_code"]),
        px=float(item["px"]),
        py=float(item["py"]),
        pz=float(item["pz"]),
    )


def _parse_v0_item(item: Any, idx: int, context: str) -> V0Candidate:
    """Parse one V0 dictionary into a `V0Candidate`."""
    if not isinstance(item, dict):
        raise ValueError(f"V0 entry at index {idx} in {context} must be an object.")
    momenta = {}
    for prefix in ("pos", "neg"):
        p = item.get(f"p_{prefix}")
        if p is not None:
            if not isinstance(p, list) or len(p) != 3:
                raise ValueError(f"V0 field 'p_{prefix}' in {context} must be a 3-element list.")
            momenta[f"px_{prefix}"], momenta[f"py_{prefix}"], momenta[f"pz_{prefix}"] = (float(v) for v in p)
        else:
            for axis in ("x", "y", "z"):
                momenta[f"p{axis}_{prefix}"] = float(item[f"p{axis}_{prefix}"])
    mc_index = item.get("mc_particle_index")
    return V0Candidate(
        index=int(item.get("index", idx)),
        pos_track_index=int(item["pos_track_index"]),
        neg_track_index=int(item["neg_track_index"]),
        x=float(item["x"]),
        y=float(item["y"]),
        z=float(item["z"]),
        mass_k0short=float(item["mass_k0short"]),
        dca_v0_daughters=float(item.get("dca_v0_daughters", 0.0)),
        dca_pos_to_pv=float(item.get("dca_pos_to_pv", 0.0)),
        dca_neg_to_pv=float(item.get("dca_neg_to_pv", 0.0)),
        cos_pa=float(item.get("cos_pa", 1.0)),
        mc_particle_index=None if mc_index is None else int(mc_index),
        **momenta,
    )


def _parse_axis_binning(value: Any, key: str) -> AxisBinning:
    """Accept `[bins, low, high]` or an object with the same keys."""
    if isinstance(value, list) and len(value) == 3:
        bins, low, high = value
    elif isinstance(value, dict):
        _reject_unknown(value, {"bins", "low", "high"}, f"binning.{key}")
        try:
            bins, low, high = value["bins"], value["low"], value["high"]
        except KeyError as exc:
            raise ValueError(f"Binning '{key}' is missing {exc.args[0]!r}.") from exc
    else:
        raise ValueError(f"Binning '{key}' must be [bins, low, high] or an object.")
    return AxisBinning(bins=int(bins), low=float(low), high=float(high))


def _build_section(cls, data: dict[str, Any], name: str):
    """Instantiate a config dataclass from one JSON section.

    Float cuts are converted with `float`, boolean toggles must be JSON
    booleans. Switch values are passed through and validated by the dataclass.
    """
    _reject_unknown(data, _field_names(cls), name)
    values: dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        key = f"{name}.{f.name}"
        if f.type == "float":
            values[f.name] = _parse_float(value, key)
        elif f.type == "bool":
            if not isinstance(value, bool):
                raise ValueError(f"Config key '{key}' must be true or false, got {value!r}.")
            values[f.name] = value
        else:
            values[f.name] = value
    return cls(**values)


def _parse_float(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Config key '{key}' must be a number, got {value!r}.")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Config key '{key}' must be a number, got {value!r}.") from exc


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be an object.")
    return value


def _field_names(cls) -> set[str]:
    return {f.name for f in fields(cls)}


def _reject_unknown(data: dict[str, Any], allowed: set[str], context: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(
            f"Unknown key(s) in {context}: {', '.join(unknown)}. Allowed: {', '.join(sorted(allowed))}"
        )


def _list_field(item: dict[str, Any], key: str, context: str, required: bool = True) -> list[Any]:
    value = item.get(key)
    if value is None and not required:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{context} must contain a list under key '{key}'.")
    return value


def _index_by_key(records, label: str, context: str) -> dict[int, Any]:
    """Build an index -> record mapping, rejecting duplicate indices."""
    out: dict[int, Any] = {}
    for record in records:
        if record.index in out:
            raise ValueError(f"Duplicate {label} index {record.index} in {context}.")
        out[record.index] = record
    return out


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"JSON document at {path} must be an object.")
    return data

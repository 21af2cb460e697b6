"""Histogram registry used as the aggregation backend of the analysis.

`HistogramSink` is the capability the analysis task writes into: axes are
defined once, histograms are registered once from named axes, and `fill`
receives one value per axis. `HistogramRegistry` implements it with the
`hist` library. Dense histograms are plain `hist.Hist` objects; sparse
N-dimensional histograms keep the `hist` axes for bin lookup but only store
occupied bins.
"""

from __future__ import annotations

import enum
import logging
from collections import Counter
from typing import Iterator, Protocol, Sequence

import hist
import numpy as np

logger = logging.getLogger(__name__)


class HistogramKind(str, enum.Enum):
    """Supported histogram layouts."""

    H1 = "1d"
    H2 = "2d"
    H3 = "3d"
    SPARSE = "sparse"

    @property
    def ndim(self) -> int | None:
        """Required number of axes, or None when any positive number is allowed."""
        return {"1d": 1, "2d": 2, "3d": 3}.get(self.value)


class HistogramSink(Protocol):
    """Minimal aggregation interface consumed by the analysis task."""

    def define_axis(self, name: str, bins: int, low: float, high: float, label: str = "") -> None:
        ...

    def register_histogram(self, name: str, kind: HistogramKind, axes: Sequence[str]) -> None:
        ...

    def fill(self, name: str, *values: float) -> None:
        ...


class SparseHistogram:
    """N-dimensional histogram storing only occupied bins.

    Bin indices follow the `hist` convention: -1 is the underflow bin and
    `axis.size` the overflow bin (NaN values land there as well).
    """

    def __init__(self, axes: Sequence[hist.axis.Regular]) -> None:
        if not axes:
            raise ValueError("A sparse histogram needs at least one axis.")
        self.axes = tuple(axes)
        self._bins: Counter[tuple[int, ...]] = Counter()

    @property
    def ndim(self) -> int:
        return len(self.axes)

    def fill(self, *values: float, weight: float = 1.0) -> None:
        if len(values) != self.ndim:
            raise ValueError(
                f"Sparse histogram has {self.ndim} axes but got {len(values)} values."
            )
        key = tuple(int(axis.index(value)) for axis, value in zip(self.axes, values, strict=True))
        self._bins[key] += weight

    def items(self) -> Iterator[tuple[tuple[int, ...], float]]:
        return iter(self._bins.items())

    def sum(self, flow: bool = False) -> float:
        if flow:
            return float(sum(self._bins.values()))
        return float(
            sum(
                count
                for key, count in self._bins.items()
                if all(0 <= i < axis.size for i, axis in zip(key, self.axes, strict=True))
            )
        )

    def __len__(self) -> int:
        """Number of occupied bins, flow bins included."""
        return len(self._bins)


class HistogramRegistry:
    """Named collection of histograms built from named regular axes."""

    def __init__(self, name: str = "histograms") -> None:
        self.name = name
        self._axes: dict[str, hist.axis.Regular] = {}
        self._histograms: dict[str, hist.Hist | SparseHistogram] = {}
        self._kinds: dict[str, HistogramKind] = {}

    def define_axis(self, name: str, bins: int, low: float, high: float, label: str = "") -> None:
        """Define a regular axis; redefinition with a different binning raises."""
        axis = hist.axis.Regular(int(bins), float(low), float(high), name=name, label=label or name)
        existing = self._axes.get(name)
        if existing is not None:
            if existing != axis:
                raise ValueError(f"Axis '{name}' is already defined with a different binning.")
            return
        self._axes[name] = axis

    def register_histogram(
        self, name: str, kind: HistogramKind | str, axes: Sequence[str]
    ) -> None:
        """Create one histogram from previously defined axes."""
        kind = HistogramKind(kind)
        if name in self._histograms:
            raise ValueError(f"Histogram '{name}' is already registered in {self.name}.")
        if kind.ndim is not None and len(axes) != kind.ndim:
            raise ValueError(
                f"Histogram '{name}' of kind {kind.value} needs {kind.ndim} axes, got {len(axes)}."
            )
        if len(set(axes)) != len(axes):
            raise ValueError(f"Histogram '{name}' uses the same axis more than once.")
        try:
            axis_objects = [self._axes[a] for a in axes]
        except KeyError as exc:
            raise ValueError(f"Histogram '{name}' uses undefined axis {exc.args[0]!r}.") from exc
        if kind is HistogramKind.SPARSE:
            self._histograms[name] = SparseHistogram(axis_objects)
        else:
            self._histograms[name] = hist.Hist(*axis_objects, storage=hist.storage.Double())
        self._kinds[name] = kind
        logger.debug("Registered %s histogram '%s' with axes %s", kind.value, name, list(axes))

    def fill(self, name: str, *values: float) -> None:
        """Fill one entry; the number of values must match the axis count."""
        try:
            histogram = self._histograms[name]
        except KeyError as exc:
            raise ValueError(f"Histogram '{name}' is not registered in {self.name}.") from exc
        if len(values) != histogram.ndim:
            raise ValueError(
                f"Histogram '{name}' has {histogram.ndim} axes but got {len(values)} values."
            )
        histogram.fill(*values)

    def __contains__(self, name: object) -> bool:
        return name in self._histograms

    def __getitem__(self, name: str) -> hist.Hist | SparseHistogram:
        return self._histograms[name]

    def names(self) -> list[str]:
        return list(self._histograms)

    def kind(self, name: str) -> HistogramKind:
        return self._kinds[name]

    def axis_names(self, name: str) -> tuple[str, ...]:
        return tuple(axis.name for axis in self._histograms[name].axes)

    def entries(self, name: str) -> float:
        """Total filled weight, flow bins included."""
        return float(self._histograms[name].sum(flow=True))

    def occupied_bins(self, name: str) -> Iterator[tuple[tuple[float, ...], float]]:
        """Yield `(bin centres, content)` for every non-empty in-range bin."""
        histogram = self._histograms[name]
        if isinstance(histogram, SparseHistogram):
            for key, count in histogram.items():
                if count == 0 or not all(
                    0 <= i < axis.size for i, axis in zip(key, histogram.axes, strict=True)
                ):
                    continue
                yield tuple(
                    float(axis.centers[i]) for i, axis in zip(key, histogram.axes, strict=True)
                ), float(count)
            return
        values = histogram.values()
        centers = [axis.centers for axis in histogram.axes]
        for index in zip(*np.nonzero(values)):
            yield tuple(float(c[i]) for c, i in zip(centers, index, strict=True)), float(values[index])

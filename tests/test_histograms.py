"""Unit tests for the histogram registry backend."""

from __future__ import annotations

import math
import unittest

from k0sres import HistogramKind, HistogramRegistry, SparseHistogram


class TestHistogramRegistry(unittest.TestCase):
    """Validate axis definition, registration and fill semantics."""

    def _registry(self) -> HistogramRegistry:
        reg = HistogramRegistry("test")
        reg.define_axis("mass", 200, 0.4, 0.6, "m")
        reg.define_axis("pt", 200, 0.0, 10.0, "pT")
        reg.define_axis("eta", 2, -1.0, 1.0, "eta")
        return reg

    def test_fill_dense_2d(self) -> None:
        reg = self._registry()
        reg.register_histogram("mass_pt", HistogramKind.H2, ["mass", "pt"])
        reg.fill("mass_pt", 0.4512, 1.01)
        [(centers, count)] = list(reg.occupied_bins("mass_pt"))
        self.assertEqual(count, 1.0)
        self.assertAlmostEqual(centers[0], 0.4512, delta=0.0005)
        self.assertAlmostEqual(centers[1], 1.01, delta=0.025)
        self.assertEqual(reg.axis_names("mass_pt"), ("mass", "pt"))
        self.assertEqual(reg.kind("mass_pt"), HistogramKind.H2)

    def test_kind_accepts_string(self) -> None:
        reg = self._registry()
        reg.register_histogram("m", "1d", ["mass"])
        self.assertIn("m", reg)
        self.assertEqual(reg.names(), ["m"])

    def test_fill_value_count_must_match_axes(self) -> None:
        reg = self._registry()
        reg.register_histogram("mass_pt", HistogramKind.H2, ["mass", "pt"])
        with self.assertRaises(ValueError):
            reg.fill("mass_pt", 0.5)
        with self.assertRaises(ValueError):
            reg.fill("mass_pt", 0.5, 1.0, 2.0)

    def test_registration_errors(self) -> None:
        reg = self._registry()
        reg.register_histogram("mass", HistogramKind.H1, ["mass"])
        with self.assertRaises(ValueError):
            reg.register_histogram("mass", HistogramKind.H1, ["mass"])
        with self.assertRaises(ValueError):
            reg.register_histogram("bad_dim", HistogramKind.H3, ["mass", "pt"])
        with self.assertRaises(ValueError):
            reg.register_histogram("bad_axis", HistogramKind.H1, ["missing"])
        with self.assertRaises(ValueError):
            reg.register_histogram("repeated", HistogramKind.H2, ["mass", "mass"])
        with self.assertRaises(ValueError):
            reg.fill("unknown", 1.0)

    def test_axis_redefinition(self) -> None:
        reg = self._registry()
        reg.define_axis("mass", 200, 0.4, 0.6, "m")
        with self.assertRaises(ValueError):
            reg.define_axis("mass", 100, 0.4, 0.6, "m")

    def test_nan_goes_to_flow(self) -> None:
        reg = self._registry()
        reg.register_histogram("mass", HistogramKind.H1, ["mass"])
        reg.fill("mass", math.nan)
        self.assertEqual(reg.entries("mass"), 1.0)
        self.assertEqual(list(reg.occupied_bins("mass")), [])

    def test_sparse_histogram_stores_occupied_bins(self) -> None:
        reg = self._registry()
        reg.register_histogram("sparse", HistogramKind.SPARSE, ["mass", "pt", "eta"])
        self.assertIsInstance(reg["sparse"], SparseHistogram)
        reg.fill("sparse", 0.4976, 1.01, 0.5)
        reg.fill("sparse", 0.4976, 1.01, 0.5)
        reg.fill("sparse", 0.4976, 1.01, 5.0)
        histogram = reg["sparse"]
        self.assertEqual(len(histogram), 2)
        self.assertEqual(histogram.sum(), 2.0)
        self.assertEqual(reg.entries("sparse"), 3.0)
        [(centers, count)] = list(reg.occupied_bins("sparse"))
        self.assertEqual(count, 2.0)
        self.assertAlmostEqual(centers[2], 0.5, places=12)

    def test_sparse_histogram_needs_axes(self) -> None:
        with self.assertRaises(ValueError):
            SparseHistogram([])


if __name__ == "__main__":
    unittest.main()

"""Tests for trialbench.bench.display — terminal report formatting."""

from __future__ import annotations

import unittest

from trialbench.bench.compare import compare_units
from trialbench.bench.display import (
    REPORT_COLUMNS,
    _format_value,
    choose_unit,
    format_bench_show,
    format_comparison_report,
    format_report,
    report_rows,
)
from trialbench.bench.stats import summarize

from bench_test_helpers import make_result


class TestChooseUnit(unittest.TestCase):
    def test_by_smallest_median(self) -> None:
        self.assertEqual(choose_unit([summarize([500])]), "ns")
        self.assertEqual(choose_unit([summarize([1500]), summarize([5_000_000])]), "us")
        self.assertEqual(choose_unit([summarize([2_000_000])]), "ms")
        self.assertEqual(choose_unit([summarize([3_000_000_000])]), "s")

    def test_no_data(self) -> None:
        self.assertEqual(choose_unit([None, None]), "ns")
        self.assertEqual(choose_unit([]), "ns")


class TestFormatValue(unittest.TestCase):
    def test_precision_by_magnitude(self) -> None:
        self.assertEqual(_format_value(12345.6), "12346")
        self.assertEqual(_format_value(123.456), "123.5")
        self.assertEqual(_format_value(12.3456), "12.35")
        self.assertEqual(_format_value(1.23456), "1.235")

    def test_special_values(self) -> None:
        self.assertEqual(_format_value(float("nan")), "N/A")
        self.assertEqual(_format_value(float("inf")), "inf")


class TestReportRows(unittest.TestCase):
    def test_sorted_by_median_with_counts(self) -> None:
        result = make_result(
            {"slow": [3000, 3000, 3000], "fast": [1000, 2000, 3000]},
            failed={"slow": {0}},
        )
        unit, rows = report_rows(result)
        self.assertEqual(unit, "us")
        self.assertEqual([r[0] for r in rows], ["fast", "slow"])
        self.assertEqual(rows[0], ["fast", "1.000", "1.500", "2.000", "2.000", "2.500", "3.000", "3", "0"])
        self.assertEqual(rows[1][-2:], ["2", "1"])
        self.assertEqual(len(rows[0]), len(REPORT_COLUMNS))

    def test_explicit_unit(self) -> None:
        _, rows = report_rows(make_result({"a": [1500, 1500]}), "ns")
        self.assertEqual(rows[0][4], "1500")

    def test_relative(self) -> None:
        result = make_result({"a": [100, 100], "b": [250, 250]})
        unit, rows = report_rows(result, "relative")
        self.assertEqual(unit, "relative")
        self.assertEqual(rows[0][4], "1.000")
        self.assertEqual(rows[1][4], "2.500")

    def test_relative_with_zero_median_falls_back_to_ns(self) -> None:
        result = make_result({"zero": [0, 0], "b": [10, 10]})
        unit, rows = report_rows(result, "relative")
        self.assertEqual(unit, "ns")
        self.assertEqual(rows[0][4], "0.000")
        self.assertEqual(rows[1][4], "10.00")

    def test_unit_without_data(self) -> None:
        result = make_result({"broken": [5, 5], "a": [10, 10]}, failed={"broken": {0, 1}})
        _, rows = report_rows(result)
        self.assertEqual(rows[-1], ["broken", "N/A", "N/A", "N/A", "N/A", "N/A", "N/A", "0", "2"])


class TestFormatReport(unittest.TestCase):
    def test_header_and_columns(self) -> None:
        text = format_report(make_result({"a": [1500, 1600], "b": [2500, 2600]}))
        lines = text.splitlines()
        self.assertEqual(lines[0], "Unit: microseconds")
        for column in REPORT_COLUMNS:
            self.assertIn(column, lines[1])
        self.assertTrue(lines[3].startswith("a "))
        self.assertTrue(lines[4].startswith("b "))

    def test_relative_header(self) -> None:
        text = format_report(make_result({"a": [10]}), "relative")
        self.assertTrue(text.startswith("Unit: relative to fastest median"))

    def test_relative_zero_median_header(self) -> None:
        text = format_report(make_result({"zero": [0, 0], "b": [10, 10]}), "relative")
        self.assertTrue(text.startswith("Unit: nanoseconds"))


class TestFormatBenchShow(unittest.TestCase):
    def test_sections(self) -> None:
        result = make_result({"a": [1000, 1100, 1050], "b": [2000, 2100, 2050]})
        text = format_bench_show(result)
        self.assertIn("Test Benchmark", text)
        self.assertIn("System", text)
        self.assertIn("Test CPU", text)
        self.assertIn("Clock:", text)
        self.assertIn("Trials: 3 per unit + 0 warm-up, order random (seed 1)", text)
        self.assertIn("Unit: microseconds", text)
        self.assertIn("Measurement Quality", text)
        self.assertNotIn("Failures", text)

    def test_failures_section(self) -> None:
        result = make_result(
            {"ok": [10, 10, 10], "bad": [10, 10, 10]}, failed={"bad": {0, 1, 2}}
        )
        text = format_bench_show(result)
        self.assertIn("Failures", text)
        self.assertIn("bad: 3 of 3 trials", text)
        self.assertIn("3 × RuntimeError: boom", text)
        self.assertIn("statistics unavailable", text)

    def test_no_successful_trials(self) -> None:
        result = make_result({"bad": [10]}, failed={"bad": {0}})
        self.assertIn("No successful trials.", format_bench_show(result))

    def test_time_unit_from_config(self) -> None:
        result = make_result({"a": [1500, 1600]})
        result.meta.config["time_unit"] = "ns"
        self.assertIn("Unit: nanoseconds", format_bench_show(result))
        self.assertIn("Unit: milliseconds", format_bench_show(result, "ms"))


class TestFormatComparisonReport(unittest.TestCase):
    def test_faster_candidate(self) -> None:
        result = make_result(
            {"slow": [200, 204, 196, 202, 198], "fast": [100, 102, 98, 101, 99]}
        )
        text = format_comparison_report(compare_units(result, ci_bootstrap_n=200))
        self.assertIn("Baseline: slow", text)
        self.assertIn("0.500x", text)
        self.assertIn("-50.0%", text)
        self.assertIn("significant", text)
        self.assertIn("Fastest: fast (2.00x faster than slow)", text)

    def test_no_faster_candidate(self) -> None:
        result = make_result({"fast": [100, 101, 99], "slow": [200, 201, 199]})
        text = format_comparison_report(compare_units(result, ci_bootstrap_n=200))
        self.assertIn("No unit is faster than fast.", text)

    def test_skipped(self) -> None:
        result = make_result({"a": [100, 101], "broken": [1, 1]}, failed={"broken": {0, 1}})
        text = format_comparison_report(compare_units(result, ci_bootstrap_n=50))
        self.assertIn("No comparable units.", text)
        self.assertIn("Skipped (no successful trials): broken", text)


if __name__ == "__main__":
    unittest.main()

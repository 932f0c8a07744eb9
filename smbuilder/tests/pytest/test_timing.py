"""
Tests for step timing helpers.
"""

from __future__ import annotations

import pytest

from smbuilder.core.timing import StepTimings, format_duration


@pytest.mark.evergreen
class TestFormatDuration:

    @pytest.mark.parametrize("seconds,expected", [
        (0.5, "0.5s"),
        (65.3, "1m 5.3s"),
        (3661.0, "1h 1m 1.0s"),
    ])
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


@pytest.mark.evergreen
class TestStepTimings:

    def test_empty_summary(self):
        assert StepTimings().summary() == "(no steps executed)"

    def test_records_in_order(self):
        timings = StepTimings()
        with timings.measure("clone-repo"):
            pass
        with timings.measure("build"):
            pass

        assert list(timings.durations) == ["clone-repo", "build"]
        assert timings.summary().endswith(f"total: {format_duration(timings.total)}")

    def test_records_failed_step(self):
        timings = StepTimings()

        with pytest.raises(RuntimeError):
            with timings.measure("stage-asset"):
                raise RuntimeError("boom")

        assert "stage-asset" in timings.durations

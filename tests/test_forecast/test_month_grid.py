"""Tests for the calendar-month grid."""

from __future__ import annotations

from datetime import date

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from src.forecast.month_grid import (
    days_in_month,
    display_label,
    generate_month_grid,
    month_end,
    month_label,
    month_start,
)


class TestGenerateMonthGrid:
    """Ordering, length and validation."""

    def test_starts_at_anchor_month(self) -> None:
        grid = generate_month_grid(date(2026, 1, 20), 3)
        assert grid == ["2026-01", "2026-02", "2026-03"]

    def test_crosses_year_boundary(self) -> None:
        grid = generate_month_grid(date(2026, 11, 15), 4)
        assert grid == ["2026-11", "2026-12", "2027-01", "2027-02"]

    def test_single_month(self) -> None:
        assert generate_month_grid(date(2026, 6, 30), 1) == ["2026-06"]

    @pytest.mark.parametrize("horizon", [0, -1, -12])
    def test_non_positive_horizon_rejected(self, horizon: int) -> None:
        with pytest.raises(ValueError):
            generate_month_grid(date(2026, 1, 1), horizon)

    def test_non_integer_horizon_rejected(self) -> None:
        with pytest.raises(ValueError):
            generate_month_grid(date(2026, 1, 1), 2.5)  # type: ignore[arg-type]

    def test_deterministic(self) -> None:
        assert generate_month_grid(date(2026, 3, 1), 18) == generate_month_grid(
            date(2026, 3, 31), 18
        )

    @given(
        start=st.dates(min_value=date(1990, 1, 1), max_value=date(2090, 12, 31)),
        horizon=st.integers(min_value=1, max_value=120),
    )
    @settings(max_examples=60, deadline=5000)
    def test_consecutive_distinct_months(self, start: date, horizon: int) -> None:
        grid = generate_month_grid(start, horizon)
        assert len(grid) == horizon
        assert len(set(grid)) == horizon
        assert grid[0] == month_label(start)
        assert grid == sorted(grid)
        for prev, nxt in zip(grid, grid[1:]):
            assert month_start(nxt) == date.fromordinal(month_end(prev).toordinal() + 1)


class TestLabelHelpers:
    """Conversions between labels and dates."""

    def test_month_bounds(self) -> None:
        assert month_start("2028-02") == date(2028, 2, 1)
        assert month_end("2028-02") == date(2028, 2, 29)
        assert days_in_month("2026-02") == 28

    def test_display_label(self) -> None:
        assert display_label("2026-01") == "Jan-26"
        assert display_label("2030-12") == "Dec-30"

    @pytest.mark.parametrize("bad", ["2026-13", "January", "2026/01", ""])
    def test_invalid_label(self, bad: str) -> None:
        with pytest.raises(ValueError):
            month_start(bad)

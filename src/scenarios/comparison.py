"""Side-by-side comparison of two schedule scenarios.

Planners run the same engine over two schedule cases (typically MEAN and
EARLY) and compare monthly vessel requirements.  Both forecasts must share
the same month grid.

Typical usage::

    comparison = compare_scenarios(mean_run.forecast, early_run.forecast)
    comparison.max_difference_month
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from loguru import logger

from src.forecast.aggregator import TabularForecast


@dataclass(frozen=True)
class ScenarioComparison:
    """Monthly and aggregate differences between two forecasts.

    Differences are ``alternative - base``.

    Attributes:
        months: Shared month grid.
        base_label: Name of the base scenario.
        alternative_label: Name of the alternative scenario.
        monthly_difference: Vessels-required difference per month.
        average_difference: Mean of ``monthly_difference``.
        max_difference: Largest absolute monthly difference (signed).
        max_difference_month: Month of ``max_difference`` (earliest on ties).
        percent_change: Change in total vessel-months relative to the base,
            in percent; 0.0 when the base total is zero.
        new_external_months: Months where only the alternative needs
            externally sourced vessels.
    """

    months: list[str]
    base_label: str
    alternative_label: str
    monthly_difference: dict[str, float]
    average_difference: float
    max_difference: float
    max_difference_month: str
    percent_change: float
    new_external_months: list[str]


def compare_scenarios(
    base: TabularForecast,
    alternative: TabularForecast,
    base_label: str = "MEAN",
    alternative_label: str = "EARLY",
) -> ScenarioComparison:
    """Compare two forecasts computed over the same months.

    Args:
        base: Reference forecast.
        alternative: Forecast compared against *base*.
        base_label: Display name of the base case.
        alternative_label: Display name of the alternative case.

    Returns:
        A :class:`ScenarioComparison`.

    Raises:
        ValueError: If the forecasts have different or empty month grids.
    """
    if list(base.monthly_columns) != list(alternative.monthly_columns):
        raise ValueError(
            "Scenario forecasts must share the same month grid "
            f"({len(base.monthly_columns)} vs {len(alternative.monthly_columns)} months)"
        )
    months = list(base.monthly_columns)
    if not months:
        raise ValueError("Cannot compare forecasts with an empty horizon")

    base_required = base.totals.vessels_required
    alt_required = alternative.totals.vessels_required
    base_arr = np.array([base_required[m] for m in months], dtype=float)
    alt_arr = np.array([alt_required[m] for m in months], dtype=float)
    diff = alt_arr - base_arr

    max_idx = int(np.argmax(np.abs(diff)))
    base_total = float(base_arr.sum())
    percent = (float(alt_arr.sum()) - base_total) / base_total * 100.0 if base_total > 0 else 0.0

    new_external = [
        m
        for m in months
        if alternative.totals.externally_sourced[m] > 0 and base.totals.externally_sourced[m] <= 0
    ]

    comparison = ScenarioComparison(
        months=months,
        base_label=base_label,
        alternative_label=alternative_label,
        monthly_difference={m: float(d) for m, d in zip(months, diff)},
        average_difference=float(diff.mean()),
        max_difference=float(diff[max_idx]),
        max_difference_month=months[max_idx],
        percent_change=percent,
        new_external_months=new_external,
    )
    logger.info(
        "{} vs {}: avg difference {:+.2f} vessels, max {:+.2f} in {}, total change {:+.1f}%",
        alternative_label,
        base_label,
        comparison.average_difference,
        comparison.max_difference,
        comparison.max_difference_month,
        comparison.percent_change,
    )
    return comparison

"""Forecast engine facade: activities -> grid -> cells -> forecast -> summary.

One :class:`FleetForecastEngine` wraps one rule set and one spreading
policy.  Every call to :meth:`FleetForecastEngine.run` is a full, pure
recomputation; overrides are supplied separately and never stored on the
engine.

Typical usage::

    engine = FleetForecastEngine(default_rule_set())
    run = engine.run(activities, start_date=date(2026, 1, 1), horizon_months=18)
    edited = engine.forecast_with_overrides(run, session_overrides)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from loguru import logger

from src.forecast.activity import RigActivity
from src.forecast.aggregator import FleetAggregator, TabularForecast
from src.forecast.month_grid import generate_month_grid
from src.forecast.overrides import OverlayView, OverrideMap
from src.forecast.spreader import ActivitySpreader, DemandSpreadPolicy, MonthlyCell
from src.forecast.summarizer import FleetSummarizer, FleetSummary, build_recommendations
from src.reference.rule_sets import BusinessRuleSet, default_rule_set


@dataclass(frozen=True)
class ForecastRun:
    """Everything one engine run produced."""

    grid: list[str]
    cells: dict[tuple[str, str], MonthlyCell]
    forecast: TabularForecast
    summary: FleetSummary

    def cell(self, rig_name: str, month: str) -> MonthlyCell | None:
        return self.cells.get((rig_name, month))


class FleetForecastEngine:
    """Compute fleet forecasts under a fixed rule set and spreading policy.

    Args:
        rule_set: Reference tables and fleet baseline.  Defaults to the
            built-in August 2026 rule set.
        policy: Demand spreading policy for multi-month activities.
    """

    def __init__(
        self,
        rule_set: BusinessRuleSet | None = None,
        policy: DemandSpreadPolicy = DemandSpreadPolicy.FULL_MONTH,
    ) -> None:
        self.rule_set = rule_set if rule_set is not None else default_rule_set()
        self.policy = DemandSpreadPolicy(policy)
        self._spreader = ActivitySpreader(self.rule_set, self.policy)
        self._aggregator = FleetAggregator(self.rule_set)
        self._summarizer = FleetSummarizer(self.rule_set)

    def run(
        self,
        activities: Sequence[RigActivity],
        start_date: date,
        horizon_months: int,
    ) -> ForecastRun:
        """Run the full pipeline.

        Args:
            activities: Rig activities with canonical rig names.
            start_date: Any day in the first forecast month.
            horizon_months: Number of months to forecast.

        Returns:
            A :class:`ForecastRun` with grid, cells, forecast and summary.

        Raises:
            ValueError: If *horizon_months* is not positive.
        """
        t0 = time.monotonic()
        grid = generate_month_grid(start_date, horizon_months)
        cells = self._spreader.spread(activities, grid)
        rig_names = list(dict.fromkeys(a.rig_name for a in activities))
        forecast = self._aggregator.aggregate(cells, grid, rig_names)
        summary = self._summarizer.summarize(forecast)
        logger.info(
            "Forecast '{}' computed: {} activities, {} rigs, {} months ({}) in {:.3f}s",
            self.rule_set.name,
            len(activities),
            len(forecast.rig_demands),
            len(grid),
            self.policy.value,
            time.monotonic() - t0,
        )
        return ForecastRun(grid=grid, cells=cells, forecast=forecast, summary=summary)

    def forecast_with_overrides(self, run: ForecastRun, overrides: OverrideMap) -> TabularForecast:
        """New forecast whose rig values and totals reflect *overrides*."""
        return OverlayView(run.forecast, overrides).to_forecast()

    def summarize_with_overrides(self, run: ForecastRun, overrides: OverrideMap) -> FleetSummary:
        return self._summarizer.summarize(self.forecast_with_overrides(run, overrides))

    def recommendations(self, run: ForecastRun) -> list[str]:
        return build_recommendations(run.summary, run.cells, self.rule_set)

"""End-to-end tests for the forecast engine facade."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Callable

import pytest

from src.forecast.activity import RigActivity
from src.forecast.engine import FleetForecastEngine
from src.forecast.overrides import OverrideMap
from src.forecast.spreader import DemandSpreadPolicy
from src.reference.rule_sets import BusinessRuleSet, load_rule_set

ActivityFactory = Callable[..., RigActivity]


@pytest.fixture
def schedule(make_activity: ActivityFactory) -> list[RigActivity]:
    return [
        make_activity(rig_name="Deepwater Atlas", start_date=date(2026, 1, 1), end_date=date(2026, 4, 30)),
        make_activity(
            rig_name="Q5000", location="GOM.Tiber", is_batch_operation=True,
            start_date=date(2026, 2, 15), end_date=date(2026, 3, 15),
        ),
        make_activity(
            rig_name="Ocean BlackLion", location="GOM.Paleogene", activity_type="CPL",
            start_date=date(2026, 3, 1), end_date=date(2026, 6, 30),
        ),
        make_activity(
            rig_name="Stena IceMAX", start_date=date(2027, 1, 1), end_date=date(2027, 2, 1),
        ),
    ]


class TestFleetForecastEngine:
    def test_run_shapes(self, rule_set: BusinessRuleSet, schedule: list[RigActivity]) -> None:
        run = FleetForecastEngine(rule_set).run(schedule, date(2026, 1, 1), 6)
        assert run.grid == ["2026-01", "2026-02", "2026-03", "2026-04", "2026-05", "2026-06"]
        assert run.forecast.monthly_columns == run.grid
        assert run.forecast.rig_names == [
            "Deepwater Atlas", "Q5000", "Ocean BlackLion", "Stena IceMAX",
        ]
        assert run.forecast.row("Stena IceMAX").monthly_vessels == {m: 0.0 for m in run.grid}
        assert run.summary.horizon_months == 6

    def test_march_requirement(self, rule_set: BusinessRuleSet, schedule: list[RigActivity]) -> None:
        run = FleetForecastEngine(rule_set).run(schedule, date(2026, 1, 1), 6)
        expected = 8.3 / 6.5 + 24.9 / 4.9 + 8.3 * 1.5 * 1.25 / 4.9
        assert run.forecast.totals.vessels_required["2026-03"] == pytest.approx(expected)
        assert run.cell("Q5000", "2026-03").demand == pytest.approx(24.9)
        assert run.cell("Q5000", "2026-05") is None

    def test_split_invariant(self, rule_set: BusinessRuleSet, schedule: list[RigActivity]) -> None:
        forecast = FleetForecastEngine(rule_set).run(schedule, date(2026, 1, 1), 6).forecast
        for month in forecast.monthly_columns:
            required = sum(forecast.get_cell_value(r, month) for r in forecast.rig_names)
            assert (
                forecast.totals.internal_fleet[month] + forecast.totals.externally_sourced[month]
                == pytest.approx(required)
            )

    def test_deterministic(self, rule_set: BusinessRuleSet, schedule: list[RigActivity]) -> None:
        engine = FleetForecastEngine(rule_set)
        first = engine.run(schedule, date(2026, 1, 1), 6)
        second = engine.run(schedule, date(2026, 1, 1), 6)
        assert first.forecast == second.forecast
        assert first.summary == second.summary

    def test_invalid_horizon(self, rule_set: BusinessRuleSet, schedule: list[RigActivity]) -> None:
        with pytest.raises(ValueError):
            FleetForecastEngine(rule_set).run(schedule, date(2026, 1, 1), 0)

    def test_default_rule_set(self) -> None:
        engine = FleetForecastEngine()
        assert engine.rule_set.name == "aug_2026"
        assert engine.policy is DemandSpreadPolicy.FULL_MONTH

    def test_prorated_policy_lowers_partial_months(
        self, rule_set: BusinessRuleSet, schedule: list[RigActivity]
    ) -> None:
        full = FleetForecastEngine(rule_set).run(schedule, date(2026, 1, 1), 6)
        prorated = FleetForecastEngine(rule_set, DemandSpreadPolicy.PRORATED).run(
            schedule, date(2026, 1, 1), 6
        )
        assert prorated.cell("Q5000", "2026-02").demand < full.cell("Q5000", "2026-02").demand
        assert prorated.cell("Deepwater Atlas", "2026-02").demand == pytest.approx(
            full.cell("Deepwater Atlas", "2026-02").demand
        )


class TestOverridesThroughEngine:
    def test_forecast_with_overrides(
        self, rule_set: BusinessRuleSet, schedule: list[RigActivity]
    ) -> None:
        engine = FleetForecastEngine(rule_set)
        run = engine.run(schedule, date(2026, 1, 1), 6)
        overrides = OverrideMap()
        overrides.set_override("Stena IceMAX", "2026-05", 9.0, activity_type="MOB")

        edited = engine.forecast_with_overrides(run, overrides)
        assert edited.get_cell_value("Stena IceMAX", "2026-05") == 9.0
        may_required = edited.totals.vessels_required["2026-05"]
        assert may_required == pytest.approx(
            9.0 + run.forecast.totals.vessels_required["2026-05"]
        )
        assert edited.totals.internal_fleet["2026-05"] == pytest.approx(min(may_required, 8.5))
        assert run.forecast.get_cell_value("Stena IceMAX", "2026-05") == 0.0

        summary = engine.summarize_with_overrides(run, overrides)
        assert summary.peak_vessels_required >= run.summary.peak_vessels_required

        overrides.reset_all()
        restored = engine.forecast_with_overrides(run, overrides)
        assert restored.totals.vessels_required == pytest.approx(
            run.forecast.totals.vessels_required
        )


class TestRuleSetVariants:
    def test_tabular_legacy_uses_uniform_capability(
        self, business_rules_path: Path, make_activity: ActivityFactory
    ) -> None:
        rules = load_rule_set(business_rules_path, "tabular_legacy")
        activity = make_activity(location="GOM.Tiber")
        run = FleetForecastEngine(rules).run([activity], date(2026, 1, 1), 1)
        cell = run.cell("Deepwater Atlas", "2026-01")
        assert cell.demand == pytest.approx(8.3 * 1.5)
        assert cell.vessels_required == pytest.approx(8.3 * 1.5 / 6.5)

    def test_spotting_analysis_white_space_demand(
        self, business_rules_path: Path, make_activity: ActivityFactory
    ) -> None:
        rules = load_rule_set(business_rules_path, "spotting_analysis")
        run = FleetForecastEngine(rules).run(
            [make_activity(activity_type="WS")], date(2026, 1, 1), 1
        )
        assert run.cell("Deepwater Atlas", "2026-01").demand == pytest.approx(8.3 * 0.5)

    def test_recommendations_delegate(
        self, rule_set: BusinessRuleSet, schedule: list[RigActivity]
    ) -> None:
        engine = FleetForecastEngine(rule_set)
        run = engine.run(schedule, date(2026, 1, 1), 6)
        lines = engine.recommendations(run)
        assert any(line.startswith("Batch operations detected in 2 months") for line in lines)
        assert any(line.startswith("Ultra-deep operations in 5 months") for line in lines)

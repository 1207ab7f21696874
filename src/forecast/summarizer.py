"""Fleet-sizing summary KPIs and planner recommendations.

Reduces a :class:`~src.forecast.aggregator.TabularForecast` to the scalar
figures reported alongside the table: average and peak demand, external
vessel need, recommended fleet size and its gap to the core drilling fleet,
and internal fleet utilisation.

Typical usage::

    summary = FleetSummarizer(rule_set).summarize(forecast)
    for line in build_recommendations(summary, cells, rule_set):
        logger.info(line)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping

import numpy as np
from loguru import logger

from src.forecast.aggregator import TabularForecast
from src.forecast.month_grid import display_label
from src.forecast.spreader import MonthlyCell
from src.reference.profiles import STANDARD_VESSEL_CAPABILITY
from src.reference.rule_sets import BusinessRuleSet

SURGE_MARGIN_VESSELS: float = 2.0


@dataclass(frozen=True)
class FleetSummary:
    """Scalar KPIs for one forecast.

    Attributes:
        horizon_months: Number of months summarised.
        average_monthly_demand: Mean deliveries required per month.
        peak_month: Month with the highest delivery demand (earliest on ties).
        peak_demand: Deliveries required in ``peak_month``.
        average_vessels_required: Mean monthly vessel requirement.
        peak_vessels_required: Highest monthly vessel requirement.
        average_externally_sourced: Mean externally sourced vessels.
        peak_externally_sourced: Highest externally sourced vessels.
        peak_external_month: Month of ``peak_externally_sourced``.
        average_vessel_capability: Horizon-wide deliveries per vessel-month.
        recommended_vessels: ``ceil(average_monthly_demand / average_vessel_capability)``.
        core_fleet_baseline: Core drilling fleet the gap is measured against.
        baseline_gap: ``recommended_vessels - core_fleet_baseline``.
        internal_fleet_size: Total internal fleet.
        utilization: Mean internal-fleet usage as a fraction of its size.
    """

    horizon_months: int
    average_monthly_demand: float
    peak_month: str
    peak_demand: float
    average_vessels_required: float
    peak_vessels_required: float
    average_externally_sourced: float
    peak_externally_sourced: float
    peak_external_month: str
    average_vessel_capability: float
    recommended_vessels: int
    core_fleet_baseline: float
    baseline_gap: float
    internal_fleet_size: float
    utilization: float


class FleetSummarizer:
    """Compute :class:`FleetSummary` figures under one rule set."""

    def __init__(self, rule_set: BusinessRuleSet) -> None:
        self.rule_set = rule_set

    def summarize(self, forecast: TabularForecast) -> FleetSummary:
        """Reduce *forecast* over its full horizon.

        Raises:
            ValueError: If the forecast has no months.
        """
        months = forecast.monthly_columns
        if not months:
            raise ValueError("Cannot summarise a forecast with an empty horizon")

        totals = forecast.totals
        required_by_month = totals.vessels_required
        demand = np.array([totals.total_demand[m] for m in months], dtype=float)
        vessels = np.array([required_by_month[m] for m in months], dtype=float)
        internal = np.array([totals.internal_fleet[m] for m in months], dtype=float)
        external = np.array([totals.externally_sourced[m] for m in months], dtype=float)

        # argmax returns the first maximum, so the earliest month wins ties.
        peak_idx = int(np.argmax(demand))
        peak_ext_idx = int(np.argmax(external))

        total_vessels = float(vessels.sum())
        capability = (
            float(demand.sum()) / total_vessels if total_vessels > 0 else STANDARD_VESSEL_CAPABILITY
        )
        average_demand = float(demand.mean())
        recommended = int(math.ceil(round(average_demand / capability, 9)))

        baseline = self.rule_set.baseline
        fleet_size = forecast.internal_fleet_size
        utilization = float(internal.mean()) / fleet_size if fleet_size > 0 else 0.0

        summary = FleetSummary(
            horizon_months=len(months),
            average_monthly_demand=average_demand,
            peak_month=months[peak_idx],
            peak_demand=float(demand[peak_idx]),
            average_vessels_required=float(vessels.mean()),
            peak_vessels_required=float(vessels.max()),
            average_externally_sourced=float(external.mean()),
            peak_externally_sourced=float(external[peak_ext_idx]),
            peak_external_month=months[peak_ext_idx],
            average_vessel_capability=capability,
            recommended_vessels=recommended,
            core_fleet_baseline=baseline.core_fleet_baseline,
            baseline_gap=recommended - baseline.core_fleet_baseline,
            internal_fleet_size=fleet_size,
            utilization=utilization,
        )
        logger.info(
            "Summary: avg demand {:.1f} deliveries/month, peak {} ({:.1f}), "
            "recommended {} vessels (gap {:+.1f})",
            summary.average_monthly_demand,
            summary.peak_month,
            summary.peak_demand,
            summary.recommended_vessels,
            summary.baseline_gap,
        )
        return summary


def build_recommendations(
    summary: FleetSummary,
    cells: Mapping[tuple[str, str], MonthlyCell],
    rule_set: BusinessRuleSet,
) -> list[str]:
    """Planner-facing recommendations derived from a forecast run.

    Args:
        summary: KPIs of the forecast.
        cells: The run's computed cells (batch and ultra-deep detection).
        rule_set: Supplies the core fleet and capability figures quoted.

    Returns:
        Recommendation strings, possibly empty.
    """
    recommendations: list[str] = []

    if summary.average_externally_sourced > 0:
        recommendations.append(
            f"Consider securing {math.ceil(summary.average_externally_sourced)} additional "
            "vessels on average to meet drilling demand"
        )

    peak_vessels = math.ceil(round(summary.peak_vessels_required, 9))
    if peak_vessels > rule_set.baseline.core_fleet_baseline + SURGE_MARGIN_VESSELS:
        recommendations.append(
            f"Peak demand requires {peak_vessels} vessels "
            f"({display_label(summary.peak_month)}) - consider advance charter "
            "agreements for surge capacity"
        )

    batch_months = {month for (_, month), cell in cells.items() if cell.has_batch_component}
    if batch_months:
        recommendations.append(
            f"Batch operations detected in {len(batch_months)} months - ensure vessel "
            "availability for high-demand periods"
        )

    ultra_deep_months = {
        month for (_, month), cell in cells.items() if cell.has_ultra_deep_component
    }
    if ultra_deep_months:
        ultra_deep_capability = min(
            (p.vessel_capability for p in rule_set.locations.values() if p.is_ultra_deep),
            default=STANDARD_VESSEL_CAPABILITY,
        )
        standard_capability = max(
            (p.vessel_capability for p in rule_set.locations.values() if not p.is_ultra_deep),
            default=STANDARD_VESSEL_CAPABILITY,
        )
        recommendations.append(
            f"Ultra-deep operations in {len(ultra_deep_months)} months - account for "
            f"reduced vessel efficiency ({ultra_deep_capability:g} vs "
            f"{standard_capability:g} deliveries/month)"
        )

    return recommendations

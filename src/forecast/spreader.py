"""Activity spreader: rig activities -> per-(rig, month) vessel demand.

Each activity occupies every grid month between the month of its start date
and the month of its end date, inclusive.  For every occupied month the
spreader computes the activity's delivery demand:

    raw_demand       = location.rig_demand * activity_type.demand_multiplier
    transit_adjusted = raw_demand * location.transit_penalty_factor
    batch_adjusted   = transit_adjusted * batch_multiplier
    final_demand     = batch_adjusted * occupancy_fraction

The batch multiplier is 1.0 unless the activity is flagged as a batch
operation *and* its type is batch-eligible (drilling only).  The occupancy
fraction is 1.0 under :attr:`DemandSpreadPolicy.FULL_MONTH` and the share
of the month's days the activity covers under
:attr:`DemandSpreadPolicy.PRORATED`.

Demand is converted to vessels per activity using the location's vessel
capability, so a cell mixing standard and ultra-deep work stays exact.
When several activities occupy the same rig and month their demand is
summed and the latest-starting one becomes the cell's primary
classification (ties go to the activity listed later).

Typical usage::

    spreader = ActivitySpreader(default_rule_set())
    cells = spreader.spread(activities, generate_month_grid(date(2026, 1, 1), 12))
    cells[("Deepwater Atlas", "2026-03")].vessels_required
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Sequence

from loguru import logger

from src.forecast.activity import RigActivity
from src.forecast.month_grid import days_in_month, month_end, month_label, month_start
from src.reference.rule_sets import BusinessRuleSet


class DemandSpreadPolicy(str, Enum):
    """How a multi-month activity's demand lands in each occupied month."""

    FULL_MONTH = "full_month"
    PRORATED = "prorated"


@dataclass(frozen=True)
class DemandComponent:
    """One activity's contribution to one (rig, month) cell."""

    activity_index: int
    activity_type: str
    location: str
    start_date: date
    is_batch: bool
    is_ultra_deep: bool
    raw_demand: float
    transit_factor: float
    batch_multiplier: float
    occupancy_fraction: float
    final_demand: float
    vessel_capability: float

    @property
    def vessels(self) -> float:
        return self.final_demand / self.vessel_capability

    def formula(self) -> str:
        """Human-readable derivation of this component's vessel count."""
        parts = [f"{self.raw_demand:g}", f"transit {self.transit_factor:g}"]
        if self.batch_multiplier != 1.0:
            parts.append(f"batch {self.batch_multiplier:g}")
        if self.occupancy_fraction != 1.0:
            parts.append(f"occupancy {self.occupancy_fraction:.3f}")
        return (
            f"{self.activity_type}@{self.location}: "
            f"{' x '.join(parts)} = {self.final_demand:.2f} deliveries "
            f"/ {self.vessel_capability:g} = {self.vessels:.2f} vessels"
        )


@dataclass(frozen=True)
class MonthlyCell:
    """Computed demand for one rig in one month.

    Attributes:
        rig_name: Canonical rig name.
        month: ``YYYY-MM`` label.
        demand: Total deliveries required by all occupying activities.
        vessels_required: Sum of each component's demand over its location's
            vessel capability.  Fractional; never rounded here.
        activity_type: Primary activity code (latest start wins).
        is_batch: Batch flag of the primary activity.
        breakdown_formula: Human-readable derivation of ``vessels_required``.
        components: Per-activity contributions, in input order.
    """

    rig_name: str
    month: str
    demand: float
    vessels_required: float
    activity_type: str
    is_batch: bool
    breakdown_formula: str
    components: tuple[DemandComponent, ...]

    @property
    def has_batch_component(self) -> bool:
        return any(c.is_batch for c in self.components)

    @property
    def has_ultra_deep_component(self) -> bool:
        return any(c.is_ultra_deep for c in self.components)


class ActivitySpreader:
    """Spread rig activities over a month grid under one rule set.

    Args:
        rule_set: Reference tables used for every lookup.
        policy: Demand spreading policy for multi-month activities.
    """

    def __init__(
        self,
        rule_set: BusinessRuleSet,
        policy: DemandSpreadPolicy = DemandSpreadPolicy.FULL_MONTH,
    ) -> None:
        self.rule_set = rule_set
        self.policy = DemandSpreadPolicy(policy)

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------

    @staticmethod
    def occupied_months(activity: RigActivity, grid: Sequence[str]) -> list[str]:
        """Grid months whose first day lies within the activity's month span."""
        first = month_label(activity.start_date)
        last = month_label(activity.end_date)
        return [label for label in grid if first <= label <= last]

    @staticmethod
    def occupancy_fraction(activity: RigActivity, label: str) -> float:
        """Share of the month's days (inclusive) covered by the activity."""
        overlap_start = max(activity.start_date, month_start(label))
        overlap_end = min(activity.end_date, month_end(label))
        overlap_days = (overlap_end - overlap_start).days + 1
        if overlap_days <= 0:
            return 0.0
        return overlap_days / days_in_month(label)

    # ------------------------------------------------------------------
    # Demand
    # ------------------------------------------------------------------

    def compute_component(
        self, activity: RigActivity, label: str, activity_index: int = 0
    ) -> DemandComponent:
        """Compute one activity's demand contribution to month *label*."""
        location = self.rule_set.location_profile(activity.location)
        type_profile = self.rule_set.activity_type_profile(activity.activity_type)

        raw_demand = location.rig_demand * type_profile.demand_multiplier
        transit_adjusted = raw_demand * location.transit_penalty_factor
        batch_multiplier = type_profile.batch_multiplier(
            activity.is_batch_operation, location.is_ultra_deep
        )
        batch_adjusted = transit_adjusted * batch_multiplier

        if self.policy is DemandSpreadPolicy.PRORATED:
            fraction = self.occupancy_fraction(activity, label)
        else:
            fraction = 1.0

        return DemandComponent(
            activity_index=activity_index,
            activity_type=activity.activity_type,
            location=activity.location,
            start_date=activity.start_date,
            is_batch=activity.is_batch_operation,
            is_ultra_deep=location.is_ultra_deep,
            raw_demand=raw_demand,
            transit_factor=location.transit_penalty_factor,
            batch_multiplier=batch_multiplier,
            occupancy_fraction=fraction,
            final_demand=batch_adjusted * fraction,
            vessel_capability=location.vessel_capability,
        )

    def spread(
        self, activities: Sequence[RigActivity], grid: Sequence[str]
    ) -> dict[tuple[str, str], MonthlyCell]:
        """Compute every occupied (rig, month) cell.

        Args:
            activities: Rig activities in schedule order.
            grid: Ordered month labels of the forecast horizon.

        Returns:
            Cells keyed by ``(rig_name, month)``.  Rigs appear in order of
            first occupying activity; months in grid order within a rig.
            Activities outside the horizon contribute nothing.
        """
        grouped: dict[tuple[str, str], list[DemandComponent]] = {}
        skipped = 0
        for index, activity in enumerate(activities):
            months = self.occupied_months(activity, grid)
            if not months:
                skipped += 1
                continue
            for label in months:
                component = self.compute_component(activity, label, index)
                grouped.setdefault((activity.rig_name, label), []).append(component)

        if skipped:
            logger.debug("{} activities fall outside the horizon and were skipped", skipped)

        month_order = {label: i for i, label in enumerate(grid)}
        rig_order: dict[str, int] = {}
        for rig, _ in grouped:
            rig_order.setdefault(rig, len(rig_order))
        ordered_keys = sorted(grouped, key=lambda k: (rig_order[k[0]], month_order[k[1]]))

        cells = {key: self._build_cell(key, grouped[key]) for key in ordered_keys}
        logger.debug(
            "Spread {} activities into {} cells over {} months ({} policy)",
            len(activities),
            len(cells),
            len(grid),
            self.policy.value,
        )
        return cells

    @staticmethod
    def _build_cell(key: tuple[str, str], components: list[DemandComponent]) -> MonthlyCell:
        rig_name, label = key
        primary = max(components, key=lambda c: (c.start_date, c.activity_index))
        return MonthlyCell(
            rig_name=rig_name,
            month=label,
            demand=sum(c.final_demand for c in components),
            vessels_required=sum(c.vessels for c in components),
            activity_type=primary.activity_type,
            is_batch=primary.is_batch,
            breakdown_formula=" + ".join(c.formula() for c in components),
            components=tuple(components),
        )

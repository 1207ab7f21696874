"""Aggregator: per-cell vessel demand -> monthly fleet requirement and split.

For every month of the horizon the aggregator sums rig demand, converts it
to a (fractional) vessel count and splits that count between the internal
fleet and externally sourced vessels:

    internal_fleet[m]     = min(vessels_required[m], total_internal_fleet_size)
    externally_sourced[m] = max(0, vessels_required[m] - total_internal_fleet_size)

so ``internal_fleet + externally_sourced == vessels_required`` holds for
every month.  Vessel counts are never rounded here.

Typical usage::

    forecast = FleetAggregator(rule_set).aggregate(cells, grid)
    forecast.to_frame().write_csv("forecast.csv")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import polars as pl
from loguru import logger

from src.forecast.month_grid import display_label
from src.forecast.spreader import MonthlyCell
from src.reference.profiles import STANDARD_VESSEL_CAPABILITY
from src.reference.rule_sets import BusinessRuleSet

INTERNAL_FLEET_ROW = "Internal Fleet Total"
EXTERNALLY_SOURCED_ROW = "Externally Sourced"
RIG_COLUMN = "Rig"


def split_fleet(vessels_required: float, internal_fleet_size: float) -> tuple[float, float]:
    """Split a vessel requirement into (internal, externally sourced).

    Args:
        vessels_required: Non-negative vessel requirement for one month.
        internal_fleet_size: Total internal fleet capacity.

    Returns:
        ``(internal, external)`` with ``internal + external == vessels_required``.
    """
    internal = min(vessels_required, internal_fleet_size)
    external = max(0.0, vessels_required - internal_fleet_size)
    return internal, external


# ---------------------------------------------------------------------------
# Forecast value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RigDemandRow:
    """One rig's monthly vessel requirement and primary activity types."""

    rig_name: str
    monthly_vessels: dict[str, float]
    primary_activity_types: dict[str, str]


@dataclass(frozen=True)
class ForecastTotals:
    """Monthly aggregate rows of a forecast.

    ``vessels_required`` is derived from the split rows rather than stored,
    so the two can never drift apart.
    """

    internal_fleet: dict[str, float]
    externally_sourced: dict[str, float]
    total_demand: dict[str, float]
    average_capability: dict[str, float]

    @property
    def vessels_required(self) -> dict[str, float]:
        return {
            month: self.internal_fleet[month] + self.externally_sourced[month]
            for month in self.internal_fleet
        }


@dataclass(frozen=True)
class TabularForecast:
    """Month-by-month fleet forecast: one row per rig plus aggregate rows."""

    monthly_columns: list[str]
    rig_demands: list[RigDemandRow]
    totals: ForecastTotals
    internal_fleet_size: float
    rule_set_name: str = ""
    _row_index: dict[str, RigDemandRow] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_row_index", {row.rig_name: row for row in self.rig_demands})

    @property
    def rig_names(self) -> list[str]:
        return [row.rig_name for row in self.rig_demands]

    def row(self, rig_name: str) -> RigDemandRow:
        """Return the row for *rig_name*.

        Raises:
            KeyError: If the rig has no row in this forecast.
        """
        return self._row_index[rig_name]

    def get_cell_value(self, rig_name: str, month: str) -> float:
        """Computed vessels for a cell; 0.0 when the rig or month has none."""
        row = self._row_index.get(rig_name)
        if row is None:
            return 0.0
        return row.monthly_vessels.get(month, 0.0)

    def get_activity_type(self, rig_name: str, month: str) -> str | None:
        row = self._row_index.get(rig_name)
        if row is None:
            return None
        return row.primary_activity_types.get(month)

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def _column_names(self, display: bool) -> list[str]:
        if display:
            return [display_label(m) for m in self.monthly_columns]
        return list(self.monthly_columns)

    def to_records(self, display: bool = False) -> list[dict[str, Any]]:
        """Flatten to one record per rig plus the two aggregate rows.

        Args:
            display: Use ``Jan-26`` style month headers instead of ``YYYY-MM``.

        Returns:
            List of dicts keyed by ``"Rig"`` and one key per month.
        """
        names = self._column_names(display)
        records: list[dict[str, Any]] = []
        for row in self.rig_demands:
            record: dict[str, Any] = {RIG_COLUMN: row.rig_name}
            for name, month in zip(names, self.monthly_columns):
                record[name] = row.monthly_vessels.get(month, 0.0)
            records.append(record)
        for label, series in (
            (INTERNAL_FLEET_ROW, self.totals.internal_fleet),
            (EXTERNALLY_SOURCED_ROW, self.totals.externally_sourced),
        ):
            record = {RIG_COLUMN: label}
            for name, month in zip(names, self.monthly_columns):
                record[name] = series[month]
            records.append(record)
        return records

    def to_frame(self, display: bool = False) -> pl.DataFrame:
        """Flat table as a polars DataFrame (``Rig`` column + one per month)."""
        names = self._column_names(display)
        records = self.to_records(display)
        columns: dict[str, list[Any]] = {RIG_COLUMN: [r[RIG_COLUMN] for r in records]}
        for name in names:
            columns[name] = [float(r[name]) for r in records]
        return pl.DataFrame(
            columns,
            schema={RIG_COLUMN: pl.Utf8, **{name: pl.Float64 for name in names}},
        )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def build_totals(
    grid: Sequence[str],
    monthly_vessels: Mapping[str, float],
    monthly_demand: Mapping[str, float],
    internal_fleet_size: float,
) -> ForecastTotals:
    """Split each month's requirement and assemble the aggregate rows."""
    internal: dict[str, float] = {}
    external: dict[str, float] = {}
    demand: dict[str, float] = {}
    capability: dict[str, float] = {}
    for month in grid:
        vessels = monthly_vessels.get(month, 0.0)
        internal[month], external[month] = split_fleet(vessels, internal_fleet_size)
        demand[month] = monthly_demand.get(month, 0.0)
        capability[month] = (
            demand[month] / vessels if vessels > 0 else STANDARD_VESSEL_CAPABILITY
        )
    return ForecastTotals(
        internal_fleet=internal,
        externally_sourced=external,
        total_demand=demand,
        average_capability=capability,
    )


class FleetAggregator:
    """Aggregate spread cells into a :class:`TabularForecast`.

    Args:
        rule_set: Supplies the internal fleet baseline.
    """

    def __init__(self, rule_set: BusinessRuleSet) -> None:
        self.rule_set = rule_set

    @property
    def internal_fleet_size(self) -> float:
        return self.rule_set.baseline.total_internal_fleet_size

    def aggregate(
        self,
        cells: Mapping[tuple[str, str], MonthlyCell],
        grid: Sequence[str],
        rig_names: Sequence[str] | None = None,
    ) -> TabularForecast:
        """Build the forecast table from computed cells.

        The month's average vessel capability is the demand-weighted
        harmonic mean of the occupying locations' capabilities, which makes
        ``total_demand / average_capability`` equal the sum of cell vessel
        counts.

        Args:
            cells: Output of :meth:`ActivitySpreader.spread`.
            grid: Ordered month labels.
            rig_names: Rigs to include even without occupied cells (e.g. all
                ingested rigs).  Rigs that only appear in *cells* follow in
                order of first appearance.

        Returns:
            A fresh :class:`TabularForecast`.
        """
        ordered: list[str] = list(dict.fromkeys(rig_names or []))
        for rig, _ in cells:
            if rig not in ordered:
                ordered.append(rig)

        rows: dict[str, RigDemandRow] = {
            rig: RigDemandRow(
                rig_name=rig,
                monthly_vessels={month: 0.0 for month in grid},
                primary_activity_types={},
            )
            for rig in ordered
        }
        monthly_vessels = {month: 0.0 for month in grid}
        monthly_demand = {month: 0.0 for month in grid}

        for (rig, month), cell in cells.items():
            if month not in monthly_vessels:
                continue
            rows[rig].monthly_vessels[month] = cell.vessels_required
            rows[rig].primary_activity_types[month] = cell.activity_type
            monthly_vessels[month] += cell.vessels_required
            monthly_demand[month] += cell.demand

        totals = build_totals(grid, monthly_vessels, monthly_demand, self.internal_fleet_size)
        logger.debug(
            "Aggregated {} rigs over {} months; peak requirement {:.2f} vessels",
            len(rows),
            len(grid),
            max(monthly_vessels.values(), default=0.0),
        )
        return TabularForecast(
            monthly_columns=list(grid),
            rig_demands=list(rows.values()),
            totals=totals,
            internal_fleet_size=self.internal_fleet_size,
            rule_set_name=self.rule_set.name,
        )

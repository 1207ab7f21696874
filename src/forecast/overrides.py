"""Manual cell overrides layered over a computed forecast.

The computed :class:`~src.forecast.aggregator.TabularForecast` is never
modified.  Planner edits live in an :class:`OverrideMap` owned by the
editing session, and an :class:`OverlayView` reads the two together:
override first, computed value otherwise.  Totals that must reflect edits
are re-derived from the overlay on every read, so clearing the map restores
the computed baseline without a rerun.

Invalid edits (negative, NaN, infinite, non-numeric) are discarded rather
than raised so interactive editing stays forgiving.

Typical usage::

    overrides = OverrideMap()
    overrides.set_override("Deepwater Atlas", "2026-03", 2.0, activity_type="CPL")
    view = OverlayView(forecast, overrides)
    view.month_split("2026-03")      # (internal, external) with the edit applied
    overrides.reset_all()
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterator

from loguru import logger

from src.forecast.aggregator import (
    RigDemandRow,
    TabularForecast,
    build_totals,
    split_fleet,
)


@dataclass(frozen=True)
class OverrideEntry:
    """A planner's replacement for one cell."""

    value: float
    activity_type: str | None = None


def _coerce_override_value(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


class OverrideMap:
    """Sparse ``(rig_name, month) -> OverrideEntry`` map for one session.

    Each session should own its own map; the map is not shared between
    forecasts and carries no locking.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], OverrideEntry] = {}

    def set_override(
        self,
        rig_name: str,
        month: str,
        value: Any,
        activity_type: str | None = None,
    ) -> bool:
        """Store an override for one cell.

        Args:
            rig_name: Canonical rig name.
            month: ``YYYY-MM`` label.
            value: Replacement vessel count.  Anything ``float()`` accepts
                that is finite and non-negative.
            activity_type: Optional replacement activity code.

        Returns:
            ``True`` if stored.  ``False`` if *value* was rejected, in which
            case any earlier override for the cell is left untouched.
        """
        number = _coerce_override_value(value)
        if number is None:
            logger.warning(
                "Discarded override for {} {}: invalid value {!r}", rig_name, month, value
            )
            return False
        self._entries[(rig_name, month)] = OverrideEntry(
            value=number, activity_type=activity_type or None
        )
        logger.debug("Override set: {} {} -> {}", rig_name, month, number)
        return True

    def get(self, rig_name: str, month: str) -> OverrideEntry | None:
        return self._entries.get((rig_name, month))

    def remove(self, rig_name: str, month: str) -> bool:
        """Drop the override for one cell; returns whether one existed."""
        return self._entries.pop((rig_name, month), None) is not None

    def reset_all(self) -> None:
        """Clear every override.  The underlying forecast is not recomputed."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cleared {} overrides", count)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._entries)

    def items(self) -> list[tuple[tuple[str, str], OverrideEntry]]:
        return list(self._entries.items())


class OverlayView:
    """Read-time merge of a computed forecast and an override map.

    Totals consider the forecast's rigs and months only; overrides on other
    cells are still returned by :meth:`get_value`.

    Args:
        forecast: The computed baseline (not modified).
        overrides: The session's override map (read on every call).
    """

    def __init__(self, forecast: TabularForecast, overrides: OverrideMap) -> None:
        self.forecast = forecast
        self.overrides = overrides

    def get_value(self, rig_name: str, month: str) -> float:
        """Override value if present, else the computed cell (0.0 if none)."""
        entry = self.overrides.get(rig_name, month)
        if entry is not None:
            return entry.value
        return self.forecast.get_cell_value(rig_name, month)

    def get_activity_type(self, rig_name: str, month: str) -> str | None:
        entry = self.overrides.get(rig_name, month)
        if entry is not None and entry.activity_type is not None:
            return entry.activity_type
        return self.forecast.get_activity_type(rig_name, month)

    def is_overridden(self, rig_name: str, month: str) -> bool:
        return (rig_name, month) in self.overrides

    def month_vessels_required(self, month: str) -> float:
        """Re-sum :meth:`get_value` over every rig for *month*."""
        return sum(self.get_value(rig, month) for rig in self.forecast.rig_names)

    def month_split(self, month: str) -> tuple[float, float]:
        """``(internal, external)`` for *month* with overrides applied."""
        return split_fleet(self.month_vessels_required(month), self.forecast.internal_fleet_size)

    def to_forecast(self) -> TabularForecast:
        """Materialise the overlay as a new :class:`TabularForecast`.

        Monthly demand is rescaled by each month's original average vessel
        capability so delivery totals stay consistent with the edited
        vessel counts.
        """
        base = self.forecast
        rows: list[RigDemandRow] = []
        for row in base.rig_demands:
            vessels = {m: self.get_value(row.rig_name, m) for m in base.monthly_columns}
            types: dict[str, str] = {}
            for m in base.monthly_columns:
                activity_type = self.get_activity_type(row.rig_name, m)
                if activity_type is not None:
                    types[m] = activity_type
            rows.append(RigDemandRow(row.rig_name, vessels, types))

        monthly_vessels = {
            m: sum(r.monthly_vessels[m] for r in rows) for m in base.monthly_columns
        }
        monthly_demand = {
            m: monthly_vessels[m] * base.totals.average_capability[m]
            for m in base.monthly_columns
        }
        totals = build_totals(
            base.monthly_columns, monthly_vessels, monthly_demand, base.internal_fleet_size
        )
        return TabularForecast(
            monthly_columns=list(base.monthly_columns),
            rig_demands=rows,
            totals=totals,
            internal_fleet_size=base.internal_fleet_size,
            rule_set_name=base.rule_set_name,
        )

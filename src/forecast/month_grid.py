"""Calendar-month grid for the forecast horizon.

Month labels are ISO ``YYYY-MM`` strings: they sort chronologically, are
stable across runs, and are the keys overrides are stored under.  The
``Jan-26`` form planners are used to is a rendering concern handled by
:func:`display_label`.

Typical usage::

    grid = generate_month_grid(date(2026, 11, 15), 4)
    # ['2026-11', '2026-12', '2027-01', '2027-02']
"""

from __future__ import annotations

import calendar
from datetime import date


def month_label(day: date) -> str:
    """Return the ``YYYY-MM`` label of the month containing *day*."""
    return f"{day.year:04d}-{day.month:02d}"


def _parse_label(label: str) -> tuple[int, int]:
    try:
        year_text, month_text = label.split("-")
        year, month = int(year_text), int(month_text)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid month label '{label}'; expected YYYY-MM") from exc
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month label '{label}'; month out of range")
    return year, month


def month_start(label: str) -> date:
    """First calendar day of the month *label* names."""
    year, month = _parse_label(label)
    return date(year, month, 1)


def month_end(label: str) -> date:
    """Last calendar day of the month *label* names."""
    year, month = _parse_label(label)
    return date(year, month, calendar.monthrange(year, month)[1])


def days_in_month(label: str) -> int:
    year, month = _parse_label(label)
    return calendar.monthrange(year, month)[1]


def display_label(label: str) -> str:
    """Render *label* as ``Mon-YY`` (``2026-01`` -> ``Jan-26``)."""
    year, month = _parse_label(label)
    return f"{calendar.month_abbr[month]}-{year % 100:02d}"


def generate_month_grid(start_date: date, horizon_months: int) -> list[str]:
    """Build the ordered month labels for a forecast horizon.

    Args:
        start_date: Any day in the first forecast month.  Passed explicitly;
            the grid never reads the wall clock.
        horizon_months: Number of months in the horizon.

    Returns:
        ``horizon_months`` consecutive labels starting at *start_date*'s
        month, without gaps or duplicates.

    Raises:
        ValueError: If *horizon_months* is not a positive integer.
    """
    if isinstance(horizon_months, bool) or not isinstance(horizon_months, int):
        raise ValueError(f"horizon_months must be an integer, got {horizon_months!r}")
    if horizon_months <= 0:
        raise ValueError(f"horizon_months must be positive, got {horizon_months}")

    index = start_date.year * 12 + (start_date.month - 1)
    return [
        f"{(index + offset) // 12:04d}-{(index + offset) % 12 + 1:02d}"
        for offset in range(horizon_months)
    ]

"""Rig schedule ingestion: raw records / CSV exports -> validated activities.

Ingestion is the only place raw schedule data is interpreted.  Rig names
and location asset codes are canonicalised through the rule set's alias
tables, the batch flag is resolved (explicit column first, otherwise
keyword detection on the activity name), dates are parsed, and each
record is validated on its own: a bad record is reported and skipped, the
rest of the batch continues.

The CSV reader understands both the planning-system export headers
(``GWDXAG-Rig Name``, ``(*)Start``, ...) and plain snake_case headers.

Typical usage::

    report = load_schedule_csv(Path("data/rig_schedule_mean.csv"), rule_set)
    if report.quality_score < 80:
        logger.warning("Schedule quality {}", report.quality_score)
    run = engine.run(report.activities, date(2026, 1, 1), 18)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import polars as pl
from loguru import logger
from pydantic import ValidationError

from src.forecast.activity import RigActivity
from src.reference.rule_sets import BusinessRuleSet

# Export header -> record field.  Snake_case names map to themselves.
COLUMN_ALIASES: dict[str, str] = {
    "Activity ID": "activity_id",
    "Activity Name": "activity_name",
    "GWDXAG-Rig Name": "rig_name",
    "Rig Name": "rig_name",
    "GWDXAG-Asset": "location",
    "Asset": "location",
    "GWDXAG-Rig Activity Type": "activity_type",
    "Rig Activity Type": "activity_type",
    "(*)Start": "start_date",
    "Start": "start_date",
    "(*)Finish": "end_date",
    "Finish": "end_date",
    "Batch": "is_batch_operation",
    "Delete This Row": "delete_row",
}

REQUIRED_FIELDS: tuple[str, ...] = ("rig_name", "activity_type", "start_date", "end_date")
BATCH_KEYWORD = "batch"

_DATE_FORMATS: tuple[str, ...] = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%d-%b-%y",
    "%d-%b-%Y",
)
_TRUE_STRINGS = frozenset({"true", "yes", "y", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "n", "0"})


def detect_batch_operation(activity_name: str | None) -> bool:
    """Whether an activity name marks a batch operation (case-insensitive)."""
    return BATCH_KEYWORD in (activity_name or "").lower()


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecordIssue:
    """A problem found in one input record.

    Attributes:
        row: 1-based record position in the input.
        field: Field the problem relates to.
        reason: Human-readable description.
        severity: ``"critical"`` (record rejected) or ``"warning"`` (record
            accepted).
    """

    row: int
    field: str
    reason: str
    severity: str = "critical"


@dataclass
class IngestionReport:
    """Outcome of ingesting one schedule."""

    activities: list[RigActivity] = field(default_factory=list)
    issues: list[RecordIssue] = field(default_factory=list)
    warnings: list[RecordIssue] = field(default_factory=list)
    unmapped_rigs: list[str] = field(default_factory=list)
    skipped_rows: int = 0
    total_records: int = 0

    @property
    def accepted(self) -> int:
        return len(self.activities)

    @property
    def rejected(self) -> int:
        return len(self.issues)

    @property
    def quality_score(self) -> float:
        """``100 - 10 * issues - 5 * warnings``, floored at 0."""
        return float(max(0, 100 - 10 * len(self.issues) - 5 * len(self.warnings)))


# ---------------------------------------------------------------------------
# Field parsing
# ---------------------------------------------------------------------------

def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_schedule_date(value: Any) -> date:
    """Parse a schedule date from a date, datetime or string.

    Raises:
        ValueError: If *value* is not a recognisable date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid date: {value!r}")
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {value!r}")


def _parse_flag(value: Any) -> bool | None:
    if _blank(value):
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return None


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

def _normalise_record(record: Mapping[str, Any]) -> dict[str, Any]:
    normalised: dict[str, Any] = {}
    for key, value in record.items():
        target = COLUMN_ALIASES.get(str(key).strip(), str(key).strip())
        if target not in normalised or _blank(normalised[target]):
            normalised[target] = value
    return normalised


def ingest_records(
    records: Iterable[Mapping[str, Any]],
    rule_set: BusinessRuleSet,
) -> IngestionReport:
    """Validate raw schedule records into :class:`RigActivity` objects.

    Args:
        records: Raw mappings keyed by export headers or field names.
        rule_set: Supplies the rig-alias, location-alias, location and
            activity tables.

    Returns:
        An :class:`IngestionReport`.  Rejected records appear in
        ``issues``; unmapped rig names, locations matching no table
        entry or fallback pattern, and unknown activity codes appear in
        ``warnings`` but the record is kept.
    """
    resolver = rule_set.rig_resolver()
    report = IngestionReport()
    unmapped: dict[str, None] = {}

    for row_number, raw in enumerate(records, start=1):
        report.total_records += 1
        record = _normalise_record(raw)

        if str(record.get("delete_row") or "").strip().lower() == "yes":
            report.skipped_rows += 1
            logger.debug("Row {} marked for deletion, skipped", row_number)
            continue

        missing = [name for name in REQUIRED_FIELDS if _blank(record.get(name))]
        if missing:
            report.issues.append(
                RecordIssue(row_number, missing[0], f"Missing {', '.join(missing)}")
            )
            continue

        try:
            start = parse_schedule_date(record["start_date"])
        except ValueError as exc:
            report.issues.append(RecordIssue(row_number, "start_date", str(exc)))
            continue
        try:
            end = parse_schedule_date(record["end_date"])
        except ValueError as exc:
            report.issues.append(RecordIssue(row_number, "end_date", str(exc)))
            continue

        raw_rig = str(record["rig_name"]).strip()
        rig_name = resolver.resolve(raw_rig)
        if not resolver.is_known(raw_rig):
            unmapped.setdefault(raw_rig, None)
            report.warnings.append(
                RecordIssue(row_number, "rig_name", f"Unmapped rig name '{raw_rig}'", "warning")
            )

        raw_location = "" if _blank(record.get("location")) else str(record["location"]).strip()
        location = rule_set.canonical_location(raw_location)
        if not rule_set.is_recognised_location(location):
            report.warnings.append(
                RecordIssue(row_number, "location", f"Unknown location '{location}'", "warning")
            )

        activity_type = str(record["activity_type"]).strip()
        if not rule_set.is_known_activity_type(activity_type):
            report.warnings.append(
                RecordIssue(
                    row_number, "activity_type", f"Unknown activity type '{activity_type}'", "warning"
                )
            )

        activity_name = "" if _blank(record.get("activity_name")) else str(record["activity_name"]).strip()
        is_batch = _parse_flag(record.get("is_batch_operation"))
        if is_batch is None:
            is_batch = detect_batch_operation(activity_name)

        try:
            activity = RigActivity(
                rig_name=rig_name,
                location=location,
                activity_type=activity_type,
                start_date=start,
                end_date=end,
                is_batch_operation=is_batch,
                activity_name=activity_name,
                activity_id="" if _blank(record.get("activity_id")) else str(record["activity_id"]).strip(),
            )
        except ValidationError as exc:
            reason = "; ".join(err["msg"] for err in exc.errors())
            report.issues.append(RecordIssue(row_number, "date_range", reason))
            continue
        report.activities.append(activity)

    report.unmapped_rigs = list(unmapped)
    for raw_rig in report.unmapped_rigs:
        logger.warning("Unmapped rig name '{}' passed through unchanged", raw_rig)
    logger.info(
        "Ingested {}/{} records ({} rejected, {} skipped, {} warnings, quality {:.0f})",
        report.accepted,
        report.total_records,
        report.rejected,
        report.skipped_rows,
        len(report.warnings),
        report.quality_score,
    )
    return report


def load_schedule_csv(path: Path, rule_set: BusinessRuleSet) -> IngestionReport:
    """Read a schedule CSV export with polars and ingest its rows.

    All columns are read as strings; parsing happens per record in
    :func:`ingest_records`.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schedule file not found: {path}")
    df = pl.read_csv(path, infer_schema_length=0)
    logger.info("Read {} rows x {} columns from {}", df.height, df.width, path)
    return ingest_records(df.to_dicts(), rule_set)


def filter_activities(
    activities: Sequence[RigActivity],
    rigs: Iterable[str] | None = None,
    locations: Iterable[str] | None = None,
) -> list[RigActivity]:
    """Keep activities on the selected rigs and locations.

    ``None`` means no filter on that dimension.  Order is preserved.
    """
    rig_set = set(rigs) if rigs is not None else None
    location_set = set(locations) if locations is not None else None
    return [
        a
        for a in activities
        if (rig_set is None or a.rig_name in rig_set)
        and (location_set is None or a.location in location_set)
    ]

"""Tests for rig schedule ingestion.

Validates:
    - Export headers and snake_case fields both map to activities
    - Rig and location aliases are applied once at ingestion
    - Batch flag: explicit column wins, otherwise name keyword
    - Per-record rejection with reasons; the batch continues
    - Warnings for unmapped rigs, unmatched locations and unknown codes;
      quality score
    - CSV loading through polars and activity filters
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any

import pytest

from src.data.schedule_loader import (
    detect_batch_operation,
    filter_activities,
    ingest_records,
    load_schedule_csv,
    parse_schedule_date,
)
from src.reference.rule_sets import BusinessRuleSet


def _export_row(**overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "Activity ID": "A-100",
        "Activity Name": "Drill 8-1/2in section",
        "GWDXAG-Rig Name": "GOM.Black Lion",
        "GWDXAG-Asset": "GOM.Paleogene",
        "GWDXAG-Rig Activity Type": "DRL",
        "(*)Start": "2026-02-01",
        "(*)Finish": "2026-03-15",
    }
    row.update(overrides)
    return row


class TestDetectBatchOperation:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Batch drill top holes", True),
            ("BATCH SET", True),
            ("Kaskida batched completions", True),
            ("Drill 12-1/4in section", False),
            ("", False),
            (None, False),
        ],
    )
    def test_keyword(self, name: str | None, expected: bool) -> None:
        assert detect_batch_operation(name) is expected


class TestParseScheduleDate:
    @pytest.mark.parametrize(
        "text",
        ["2026-02-01", "2026-02-01T07:00:00", "02/01/2026", "01-Feb-26"],
    )
    def test_formats(self, text: str) -> None:
        assert parse_schedule_date(text) == date(2026, 2, 1)

    @pytest.mark.parametrize("bad", ["", "not a date", None, "2026-13-01"])
    def test_invalid(self, bad: Any) -> None:
        with pytest.raises(ValueError):
            parse_schedule_date(bad)


class TestIngestRecords:
    def test_export_row_accepted(self, rule_set: BusinessRuleSet) -> None:
        report = ingest_records([_export_row()], rule_set)
        assert report.accepted == 1
        activity = report.activities[0]
        assert activity.rig_name == "Ocean BlackLion"
        assert activity.location == "GOM.Paleogene"
        assert activity.activity_type == "DRL"
        assert activity.start_date == date(2026, 2, 1)
        assert activity.end_date == date(2026, 3, 15)
        assert activity.activity_id == "A-100"
        assert not activity.is_batch_operation
        assert report.issues == []
        assert report.warnings == []
        assert report.quality_score == 100.0

    def test_snake_case_fields(self, rule_set: BusinessRuleSet) -> None:
        record = {
            "rig_name": "Q5000",
            "location": "GOM.Tiber",
            "activity_type": "CPL",
            "start_date": date(2026, 1, 1),
            "end_date": date(2026, 1, 31),
            "is_batch_operation": True,
        }
        report = ingest_records([record], rule_set)
        assert report.activities[0].is_batch_operation

    def test_batch_detected_from_name(self, rule_set: BusinessRuleSet) -> None:
        report = ingest_records([_export_row(**{"Activity Name": "Batch drill surface"})], rule_set)
        assert report.activities[0].is_batch_operation

    def test_explicit_flag_wins_over_name(self, rule_set: BusinessRuleSet) -> None:
        row = _export_row(**{"Activity Name": "Batch drill surface", "Batch": "no"})
        report = ingest_records([row], rule_set)
        assert not report.activities[0].is_batch_operation

    def test_bad_records_rejected_batch_continues(self, rule_set: BusinessRuleSet) -> None:
        rows = [
            _export_row(**{"(*)Start": "2026-05-01", "(*)Finish": "2026-04-01"}),
            _export_row(**{"GWDXAG-Rig Name": ""}),
            _export_row(**{"(*)Finish": "someday"}),
            _export_row(),
        ]
        report = ingest_records(rows, rule_set)
        assert report.accepted == 1
        assert report.rejected == 3
        assert [issue.row for issue in report.issues] == [1, 2, 3]
        assert report.issues[0].field == "date_range"
        assert "after" in report.issues[0].reason
        assert report.issues[1].field == "rig_name"
        assert report.issues[2].field == "end_date"
        assert all(issue.severity == "critical" for issue in report.issues)
        assert report.quality_score == 70.0

    def test_unmapped_rig_warns_and_passes_through(self, rule_set: BusinessRuleSet) -> None:
        rows = [
            _export_row(**{"GWDXAG-Rig Name": "Valaris DS-18"}),
            _export_row(**{"GWDXAG-Rig Name": "Valaris DS-18"}),
        ]
        report = ingest_records(rows, rule_set)
        assert [a.rig_name for a in report.activities] == ["Valaris DS-18", "Valaris DS-18"]
        assert report.unmapped_rigs == ["Valaris DS-18"]
        assert len(report.warnings) == 2
        assert report.warnings[0].severity == "warning"
        assert report.quality_score == 90.0

    def test_unknown_codes_warn_but_keep_record(self, rule_set: BusinessRuleSet) -> None:
        row = _export_row(**{"GWDXAG-Asset": "North Sea", "GWDXAG-Rig Activity Type": "XYZ"})
        report = ingest_records([row], rule_set)
        assert report.accepted == 1
        assert {w.field for w in report.warnings} == {"location", "activity_type"}
        assert report.quality_score == 90.0

    def test_location_aliases_applied_without_warnings(
        self, rule_set: BusinessRuleSet, log_messages: list[str]
    ) -> None:
        rows = [
            _export_row(**{"GWDXAG-Asset": "GOM.Mad Dog"}),
            _export_row(**{"GWDXAG-Asset": "GOM.Thunder Horse"}),
        ]
        report = ingest_records(rows, rule_set)
        assert [a.location for a in report.activities] == ["GOM.MadDog", "GOM.ThunderHorse"]
        assert report.warnings == []
        assert report.quality_score == 100.0
        assert not [m for m in log_messages if "Unknown location" in m]

    def test_pattern_matched_location_is_not_a_record_warning(
        self, rule_set: BusinessRuleSet
    ) -> None:
        rows = [
            _export_row(**{"GWDXAG-Asset": "GOM.NewField"}),
            _export_row(**{"GWDXAG-Asset": "Kaskida North"}),
        ]
        report = ingest_records(rows, rule_set)
        assert report.accepted == 2
        assert report.warnings == []
        assert rule_set.location_profile("Kaskida North").is_ultra_deep

    def test_rows_marked_for_deletion_skipped(self, rule_set: BusinessRuleSet) -> None:
        report = ingest_records([_export_row(**{"Delete This Row": "Yes"}), _export_row()], rule_set)
        assert report.skipped_rows == 1
        assert report.accepted == 1
        assert report.total_records == 2

    def test_quality_score_floor(self, rule_set: BusinessRuleSet) -> None:
        rows = [_export_row(**{"GWDXAG-Rig Name": None}) for _ in range(12)]
        assert ingest_records(rows, rule_set).quality_score == 0.0


class TestLoadScheduleCsv:
    def test_reads_export(self, tmp_path: Path, rule_set: BusinessRuleSet) -> None:
        path = tmp_path / "schedule.csv"
        path.write_text(
            "Activity ID,Activity Name,GWDXAG-Rig Name,GWDXAG-Asset,"
            "GWDXAG-Rig Activity Type,(*)Start,(*)Finish\n"
            "A-1,Batch drill tops,GOM.Atlas,GOM.Tiber,DRL,2026-01-05,2026-02-20\n"
            "A-2,Complete well,TH PDQ,GOM.ThunderHorse,CPL,2026-03-01,2026-03-31\n",
            encoding="utf-8",
        )
        report = load_schedule_csv(path, rule_set)
        assert report.accepted == 2
        first, second = report.activities
        assert first.rig_name == "Deepwater Atlas"
        assert first.is_batch_operation
        assert first.activity_id == "A-1"
        assert second.rig_name == "Thunderhorse Drilling"
        assert second.end_date == date(2026, 3, 31)

    def test_missing_file(self, tmp_path: Path, rule_set: BusinessRuleSet) -> None:
        with pytest.raises(FileNotFoundError):
            load_schedule_csv(tmp_path / "absent.csv", rule_set)


class TestFilterActivities:
    def test_filters(self, rule_set: BusinessRuleSet) -> None:
        rows = [
            _export_row(),
            _export_row(**{"GWDXAG-Rig Name": "GOM.Q5000", "GWDXAG-Asset": "GOM.Tiber"}),
            _export_row(**{"GWDXAG-Rig Name": "GOM.Q5000", "GWDXAG-Asset": "GOM.Atlantis"}),
        ]
        activities = ingest_records(rows, rule_set).activities
        assert filter_activities(activities) == activities
        assert [a.location for a in filter_activities(activities, rigs=["Q5000"])] == [
            "GOM.Tiber",
            "GOM.Atlantis",
        ]
        only = filter_activities(activities, rigs=["Q5000"], locations=["GOM.Atlantis"])
        assert len(only) == 1
        assert filter_activities(activities, locations=[]) == []

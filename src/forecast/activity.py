"""Rig activity record consumed by the forecast engine."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, model_validator


class RigActivity(BaseModel):
    """One scheduled rig operation.

    Attributes:
        rig_name: Canonical rig identifier.
        location: Location key into the rule set's location table.
        activity_type: Activity code (``DRL``, ``CPL``, ...).
        start_date: First day of the operation.
        end_date: Last day of the operation (inclusive).
        is_batch_operation: Whether several wells are serviced together.
        activity_name: Free-text description from the schedule export.
        activity_id: Identifier from the schedule export, if any.
    """

    rig_name: str = Field(..., min_length=1)
    location: str
    activity_type: str
    start_date: date
    end_date: date
    is_batch_operation: bool = False
    activity_name: str = ""
    activity_id: str = ""

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_date_order(self) -> "RigActivity":
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        return self

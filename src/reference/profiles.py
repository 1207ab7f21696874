"""Static reference profiles for the offshore vessel fleet forecast.

Every stage of the forecast reads these tables and none of them writes to
them.  Three kinds of profile are defined here:

    1. **Locations** -- per-field transit time, per-vessel monthly delivery
       capability, the rig-demand constant, and the ultra-deep / transit
       penalty flags.
    2. **Activity types** -- demand multiplier per rig activity code and the
       batch multipliers for the one batch-eligible code (drilling).
    3. **Fleet baseline** -- the operator's internal fleet composition.

The default values reproduce the August 2026 planning assumptions (8.3
deliveries per rig per month, 6.5 deliveries per vessel per month on short
transit fields, 4.9 on ultra-deep fields).

Typical usage::

    profile = DEFAULT_LOCATION_PROFILES["GOM.Tiber"]
    drl = DEFAULT_ACTIVITY_TYPE_PROFILES["DRL"]
    demand = profile.rig_demand * drl.demand_multiplier
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Planning constants
# ---------------------------------------------------------------------------

BASELINE_RIG_DEMAND: float = 8.3  # deliveries per rig per month
STANDARD_VESSEL_CAPABILITY: float = 6.5  # deliveries per vessel per month, ~13h transit
ULTRA_DEEP_VESSEL_CAPABILITY: float = 4.9  # deliveries per vessel per month, ~24h transit
SHORT_TRANSIT_HOURS: float = 13.0
LONG_TRANSIT_HOURS: float = 24.0
PALEOGENE_TRANSIT_FACTOR: float = 1.25
STANDARD_BATCH_MULTIPLIER: float = 1.5
ULTRA_DEEP_BATCH_MULTIPLIER: float = 3.0
UNKNOWN_ACTIVITY_MULTIPLIER: float = 1.0


class ActivityType(str, Enum):
    """Rig activity codes recognised by the forecast."""

    RSU = "RSU"
    DRL = "DRL"
    CPL = "CPL"
    RM = "RM"
    WS = "WS"
    PA = "P&A"
    WWP = "WWP"
    MOB = "MOB"
    WWI = "WWI"
    TAR = "TAR"
    LWI = "LWI"


ACTIVITY_TYPE_CODES: tuple[str, ...] = tuple(t.value for t in ActivityType)


# ---------------------------------------------------------------------------
# Profile models
# ---------------------------------------------------------------------------

class LocationProfile(BaseModel):
    """Static facts about one offshore location.

    Attributes:
        display_name: Human-readable field name.
        transit_hours: Approximate one-way vessel transit time.
        vessel_capability: Deliveries one vessel can serve per month at this
            location.  Reduced for ultra-deep fields.
        rig_demand: Deliveries one active rig requires per month.
        is_ultra_deep: Whether the field is ultra-deep water.  Selects the
            ultra-deep batch multiplier.
        transit_penalty_factor: Demand multiplier for designated
            long-transit fields; 1.0 everywhere else.
    """

    display_name: str = Field(..., min_length=1)
    transit_hours: float = Field(default=SHORT_TRANSIT_HOURS, gt=0)
    vessel_capability: float = Field(default=STANDARD_VESSEL_CAPABILITY, gt=0)
    rig_demand: float = Field(default=BASELINE_RIG_DEMAND, ge=0)
    is_ultra_deep: bool = False
    transit_penalty_factor: float = Field(default=1.0, ge=1.0)

    model_config = {"frozen": True, "extra": "forbid"}


class ActivityTypeProfile(BaseModel):
    """Demand characteristics of one rig activity code.

    Attributes:
        name: Human-readable activity name.
        demand_multiplier: Scales the location rig-demand constant.  Zero for
            states that consume no vessel support (white space).
        batch_eligible: Whether the batch multipliers apply at all.  Only
            drilling is batch-eligible.
        standard_batch_multiplier: Batch multiplier at standard fields.
        ultra_deep_batch_multiplier: Batch multiplier at ultra-deep fields.
    """

    name: str = Field(..., min_length=1)
    demand_multiplier: float = Field(default=1.0, ge=0)
    batch_eligible: bool = False
    standard_batch_multiplier: float = Field(default=1.0, ge=0)
    ultra_deep_batch_multiplier: float = Field(default=1.0, ge=0)

    model_config = {"frozen": True, "extra": "forbid"}

    def batch_multiplier(self, is_batch: bool, is_ultra_deep: bool) -> float:
        """Return the batch multiplier for an activity of this type.

        Args:
            is_batch: The activity's batch-operation flag.
            is_ultra_deep: Whether the activity's location is ultra-deep.

        Returns:
            1.0 unless the type is batch-eligible and the flag is set.
        """
        if not (is_batch and self.batch_eligible):
            return 1.0
        if is_ultra_deep:
            return self.ultra_deep_batch_multiplier
        return self.standard_batch_multiplier


class FleetBaseline(BaseModel):
    """Composition of the operator's internal vessel fleet.

    The total is always derived from its components; a configuration that
    tries to set it directly is rejected (``extra="forbid"``).

    Attributes:
        drilling_fleet_size: Vessels contracted for drilling support.
        production_support_vessels: Vessels covering production support.
        dedicated_warehouse_vessels: Dedicated warehouse vessels.
        operator_sharing_adjustment: Signed adjustment for capacity shared
            with a partner operator (negative when shared away).
    """

    drilling_fleet_size: float = Field(default=6.0, ge=0)
    production_support_vessels: float = Field(default=1.75, ge=0)
    dedicated_warehouse_vessels: float = Field(default=1.0, ge=0)
    operator_sharing_adjustment: float = Field(default=-0.25)

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def total_internal_fleet_size(self) -> float:
        """Sum of all fleet components."""
        return (
            self.drilling_fleet_size
            + self.production_support_vessels
            + self.dedicated_warehouse_vessels
            + self.operator_sharing_adjustment
        )

    @property
    def core_fleet_baseline(self) -> float:
        """Drilling fleet the summary gap is measured against."""
        return self.drilling_fleet_size


# ---------------------------------------------------------------------------
# Default tables
# ---------------------------------------------------------------------------

def _standard_location(name: str) -> LocationProfile:
    return LocationProfile(display_name=name)


def _ultra_deep_location(name: str, transit_penalty_factor: float = 1.0) -> LocationProfile:
    return LocationProfile(
        display_name=name,
        transit_hours=LONG_TRANSIT_HOURS,
        vessel_capability=ULTRA_DEEP_VESSEL_CAPABILITY,
        is_ultra_deep=True,
        transit_penalty_factor=transit_penalty_factor,
    )


DEFAULT_LOCATION_PROFILES: dict[str, LocationProfile] = {
    "GOM.Atlantis": _standard_location("Atlantis"),
    "GOM.Nakika": _standard_location("Nakika"),
    "GOM.Region": _standard_location("Gulf of Mexico Region"),
    "GOM.GOMX": _standard_location("Gulf of Mexico Exploration"),
    "GOM.ThunderHorse": _standard_location("Thunder Horse"),
    "GOM.Argos": _standard_location("Argos"),
    "GOM.MadDog": _standard_location("Mad Dog"),
    "GOM.Paleogene": _ultra_deep_location("Paleogene", PALEOGENE_TRANSIT_FACTOR),
    "GOM.Kaskida": _ultra_deep_location("Kaskida"),
    "GOM.Tiber": _ultra_deep_location("Tiber"),
}

# Returned for keys that match no table entry and no fallback pattern.
DEFAULT_LOCATION_PROFILE: LocationProfile = LocationProfile(display_name="Unknown Field")

# Substrings marking a key as an ultra-deep long-transit field.
ULTRA_DEEP_KEY_PATTERNS: tuple[str, ...] = ("PALEOGENE", "TIBER", "KASKIDA")


DEFAULT_ACTIVITY_TYPE_PROFILES: dict[str, ActivityTypeProfile] = {
    "RSU": ActivityTypeProfile(name="Rig Start Up", demand_multiplier=0.5),
    "DRL": ActivityTypeProfile(
        name="Drill",
        demand_multiplier=1.0,
        batch_eligible=True,
        standard_batch_multiplier=STANDARD_BATCH_MULTIPLIER,
        ultra_deep_batch_multiplier=ULTRA_DEEP_BATCH_MULTIPLIER,
    ),
    "CPL": ActivityTypeProfile(name="Completion", demand_multiplier=1.5),
    "RM": ActivityTypeProfile(name="Rig Maintenance", demand_multiplier=0.3),
    "WS": ActivityTypeProfile(name="White Space", demand_multiplier=0.0),
    "P&A": ActivityTypeProfile(name="Plug & Abandon", demand_multiplier=0.8),
    "WWP": ActivityTypeProfile(name="Well Work Production", demand_multiplier=0.7),
    "MOB": ActivityTypeProfile(name="Mobilization", demand_multiplier=0.4),
    "WWI": ActivityTypeProfile(name="Well Work Intervention", demand_multiplier=0.5),
    "TAR": ActivityTypeProfile(name="Turnaround", demand_multiplier=0.9),
    "LWI": ActivityTypeProfile(name="Light Well Intervention", demand_multiplier=0.5),
}

DEFAULT_ACTIVITY_TYPE_PROFILE: ActivityTypeProfile = ActivityTypeProfile(
    name="Unclassified Activity",
    demand_multiplier=UNKNOWN_ACTIVITY_MULTIPLIER,
)


def matches_location_pattern(key: str) -> bool:
    """Whether *key* names a Paleogene-family field or any ``GOM.`` field."""
    code = (key or "").strip().upper()
    return code.startswith("GOM.") or any(pattern in code for pattern in ULTRA_DEEP_KEY_PATTERNS)


def fallback_location_profile(key: str) -> LocationProfile:
    """Build the profile used for a location key missing from the table.

    Keys naming a Paleogene-family field get an ultra-deep long-transit
    profile, other ``GOM.`` keys get the standard short-transit profile,
    and anything else gets :data:`DEFAULT_LOCATION_PROFILE`.

    Args:
        key: The unresolved location key.

    Returns:
        A location profile; never raises.
    """
    code = (key or "").strip().upper()
    if any(pattern in code for pattern in ULTRA_DEEP_KEY_PATTERNS):
        return _ultra_deep_location(f"Deep Water Field ({key.strip()})")
    if code.startswith("GOM."):
        return _standard_location(f"GOM Field ({key.strip()})")
    return DEFAULT_LOCATION_PROFILE

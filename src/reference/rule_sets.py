"""Business rule sets: one named bundle of reference tables per planning basis.

A :class:`BusinessRuleSet` groups everything the forecast needs to know
about the outside world -- fleet baseline, location table, activity-type
table, location-alias table and rig-alias table.  Historical planning bases (the August 2026
dashboard assumptions, the older tabular calculator, the spotting analysis)
are different rule sets run through the same engine.

Rule sets are read from ``config/business_rules.yaml``.  A rule set may
``extend`` another; tables are merged key by key so a variant only lists
what it changes::

    rule_sets:
      aug_2026:
        activity_types:
          DRL: {name: Drill, demand_multiplier: 1.0}
      spotting_analysis:
        extends: aug_2026
        activity_types:
          WS: {demand_multiplier: 0.5}

Typical usage::

    rules = load_rule_set(Path("config/business_rules.yaml"), "tabular_legacy")
    profile = rules.location_profile("GOM.Tiber")
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel, Field, PrivateAttr

from src.reference.aliases import (
    DEFAULT_LOCATION_ALIASES,
    DEFAULT_RIG_ALIASES,
    LocationAliasResolver,
    RigNameResolver,
)
from src.reference.profiles import (
    DEFAULT_ACTIVITY_TYPE_PROFILE,
    DEFAULT_ACTIVITY_TYPE_PROFILES,
    DEFAULT_LOCATION_PROFILES,
    ActivityTypeProfile,
    FleetBaseline,
    LocationProfile,
    fallback_location_profile,
    matches_location_pattern,
)

DEFAULT_RULE_SET_NAME = "aug_2026"


def _location_key(key: str) -> str:
    return (key or "").strip().casefold()


def _activity_key(code: str) -> str:
    return (code or "").strip().upper()


class BusinessRuleSet(BaseModel):
    """Reference tables and baseline constants for one planning basis.

    Attributes:
        name: Rule-set identifier (e.g. ``aug_2026``).
        description: Free-text description of the planning basis.
        baseline: Internal fleet composition.
        locations: Location key -> profile.
        activity_types: Activity code -> profile.
        rig_aliases: Canonical rig name -> raw synonyms.
        location_aliases: Canonical location key -> raw asset codes.
    """

    name: str = DEFAULT_RULE_SET_NAME
    description: str = ""
    baseline: FleetBaseline = Field(default_factory=FleetBaseline)
    locations: dict[str, LocationProfile] = Field(
        default_factory=lambda: dict(DEFAULT_LOCATION_PROFILES)
    )
    activity_types: dict[str, ActivityTypeProfile] = Field(
        default_factory=lambda: dict(DEFAULT_ACTIVITY_TYPE_PROFILES)
    )
    rig_aliases: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_RIG_ALIASES.items()}
    )
    location_aliases: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_LOCATION_ALIASES.items()}
    )

    model_config = {"frozen": True}

    _location_index: dict[str, LocationProfile] = PrivateAttr(default_factory=dict)
    _activity_index: dict[str, ActivityTypeProfile] = PrivateAttr(default_factory=dict)
    _location_resolver: LocationAliasResolver = PrivateAttr()
    _warned: set[str] = PrivateAttr(default_factory=set)

    def model_post_init(self, __context: Any) -> None:
        for key, profile in self.locations.items():
            normalized = _location_key(key)
            if normalized in self._location_index:
                raise ValueError(f"Duplicate location key '{key}' in rule set '{self.name}'")
            self._location_index[normalized] = profile
        for code, profile in self.activity_types.items():
            normalized = _activity_key(code)
            if normalized in self._activity_index:
                raise ValueError(f"Duplicate activity code '{code}' in rule set '{self.name}'")
            self._activity_index[normalized] = profile
        self._location_resolver = LocationAliasResolver(
            {k: tuple(v) for k, v in self.location_aliases.items()}
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def canonical_location(self, key: str) -> str:
        """Map a raw asset code to its canonical location key (unchanged if unmapped)."""
        return self._location_resolver.resolve(key)

    def is_known_location(self, key: str) -> bool:
        return _location_key(self.canonical_location(key)) in self._location_index

    def is_recognised_location(self, key: str) -> bool:
        """Whether *key* is in the table or matches a fallback pattern."""
        return self.is_known_location(key) or matches_location_pattern(key)

    def is_known_activity_type(self, code: str) -> bool:
        return _activity_key(code) in self._activity_index

    def location_profile(self, key: str) -> LocationProfile:
        """Return the profile for *key*, falling back for unknown keys.

        A miss never raises.  The fallback follows
        :func:`~src.reference.profiles.fallback_location_profile` and is
        logged at WARNING the first time each key is seen.

        Args:
            key: Location key or one of its aliases; case and surrounding
                whitespace are ignored.

        Returns:
            The matching or fallback location profile.
        """
        normalized = _location_key(self.canonical_location(key))
        profile = self._location_index.get(normalized)
        if profile is not None:
            return profile
        fallback = fallback_location_profile(key)
        self._warn_once(
            f"location:{normalized}",
            "Unknown location '{}' in rule set '{}'; using fallback profile '{}'",
            key,
            self.name,
            fallback.display_name,
        )
        return fallback

    def activity_type_profile(self, code: str) -> ActivityTypeProfile:
        """Return the profile for activity *code*, falling back for unknown codes.

        Unknown codes get :data:`~src.reference.profiles.DEFAULT_ACTIVITY_TYPE_PROFILE`
        (multiplier 1.0, not batch-eligible), logged once per code.
        """
        normalized = _activity_key(code)
        profile = self._activity_index.get(normalized)
        if profile is not None:
            return profile
        self._warn_once(
            f"activity:{normalized}",
            "Unknown activity type '{}' in rule set '{}'; using default multiplier {}",
            code,
            self.name,
            DEFAULT_ACTIVITY_TYPE_PROFILE.demand_multiplier,
        )
        return DEFAULT_ACTIVITY_TYPE_PROFILE

    def _warn_once(self, token: str, message: str, *args: Any) -> None:
        if token in self._warned:
            return
        self._warned.add(token)
        logger.warning(message, *args)

    def rig_resolver(self) -> RigNameResolver:
        """Build a :class:`RigNameResolver` over this rule set's alias table."""
        return RigNameResolver({k: tuple(v) for k, v in self.rig_aliases.items()})


def default_rule_set() -> BusinessRuleSet:
    """Return the built-in August 2026 rule set without touching the filesystem."""
    return BusinessRuleSet(
        name=DEFAULT_RULE_SET_NAME,
        description="August 2026 planning assumptions (built-in)",
    )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _resolve_raw(
    name: str,
    raw_sets: dict[str, dict[str, Any]],
    chain: tuple[str, ...] = (),
) -> dict[str, Any]:
    if name in chain:
        raise ValueError(f"Circular 'extends' chain: {' -> '.join(chain + (name,))}")
    if name not in raw_sets:
        raise KeyError(f"Rule set '{name}' not defined")
    body = dict(raw_sets[name] or {})
    parent = body.pop("extends", None)
    if parent is None:
        return body
    return _deep_merge(_resolve_raw(parent, raw_sets, chain + (name,)), body)


def _read_rule_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Business rules file not found: {path}")
    with open(path, "r", encoding="utf-8") as fh:
        data: dict[str, Any] = yaml.safe_load(fh) or {}
    if "rule_sets" not in data or not isinstance(data["rule_sets"], dict):
        raise KeyError(f"'rule_sets' section missing from {path}")
    return data


def load_rule_sets(path: Path) -> dict[str, BusinessRuleSet]:
    """Load every rule set defined in a business-rules YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Mapping of rule-set name to validated :class:`BusinessRuleSet`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        KeyError: If the ``rule_sets`` section is missing or an ``extends``
            target is undefined.
        ValueError: On circular ``extends`` chains.
        pydantic.ValidationError: If a table entry violates its schema.
    """
    data = _read_rule_file(Path(path))
    raw_sets: dict[str, dict[str, Any]] = data["rule_sets"]
    rule_sets: dict[str, BusinessRuleSet] = {}
    for name in raw_sets:
        body = _resolve_raw(name, raw_sets)
        body.pop("name", None)
        rule_sets[name] = BusinessRuleSet(name=name, **body)
        logger.debug(
            "Rule set '{}' resolved: {} locations, {} activity types",
            name,
            len(rule_sets[name].locations),
            len(rule_sets[name].activity_types),
        )
    logger.info("Loaded {} rule sets from {}", len(rule_sets), path)
    return rule_sets


def load_rule_set(path: Path, name: str | None = None) -> BusinessRuleSet:
    """Load a single rule set by name.

    Args:
        path: Path to the YAML file.
        name: Rule-set name.  Defaults to the file's ``default_rule_set``
            entry, or ``aug_2026`` when the file names none.

    Returns:
        The requested :class:`BusinessRuleSet`.

    Raises:
        KeyError: If no rule set called *name* is defined.
    """
    data = _read_rule_file(Path(path))
    selected = name or data.get("default_rule_set", DEFAULT_RULE_SET_NAME)
    rule_sets = load_rule_sets(Path(path))
    if selected not in rule_sets:
        raise KeyError(
            f"Rule set '{selected}' not found in {path}; available: {sorted(rule_sets)}"
        )
    logger.info("Using rule set '{}'", selected)
    return rule_sets[selected]

"""Shared fixtures for the fleet forecast test suite."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from loguru import logger

from src.forecast.activity import RigActivity
from src.reference.rule_sets import BusinessRuleSet, default_rule_set

PROJECT_ROOT = Path(__file__).resolve().parent.parent
BUSINESS_RULES_PATH = PROJECT_ROOT / "config" / "business_rules.yaml"


@pytest.fixture
def rule_set() -> BusinessRuleSet:
    """Fresh built-in Aug 2026 rule set (own warn-once state per test)."""
    return default_rule_set()


@pytest.fixture
def business_rules_path() -> Path:
    return BUSINESS_RULES_PATH


@pytest.fixture
def make_activity() -> Callable[..., RigActivity]:
    """Factory for activities with sensible defaults."""

    def _make(**overrides: Any) -> RigActivity:
        fields: dict[str, Any] = {
            "rig_name": "Deepwater Atlas",
            "location": "GOM.Atlantis",
            "activity_type": "DRL",
            "start_date": date(2026, 1, 5),
            "end_date": date(2026, 1, 25),
            "is_batch_operation": False,
        }
        fields.update(overrides)
        return RigActivity(**fields)

    return _make


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Capture loguru messages at WARNING and above for the test's duration."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)

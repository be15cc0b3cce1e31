"""Drift detection between a ruleset definition and the platform's copy.

Two rulesets match when they carry the same multiset of rule *types* and
identical conditions. Platform-assigned ids, timestamps and rule parameters
are ignored unless parameter comparison is switched on.

Renames and enforcement flips reported by an edited event are detected
separately from the structural check; either one counts as drift even when
the shape of the ruleset is unchanged.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rulesetbot.models.ruleset import Rule, Ruleset

if TYPE_CHECKING:
    from rulesetbot.events.models import RulesetEvent

logger = logging.getLogger(__name__)


class DriftType:
    RULES = "rule_drift"  # Rule types added or removed
    CONDITIONS = "condition_drift"  # Targeting conditions changed
    PARAMETERS = "parameter_drift"  # Same rule types, different parameters
    NAME = "name_drift"  # Renamed away from the definition
    ENFORCEMENT = "enforcement_drift"  # Enforcement changed away from the definition
    MISSING = "missing"  # No ruleset with the definition's name exists


@dataclass
class DriftReport:
    """Report of detected drift for one ruleset in one organization."""

    ruleset_name: str
    org: str = ""
    drift_types: list[str] = field(default_factory=list)
    details: list[str] = field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return len(self.drift_types) > 0

    def add(self, drift_type: str, detail: str) -> None:
        self.drift_types.append(drift_type)
        self.details.append(detail)

    def summary(self) -> str:
        where = f"{self.org}/{self.ruleset_name}" if self.org else self.ruleset_name
        if not self.has_drift:
            return f"{where}: no drift detected"
        return f"{where}: DRIFT [{', '.join(self.drift_types)}]"


# ---------------------------------------------------------------------------
# Structural equivalence
# ---------------------------------------------------------------------------


def compare(
    desired: Ruleset,
    observed: Ruleset,
    *,
    org: str = "",
    compare_parameters: bool = False,
) -> DriftReport:
    """Compare *observed* against *desired* and report every kind of drift found."""
    report = DriftReport(ruleset_name=desired.name, org=org)

    desired_types = Counter(desired.rule_types())
    observed_types = Counter(observed.rule_types())
    if desired_types != observed_types:
        missing = sorted((desired_types - observed_types).elements())
        extra = sorted((observed_types - desired_types).elements())
        detail = "Rule types differ from the definition"
        if missing:
            detail += f"; missing: {', '.join(missing)}"
        if extra:
            detail += f"; unexpected: {', '.join(extra)}"
        report.add(DriftType.RULES, detail)
    elif compare_parameters and _parameter_signature(desired.rules) != _parameter_signature(observed.rules):
        report.add(DriftType.PARAMETERS, "Rule parameters differ from the definition")

    if _normalize_conditions(desired.conditions) != _normalize_conditions(observed.conditions):
        report.add(DriftType.CONDITIONS, "Conditions differ from the definition")

    for detail in report.details:
        logger.info("Ruleset %s%s: %s", desired.name, f" in {org}" if org else "", detail)
    return report


def matches(desired: Ruleset, observed: Ruleset, *, compare_parameters: bool = False) -> bool:
    """True when *observed* already satisfies *desired* and no write is needed."""
    return not compare(desired, observed, compare_parameters=compare_parameters).has_drift


def _normalize_conditions(value: Any) -> Any:
    """Drop ``null`` members recursively; GitHub echoes absent matchers as null."""
    if isinstance(value, dict):
        return {k: _normalize_conditions(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_normalize_conditions(v) for v in value]
    return value


def _parameter_signature(rules: list[Rule]) -> Counter:
    return Counter(
        (rule.type, json.dumps(_normalize_conditions(rule.parameters or {}), sort_keys=True))
        for rule in rules
    )


# ---------------------------------------------------------------------------
# Event-reported drift
# ---------------------------------------------------------------------------


def name_changed(event: RulesetEvent, desired: Ruleset) -> bool:
    """True if the event reports a rename away from the desired name."""
    changes = event.changes
    if changes is None or changes.name is None or changes.name.from_ is None:
        return False
    if changes.name.from_ == desired.name:
        logger.info(
            "Ruleset name was changed from %s to %s; reverting the name change.",
            changes.name.from_,
            event.ruleset_name,
        )
        return True
    return False


def enforcement_changed(event: RulesetEvent, desired: Ruleset) -> bool:
    """True if the event reports enforcement changed away from the desired value."""
    changes = event.changes
    if changes is None or changes.enforcement is None or changes.enforcement.from_ is None:
        return False
    if changes.enforcement.from_ == desired.enforcement:
        logger.info(
            "Ruleset %s enforcement was changed from %s to %s; reverting the enforcement change.",
            desired.name,
            changes.enforcement.from_,
            event.ruleset_enforcement,
        )
        return True
    return False


def is_managed(event_ruleset_name: str, desired_name: str, renamed_from: str | None = None) -> bool:
    """True if an observed ruleset is governed by the definition named *desired_name*.

    A ruleset renamed *from* a managed name is still managed, so the rename
    can be reverted.
    """
    return event_ruleset_name == desired_name or (renamed_from is not None and renamed_from == desired_name)

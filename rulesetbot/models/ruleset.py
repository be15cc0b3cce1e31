"""Ruleset data model.

A :class:`Ruleset` is both the desired definition read from the definition
store and the observed copy received from GitHub. Instances are treated as
values: identity translation produces new instances rather than mutating
the ones it was given.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any

ENFORCEMENT_CHOICES = ["disabled", "evaluate", "active"]
TARGET_CHOICES = ["branch", "tag", "push"]

WORKFLOWS_RULE = "workflows"

# Built-in actors (OrganizationAdmin and the base repository roles) use ids
# 1-5 in every organization and are never remapped.
RESERVED_ACTOR_IDS = frozenset(range(1, 6))

# Keys GitHub adds to rulesets it returns; never part of a create/update body.
READ_ONLY_RULESET_FIELDS = {
    "id",
    "source",
    "source_type",
    "node_id",
    "_links",
    "created_at",
    "updated_at",
    "current_user_can_bypass",
    "source_organization",
}


class ActorType:
    TEAM = "Team"
    REPOSITORY_ROLE = "RepositoryRole"
    INTEGRATION = "Integration"
    ORGANIZATION_ADMIN = "OrganizationAdmin"
    DEPLOY_KEY = "DeployKey"
    ENTERPRISE_ADMIN = "EnterpriseAdmin"


@dataclass
class BypassActor:
    """A principal allowed to bypass a ruleset."""

    actor_type: str
    actor_id: int | None = None
    bypass_mode: str = "always"

    @property
    def is_reserved(self) -> bool:
        return self.actor_id in RESERVED_ACTOR_IDS

    @property
    def needs_translation(self) -> bool:
        """True when the id is organization-specific and must be remapped."""
        return bool(self.actor_id) and not self.is_reserved

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BypassActor:
        actor_id = data.get("actor_id")
        return cls(
            actor_type=data["actor_type"],
            actor_id=int(actor_id) if actor_id is not None else None,
            bypass_mode=data.get("bypass_mode", "always"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "actor_type": self.actor_type,
            "bypass_mode": self.bypass_mode,
        }


@dataclass
class Workflow:
    """A required workflow referenced by a ``workflows`` rule."""

    repository_id: int
    path: str
    ref: str = ""
    sha: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workflow:
        return cls(
            repository_id=int(data["repository_id"]),
            path=data["path"],
            ref=data.get("ref", "") or "",
            sha=data.get("sha", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"repository_id": self.repository_id, "path": self.path}
        if self.ref:
            data["ref"] = self.ref
        if self.sha:
            data["sha"] = self.sha
        return data


@dataclass
class Rule:
    """One typed rule entry; ``parameters`` is kept as the raw payload."""

    type: str
    parameters: dict[str, Any] | None = None

    @property
    def is_workflows(self) -> bool:
        return self.type == WORKFLOWS_RULE

    def workflows(self) -> list[Workflow]:
        if not self.parameters:
            return []
        return [Workflow.from_dict(w) for w in self.parameters.get("workflows", [])]

    def with_workflows(self, workflows: list[Workflow]) -> Rule:
        """Return a copy of this rule with its workflow list replaced."""
        parameters = copy.deepcopy(self.parameters) if self.parameters else {}
        parameters["workflows"] = [w.to_dict() for w in workflows]
        return replace(self, parameters=parameters)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Rule:
        parameters = data.get("parameters")
        return cls(
            type=data["type"],
            parameters=copy.deepcopy(parameters) if parameters is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.parameters is not None:
            data["parameters"] = copy.deepcopy(self.parameters)
        return data


@dataclass
class Ruleset:
    """An organization ruleset, desired or observed.

    ``name`` is the reconciliation key; ``id`` is only known for rulesets that
    exist on the platform. ``source_organization`` names the organization the
    definition's ids were authored against and is never sent to GitHub.
    """

    name: str
    enforcement: str = "active"
    target: str = "branch"
    id: int | None = None
    source_organization: str = ""
    rules: list[Rule] = field(default_factory=list)
    conditions: dict[str, Any] | None = None
    bypass_actors: list[BypassActor] = field(default_factory=list)

    def rule_types(self) -> list[str]:
        return [rule.type for rule in self.rules]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ruleset:
        """Build a ruleset from a definition document or an API/webhook payload.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` on malformed input;
        callers translate those into their own error types.
        """
        if not isinstance(data, dict):
            raise TypeError(f"ruleset must be an object, got {type(data).__name__}")
        ruleset_id = data.get("id")
        conditions = data.get("conditions")
        return cls(
            name=data["name"],
            enforcement=data.get("enforcement", "active"),
            target=data.get("target") or "branch",
            id=int(ruleset_id) if ruleset_id is not None else None,
            source_organization=data.get("source_organization", "") or "",
            rules=[Rule.from_dict(r) for r in data.get("rules") or []],
            conditions=copy.deepcopy(conditions) if conditions is not None else None,
            bypass_actors=[BypassActor.from_dict(a) for a in data.get("bypass_actors") or []],
        )

    def to_payload(self) -> dict[str, Any]:
        """Body for the create/update ruleset endpoints."""
        payload: dict[str, Any] = {
            "name": self.name,
            "target": self.target,
            "enforcement": self.enforcement,
            "bypass_actors": [a.to_dict() for a in self.bypass_actors],
            "rules": [r.to_dict() for r in self.rules],
        }
        if self.conditions is not None:
            payload["conditions"] = copy.deepcopy(self.conditions)
        return payload

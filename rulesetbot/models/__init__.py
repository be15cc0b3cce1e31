"""Domain models: rulesets and the organization-scoped identities they reference."""

from rulesetbot.models.identity import App, CustomRepoRole, Installation, Organization, Repository, Team
from rulesetbot.models.ruleset import BypassActor, Rule, Ruleset, Workflow

__all__ = [
    "App",
    "BypassActor",
    "CustomRepoRole",
    "Installation",
    "Organization",
    "Repository",
    "Rule",
    "Ruleset",
    "Team",
    "Workflow",
]

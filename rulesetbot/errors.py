"""Error taxonomy for the ruleset bot.

Unmanaged rulesets and unhandled events are not errors; everything that
aborts a reconciliation derives from :class:`RulesetBotError`.
"""

from __future__ import annotations

from typing import Any


class RulesetBotError(RuntimeError):
    """Base class for every failure surfaced to the webhook dispatcher."""


class ConfigError(RulesetBotError):
    """Raised when the configuration file is missing, malformed or incomplete."""


class GitHubAPIError(RulesetBotError):
    """Raised when the GitHub API returns an error response or cannot be reached."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"GitHub API error {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class NotFoundError(GitHubAPIError):
    """Raised on HTTP 404 from the platform."""

    def __init__(self, detail: str) -> None:
        super().__init__(404, detail)


class PayloadError(RulesetBotError):
    """Raised when an inbound webhook payload cannot be decoded."""


class DefinitionError(RulesetBotError):
    """Raised when a ruleset definition document is malformed.

    ``issues`` holds every individual problem found so that the CLI can list
    them; the message itself names the offending document.
    """

    def __init__(self, path: str, issues: list[str]) -> None:
        summary = "; ".join(issues) if issues else "invalid definition"
        super().__init__(f"{path}: {summary}")
        self.path = path
        self.issues = list(issues)


class IdentityResolutionError(RulesetBotError):
    """Raised when a team, custom role or repository does not exist in an organization."""

    def __init__(self, kind: str, org: str, key: Any) -> None:
        super().__init__(f"{kind} {key!r} could not be resolved in organization {org}")
        self.kind = kind
        self.org = org
        self.key = key


class ReconciliationError(RulesetBotError):
    """Raised after a multi-ruleset run in which at least one ruleset failed.

    ``outcomes`` holds every outcome of the run, successful ones included.
    """

    def __init__(self, failures: list, outcomes: list | None = None) -> None:
        names = ", ".join(f"{f.org}/{f.ruleset_name}" for f in failures)
        super().__init__(f"{len(failures)} ruleset(s) failed to reconcile: {names}")
        self.failures = failures
        self.outcomes = outcomes if outcomes is not None else list(failures)

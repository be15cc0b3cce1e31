"""Reconciler: desired definitions in, corrective platform writes out.

Every public operation loads the desired rulesets fresh, resolves them for
the organization at hand and issues at most one write per ruleset. The
decision for one ``(organization, ruleset name)`` pair is taken under a
keyed lock, so two deliveries about the same ruleset cannot interleave
their compare and write steps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from rulesetbot.definitions.loader import RulesetLoader
from rulesetbot.errors import IdentityResolutionError, NotFoundError, PayloadError, ReconciliationError
from rulesetbot.events.models import RulesetEvent
from rulesetbot.github.client import GitHubClient
from rulesetbot.models.ruleset import Ruleset
from rulesetbot.sync.drift import DriftType, compare, enforcement_changed, is_managed, name_changed
from rulesetbot.sync.locks import KeyedLock

logger = logging.getLogger(__name__)


class Action:
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"
    WOULD_CREATE = "would_create"
    WOULD_UPDATE = "would_update"


@dataclass
class ReconcileOutcome:
    """What happened to one ruleset in one organization."""

    org: str
    ruleset_name: str
    action: str
    ruleset_id: Optional[int] = None
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.action == Action.FAILED

    @property
    def wrote(self) -> bool:
        return self.action in (Action.CREATED, Action.UPDATED)


# Shared by every Reconciler in the process unless one is passed explicitly.
_DEFAULT_LOCKS = KeyedLock()


class Reconciler:
    """Applies desired rulesets to one organization through one client.

    Args:
        client: Installation-scoped client for the organization.
        loader: Loader whose resolver talks through the same installation.
        compare_parameters: Treat differing rule parameters as drift.
        locks: Keyed lock guarding per-ruleset decisions.
    """

    def __init__(
        self,
        client: GitHubClient,
        loader: RulesetLoader,
        *,
        compare_parameters: bool = False,
        locks: KeyedLock | None = None,
    ) -> None:
        self.client = client
        self.loader = loader
        self.compare_parameters = compare_parameters
        self.locks = locks if locks is not None else _DEFAULT_LOCKS

    # -- event-driven ------------------------------------------------------

    def on_edit(self, event: RulesetEvent) -> ReconcileOutcome:
        """Revert an edit made to a managed ruleset by anyone but the bot.

        The payload names the ruleset and reports what changed; the decision
        to write is taken against the live ruleset, so a redelivered event
        for an already corrected ruleset writes nothing.
        """
        org = event.org_login
        observed = event.observed()
        desired = self._find_managed(observed.name, event.renamed_from)
        if desired is None:
            logger.info("Ruleset %s in the organization %s is not managed; ignoring.", observed.name, org)
            return ReconcileOutcome(org, observed.name, Action.SKIPPED, observed.id, "not managed")
        if observed.id is None:
            raise PayloadError(f"Edited ruleset {observed.name} carries no id")

        desired = self.loader.resolve(desired, org)
        with self._hold(org, desired.name):
            try:
                live = Ruleset.from_dict(self.client.get_ruleset(org, observed.id))
            except NotFoundError:
                logger.info("Ruleset %s in the organization %s no longer exists; ignoring.", desired.name, org)
                return ReconcileOutcome(org, desired.name, Action.SKIPPED, observed.id, "no longer exists")

            report = compare(desired, live, org=org, compare_parameters=self.compare_parameters)
            if name_changed(event, desired) and live.name != desired.name:
                report.add(DriftType.NAME, f"renamed to {live.name}")
            if enforcement_changed(event, desired) and live.enforcement != desired.enforcement:
                report.add(DriftType.ENFORCEMENT, f"enforcement set to {live.enforcement}")

            if not report.has_drift:
                logger.info(
                    "Ruleset %s in the organization %s matches the ruleset definition.", desired.name, org
                )
                return ReconcileOutcome(org, desired.name, Action.UNCHANGED, observed.id)

            logger.info("Updating ruleset %s for organization %s.", desired.name, org)
            self.client.update_ruleset(org, observed.id, desired.to_payload())
            return ReconcileOutcome(org, desired.name, Action.UPDATED, observed.id, report.summary())

    def on_delete(self, event: RulesetEvent) -> ReconcileOutcome:
        """Recreate a managed ruleset that was deleted."""
        org = event.org_login
        name = event.ruleset_name
        desired = self._find_managed(name)
        if desired is None:
            logger.info("Deleted ruleset %s in the organization %s is not managed; ignoring.", name, org)
            return ReconcileOutcome(org, name, Action.SKIPPED, event.ruleset_id, "not managed")

        desired = self.loader.resolve(desired, org)
        logger.info("Recreating ruleset %s in organization %s.", desired.name, org)
        with self._hold(org, desired.name):
            return self._create(org, desired)

    def on_install(self, org: str) -> list[ReconcileOutcome]:
        """Create every desired ruleset in a newly installed organization."""
        outcomes = []
        for desired in self.loader.decode_all():
            try:
                resolved = self.loader.resolve(desired, org)
            except IdentityResolutionError as exc:
                outcomes.append(self._failure(org, desired, exc))
                continue
            with self._hold(org, resolved.name):
                outcomes.append(self._create(org, resolved))
        return self._finish(outcomes)

    # -- fleet / manual ----------------------------------------------------

    def reconcile_org(self, org: str, dry_run: bool = False) -> list[ReconcileOutcome]:
        """Converge *org* on every desired ruleset: create what is missing, update what drifted."""
        desired_rulesets = self.loader.decode_all()
        outcomes = []
        for desired in desired_rulesets:
            try:
                resolved = self.loader.resolve(desired, org)
            except IdentityResolutionError as exc:
                outcomes.append(self._failure(org, desired, exc))
                continue
            with self._hold(org, resolved.name):
                outcomes.append(self._converge(org, resolved, dry_run))
        return self._finish(outcomes)

    def _converge(self, org: str, desired: Ruleset, dry_run: bool) -> ReconcileOutcome:
        existing = self._find_observed(org, desired.name)
        if existing is None:
            if dry_run:
                return ReconcileOutcome(org, desired.name, Action.WOULD_CREATE, detail="missing")
            return self._create(org, desired)

        observed = Ruleset.from_dict(self.client.get_ruleset(org, existing))
        report = compare(desired, observed, org=org, compare_parameters=self.compare_parameters)
        if not report.has_drift:
            return ReconcileOutcome(org, desired.name, Action.UNCHANGED, existing)
        if dry_run:
            return ReconcileOutcome(org, desired.name, Action.WOULD_UPDATE, existing, report.summary())

        logger.info("Updating ruleset %s for organization %s.", desired.name, org)
        self.client.update_ruleset(org, existing, desired.to_payload())
        return ReconcileOutcome(org, desired.name, Action.UPDATED, existing, report.summary())

    # -- helpers -----------------------------------------------------------

    def _find_managed(self, name: str, renamed_from: str | None = None) -> Ruleset | None:
        for desired in self.loader.decode_all():
            if is_managed(name, desired.name, renamed_from):
                return desired
        return None

    def _find_observed(self, org: str, name: str) -> Optional[int]:
        for summary in self.client.list_rulesets(org):
            if summary.get("name") == name:
                return summary.get("id")
        return None

    def _create(self, org: str, desired: Ruleset) -> ReconcileOutcome:
        logger.info("Creating ruleset %s in organization %s.", desired.name, org)
        created = self.client.create_ruleset(org, desired.to_payload()) or {}
        return ReconcileOutcome(org, desired.name, Action.CREATED, created.get("id"))

    def _hold(self, org: str, name: str):
        return self.locks.hold((org.lower(), name))

    @staticmethod
    def _failure(org: str, desired: Ruleset, exc: Exception) -> ReconcileOutcome:
        logger.error("Failed to resolve ruleset %s for organization %s: %s", desired.name, org, exc)
        return ReconcileOutcome(org, desired.name, Action.FAILED, detail=str(exc))

    @staticmethod
    def _finish(outcomes: list[ReconcileOutcome]) -> list[ReconcileOutcome]:
        failures = [o for o in outcomes if o.failed]
        if failures:
            raise ReconciliationError(failures, outcomes)
        return outcomes

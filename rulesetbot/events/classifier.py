"""Event classification.

Maps an inbound webhook event onto the reconciliation intent it calls for.
Classification never writes to the platform; the only network call it may
make is the (cached) lookup of the app's own bot login for edited events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from rulesetbot.events.models import Event, InstallationEvent, ReleaseEvent, RulesetEvent

logger = logging.getLogger(__name__)


class Intent:
    IGNORE = "ignore"  # Unhandled event or action
    LOG_ONLY = "log_only"  # Ruleset created; the creator is authoritative
    SELF_EDIT = "self_edit"  # Edited by the bot itself
    CORRECT = "correct"  # Edited by someone else; reconcile and correct
    RECREATE = "recreate"  # Deleted; recreate if managed
    INSTALL = "install"  # App installed; create every definition
    FLEET_UPDATE = "fleet_update"  # Source repository released; reconcile everywhere

    ACTIONABLE = frozenset({CORRECT, RECREATE, INSTALL, FLEET_UPDATE})


class _BotIdentity(Protocol):
    def bot_login(self) -> str: ...


@dataclass
class Classification:
    intent: str
    reason: str = ""

    @property
    def requires_action(self) -> bool:
        return self.intent in Intent.ACTIONABLE


class EventClassifier:
    """Decides what an event means for the rulesets under management.

    Args:
        identity: Source of the app's own bot login, used to recognise
            edits made by the bot.
        source_repository: ``owner/name`` of the repository holding the
            ruleset definitions; its releases trigger a fleet update.
    """

    def __init__(self, identity: _BotIdentity, source_repository: str = "") -> None:
        self.identity = identity
        self.source_repository = source_repository

    def classify(self, event_type: str, event: Event) -> Classification:
        if event_type == "repository_ruleset" and isinstance(event, RulesetEvent):
            return self._classify_ruleset(event)
        if event_type == "installation" and isinstance(event, InstallationEvent):
            return self._classify_installation(event)
        if event_type == "release" and isinstance(event, ReleaseEvent):
            return self._classify_release(event)
        return Classification(Intent.IGNORE, f"unhandled event type {event_type}")

    def _classify_ruleset(self, event: RulesetEvent) -> Classification:
        name, org, sender = event.ruleset_name, event.org_login, event.sender_login

        source_type = event.ruleset_source_type
        if source_type and source_type != "Organization":
            logger.info("Ignoring %s ruleset %s in the organization %s.", source_type, name, org)
            return Classification(Intent.IGNORE, f"{source_type.lower()} ruleset")

        if event.action == "created":
            logger.info("Ruleset %s has been created in the organization %s by %s.", name, org, sender)
            return Classification(Intent.LOG_ONLY, "ruleset created")

        if event.action == "edited":
            logger.info("Ruleset %s has been edited in the organization %s by %s.", name, org, sender)
            if sender == self.identity.bot_login():
                logger.info("Ruleset %s in the organization %s was edited by the bot.", name, org)
                return Classification(Intent.SELF_EDIT, "edited by the bot")
            return Classification(Intent.CORRECT, f"edited by {sender}")

        if event.action == "deleted":
            logger.info("Ruleset %s has been deleted in the organization %s by %s.", name, org, sender)
            return Classification(Intent.RECREATE, f"deleted by {sender}")

        logger.warning("Unhandled action type: %s.", event.action)
        return Classification(Intent.IGNORE, f"unhandled ruleset action {event.action}")

    def _classify_installation(self, event: InstallationEvent) -> Classification:
        if event.action != "created":
            logger.info("Ignoring installation action %s for %s.", event.action, event.org_login)
            return Classification(Intent.IGNORE, f"unhandled installation action {event.action}")
        if event.installation.account and event.installation.account.type not in ("", "Organization"):
            logger.info("Ignoring installation on non-organization account %s.", event.org_login)
            return Classification(Intent.IGNORE, "installed on a user account")
        logger.info(
            "Application %s installed in the organization %s.", event.installation.app_slug, event.org_login
        )
        return Classification(Intent.INSTALL, f"installed in {event.org_login}")

    def _classify_release(self, event: ReleaseEvent) -> Classification:
        repository = event.repository_full_name
        if event.action != "released":
            return Classification(Intent.IGNORE, f"unhandled release action {event.action}")
        if not self.source_repository or repository.lower() != self.source_repository.lower():
            logger.info("Ignoring release of %s; not the ruleset source repository.", repository)
            return Classification(Intent.IGNORE, f"release of unrelated repository {repository}")
        logger.info("Release %s of %s published; updating every installation.", event.tag_name, repository)
        return Classification(Intent.FLEET_UPDATE, f"release {event.tag_name} of {repository}")

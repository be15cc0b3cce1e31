"""Webhook event handler.

Entry point the web layer dispatches deliveries to. A delivery is parsed,
classified, and handed to a :class:`~rulesetbot.sync.reconciler.Reconciler`
bound to the installation that sent it. Failures propagate to the caller;
unhandled events and unmanaged rulesets return quietly.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

from rulesetbot.config import Config
from rulesetbot.definitions.loader import RulesetLoader
from rulesetbot.definitions.store import DefinitionStore
from rulesetbot.errors import PayloadError, ReconciliationError
from rulesetbot.events.classifier import EventClassifier, Intent
from rulesetbot.events.models import parse_event
from rulesetbot.github.auth import AppIdentity, ClientFactory
from rulesetbot.github.client import GitHubClient
from rulesetbot.identity.resolver import IdentityResolver
from rulesetbot.sync.locks import KeyedLock
from rulesetbot.sync.reconciler import ReconcileOutcome, Reconciler

logger = logging.getLogger(__name__)

LoaderFactory = Callable[[GitHubClient], RulesetLoader]

EVENT_TYPES = ["repository_ruleset", "installation", "release"]


def loader_factory_for(path: Union[str, Path]) -> LoaderFactory:
    """Build a loader factory reading definitions from *path*."""

    def factory(client: GitHubClient) -> RulesetLoader:
        return RulesetLoader(DefinitionStore(path), IdentityResolver(client))

    return factory


class RulesetHandler:
    """Handles ``repository_ruleset``, ``installation`` and ``release`` deliveries.

    Args:
        factory: Creates app and installation clients.
        loader_factory: Builds a definition loader around an installation client.
        identity: The app's own identity; defaults to the factory's cached one.
        source_repository: ``owner/name`` whose releases trigger a fleet update.
        compare_parameters: Treat differing rule parameters as drift.
    """

    def __init__(
        self,
        factory: ClientFactory,
        loader_factory: LoaderFactory,
        identity: Optional[AppIdentity] = None,
        source_repository: str = "",
        compare_parameters: bool = False,
    ) -> None:
        self.factory = factory
        self.loader_factory = loader_factory
        self.identity = identity or factory.identity
        self.compare_parameters = compare_parameters
        self.classifier = EventClassifier(self.identity, source_repository)
        self.locks = KeyedLock()

    @classmethod
    def from_config(cls, config: Config, factory: Optional[ClientFactory] = None) -> RulesetHandler:
        factory = factory or ClientFactory.from_config(config)
        return cls(
            factory,
            loader_factory_for(config.rulesets_path),
            source_repository=config.source_repository,
            compare_parameters=config.compare_parameters,
        )

    def handles(self) -> list[str]:
        return list(EVENT_TYPES)

    def handle(self, event_type: str, delivery_id: str, payload: Union[bytes, str, dict[str, Any]]) -> None:
        """Process one webhook delivery.

        Raises:
            PayloadError: the payload could not be decoded.
            RulesetBotError: the reconciliation failed.
        """
        if event_type not in EVENT_TYPES:
            logger.warning("Unhandled event type: %s.", event_type)
            return

        event = parse_event(event_type, payload)
        classification = self.classifier.classify(event_type, event)
        logger.info(
            "Delivery %s: %s event classified as %s (%s)",
            delivery_id,
            event_type,
            classification.intent,
            classification.reason,
        )
        if not classification.requires_action:
            return

        if classification.intent == Intent.FLEET_UPDATE:
            self.reconcile_fleet()
        elif classification.intent == Intent.INSTALL:
            if not event.org_login:
                raise PayloadError(f"Delivery {delivery_id} carries no installation account")
            with self._reconciler(event.installation.id) as reconciler:
                reconciler.on_install(event.org_login)
        else:
            if event.installation_id is None:
                raise PayloadError(f"Delivery {delivery_id} carries no installation id")
            with self._reconciler(event.installation_id) as reconciler:
                if classification.intent == Intent.CORRECT:
                    reconciler.on_edit(event)
                else:
                    reconciler.on_delete(event)

    # -- manual and fleet-wide runs --------------------------------------------

    def reconcile_org(self, org: str, dry_run: bool = False) -> list[ReconcileOutcome]:
        """Reconcile every definition in one organization the app is installed in."""
        with self.factory.app_client() as client:
            installation = client.find_org_installation(org)
        return self.reconcile_installation(installation.id, org, dry_run)

    def reconcile_installation(self, installation_id: int, org: str, dry_run: bool = False) -> list[ReconcileOutcome]:
        logger.info("Reconciling rulesets in organization %s (installation %s)", org, installation_id)
        with self._reconciler(installation_id) as reconciler:
            return reconciler.reconcile_org(org, dry_run=dry_run)

    def reconcile_fleet(self, dry_run: bool = False) -> list[ReconcileOutcome]:
        """Reconcile every definition in every organization the app is installed in.

        An identity miss in one organization does not stop the others; all
        failures are raised together at the end.
        """
        with self.factory.app_client() as client:
            installations = client.list_installations()

        outcomes: list[ReconcileOutcome] = []
        failures: list[ReconcileOutcome] = []
        for installation in installations:
            if not installation.is_organization:
                logger.debug("Skipping installation %s on user %s", installation.id, installation.account_login)
                continue
            try:
                outcomes.extend(self.reconcile_installation(installation.id, installation.account_login, dry_run))
            except ReconciliationError as exc:
                outcomes.extend(exc.outcomes)
                failures.extend(exc.failures)

        if failures:
            raise ReconciliationError(failures, outcomes)
        return outcomes

    @contextmanager
    def _reconciler(self, installation_id: int) -> Iterator[Reconciler]:
        with self.factory.installation_client(installation_id) as client:
            yield Reconciler(
                client,
                self.loader_factory(client),
                compare_parameters=self.compare_parameters,
                locks=self.locks,
            )

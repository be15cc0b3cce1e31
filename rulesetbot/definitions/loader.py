"""Ruleset definition loader.

Turns the documents of a :class:`DefinitionStore` into
:class:`~rulesetbot.models.Ruleset` values and, for a given target
organization, rewrites every organization-scoped id they carry:

1. each workflow of a ``workflows`` rule is repointed at the same-named
   repository in the target organization;
2. each non-reserved bypass actor is translated to the same-named team or
   custom role in the target organization.

Decoding is fail-closed: one malformed document fails the whole load, so the
bot never reconciles against a partial corpus.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from rulesetbot.definitions.store import DefinitionStore
from rulesetbot.definitions.validator import validate_definition
from rulesetbot.errors import DefinitionError
from rulesetbot.identity.resolver import IdentityResolver
from rulesetbot.models.ruleset import Ruleset

logger = logging.getLogger(__name__)


class RulesetLoader:
    """Loads desired rulesets, fresh on every call."""

    def __init__(self, store: DefinitionStore, resolver: IdentityResolver | None = None) -> None:
        self.store = store
        self.resolver = resolver

    def decode_all(self) -> list[Ruleset]:
        """Decode and validate every definition without touching the network."""
        rulesets: list[Ruleset] = []
        seen: dict[str, str] = {}

        for document in self.store.documents():
            path = str(document.path)
            issues = validate_definition(document.data)
            if issues:
                raise DefinitionError(path, issues)
            try:
                ruleset = Ruleset.from_dict(document.data)
            except (KeyError, TypeError, ValueError) as exc:
                raise DefinitionError(path, [f"cannot decode ruleset: {exc}"]) from exc

            if ruleset.name in seen:
                raise DefinitionError(
                    path, [f"ruleset name '{ruleset.name}' is already defined in {seen[ruleset.name]}"]
                )
            seen[ruleset.name] = path
            logger.debug("Decoded ruleset definition %s from %s", ruleset.name, path)
            rulesets.append(ruleset)

        return rulesets

    def resolve(self, ruleset: Ruleset, target_org: str) -> Ruleset:
        """Return *ruleset* with every identity reference valid in *target_org*.

        Raises:
            IdentityResolutionError: a referenced team, role or repository does
                not exist in the source or target organization.
        """
        if self.resolver is None:
            raise ValueError("RulesetLoader.resolve requires an IdentityResolver")

        source_org = ruleset.source_organization or target_org
        logger.info("Resolving ruleset %s from %s into %s", ruleset.name, source_org, target_org)

        rules = []
        for rule in ruleset.rules:
            if rule.is_workflows:
                workflows = [
                    self.resolver.translate_workflow_repository(w, source_org, target_org)
                    for w in rule.workflows()
                ]
                rule = rule.with_workflows(workflows)
            rules.append(rule)

        actors = [
            self.resolver.translate_bypass_actor(actor, source_org, target_org)
            if actor.needs_translation
            else actor
            for actor in ruleset.bypass_actors
        ]

        return replace(ruleset, rules=rules, bypass_actors=actors)

    def load_all(self, target_org: str) -> list[Ruleset]:
        """Decode every definition and resolve it for *target_org*."""
        return [self.resolve(ruleset, target_org) for ruleset in self.decode_all()]

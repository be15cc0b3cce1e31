"""Identity resolver: translate org-scoped ids between organizations.

Team, custom role and repository ids differ in every organization, so a
ruleset authored once carries ids from its *source* organization. The
resolver maps each id to the portable name in the source organization and
back to the id of the same-named principal in the *target* organization.

A principal missing from an organization raises
:class:`~rulesetbot.errors.IdentityResolutionError`. Any other API failure
(rate limiting, authentication) propagates unchanged as
:class:`~rulesetbot.errors.GitHubAPIError` so callers can tell the two apart.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from rulesetbot.errors import IdentityResolutionError, NotFoundError
from rulesetbot.github.client import GitHubClient
from rulesetbot.models.identity import CustomRepoRole
from rulesetbot.models.ruleset import ActorType, BypassActor, Workflow

logger = logging.getLogger(__name__)

# Actor types whose ids are global (or reserved) rather than org-scoped.
PASSTHROUGH_ACTOR_TYPES = {ActorType.INTEGRATION}


class IdentityResolver:
    """Resolves principals through one installation-scoped client.

    Organization ids and custom role lists are memoised for the lifetime of
    the resolver, which is one reconciliation run.
    """

    def __init__(self, client: GitHubClient) -> None:
        self.client = client
        self._org_ids: dict[str, int] = {}
        self._roles: dict[str, list[CustomRepoRole]] = {}

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def resolve_repository(self, org: str, repository_id: int) -> str:
        """Return the name of repository *repository_id*, which must belong to *org*."""
        try:
            repository = self.client.get_repository_by_id(repository_id)
        except NotFoundError as exc:
            raise IdentityResolutionError("repository", org, repository_id) from exc
        if repository.owner and repository.owner.lower() != org.lower():
            raise IdentityResolutionError("repository", org, repository_id)
        return repository.name

    def resolve_repository_id(self, org: str, repository_name: str) -> int:
        try:
            return self.client.get_repository(org, repository_name).id
        except NotFoundError as exc:
            raise IdentityResolutionError("repository", org, repository_name) from exc

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def resolve_team(self, org: str, team_name: str) -> int:
        """Return the id of the team with slug *team_name* in *org*."""
        try:
            return self.client.get_team_by_slug(org, team_name).id
        except NotFoundError as exc:
            raise IdentityResolutionError("team", org, team_name) from exc

    def resolve_team_by_id(self, org: str, team_id: int) -> str:
        """Return the slug of team *team_id* in *org*."""
        org_id = self._org_id(org)
        try:
            return self.client.get_team_by_id(org_id, team_id).slug
        except NotFoundError as exc:
            raise IdentityResolutionError("team", org, team_id) from exc

    def _org_id(self, org: str) -> int:
        key = org.lower()
        if key not in self._org_ids:
            try:
                self._org_ids[key] = self.client.get_organization(org).id
            except NotFoundError as exc:
                raise IdentityResolutionError("organization", org, org) from exc
        return self._org_ids[key]

    # ------------------------------------------------------------------
    # Custom repository roles
    # ------------------------------------------------------------------

    def custom_roles(self, org: str) -> list[CustomRepoRole]:
        """Return the organization's complete custom role list."""
        key = org.lower()
        if key not in self._roles:
            try:
                self._roles[key] = self.client.list_custom_repo_roles(org)
            except NotFoundError as exc:
                raise IdentityResolutionError("custom role list", org, org) from exc
        return self._roles[key]

    def resolve_custom_role(self, org: str, role_name: str) -> int:
        by_name = {role.name: role.id for role in self.custom_roles(org)}
        if role_name not in by_name:
            raise IdentityResolutionError("custom role", org, role_name)
        return by_name[role_name]

    def resolve_custom_role_by_id(self, org: str, role_id: int) -> str:
        by_id = {role.id: role.name for role in self.custom_roles(org)}
        if role_id not in by_id:
            raise IdentityResolutionError("custom role", org, role_id)
        return by_id[role_id]

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    def translate_bypass_actor(self, actor: BypassActor, source_org: str, target_org: str) -> BypassActor:
        """Return *actor* with its id rewritten for *target_org*.

        Reserved built-in ids and integrations are returned unchanged; actor
        types the bot does not know how to translate are logged and kept.
        """
        if not actor.needs_translation or actor.actor_type in PASSTHROUGH_ACTOR_TYPES:
            return actor

        if actor.actor_type == ActorType.TEAM:
            slug = self.resolve_team_by_id(source_org, actor.actor_id)
            target_id = self.resolve_team(target_org, slug)
            logger.debug("Team %s: %s/%s -> %s/%s", slug, source_org, actor.actor_id, target_org, target_id)
            return replace(actor, actor_id=target_id)

        if actor.actor_type == ActorType.REPOSITORY_ROLE:
            role_name = self.resolve_custom_role_by_id(source_org, actor.actor_id)
            target_id = self.resolve_custom_role(target_org, role_name)
            logger.debug(
                "Custom role %s: %s/%s -> %s/%s", role_name, source_org, actor.actor_id, target_org, target_id
            )
            return replace(actor, actor_id=target_id)

        logger.warning(
            "Bypass actor type %s (id %s) cannot be translated to %s; keeping it unchanged.",
            actor.actor_type,
            actor.actor_id,
            target_org,
        )
        return actor

    def translate_workflow_repository(self, workflow: Workflow, source_org: str, target_org: str) -> Workflow:
        """Return *workflow* pointing at the same-named repository in *target_org*."""
        repository_name = self.resolve_repository(source_org, workflow.repository_id)
        target_id = self.resolve_repository_id(target_org, repository_name)
        return replace(workflow, repository_id=target_id)

"""Shared fixtures: an in-memory GitHub double and ruleset definition stores."""

import copy
import json
import tempfile
from pathlib import Path

import pytest

from rulesetbot.errors import NotFoundError
from rulesetbot.models.identity import App, CustomRepoRole, Installation, Organization, Repository, Team

SOURCE_ORG = "source-org"
TARGET_ORG = "acme"
BOT_LOGIN = "repo-ruleset-bot[bot]"

MANAGED_DEFINITION = {
    "name": "managed-ruleset",
    "target": "branch",
    "enforcement": "active",
    "source_organization": SOURCE_ORG,
    "bypass_actors": [
        {"actor_id": 1, "actor_type": "OrganizationAdmin", "bypass_mode": "always"},
        {"actor_id": 2741, "actor_type": "Team", "bypass_mode": "always"},
    ],
    "conditions": {"ref_name": {"include": ["~DEFAULT_BRANCH"], "exclude": []}},
    "rules": [
        {"type": "deletion"},
        {"type": "pull_request", "parameters": {"required_approving_review_count": 1}},
        {
            "type": "workflows",
            "parameters": {
                "workflows": [
                    {"repository_id": 48213, "path": ".github/workflows/ci.yml", "ref": "refs/heads/main"}
                ]
            },
        },
    ],
}

TAG_DEFINITION = {
    "name": "tag-protection",
    "target": "tag",
    "enforcement": "evaluate",
    "source_organization": SOURCE_ORG,
    "bypass_actors": [{"actor_id": 310, "actor_type": "RepositoryRole", "bypass_mode": "always"}],
    "conditions": {"ref_name": {"include": ["refs/tags/v*"], "exclude": []}},
    "rules": [{"type": "deletion"}, {"type": "update"}],
}


class FakeGitHub:
    """In-memory stand-in for an installation-scoped GitHubClient.

    Serves organizations, teams, custom roles, repositories and rulesets,
    and records every ruleset write in ``calls``.
    """

    def __init__(self):
        self.orgs: dict[str, Organization] = {}
        self.teams: dict[str, dict[str, Team]] = {}
        self.roles: dict[str, list[CustomRepoRole]] = {}
        self.repos: dict[int, Repository] = {}
        self.rulesets: dict[str, dict[int, dict]] = {}
        self.installations: list[Installation] = []
        self.app = App(id=1, slug="repo-ruleset-bot", name="repo-ruleset-bot")
        self.calls: list[tuple] = []
        self.reads: list[tuple] = []
        self._next_id = 5000

    # -- seeding ---------------------------------------------------------------

    def add_org(self, login, org_id):
        self.orgs[login] = Organization(id=org_id, login=login)
        self.teams.setdefault(login, {})
        self.roles.setdefault(login, [])
        self.rulesets.setdefault(login, {})

    def add_team(self, org, team_id, slug):
        self.teams[org][slug] = Team(id=team_id, slug=slug, name=slug)

    def add_role(self, org, role_id, name):
        self.roles[org].append(CustomRepoRole(id=role_id, name=name))

    def add_repo(self, org, repo_id, name):
        self.repos[repo_id] = Repository(id=repo_id, name=name, owner=org)

    def add_ruleset(self, org, body, ruleset_id=None):
        ruleset_id = ruleset_id or self._new_id()
        self.rulesets[org][ruleset_id] = dict(copy.deepcopy(body), id=ruleset_id)
        return ruleset_id

    def add_installation(self, installation_id, login, account_type="Organization"):
        self.installations.append(
            Installation(id=installation_id, account_login=login, account_type=account_type, app_slug=self.app.slug)
        )

    def _new_id(self):
        self._next_id += 1
        return self._next_id

    # -- recorded writes -------------------------------------------------------

    @property
    def creates(self):
        return [c for c in self.calls if c[0] == "create"]

    @property
    def updates(self):
        return [c for c in self.calls if c[0] == "update"]

    # -- client surface --------------------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return None

    def close(self):
        pass

    def list_rulesets(self, org):
        return [{"id": rid, "name": body["name"]} for rid, body in self.rulesets.get(org, {}).items()]

    def get_ruleset(self, org, ruleset_id):
        self.reads.append(("get_ruleset", org, ruleset_id))
        try:
            return copy.deepcopy(self.rulesets[org][ruleset_id])
        except KeyError:
            raise NotFoundError(f"ruleset {ruleset_id} not found in {org}")

    def create_ruleset(self, org, payload):
        self.calls.append(("create", org, None, copy.deepcopy(payload)))
        ruleset_id = self.add_ruleset(org, payload)
        return {"id": ruleset_id, "name": payload["name"]}

    def update_ruleset(self, org, ruleset_id, payload):
        self.calls.append(("update", org, ruleset_id, copy.deepcopy(payload)))
        self.rulesets[org][ruleset_id] = dict(copy.deepcopy(payload), id=ruleset_id)
        return {"id": ruleset_id, "name": payload["name"]}

    def get_repository(self, owner, name):
        for repo in self.repos.values():
            if repo.owner == owner and repo.name == name:
                return repo
        raise NotFoundError(f"repository {owner}/{name} not found")

    def get_repository_by_id(self, repository_id):
        if repository_id not in self.repos:
            raise NotFoundError(f"repository {repository_id} not found")
        return self.repos[repository_id]

    def get_team_by_slug(self, org, slug):
        try:
            return self.teams[org][slug]
        except KeyError:
            raise NotFoundError(f"team {slug} not found in {org}")

    def get_team_by_id(self, org_id, team_id):
        for login, org in self.orgs.items():
            if org.id == org_id:
                for team in self.teams[login].values():
                    if team.id == team_id:
                        return team
        raise NotFoundError(f"team {team_id} not found in organization {org_id}")

    def get_organization(self, org):
        if org not in self.orgs:
            raise NotFoundError(f"organization {org} not found")
        return self.orgs[org]

    def list_custom_repo_roles(self, org):
        self.reads.append(("list_custom_repo_roles", org))
        return list(self.roles.get(org, []))

    def get_app(self):
        return self.app

    def list_installations(self):
        return list(self.installations)

    def find_org_installation(self, org):
        for installation in self.installations:
            if installation.account_login == org:
                return installation
        raise NotFoundError(f"no installation for {org}")


class FakeIdentity:
    def __init__(self, login=BOT_LOGIN):
        self.login = login
        self.lookups = 0

    def bot_login(self):
        self.lookups += 1
        return self.login


class FakeFactory:
    """Hands out the same FakeGitHub for app and installation clients."""

    def __init__(self, github):
        self.github = github
        self.identity = FakeIdentity()
        self.installation_ids: list[int] = []

    def app_client(self):
        return self.github

    def installation_client(self, installation_id):
        self.installation_ids.append(installation_id)
        return self.github


def write_definitions(directory, *definitions):
    """Write each definition to ``<name>.json`` under *directory*."""
    directory = Path(directory)
    for definition in definitions:
        (directory / f"{definition['name']}.json").write_text(json.dumps(definition))
    return directory


@pytest.fixture
def github():
    """Two organizations with the same team, role and repository names but different ids."""
    fake = FakeGitHub()
    fake.add_org(SOURCE_ORG, 100)
    fake.add_org(TARGET_ORG, 200)
    fake.add_team(SOURCE_ORG, 2741, "platform")
    fake.add_team(TARGET_ORG, 9001, "platform")
    fake.add_role(SOURCE_ORG, 310, "security-reviewer")
    fake.add_role(TARGET_ORG, 820, "security-reviewer")
    fake.add_repo(SOURCE_ORG, 48213, "policy-workflows")
    fake.add_repo(TARGET_ORG, 77001, "policy-workflows")
    fake.add_installation(11, SOURCE_ORG)
    fake.add_installation(22, TARGET_ORG)
    return fake


@pytest.fixture
def definitions_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield write_definitions(tmpdir, MANAGED_DEFINITION, TAG_DEFINITION)


@pytest.fixture
def managed_only_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield write_definitions(tmpdir, MANAGED_DEFINITION)

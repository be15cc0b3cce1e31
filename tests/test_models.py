"""Tests for the ruleset and identity data models."""

import pytest

from rulesetbot.models.identity import App, Installation, Repository
from rulesetbot.models.ruleset import BypassActor, Rule, Ruleset, Workflow

from conftest import MANAGED_DEFINITION


# --- Ruleset Tests ---


def test_ruleset_from_definition():
    ruleset = Ruleset.from_dict(MANAGED_DEFINITION)
    assert ruleset.name == "managed-ruleset"
    assert ruleset.id is None
    assert ruleset.source_organization == "source-org"
    assert ruleset.rule_types() == ["deletion", "pull_request", "workflows"]
    assert ruleset.bypass_actors[1] == BypassActor("Team", 2741, "always")


def test_ruleset_from_api_payload_ignores_read_only_fields():
    data = dict(MANAGED_DEFINITION, id=42, source_type="Organization", node_id="RRS_1", _links={})
    ruleset = Ruleset.from_dict(data)
    assert ruleset.id == 42
    payload = ruleset.to_payload()
    for key in ("id", "source_type", "node_id", "_links", "source_organization"):
        assert key not in payload


def test_ruleset_payload_round_trips_rules_and_conditions():
    ruleset = Ruleset.from_dict(MANAGED_DEFINITION)
    payload = ruleset.to_payload()
    assert payload["conditions"] == MANAGED_DEFINITION["conditions"]
    assert payload["rules"] == MANAGED_DEFINITION["rules"]
    assert payload["bypass_actors"] == MANAGED_DEFINITION["bypass_actors"]


def test_ruleset_payload_is_a_copy():
    ruleset = Ruleset.from_dict(MANAGED_DEFINITION)
    payload = ruleset.to_payload()
    payload["conditions"]["ref_name"]["include"].append("refs/heads/release/*")
    assert ruleset.conditions["ref_name"]["include"] == ["~DEFAULT_BRANCH"]


def test_ruleset_from_dict_requires_name():
    with pytest.raises(KeyError):
        Ruleset.from_dict({"enforcement": "active"})


def test_ruleset_from_dict_rejects_non_object():
    with pytest.raises(TypeError):
        Ruleset.from_dict(["not", "a", "ruleset"])


# --- Rule Tests ---


def test_workflows_rule_exposes_workflows():
    rule = Rule.from_dict(MANAGED_DEFINITION["rules"][2])
    assert rule.is_workflows
    assert rule.workflows() == [Workflow(48213, ".github/workflows/ci.yml", "refs/heads/main")]


def test_with_workflows_returns_a_copy():
    rule = Rule.from_dict(MANAGED_DEFINITION["rules"][2])
    moved = rule.with_workflows([Workflow(77001, ".github/workflows/ci.yml", "refs/heads/main")])
    assert moved.workflows()[0].repository_id == 77001
    assert rule.workflows()[0].repository_id == 48213


# --- Bypass Actor Tests ---


def test_reserved_actors_never_need_translation():
    for actor_id in range(1, 6):
        actor = BypassActor("RepositoryRole", actor_id)
        assert actor.is_reserved
        assert not actor.needs_translation


def test_org_scoped_actor_needs_translation():
    assert BypassActor("Team", 2741).needs_translation
    assert not BypassActor("Team", 0).needs_translation
    assert not BypassActor("OrganizationAdmin", None).needs_translation


# --- Identity Model Tests ---


def test_app_bot_login():
    app = App.from_api({"id": 7, "slug": "repo-ruleset-bot", "name": "Repo Ruleset Bot"})
    assert app.bot_login == "repo-ruleset-bot[bot]"


def test_repository_owner_from_api():
    repo = Repository.from_api({"id": 5, "name": "policy-workflows", "owner": {"login": "acme"}})
    assert repo.owner == "acme"


def test_installation_account_type():
    org = Installation.from_api({"id": 1, "account": {"login": "acme", "type": "Organization"}})
    user = Installation.from_api({"id": 2, "account": {"login": "octocat", "type": "User"}})
    assert org.is_organization
    assert not user.is_organization

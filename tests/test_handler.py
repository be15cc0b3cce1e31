"""End-to-end tests for webhook event handling."""

import copy
import json

import pytest

from rulesetbot.errors import PayloadError, ReconciliationError
from rulesetbot.handler import RulesetHandler, loader_factory_for

from conftest import BOT_LOGIN, MANAGED_DEFINITION, TARGET_ORG, FakeFactory


def _handler(github, path, **kwargs):
    return RulesetHandler(FakeFactory(github), loader_factory_for(path), **kwargs)


def _observed(**overrides):
    body = copy.deepcopy(MANAGED_DEFINITION)
    del body["source_organization"]
    body["bypass_actors"][1]["actor_id"] = 9001
    body["rules"][2]["parameters"]["workflows"][0]["repository_id"] = 77001
    body.update(overrides)
    return body


def _ruleset_delivery(action, sender="octocat", **ruleset_overrides):
    return json.dumps(
        {
            "action": action,
            "organization": {"login": TARGET_ORG},
            "installation": {"id": 22},
            "sender": {"login": sender},
            "repository_ruleset": _observed(id=42, **ruleset_overrides),
        }
    ).encode()


# --- Dispatch Tests ---


def test_handles_declares_event_types(github, definitions_dir):
    assert _handler(github, definitions_dir).handles() == ["repository_ruleset", "installation", "release"]


def test_unhandled_event_type_is_a_no_op(github, definitions_dir):
    assert _handler(github, definitions_dir).handle("push", "d-0", b"{}") is None
    assert github.calls == []


def test_malformed_payload_raises(github, definitions_dir):
    with pytest.raises(PayloadError):
        _handler(github, definitions_dir).handle("repository_ruleset", "d-1", b"not json")


def test_ruleset_created_writes_nothing(github, definitions_dir):
    _handler(github, definitions_dir).handle("repository_ruleset", "d-2", _ruleset_delivery("created"))
    assert github.calls == []


# --- Scenario Tests ---


def test_installation_creates_all_definitions(github, definitions_dir):
    handler = _handler(github, definitions_dir)
    payload = {
        "action": "created",
        "installation": {"id": 22, "app_slug": "repo-ruleset-bot", "account": {"login": TARGET_ORG, "type": "Organization"}},
    }
    handler.handle("installation", "d-3", payload)

    assert [c[3]["name"] for c in github.creates] == ["managed-ruleset", "tag-protection"]
    assert all(c[1] == TARGET_ORG for c in github.creates)
    assert github.creates[0][3]["bypass_actors"][1]["actor_id"] == 9001
    assert handler.factory.installation_ids == [22]


def test_edit_by_bot_writes_nothing(github, definitions_dir):
    delivery = _ruleset_delivery("edited", sender=BOT_LOGIN, conditions={"ref_name": {"include": ["~ALL"]}})
    _handler(github, definitions_dir).handle("repository_ruleset", "d-4", delivery)
    assert github.calls == []


def test_delete_recreates_managed_ruleset(github, definitions_dir):
    _handler(github, definitions_dir).handle("repository_ruleset", "d-5", _ruleset_delivery("deleted"))
    assert len(github.calls) == 1
    assert github.creates[0][3] == _observed()


def test_edit_with_changed_conditions_updates(github, definitions_dir):
    conditions = {"ref_name": {"include": ["~ALL"], "exclude": []}}
    github.add_ruleset(TARGET_ORG, _observed(conditions=conditions), ruleset_id=42)
    delivery = _ruleset_delivery("edited", conditions=conditions)
    _handler(github, definitions_dir).handle("repository_ruleset", "d-6", delivery)

    assert len(github.calls) == 1
    _, org, ruleset_id, payload = github.updates[0]
    assert (org, ruleset_id) == (TARGET_ORG, 42)
    assert payload["conditions"] == MANAGED_DEFINITION["conditions"]


def test_redelivered_edit_updates_once(github, definitions_dir):
    conditions = {"ref_name": {"include": ["~ALL"], "exclude": []}}
    github.add_ruleset(TARGET_ORG, _observed(conditions=conditions), ruleset_id=42)
    delivery = _ruleset_delivery("edited", conditions=conditions)
    handler = _handler(github, definitions_dir)

    handler.handle("repository_ruleset", "d-6", delivery)
    handler.handle("repository_ruleset", "d-6", delivery)

    assert len(github.updates) == 1


def test_repository_level_ruleset_events_write_nothing(github, definitions_dir):
    handler = _handler(github, definitions_dir)
    for action in ("deleted", "edited"):
        delivery = _ruleset_delivery(action, source_type="Repository", conditions={"ref_name": {"include": ["~ALL"]}})
        handler.handle("repository_ruleset", f"d-{action}", delivery)

    assert github.calls == []
    assert handler.factory.installation_ids == []


def test_installation_without_account_raises(github, definitions_dir):
    payload = {"action": "created", "installation": {"id": 22, "app_slug": "repo-ruleset-bot"}}
    with pytest.raises(PayloadError):
        _handler(github, definitions_dir).handle("installation", "d-10", payload)
    assert github.calls == []


def test_ruleset_event_without_installation(github, definitions_dir):
    payload = json.loads(_ruleset_delivery("deleted"))
    del payload["installation"]
    with pytest.raises(PayloadError):
        _handler(github, definitions_dir).handle("repository_ruleset", "d-7", payload)


# --- Fleet Tests ---


def test_release_of_source_repository_updates_every_installation(github, definitions_dir):
    github.add_installation(33, "octocat", account_type="User")
    handler = _handler(github, definitions_dir, source_repository="source-org/org-rulesets")
    payload = {"action": "released", "repository": {"full_name": "source-org/org-rulesets"}}
    handler.handle("release", "d-8", payload)

    assert handler.factory.installation_ids == [11, 22]
    assert sorted((c[1], c[3]["name"]) for c in github.creates) == [
        ("acme", "managed-ruleset"),
        ("acme", "tag-protection"),
        ("source-org", "managed-ruleset"),
        ("source-org", "tag-protection"),
    ]


def test_release_of_other_repository_is_ignored(github, definitions_dir):
    handler = _handler(github, definitions_dir, source_repository="source-org/org-rulesets")
    handler.handle("release", "d-9", {"action": "released", "repository": {"full_name": "acme/website"}})
    assert github.calls == []
    assert handler.factory.installation_ids == []


def test_fleet_update_reports_failures_after_all_orgs(github, definitions_dir):
    github.roles[TARGET_ORG].clear()
    handler = _handler(github, definitions_dir)
    with pytest.raises(ReconciliationError) as excinfo:
        handler.reconcile_fleet()

    assert [(f.org, f.ruleset_name) for f in excinfo.value.failures] == [(TARGET_ORG, "tag-protection")]
    assert len(excinfo.value.outcomes) == 4


def test_reconcile_org_uses_org_installation(github, definitions_dir):
    handler = _handler(github, definitions_dir)
    outcomes = handler.reconcile_org(TARGET_ORG, dry_run=True)
    assert handler.factory.installation_ids == [22]
    assert {o.action for o in outcomes} == {"would_create"}

"""Tests for event parsing and classification."""

import json

import pytest

from rulesetbot.errors import PayloadError
from rulesetbot.events.classifier import EventClassifier, Intent
from rulesetbot.events.models import InstallationEvent, ReleaseEvent, RulesetEvent, parse_event

from conftest import BOT_LOGIN, MANAGED_DEFINITION, FakeIdentity


def _ruleset_payload(action, sender="octocat", **extra):
    payload = {
        "action": action,
        "organization": {"login": "acme", "id": 200},
        "installation": {"id": 22},
        "sender": {"login": sender, "type": "User"},
        "repository_ruleset": dict(MANAGED_DEFINITION, id=42),
    }
    payload.update(extra)
    return payload


# --- Parsing Tests ---


def test_parse_ruleset_event_from_bytes():
    body = json.dumps(_ruleset_payload("edited", changes={"name": {"from": "old-name"}})).encode()
    event = parse_event("repository_ruleset", body)
    assert isinstance(event, RulesetEvent)
    assert event.org_login == "acme"
    assert event.installation_id == 22
    assert event.ruleset_name == "managed-ruleset"
    assert event.ruleset_id == 42
    assert event.renamed_from == "old-name"
    assert event.observed().rule_types() == ["deletion", "pull_request", "workflows"]


def test_parse_installation_event():
    event = parse_event(
        "installation",
        {"action": "created", "installation": {"id": 22, "account": {"login": "acme", "type": "Organization"}}},
    )
    assert isinstance(event, InstallationEvent)
    assert event.org_login == "acme"


def test_parse_rejects_invalid_json():
    with pytest.raises(PayloadError):
        parse_event("repository_ruleset", b"{not json")


def test_parse_rejects_missing_action():
    with pytest.raises(PayloadError):
        parse_event("installation", {"installation": {"id": 1}})


def test_observed_requires_ruleset():
    event = parse_event("repository_ruleset", {"action": "edited"})
    with pytest.raises(PayloadError):
        event.observed()


# --- Classification Tests ---


def _classify(event_type, payload, identity=None, source_repository="acme/org-rulesets"):
    classifier = EventClassifier(identity or FakeIdentity(), source_repository)
    return classifier.classify(event_type, parse_event(event_type, payload))


def test_created_is_log_only():
    result = _classify("repository_ruleset", _ruleset_payload("created"))
    assert result.intent == Intent.LOG_ONLY
    assert not result.requires_action


def test_edit_by_user_is_corrected():
    result = _classify("repository_ruleset", _ruleset_payload("edited"))
    assert result.intent == Intent.CORRECT
    assert result.requires_action


def test_edit_by_bot_is_ignored():
    result = _classify("repository_ruleset", _ruleset_payload("edited", sender=BOT_LOGIN))
    assert result.intent == Intent.SELF_EDIT
    assert not result.requires_action


def test_bot_identity_only_looked_up_for_edits():
    identity = FakeIdentity()
    _classify("repository_ruleset", _ruleset_payload("created"), identity=identity)
    _classify("repository_ruleset", _ruleset_payload("deleted"), identity=identity)
    assert identity.lookups == 0


def test_delete_is_recreate():
    assert _classify("repository_ruleset", _ruleset_payload("deleted")).intent == Intent.RECREATE


def test_unknown_ruleset_action_is_ignored():
    assert _classify("repository_ruleset", _ruleset_payload("archived")).intent == Intent.IGNORE


def test_repository_level_ruleset_is_ignored():
    for action in ("edited", "deleted"):
        payload = _ruleset_payload(action)
        payload["repository_ruleset"] = dict(payload["repository_ruleset"], source_type="Repository")
        result = _classify("repository_ruleset", payload)
        assert result.intent == Intent.IGNORE
        assert not result.requires_action


def test_organization_ruleset_source_type_is_handled():
    payload = _ruleset_payload("deleted")
    payload["repository_ruleset"] = dict(payload["repository_ruleset"], source_type="Organization")
    assert _classify("repository_ruleset", payload).intent == Intent.RECREATE


def test_installation_created_is_install():
    payload = {"action": "created", "installation": {"id": 22, "account": {"login": "acme", "type": "Organization"}}}
    assert _classify("installation", payload).intent == Intent.INSTALL


def test_installation_on_user_account_is_ignored():
    payload = {"action": "created", "installation": {"id": 3, "account": {"login": "octocat", "type": "User"}}}
    assert _classify("installation", payload).intent == Intent.IGNORE


def test_installation_deleted_is_ignored():
    payload = {"action": "deleted", "installation": {"id": 22, "account": {"login": "acme"}}}
    assert _classify("installation", payload).intent == Intent.IGNORE


def test_release_of_source_repository_is_fleet_update():
    payload = {
        "action": "released",
        "repository": {"full_name": "Acme/Org-Rulesets"},
        "release": {"tag_name": "v1.2.0"},
    }
    result = _classify("release", payload)
    assert result.intent == Intent.FLEET_UPDATE
    assert "v1.2.0" in result.reason


def test_release_of_other_repository_is_ignored():
    payload = {"action": "released", "repository": {"full_name": "acme/website"}}
    assert _classify("release", payload).intent == Intent.IGNORE


def test_release_ignored_without_source_repository():
    payload = {"action": "released", "repository": {"full_name": "acme/org-rulesets"}}
    assert _classify("release", payload, source_repository="").intent == Intent.IGNORE


def test_release_published_action_is_ignored():
    payload = {"action": "published", "repository": {"full_name": "acme/org-rulesets"}}
    event = parse_event("release", payload)
    assert isinstance(event, ReleaseEvent)
    assert _classify("release", payload).intent == Intent.IGNORE

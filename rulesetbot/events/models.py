"""Pydantic models for the webhook payloads the bot consumes.

Only the fields the reconciler reads are declared; everything else in
GitHub's payloads is ignored.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rulesetbot.errors import PayloadError
from rulesetbot.models.ruleset import Ruleset


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Account(_Payload):
    """A user or organization account."""

    id: Optional[int] = None
    login: str = ""
    type: str = ""


class InstallationRef(_Payload):
    id: int
    account: Optional[Account] = None
    app_slug: str = ""


class RepositoryRef(_Payload):
    id: Optional[int] = None
    name: str = ""
    full_name: str = ""


class ChangedFrom(_Payload):
    from_: Optional[str] = Field(default=None, alias="from")


class RulesetChanges(_Payload):
    """The ``changes`` block of an edited ruleset event."""

    name: Optional[ChangedFrom] = None
    enforcement: Optional[ChangedFrom] = None


class RulesetEvent(_Payload):
    """``repository_ruleset`` webhook payload."""

    action: str
    organization: Optional[Account] = None
    installation: Optional[InstallationRef] = None
    sender: Optional[Account] = None
    repository_ruleset: Optional[dict[str, Any]] = None
    changes: Optional[RulesetChanges] = None

    @property
    def org_login(self) -> str:
        return self.organization.login if self.organization else ""

    @property
    def sender_login(self) -> str:
        return self.sender.login if self.sender else ""

    @property
    def installation_id(self) -> Optional[int]:
        return self.installation.id if self.installation else None

    @property
    def ruleset_name(self) -> str:
        return (self.repository_ruleset or {}).get("name", "")

    @property
    def ruleset_id(self) -> Optional[int]:
        return (self.repository_ruleset or {}).get("id")

    @property
    def ruleset_enforcement(self) -> str:
        return (self.repository_ruleset or {}).get("enforcement", "")

    @property
    def ruleset_source_type(self) -> str:
        return (self.repository_ruleset or {}).get("source_type", "")

    @property
    def renamed_from(self) -> Optional[str]:
        if self.changes and self.changes.name:
            return self.changes.name.from_
        return None

    def observed(self) -> Ruleset:
        """The ruleset as the event reports it."""
        if not self.repository_ruleset:
            raise PayloadError("repository_ruleset event carries no ruleset")
        try:
            return Ruleset.from_dict(self.repository_ruleset)
        except (KeyError, TypeError, ValueError) as exc:
            raise PayloadError(f"Malformed ruleset in event payload: {exc}") from exc


class InstallationEvent(_Payload):
    """``installation`` webhook payload."""

    action: str
    installation: InstallationRef
    sender: Optional[Account] = None

    @property
    def org_login(self) -> str:
        return self.installation.account.login if self.installation.account else ""


class ReleaseEvent(_Payload):
    """``release`` webhook payload."""

    action: str
    repository: Optional[RepositoryRef] = None
    installation: Optional[InstallationRef] = None
    sender: Optional[Account] = None
    release: Optional[dict[str, Any]] = None

    @property
    def repository_full_name(self) -> str:
        return self.repository.full_name if self.repository else ""

    @property
    def tag_name(self) -> str:
        return (self.release or {}).get("tag_name", "")


Event = Union[RulesetEvent, InstallationEvent, ReleaseEvent]

EVENT_MODELS: dict[str, type[_Payload]] = {
    "repository_ruleset": RulesetEvent,
    "installation": InstallationEvent,
    "release": ReleaseEvent,
}


def parse_event(event_type: str, payload: Union[bytes, str, dict[str, Any]]) -> Event:
    """Decode a webhook body into the model registered for *event_type*.

    Raises:
        PayloadError: the body is not JSON, or does not fit the model.
        KeyError: *event_type* is not one the bot handles.
    """
    model = EVENT_MODELS[event_type]
    if isinstance(payload, (bytes, str)):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise PayloadError(f"Failed to parse {event_type} event payload: {exc}") from exc
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise PayloadError(f"Failed to parse {event_type} event payload: {exc}") from exc

"""Organization-scoped identities returned by the GitHub API.

Numeric ids are only meaningful inside the organization that issued them;
names and slugs are what travel between organizations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class Organization:
    id: int
    login: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Organization:
        return cls(id=int(data["id"]), login=data.get("login", ""))


@dataclass
class Team:
    """A team, addressed by ``slug`` across organizations."""

    id: int
    slug: str
    name: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Team:
        return cls(id=int(data["id"]), slug=data.get("slug", ""), name=data.get("name", ""))


@dataclass
class CustomRepoRole:
    """A custom repository role, addressed by ``name`` across organizations."""

    id: int
    name: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> CustomRepoRole:
        return cls(id=int(data["id"]), name=data.get("name", ""))


@dataclass
class Repository:
    id: int
    name: str
    owner: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Repository:
        owner = data.get("owner") or {}
        return cls(id=int(data["id"]), name=data.get("name", ""), owner=owner.get("login", ""))


@dataclass
class Installation:
    """An installation of the app on an account."""

    id: int
    account_login: str
    account_type: str = "Organization"
    app_slug: str = ""

    @property
    def is_organization(self) -> bool:
        return self.account_type == "Organization"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Installation:
        account = data.get("account") or {}
        return cls(
            id=int(data["id"]),
            account_login=account.get("login", ""),
            account_type=account.get("type", "Organization"),
            app_slug=data.get("app_slug", ""),
        )


@dataclass
class App:
    """The GitHub App the bot authenticates as."""

    id: int
    slug: str
    name: str = ""

    @property
    def bot_login(self) -> str:
        """Login GitHub uses as the ``sender`` of events caused by this app."""
        return f"{self.slug}[bot]"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> App:
        return cls(id=int(data["id"]), slug=data.get("slug", ""), name=data.get("name", ""))

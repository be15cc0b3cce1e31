"""Thin synchronous wrapper around the GitHub REST API.

Only the endpoints the reconciler needs are exposed. Every method returns
plain dicts or the small dataclasses from :mod:`rulesetbot.models`; errors
are raised as :class:`~rulesetbot.errors.GitHubAPIError` (or
:class:`~rulesetbot.errors.NotFoundError` for 404s). Nothing is retried.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator

import httpx

from rulesetbot import __version__
from rulesetbot.errors import GitHubAPIError, NotFoundError
from rulesetbot.models.identity import App, CustomRepoRole, Installation, Organization, Repository, Team

logger = logging.getLogger(__name__)

API_VERSION = "2022-11-28"
USER_AGENT = f"repo-ruleset-bot/{__version__}"
DEFAULT_TIMEOUT = 3.0


class GitHubClient:
    """REST client bound to one set of credentials.

    Args:
        base_url: The v3 API root, e.g. ``https://api.github.com/``.
        auth: Authentication flow (app JWT or installation token).
        timeout: Per-request timeout in seconds.
        transport: Optional transport override, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        auth: httpx.Auth | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self._http = httpx.Client(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": USER_AGENT,
            },
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- transport -----------------------------------------------------------

    def _send(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            response = self._http.request(method, path.lstrip("/"), json=payload, params=params)
        except httpx.HTTPError as exc:
            raise GitHubAPIError(0, f"{method} {path} failed: {exc}") from exc

        if response.status_code == 404:
            raise NotFoundError(f"{method} {path}: {self._format_error(response)}")
        if response.status_code >= 400:
            raise GitHubAPIError(response.status_code, f"{method} {path}: {self._format_error(response)}")
        return response

    def _request(
        self,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = self._send(method, path, payload=payload, params=params)
        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GitHubAPIError(response.status_code, f"Invalid JSON response for {method} {path}") from exc

    def _paginate(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        data_key: str | None = None,
    ) -> Iterator[Any]:
        url: str | None = path
        next_params = {"per_page": 100, **(params or {})}
        while url:
            response = self._send("GET", url, params=next_params)
            body = response.json()
            items = body.get(data_key, []) if data_key else body
            yield from items
            url = response.links.get("next", {}).get("url")
            next_params = None

    @staticmethod
    def _format_error(response: httpx.Response) -> str:
        try:
            return json.dumps(response.json())
        except ValueError:
            return response.text

    # -- organization rulesets -----------------------------------------------

    def list_rulesets(self, org: str) -> list[dict[str, Any]]:
        """Return the organization's rulesets (summaries without rules)."""
        return list(self._paginate(f"orgs/{org}/rulesets"))

    def get_ruleset(self, org: str, ruleset_id: int) -> dict[str, Any]:
        return self._request("GET", f"orgs/{org}/rulesets/{ruleset_id}")

    def create_ruleset(self, org: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", f"orgs/{org}/rulesets", payload=payload)

    def update_ruleset(self, org: str, ruleset_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"orgs/{org}/rulesets/{ruleset_id}", payload=payload)

    # -- repositories --------------------------------------------------------

    def get_repository(self, owner: str, name: str) -> Repository:
        return Repository.from_api(self._request("GET", f"repos/{owner}/{name}"))

    def get_repository_by_id(self, repository_id: int) -> Repository:
        return Repository.from_api(self._request("GET", f"repositories/{repository_id}"))

    # -- teams ---------------------------------------------------------------

    def get_team_by_slug(self, org: str, slug: str) -> Team:
        return Team.from_api(self._request("GET", f"orgs/{org}/teams/{slug}"))

    def get_team_by_id(self, org_id: int, team_id: int) -> Team:
        return Team.from_api(self._request("GET", f"organizations/{org_id}/team/{team_id}"))

    # -- organizations -------------------------------------------------------

    def get_organization(self, org: str) -> Organization:
        return Organization.from_api(self._request("GET", f"orgs/{org}"))

    def list_custom_repo_roles(self, org: str) -> list[CustomRepoRole]:
        """Return every custom repository role of the organization in one call."""
        body = self._request("GET", f"orgs/{org}/custom-repository-roles") or {}
        return [CustomRepoRole.from_api(role) for role in body.get("custom_roles", [])]

    # -- apps ----------------------------------------------------------------

    def get_app(self) -> App:
        """Describe the authenticated app (requires the app JWT)."""
        return App.from_api(self._request("GET", "app"))

    def list_installations(self) -> list[Installation]:
        return [Installation.from_api(i) for i in self._paginate("app/installations")]

    def find_org_installation(self, org: str) -> Installation:
        return Installation.from_api(self._request("GET", f"orgs/{org}/installation"))

    def create_installation_token(self, installation_id: int) -> dict[str, Any]:
        return self._request("POST", f"app/installations/{installation_id}/access_tokens")

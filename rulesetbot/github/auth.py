"""GitHub App authentication.

Two kinds of credentials are involved:

* the **app JWT**, signed with the app's private key, used to describe the
  app itself and to enumerate or find its installations;
* **installation tokens**, exchanged with the JWT, scoped to one
  organization and used for every ruleset, team, role and repository call.

:class:`ClientFactory` hands out clients for both and caches installation
tokens until shortly before they expire. :class:`AppIdentity` resolves the
app's own bot login once per process so that self-triggered edits can be
recognised without re-authenticating on every event.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Generator

import httpx
import jwt

from rulesetbot.config import Config
from rulesetbot.errors import GitHubAPIError
from rulesetbot.github.client import DEFAULT_TIMEOUT, GitHubClient
from rulesetbot.sync.locks import KeyedLock

logger = logging.getLogger(__name__)

JWT_BACKDATE_SECONDS = 60
JWT_LIFETIME_SECONDS = 540
TOKEN_REFRESH_MARGIN_SECONDS = 60


class AppCredentials:
    """Signs app JWTs for one GitHub App."""

    def __init__(self, integration_id: int, private_key: str) -> None:
        self.integration_id = integration_id
        self.private_key = private_key

    def jwt(self, now: float | None = None) -> str:
        issued = int(now if now is not None else time.time())
        claims = {
            "iat": issued - JWT_BACKDATE_SECONDS,
            "exp": issued + JWT_LIFETIME_SECONDS,
            "iss": str(self.integration_id),
        }
        return jwt.encode(claims, self.private_key, algorithm="RS256")


class _AppJWTAuth(httpx.Auth):
    def __init__(self, credentials: AppCredentials) -> None:
        self._credentials = credentials

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._credentials.jwt()}"
        yield request


class _InstallationAuth(httpx.Auth):
    def __init__(self, factory: ClientFactory, installation_id: int) -> None:
        self._factory = factory
        self._installation_id = installation_id

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._factory.installation_token(self._installation_id)
        request.headers["Authorization"] = f"token {token}"
        yield request


class ClientFactory:
    """Creates app-level and installation-scoped :class:`GitHubClient` instances."""

    def __init__(
        self,
        base_url: str,
        credentials: AppCredentials,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.credentials = credentials
        self.timeout = timeout
        self._transport = transport
        self._tokens: dict[int, tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._exchanges = KeyedLock()
        self.identity = AppIdentity(self)

    @classmethod
    def from_config(cls, config: Config, transport: httpx.BaseTransport | None = None) -> ClientFactory:
        credentials = AppCredentials(
            config.github.app.integration_id,
            config.github.app.private_key,
        )
        return cls(config.github.v3_api_url, credentials, transport=transport)

    def app_client(self) -> GitHubClient:
        return GitHubClient(
            self.base_url,
            _AppJWTAuth(self.credentials),
            timeout=self.timeout,
            transport=self._transport,
        )

    def installation_client(self, installation_id: int) -> GitHubClient:
        return GitHubClient(
            self.base_url,
            _InstallationAuth(self, installation_id),
            timeout=self.timeout,
            transport=self._transport,
        )

    def installation_token(self, installation_id: int) -> str:
        """Return a valid token for the installation, exchanging a new one if needed.

        Exchanges are serialised per installation; tokens for other
        installations are issued concurrently.
        """
        with self._exchanges.hold(installation_id):
            with self._lock:
                cached = self._tokens.get(installation_id)
                if cached and cached[1] - TOKEN_REFRESH_MARGIN_SECONDS > time.time():
                    return cached[0]

            with self.app_client() as client:
                body = client.create_installation_token(installation_id) or {}
            token = body.get("token")
            if not token:
                raise GitHubAPIError(0, f"No token returned for installation {installation_id}")
            with self._lock:
                self._tokens[installation_id] = (token, _parse_expiry(body.get("expires_at")))
            logger.debug("Issued installation token for installation %s", installation_id)
            return token

    def rotate_private_key(self, private_key: str) -> None:
        """Swap the app private key, dropping every credential derived from the old one."""
        with self._lock:
            self.credentials = AppCredentials(self.credentials.integration_id, private_key)
            self._tokens.clear()
        self.identity.invalidate()
        logger.info("GitHub App private key rotated; cached credentials cleared")


class AppIdentity:
    """Process-lifetime cache of the app's own bot login."""

    def __init__(self, factory: ClientFactory) -> None:
        self._factory = factory
        self._bot_login: str | None = None
        self._lock = threading.Lock()

    def bot_login(self) -> str:
        with self._lock:
            if self._bot_login is None:
                with self._factory.app_client() as client:
                    app = client.get_app()
                self._bot_login = app.bot_login
                logger.info("Authenticated as GitHub App %s", self._bot_login)
            return self._bot_login

    def invalidate(self) -> None:
        with self._lock:
            self._bot_login = None


def _parse_expiry(value: str | None) -> float:
    """Convert GitHub's ``expires_at`` timestamp to epoch seconds (default: one hour)."""
    if not value:
        return time.time() + 3600
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()

"""GitHub REST client and GitHub App authentication."""

from rulesetbot.github.auth import AppCredentials, AppIdentity, ClientFactory
from rulesetbot.github.client import GitHubClient

__all__ = ["AppCredentials", "AppIdentity", "ClientFactory", "GitHubClient"]

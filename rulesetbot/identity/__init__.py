"""Cross-organization identity resolution for teams, custom roles and repositories."""

from rulesetbot.identity.resolver import IdentityResolver

__all__ = ["IdentityResolver"]

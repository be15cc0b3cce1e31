"""repo-ruleset-bot: keeps organization rulesets converged with their definitions.

The bot reacts to GitHub App webhooks (ruleset edits and deletions, new
installations, releases of the policy repository) and reverts drift by
re-applying the versioned ruleset definitions to each organization.
"""

__version__ = "1.0.0"

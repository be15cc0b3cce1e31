"""Webhook payload models and event classification."""

from rulesetbot.events.classifier import Classification, EventClassifier, Intent
from rulesetbot.events.models import (
    InstallationEvent,
    ReleaseEvent,
    RulesetEvent,
    parse_event,
)

__all__ = [
    "Classification",
    "EventClassifier",
    "InstallationEvent",
    "Intent",
    "ReleaseEvent",
    "RulesetEvent",
    "parse_event",
]

"""JSON Schema subset for organization ruleset definitions.

Derived from the organization ruleset create/update body in GitHub's REST
description, limited to the fields the bot reads or relies on. Unknown
properties are allowed so that new rule types keep working.
"""

from __future__ import annotations

from rulesetbot.models.ruleset import ENFORCEMENT_CHOICES, TARGET_CHOICES

_STRING_ARRAY = {"type": "array", "items": {"type": "string"}}

_INCLUDE_EXCLUDE = {
    "type": "object",
    "properties": {
        "include": _STRING_ARRAY,
        "exclude": _STRING_ARRAY,
    },
}

RULESET_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Organization ruleset definition",
    "type": "object",
    "required": ["name", "enforcement"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "target": {"type": "string", "enum": TARGET_CHOICES},
        "enforcement": {"type": "string", "enum": ENFORCEMENT_CHOICES},
        "source_organization": {"type": "string"},
        "bypass_actors": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["actor_type"],
                "properties": {
                    "actor_id": {"type": ["integer", "null"]},
                    "actor_type": {
                        "type": "string",
                        "enum": [
                            "Integration",
                            "OrganizationAdmin",
                            "RepositoryRole",
                            "Team",
                            "DeployKey",
                            "EnterpriseAdmin",
                        ],
                    },
                    "bypass_mode": {"type": "string", "enum": ["always", "pull_request"]},
                },
            },
        },
        "conditions": {
            "type": "object",
            "properties": {
                "ref_name": _INCLUDE_EXCLUDE,
                "repository_name": {
                    "type": "object",
                    "properties": {
                        "include": _STRING_ARRAY,
                        "exclude": _STRING_ARRAY,
                        "protected": {"type": "boolean"},
                    },
                },
                "repository_id": {
                    "type": "object",
                    "properties": {"repository_ids": {"type": "array", "items": {"type": "integer"}}},
                },
                "repository_property": {
                    "type": "object",
                    "properties": {
                        "include": {"type": "array", "items": {"type": "object"}},
                        "exclude": {"type": "array", "items": {"type": "object"}},
                    },
                },
            },
        },
        "rules": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["type"],
                "properties": {
                    "type": {"type": "string", "minLength": 1},
                    "parameters": {"type": "object"},
                },
            },
        },
    },
}

WORKFLOWS_PARAMETERS_SCHEMA = {
    "type": "object",
    "required": ["workflows"],
    "properties": {
        "workflows": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["repository_id", "path"],
                "properties": {
                    "repository_id": {"type": "integer"},
                    "path": {"type": "string", "minLength": 1},
                    "ref": {"type": "string"},
                    "sha": {"type": "string"},
                },
            },
        },
    },
}


def get_schema() -> dict:
    """Return the ruleset definition JSON Schema."""
    return RULESET_SCHEMA

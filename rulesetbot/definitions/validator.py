"""Structural validation of ruleset definition documents.

Walks :data:`~rulesetbot.definitions.schema.RULESET_SCHEMA` by hand, covering
the required/type/enum/minLength/minItems checks, then applies the checks
that are easier to express in code (``workflows`` parameters, ids on
translatable bypass actors).
"""

from __future__ import annotations

from typing import Any

from rulesetbot.definitions.schema import WORKFLOWS_PARAMETERS_SCHEMA, get_schema
from rulesetbot.models.ruleset import WORKFLOWS_RULE, ActorType


def validate_definition(data: Any) -> list[str]:
    """Validate a decoded definition document.

    Returns:
        List of issue messages. Empty list means valid.
    """
    issues: list[str] = []
    _validate_node(data, get_schema(), "", issues)
    if issues or not isinstance(data, dict):
        return issues

    for idx, rule in enumerate(data.get("rules") or []):
        if rule.get("type") == WORKFLOWS_RULE:
            _validate_node(
                rule.get("parameters"),
                WORKFLOWS_PARAMETERS_SCHEMA,
                f".rules[{idx}].parameters",
                issues,
            )

    for idx, actor in enumerate(data.get("bypass_actors") or []):
        actor_type = actor.get("actor_type")
        if actor_type in {ActorType.TEAM, ActorType.REPOSITORY_ROLE, ActorType.INTEGRATION}:
            if not isinstance(actor.get("actor_id"), int) or isinstance(actor.get("actor_id"), bool):
                issues.append(f".bypass_actors[{idx}]: actor_id is required for {actor_type}")

    return issues


def _validate_node(data: Any, schema: dict, path: str, issues: list[str]) -> None:
    """Recursively validate data against a JSON Schema node."""
    schema_type = schema.get("type")

    if schema_type and not _type_matches(data, schema_type):
        expected = " or ".join(schema_type) if isinstance(schema_type, list) else schema_type
        issues.append(f"{path or '/'}: expected type '{expected}', got {type(data).__name__}")
        return

    if "enum" in schema and data not in schema["enum"]:
        issues.append(f"{path or '/'}: value '{data}' not in allowed values {schema['enum']}")

    if schema_type == "string" and isinstance(data, str):
        min_len = schema.get("minLength", 0)
        if len(data) < min_len:
            issues.append(f"{path or '/'}: string too short (min {min_len}, got {len(data)})")

    if schema_type == "object" and isinstance(data, dict):
        for req in schema.get("required", []):
            if req not in data:
                issues.append(f"{path or '/'}: missing required property '{req}'")

        props = schema.get("properties", {})
        for key, value in data.items():
            if key in props:
                _validate_node(value, props[key], f"{path}.{key}", issues)

    if schema_type == "array" and isinstance(data, list):
        min_items = schema.get("minItems", 0)
        if len(data) < min_items:
            issues.append(f"{path or '/'}: array too short (min {min_items}, got {len(data)})")

        items_schema = schema.get("items")
        if items_schema:
            for i, item in enumerate(data):
                _validate_node(item, items_schema, f"{path}[{i}]", issues)


_TYPES = {
    "string": str,
    "integer": int,
    "boolean": bool,
    "array": list,
    "object": dict,
    "null": type(None),
}


def _type_matches(data: Any, schema_type: str | list[str]) -> bool:
    """True if *data* is of *schema_type*, or of any type in a list of them."""
    if isinstance(schema_type, list):
        return any(_type_matches(data, t) for t in schema_type)
    expected = _TYPES.get(schema_type)
    if expected is None:
        return True
    if schema_type == "integer" and isinstance(data, bool):
        return False
    return isinstance(data, expected)

"""Ruleset definitions: the versioned, desired state of every managed ruleset.

This package provides:
- Store: enumeration of the JSON definition documents
- Schema: structural validation of each document
- Loader: decoding into :class:`~rulesetbot.models.Ruleset` and identity
  translation into a target organization
"""

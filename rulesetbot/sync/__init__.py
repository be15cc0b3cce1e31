"""Reconciliation: keeping the platform's rulesets converged with their definitions.

This package provides the primitives for:
- Drift detection: deciding whether an observed ruleset still satisfies its definition
- Locking: serialising decisions about the same ruleset in the same organization
- Reconciliation: issuing the create/update calls that remove drift
"""

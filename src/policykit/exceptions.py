"""
Error taxonomy for policy configuration and evaluation.

- ConfigError: invalid roles, rules or bindings detected while a snapshot is
  loaded. Always fatal to the load.
- EvaluationError: a malformed input row (missing or mistyped attribute, or
  a value a transform cannot handle). The Evaluator recovers from it by
  hiding the row.
- UnknownRoleWarning: the acting role is not registered. Evaluation proceeds
  with no memberships, so every predicate fails closed.
"""

from __future__ import annotations

from typing import Optional


class PolicyKitError(Exception):
    """Base class for all policykit errors."""


class ConfigError(PolicyKitError, ValueError):
    """Raised when a policy configuration is invalid."""


class EvaluationError(PolicyKitError):
    """
    Raised when a row cannot be evaluated against a policy.

    Attributes:
        policy: Name of the policy being evaluated, if known
        attribute: Name of the offending attribute, if known
    """

    def __init__(
        self,
        message: str,
        policy: Optional[str] = None,
        attribute: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.policy = policy
        self.attribute = attribute


class UnknownRoleWarning(UserWarning):
    """Emitted when an acting role is absent from the role registry."""


__all__ = [
    "PolicyKitError",
    "ConfigError",
    "EvaluationError",
    "UnknownRoleWarning",
]

"""
Masking and row access rule models.

Both rule kinds are ordered lists of role-keyed cases:

- MaskingRule: first matching case wins; the default transform fires when no
  case matches. Exactly one transform is applied per evaluation.
- RowAccessRule: the rule holds if any case's role predicate matches and its
  value condition holds. No match means the row is hidden.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, FrozenSet, Mapping, Optional, Tuple

from pydantic import Field, field_validator

from policykit.exceptions import ConfigError, EvaluationError

from .base import BaseGovernanceModel
from .conditions import ValueCondition
from .enums import AttributeType, value_matches_type
from .transforms import Transform

if TYPE_CHECKING:
    from .context import EvaluationContext
    from .roles import RoleRegistry

logger = logging.getLogger(__name__)

POLICY_NAME_PATTERN = r'^[A-Za-z_][A-Za-z0-9_]*$'


def _convert_attribute_type(v: Any) -> Any:
    if isinstance(v, str):
        return AttributeType(v.upper())
    return v


def _check_roles(roles: FrozenSet[str], registry: RoleRegistry, policy: str) -> None:
    unknown = [r for r in roles if not registry.knows(r)]
    if unknown:
        raise ConfigError(f"Policy '{policy}' references unknown role(s): {sorted(unknown)}")


def _check_value(value: Any, attribute_type: AttributeType, policy: str, attribute: str) -> None:
    if value is not None and not value_matches_type(value, attribute_type):
        raise EvaluationError(
            f"Policy '{policy}': attribute '{attribute}' expected {attribute_type.value}, "
            f"got {type(value).__name__} {value!r}",
            policy=policy,
            attribute=attribute,
        )


# =============================================================================
# MASKING
# =============================================================================

class MaskingCase(BaseGovernanceModel):
    """One (role predicate, transform) pair of a masking rule."""
    roles: FrozenSet[str] = Field(..., min_length=1, description="Roles this case applies to")
    transform: Transform = Field(..., description="Transform applied when the case matches")
    comment: Optional[str] = Field(None, description="Why these roles see this shape of value")

    def matches(self, ctx: EvaluationContext) -> bool:
        return ctx.has_any(self.roles)


class MaskingRule(BaseGovernanceModel):
    """
    Column masking policy.

    Transforms the value of a column according to the acting role without
    affecting which rows are returned.

    Example:
        ssn_mask = MaskingRule(
            name="SSN_MASK",
            attribute_type=AttributeType.STRING,
            cases=[
                MaskingCase(roles={"REGISTRAR_ANALYST_ROLE"}, transform=Transform.identity()),
                MaskingCase(roles={"DATA_ENGINEER_ROLE"},
                            transform=Transform.keep_last(4, prefix="XXX-XX-")),
            ],
            default=Transform.constant("XXX-XX-XXXX"),
        )
    """
    name: str = Field(..., pattern=POLICY_NAME_PATTERN, description="Unique policy name")
    attribute_type: AttributeType = Field(..., alias="type", description="Type of the masked value")
    cases: Tuple[MaskingCase, ...] = Field(default_factory=tuple, description="Ordered cases")
    default: Transform = Field(..., description="Transform applied when no case matches")
    comment: Optional[str] = Field(None, max_length=1024, description="Description of the policy")

    @field_validator('attribute_type', mode='before')
    @classmethod
    def convert_attribute_type(cls, v: Any) -> AttributeType:
        """Convert string to AttributeType enum if needed."""
        return _convert_attribute_type(v)

    @property
    def roles(self) -> FrozenSet[str]:
        """Every role referenced by any case."""
        return frozenset().union(*(case.roles for case in self.cases))

    def check(self, registry: RoleRegistry) -> None:
        """
        Validate the rule against a role registry.

        Raises:
            ConfigError: Unknown roles or transforms incompatible with the attribute type
        """
        _check_roles(self.roles, registry, self.name)
        for case in self.cases:
            case.transform.check_attribute_type(self.attribute_type, self.name)
        self.default.check_attribute_type(self.attribute_type, self.name)

    def select(self, ctx: EvaluationContext) -> Tuple[Optional[int], Transform]:
        """
        Pick the transform for the acting role.

        Returns:
            (index of the matching case or None for the default, transform)
        """
        for index, case in enumerate(self.cases):
            if case.matches(ctx):
                return index, case.transform
        return None, self.default

    def evaluate(self, ctx: EvaluationContext, value: Any, column: Optional[str] = None) -> Any:
        """
        Mask a value for the acting role.

        Args:
            ctx: Evaluation context
            value: Value to mask (may be None)
            column: Column name, for error messages

        Returns:
            Masked value

        Raises:
            EvaluationError: If value does not match the declared attribute type,
                or the selected transform cannot be applied to it
        """
        _check_value(value, self.attribute_type, self.name, column or "<value>")
        index, transform = self.select(ctx)
        logger.debug(
            f"{self.name}: role {ctx.role} -> "
            f"{'default' if index is None else f'case {index}'} ({transform.kind.value})"
        )
        try:
            return transform.apply(value)
        except (ArithmeticError, ValueError, re.error) as e:
            raise EvaluationError(
                f"Policy '{self.name}': transform '{transform.kind.value}' failed on "
                f"attribute '{column or '<value>'}': {e}",
                policy=self.name,
                attribute=column,
            ) from e


# =============================================================================
# ROW ACCESS
# =============================================================================

class RowAccessCase(BaseGovernanceModel):
    """One (role predicate, value condition) pair of a row access rule."""
    roles: FrozenSet[str] = Field(..., min_length=1, description="Roles this case applies to")
    condition: ValueCondition = Field(
        default_factory=ValueCondition.always,
        description="Condition on the attribute value (default: always)"
    )
    comment: Optional[str] = Field(None, description="Which rows these roles may see")

    def holds(self, ctx: EvaluationContext, value: Any) -> bool:
        return ctx.has_any(self.roles) and self.condition.holds(value, ctx.reference_date)


class RowAccessRule(BaseGovernanceModel):
    """
    Row access policy over a single attribute.

    Example:
        active_only = RowAccessRule(
            name="ACTIVE_RECORDS_ONLY",
            attribute="is_active",
            attribute_type=AttributeType.BOOLEAN,
            cases=[
                RowAccessCase(roles={"DATA_ENGINEER_ROLE"}),
                RowAccessCase(roles={"DATA_ANALYST_ROLE"}, condition=ValueCondition.is_true()),
            ],
        )
    """
    name: str = Field(..., pattern=POLICY_NAME_PATTERN, description="Unique policy name")
    attribute: str = Field(..., min_length=1, description="Row attribute the policy reads")
    attribute_type: AttributeType = Field(..., alias="type", description="Type of the attribute")
    cases: Tuple[RowAccessCase, ...] = Field(default_factory=tuple, description="Cases, OR-combined")
    comment: Optional[str] = Field(None, max_length=1024, description="Description of the policy")

    @field_validator('attribute_type', mode='before')
    @classmethod
    def convert_attribute_type(cls, v: Any) -> AttributeType:
        """Convert string to AttributeType enum if needed."""
        return _convert_attribute_type(v)

    @property
    def roles(self) -> FrozenSet[str]:
        """Every role referenced by any case."""
        return frozenset().union(*(case.roles for case in self.cases))

    def check(self, registry: RoleRegistry) -> None:
        """
        Validate the rule against a role registry.

        Raises:
            ConfigError: Unknown roles or conditions incompatible with the attribute type
        """
        _check_roles(self.roles, registry, self.name)
        for case in self.cases:
            case.condition.check_attribute_type(self.attribute_type, self.name)

    def bound_to(self, attribute: str) -> RowAccessRule:
        """Copy of this rule reading a different row attribute."""
        if attribute == self.attribute:
            return self
        return self.model_copy(update={"attribute": attribute})

    def decide(self, ctx: EvaluationContext, row: Mapping[str, Any]) -> Tuple[bool, Optional[int]]:
        """
        Decide visibility of a row under this rule.

        Returns:
            (visible, index of the first case that held or None)

        Raises:
            EvaluationError: If the attribute is missing or mistyped
        """
        if self.attribute not in row:
            raise EvaluationError(
                f"Policy '{self.name}': row is missing attribute '{self.attribute}'",
                policy=self.name,
                attribute=self.attribute,
            )
        value = row[self.attribute]
        _check_value(value, self.attribute_type, self.name, self.attribute)

        for index, case in enumerate(self.cases):
            if case.holds(ctx, value):
                logger.debug(f"{self.name}: role {ctx.role} visible via case {index}")
                return True, index
        logger.debug(f"{self.name}: role {ctx.role} matched no case, row hidden")
        return False, None

    def evaluate(self, ctx: EvaluationContext, row: Mapping[str, Any]) -> bool:
        """True if the row is visible to the acting role under this rule."""
        visible, _ = self.decide(ctx, row)
        return visible


__all__ = [
    "MaskingCase",
    "MaskingRule",
    "RowAccessCase",
    "RowAccessRule",
]

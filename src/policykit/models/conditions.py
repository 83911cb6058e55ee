"""
Value predicates for row access cases.

A ValueCondition decides whether a single attribute value satisfies a row
access case. Time-window conditions take the reference date as an explicit
argument so evaluation never reads the wall clock.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from policykit.exceptions import ConfigError

from .base import BaseGovernanceModel
from .enums import (
    CONDITION_INPUT_TYPES,
    AttributeType,
    ConditionType,
    value_matches_type,
)


class ValueCondition(BaseGovernanceModel):
    """
    A predicate over one attribute value.

    Attributes:
        kind: Condition type
        value: Comparand for EQUALS
        values: Allowed values for IN_SET
        years: Window size for RECENT_YEARS (current year minus N)
        months: Window size for RECENT_MONTHS (current month minus N)
        case_insensitive: Compare strings ignoring case
        null_matches: Decision for a null attribute value (ALWAYS ignores it)
    """
    kind: ConditionType = Field(ConditionType.ALWAYS, description="Condition type")
    value: Any = Field(None, description="Comparand for equals")
    values: Tuple[Any, ...] = Field(default_factory=tuple, description="Allowed values for in_set")
    years: Optional[int] = Field(None, ge=0, description="Window in years for recent_years")
    months: Optional[int] = Field(None, ge=0, description="Window in months for recent_months")
    case_insensitive: bool = Field(True, description="Compare strings ignoring case")
    null_matches: bool = Field(False, description="Whether a null value satisfies the condition")

    @model_validator(mode='before')
    @classmethod
    def expand_shorthand(cls, data: Any) -> Any:
        """Accept a bare condition name as shorthand for {kind: name}."""
        if isinstance(data, (str, ConditionType)):
            return {"kind": data}
        return data

    @field_validator('kind', mode='before')
    @classmethod
    def convert_kind(cls, v: Any) -> ConditionType:
        """Convert string to ConditionType enum if needed."""
        if isinstance(v, str):
            return ConditionType(v.lower())
        return v

    @model_validator(mode='after')
    def check_parameters(self) -> ValueCondition:
        """Kind-specific parameters must be present."""
        if self.kind == ConditionType.EQUALS and self.value is None:
            raise ValueError("equals condition requires 'value'")
        if self.kind == ConditionType.IN_SET and not self.values:
            raise ValueError("in_set condition requires non-empty 'values'")
        if self.kind == ConditionType.RECENT_YEARS and self.years is None:
            raise ValueError("recent_years condition requires 'years'")
        if self.kind == ConditionType.RECENT_MONTHS and self.months is None:
            raise ValueError("recent_months condition requires 'months'")
        return self

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def always(cls) -> ValueCondition:
        return cls(kind=ConditionType.ALWAYS)

    @classmethod
    def equals(cls, value: Any, case_insensitive: bool = True) -> ValueCondition:
        return cls(kind=ConditionType.EQUALS, value=value, case_insensitive=case_insensitive)

    @classmethod
    def in_set(cls, *values: Any, case_insensitive: bool = True) -> ValueCondition:
        return cls(kind=ConditionType.IN_SET, values=tuple(values), case_insensitive=case_insensitive)

    @classmethod
    def is_true(cls, null_matches: bool = False) -> ValueCondition:
        return cls(kind=ConditionType.IS_TRUE, null_matches=null_matches)

    @classmethod
    def recent_years(cls, years: int) -> ValueCondition:
        return cls(kind=ConditionType.RECENT_YEARS, years=years)

    @classmethod
    def recent_months(cls, months: int) -> ValueCondition:
        return cls(kind=ConditionType.RECENT_MONTHS, months=months)

    # -------------------------------------------------------------------------
    # Configuration checks
    # -------------------------------------------------------------------------

    def check_attribute_type(self, attribute_type: AttributeType, policy: str) -> None:
        """
        Verify this condition can consume `attribute_type`.

        Raises:
            ConfigError: On a type mismatch, including mistyped comparands
        """
        allowed = CONDITION_INPUT_TYPES[self.kind]
        if attribute_type not in allowed:
            raise ConfigError(
                f"Policy '{policy}': condition '{self.kind.value}' cannot be applied to "
                f"{attribute_type.value} values (allowed: {sorted(t.value for t in allowed)})"
            )
        comparands = list(self.values)
        if self.kind == ConditionType.EQUALS:
            comparands.append(self.value)
        for comparand in comparands:
            if not value_matches_type(comparand, attribute_type):
                raise ConfigError(
                    f"Policy '{policy}': comparand {comparand!r} is not a {attribute_type.value} value"
                )

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def holds(self, value: Any, reference_date: date) -> bool:
        """
        Decide the condition for a value already checked against the declared type.

        Args:
            value: Attribute value (may be None)
            reference_date: Date that time windows are measured from

        Returns:
            True if the condition is satisfied
        """
        if self.kind == ConditionType.ALWAYS:
            return True
        if value is None:
            return self.null_matches

        if self.kind == ConditionType.EQUALS:
            return self._normalize(value) == self._normalize(self.value)
        if self.kind == ConditionType.IN_SET:
            return self._normalize(value) in {self._normalize(v) for v in self.values}
        if self.kind == ConditionType.IS_TRUE:
            return value is True
        if self.kind == ConditionType.RECENT_YEARS:
            earliest = reference_date.year - (self.years or 0)
            if isinstance(value, date):
                return value.year >= earliest
            return value >= f"{earliest:04d}"
        if self.kind == ConditionType.RECENT_MONTHS:
            return value >= _months_back(reference_date, self.months or 0)

        raise NotImplementedError(f"Condition '{self.kind.value}' is not implemented")

    def _normalize(self, value: Any) -> Any:
        if self.case_insensitive and isinstance(value, str):
            return value.upper()
        return value


def _months_back(reference_date: date, months: int) -> str:
    """Format the month `months` before `reference_date` as YYYYMM."""
    index = reference_date.year * 12 + (reference_date.month - 1) - months
    year, month = divmod(index, 12)
    return f"{year:04d}{month + 1:02d}"


__all__ = [
    "ValueCondition",
]

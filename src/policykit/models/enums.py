"""
Enum definitions for policy models.

This module contains all enumeration types used throughout the policy system.
"""

import math
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Set


class AttributeType(str, Enum):
    """Declared type of a protected attribute (column value or row-filter input)."""
    STRING = "STRING"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    NUMBER = "NUMBER"


class PolicyKind(str, Enum):
    """Kind of policy a trace entry or audit finding refers to."""
    MASKING = "MASKING"
    ROW_ACCESS = "ROW_ACCESS"


class TransformType(str, Enum):
    """
    Masking transforms.

    Every transform except CONSTANT maps a null input to null.
    """
    IDENTITY = "identity"
    CONSTANT = "constant"
    KEEP_LAST = "keep_last"  # prefix + trailing characters
    REGEX_REPLACE = "regex_replace"
    YEAR_ONLY = "year_only"  # date -> January 1 of the same year
    ROUND = "round"  # half away from zero, places may be negative
    INITIALS = "initials"
    PHONE_AREA_CODE = "phone_area_code"
    PHONE_FORMAT = "phone_format"
    ADDRESS_LOCALITY = "address_locality"


class ConditionType(str, Enum):
    """Value predicates used by row access cases."""
    ALWAYS = "always"
    EQUALS = "equals"
    IN_SET = "in_set"
    IS_TRUE = "is_true"
    RECENT_YEARS = "recent_years"  # academic year codes, e.g. '2024'
    RECENT_MONTHS = "recent_months"  # term codes, e.g. '202403'


class ShortInputPolicy(str, Enum):
    """
    How KEEP_LAST handles input shorter than the number of kept characters.

    PASS_THROUGH keeps the whole input (warehouse RIGHT() semantics).
    PAD left-pads the kept tail with the pad character.
    """
    PASS_THROUGH = "pass_through"
    PAD = "pad"


class RuleMode(str, Enum):
    """Execution mode for governance audit rules."""
    ENFORCED = "enforced"  # Findings are blocking
    ADVISORY = "advisory"  # Findings are warnings


# Which masking transforms can consume which attribute types
TRANSFORM_INPUT_TYPES: Dict[TransformType, Set[AttributeType]] = {
    TransformType.IDENTITY: set(AttributeType),
    TransformType.CONSTANT: set(AttributeType),
    TransformType.KEEP_LAST: {AttributeType.STRING},
    TransformType.REGEX_REPLACE: {AttributeType.STRING},
    TransformType.YEAR_ONLY: {AttributeType.DATE},
    TransformType.ROUND: {AttributeType.NUMBER},
    TransformType.INITIALS: {AttributeType.STRING},
    TransformType.PHONE_AREA_CODE: {AttributeType.STRING},
    TransformType.PHONE_FORMAT: {AttributeType.STRING},
    TransformType.ADDRESS_LOCALITY: {AttributeType.STRING},
}

# Which value predicates can consume which attribute types
CONDITION_INPUT_TYPES: Dict[ConditionType, Set[AttributeType]] = {
    ConditionType.ALWAYS: set(AttributeType),
    ConditionType.EQUALS: set(AttributeType),
    ConditionType.IN_SET: set(AttributeType),
    ConditionType.IS_TRUE: {AttributeType.BOOLEAN},
    ConditionType.RECENT_YEARS: {AttributeType.STRING, AttributeType.DATE},
    ConditionType.RECENT_MONTHS: {AttributeType.STRING},
}


def get_valid_attribute_types() -> Set[str]:
    """
    Get all valid AttributeType values as strings.

    Returns:
        Set of valid attribute type strings
    """
    return {t.value for t in AttributeType}


def value_matches_type(value: Any, attribute_type: AttributeType) -> bool:
    """
    Check a non-null Python value against a declared attribute type.

    bool is not accepted as a NUMBER even though it subclasses int, and NaN
    or infinite floats and Decimals are not NUMBER values.
    """
    if attribute_type == AttributeType.STRING:
        return isinstance(value, str)
    if attribute_type == AttributeType.BOOLEAN:
        return isinstance(value, bool)
    if attribute_type == AttributeType.DATE:
        return isinstance(value, date)
    if attribute_type == AttributeType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            return False
        if isinstance(value, Decimal):
            return value.is_finite()
        return isinstance(value, int) or math.isfinite(value)
    return False

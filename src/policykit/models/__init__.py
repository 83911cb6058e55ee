"""
Policy models.

This package provides all Pydantic models for the policy system.

Module organization:
- enums: All enumerations (AttributeType, TransformType, ConditionType, etc.)
- base: Base classes (BaseGovernanceModel, Tag) and the reference clock
- roles: Role and RoleRegistry
- context: EvaluationContext
- transforms: Masking transforms
- conditions: Row access value conditions
- policies: MaskingRule, RowAccessRule and their cases
- bindings: PolicyBinding (dataset -> row rules, column masks, tags)
- tags: TagDefinition and TagTaxonomy
"""

from .base import (
    REFERENCE_DATE_ENV,
    BaseGovernanceModel,
    Tag,
    get_reference_date,
    tag_value_to_str,
    tags_to_dict,
)
from .bindings import PolicyBinding
from .conditions import ValueCondition
from .context import EvaluationContext
from .enums import (
    CONDITION_INPUT_TYPES,
    TRANSFORM_INPUT_TYPES,
    AttributeType,
    ConditionType,
    PolicyKind,
    RuleMode,
    ShortInputPolicy,
    TransformType,
    get_valid_attribute_types,
    value_matches_type,
)
from .policies import (
    MaskingCase,
    MaskingRule,
    RowAccessCase,
    RowAccessRule,
)
from .roles import Role, RoleRegistry
from .tags import TagDefinition, TagTaxonomy
from .transforms import Transform

__all__ = [
    # Base
    "BaseGovernanceModel",
    "Tag",
    "get_reference_date",
    "tag_value_to_str",
    "tags_to_dict",
    "REFERENCE_DATE_ENV",
    # Enums
    "AttributeType",
    "ConditionType",
    "PolicyKind",
    "RuleMode",
    "ShortInputPolicy",
    "TransformType",
    "CONDITION_INPUT_TYPES",
    "TRANSFORM_INPUT_TYPES",
    "get_valid_attribute_types",
    "value_matches_type",
    # Roles
    "Role",
    "RoleRegistry",
    # Evaluation inputs
    "EvaluationContext",
    # Policies
    "Transform",
    "ValueCondition",
    "MaskingCase",
    "MaskingRule",
    "RowAccessCase",
    "RowAccessRule",
    # Bindings and tags
    "PolicyBinding",
    "TagDefinition",
    "TagTaxonomy",
]

"""
Policykit - Attribute-based access policies for warehouse data.

This library evaluates column masking and row access policies for an acting
role, the way a warehouse would apply them at query time, but in plain
Python and without a warehouse connection.

Key Features:
- Role hierarchy with transitive memberships
- Masking policies: first matching role case wins, default otherwise
- Row access policies: OR within a policy, AND across policies, fail-closed
- Declarative YAML configuration validated with pydantic
- Tag taxonomy and coverage audits (unmasked or untagged PII, ungoverned datasets)
- The Ditteau Data policy set bundled as package data

Quick Start:
    from policykit import load_ditteau_policies

    snapshot = load_ditteau_policies()
    evaluator = snapshot.evaluator()

    decision = evaluator.evaluate(
        "DATA_ENGINEER_ROLE",
        "TEST_MASKING",
        {"ssn": "123-45-6789", "email": "john.doe@university.edu"},
    )
    decision.row["ssn"]    # 'XXX-XX-6789'
    decision.row["email"]  # '***@university.edu'

    # Only the rows an analyst may see, already masked
    rows = evaluator.filter_rows("ENROLLMENT_ANALYST_ROLE", "TEST_ROW_ACCESS", all_rows)
"""

__version__ = "0.1.0"

# =============================================================================
# Errors
# =============================================================================

from policykit.exceptions import (
    ConfigError,
    EvaluationError,
    PolicyKitError,
    UnknownRoleWarning,
)

# =============================================================================
# Models
# =============================================================================
from policykit.models import (
    AttributeType,
    ConditionType,
    EvaluationContext,
    MaskingCase,
    MaskingRule,
    PolicyBinding,
    PolicyKind,
    Role,
    RoleRegistry,
    RowAccessCase,
    RowAccessRule,
    RuleMode,
    ShortInputPolicy,
    Tag,
    TagDefinition,
    TagTaxonomy,
    Transform,
    TransformType,
    ValueCondition,
    get_reference_date,
)

# =============================================================================
# Evaluation
# =============================================================================
from policykit.evaluation import (
    AccessDecision,
    Evaluator,
    TraceEntry,
    evaluate_mask,
    evaluate_row,
    evaluate_visibility,
)
from policykit.snapshot import PolicySnapshot, PolicyStore

# =============================================================================
# Configuration and Audit
# =============================================================================
from policykit.yaml_config import (
    load_policy_config,
    load_policy_dir,
    parse_policy_config,
)
from policykit.audit import (
    AuditFinding,
    audit_snapshot,
)
from policykit.ditteau import load_ditteau_policies

__all__ = [
    "__version__",
    # Errors
    "ConfigError",
    "EvaluationError",
    "PolicyKitError",
    "UnknownRoleWarning",
    # Models
    "AttributeType",
    "ConditionType",
    "EvaluationContext",
    "MaskingCase",
    "MaskingRule",
    "PolicyBinding",
    "PolicyKind",
    "Role",
    "RoleRegistry",
    "RowAccessCase",
    "RowAccessRule",
    "RuleMode",
    "ShortInputPolicy",
    "Tag",
    "TagDefinition",
    "TagTaxonomy",
    "Transform",
    "TransformType",
    "ValueCondition",
    "get_reference_date",
    # Evaluation
    "AccessDecision",
    "Evaluator",
    "TraceEntry",
    "evaluate_mask",
    "evaluate_row",
    "evaluate_visibility",
    "PolicySnapshot",
    "PolicyStore",
    # Configuration and Audit
    "load_policy_config",
    "load_policy_dir",
    "parse_policy_config",
    "AuditFinding",
    "audit_snapshot",
    "load_ditteau_policies",
]

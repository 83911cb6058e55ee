"""
Governance coverage audits over policy snapshots.

Usage:
    from policykit.audit import audit_snapshot

    findings = audit_snapshot(snapshot)
    for finding in findings:
        print(finding.mode, finding.message)
"""

from .rules import (
    DEFAULT_REQUIRED_DATASET_TAGS,
    PII_COLUMN_PATTERNS,
    AuditFinding,
    AuditRegistry,
    AuditRuleDefinition,
    AuditRuleSpec,
    audit_snapshot,
    blocking_findings,
    classify_column,
    create_default_registry,
    get_default_registry,
)

__all__ = [
    "AuditFinding",
    "AuditRegistry",
    "AuditRuleDefinition",
    "AuditRuleSpec",
    "DEFAULT_REQUIRED_DATASET_TAGS",
    "PII_COLUMN_PATTERNS",
    "audit_snapshot",
    "blocking_findings",
    "classify_column",
    "create_default_registry",
    "get_default_registry",
]

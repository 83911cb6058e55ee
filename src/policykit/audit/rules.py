"""
Governance coverage audit rules.

This module provides:
- AuditFinding: Dataclass describing one coverage gap
- AuditRuleDefinition: Dataclass describing an audit rule
- AuditRegistry: Central registry for audit rule implementations
- AuditRuleSpec: Configuration of one audit rule (from YAML)
- Built-in rules for the usual coverage gaps (unmasked PII, untagged PII,
  ungoverned datasets, tags without policies, missing required tags)
- audit_snapshot(): run audit rules over a PolicySnapshot
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel, Field, field_validator

from policykit.models.base import tags_to_dict
from policykit.models.bindings import PolicyBinding
from policykit.models.enums import RuleMode

if TYPE_CHECKING:
    from policykit.snapshot import PolicySnapshot

logger = logging.getLogger(__name__)

AuditValidator = Callable[[PolicyBinding], List["AuditFinding"]]

# Tags every dataset should carry
DEFAULT_REQUIRED_DATASET_TAGS = ["SENSITIVITY_LEVEL", "DATA_DOMAIN", "DATA_OWNER"]

# Column name heuristics: (PII category, pattern, suggested masking policy)
PII_COLUMN_PATTERNS: List[Tuple[str, str, Optional[str]]] = [
    ("SSN", r"ssn|social.*security", "SSN_MASK"),
    ("EMAIL", r"email", "EMAIL_MASK"),
    ("DOB", r"dob|birth", "DOB_MASK"),
    ("PHONE", r"phone|mobile", "PHONE_MASK"),
    ("ADDRESS", r"addr|street", "ADDRESS_MASK"),
    ("FINANCIAL", r"salary|wage|income|amount", "FINANCIAL_AMOUNT_MASK"),
    ("STUDENT_ID", r"student.*id", "STUDENT_ID_MASK"),
    ("PASSWORD", r"password|pwd", None),
    ("NAME", r"name", "NAME_MASK"),
]


def classify_column(column: str) -> Optional[Tuple[str, Optional[str]]]:
    """
    Guess whether a column holds PII from its name.

    Returns:
        (PII category, suggested masking policy or None), or None if the
        name does not look sensitive
    """
    lowered = column.lower()
    for category, pattern, suggestion in PII_COLUMN_PATTERNS:
        if re.search(pattern, lowered):
            return category, suggestion
    return None


@dataclass
class AuditFinding:
    """A coverage gap found by an audit rule."""

    rule_name: str
    dataset: str
    message: str
    column: Optional[str] = None
    mode: Optional[str] = None  # "enforced" or "advisory" - set by audit_snapshot()

    @property
    def is_blocking(self) -> bool:
        return self.mode == RuleMode.ENFORCED.value


@dataclass
class AuditRuleDefinition:
    """
    Definition of an audit rule.

    Attributes:
        name: Unique rule identifier
        description: Human-readable description
        validator_factory: Factory function that creates a validator
            The factory receives rule parameters (from YAML) and returns
            a validator that takes a PolicyBinding and returns findings.
        default_mode: Mode used when the rule runs without configuration
    """

    name: str
    description: str
    validator_factory: Callable[..., AuditValidator]
    default_mode: RuleMode = RuleMode.ADVISORY


class AuditRuleSpec(BaseModel):
    """
    Configuration of one audit rule.

    Attributes:
        rule: Rule name (must be registered in AuditRegistry)
        mode: Execution mode (enforced or advisory)
        tags: Tag names required (for required_dataset_tags)
        pattern: Column name regex (for untagged_pii_columns)
        datasets: Datasets this rule applies to (default: all)
    """
    rule: str = Field(..., description="Rule name from registry")
    mode: RuleMode = Field(
        default=RuleMode.ENFORCED,
        description="Rule execution mode"
    )
    # Parameters for specific rules
    tags: Optional[List[str]] = Field(None, description="Required tag names")
    pattern: Optional[str] = Field(None, description="Regex for PII-looking column names")
    datasets: Optional[Set[str]] = Field(None, description="Datasets this rule applies to")

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        """Validate that pattern compiles."""
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern '{v}': {e}") from e
        return v


class AuditRegistry:
    """
    Central registry for audit rule definitions.

    Usage:
        registry = AuditRegistry()
        registry.register(AuditRuleDefinition(
            name="my_rule",
            description="Custom rule",
            validator_factory=my_validator_factory
        ))

        rule_def = registry.get("my_rule")
        validator = rule_def.validator_factory(tags=["DATA_OWNER"])
        findings = validator(binding)
    """

    def __init__(self) -> None:
        self._rules: Dict[str, AuditRuleDefinition] = {}

    def register(self, rule: AuditRuleDefinition) -> None:
        """
        Register an audit rule definition.

        Raises:
            ValueError: If rule name is already registered
        """
        if rule.name in self._rules:
            raise ValueError(f"Audit rule '{rule.name}' is already registered")
        self._rules[rule.name] = rule
        logger.debug(f"Registered audit rule: {rule.name}")

    def get(self, name: str) -> AuditRuleDefinition:
        """
        Get an audit rule definition by name.

        Raises:
            KeyError: If rule is not registered
        """
        if name not in self._rules:
            available = ", ".join(sorted(self._rules.keys()))
            raise KeyError(f"Audit rule '{name}' not found. Available rules: {available}")
        return self._rules[name]

    def list_rules(self) -> List[str]:
        """Sorted list of rule names."""
        return sorted(self._rules.keys())

    def has_rule(self, name: str) -> bool:
        """Check if a rule is registered."""
        return name in self._rules

    def default_specs(self) -> List[AuditRuleSpec]:
        """One spec per registered rule, in its default mode."""
        return [
            AuditRuleSpec(rule=name, mode=self._rules[name].default_mode)
            for name in self.list_rules()
        ]


# =============================================================================
# BUILT-IN AUDIT RULES
# =============================================================================


def _column_tags(binding: PolicyBinding, column: str) -> Dict[str, str]:
    return tags_to_dict(binding.column_tags.get(column, ()))


def _unmasked_pii_columns_factory(**kwargs: Any) -> AuditValidator:
    """Factory for unmasked_pii_columns rule."""

    def validator(binding: PolicyBinding) -> List[AuditFinding]:
        findings = []
        for column in binding.columns:
            if _column_tags(binding, column).get("CONTAINS_PII") != "TRUE":
                continue
            if column in binding.masks:
                continue
            findings.append(AuditFinding(
                rule_name="unmasked_pii_columns",
                dataset=binding.dataset,
                column=column,
                message=f"{binding.dataset}.{column} is tagged CONTAINS_PII=TRUE but has no masking policy",
            ))
        return findings

    return validator


def _untagged_pii_columns_factory(
    pattern: Optional[str] = None, **kwargs: Any
) -> AuditValidator:
    """Factory for untagged_pii_columns rule."""
    regex = re.compile(pattern, re.IGNORECASE) if pattern else None

    def looks_sensitive(column: str) -> Tuple[bool, Optional[str]]:
        if regex is not None:
            return bool(regex.search(column)), None
        guess = classify_column(column)
        if guess is None:
            return False, None
        return True, guess[1]

    def validator(binding: PolicyBinding) -> List[AuditFinding]:
        findings = []
        for column in binding.columns:
            sensitive, suggestion = looks_sensitive(column)
            if not sensitive or "CONTAINS_PII" in _column_tags(binding, column):
                continue
            message = f"{binding.dataset}.{column} looks like PII but has no CONTAINS_PII tag"
            if suggestion and column not in binding.masks:
                message += f" (suggested masking policy: {suggestion})"
            findings.append(AuditFinding(
                rule_name="untagged_pii_columns",
                dataset=binding.dataset,
                column=column,
                message=message,
            ))
        return findings

    return validator


def _ungoverned_datasets_factory(**kwargs: Any) -> AuditValidator:
    """Factory for ungoverned_datasets rule."""

    def validator(binding: PolicyBinding) -> List[AuditFinding]:
        if binding.is_governed:
            return []
        return [AuditFinding(
            rule_name="ungoverned_datasets",
            dataset=binding.dataset,
            message=f"Dataset '{binding.dataset}' has no tags, masking or row access policies",
        )]

    return validator


def _tagged_without_policies_factory(**kwargs: Any) -> AuditValidator:
    """Factory for tagged_without_policies rule."""

    def validator(binding: PolicyBinding) -> List[AuditFinding]:
        has_tags = bool(binding.tags or binding.column_tags)
        if not has_tags or binding.has_policies:
            return []
        return [AuditFinding(
            rule_name="tagged_without_policies",
            dataset=binding.dataset,
            message=f"Dataset '{binding.dataset}' is tagged but has no masking or row access policies",
        )]

    return validator


def _required_dataset_tags_factory(
    tags: Optional[List[str]] = None, **kwargs: Any
) -> AuditValidator:
    """Factory for required_dataset_tags rule."""
    required_tags = tags if tags is not None else DEFAULT_REQUIRED_DATASET_TAGS

    def validator(binding: PolicyBinding) -> List[AuditFinding]:
        present = tags_to_dict(binding.tags)
        missing = [t for t in required_tags if t not in present]
        if not missing:
            return []
        return [AuditFinding(
            rule_name="required_dataset_tags",
            dataset=binding.dataset,
            message=f"Dataset '{binding.dataset}' is missing required tags: {', '.join(missing)}",
        )]

    return validator


# =============================================================================
# DEFAULT REGISTRY WITH BUILT-IN RULES
# =============================================================================


def create_default_registry() -> AuditRegistry:
    """
    Create a registry with all built-in audit rules registered.

    Returns:
        AuditRegistry with built-in rules
    """
    registry = AuditRegistry()

    registry.register(
        AuditRuleDefinition(
            name="unmasked_pii_columns",
            description="Columns tagged CONTAINS_PII=TRUE must have a masking policy",
            validator_factory=_unmasked_pii_columns_factory,
            default_mode=RuleMode.ENFORCED,
        )
    )

    registry.register(
        AuditRuleDefinition(
            name="untagged_pii_columns",
            description="Columns whose names look like PII should carry a CONTAINS_PII tag",
            validator_factory=_untagged_pii_columns_factory,
        )
    )

    registry.register(
        AuditRuleDefinition(
            name="ungoverned_datasets",
            description="Datasets should have tags or policies",
            validator_factory=_ungoverned_datasets_factory,
        )
    )

    registry.register(
        AuditRuleDefinition(
            name="tagged_without_policies",
            description="Tagged datasets should have masking or row access policies",
            validator_factory=_tagged_without_policies_factory,
        )
    )

    registry.register(
        AuditRuleDefinition(
            name="required_dataset_tags",
            description="Datasets must carry the required classification tags",
            validator_factory=_required_dataset_tags_factory,
        )
    )

    return registry


# Global default registry instance
_default_registry: Optional[AuditRegistry] = None


def get_default_registry() -> AuditRegistry:
    """
    Get the default audit registry (singleton).

    Returns:
        The default AuditRegistry with built-in rules
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = create_default_registry()
    return _default_registry


# =============================================================================
# AUDIT ENTRY POINT
# =============================================================================


def audit_snapshot(
    snapshot: PolicySnapshot,
    rules: Optional[Iterable[AuditRuleSpec]] = None,
    registry: Optional[AuditRegistry] = None,
) -> List[AuditFinding]:
    """
    Run coverage audit rules over every dataset of a snapshot.

    Args:
        snapshot: Policy snapshot to audit
        rules: Rules to run (default: the snapshot's configured audit rules,
            or every registered rule in its default mode if none configured)
        registry: Optional audit registry (uses default if not provided)

    Returns:
        Findings ordered by rule, then dataset

    Raises:
        KeyError: If a rule is not registered
    """
    registry = registry or get_default_registry()
    if rules is None:
        rules = snapshot.audit_rules or registry.default_specs()

    findings: List[AuditFinding] = []
    for rule_spec in rules:
        rule_def = registry.get(rule_spec.rule)

        params: Dict[str, Any] = {}
        if rule_spec.tags is not None:
            params["tags"] = rule_spec.tags
        if rule_spec.pattern:
            params["pattern"] = rule_spec.pattern
        validator = rule_def.validator_factory(**params)

        for binding in snapshot.bindings:
            if rule_spec.datasets and binding.dataset not in rule_spec.datasets:
                continue
            for finding in validator(binding):
                finding.mode = rule_spec.mode.value
                if rule_spec.mode == RuleMode.ADVISORY:
                    logger.warning(f"[ADVISORY] {finding.message}")
                findings.append(finding)

    logger.info(f"Audit of '{snapshot.name}' found {len(findings)} issue(s)")
    return findings


def blocking_findings(findings: Iterable[AuditFinding]) -> List[str]:
    """Messages of findings from enforced rules."""
    return [f.message for f in findings if f.is_blocking]


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

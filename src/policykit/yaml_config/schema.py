"""
Pydantic models for YAML policy file validation.

This module defines the data models that represent the structure of YAML
policy files. Roles, tag definitions and policies are validated directly as
their model classes; datasets refer to policies by name and are resolved into
PolicyBindings when the snapshot is built.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from policykit.audit.rules import AuditRuleSpec, get_default_registry
from policykit.exceptions import ConfigError
from policykit.models.base import Tag, tag_value_to_str
from policykit.models.bindings import PolicyBinding
from policykit.models.policies import MaskingRule, RowAccessRule
from policykit.models.roles import Role
from policykit.models.tags import TagDefinition
from policykit.snapshot import PolicySnapshot


def _stringify_tags(v: Any) -> Any:
    if isinstance(v, dict):
        return {str(k): tag_value_to_str(val) for k, val in v.items()}
    return v


class RowFilterSpec(BaseModel):
    """
    A row access policy attached to a dataset.

    Attributes:
        policy: Row access policy name
        attribute: Row attribute the policy reads (default: the policy's own attribute)
    """
    model_config = ConfigDict(extra="forbid")

    policy: str = Field(..., description="Row access policy name")
    attribute: Optional[str] = Field(None, description="Row attribute passed to the policy")


class ColumnSpec(BaseModel):
    """
    Masking policy and tags for one column.

    Attributes:
        masking_policy: Masking policy name (None = unmasked)
        tags: Column tags; override dataset tags with the same key
    """
    model_config = ConfigDict(extra="forbid")

    masking_policy: Optional[str] = Field(None, description="Masking policy name")
    tags: Dict[str, str] = Field(default_factory=dict, description="Column tags")

    @field_validator("tags", mode="before")
    @classmethod
    def stringify_tags(cls, v: Any) -> Any:
        """YAML reads TRUE/FALSE as booleans; tag values are always strings."""
        return _stringify_tags(v)


class DatasetSpec(BaseModel):
    """
    Specification of one governed dataset.

    Example YAML:
        - name: DIM_STUDENT
          tags: { SENSITIVITY_LEVEL: RESTRICTED, DATA_DOMAIN: ENROLLMENT }
          row_access:
            - { policy: ENROLLMENT_ROW_ACCESS, attribute: enrollment_status }
          columns:
            ssn: { masking_policy: SSN_MASK, tags: { CONTAINS_PII: TRUE } }
    """
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, description="Dataset identifier")
    comment: Optional[str] = Field(None, description="Description of the dataset")
    tags: Dict[str, str] = Field(default_factory=dict, description="Dataset tags")
    row_access: List[RowFilterSpec] = Field(
        default_factory=list,
        description="Row access policies, AND-combined"
    )
    columns: Dict[str, ColumnSpec] = Field(default_factory=dict, description="Column settings")

    @field_validator("tags", mode="before")
    @classmethod
    def stringify_tags(cls, v: Any) -> Any:
        """YAML reads TRUE/FALSE as booleans; tag values are always strings."""
        return _stringify_tags(v)

    @field_validator("row_access", mode="before")
    @classmethod
    def expand_shorthand(cls, v: Any) -> Any:
        """Accept a bare policy name as shorthand for {policy: name}."""
        if isinstance(v, list):
            return [{"policy": item} if isinstance(item, str) else item for item in v]
        return v

    def to_binding(
        self,
        masking_rules: Dict[str, MaskingRule],
        row_access_rules: Dict[str, RowAccessRule],
    ) -> PolicyBinding:
        """
        Resolve policy names into a PolicyBinding.

        Raises:
            ConfigError: If a referenced policy is not defined
        """
        row_rules = []
        for spec in self.row_access:
            if spec.policy not in row_access_rules:
                raise ConfigError(
                    f"Dataset '{self.name}' references undefined row access policy '{spec.policy}'"
                )
            rule = row_access_rules[spec.policy]
            row_rules.append(rule.bound_to(spec.attribute) if spec.attribute else rule)

        masks = {}
        column_tags = {}
        for column, spec in self.columns.items():
            if spec.masking_policy is not None:
                if spec.masking_policy not in masking_rules:
                    raise ConfigError(
                        f"Dataset '{self.name}' column '{column}' references undefined "
                        f"masking policy '{spec.masking_policy}'"
                    )
                masks[column] = masking_rules[spec.masking_policy]
            if spec.tags:
                column_tags[column] = tuple(Tag.from_dict(spec.tags))

        try:
            return PolicyBinding(
                dataset=self.name,
                row_rules=tuple(row_rules),
                masks=masks,
                tags=tuple(Tag.from_dict(self.tags)),
                column_tags=column_tags,
                comment=self.comment,
            )
        except ValidationError as e:
            raise ConfigError(f"Dataset '{self.name}': {e}") from e


class PolicyConfigSchema(BaseModel):
    """
    Root schema for YAML policy files.

    Example YAML:
        version: "1.0"
        name: ditteau_data

        roles:
          - name: GOVERNANCE_ADMIN_ROLE
          - name: SYSADMIN
            inherits: [GOVERNANCE_ADMIN_ROLE]

        masking_policies:
          - name: SSN_MASK
            type: STRING
            cases:
              - roles: [REGISTRAR_ANALYST_ROLE]
                transform: identity
            default: { kind: constant, value: "XXX-XX-XXXX" }

        row_access_policies:
          - name: ACTIVE_RECORDS_ONLY
            attribute: is_active
            type: BOOLEAN
            cases:
              - roles: [DATA_ANALYST_ROLE]
                condition: is_true

        datasets:
          - name: DIM_STUDENT
            row_access: [ACTIVE_RECORDS_ONLY]
            columns:
              ssn: { masking_policy: SSN_MASK }

        audit:
          - rule: unmasked_pii_columns
            mode: enforced
    """
    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1.0", description="Schema version")
    name: str = Field(default="policies", description="Policy set name")

    roles: List[Role] = Field(default_factory=list, description="Role definitions")
    tags: List[TagDefinition] = Field(default_factory=list, description="Tag taxonomy")
    masking_policies: List[MaskingRule] = Field(default_factory=list, description="Masking policies")
    row_access_policies: List[RowAccessRule] = Field(
        default_factory=list,
        description="Row access policies"
    )
    datasets: List[DatasetSpec] = Field(default_factory=list, description="Dataset bindings")
    audit: List[AuditRuleSpec] = Field(default_factory=list, description="Coverage audit rules")

    @field_validator("version", mode="before")
    @classmethod
    def stringify_version(cls, v: Any) -> Any:
        """Accept `version: 1.0` written without quotes."""
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @classmethod
    def merge(cls, schemas: Iterable[PolicyConfigSchema], name: Optional[str] = None) -> PolicyConfigSchema:
        """
        Concatenate several policy files into one.

        Duplicate names are kept; the snapshot build reports them.
        """
        schemas = list(schemas)
        return cls(
            version=schemas[0].version if schemas else "1.0",
            name=name or (schemas[0].name if len(schemas) == 1 else "policies"),
            roles=[r for s in schemas for r in s.roles],
            tags=[t for s in schemas for t in s.tags],
            masking_policies=[p for s in schemas for p in s.masking_policies],
            row_access_policies=[p for s in schemas for p in s.row_access_policies],
            datasets=[d for s in schemas for d in s.datasets],
            audit=[a for s in schemas for a in s.audit],
        )

    def to_snapshot(self) -> PolicySnapshot:
        """
        Resolve and validate the configuration into a PolicySnapshot.

        Raises:
            ConfigError: On any reference, type or tag error
        """
        # first definition wins here; build() reports the duplicate
        masking_rules = {}
        for rule in self.masking_policies:
            masking_rules.setdefault(rule.name, rule)
        row_access_rules = {}
        for rule in self.row_access_policies:
            row_access_rules.setdefault(rule.name, rule)

        bindings = [d.to_binding(masking_rules, row_access_rules) for d in self.datasets]

        audit_registry = get_default_registry()
        for spec in self.audit:
            if not audit_registry.has_rule(spec.rule):
                available = ", ".join(audit_registry.list_rules())
                raise ConfigError(f"Unknown audit rule '{spec.rule}'. Available rules: {available}")

        return PolicySnapshot.build(
            roles=self.roles,
            masking_rules=self.masking_policies,
            row_access_rules=self.row_access_policies,
            bindings=bindings,
            tag_definitions=self.tags,
            audit_rules=self.audit,
            name=self.name,
            version=self.version,
        )


__all__ = [
    "ColumnSpec",
    "DatasetSpec",
    "PolicyConfigSchema",
    "RowFilterSpec",
]

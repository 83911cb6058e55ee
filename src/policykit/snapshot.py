"""
Policy snapshots.

A PolicySnapshot is the complete, validated, immutable policy configuration:
roles, masking rules, row access rules, dataset bindings, the tag taxonomy
and audit rule settings. Every cross-reference is checked when the snapshot
is built, so evaluation never meets a dangling role or policy name.

PolicyStore holds the current snapshot for long-running services. Reloading
builds a fresh snapshot and swaps it in; in-flight evaluations keep using the
snapshot they started with.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Tuple

from policykit.exceptions import ConfigError
from policykit.models.base import get_reference_date
from policykit.models.bindings import PolicyBinding
from policykit.models.policies import MaskingRule, RowAccessRule
from policykit.models.roles import Role, RoleRegistry
from policykit.models.tags import TagDefinition, TagTaxonomy

if TYPE_CHECKING:
    from policykit.audit.rules import AuditRuleSpec
    from policykit.evaluation import Evaluator

logger = logging.getLogger(__name__)


def _index_by_name(items: Iterable, kind: str) -> Dict[str, object]:
    indexed: Dict[str, object] = {}
    for item in items:
        if item.name in indexed:
            raise ConfigError(f"{kind} '{item.name}' is defined more than once")
        indexed[item.name] = item
    return indexed


class PolicySnapshot:
    """
    Immutable, fully validated policy configuration.

    Build it with `PolicySnapshot.build()` (or the YAML loader); the
    constructor does not validate.

    Usage:
        snapshot = PolicySnapshot.build(
            roles=[Role(name="ANALYST")],
            masking_rules=[ssn_mask],
            row_access_rules=[],
            bindings=[PolicyBinding(dataset="DIM_STUDENT", masks={"ssn": ssn_mask})],
        )
        evaluator = snapshot.evaluator()
    """

    def __init__(
        self,
        registry: RoleRegistry,
        masking_rules: Dict[str, MaskingRule],
        row_access_rules: Dict[str, RowAccessRule],
        bindings: Dict[str, PolicyBinding],
        taxonomy: TagTaxonomy,
        audit_rules: Tuple[AuditRuleSpec, ...] = (),
        name: str = "policies",
        version: Optional[str] = None,
    ) -> None:
        self._registry = registry
        self._masking_rules = dict(masking_rules)
        self._row_access_rules = dict(row_access_rules)
        self._bindings = dict(bindings)
        self._taxonomy = taxonomy
        self._audit_rules = tuple(audit_rules)
        self.name = name
        self.version = version

    @classmethod
    def build(
        cls,
        roles: Iterable[Role],
        masking_rules: Iterable[MaskingRule],
        row_access_rules: Iterable[RowAccessRule],
        bindings: Iterable[PolicyBinding],
        tag_definitions: Iterable[TagDefinition] = (),
        audit_rules: Iterable[AuditRuleSpec] = (),
        name: str = "policies",
        version: Optional[str] = None,
    ) -> PolicySnapshot:
        """
        Validate a policy configuration and build a snapshot.

        Checks performed:
        - Role inheritance is acyclic and references only declared roles
        - Policy names are unique per kind
        - Every role a policy references is declared
        - Transforms and conditions fit each policy's attribute type
        - Bindings reference defined policies, one binding per dataset
        - Tags use declared names and allowed values

        Raises:
            ConfigError: On any of the above
        """
        registry = RoleRegistry.from_roles(roles)

        masks: Dict[str, MaskingRule] = _index_by_name(masking_rules, "Masking policy")  # type: ignore[assignment]
        filters: Dict[str, RowAccessRule] = _index_by_name(row_access_rules, "Row access policy")  # type: ignore[assignment]

        for rule in masks.values():
            rule.check(registry)
        for rule in filters.values():
            rule.check(registry)

        taxonomy = TagTaxonomy(tag_definitions)

        indexed_bindings: Dict[str, PolicyBinding] = {}
        errors: List[str] = []
        for binding in bindings:
            if binding.dataset in indexed_bindings:
                raise ConfigError(f"Dataset '{binding.dataset}' is bound more than once")
            _check_binding(binding, masks, filters)
            for column, tag in binding.all_tags():
                where = binding.dataset if column is None else f"{binding.dataset}.{column}"
                errors.extend(taxonomy.validate_tags([tag], where))
            indexed_bindings[binding.dataset] = binding

        if errors:
            raise ConfigError("Invalid tags:\n  " + "\n  ".join(errors))

        registry.freeze()
        snapshot = cls(
            registry=registry,
            masking_rules=masks,
            row_access_rules=filters,
            bindings=indexed_bindings,
            taxonomy=taxonomy,
            audit_rules=tuple(audit_rules),
            name=name,
            version=version,
        )
        logger.info(
            f"Built policy snapshot '{name}': {len(registry)} roles, {len(masks)} masking, "
            f"{len(filters)} row access policies, {len(indexed_bindings)} datasets"
        )
        return snapshot

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def registry(self) -> RoleRegistry:
        return self._registry

    @property
    def taxonomy(self) -> TagTaxonomy:
        return self._taxonomy

    @property
    def audit_rules(self) -> Tuple[AuditRuleSpec, ...]:
        return self._audit_rules

    @property
    def datasets(self) -> List[str]:
        return sorted(self._bindings.keys())

    @property
    def bindings(self) -> List[PolicyBinding]:
        return [self._bindings[d] for d in self.datasets]

    @property
    def masking_rules(self) -> List[MaskingRule]:
        return [self._masking_rules[n] for n in sorted(self._masking_rules)]

    @property
    def row_access_rules(self) -> List[RowAccessRule]:
        return [self._row_access_rules[n] for n in sorted(self._row_access_rules)]

    def binding(self, dataset_id: str) -> PolicyBinding:
        """
        Get the binding for a dataset.

        Raises:
            KeyError: If the dataset is not bound
        """
        if dataset_id not in self._bindings:
            available = ", ".join(self.datasets)
            raise KeyError(f"Dataset '{dataset_id}' not found. Available datasets: {available}")
        return self._bindings[dataset_id]

    def masking_rule(self, name: str) -> MaskingRule:
        """
        Get a masking policy by name.

        Raises:
            KeyError: If the policy is not defined
        """
        if name not in self._masking_rules:
            available = ", ".join(sorted(self._masking_rules))
            raise KeyError(f"Masking policy '{name}' not found. Available policies: {available}")
        return self._masking_rules[name]

    def row_access_rule(self, name: str) -> RowAccessRule:
        """
        Get a row access policy by name.

        Raises:
            KeyError: If the policy is not defined
        """
        if name not in self._row_access_rules:
            available = ", ".join(sorted(self._row_access_rules))
            raise KeyError(f"Row access policy '{name}' not found. Available policies: {available}")
        return self._row_access_rules[name]

    def unbound_policies(self) -> List[str]:
        """Names of defined policies that no dataset binds."""
        used = set()
        for binding in self._bindings.values():
            used.update(rule.name for rule in binding.row_rules)
            used.update(rule.name for rule in binding.masks.values())
        defined = set(self._masking_rules) | set(self._row_access_rules)
        return sorted(defined - used)

    def evaluator(self, clock: Callable[[], date] = get_reference_date) -> Evaluator:
        """Create an Evaluator over this snapshot."""
        from policykit.evaluation import Evaluator
        return Evaluator(self, clock=clock)

    def __repr__(self) -> str:
        return f"PolicySnapshot(name={self.name!r}, version={self.version!r}, datasets={len(self._bindings)})"


def _check_binding(
    binding: PolicyBinding,
    masks: Dict[str, MaskingRule],
    filters: Dict[str, RowAccessRule],
) -> None:
    """
    Check that a binding references defined policies.

    A bound rule may read a different attribute than its definition (see
    RowAccessRule.bound_to()), so rules are matched by name with the attribute
    ignored.
    """
    for rule in binding.row_rules:
        defined = filters.get(rule.name)
        if defined is None:
            raise ConfigError(
                f"Dataset '{binding.dataset}' references undefined row access policy '{rule.name}'"
            )
        if defined.bound_to(rule.attribute) != rule:
            raise ConfigError(
                f"Dataset '{binding.dataset}' binds a row access policy '{rule.name}' "
                f"that differs from its definition"
            )
    for column, rule in binding.masks.items():
        defined_mask = masks.get(rule.name)
        if defined_mask is None:
            raise ConfigError(
                f"Dataset '{binding.dataset}' column '{column}' references undefined masking policy '{rule.name}'"
            )
        if defined_mask != rule:
            raise ConfigError(
                f"Dataset '{binding.dataset}' column '{column}' binds a masking policy '{rule.name}' "
                f"that differs from its definition"
            )


class PolicyStore:
    """
    Holder of the current PolicySnapshot.

    Readers take the current snapshot (or an evaluator over it) and keep it
    for the duration of their work; `replace()` swaps in a new snapshot
    atomically.
    """

    def __init__(self, snapshot: PolicySnapshot) -> None:
        self._snapshot = snapshot
        self._lock = threading.Lock()

    @property
    def current(self) -> PolicySnapshot:
        with self._lock:
            return self._snapshot

    def replace(self, snapshot: PolicySnapshot) -> PolicySnapshot:
        """
        Swap in a new snapshot.

        Returns:
            The previous snapshot
        """
        with self._lock:
            previous, self._snapshot = self._snapshot, snapshot
        logger.info(f"Replaced policy snapshot {previous!r} with {snapshot!r}")
        return previous

    def evaluator(self, clock: Callable[[], date] = get_reference_date) -> Evaluator:
        """Evaluator over the current snapshot."""
        return self.current.evaluator(clock=clock)


__all__ = [
    "PolicySnapshot",
    "PolicyStore",
]

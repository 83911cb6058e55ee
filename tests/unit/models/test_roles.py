"""
Unit tests for Role and RoleRegistry.

Tests transitive memberships, cycle detection and unknown role handling.
"""

import pytest

from policykit.exceptions import ConfigError, UnknownRoleWarning
from policykit.models import EvaluationContext, Role, RoleRegistry
from tests.fixtures import make_registry, make_roles


class TestRole:
    """Tests for Role model."""

    def test_inherits_defaults_to_empty(self) -> None:
        """A role with no parents has an empty inherits set."""
        role = Role(name="ANALYST")
        assert role.inherits == frozenset()

    def test_name_must_be_identifier(self) -> None:
        """Role names are identifiers."""
        with pytest.raises(ValueError):
            Role(name="not a role")

    def test_role_is_frozen(self) -> None:
        """Roles cannot be modified after creation."""
        role = Role(name="ANALYST")
        with pytest.raises(ValueError):
            role.name = "OTHER"  # type: ignore[misc]


class TestRoleRegistry:
    """Tests for RoleRegistry."""

    def test_membership_includes_self(self) -> None:
        """A registered role is a member of itself."""
        registry = make_registry()
        assert registry.memberships("ANALYST") == frozenset({"ANALYST"})

    def test_transitive_memberships(self) -> None:
        """Memberships follow inheritance transitively."""
        registry = make_registry(
            names=["BASE", "MIDDLE", "TOP"],
            inherits={"MIDDLE": ["BASE"], "TOP": ["MIDDLE"]},
        )
        assert registry.memberships("TOP") == frozenset({"TOP", "MIDDLE", "BASE"})
        assert registry.is_member("TOP", {"BASE"})
        assert not registry.is_member("BASE", {"TOP"})

    def test_declaration_order_does_not_matter(self) -> None:
        """Children may be declared before their parents."""
        roles = [
            Role(name="SYSADMIN", inherits=frozenset({"GOVERNANCE_ADMIN"})),
            Role(name="GOVERNANCE_ADMIN"),
        ]
        registry = RoleRegistry.from_roles(roles)
        assert registry.is_member("SYSADMIN", {"GOVERNANCE_ADMIN"})

    def test_diamond_inheritance(self) -> None:
        """A role reachable by two paths appears once in the closure."""
        registry = make_registry(
            names=["ROOT", "LEFT", "RIGHT", "LEAF"],
            inherits={"LEFT": ["ROOT"], "RIGHT": ["ROOT"], "LEAF": ["LEFT", "RIGHT"]},
        )
        assert registry.memberships("LEAF") == frozenset({"LEAF", "LEFT", "RIGHT", "ROOT"})

    def test_cycle_rejected(self) -> None:
        """Inheritance cycles are configuration errors."""
        with pytest.raises(ConfigError) as exc_info:
            make_registry(names=["A", "B", "C"], inherits={"A": ["C"], "B": ["A"], "C": ["B"]})
        assert "cycle" in str(exc_info.value)

    def test_self_inheritance_rejected(self) -> None:
        """A role cannot inherit from itself."""
        with pytest.raises(ConfigError):
            RoleRegistry.from_roles([Role(name="A", inherits=frozenset({"A"}))])

    def test_undeclared_parent_rejected(self) -> None:
        """Parents must be declared."""
        with pytest.raises(ConfigError) as exc_info:
            make_registry(names=["CHILD"], inherits={"CHILD": ["MISSING"]})
        assert "MISSING" in str(exc_info.value)

    def test_duplicate_role_rejected(self) -> None:
        """Role names are unique."""
        with pytest.raises(ConfigError):
            RoleRegistry.from_roles(make_roles(["A", "A"]))

    def test_frozen_registry_rejects_registration(self) -> None:
        """No roles can be added after freeze()."""
        registry = make_registry()
        registry.freeze()
        assert registry.frozen
        with pytest.raises(ConfigError):
            registry.register(Role(name="LATE"))

    def test_get_unknown_role_lists_available(self) -> None:
        """get() names the available roles for unknown roles."""
        registry = make_registry()
        with pytest.raises(KeyError) as exc_info:
            registry.get("NOBODY")
        assert "ANALYST" in str(exc_info.value)

    def test_unknown_role_has_no_memberships(self) -> None:
        """Unknown roles match nothing, not even their own name."""
        registry = make_registry()
        assert registry.memberships("NOBODY") == frozenset()
        assert not registry.is_member("NOBODY", {"NOBODY"})

    def test_resolve_unknown_role_warns(self) -> None:
        """resolve() warns for unknown roles and returns no memberships."""
        registry = make_registry()
        with pytest.warns(UnknownRoleWarning):
            assert registry.resolve("NOBODY") == frozenset()

    def test_names_are_case_sensitive(self) -> None:
        """Role lookups are case-sensitive."""
        registry = make_registry()
        assert "ANALYST" in registry
        assert "analyst" not in registry

    def test_list_roles_sorted(self) -> None:
        """list_roles() is sorted."""
        registry = make_registry(names=["B", "A"])
        assert registry.list_roles() == ["A", "B"]
        assert len(registry) == 2


class TestEvaluationContext:
    """Tests for EvaluationContext."""

    def test_for_role_resolves_memberships(self) -> None:
        """for_role() takes memberships from the registry."""
        registry = make_registry(names=["BASE", "TOP"], inherits={"TOP": ["BASE"]})
        ctx = EvaluationContext.for_role("TOP", registry)
        assert ctx.known_role
        assert ctx.has_any(frozenset({"BASE"}))

    def test_for_unknown_role(self) -> None:
        """Unknown roles get an empty context flagged as unknown."""
        registry = make_registry()
        with pytest.warns(UnknownRoleWarning):
            ctx = EvaluationContext.for_role("NOBODY", registry)
        assert not ctx.known_role
        assert ctx.memberships == frozenset()
        assert not ctx.has_any(frozenset({"NOBODY"}))

    def test_reference_date_from_environment(self, fixed_reference_date) -> None:
        """The reference date defaults to POLICYKIT_REFERENCE_DATE."""
        ctx = EvaluationContext.for_role("ANALYST", make_registry())
        assert ctx.reference_date == fixed_reference_date

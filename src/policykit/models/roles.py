"""
Role models and the role registry.

Roles form a DAG: a role inherits every membership of the roles listed in
its `inherits` set. Membership resolution is the transitive closure and is
computed once at registration time.
"""

from __future__ import annotations

import logging
import warnings
from typing import Dict, FrozenSet, Iterable, List, Optional

from pydantic import Field

from policykit.exceptions import ConfigError, UnknownRoleWarning

from .base import BaseGovernanceModel

logger = logging.getLogger(__name__)


class Role(BaseGovernanceModel):
    """
    A named role, optionally inheriting from other roles.

    Role names are case-sensitive identifiers.
    """
    name: str = Field(
        ...,
        pattern=r'^[A-Za-z_][A-Za-z0-9_]*$',
        description="Role identifier (case-sensitive)"
    )
    inherits: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Roles this role inherits memberships from"
    )
    comment: Optional[str] = Field(None, max_length=1024, description="Description of the role")


class RoleRegistry:
    """
    Registry of roles with precomputed transitive memberships.

    The registry is built once during configuration load and frozen before
    it is handed to evaluators. Lookups never mutate it.

    Usage:
        registry = RoleRegistry.from_roles([
            Role(name="ANALYST"),
            Role(name="SENIOR_ANALYST", inherits={"ANALYST"}),
        ])
        registry.is_member("SENIOR_ANALYST", {"ANALYST"})  # True
    """

    def __init__(self) -> None:
        self._roles: Dict[str, Role] = {}
        self._closure: Dict[str, FrozenSet[str]] = {}
        self._frozen = False

    @classmethod
    def from_roles(cls, roles: Iterable[Role]) -> RoleRegistry:
        """
        Build a registry from roles declared in any order.

        Roles are registered parents-first. Cycles, duplicate names and
        references to undeclared roles raise ConfigError.

        Args:
            roles: Role definitions

        Returns:
            A new RoleRegistry (not yet frozen)
        """
        declared: Dict[str, Role] = {}
        for role in roles:
            if role.name in declared:
                raise ConfigError(f"Role '{role.name}' is declared more than once")
            declared[role.name] = role

        for role in declared.values():
            unknown = role.inherits - declared.keys()
            if unknown:
                raise ConfigError(
                    f"Role '{role.name}' inherits from undeclared role(s): {sorted(unknown)}"
                )

        registry = cls()
        for name in _topological_order(declared):
            registry.register(declared[name])
        return registry

    def register(self, role: Role) -> None:
        """
        Register a role whose parents are already registered.

        Args:
            role: Role to register

        Raises:
            ConfigError: If the registry is frozen, the name is taken, the role
                inherits from itself, or a parent is not registered
        """
        if self._frozen:
            raise ConfigError(f"Cannot register role '{role.name}': registry is frozen")
        if role.name in self._roles:
            raise ConfigError(f"Role '{role.name}' is already registered")
        if role.name in role.inherits:
            raise ConfigError(f"Role cycle detected: {role.name} -> {role.name}")

        missing = role.inherits - self._roles.keys()
        if missing:
            raise ConfigError(
                f"Role '{role.name}' inherits from unregistered role(s): {sorted(missing)}"
            )

        closure = {role.name}
        for parent in role.inherits:
            closure |= self._closure[parent]

        self._roles[role.name] = role
        self._closure[role.name] = frozenset(closure)
        logger.debug(f"Registered role: {role.name} (memberships: {sorted(closure)})")

    def freeze(self) -> None:
        """Disallow further registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def knows(self, role: str) -> bool:
        """Check if a role is registered."""
        return role in self._roles

    def get(self, role: str) -> Role:
        """
        Get a role definition by name.

        Raises:
            KeyError: If role is not registered
        """
        if role not in self._roles:
            available = ", ".join(sorted(self._roles.keys()))
            raise KeyError(f"Role '{role}' not found. Available roles: {available}")
        return self._roles[role]

    def list_roles(self) -> List[str]:
        """Sorted list of registered role names."""
        return sorted(self._roles.keys())

    def memberships(self, role: str) -> FrozenSet[str]:
        """
        Get the role plus every role it transitively inherits from.

        Unknown roles have no memberships at all, not even themselves.
        """
        return self._closure.get(role, frozenset())

    def is_member(self, role: str, role_set: Iterable[str]) -> bool:
        """
        Check if `role` equals or transitively inherits from any role in `role_set`.

        Unknown roles never match.
        """
        return not self.memberships(role).isdisjoint(role_set)

    def resolve(self, role: str) -> FrozenSet[str]:
        """
        Resolve memberships for an acting role at evaluation time.

        Emits UnknownRoleWarning for unregistered roles and returns an empty
        set so every predicate fails closed.
        """
        if role not in self._closure:
            message = f"Role '{role}' is not registered; treating it as having no memberships"
            logger.warning(message)
            warnings.warn(message, UnknownRoleWarning, stacklevel=3)
            return frozenset()
        return self._closure[role]

    def __contains__(self, role: object) -> bool:
        return role in self._roles

    def __len__(self) -> int:
        return len(self._roles)


def _topological_order(roles: Dict[str, Role]) -> List[str]:
    """
    Order role names so every parent precedes its children.

    Raises:
        ConfigError: If the inheritance graph contains a cycle
    """
    order: List[str] = []
    state: Dict[str, str] = {}  # "visiting" or "done"

    def visit(name: str, path: List[str]) -> None:
        if state.get(name) == "done":
            return
        if state.get(name) == "visiting":
            cycle = path[path.index(name):] + [name]
            raise ConfigError(f"Role cycle detected: {' -> '.join(cycle)}")
        state[name] = "visiting"
        for parent in sorted(roles[name].inherits):
            visit(parent, path + [name])
        state[name] = "done"
        order.append(name)

    for name in sorted(roles):
        visit(name, [])
    return order


__all__ = [
    "Role",
    "RoleRegistry",
]

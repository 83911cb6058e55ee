"""
Per-request evaluation context.

Replaces ambient session state (current role, current date) with an explicit,
immutable value created for each access request.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, FrozenSet, Optional

from pydantic import Field

from .base import BaseGovernanceModel, get_reference_date

if TYPE_CHECKING:
    from .roles import RoleRegistry


class EvaluationContext(BaseGovernanceModel):
    """
    The acting role, its resolved memberships and the reference date.

    Build it with `for_role()` so memberships come from the registry; an
    unregistered role gets an empty membership set.
    """
    role: str = Field(..., description="Acting role name")
    memberships: FrozenSet[str] = Field(
        default_factory=frozenset,
        description="Acting role plus every role it inherits from"
    )
    reference_date: date = Field(
        default_factory=get_reference_date,
        description="Date that time-window predicates are measured from"
    )
    known_role: bool = Field(True, description="Whether the acting role is registered")

    @classmethod
    def for_role(
        cls,
        role: str,
        registry: RoleRegistry,
        reference_date: Optional[date] = None,
    ) -> EvaluationContext:
        """
        Create a context for an acting role.

        Args:
            role: Acting role name
            registry: Registry used to resolve memberships
            reference_date: Clock override (defaults to get_reference_date())

        Returns:
            EvaluationContext
        """
        memberships = registry.resolve(role)
        return cls(
            role=role,
            memberships=memberships,
            reference_date=reference_date or get_reference_date(),
            known_role=registry.knows(role),
        )

    def has_any(self, roles: FrozenSet[str]) -> bool:
        """Check if the acting role is, or inherits from, any of `roles`."""
        return not self.memberships.isdisjoint(roles)

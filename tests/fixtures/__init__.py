"""Test fixtures for policykit."""

from .model_factories import (
    make_binding,
    make_context,
    make_masking_rule,
    make_registry,
    make_roles,
    make_row_rule,
    make_snapshot,
    make_tag,
)

__all__ = [
    "make_binding",
    "make_context",
    "make_masking_rule",
    "make_registry",
    "make_roles",
    "make_row_rule",
    "make_snapshot",
    "make_tag",
]

"""
Unit tests for MaskingRule and RowAccessRule.

Tests case ordering, role inheritance and validation against a registry.
"""

from datetime import date

import pytest

from policykit.exceptions import ConfigError, EvaluationError
from policykit.models import (
    AttributeType,
    MaskingCase,
    MaskingRule,
    RowAccessCase,
    RowAccessRule,
    Transform,
    ValueCondition,
)
from tests.fixtures import make_context, make_masking_rule, make_registry, make_row_rule


class TestMaskingRule:
    """Tests for MaskingRule."""

    def test_type_alias(self) -> None:
        """The attribute type may be given as 'type'."""
        rule = MaskingRule.model_validate({
            "name": "DOB_MASK",
            "type": "date",
            "default": {"kind": "constant", "value": None},
        })
        assert rule.attribute_type == AttributeType.DATE

    def test_matching_case_applies(self) -> None:
        """A role listed in a case gets that case's transform."""
        rule = make_masking_rule()
        assert rule.evaluate(make_context("ADMIN"), "123-45-6789") == "123-45-6789"
        assert rule.evaluate(make_context("ENGINEER"), "123-45-6789") == "XXX-XX-6789"

    def test_default_applies_without_match(self) -> None:
        """Roles matching no case get the default."""
        rule = make_masking_rule()
        assert rule.evaluate(make_context("ANALYST"), "123-45-6789") == "XXX-XX-XXXX"

    def test_first_match_wins(self) -> None:
        """The earliest matching case decides, later cases are ignored."""
        rule = make_masking_rule(cases=[
            MaskingCase(roles=frozenset({"ENGINEER"}), transform=Transform.constant("first")),
            MaskingCase(roles=frozenset({"ENGINEER"}), transform=Transform.constant("second")),
        ])
        index, transform = rule.select(make_context("ENGINEER"))
        assert index == 0
        assert rule.evaluate(make_context("ENGINEER"), "x") == "first"

    def test_inherited_role_matches(self) -> None:
        """A role inheriting from a listed role matches the case."""
        registry = make_registry(
            names=["ADMIN", "SYSADMIN", "ENGINEER"],
            inherits={"SYSADMIN": ["ADMIN"]},
        )
        rule = make_masking_rule()
        assert rule.evaluate(make_context("SYSADMIN", registry), "123-45-6789") == "123-45-6789"

    def test_select_reports_default(self) -> None:
        """select() returns None as index for the default."""
        index, transform = make_masking_rule().select(make_context("GUEST"))
        assert index is None
        assert transform == Transform.constant("XXX-XX-XXXX")

    def test_mistyped_value_raises(self) -> None:
        """Values must match the declared attribute type."""
        with pytest.raises(EvaluationError) as exc_info:
            make_masking_rule().evaluate(make_context("ADMIN"), 123456789, column="ssn")
        assert exc_info.value.attribute == "ssn"
        assert exc_info.value.policy == "SSN_MASK"

    def test_null_value_masked(self) -> None:
        """Null input follows the selected transform."""
        rule = make_masking_rule()
        assert rule.evaluate(make_context("ENGINEER"), None) is None
        assert rule.evaluate(make_context("GUEST"), None) == "XXX-XX-XXXX"

    def test_roles_collects_case_roles(self) -> None:
        """roles is the union of every case's roles."""
        assert make_masking_rule().roles == frozenset({"ADMIN", "ENGINEER"})

    def test_check_rejects_unknown_role(self) -> None:
        """Rules may only reference declared roles."""
        rule = make_masking_rule(cases=[
            MaskingCase(roles=frozenset({"MISSING"}), transform=Transform.identity()),
        ])
        with pytest.raises(ConfigError) as exc_info:
            rule.check(make_registry())
        assert "MISSING" in str(exc_info.value)

    def test_check_rejects_incompatible_transform(self) -> None:
        """Transforms must fit the attribute type."""
        rule = make_masking_rule(
            attribute_type=AttributeType.NUMBER,
            cases=[MaskingCase(roles=frozenset({"ADMIN"}), transform=Transform.initials())],
            default=Transform.constant(None),
        )
        with pytest.raises(ConfigError):
            rule.check(make_registry())

    def test_check_rejects_mistyped_default(self) -> None:
        """The default constant must be of the attribute type."""
        rule = make_masking_rule(
            attribute_type=AttributeType.DATE,
            cases=[],
            default=Transform.constant("1900-01-01"),
        )
        with pytest.raises(ConfigError):
            rule.check(make_registry())

    def test_cases_require_roles(self) -> None:
        """A case must name at least one role."""
        with pytest.raises(ValueError):
            MaskingCase(roles=frozenset(), transform=Transform.identity())


class TestRowAccessRule:
    """Tests for RowAccessRule."""

    def test_unconditional_case(self) -> None:
        """Roles in an unconditional case see every row."""
        rule = make_row_rule()
        assert rule.evaluate(make_context("ADMIN"), {"status": "INACTIVE"})

    def test_conditional_case(self) -> None:
        """Conditional cases check the attribute value."""
        rule = make_row_rule()
        ctx = make_context("ANALYST")
        assert rule.evaluate(ctx, {"status": "ACTIVE"})
        assert not rule.evaluate(ctx, {"status": "INACTIVE"})

    def test_unmatched_role_hidden(self) -> None:
        """Roles matching no case see nothing."""
        assert not make_row_rule().evaluate(make_context("GUEST"), {"status": "ACTIVE"})

    def test_no_cases_hides_everything(self) -> None:
        """A rule without cases hides every row."""
        rule = make_row_rule(cases=[])
        assert not rule.evaluate(make_context("ADMIN"), {"status": "ACTIVE"})

    def test_cases_are_or_combined(self) -> None:
        """The row is visible if any matching case holds."""
        rule = make_row_rule(cases=[
            RowAccessCase(roles=frozenset({"ANALYST"}), condition=ValueCondition.equals("ACTIVE")),
            RowAccessCase(roles=frozenset({"ANALYST"}), condition=ValueCondition.equals("PENDING")),
        ])
        ctx = make_context("ANALYST")
        visible, index = rule.decide(ctx, {"status": "PENDING"})
        assert visible
        assert index == 1
        assert not rule.evaluate(ctx, {"status": "CLOSED"})

    def test_decide_reports_first_holding_case(self) -> None:
        """decide() returns the index of the first case that held."""
        visible, index = make_row_rule().decide(make_context("ENGINEER"), {"status": "X"})
        assert visible
        assert index == 0

    def test_missing_attribute_raises(self) -> None:
        """A row without the attribute cannot be evaluated."""
        with pytest.raises(EvaluationError) as exc_info:
            make_row_rule().evaluate(make_context("ADMIN"), {"other": 1})
        assert exc_info.value.attribute == "status"

    def test_mistyped_attribute_raises(self) -> None:
        """Attribute values must match the declared type."""
        rule = make_row_rule(
            attribute="is_active",
            attribute_type=AttributeType.BOOLEAN,
            cases=[RowAccessCase(roles=frozenset({"ANALYST"}), condition=ValueCondition.is_true())],
        )
        with pytest.raises(EvaluationError):
            rule.evaluate(make_context("ANALYST"), {"is_active": "yes"})

    def test_bound_to_other_attribute(self) -> None:
        """bound_to() reads a different attribute with the same cases."""
        rule = make_row_rule()
        bound = rule.bound_to("current_status")
        assert bound.attribute == "current_status"
        assert bound.cases == rule.cases
        assert rule.bound_to("status") is rule

    def test_time_window_uses_context_date(self) -> None:
        """Time windows read the context's reference date."""
        rule = make_row_rule(
            attribute="academic_year",
            cases=[RowAccessCase(roles=frozenset({"ANALYST"}), condition=ValueCondition.recent_years(2))],
        )
        row = {"academic_year": "2023"}
        assert rule.evaluate(make_context("ANALYST", reference_date=date(2025, 1, 10)), row)
        assert not rule.evaluate(make_context("ANALYST", reference_date=date(2026, 1, 10)), row)

    def test_check_rejects_incompatible_condition(self) -> None:
        """Conditions must fit the attribute type."""
        rule = RowAccessRule(
            name="BAD",
            attribute="status",
            attribute_type=AttributeType.STRING,
            cases=(RowAccessCase(roles=frozenset({"ANALYST"}), condition=ValueCondition.is_true()),),
        )
        with pytest.raises(ConfigError):
            rule.check(make_registry())

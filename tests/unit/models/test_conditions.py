"""
Unit tests for row access value conditions.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from policykit.exceptions import ConfigError
from policykit.models import AttributeType, ConditionType, ValueCondition

REFERENCE = date(2025, 1, 10)


class TestValueConditionParsing:
    """Tests for ValueCondition validation."""

    def test_default_is_always(self) -> None:
        """An empty condition always holds."""
        assert ValueCondition().kind == ConditionType.ALWAYS

    def test_bare_name_shorthand(self) -> None:
        """A bare string is shorthand for {kind: name}."""
        assert ValueCondition.model_validate("is_true").kind == ConditionType.IS_TRUE

    def test_equals_requires_value(self) -> None:
        """equals without a comparand is rejected."""
        with pytest.raises(ValidationError):
            ValueCondition.model_validate({"kind": "equals"})

    def test_in_set_requires_values(self) -> None:
        """in_set with no values is rejected."""
        with pytest.raises(ValidationError):
            ValueCondition.model_validate({"kind": "in_set", "values": []})

    def test_recent_years_requires_years(self) -> None:
        """recent_years without a window is rejected."""
        with pytest.raises(ValidationError):
            ValueCondition.model_validate({"kind": "recent_years"})


class TestValueConditionTypeChecks:
    """Tests for check_attribute_type()."""

    def test_is_true_rejects_string(self) -> None:
        """is_true consumes booleans only."""
        with pytest.raises(ConfigError):
            ValueCondition.is_true().check_attribute_type(AttributeType.STRING, "P")

    def test_comparand_must_match_type(self) -> None:
        """Comparands must be values of the declared type."""
        with pytest.raises(ConfigError) as exc_info:
            ValueCondition.in_set("ENROLLED", 5).check_attribute_type(AttributeType.STRING, "P")
        assert "5" in str(exc_info.value)

    def test_recent_months_rejects_date(self) -> None:
        """recent_months reads YYYYMM codes only."""
        with pytest.raises(ConfigError):
            ValueCondition.recent_months(24).check_attribute_type(AttributeType.DATE, "P")


class TestValueConditionHolds:
    """Tests for ValueCondition.holds()."""

    def test_always_holds_for_null(self) -> None:
        """always ignores the value."""
        assert ValueCondition.always().holds(None, REFERENCE)

    def test_equals_case_insensitive(self) -> None:
        """Strings compare ignoring case by default."""
        condition = ValueCondition.equals("ENROLLED")
        assert condition.holds("enrolled", REFERENCE)
        assert not condition.holds("ADMITTED", REFERENCE)

    def test_equals_case_sensitive(self) -> None:
        """Case-sensitive comparison can be requested."""
        condition = ValueCondition.equals("ENROLLED", case_insensitive=False)
        assert not condition.holds("enrolled", REFERENCE)

    def test_in_set(self) -> None:
        """in_set holds for any listed value."""
        condition = ValueCondition.in_set("ADMITTED", "ENROLLED", "DEPOSITED")
        assert condition.holds("Deposited", REFERENCE)
        assert not condition.holds("WITHDRAWN", REFERENCE)

    def test_null_fails_closed(self) -> None:
        """A null value does not satisfy a condition by default."""
        assert not ValueCondition.in_set("ENROLLED").holds(None, REFERENCE)
        assert not ValueCondition.is_true().holds(None, REFERENCE)

    def test_null_matches_opt_in(self) -> None:
        """null_matches treats a null value as satisfying the condition."""
        condition = ValueCondition.is_true(null_matches=True)
        assert condition.holds(None, REFERENCE)
        assert not condition.holds(False, REFERENCE)

    def test_is_true(self) -> None:
        """is_true holds only for True."""
        condition = ValueCondition.is_true()
        assert condition.holds(True, REFERENCE)
        assert not condition.holds(False, REFERENCE)

    def test_recent_years_on_year_codes(self) -> None:
        """Year codes from the current year minus N are inside the window."""
        condition = ValueCondition.recent_years(2)
        assert condition.holds("2025", REFERENCE)
        assert condition.holds("2023", REFERENCE)
        assert condition.holds("2023-24", REFERENCE)
        assert not condition.holds("2022", REFERENCE)

    def test_recent_years_on_dates(self) -> None:
        """Date values compare on their year."""
        condition = ValueCondition.recent_years(2)
        assert condition.holds(date(2023, 1, 1), REFERENCE)
        assert not condition.holds(date(2022, 12, 31), REFERENCE)

    def test_recent_months(self) -> None:
        """Term codes from the current month minus N are inside the window."""
        condition = ValueCondition.recent_months(24)
        assert condition.holds("202301", REFERENCE)
        assert condition.holds("202409", REFERENCE)
        assert not condition.holds("202212", REFERENCE)

    def test_recent_months_crosses_year_boundary(self) -> None:
        """Windows that start in an earlier year format the month correctly."""
        condition = ValueCondition.recent_months(1)
        assert condition.holds("202412", REFERENCE)
        assert not condition.holds("202411", REFERENCE)

    def test_window_moves_with_reference_date(self) -> None:
        """The same value leaves the window as the reference date advances."""
        condition = ValueCondition.recent_years(2)
        assert condition.holds("2023", date(2025, 6, 1))
        assert not condition.holds("2023", date(2026, 6, 1))

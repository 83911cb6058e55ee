"""
Unit tests for PolicyBinding, tags and the tag taxonomy.
"""

import pytest

from policykit.exceptions import ConfigError
from policykit.models import PolicyBinding, Tag, TagDefinition, TagTaxonomy, tag_value_to_str
from tests.fixtures import make_binding, make_masking_rule, make_row_rule, make_tag


class TestPolicyBinding:
    """Tests for PolicyBinding model."""

    def test_empty_binding_is_ungoverned(self) -> None:
        """A binding with nothing attached is not governed."""
        binding = make_binding()
        assert not binding.is_governed
        assert not binding.has_policies

    def test_tags_only_binding_is_governed(self) -> None:
        """Tags alone make a dataset governed, but it has no policies."""
        binding = make_binding(tags={"SENSITIVITY_LEVEL": "INTERNAL"})
        assert binding.is_governed
        assert not binding.has_policies

    def test_duplicate_row_rule_rejected(self) -> None:
        """The same row rule cannot be bound twice."""
        rule = make_row_rule()
        with pytest.raises(ValueError) as exc_info:
            make_binding(row_rules=[rule, rule])
        assert "STATUS_ACCESS" in str(exc_info.value)

    def test_columns_union_of_masks_and_tags(self) -> None:
        """columns lists masked and tagged columns."""
        binding = make_binding(
            masks={"ssn": make_masking_rule()},
            column_tags={"email": {"CONTAINS_PII": "TRUE"}},
        )
        assert binding.columns == ["email", "ssn"]

    def test_column_mappings_are_read_only(self) -> None:
        """Masks and column tags cannot be changed after the binding is built."""
        masks = {"ssn": make_masking_rule()}
        binding = make_binding(masks=masks, column_tags={"ssn": {"CONTAINS_PII": "TRUE"}})
        with pytest.raises(TypeError):
            binding.masks["email"] = make_masking_rule()
        with pytest.raises(TypeError):
            binding.column_tags["ssn"] = ()
        masks["email"] = make_masking_rule()
        assert binding.columns == ["ssn"]

    def test_default_mappings_are_read_only(self) -> None:
        """Empty masks default to a read-only mapping too."""
        with pytest.raises(TypeError):
            PolicyBinding(dataset="EMPTY").masks["ssn"] = make_masking_rule()

    def test_effective_tags_column_overrides_dataset(self) -> None:
        """Column tags override dataset tags with the same key."""
        binding = make_binding(
            tags={"SENSITIVITY_LEVEL": "RESTRICTED", "DATA_OWNER": "REGISTRAR"},
            column_tags={"email": {"SENSITIVITY_LEVEL": "CONFIDENTIAL"}},
        )
        assert binding.effective_tags() == {"SENSITIVITY_LEVEL": "RESTRICTED", "DATA_OWNER": "REGISTRAR"}
        assert binding.effective_tags("email") == {"SENSITIVITY_LEVEL": "CONFIDENTIAL", "DATA_OWNER": "REGISTRAR"}

    def test_all_tags(self) -> None:
        """all_tags() pairs each tag with its column, None for dataset tags."""
        binding = make_binding(
            tags={"DATA_OWNER": "IT"},
            column_tags={"ssn": {"CONTAINS_PII": "TRUE"}},
        )
        assert binding.all_tags() == [
            (None, Tag(key="DATA_OWNER", value="IT")),
            ("ssn", Tag(key="CONTAINS_PII", value="TRUE")),
        ]

    def test_binding_is_frozen(self) -> None:
        """Bindings are immutable."""
        binding = make_binding()
        with pytest.raises(ValueError):
            binding.dataset = "OTHER"  # type: ignore[misc]

    def test_dataset_required(self) -> None:
        """Dataset identifier cannot be empty."""
        with pytest.raises(ValueError):
            PolicyBinding(dataset="")


class TestTags:
    """Tests for Tag helpers."""

    def test_from_dict(self) -> None:
        """Tag.from_dict() builds one tag per entry."""
        tags = Tag.from_dict({"A": "1", "B": "2"})
        assert [(t.key, t.value) for t in tags] == [("A", "1"), ("B", "2")]

    def test_boolean_values_normalized(self) -> None:
        """YAML booleans become TRUE/FALSE strings."""
        assert tag_value_to_str(True) == "TRUE"
        assert tag_value_to_str(False) == "FALSE"
        assert tag_value_to_str("7_YEARS") == "7_YEARS"


class TestTagTaxonomy:
    """Tests for TagTaxonomy."""

    def _taxonomy(self) -> TagTaxonomy:
        return TagTaxonomy([
            TagDefinition(name="SENSITIVITY_LEVEL", allowed_values=["PUBLIC", "RESTRICTED"]),
            TagDefinition(name="CONTAINS_PII", allowed_values=[True, False]),
            TagDefinition(name="DATA_OWNER"),
        ])

    def test_valid_tags(self) -> None:
        """Declared tags with allowed values pass."""
        errors = self._taxonomy().validate_tags(
            [make_tag("SENSITIVITY_LEVEL", "PUBLIC"), make_tag("DATA_OWNER", "ANYONE")],
            "DIM_STUDENT",
        )
        assert errors == []

    def test_boolean_allowed_values_stringified(self) -> None:
        """Allowed values read as YAML booleans are compared as strings."""
        taxonomy = self._taxonomy()
        assert taxonomy.get("CONTAINS_PII").allowed_values == frozenset({"TRUE", "FALSE"})
        assert taxonomy.validate_tags([make_tag("CONTAINS_PII", "TRUE")], "T.c") == []

    def test_undeclared_tag(self) -> None:
        """Undeclared tag names are reported."""
        errors = self._taxonomy().validate_tags([make_tag("COLOR", "RED")], "DIM_STUDENT")
        assert errors == ["DIM_STUDENT: undeclared tag 'COLOR'"]

    def test_invalid_value(self) -> None:
        """Values outside the allowed set are reported."""
        errors = self._taxonomy().validate_tags([make_tag("SENSITIVITY_LEVEL", "SECRET")], "DIM_STUDENT.ssn")
        assert len(errors) == 1
        assert "SECRET" in errors[0]
        assert errors[0].startswith("DIM_STUDENT.ssn")

    def test_empty_taxonomy_accepts_anything(self) -> None:
        """Without definitions every tag is accepted."""
        assert TagTaxonomy().validate_tags([make_tag("ANY", "THING")], "X") == []

    def test_duplicate_definition_rejected(self) -> None:
        """Tag names are unique."""
        with pytest.raises(ConfigError):
            TagTaxonomy([TagDefinition(name="A"), TagDefinition(name="A")])

    def test_get_unknown_tag(self) -> None:
        """get() raises KeyError for undeclared tags."""
        with pytest.raises(KeyError):
            self._taxonomy().get("COLOR")

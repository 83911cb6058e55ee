"""
Dataset policy bindings.

A PolicyBinding attaches row access rules (AND-combined) and per-column
masking rules to one dataset, together with the dataset's classification
tags. Bindings are immutable; a configuration change means loading a new
snapshot.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from .base import BaseGovernanceModel, Tag, tags_to_dict
from .policies import MaskingRule, RowAccessRule

logger = logging.getLogger(__name__)


class PolicyBinding(BaseGovernanceModel):
    """
    Row filters, column masks and tags for one dataset.

    Attributes:
        dataset: Dataset identifier (e.g., 'DIM_STUDENT')
        row_rules: Row access rules; a row is visible only if all hold
        masks: Column name -> masking rule; each column masked independently
        tags: Dataset-level classification tags
        column_tags: Column name -> column-level classification tags
    """
    dataset: str = Field(..., min_length=1, description="Dataset identifier")
    row_rules: Tuple[RowAccessRule, ...] = Field(default_factory=tuple, description="AND-combined row rules")
    masks: Mapping[str, MaskingRule] = Field(
        default_factory=dict, validate_default=True, description="Column masks"
    )
    tags: Tuple[Tag, ...] = Field(default_factory=tuple, description="Dataset tags")
    column_tags: Mapping[str, Tuple[Tag, ...]] = Field(
        default_factory=dict, validate_default=True, description="Column tags"
    )
    comment: Optional[str] = Field(None, max_length=1024, description="Description of the dataset")

    @field_validator('masks', 'column_tags', mode='after')
    @classmethod
    def freeze_mapping(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        """Column mappings are read-only once the binding is built."""
        return MappingProxyType(dict(v))

    @model_validator(mode='after')
    def check_unique_row_rules(self) -> PolicyBinding:
        """The same row access rule cannot be bound twice to one dataset."""
        names = [rule.name for rule in self.row_rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Dataset '{self.dataset}' binds row access rule(s) more than once: {duplicates}")
        return self

    @property
    def is_governed(self) -> bool:
        """True if the dataset has any tags, masks or row filters."""
        return bool(self.tags or self.column_tags or self.masks or self.row_rules)

    @property
    def has_policies(self) -> bool:
        return bool(self.masks or self.row_rules)

    @property
    def columns(self) -> List[str]:
        """Every column the binding knows about (masked or tagged)."""
        return sorted(set(self.masks) | set(self.column_tags))

    def effective_tags(self, column: Optional[str] = None) -> Dict[str, str]:
        """
        Resolve tags for the dataset or one of its columns.

        Column tags override dataset tags with the same key.
        """
        resolved = tags_to_dict(self.tags)
        if column is not None:
            resolved.update(tags_to_dict(self.column_tags.get(column, ())))
        return resolved

    def all_tags(self) -> List[Tuple[Optional[str], Tag]]:
        """Every (column or None, tag) pair attached to this binding."""
        pairs: List[Tuple[Optional[str], Tag]] = [(None, t) for t in self.tags]
        for column, tags in self.column_tags.items():
            pairs.extend((column, t) for t in tags)
        return pairs


__all__ = [
    "PolicyBinding",
]

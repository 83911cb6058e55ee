"""
Tag taxonomy: declared classification tags and their allowed values.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import Field, field_validator

from policykit.exceptions import ConfigError

from .base import BaseGovernanceModel, Tag, tag_value_to_str

logger = logging.getLogger(__name__)


class TagDefinition(BaseGovernanceModel):
    """
    A classification tag with its allowed values.

    Attributes:
        name: Tag name (e.g., 'SENSITIVITY_LEVEL')
        allowed_values: Values the tag may take (empty = any value)
        comment: Description of the tag
    """
    name: str = Field(..., pattern=r'^[A-Za-z_][A-Za-z0-9_]*$', description="Tag name")
    allowed_values: FrozenSet[str] = Field(default_factory=frozenset, description="Allowed values")
    comment: Optional[str] = Field(None, max_length=1024, description="Description of the tag")

    @field_validator('allowed_values', mode='before')
    @classmethod
    def stringify_values(cls, v: Any) -> Any:
        """YAML reads TRUE/FALSE as booleans; tag values are always strings."""
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(tag_value_to_str(x) for x in v)
        return v

    def allows(self, value: str) -> bool:
        return not self.allowed_values or value in self.allowed_values


class TagTaxonomy:
    """
    Set of declared tag definitions.

    An empty taxonomy accepts any tag; a non-empty one rejects undeclared tag
    names and values outside a tag's allowed values.
    """

    def __init__(self, definitions: Iterable[TagDefinition] = ()) -> None:
        self._definitions: Dict[str, TagDefinition] = {}
        for definition in definitions:
            if definition.name in self._definitions:
                raise ConfigError(f"Tag '{definition.name}' is declared more than once")
            self._definitions[definition.name] = definition

    @property
    def definitions(self) -> Tuple[TagDefinition, ...]:
        return tuple(self._definitions.values())

    def get(self, name: str) -> TagDefinition:
        """
        Get a tag definition by name.

        Raises:
            KeyError: If the tag is not declared
        """
        if name not in self._definitions:
            available = ", ".join(sorted(self._definitions.keys()))
            raise KeyError(f"Tag '{name}' not found. Available tags: {available}")
        return self._definitions[name]

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def validate_tags(self, tags: Iterable[Tag], where: str) -> List[str]:
        """
        Validate tags against the taxonomy.

        Args:
            tags: Tags to check
            where: Location for error messages (e.g., 'DIM_STUDENT.SSN')

        Returns:
            List of validation error messages (empty if valid)
        """
        if not self._definitions:
            return []

        errors = []
        for tag in tags:
            definition = self._definitions.get(tag.key)
            if definition is None:
                errors.append(f"{where}: undeclared tag '{tag.key}'")
            elif not definition.allows(tag.value):
                errors.append(
                    f"{where}: tag '{tag.key}' has invalid value '{tag.value}'. "
                    f"Allowed: {sorted(definition.allowed_values)}"
                )
        return errors


__all__ = [
    "TagDefinition",
    "TagTaxonomy",
]

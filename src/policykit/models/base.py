"""
Base classes and utilities for policy models.

This module contains the foundational model configuration, reference clock
handling, and the Tag helper used across all policy models.
"""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any, Dict, Iterable, List

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

# Configure logging
logger = logging.getLogger(__name__)

# Environment variable that pins the reference clock for reproducible runs
REFERENCE_DATE_ENV = "POLICYKIT_REFERENCE_DATE"

# =============================================================================
# REFERENCE CLOCK
# =============================================================================

def get_reference_date() -> date:
    """
    Get the reference date used by time-window predicates.

    Reads POLICYKIT_REFERENCE_DATE (ISO format). Returns today's date if not
    set or invalid.
    """
    raw = os.getenv(REFERENCE_DATE_ENV)
    if not raw:
        return date.today()
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        logger.warning(f"Invalid {REFERENCE_DATE_ENV}='{raw}', defaulting to today")
        return date.today()

# =============================================================================
# BASE CONFIGURATION
# =============================================================================

class BaseGovernanceModel(BaseModel):
    """
    Base model for all policy objects with common configuration.

    Models are frozen: roles, rules and bindings are read-only once built,
    so a loaded snapshot can be shared across threads without locking.
    Whitespace is not stripped because masking constants and prefixes
    carry meaningful spaces.
    """

    model_config = ConfigDict(
        frozen=True,  # Immutable after configuration load
        extra="forbid",  # Unknown keys in configuration are errors
        validate_default=True,  # Validate defaults once
        populate_by_name=True,  # Allow field population by name or alias
        use_enum_values=False,  # Keep enums as enum objects
        json_schema_extra={
            "title": "Policy Model",
            "description": "Base model for access policy objects"
        }
    )


# =============================================================================
# HELPER CLASSES
# =============================================================================

class Tag(BaseGovernanceModel):
    """
    Classification label attached to a dataset or column.

    Tags are governance bookkeeping only: they drive coverage audits but never
    influence masking or row visibility decisions.
    """
    key: str = Field(..., min_length=1, description="Tag name (e.g., 'SENSITIVITY_LEVEL')")
    value: str = Field(..., description="Tag value (e.g., 'RESTRICTED')")

    @classmethod
    def from_dict(cls, tags: Dict[str, str]) -> List[Tag]:
        """Build a list of tags from a {key: value} mapping."""
        return [cls(key=k, value=v) for k, v in tags.items()]


def tags_to_dict(tags: Iterable[Tag]) -> Dict[str, str]:
    """Collapse tags to a {key: value} mapping; later tags win."""
    return {t.key: t.value for t in tags}


def tag_value_to_str(value: Any) -> str:
    """Normalize a tag value from configuration; YAML reads TRUE/FALSE as booleans."""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)

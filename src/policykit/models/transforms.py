"""
Masking transforms.

A Transform is a pure, total function from an attribute value to its masked
value. Null inputs are an explicit case: every transform except CONSTANT
returns null for null input, and CONSTANT always returns its configured
value.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from policykit.exceptions import ConfigError

from .base import BaseGovernanceModel
from .enums import (
    TRANSFORM_INPUT_TYPES,
    AttributeType,
    ShortInputPolicy,
    TransformType,
    value_matches_type,
)

logger = logging.getLogger(__name__)

# Phone layouts recognised by the phone transforms (whole-value match)
_DASHED_PHONE = re.compile(r'(\d{3})-\d{3}-\d{4}')
_PAREN_PHONE = re.compile(r'(\(\d{3}\))\s*\d{3}-\d{4}')
_PAREN_AREA = re.compile(r'\(\d{3}\)')
_ADDRESS_LOCALITY = re.compile(r'^[^,]+,\s*(.*)$', re.DOTALL)


class Transform(BaseGovernanceModel):
    """
    A single masking transform with kind-specific parameters.

    In YAML a parameterless transform may be written as a bare string,
    e.g. `transform: identity`.

    Attributes:
        kind: Transform type
        value: Replacement for CONSTANT (may be null)
        length: Characters kept by KEEP_LAST
        prefix: Text prepended by KEEP_LAST
        short_input: KEEP_LAST behavior when input is shorter than `length`
        pad_char: Padding character for ShortInputPolicy.PAD
        pattern: Regex for REGEX_REPLACE
        replacement: Replacement text for REGEX_REPLACE
        places: Decimal places for ROUND (-2 rounds to the nearest hundred)
    """
    kind: TransformType = Field(..., description="Transform type")
    value: Any = Field(None, description="Constant replacement value")
    length: Optional[int] = Field(None, ge=0, description="Trailing characters kept by keep_last")
    prefix: str = Field("", description="Prefix prepended by keep_last")
    short_input: ShortInputPolicy = Field(
        ShortInputPolicy.PASS_THROUGH,
        description="keep_last behavior for input shorter than length"
    )
    pad_char: str = Field("X", min_length=1, max_length=1, description="Padding character")
    pattern: Optional[str] = Field(None, description="Regex pattern for regex_replace")
    replacement: str = Field("", description="Replacement for regex_replace")
    places: int = Field(0, description="Decimal places for round")

    @model_validator(mode='before')
    @classmethod
    def expand_shorthand(cls, data: Any) -> Any:
        """Accept a bare transform name as shorthand for {kind: name}."""
        if isinstance(data, (str, TransformType)):
            return {"kind": data}
        return data

    @field_validator('kind', mode='before')
    @classmethod
    def convert_kind(cls, v: Any) -> TransformType:
        """Convert string to TransformType enum if needed."""
        if isinstance(v, str):
            return TransformType(v.lower())
        return v

    @model_validator(mode='after')
    def check_parameters(self) -> Transform:
        """Kind-specific parameters must be present and well formed."""
        if self.kind == TransformType.KEEP_LAST and self.length is None:
            raise ValueError("keep_last transform requires 'length'")
        if self.kind == TransformType.REGEX_REPLACE:
            if not self.pattern:
                raise ValueError("regex_replace transform requires 'pattern'")
            try:
                compiled = re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"Invalid regex pattern '{self.pattern}': {e}") from e
            # sub() parses the template against the pattern's groups before matching
            try:
                compiled.sub(self.replacement, "")
            except (re.error, IndexError) as e:
                raise ValueError(
                    f"Invalid replacement '{self.replacement}' for pattern '{self.pattern}': {e}"
                ) from e
        return self

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def identity(cls) -> Transform:
        """Pass the value through unchanged."""
        return cls(kind=TransformType.IDENTITY)

    @classmethod
    def constant(cls, value: Any) -> Transform:
        """Replace the value (including null) with a fixed value."""
        return cls(kind=TransformType.CONSTANT, value=value)

    @classmethod
    def keep_last(
        cls,
        length: int,
        prefix: str = "",
        short_input: ShortInputPolicy = ShortInputPolicy.PASS_THROUGH,
        pad_char: str = "X",
    ) -> Transform:
        """Keep the last `length` characters behind a prefix ('XXX-XX-' + '6789')."""
        return cls(
            kind=TransformType.KEEP_LAST,
            length=length,
            prefix=prefix,
            short_input=short_input,
            pad_char=pad_char,
        )

    @classmethod
    def regex_replace(cls, pattern: str, replacement: str) -> Transform:
        """Replace every match of `pattern`."""
        return cls(kind=TransformType.REGEX_REPLACE, pattern=pattern, replacement=replacement)

    @classmethod
    def year_only(cls) -> Transform:
        """Project a date to January 1 of the same year."""
        return cls(kind=TransformType.YEAR_ONLY)

    @classmethod
    def round_to(cls, places: int) -> Transform:
        """Round to `places` decimal places (negative rounds left of the point)."""
        return cls(kind=TransformType.ROUND, places=places)

    @classmethod
    def initials(cls) -> Transform:
        return cls(kind=TransformType.INITIALS)

    @classmethod
    def phone_area_code(cls) -> Transform:
        return cls(kind=TransformType.PHONE_AREA_CODE)

    @classmethod
    def phone_format(cls) -> Transform:
        return cls(kind=TransformType.PHONE_FORMAT)

    @classmethod
    def address_locality(cls) -> Transform:
        return cls(kind=TransformType.ADDRESS_LOCALITY)

    # -------------------------------------------------------------------------
    # Configuration checks
    # -------------------------------------------------------------------------

    def check_attribute_type(self, attribute_type: AttributeType, policy: str) -> None:
        """
        Verify this transform can consume and produce `attribute_type`.

        Args:
            attribute_type: Declared type of the masked attribute
            policy: Owning policy name, for error messages

        Raises:
            ConfigError: On a type mismatch
        """
        allowed = TRANSFORM_INPUT_TYPES[self.kind]
        if attribute_type not in allowed:
            raise ConfigError(
                f"Policy '{policy}': transform '{self.kind.value}' cannot be applied to "
                f"{attribute_type.value} values (allowed: {sorted(t.value for t in allowed)})"
            )
        if self.kind == TransformType.CONSTANT and self.value is not None:
            if not value_matches_type(self.value, attribute_type):
                raise ConfigError(
                    f"Policy '{policy}': constant {self.value!r} is not a {attribute_type.value} value"
                )

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def apply(self, value: Any) -> Any:
        """
        Apply the transform to a value already checked against the declared type.

        Args:
            value: Attribute value (may be None)

        Returns:
            Masked value of the same declared type, or None
        """
        if self.kind == TransformType.CONSTANT:
            return self.value
        if value is None:
            return None

        if self.kind == TransformType.IDENTITY:
            return value
        if self.kind == TransformType.KEEP_LAST:
            return self._keep_last(value)
        if self.kind == TransformType.REGEX_REPLACE:
            return re.sub(self.pattern, self.replacement, value)
        if self.kind == TransformType.YEAR_ONLY:
            return date(value.year, 1, 1)
        if self.kind == TransformType.ROUND:
            return self._round(value)
        if self.kind == TransformType.INITIALS:
            return _initials(value)
        if self.kind == TransformType.PHONE_AREA_CODE:
            return _phone_area_code(value)
        if self.kind == TransformType.PHONE_FORMAT:
            return _phone_format(value)
        if self.kind == TransformType.ADDRESS_LOCALITY:
            return _address_locality(value)

        raise NotImplementedError(f"Transform '{self.kind.value}' is not implemented")

    def _keep_last(self, value: str) -> str:
        length = self.length or 0
        tail = value[-length:] if length else ""
        if len(value) < length and self.short_input == ShortInputPolicy.PAD:
            tail = value.rjust(length, self.pad_char)
        return f"{self.prefix}{tail}"

    def _round(self, value: Any) -> Decimal:
        if isinstance(value, float):
            # str() first so floats round on their printed value, not binary noise
            number = Decimal(str(value))
        else:
            number = Decimal(value)
        # Exact arithmetic: precision covers every digit of operand and result
        with localcontext() as ctx:
            ctx.prec = max(
                ctx.prec,
                len(number.as_tuple().digits) + abs(self.places) + 2,
                abs(number.adjusted()) + abs(self.places) + 2,
            )
            if self.places >= 0:
                return number.quantize(Decimal(1).scaleb(-self.places), rounding=ROUND_HALF_UP)
            unit = Decimal(10) ** (-self.places)
            units = (number / unit).quantize(Decimal(1), rounding=ROUND_HALF_UP)
            return units * unit


def _initials(value: str) -> str:
    """'John Doe' -> 'J. D.'; 'Cher' -> 'C.'; '' -> ''."""
    if not value:
        return ""
    if " " in value:
        second = value.split(" ", 2)[1]
        return f"{value[:1]}. {second[:1]}."
    return f"{value[:1]}."


def _phone_area_code(value: str) -> str:
    match = _DASHED_PHONE.fullmatch(value)
    if match:
        return f"{match.group(1)}-XXX-XXXX"
    match = _PAREN_PHONE.fullmatch(value)
    if match:
        return f"{match.group(1)} XXX-XXXX"
    return "XXX-XXX-XXXX"


def _phone_format(value: str) -> str:
    if _DASHED_PHONE.fullmatch(value):
        return "XXX-XXX-XXXX (formatted)"
    if _PAREN_AREA.search(value):
        return "(XXX) XXX-XXXX (formatted)"
    return "XXXXXXXXXX (unformatted)"


def _address_locality(value: str) -> str:
    match = _ADDRESS_LOCALITY.match(value)
    if match:
        return f"*** {match.group(1)}"
    return "*** (Address)"


__all__ = [
    "Transform",
]

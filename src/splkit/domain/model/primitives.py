"""Domain primitives: scalar aliases + small value objects.

Scalar aliases may be promoted to proper value objects later without changing imports.
"""

from __future__ import annotations

from dataclasses import dataclass

type Oid = str
type Guid = str
type HL7Timestamp = str
type Unii = str
type NdcCode = str


@dataclass(frozen=True)
class CodedValue:
    """An HL7 coded concept (``code``/``codeSystem``/``displayName``)."""

    code: str | None = None
    code_system: Oid | None = None
    display_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.code is None and self.code_system is None and self.display_name is None

    def __composite_values__(self) -> tuple[str | None, str | None, str | None]:
        """For SQLAlchemy composite columns (adapter-side convenience)."""
        return (self.code, self.code_system, self.display_name)


@dataclass(frozen=True)
class Quantity:
    value: str | None = None
    unit: str | None = None


@dataclass(frozen=True)
class Ratio:
    """Numerator over denominator; values stay as declared strings (no float rounding)."""

    numerator_value: str | None = None
    numerator_unit: str | None = None
    denominator_value: str | None = None
    denominator_unit: str | None = None

    @property
    def numerator(self) -> Quantity:
        return Quantity(self.numerator_value, self.numerator_unit)

    @property
    def denominator(self) -> Quantity:
        return Quantity(self.denominator_value, self.denominator_unit)

    @property
    def is_empty(self) -> bool:
        return not any(self.__composite_values__())

    def __composite_values__(
        self,
    ) -> tuple[str | None, str | None, str | None, str | None]:
        return (
            self.numerator_value,
            self.numerator_unit,
            self.denominator_value,
            self.denominator_unit,
        )


def present[T: (CodedValue, Ratio)](value: T | None) -> T | None:
    """Collapse composites whose columns were all NULL back to ``None``."""
    if value is None or value.is_empty:
        return None
    return value

"""
Enum Utilities for VARCHAR-based Status Fields

ARCHITECTURE STANDARD:
━━━━━━━━━━━━━━━━━━━━━━
• Database: VARCHAR(20) - NOT PostgreSQL ENUM
• SQLAlchemy: String(20) with Mapped[str]
• Pydantic: Python Enum for API validation
• API Response: Use string directly (NO .value needed)

CASE CONVENTIONS:
━━━━━━━━━━━━━━━━━
Values are stored exactly as the front end sends them:
    attendance / employee / GST return status  -> lowercase ("present", "filed")
    invoice status                             -> capitalized ("Paid", "Overdue")
    GST return type                            -> uppercase ("GSTR1")

Input is accepted case-insensitively; create_case_validator() maps any
casing onto the canonical stored value before Pydantic validates it.

USAGE PATTERNS:
━━━━━━━━━━━━━━━
1. In SQLAlchemy Models:
   status: Mapped[str] = mapped_column(String(20), comment=enum_comment(AttendanceStatus))

2. In Pydantic Schemas (with case normalization):
   _normalize_status = create_case_validator('status', AttendanceStatus)

3. When writing enum input to a model:
   record.status = get_enum_value(data.status)
"""

from enum import Enum
from typing import Any, Type


def get_enum_value(value: Any) -> str:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(AttendanceStatus.PRESENT)  # Pydantic input
        'present'
        >>> get_enum_value("present")  # Database value
        'present'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def enum_values(enum_class: Type[Enum]) -> list:
    """
    Get all values from an enum class.

    Examples:
        >>> enum_values(GstReturnStatus)
        ['draft', 'submitted', 'filed', 'paid']
    """
    return [e.value for e in enum_class]


def enum_comment(enum_class: Type[Enum]) -> str:
    """
    Generate a comment string for VARCHAR column.

    Examples:
        >>> enum_comment(AttendanceStatus)
        'present, absent, leave'
    """
    return ", ".join(enum_values(enum_class))


def normalize_case(value: Any, enum_class: Type[Enum]) -> Any:
    """
    Map a string onto the canonical value of enum_class, ignoring case.

    Returns the original value when nothing matches so that Pydantic
    raises its normal validation error.

    Examples:
        >>> normalize_case('PRESENT', AttendanceStatus)
        'present'
        >>> normalize_case('paid', InvoiceStatus)
        'Paid'
        >>> normalize_case('bogus', AttendanceStatus)
        'bogus'
    """
    if not isinstance(value, str):
        return value
    lookup = {v.lower(): v for v in enum_values(enum_class)}
    return lookup.get(value.strip().lower(), value)


def create_case_validator(field_name: str, enum_class: Type[Enum]) -> classmethod:
    """
    Create a Pydantic field_validator that normalizes enum casing.

    Usage:
        class MySchema(BaseModel):
            status: AttendanceStatus

            _normalize_status = create_case_validator('status', AttendanceStatus)
    """
    from pydantic import field_validator

    @field_validator(field_name, mode='before')
    @classmethod
    def validate(cls, v):
        return normalize_case(v, enum_class)

    return validate

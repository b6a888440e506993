"""
Base Schema Classes for Pydantic Models

This module provides base classes that handle common patterns like UUID serialization,
ensuring consistency across all response schemas.

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.
RULE: GST request/draft payloads and attendance payloads are camelCase; use CamelSchema.
      Stored GST return documents stay snake_case like every other resource.
"""

from datetime import datetime
from decimal import Decimal
from math import ceil
from typing import Annotated
from uuid import UUID
from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


# Amounts are Decimal internally and plain JSON numbers on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Features:
    - Automatically handles UUID → string serialization in JSON
    - Enables from_attributes for ORM compatibility
    - Consistent datetime serialization

    Usage:
        class ItemResponse(BaseResponseSchema):
            id: UUID
            name: str
            hsn_sac_code: Optional[str] = None
    """
    model_config = ConfigDict(
        from_attributes=True,
        # Serialize UUIDs as strings in JSON output
        json_encoders={
            UUID: str,
            datetime: lambda v: v.isoformat() if v else None,
        },
        # Allow population by field name or alias
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    These schemas accept string UUIDs from frontend and convert to UUID objects.
    No from_attributes needed since these don't read from ORM.
    """
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for update/patch schemas.

    All fields are optional by default for partial updates.
    """
    model_config = ConfigDict(
        extra='ignore',
    )


class CamelSchema(BaseModel):
    """
    Base class for camelCase wire formats.

    Python attributes stay snake_case; JSON uses camelCase aliases and
    input is accepted under either name.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra='ignore',
    )


class CamelResponseSchema(CamelSchema):
    """camelCase response that reads from ORM models."""
    model_config = ConfigDict(
        json_encoders={
            UUID: str,
            datetime: lambda v: v.isoformat() if v else None,
        },
    )


def page_count(total: int, limit: int) -> int:
    """Number of pages for a listing; an empty listing still has one page."""
    return ceil(total / limit) if total > 0 else 1


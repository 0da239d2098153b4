"""
Base Schema Classes for Pydantic Models

RULE: Every computed result (line items, totals, entries, summaries, states)
MUST inherit from BaseSnapshotSchema. Snapshots are frozen: a change in
inputs means a full recompute, never an in-place patch.
"""

from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class InvoiceSeriesResponse(BaseResponseSchema):
            id: UUID
            name: str
    """
    model_config = ConfigDict(
        from_attributes=True,
        # Allow population by field name or alias
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    No from_attributes needed since these don't read from ORM.
    """
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
        populate_by_name=True,
    )


class BaseSnapshotSchema(BaseModel):
    """
    Base class for immutable calculation results.

    Decimal fields serialize to strings in JSON mode, so no float ever
    reaches a stored invoice.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )

"""Pydantic schemas for invoice number series."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from invoice_engine.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseSnapshotSchema


class InvoiceSeriesCreate(BaseCreateSchema):
    """Schema for creating an invoice series."""
    name: str = Field(..., min_length=1, max_length=100)
    prefix: Optional[str] = Field(None, max_length=20)
    suffix: Optional[str] = Field(None, max_length=20)
    start_with: int = Field(1, ge=1)
    is_default: bool = False


class InvoiceSeriesResponse(BaseResponseSchema):
    """Response schema for an invoice series."""
    id: UUID
    name: str
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    start_with: int
    next_number: int
    is_default: bool
    is_archived: bool
    created_at: datetime


class InvoiceNumberAllocation(BaseSnapshotSchema):
    """A number handed out from a series, and the counter value to store."""
    invoice_number: str
    number: int
    next_number: int

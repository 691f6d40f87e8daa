from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field

from hubtrack.services.bulk_operations import BulkStatus


class BulkStatusRequest(BaseModel):
    transit_ids: list[int] = Field(min_length=1)
    transition: Literal["branch", "out", "delivered"]
    confirmed: bool = False


class BulkStatusResponse(BaseModel):
    status: BulkStatus
    transition: str
    changed_ids: list[int]
    unchanged_ids: list[int]
    # Columns to mirror locally, per transit id.
    updates: dict[int, dict[str, Any]]


class BulkApplyRatesRequest(BaseModel):
    gr_numbers: list[str] = Field(min_length=1)


class BulkApplyRatesResponse(BaseModel):
    processed: int
    applied: int
    unchanged: int
    skipped: int
    failed: int
    amounts: dict[str, Decimal]
    errors: list[str]


class AutoAssignRequest(BaseModel):
    # Empty means every shipment on the challan.
    gr_numbers: list[str] | None = None


class AutoAssignResponse(BaseModel):
    assigned: list[str]
    rate_missing: list[str]
    failed: list[str]
    untouched: int

"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import List, Optional

from ach_engine.domain.models import AccountType, BatchSummary, BatchType, Entry, TransactionType


class CreateBatchRequest(BaseModel):
    """Request body for POST /v1/batches"""

    name: str = Field(..., min_length=1, description="Batch display name")
    type: BatchType
    effective_date: date
    scheduled_date: Optional[date] = None


class BatchResponse(BaseModel):
    """Batch header with derived entry count and total"""

    id: str
    batch_number: int
    name: str
    type: BatchType
    status: str
    entries: int
    total_amount: int = Field(..., description="Total in cents")
    effective_date: date
    scheduled_date: Optional[date] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_summary(cls, summary: BatchSummary) -> "BatchResponse":
        batch = summary.batch
        return cls(
            id=batch.id,
            batch_number=batch.batch_number,
            name=batch.name,
            type=batch.batch_type,
            status=batch.status.value,
            entries=summary.entry_count,
            total_amount=summary.total_amount_cents,
            effective_date=batch.effective_date,
            scheduled_date=batch.scheduled_date,
            created_at=batch.created_at,
            completed_at=batch.completed_at,
        )


class BatchListResponse(BaseModel):
    batches: List[BatchResponse]


class AddEntryRequest(BaseModel):
    """
    Request body for POST /v1/batches/{batch_id}/entries.

    Exactly one of `amount` (decimal dollars, e.g. "2500.00") or
    `amount_cents` must be given.
    """

    amount: Optional[str] = Field(None, description="Display amount in dollars")
    amount_cents: Optional[int] = Field(None, description="Amount in cents")
    routing_number: str
    account_number: str
    transaction_type: TransactionType
    reference_code: str
    recipient_id: str
    recipient_name: str = ""
    account_type: AccountType = AccountType.CHECKING

    @model_validator(mode="after")
    def check_single_amount(self) -> "AddEntryRequest":
        if (self.amount is None) == (self.amount_cents is None):
            raise ValueError("Provide exactly one of amount or amount_cents")
        return self


class EntryResponse(BaseModel):
    id: Optional[str]
    amount_cents: int
    routing_number: str
    account_number: str
    transaction_type: TransactionType
    account_type: AccountType
    reference_code: str
    recipient_id: str
    recipient_name: str

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryResponse":
        return cls(
            id=entry.id,
            amount_cents=entry.amount_cents,
            routing_number=entry.routing_number,
            account_number=entry.account_number,
            transaction_type=entry.transaction_type,
            account_type=entry.account_type,
            reference_code=entry.reference_code,
            recipient_id=entry.recipient_id,
            recipient_name=entry.recipient_name,
        )


class ValidationResponse(BaseModel):
    """Response for POST /v1/batches/{batch_id}/validate"""

    is_valid: bool
    errors: List[str]
    warnings: List[str]


class ProcessResponse(BaseModel):
    """Response for POST /v1/batches/{batch_id}/process"""

    batch_id: str
    status: str
    file_name: str
    entry_count: int
    entry_hash: int
    total_debit_cents: int
    total_credit_cents: int
    block_count: int

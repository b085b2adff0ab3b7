"""Domain models - pure Python dataclasses representing ACH batches and entries"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"


class BatchType(str, Enum):
    PAYROLL = "Payroll"
    BENEFITS = "Benefits"
    TAX = "Tax"
    VENDOR = "Vendor"


class BatchStatus(str, Enum):
    DRAFT = "draft"
    READY = "ready"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Statuses from which a batch may enter processing
PROCESSABLE_STATUSES = (BatchStatus.DRAFT, BatchStatus.READY)


@dataclass(frozen=True)
class Entry:
    """Single debit or credit instruction within a batch"""

    amount_cents: int
    routing_number: str
    account_number: str
    transaction_type: TransactionType
    reference_code: str
    recipient_id: str
    recipient_name: str = ""
    account_type: AccountType = AccountType.CHECKING
    id: Optional[str] = None


@dataclass
class Batch:
    """Named, dated collection of entries submitted together"""

    id: str
    company_id: str
    name: str
    batch_type: BatchType
    effective_date: date
    status: BatchStatus
    created_at: datetime
    batch_number: int = 1
    entries: List[Entry] = field(default_factory=list)
    scheduled_date: Optional[date] = None
    completed_at: Optional[datetime] = None

    @property
    def total_amount(self) -> int:
        """Sum of entry amounts in cents, recomputed on every read"""
        return sum(entry.amount_cents for entry in self.entries)

    @property
    def entry_count(self) -> int:
        return len(self.entries)


@dataclass
class BatchSummary:
    """Batch header with entry count and amount as aggregated by storage"""

    batch: Batch
    entry_count: int
    total_amount_cents: int


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a batch; valid only when there are no errors"""

    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


@dataclass(frozen=True)
class NachaFile:
    """Rendered NACHA file plus the control values written into it"""

    file_name: str
    lines: Tuple[str, ...]
    entry_count: int
    entry_hash: int
    total_debit_cents: int
    total_credit_cents: int
    block_count: int

    @property
    def content(self) -> str:
        return "\n".join(self.lines)

    @property
    def total_amount_cents(self) -> int:
        return self.total_debit_cents + self.total_credit_cents


@dataclass(frozen=True)
class ControlTotals:
    """Totals re-derived by reading a NACHA file back"""

    entry_count: int
    entry_hash: int
    total_debit_cents: int
    total_credit_cents: int

"""Data access layer for ACH batches and entries"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sqlalchemy import func, update
from sqlalchemy.orm import Query, Session
from ach_engine.infrastructure.database.models import ACHAuditLog, ACHBatch, ACHBatchEntry
from ach_engine.domain.exceptions import BatchNotFoundError, StatusConflictError
from ach_engine.domain.models import (
    AccountType,
    Batch,
    BatchStatus,
    BatchSummary,
    BatchType,
    Entry,
    TransactionType,
)


def _parse_id(batch_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(batch_id))
    except ValueError as e:
        raise BatchNotFoundError(f"Batch not found: {batch_id}") from e


def _to_entry(row: ACHBatchEntry) -> Entry:
    """Map an entry row to the domain type"""
    return Entry(
        id=str(row.id),
        amount_cents=row.amount_cents,
        routing_number=row.routing_number,
        account_number=row.account_number,
        account_type=AccountType(row.account_type),
        transaction_type=TransactionType(row.transaction_type),
        reference_code=row.reference_code,
        recipient_id=row.recipient_id,
        recipient_name=row.recipient_name or "",
    )


def _to_batch(row: ACHBatch, entries: Iterable[Entry] = ()) -> Batch:
    """Map a batch row to the domain type; entries are attached only when loaded"""
    return Batch(
        id=str(row.id),
        company_id=row.company_id,
        name=row.name,
        batch_type=BatchType(row.batch_type),
        effective_date=row.effective_date,
        status=BatchStatus(row.status),
        created_at=row.created_at,
        batch_number=row.batch_number,
        entries=list(entries),
        scheduled_date=row.scheduled_date,
        completed_at=row.completed_at,
    )


class BatchRepository:
    """Repository for ACH batches, their entries, generated files and audit trail"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        company_id: str,
        name: str,
        batch_type: BatchType,
        effective_date: date,
        created_at: datetime,
        scheduled_date: Optional[date] = None,
    ) -> Batch:
        """Persist a new draft batch with the next batch number for the company"""
        last_number = (
            self.db.query(func.max(ACHBatch.batch_number))
            .filter(ACHBatch.company_id == company_id)
            .scalar()
        )
        db_batch = ACHBatch(
            company_id=company_id,
            batch_number=(last_number or 0) + 1,
            name=name,
            batch_type=batch_type.value,
            status=BatchStatus.DRAFT.value,
            effective_date=effective_date,
            scheduled_date=scheduled_date,
            created_at=created_at,
        )
        self.db.add(db_batch)
        self.db.flush()  # Get ID without committing
        return _to_batch(db_batch)

    def _batch_query(self, company_id: str, batch_id: str, for_update: bool = False) -> Query:
        query = self.db.query(ACHBatch).filter(
            ACHBatch.id == _parse_id(batch_id), ACHBatch.company_id == company_id
        )
        if for_update:
            # Row lock held until commit/rollback; serialises status checks with writers
            query = query.with_for_update().populate_existing()
        return query

    def _get_row(self, company_id: str, batch_id: str, for_update: bool = False) -> ACHBatch:
        row = self._batch_query(company_id, batch_id, for_update).first()
        if row is None:
            raise BatchNotFoundError(f"Batch not found: {batch_id}")
        return row

    def get_by_id(self, company_id: str, batch_id: str, for_update: bool = False) -> BatchSummary:
        """
        Fetch batch header with entry count and amount aggregated in the database.

        With for_update the batch row stays locked for the rest of the
        transaction, so its status cannot change underneath the caller.
        """
        row = self._get_row(company_id, batch_id, for_update)
        entry_count, total_amount = (
            self.db.query(
                func.count(ACHBatchEntry.id),
                func.coalesce(func.sum(ACHBatchEntry.amount_cents), 0),
            )
            .filter(ACHBatchEntry.batch_id == row.id)
            .one()
        )
        return BatchSummary(
            batch=_to_batch(row),
            entry_count=int(entry_count),
            total_amount_cents=int(total_amount),
        )

    def list_entries(self, batch_id: str) -> List[Entry]:
        """Fetch entries in insertion order"""
        rows = (
            self.db.query(ACHBatchEntry)
            .filter(ACHBatchEntry.batch_id == _parse_id(batch_id))
            .order_by(ACHBatchEntry.position)
            .all()
        )
        return [_to_entry(r) for r in rows]

    def add_entry(self, batch_id: str, entry: Entry) -> Entry:
        """Append an entry to the end of a batch"""
        uid = _parse_id(batch_id)
        last_position = (
            self.db.query(func.max(ACHBatchEntry.position))
            .filter(ACHBatchEntry.batch_id == uid)
            .scalar()
        )
        db_entry = ACHBatchEntry(
            batch_id=uid,
            position=(last_position or 0) + 1,
            amount_cents=entry.amount_cents,
            routing_number=entry.routing_number,
            account_number=entry.account_number,
            account_type=entry.account_type.value,
            transaction_type=entry.transaction_type.value,
            reference_code=entry.reference_code,
            recipient_id=entry.recipient_id,
            recipient_name=entry.recipient_name,
        )
        self.db.add(db_entry)
        self.db.flush()
        return _to_entry(db_entry)

    def update_status(
        self,
        company_id: str,
        batch_id: str,
        status: BatchStatus,
        expected: Tuple[BatchStatus, ...],
        completed_at: Optional[datetime] = None,
    ) -> None:
        """
        Move a batch to `status` only if its current status is one of `expected`.

        The check and the write are a single UPDATE, so two callers racing on
        the same batch cannot both succeed.

        Raises:
            StatusConflictError: If no row matched (status changed underneath us)
        """
        values: Dict[str, Any] = {"status": status.value}
        if completed_at is not None:
            values["completed_at"] = completed_at

        result = self.db.execute(
            update(ACHBatch)
            .where(
                ACHBatch.id == _parse_id(batch_id),
                ACHBatch.company_id == company_id,
                ACHBatch.status.in_([s.value for s in expected]),
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise StatusConflictError(
                f"Batch {batch_id} is not in any of {[s.value for s in expected]}"
            )

    def list_batches(self, company_id: str, limit: int = 50) -> List[BatchSummary]:
        """Fetch recent batches for a company with aggregated entry totals"""
        rows = (
            self.db.query(
                ACHBatch,
                func.count(ACHBatchEntry.id),
                func.coalesce(func.sum(ACHBatchEntry.amount_cents), 0),
            )
            .outerjoin(ACHBatchEntry, ACHBatchEntry.batch_id == ACHBatch.id)
            .filter(ACHBatch.company_id == company_id)
            .group_by(ACHBatch.id)
            .order_by(ACHBatch.batch_number.desc())
            .limit(limit)
            .all()
        )
        return [
            BatchSummary(batch=_to_batch(row), entry_count=int(count), total_amount_cents=int(total))
            for row, count, total in rows
        ]

    def save_file(self, company_id: str, batch_id: str, file_name: str, content: str) -> None:
        row = self._get_row(company_id, batch_id)
        row.file_name = file_name
        row.nacha_file_content = content
        self.db.flush()

    def get_file(self, company_id: str, batch_id: str) -> Optional[Tuple[str, str]]:
        """Return (file_name, content) of the generated file, if any"""
        row = self._get_row(company_id, batch_id)
        if row.nacha_file_content is None:
            return None
        return row.file_name, row.nacha_file_content

    def record_audit(
        self,
        company_id: str,
        batch_id: str,
        action_type: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.db.add(
            ACHAuditLog(
                company_id=company_id,
                batch_id=_parse_id(batch_id),
                action_type=action_type,
                action_details=details or {},
            )
        )
        self.db.flush()

    def list_audit(self, company_id: str, batch_id: str) -> List[ACHAuditLog]:
        """Audit rows for a batch, oldest first"""
        return (
            self.db.query(ACHAuditLog)
            .filter(ACHAuditLog.company_id == company_id, ACHAuditLog.batch_id == _parse_id(batch_id))
            .order_by(ACHAuditLog.id)
            .all()
        )

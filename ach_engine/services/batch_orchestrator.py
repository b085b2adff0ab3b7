"""Batch lifecycle orchestration: create -> validate -> processing -> completed | failed"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ach_engine.config import OriginatorConfig, settings
from ach_engine.domain.exceptions import (
    BatchValidationError,
    FormatterError,
    InvalidStatusTransitionError,
)
from ach_engine.domain.models import (
    PROCESSABLE_STATUSES,
    Batch,
    BatchStatus,
    BatchSummary,
    BatchType,
    Entry,
    NachaFile,
    ValidationResult,
)
from ach_engine.domain.nacha import format_batch, read_control_totals
from ach_engine.domain.validation import validate_batch
from ach_engine.infrastructure.clients.transmission import FileTransmitter
from ach_engine.infrastructure.database.repositories import BatchRepository
from ach_engine.infrastructure.observability.logging import log_batch_transition
from ach_engine.infrastructure.observability.metrics import (
    format_duration_histogram,
    record_batch_outcome,
    record_file_written,
    record_validation,
)
from ach_engine.utils.date_utils import business_date, utc_now

logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """
    Drives a batch through its lifecycle.

    Every call takes the tenant explicitly as company_id. Each transition is
    committed before the next step starts, so a failure after `processing`
    was entered always leaves the batch `failed` rather than half-done.
    """

    def __init__(
        self,
        db: Session,
        originator: Optional[OriginatorConfig] = None,
        transmitter: Optional[FileTransmitter] = None,
        clock: Callable[[], datetime] = utc_now,
        split_warning_threshold: Optional[int] = None,
        large_amount_threshold_cents: Optional[int] = None,
        max_future_days: Optional[int] = None,
        business_timezone: Optional[str] = None,
    ):
        self.db = db
        self.repo = BatchRepository(db)
        self.originator = originator or settings.originator
        self.transmitter = transmitter
        self.clock = clock
        self.split_warning_threshold = (
            settings.split_warning_threshold if split_warning_threshold is None else split_warning_threshold
        )
        self.large_amount_threshold_cents = (
            settings.large_amount_threshold_cents
            if large_amount_threshold_cents is None
            else large_amount_threshold_cents
        )
        self.max_future_days = settings.max_future_days if max_future_days is None else max_future_days
        self.business_timezone = business_timezone or settings.business_timezone

    # ------------------------------------------------------------------
    # Building a batch
    # ------------------------------------------------------------------

    def create_batch(
        self,
        company_id: str,
        name: str,
        batch_type: BatchType,
        effective_date: date,
        scheduled_date: Optional[date] = None,
    ) -> Batch:
        """Create and persist an empty draft batch"""
        try:
            batch = self.repo.create(
                company_id=company_id,
                name=name,
                batch_type=batch_type,
                effective_date=effective_date,
                created_at=self.clock(),
                scheduled_date=scheduled_date,
            )
            self.repo.record_audit(company_id, batch.id, "batch_created", {"name": name, "type": batch_type.value})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Batch created",
            extra={"company_id": company_id, "batch_id": batch.id, "batch_number": batch.batch_number},
        )
        return batch

    def add_entry(self, company_id: str, batch_id: str, entry: Entry) -> Entry:
        """Append an entry; only draft batches accept entries"""
        try:
            summary = self.repo.get_by_id(company_id, batch_id, for_update=True)
            if summary.batch.status != BatchStatus.DRAFT:
                raise InvalidStatusTransitionError(batch_id, summary.batch.status.value, "add entries to")
            stored = self.repo.add_entry(batch_id, entry)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return stored

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_batch(self, company_id: str, batch_id: str) -> BatchSummary:
        return self.repo.get_by_id(company_id, batch_id)

    def list_batches(self, company_id: str, limit: int = 50) -> List[BatchSummary]:
        return self.repo.list_batches(company_id, limit=limit)

    def get_file(self, company_id: str, batch_id: str) -> Optional[Tuple[str, str]]:
        return self.repo.get_file(company_id, batch_id)

    def _load(self, company_id: str, batch_id: str, for_update: bool = False) -> Tuple[BatchSummary, Batch]:
        summary = self.repo.get_by_id(company_id, batch_id, for_update=for_update)
        entries = self.repo.list_entries(batch_id)
        return summary, replace(summary.batch, entries=entries)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def today(self) -> date:
        """Calendar date at the originator, used for effective-date checks"""
        return business_date(self.clock(), self.business_timezone)

    def _validate(self, batch: Batch) -> ValidationResult:
        result = validate_batch(
            batch,
            self.today(),
            split_warning_threshold=self.split_warning_threshold,
            large_amount_threshold_cents=self.large_amount_threshold_cents,
            max_future_days=self.max_future_days,
        )
        record_validation(result.is_valid, len(result.warnings))
        logger.info(
            "Batch validated",
            extra={
                "company_id": batch.company_id,
                "batch_id": batch.id,
                "is_valid": result.is_valid,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
            },
        )
        return result

    def validate_batch(self, company_id: str, batch_id: str) -> ValidationResult:
        """Validate the stored batch without changing its status"""
        _, batch = self._load(company_id, batch_id)
        return self._validate(batch)

    def mark_ready(self, company_id: str, batch_id: str) -> Batch:
        """
        Move a draft batch to ready once it validates.

        Raises:
            InvalidStatusTransitionError: If the batch is not a draft
            BatchValidationError: If validation reports any error
        """
        try:
            _, batch = self._load(company_id, batch_id, for_update=True)
            if batch.status != BatchStatus.DRAFT:
                raise InvalidStatusTransitionError(batch_id, batch.status.value, "mark ready")

            result = self._validate(batch)
            if not result.is_valid:
                raise BatchValidationError(result.errors)

            self.repo.update_status(company_id, batch_id, BatchStatus.READY, expected=(BatchStatus.DRAFT,))
            self.repo.record_audit(company_id, batch_id, "batch_ready", {"warnings": list(result.warnings)})
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        log_batch_transition(company_id, batch_id, BatchStatus.DRAFT.value, BatchStatus.READY.value)
        return replace(batch, status=BatchStatus.READY)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_batch(self, company_id: str, batch_id: str) -> NachaFile:
        """
        Validate, format and (optionally) transmit a batch.

        Flow:
        1. Reject batches already processing, completed or failed
        2. Re-validate the current entries; any error aborts with status unchanged
        3. Conditionally move draft/ready -> processing
        4. Format in memory, re-check control totals, store the file, transmit
        5. Mark completed
        6. Any failure after step 3 marks the batch failed and re-raises

        Raises:
            InvalidStatusTransitionError: Batch is not draft or ready
            BatchValidationError: Batch has validation errors
            StatusConflictError: Another caller moved the batch first
        """
        try:
            # Locked until the processing status is committed, so no entry can slip in between
            summary, batch = self._load(company_id, batch_id, for_update=True)
            if batch.status not in PROCESSABLE_STATUSES:
                raise InvalidStatusTransitionError(batch_id, batch.status.value, "process")

            result = self._validate(batch)
            if not result.is_valid:
                raise BatchValidationError(result.errors)

            self.repo.update_status(
                company_id, batch_id, BatchStatus.PROCESSING, expected=PROCESSABLE_STATUSES
            )
            self.repo.record_audit(company_id, batch_id, "processing_started")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        log_batch_transition(company_id, batch_id, batch.status.value, BatchStatus.PROCESSING.value)

        try:
            nacha_file = await self._generate(company_id, batch, summary)
        except Exception as e:
            self.db.rollback()
            self._mark_failed(company_id, batch, e)
            raise

        record_batch_outcome(BatchStatus.COMPLETED.value, batch.batch_type.value)
        record_file_written(
            nacha_file.entry_count, nacha_file.total_credit_cents, nacha_file.total_debit_cents
        )
        log_batch_transition(
            company_id,
            batch_id,
            BatchStatus.PROCESSING.value,
            BatchStatus.COMPLETED.value,
            file_name=nacha_file.file_name,
            entry_count=nacha_file.entry_count,
            total_amount_cents=nacha_file.total_amount_cents,
        )
        return nacha_file

    async def _generate(self, company_id: str, batch: Batch, summary: BatchSummary) -> NachaFile:
        if (summary.entry_count, summary.total_amount_cents) != (batch.entry_count, batch.total_amount):
            raise FormatterError(
                f"Stored totals ({summary.entry_count} entries, {summary.total_amount_cents} cents) "
                f"do not match loaded entries ({batch.entry_count}, {batch.total_amount})"
            )

        with format_duration_histogram.time():
            nacha_file = format_batch(batch, self.originator, created_at=self.clock())
        read_control_totals(nacha_file.content)

        self.repo.save_file(company_id, batch.id, nacha_file.file_name, nacha_file.content)

        acknowledgement = None
        if self.transmitter is not None:
            acknowledgement = await self.transmitter.transmit(company_id, batch.id, nacha_file)

        self.repo.update_status(
            company_id,
            batch.id,
            BatchStatus.COMPLETED,
            expected=(BatchStatus.PROCESSING,),
            completed_at=self.clock(),
        )
        self.repo.record_audit(
            company_id,
            batch.id,
            "nacha_file_generated",
            {
                "file_name": nacha_file.file_name,
                "total_entries": nacha_file.entry_count,
                "total_credit_cents": nacha_file.total_credit_cents,
                "total_debit_cents": nacha_file.total_debit_cents,
                "entry_hash": nacha_file.entry_hash,
                "transmitted": self.transmitter is not None,
                "acknowledgement": acknowledgement,
            },
        )
        self.db.commit()
        return nacha_file

    def _mark_failed(self, company_id: str, batch: Batch, error: Exception) -> None:
        """Record the failed status; the caller re-raises the original error"""
        try:
            self.repo.update_status(
                company_id, batch.id, BatchStatus.FAILED, expected=(BatchStatus.PROCESSING,)
            )
            self.repo.record_audit(
                company_id,
                batch.id,
                "processing_failed",
                {"error_type": type(error).__name__, "error": str(error)},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(
                "Could not record failed status",
                extra={"company_id": company_id, "batch_id": batch.id},
            )
            return

        record_batch_outcome(BatchStatus.FAILED.value, batch.batch_type.value)
        logger.error(
            f"Batch processing failed: {error}",
            extra={"company_id": company_id, "batch_id": batch.id, "error_type": type(error).__name__},
        )
        log_batch_transition(company_id, batch.id, BatchStatus.PROCESSING.value, BatchStatus.FAILED.value)

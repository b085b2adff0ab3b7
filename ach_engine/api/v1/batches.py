"""/v1/batches - ACH batch lifecycle endpoints"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from ach_engine.api.v1.schemas import (
    AddEntryRequest,
    BatchListResponse,
    BatchResponse,
    CreateBatchRequest,
    EntryResponse,
    ProcessResponse,
    ValidationResponse,
)
from ach_engine.api.dependencies import get_company_id, get_orchestrator, get_request_id
from ach_engine.services.batch_orchestrator import BatchOrchestrator
from ach_engine.domain.exceptions import (
    BatchNotFoundError,
    BatchValidationError,
    DomainException,
    InvalidAmountError,
    InvalidStatusTransitionError,
    StatusConflictError,
    TransmissionError,
)
from ach_engine.domain.models import BatchStatus, Entry
from ach_engine.domain.money import to_minor_units

router = APIRouter()


def _to_http_error(error: Exception, request_id: str) -> HTTPException:
    """Map domain failures onto HTTP status codes"""
    if isinstance(error, BatchNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, BatchValidationError):
        return HTTPException(status_code=422, detail={"errors": error.errors})
    if isinstance(error, InvalidAmountError):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, (InvalidStatusTransitionError, StatusConflictError)):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, TransmissionError):
        logging.error(f"Transmission error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=502, detail="ACH operator unavailable")
    logging.error(f"Unexpected error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")


@router.post("/batches", response_model=BatchResponse, status_code=201)
def create_batch(
    request_body: CreateBatchRequest,
    company_id: str = Depends(get_company_id),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """Create an empty draft batch"""
    batch = orchestrator.create_batch(
        company_id=company_id,
        name=request_body.name,
        batch_type=request_body.type,
        effective_date=request_body.effective_date,
        scheduled_date=request_body.scheduled_date,
    )
    return BatchResponse.from_summary(orchestrator.get_batch(company_id, batch.id))


@router.get("/batches", response_model=BatchListResponse)
def list_batches(
    company_id: str = Depends(get_company_id),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    summaries = orchestrator.list_batches(company_id)
    return BatchListResponse(batches=[BatchResponse.from_summary(s) for s in summaries])


@router.get("/batches/{batch_id}", response_model=BatchResponse)
def get_batch(
    batch_id: str,
    request: Request,
    company_id: str = Depends(get_company_id),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    try:
        return BatchResponse.from_summary(orchestrator.get_batch(company_id, batch_id))
    except DomainException as e:
        raise _to_http_error(e, get_request_id(request))


@router.post("/batches/{batch_id}/entries", response_model=EntryResponse, status_code=201)
def add_entry(
    batch_id: str,
    request_body: AddEntryRequest,
    request: Request,
    company_id: str = Depends(get_company_id),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """Add an entry to a draft batch. Display amounts are converted to cents here."""
    try:
        amount_cents = (
            request_body.amount_cents
            if request_body.amount_cents is not None
            else to_minor_units(request_body.amount)
        )
        entry = Entry(
            amount_cents=amount_cents,
            routing_number=request_body.routing_number.strip(),
            account_number=request_body.account_number.strip(),
            transaction_type=request_body.transaction_type,
            reference_code=request_body.reference_code.strip(),
            recipient_id=request_body.recipient_id.strip(),
            recipient_name=request_body.recipient_name.strip(),
            account_type=request_body.account_type,
        )
        stored = orchestrator.add_entry(company_id, batch_id, entry)
    except DomainException as e:
        raise _to_http_error(e, get_request_id(request))

    return EntryResponse.from_entry(stored)


@router.post("/batches/{batch_id}/validate", response_model=ValidationResponse)
def validate_batch(
    batch_id: str,
    request: Request,
    company_id: str = Depends(get_company_id),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """Validate a batch; status is not changed"""
    try:
        result = orchestrator.validate_batch(company_id, batch_id)
    except DomainException as e:
        raise _to_http_error(e, get_request_id(request))

    return ValidationResponse(
        is_valid=result.is_valid,
        errors=list(result.errors),
        warnings=list(result.warnings),
    )


@router.post("/batches/{batch_id}/ready", response_model=BatchResponse)
def mark_ready(
    batch_id: str,
    request: Request,
    company_id: str = Depends(get_company_id),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    try:
        orchestrator.mark_ready(company_id, batch_id)
        return BatchResponse.from_summary(orchestrator.get_batch(company_id, batch_id))
    except DomainException as e:
        raise _to_http_error(e, get_request_id(request))


@router.post("/batches/{batch_id}/process", response_model=ProcessResponse)
async def process_batch(
    batch_id: str,
    request: Request,
    company_id: str = Depends(get_company_id),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """
    Generate (and transmit, when enabled) the NACHA file for a batch.

    On failure after processing started the batch is left `failed` and the
    error is returned to the caller.
    """
    request_id = get_request_id(request)
    try:
        nacha_file = await orchestrator.process_batch(company_id, batch_id)
    except Exception as e:
        raise _to_http_error(e, request_id)

    return ProcessResponse(
        batch_id=batch_id,
        status=BatchStatus.COMPLETED.value,
        file_name=nacha_file.file_name,
        entry_count=nacha_file.entry_count,
        entry_hash=nacha_file.entry_hash,
        total_debit_cents=nacha_file.total_debit_cents,
        total_credit_cents=nacha_file.total_credit_cents,
        block_count=nacha_file.block_count,
    )


@router.get("/batches/{batch_id}/file", response_class=PlainTextResponse)
def download_file(
    batch_id: str,
    request: Request,
    company_id: str = Depends(get_company_id),
    orchestrator: BatchOrchestrator = Depends(get_orchestrator),
):
    """Return the generated NACHA file as plain text"""
    try:
        stored = orchestrator.get_file(company_id, batch_id)
    except DomainException as e:
        raise _to_http_error(e, get_request_id(request))

    if stored is None:
        raise HTTPException(status_code=404, detail="File not generated")

    file_name, content = stored
    return PlainTextResponse(
        content,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )

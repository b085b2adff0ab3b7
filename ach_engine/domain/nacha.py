"""NACHA fixed-width file generation and control-total verification"""

import math
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from typing import List

from ach_engine.config import OriginatorConfig
from ach_engine.domain.exceptions import FormatterError
from ach_engine.domain.models import (
    AccountType,
    Batch,
    BatchType,
    ControlTotals,
    Entry,
    NachaFile,
    TransactionType,
)
from ach_engine.utils.date_utils import format_hhmm, format_yymmdd

RECORD_SIZE = 94
BLOCKING_FACTOR = 10
FILLER_RECORD = "9" * RECORD_SIZE

SERVICE_CLASS_MIXED = "200"
SERVICE_CLASS_CREDITS_ONLY = "220"
SERVICE_CLASS_DEBITS_ONLY = "225"

TRANSACTION_CODES = {
    (AccountType.CHECKING, TransactionType.CREDIT): "22",
    (AccountType.CHECKING, TransactionType.DEBIT): "27",
    (AccountType.SAVINGS, TransactionType.CREDIT): "32",
    (AccountType.SAVINGS, TransactionType.DEBIT): "37",
}
CREDIT_CODES = {"22", "23", "24", "32", "33", "34"}
DEBIT_CODES = {"27", "28", "29", "37", "38", "39"}

STANDARD_ENTRY_CLASS = {
    BatchType.PAYROLL: "PPD",
    BatchType.BENEFITS: "PPD",
    BatchType.TAX: "CCD",
    BatchType.VENDOR: "CCD",
}
ENTRY_DESCRIPTIONS = {
    BatchType.PAYROLL: "PAYROLL",
    BatchType.BENEFITS: "BENEFITS",
    BatchType.TAX: "TAX PYMT",
    BatchType.VENDOR: "VENDOR PAY",
}

ENTRY_HASH_MODULUS = 10 ** 10

# Entry detail and control field widths
AMOUNT_FIELD_WIDTH = 10
TOTAL_AMOUNT_FIELD_WIDTH = 12
ACCOUNT_NUMBER_FIELD_WIDTH = 17
IDENTIFICATION_FIELD_WIDTH = 15
INDIVIDUAL_NAME_FIELD_WIDTH = 22
BATCH_ENTRY_COUNT_FIELD_WIDTH = 6

MAX_ENTRY_AMOUNT_CENTS = 10 ** AMOUNT_FIELD_WIDTH - 1
MAX_TOTAL_AMOUNT_CENTS = 10 ** TOTAL_AMOUNT_FIELD_WIDTH - 1
MAX_BATCH_ENTRIES = 10 ** BATCH_ENTRY_COUNT_FIELD_WIDTH - 1


# ---------------------------------------------------------------------------
# Field packing
# ---------------------------------------------------------------------------

def fold_ascii(value: str) -> str:
    """Strip accents via NFKD; characters with no ASCII form are left as they are"""
    folded = unicodedata.normalize("NFKD", value)
    return "".join(c for c in folded if not unicodedata.combining(c))


def _ascii(value: str) -> str:
    folded = fold_ascii(value)
    if not folded.isascii():
        raise FormatterError(f"Field contains non-ASCII characters: {value!r}")
    return folded


def _numeric(value: int, width: int) -> str:
    """Zero-padded numeric field; a value wider than the field is an error"""
    if value < 0:
        raise FormatterError(f"Negative value {value} in numeric field")
    text = str(value)
    if len(text) > width:
        raise FormatterError(f"Value {value} exceeds {width}-digit field")
    return text.zfill(width)


def _digits(value: str, width: int) -> str:
    """Digit string that must fill the field exactly"""
    if len(value) != width or not value.isdigit():
        raise FormatterError(f"Expected {width} digits, got {value!r}")
    return value


def _alpha(value: str, width: int, upper: bool = True) -> str:
    """Left-justified, space-padded, truncated alphanumeric field"""
    text = _ascii(value or "")
    if upper:
        text = text.upper()
    return text[:width].ljust(width)


def _exact(value: str, width: int) -> str:
    """Left-justified alphanumeric field that must not be truncated"""
    text = _ascii(value or "").upper()
    if len(text) > width:
        raise FormatterError(f"Value {value!r} exceeds {width}-character field")
    return text.ljust(width)


def _right(value: str, width: int) -> str:
    text = _ascii(value or "")
    if len(text) > width:
        raise FormatterError(f"Value {value!r} exceeds {width}-character field")
    return text.rjust(width)


def _record(fields: List[str]) -> str:
    line = "".join(fields)
    if len(line) != RECORD_SIZE:
        raise FormatterError(f"Record type {line[:1]} is {len(line)} characters, expected {RECORD_SIZE}")
    return line


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EntryDetailRecord:
    """Rendered entry detail line together with the values it carries"""

    line: str
    transaction_code: str
    receiving_dfi: str
    amount_cents: int
    trace_number: str


def build_file_header(originator: OriginatorConfig, created_at: datetime) -> str:
    return _record([
        "1",                                                # Record Type Code
        "01",                                               # Priority Code
        _right(originator.immediate_destination, 10),       # Immediate Destination
        _right(originator.immediate_origin, 10),            # Immediate Origin
        format_yymmdd(created_at.date()),                   # File Creation Date
        format_hhmm(created_at),                            # File Creation Time
        _alpha(originator.file_id_modifier, 1),             # File ID Modifier
        "094",                                              # Record Size
        _numeric(BLOCKING_FACTOR, 2),                       # Blocking Factor
        "1",                                                # Format Code
        _alpha(originator.immediate_destination_name, 23),
        _alpha(originator.company_name, 23),                # Immediate Origin Name
        _alpha(originator.reference_code, 8),
    ])


def service_class_code(entries: List[Entry]) -> str:
    """200 for mixed batches, 220 for credits only, 225 for debits only"""
    kinds = {e.transaction_type for e in entries}
    if kinds == {TransactionType.CREDIT}:
        return SERVICE_CLASS_CREDITS_ONLY
    if kinds == {TransactionType.DEBIT}:
        return SERVICE_CLASS_DEBITS_ONLY
    return SERVICE_CLASS_MIXED


def build_batch_header(batch: Batch, originator: OriginatorConfig, service_class: str) -> str:
    effective = format_yymmdd(batch.effective_date)
    return _record([
        "5",
        service_class,
        _alpha(originator.company_name, 16),
        _alpha(originator.company_discretionary_data, 20),
        _alpha(originator.company_id, 10),
        STANDARD_ENTRY_CLASS[batch.batch_type],
        _alpha(ENTRY_DESCRIPTIONS[batch.batch_type], 10),
        effective,                                          # Company Descriptive Date
        effective,                                          # Effective Entry Date
        "   ",                                              # Settlement Date (set by operator)
        "1",                                                # Originator Status Code
        _digits(originator.originating_dfi, 8),
        _numeric(batch.batch_number, 7),
    ])


def build_entry_detail(entry: Entry, sequence: int, originating_dfi: str) -> EntryDetailRecord:
    """Render one entry. Sequence is 1-based and becomes the trace number suffix."""
    code = TRANSACTION_CODES[(entry.account_type, entry.transaction_type)]
    routing = _digits(entry.routing_number, 9)
    receiving_dfi = routing[:8]
    trace_number = _digits(originating_dfi, 8) + _numeric(sequence, 7)
    line = _record([
        "6",
        code,
        receiving_dfi,
        routing[8],                                         # Check Digit
        _alpha(entry.account_number.strip(), ACCOUNT_NUMBER_FIELD_WIDTH, upper=False),
        _numeric(entry.amount_cents, AMOUNT_FIELD_WIDTH),
        _exact(entry.reference_code, IDENTIFICATION_FIELD_WIDTH),  # Individual Identification Number
        _alpha(entry.recipient_name or entry.recipient_id, INDIVIDUAL_NAME_FIELD_WIDTH),
        "  ",                                               # Discretionary Data
        "0",                                                # Addenda Record Indicator
        trace_number,
    ])
    return EntryDetailRecord(
        line=line,
        transaction_code=code,
        receiving_dfi=receiving_dfi,
        amount_cents=entry.amount_cents,
        trace_number=trace_number,
    )


def compute_totals(records: List[EntryDetailRecord]) -> ControlTotals:
    """Control values derived from the entry records actually written"""
    entry_hash = sum(int(r.receiving_dfi) for r in records) % ENTRY_HASH_MODULUS
    total_debits = sum(r.amount_cents for r in records if r.transaction_code in DEBIT_CODES)
    total_credits = sum(r.amount_cents for r in records if r.transaction_code in CREDIT_CODES)
    return ControlTotals(
        entry_count=len(records),
        entry_hash=entry_hash,
        total_debit_cents=total_debits,
        total_credit_cents=total_credits,
    )


def build_batch_control(
    totals: ControlTotals,
    service_class: str,
    originator: OriginatorConfig,
    batch_number: int,
) -> str:
    return _record([
        "8",
        service_class,
        _numeric(totals.entry_count, BATCH_ENTRY_COUNT_FIELD_WIDTH),
        _numeric(totals.entry_hash, 10),
        _numeric(totals.total_debit_cents, TOTAL_AMOUNT_FIELD_WIDTH),
        _numeric(totals.total_credit_cents, TOTAL_AMOUNT_FIELD_WIDTH),
        _alpha(originator.company_id, 10),
        " " * 19,                                           # Message Authentication Code
        " " * 6,                                            # Reserved
        _digits(originator.originating_dfi, 8),
        _numeric(batch_number, 7),
    ])


def build_file_control(totals: ControlTotals, batch_count: int, block_count: int) -> str:
    return _record([
        "9",
        _numeric(batch_count, 6),
        _numeric(block_count, 6),
        _numeric(totals.entry_count, 8),
        _numeric(totals.entry_hash, 10),
        _numeric(totals.total_debit_cents, TOTAL_AMOUNT_FIELD_WIDTH),
        _numeric(totals.total_credit_cents, TOTAL_AMOUNT_FIELD_WIDTH),
        " " * 39,
    ])


def file_name_for(batch: Batch) -> str:
    return f"ACH_{batch.batch_number}_{batch.effective_date.strftime('%Y%m%d')}.txt"


# ---------------------------------------------------------------------------
# File
# ---------------------------------------------------------------------------

def format_batch(batch: Batch, originator: OriginatorConfig, created_at: datetime) -> NachaFile:
    """
    Render a validated batch as a single-batch NACHA file.

    Layout: file header, batch header, one entry detail per entry (trace
    numbers assigned in list order), batch control, file control, then '9'
    filler records up to a multiple of the blocking factor.

    created_at is the only source of time in the output, so the same batch
    and timestamp always produce byte-identical content.

    Raises:
        FormatterError: If any field cannot be represented exactly or the
            written totals disagree with the batch total
    """
    entries = list(batch.entries)
    if not entries:
        raise FormatterError(f"Batch {batch.id} has no entries to format")

    service_class = service_class_code(entries)
    records = [
        build_entry_detail(entry, sequence, originator.originating_dfi)
        for sequence, entry in enumerate(entries, start=1)
    ]
    totals = compute_totals(records)

    written_total = totals.total_debit_cents + totals.total_credit_cents
    if written_total != batch.total_amount:
        raise FormatterError(
            f"Control total {written_total} does not match batch total {batch.total_amount}"
        )

    lines = [
        build_file_header(originator, created_at),
        build_batch_header(batch, originator, service_class),
    ]
    lines.extend(r.line for r in records)
    lines.append(build_batch_control(totals, service_class, originator, batch.batch_number))

    block_count = math.ceil((len(lines) + 1) / BLOCKING_FACTOR)
    lines.append(build_file_control(totals, batch_count=1, block_count=block_count))

    while len(lines) % BLOCKING_FACTOR != 0:
        lines.append(FILLER_RECORD)

    return NachaFile(
        file_name=file_name_for(batch),
        lines=tuple(lines),
        entry_count=totals.entry_count,
        entry_hash=totals.entry_hash,
        total_debit_cents=totals.total_debit_cents,
        total_credit_cents=totals.total_credit_cents,
        block_count=block_count,
    )


def read_control_totals(content: str) -> ControlTotals:
    """
    Re-sum the entry detail records of a NACHA file and check them against
    every batch control and the file control record.

    Returns the independently computed totals.

    Raises:
        FormatterError: On a malformed record or any control mismatch
    """
    lines = content.split("\n")
    entry_count = 0
    entry_hash = 0
    debits = 0
    credits = 0
    batch_entries = batch_hash = batch_debits = batch_credits = 0
    file_control = None

    for number, line in enumerate(lines, start=1):
        if len(line) != RECORD_SIZE:
            raise FormatterError(f"Line {number} is {len(line)} characters, expected {RECORD_SIZE}")
        record_type = line[0]

        if record_type == "5":
            batch_entries = batch_hash = batch_debits = batch_credits = 0
        elif record_type == "6":
            code = line[1:3]
            amount = int(line[29:39])
            if code in CREDIT_CODES:
                batch_credits += amount
            elif code in DEBIT_CODES:
                batch_debits += amount
            else:
                raise FormatterError(f"Line {number} has unknown transaction code {code}")
            batch_entries += 1
            batch_hash += int(line[3:11])
        elif record_type == "8":
            expected = (
                batch_entries,
                batch_hash % ENTRY_HASH_MODULUS,
                batch_debits,
                batch_credits,
            )
            written = (int(line[4:10]), int(line[10:20]), int(line[20:32]), int(line[32:44]))
            if expected != written:
                raise FormatterError(f"Batch control on line {number} does not match its entries")
            entry_count += batch_entries
            entry_hash += batch_hash
            debits += batch_debits
            credits += batch_credits
        elif record_type == "9" and file_control is None:
            file_control = line

    if file_control is None:
        raise FormatterError("File control record missing")

    totals = ControlTotals(
        entry_count=entry_count,
        entry_hash=entry_hash % ENTRY_HASH_MODULUS,
        total_debit_cents=debits,
        total_credit_cents=credits,
    )
    written = ControlTotals(
        entry_count=int(file_control[13:21]),
        entry_hash=int(file_control[21:31]),
        total_debit_cents=int(file_control[31:43]),
        total_credit_cents=int(file_control[43:55]),
    )
    if totals != written:
        raise FormatterError("File control totals do not match entry detail records")

    return totals

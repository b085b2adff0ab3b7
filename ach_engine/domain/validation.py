"""Batch validation - pure checks run before any file is generated"""

from collections import Counter
from datetime import date
from typing import List

from ach_engine.domain.models import Batch, Entry, TransactionType, ValidationResult
from ach_engine.domain.money import format_minor_units
from ach_engine.domain.nacha import (
    ACCOUNT_NUMBER_FIELD_WIDTH,
    IDENTIFICATION_FIELD_WIDTH,
    INDIVIDUAL_NAME_FIELD_WIDTH,
    MAX_BATCH_ENTRIES,
    MAX_ENTRY_AMOUNT_CENTS,
    MAX_TOTAL_AMOUNT_CENTS,
    fold_ascii,
)
from ach_engine.domain.routing import is_valid_routing_number
from ach_engine.utils.date_utils import days_after

DEFAULT_SPLIT_WARNING_THRESHOLD = 10_000
DEFAULT_LARGE_AMOUNT_THRESHOLD_CENTS = 100_000_000  # $1,000,000
DEFAULT_MAX_FUTURE_DAYS = 30


def _entry_label(entry: Entry, position: int) -> str:
    return entry.reference_code if entry.reference_code else f"#{position}"


def validate_entry(
    entry: Entry,
    position: int,
    large_amount_threshold_cents: int = DEFAULT_LARGE_AMOUNT_THRESHOLD_CENTS,
) -> tuple[List[str], List[str]]:
    """
    Check a single entry. Position is 1-based and used when the reference code is missing.

    Every entry that passes without errors can be written by the NACHA
    formatter: text fields fold to ASCII, the reference code fits its field
    and the amount fits the 10-digit amount field.
    """
    errors: List[str] = []
    warnings: List[str] = []
    label = _entry_label(entry, position)

    if not entry.reference_code:
        errors.append(f"Missing reference code for entry #{position}")
    else:
        reference = fold_ascii(entry.reference_code)
        if not reference.isascii():
            label = f"#{position}"
            errors.append(f"Reference code for entry {label} contains unsupported characters")
        elif len(reference) > IDENTIFICATION_FIELD_WIDTH:
            errors.append(
                f"Reference code for entry {label} exceeds {IDENTIFICATION_FIELD_WIDTH} characters"
            )

    if entry.amount_cents <= 0:
        errors.append(f"Invalid amount for entry {label}")
    elif entry.amount_cents > MAX_ENTRY_AMOUNT_CENTS:
        errors.append(
            f"Amount for entry {label} exceeds the maximum of {format_minor_units(MAX_ENTRY_AMOUNT_CENTS)}"
        )
    elif entry.amount_cents > large_amount_threshold_cents:
        warnings.append(
            f"Unusually large amount for entry {label}: {format_minor_units(entry.amount_cents)}"
        )

    if not entry.recipient_id:
        errors.append(f"Missing recipient for entry {label}")

    name = fold_ascii(entry.recipient_name or entry.recipient_id or "")
    if not name.isascii():
        errors.append(f"Recipient name for entry {label} contains unsupported characters")
    elif len(name) > INDIVIDUAL_NAME_FIELD_WIDTH:
        warnings.append(
            f"Recipient name for entry {label} will be shortened to {INDIVIDUAL_NAME_FIELD_WIDTH} characters"
        )

    if not is_valid_routing_number(entry.routing_number):
        errors.append(f"Invalid routing number for entry {label}")

    account = (entry.account_number or "").strip()
    if not account:
        errors.append(f"Missing account number for entry {label}")
    elif not (account.isascii() and account.isdigit()):
        errors.append(f"Invalid account number for entry {label}")
    elif len(account) > ACCOUNT_NUMBER_FIELD_WIDTH:
        warnings.append(
            f"Account number for entry {label} will be shortened to {ACCOUNT_NUMBER_FIELD_WIDTH} digits"
        )

    return errors, warnings


def validate_batch(
    batch: Batch,
    today: date,
    *,
    split_warning_threshold: int = DEFAULT_SPLIT_WARNING_THRESHOLD,
    large_amount_threshold_cents: int = DEFAULT_LARGE_AMOUNT_THRESHOLD_CENTS,
    max_future_days: int = DEFAULT_MAX_FUTURE_DAYS,
) -> ValidationResult:
    """
    Validate a batch and its entries.

    Rules:
    - At least one entry (error); more than the batch control can count (error)
    - More than split_warning_threshold entries (warning)
    - Per-entry reference, amount, recipient, routing and account checks
    - Debit or credit total wider than the 12-digit control fields (error)
    - Duplicate reference codes (warning)
    - Effective date in the past (error) or beyond max_future_days (warning)

    Never raises and never mutates the batch. `today` is passed in so that
    repeated calls on the same inputs give the same result.
    """
    errors: List[str] = []
    warnings: List[str] = []
    entries = batch.entries

    if not entries:
        errors.append("Batch must contain at least one entry")
    elif len(entries) > MAX_BATCH_ENTRIES:
        errors.append(f"Batch contains {len(entries)} entries; at most {MAX_BATCH_ENTRIES} fit in one batch")
    elif len(entries) > split_warning_threshold:
        warnings.append(
            f"Batch contains {len(entries)} entries; consider splitting into smaller batches"
        )

    for position, entry in enumerate(entries, start=1):
        entry_errors, entry_warnings = validate_entry(
            entry, position, large_amount_threshold_cents=large_amount_threshold_cents
        )
        errors.extend(entry_errors)
        warnings.extend(entry_warnings)

    for transaction_type, label in ((TransactionType.DEBIT, "debits"), (TransactionType.CREDIT, "credits")):
        total = sum(
            e.amount_cents for e in entries
            if e.transaction_type == transaction_type and e.amount_cents > 0
        )
        if total > MAX_TOTAL_AMOUNT_CENTS:
            errors.append(
                f"Total {label} of {format_minor_units(total)} exceed the maximum of "
                f"{format_minor_units(MAX_TOTAL_AMOUNT_CENTS)} per batch"
            )

    reference_counts = Counter(e.reference_code for e in entries if e.reference_code)
    for reference_code, count in sorted(reference_counts.items()):
        if count > 1:
            warnings.append(f"Duplicate reference code {reference_code} appears {count} times")

    if batch.effective_date < today:
        errors.append("Effective date cannot be in the past")
    elif batch.effective_date > days_after(today, max_future_days):
        warnings.append(f"Effective date is more than {max_future_days} days in the future")

    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))

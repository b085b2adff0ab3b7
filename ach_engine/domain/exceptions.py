"""Domain-specific exceptions"""

from typing import Iterable


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmountError(DomainException, ValueError):
    """Display amount cannot be represented exactly in cents"""

    pass


class BatchNotFoundError(DomainException):
    """Batch does not exist for the given company"""

    pass


class BatchValidationError(DomainException):
    """Batch failed validation and must not be formatted or transmitted"""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("Batch validation failed: " + "; ".join(self.errors))


class InvalidStatusTransitionError(DomainException):
    """Requested lifecycle action is not allowed from the current status"""

    def __init__(self, batch_id: str, current: str, action: str):
        self.batch_id = batch_id
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} batch {batch_id} in status {current}")


class StatusConflictError(DomainException):
    """Conditional status write matched no row (concurrent update)"""

    pass


class FormatterError(DomainException):
    """NACHA file could not be rendered exactly"""

    pass


class TransmissionError(DomainException):
    """ACH operator rejected the file or is unavailable"""

    pass

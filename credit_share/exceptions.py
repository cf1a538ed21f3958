"""Custom exceptions for the credit sharing engine."""

from .config import YEAR_MONTH_FORMAT


class CreditShareError(Exception):
    """Base exception for all credit sharing errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class InvalidLoanTerms(CreditShareError):
    """Raised when loan terms violate a precondition of the schedule."""

    def __init__(self, message: str, field: str = None, value=None):
        details = {}
        if field:
            details["field"] = field
            details["value"] = value
        super().__init__(message, details)


class AlreadyPaid(CreditShareError):
    """Raised when an installment that is already settled is marked paid again."""

    def __init__(self, installment_id=None, participant_id=None, due_month=None):
        details = {}
        if installment_id is not None:
            details["installment_id"] = installment_id
        if participant_id is not None:
            details["participant_id"] = participant_id
        if due_month is not None:
            details["due_month"] = due_month.strftime(YEAR_MONTH_FORMAT)
        super().__init__("Installment is already paid", details)


class CreditNotFound(CreditShareError):
    """Raised when a credit cannot be found."""

    def __init__(self, credit_id):
        super().__init__(f"Credit '{credit_id}' not found", {"credit_id": credit_id})


class InstallmentNotFound(CreditShareError):
    """Raised when an installment cannot be found."""

    def __init__(self, installment_id):
        super().__init__(
            f"Installment '{installment_id}' not found",
            {"installment_id": installment_id},
        )

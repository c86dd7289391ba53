"""Error Taxonomy - Exceptions raised by the ledger engine.

Every error carries a stable ``code`` so transport layers can render it
without inspecting the class hierarchy.
"""

from enum import Enum


class LedgerError(Exception):
    """Base class for all ledger engine errors."""

    code = "ledger_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Render the error for a tool or HTTP response."""
        return {"error": self.message, "code": self.code}


class ValidationError(LedgerError):
    """Caller-supplied data violates a stated bound."""

    code = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        return data


class NotFoundError(LedgerError):
    """Referenced entry, ledger or user does not exist."""

    code = "not_found"


class ConflictError(LedgerError):
    """A unique key was already taken and the retry-as-update failed."""

    code = "conflict"


class StorageError(LedgerError):
    """The persistent store failed."""

    code = "storage_error"


class EstimationFailure(str, Enum):
    """Why the nutrition estimator could not produce an estimate."""

    MALFORMED_RESPONSE = "malformed_response"
    INVALID_INPUT = "invalid_input"
    QUOTA = "quota"


class EstimationError(LedgerError):
    """The upstream nutrition estimator failed."""

    code = "estimation_error"

    def __init__(self, reason: EstimationFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reason"] = self.reason.value
        return data

"""Domain errors raised by the service layer.

Every error subclasses ``ValueError`` so callers that only care about
"the request was rejected" can keep catching that. Routers turn them into
HTTP errors with ``to_http_exception``.
"""

from typing import Optional

from fastapi import HTTPException


class ServiceError(ValueError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"error": self.message}


class InvalidStateError(ServiceError):
    """The entity is not in a state that allows the requested transition."""


class NotFoundError(ServiceError):
    status_code = 404


class PermissionDeniedError(ServiceError):
    status_code = 403


class BidRejectedError(ServiceError):
    """A bid lost to the current price or to a concurrent bid."""


class InsufficientFundsError(ServiceError):
    """The actor cannot cover a debit or reservation."""

    status_code = 402

    def __init__(
        self,
        required: int,
        balance: int,
        available: Optional[int] = None,
        pending: int = 0,
        message: str = "Insufficient coin balance",
    ):
        super().__init__(message)
        self.required = required
        self.balance = balance
        self.available = balance - pending if available is None else available
        self.pending = pending

    def to_detail(self) -> dict:
        return {
            "error": self.message,
            "required": self.required,
            "balance": self.balance,
            "available": self.available,
            "pending": self.pending,
        }


class ConflictError(ServiceError):
    status_code = 409


def to_http_exception(error: ServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())

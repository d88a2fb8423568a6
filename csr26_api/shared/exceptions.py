# csr26_api/shared/exceptions.py
from typing import Optional

from fastapi import HTTPException, status


class BaseHTTPException(HTTPException):
    """
    HTTPException with class-level defaults.

    Subclasses set ``status_code`` and ``message``; a message passed at raise
    time overrides the default.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Request failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            status_code=type(self).status_code, detail=message or type(self).message
        )


# Authentication & Authorization Exceptions
class InvalidTokenError(HTTPException):
    def __init__(self, message: str = "Missing or invalid token") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class NotAuthorizedError(HTTPException):
    def __init__(self, message: str = "Not authorized") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=message)


# Resource Not Found Exceptions
class NotFoundError(BaseHTTPException):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class UserNotFoundError(NotFoundError):
    message = "User not found"


class MerchantNotFoundError(NotFoundError):
    message = "Merchant not found"


class PartnerNotFoundError(NotFoundError):
    message = "Partner not found"


class TransactionNotFoundError(NotFoundError):
    message = "Transaction not found"


class InvoiceNotFoundError(NotFoundError):
    message = "Invoice not found"


class SkuNotFoundError(NotFoundError):
    message = "SKU not found"


# Validation / Request Exceptions
class InvalidDataError(HTTPException):
    def __init__(self, message: str = "Invalid request data") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class ConflictError(BaseHTTPException):
    status_code = status.HTTP_409_CONFLICT
    message = "Resource already exists"


# Integration Exceptions
class IntegrationNotConfiguredError(HTTPException):
    def __init__(self, message: str = "Integration not configured") -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message
        )

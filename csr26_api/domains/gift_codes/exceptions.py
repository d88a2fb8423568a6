"""
Domain-specific exceptions for gift codes.
"""

from csr26_api.shared.exceptions import BaseHTTPException


class GiftCodeException(BaseHTTPException):
    """Base exception for gift code errors."""

    status_code = 400


class GiftCodeNotFoundError(GiftCodeException):
    status_code = 404
    message = "Gift code not found"


class InvalidGiftCodeError(GiftCodeException):
    """Raised when a code cannot be redeemed for the requested SKU."""

    message = "Invalid gift code"


class GiftCodeStateError(GiftCodeException):
    """Raised when a status change is not allowed from the current status."""

    message = "Gift code cannot change to the requested status"


class NotGiftCardSkuError(GiftCodeException):
    message = "SKU must be a GIFT_CARD type"


class DuplicateGiftCodesError(GiftCodeException):
    message = "All codes already exist"

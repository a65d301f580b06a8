# ==== BUSINESS ERRORS ==== #

"""
Business error codes and exception hierarchy for EasyBill.

Every failure a service wants to report to a client is raised as a
``BusinessError`` carrying a stable string code. The HTTP layer maps the
exception class to a status code (see ``http_status_for``) and renders
the code and formatted message in a uniform error body.
"""

from typing import Any, Dict, Optional


# ==== ERROR CODE CONSTANTS ==== #


class ErrorCodes:
    """Stable error codes returned in the ``code`` field of error bodies."""

    # --► GENERIC
    INTERNAL_SERVER_ERROR = "ERR_INTERNAL_SERVER"
    INVALID_REQUEST = "ERR_INVALID_REQUEST"
    VALIDATION_ERROR = "ERR_VALIDATION"
    RESOURCE_NOT_FOUND = "ERR_NOT_FOUND"
    DUPLICATE_RESOURCE = "ERR_DUPLICATE_RESOURCE"

    # --► AUTHENTICATION
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    INVALID_TOKEN = "ERR_INVALID_TOKEN"
    TOKEN_EXPIRED = "ERR_TOKEN_EXPIRED"
    USERNAME_EXISTS = "USERNAME_EXISTS"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    USER_LIMIT_REACHED = "USER_LIMIT_REACHED"

    # --► TENANCY
    TENANT_NOT_FOUND = "ERR_TENANT_NOT_FOUND"
    TENANT_SUSPENDED = "ERR_TENANT_SUSPENDED"
    TENANT_ALREADY_EXISTS = "ERR_TENANT_EXISTS"
    INVALID_TENANT_NAME = "INVALID_TENANT_NAME"

    # --► BILLING
    INSUFFICIENT_STOCK = "ERR_INSUFFICIENT_STOCK"
    INVALID_DISCOUNT = "ERR_INVALID_DISCOUNT"
    PAYMENT_FAILED = "ERR_PAYMENT_FAILED"
    INVALID_INVOICE_STATE = "INVALID_INVOICE_STATE"

    # --► INVENTORY
    PRODUCT_NOT_FOUND = "ERR_PRODUCT_NOT_FOUND"
    DUPLICATE_BARCODE = "ERR_DUPLICATE_BARCODE"

    # --► CUSTOMER
    CUSTOMER_NOT_FOUND = "ERR_CUSTOMER_NOT_FOUND"
    INSUFFICIENT_LOYALTY_POINTS = "ERR_INSUFFICIENT_POINTS"
    INSUFFICIENT_WALLET_BALANCE = "ERR_INSUFFICIENT_WALLET_BALANCE"

    # --► OFFERS
    OFFER_NOT_FOUND = "ERR_OFFER_NOT_FOUND"
    OFFER_NOT_VALID = "ERR_OFFER_NOT_VALID"
    OFFER_USAGE_LIMIT_REACHED = "ERR_OFFER_USAGE_LIMIT"

    # --► REPORTS
    INVALID_REPORT_PERIOD = "ERR_INVALID_REPORT_PERIOD"


# ==== EXCEPTION HIERARCHY ==== #


class BusinessError(Exception):
    """
    Base class for expected, client-visible failures.

    Args:
        error_code: One of the ``ErrorCodes`` constants
        message: Human readable message, optionally a %-format string
        *args: Values interpolated into ``message``
    """

    status_code: int = 400

    def __init__(self, error_code: str = "BUSINESS_ERROR", message: str = "", *args: Any):
        self.error_code = error_code
        self.message = message
        self.args_values = args
        super().__init__(self.formatted_message)

    @property
    def formatted_message(self) -> str:
        if self.args_values and self.message:
            try:
                return self.message % self.args_values
            except (TypeError, ValueError):
                return self.message
        return self.message or self.error_code

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.error_code, "message": self.formatted_message}


class ResourceNotFoundError(BusinessError):
    """Raised when an entity does not exist or belongs to another tenant."""

    status_code = 404

    def __init__(
        self,
        resource: str,
        identifier: Any = None,
        error_code: str = ErrorCodes.RESOURCE_NOT_FOUND,
    ):
        self.resource = resource
        self.identifier = identifier
        if identifier is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} not found with identifier: {identifier}"
        super().__init__(error_code, message)


class UnauthorizedError(BusinessError):
    status_code = 401

    def __init__(
        self,
        message: str = "You are not authorized to perform this action",
        error_code: str = ErrorCodes.UNAUTHORIZED,
    ):
        super().__init__(error_code, message)


class ForbiddenError(BusinessError):
    status_code = 403

    def __init__(
        self,
        message: str = "Access to this resource is forbidden",
        error_code: str = ErrorCodes.FORBIDDEN,
    ):
        super().__init__(error_code, message)


class TenantIsolationError(ForbiddenError):
    """Raised when a write would touch a row owned by another tenant."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Cross-tenant write rejected: row belongs to {actual}, session is {expected}"
        )


class ValidationError(BusinessError):
    """Business validation failure, optionally with per-field messages."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, str]] = None,
        error_code: str = ErrorCodes.VALIDATION_ERROR,
    ):
        self.field_errors = field_errors or {}
        super().__init__(error_code, message)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.field_errors:
            body["field_errors"] = self.field_errors
        return body


# ==== STATUS MAPPING ==== #


_STATUS_BY_CODE = {
    ErrorCodes.TENANT_SUSPENDED: 403,
    ErrorCodes.FORBIDDEN: 403,
    ErrorCodes.TENANT_NOT_FOUND: 404,
    ErrorCodes.PRODUCT_NOT_FOUND: 404,
    ErrorCodes.CUSTOMER_NOT_FOUND: 404,
    ErrorCodes.OFFER_NOT_FOUND: 404,
    ErrorCodes.UNAUTHORIZED: 401,
    ErrorCodes.INVALID_TOKEN: 401,
    ErrorCodes.TOKEN_EXPIRED: 401,
}


def http_status_for(exc: BusinessError) -> int:
    """Return the HTTP status for a business error.

    The exception class decides first; plain ``BusinessError`` instances fall
    back to a lookup by error code and then to 400.
    """
    if type(exc) is BusinessError:
        return _STATUS_BY_CODE.get(exc.error_code, 400)
    return exc.status_code

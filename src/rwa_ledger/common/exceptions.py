"""RWA Ledger exception hierarchy.

Every error carries a stable ``code`` and the HTTP ``status_code`` the API
layer renders it with.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    status_code = 400

    def __init__(self, message: str = "", code: str = "LEDGER_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(LedgerError):
    """Raised on malformed or out-of-range input."""

    status_code = 400

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(LedgerError):
    """Raised when an asset, token, order, request or user does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class AuthorizationError(LedgerError):
    """Raised when the caller lacks the role or ownership an operation needs."""

    status_code = 403

    def __init__(self, message: str = "Not permitted"):
        super().__init__(message, code="FORBIDDEN")


class ComplianceError(LedgerError):
    """Raised when KYC is not approved or an account or holding is frozen."""

    status_code = 403

    def __init__(self, message: str = "Compliance check failed", code: str = "COMPLIANCE"):
        super().__init__(message, code=code)


class SellerIneligibleError(ComplianceError):
    """Raised at fill time when the seller lost KYC approval or was frozen."""

    def __init__(self, message: str = "Seller is not eligible for this trade"):
        super().__init__(message, code="SELLER_INELIGIBLE")


class InsufficientSupplyError(LedgerError):
    """Raised when a mint or adjustment exceeds the asset's remaining supply."""

    status_code = 409

    def __init__(self, message: str = "Insufficient supply"):
        super().__init__(message, code="INSUFFICIENT_SUPPLY")


class InsufficientBalanceError(LedgerError):
    """Raised when a sale or revocation exceeds the owned amount."""

    status_code = 409

    def __init__(self, message: str = "Insufficient token balance"):
        super().__init__(message, code="INSUFFICIENT_BALANCE")


class OrderStateError(LedgerError):
    """Raised when an operation is invalid for the order's status or approval."""

    status_code = 409

    def __init__(self, message: str = "Invalid order state", code: str = "ORDER_STATE"):
        super().__init__(message, code=code)


class OrderNotOpenError(OrderStateError):
    def __init__(self, message: str = "Order is not open"):
        super().__init__(message, code="ORDER_NOT_OPEN")


class SelfTradeError(LedgerError):
    status_code = 409

    def __init__(self, message: str = "Cannot buy your own order"):
        super().__init__(message, code="SELF_TRADE")


class InvariantViolation(LedgerError):
    """Internal consistency failure. The transaction must not commit."""

    status_code = 500

    def __init__(self, message: str = "Ledger invariant violated", code: str = "INVARIANT_VIOLATION"):
        super().__init__(message, code=code)


class ImmutableRecordError(InvariantViolation):
    """Raised on an attempt to update or delete an append-only record."""

    def __init__(self, message: str = "Record is immutable"):
        super().__init__(message, code="IMMUTABLE_RECORD")

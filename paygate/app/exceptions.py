"""Custom exceptions for the paygate application."""


class GatewayException(Exception):
    """Base class for gateway exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str = "Gateway error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to the JSON body returned to clients."""
        return {
            "error": self.error,
            "message": self.message,
            "status": self.status_code,
        }


class StoreError(GatewayException):
    """Raised when the key-value store cannot be read or written.

    Maps to HTTP 503 Service Unavailable when it escapes to a route.
    """
    status_code = 503
    error = "Store Unavailable"

    def __init__(self, message: str = "Key-value store unavailable", key: str | None = None):
        self.key = key
        super().__init__(message)


class RecordDecodeError(StoreError):
    """Raised when a stored record cannot be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Corrupt record: {reason}", key=key)


class PaymentRequiredError(GatewayException):
    """Raised when a request must be paid for before it is served.

    Maps to HTTP 402 Payment Required. The body carries the checkout link.
    """
    status_code = 402
    error = "Payment Required"

    def __init__(self, message: str, payment_link: str = ""):
        self.payment_link = payment_link
        super().__init__(message)

    def to_response(self) -> dict:
        return {
            "error": self.error,
            "message": self.message,
            "payment_link": self.payment_link,
            "status": self.status_code,
        }


class BillingError(GatewayException):
    """Base class for failures while charging or crediting an account."""
    status_code = 402
    error = "Payment Required"

    def __init__(self, message: str, identity: str | None = None):
        self.identity = identity
        super().__init__(message)


class InsufficientBalanceError(BillingError):
    """Raised when an account balance does not cover the charge."""

    def __init__(self, identity: str, balance: int, amount: int):
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance: {balance} credits available, {amount} required",
            identity=identity,
        )


class AccountNotFoundError(BillingError):
    """Raised when the account disappeared before it could be charged.

    Maps to HTTP 404 on admin routes.
    """
    status_code = 404
    error = "Account Not Found"

    def __init__(self, identity: str):
        super().__init__("Account does not exist", identity=identity)


class ChargeConflictError(BillingError):
    """Raised when a balance update keeps losing compare-and-set races."""

    def __init__(self, identity: str, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Balance update did not settle after {attempts} attempts",
            identity=identity,
        )


class HandlerError(GatewayException):
    """Raised when the business handler fails.

    Maps to HTTP 500 Internal Server Error, never to 402.
    """
    status_code = 500
    error = "Handler Error"


class HandlerTimeoutError(HandlerError):
    """Raised when the business handler does not finish in time.

    Maps to HTTP 504 Gateway Timeout.
    """
    status_code = 504
    error = "Handler Timeout"

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Handler did not respond within {timeout:g} seconds")


class AuthenticationError(GatewayException):
    """Raised when admin token authentication fails.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401
    error = "Unauthorized"

    def __init__(self, detail: str = "Invalid or missing admin token"):
        self.detail = detail
        super().__init__(detail)

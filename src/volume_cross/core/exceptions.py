"""
Core Exceptions - Volume Cross
==============================
Centralized exception definitions for signal detection and order execution.
"""

from typing import Optional


class VolumeCrossError(Exception):
    """Base exception for all volume cross errors."""
    pass


class ValidationError(VolumeCrossError):
    """
    Raised when a request refers to something that cannot be acted on:
    unknown or already consumed recommendation, invalid price, bad input.

    HTTP Status: 400 Bad Request
    """
    pass


class NotFoundError(ValidationError):
    """
    Raised when an order or recommendation is not known to this process.

    HTTP Status: 404 Not Found
    """
    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        self.message = f"{kind} not found: {identifier}"
        super().__init__(self.message)


class ExpiredError(ValidationError):
    """
    Raised when a recommendation is executed after its expiry time.

    HTTP Status: 404 Not Found (treated as gone)
    """
    def __init__(self, recommendation_id: str, expires_at: int, now: int):
        self.recommendation_id = recommendation_id
        self.expires_at = expires_at
        self.now = now
        self.message = (
            f"Recommendation {recommendation_id} expired at {expires_at} "
            f"({now - expires_at} ms ago)"
        )
        super().__init__(self.message)


class InsufficientBalanceError(VolumeCrossError):
    """
    Raised when the account cannot fund a trade, either while sizing a
    recommendation or on the re-check right before placing the order.
    """
    def __init__(self, available: float, required: float, message: Optional[str] = None):
        self.available = available
        self.required = required
        self.message = message or f"Insufficient balance: ${available} < ${required}"
        super().__init__(self.message)


class ExchangeGatewayError(VolumeCrossError):
    """Base exception for failures talking to the exchange."""
    pass


class ExchangeApiError(ExchangeGatewayError):
    """
    Raised when the exchange answers with a non-zero return code or with a
    payload that does not match the expected response shape.
    """
    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"Exchange API Error [{code}]: {message}")


class NetworkError(ExchangeGatewayError):
    """Raised on transport failures: connection errors, timeouts, open circuit."""
    pass

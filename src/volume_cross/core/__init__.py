"""
Core module for volume cross: logging, errors, events, resilience, time.
"""

from .exceptions import (
    VolumeCrossError,
    ValidationError,
    NotFoundError,
    ExpiredError,
    InsufficientBalanceError,
    ExchangeGatewayError,
    ExchangeApiError,
    NetworkError,
)

__all__ = [
    'VolumeCrossError',
    'ValidationError',
    'NotFoundError',
    'ExpiredError',
    'InsufficientBalanceError',
    'ExchangeGatewayError',
    'ExchangeApiError',
    'NetworkError',
]

"""
Exchange Interfaces - Ports for exchange access
===============================================
Abstract interface for the signed REST gateway used by recommendation
and execution services.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models.exchange import Balance, OrderBook, OrderSnapshot, PlacedOrder, TickerVolume


class IExchangeGateway(ABC):
    """
    Interface for authenticated exchange access.

    Every method raises ExchangeApiError on a non-zero exchange return code
    and NetworkError on transport failure. Nothing is retried.
    """

    @property
    @abstractmethod
    def exchange_name(self) -> str:
        """Exchange identifier (e.g., bybit)"""
        pass

    @abstractmethod
    async def get_current_price(self, symbol: str) -> float:
        """Last traded price"""
        pass

    @abstractmethod
    async def get_order_book(self, symbol: str) -> OrderBook:
        """Top-of-book bids and asks"""
        pass

    @abstractmethod
    async def get_balance(self) -> Balance:
        """Available quote-coin balance"""
        pass

    @abstractmethod
    async def create_limit_order(self, symbol: str, quantity: float, price: float) -> PlacedOrder:
        """Place a GTC limit buy"""
        pass

    @abstractmethod
    async def get_order_status(self, symbol: str, order_id: str) -> OrderSnapshot:
        """Current status of an order"""
        pass

    @abstractmethod
    async def cancel_order(self, symbol: str, order_id: str) -> bool:
        """Cancel an order; True once the exchange acknowledged"""
        pass

    @abstractmethod
    async def get_quote_volumes(self) -> List[TickerVolume]:
        """24h quote volume of every instrument in the configured category"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release network resources"""
        pass

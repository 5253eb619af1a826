"""
Bybit Gateway - Signed REST adapter
===================================
Bybit v5 REST adapter with HMAC-SHA256 authentication, a per-second
request cap and a circuit breaker. Responses are validated against
per-endpoint DTOs before anything leaves this module.

Error mapping:
- non-zero retCode, HTTP 4xx, malformed payload -> ExchangeApiError
- connection errors, timeouts, HTTP 5xx, open circuit -> NetworkError
"""

import asyncio
import hashlib
import hmac
import json
import time
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar
from urllib.parse import urlencode

import aiohttp
from aiohttp import ClientTimeout
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ...core import time_manager
from ...core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerOpenException,
    CircuitBreakerTimeoutException,
)
from ...core.exceptions import ExchangeApiError, NetworkError, NotFoundError
from ...core.logger import StructuredLogger, get_logger
from ...domain.interfaces.exchange import IExchangeGateway
from ...domain.models.exchange import (
    Balance, OrderBook, OrderBookLevel, OrderSnapshot, PlacedOrder, TickerVolume
)

MALFORMED_RESPONSE_CODE = -1

T = TypeVar("T", bound=BaseModel)


# ===== RESPONSE DTOs =====

class _Dto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ApiEnvelope(_Dto):
    """{retCode, retMsg, result, time}"""
    ret_code: int = Field(..., alias="retCode")
    ret_msg: str = Field("", alias="retMsg")
    result: Dict[str, Any] = Field(default_factory=dict)
    time: Optional[int] = None

    @field_validator("result", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return v if v is not None else {}


class TickerDto(_Dto):
    symbol: str
    last_price: float = Field(..., alias="lastPrice")
    turnover_24h: Optional[float] = Field(None, alias="turnover24h")

    @field_validator("turnover_24h", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        return None if v == "" else v


class TickersResult(_Dto):
    list: List[TickerDto]


class OrderBookResult(_Dto):
    symbol: str = Field("", alias="s")
    bids: List[Tuple[float, float]] = Field(default_factory=list, alias="b")
    asks: List[Tuple[float, float]] = Field(default_factory=list, alias="a")


class CoinBalanceDto(_Dto):
    coin: str
    wallet_balance: Optional[float] = Field(None, alias="walletBalance")
    available_to_withdraw: float = Field(0.0, alias="availableToWithdraw")

    @field_validator("wallet_balance", "available_to_withdraw", mode="before")
    @classmethod
    def _blank_is_zero(cls, v):
        return 0.0 if v in ("", None) else v


class WalletAccountDto(_Dto):
    coin: List[CoinBalanceDto] = Field(default_factory=list)


class WalletBalanceResult(_Dto):
    list: List[WalletAccountDto]


class OrderCreateResult(_Dto):
    order_id: str = Field(..., alias="orderId")


class OrderDto(_Dto):
    order_id: str = Field(..., alias="orderId")
    symbol: str
    order_status: str = Field(..., alias="orderStatus")
    qty: Optional[float] = None
    cum_exec_qty: Optional[float] = Field(None, alias="cumExecQty")
    price: Optional[float] = None
    updated_time: Optional[int] = Field(None, alias="updatedTime")

    @field_validator("qty", "cum_exec_qty", "price", "updated_time", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        return None if v == "" else v


class OrderListResult(_Dto):
    list: List[OrderDto]


def format_decimal(value: float) -> str:
    """Plain decimal string without exponent or trailing zeros (3.0 -> '3')."""
    text = f"{value:.10f}".rstrip("0").rstrip(".")
    return text or "0"


class BybitExchangeGateway(IExchangeGateway):
    """
    Bybit v5 adapter.

    Signature: hex HMAC-SHA256(secret, timestamp + api_key + recv_window + payload)
    where payload is the sorted query string for GET and the JSON body for POST.
    """

    def __init__(self,
                 settings,
                 logger: Optional[StructuredLogger] = None,
                 clock: time_manager.Clock = time_manager.now_ms):
        self.settings = settings
        self.api_key = settings.api_key
        self.api_secret = settings.api_secret
        self.base_url = settings.effective_base_url.rstrip("/")
        self.recv_window = str(settings.recv_window)
        self.category = settings.category
        self.logger = logger or get_logger(__name__)
        self._clock = clock
        self.timeout = ClientTimeout(total=settings.request_timeout_seconds)

        # Rate limiting: N requests per rolling one-second window
        self.rate_limiter = {
            "requests_per_second": settings.requests_per_second,
            "window_start": 0.0,
            "request_count": 0
        }
        self._rate_lock = asyncio.Lock()

        self.circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                name=f"{settings.name}_api",
                failure_threshold=settings.circuit_failure_threshold,
                recovery_timeout=settings.circuit_recovery_seconds,
                timeout=settings.request_timeout_seconds,
                expected_exception=(aiohttp.ClientError, NetworkError)
            ),
            logger=self.logger
        )

        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def exchange_name(self) -> str:
        return self.settings.name

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    # ========================================================================
    # SIGNING / TRANSPORT
    # ========================================================================

    def _sign(self, timestamp: str, payload: str) -> str:
        message = f"{timestamp}{self.api_key}{self.recv_window}{payload}"
        return hmac.new(
            self.api_secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256
        ).hexdigest()

    def _auth_headers(self, payload: str) -> Dict[str, str]:
        timestamp = str(self._clock())
        return {
            "X-API-KEY": self.api_key,
            "X-SIGN": self._sign(timestamp, payload),
            "X-TIMESTAMP": timestamp,
            "X-RECV-WINDOW": self.recv_window,
        }

    @staticmethod
    def _query_string(params: Dict[str, Any]) -> str:
        return urlencode(sorted(params.items()))

    async def _throttle(self):
        async with self._rate_lock:
            current_time = time.monotonic()
            if current_time - self.rate_limiter["window_start"] >= 1.0:
                self.rate_limiter["window_start"] = current_time
                self.rate_limiter["request_count"] = 0

            if self.rate_limiter["request_count"] >= self.rate_limiter["requests_per_second"]:
                wait_time = 1.0 - (current_time - self.rate_limiter["window_start"])
                if wait_time > 0:
                    await asyncio.sleep(wait_time)
                self.rate_limiter["window_start"] = time.monotonic()
                self.rate_limiter["request_count"] = 0

            self.rate_limiter["request_count"] += 1

    async def _make_request(self,
                            method: str,
                            endpoint: str,
                            params: Optional[Dict[str, Any]] = None,
                            signed: bool = False) -> Dict[str, Any]:
        """
        Send one request and return the `result` object of a successful envelope.

        Raises:
            ExchangeApiError, NetworkError
        """
        await self._ensure_session()
        await self._throttle()

        params = params or {}
        headers = {"Content-Type": "application/json"}
        method = method.upper()

        if method == "GET":
            query = self._query_string(params)
            url = f"{self.base_url}{endpoint}" + (f"?{query}" if query else "")
            body = None
            payload = query
        elif method == "POST":
            url = f"{self.base_url}{endpoint}"
            body = json.dumps(params, separators=(",", ":"))
            payload = body
        else:
            raise ValueError(f"Unsupported HTTP method: {method}")

        if signed:
            headers.update(self._auth_headers(payload))

        async def send():
            async with self.session.request(method, url, data=body, headers=headers) as response:
                return await self._handle_response(response, endpoint)

        try:
            data = await self.circuit_breaker.call_async(send)
        except (CircuitBreakerOpenException, CircuitBreakerTimeoutException) as e:
            raise NetworkError(str(e)) from e
        except aiohttp.ClientError as e:
            self.logger.error("bybit_gateway.transport_error", {
                "endpoint": endpoint,
                "error": str(e),
                "error_type": type(e).__name__
            })
            raise NetworkError(f"{type(e).__name__}: {e}") from e

        envelope = self._parse(ApiEnvelope, data, endpoint)
        if envelope.ret_code != 0:
            self.logger.error("bybit_gateway.api_error", {
                "endpoint": endpoint,
                "ret_code": envelope.ret_code,
                "ret_msg": envelope.ret_msg
            })
            raise ExchangeApiError(envelope.ret_code, envelope.ret_msg)
        return envelope.result

    async def _handle_response(self, response: aiohttp.ClientResponse, endpoint: str) -> Dict[str, Any]:
        response_text = await response.text()

        if response.status >= 500:
            raise NetworkError(f"HTTP {response.status} from {endpoint}")

        try:
            data = json.loads(response_text) if response_text else {}
        except json.JSONDecodeError:
            data = None

        if response.status >= 400:
            message = data.get("retMsg") if isinstance(data, dict) else None
            raise ExchangeApiError(response.status, message or f"HTTP {response.status}: {response_text[:200]}")
        if not isinstance(data, dict):
            raise ExchangeApiError(MALFORMED_RESPONSE_CODE, f"Invalid JSON response from {endpoint}")
        return data

    def _parse(self, dto: Type[T], data: Any, endpoint: str) -> T:
        try:
            return dto.model_validate(data)
        except PydanticValidationError as e:
            self.logger.error("bybit_gateway.malformed_response", {
                "endpoint": endpoint,
                "dto": dto.__name__,
                "errors": e.error_count()
            })
            raise ExchangeApiError(MALFORMED_RESPONSE_CODE, f"Unexpected response shape from {endpoint}") from e

    # ========================================================================
    # MARKET DATA
    # ========================================================================

    async def get_current_price(self, symbol: str) -> float:
        endpoint = "/market/tickers"
        result = await self._make_request("GET", endpoint, {"category": self.category, "symbol": symbol})
        tickers = self._parse(TickersResult, result, endpoint)
        if not tickers.list:
            raise ExchangeApiError(MALFORMED_RESPONSE_CODE, f"No ticker returned for {symbol}")
        return tickers.list[0].last_price

    async def get_order_book(self, symbol: str) -> OrderBook:
        endpoint = "/market/orderbook"
        result = await self._make_request("GET", endpoint, {
            "category": self.category,
            "symbol": symbol,
            "limit": self.settings.orderbook_depth
        })
        book = self._parse(OrderBookResult, result, endpoint)
        return OrderBook(
            symbol=book.symbol or symbol,
            bids=[OrderBookLevel(price=p, size=s) for p, s in book.bids],
            asks=[OrderBookLevel(price=p, size=s) for p, s in book.asks],
        )

    async def get_quote_volumes(self) -> List[TickerVolume]:
        endpoint = "/market/tickers"
        result = await self._make_request("GET", endpoint, {"category": self.category})
        tickers = self._parse(TickersResult, result, endpoint)
        return [
            TickerVolume(symbol=t.symbol, quote_volume=t.turnover_24h, last_price=t.last_price)
            for t in tickers.list
            if t.turnover_24h is not None
        ]

    # ========================================================================
    # ACCOUNT / ORDERS
    # ========================================================================

    async def get_balance(self) -> Balance:
        endpoint = "/account/wallet-balance"
        coin = self.settings.quote_coin
        result = await self._make_request("GET", endpoint, {
            "accountType": self.settings.account_type,
            "coin": coin
        }, signed=True)
        wallet = self._parse(WalletBalanceResult, result, endpoint)

        for account in wallet.list:
            for entry in account.coin:
                if entry.coin == coin:
                    return Balance(coin=coin, available=entry.available_to_withdraw,
                                   wallet_balance=entry.wallet_balance)

        self.logger.warning("bybit_gateway.coin_not_in_wallet", {"coin": coin})
        return Balance(coin=coin, available=0.0)

    async def create_limit_order(self, symbol: str, quantity: float, price: float) -> PlacedOrder:
        endpoint = "/order/create"
        params = {
            "category": self.category,
            "symbol": symbol,
            "side": "Buy",
            "orderType": "Limit",
            "qty": format_decimal(quantity),
            "price": format_decimal(price),
            "timeInForce": "GTC"
        }
        self.logger.info("bybit_gateway.placing_limit_order", {
            "symbol": symbol, "qty": params["qty"], "price": params["price"]
        })
        result = await self._make_request("POST", endpoint, params, signed=True)
        created = self._parse(OrderCreateResult, result, endpoint)

        return PlacedOrder(
            order_id=created.order_id,
            symbol=symbol,
            side=params["side"],
            order_type=params["orderType"],
            quantity=quantity,
            price=price,
            created_time=self._clock(),
        )

    async def get_order_status(self, symbol: str, order_id: str) -> OrderSnapshot:
        endpoint = "/order/realtime"
        result = await self._make_request("GET", endpoint, {
            "category": self.category,
            "symbol": symbol,
            "orderId": order_id
        }, signed=True)
        orders = self._parse(OrderListResult, result, endpoint)
        if not orders.list:
            raise NotFoundError("Exchange order", order_id)

        order = orders.list[0]
        return OrderSnapshot(
            order_id=order.order_id,
            symbol=order.symbol,
            status=order.order_status,
            quantity=order.qty,
            filled_quantity=order.cum_exec_qty,
            price=order.price,
            updated_time=order.updated_time,
        )

    async def cancel_order(self, symbol: str, order_id: str) -> bool:
        await self._make_request("POST", "/order/cancel", {
            "category": self.category,
            "symbol": symbol,
            "orderId": order_id
        }, signed=True)
        self.logger.info("bybit_gateway.order_cancelled", {"symbol": symbol, "order_id": order_id})
        return True

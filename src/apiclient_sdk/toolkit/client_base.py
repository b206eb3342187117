"""Реализация клиента биржи на основе ccxt.

``CcxtClient`` – адаптер под абстракцию ``ExchangeClientPort`` для любой биржи,
поддерживаемой ``ccxt.async_support``. Транспорт, подпись запросов и встроенный
rate‑лимит остаются внутри ccxt; клиент отвечает за перевод пар в формат
``QUOTE_BASE`` и нормализацию ответов в схемы SDK.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import Any, final, override

import ccxt.async_support as ccxt
from ccxt.base.decimal_to_precision import TICK_SIZE
from pydantic import TypeAdapter

from apiclient_sdk.contracts.errors import (
    ConfigurationError,
    ErrorCode,
    InvalidParameterError,
    NotInitializedError,
    OrderStatusUnresolvedError,
    PermanentExchangeError,
    SdkError,
    TickerUnavailableError,
    UnsupportedFeatureError,
)
from apiclient_sdk.contracts.ports.exchange_client import (
    DEFAULT_ORDER_BOOK_DEPTH,
    ExchangeClientConfig,
    ExchangeClientPort,
)
from apiclient_sdk.schemas.balance import BalanceResponse
from apiclient_sdk.schemas.enums import Side, Status
from apiclient_sdk.schemas.kline import KLineResponse
from apiclient_sdk.schemas.market import DecimalsResponse, MarketDataResponse
from apiclient_sdk.schemas.order import MakedOrderResponse
from apiclient_sdk.schemas.order_book import OrderBookResponse
from apiclient_sdk.schemas.trade import TradeResponse
from apiclient_sdk.schemas.transfer import TransferResponse
from apiclient_sdk.toolkit.error_mapper import map_sdk_errors
from apiclient_sdk.toolkit.normalization import (
    decimals_from_precision,
    join_pair,
    minutes_to_timeframe,
    normalize_balances,
    normalize_candles,
    normalize_order_book,
    normalize_trades,
    pair_from_unified,
    pair_to_unified,
    parse_period,
    parse_side,
    resolve_status,
    sort_by_time,
    split_pair,
    to_decimal,
)

logger = logging.getLogger(__name__)

# Служебные ключи ответа fetch_balance, не являющиеся валютами.
_BALANCE_SERVICE_KEYS = frozenset({"info", "free", "used", "total", "debt", "timestamp", "datetime"})

# Имена учётных данных ccxt и соответствующие параметры init().
_CREDENTIAL_NAMES = {"apiKey": "api_key", "secret": "api_secret", "uid": "account_id", "password": "password"}


def _bounded(amount: Decimal, executed: Decimal) -> tuple[Decimal, Decimal]:
    """Возвращает (amount, executed) с ``0 <= executed <= amount``.

    Неизвестный (нулевой) объём заменяется исполненным; превышение исполненного
    объёма (округление, исполнение по лучшей цене) обрезается до заявленного.
    """
    executed = max(executed, Decimal(0))
    amount = max(amount, Decimal(0))
    if amount == 0:
        return executed, executed
    if executed > amount:
        logger.debug("Исполненный объём %s больше заявленного %s, обрезаем", executed, amount)
        return amount, amount
    return amount, executed


def _fee_total(payload: Mapping[str, Any]) -> Decimal:
    fees = payload.get("fees") or ([payload["fee"]] if payload.get("fee") else [])
    return sum((to_decimal(f.get("cost")) or Decimal(0) for f in fees if f), Decimal(0))


def _require_side(value: object) -> Side:
    side = parse_side(value)
    if side is None:
        raise PermanentExchangeError(error_code=ErrorCode.VALIDATION)
    return side


def maked_order_from_ccxt(order: Mapping[str, Any]) -> MakedOrderResponse:
    """Строит ``MakedOrderResponse`` из unified-ордера ccxt.

    right – количество базовой валюты (``amount``/``filled``), left – стоимость
    в валюте котировки (``amount * price``/``cost``).
    """
    amount = to_decimal(order.get("amount")) or Decimal(0)
    filled = to_decimal(order.get("filled")) or Decimal(0)
    price = to_decimal(order.get("price")) or Decimal(0)
    average = to_decimal(order.get("average")) or Decimal(0)
    if average == 0 and filled > 0:
        cost = to_decimal(order.get("cost")) or Decimal(0)
        average = cost / filled if cost > 0 else price

    cost = to_decimal(order.get("cost"), default=None)
    if cost is None:
        cost = filled * (average or price)

    right_amount, right_executed = _bounded(amount, filled)
    left_amount, left_executed = _bounded(right_amount * price if price > 0 else cost, cost)

    timestamp = order.get("timestamp") or order.get("lastTradeTimestamp") or int(time.time())
    return MakedOrderResponse(
        time=timestamp,
        id=str(order.get("id") or ""),
        side=_require_side(order.get("side")),
        status=resolve_status(order.get("status"), amount, filled),
        left_amount=left_amount,
        right_amount=right_amount,
        left_amount_executed=left_executed,
        right_amount_executed=right_executed,
        commission=_fee_total(order),
        rate=price,
        rate_executed=average,
    )


def maked_order_from_trade(trade: Mapping[str, Any]) -> MakedOrderResponse:
    """Строит исполненный ``MakedOrderResponse`` из сделки аккаунта ccxt."""
    amount = to_decimal(trade.get("amount")) or Decimal(0)
    price = to_decimal(trade.get("price")) or Decimal(0)
    cost = to_decimal(trade.get("cost"), default=None)
    if cost is None:
        cost = amount * price
    return MakedOrderResponse(
        time=trade.get("timestamp") or int(time.time()),
        id=str(trade.get("order") or trade.get("id") or ""),
        side=_require_side(trade.get("side")),
        status=Status.FILLED,
        left_amount=cost,
        right_amount=amount,
        left_amount_executed=cost,
        right_amount_executed=amount,
        commission=_fee_total(trade),
        rate=price,
        rate_executed=price,
    )


MARKET_DATA_RESPONSE_ADAPTER = TypeAdapter(MarketDataResponse)
TRANSFER_RESPONSE_ADAPTER = TypeAdapter(TransferResponse)


def convert_rows(
    rows: Iterable[Mapping[str, Any]], convert: Callable[[Mapping[str, Any]], MakedOrderResponse]
) -> list[MakedOrderResponse]:
    """Конвертирует строки истории по времени, пропуская строки без распознаваемой стороны."""
    result: list[MakedOrderResponse] = []
    for row in rows:
        if parse_side(row.get("side")) is None:
            logger.debug("Пропущена строка %s без стороны: %r", row.get("id"), row.get("side"))
            continue
        result.append(convert(row))
    return sort_by_time(result)


class CcxtClient(ExchangeClientPort):
    """Реализация ``ExchangeClientPort`` на базе ``ccxt.async_support``.

    Экземпляр безопасен для конкурентных вызовов из нескольких задач: после
    ``init`` он хранит только учётные данные, справочник рынков ccxt загружается
    один раз. При ``check=True`` статус ордера запрашивается через
    ``config.order_check_delay`` секунд после размещения.
    """

    def __init__(self, exchange_name: str, config: ExchangeClientConfig | None = None, *, verbose: bool = False) -> None:
        """Инициализировать клиента ccxt.

        Параметры
        ----------
        exchange_name: str
            Имя класса биржи из ccxt (например, ``binance``, ``okx``).
        config: ExchangeClientConfig | None
            Конфигурация клиента (тестнет, passphrase, опции ccxt).
        verbose: bool
            Включить подробный лог ccxt.
        """
        config = config or ExchangeClientConfig()
        super().__init__(exchange_name, config)
        self._default_type = config.default_type
        self._exchange_name = exchange_name
        # пара QUOTE_BASE -> рынок ccxt настроенного типа; пересобирается при смене справочника
        self._pair_index: dict[str, dict[str, Any]] = {}
        self._pair_index_source: object = None
        self._initialized = False

        exchange_class = getattr(ccxt, exchange_name)
        settings: dict[str, Any] = {
            "verbose": verbose,
            "enableRateLimit": True,
            "options": {
                "defaultType": config.default_type,
                "warnOnFetchOpenOrdersWithoutSymbol": False,
                **config.options,
            },
        }
        if config.password:
            settings["password"] = config.password
        if config.timeout_ms is not None:
            settings["timeout"] = config.timeout_ms
        # ccxt не полностью типизирован; используем Any, чтобы не протекали Unknown-типы
        self._exchange: Any = exchange_class(settings)
        if config.testnet:
            self._exchange.set_sandbox_mode(True)

    @property
    def cex_id(self) -> str:
        """Вернуть идентификатор (имя) биржи, используемый в ccxt."""
        return self._exchange_name

    @property
    def is_initialized(self) -> bool:
        """Переданы ли учётные данные через ``init``."""
        return self._initialized

    async def load_markets(self, *, reload: bool = False) -> None:
        """Загрузить справочник рынков ccxt, при необходимости обновив кэш."""
        await self._exchange.load_markets(reload=reload)

    # INIT

    @override
    @map_sdk_errors
    async def init(self, account_id: str, api_key: str, api_secret: str) -> None:
        values = {"apiKey": api_key, "secret": api_secret, "uid": account_id, "password": self.config.password}
        required = {"apiKey": True, "secret": True, **(getattr(self._exchange, "requiredCredentials", None) or {})}
        missing = tuple(
            _CREDENTIAL_NAMES[name]
            for name in _CREDENTIAL_NAMES
            if required.get(name) and not (values[name] or "").strip()
        )
        if missing:
            raise ConfigurationError(exchange=self.cex_id, method="init", missing=missing)

        self._exchange.apiKey = api_key
        self._exchange.secret = api_secret
        if account_id:
            self._exchange.uid = account_id
        self._initialized = True
        logger.info("Клиент %s инициализирован", self.cex_id)

    # PUBLIC API

    @override
    @map_sdk_errors
    async def get_last_price(self, symbol: str) -> Decimal:
        unified = await self._unified(symbol)
        data = await self._exchange.fetch_ticker(unified)
        price = to_decimal(data.get("last"), default=None)
        if price is None or price <= 0:
            raise TickerUnavailableError(symbol=symbol, exchange=self.cex_id)
        return price

    @override
    @map_sdk_errors
    async def get_order_book(self, symbol: str, depth: int = DEFAULT_ORDER_BOOK_DEPTH) -> OrderBookResponse:
        self._check_count("depth", depth)
        unified = await self._unified(symbol)
        data = await self._exchange.fetch_order_book(unified)
        return normalize_order_book(
            data.get("asks") or [], data.get("bids") or [], depth, symbol=symbol, exchange=self.cex_id
        )

    @override
    @map_sdk_errors
    async def get_decs(self, symbol: str) -> DecimalsResponse:
        market = await self._market(symbol)
        precision = market.get("precision") or {}
        tick_size = self._exchange.precisionMode == TICK_SIZE
        try:
            return DecimalsResponse(
                price_decs=decimals_from_precision(precision.get("price"), tick_size=tick_size),
                amount_decs=decimals_from_precision(precision.get("amount"), tick_size=tick_size),
            )
        except ValueError as e:
            raise PermanentExchangeError(error_code=ErrorCode.VALIDATION, symbol=symbol, exchange=self.cex_id) from e

    @override
    @map_sdk_errors
    async def get_kline(self, symbol: str, candle_period: int, count: int) -> KLineResponse:
        self._check_count("count", count)
        timeframe = minutes_to_timeframe(candle_period)
        if timeframe is None or timeframe not in (self._exchange.timeframes or {}):
            raise InvalidParameterError(parameter="candle_period", value=candle_period)
        unified = await self._unified(symbol)
        rows = await self._exchange.fetch_ohlcv(unified, timeframe=timeframe, limit=count)
        return normalize_candles(rows, count)

    @override
    @map_sdk_errors
    async def get_trade_history(self, symbol: str, count: int) -> list[TradeResponse]:
        self._check_count("count", count)
        unified = await self._unified(symbol)
        rows = await self._exchange.fetch_trades(unified, limit=count)
        return normalize_trades(
            (
                {"time": t.get("timestamp"), "amount": t.get("amount"), "price": t.get("price"), "side": t.get("side")}
                for t in rows
            ),
            count,
        )

    @override
    @map_sdk_errors
    async def get_market_data(self, symbol: str) -> MarketDataResponse:
        unified = await self._unified(symbol)
        data = await self._exchange.fetch_ticker(unified)
        ask = to_decimal(data.get("ask")) or Decimal(0)
        bid = to_decimal(data.get("bid")) or Decimal(0)
        spread = (ask - bid) / ask * 100 if ask > 0 and bid > 0 else Decimal(0)
        return MARKET_DATA_RESPONSE_ADAPTER.validate_python({**data, "spreadPerc": spread})

    @override
    @map_sdk_errors
    async def get_trading_pairs(self) -> list[str]:
        await self.load_markets()
        return sorted(pair for pair, market in self._markets_by_pair().items() if market.get("active") is not False)

    # PRIVATE API

    @override
    @map_sdk_errors
    async def get_balances(self) -> dict[str, BalanceResponse]:
        self._require_init("get_balances")
        data = await self._exchange.fetch_balance()
        return normalize_balances(
            (code, entry.get("free"), entry.get("used"))
            for code, entry in data.items()
            if code not in _BALANCE_SERVICE_KEYS and isinstance(entry, dict)
        )

    @override
    @map_sdk_errors
    async def get_order_status(self, id: str, symbol: str) -> MakedOrderResponse:  # noqa: A002
        self._require_init("get_order_status")
        unified = await self._unified(symbol) if symbol else None
        data = await self._exchange.fetch_order(id, unified)
        return maked_order_from_ccxt(data)

    @override
    @map_sdk_errors
    async def sell(
        self, symbol: str, amount: Decimal, price: Decimal, *, check: bool = False
    ) -> MakedOrderResponse:
        return await self._place_limit(Side.SELL, symbol, amount, price, check=check)

    @override
    @map_sdk_errors
    async def buy(
        self, symbol: str, amount: Decimal, price: Decimal, *, check: bool = False
    ) -> MakedOrderResponse:
        return await self._place_limit(Side.BUY, symbol, amount, price, check=check)

    @override
    @map_sdk_errors
    async def cancel_order(self, symbol: str, id: str) -> None:  # noqa: A002
        self._require_init("cancel_order")
        unified = await self._unified(symbol) if symbol else None
        await self._exchange.cancel_order(id, unified)
        logger.info("Ордер %s отменён на %s", id, self.cex_id)

    @override
    @map_sdk_errors
    async def cancel_all(self, symbol: str) -> None:
        self._require_init("cancel_all")
        unified = await self._unified(symbol) if symbol else None
        if self._exchange.has.get("cancelAllOrders"):
            await self._exchange.cancel_all_orders(unified)
            return
        if unified is None:
            raise UnsupportedFeatureError(cex_id=self.cex_id, method="cancel_all", params={"symbol": symbol})

        # Без массовой отмены снимаем открытые ордера пары по одному.
        open_orders = await self._exchange.fetch_open_orders(unified)
        for order in open_orders:
            await self._exchange.cancel_order(order["id"], unified)
        logger.info("Отменено %d ордеров %s на %s", len(open_orders), symbol, self.cex_id)

    @override
    @map_sdk_errors
    async def get_my_open_orders(self, symbol: str) -> list[MakedOrderResponse]:
        self._require_init("get_my_open_orders")
        unified = await self._unified(symbol) if symbol else None
        orders = await self._exchange.fetch_open_orders(unified)
        return convert_rows(orders, maked_order_from_ccxt)

    @override
    @map_sdk_errors
    async def get_my_trade_history(self, symbol: str, period: str) -> list[MakedOrderResponse]:
        self._require_init("get_my_trade_history")
        since_ms = self._since_ms(period, "get_my_trade_history")
        unified = await self._unified(symbol) if symbol else None
        trades = await self._exchange.fetch_my_trades(unified, since=since_ms)
        return convert_rows(trades, maked_order_from_trade)

    @override
    @map_sdk_errors
    async def get_my_order_history(self, symbol: str, period: str) -> list[MakedOrderResponse]:
        self._require_init("get_my_order_history")
        since_ms = self._since_ms(period, "get_my_order_history")
        unified = await self._unified(symbol) if symbol else None
        if self._exchange.has.get("fetchOrders"):
            orders = await self._exchange.fetch_orders(unified, since=since_ms)
        elif self._exchange.has.get("fetchClosedOrders"):
            orders = await self._exchange.fetch_closed_orders(unified, since=since_ms)
        else:
            raise UnsupportedFeatureError(
                cex_id=self.cex_id, method="get_my_order_history", params={"symbol": symbol, "period": period}
            )
        return convert_rows(orders, maked_order_from_ccxt)

    @override
    @map_sdk_errors
    async def withdraw(self, asset: str, address: str, amount: Decimal, chain: str) -> str:
        self._require_init("withdraw")
        if not self._exchange.has.get("withdraw"):
            raise UnsupportedFeatureError(
                cex_id=self.cex_id, method="withdraw", params={"asset": asset, "chain": chain}
            )
        code = (asset or "").strip().upper()
        if not code:
            raise InvalidParameterError(parameter="asset", value=asset)
        if not (address or "").strip():
            raise InvalidParameterError(parameter="address", value=address)
        value = self._positive(amount, "amount")

        await self.load_markets()
        network = self._resolve_network(code, chain)
        params = {"network": network} if network else {}
        try:
            result = await self._exchange.withdraw(code, float(value), address, None, params)
        except ccxt.ArgumentsRequired as e:
            # биржа требует сеть, а справочника валют для её проверки нет
            if network:
                raise
            raise InvalidParameterError(parameter="chain", value=chain) from e
        withdrawal_id = str(result.get("id") or "")
        if not withdrawal_id:
            raise PermanentExchangeError(error_code=ErrorCode.EXCHANGE_ERROR)
        logger.info("Создан вывод %s %s %s на %s", withdrawal_id, value, code, self.cex_id)
        return withdrawal_id

    @override
    @map_sdk_errors
    async def get_withdraw_list(self, *, since: int | None = None) -> list[TransferResponse]:
        self._require_init("get_withdraw_list")
        return await self._fetch_transfers("withdrawal", since)

    @override
    @map_sdk_errors
    async def get_deposit_list(self, *, since: int | None = None) -> list[TransferResponse]:
        self._require_init("get_deposit_list")
        return await self._fetch_transfers("deposit", since)

    @final
    @override
    async def close(self) -> None:
        # Базовый метод ccxt – закрывает транспорт/коннектор.
        await self._exchange.close()

        # У некоторых реализаций (aiohttp backend) есть открытая session.
        session = getattr(self._exchange, "session", None)
        if session is not None and not session.closed:
            try:
                await session.close()
            except Exception as exc:  # noqa: BLE001 – лишь логируем
                logger.warning("Не удалось корректно закрыть aiohttp session %s: %s", session, exc)

    # helpers

    def _require_init(self, method: str) -> None:
        if not self._initialized:
            raise NotInitializedError(exchange=self.cex_id, method=method)

    @staticmethod
    def _check_count(name: str, value: object) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise InvalidParameterError(parameter=name, value=value)

    @staticmethod
    def _positive(value: object, name: str) -> Decimal:
        number = to_decimal(value, default=None)
        if number is None or number <= 0:
            raise InvalidParameterError(parameter=name, value=value)
        return number

    def _since_ms(self, period: str, method: str) -> int:
        span = parse_period(period, exchange=self.cex_id, method=method).seconds
        return (int(time.time()) - span) * 1000

    async def _market(self, symbol: str) -> dict[str, Any]:
        pair = join_pair(*split_pair(symbol))
        await self.load_markets()
        market = self._markets_by_pair().get(pair)
        if market is None:
            raise InvalidParameterError(parameter="symbol", value=symbol)
        return market

    async def _unified(self, symbol: str) -> str:
        market = await self._market(symbol)
        return market["symbol"]

    def _markets_by_pair(self) -> dict[str, dict[str, Any]]:
        """Рынки типа ``config.default_type`` по паре ``QUOTE_BASE``.

        Для swap пара ``USDT_BTC`` соответствует ``BTC/USDT:USDT``. Если паре
        соответствует несколько рынков, выбирается бессрочный рынок с расчётом
        в валюте котировки.
        """
        markets = self._exchange.markets or {}
        if markets is self._pair_index_source:
            return self._pair_index

        index: dict[str, dict[str, Any]] = {}
        for market in markets.values():
            if market.get("type", self._default_type) != self._default_type:
                continue
            # пары с разделителем внутри кода валюты не представимы в формате QUOTE_BASE
            try:
                unified = market["symbol"]
                pair = pair_from_unified(unified)
                if pair_to_unified(pair) != unified.split(":", 1)[0]:
                    continue
            except (KeyError, SdkError):
                continue
            current = index.get(pair)
            if current is None or (self._is_primary(market) and not self._is_primary(current)):
                index[pair] = market

        self._pair_index = index
        self._pair_index_source = markets
        return index

    @staticmethod
    def _is_primary(market: Mapping[str, Any]) -> bool:
        settle = market.get("settle")
        return not market.get("expiry") and (settle is None or settle == market.get("quote"))

    def _resolve_network(self, code: str, chain: str) -> str | None:
        """Проверяет сеть вывода по справочнику валют биржи.

        Если у валюты несколько сетей, ``chain`` обязателен; неизвестная сеть
        отклоняется. Без справочника сеть передаётся как есть.
        """
        currencies = self._exchange.currencies or {}
        if not currencies:
            return chain or None
        currency = currencies.get(code)
        if currency is None:
            raise InvalidParameterError(parameter="asset", value=code)

        networks: Mapping[str, Any] = currency.get("networks") or {}
        if not chain:
            if len(networks) > 1:
                raise InvalidParameterError(parameter="chain", value=chain)
            return None
        for network_code, network in networks.items():
            if chain.upper() in {str(network_code).upper(), str((network or {}).get("id", "")).upper()}:
                return network_code
        if networks:
            raise InvalidParameterError(parameter="chain", value=chain)
        return chain

    async def _fetch_transfers(self, kind: str, since: int | None) -> list[TransferResponse]:
        since_ms = since * 1000 if since is not None else None
        has = self._exchange.has
        rows: Iterable[Mapping[str, Any]]
        if kind == "withdrawal" and has.get("fetchWithdrawals"):
            rows = await self._exchange.fetch_withdrawals(None, since_ms)
        elif kind == "deposit" and has.get("fetchDeposits"):
            rows = await self._exchange.fetch_deposits(None, since_ms)
        elif has.get("fetchDepositsWithdrawals"):
            rows = [
                r for r in await self._exchange.fetch_deposits_withdrawals(None, since_ms)
                if r.get("type") == kind
            ]
        else:
            method = "get_withdraw_list" if kind == "withdrawal" else "get_deposit_list"
            raise UnsupportedFeatureError(cex_id=self.cex_id, method=method, params={"since": since})
        return sort_by_time(
            TRANSFER_RESPONSE_ADAPTER.validate_python(r) for r in rows if r.get("timestamp") is not None
        )

    async def _place_limit(
        self, side: Side, symbol: str, amount: Decimal, price: Decimal, *, check: bool
    ) -> MakedOrderResponse:
        method = side.value.lower()
        self._require_init(method)
        amount_ = self._positive(amount, "amount")
        price_ = self._positive(price, "price")
        unified = await self._unified(symbol)

        ack = await self._exchange.create_order(unified, "limit", method, float(amount_), float(price_))
        placed = maked_order_from_ccxt({
            "amount": amount_,
            "price": price_,
            "side": side.value,
            **{k: v for k, v in (ack or {}).items() if v is not None},
        })
        logger.info("Размещён ордер %s %s %s %s по %s на %s", placed.id, method, amount_, symbol, price_, self.cex_id)
        if not check:
            return placed

        if self.config.order_check_delay > 0:
            await asyncio.sleep(self.config.order_check_delay)
        try:
            resolved = await self.get_order_status(placed.id, symbol)
        except SdkError as e:
            raise OrderStatusUnresolvedError(order=placed, symbol=symbol, exchange=self.cex_id, method=method) from e
        if resolved.status is Status.UNDEFINED:
            raise OrderStatusUnresolvedError(order=resolved, symbol=symbol, exchange=self.cex_id, method=method)
        return resolved

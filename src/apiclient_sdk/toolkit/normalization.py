"""Общие помощники нормализации ответов бирж.

Приводят сырые данные адаптеров к инвариантам модели: порядок стакана и свечей,
цвет свечей объёма, направление сделок, ненулевые балансы, точности пары и
формат ``QUOTE_BASE``. Функции не обращаются к сети и не хранят состояние.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from apiclient_sdk.contracts.errors import CrossedOrderBookError, InvalidParameterError
from apiclient_sdk.schemas.balance import BalanceResponse
from apiclient_sdk.schemas.base import to_unix_seconds
from apiclient_sdk.schemas.enums import Period, Side, Status
from apiclient_sdk.schemas.kline import KLineResponse, PriceCandleResponse, VolumeCandleResponse, candle_color
from apiclient_sdk.schemas.order_book import OrderBookResponse, OrderResponse
from apiclient_sdk.schemas.trade import TradeResponse

logger = logging.getLogger(__name__)

PAIR_SEPARATOR = "_"

# Периоды свечей в минутах и их обозначение в unified-формате ccxt.
_TIMEFRAMES: dict[int, str] = {
    1: "1m",
    3: "3m",
    5: "5m",
    15: "15m",
    30: "30m",
    60: "1h",
    120: "2h",
    240: "4h",
    360: "6h",
    480: "8h",
    720: "12h",
    1440: "1d",
    4320: "3d",
    10080: "1w",
    43200: "1M",
}


def to_decimal(value: object, default: Decimal | None = Decimal(0)) -> Decimal | None:
    """Преобразует число/строку в ``Decimal`` без потерь двоичного float.

    ``None``, пустая строка и нечисловые значения дают ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value
    raw = str(value).strip()
    if not raw:
        return default
    try:
        result = Decimal(raw)
    except InvalidOperation:
        return default
    return result if result.is_finite() else default


# Пары


def split_pair(symbol: str) -> tuple[str, str]:
    """Разбирает пару ``QUOTE_BASE`` на (quote, base) в верхнем регистре."""
    parts = symbol.strip().upper().split(PAIR_SEPARATOR) if symbol else []
    if len(parts) != 2 or not all(parts):  # noqa: PLR2004
        raise InvalidParameterError(parameter="symbol", value=symbol)
    return parts[0], parts[1]


def join_pair(quote: str, base: str) -> str:
    """Собирает пару ``QUOTE_BASE``."""
    return f"{quote.upper()}{PAIR_SEPARATOR}{base.upper()}"


def pair_to_unified(symbol: str) -> str:
    """``USDT_BTC`` -> ``BTC/USDT`` (unified-символ ccxt)."""
    quote, base = split_pair(symbol)
    return f"{base}/{quote}"


def pair_from_unified(unified: str) -> str:
    """``BTC/USDT`` (или ``BTC/USDT:USDT``) -> ``USDT_BTC``."""
    market = unified.split(":", 1)[0]
    base, sep, quote = market.partition("/")
    if not sep or not base or not quote:
        raise InvalidParameterError(parameter="symbol", value=unified)
    return join_pair(quote, base)


# Стакан


def _aggregate_levels(levels: Iterable[Sequence[Any]]) -> dict[Decimal, Decimal]:
    """Суммирует количество по одинаковой цене, отбрасывая пустые уровни."""
    book: dict[Decimal, Decimal] = {}
    for level in levels:
        if len(level) < 2:  # noqa: PLR2004
            continue
        price = to_decimal(level[0])
        quantity = to_decimal(level[1])
        if price is None or quantity is None or price <= 0 or quantity <= 0:
            continue
        book[price] = book.get(price, Decimal(0)) + quantity
    return book


def normalize_order_book(
    asks: Iterable[Sequence[Any]],
    bids: Iterable[Sequence[Any]],
    depth: int,
    *,
    symbol: str | None = None,
    exchange: str | None = None,
) -> OrderBookResponse:
    """Строит стакан из уровней ``[price, quantity, ...]`` в любом порядке.

    Уровни с одинаковой ценой объединяются, asks сортируются по возрастанию,
    bids по убыванию, каждая сторона обрезается до ``depth``. Пересечённый снимок
    (лучший bid не ниже лучшего ask) приводит к ``CrossedOrderBookError``.
    """
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
        raise InvalidParameterError(
            exchange=exchange, symbol=symbol, method="get_order_book", parameter="depth", value=depth
        )

    ask_book = _aggregate_levels(asks)
    bid_book = _aggregate_levels(bids)
    ask_prices = sorted(ask_book)[:depth]
    bid_prices = sorted(bid_book, reverse=True)[:depth]

    if ask_prices and bid_prices and bid_prices[0] >= ask_prices[0]:
        raise CrossedOrderBookError(
            exchange=exchange, symbol=symbol, method="get_order_book",
            best_bid=bid_prices[0], best_ask=ask_prices[0],
        )

    return OrderBookResponse(
        asks=[OrderResponse(quantity=ask_book[p], price=p) for p in ask_prices],
        bids=[OrderResponse(quantity=bid_book[p], price=p) for p in bid_prices],
    )


# Свечи


def minutes_to_timeframe(minutes: int) -> str | None:
    """Возвращает обозначение периода (``1m``, ``1h``, ``1d``...) или ``None``."""
    return _TIMEFRAMES.get(minutes)


def normalize_candles(rows: Iterable[Sequence[Any]], count: int) -> KLineResponse:
    """Строит свечи из строк ``[time, open, high, low, close, volume]``.

    Время принимается в секундах или миллисекундах. Дубликаты по времени
    заменяются последней строкой, результат – не более ``count`` последних
    свечей по возрастанию времени. При ``close == open`` свеча объёма красная.
    """
    by_time: dict[int, Sequence[Any]] = {}
    for row in rows:
        if len(row) < 6 or row[0] is None:  # noqa: PLR2004
            continue
        by_time[int(to_unix_seconds(row[0]))] = row  # type: ignore[arg-type]

    times = sorted(by_time)[-count:] if count > 0 else []
    price_candles: list[PriceCandleResponse] = []
    volume_candles: list[VolumeCandleResponse] = []
    for ts in times:
        _, open_, high, low, close, volume = by_time[ts][:6]
        o, c = to_decimal(open_), to_decimal(close)
        price_candles.append(
            PriceCandleResponse(time=ts, open=o, close=c, high=to_decimal(high), low=to_decimal(low))
        )
        volume_candles.append(
            VolumeCandleResponse(time=ts, value=to_decimal(volume), color=candle_color(o, c))  # type: ignore[arg-type]
        )
    return KLineResponse(price_candles=price_candles, volume_candles=volume_candles)


# Сделки


def parse_side(value: object) -> Side | None:
    """``buy``/``BUY``/``bid`` -> BUY, ``sell``/``ask`` -> SELL, иначе ``None``."""
    if value is None:
        return None
    raw = str(value).strip().upper()
    if raw in {"BUY", "BID", "B"}:
        return Side.BUY
    if raw in {"SELL", "ASK", "S"}:
        return Side.SELL
    return None


def infer_side(price: Decimal, previous_price: Decimal | None, previous_side: Side | None) -> Side:
    """Направление по тику цены: рост – BUY, падение – SELL.

    Нулевой тик повторяет предыдущее направление; первая сделка окна без
    направления считается покупкой. Это оценка, а не данные биржи.
    """
    if previous_price is None:
        return previous_side or Side.BUY
    if price > previous_price:
        return Side.BUY
    if price < previous_price:
        return Side.SELL
    return previous_side or Side.BUY


def normalize_trades(trades: Iterable[Mapping[str, Any]], count: int) -> list[TradeResponse]:
    """Строит список сделок по возрастанию времени, не длиннее ``count``.

    Элементы – словари с ключами ``time``, ``amount``, ``price`` и необязательным
    ``side``. Недостающее направление выводится ``infer_side`` по предыдущей сделке.
    """
    rows: list[tuple[int, Decimal, Mapping[str, Any]]] = []
    for t in trades:
        price = to_decimal(t.get("price"), default=None)
        if t.get("time") is None or price is None or price <= 0:
            continue
        rows.append((int(to_unix_seconds(t["time"])), price, t))  # type: ignore[arg-type]
    rows.sort(key=lambda r: r[0])

    result: list[TradeResponse] = []
    previous_price: Decimal | None = None
    previous_side: Side | None = None
    for ts, price, row in rows:
        side = parse_side(row.get("side"))
        if side is None:
            side = infer_side(price, previous_price, previous_side)
        amount = max(to_decimal(row.get("amount")) or Decimal(0), Decimal(0))
        result.append(TradeResponse(time=ts, amount=amount, price=price, side=side))
        previous_price, previous_side = price, side

    return result[-count:] if count > 0 else []


# Балансы


def normalize_balances(entries: Iterable[tuple[str, object, object]]) -> dict[str, BalanceResponse]:
    """Строит словарь ненулевых балансов из кортежей ``(currency, free, locked)``.

    Ключи приводятся к верхнему регистру, совпадающие после этого записи
    суммируются, отрицательные значения считаются нулём.
    """
    totals: dict[str, tuple[Decimal, Decimal]] = {}
    for currency, free, locked in entries:
        if not currency:
            continue
        code = currency.strip().upper()
        f = max(to_decimal(free) or Decimal(0), Decimal(0))
        lck = max(to_decimal(locked) or Decimal(0), Decimal(0))
        prev_free, prev_locked = totals.get(code, (Decimal(0), Decimal(0)))
        totals[code] = (prev_free + f, prev_locked + lck)

    return {
        code: BalanceResponse(free=f, locked=lck)
        for code, (f, lck) in totals.items()
        if f != 0 or lck != 0
    }


# Точности


def decimals_from_precision(value: object, *, tick_size: bool) -> int:
    """Число знаков после запятой из метаданных биржи.

    При ``tick_size=True`` значение – шаг цены/количества (``0.01`` -> 2),
    иначе – уже количество знаков.
    """
    step = to_decimal(value, default=None)
    if step is None or step < 0:
        msg = f"Некорректная точность {value!r}"
        raise ValueError(msg)
    if not tick_size:
        return int(step)
    if step == 0:
        msg = "Шаг точности не может быть нулевым"
        raise ValueError(msg)
    exponent = step.normalize().as_tuple().exponent
    return max(-int(exponent), 0)


# Ордера


def resolve_status(state: object, amount: Decimal, filled: Decimal) -> Status:
    """Классифицирует статус ордера по состоянию биржи и исполненному объёму.

    ``state`` – unified-статус ccxt (``open``, ``closed``, ``canceled``, ``expired``,
    ``rejected``). Неизвестное состояние даёт UNDEFINED.
    """
    raw = str(state).strip().lower() if state is not None else ""
    if raw == "closed":
        if amount > 0 and filled < amount:
            return Status.PARTIALLY_FILLED if filled > 0 else Status.NOT_FILLED
        return Status.FILLED
    if raw in {"open", "canceled", "cancelled", "expired", "rejected"}:
        if amount > 0 and filled >= amount:
            return Status.FILLED
        return Status.PARTIALLY_FILLED if filled > 0 else Status.NOT_FILLED
    return Status.UNDEFINED


def parse_period(period: str, *, exchange: str | None = None, method: str | None = None) -> Period:
    """Проверяет период истории (``1d``, ``1w``, ``1m``)."""
    try:
        return Period(period)
    except ValueError as e:
        raise InvalidParameterError(exchange=exchange, method=method, parameter="period", value=period) from e


def sort_by_time[T](items: Iterable[T]) -> list[T]:
    """Стабильно сортирует сущности с атрибутом ``time`` по возрастанию."""
    return sorted(items, key=lambda item: item.time)  # type: ignore[attr-defined]

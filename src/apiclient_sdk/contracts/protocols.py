"""Контракты-протоколы сущностей, возвращаемых клиентами бирж.

Определяют минимально необходимый набор свойств для стаканов, свечей, сделок,
балансов, ордеров и переводов. Контракт клиента зависит только от этих
протоколов, а конкретные схемы ``apiclient_sdk.schemas`` им удовлетворяют.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol, runtime_checkable

from apiclient_sdk.schemas.enums import Color, Side, Status


class OrderLevelProtocol(Protocol):
    """Уровень стакана."""

    @property
    def quantity(self) -> Decimal:
        """Количество токена на уровне."""
        ...

    @property
    def price(self) -> Decimal:
        """Цена одного токена."""
        ...


class OrderBookProtocol(Protocol):
    """Стакан пары: asks по возрастанию цены, bids по убыванию, без пересечения."""

    @property
    def asks(self) -> Sequence[OrderLevelProtocol]:
        """Заявки на продажу."""
        ...

    @property
    def bids(self) -> Sequence[OrderLevelProtocol]:
        """Заявки на покупку."""
        ...


class DecimalsProtocol(Protocol):
    """Точности пары в знаках после запятой."""

    @property
    def price_decs(self) -> int:
        """Знаков после запятой в цене."""
        ...

    @property
    def amount_decs(self) -> int:
        """Знаков после запятой в количестве."""
        ...


class PriceCandleProtocol(Protocol):
    """Ценовая свеча."""

    @property
    def time(self) -> int:
        """Время открытия свечи, Unix, секунды."""
        ...

    @property
    def open(self) -> Decimal: ...

    @property
    def close(self) -> Decimal: ...

    @property
    def high(self) -> Decimal: ...

    @property
    def low(self) -> Decimal: ...


class VolumeCandleProtocol(Protocol):
    """Свеча объёма."""

    @property
    def time(self) -> int: ...

    @property
    def value(self) -> Decimal: ...

    @property
    def color(self) -> Color:
        """Green при close > open, иначе Red."""
        ...


class KLineProtocol(Protocol):
    """Свечи пары, по возрастанию времени, соответствие по индексу."""

    @property
    def price_candles(self) -> Sequence[PriceCandleProtocol]: ...

    @property
    def volume_candles(self) -> Sequence[VolumeCandleProtocol]: ...


class TradeProtocol(Protocol):
    """Публичная сделка."""

    @property
    def time(self) -> int: ...

    @property
    def amount(self) -> Decimal: ...

    @property
    def price(self) -> Decimal: ...

    @property
    def side(self) -> Side: ...


class MarketDataProtocol(Protocol):
    """Снимок статистики пары."""

    @property
    def volume_left(self) -> Decimal:
        """Объём в валюте котировки."""
        ...

    @property
    def volume_right(self) -> Decimal:
        """Объём в базовой валюте."""
        ...

    @property
    def price(self) -> Decimal:
        """Последняя цена."""
        ...

    @property
    def price_change_perc(self) -> Decimal: ...

    @property
    def price_change_abs(self) -> Decimal: ...

    @property
    def spread_perc(self) -> Decimal: ...

    @property
    def min_sell(self) -> Decimal:
        """Лучшая цена продажи."""
        ...

    @property
    def max_buy(self) -> Decimal:
        """Лучшая цена покупки."""
        ...

    @property
    def day_price_high(self) -> Decimal: ...

    @property
    def day_price_low(self) -> Decimal: ...


@runtime_checkable
class BalanceProtocol(Protocol):
    """Снимок баланса по монете на бирже."""

    @property
    def free(self) -> Decimal:
        """Свободный баланс (доступен к использованию)."""
        ...

    @property
    def locked(self) -> Decimal:
        """Зарезервированный баланс (в ордерах и выводах)."""
        ...


class MakedOrderProtocol(Protocol):
    """Размещённый или запрошенный ордер аккаунта."""

    @property
    def time(self) -> int: ...

    @property
    def id(self) -> str:
        """Идентификатор ордера на бирже."""
        ...

    @property
    def status(self) -> Status:
        """Статус исполнения; UNDEFINED только если ответ биржи не классифицирован."""
        ...

    @property
    def side(self) -> Side: ...

    @property
    def left_amount(self) -> Decimal: ...

    @property
    def right_amount(self) -> Decimal: ...

    @property
    def left_amount_executed(self) -> Decimal: ...

    @property
    def right_amount_executed(self) -> Decimal: ...

    @property
    def commission(self) -> Decimal: ...

    @property
    def rate(self) -> Decimal:
        """Цена ордера."""
        ...

    @property
    def rate_executed(self) -> Decimal:
        """Средняя цена исполнения."""
        ...


class TransferProtocol(Protocol):
    """Ввод или вывод средств."""

    @property
    def time(self) -> int: ...

    @property
    def amount(self) -> Decimal: ...

    @property
    def currency(self) -> str: ...

    @property
    def txid(self) -> str: ...

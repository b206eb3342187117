"""Порт клиента биржи: единый контракт для всех адаптеров.

Определяет конфигурацию и интерфейс, который реализует каждый адаптер биржи.
Вызывающий код (боты, дашборды, задания сверки) работает только с
``ExchangeClientPort`` и не ветвится по конкретной бирже.

Формат пары: ``<QUOTE>_<BASE>`` в верхнем регистре (например ``USDT_BTC``):
слева валюта, которая тратится при ``buy``, справа – приобретаемая.

Все операции – асинхронные запрос/ответ. Экземпляр после ``init`` хранит только
учётные данные и допускает конкурентные вызовы из нескольких задач. Повторы,
backoff и таймауты относятся к транспорту адаптера; ``buy``/``sell``/``cancel_*``/
``withdraw`` не повторяются автоматически.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from apiclient_sdk.contracts.protocols import (
    BalanceProtocol,
    DecimalsProtocol,
    KLineProtocol,
    MakedOrderProtocol,
    MarketDataProtocol,
    OrderBookProtocol,
    TradeProtocol,
    TransferProtocol,
)

DEFAULT_ORDER_BOOK_DEPTH = 50


@dataclass
class ExchangeClientConfig:
    """Конфигурация клиента биржи, не относящаяся к учётным данным.

    Ключи передаются через ``ExchangeClientPort.init``. ``password`` нужен биржам
    с passphrase (OKX, KuCoin); ``order_check_delay`` – пауза в секундах между
    размещением ордера и запросом его статуса при ``check=True``.
    """

    testnet: bool = False
    password: str | None = None
    default_type: str = "spot"
    order_check_delay: float = 0.0
    timeout_ms: int | None = None
    options: dict[str, Any] = field(default_factory=dict)


class CexIdentifiable(ABC):
    """Интерфейс для получения строкового идентификатора биржи."""

    @property
    @abstractmethod
    def cex_id(self) -> str:
        """Возвращает строковый идентификатор биржи."""
        ...


class ExchangeClientPort(CexIdentifiable, ABC):
    """Контракт клиента биржи: рыночные данные, торговля и переводы."""

    def __init__(self, exchange_name: str, config: ExchangeClientConfig) -> None:
        """Инициализировать клиента.

        Параметры
        ----------
        exchange_name: str
            Идентификатор/название биржи (соответствует реализации в адаптере).
        config: ExchangeClientConfig
            Конфигурация подключения и параметров клиента.
        """
        self.exchange_name = exchange_name
        self.config = config

    # INIT

    @abstractmethod
    async def init(self, account_id: str, api_key: str, api_secret: str) -> None:
        """Сохранить учётные данные.

        Вызывается один раз до приватных операций. Параметр, который биржа не
        использует (часто ``account_id``), может быть пустым. Пустой обязательный
        параметр приводит к ``ConfigurationError``.
        """
        ...

    # PUBLIC API

    @abstractmethod
    async def get_last_price(self, symbol: str) -> Decimal:
        """Вернуть цену последней сделки по паре ``symbol``."""
        ...

    @abstractmethod
    async def get_order_book(self, symbol: str, depth: int = DEFAULT_ORDER_BOOK_DEPTH) -> OrderBookProtocol:
        """Вернуть стакан не глубже ``depth`` уровней на сторону.

        asks упорядочены по возрастанию цены, bids по убыванию, стакан не
        пересечён независимо от порядка, в котором отвечает биржа.
        """
        ...

    @abstractmethod
    async def get_decs(self, symbol: str) -> DecimalsProtocol:
        """Вернуть число знаков после запятой для цены и количества пары."""
        ...

    @abstractmethod
    async def get_kline(self, symbol: str, candle_period: int, count: int) -> KLineProtocol:
        """Вернуть не более ``count`` последних свечей периода ``candle_period`` минут.

        Свечи упорядочены по возрастанию времени. Неподдерживаемый биржей
        период приводит к ``InvalidParameterError``.
        """
        ...

    @abstractmethod
    async def get_trade_history(self, symbol: str, count: int) -> Sequence[TradeProtocol]:
        """Вернуть не более ``count`` последних публичных сделок по возрастанию времени."""
        ...

    @abstractmethod
    async def get_market_data(self, symbol: str) -> MarketDataProtocol:
        """Вернуть снимок статистики пары."""
        ...

    @abstractmethod
    async def get_trading_pairs(self) -> Sequence[str]:
        """Вернуть все торговые пары биржи в формате ``QUOTE_BASE``."""
        ...

    # PRIVATE API

    @abstractmethod
    async def get_balances(self) -> Mapping[str, BalanceProtocol]:
        """Вернуть ненулевые балансы, ключ – код валюты в верхнем регистре."""
        ...

    @abstractmethod
    async def get_order_status(self, id: str, symbol: str) -> MakedOrderProtocol:  # noqa: A002
        """Вернуть ордер ``id``; неизвестный идентификатор – ``OrderNotFoundError``."""
        ...

    @abstractmethod
    async def sell(
        self, symbol: str, amount: Decimal, price: Decimal, *, check: bool = False
    ) -> MakedOrderProtocol:
        """Выставить лимитный ордер на продажу ``amount`` по цене ``price``.

        При ``check=True`` сразу после размещения запрашивается статус ордера и
        возвращается полностью заполненная структура.
        """
        ...

    @abstractmethod
    async def buy(
        self, symbol: str, amount: Decimal, price: Decimal, *, check: bool = False
    ) -> MakedOrderProtocol:
        """Выставить лимитный ордер на покупку ``amount`` по цене ``price``."""
        ...

    @abstractmethod
    async def cancel_order(self, symbol: str, id: str) -> None:  # noqa: A002
        """Отменить ордер ``id`` по паре ``symbol``."""
        ...

    @abstractmethod
    async def cancel_all(self, symbol: str) -> None:
        """Отменить все открытые ордера по паре; пустой ``symbol`` – по всем парам.

        Если биржа не умеет массовую отмену, возбуждается ``UnsupportedFeatureError``.
        """
        ...

    @abstractmethod
    async def get_my_open_orders(self, symbol: str) -> Sequence[MakedOrderProtocol]:
        """Вернуть открытые ордера аккаунта; пустой ``symbol`` – по всем парам."""
        ...

    @abstractmethod
    async def get_my_trade_history(self, symbol: str, period: str) -> Sequence[MakedOrderProtocol]:
        """Вернуть сделки аккаунта за ``period`` (``1d``, ``1w``, ``1m``)."""
        ...

    @abstractmethod
    async def get_my_order_history(self, symbol: str, period: str) -> Sequence[MakedOrderProtocol]:
        """Вернуть ордера аккаунта за ``period`` (``1d``, ``1w``, ``1m``)."""
        ...

    @abstractmethod
    async def withdraw(self, asset: str, address: str, amount: Decimal, chain: str) -> str:
        """Создать заявку на вывод и вернуть её идентификатор на бирже."""
        ...

    @abstractmethod
    async def get_withdraw_list(self, *, since: int | None = None) -> Sequence[TransferProtocol]:
        """Вернуть выводы по возрастанию времени; ``since`` – нижняя граница, Unix, секунды."""
        ...

    @abstractmethod
    async def get_deposit_list(self, *, since: int | None = None) -> Sequence[TransferProtocol]:
        """Вернуть вводы по возрастанию времени; ``since`` – нижняя граница, Unix, секунды."""
        ...

    async def close(self) -> None:  # noqa: B027
        """Закрыть сетевые ресурсы клиента; по умолчанию ничего не делает."""

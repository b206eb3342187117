"""Иерархия исключений SDK.

Категории ошибок контракта:
- ``ConfigurationError`` – отсутствующие или некорректные учётные данные;
- ``InvalidParameterError`` – неподдерживаемый символ, период свечей, период истории;
- ``NotFoundError`` – запрошенная сущность (ордер) не существует;
- ``UnsupportedFeatureError`` – операция не поддерживается биржей;
- ``NotInitializedError`` – нарушение контракта вызывающим кодом (приватный вызов до ``init``);
- ``ExchangeClientError`` – транспортные и удалённые ошибки (сеть, лимиты, ответ биржи).

Только транспортные/удалённые ошибки наследуются от ``ExchangeClientError``, поэтому
``except ExchangeClientError`` не перехватывает остальные категории.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from apiclient_sdk.schemas.order import MakedOrderResponse


class ErrorCode(Enum):
    """Машиночитаемые коды ошибок SDK."""

    UNKNOWN = "unknown"
    TIMEOUT = "timeout"
    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    EXCHANGE_ERROR = "exchange_error"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    INVALID_PARAMETER = "invalid_parameter"
    NOT_FOUND = "not_found"
    NOT_INITIALIZED = "not_initialized"
    UNSUPPORTED_FEATURE = "unsupported_feature"
    TICKER_UNAVAILABLE = "ticker_unavailable"
    CROSSED_ORDER_BOOK = "crossed_order_book"
    ORDER_STATUS_UNRESOLVED = "order_status_unresolved"


@dataclass(slots=True, kw_only=True)
class SdkError(Exception):
    """Базовая ошибка SDK.

    Атрибуты
    ---------
    error_code: ErrorCode
        Машиночитаемый код класса ошибки для унификации обработки.
    retryable: bool
        Признак возможности безопасного повтора операции.
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    retryable: bool = False


@dataclass(slots=True)
class ContextualError(SdkError):
    """Ошибка с контекстом вызова.

    exchange: идентификатор биржи, symbol: торговая пара, method: имя метода SDK.
    Значения полей могут быть не заданы, если контекст недоступен.
    """

    exchange: str | None = None
    symbol: str | None = None
    method: str | None = None


@dataclass(slots=True)
class ConfigurationError(ContextualError):
    """Учётные данные или конфигурация клиента отсутствуют либо отклонены биржей."""

    missing: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Установить код ошибки конфигурации."""
        self.error_code = ErrorCode.CONFIGURATION

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        if self.missing:
            return f"Не заданы обязательные параметры {', '.join(self.missing)} для биржи {self.exchange}"
        return f"Конфигурация клиента биржи {self.exchange} отклонена"


@dataclass(slots=True)
class InvalidParameterError(ContextualError):
    """Параметр вызова не поддерживается биржей или имеет неверный формат."""

    parameter: str | None = None
    value: Any = None

    def __post_init__(self) -> None:
        """Установить код ошибки неверного параметра."""
        self.error_code = ErrorCode.INVALID_PARAMETER

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        return f"Недопустимое значение {self.parameter}={self.value!r} для {self.method} на {self.exchange}"


@dataclass(slots=True)
class NotFoundError(ContextualError):
    """Запрошенная сущность не найдена на бирже."""

    def __post_init__(self) -> None:
        """Установить код ошибки отсутствующей сущности."""
        self.error_code = ErrorCode.NOT_FOUND


@dataclass(slots=True)
class OrderNotFoundError(NotFoundError):
    """Ордер с указанным идентификатором не принадлежит аккаунту."""

    order_id: str | None = None

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        return f"Ордер {self.order_id} не найден для {self.symbol} на {self.exchange}"


@dataclass(slots=True)
class NotInitializedError(ContextualError):
    """Приватная операция вызвана до успешного ``init``."""

    def __post_init__(self) -> None:
        """Установить код ошибки неинициализированного клиента."""
        self.error_code = ErrorCode.NOT_INITIALIZED

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        return f"Метод {self.method} требует вызова init() для биржи {self.exchange}"


@dataclass(slots=True)
class UnsupportedFeatureError(SdkError):
    """Функция не поддерживается биржей."""

    cex_id: str
    method: str
    params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Зафиксировать параметры и установить код ошибки."""
        self.params = MappingProxyType(dict(self.params))
        self.error_code = ErrorCode.UNSUPPORTED_FEATURE

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        return f"Функция {self.method} не поддерживается биржей {self.cex_id} для параметров {dict(self.params)}"


@dataclass(slots=True)
class ExchangeClientError(ContextualError):
    """Транспортные и удалённые ошибки биржи (сеть, лимиты, отказ биржи)."""

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        return f"Ошибка биржи {self.exchange} ({self.error_code.value}) в {self.method} для {self.symbol}"


@dataclass(slots=True)
class RetryableExchangeError(ExchangeClientError):
    """Временная (транзиентная) ошибка, попытку можно повторить позднее."""

    retryable: bool = True


@dataclass(slots=True)
class PermanentExchangeError(ExchangeClientError):
    """Постоянная ошибка, повтор не имеет смысла без изменения условий."""


@dataclass(slots=True)
class UnknownExchangeError(ExchangeClientError):
    """Неопознанная ошибка внешней библиотеки/сети."""

    def __post_init__(self) -> None:
        """Установить код ошибки по умолчанию для неизвестной ошибки."""
        self.error_code = ErrorCode.UNKNOWN


@dataclass(slots=True)
class TickerUnavailableError(RetryableExchangeError):
    """Биржа не вернула последнюю цену для пары."""

    def __post_init__(self) -> None:
        """Установить код ошибки для отсутствующего тикера."""
        self.error_code = ErrorCode.TICKER_UNAVAILABLE

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        return f"Не удалось получить последнюю цену для {self.symbol}, биржа {self.exchange}"


@dataclass(slots=True)
class CrossedOrderBookError(RetryableExchangeError):
    """Снимок стакана пересечён: лучшая цена покупки не ниже лучшей цены продажи."""

    best_bid: Any = None
    best_ask: Any = None

    def __post_init__(self) -> None:
        """Установить код ошибки пересечённого стакана."""
        self.error_code = ErrorCode.CROSSED_ORDER_BOOK

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        return f"Стакан {self.symbol} на {self.exchange} пересечён: bid {self.best_bid} >= ask {self.best_ask}"


@dataclass(slots=True)
class OrderStatusUnresolvedError(RetryableExchangeError):
    """Ордер выставлен, но его статус не удалось получить.

    ``order`` содержит частично заполненный ордер из подтверждения размещения;
    повторять следует запрос статуса, а не размещение.
    """

    order: MakedOrderResponse | None = None

    def __post_init__(self) -> None:
        """Установить код ошибки неразрешённого статуса."""
        self.error_code = ErrorCode.ORDER_STATUS_UNRESOLVED

    def __str__(self) -> str:
        """Вернуть человекочитаемое представление ошибки."""
        order_id = self.order.id if self.order is not None else None
        return f"Статус ордера {order_id} для {self.symbol} на {self.exchange} не определён"

"""Централизованный маппер внешних исключений в ошибки SDK.

Назначение: унифицировать категории ошибок контракта (конфигурация, параметр,
не найдено, не поддерживается, транспорт) и признак повтора запроса.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from functools import wraps
from threading import RLock
from typing import TYPE_CHECKING, Any, Concatenate, ParamSpec, TypeVar, overload

from apiclient_sdk.contracts.ports.exchange_client import CexIdentifiable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import CoroutineType

import ccxt
import httpx
from pydantic import ValidationError

from apiclient_sdk.contracts.errors import (
    ConfigurationError,
    ContextualError,
    ErrorCode,
    InvalidParameterError,
    OrderNotFoundError,
    PermanentExchangeError,
    RetryableExchangeError,
    SdkError,
    UnknownExchangeError,
    UnsupportedFeatureError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ErrorContext:
    """Контекст метода SDK для обогащения ошибок."""

    exchange: str | None = None
    symbol: str | None = None
    method: str | None = None
    arguments: dict[str, Any] | None = None


class ErrorMapper:
    """Маппер внешних ошибок в иерархию SDK.

    Предусмотрена регистрация дополнительных правил через register().
    """

    def __init__(self) -> None:
        """Создать экземпляр маппера ошибок."""
        self._rules: list[Callable[[BaseException, ErrorContext], SdkError | None]] = []
        self._rule_ids: set[tuple[str, str]] = set()
        self._lock = RLock()

    def register(self, rule: Callable[[BaseException, ErrorContext], SdkError | None]) -> None:
        """Регистрирует пользовательское правило маппинга."""
        rule_id = self._rule_id(rule)

        with self._lock:
            if rule_id in self._rule_ids:
                return
            self._rules.append(rule)
            self._rule_ids.add(rule_id)

    def translate(self, exc: BaseException, ctx: ErrorContext) -> SdkError:
        """Преобразовать исключение внешней библиотеки в SdkError."""
        # Пользовательские правила первыми
        with self._lock:
            rules_snapshot = tuple(self._rules)

        for rule in rules_snapshot:
            mapped = rule(exc, ctx)
            if mapped is not None:
                return self.enrich(mapped, ctx)

        # Порядок важен: в ccxt OrderNotFound < InvalidOrder < ExchangeError,
        # RequestTimeout и RateLimitExceeded < NetworkError.
        mapped: SdkError
        if isinstance(exc, ccxt.OrderNotFound):
            mapped = OrderNotFoundError(order_id=self._order_id(ctx))
        elif isinstance(exc, (ccxt.AuthenticationError, ccxt.PermissionDenied)):
            mapped = ConfigurationError()
        elif isinstance(exc, (ccxt.NotSupported, ccxt.ArgumentsRequired)):
            mapped = UnsupportedFeatureError(
                cex_id=ctx.exchange or "unknown", method=ctx.method or "unknown", params=ctx.arguments or {}
            )
        elif isinstance(exc, (ccxt.BadSymbol, ccxt.BadRequest, ccxt.InvalidAddress, ccxt.InvalidOrder)):
            mapped = InvalidParameterError(parameter=self._parameter(exc), value=ctx.symbol)
        elif isinstance(exc, ccxt.InsufficientFunds):
            mapped = PermanentExchangeError(error_code=ErrorCode.INSUFFICIENT_FUNDS)
        elif isinstance(exc, (ccxt.RequestTimeout, httpx.TimeoutException, asyncio.TimeoutError)):
            mapped = RetryableExchangeError(error_code=ErrorCode.TIMEOUT)
        elif isinstance(exc, (ccxt.RateLimitExceeded, ccxt.DDoSProtection)):
            mapped = RetryableExchangeError(error_code=ErrorCode.RATE_LIMIT)
        elif isinstance(exc, (ccxt.NetworkError, httpx.NetworkError, httpx.RemoteProtocolError)):
            mapped = RetryableExchangeError(error_code=ErrorCode.NETWORK)
        elif isinstance(exc, ccxt.ExchangeError):
            mapped = PermanentExchangeError(error_code=ErrorCode.EXCHANGE_ERROR)
        elif isinstance(exc, ValidationError):
            mapped = PermanentExchangeError(error_code=ErrorCode.VALIDATION)
        else:
            mapped = UnknownExchangeError()

        return self.enrich(mapped, ctx)

    @staticmethod
    def enrich(err: SdkError, ctx: ErrorContext) -> SdkError:
        """Дополнить ошибку контекстом вызова, не затирая уже заданные поля."""
        if isinstance(err, ContextualError):
            err.exchange = err.exchange or ctx.exchange
            err.symbol = err.symbol or ctx.symbol
            err.method = err.method or ctx.method
        return err

    @staticmethod
    def _order_id(ctx: ErrorContext) -> str | None:
        value = (ctx.arguments or {}).get("id")
        return None if value is None else str(value)

    @staticmethod
    def _parameter(exc: BaseException) -> str:
        if isinstance(exc, ccxt.BadSymbol):
            return "symbol"
        if isinstance(exc, ccxt.InvalidAddress):
            return "address"
        if isinstance(exc, ccxt.InvalidOrder):
            return "order"
        return "request"

    @staticmethod
    def _rule_id(rule: Callable[[BaseException, ErrorContext], SdkError | None]) -> tuple[str, str]:
        module = getattr(rule, "__module__", "")
        qualname = getattr(rule, "__qualname__", getattr(rule, "__name__", ""))
        return module, qualname


default_error_mapper = ErrorMapper()

# Тип-параметр исходной функции; декоратор сохраняет его без изменений
P = ParamSpec("P")
R = TypeVar("R")


def _context(
    sig: inspect.Signature, method_name: str, args: tuple[Any, ...], kwargs: dict[str, Any]
) -> ErrorContext:
    self_obj = args[0] if args else None
    exchange = getattr(self_obj, "cex_id", None)
    bound = sig.bind_partial(*args, **kwargs)
    bound.apply_defaults()
    arguments = {k: v for k, v in bound.arguments.items() if k != "self"}
    symbol = arguments.get("symbol") or None
    return ErrorContext(exchange=exchange, symbol=symbol, method=method_name, arguments=arguments)


def _wrap_sync[**P, R](fn: Callable[P, R]) -> Callable[P, R]:
    sig = inspect.signature(fn)
    method_name = getattr(fn, "__name__", "unknown")

    @wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return fn(*args, **kwargs)
        except SdkError as exc:
            raise default_error_mapper.enrich(exc, _context(sig, method_name, args, kwargs))
        except Exception as exc:
            ctx = _context(sig, method_name, args, kwargs)
            logger.exception("Исключение на границе SDK: %s.%s", ctx.exchange, method_name)
            raise default_error_mapper.translate(exc, ctx) from exc

    return wrapper


def _wrap_async[**P, R](fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    sig = inspect.signature(fn)
    method_name = getattr(fn, "__name__", "unknown")

    @wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await fn(*args, **kwargs)
        except SdkError as exc:
            raise default_error_mapper.enrich(exc, _context(sig, method_name, args, kwargs))
        except Exception as exc:
            ctx = _context(sig, method_name, args, kwargs)
            logger.exception("Исключение на границе SDK: %s.%s", ctx.exchange, method_name)
            t_ecx = default_error_mapper.translate(exc, ctx)
            raise t_ecx from exc

    return wrapper


@overload
def map_sdk_errors[**P, R, T: CexIdentifiable](
    fn: Callable[Concatenate[T, P], Awaitable[R]],
) -> Callable[Concatenate[T, P], CoroutineType[Any, Any, R]]: ...
@overload
def map_sdk_errors[**P, R, T: CexIdentifiable](
    fn: Callable[Concatenate[T, P], R],
) -> Callable[Concatenate[T, P], R]: ...


def map_sdk_errors[**P, R, T: CexIdentifiable](
    fn: Callable[Concatenate[T, P], R] | Callable[Concatenate[T, P], Awaitable[R]],
):
    """Декоратор границы SDK.

    Сохраняет тип функции (включая async/sync форму) и добавляет маппинг ошибок.
    Ошибки SDK пропускаются как есть, дополняясь контекстом вызова.
    """
    if inspect.iscoroutinefunction(fn):
        return _wrap_async(fn)
    return _wrap_sync(fn)

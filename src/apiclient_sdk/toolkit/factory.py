"""Фабрика клиентов бирж."""

from __future__ import annotations

import ccxt.async_support as ccxt

from apiclient_sdk.contracts.errors import InvalidParameterError
from apiclient_sdk.contracts.ports.exchange_client import ExchangeClientConfig, ExchangeClientPort
from apiclient_sdk.toolkit.client_base import CcxtClient


def supported_exchanges() -> list[str]:
    """Идентификаторы бирж, для которых доступен ``CcxtClient``."""
    return sorted(ccxt.exchanges)


def create_exchange_client(
    exchange_name: str,
    config: ExchangeClientConfig | None = None,
    *,
    verbose: bool = False,
) -> ExchangeClientPort:
    """Создать клиента биржи.

    Параметры
    ----------
    exchange_name: str
        Идентификатор биржи в ccxt (``binance``, ``okx``, ``bybit`` ...), регистр не важен.
    config: ExchangeClientConfig | None
        Конфигурация клиента; по умолчанию спот без тестнета.
    verbose: bool
        Подробный лог ccxt.

    Исключения
    ----------
    InvalidParameterError
        Биржа не поддерживается ccxt.
    """
    name = (exchange_name or "").strip().lower()
    if name not in ccxt.exchanges:
        raise InvalidParameterError(method="create_exchange_client", parameter="exchange_name", value=exchange_name)
    return CcxtClient(name, config, verbose=verbose)

"""Фикстуры тестов: поддельная биржа ccxt и клиент поверх неё."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from ccxt.base.decimal_to_precision import TICK_SIZE

from apiclient_sdk.toolkit import client_base
from apiclient_sdk.toolkit.client_base import CcxtClient


ASYNC_METHODS = (
    "load_markets",
    "fetch_ticker",
    "fetch_order_book",
    "fetch_ohlcv",
    "fetch_trades",
    "fetch_balance",
    "fetch_order",
    "create_order",
    "cancel_order",
    "cancel_all_orders",
    "fetch_open_orders",
    "fetch_my_trades",
    "fetch_orders",
    "fetch_closed_orders",
    "withdraw",
    "fetch_withdrawals",
    "fetch_deposits",
    "fetch_deposits_withdrawals",
    "close",
)


def make_market(base: str, quote: str, *, price_step: str = "0.01", amount_step: str = "0.00001", **extra):
    """Запись рынка в формате ccxt."""
    market = {
        "id": f"{base}{quote}",
        "symbol": f"{base}/{quote}",
        "base": base,
        "quote": quote,
        "type": "spot",
        "spot": True,
        "active": True,
        "precision": {"price": float(price_step), "amount": float(amount_step)},
    }
    market.update(extra)
    return market


@pytest.fixture
def markets():
    """Справочник рынков поддельной биржи."""
    return {
        "BTC/USDT": make_market("BTC", "USDT"),
        "ETH/USDT": make_market("ETH", "USDT", price_step="0.1", amount_step="0.0001"),
        "ETH/BTC": make_market("ETH", "BTC", price_step="0.000001", amount_step="0.001"),
        "DOGE/USDT": make_market("DOGE", "USDT", active=False),
        "BTC/USDT:USDT": make_market("BTC", "USDT", type="swap", spot=False, symbol="BTC/USDT:USDT"),
    }


@pytest.fixture
def currencies():
    """Справочник валют с сетями вывода."""
    return {
        "USDT": {"code": "USDT", "networks": {"TRC20": {"id": "TRX"}, "ERC20": {"id": "ETH"}}},
        "BTC": {"code": "BTC", "networks": {"BTC": {"id": "BTC"}}},
    }


@pytest.fixture
def fake_exchange(markets, currencies):
    """Экземпляр биржи ccxt с асинхронными методами-заглушками."""
    exchange = MagicMock()
    exchange.markets = markets
    exchange.currencies = currencies
    exchange.precisionMode = TICK_SIZE
    exchange.requiredCredentials = {"apiKey": True, "secret": True, "uid": False, "password": False}
    exchange.timeframes = {"1m": "1m", "5m": "5m", "15m": "15m", "1h": "1h", "4h": "4h", "1d": "1d"}
    exchange.has = {
        "cancelAllOrders": True,
        "fetchOrders": True,
        "fetchClosedOrders": True,
        "withdraw": True,
        "fetchWithdrawals": True,
        "fetchDeposits": True,
        "fetchDepositsWithdrawals": False,
    }
    exchange.session = None
    for name in ASYNC_METHODS:
        setattr(exchange, name, AsyncMock())
    return exchange


@pytest.fixture
def exchange_class(fake_exchange):
    """Подмена класса биржи в ``ccxt.async_support``."""
    factory = MagicMock(return_value=fake_exchange)
    with patch.object(client_base.ccxt, "binance", factory):
        yield factory


@pytest.fixture
def client(exchange_class):
    """Клиент без учётных данных (только публичные методы)."""
    return CcxtClient("binance")


@pytest.fixture
def sample_order():
    """Unified-ордер ccxt, исполненный полностью."""
    return {
        "id": "123456789",
        "timestamp": 1_700_000_000_000,
        "symbol": "BTC/USDT",
        "type": "limit",
        "side": "buy",
        "price": 50000.0,
        "amount": 0.01,
        "filled": 0.01,
        "remaining": 0.0,
        "cost": 500.0,
        "average": 50000.0,
        "status": "closed",
        "fee": {"cost": 0.5, "currency": "USDT"},
        "fees": [{"cost": 0.5, "currency": "USDT"}],
    }


@pytest.fixture
def sample_ticker():
    """Тикер ccxt BTC/USDT."""
    return {
        "symbol": "BTC/USDT",
        "last": 50000.5,
        "bid": 49999.0,
        "ask": 50001.0,
        "high": 51000.0,
        "low": 48000.0,
        "change": 1200.5,
        "percentage": 2.46,
        "baseVolume": 1234.5,
        "quoteVolume": 61725000.0,
    }

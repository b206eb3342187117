"""Тесты фабрики клиентов."""

import pytest

from apiclient_sdk.contracts.errors import InvalidParameterError
from apiclient_sdk.contracts.ports.exchange_client import ExchangeClientConfig, ExchangeClientPort
from apiclient_sdk.toolkit.client_base import CcxtClient
from apiclient_sdk.toolkit.factory import create_exchange_client, supported_exchanges


class TestExchangeFactory:
    """Tests for exchange client factory."""

    def test_create_client(self, exchange_class):
        client = create_exchange_client("binance")
        assert isinstance(client, CcxtClient)
        assert isinstance(client, ExchangeClientPort)
        assert client.cex_id == "binance"
        assert client.config == ExchangeClientConfig()

    def test_name_is_case_insensitive(self, exchange_class):
        client = create_exchange_client("  Binance ")
        assert client.cex_id == "binance"
        exchange_class.assert_called_once()

    def test_config_is_passed(self, exchange_class, fake_exchange):
        config = ExchangeClientConfig(testnet=True, order_check_delay=1.0)
        client = create_exchange_client("binance", config)
        assert client.config is config
        fake_exchange.set_sandbox_mode.assert_called_once_with(True)

    @pytest.mark.parametrize("name", ["invalid_exchange", ""])
    def test_unsupported_exchange(self, name):
        with pytest.raises(InvalidParameterError) as exc_info:
            create_exchange_client(name)
        assert exc_info.value.parameter == "exchange_name"

    def test_supported_exchanges(self):
        names = supported_exchanges()
        assert "binance" in names
        assert names == sorted(names)

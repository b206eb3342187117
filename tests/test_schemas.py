"""Тесты схем модели данных: инварианты и сериализация."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from apiclient_sdk.contracts.protocols import BalanceProtocol
from apiclient_sdk.schemas.balance import BalanceResponse
from apiclient_sdk.schemas.base import to_record, to_unix_seconds
from apiclient_sdk.schemas.enums import Color, Period, Side, Status
from apiclient_sdk.schemas.kline import KLineResponse, PriceCandleResponse, VolumeCandleResponse, candle_color
from apiclient_sdk.schemas.market import DecimalsResponse, MarketDataResponse
from apiclient_sdk.schemas.order import MakedOrderResponse
from apiclient_sdk.schemas.order_book import OrderBookResponse, OrderResponse
from apiclient_sdk.schemas.trade import TradeResponse
from apiclient_sdk.schemas.transfer import TransferResponse
from apiclient_sdk.toolkit.client_base import MARKET_DATA_RESPONSE_ADAPTER, TRANSFER_RESPONSE_ADAPTER


def level(price: str, quantity: str = "1") -> OrderResponse:
    return OrderResponse(quantity=Decimal(quantity), price=Decimal(price))


class TestEnums:
    """Wire-значения перечислений."""

    def test_status_values(self):
        """Историческое написание частичного исполнения сохранено."""
        assert Status.PARTIALLY_FILLED.value == "PATIALLYFILLED"
        assert Status.NOT_FILLED.value == "NOTFILLED"
        assert Status.FILLED.value == "FILLED"
        assert Status.UNDEFINED.value == "UNDEFINED"

    def test_side_and_color(self):
        assert Side.BUY.value == "BUY"
        assert Side.SELL.value == "SELL"
        assert Color.RED.value == "rgba(255,82,82,0.5)"
        assert Color.GREEN.value == "rgba(0,150,136,0.5)"

    def test_period_seconds(self):
        """Месяц истории равен 30 дням."""
        assert Period("1d").seconds == 86_400
        assert Period("1w").seconds == 7 * 86_400
        assert Period("1m").seconds == 30 * 86_400


class TestUnixSeconds:
    """Нормализация меток времени."""

    def test_milliseconds_are_converted(self):
        assert to_unix_seconds(1_700_000_000_123) == 1_700_000_000

    def test_seconds_are_kept(self):
        assert to_unix_seconds(1_700_000_000) == 1_700_000_000

    def test_string_timestamp(self):
        assert to_unix_seconds("1700000000000") == 1_700_000_000

    def test_model_field_uses_seconds(self):
        trade = TradeResponse(time=1_700_000_000_999, amount=Decimal(1), price=Decimal(2), side=Side.BUY)
        assert trade.time == 1_700_000_000


class TestOrderBookResponse:
    """Инвариант упорядоченности стакана."""

    def test_valid_book(self):
        book = OrderBookResponse(asks=[level("101"), level("102")], bids=[level("100"), level("99")])
        assert book.best_ask == Decimal("101")
        assert book.best_bid == Decimal("100")

    def test_empty_book(self):
        book = OrderBookResponse()
        assert book.best_ask is None
        assert book.best_bid is None

    def test_asks_must_ascend(self):
        with pytest.raises(ValidationError):
            OrderBookResponse(asks=[level("102"), level("101")], bids=[])

    def test_bids_must_descend(self):
        with pytest.raises(ValidationError):
            OrderBookResponse(asks=[], bids=[level("99"), level("100")])

    def test_duplicate_prices_rejected(self):
        with pytest.raises(ValidationError):
            OrderBookResponse(asks=[level("101"), level("101")], bids=[])

    def test_crossed_book_rejected(self):
        with pytest.raises(ValidationError):
            OrderBookResponse(asks=[level("100")], bids=[level("100")])

    def test_non_positive_level_rejected(self):
        with pytest.raises(ValidationError):
            level("0")
        with pytest.raises(ValidationError):
            level("100", "0")


class TestKLineResponse:
    """Согласованность ценовых свечей и свечей объёма."""

    @staticmethod
    def candle(ts: int, open_: str, close: str) -> tuple[PriceCandleResponse, VolumeCandleResponse]:
        o, c = Decimal(open_), Decimal(close)
        price = PriceCandleResponse(time=ts, open=o, close=c, high=max(o, c), low=min(o, c))
        volume = VolumeCandleResponse(time=ts, value=Decimal(10), color=candle_color(o, c))
        return price, volume

    def test_candle_color(self):
        """Равные open и close дают красную свечу."""
        assert candle_color(Decimal(1), Decimal(2)) is Color.GREEN
        assert candle_color(Decimal(2), Decimal(1)) is Color.RED
        assert candle_color(Decimal(1), Decimal(1)) is Color.RED

    def test_valid_kline(self):
        p1, v1 = self.candle(60, "1", "2")
        p2, v2 = self.candle(120, "2", "1")
        kline = KLineResponse(price_candles=[p1, p2], volume_candles=[v1, v2])
        assert [v.color for v in kline.volume_candles] == [Color.GREEN, Color.RED]

    def test_length_mismatch(self):
        p1, v1 = self.candle(60, "1", "2")
        with pytest.raises(ValidationError):
            KLineResponse(price_candles=[p1], volume_candles=[])

    def test_times_must_ascend(self):
        p1, v1 = self.candle(120, "1", "2")
        p2, v2 = self.candle(60, "2", "1")
        with pytest.raises(ValidationError):
            KLineResponse(price_candles=[p1, p2], volume_candles=[v1, v2])

    def test_color_mismatch(self):
        p1, _ = self.candle(60, "1", "2")
        wrong = VolumeCandleResponse(time=60, value=Decimal(1), color=Color.RED)
        with pytest.raises(ValidationError):
            KLineResponse(price_candles=[p1], volume_candles=[wrong])


class TestMakedOrderResponse:
    """Ограничения исполненных объёмов ордера."""

    def test_executed_within_amount(self):
        order = MakedOrderResponse(
            time=1_700_000_000,
            id="1",
            side=Side.BUY,
            status=Status.PARTIALLY_FILLED,
            left_amount=Decimal(500),
            right_amount=Decimal("0.01"),
            left_amount_executed=Decimal(250),
            right_amount_executed=Decimal("0.005"),
        )
        assert order.right_amount_executed <= order.right_amount

    def test_executed_above_amount_rejected(self):
        with pytest.raises(ValidationError):
            MakedOrderResponse(
                time=1_700_000_000,
                id="1",
                side=Side.SELL,
                right_amount=Decimal(1),
                right_amount_executed=Decimal(2),
            )

    def test_negative_commission_allowed(self):
        """Ребейт мейкера – отрицательная комиссия."""
        order = MakedOrderResponse(time=1_700_000_000, id="1", side=Side.BUY, commission=Decimal("-0.1"))
        assert order.commission == Decimal("-0.1")
        assert order.status is Status.UNDEFINED


class TestSerialization:
    """Плоская запись в lowerCamelCase."""

    def test_market_data_keys(self):
        """Ключи изменения цены сохраняют историческое написание."""
        record = to_record(MarketDataResponse(price=Decimal("1.5"), price_change_perc=Decimal("2.5")))
        assert set(record) == {
            "volumeLeft",
            "volumeRight",
            "price",
            "priceChnagePerc",
            "priceChnageAbs",
            "spreadPerc",
            "minSell",
            "maxBuy",
            "dayPriceHigh",
            "dayPriceLow",
        }
        assert record["price"] == "1.5"
        assert record["priceChnagePerc"] == "2.5"

    def test_market_data_accepts_wire_names(self):
        data = MarketDataResponse(**{"priceChnageAbs": Decimal(3)})
        assert data.price_change_abs == Decimal(3)

    def test_order_record(self):
        order = MakedOrderResponse(
            time=1_700_000_000,
            id="42",
            side=Side.SELL,
            status=Status.PARTIALLY_FILLED,
            right_amount=Decimal(2),
            right_amount_executed=Decimal(1),
        )
        record = to_record(order)
        assert record["status"] == "PATIALLYFILLED"
        assert record["side"] == "SELL"
        assert record["rightAmountExecuted"] == "1"
        assert record["leftAmountExecuted"] == "0"
        assert record["rateExecuted"] == "0"

    def test_decimals_record(self):
        assert to_record(DecimalsResponse(price_decs=2, amount_decs=5)) == {"priceDecs": 2, "amountDecs": 5}

    def test_order_book_record(self):
        book = OrderBookResponse(asks=[level("101.10", "0.5")], bids=[])
        assert to_record(book) == {"asks": [{"quantity": "0.5", "price": "101.10"}], "bids": []}

    def test_transfer_record(self):
        transfer = TransferResponse(time=1_700_000_000_000, amount=Decimal("0.1"), currency="BTC", txid="abc")
        assert to_record(transfer) == {"time": 1_700_000_000, "amount": "0.1", "currency": "BTC", "txid": "abc"}

    def test_kline_record_keys(self):
        assert set(to_record(KLineResponse())) == {"priceCandles", "volumeCandles"}


class TestBalanceResponse:
    """Баланс и протокол сущности."""

    def test_total(self):
        balance = BalanceResponse(free=Decimal("1.5"), locked=Decimal("0.5"))
        assert balance.total == Decimal(2)
        assert isinstance(balance, BalanceProtocol)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            BalanceResponse(free=Decimal(-1), locked=Decimal(0))

    def test_immutable(self):
        balance = BalanceResponse(free=Decimal(1), locked=Decimal(0))
        with pytest.raises((AttributeError, TypeError, ValidationError)):
            balance.free = Decimal(2)  # type: ignore[misc]


class TestCcxtPayloads:
    """Разбор unified-ответов ccxt через TypeAdapter."""

    def test_ticker_to_market_data(self):
        ticker = {
            "symbol": "BTC/USDT",
            "last": 50000.5,
            "ask": 50001.0,
            "bid": None,
            "high": 51000.0,
            "low": None,
            "percentage": 2.46,
            "change": -1.5,
            "baseVolume": 12.5,
            "quoteVolume": 625000.0,
            "info": {"raw": True},
        }
        data = MARKET_DATA_RESPONSE_ADAPTER.validate_python({**ticker, "spreadPerc": Decimal("0.1")})
        assert data.price == Decimal("50000.5")
        assert data.min_sell == Decimal("50001.0")
        assert data.max_buy == Decimal(0)
        assert data.day_price_low == Decimal(0)
        assert data.price_change_perc == Decimal("2.46")
        assert data.price_change_abs == Decimal("-1.5")
        assert data.volume_left == Decimal("625000.0")
        assert data.volume_right == Decimal("12.5")
        assert data.spread_perc == Decimal("0.1")

    def test_market_data_record_round_trip(self):
        data = MarketDataResponse(price=Decimal(7), price_change_abs=Decimal(1))
        assert MARKET_DATA_RESPONSE_ADAPTER.validate_python(to_record(data)) == data

    def test_transaction_to_transfer(self):
        row = {"id": "w", "type": "withdrawal", "timestamp": 1_700_000_000_000, "amount": -0.5, "currency": "btc"}
        transfer = TRANSFER_RESPONSE_ADAPTER.validate_python({**row, "txid": None})
        assert transfer.time == 1_700_000_000
        assert transfer.amount == Decimal("0.5")
        assert transfer.currency == "BTC"
        assert transfer.txid == ""

    def test_transfer_without_timestamp_rejected(self):
        with pytest.raises(ValidationError):
            TRANSFER_RESPONSE_ADAPTER.validate_python({"amount": 1.0, "currency": "BTC"})

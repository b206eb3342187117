"""Схемы стакана (order book) SDK.

Стакан хранит две упорядоченные последовательности уровней цены:
``asks`` строго по возрастанию цены, ``bids`` строго по убыванию, при этом любая
цена продажи выше любой цены покупки. Инвариант проверяется при создании модели,
поэтому адаптеры должны предварительно нормализовать ответ биржи
(см. ``apiclient_sdk.toolkit.normalization.normalize_order_book``).
"""
from decimal import Decimal
from typing import Self

from pydantic import Field, model_validator
from pydantic.dataclasses import dataclass as pdc_dataclass

from apiclient_sdk.schemas.base import ResponseBase


@pdc_dataclass(slots=True, frozen=True)
class OrderResponse(ResponseBase):
    """Уровень стакана: количество токена и цена за один токен."""

    quantity: Decimal = Field(..., gt=0, description="Количество токена")
    price: Decimal = Field(..., gt=0, description="Цена одного токена")


@pdc_dataclass(slots=True, frozen=True)
class OrderBookResponse(ResponseBase):
    """Нормализованный стакан пары."""

    asks: list[OrderResponse] = Field(default_factory=list, description="Продажи, цена по возрастанию")
    bids: list[OrderResponse] = Field(default_factory=list, description="Покупки, цена по убыванию")

    @model_validator(mode="after")
    def _check_ordering(self) -> Self:
        ask_prices = [level.price for level in self.asks]
        bid_prices = [level.price for level in self.bids]
        if any(a >= b for a, b in zip(ask_prices, ask_prices[1:])):
            msg = "asks должны строго возрастать по цене"
            raise ValueError(msg)
        if any(a <= b for a, b in zip(bid_prices, bid_prices[1:])):
            msg = "bids должны строго убывать по цене"
            raise ValueError(msg)
        if ask_prices and bid_prices and ask_prices[0] <= bid_prices[0]:
            msg = f"стакан пересечён: bid {bid_prices[0]} >= ask {ask_prices[0]}"
            raise ValueError(msg)
        return self

    @property
    def best_ask(self) -> Decimal | None:
        """Лучшая (минимальная) цена продажи."""
        return self.asks[0].price if self.asks else None

    @property
    def best_bid(self) -> Decimal | None:
        """Лучшая (максимальная) цена покупки."""
        return self.bids[0].price if self.bids else None

from decimal import Decimal
from typing import Self

from pydantic import Field, model_validator
from pydantic.dataclasses import dataclass as pdc_dataclass

from apiclient_sdk.schemas.base import ResponseBase, UnixSeconds
from apiclient_sdk.schemas.enums import Color


def candle_color(open_: Decimal, close: Decimal) -> Color:
    """Цвет свечи объёма: Green только при ``close > open``, равенство даёт Red."""
    return Color.GREEN if close > open_ else Color.RED


@pdc_dataclass(slots=True, frozen=True)
class PriceCandleResponse(ResponseBase):
    """Ценовая свеча."""

    time: UnixSeconds = Field(..., description="Время открытия, Unix, секунды")
    open: Decimal = Field(..., description="Цена открытия")
    close: Decimal = Field(..., description="Цена закрытия")
    high: Decimal = Field(..., description="Максимальная цена")
    low: Decimal = Field(..., description="Минимальная цена")


@pdc_dataclass(slots=True, frozen=True)
class VolumeCandleResponse(ResponseBase):
    """Свеча объёма с цветом направления."""

    time: UnixSeconds = Field(..., description="Время открытия, Unix, секунды")
    value: Decimal = Field(..., ge=0, description="Объём")
    color: Color = Field(..., description="Green при close > open, иначе Red")


@pdc_dataclass(slots=True, frozen=True)
class KLineResponse(ResponseBase):
    """Параллельные последовательности ценовых свечей и свечей объёма.

    Последовательности одной длины, строго возрастают по ``time`` и соответствуют
    друг другу по индексу; цвет свечи объёма согласован с ценовой свечой.
    """

    price_candles: list[PriceCandleResponse] = Field(default_factory=list)
    volume_candles: list[VolumeCandleResponse] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_candles(self) -> Self:
        if len(self.price_candles) != len(self.volume_candles):
            msg = "priceCandles и volumeCandles должны быть одной длины"
            raise ValueError(msg)
        times = [c.time for c in self.price_candles]
        if any(a >= b for a, b in zip(times, times[1:])):
            msg = "свечи должны строго возрастать по времени"
            raise ValueError(msg)
        for price, volume in zip(self.price_candles, self.volume_candles):
            if price.time != volume.time:
                msg = f"время свечи объёма {volume.time} не совпадает с ценовой {price.time}"
                raise ValueError(msg)
            if volume.color is not candle_color(price.open, price.close):
                msg = f"цвет свечи объёма {volume.time} не согласован с open/close"
                raise ValueError(msg)
        return self

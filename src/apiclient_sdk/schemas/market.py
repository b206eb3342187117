"""Схемы рынка (market) SDK.

Определяют компактные pydantic dataclass‑модели метаданных пары: точности цены и
количества, а также агрегированную статистику рынка. Все поля статистики являются
мгновенными снимками, а не накопителями.

Имена ``priceChnagePerc``/``priceChnageAbs`` в записи сохранены в историческом
написании ради совместимости с потребителями; атрибуты модели названы корректно.
"""
from decimal import Decimal

from pydantic import AliasChoices, Field
from pydantic.dataclasses import dataclass as pdc_dataclass

from apiclient_sdk.schemas.base import DecimalOrZero, ResponseBase


@pdc_dataclass(slots=True, frozen=True)
class DecimalsResponse(ResponseBase):
    """Количество знаков после запятой для цены и количества пары."""

    price_decs: int = Field(..., ge=0, description="Знаков после запятой в цене")
    amount_decs: int = Field(..., ge=0, description="Знаков после запятой в количестве")


@pdc_dataclass(slots=True, frozen=True)
class MarketDataResponse(ResponseBase):
    """Статистика пары за последние 24 часа.

    Принимает и собственную запись, и unified-тикер ccxt: отсутствующие в
    тикере значения (``None``) становятся нулём.
    """

    # объёмы: left – валюта котировки, right – базовая валюта
    volume_left: DecimalOrZero = Field(
        default=Decimal(0),
        description="Объём в валюте котировки",
        validation_alias=AliasChoices("volumeLeft", "quoteVolume"),
    )
    volume_right: DecimalOrZero = Field(
        default=Decimal(0),
        description="Объём в базовой валюте",
        validation_alias=AliasChoices("volumeRight", "baseVolume"),
    )

    price: DecimalOrZero = Field(
        default=Decimal(0), description="Последняя цена", validation_alias=AliasChoices("price", "last")
    )
    price_change_perc: DecimalOrZero = Field(
        default=Decimal(0),
        alias="priceChnagePerc",
        description="Изменение цены, %",
        validation_alias=AliasChoices("priceChnagePerc", "percentage"),
    )
    price_change_abs: DecimalOrZero = Field(
        default=Decimal(0),
        alias="priceChnageAbs",
        description="Изменение цены",
        validation_alias=AliasChoices("priceChnageAbs", "change"),
    )
    spread_perc: DecimalOrZero = Field(
        default=Decimal(0), description="Спред, % от лучшей цены продажи", validation_alias="spreadPerc"
    )

    # лучшие цены стакана
    min_sell: DecimalOrZero = Field(
        default=Decimal(0), description="Лучшая цена продажи (ask)", validation_alias=AliasChoices("minSell", "ask")
    )
    max_buy: DecimalOrZero = Field(
        default=Decimal(0), description="Лучшая цена покупки (bid)", validation_alias=AliasChoices("maxBuy", "bid")
    )

    day_price_high: DecimalOrZero = Field(
        default=Decimal(0), description="Максимум за сутки", validation_alias=AliasChoices("dayPriceHigh", "high")
    )
    day_price_low: DecimalOrZero = Field(
        default=Decimal(0), description="Минимум за сутки", validation_alias=AliasChoices("dayPriceLow", "low")
    )

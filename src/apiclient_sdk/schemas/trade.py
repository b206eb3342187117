from decimal import Decimal

from pydantic import Field
from pydantic.dataclasses import dataclass as pdc_dataclass

from apiclient_sdk.schemas.base import ResponseBase, UnixSeconds
from apiclient_sdk.schemas.enums import Side


@pdc_dataclass(slots=True, frozen=True)
class TradeResponse(ResponseBase):
    """Публичная сделка по паре.

    Если биржа не сообщает направление, ``side`` выводится по тику цены
    (рост – BUY, падение – SELL); такое направление является оценкой.
    """

    time: UnixSeconds = Field(..., description="Время сделки, Unix, секунды")
    amount: Decimal = Field(..., ge=0, description="Количество токена")
    price: Decimal = Field(..., gt=0, description="Цена одного токена")
    side: Side = Field(..., description="Направление сделки")

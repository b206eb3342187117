"""Схема размещённого (запрошенного) ордера.

``left`` – валюта котировки (тратится при покупке), ``right`` – базовая валюта
(приобретается при покупке). Исполненные объёмы никогда не превышают заявленные.
"""
from decimal import Decimal
from typing import Self

from pydantic import Field, model_validator
from pydantic.dataclasses import dataclass as pdc_dataclass

from apiclient_sdk.schemas.base import ResponseBase, UnixSeconds
from apiclient_sdk.schemas.enums import Side, Status


@pdc_dataclass(slots=True, frozen=True)
class MakedOrderResponse(ResponseBase):
    """Каноническое представление ордера аккаунта."""

    time: UnixSeconds = Field(..., description="Время создания, Unix, секунды")
    id: str = Field(..., description="Идентификатор ордера на бирже")
    side: Side = Field(..., description="Направление ордера")
    status: Status = Field(default=Status.UNDEFINED, description="Статус исполнения")

    left_amount: Decimal = Field(default=Decimal(0), ge=0, description="Объём в валюте котировки")
    right_amount: Decimal = Field(default=Decimal(0), ge=0, description="Объём в базовой валюте")
    left_amount_executed: Decimal = Field(default=Decimal(0), ge=0, description="Исполнено в валюте котировки")
    right_amount_executed: Decimal = Field(default=Decimal(0), ge=0, description="Исполнено в базовой валюте")

    commission: Decimal = Field(default=Decimal(0), description="Комиссия (отрицательная – ребейт)")
    rate: Decimal = Field(default=Decimal(0), ge=0, description="Цена ордера")
    rate_executed: Decimal = Field(default=Decimal(0), ge=0, description="Средняя цена исполнения")

    @model_validator(mode="after")
    def _check_executed(self) -> Self:
        if self.left_amount_executed > self.left_amount:
            msg = f"leftAmountExecuted {self.left_amount_executed} превышает leftAmount {self.left_amount}"
            raise ValueError(msg)
        if self.right_amount_executed > self.right_amount:
            msg = f"rightAmountExecuted {self.right_amount_executed} превышает rightAmount {self.right_amount}"
            raise ValueError(msg)
        return self

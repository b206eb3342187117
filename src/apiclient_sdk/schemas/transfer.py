from decimal import Decimal

from pydantic import AliasChoices, Field, field_validator
from pydantic.dataclasses import dataclass as pdc_dataclass

from apiclient_sdk.schemas.base import DecimalOrZero, ResponseBase, UnixSeconds, to_decimal_or_zero


@pdc_dataclass(slots=True, frozen=True)
class TransferResponse(ResponseBase):
    """Ввод или вывод средств; одна схема для обоих списков.

    Принимает как собственную запись, так и unified-транзакцию ccxt
    (``timestamp``, ``amount``, ``currency``, ``txid``).
    """

    time: UnixSeconds = Field(
        ..., description="Время операции, Unix, секунды", validation_alias=AliasChoices("time", "timestamp")
    )
    amount: DecimalOrZero = Field(..., ge=0, description="Сумма перевода", validation_alias="amount")
    currency: str = Field(..., description="Код валюты в верхнем регистре", validation_alias="currency")
    txid: str = Field(default="", description="Идентификатор транзакции в блокчейне", validation_alias="txid")

    @field_validator("amount", mode="before")
    @classmethod
    def _absolute_amount(cls, v: object) -> object:
        # у части бирж выводы приходят со знаком минус
        v = to_decimal_or_zero(v)
        return abs(v) if isinstance(v, Decimal) else v

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, v: object) -> object:
        return "" if v is None else str(v).strip().upper()

    @field_validator("txid", mode="before")
    @classmethod
    def _txid_text(cls, v: object) -> object:
        return "" if v is None else str(v)

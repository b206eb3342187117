from decimal import Decimal

from pydantic import Field
from pydantic.dataclasses import dataclass as pdc_dataclass

from apiclient_sdk.schemas.base import ResponseBase


@pdc_dataclass(frozen=True, slots=True)
class BalanceResponse(ResponseBase):
    """Датакласс баланса монеты на бирже."""

    free: Decimal = Field(..., ge=0, description="Доступно для новых ордеров")
    locked: Decimal = Field(..., ge=0, description="Заблокировано в ордерах или выводах")

    @property
    def total(self) -> Decimal:
        """Суммарный баланс: free + locked."""
        return self.free + self.locked

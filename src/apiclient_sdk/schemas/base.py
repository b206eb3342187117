from abc import ABC
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BeforeValidator, ConfigDict, TypeAdapter, field_serializer
from pydantic.alias_generators import to_camel
from pydantic.dataclasses import dataclass as pdc_dataclass

# Всё, что больше, считается миллисекундами (13 цифр против 10).
_MAX_UNIX_SECONDS = 10**11


def to_unix_seconds(v: object) -> object:
    """Приводит метку времени к секундам Unix; миллисекунды делятся на 1000."""
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float, Decimal)):
        ts = int(v)
        return ts // 1000 if abs(ts) >= _MAX_UNIX_SECONDS else ts
    if isinstance(v, str) and v.strip().isdigit():
        return to_unix_seconds(int(v.strip()))
    return v


UnixSeconds = Annotated[int, BeforeValidator(to_unix_seconds)]
"""Метка времени Unix в секундах (10 цифр)."""


def to_decimal_or_zero(v: object) -> object:
    """``None`` из ответа ccxt даёт 0, float переводится в Decimal через строку."""
    if v is None:
        return Decimal(0)
    if isinstance(v, float):
        return Decimal(str(v))
    return v


DecimalOrZero = Annotated[Decimal, BeforeValidator(to_decimal_or_zero)]
"""Decimal, для которого отсутствующее значение биржи означает ноль."""


@pdc_dataclass(
    config=ConfigDict(
        extra="ignore",
        alias_generator=to_camel,      # поля записи в lowerCamelCase
        validate_by_name=True,         # принимать и имена полей, и алиасы
        validate_by_alias=True,
        serialize_by_alias=True,
        arbitrary_types_allowed=True,
    ),
    frozen=True
)
class ResponseBase(ABC):
    @field_serializer("*", when_used="json")
    def _serialize_decimal(self, v: Any) -> Any:  # noqa: ANN401, PLR6301
        if isinstance(v, Decimal):
            return str(v)
        return v


def to_record(entity: object) -> dict[str, Any]:
    """Сериализует сущность модели в плоскую JSON-совместимую запись.

    Ключи записи совпадают с именами полей модели в lowerCamelCase,
    ``Decimal`` выгружается строкой, перечисления – своими wire-значениями.
    """
    return TypeAdapter(type(entity)).dump_python(entity, mode="json")

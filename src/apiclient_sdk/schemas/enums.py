"""Перечисления модели данных со стабильными wire-значениями.

Значения передаются вызывающим системам как есть и не должны меняться:
в частности, ``Status.PARTIALLY_FILLED`` сохраняет историческое написание
``"PATIALLYFILLED"``, на которое уже опираются потребители.
"""

from enum import StrEnum


class Side(StrEnum):
    """Направление ордера или сделки."""

    BUY = "BUY"
    SELL = "SELL"


class Status(StrEnum):
    """Статус исполнения ордера."""

    FILLED = "FILLED"
    NOT_FILLED = "NOTFILLED"
    PARTIALLY_FILLED = "PATIALLYFILLED"
    UNDEFINED = "UNDEFINED"


class Color(StrEnum):
    """Цвет свечи объёма: рост (Green) или падение (Red)."""

    RED = "rgba(255,82,82,0.5)"
    GREEN = "rgba(0,150,136,0.5)"


class Period(StrEnum):
    """Глубина истории ордеров и сделок аккаунта."""

    DAY = "1d"
    WEEK = "1w"
    MONTH = "1m"

    @property
    def seconds(self) -> int:
        """Длительность периода в секундах (месяц считается равным 30 дням)."""
        return {
            Period.DAY: 86_400,
            Period.WEEK: 7 * 86_400,
            Period.MONTH: 30 * 86_400,
        }[self]

"""Holiday models and the national holiday calendar."""

from __future__ import annotations

import datetime as dt
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict


class NationalHolidayDef(NamedTuple):
    month: int
    day: int
    name: str


class Holiday(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    name: str
    is_custom: bool = False


# Fixed-date Brazilian national holidays
NATIONAL_HOLIDAYS: tuple[NationalHolidayDef, ...] = (
    NationalHolidayDef(1, 1, "Confraternização Universal"),
    NationalHolidayDef(4, 21, "Tiradentes"),
    NationalHolidayDef(5, 1, "Dia do Trabalho"),
    NationalHolidayDef(9, 7, "Independência do Brasil"),
    NationalHolidayDef(10, 12, "Nossa Senhora Aparecida"),
    NationalHolidayDef(11, 2, "Finados"),
    NationalHolidayDef(11, 15, "Proclamação da República"),
    NationalHolidayDef(12, 25, "Natal"),
)


def expand_national_holidays(years: list[int] | range) -> list[Holiday]:
    """Expand the recurring national holidays for each given year."""
    return [
        Holiday(date=dt.date(year, d.month, d.day), name=d.name)
        for year in years
        for d in NATIONAL_HOLIDAYS
    ]


def build_holiday_calendar(
    years: list[int] | range,
    custom: list[Holiday] | None = None,
) -> list[Holiday]:
    """National holidays for ``years`` plus user-defined ones, sorted by date."""
    holidays = expand_national_holidays(years)
    for holiday in custom or []:
        holidays.append(holiday if holiday.is_custom else holiday.model_copy(update={"is_custom": True}))
    holidays.sort(key=lambda h: h.date)
    return holidays


def find_holiday(date: dt.date, holidays: list[Holiday]) -> Holiday | None:
    for holiday in holidays:
        if holiday.date == date:
            return holiday
    return None

"""
Calendar service - sexagenary pillars and solar-term (节) boundaries.

The astronomy lives in ``lunar_python``; this module only adapts it to the
small interface the chart engine depends on, so tests can swap in a fake.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from typing import List, Tuple

from lunar_python import Solar

logger = logging.getLogger(__name__)

# 十二节 (月令分界)，按公历年内先后排列
JIE_NAMES = ("小寒", "立春", "惊蛰", "清明", "立夏", "芒种",
             "小暑", "立秋", "白露", "寒露", "立冬", "大雪")

# lunar_python 节气表里跨年的节气用拼音大写作键
_TABLE_KEY_ALIASES = {
    "DA_XUE": "大雪",
    "XIAO_HAN": "小寒",
    "LI_CHUN": "立春",
    "JING_ZHE": "惊蛰",
}


class CalendarServiceError(Exception):
    """Raised when the calendar backend cannot answer a query."""


class CalendarService(ABC):
    """Interface the chart engine uses for everything astronomical."""

    @abstractmethod
    def sexagenary_pillars(self, moment: datetime) -> Tuple[str, str, str]:
        """Return the (year, month, day) pillars for a local civil moment.

        Year changes at 立春 and month at each 节, not at calendar boundaries.
        """

    @abstractmethod
    def jie_boundaries(self, year: int) -> List[datetime]:
        """Return the 节 moments falling inside Gregorian ``year``, in order."""

    @abstractmethod
    def annual_pillar(self, year: int) -> str:
        """Return the year-in-ganzhi for Jan 1 of ``year``."""


def _to_datetime(solar) -> datetime:
    return datetime(
        solar.getYear(), solar.getMonth(), solar.getDay(),
        solar.getHour(), solar.getMinute(), solar.getSecond(),
    )


@lru_cache(maxsize=256)
def _jie_table(year: int) -> Tuple[datetime, ...]:
    # 取年中一天，其农历年节气表覆盖本公历年全部十二节
    table = Solar.fromYmd(year, 6, 1).getLunar().getJieQiTable()
    moments = set()
    for key, solar in table.items():
        name = _TABLE_KEY_ALIASES.get(key, key)
        if name not in JIE_NAMES or solar.getYear() != year:
            continue
        moments.add(_to_datetime(solar))
    return tuple(sorted(moments))


@lru_cache(maxsize=512)
def _year_in_ganzhi(year: int) -> str:
    return Solar.fromYmd(year, 1, 1).getLunar().getYearInGanZhi()


class LunarCalendarService(CalendarService):
    """CalendarService backed by lunar_python."""

    def sexagenary_pillars(self, moment: datetime) -> Tuple[str, str, str]:
        try:
            solar = Solar.fromYmdHms(moment.year, moment.month, moment.day,
                                     moment.hour, moment.minute, 0)
            eight_char = solar.getLunar().getEightChar()
            return eight_char.getYear(), eight_char.getMonth(), eight_char.getDay()
        except Exception as e:
            raise CalendarServiceError(f"Cannot resolve pillars for {moment:%Y-%m-%d %H:%M}: {e}") from e

    def jie_boundaries(self, year: int) -> List[datetime]:
        try:
            return list(_jie_table(year))
        except Exception as e:
            raise CalendarServiceError(f"Cannot resolve solar terms for {year}: {e}") from e

    def annual_pillar(self, year: int) -> str:
        try:
            return _year_in_ganzhi(year)
        except Exception as e:
            raise CalendarServiceError(f"Cannot resolve annual pillar for {year}: {e}") from e


@lru_cache(maxsize=1)
def default_calendar() -> CalendarService:
    """Return the shared lunar_python-backed calendar."""
    logger.debug("Initialising lunar_python calendar service")
    return LunarCalendarService()

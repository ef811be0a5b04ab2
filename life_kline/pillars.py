"""
四柱排盘 - 年、月、日柱取自历法服务（按节气换年换月），时柱按五鼠遁推算。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from .calendar_service import CalendarService, CalendarServiceError, default_calendar
from .ganzhi import (
    BRANCHES,
    HOUR_STEM_START,
    SEXAGENARY_INDEX,
    STEMS,
    Element,
    element_of,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"

    @property
    def label(self) -> str:
        return "男" if self is Gender.MALE else "女"

    @classmethod
    def parse(cls, value) -> "Gender":
        """Accept ``male``/``female`` as well as ``男``/``女``."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in ("male", "男", "m"):
            return cls.MALE
        if text in ("female", "女", "f"):
            return cls.FEMALE
        raise ValueError(f"Unknown gender: {value!r}")


@dataclass(frozen=True)
class Pillar:
    """一柱：天干 + 地支"""

    stem: str
    branch: str

    def __post_init__(self):
        if self.stem not in STEMS or self.branch not in BRANCHES:
            raise ValueError(f"Invalid pillar: {self.stem}{self.branch}")
        if self.name not in SEXAGENARY_INDEX:
            # 阴阳不配，如 "甲丑"
            raise ValueError(f"Not a sexagenary pair: {self.name}")

    @classmethod
    def parse(cls, text: str) -> "Pillar":
        if not text or len(text) != 2:
            raise ValueError(f"Invalid pillar string: {text!r}")
        return cls(text[0], text[1])

    @property
    def name(self) -> str:
        return self.stem + self.branch

    @property
    def cycle_index(self) -> int:
        return SEXAGENARY_INDEX[self.name]

    @property
    def stem_element(self) -> Element:
        return element_of(self.stem)

    @property
    def branch_element(self) -> Element:
        return element_of(self.branch)

    def __str__(self) -> str:
        return self.name

    def to_dict(self) -> dict:
        return {
            "gan": self.stem,
            "zhi": self.branch,
            "gan_zhi": self.name,
            "gan_element": self.stem_element.value,
            "zhi_element": self.branch_element.value,
        }


@dataclass(frozen=True)
class BaziChart:
    """八字命盘，生成后不再修改"""

    year: Pillar
    month: Pillar
    day: Pillar
    hour: Pillar
    birth: datetime

    @property
    def pillars(self) -> Tuple[Pillar, Pillar, Pillar, Pillar]:
        return (self.year, self.month, self.day, self.hour)

    @property
    def day_master(self) -> str:
        """日主 (日干)"""
        return self.day.stem

    @property
    def subject(self) -> Element:
        return self.day.stem_element

    def __str__(self) -> str:
        return " ".join(p.name for p in self.pillars)

    def to_dict(self) -> dict:
        return {
            "year_pillar": self.year.to_dict(),
            "month_pillar": self.month.to_dict(),
            "day_pillar": self.day.to_dict(),
            "hour_pillar": self.hour.to_dict(),
            "day_master": self.day_master,
            "birth": self.birth.strftime(f"{DATE_FORMAT} {TIME_FORMAT}"),
        }


def parse_birth_moment(birth_date: Optional[str], birth_time: Optional[str]) -> Optional[datetime]:
    """Parse ``YYYY-MM-DD`` + ``HH:mm``; ``None`` when missing or malformed."""
    if not birth_date or not birth_time:
        return None
    try:
        day = datetime.strptime(birth_date.strip(), DATE_FORMAT)
        clock = datetime.strptime(birth_time.strip(), TIME_FORMAT)
    except (ValueError, AttributeError):
        logger.debug("Unparsable birth input: %r %r", birth_date, birth_time)
        return None
    return day.replace(hour=clock.hour, minute=clock.minute)


def hour_slot(hour: int) -> int:
    """时辰序号：23:00-00:59 为 0 (子)，01:00-02:59 为 1 (丑) ... 21:00-22:59 为 11 (亥)"""
    return ((hour + 1) // 2) % 12


def hour_pillar(day_stem: str, hour: int) -> Pillar:
    """日上起时（五鼠遁）"""
    slot = hour_slot(hour)
    start = STEMS.index(HOUR_STEM_START[day_stem])
    return Pillar(STEMS[(start + slot) % 10], BRANCHES[slot])


def calculate_bazi(
    birth_date: Optional[str],
    birth_time: Optional[str],
    calendar: Optional[CalendarService] = None,
) -> Optional[BaziChart]:
    """
    Calculate the Four Pillars for a birth date/time.

    Args:
        birth_date: ``YYYY-MM-DD`` (local civil date)
        birth_time: ``HH:mm`` 24-hour clock
        calendar: calendar backend; defaults to lunar_python

    Returns:
        BaziChart, or None when the input is empty/malformed or the
        calendar cannot resolve the moment.
    """
    birth = parse_birth_moment(birth_date, birth_time)
    if birth is None:
        return None

    calendar = calendar or default_calendar()
    try:
        year_gz, month_gz, day_gz = calendar.sexagenary_pillars(birth)
        year, month, day = Pillar.parse(year_gz), Pillar.parse(month_gz), Pillar.parse(day_gz)
    except (CalendarServiceError, ValueError) as e:
        logger.warning("Chart unavailable for %s: %s", birth, e)
        return None

    chart = BaziChart(
        year=year,
        month=month,
        day=day,
        hour=hour_pillar(day.stem, birth.hour),
        birth=birth,
    )
    logger.debug("Chart for %s: %s", birth, chart)
    return chart

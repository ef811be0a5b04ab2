"""
大运计算 - 排法、起运岁数、十步大运

阳年男命 / 阴年女命顺排，阴年男命 / 阳年女命逆排，均以月柱干支为基准。
起运：出生时刻到下一个 (顺排) 或上一个 (逆排) 节的天数，三天折一年。
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from .calendar_service import CalendarService, CalendarServiceError, default_calendar
from .ganzhi import cycle_step, is_yang_stem
from .pillars import BaziChart, Gender, Pillar

logger = logging.getLogger(__name__)

LUCK_PILLAR_COUNT = 10
LUCK_PILLAR_SPAN = 10

# 三天折合一年，余下一天折四个月
DAYS_PER_YEAR = 3
MONTHS_PER_DAY = 4
MIN_ONSET_YEARS = 1

# 节气表无法解析时的起运岁数
DEFAULT_ONSET_AGE = 4


class Direction(str, Enum):
    FORWARD = "顺排"
    REVERSE = "逆排"

    @property
    def step(self) -> int:
        return 1 if self is Direction.FORWARD else -1


@dataclass(frozen=True)
class OnsetAge:
    """起运岁数"""

    years: int
    months: int
    days: Optional[float] = None
    boundary: Optional[datetime] = None

    @property
    def is_fallback(self) -> bool:
        return self.boundary is None

    @property
    def detail(self) -> str:
        return f"{self.years}年{self.months}个月"


@dataclass(frozen=True)
class LuckPillar:
    """一步大运"""

    number: int
    pillar: Pillar
    start_age: int
    end_age: int

    def contains(self, age: int) -> bool:
        return self.start_age <= age <= self.end_age

    @property
    def age_range(self) -> str:
        return f"{self.start_age}-{self.end_age}岁"

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "gan": self.pillar.stem,
            "zhi": self.pillar.branch,
            "gan_zhi": self.pillar.name,
            "start_age": self.start_age,
            "end_age": self.end_age,
            "age_range": self.age_range,
        }


@dataclass(frozen=True)
class LuckCycle:
    direction: Direction
    onset: OnsetAge
    pillars: Tuple[LuckPillar, ...]

    @property
    def onset_age(self) -> int:
        return self.onset.years

    def pillar_for_age(self, age: int) -> LuckPillar:
        """Active luck pillar; before onset the first pillar applies."""
        if age < self.onset_age:
            return self.pillars[0]
        for luck_pillar in self.pillars:
            if luck_pillar.contains(age):
                return luck_pillar
        return self.pillars[-1]

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "start_age": self.onset_age,
            "start_age_detail": self.onset.detail,
            "dayun_list": [p.to_dict() for p in self.pillars],
        }


def luck_direction(year_stem: str, gender: Gender) -> Direction:
    """阳男、阴女顺排；阴男、阳女逆排"""
    yang = is_yang_stem(year_stem)
    male = gender is Gender.MALE
    return Direction.FORWARD if yang == male else Direction.REVERSE


def find_jie_boundary(birth: datetime, direction: Direction, calendar: CalendarService) -> Optional[datetime]:
    """
    Nearest 节 strictly after (顺排) or strictly before (逆排) ``birth``.

    Searches the birth year first, then the adjacent year in the walk
    direction. Calendar errors propagate.
    """
    forward = direction is Direction.FORWARD
    for year in (birth.year, birth.year + direction.step):
        boundaries = calendar.jie_boundaries(year)
        if forward:
            later = [b for b in boundaries if b > birth]
            if later:
                return min(later)
        else:
            earlier = [b for b in boundaries if b < birth]
            if earlier:
                return max(earlier)
    return None


def onset_from_days(days: float) -> OnsetAge:
    """三天一年，余数每天四个月；最少一年"""
    years = math.floor(days / DAYS_PER_YEAR)
    remaining = days % DAYS_PER_YEAR
    months = math.floor(remaining * MONTHS_PER_DAY)
    return OnsetAge(years=max(years, MIN_ONSET_YEARS), months=months, days=days)


def compute_onset_age(birth: datetime, direction: Direction, calendar: CalendarService) -> OnsetAge:
    try:
        boundary = find_jie_boundary(birth, direction, calendar)
    except CalendarServiceError as e:
        logger.warning("Solar-term lookup failed for %s: %s; using default onset age", birth, e)
        boundary = None

    if boundary is None:
        logger.warning("No solar-term boundary near %s; onset age defaults to %d", birth, DEFAULT_ONSET_AGE)
        return OnsetAge(years=DEFAULT_ONSET_AGE, months=0)

    days = abs((boundary - birth).total_seconds()) / 86400.0
    onset = onset_from_days(days)
    return OnsetAge(years=onset.years, months=onset.months, days=days, boundary=boundary)


def luck_pillar_sequence(month_pillar: Pillar, direction: Direction, onset_age: int) -> Tuple[LuckPillar, ...]:
    """从月柱起，在六十甲子上顺 / 逆各走一步，月柱本身不入运"""
    sequence = []
    for i in range(LUCK_PILLAR_COUNT):
        name = cycle_step(month_pillar.name, direction.step * (i + 1))
        start = onset_age + LUCK_PILLAR_SPAN * i
        sequence.append(LuckPillar(
            number=i + 1,
            pillar=Pillar.parse(name),
            start_age=start,
            end_age=start + LUCK_PILLAR_SPAN - 1,
        ))
    return tuple(sequence)


def compute_luck_cycle(
    chart: Optional[BaziChart],
    gender,
    calendar: Optional[CalendarService] = None,
) -> Optional[LuckCycle]:
    """
    Compute direction, onset age and the ten luck pillars of a chart.

    Args:
        chart: chart from ``calculate_bazi``; None propagates as None
        gender: ``Gender`` or one of male/female/男/女
        calendar: calendar backend; defaults to lunar_python
    """
    if chart is None:
        return None

    gender = Gender.parse(gender)
    calendar = calendar or default_calendar()

    direction = luck_direction(chart.year.stem, gender)
    onset = compute_onset_age(chart.birth, direction, calendar)
    pillars = luck_pillar_sequence(chart.month, direction, onset.years)

    logger.debug("Luck cycle for %s (%s): %s, onset %s", chart, gender.value, direction.value, onset.detail)
    return LuckCycle(direction=direction, onset=onset, pillars=pillars)

"""
人生K线 - 0~100 岁逐年运势分

score = 日主五行分
      + 15 x 大运地支作用系数
      + 10 x 流年地支作用系数
      + 20 x sin(a/100 * 4π)          (百年两个长周期)
      + 5 x (sin(0.5a) + cos(0.3a))    (短周期波动)
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .calendar_service import CalendarService, CalendarServiceError, default_calendar
from .elements import ElementProfile
from .ganzhi import element_of, interaction_coefficient
from .luck import LuckCycle, LuckPillar
from .pillars import BaziChart, Pillar

logger = logging.getLogger(__name__)

MAX_AGE = 100
LUCK_WEIGHT = 15
ANNUAL_WEIGHT = 10
WAVE_AMPLITUDE = 20
WAVE_CYCLES = 2
JITTER_AMPLITUDE = 5
JITTER_SIN_RATE = 0.5
JITTER_COS_RATE = 0.3

SCORE_MIN = 0
SCORE_MAX = 100
PEAK_THRESHOLD = 80
INITIAL_PREVIOUS_SCORE = 50

# 页面上展示的"当前运势"取 30 岁
CURRENT_SCORE_AGE = 30

# (下限, 描述)，自高向低匹配，严格大于下限
SCORE_DESCRIPTIONS = (
    (80, "人生巅峰期，事业顺利，机遇多多"),
    (60, "运势良好，稳步上升"),
    (40, "运势平稳，稳中求进"),
    (20, "运势低迷，需谨慎应对"),
)
LOWEST_DESCRIPTION = "人生低谷，韬光养晦"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class FortunePoint:
    age: int
    year: int
    score: int
    trend: Trend
    luck_pillar: LuckPillar
    annual_pillar: Pillar
    description: str

    def to_dict(self) -> dict:
        return {
            "age": self.age,
            "year": self.year,
            "score": self.score,
            "trend": self.trend.value,
            "dayun": self.luck_pillar.pillar.name,
            "liunian": self.annual_pillar.name,
            "description": self.description,
        }


@dataclass(frozen=True)
class PeakWindow:
    """连续 score > 80 的年龄段"""

    start_age: int
    end_age: int
    peak_score: int

    def to_dict(self) -> dict:
        return {
            "start_age": self.start_age,
            "end_age": self.end_age,
            "peak_score": self.peak_score,
            "label": f"{self.start_age}-{self.end_age}岁",
        }


@dataclass(frozen=True)
class LifeKline:
    points: Tuple[FortunePoint, ...]
    peak: Optional[PeakWindow]

    def score_at(self, age: int) -> int:
        return self.points[age].score

    @property
    def current_score(self) -> int:
        return self.score_at(CURRENT_SCORE_AGE)

    @property
    def scores(self) -> List[int]:
        return [p.score for p in self.points]

    def to_dict(self) -> dict:
        return {
            "points": [p.to_dict() for p in self.points],
            "peak": self.peak.to_dict() if self.peak else None,
            "current_score": self.current_score,
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def describe_score(score: int) -> str:
    for floor_score, description in SCORE_DESCRIPTIONS:
        if score > floor_score:
            return description
    return LOWEST_DESCRIPTION


def raw_fortune_score(
    base: float,
    subject,
    luck_pillar: Pillar,
    annual_pillar: Pillar,
    age: int,
) -> float:
    """Unclamped, unrounded score for one age."""
    score = float(base)
    score += LUCK_WEIGHT * interaction_coefficient(subject, element_of(luck_pillar.branch))
    score += ANNUAL_WEIGHT * interaction_coefficient(subject, element_of(annual_pillar.branch))
    score += WAVE_AMPLITUDE * math.sin(age / MAX_AGE * math.pi * 2 * WAVE_CYCLES)
    score += JITTER_AMPLITUDE * (math.sin(JITTER_SIN_RATE * age) + math.cos(JITTER_COS_RATE * age))
    return score


def find_peak_window(scores: List[int]) -> Optional[PeakWindow]:
    """
    Among maximal runs of scores above ``PEAK_THRESHOLD``, return the one with
    the highest peak; the earliest wins a tie. Ages equal list indices.
    """
    best = None
    run_start = None
    for age, score in enumerate(list(scores) + [None]):
        above = score is not None and score > PEAK_THRESHOLD
        if above and run_start is None:
            run_start = age
        elif not above and run_start is not None:
            run = PeakWindow(run_start, age - 1, max(scores[run_start:age]))
            if best is None or run.peak_score > best.peak_score:
                best = run
            run_start = None
    return best


def build_life_kline(
    chart: Optional[BaziChart],
    profile: Optional[ElementProfile],
    luck: Optional[LuckCycle],
    calendar: Optional[CalendarService] = None,
) -> Optional[LifeKline]:
    """
    生成人生K线 (101 个点，0~100 岁)

    Returns None when any input is None or the calendar cannot resolve an
    annual pillar.
    """
    if chart is None or profile is None or luck is None:
        return None

    calendar = calendar or default_calendar()
    birth_year = chart.birth.year
    base = profile.subject_score

    points = []
    previous = INITIAL_PREVIOUS_SCORE
    for age in range(MAX_AGE + 1):
        year = birth_year + age
        luck_pillar = luck.pillar_for_age(age)
        try:
            annual = Pillar.parse(calendar.annual_pillar(year))
        except (CalendarServiceError, ValueError) as e:
            logger.warning("Annual pillar unavailable for %d: %s", year, e)
            return None

        raw = raw_fortune_score(base, profile.subject, luck_pillar.pillar, annual, age)
        score = round_half_up(min(max(raw, SCORE_MIN), SCORE_MAX))
        trend = Trend.UP if score >= previous else Trend.DOWN
        points.append(FortunePoint(
            age=age,
            year=year,
            score=score,
            trend=trend,
            luck_pillar=luck_pillar,
            annual_pillar=annual,
            description=describe_score(score),
        ))
        previous = score

    peak = find_peak_window([p.score for p in points])
    if peak:
        logger.debug("Peak window for %s: %d-%d (%d)", chart, peak.start_age, peak.end_age, peak.peak_score)
    return LifeKline(points=tuple(points), peak=peak)

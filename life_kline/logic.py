"""
Life K-line Logic Module.
Runs the chart pipeline end to end and builds the read-only views the API,
CLI and narrative layer consume.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from .calendar_service import CalendarService, default_calendar
from .career import CareerRecommendation, recommend_career
from .elements import ElementProfile, score_elements
from .ganzhi import ELEMENT_ORDER
from .kline import MAX_AGE, LifeKline, build_life_kline
from .luck import LuckCycle, LuckPillar, compute_luck_cycle
from .pillars import BaziChart, Gender, calculate_bazi

logger = logging.getLogger(__name__)

# 大运走势：本运与上一运平均分相差不超过此值视为平稳
TREND_TOLERANCE = 2

# K线点评中引用的关键年龄
KEY_AGES = tuple(range(0, MAX_AGE + 1, 10))


@dataclass(frozen=True)
class NarrativeSnapshot:
    """喂给大模型的命盘快照 (只读)"""

    gender: str
    birth: str
    birth_year: int
    pillars: Tuple[str, str, str, str]
    scores: Tuple[Tuple[str, int], ...]
    self_element: str
    body_strength: str
    direction: str
    start_age_detail: str
    luck_pillars: Tuple[Tuple[str, int, int], ...]
    current_luck: str
    luck_trend: str
    peak: Optional[Tuple[int, int]]
    key_points: Tuple[Tuple[int, int, str], ...]
    industries: Tuple[str, ...]
    positions: Tuple[str, ...]

    @property
    def bazi_string(self) -> str:
        return " ".join(self.pillars)

    @property
    def peak_label(self) -> str:
        return f"{self.peak[0]}-{self.peak[1]}岁" if self.peak else "待定"

    def score_of(self, element: str) -> int:
        return dict(self.scores)[element]


@dataclass(frozen=True)
class LifeReport:
    chart: BaziChart
    gender: Gender
    profile: ElementProfile
    luck: LuckCycle
    kline: LifeKline
    career: CareerRecommendation

    def age_in(self, year: int) -> int:
        return min(max(year - self.chart.birth.year, 0), MAX_AGE)

    def current_luck(self, age: int) -> LuckPillar:
        return self.luck.pillar_for_age(age)

    def luck_trend(self, age: int) -> str:
        """Compare the mean score of the active luck window with the one before it."""
        active = self.current_luck(age)
        if active.number == 1:
            previous_start, previous_end = 0, active.start_age - 1
        else:
            previous = self.luck.pillars[active.number - 2]
            previous_start, previous_end = previous.start_age, previous.end_age

        current_mean = _mean_score(self.kline, active.start_age, active.end_age)
        previous_mean = _mean_score(self.kline, previous_start, previous_end)
        if current_mean is None or previous_mean is None:
            return "平稳"
        if current_mean - previous_mean > TREND_TOLERANCE:
            return "上升"
        if previous_mean - current_mean > TREND_TOLERANCE:
            return "下降"
        return "平稳"

    def to_snapshot(self, reference_year: Optional[int] = None) -> NarrativeSnapshot:
        age = self.age_in(reference_year or datetime.now().year)
        points = self.kline.points
        return NarrativeSnapshot(
            gender=self.gender.label,
            birth=self.chart.birth.strftime("%Y-%m-%d %H:%M"),
            birth_year=self.chart.birth.year,
            pillars=tuple(p.name for p in self.chart.pillars),
            scores=tuple((element.value, self.profile.scores[element]) for element in ELEMENT_ORDER),
            self_element=self.profile.subject.value,
            body_strength=self.profile.body_strength.value,
            direction=self.luck.direction.value,
            start_age_detail=self.luck.onset.detail,
            luck_pillars=tuple((p.pillar.name, p.start_age, p.end_age) for p in self.luck.pillars),
            current_luck=self.current_luck(age).pillar.name,
            luck_trend=self.luck_trend(age),
            peak=(self.kline.peak.start_age, self.kline.peak.end_age) if self.kline.peak else None,
            key_points=tuple((a, points[a].score, points[a].description) for a in KEY_AGES),
            industries=self.career.industries,
            positions=self.career.traits.positions,
        )

    def to_dict(self, reference_year: Optional[int] = None) -> dict:
        age = self.age_in(reference_year or datetime.now().year)
        luck = self.luck.to_dict()
        luck["current_dayun"] = self.current_luck(age).pillar.name
        luck["luck_trend"] = self.luck_trend(age)
        return {
            "gender": self.gender.value,
            "bazi": self.chart.to_dict(),
            "elements": self.profile.to_dict(),
            "dayun": luck,
            "kline": self.kline.to_dict(),
            "career": self.career.to_dict(),
        }


def _mean_score(kline: LifeKline, start: int, end: int) -> Optional[float]:
    start, end = max(start, 0), min(end, MAX_AGE)
    if end < start:
        return None
    scores = [kline.score_at(a) for a in range(start, end + 1)]
    return sum(scores) / len(scores)


def build_life_report(
    birth_date: Optional[str],
    birth_time: Optional[str],
    gender,
    calendar: Optional[CalendarService] = None,
) -> Optional[LifeReport]:
    """
    排盘 -> 五行 -> 大运 -> 人生K线，一次算完。

    Args:
        birth_date: ``YYYY-MM-DD``
        birth_time: ``HH:mm``
        gender: ``Gender`` or male/female/男/女
        calendar: calendar backend; defaults to lunar_python

    Returns:
        LifeReport, or None when the birth data is malformed or the
        calendar cannot resolve the chart.

    Raises:
        ValueError: unknown gender
    """
    gender = Gender.parse(gender)
    calendar = calendar or default_calendar()

    chart = calculate_bazi(birth_date, birth_time, calendar)
    profile = score_elements(chart)
    luck = compute_luck_cycle(chart, gender, calendar)
    kline = build_life_kline(chart, profile, luck, calendar)
    if kline is None:
        logger.info("No report for %r %r", birth_date, birth_time)
        return None

    return LifeReport(
        chart=chart,
        gender=gender,
        profile=profile,
        luck=luck,
        kline=kline,
        career=recommend_career(profile),
    )

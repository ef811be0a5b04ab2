"""
五行能量计算 - 加权打分法
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from .ganzhi import ELEMENT_ORDER, RESOURCE_MAP, Element, element_of
from .pillars import BaziChart

logger = logging.getLogger(__name__)

# 权重设定，满分 100
# 月令最重；日干是日主本身，不计分
ELEMENT_WEIGHTS = MappingProxyType({
    "year_stem": 8, "year_branch": 4,
    "month_stem": 12, "month_branch": 40,
    "day_branch": 12,
    "hour_stem": 12, "hour_branch": 12,
})

# 日主得分 > 50 (总权重一半) 判为身强
STRONG_THRESHOLD = 50


class BodyStrength(str, Enum):
    STRONG = "身强"
    WEAK = "身弱"


@dataclass(frozen=True)
class ElementProfile:
    """五行得分与日主强弱"""

    scores: Mapping[Element, int] = field(hash=False)
    subject: Element
    body_strength: BodyStrength
    strongest: Element
    weakest: Element

    @property
    def subject_score(self) -> int:
        return self.scores[self.subject]

    @property
    def total(self) -> int:
        return sum(self.scores.values())

    @property
    def is_strong(self) -> bool:
        return self.body_strength is BodyStrength.STRONG

    def to_dict(self) -> dict:
        return {
            "scores": {element.value: score for element, score in self.scores.items()},
            "self_element": self.subject.value,
            "body_strength": self.body_strength.value,
            "strongest": self.strongest.value,
            "weakest": self.weakest.value,
        }


def weighted_positions(chart: BaziChart) -> List[Tuple[str, str]]:
    """四柱位置与字符 (日干跳过)"""
    return [
        ("year_stem", chart.year.stem), ("year_branch", chart.year.branch),
        ("month_stem", chart.month.stem), ("month_branch", chart.month.branch),
        ("day_branch", chart.day.branch),
        ("hour_stem", chart.hour.stem), ("hour_branch", chart.hour.branch),
    ]


def rank_elements(scores: Mapping[Element, int]) -> Tuple[Element, Element]:
    """
    Return (strongest, weakest).

    Stable ascending sort over 木火土金水 order: the weakest is the first
    entry, the strongest the last. On ties the weakest is the earliest tied
    element in that order and the strongest is the latest.
    """
    ordered = sorted(ELEMENT_ORDER, key=lambda element: scores[element])
    return ordered[-1], ordered[0]


def score_elements(chart: Optional[BaziChart]) -> Optional[ElementProfile]:
    """
    计算五行得分与身强身弱

    :param chart: 八字命盘；为 None 时返回 None
    :return: ElementProfile
    """
    if chart is None:
        return None

    scores = {element: 0 for element in ELEMENT_ORDER}
    for pos_name, char in weighted_positions(chart):
        scores[element_of(char)] += ELEMENT_WEIGHTS[pos_name]

    subject = chart.subject
    strength = BodyStrength.STRONG if scores[subject] > STRONG_THRESHOLD else BodyStrength.WEAK
    strongest, weakest = rank_elements(scores)

    logger.debug("Element scores for %s: %s (%s)", chart, scores, strength.value)
    return ElementProfile(
        scores=MappingProxyType(scores),
        subject=subject,
        body_strength=strength,
        strongest=strongest,
        weakest=weakest,
    )


def favorable_elements(profile: ElementProfile) -> Tuple[List[Element], List[Element]]:
    """
    简单推导喜用 / 忌讳五行 (仅供参考，复杂格局需 AI 微调)

    身强喜克、泄、耗 (异党)；身弱喜生、扶 (同党：同我 + 生我)。
    """
    same_party = [profile.subject, RESOURCE_MAP[profile.subject]]
    other_party = [element for element in ELEMENT_ORDER if element not in same_party]
    if profile.is_strong:
        return other_party, same_party
    return same_party, other_party

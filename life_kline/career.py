"""
职业与穿搭推荐 - 按日主五行 / 喜用五行查静态表
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Optional, Tuple

from .elements import ElementProfile, favorable_elements
from .ganzhi import Element


@dataclass(frozen=True)
class ElementTraits:
    description: str
    temperament: str
    industries: Tuple[str, ...]
    positions: Tuple[str, ...]
    fashion: str


ELEMENT_TRAITS = MappingProxyType({
    Element.WOOD: ElementTraits(
        description="木主仁，性直，生发向上，宜从事与成长、文化、教育相关的事业",
        temperament="仁慈温和,有创造力,具有人文关怀",
        industries=("教育培训", "文化出版", "园林农林", "医疗健康", "设计创意"),
        positions=("教师", "编辑", "产品经理", "设计师", "医生"),
        fashion="适合绿色、青色、浅色系服装，体现自然清新的风格。推荐舒适休闲、文艺清新的款式。",
    ),
    Element.FIRE: ElementTraits(
        description="火主礼，性急，热情外放，宜从事与传播、能源、科技相关的事业",
        temperament="热情活跃,果断刚毅,具有领袖气质",
        industries=("互联网科技", "传媒广告", "能源电力", "餐饮娱乐", "演艺表演"),
        positions=("市场营销", "主持人", "算法工程师", "品牌策划", "销售总监"),
        fashion="适合红色、橙色、粉色系服装，展现热情活力的个性。推荐亮色系、时尚前卫的款式。",
    ),
    Element.EARTH: ElementTraits(
        description="土主信，性厚，稳重包容，宜从事与地产、管理、服务相关的事业",
        temperament="稳重踏实,包容大度,具有责任心",
        industries=("房地产", "建筑工程", "农业", "物业管理", "咨询服务"),
        positions=("项目经理", "人力资源", "行政管理", "顾问", "工程师"),
        fashion="适合棕色、黄色、米色系服装，展现稳重踏实的特质。推荐经典款式、大地色系的搭配。",
    ),
    Element.METAL: ElementTraits(
        description="金主义，性刚，果断利落，宜从事与金融、法律、机械相关的事业",
        temperament="果断刚毅,重情重义,有侠客风范",
        industries=("金融投资", "法律司法", "机械制造", "汽车交通", "珠宝五金"),
        positions=("分析师", "律师", "审计", "风控经理", "机械工程师"),
        fashion="适合金色、白色、银色系服装，体现刚毅果断的气质。推荐金属配饰、简约干练的款式。",
    ),
    Element.WATER: ElementTraits(
        description="水主智，性柔，灵活善变，宜从事与流通、贸易、信息相关的事业",
        temperament="智慧灵活,适应力强,具有变通性",
        industries=("贸易物流", "旅游航运", "信息咨询", "水产饮品", "数据服务"),
        positions=("数据分析师", "外贸专员", "策略顾问", "研究员", "运营经理"),
        fashion="适合蓝色、黑色、深色系服装，体现智慧灵活的气质。推荐优雅知性、简约大方的款式。",
    ),
})


@dataclass(frozen=True)
class CareerRecommendation:
    subject: Element
    body_strength: str
    traits: ElementTraits
    favorable: Tuple[Element, ...]
    unfavorable: Tuple[Element, ...]
    industries: Tuple[str, ...]
    avoid_industries: Tuple[str, ...]
    scores: dict = field(hash=False)

    @property
    def suggestion(self) -> str:
        favorable = "、".join(e.value for e in self.favorable)
        return (f"日主属{self.subject.value}，{self.body_strength}，喜用{favorable}。"
                f"可优先考虑{'、'.join(self.industries[:3])}等方向。")

    def to_dict(self) -> dict:
        return {
            "self_element": self.subject.value,
            "self_element_description": self.traits.description,
            "temperament": self.traits.temperament,
            "body_strength": self.body_strength,
            "favorable_elements": [e.value for e in self.favorable],
            "unfavorable_elements": [e.value for e in self.unfavorable],
            "industries": list(self.industries),
            "avoid_industries": list(self.avoid_industries),
            "positions": list(self.traits.positions),
            "fashion": self.traits.fashion,
            "suggestion": self.suggestion,
            "scores": dict(self.scores),
        }


def _collect_industries(elements) -> List[str]:
    seen = []
    for element in elements:
        for industry in ELEMENT_TRAITS[element].industries:
            if industry not in seen:
                seen.append(industry)
    return seen


def recommend_career(profile: Optional[ElementProfile]) -> Optional[CareerRecommendation]:
    """根据喜用五行给出行业建议，根据日主五行给出性格与岗位"""
    if profile is None:
        return None

    favorable, unfavorable = favorable_elements(profile)
    return CareerRecommendation(
        subject=profile.subject,
        body_strength=profile.body_strength.value,
        traits=ELEMENT_TRAITS[profile.subject],
        favorable=tuple(favorable),
        unfavorable=tuple(unfavorable),
        industries=tuple(_collect_industries(favorable)),
        avoid_industries=tuple(_collect_industries(unfavorable)),
        scores={element.value: score for element, score in profile.scores.items()},
    )

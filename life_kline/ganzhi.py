"""
干支基础数据 - 天干、地支、五行、六十甲子

All tables here are process-wide read-only constants.
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType

# 天干
STEMS = ("甲", "乙", "丙", "丁", "戊", "己", "庚", "辛", "壬", "癸")

# 地支
BRANCHES = ("子", "丑", "寅", "卯", "辰", "巳", "午", "未", "申", "酉", "戌", "亥")


class Element(str, Enum):
    """五行"""

    WOOD = "木"
    FIRE = "火"
    EARTH = "土"
    METAL = "金"
    WATER = "水"

    def __str__(self) -> str:
        return self.value


# 相生顺序：木生火，火生土，土生金，金生水，水生木
ELEMENT_ORDER = (Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER)

# 五行映射表 (天干 + 地支)
ELEMENT_MAP = MappingProxyType({
    "甲": Element.WOOD, "乙": Element.WOOD, "寅": Element.WOOD, "卯": Element.WOOD,
    "丙": Element.FIRE, "丁": Element.FIRE, "巳": Element.FIRE, "午": Element.FIRE,
    "戊": Element.EARTH, "己": Element.EARTH,
    "辰": Element.EARTH, "戌": Element.EARTH, "丑": Element.EARTH, "未": Element.EARTH,
    "庚": Element.METAL, "辛": Element.METAL, "申": Element.METAL, "酉": Element.METAL,
    "壬": Element.WATER, "癸": Element.WATER, "亥": Element.WATER, "子": Element.WATER,
})

# 生我者 (印星)：Key 被 Value 所生
RESOURCE_MAP = MappingProxyType({
    element: ELEMENT_ORDER[(i - 1) % 5] for i, element in enumerate(ELEMENT_ORDER)
})

# 六十甲子：第 i 位 = STEMS[i % 10] + BRANCHES[i % 12]
SEXAGENARY_CYCLE = tuple(STEMS[i % 10] + BRANCHES[i % 12] for i in range(60))
SEXAGENARY_INDEX = MappingProxyType({name: i for i, name in enumerate(SEXAGENARY_CYCLE)})

# 日上起时法（五鼠遁）：日干 -> 子时天干
# 甲己还加甲，乙庚丙作初，丙辛从戊起，丁壬庚子居，戊癸何方发，壬子是真途
HOUR_STEM_START = MappingProxyType({
    "甲": "甲", "己": "甲",
    "乙": "丙", "庚": "丙",
    "丙": "戊", "辛": "戊",
    "丁": "庚", "壬": "庚",
    "戊": "壬", "癸": "壬",
})

# 五行作用系数，按 (other - self) 在相生顺序上的步数
#   0: 同我  1: 我生  2: 我克  3: 克我  4: 生我
_RELATION_COEFFICIENTS = {0: 0.5, 1: 0.3, 2: 0.1, 3: -0.6, 4: 0.8}

INTERACTION_COEFFICIENTS = MappingProxyType({
    (self_element, other_element): _RELATION_COEFFICIENTS[(j - i) % 5]
    for i, self_element in enumerate(ELEMENT_ORDER)
    for j, other_element in enumerate(ELEMENT_ORDER)
})


def element_of(char: str) -> Element:
    """获取干支的五行属性"""
    try:
        return ELEMENT_MAP[char]
    except KeyError:
        raise ValueError(f"Unknown stem/branch character: {char!r}") from None


def is_yang_stem(stem: str) -> bool:
    """甲、丙、戊、庚、壬为阳干"""
    return STEMS.index(stem) % 2 == 0


def interaction_coefficient(self_element: Element, other_element: Element) -> float:
    """Effect of ``other_element`` on ``self_element`` (被生 0.8, 同类 0.5, 我生 0.3, 我克 0.1, 被克 -0.6)."""
    return INTERACTION_COEFFICIENTS[(self_element, other_element)]


def cycle_step(name: str, steps: int) -> str:
    """Move ``steps`` positions along the sexagenary cycle (negative = backwards)."""
    return SEXAGENARY_CYCLE[(SEXAGENARY_INDEX[name] + steps) % 60]

from datetime import datetime

from life_kline.elements import (
    BodyStrength,
    ELEMENT_WEIGHTS,
    favorable_elements,
    rank_elements,
    score_elements,
)
from life_kline.ganzhi import ELEMENT_ORDER, Element
from life_kline.pillars import BaziChart, Pillar, calculate_bazi


def make_chart(year, month, day, hour):
    return BaziChart(Pillar.parse(year), Pillar.parse(month), Pillar.parse(day), Pillar.parse(hour),
                     birth=datetime(2000, 1, 1, 12, 0))


def test_weights_sum_to_100():
    assert sum(ELEMENT_WEIGHTS.values()) == 100


def test_scores_for_known_chart(fake_calendar):
    profile = score_elements(calculate_bazi("1990-03-15", "10:30", fake_calendar))
    scores = {element.value: score for element, score in profile.scores.items()}
    assert scores == {"木": 40, "火": 16, "土": 24, "金": 20, "水": 0}
    assert profile.total == 100
    assert profile.subject is Element.EARTH
    assert profile.body_strength is BodyStrength.WEAK
    assert profile.strongest is Element.WOOD
    assert profile.weakest is Element.WATER


def test_weight_conservation_across_charts():
    charts = [
        make_chart("甲子", "丙寅", "戊辰", "庚申"),
        make_chart("癸亥", "癸亥", "癸亥", "癸亥"),
        make_chart("庚申", "辛酉", "庚申", "辛巳"),
    ]
    for chart in charts:
        profile = score_elements(chart)
        assert profile.total == 100
        assert set(profile.scores) == set(ELEMENT_ORDER)


def test_strong_body_needs_more_than_half():
    # 日主壬水: 年干 8 + 年支 4 + 月干 12 + 月支 40 + 日支 12 + 时干 12 + 时支 12
    profile = score_elements(make_chart("癸亥", "癸亥", "壬子", "壬子"))
    assert profile.subject_score == 100
    assert profile.is_strong

    # 月令 40 + 年干 8
    profile = score_elements(make_chart("壬午", "丙子", "壬午", "丙午"))
    assert profile.subject_score == 48
    assert profile.body_strength is BodyStrength.WEAK

    # 月令 40 + 日支 12
    profile = score_elements(make_chart("丙午", "丙子", "壬子", "丙午"))
    assert profile.subject_score == 52
    assert profile.body_strength is BodyStrength.STRONG


def test_day_stem_is_not_scored():
    a = score_elements(make_chart("甲子", "丙寅", "戊辰", "庚申"))
    b = score_elements(make_chart("甲子", "丙寅", "庚辰", "丙申"))
    # day stem and hour stem differ, only the hour stem counts
    assert a.scores[Element.METAL] - b.scores[Element.METAL] == 12


def test_rank_ties_are_deterministic():
    scores = {element: 20 for element in ELEMENT_ORDER}
    strongest, weakest = rank_elements(scores)
    assert weakest is Element.WOOD
    assert strongest is Element.WATER

    scores = {Element.WOOD: 40, Element.FIRE: 40, Element.EARTH: 0, Element.METAL: 0, Element.WATER: 20}
    strongest, weakest = rank_elements(scores)
    assert strongest is Element.FIRE
    assert weakest is Element.EARTH


def test_favorable_elements():
    weak = score_elements(make_chart("庚午", "己卯", "己酉", "己巳"))
    favorable, unfavorable = favorable_elements(weak)
    assert favorable == [Element.EARTH, Element.FIRE]
    assert unfavorable == [Element.WOOD, Element.METAL, Element.WATER]

    strong = score_elements(make_chart("癸亥", "癸亥", "壬子", "壬子"))
    favorable, unfavorable = favorable_elements(strong)
    assert Element.WATER in unfavorable
    assert Element.METAL in unfavorable
    assert favorable == [Element.WOOD, Element.FIRE, Element.EARTH]


def test_none_chart():
    assert score_elements(None) is None

import pytest

from life_kline.ganzhi import (
    BRANCHES,
    ELEMENT_MAP,
    ELEMENT_ORDER,
    RESOURCE_MAP,
    SEXAGENARY_CYCLE,
    STEMS,
    Element,
    cycle_step,
    element_of,
    interaction_coefficient,
    is_yang_stem,
)


def test_every_stem_and_branch_has_an_element():
    assert set(ELEMENT_MAP) == set(STEMS) | set(BRANCHES)
    for branch in "辰戌丑未":
        assert element_of(branch) is Element.EARTH


def test_unknown_character_raises():
    with pytest.raises(ValueError):
        element_of("X")


def test_stem_parity():
    assert [is_yang_stem(s) for s in STEMS] == [True, False] * 5


def test_sexagenary_cycle():
    assert len(SEXAGENARY_CYCLE) == 60
    assert len(set(SEXAGENARY_CYCLE)) == 60
    assert SEXAGENARY_CYCLE[0] == "甲子"
    assert SEXAGENARY_CYCLE[59] == "癸亥"


def test_cycle_step_wraps():
    assert cycle_step("癸亥", 1) == "甲子"
    assert cycle_step("甲子", -1) == "癸亥"
    assert cycle_step("己卯", 1) == "庚辰"
    assert cycle_step("己卯", -2) == "丁丑"


def test_resource_map():
    assert RESOURCE_MAP[Element.WOOD] is Element.WATER
    assert RESOURCE_MAP[Element.FIRE] is Element.WOOD
    assert RESOURCE_MAP[Element.EARTH] is Element.FIRE


def test_interaction_coefficients_for_wood():
    wood = Element.WOOD
    assert interaction_coefficient(wood, Element.WOOD) == 0.5
    assert interaction_coefficient(wood, Element.WATER) == 0.8   # 水生木
    assert interaction_coefficient(wood, Element.FIRE) == 0.3    # 木生火
    assert interaction_coefficient(wood, Element.METAL) == -0.6  # 金克木
    assert interaction_coefficient(wood, Element.EARTH) == 0.1   # 木克土


def test_interaction_table_is_rotation_invariant():
    for i, self_element in enumerate(ELEMENT_ORDER):
        for step in range(5):
            other = ELEMENT_ORDER[(i + step) % 5]
            assert interaction_coefficient(self_element, other) == interaction_coefficient(
                Element.WOOD, ELEMENT_ORDER[step])

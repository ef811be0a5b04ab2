from datetime import datetime

import pytest

from life_kline.calendar_service import CalendarService, CalendarServiceError
from life_kline.ganzhi import SEXAGENARY_CYCLE
from life_kline.logic import build_life_report


class FakeCalendarService(CalendarService):
    """
    Deterministic calendar: fixed pillars, one 节 at 00:00 on the 6th of
    every month, annual pillar from the 1984 = 甲子 anchor.
    """

    def __init__(self, pillars=("庚午", "己卯", "己酉"), fail_jie=False, fail_annual=False):
        self.pillars = pillars
        self.fail_jie = fail_jie
        self.fail_annual = fail_annual
        self.jie_calls = []

    def sexagenary_pillars(self, moment):
        return self.pillars

    def jie_boundaries(self, year):
        self.jie_calls.append(year)
        if self.fail_jie:
            raise CalendarServiceError("no solar terms")
        return [datetime(year, month, 6) for month in range(1, 13)]

    def annual_pillar(self, year):
        if self.fail_annual:
            raise CalendarServiceError("no annual pillar")
        return SEXAGENARY_CYCLE[(year - 1984) % 60]


@pytest.fixture
def fake_calendar():
    return FakeCalendarService()


@pytest.fixture
def report(fake_calendar):
    # 庚午 己卯 己酉 己巳, male
    return build_life_report("1990-03-15", "10:30", "male", fake_calendar)


@pytest.fixture
def snapshot(report):
    return report.to_snapshot(reference_year=2024)

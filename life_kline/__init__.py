"""
BaZi Four Pillars chart and life K-line (人生K线).
"""
from .calendar_service import CalendarService, CalendarServiceError, LunarCalendarService
from .elements import ElementProfile, score_elements
from .kline import LifeKline, build_life_kline
from .logic import LifeReport, NarrativeSnapshot, build_life_report
from .luck import LuckCycle, compute_luck_cycle
from .pillars import BaziChart, Gender, Pillar, calculate_bazi

__version__ = "0.1.0"

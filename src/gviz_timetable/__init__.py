"""Classroom timetable parsed from a published Google Sheet (GViz).

Fetches one tab per weekday, parses rooms x time slots (including merged lab
sessions), and answers class searches and free-room / free-time lookups.
"""

from gviz_timetable.cache import ScheduleCache
from gviz_timetable.config import TimetableConfig, load_config
from gviz_timetable.free_slots import free_ranges_for_query, free_rooms_in_range
from gviz_timetable.heuristics import extract_class_code
from gviz_timetable.models import Classroom, DaySchedule, ScheduleEntry, TimeSlot
from gviz_timetable.search import search_classes
from gviz_timetable.service import TimetableService
from gviz_timetable.sheets import GridFetcher, parse_grid

__version__ = "1.0.0"

__all__ = [
    "Classroom",
    "DaySchedule",
    "GridFetcher",
    "ScheduleCache",
    "ScheduleEntry",
    "TimeSlot",
    "TimetableConfig",
    "TimetableService",
    "extract_class_code",
    "free_ranges_for_query",
    "free_rooms_in_range",
    "load_config",
    "parse_grid",
    "search_classes",
]

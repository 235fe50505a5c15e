"""Tests for free_slots.py - free rooms, free ranges and room timelines."""

import pytest

from gviz_timetable.errors import DataNotReady
from gviz_timetable.free_slots import (
    find_free_schedule,
    find_room,
    free_ranges_for_query,
    free_rooms_in_range,
    is_slot_free,
    room_timeline,
    slot_occupied_by_query,
)
from gviz_timetable.sheets.grid import parse_grid


@pytest.fixture
def monday(monday_grid):
    return parse_grid(monday_grid, "Monday")


def _room(day, name):
    return next(r for r in day.classrooms if r.name == name)


def _names(rooms):
    return [r.name for r in rooms]


class TestSlotFree:
    def test_missing_entry_is_free(self, monday):
        assert is_slot_free(_room(monday, "R109"), 1)

    def test_dashes_are_free(self, monday):
        assert is_slot_free(_room(monday, "R109"), 2)

    def test_class_is_busy(self, monday):
        assert not is_slot_free(_room(monday, "R109"), 3)


class TestFreeRoomsInRange:
    def test_not_loaded(self):
        with pytest.raises(DataNotReady):
            free_rooms_in_range(None, "8:00", "9:00")

    def test_free_for_every_slot_in_range(self, monday):
        # slots 1 (08:00) and 2 (8:55) start inside [8:00, 9:00)
        assert _names(free_rooms_in_range(monday, "8:00", "9:00")) == ["R109", "CLASSROOMS"]

    def test_single_slot(self, monday):
        assert _names(free_rooms_in_range(monday, "9:50", "10:45")) == ["E-31", "CLASSROOMS"]

    def test_end_is_exclusive(self, monday):
        rooms = free_rooms_in_range(monday, "8:00", "8:55")
        assert "R109" in _names(rooms)
        assert "E-31" not in _names(rooms)

    def test_afternoon_labels(self, monday):
        rooms = free_rooms_in_range(monday, "1:00", "3:00")
        assert _names(rooms) == ["E-31", "E-32", "R109", "CLASSROOMS"]

    def test_no_slot_in_range(self, monday):
        assert free_rooms_in_range(monday, "6:00", "7:00") == []

    def test_unparseable_bounds(self, monday):
        assert free_rooms_in_range(monday, "noon", "9:00") == []
        assert free_rooms_in_range(monday, "8:00", "") == []

    def test_capacity_and_floor_unknown(self, monday):
        room = free_rooms_in_range(monday, "8:00", "9:00")[0]
        assert room.capacity is None
        assert room.floor is None


class TestSlotOccupiedByQuery:
    def test_matches_text_or_code(self, monday):
        assert slot_occupied_by_query(monday.classrooms, 3, "bcs-1g")
        assert slot_occupied_by_query(monday.classrooms, 3, "ethics")
        assert not slot_occupied_by_query(monday.classrooms, 5, "bcs-1g")

    def test_room_name_counts_only_when_room_busy(self, monday):
        assert slot_occupied_by_query(monday.classrooms, 3, "r109")
        assert not slot_occupied_by_query(monday.classrooms, 2, "r109")


class TestRoomMode:
    def test_find_room_by_id(self, make_grid):
        day = parse_grid(make_grid([("Academic Block II E-31", ["A"])]), "Monday")
        assert find_room(day.classrooms, "e-31").name == "Academic Block II E-31"
        assert find_room(day.classrooms, "E-99") is None

    def test_ranges_of_target_room(self, monday):
        ranges = free_ranges_for_query(monday, "E-31")
        assert [(r.start_time, r.end_time) for r in ranges] == [
            ("9:50", "10:40"),
            ("11:40", "3:15"),
        ]
        assert ranges[0].target_room.name == "E-31"
        assert _names(ranges[0].available_rooms) == ["E-31"]

    def test_nearby_rooms_skip_target_and_placeholders(self, monday):
        first, second = free_ranges_for_query(monday, "E-31")
        assert first.nearby_rooms == []
        assert _names(second.nearby_rooms) == ["E-32", "R109"]

    def test_unknown_room(self, monday):
        assert free_ranges_for_query(monday, "Z-99") == []


class TestClassMode:
    def test_ranges_where_class_is_not_scheduled(self, monday):
        ranges = free_ranges_for_query(monday, "BCS-1G")
        assert [(r.start_time, r.end_time) for r in ranges] == [("10:45", "3:15")]
        assert ranges[0].target_room is None
        assert _names(ranges[0].available_rooms) == ["R109"]

    def test_busy_slot_splits_ranges(self, monday):
        ranges = free_ranges_for_query(monday, "ethics")
        assert [(r.start_time, r.end_time) for r in ranges] == [
            ("08:00", "9:45"),
            ("10:45", "3:15"),
        ]

    def test_available_rooms_capped(self, make_grid):
        grid = make_grid([(f"R{i}", ["MT-1B Algebra" if i == 0 else None]) for i in range(8)])
        day = parse_grid(grid, "Monday")
        ranges = free_ranges_for_query(day, "physics")
        assert len(ranges[0].available_rooms) == 5

    def test_blank_query(self, monday):
        assert free_ranges_for_query(monday, "  ") == []

    def test_not_loaded(self):
        with pytest.raises(DataNotReady):
            free_ranges_for_query(None, "BCS-1G")


class TestFindFreeSchedule:
    def test_per_day(self, monday):
        result = find_free_schedule({"Monday": monday}, "E-31")
        assert list(result) == ["Monday"]
        assert len(result["Monday"]) == 2

    def test_restricted_days(self, monday):
        assert find_free_schedule({"Monday": monday}, "E-31", ["Tuesday"]) == {}

    def test_days_without_ranges_left_out(self, monday):
        assert find_free_schedule({"Monday": monday}, "Z-99") == {}

    def test_empty_week(self):
        with pytest.raises(DataNotReady):
            find_free_schedule({}, "E-31")


class TestRoomTimeline:
    def test_lab_and_free_runs_merge(self, monday):
        segments = room_timeline(_room(monday, "E-32"), monday.time_slots)
        assert [(s.kind, s.start, s.end, s.time_indices) for s in segments] == [
            ("lab", "08:00", "10:40", [1, 2, 3]),
            ("class", "10:45", "11:35", [4]),
            ("free", "11:40", "3:15", [5, 6, 7, 8]),
        ]
        assert segments[0].label == "Lab"
        assert segments[1].label == "MT-1B Algebra"

    def test_class_slots_with_same_text_merge(self, monday):
        segments = room_timeline(_room(monday, "E-31"), monday.time_slots)
        assert [(s.kind, s.start, s.end) for s in segments] == [
            ("class", "08:00", "9:45"),
            ("free", "9:50", "10:40"),
            ("class", "10:45", "11:35"),
            ("free", "11:40", "3:15"),
        ]

"""Free-time and free-room computations over parsed day schedules."""

from collections.abc import Iterable

from gviz_timetable.errors import DataNotReady
from gviz_timetable.heuristics import (
    is_free_text,
    is_lab_text,
    is_placeholder_room_name,
    is_room_id,
    parse_minutes,
    room_id_in_name,
    split_time_range,
)
from gviz_timetable.logging import get_logger
from gviz_timetable.models import (
    AvailableRoom,
    Classroom,
    DaySchedule,
    FreeRange,
    TimelineSegment,
    TimeSlot,
    WeekSchedule,
)

log = get_logger(__name__)

MAX_AVAILABLE_ROOMS = 5


def is_slot_free(room: Classroom, time_index: int) -> bool:
    """True when the room has no entry at ``time_index`` or only a blank/dashes one."""
    entry = room.entry_at(time_index)
    return entry is None or is_free_text(entry.class_text)


def available_room(room: Classroom) -> AvailableRoom:
    return AvailableRoom(name=room.name, block=room.block)


def _require(day: DaySchedule | None) -> DaySchedule:
    if day is None:
        raise DataNotReady()
    return day


def _ordered(slots: Iterable[TimeSlot]) -> list[TimeSlot]:
    return sorted(slots, key=lambda s: s.index)


def free_rooms_in_range(day: DaySchedule | None, start_time: str, end_time: str) -> list[AvailableRoom]:
    """Rooms free for every slot whose start falls in ``[start_time, end_time)``.

    Rooms are not reported when no slot starts inside the range. Unparseable
    bounds give an empty list.

    Raises:
        DataNotReady: If no schedule has been loaded for the day yet.
    """
    day = _require(day)
    start_min = parse_minutes(start_time)
    end_min = parse_minutes(end_time)
    if start_min is None or end_min is None:
        log.debug("free_rooms_unparseable_range", start=start_time, end=end_time)
        return []

    in_range = []
    for slot in day.time_slots:
        minute = parse_minutes(slot.time)
        if minute is not None and start_min <= minute < end_min:
            in_range.append(slot)
    if not in_range:
        return []

    return [
        available_room(room)
        for room in day.classrooms
        if room.name and all(is_slot_free(room, slot.index) for slot in in_range)
    ]


def slot_occupied_by_query(classrooms: list[Classroom], time_index: int, term: str) -> bool:
    """Whether the (lower-cased) query occupies ``time_index`` in any room.

    A room whose name contains the query counts only through its own
    occupied entry; otherwise the entry's text or code must contain it.
    """
    for room in classrooms:
        entry = room.entry_at(time_index)
        if entry is None:
            continue
        occupied = not is_free_text(entry.class_text)
        if term in room.name.lower():
            if occupied:
                return True
            continue
        if occupied and (term in entry.class_text.lower() or term in entry.code.lower()):
            return True
    return False


def _free_runs(slots: list[TimeSlot], free: dict[int, bool]) -> list[list[TimeSlot]]:
    """Maximal runs of free slots; a busy slot breaks the run."""
    runs: list[list[TimeSlot]] = []
    current: list[TimeSlot] = []
    for slot in slots:
        if free[slot.index]:
            current.append(slot)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs


def _rooms_free_throughout(
    classrooms: list[Classroom], run: list[TimeSlot], exclude: str | None = None
) -> list[AvailableRoom]:
    rooms = []
    for room in classrooms:
        if room.name == exclude or is_placeholder_room_name(room.name):
            continue
        if all(is_slot_free(room, slot.index) for slot in run):
            rooms.append(available_room(room))
            if len(rooms) >= MAX_AVAILABLE_ROOMS:
                break
    return rooms


def _run_bounds(run: list[TimeSlot]) -> tuple[str, str]:
    return split_time_range(run[0].time)[0], split_time_range(run[-1].time)[1]


def find_room(classrooms: list[Classroom], room_id: str) -> Classroom | None:
    """Room whose name carries the room id (e.g. "E-31" in "E-31 Block II")."""
    wanted = room_id.strip().lower()
    for room in classrooms:
        if room_id_in_name(room.name) == wanted:
            return room
    return None


def _room_mode_ranges(day: DaySchedule, query: str) -> list[FreeRange]:
    target = find_room(day.classrooms, query)
    if target is None:
        return []
    slots = _ordered(day.time_slots)
    free = {slot.index: is_slot_free(target, slot.index) for slot in slots}
    target_info = available_room(target)

    ranges = []
    for run in _free_runs(slots, free):
        start, end = _run_bounds(run)
        ranges.append(
            FreeRange(
                start_time=start,
                end_time=end,
                available_rooms=[target_info],
                target_room=target_info,
                nearby_rooms=_rooms_free_throughout(day.classrooms, run, exclude=target.name),
            )
        )
    return ranges


def _class_mode_ranges(day: DaySchedule, query: str) -> list[FreeRange]:
    term = query.strip().lower()
    slots = _ordered(day.time_slots)
    free = {slot.index: not slot_occupied_by_query(day.classrooms, slot.index, term) for slot in slots}

    ranges = []
    for run in _free_runs(slots, free):
        start, end = _run_bounds(run)
        ranges.append(
            FreeRange(
                start_time=start,
                end_time=end,
                available_rooms=_rooms_free_throughout(day.classrooms, run),
            )
        )
    return ranges


def free_ranges_for_query(day: DaySchedule | None, query: str) -> list[FreeRange]:
    """Free time ranges of a room (strict room id) or of a class/lab query.

    Raises:
        DataNotReady: If no schedule has been loaded for the day yet.
    """
    day = _require(day)
    if not (query or "").strip():
        return []
    if is_room_id(query):
        return _room_mode_ranges(day, query)
    return _class_mode_ranges(day, query)


def find_free_schedule(
    week: WeekSchedule | None, query: str, day_names: Iterable[str] | None = None
) -> dict[str, list[FreeRange]]:
    """Free ranges for ``query`` per day; days without a range are left out.

    Args:
        week: Loaded schedules keyed by day name.
        query: Room id or class text.
        day_names: Restrict to these days (default: every loaded day).

    Raises:
        DataNotReady: If no week has been loaded yet.
    """
    if not week:
        raise DataNotReady()
    wanted = list(day_names) if day_names is not None else list(week)
    out: dict[str, list[FreeRange]] = {}
    for name in wanted:
        day = week.get(name)
        if day is None:
            continue
        ranges = free_ranges_for_query(day, query)
        if ranges:
            out[name] = ranges
    return out


def room_timeline(room: Classroom, time_slots: list[TimeSlot]) -> list[TimelineSegment]:
    """A room's day as segments: contiguous free slots merge, contiguous lab
    slots merge, and a class spans its contiguous slots with the same text.
    """
    segments: list[TimelineSegment] = []
    last_index: int | None = None
    last_text: str | None = None
    for slot in _ordered(time_slots):
        entry = room.entry_at(slot.index)
        text = entry.class_text if entry else ""
        if is_free_text(text) or "free" in text.lower():
            kind = "free"
        elif is_lab_text(text):
            kind = "lab"
        else:
            kind = "class"
        start, end = split_time_range(slot.time)

        current = segments[-1] if segments else None
        contiguous = last_index is not None and slot.index == last_index + 1
        same = current is not None and current.kind == kind and (kind != "class" or text == last_text)
        if current is not None and contiguous and same:
            current.end = end
            current.time_indices.append(slot.index)
        else:
            label = {"free": "Free", "lab": "Lab"}.get(kind, text)
            segments.append(
                TimelineSegment(kind=kind, start=start, end=end, label=label, time_indices=[slot.index])
            )
        last_index = slot.index
        last_text = text
    return segments

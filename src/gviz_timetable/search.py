"""Class search over parsed classrooms.

Hits are grouped per (room, cell text). Regular classes keep one result per
slot; lab sessions have their index-contiguous slots merged into a single
"start-end" result.
"""

from collections.abc import Iterable

from gviz_timetable.heuristics import is_lab_text, split_time_range
from gviz_timetable.models import Classroom, ScheduleEntry, SearchResultItem, WeekSchedule

MAX_SUGGESTIONS = 10


def _matches(term: str, room: Classroom, entry: ScheduleEntry) -> bool:
    return (
        term in entry.class_text.lower()
        or term in entry.code.lower()
        or term in room.name.lower()
    )


def _merge_runs(entries: list[ScheduleEntry]) -> list[tuple[ScheduleEntry, ScheduleEntry]]:
    """Split entries sorted by index into (first, last) pairs of contiguous runs."""
    runs: list[tuple[ScheduleEntry, ScheduleEntry]] = []
    start = end = entries[0]
    for entry in entries[1:]:
        if entry.time_index == end.time_index + 1:
            end = entry
            continue
        runs.append((start, end))
        start = end = entry
    runs.append((start, end))
    return runs


def _run_time(start: ScheduleEntry, end: ScheduleEntry) -> str:
    if start is end:
        return start.time
    return f"{split_time_range(start.time)[0]}-{split_time_range(end.time)[1]}"


def _item(room_name: str, text: str, code: str, time: str, day_num: int) -> SearchResultItem:
    return SearchResultItem(
        classroom_name=room_name,
        class_text=text,
        code=code,
        time=time,
        day_num=day_num,
        description=f"{code} @ {room_name} at {time}",
    )


def search_classes(classrooms: list[Classroom], query: str, day_num: int = 0) -> list[SearchResultItem]:
    """Find the slots matching ``query`` in class text, code or room name.

    Args:
        classrooms: Parsed rooms of one day.
        query: Free text, matched case-insensitively as a substring.
        day_num: Weekday number (0=Monday) stamped on every result.

    Returns:
        Results ordered by code, then by time label. A blank query gives [].
    """
    term = (query or "").strip().lower()
    if not term:
        return []

    groups: dict[tuple[str, str], list[ScheduleEntry]] = {}
    for room in classrooms:
        for entry in room.schedule:
            if _matches(term, room, entry):
                groups.setdefault((room.name, entry.class_text), []).append(entry)

    results: list[SearchResultItem] = []
    for (room_name, text), entries in groups.items():
        entries.sort(key=lambda e: e.time_index)
        if not is_lab_text(text):
            results.extend(_item(room_name, text, e.code, e.time, day_num) for e in entries)
            continue
        for start, end in _merge_runs(entries):
            results.append(_item(room_name, text, start.code, _run_time(start, end), day_num))

    results.sort(key=lambda r: (r.code, r.time))
    return results


def all_class_codes(classrooms: Iterable[Classroom]) -> list[str]:
    """Unique class codes across rooms, sorted."""
    return sorted({code for room in classrooms for code in room.class_codes})


def suggest_codes(week: WeekSchedule, query: str, limit: int = MAX_SUGGESTIONS) -> list[str]:
    """Codes (or texts, when a cell has no code) whose text or code contains ``query``."""
    term = (query or "").strip().lower()
    if not term:
        return []
    seen: list[str] = []
    for day in week.values():
        for room in day.classrooms:
            for entry in room.schedule:
                if term not in entry.class_text.lower() and term not in entry.code.lower():
                    continue
                label = entry.code or entry.class_text
                if label not in seen:
                    seen.append(label)
                    if len(seen) >= limit:
                        return seen
    return seen

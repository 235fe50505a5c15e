"""Pydantic models for timetable data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict

DayName = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


class TimeSlot(BaseModel):
    """One time column of a day tab, taken from the second header row."""

    model_config = ConfigDict(frozen=True)

    index: int  # Column position, 1-based after the room-name column
    time: str  # Raw label, e.g. "08:00-8:50"
    label: str


class ScheduleEntry(BaseModel):
    """One cell of a room's row, repeated once per spanned column."""

    model_config = ConfigDict(frozen=True)

    time_index: int
    time: str
    class_text: str  # Raw cell text, e.g. "FE Lab BCS-1G Qurat ul Ain"
    code: str = ""  # Derived class code, e.g. "BCS-1G"


class Classroom(BaseModel):
    """A room row with the entries the parser produced for it.

    Indices in ``schedule`` may have gaps: empty cells produce no entry.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    schedule: list[ScheduleEntry] = []
    class_codes: list[str] = []  # Unique, sorted
    block: str | None = None  # From "Academic Block II" style names

    def entry_at(self, time_index: int) -> ScheduleEntry | None:
        """Return the entry occupying ``time_index``, if any."""
        for entry in self.schedule:
            if entry.time_index == time_index:
                return entry
        return None


class DaySchedule(BaseModel):
    """Parsed timetable for one weekday tab. Replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    day_name: DayName
    classrooms: list[Classroom] = []
    time_slots: list[TimeSlot] = []

    @property
    def time_headers(self) -> list[str]:
        return [slot.time for slot in sorted(self.time_slots, key=lambda s: s.index)]

    @property
    def all_classes(self) -> list[str]:
        """Unique class codes scheduled anywhere on this day, sorted."""
        codes = {entry.code for room in self.classrooms for entry in room.schedule if entry.code}
        return sorted(codes)

    def simple_grid(self) -> list[dict]:
        """Rooms as ``{"name", "schedule"}`` with one text per time header.

        Position ``i`` of ``schedule`` lines up with ``time_headers[i]``, even
        when blank header columns left gaps in the slot indices.
        """
        ordered = sorted(self.time_slots, key=lambda s: s.index)
        position = {slot.index: pos for pos, slot in enumerate(ordered)}
        grid = []
        for room in self.classrooms:
            cells = [""] * len(ordered)
            for entry in room.schedule:
                pos = position.get(entry.time_index)
                if pos is not None:
                    cells[pos] = entry.class_text
            grid.append({"name": room.name, "schedule": cells})
        return grid


WeekSchedule = dict[str, DaySchedule]


class SearchResultItem(BaseModel):
    """A search hit; ``time`` may be a merged lab range "start-end"."""

    classroom_name: str
    class_text: str
    code: str
    time: str
    day_num: int
    description: str = ""


class AvailableRoom(BaseModel):
    """A room reported as free. The sheet carries no capacity/floor columns."""

    name: str
    capacity: int | None = None
    floor: str | None = None
    block: str | None = None


class FreeRange(BaseModel):
    """A maximal run of contiguous free time slots."""

    start_time: str
    end_time: str
    available_rooms: list[AvailableRoom] = []
    target_room: AvailableRoom | None = None  # Set in room mode only
    nearby_rooms: list[AvailableRoom] = []  # Other rooms free throughout, room mode only


class TimelineSegment(BaseModel):
    """Contiguous slots of one room grouped for display (free, lab or class)."""

    kind: Literal["free", "lab", "class"]
    start: str
    end: str
    label: str
    time_indices: list[int]


def bookmark_key(code: str, day: str, time: str, classroom: str) -> str:
    """Composite id used by saved-class and watch lists."""
    return "|".join(part.strip() for part in (code, day, time, classroom))


# ---------------------------------------------------------------------------
# Operation envelopes
# ---------------------------------------------------------------------------


class DayData(BaseModel):
    """Day payload served to the UI."""

    classrooms: list[Classroom]
    classrooms_simple: list[dict]
    time_slots: list[TimeSlot]
    time_headers: list[str]
    all_classes: list[str]
    total_classrooms: int
    total_classes: int
    fetched_at: str

    @classmethod
    def from_day(cls, day: DaySchedule, fetched_at: str) -> "DayData":
        all_classes = day.all_classes
        return cls(
            classrooms=day.classrooms,
            classrooms_simple=day.simple_grid(),
            time_slots=sorted(day.time_slots, key=lambda s: s.index),
            time_headers=day.time_headers,
            all_classes=all_classes,
            total_classrooms=len(day.classrooms),
            total_classes=len(all_classes),
            fetched_at=fetched_at,
        )


class DayFetchResult(BaseModel):
    success: Literal[True] = True
    day: DayName
    day_id: int
    gid: str
    data: DayData
    timestamp: str
    cached: bool = False


class WeekFetchResult(BaseModel):
    success: Literal[True] = True
    week: dict[str, DayData]
    timestamp: str
    cached: bool = False


class SearchResponse(BaseModel):
    success: Literal[True] = True
    query: str
    results: dict[str, list[SearchResultItem]]
    total_matches: int
    timestamp: str
    cached: bool = False


class FreeRoomsResponse(BaseModel):
    success: Literal[True] = True
    start: str
    end: str
    results: dict[str, list[AvailableRoom]]  # Keyed by day name
    timestamp: str


class FreeRangesResponse(BaseModel):
    success: Literal[True] = True
    query: str
    results: dict[str, list[FreeRange]]
    suggestions: list[str] = []
    timestamp: str


class ErrorResult(BaseModel):
    """Tagged failure returned instead of raising past an operation."""

    success: Literal[False] = False
    error: str
    error_type: str
    timestamp: str

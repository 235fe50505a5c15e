"""Grid parser - turns a GViz day tab into rooms and time slots.

Sheet layout (one tab per weekday):
  row 0 -> slot numbers (1, 2, 3, ...), ignored
  row 1 -> "Venues/time" placeholder, then time labels ("08:00-8:50", ...)
  row 2+ -> room name in column 0, class text per time column

GViz shape:
  {"table": {"rows": [{"c": [{"v": value, "p": {"colSpan": 3}}, null, ...]}]}}

Merged cells only sometimes carry ``p.colSpan``/``p.colspan``/``p.span``. Lab
sessions without that metadata are recognised by their text and widened over
the empty cells that follow them, within a bounded lookahead.
"""

from typing import Any

from pydantic import BaseModel

from gviz_timetable.heuristics import (
    WHITESPACE_RE,
    block_from_name,
    extract_class_code,
    is_lab_text,
)
from gviz_timetable.logging import get_logger
from gviz_timetable.models import Classroom, DaySchedule, ScheduleEntry, TimeSlot

log = get_logger(__name__)

SPAN_KEYS: tuple[str, ...] = ("colSpan", "colspan", "span")
DEFAULT_LAB_LOOKAHEAD = 5


class GridCell(BaseModel):
    """A GViz cell normalized at ingestion: text plus optional merge width."""

    text: str = ""
    span: int | None = None


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _cell_span(props: Any) -> int | None:
    if not isinstance(props, dict):
        return None
    for key in SPAN_KEYS:
        raw = props.get(key)
        if raw in (None, "", 0):
            continue
        try:
            span = int(raw)
        except (TypeError, ValueError):
            return None
        return span if span > 0 else None
    return None


def normalize_cell(raw: Any) -> GridCell:
    """Normalize one raw GViz cell (may be None)."""
    if not isinstance(raw, dict):
        return GridCell()
    return GridCell(text=_cell_text(raw.get("v")), span=_cell_span(raw.get("p")))


def normalize_row(raw_row: Any) -> list[GridCell]:
    """Normalize the ``c`` collection of a GViz row; missing cells become empty."""
    if not isinstance(raw_row, dict):
        return []
    cells = raw_row.get("c") or []
    if not isinstance(cells, list):
        return []
    return [normalize_cell(cell) for cell in cells]


def infer_lab_span(cells: list[GridCell], column: int, lookahead: int = DEFAULT_LAB_LOOKAHEAD) -> int:
    """Width of an unmerged lab cell: itself plus the empty cells right after it.

    Stops at the first non-empty cell, the end of the row, or after
    ``lookahead`` cells.
    """
    extra = 0
    for offset in range(1, lookahead + 1):
        nxt = column + offset
        if nxt >= len(cells):
            break
        if cells[nxt].text:
            break
        extra += 1
    return 1 + extra


def parse_time_slots(header: list[GridCell]) -> list[TimeSlot]:
    """Time slots from the time-label row; column 0 and blank labels are skipped."""
    slots = []
    for idx, cell in enumerate(header):
        if idx == 0 or not cell.text:
            continue
        slots.append(TimeSlot(index=idx, time=cell.text, label=cell.text))
    return slots


def parse_room_row(
    cells: list[GridCell],
    slots_by_index: dict[int, TimeSlot],
    lab_lookahead: int = DEFAULT_LAB_LOOKAHEAD,
) -> Classroom | None:
    """Build a Classroom from one row, or None when the row has no room name."""
    if not cells:
        return None
    name = WHITESPACE_RE.sub(" ", cells[0].text)
    if not name:
        return None

    schedule: list[ScheduleEntry] = []
    codes: set[str] = set()

    col = 1
    while col < len(cells):
        cell = cells[col]
        if cell.span is not None:
            span = cell.span
        elif is_lab_text(cell.text):
            span = infer_lab_span(cells, col, lab_lookahead)
        else:
            span = 1

        if cell.text:
            code = extract_class_code(cell.text)
            for offset in range(span):
                slot = slots_by_index.get(col + offset)
                if slot is None:
                    continue  # beyond the last time column
                schedule.append(
                    ScheduleEntry(
                        time_index=slot.index,
                        time=slot.time,
                        class_text=cell.text,
                        code=code,
                    )
                )
            if code:
                codes.add(code)

        col += span

    return Classroom(
        name=name,
        schedule=schedule,
        class_codes=sorted(codes),
        block=block_from_name(name),
    )


def parse_classroom_data(
    raw: Any, lab_lookahead: int = DEFAULT_LAB_LOOKAHEAD
) -> tuple[list[Classroom], list[TimeSlot]]:
    """Parse an unwrapped GViz object into (classrooms, time_slots).

    Degenerate tabs (fewer than three rows, no time-label cells) give
    ``([], [])`` instead of an error.
    """
    table = raw.get("table") if isinstance(raw, dict) else None
    rows = table.get("rows") if isinstance(table, dict) else None
    if not isinstance(rows, list) or len(rows) < 3:
        log.debug("grid_too_short", rows=len(rows) if isinstance(rows, list) else 0)
        return [], []

    header_raw = rows[1].get("c") if isinstance(rows[1], dict) else None
    if not header_raw:
        log.debug("grid_missing_time_row")
        return [], []

    time_slots = parse_time_slots(normalize_row(rows[1]))
    slots_by_index = {slot.index: slot for slot in time_slots}

    classrooms: list[Classroom] = []
    skipped = 0
    for raw_row in rows[2:]:
        room = parse_room_row(normalize_row(raw_row), slots_by_index, lab_lookahead)
        if room is None:
            skipped += 1
            continue
        classrooms.append(room)

    log.debug(
        "grid_parsed",
        classrooms=len(classrooms),
        time_slots=len(time_slots),
        skipped_rows=skipped,
    )
    return classrooms, time_slots


def parse_grid(raw: Any, day_name: str, lab_lookahead: int = DEFAULT_LAB_LOOKAHEAD) -> DaySchedule:
    """Parse an unwrapped GViz object into the DaySchedule of ``day_name``."""
    classrooms, time_slots = parse_classroom_data(raw, lab_lookahead)
    return DaySchedule(day_name=day_name, classrooms=classrooms, time_slots=time_slots)

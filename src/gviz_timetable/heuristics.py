"""Named heuristics for the sheet's unwritten conventions.

Each rule here was reverse-engineered from one institution's spreadsheet
habits (lab sessions left unmerged, 12-hour labels without AM/PM, header rows
repeated inside the room column). They are kept as small predicates so the
parser, search and free-slot code never inline them.
"""

import re

CLASS_CODE_RE = re.compile(r"\b([A-Z]{2,4}-\d{1,2}[A-Z]?)\b")
LAB_RE = re.compile(r"\blab\b", re.IGNORECASE)
DASHES_RE = re.compile(r"^-+$")
MINUTES_RE = re.compile(r"^(\d{1,2}):(\d{2})")
ROOM_ID_RE = re.compile(r"^[A-Za-z]{1,3}-?\d{1,4}$")
ROOM_ID_IN_NAME_RE = re.compile(r"[A-Za-z]{1,3}-?\d{1,4}")
PLACEHOLDER_RE = re.compile(
    r"^(classrooms?|rooms?|class list|room list|laboratories|labs?)\b", re.IGNORECASE
)
BLOCK_RE = re.compile(r"Academic Block ([IVX]+|[0-9]+)", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")

# Hours 1-7 on these sheets are afternoon periods ("1:30" is 13:30)
PM_HOURS = range(1, 8)


def extract_class_code(text: str | None) -> str:
    """Extract the class code from free cell text.

    E.g. "BCS-1G Database Systems" -> "BCS-1G",
    "FE Lab BCS-1G Qurat ul Ain" -> "BCS-1G".

    Returns:
        First code found, or "" when there is none.
    """
    if not text:
        return ""
    match = CLASS_CODE_RE.search(text)
    return match.group(1) if match else ""


def is_lab_text(text: str | None) -> bool:
    """True when the text names a lab session (whole word, any case)."""
    return bool(text) and LAB_RE.search(text) is not None


def is_free_text(text: str | None) -> bool:
    """True when a cell's text means nobody uses the slot (blank or only dashes)."""
    value = (text or "").strip()
    return not value or DASHES_RE.match(value) is not None


def parse_minutes(value: str | None) -> int | None:
    """Minutes since midnight of a leading ``H:MM``/``HH:MM``.

    Hours in [1, 8) are read as PM. Returns None when there is no time prefix.
    """
    if not value:
        return None
    match = MINUTES_RE.match(value.strip())
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours in PM_HOURS:
        hours += 12
    return hours * 60 + minutes


def split_time_range(label: str) -> tuple[str, str]:
    """Split "08:00-8:50" into ("08:00", "8:50"); a bare label is both ends."""
    parts = label.split("-")
    start = parts[0].strip()
    end = parts[1].strip() if len(parts) > 1 and parts[1].strip() else label.strip()
    return start, end


def is_room_id(query: str | None) -> bool:
    """True for strict room ids such as "E-31", "R109" or "A2"."""
    return bool(query) and ROOM_ID_RE.match(query.strip()) is not None


def room_id_in_name(name: str) -> str | None:
    """First room-id-shaped token of a room name, lower-cased."""
    match = ROOM_ID_IN_NAME_RE.search(name)
    return match.group(0).lower() if match else None


def is_placeholder_room_name(name: str | None) -> bool:
    """True for header rows exported inside the room column ("CLASSROOMS", "Labs")."""
    if not name:
        return True
    value = WHITESPACE_RE.sub(" ", str(name).strip())
    if PLACEHOLDER_RE.match(value):
        return True
    return not any(ch.isdigit() for ch in value) and len(value) > 4 and value == value.upper()


def block_from_name(name: str | None) -> str | None:
    """Block number from names like "Academic Block II - Room 4"."""
    if not name:
        return None
    match = BLOCK_RE.search(name)
    return match.group(1) if match else None

"""Shared fixtures: GViz grid builders, a fake fetcher and a fake clock."""

import pytest

from gviz_timetable.config import TimetableConfig

TIMES = [
    "08:00-8:50",
    "8:55-9:45",
    "9:50-10:40",
    "10:45-11:35",
    "11:40-12:30",
    "12:35-1:25",
    "1:30-2:20",
    "2:25-3:15",
]


def cell(value, span=None, key="colSpan"):
    if value is None:
        return None
    raw = {"v": value}
    if span is not None:
        raw["p"] = {key: span}
    return raw


def build_grid(rooms, times=TIMES):
    """GViz object for ``rooms``: [(name, [cell text or (text, span) or raw dict, ...]), ...]."""
    slot_row = {"c": [None] + [{"v": float(i + 1)} for i in range(len(times))]}
    time_row = {"c": [{"v": "Venues/time"}] + [{"v": t} for t in times]}
    rows = [slot_row, time_row]
    for name, cells in rooms:
        row = [cell(name)]
        for item in cells:
            if isinstance(item, tuple):
                row.append(cell(*item))
            elif isinstance(item, dict) or item is None:
                row.append(item)
            else:
                row.append(cell(item))
        rows.append({"c": row})
    return {"version": "0.6", "status": "ok", "table": {"cols": [], "rows": rows}}


def wrap(grid_json: str) -> str:
    return f"/*O_o*/\ngoogle.visualization.Query.setResponse({grid_json});"


MONDAY_ROOMS = [
    ("E-31", ["BCS-1G Database Systems", "BCS-1G Database Systems", None, "BSE-2A Calculus"]),
    ("E-32", ["FE Lab BCS-1G Qurat ul Ain", None, None, "MT-1B Algebra"]),
    ("R109", [None, "---", "BAI-3C Ethics", None, None, None, None, None]),
    ("CLASSROOMS", []),
]


@pytest.fixture
def make_grid():
    return build_grid


@pytest.fixture
def monday_grid():
    return build_grid(MONDAY_ROOMS)


@pytest.fixture
def config():
    return TimetableConfig(
        sheet_id="sheet123",
        sheet_day_gids={
            "Monday": "100",
            "Tuesday": "200",
            "Wednesday": "300",
            "Thursday": "400",
            "Friday": "500",
        },
        fetch_attempts=2,
        fetch_retry_wait_seconds=0,
        warm_on_startup=False,
        clear_cache_secret="s3cret",
    )


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class FakeFetcher:
    """Serves prepared grids per gid; a gid mapped to an exception raises it."""

    def __init__(self, grids: dict) -> None:
        self.grids = grids
        self.calls: list[str] = []
        self.closed = False

    async def fetch(self, gid: str) -> dict:
        self.calls.append(gid)
        grid = self.grids[gid]
        if isinstance(grid, Exception):
            raise grid
        return grid

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fetcher_factory():
    return FakeFetcher

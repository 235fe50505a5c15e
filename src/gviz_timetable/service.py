"""Timetable operations: day fetch, week fetch, search and free-slot lookups.

Every public operation returns either its success envelope or an
``ErrorResult``; TimetableError never escapes past this layer. The service
keeps the last successfully parsed schedule per day so lookups keep working
while the sheet is unreachable.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone
from typing import Any

from gviz_timetable.cache import ScheduleCache
from gviz_timetable.config import WEEKDAYS, TimetableConfig
from gviz_timetable.errors import (
    DataNotReady,
    InvalidDaySelector,
    InvalidQuery,
    Superseded,
    TimetableError,
)
from gviz_timetable.free_slots import find_free_schedule, free_rooms_in_range
from gviz_timetable.logging import get_logger
from gviz_timetable.models import (
    DayData,
    DayFetchResult,
    DaySchedule,
    ErrorResult,
    FreeRangesResponse,
    FreeRoomsResponse,
    SearchResponse,
    WeekFetchResult,
    WeekSchedule,
)
from gviz_timetable.search import search_classes, suggest_codes
from gviz_timetable.sheets.fetcher import GridFetcher
from gviz_timetable.sheets.grid import parse_grid

log = get_logger(__name__)

ALL_DAYS = "all"
DaySelector = int | str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(exc: Exception) -> ErrorResult:
    return ErrorResult(error=str(exc), error_type=type(exc).__name__, timestamp=_now())


def resolve_day_selector(raw: Any, today: date | None = None) -> DaySelector:
    """Turn a day selector into a weekday number (0=Monday) or ``"all"``.

    Accepts 0-4, "all"/"week" and "today" (Saturday and Sunday map to Monday).

    Raises:
        InvalidDaySelector: For anything else.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise InvalidDaySelector("Missing or invalid day parameter")
    value = str(raw).strip().lower()
    if value in ("all", "week"):
        return ALL_DAYS
    if value == "today":
        weekday = (today or date.today()).weekday()
        return weekday if weekday < len(WEEKDAYS) else 0
    try:
        day_id = int(value)
    except ValueError:
        raise InvalidDaySelector(f"Invalid day: {raw!r}. Use 0-4, 'all' or 'today'") from None
    if not 0 <= day_id < len(WEEKDAYS):
        raise InvalidDaySelector(f"Invalid day ID: {day_id}. Must be 0-4 (Monday-Friday)")
    return day_id


def days_listing() -> list[dict]:
    return [{"id": i, "name": name} for i, name in enumerate(WEEKDAYS)]


class TimetableService:
    """Operations over one spreadsheet, gated by a short-TTL cache."""

    def __init__(
        self,
        config: TimetableConfig,
        fetcher: GridFetcher | None = None,
        cache: ScheduleCache | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.config = config
        self.fetcher = fetcher if fetcher is not None else GridFetcher(config)
        self.cache = cache if cache is not None else ScheduleCache(config.cache_ttl_seconds)
        self._today = today
        self._latest: WeekSchedule = {}

    @property
    def latest_week(self) -> WeekSchedule:
        """Last successfully parsed schedule per day (may be stale)."""
        return dict(self._latest)

    def resolve(self, raw: Any) -> DaySelector:
        return resolve_day_selector(raw, self._today())

    async def aclose(self) -> None:
        await self.fetcher.aclose()

    # ---------------------------------------------------------------------------
    # Loading
    # ---------------------------------------------------------------------------

    async def load_day(self, day_id: int) -> DaySchedule:
        """Fetch and parse one weekday tab, bypassing the cache.

        Raises:
            TimetableError: Any fetch failure (NotPublished, Timeout, ...).
        """
        day_name = WEEKDAYS[day_id]
        gid = self.config.gid_for(day_name)
        log.info("day_fetch_started", day=day_name, day_id=day_id, gid=gid)
        raw = await self.fetcher.fetch(gid)
        day = parse_grid(raw, day_name, self.config.lab_lookahead)
        self._latest[day_name] = day
        log.info(
            "day_fetch_succeeded",
            day=day_name,
            classrooms=len(day.classrooms),
            time_slots=len(day.time_slots),
        )
        return day

    async def _day_result(self, day_id: int) -> tuple[DayFetchResult, bool]:
        async def loader() -> DayFetchResult:
            day = await self.load_day(day_id)
            stamp = _now()
            return DayFetchResult(
                day=day.day_name,
                day_id=day_id,
                gid=self.config.gid_for(day.day_name),
                data=DayData.from_day(day, fetched_at=stamp),
                timestamp=stamp,
            )

        return await self.cache.get_or_load(("schedule", day_id), loader)

    async def _week_days(self, day_ids: list[int]) -> dict[str, DayData]:
        """Load days concurrently; a failed day is logged and left out."""
        outcomes = await asyncio.gather(
            *(self._day_result(d) for d in day_ids), return_exceptions=True
        )
        week: dict[str, DayData] = {}
        for day_id, outcome in zip(day_ids, outcomes):
            if isinstance(outcome, TimetableError):
                log.warning(
                    "day_fetch_failed",
                    day=WEEKDAYS[day_id],
                    error=str(outcome),
                    type=type(outcome).__name__,
                )
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            result, _cached = outcome
            week[result.day] = result.data
        return week

    # ---------------------------------------------------------------------------
    # Operations
    # ---------------------------------------------------------------------------

    async def fetch_day(self, selector: Any) -> DayFetchResult | WeekFetchResult | ErrorResult:
        """Day-fetch operation: one weekday, or the whole week for "all"."""
        try:
            day_sel = self.resolve(selector)
            if day_sel == ALL_DAYS:
                return await self.fetch_week()
            result, cached = await self._day_result(day_sel)
        except TimetableError as e:
            log.warning("fetch_day_failed", selector=selector, error=str(e))
            return _error(e)
        return result.model_copy(update={"cached": True}) if cached else result

    async def fetch_week(self) -> WeekFetchResult:
        """All five weekdays fetched concurrently; failed days are absent."""

        async def loader() -> WeekFetchResult:
            week = await self._week_days(list(range(len(WEEKDAYS))))
            return WeekFetchResult(week=week, timestamp=_now())

        result, cached = await self.cache.get_or_load(("week",), loader)
        return result.model_copy(update={"cached": True}) if cached else result

    async def search(self, query: str | None, selector: Any = ALL_DAYS) -> SearchResponse | ErrorResult:
        """Search one day or the whole week; results keyed by day name."""
        try:
            if not query or not query.strip():
                raise InvalidQuery("Missing search query")
            day_sel = self.resolve(ALL_DAYS if selector is None else selector)
        except TimetableError as e:
            return _error(e)

        key = ("search", query.strip().lower(), day_sel)

        async def loader() -> SearchResponse | ErrorResult:
            try:
                if day_sel == ALL_DAYS:
                    day_ids = list(range(len(WEEKDAYS)))
                    days = await self._week_days(day_ids)
                else:
                    day_ids = [day_sel]
                    result, _cached = await self._day_result(day_sel)
                    days = {result.day: result.data}
            except TimetableError as e:
                return _error(e)

            results = {}
            for day_id in day_ids:
                data = days.get(WEEKDAYS[day_id])
                if data is None:
                    continue
                hits = search_classes(data.classrooms, query, day_num=day_id)
                if hits:
                    results[WEEKDAYS[day_id]] = hits
            return SearchResponse(
                query=query,
                results=results,
                total_matches=sum(len(hits) for hits in results.values()),
                timestamp=_now(),
            )

        response, cached = await self.cache.get_or_load(
            key, loader, should_cache=lambda r: r.success
        )
        log.info("search_completed", query=query, day=day_sel, cached=cached, success=response.success)
        return response.model_copy(update={"cached": True}) if cached else response

    def _loaded_days(self, day_sel: DaySelector) -> list[str]:
        if not self._latest:
            raise DataNotReady()
        if day_sel == ALL_DAYS:
            return [name for name in WEEKDAYS if name in self._latest]
        name = WEEKDAYS[day_sel]
        if name not in self._latest:
            raise DataNotReady(f"{name} is still loading, retry shortly")
        return [name]

    def free_rooms(self, selector: Any, start: str, end: str) -> FreeRoomsResponse | ErrorResult:
        """Rooms free throughout ``[start, end)`` on the loaded day(s)."""
        try:
            day_sel = self.resolve(selector)
            names = self._loaded_days(day_sel)
            results = {}
            for name in names:
                rooms = free_rooms_in_range(self._latest.get(name), start, end)
                if rooms:
                    results[name] = rooms
        except TimetableError as e:
            return _error(e)
        return FreeRoomsResponse(start=start, end=end, results=results, timestamp=_now())

    def free_ranges(self, query: str | None, selector: Any = ALL_DAYS) -> FreeRangesResponse | ErrorResult:
        """Free time ranges for a room id or class query on the loaded day(s)."""
        try:
            if not query or not query.strip():
                raise InvalidQuery("Missing free-time query")
            day_sel = self.resolve(ALL_DAYS if selector is None else selector)
            names = self._loaded_days(day_sel)
            results = find_free_schedule(self._latest, query, names)
        except TimetableError as e:
            return _error(e)
        suggestions = [] if results else suggest_codes(self._latest, query)
        return FreeRangesResponse(
            query=query, results=results, suggestions=suggestions, timestamp=_now()
        )

    def clear_cache(self) -> None:
        """Invalidate cached results now; the last known-good days are kept."""
        self.cache.clear()


class SupersedingRunner:
    """Runs one request at a time per caller; a newer request cancels the older.

    The awaiter of a superseded request gets ``Superseded`` instead of a
    result, including when the old result arrives after the new request began.
    """

    def __init__(self) -> None:
        self._current: asyncio.Task | None = None

    async def run(self, coro: Awaitable[Any]) -> Any:
        previous = self._current
        if previous is not None and not previous.done():
            previous.cancel()
        task = asyncio.ensure_future(coro)
        self._current = task
        try:
            result = await task
        except asyncio.CancelledError:
            if self._current is not task:
                raise Superseded("Request replaced by a newer one") from None
            raise
        if self._current is not task:
            raise Superseded("Request replaced by a newer one")
        return result


class SearchSession:
    """Per-caller search where each new query supersedes the one in flight."""

    def __init__(self, service: TimetableService) -> None:
        self.service = service
        self._runner = SupersedingRunner()

    async def search(self, query: str, selector: Any = ALL_DAYS) -> SearchResponse | ErrorResult:
        return await self._runner.run(self.service.search(query, selector))

"""Error hierarchy for timetable fetching and lookups.

This hierarchy lets tenacity retry decorators classify transient failures
(should retry) vs permanent failures (should not retry), and lets the
operations layer turn any of them into a tagged failure result.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    async def fetch_tab(gid: str):
        ...
"""


class TimetableError(Exception):
    """Base exception for all timetable errors."""

    pass


class TransientError(TimetableError):
    """Temporary failure that may succeed on retry.

    Examples: network timeouts, refused connections, data still loading.
    """

    pass


class Timeout(TransientError):
    """The sheet did not answer within the configured timeout."""

    pass


class NetworkError(TransientError):
    """Transport-level failure talking to the sheet host (DNS, reset, refused)."""

    pass


class DataNotReady(TransientError):
    """No schedule data has been loaded yet - the caller should retry shortly."""

    def __init__(self, message: str = "Schedule data is still loading, retry shortly") -> None:
        super().__init__(message)


class PermanentError(TimetableError):
    """Failure that won't succeed on retry.

    Examples: unpublished sheet, malformed payload, invalid caller input.
    """

    pass


class NotPublished(PermanentError):
    """The sheet answered 404 - it is not published to the web."""

    pass


class AccessDenied(PermanentError):
    """The sheet answered 403 - it is not shared with view access."""

    pass


class HttpError(PermanentError):
    """Any other non-2xx answer from the sheet host."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP Error: {status_code} {reason}".rstrip())


class MalformedResponse(PermanentError):
    """The body holds no detectable JSON object."""

    pass


class InvalidDaySelector(PermanentError):
    """Day selector is not 0-4, 'all', 'week' or 'today'."""

    pass


class InvalidQuery(PermanentError):
    """Empty or whitespace-only query sent to a search operation."""

    pass


class Superseded(TimetableError):
    """A newer request from the same caller replaced this one."""

    pass

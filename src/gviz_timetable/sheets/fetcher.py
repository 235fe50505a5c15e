"""GridFetcher - downloads one day tab through the public GViz endpoint.

GViz answers with the table wrapped in a JavaScript callback:

    /*O_o*/
    google.visualization.Query.setResponse({"version":"0.6", ..., "table": {...}});

The JSON object is the text between the first "{" and the last "}".
The sheet must be published to the web; no credentials are sent.
"""

import asyncio
import json
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from gviz_timetable.config import TimetableConfig
from gviz_timetable.errors import (
    AccessDenied,
    HttpError,
    MalformedResponse,
    NetworkError,
    NotPublished,
    Timeout,
    TransientError,
)
from gviz_timetable.logging import get_logger

log = get_logger(__name__)

GVIZ_QUERY = "gviz/tq?tqx=out:json&gid={gid}"


def unwrap_gviz(text: str) -> dict[str, Any]:
    """Extract the JSON object from a wrapped GViz body.

    Raises:
        MalformedResponse: If there is no "{" ... "}" pair or it is not valid JSON.
    """
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last < first:
        raise MalformedResponse("Unexpected GViz response format - no JSON found")
    try:
        parsed = json.loads(text[first : last + 1])
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Failed to parse GViz response: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedResponse("Unexpected GViz response format - not an object")
    return parsed


class GridFetcher:
    """Fetches raw GViz grids for the tabs of one spreadsheet.

    The fetcher owns its httpx client unless one is passed in, in which case
    the caller closes it.
    """

    def __init__(
        self, config: TimetableConfig, client: httpx.AsyncClient | None = None
    ) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None

    def tab_url(self, gid: str) -> str:
        base = self.config.sheet_base_url.rstrip("/")
        return f"{base}/{self.config.sheet_id}/{GVIZ_QUERY.format(gid=gid)}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GridFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def fetch(self, gid: str) -> dict[str, Any]:
        """Fetch and unwrap one tab, retrying transient failures.

        Args:
            gid: Tab identifier from the sheet URL.

        Returns:
            The unwrapped GViz object.

        Raises:
            NotPublished: On 404 (sheet not published to the web).
            AccessDenied: On 403.
            HttpError: On any other non-2xx status.
            MalformedResponse: If the body holds no JSON object.
            Timeout: If every attempt timed out, or attempts and waits together
                ran past ``fetch_timeout_seconds``.
            NetworkError: If every attempt failed at the transport level.
        """
        limit = self.config.fetch_timeout_seconds
        try:
            return await asyncio.wait_for(self._fetch_with_retries(gid), timeout=limit)
        except asyncio.TimeoutError as e:
            log.warning("gviz_fetch_deadline_exceeded", gid=gid, seconds=limit)
            raise Timeout(f"Timed out after {limit:g}s fetching tab {gid}") from e

    async def _fetch_with_retries(self, gid: str) -> dict[str, Any]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.config.fetch_attempts)),
            wait=wait_fixed(self.config.fetch_retry_wait_seconds),
            retry=retry_if_exception_type(TransientError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._fetch_once(gid, attempt.retry_state.attempt_number)
        raise AssertionError("unreachable")  # pragma: no cover

    async def _fetch_once(self, gid: str, attempt: int) -> dict[str, Any]:
        url = self.tab_url(gid)
        log.debug("gviz_fetch_started", gid=gid, attempt=attempt)
        try:
            response = await self._get_client().get(
                url, timeout=self.config.fetch_timeout_seconds
            )
        except httpx.TimeoutException as e:
            log.warning("gviz_fetch_timeout", gid=gid, attempt=attempt)
            raise Timeout(
                f"Timed out after {self.config.fetch_timeout_seconds:g}s fetching tab {gid}"
            ) from e
        except httpx.TransportError as e:
            log.warning("gviz_fetch_network_error", gid=gid, attempt=attempt, error=str(e))
            raise NetworkError(f"Network error fetching from Google Sheets: {e}") from e

        status = response.status_code
        if status == 404:
            raise NotPublished(
                "Sheet not found or not published to web. Status: 404. "
                "Publish it with File > Share > Publish to web."
            )
        if status == 403:
            raise AccessDenied(
                "Access denied to sheet. Status: 403. "
                "Make sure the sheet is shared with view access."
            )
        if not response.is_success:
            raise HttpError(status, response.reason_phrase)

        grid = unwrap_gviz(response.text)
        log.debug("gviz_fetch_succeeded", gid=gid, bytes=len(response.content))
        return grid

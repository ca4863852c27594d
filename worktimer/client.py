"""
HTTP client for the time tracking API, used by the Timer Widget.

Server errors come back as the same TimerError subclasses the services raise.
A command that times out is never assumed to have applied: the client
re-reads the status and raises CommandOutcomeUnknown carrying it.
"""

import logging
from typing import Any, List, Optional

import httpx

from worktimer.domain.errors import (
    ERRORS_BY_CODE, CommandOutcomeUnknown, PersistenceFailure, TimerError,
)
from worktimer.domain.models import TimeEntry, TimerStatus

logger = logging.getLogger(__name__)


class TimerApiClient:
    def __init__(self, base_url: str, user_id: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.user_id = user_id
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"X-User-Id": user_id},
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TimerApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def status(self) -> TimerStatus:
        data = await self._request("GET", "/api/time-tracker/status")
        return TimerStatus.model_validate(data)

    async def start(self, task_id: str, description: Optional[str] = None) -> TimerStatus:
        data = await self._command("POST", "/api/time-tracker/start",
                                   json={"taskId": task_id, "description": description})
        return TimerStatus.model_validate(data)

    async def pause(self, reason: str) -> TimerStatus:
        data = await self._command("POST", "/api/time-tracker/pause", json={"reason": reason})
        return TimerStatus.model_validate(data)

    async def resume(self) -> TimerStatus:
        data = await self._command("POST", "/api/time-tracker/resume")
        return TimerStatus.model_validate(data)

    async def stop(self, description: Optional[str] = None) -> TimeEntry:
        data = await self._command("POST", "/api/time-tracker/stop",
                                   json={"description": description})
        return TimeEntry.model_validate(data)

    async def pause_reasons(self) -> List[str]:
        return await self._request("GET", "/api/time-tracker/pause-reasons")

    async def _command(self, method: str, url: str, **kwargs) -> Any:
        """A state-changing call; on timeout fall back to the authoritative status"""
        try:
            return await self._request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {url} timed out, re-fetching timer status")
            try:
                status = await self.status()
            except (httpx.HTTPError, TimerError):
                logger.exception("Status re-fetch after timeout failed")
                status = None
            raise CommandOutcomeUnknown(status=status) from e

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        response = await self._client.request(method, url, **kwargs)
        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        code = body.get("code") if isinstance(body, dict) else None
        message = body.get("error") if isinstance(body, dict) else None
        error_cls = ERRORS_BY_CODE.get(code)
        if error_cls is not None:
            raise error_cls(message)
        if response.status_code >= 500:
            raise PersistenceFailure(message or f"Server error {response.status_code}")
        response.raise_for_status()
        return body

"""
Tests for the Timer Widget's HTTP client.
"""

import httpx
import pytest
import pytest_asyncio

from worktimer.api import ServiceContainer, create_app
from worktimer.client import TimerApiClient
from worktimer.domain.errors import (
    CommandOutcomeUnknown, NoActiveTimer, PersistenceFailure, TimerAlreadyActive,
)


@pytest_asyncio.fixture
async def client(db_engine, clock):
    app = create_app(services=ServiceContainer.build(db_engine, clock=clock))
    async with TimerApiClient("http://test", "alice",
                              transport=httpx.ASGITransport(app=app)) as api_client:
        yield api_client


@pytest.mark.asyncio
async def test_round_trip_against_app(client, make_task, clock):
    await make_task("t1")

    status = await client.start("t1", description="Draft")
    assert status.has_active_timer
    assert status.timer.description == "Draft"

    clock.advance(120)
    status = await client.pause("Phone Call")
    assert status.timer.is_paused

    clock.advance(60)
    status = await client.resume()
    assert status.timer.total_paused_seconds == 60

    entry = await client.stop()
    assert entry.active_seconds == 120
    assert entry.description == "Draft"

    assert not (await client.status()).has_active_timer
    assert "Lunch Break" in await client.pause_reasons()


@pytest.mark.asyncio
async def test_server_errors_are_typed(client, make_task):
    await make_task("t1")

    with pytest.raises(NoActiveTimer):
        await client.resume()

    await client.start("t1")
    with pytest.raises(TimerAlreadyActive) as exc:
        await client.start("t1")
    assert exc.value.message == "You already have an active timer. Please stop it first."


def _mock_client(handler) -> TimerApiClient:
    return TimerApiClient("http://test", "alice", transport=httpx.MockTransport(handler))


STATUS_BODY = {
    "hasActiveTimer": True,
    "serverTime": "2026-03-02T09:05:00",
    "timer": {
        "taskId": "t1",
        "startedAt": "2026-03-02T09:00:00",
        "isPaused": True,
        "pausedAt": "2026-03-02T09:04:00",
        "pauseReason": "Meeting",
        "totalPausedSeconds": 0,
    },
}


@pytest.mark.asyncio
async def test_user_header_is_sent():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["user"] = request.headers.get("X-User-Id")
        return httpx.Response(200, json=STATUS_BODY)

    async with _mock_client(handler) as client:
        status = await client.status()
    assert seen["user"] == "alice"
    assert status.timer.pause_reason == "Meeting"


@pytest.mark.asyncio
async def test_timeout_refetches_status():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/pause"):
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, json=STATUS_BODY)

    async with _mock_client(handler) as client:
        with pytest.raises(CommandOutcomeUnknown) as exc:
            await client.pause("Meeting")
    # The pause did land on the server; the widget learns it from the re-fetch
    assert exc.value.status is not None
    assert exc.value.status.timer.is_paused


@pytest.mark.asyncio
async def test_timeout_with_failed_refetch():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("unreachable", request=request)

    async with _mock_client(handler) as client:
        with pytest.raises(CommandOutcomeUnknown) as exc:
            await client.resume()
    assert exc.value.status is None


@pytest.mark.asyncio
async def test_unknown_server_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    async with _mock_client(handler) as client:
        with pytest.raises(PersistenceFailure):
            await client.status()

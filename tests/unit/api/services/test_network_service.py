"""Unit tests for network build orchestration and disconnect handling."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from conftest import OWNER_ID, make_connection, make_snapshot

from api.services.network_service import build_owner_network, run_until_disconnected
from nexus.errors import BuildCancelledError
from nexus.graph.diagnostics import DiagnosticKind
from nexus.graph.pipeline import CancelToken
from nexus.graph.scoring import NoJitter


class FakeRequest:
    def __init__(self, disconnect_after: int | None = None):
        self.polls = 0
        self.disconnect_after = disconnect_after

    async def is_disconnected(self) -> bool:
        self.polls += 1
        return self.disconnect_after is not None and self.polls >= self.disconnect_after


class TestBuildOwnerNetwork:
    """Tests for build_owner_network."""

    @pytest.mark.asyncio
    async def test_builds_from_fetched_snapshot(self, mutual_world):
        with patch(
            "api.services.network_service.fetch_snapshot", new=AsyncMock(return_value=mutual_world)
        ) as fetch:
            result = await build_owner_network(OWNER_ID, pb_client=object(), jitter=NoJitter())

        assert fetch.await_count == 1
        assert len(result.graph.nodes) == 5
        assert result.diagnostics.owner_id == OWNER_ID

    @pytest.mark.asyncio
    async def test_fetch_diagnostics_reach_result(self):
        async def fake_fetch(owner_id, pb_client, privileged_client, diagnostics):
            diagnostics.report(DiagnosticKind.PARTIAL_FETCH, "Failed to load activity", subject_id="activity")
            return make_snapshot(connections=[make_connection("k1", OWNER_ID, "bob")])

        with patch("api.services.network_service.fetch_snapshot", new=fake_fetch):
            result = await build_owner_network(OWNER_ID, pb_client=object(), jitter=NoJitter())

        assert result.diagnostics.counts() == {"partial_fetch": 1, "ghost_connection": 1}

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_before_build(self, mutual_world):
        token = CancelToken()
        token.cancel()

        with patch("api.services.network_service.fetch_snapshot", new=AsyncMock(return_value=mutual_world)):
            with pytest.raises(BuildCancelledError):
                await build_owner_network(OWNER_ID, pb_client=object(), cancel=token)

    @pytest.mark.asyncio
    async def test_task_cancellation_sets_token(self):
        token = CancelToken()
        started = asyncio.Event()

        async def slow_fetch(*args, **kwargs):
            started.set()
            await asyncio.sleep(10)

        with patch("api.services.network_service.fetch_snapshot", new=slow_fetch):
            task = asyncio.create_task(build_owner_network(OWNER_ID, pb_client=object(), cancel=token))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert token.cancelled is True


class TestRunUntilDisconnected:
    """Tests for run_until_disconnected."""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def work():
            return "graph"

        assert await run_until_disconnected(FakeRequest(), work(), poll_interval=0.01) == "graph"

    @pytest.mark.asyncio
    async def test_disconnect_cancels_work(self):
        cancelled = asyncio.Event()

        async def work():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(BuildCancelledError):
            await run_until_disconnected(FakeRequest(disconnect_after=2), work(), poll_interval=0.01)

        await asyncio.wait_for(cancelled.wait(), timeout=1)

    @pytest.mark.asyncio
    async def test_work_errors_propagate(self):
        async def work():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await run_until_disconnected(FakeRequest(), work(), poll_interval=0.01)

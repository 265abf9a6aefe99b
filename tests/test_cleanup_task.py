"""Tests for the background session expiry sweeper."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from server.cleanup_task import SessionExpirySweeper
from server.services.upload_service import UploadSessionManager


@pytest.fixture
def mock_manager():
    manager = Mock(spec=UploadSessionManager)
    manager.expire_stale = AsyncMock(return_value=["up-1"])
    return manager


@pytest.mark.asyncio
async def test_sweep_once_delegates_to_manager(mock_manager):
    sweeper = SessionExpirySweeper(mock_manager, interval_seconds=3600)

    expired = await sweeper.sweep_once()

    assert expired == ["up-1"]
    mock_manager.expire_stale.assert_awaited_once()


@pytest.mark.asyncio
async def test_runs_periodically_until_stopped(mock_manager):
    sweeper = SessionExpirySweeper(mock_manager, interval_seconds=0.01)

    await sweeper.start()
    assert sweeper.running
    await asyncio.sleep(0.1)
    await sweeper.stop()

    assert not sweeper.running
    assert mock_manager.expire_stale.await_count >= 1

    calls = mock_manager.expire_stale.await_count
    await asyncio.sleep(0.05)
    assert mock_manager.expire_stale.await_count == calls


@pytest.mark.asyncio
async def test_errors_do_not_stop_the_loop(mock_manager):
    calls = []

    async def flaky_expire():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("db locked")
        return []

    mock_manager.expire_stale = AsyncMock(side_effect=flaky_expire)
    sweeper = SessionExpirySweeper(mock_manager, interval_seconds=0.01)

    await sweeper.start()
    await asyncio.sleep(0.1)
    await sweeper.stop()

    assert mock_manager.expire_stale.await_count >= 2


@pytest.mark.asyncio
async def test_start_twice_is_noop(mock_manager):
    sweeper = SessionExpirySweeper(mock_manager, interval_seconds=3600)

    await sweeper.start()
    first_task = sweeper._task
    await sweeper.start()

    assert sweeper._task is first_task
    await sweeper.stop()


@pytest.mark.asyncio
async def test_stop_without_start(mock_manager):
    sweeper = SessionExpirySweeper(mock_manager)

    await sweeper.stop()

    assert not sweeper.running


@pytest.mark.asyncio
async def test_sweeps_real_manager(manager):
    manager.init("file.bin", 10, None, "tmp-1")
    manager.session_ttl = -1
    sweeper = SessionExpirySweeper(manager, interval_seconds=3600)

    expired = await sweeper.sweep_once()

    assert len(expired) == 1

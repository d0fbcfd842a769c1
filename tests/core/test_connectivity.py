"""
Tests for the connectivity monitor and the back-online trigger.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from tasksync.api.errors import RemoteError


@pytest.mark.asyncio
async def test_callback_fires_only_on_recovery(fake_api):
    from tasksync.services.connectivity import ConnectivityMonitor

    on_online = MagicMock()
    monitor = ConnectivityMonitor(fake_api, on_online, interval=0.01)

    assert await monitor.probe() is True
    on_online.assert_not_called()

    fake_api.online = False
    assert await monitor.probe() is False
    await monitor.probe()
    on_online.assert_not_called()

    fake_api.online = True
    await monitor.probe()
    await monitor.probe()
    on_online.assert_called_once()


@pytest.mark.asyncio
async def test_start_and_stop(fake_api):
    from tasksync.services.connectivity import ConnectivityMonitor

    monitor = ConnectivityMonitor(fake_api, MagicMock(), interval=0.01)
    monitor.start()
    await asyncio.sleep(0.03)

    assert monitor.running
    assert monitor.online is True

    await monitor.stop()
    assert not monitor.running


@pytest.mark.asyncio
async def test_back_online_drains_backlog(memory_cache, fake_api, session):
    """Reconnection pushes queued work without waiting for the retry timer."""
    from tasksync.services.tasks import TaskStore

    store = TaskStore(cache=memory_cache, api=fake_api, session=session, probe_interval=0.01)
    await store.load()

    fake_api.online = False
    fake_api.fail(RemoteError("offline", offline=True), times=1, kind="create")
    await store.create_task("Queued")
    assert len(store.log) == 1

    store.start()
    await asyncio.sleep(0.03)
    fake_api.online = True

    for _ in range(50):
        if store.log.is_empty:
            break
        await asyncio.sleep(0.01)

    assert store.log.is_empty
    assert store.engine.pending_retry is False
    await store.close()

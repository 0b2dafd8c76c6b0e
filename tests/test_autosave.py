"""Tests for the autosave worker's save cycle (store mocked)."""

import threading
from unittest.mock import MagicMock

import pytest

from carpool.domain.errors import StoreWriteError
from carpool.infrastructure.locks import EngineLock
from carpool.workers import autosave
from tests.conftest import make_passenger


@pytest.fixture
def mock_store():
    return MagicMock()


@pytest.fixture
def lock():
    return EngineLock(timeout_seconds=0.5)


class TestSaveCycle:
    @pytest.mark.asyncio
    async def test_skips_when_nothing_changed(self, engine, mock_store, lock):
        autosave.mark_saved(engine)
        assert await autosave.run_save_cycle(engine, mock_store, lock) is False
        mock_store.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_saves_after_a_mutation(self, engine, mock_store, lock):
        autosave.mark_saved(engine)
        engine.register_identity(make_passenger())

        assert await autosave.run_save_cycle(engine, mock_store, lock) is True
        mock_store.save.assert_called_once_with(engine)
        # a second cycle has nothing new to write
        assert await autosave.run_save_cycle(engine, mock_store, lock) is False
        assert not lock.locked

    @pytest.mark.asyncio
    async def test_force_saves_unchanged_engine(self, engine, mock_store, lock):
        autosave.mark_saved(engine)
        assert await autosave.run_save_cycle(engine, mock_store, lock, force=True) is True
        mock_store.save.assert_called_once()

    @pytest.mark.asyncio
    async def test_write_failure_is_retried_next_cycle(self, engine, mock_store, lock):
        autosave.mark_saved(engine)
        engine.register_identity(make_passenger())
        mock_store.save.side_effect = StoreWriteError(OSError("disk full"), "data")

        assert await autosave.run_save_cycle(engine, mock_store, lock) is False
        assert not lock.locked

        mock_store.save.side_effect = None
        assert await autosave.run_save_cycle(engine, mock_store, lock) is True

    @pytest.mark.asyncio
    async def test_save_runs_off_the_event_loop_thread(self, engine, mock_store, lock):
        autosave.mark_saved(engine)
        engine.register_identity(make_passenger())
        threads = []
        mock_store.save.side_effect = lambda _engine: threads.append(threading.get_ident())

        assert await autosave.run_save_cycle(engine, mock_store, lock) is True
        assert threads and threads[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_real_store_is_written(self, engine, store, lock):
        autosave.mark_saved(engine)
        engine.register_identity(make_passenger())
        assert await autosave.run_save_cycle(engine, store, lock) is True
        assert store.passengers_path.exists()


class TestWorkerLifecycle:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, engine, mock_store, lock):
        await autosave.start_autosave_loop(engine, mock_store, lock)
        await autosave.stop_autosave_loop()
        mock_store.save.assert_not_called()

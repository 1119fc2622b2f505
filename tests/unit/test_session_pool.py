"""Tests for the Session Pool - exclusive checkout, reuse and invalid-return handling."""

import threading

import pytest

from smbconnector.config import PoolConfig
from smbconnector.exceptions import (
    InvalidSessionReturnError,
    PoolExhaustedError,
    SmbConnectionError,
)
from smbconnector.filesystem import SmbFileSystemConnection
from smbconnector.session import SessionPool


class TestAcquireRelease:
    """Checkout and reuse."""

    def test_sessions_created_on_demand(self, pool, server):
        first = pool.acquire()
        second = pool.acquire()

        assert first is not second
        assert server.logins == 2
        assert pool.get_stats()["active_sessions"] == 2

    def test_released_session_is_reused(self, pool, server):
        session = pool.acquire()
        pool.release(session)

        assert pool.acquire() is session
        assert server.logins == 1
        assert pool.get_stats()["sessions_reused"] == 1

    def test_checked_out_session_never_shared(self, pool):
        sessions = {pool.acquire() for _ in range(4)}
        assert len(sessions) == 4

    def test_acquire_blocks_until_timeout_when_exhausted(self, manager):
        pool = SessionPool(manager, PoolConfig(max_sessions=1, acquire_timeout=0.1))
        pool.acquire()

        with pytest.raises(PoolExhaustedError, match="max_sessions=1"):
            pool.acquire()

    def test_waiting_acquire_gets_released_session(self, manager):
        pool = SessionPool(manager, PoolConfig(max_sessions=1))
        session = pool.acquire()
        acquired = []

        waiter = threading.Thread(target=lambda: acquired.append(pool.acquire(timeout=2.0)))
        waiter.start()
        pool.release(session)
        waiter.join()

        assert acquired == [session]

    def test_idle_sessions_above_max_idle_are_closed(self, manager):
        pool = SessionPool(manager, PoolConfig(max_sessions=4, max_idle=1))
        first, second = pool.acquire(), pool.acquire()
        pool.release(first)
        pool.release(second)

        assert second.closed
        assert pool.get_stats()["idle_sessions"] == 1

    def test_connect_failure_frees_the_slot(self, manager, server):
        pool = SessionPool(manager, PoolConfig(max_sessions=1, acquire_timeout=0.1))
        server.stop()
        with pytest.raises(SmbConnectionError):
            pool.acquire()

        server.start()
        assert pool.acquire().client.is_alive()


class TestValidation:
    """Invalid sessions are destroyed, never reused."""

    def test_release_of_invalid_session_raises_and_destroys(self, pool, server):
        session = pool.acquire()
        server.stop()

        with pytest.raises(InvalidSessionReturnError):
            pool.release(session)

        assert session.closed
        stats = pool.get_stats()
        assert stats["active_sessions"] == 0
        assert stats["idle_sessions"] == 0
        assert stats["sessions_destroyed"] == 1

    def test_stale_idle_session_replaced_on_acquire(self, pool, server):
        session = pool.acquire()
        pool.release(session)
        server.stop()
        server.start()

        fresh = pool.acquire()

        assert fresh is not session
        assert session.closed
        assert fresh.client.is_alive()

    def test_slot_of_destroyed_session_can_be_reused(self, manager, server):
        pool = SessionPool(manager, PoolConfig(max_sessions=1, acquire_timeout=0.1))
        session = pool.acquire()
        server.stop()
        with pytest.raises(InvalidSessionReturnError):
            pool.release(session)

        server.start()
        assert pool.acquire() is not session


class TestContextManagers:
    """session() and connection()."""

    def test_connection_yields_filesystem_connection(self, pool):
        with pool.connection() as fs:
            assert isinstance(fs, SmbFileSystemConnection)
            assert fs.session_manager is pool.manager
            assert fs.locks is pool.lock_factory

        assert pool.get_stats()["idle_sessions"] == 1

    def test_block_error_wins_over_invalid_return(self, pool, server):
        """The caller sees its own error; the dead session is still destroyed."""
        with pytest.raises(ValueError, match="from the block"):
            with pool.session() as session:
                server.stop()
                raise ValueError("from the block")

        assert session.closed
        assert pool.get_stats()["active_sessions"] == 0

    def test_invalid_return_raised_after_clean_block(self, pool, server):
        with pytest.raises(InvalidSessionReturnError):
            with pool.session():
                server.stop()


class TestShutdown:
    """Draining and closing."""

    def test_shutdown_disconnects_idle_sessions(self, manager):
        pool = SessionPool(manager)
        session = pool.acquire()
        pool.release(session)

        pool.shutdown()

        assert session.closed
        with pytest.raises(PoolExhaustedError, match="shut down"):
            pool.acquire()

    def test_shutdown_waits_for_checked_out_sessions(self, manager):
        pool = SessionPool(manager)
        session = pool.acquire()
        finished = threading.Event()

        def shutdown():
            pool.shutdown(timeout=2.0)
            finished.set()

        thread = threading.Thread(target=shutdown)
        thread.start()
        assert not finished.wait(0.1)

        pool.release(session)
        thread.join()

        assert finished.is_set()
        assert session.closed

    def test_shutdown_timeout(self, manager):
        pool = SessionPool(manager)
        pool.acquire()

        pool.shutdown(timeout=0.05)

        assert pool.get_stats()["closed"]

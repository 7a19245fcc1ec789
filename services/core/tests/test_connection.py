"""Tests for the connection manager state machine."""

import asyncio

import pytest

from pricefeed.streaming.connection import ConnectionManager
from pricefeed.streaming.errors import FeedConnectionError
from pricefeed.streaming.types import ConnectionState

from conftest import FakeTransport


class TestConnect:
    """Tests for ConnectionManager.connect."""

    @pytest.mark.asyncio
    async def test_connect_transitions_to_connected(self, transport):
        manager = ConnectionManager(transport)
        assert manager.state is ConnectionState.DISCONNECTED

        await manager.connect()

        assert manager.state is ConnectionState.CONNECTED
        assert transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, transport):
        manager = ConnectionManager(transport)
        await manager.connect()
        await manager.connect()
        assert transport.connect_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_connects_share_one_handshake(self, transport):
        """Two concurrent connect() calls produce exactly one handshake."""
        transport.gate = asyncio.Event()
        manager = ConnectionManager(transport)

        first = asyncio.create_task(manager.connect())
        second = asyncio.create_task(manager.connect())
        await asyncio.sleep(0)
        assert manager.state is ConnectionState.CONNECTING

        transport.gate.set()
        await asyncio.gather(first, second)

        assert transport.connect_calls == 1
        assert manager.handshake_count == 1
        assert manager.state is ConnectionState.CONNECTED

    @pytest.mark.asyncio
    async def test_failure_raises_and_marks_failed(self):
        transport = FakeTransport(fail_connect=True)
        manager = ConnectionManager(transport)

        with pytest.raises(FeedConnectionError):
            await manager.connect()

        assert manager.state is ConnectionState.FAILED

    @pytest.mark.asyncio
    async def test_concurrent_callers_see_same_failure(self):
        transport = FakeTransport(fail_connect=True)
        transport.gate = asyncio.Event()
        manager = ConnectionManager(transport)

        tasks = [asyncio.create_task(manager.connect()) for _ in range(3)]
        await asyncio.sleep(0)
        transport.gate.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)

        assert transport.connect_calls == 1
        assert all(isinstance(r, FeedConnectionError) for r in results)

    @pytest.mark.asyncio
    async def test_retry_after_failure(self):
        transport = FakeTransport(fail_connect=True)
        manager = ConnectionManager(transport)

        with pytest.raises(FeedConnectionError):
            await manager.connect()

        transport.fail_connect = False
        await manager.connect()

        assert manager.state is ConnectionState.CONNECTED
        assert transport.connect_calls == 2

    @pytest.mark.asyncio
    async def test_connection_error_is_builtin_connection_error(self):
        manager = ConnectionManager(FakeTransport(fail_connect=True))
        with pytest.raises(ConnectionError):
            await manager.connect()


class TestDisconnect:
    """Tests for ConnectionManager.disconnect."""

    @pytest.mark.asyncio
    async def test_disconnect_when_disconnected_is_noop(self, transport):
        manager = ConnectionManager(transport)
        await manager.disconnect()
        assert transport.disconnect_calls == 0
        assert manager.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_after_connect(self, transport):
        manager = ConnectionManager(transport)
        await manager.connect()
        await manager.disconnect()

        assert transport.disconnect_calls == 1
        assert manager.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_failure_is_swallowed(self):
        transport = FakeTransport(fail_disconnect=True)
        manager = ConnectionManager(transport)
        await manager.connect()

        await manager.disconnect()

        assert transport.disconnect_calls == 1
        assert manager.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_from_failed(self):
        manager = ConnectionManager(FakeTransport(fail_connect=True))
        with pytest.raises(FeedConnectionError):
            await manager.connect()

        await manager.disconnect()
        assert manager.state is ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_waits_for_inflight_handshake(self, transport):
        transport.gate = asyncio.Event()
        manager = ConnectionManager(transport)
        connecting = asyncio.create_task(manager.connect())
        await asyncio.sleep(0)

        disconnecting = asyncio.create_task(manager.disconnect())
        await asyncio.sleep(0)
        assert not disconnecting.done()

        transport.gate.set()
        await asyncio.gather(connecting, disconnecting)

        assert transport.disconnect_calls == 1
        assert manager.state is ConnectionState.DISCONNECTED


class TestStateListeners:
    """Tests for state notifications and remote close."""

    @pytest.mark.asyncio
    async def test_listener_sees_transitions(self, transport):
        manager = ConnectionManager(transport)
        seen = []
        manager.add_listener(seen.append)

        await manager.connect()
        await manager.disconnect()

        assert seen == [
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
            ConnectionState.DISCONNECTED,
        ]

    @pytest.mark.asyncio
    async def test_remote_close_marks_disconnected(self, transport):
        manager = ConnectionManager(transport)
        await manager.connect()

        transport.drop(OSError("reset by peer"))

        assert manager.state is ConnectionState.DISCONNECTED
        await manager.connect()
        assert transport.connect_calls == 2

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_state(self, transport):
        manager = ConnectionManager(transport)

        def broken(state):
            raise RuntimeError("boom")

        manager.add_listener(broken)
        await manager.connect()
        assert manager.is_connected

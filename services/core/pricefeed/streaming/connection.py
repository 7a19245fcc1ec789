"""Lifecycle of the single logical connection to the chart provider."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..providers.base import FeedTransport
from .errors import FeedConnectionError
from .types import ConnectionState


logger = logging.getLogger(__name__)

StateListener = Callable[[ConnectionState], None]


class ConnectionManager:
    """
    Owns the provider connection and its state machine.

    DISCONNECTED -> CONNECTING -> CONNECTED | FAILED; FAILED -> CONNECTING on
    retry; CONNECTED -> DISCONNECTED on disconnect or remote close.

    Concurrent connect() calls coalesce into one in-flight handshake and all
    callers observe its outcome.
    """

    def __init__(self, transport: FeedTransport):
        self.transport = transport
        self._state = ConnectionState.DISCONNECTED
        self._pending: asyncio.Future[None] | None = None
        self._listeners: list[StateListener] = []
        self.handshake_count = 0
        transport.on_close(self._handle_transport_closed)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked on every state transition."""
        self._listeners.append(listener)

    async def connect(self) -> None:
        """
        Ensure the connection is established.

        Raises:
            FeedConnectionError: If the transport handshake fails
        """
        if self._state is ConnectionState.CONNECTED:
            return
        if self._pending is None:
            self._set_state(ConnectionState.CONNECTING)
            self._pending = asyncio.ensure_future(self._handshake())
        await asyncio.shield(self._pending)

    async def disconnect(self) -> None:
        """Close the connection. Provider-side failures are logged, not raised."""
        if self._pending is not None:
            # Let the in-flight handshake settle before tearing down
            await asyncio.wait([self._pending])

        if self._state is ConnectionState.DISCONNECTED:
            return

        if self._state is ConnectionState.CONNECTED:
            try:
                await self.transport.disconnect()
            except Exception as e:
                logger.warning(f"Error disconnecting from provider: {e}")

        self._set_state(ConnectionState.DISCONNECTED)

    async def _handshake(self) -> None:
        self.handshake_count += 1
        try:
            await self.transport.connect()
        except Exception as e:
            logger.error(f"Failed to connect to provider (attempt {self.handshake_count}): {e}")
            self._set_state(ConnectionState.FAILED)
            raise FeedConnectionError(f"provider connection failed: {e}") from e
        finally:
            self._pending = None
        self._set_state(ConnectionState.CONNECTED)

    def _handle_transport_closed(self, error: BaseException | None) -> None:
        if self._state is not ConnectionState.CONNECTED:
            return
        if error is not None:
            logger.warning(f"Provider connection lost: {error}")
        else:
            logger.info("Provider closed the connection.")
        self._set_state(ConnectionState.DISCONNECTED)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug(f"Connection state {self._state.value} -> {state.value}")
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"Connection state listener failed: {e}", exc_info=True)

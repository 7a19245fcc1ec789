"""TradingView chart WebSocket transport."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import secrets
from typing import Any

import websockets

from .base import BarHandler, CloseHandler, TransportError


logger = logging.getLogger(__name__)

DEFAULT_URL = "wss://data.tradingview.com/socket.io/websocket"
DEFAULT_ORIGIN = "https://www.tradingview.com"

# Anonymous session; no authentication is performed
ANONYMOUS_TOKEN = "unauthorized_user_token"

_FRAME_RE = re.compile(r"~m~(\d+)~m~")
_HEARTBEAT_PREFIX = "~h~"

# Series id used for the single series of every chart session
_SERIES_ID = "sds_1"
_SYMBOL_ID = "sds_sym_1"


def encode_frame(payload: str) -> str:
    """Wrap a payload in TradingView's ~m~<len>~m~ framing."""
    return f"~m~{len(payload)}~m~{payload}"


def encode_message(method: str, params: list[Any]) -> str:
    return encode_frame(json.dumps({"m": method, "p": params}, separators=(",", ":")))


def decode_frames(raw: str) -> list[str]:
    """
    Split a raw WebSocket message into frame payloads.

    A single message may carry several frames back to back.
    """
    payloads: list[str] = []
    pos = 0
    while pos < len(raw):
        m = _FRAME_RE.match(raw, pos)
        if not m:
            logger.warning(f"Unframed TradingView data at offset {pos}: {raw[pos:pos + 40]!r}")
            break
        start = m.end()
        length = int(m.group(1))
        payloads.append(raw[start:start + length])
        pos = start + length
    return payloads


def series_to_bars(series: dict[str, Any]) -> list[dict[str, Any]]:
    """Convert a TradingView series block ({"s": [{"i", "v"}]}) into provider bar dicts."""
    bars = []
    for item in series.get("s", []):
        v = item.get("v") or []
        if len(v) < 5:
            continue
        bars.append({
            "time": v[0],
            "open": v[1],
            "high": v[2],
            "low": v[3],
            "close": v[4],
            "volume": v[5] if len(v) > 5 else None,
        })
    return bars


class TradingViewChartSession:
    """One chart session on a TradingView connection."""

    def __init__(self, transport: "TradingViewWebSocketTransport", session_id: str, ticker: str, timeframe: str):
        self.transport = transport
        self.session_id = session_id
        self.ticker = ticker
        self.timeframe = timeframe
        self._handler: BarHandler | None = None
        self._ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self.closed = False

    def on_update(self, handler: BarHandler) -> None:
        self._handler = handler

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.transport._sessions.pop(self.session_id, None)
        await self.transport._send("chart_delete_session", [self.session_id])

    def _emit(self, bars: list[dict[str, Any]]) -> None:
        if self._handler is None or self.closed or not bars:
            return
        self._handler({"bars": bars})

    def _resolve(self, error: Exception | None = None) -> None:
        if self._ready.done():
            return
        if error is None:
            self._ready.set_result(None)
        else:
            self._ready.set_exception(error)


class TradingViewWebSocketTransport:
    """Streams chart bars from TradingView's public WebSocket."""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        origin: str = DEFAULT_ORIGIN,
        open_timeout: float = 10.0,
        close_timeout: float = 10.0,
        ping_interval: float | None = 20.0,
        session_timeout: float = 10.0,
        bar_count: int = 300,
    ):
        """
        Initialize TradingView transport.

        Args:
            url: WebSocket endpoint
            origin: Origin header the endpoint expects
            open_timeout: Handshake timeout in seconds
            close_timeout: Close handshake timeout in seconds
            ping_interval: WebSocket ping interval (None disables pings)
            session_timeout: Seconds to wait for a chart session to resolve its symbol
            bar_count: Number of bars requested per series
        """
        self.url = url
        self.origin = origin
        self.open_timeout = open_timeout
        self.close_timeout = close_timeout
        self.ping_interval = ping_interval
        self.session_timeout = session_timeout
        self.bar_count = bar_count
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._sessions: dict[str, TradingViewChartSession] = {}
        self._close_handlers: list[CloseHandler] = []
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    def on_close(self, handler: CloseHandler) -> None:
        self._close_handlers.append(handler)

    async def connect(self) -> None:
        """Open the WebSocket and authenticate as an anonymous user."""
        if self._ws is not None:
            return
        logger.info(f"Connecting to TradingView WebSocket: {self.url}")
        try:
            self._ws = await websockets.connect(
                self.url,
                origin=self.origin,
                open_timeout=self.open_timeout,
                close_timeout=self.close_timeout,
                ping_interval=self.ping_interval,
                max_size=None,
            )
        except (websockets.exceptions.WebSocketException, asyncio.TimeoutError, OSError) as e:
            raise TransportError(f"TradingView handshake failed: {e}") from e

        self._closing = False
        try:
            await self._send("set_auth_token", [ANONYMOUS_TOKEN])
        except TransportError:
            ws, self._ws = self._ws, None
            await ws.close()
            logger.error("TradingView connection closed during authentication.")
            raise
        self._reader = asyncio.create_task(self._read_loop())
        logger.info("Connected to TradingView WebSocket.")

    async def disconnect(self) -> None:
        """Close the WebSocket and drop every chart session."""
        self._closing = True
        reader, self._reader = self._reader, None
        ws, self._ws = self._ws, None

        if reader is not None:
            reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)

        self._fail_sessions(TransportError("connection closed"))
        if ws is not None:
            await ws.close()
        logger.info("TradingView WebSocket closed.")

    async def create_chart(self, ticker: str, timeframe: str) -> TradingViewChartSession:
        """
        Open a chart session and request a bar series.

        Waits until the provider resolves the symbol.

        Raises:
            TransportError: If not connected or the provider rejects the symbol/series
        """
        if self._ws is None:
            raise TransportError("not connected")

        session_id = f"cs_{secrets.token_hex(6)}"
        session = TradingViewChartSession(self, session_id, ticker, timeframe)
        self._sessions[session_id] = session

        symbol_spec = "=" + json.dumps({"symbol": ticker, "adjustment": "splits"})
        opened = False
        try:
            await self._send("chart_create_session", [session_id, ""])
            await self._send("resolve_symbol", [session_id, _SYMBOL_ID, symbol_spec])
            await self._send("create_series", [
                session_id, _SERIES_ID, "s1", _SYMBOL_ID, timeframe, self.bar_count, "",
            ])
            await asyncio.wait_for(asyncio.shield(session._ready), timeout=self.session_timeout)
            opened = True
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timed out opening chart for {ticker} ({timeframe})") from e
        finally:
            if not opened:
                await self._abandon_session(session)

        logger.info(f"Chart session {session_id} opened for {ticker} ({timeframe})")
        return session

    async def _send(self, method: str, params: list[Any]) -> None:
        if self._ws is None:
            raise TransportError("not connected")
        try:
            await self._ws.send(encode_message(method, params))
        except websockets.exceptions.ConnectionClosed as e:
            raise TransportError(f"connection closed while sending {method}") from e

    async def _read_loop(self) -> None:
        error: BaseException | None = None
        ws = self._ws
        try:
            async for message in ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                for payload in decode_frames(message):
                    await self._handle_payload(ws, payload)
        except asyncio.CancelledError:
            raise
        except websockets.exceptions.ConnectionClosed as e:
            error = e
            logger.error(f"TradingView WebSocket closed: {e}")
        except Exception as e:
            error = e
            logger.error(f"Unexpected error in TradingView stream: {e}", exc_info=True)

        if self._closing:
            return
        # Remote side ended the stream
        self._ws = None
        self._reader = None
        self._fail_sessions(TransportError("connection lost"))
        for handler in list(self._close_handlers):
            try:
                handler(error)
            except Exception as e:
                logger.error(f"Close handler failed: {e}", exc_info=True)

    async def _handle_payload(self, ws: Any, payload: str) -> None:
        if payload.startswith(_HEARTBEAT_PREFIX):
            # Heartbeats must be echoed back or the server drops the connection
            await ws.send(encode_frame(payload))
            return

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse TradingView message: {e}")
            return
        if not isinstance(data, dict) or "m" not in data:
            # Server hello (session info) has no method
            logger.debug(f"TradingView server info: {payload[:120]}")
            return

        self.dispatch(data["m"], data.get("p") or [])

    def dispatch(self, method: str, params: list[Any]) -> None:
        """Route one decoded provider message to its chart session."""
        if not params or not isinstance(params[0], str):
            return
        session = self._sessions.get(params[0])
        if session is None:
            return

        try:
            if method in ("timescale_update", "du"):
                body = params[1] if len(params) > 1 and isinstance(params[1], dict) else {}
                series = body.get(_SERIES_ID)
                if isinstance(series, dict):
                    session._emit(series_to_bars(series))
            elif method == "symbol_resolved":
                session._resolve()
            elif method in ("symbol_error", "series_error", "critical_error"):
                detail = params[1:] if len(params) > 1 else method
                logger.warning(f"TradingView {method} for {session.ticker}: {detail}")
                session._resolve(TransportError(f"{method}: {detail}"))
        except Exception as e:
            logger.error(f"Error processing TradingView {method}: {e}", exc_info=True)

    async def _abandon_session(self, session: TradingViewChartSession) -> None:
        session.closed = True
        self._sessions.pop(session.session_id, None)
        if self._ws is None:
            return
        try:
            await self._send("chart_delete_session", [session.session_id])
        except TransportError as e:
            logger.warning(f"Failed to delete chart session {session.session_id}: {e}")

    def _fail_sessions(self, error: Exception) -> None:
        for session in list(self._sessions.values()):
            session.closed = True
            session._resolve(error)
        self._sessions.clear()

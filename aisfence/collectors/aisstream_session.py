"""AisFence — aisstream.io Session Manager.

Owns the one streaming connection: open, resubscribe, close and the
watchdog that recycles a connection that has gone quiet.

The session never mutates itself from a callback. The reader task and the
watchdog timer only *post* events (see the dataclasses below) to the
controller's inbox; the controller feeds them back through ``handle()`` one
at a time. Every event carries the epoch of the connection it belongs to, and
events from an older epoch are dropped, so a late close or a timer that fired
just before ``close()`` cannot touch a newer connection.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol

import websockets

from aisfence.backend.models import SessionState, SubscriptionFilter
from aisfence.backend.reports import RawReport, ReportDecodeError

logger = logging.getLogger("aisfence.session")

AISSTREAM_URL = "wss://stream.aisstream.io/v0/stream"


class Connection(Protocol):
    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[Any]: ...


class Transport(Protocol):
    async def connect(self, url: str) -> Connection: ...


class WebsocketsTransport:
    """Opens aisstream connections with the websockets client."""

    def __init__(self, **connect_kwargs: Any):
        self._connect_kwargs = connect_kwargs

    async def connect(self, url: str) -> Connection:
        return await websockets.connect(url, **self._connect_kwargs)


# ── Events posted to the controller inbox ─────────────────────────
@dataclass(frozen=True)
class TransportOpened:
    epoch: int
    connection: Any


@dataclass(frozen=True)
class TransportMessage:
    epoch: int
    payload: Any


@dataclass(frozen=True)
class TransportError:
    epoch: int
    error: BaseException


@dataclass(frozen=True)
class TransportClosed:
    epoch: int


@dataclass(frozen=True)
class WatchdogExpired:
    epoch: int


SESSION_EVENTS = (TransportOpened, TransportMessage, TransportError, TransportClosed, WatchdogExpired)


class AisStreamSession:
    """Connection lifecycle: idle -> connecting -> active -> idle."""

    def __init__(
        self,
        post: Callable[[object], None],
        on_report: Callable[[RawReport], Awaitable[None]],
        watchdog_timeout: float,
        transport: Optional[Transport] = None,
        url: str = AISSTREAM_URL,
    ):
        self._post = post
        self._on_report = on_report
        self.watchdog_timeout = watchdog_timeout
        self._transport = transport or WebsocketsTransport()
        self._url = url

        self.state = SessionState.IDLE
        self._epoch = 0
        self._filter: Optional[SubscriptionFilter] = None
        self._connection: Optional[Connection] = None
        self._closing: list[Connection] = []
        self._reader: Optional[asyncio.Task] = None
        self._watchdog: Optional[asyncio.TimerHandle] = None

        self.connections_opened = 0
        self.messages_received = 0
        self.decode_errors = 0
        self.watchdog_expiries = 0
        self.last_message_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        """True while connecting or connected."""
        return self.state != SessionState.IDLE

    @property
    def connection(self) -> Optional[Connection]:
        return self._connection

    @property
    def subscription(self) -> Optional[SubscriptionFilter]:
        return self._filter

    @property
    def watchdog_armed(self) -> bool:
        return self._watchdog is not None

    # ── Operations ────────────────────────────────────────────────
    def open(self, subscription: SubscriptionFilter) -> None:
        """Start connecting. The subscription is sent once the socket is open."""
        self._filter = subscription
        if self.is_open:
            logger.debug("Session already %s, not opening a second connection", self.state.value)
            return

        self._epoch += 1
        self.state = SessionState.CONNECTING
        self.reset_watchdog()
        self._reader = asyncio.create_task(self._run(self._epoch), name=f"aisstream-reader-{self._epoch}")
        logger.info("Connecting to %s", self._url)

    async def update(self, subscription: SubscriptionFilter) -> None:
        """Resubscribe over the live connection; skipped when there is none."""
        self._filter = subscription
        if self.state != SessionState.ACTIVE or self._connection is None:
            logger.debug("No live connection, subscription deferred to next open")
            return
        await self._send_subscription()

    async def close(self) -> None:
        """Drop the connection now. Safe to call in any state."""
        self._cancel_watchdog()
        self._epoch += 1
        was_open = self.is_open
        self.state = SessionState.IDLE

        reader, self._reader = self._reader, None
        connection, self._connection = self._connection, None
        if connection is not None:
            self._closing.append(connection)

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            await asyncio.wait([reader])

        # A close interrupted by cancellation stays in _closing and is retried here.
        while self._closing:
            pending = self._closing[0]
            try:
                await pending.close()
            except Exception as e:
                logger.warning("Error closing aisstream connection: %s", e)
            self._closing.remove(pending)
        if was_open:
            logger.info("aisstream session closed")

    def reset_watchdog(self) -> None:
        self._cancel_watchdog()
        loop = asyncio.get_running_loop()
        self._watchdog = loop.call_later(self.watchdog_timeout, self._post, WatchdogExpired(self._epoch))

    def _cancel_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    # ── Event handling (called by the controller, one event at a time) ──
    async def handle(self, event: object) -> None:
        if not isinstance(event, SESSION_EVENTS):
            raise TypeError(f"Not a session event: {event!r}")

        if event.epoch != self._epoch:
            if isinstance(event, TransportOpened):
                # Connected after the session was closed or recycled.
                await self._discard(event.connection)
            return

        if isinstance(event, TransportOpened):
            await self._on_opened(event.connection)
        elif isinstance(event, TransportMessage):
            await self._on_message(event.payload)
        elif isinstance(event, TransportError):
            logger.warning("aisstream connection error: %s", event.error)
            await self.close()
        elif isinstance(event, TransportClosed):
            logger.warning("aisstream connection closed by remote")
            await self.close()
        else:
            self.watchdog_expiries += 1
            logger.info("Watchdog event, websocket connection closed and reconnection will be tried")
            await self.close()

    async def _on_opened(self, connection: Connection) -> None:
        self._connection = connection
        self.state = SessionState.ACTIVE
        self.connections_opened += 1
        logger.info("Connected to aisstream.io")
        await self._send_subscription()

    async def _on_message(self, payload: Any) -> None:
        # Any traffic counts as liveness, even when it does not decode.
        self.messages_received += 1
        self.last_message_at = datetime.now(timezone.utc)
        self.reset_watchdog()

        try:
            report = RawReport.from_json(payload)
        except ReportDecodeError as e:
            self.decode_errors += 1
            logger.warning("Dropping inbound message: %s", e)
            return

        await self._on_report(report)

    async def _send_subscription(self) -> None:
        if self._filter is None or self._connection is None:
            return
        payload = self._filter.to_payload()
        logger.debug("Subscribing: boxes=%s types=%s", payload["BoundingBoxes"], payload["FilterMessageTypes"])
        try:
            await self._connection.send(json.dumps(payload))
        except Exception as e:
            logger.warning("Failed to send subscription: %s", e)

    async def _discard(self, connection: Connection) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.debug("Error closing stale connection: %s", e)

    async def _run(self, epoch: int) -> None:
        """Reader task: connect, then post every inbound frame."""
        try:
            connection = await self._transport.connect(self._url)
        except Exception as e:
            self._post(TransportError(epoch, e))
            return

        self._post(TransportOpened(epoch, connection))
        try:
            async for payload in connection:
                self._post(TransportMessage(epoch, payload))
        except Exception as e:
            self._post(TransportError(epoch, e))
        else:
            self._post(TransportClosed(epoch))

    def status(self) -> dict:
        box = self._filter.bounding_box.to_corners() if self._filter else None
        return {
            "state": self.state.value,
            "bounding_box": box,
            "message_types": list(self._filter.message_types) if self._filter else [],
            "connections_opened": self.connections_opened,
            "messages_received": self.messages_received,
            "decode_errors": self.decode_errors,
            "watchdog_expiries": self.watchdog_expiries,
            "last_message_at": self.last_message_at.isoformat() if self.last_message_at else None,
        }

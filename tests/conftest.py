import asyncio
import json

import pytest

_HANG_UP = object()


class FakeConnection:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, close_delay: float = 0):
        self.sent: list[dict] = []
        self.closed = False
        self.close_delay = close_delay
        self._frames: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str):
        self.sent.append(json.loads(message))

    async def close(self):
        if self.close_delay:
            # Peer slow to answer the closing handshake.
            await asyncio.sleep(self.close_delay)
        self.closed = True
        self._frames.put_nowait(_HANG_UP)

    def push(self, payload):
        self._frames.put_nowait(payload)

    def hang_up(self):
        self._frames.put_nowait(_HANG_UP)

    def fail(self, error: BaseException):
        self._frames.put_nowait(error)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._frames.get()
        if frame is _HANG_UP:
            raise StopAsyncIteration
        if isinstance(frame, BaseException):
            raise frame
        return frame


class FakeTransport:
    def __init__(self):
        self.urls: list[str] = []
        self.connections: list[FakeConnection] = []
        self.fail_with = None
        self.close_delay = 0.0

    async def connect(self, url: str) -> FakeConnection:
        self.urls.append(url)
        if self.fail_with is not None:
            raise self.fail_with
        conn = FakeConnection(close_delay=self.close_delay)
        self.connections.append(conn)
        return conn


class RecordingSink:
    def __init__(self):
        self.records = []

    def __call__(self, record):
        self.records.append(record)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def wait_until():
    async def _wait(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.001)
    return _wait


@pytest.fixture
def envelope():
    """Build an aisstream message as the server sends it."""
    def _build(message_type: str, body: dict, mmsi=230000001, as_json: bool = True, **meta):
        metadata = {
            "MMSI": mmsi,
            "ShipName": "ARANDA   ",
            "latitude": 60.1,
            "longitude": 24.9,
            "time_utc": "2024-01-01 12:00:00.123456789 +0000 UTC",
        }
        metadata.update(meta)
        data = {"MessageType": message_type, "MetaData": metadata, "Message": {message_type: body}}
        return json.dumps(data) if as_json else data
    return _build

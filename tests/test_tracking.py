import math

import pytest
import pytest_asyncio

from aisfence.backend.config import StreamOptions
from aisfence.backend.emitter import Emitter
from aisfence.backend.models import GeoPoint, SessionState
from aisfence.collectors.tracking import TrackingController
from aisfence.fusion_engine.geo import distance

HELSINKI = (24.95, 60.16)


def _options(**overrides):
    # 10 km box, resubscribe after 1 km
    values = {"apiKey": "secret", "boundingBoxSize": 10, "moveRelatedBoundingBox": 10}
    values.update(overrides)
    return StreamOptions.model_validate(values)


@pytest_asyncio.fixture
async def make_controller(transport, sink):
    controllers = []

    def _make(**overrides):
        c = TrackingController(_options(**overrides), Emitter(sink), transport=transport, url="wss://test")
        c.start()
        controllers.append(c)
        return c

    yield _make
    for c in controllers:
        await c.stop()


@pytest.mark.asyncio
async def test_first_sample_opens_session(make_controller, transport, wait_until):
    c = make_controller()
    c.submit_position(*HELSINKI)
    await wait_until(lambda: transport.connections and transport.connections[0].sent)

    [payload] = transport.connections[0].sent
    (sw_lat, sw_lon), (ne_lat, ne_lon) = payload["BoundingBoxes"][0]
    assert sw_lat < HELSINKI[1] < ne_lat
    assert sw_lon < HELSINKI[0] < ne_lon
    assert c.reference_center == GeoPoint(latitude=HELSINKI[1], longitude=HELSINKI[0])
    assert c.session.state == SessionState.ACTIVE


@pytest.mark.asyncio
async def test_small_moves_do_not_resubscribe(make_controller, transport, wait_until):
    c = make_controller()
    c.submit_position(*HELSINKI)
    await wait_until(lambda: transport.connections and transport.connections[0].sent)

    # ~890 m north
    c.submit_position(HELSINKI[0], HELSINKI[1] + 0.008)
    await wait_until(lambda: c.samples_received == 2)

    assert len(transport.connections[0].sent) == 1
    assert c.resubscriptions == 0


@pytest.mark.asyncio
async def test_move_exactly_at_limit_does_not_resubscribe(make_controller, transport, wait_until):
    c = make_controller()
    c.submit_position(*HELSINKI)
    await wait_until(lambda: transport.connections and transport.connections[0].sent)

    moved = GeoPoint(latitude=HELSINKI[1] + 0.01, longitude=HELSINKI[0])
    c.distance_limit = distance(c.reference_center, moved)
    c.submit_position(moved.longitude, moved.latitude)
    await wait_until(lambda: c.samples_received == 2)

    assert c.resubscriptions == 0
    assert len(transport.connections[0].sent) == 1


@pytest.mark.asyncio
async def test_move_beyond_limit_resubscribes_and_recenters(make_controller, transport, wait_until):
    c = make_controller()
    c.submit_position(*HELSINKI)
    await wait_until(lambda: transport.connections and transport.connections[0].sent)

    # ~1060 m north
    c.submit_position(HELSINKI[0], HELSINKI[1] + 0.0095)
    await wait_until(lambda: c.samples_received == 2)

    sent = transport.connections[0].sent
    assert len(sent) == 2
    assert sent[1]["BoundingBoxes"][0][0][0] > sent[0]["BoundingBoxes"][0][0][0]
    assert c.reference_center.latitude == pytest.approx(HELSINKI[1] + 0.0095)
    assert c.resubscriptions == 1
    assert len(transport.connections) == 1


@pytest.mark.asyncio
async def test_burst_of_samples_opens_one_connection(make_controller, transport, wait_until):
    c = make_controller()
    for i in range(5):
        c.submit_position(HELSINKI[0], HELSINKI[1] + i * 0.0001)
    await wait_until(lambda: c.samples_received == 5 and transport.connections and transport.connections[0].sent)

    assert len(transport.connections) == 1


@pytest.mark.asyncio
async def test_watchdog_recycles_and_next_sample_reopens(make_controller, transport, wait_until):
    c = make_controller(refreshRate=0, watchdogGrace=0.05)
    c.submit_position(*HELSINKI)
    await wait_until(lambda: c.session.watchdog_expiries == 1)

    assert c.session.state == SessionState.IDLE
    assert transport.connections[0].closed

    c.submit_position(HELSINKI[0], HELSINKI[1] + 0.001)
    await wait_until(lambda: len(transport.connections) == 2 and transport.connections[1].sent)

    assert len(transport.connections) == 2
    # Reopen keeps the original reference point.
    assert c.reference_center.latitude == pytest.approx(HELSINKI[1])


@pytest.mark.asyncio
async def test_no_message_types_means_no_connection(make_controller, transport, wait_until):
    c = make_controller(
        positionReport=False, shipStaticData=False, staticDataReport=False,
        standardClassBPositionReport=False, extendedClassBPositionReport=False,
        aidsToNavigationReport=False, baseStationReport=False,
    )
    c.submit_position(*HELSINKI)
    await wait_until(lambda: c.samples_received == 1)

    assert c.active_filter == ()
    assert transport.connections == []
    assert c.session.state == SessionState.IDLE


@pytest.mark.asyncio
@pytest.mark.parametrize("lon,lat", [
    ("24.9", 60.1),
    (None, None),
    (200.0, 10.0),
    (10.0, -91.0),
    (math.nan, 1.0),
    (True, 1.0),
])
async def test_unusable_samples_are_ignored(make_controller, transport, wait_until, lon, lat):
    c = make_controller()
    c.submit_position(lon, lat)
    c.submit_position(*HELSINKI)
    await wait_until(lambda: c.samples_received == 1 and transport.connections)

    assert c.reference_center == GeoPoint(latitude=HELSINKI[1], longitude=HELSINKI[0])


@pytest.mark.asyncio
async def test_reports_are_published_to_sink(make_controller, transport, sink, envelope, wait_until):
    c = make_controller()
    c.submit_position(*HELSINKI)
    await wait_until(lambda: transport.connections and transport.connections[0].sent)

    transport.connections[0].push(envelope("PositionReport", {"Sog": 5}))
    transport.connections[0].push(envelope("PositionReport", {"Sog": 5}, mmsi=None))
    transport.connections[0].push("garbage")
    await wait_until(lambda: c.session.messages_received == 3)

    assert len(sink.records) == 1
    assert sink.records[0].context == "vessels.urn:mrn:imo:mmsi:230000001"
    assert sink.records[0].source_label == "aisfence"


@pytest.mark.asyncio
async def test_host_position_delta_is_accepted(make_controller, transport, wait_until):
    c = make_controller()
    c.handle_position_delta({
        "context": "vessels.self",
        "updates": [{"values": [{"path": "navigation.position",
                                 "value": {"longitude": HELSINKI[0], "latitude": HELSINKI[1]}}]}],
    })
    await wait_until(lambda: c.samples_received == 1)
    assert c.reference_center is not None


@pytest.mark.asyncio
async def test_stop_releases_everything(transport, sink, wait_until):
    c = TrackingController(_options(), Emitter(sink), transport=transport, url="wss://test")
    c.start()
    c.submit_position(*HELSINKI)
    await wait_until(lambda: transport.connections and transport.connections[0].sent)

    await c.stop()

    assert not c.running
    assert transport.connections[0].closed
    assert c.session.state == SessionState.IDLE
    assert not c.session.watchdog_armed
    assert c.reference_center is None
    assert c.bounding_box is None


@pytest.mark.asyncio
async def test_stop_during_slow_close_still_releases_connection(transport, sink, wait_until):
    transport.close_delay = 0.3
    c = TrackingController(
        _options(refreshRate=0, watchdogGrace=0.05), Emitter(sink), transport=transport, url="wss://test",
    )
    c.start()
    c.submit_position(*HELSINKI)

    # The actor is now inside the watchdog close, waiting on the peer.
    await wait_until(lambda: c.session.watchdog_expiries == 1)
    assert not transport.connections[0].closed

    await c.stop()

    assert transport.connections[0].closed
    assert c.session.connection is None
    assert c.session.state == SessionState.IDLE

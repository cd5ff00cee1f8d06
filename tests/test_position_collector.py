import httpx
import pytest

from aisfence.collectors.position_collector import SelfPositionCollector


def _collector(handler, **kwargs):
    return SelfPositionCollector(
        "http://boat.local:3000/", interval=0, transport=httpx.MockTransport(handler), **kwargs
    )


@pytest.mark.asyncio
async def test_reads_full_model_position():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={
            "value": {"longitude": 24.95, "latitude": 60.16},
            "timestamp": "2024-01-01T00:00:00.000Z",
            "$source": "gps.0",
        })

    collector = _collector(handler, token="t0ken")
    assert await collector.collect() == [{"longitude": 24.95, "latitude": 60.16}]
    assert seen["url"] == "http://boat.local:3000/signalk/v1/api/vessels/self/navigation/position"
    assert seen["auth"] == "Bearer t0ken"
    await collector.stop()


@pytest.mark.asyncio
async def test_bare_value_and_missing_position():
    responses = iter([
        httpx.Response(200, json={"longitude": 1.0, "latitude": 2.0}),
        httpx.Response(200, json={"value": {"longitude": 1.0}}),
        httpx.Response(404, json={"message": "not found"}),
    ])
    collector = _collector(lambda request: next(responses))

    assert await collector.collect() == [{"longitude": 1.0, "latitude": 2.0}]
    assert await collector.collect() == []
    assert await collector.collect() == []
    await collector.stop()


@pytest.mark.asyncio
async def test_poll_loop_survives_errors():
    collector = _collector(lambda request: httpx.Response(500))
    polls = collector.start()

    assert await polls.__anext__() == []
    assert collector.errors == 1

    await collector.stop()
    await polls.aclose()


@pytest.mark.asyncio
async def test_status_reports_last_fetch():
    collector = _collector(lambda request: httpx.Response(200, json={"value": {"longitude": 1.0, "latitude": 2.0}}))
    assert collector.status()["last_fetch"] is None

    polls = collector.start()
    assert await polls.__anext__() == [{"longitude": 1.0, "latitude": 2.0}]

    status = collector.status()
    assert status["name"] == "self-position"
    assert status["errors"] == 0
    assert status["last_fetch"] is not None

    await collector.stop()
    await polls.aclose()

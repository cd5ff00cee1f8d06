"""
AisFence — Main FastAPI Application
Standalone host: own-ship position in, Signal K deltas for nearby AIS targets out
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from aisfence.backend.config import settings
from aisfence.backend.models import NormalizedRecord, PositionSampleIn
from aisfence.backend.plugin import AisStreamPlugin
from aisfence.backend.redis_manager import DeltaStreamManager
from aisfence.backend.websocket_manager import ConnectionManager
from aisfence.collectors.position_collector import SelfPositionCollector

# ─── Logging ───────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(name)-20s │ %(levelname)-7s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("aisfence.main")

# ─── Globals ───────────────────────────────────────
stream_manager = DeltaStreamManager(
    redis_url=settings.redis_url,
    stream_key=settings.redis_stream_key,
    use_redis=settings.use_redis,
)
ws_manager = ConnectionManager()


async def publish_delta(record: NormalizedRecord):
    """Plugin sink: append to the delta stream and push to dashboard clients."""
    delta = record.to_delta()
    await stream_manager.publish(delta)
    await ws_manager.broadcast_delta(delta)


plugin = AisStreamPlugin(sink=publish_delta, url=settings.aisstream_url)
position_collector: Optional[SelfPositionCollector] = None


async def run_position_collector(collector: SelfPositionCollector):
    """Feed every polled own-ship position into the plugin."""
    async for positions in collector.start():
        for position in positions:
            plugin.submit_position(position["longitude"], position["latitude"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start the plugin on startup, stop it on shutdown."""
    global position_collector

    logger.info("═══════════════════════════════════════════════")
    logger.info("  AISFENCE — AIS targets around your own ship   ")
    logger.info("  Version %s", settings.app_version)
    logger.info("═══════════════════════════════════════════════")

    await stream_manager.connect()
    await plugin.start(settings.stream)

    collector = None
    task = None
    if settings.signalk_url:
        collector = position_collector = SelfPositionCollector(
            settings.signalk_url,
            interval=max(settings.stream.refresh_rate, 1),
            token=settings.signalk_token,
        )
        task = asyncio.create_task(run_position_collector(collector))
        logger.info("Polling own position from %s", settings.signalk_url)
    else:
        logger.info("No Signal K URL configured, waiting for POST /api/position")

    yield

    # Shutdown
    logger.info("Shutting down AisFence...")
    if collector is not None:
        await collector.stop()
        position_collector = None
    if task is not None:
        task.cancel()
        await asyncio.wait([task])
    await plugin.stop()
    await stream_manager.close()


# ─── FastAPI App ───────────────────────────────────
app = FastAPI(
    title=settings.app_name,
    description="AIS targets around the own vessel from aisstream.io, as Signal K deltas",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── REST Endpoints ───────────────────────────────
@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": plugin.status_text(),
        "ws_clients": ws_manager.connection_count,
    }


@app.get("/api/status")
async def get_status():
    """Plugin, session and delta stream counters."""
    return {
        "plugin": plugin.status(),
        "stream": stream_manager.status(),
        "position_source": position_collector.status() if position_collector else None,
        "ws_clients": ws_manager.connection_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/schema")
async def get_schema():
    """JSON schema of the plugin options."""
    return plugin.schema()


@app.get("/api/deltas")
async def get_deltas(count: int = Query(100, ge=1, le=5000)):
    """Most recent deltas, oldest first."""
    deltas = await stream_manager.recent(count)
    return {"count": len(deltas), "deltas": deltas}


@app.post("/api/position", status_code=202)
async def post_position(sample: PositionSampleIn):
    """Push an own-ship position sample, as a host position subscription would."""
    if not plugin.started:
        raise HTTPException(status_code=503, detail="Plugin not started")
    plugin.submit_position(sample.longitude, sample.latitude)
    return {"accepted": True}


# ─── WebSocket Endpoint ───────────────────────────
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Live deltas, one message per delta."""
    await ws_manager.connect(websocket)
    await ws_manager.send_to(websocket, {
        "action": "initial_state",
        "data": await stream_manager.recent(200),
        "status": plugin.status_text(),
    })

    try:
        while True:
            data = await websocket.receive_text()
            logger.debug("Client message: %s", data)
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)


# ─── Run ───────────────────────────────────────────
def run():
    import uvicorn
    uvicorn.run(
        "aisfence.backend.main:app",
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    run()

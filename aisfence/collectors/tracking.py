"""AisFence — Own-ship Tracking Controller.

Keeps the aisstream subscription centered on the own vessel. The box is
only moved when the vessel has drifted more than ``distance_limit`` meters
from the point the current box was built around, so that normal motion does
not cause a resubscription on every position sample.

The controller is also the serialization point for the session: position
samples, transport events and watchdog expiries all go through one inbox and
are handled by one task.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from aisfence.backend.config import StreamOptions
from aisfence.backend.emitter import Emitter
from aisfence.backend.models import BoundingBox, GeoPoint, SubscriptionFilter
from aisfence.backend.reports import RawReport
from aisfence.collectors.aisstream_session import AISSTREAM_URL, AisStreamSession, Transport
from aisfence.fusion_engine.geo import bounds_of_distance, distance
from aisfence.fusion_engine.normalizer import normalize_report

logger = logging.getLogger("aisfence.tracking")


@dataclass(frozen=True)
class PositionSample:
    longitude: Any
    latitude: Any


def _coordinate(value: Any, limit: float) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value) or abs(value) > limit:
        return None
    return value


class TrackingController:
    """Decides when the session is opened, resubscribed or reopened."""

    def __init__(self, options: StreamOptions, emitter: Emitter,
                 transport: Optional[Transport] = None, url: str = AISSTREAM_URL):
        self.options = options
        self.active_filter = options.message_types()
        self.distance_limit = options.distance_limit
        self.reference_center: Optional[GeoPoint] = None
        self.bounding_box: Optional[BoundingBox] = None

        self._emitter = emitter
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self.session = AisStreamSession(
            post=self._inbox.put_nowait,
            on_report=self._publish_report,
            watchdog_timeout=options.watchdog_timeout,
            transport=transport,
            url=url,
        )

        self.samples_received = 0
        self.resubscriptions = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="aisfence-tracking")
        logger.info(
            "Tracking started: box %d m, move limit %.0f m, types %s",
            self.options.bounding_box_meters, self.distance_limit, list(self.active_filter),
        )

    async def stop(self) -> None:
        """Stop the actor and release the connection, timers and queued events."""
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.wait([task])
        await self.session.close()
        while not self._inbox.empty():
            self._inbox.get_nowait()
        self.reference_center = None
        self.bounding_box = None
        logger.info("Tracking stopped")

    # ── Inputs (non-blocking) ─────────────────────────────────────
    def submit_position(self, longitude: Any, latitude: Any) -> None:
        self._inbox.put_nowait(PositionSample(longitude, latitude))

    def handle_position_delta(self, delta: dict) -> None:
        """Accept a host delta for navigation.position, one sample per update."""
        for update in delta.get("updates") or []:
            values = update.get("values") or []
            if not values:
                continue
            value = values[0].get("value")
            if isinstance(value, dict):
                self.submit_position(value.get("longitude"), value.get("latitude"))

    # ── Actor ─────────────────────────────────────────────────────
    async def _run(self) -> None:
        while True:
            event = await self._inbox.get()
            try:
                if isinstance(event, PositionSample):
                    await self.on_position_sample(event.longitude, event.latitude)
                else:
                    await self.session.handle(event)
            except Exception:
                logger.exception("Error handling %s", type(event).__name__)

    async def on_position_sample(self, longitude: Any, latitude: Any) -> None:
        lon = _coordinate(longitude, 180.0)
        lat = _coordinate(latitude, 90.0)
        if lon is None or lat is None:
            logger.debug("Ignoring unusable position sample (%r, %r)", longitude, latitude)
            return
        self.samples_received += 1

        if not self.active_filter:
            logger.debug("No message types enabled, no need to update AIS stream")
            return

        point = GeoPoint(latitude=lat, longitude=lon)

        if not self.session.is_open and self.reference_center is None:
            self.reference_center = point
            self.session.open(self._subscription(point))
            return

        if self.session.is_open:
            if self.reference_center is None:
                return
            moved = distance(self.reference_center, point)
            if moved > self.distance_limit:
                logger.info("Moved %.0f m (limit %.0f m), renewing bounding box", moved, self.distance_limit)
                self.reference_center = point
                self.resubscriptions += 1
                await self.session.update(self._subscription(point))
            return

        logger.info("No live session, reopening around %.5f, %.5f", lat, lon)
        self.session.open(self._subscription(point))

    def _subscription(self, center: GeoPoint) -> SubscriptionFilter:
        self.bounding_box = bounds_of_distance(center, self.options.bounding_box_meters)
        return SubscriptionFilter(
            api_key=self.options.api_key,
            bounding_box=self.bounding_box,
            message_types=self.active_filter,
        )

    async def _publish_report(self, report: RawReport) -> None:
        normalized = normalize_report(report)
        if normalized is None:
            return
        context, values = normalized
        await self._emitter.publish(context, values)

    def status(self) -> dict:
        center = self.reference_center
        return {
            "running": self.running,
            "reference_center": center.model_dump() if center else None,
            "distance_limit_m": self.distance_limit,
            "samples_received": self.samples_received,
            "resubscriptions": self.resubscriptions,
            "session": self.session.status(),
        }

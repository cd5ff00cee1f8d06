"""AisFence — Own-ship Position Collector (Signal K REST API).

Polls ``/signalk/v1/api/vessels/self/navigation/position`` every refresh
period and yields the position as ``{"longitude", "latitude"}``. This is the
standalone service's stand-in for a host position subscription.
"""

import logging
from typing import Optional

import httpx

from aisfence.collectors.base_collector import BaseCollector

logger = logging.getLogger("aisfence.collector")

SELF_POSITION_PATH = "/signalk/v1/api/vessels/self/navigation/position"


class SelfPositionCollector(BaseCollector):
    """Reads the own vessel's position from a Signal K server."""

    def __init__(self, base_url: str, interval: float = 60, token: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        headers = {"Authorization": f"Bearer {token}"} if token else None
        super().__init__(name="self-position", interval=interval, headers=headers, transport=transport)
        self.url = base_url.rstrip("/") + SELF_POSITION_PATH

    async def collect(self) -> list[dict]:
        try:
            data = await self.fetch_json(self.url)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.debug("[%s] Own position not available yet", self.name)
                return []
            raise

        # Full model responses wrap the position in "value".
        value = data.get("value", data) if isinstance(data, dict) else None
        if not isinstance(value, dict):
            logger.debug("[%s] Unexpected position payload: %r", self.name, data)
            return []

        lon = value.get("longitude")
        lat = value.get("latitude")
        if lon is None or lat is None:
            return []
        return [{"longitude": lon, "latitude": lat}]

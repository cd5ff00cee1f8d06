"""AisFence — Abstract Polling Collector."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

import httpx

logger = logging.getLogger("aisfence.collector")


class BaseCollector(ABC):
    """Base class for collectors that poll an HTTP source on an interval."""

    def __init__(self, name: str, interval: float = 60, headers: Optional[dict] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.name = name
        self.interval = interval
        self._headers = headers or {}
        self._transport = transport
        self._running = False
        self._http_client: Optional[httpx.AsyncClient] = None
        self._last_fetch: Optional[datetime] = None
        self.errors = 0

    @property
    def last_fetch(self) -> Optional[datetime]:
        return self._last_fetch

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=10.0, headers=self._headers, transport=self._transport,
            )
        return self._http_client

    async def start(self):
        """Poll forever, yielding each batch of items (possibly empty)."""
        self._running = True
        logger.info("[%s] Collector started (interval=%ss)", self.name, self.interval)

        while self._running:
            try:
                items = await self.collect()
                self._last_fetch = datetime.now(timezone.utc)
                yield items
            except Exception as e:
                self.errors += 1
                logger.error("[%s] Collection error: %s", self.name, e)
                yield []

            await asyncio.sleep(self.interval)

    async def stop(self):
        self._running = False
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.info("[%s] Collector stopped", self.name)

    @abstractmethod
    async def collect(self) -> list[dict]:
        """Fetch one batch from the source."""
        ...

    def status(self) -> dict:
        return {
            "name": self.name,
            "interval": self.interval,
            "errors": self.errors,
            "last_fetch": self._last_fetch.isoformat() if self._last_fetch else None,
        }

    async def fetch_json(self, url: str, params: dict = None) -> dict:
        resp = await self._client().get(url, params=params)
        resp.raise_for_status()
        return resp.json()

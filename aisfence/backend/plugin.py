"""AisFence — Host Plugin.

The object a host application talks to. It is created once, started with
the user's options and stopped on shutdown; all session state lives in the
controller it builds on start and is thrown away on stop.

    plugin = AisStreamPlugin(sink=handle_delta)
    await plugin.start({"apiKey": "...", "boundingBoxSize": 5})
    plugin.handle_position_delta(own_position_delta)
    ...
    await plugin.stop()
"""

import logging
from typing import Any, Optional, Union

from aisfence.backend.config import StreamOptions
from aisfence.backend.emitter import PLUGIN_ID, Emitter, Sink
from aisfence.collectors.aisstream_session import AISSTREAM_URL, Transport
from aisfence.collectors.tracking import TrackingController

logger = logging.getLogger("aisfence.plugin")


class AisStreamPlugin:
    id = PLUGIN_ID
    name = "AisFence"
    description = "Track the world's vessels (AIS) around your own ship via aisstream.io."

    def __init__(self, sink: Sink, transport: Optional[Transport] = None, url: str = AISSTREAM_URL):
        self._sink = sink
        self._transport = transport
        self._url = url
        self._controller: Optional[TrackingController] = None
        self._emitter: Optional[Emitter] = None

    @property
    def controller(self) -> Optional[TrackingController]:
        return self._controller

    @property
    def started(self) -> bool:
        return self._controller is not None

    async def start(self, options: Union[StreamOptions, dict, None] = None) -> None:
        if self._controller is not None:
            await self.stop()

        if not isinstance(options, StreamOptions):
            options = StreamOptions.model_validate(options or {})

        self._emitter = Emitter(self._sink, source_label=self.id)
        self._controller = TrackingController(options, self._emitter, transport=self._transport, url=self._url)
        self._controller.start()
        logger.info("AisStream plugin started")

    async def stop(self) -> None:
        controller, self._controller = self._controller, None
        if controller is not None:
            await controller.stop()
            logger.info("AisStream plugin stopped")

    def submit_position(self, longitude: Any, latitude: Any) -> None:
        if self._controller is None:
            logger.debug("Plugin not started, dropping position sample")
            return
        self._controller.submit_position(longitude, latitude)

    def handle_position_delta(self, delta: dict) -> None:
        if self._controller is None:
            logger.debug("Plugin not started, dropping position delta")
            return
        self._controller.handle_position_delta(delta)

    def status_text(self) -> str:
        c = self._controller
        if c is None:
            return "Stopped"
        if not c.active_filter:
            return "No AIS message types enabled"
        if c.reference_center is None:
            return "Waiting for own position"
        state = c.session.state.value
        return (
            f"{state.capitalize()}: {c.session.messages_received} messages around "
            f"{c.reference_center.latitude:.4f}, {c.reference_center.longitude:.4f}"
        )

    def status(self) -> dict:
        return {
            "id": self.id,
            "started": self.started,
            "text": self.status_text(),
            "published": self._emitter.published if self._emitter else 0,
            "tracking": self._controller.status() if self._controller else None,
        }

    @staticmethod
    def schema() -> dict:
        return StreamOptions.options_schema()

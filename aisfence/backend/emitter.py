"""AisFence — Delta Emitter.

Wraps normalized field assignments with context, timestamp and source label
and hands them to the host's ingestion sink. Delivery is the host's problem:
nothing is retried here.
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Union

from aisfence.backend.models import FieldAssignment, NormalizedRecord
from aisfence.fusion_engine.normalizer import format_iso

logger = logging.getLogger("aisfence.emitter")

PLUGIN_ID = "aisfence"

Sink = Callable[[NormalizedRecord], Union[Awaitable[None], None]]


class Emitter:
    """Publishes NormalizedRecords to a sync or async sink."""

    def __init__(self, sink: Sink, source_label: str = PLUGIN_ID,
                 clock: Optional[Callable[[], datetime]] = None):
        self._sink = sink
        self.source_label = source_label
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.published = 0

    async def publish(self, context: str, values: list[FieldAssignment]) -> Optional[NormalizedRecord]:
        record = NormalizedRecord(
            context=context,
            timestamp=format_iso(self._clock()),
            source_label=self.source_label,
            values=values,
        )
        try:
            result = self._sink(record)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Sink rejected delta for %s", context)
            return None

        self.published += 1
        logger.debug("Published %d value(s) for %s", len(values), context)
        return record

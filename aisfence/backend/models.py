"""AisFence — Geofence, Subscription & Delta Data Models."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any
from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of the aisstream connection."""
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"


class GeoPoint(BaseModel):
    """A position in decimal degrees."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class BoundingBox(BaseModel):
    """Southwest / northeast corners of a subscribed area."""
    model_config = ConfigDict(frozen=True)

    southwest: GeoPoint
    northeast: GeoPoint

    def to_corners(self) -> list[list[float]]:
        """Corners as aisstream expects them: [[lat, lon], [lat, lon]]."""
        return [
            [self.southwest.latitude, self.southwest.longitude],
            [self.northeast.latitude, self.northeast.longitude],
        ]


class SubscriptionFilter(BaseModel):
    """Subscription sent to aisstream on open and on every resubscription."""
    model_config = ConfigDict(frozen=True)

    api_key: str
    bounding_box: BoundingBox
    message_types: tuple[str, ...]

    def to_payload(self) -> dict[str, Any]:
        return {
            "APIkey": self.api_key,
            "BoundingBoxes": [self.bounding_box.to_corners()],
            "FilterMessageTypes": list(self.message_types),
        }


class FieldAssignment(BaseModel):
    """One Signal K path/value pair."""
    path: str
    value: Any


class NormalizedRecord(BaseModel):
    """Field assignments for one vessel / navaid, ready for the host sink."""
    context: str
    timestamp: str
    source_label: str
    values: list[FieldAssignment] = Field(default_factory=list)

    def to_delta(self) -> dict[str, Any]:
        """Render as a Signal K delta message."""
        return {
            "context": self.context,
            "updates": [
                {
                    "source": {"label": self.source_label},
                    "timestamp": self.timestamp,
                    "values": [v.model_dump() for v in self.values],
                }
            ],
        }


class PositionSampleIn(BaseModel):
    """Own-ship position pushed to the standalone service."""
    longitude: float
    latitude: float
